from __future__ import annotations

import os
import subprocess
import sys
import threading
import time
from pathlib import Path

import pytest

from mcp_server_build.errors import ProcessOutputError, ProcessTimeoutError
from mcp_server_build.process import runner as runner_mod
from mcp_server_build.process.runner import ProcessRunner, find_executable


@pytest.mark.timeout(30)
def test_captures_merged_output_and_exit_code(tmp_path: Path) -> None:
    script = (
        "import sys\n"
        "print('[INFO] Compiling 2 source files')\n"
        "sys.stdout.flush()\n"
        "sys.stderr.write('[ERROR] boom\\n')\n"
        "sys.exit(3)\n"
    )
    result = ProcessRunner(timeout_ms=20_000).run(
        [sys.executable, "-c", script], str(tmp_path), os.environ
    )

    assert result.exit_code == 3
    assert "[INFO] Compiling 2 source files" in result.output
    assert "[ERROR] boom" in result.output


@pytest.mark.timeout(30)
def test_runs_in_working_directory_with_given_env(tmp_path: Path) -> None:
    env = dict(os.environ, MCP_BUILD_TOOL="MAVEN")
    script = "import os; print(os.getcwd()); print(os.environ['MCP_BUILD_TOOL'])"

    result = ProcessRunner(timeout_ms=20_000).run([sys.executable, "-c", script], str(tmp_path), env)

    lines = result.output.splitlines()
    assert Path(lines[0]).resolve() == tmp_path.resolve()
    assert lines[1] == "MAVEN"
    assert result.exit_code == 0


@pytest.mark.timeout(30)
def test_timeout_kills_process(tmp_path: Path) -> None:
    runner = ProcessRunner(timeout_ms=300, drain_grace=2.0)
    started = time.monotonic()

    with pytest.raises(ProcessTimeoutError) as excinfo:
        runner.run([sys.executable, "-c", "import time; time.sleep(60)"], str(tmp_path), os.environ)

    assert time.monotonic() - started < 15
    assert excinfo.value.timeout_ms == 300
    assert str(excinfo.value) == "Process timed out after 300ms"


def test_empty_command_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        ProcessRunner(timeout_ms=1000).run([], str(tmp_path))


@pytest.mark.skipif(os.name == "nt", reason="POSIX executable bit")
def test_find_executable_uses_given_path(maven_home: Path) -> None:
    bindir = maven_home / "bin"
    assert find_executable("mvn", {"PATH": str(bindir)}) == str(bindir / "mvn")
    assert find_executable("mvn", {}) is None


@pytest.mark.skipif(os.name == "nt", reason="process groups are POSIX")
@pytest.mark.timeout(30)
def test_lingering_child_is_killed_and_output_closed(tmp_path: Path, monkeypatch) -> None:
    spawned: list[subprocess.Popen] = []
    real_popen = subprocess.Popen

    def _recording_popen(*args, **kwargs):
        proc = real_popen(*args, **kwargs)
        spawned.append(proc)
        return proc

    monkeypatch.setattr(runner_mod.subprocess, "Popen", _recording_popen)
    # The parent exits at once; its child keeps the inherited stdout open
    script = (
        "import subprocess, sys\n"
        "subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(30)'])\n"
        "print('forked', flush=True)\n"
    )
    started = time.monotonic()

    with pytest.raises(ProcessOutputError, match="was not drained"):
        ProcessRunner(timeout_ms=20_000, drain_grace=0.5).run(
            [sys.executable, "-c", script], str(tmp_path), os.environ
        )

    assert time.monotonic() - started < 15
    assert spawned[0].stdout.closed
    assert not any(t.name == "process-output" and t.is_alive() for t in threading.enumerate())
