"""Toolchain process execution with a hard timeout.

Responsibilities:
- Launch one external command with a working directory and an explicit env.
- Merge stderr into stdout and drain it on a reader thread while the process runs,
  echoing interesting lines to the log in real time.
- Wait for exit up to the configured timeout; on expiry kill the whole process
  group (toolchain launchers such as `mvn` fork a JVM) and raise.
- Give the reader a short grace period to flush; never hand back partial output
  silently.
"""

from __future__ import annotations

import os
import shutil
import signal
import subprocess
import threading
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import IO

from mcp_server_build.errors import ProcessOutputError, ProcessTimeoutError
from mcp_server_build.logging import get_logger

logger = get_logger(__name__)

_HIGHLIGHTS = ("ERROR", "FAILURE", "BUILD SUCCESS", "Compiling", "npm ERR")
_WARNINGS = ("WARNING", "WARN")


@dataclass(frozen=True)
class ProcessResult:
    exit_code: int
    output: str


def find_executable(name: str, env: Mapping[str, str]) -> str | None:
    """Locate *name* on the PATH of *env* (not the current process's PATH)."""
    path = env.get("PATH")
    if not path:
        return None
    return shutil.which(name, path=path)


class ProcessRunner:
    def __init__(self, timeout_ms: int, drain_grace: float = 5.0) -> None:
        self.timeout_ms = timeout_ms
        self.drain_grace = drain_grace

    def run(
        self, command: Sequence[str], cwd: str, env: Mapping[str, str] | None = None
    ) -> ProcessResult:
        cmd = list(command)
        if not cmd:
            raise ValueError("command must be a non-empty list")

        logger.debug(
            "Executing command in %s: %s", cwd, " ".join(cmd), extra={"command": " ".join(cmd)}
        )
        started = time.monotonic()
        proc = subprocess.Popen(
            cmd,
            cwd=cwd,
            env=dict(env) if env is not None else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            text=True,
            encoding="utf-8",
            errors="replace",
            start_new_session=os.name != "nt",
        )

        lines: list[str] = []
        reader = threading.Thread(
            target=self._drain, args=(proc.stdout, lines), name="process-output", daemon=True
        )
        reader.start()

        try:
            try:
                exit_code = proc.wait(timeout=self.timeout_ms / 1000)
            except subprocess.TimeoutExpired:
                logger.warning(
                    "Process timed out after %sms, terminating forcefully",
                    self.timeout_ms,
                    extra={"command": " ".join(cmd)},
                )
                self._kill(proc)
                reader.join(self.drain_grace)
                raise ProcessTimeoutError(self.timeout_ms, output="".join(lines)) from None

            reader.join(self.drain_grace)
            if reader.is_alive():
                # A forked child still holds the pipe open
                self._kill(proc)
                reader.join(self.drain_grace)
                raise ProcessOutputError(
                    f"Output of '{cmd[0]}' was not drained within {self.drain_grace}s of exit"
                )
        finally:
            self._close_output(proc, reader)

        duration_ms = int((time.monotonic() - started) * 1000)
        logger.debug(
            "Process completed with exit code: %s",
            exit_code,
            extra={"exit_code": exit_code, "duration_ms": duration_ms},
        )
        return ProcessResult(exit_code=exit_code, output="".join(lines))

    @staticmethod
    def _drain(stream: IO[str] | None, sink: list[str]) -> None:
        if stream is None:
            return
        with stream:
            for line in stream:
                sink.append(line)
                text = line.rstrip()
                if any(marker in text for marker in _HIGHLIGHTS):
                    logger.info("Build output: %s", text)
                elif any(marker in text for marker in _WARNINGS):
                    logger.debug("Build warning: %s", text)

    @staticmethod
    def _close_output(proc: subprocess.Popen, reader: threading.Thread) -> None:
        if proc.stdout is None:
            return
        if reader.is_alive():
            # Closing would block on the reader; a process outside the group holds the pipe
            logger.warning("Output reader for process %s is still running", proc.pid)
            return
        proc.stdout.close()

    @staticmethod
    def _kill(proc: subprocess.Popen) -> None:
        try:
            if os.name != "nt":
                os.killpg(proc.pid, signal.SIGKILL)
            else:
                proc.kill()
        except ProcessLookupError:
            pass
        try:
            proc.wait(timeout=5)
        except subprocess.TimeoutExpired:
            logger.error("Process %s did not exit after kill", proc.pid)
