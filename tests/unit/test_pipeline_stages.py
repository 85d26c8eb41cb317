from __future__ import annotations

import os
from pathlib import Path

import pytest

from mcp_server_build.buildpacks.base import analyze_project
from mcp_server_build.config import BuilderSettings
from mcp_server_build.detect.base import discover_project
from mcp_server_build.errors import CompilationError, DependencyResolutionError, ProcessTimeoutError
from mcp_server_build.installer.environment import EnvironmentPreparer
from mcp_server_build.pipeline.compiler import Compiler
from mcp_server_build.pipeline.dependencies import DependencyResolver
from mcp_server_build.process.runner import ProcessResult, ProcessRunner
from mcp_server_build.types import BuildEnvironment

posix_only = pytest.mark.skipif(os.name == "nt", reason="fake toolchains are POSIX scripts")


def _prepare(project: Path, settings: BuilderSettings, ambient: dict[str, str]):
    config = analyze_project(discover_project(str(project)))
    env = EnvironmentPreparer(settings, ambient).prepare(config)
    return config, env


class _ScriptedRunner:
    """Returns canned results in order and records the argv it was given."""

    def __init__(self, *results: ProcessResult) -> None:
        self.results = list(results)
        self.commands: list[list[str]] = []

    def run(self, command, cwd, env=None) -> ProcessResult:
        self.commands.append(list(command))
        return self.results.pop(0)


@posix_only
@pytest.mark.timeout(60)
def test_dependency_resolution_reads_listing_file(
    spring_project: Path, settings: BuilderSettings, ambient_env: dict[str, str], mvn_calls
) -> None:
    config, env = _prepare(spring_project, settings, ambient_env)

    result = DependencyResolver(ProcessRunner(settings.timeout)).resolve(config, env)

    assert result.success
    assert result.resolved_dependencies == (
        "org.springframework.boot:spring-boot-starter-web:3.2.0",
        "org.slf4j:slf4j-api:2.0.9",
    )
    assert result.failed_dependencies == ()
    assert result.duration_ms >= 0
    assert "[INFO] BUILD SUCCESS" in result.output
    assert mvn_calls()[0].startswith(
        "dependency:resolve dependency:resolve-sources --batch-mode --no-transfer-progress --quiet"
    )


@posix_only
@pytest.mark.timeout(60)
def test_dependency_resolution_failure(
    spring_project: Path, settings: BuilderSettings, ambient_env: dict[str, str]
) -> None:
    ambient_env["FAKE_MVN_DEP_FAIL"] = "1"
    config, env = _prepare(spring_project, settings, ambient_env)

    with pytest.raises(DependencyResolutionError) as excinfo:
        DependencyResolver(ProcessRunner(settings.timeout)).resolve(config, env)
    assert str(excinfo.value).startswith(
        "Maven dependency resolution failed: Failed to execute goal on project demo"
    )


@posix_only
@pytest.mark.timeout(60)
def test_dependency_timeout_is_wrapped(
    spring_project: Path, settings: BuilderSettings, ambient_env: dict[str, str]
) -> None:
    ambient_env["FAKE_MVN_SLEEP"] = "20"
    config, env = _prepare(spring_project, settings, ambient_env)

    with pytest.raises(DependencyResolutionError) as excinfo:
        DependencyResolver(ProcessRunner(timeout_ms=500, drain_grace=2.0)).resolve(config, env)
    assert str(excinfo.value).startswith("Failed to resolve dependencies for MAVEN")
    assert isinstance(excinfo.value.__cause__, ProcessTimeoutError)


def test_dependency_exit_code_without_error_lines(tmp_path: Path, spring_project: Path) -> None:
    config = analyze_project(discover_project(str(spring_project)))
    env = BuildEnvironment(
        environment_variables={},
        working_directory=str(spring_project),
        build_tool_home="/opt/maven",
        temp_directory=str(tmp_path),
    )
    runner = _ScriptedRunner(ProcessResult(exit_code=1, output="[INFO] nothing useful\n"))

    with pytest.raises(DependencyResolutionError, match="failed: exit code 1"):
        DependencyResolver(runner).resolve(config, env)


@posix_only
@pytest.mark.timeout(60)
def test_compile_runs_every_command(
    spring_project: Path, settings: BuilderSettings, ambient_env: dict[str, str], mvn_calls
) -> None:
    config, env = _prepare(spring_project, settings, ambient_env)

    result = Compiler(ProcessRunner(settings.timeout)).compile(config, env)

    assert result.success
    assert result.compiled_files == ("3 source files compiled",)
    assert result.warnings == ("File encoding has not been set, using platform encoding UTF-8",)
    assert result.errors == ()
    assert "=== Command: mvn clean compile ===\n" in result.output
    assert "=== Command: mvn package spring-boot:repackage ===\n" in result.output
    assert mvn_calls() == [
        "clean compile --batch-mode --no-transfer-progress",
        "package spring-boot:repackage --batch-mode --no-transfer-progress",
    ]
    assert (spring_project / "target" / "demo-1.2.3.jar").is_file()


@posix_only
@pytest.mark.timeout(60)
def test_compile_stops_at_first_failing_command(
    spring_project: Path, settings: BuilderSettings, ambient_env: dict[str, str], mvn_calls
) -> None:
    ambient_env["FAKE_MVN_FAIL"] = "package"
    config, env = _prepare(spring_project, settings, ambient_env)
    config = config.model_copy(
        update={"build_commands": ("mvn clean compile", "mvn package", "mvn install")}
    )

    with pytest.raises(CompilationError) as excinfo:
        Compiler(ProcessRunner(settings.timeout)).compile(config, env)

    assert excinfo.value.errors == (
        "/app/src/main/java/com/example/demo/Broken.java:[3,8] cannot find symbol",
    )
    assert str(excinfo.value).startswith("Maven command failed: mvn package. Errors: ")
    # The third command never ran
    assert len(mvn_calls()) == 2


def test_compile_failure_without_error_lines_records_exit_code(
    tmp_path: Path, spring_project: Path
) -> None:
    config = analyze_project(discover_project(str(spring_project)))
    env = BuildEnvironment(
        environment_variables={},
        working_directory=str(spring_project),
        build_tool_home="/opt/maven",
        temp_directory=str(tmp_path),
    )
    runner = _ScriptedRunner(
        ProcessResult(exit_code=0, output="[INFO] Compiling 4 source files to target\n"),
        ProcessResult(exit_code=2, output="[INFO] nothing to see\n"),
    )

    with pytest.raises(CompilationError) as excinfo:
        Compiler(runner).compile(config, env)
    assert excinfo.value.errors == ("Command exited with code 2",)
    assert len(runner.commands) == 2


def test_compile_process_errors_are_wrapped(tmp_path: Path, spring_project: Path) -> None:
    config = analyze_project(discover_project(str(spring_project)))
    env = BuildEnvironment(
        environment_variables={},
        working_directory=str(spring_project),
        temp_directory=str(tmp_path),
    )

    class _TimingOut:
        def run(self, command, cwd, env=None):
            raise ProcessTimeoutError(100)

    with pytest.raises(CompilationError, match="Failed to compile MAVEN project") as excinfo:
        Compiler(_TimingOut()).compile(config, env)
    assert isinstance(excinfo.value.__cause__, ProcessTimeoutError)


def test_error_lines_fail_compilation_despite_clean_exit(
    tmp_path: Path, spring_project: Path
) -> None:
    config = analyze_project(discover_project(str(spring_project)))
    env = BuildEnvironment(
        environment_variables={},
        working_directory=str(spring_project),
        temp_directory=str(tmp_path),
    )
    runner = _ScriptedRunner(
        ProcessResult(exit_code=0, output="[INFO] Compiling 4 source files to target\n"),
        ProcessResult(exit_code=0, output="[ERROR] Failed to repackage: no main manifest\n"),
    )

    result = Compiler(runner).compile(config, env)

    assert result.success is False
    assert result.errors == ("Failed to repackage: no main manifest",)
    assert result.compiled_files == ("4 source files compiled",)
    assert len(runner.commands) == 2


def test_compile_timeout_is_named_in_message(tmp_path: Path, spring_project: Path) -> None:
    config = analyze_project(discover_project(str(spring_project)))
    env = BuildEnvironment(
        environment_variables={},
        working_directory=str(spring_project),
        temp_directory=str(tmp_path),
    )

    class _TimingOut:
        def run(self, command, cwd, env=None):
            raise ProcessTimeoutError(250)

    with pytest.raises(CompilationError) as excinfo:
        Compiler(_TimingOut()).compile(config, env)
    assert str(excinfo.value) == (
        "Failed to compile MAVEN project: Process timed out after 250ms"
    )
    assert excinfo.value.error_type.value == "COMPILATION_FAILED"
