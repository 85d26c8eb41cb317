"""Build environment preparation.

Produces a `BuildEnvironment` for one build:
- validated working directory (the project root)
- a per-build temp directory under the configured temp root
- the child process environment: ambient variables plus builder and
  toolchain variables
- the toolchain home and, for JVM toolchains, the JDK home

Nothing here executes a process; PATH lookups go through `find_executable`.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from mcp_server_build.buildpacks.base import get_buildpack
from mcp_server_build.config import BuilderSettings
from mcp_server_build.errors import BuildEnvironmentError
from mcp_server_build.installer.homes import find_java_home
from mcp_server_build.logging import get_logger
from mcp_server_build.types import BuilderConfiguration, BuildEnvironment, BuildTool

logger = get_logger(__name__)

BUILD_DIR_PREFIX = "build-"


@dataclass(frozen=True)
class _Resolved:
    variables: dict[str, str]
    java_home: str | None
    build_tool_home: str


def _check_writable_dir(path: Path, label: str) -> None:
    if not path.exists():
        raise BuildEnvironmentError(f"{label} does not exist: {path}")
    if not path.is_dir():
        raise BuildEnvironmentError(f"{label} is not a directory: {path}")
    if not os.access(path, os.W_OK):
        raise BuildEnvironmentError(f"{label} is not writable: {path}")


def prepare_working_directory(project_path: str) -> str:
    workdir = Path(os.path.abspath(project_path))
    _check_writable_dir(workdir, "Working directory")
    return str(workdir)


def prepare_temp_directory(temp_root: str) -> str:
    """Create the temp root if needed and a fresh `build-*` directory inside it."""
    root = Path(temp_root)
    try:
        root.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise BuildEnvironmentError(f"Cannot create temp directory: {root}") from exc
    _check_writable_dir(root, "Temp directory")
    build_dir = tempfile.mkdtemp(prefix=BUILD_DIR_PREFIX, dir=root)
    logger.debug("Created build temp directory: %s", build_dir)
    return build_dir


class EnvironmentPreparer:
    def __init__(
        self, settings: BuilderSettings, ambient_env: Mapping[str, str] | None = None
    ) -> None:
        self.settings = settings
        self.ambient_env = os.environ if ambient_env is None else ambient_env

    def prepare(self, config: BuilderConfiguration) -> BuildEnvironment:
        logger.info(
            "Preparing build environment for %s project",
            config.build_tool.value,
            extra={"stage": "environment", "tool": config.build_tool.value},
        )
        temp_directory: str | None = None
        try:
            working_directory = prepare_working_directory(config.project_path)
            temp_directory = prepare_temp_directory(self.settings.resolved_temp_directory())
            env = self._build_environment(config, temp_directory)
        except BuildEnvironmentError:
            self._discard(temp_directory)
            raise
        except Exception as exc:
            self._discard(temp_directory)
            raise BuildEnvironmentError("Failed to prepare build environment") from exc

        logger.info(
            "Build environment prepared - Java: %s, Build tool: %s",
            env.java_home,
            env.build_tool_home,
            extra={"stage": "environment", "tool": config.build_tool.value},
        )
        return BuildEnvironment(
            environment_variables=env.variables,
            working_directory=working_directory,
            java_home=env.java_home,
            build_tool_home=env.build_tool_home,
            temp_directory=temp_directory,
        )

    def _build_environment(self, config: BuilderConfiguration, temp_directory: str) -> _Resolved:
        buildpack = get_buildpack(config.build_tool)

        variables = dict(self.ambient_env)
        variables["MCP_BUILD_TOOL"] = config.build_tool.value
        variables["MCP_BUILD_TIMEOUT"] = str(self.settings.timeout)
        variables["MCP_BUILD_TEMP_DIR"] = temp_directory
        variables.update(buildpack.environment_variables(config, temp_directory))

        build_tool_home = buildpack.locate_tool_home(self.ambient_env)
        if config.build_tool is BuildTool.MAVEN:
            variables["MAVEN_HOME"] = build_tool_home

        java_home = None
        if buildpack.requires_java():
            java_home = find_java_home(self.ambient_env)
            variables["JAVA_HOME"] = java_home
            # The JDK's bin comes first so the toolchain launcher picks it up
            variables["PATH"] = os.pathsep.join(
                p for p in (str(Path(java_home) / "bin"), variables.get("PATH", "")) if p
            )

        return _Resolved(variables, java_home, build_tool_home)

    @staticmethod
    def _discard(temp_directory: str | None) -> None:
        if temp_directory:
            shutil.rmtree(temp_directory, ignore_errors=True)

