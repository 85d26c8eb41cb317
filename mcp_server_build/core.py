"""Build orchestration: discover → analyze → environment → dependencies → compile → artifacts → result.

`build_project` never raises; every failure comes back as a FAILED `BuildResult`
whose `error_type` names the stage that failed.
"""

from __future__ import annotations

import os
import shutil
import threading
from collections.abc import Mapping
from datetime import UTC, datetime

from mcp_server_build.buildpacks.base import analyze_project
from mcp_server_build.config import BuilderSettings, get_settings
from mcp_server_build.detect.base import discover_project
from mcp_server_build.errors import BuildStageError, ErrorType
from mcp_server_build.installer.environment import EnvironmentPreparer
from mcp_server_build.logging import get_logger
from mcp_server_build.package.artifacts import ArtifactDiscoverer
from mcp_server_build.pipeline.compiler import Compiler
from mcp_server_build.pipeline.dependencies import DependencyResolver
from mcp_server_build.process.runner import ProcessRunner
from mcp_server_build.report.result import ResultSynthesizer
from mcp_server_build.types import BuildEnvironment, BuildResult

logger = get_logger(__name__)


class ProjectBuilder:
    def __init__(
        self,
        settings: BuilderSettings | None = None,
        runner: ProcessRunner | None = None,
        ambient_env: Mapping[str, str] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.runner = runner or ProcessRunner(
            self.settings.timeout, drain_grace=self.settings.drain_grace_seconds
        )
        self.ambient_env = os.environ if ambient_env is None else ambient_env
        self.synthesizer = ResultSynthesizer()
        self._slots = threading.BoundedSemaphore(self.settings.max_connections)

    def build_project(self, project_path: str | None) -> BuildResult:
        logger.info("Starting build for project: %s", project_path, extra={"project": project_path})
        with self._slots:
            return self._build(project_path)

    def _build(self, project_path: str | None) -> BuildResult:
        start_time = datetime.now(UTC)
        env: BuildEnvironment | None = None
        try:
            project = discover_project(project_path)
            config = analyze_project(project)
            env = EnvironmentPreparer(self.settings, self.ambient_env).prepare(config)
            dependencies = DependencyResolver(self.runner).resolve(config, env)
            compilation = Compiler(self.runner).compile(config, env)
            artifacts = ArtifactDiscoverer().discover(config, compilation)
            return self.synthesizer.compile_build_result(
                project, config, env, dependencies, compilation, artifacts, start_time
            )
        except BuildStageError as exc:
            logger.error(
                "Build failed: %s", exc, extra={"stage": exc.error_type.value, "project": project_path}
            )
            return self.synthesizer.create_failure_result(exc.error_type, exc, project_path)
        except Exception as exc:
            logger.exception("Unexpected error during build", extra={"project": project_path})
            return self.synthesizer.create_failure_result(
                ErrorType.UNEXPECTED_ERROR, exc, project_path
            )
        finally:
            if env is not None and not self.settings.preserve_artifacts:
                shutil.rmtree(env.temp_directory, ignore_errors=True)


_default_builder: ProjectBuilder | None = None
_default_lock = threading.Lock()


def build_project(project_path: str | None) -> BuildResult:
    """Build the project at *project_path* with the process-wide default builder."""
    global _default_builder
    with _default_lock:
        if _default_builder is None:
            _default_builder = ProjectBuilder()
    return _default_builder.build_project(project_path)
