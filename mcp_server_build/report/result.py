"""Build result synthesis.

Two entry points:
- `compile_build_result` folds the stage records of a pipeline run into one
  `BuildResult` and logs a build summary.
- `create_failure_result` turns a stage exception into a FAILED result with
  curated recovery hints.
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from mcp_server_build.detect.base import UNKNOWN_VERSION
from mcp_server_build.errors import ErrorType
from mcp_server_build.logging import get_logger
from mcp_server_build.report import suggestions
from mcp_server_build.types import (
    ArtifactInfo,
    BuilderConfiguration,
    BuildEnvironment,
    BuildResult,
    BuildStatus,
    CompilationResult,
    DependencyResult,
    ProjectInfo,
)

logger = get_logger(__name__)

OVERHEAD_MS = 2000
_RULE = "=" * 80


def total_duration(
    dependencies: DependencyResult | None, compilation: CompilationResult | None
) -> int:
    dep_ms = dependencies.duration_ms if dependencies is not None else 0
    comp_ms = compilation.duration_ms if compilation is not None else 0
    # Flat allowance for discovery, environment and artifact stages
    return dep_ms + comp_ms + OVERHEAD_MS


def final_status(
    dependencies: DependencyResult | None,
    compilation: CompilationResult | None,
    artifacts: ArtifactInfo | None,
) -> BuildStatus:
    if dependencies is None or not dependencies.success:
        return BuildStatus.FAILED
    if compilation is None or not compilation.success:
        return BuildStatus.FAILED
    if artifacts is None or artifacts.artifact_count == 0:
        logger.warning("Build completed but no artifacts were found")
    return BuildStatus.COMPLETED


def success_message(
    project: ProjectInfo, config: BuilderConfiguration, artifacts: ArtifactInfo | None
) -> str:
    message = (
        f"Build completed successfully for {config.build_tool.value} "
        f"project '{project.project_name}'"
    )
    if project.project_version and project.project_version != UNKNOWN_VERSION:
        message += f" version {project.project_version}"
    message += "."

    if artifacts is not None and artifacts.artifact_count > 0:
        count = artifacts.artifact_count
        plural = "s" if count > 1 else ""
        message += f" Generated {count} artifact{plural} totaling {artifacts.formatted_size}"
        if artifacts.has_main_artifact:
            message += f". Main executable: {Path(artifacts.main_artifact_path).name}"

    if config.port is not None:
        message += f" Ready to run on port {config.port}"
    return message


def partial_result_message(
    dependencies: DependencyResult | None, compilation: CompilationResult | None
) -> str:
    message = "Build failed"
    if dependencies is not None and not dependencies.success:
        message += " during dependency resolution"
        if dependencies.failed_dependencies:
            message += f" ({len(dependencies.failed_dependencies)} failed dependencies)"
    elif compilation is not None and not compilation.success:
        message += " during compilation"
        if compilation.errors:
            message += f" ({len(compilation.errors)} compilation errors)"
    return message + "."


def failing_stage(
    dependencies: DependencyResult | None, compilation: CompilationResult | None
) -> ErrorType:
    if dependencies is None or not dependencies.success:
        return ErrorType.DEPENDENCY_RESOLUTION_FAILED
    if compilation is None or not compilation.success:
        return ErrorType.COMPILATION_FAILED
    return ErrorType.UNEXPECTED_ERROR


def recovery_tips(
    config: BuilderConfiguration,
    dependencies: DependencyResult | None,
    compilation: CompilationResult | None,
) -> list[str]:
    tips: list[str] = []
    if dependencies is not None and not dependencies.success:
        tips.extend(suggestions.for_dependency_failure(config.build_tool))
    if compilation is not None and not compilation.success:
        tips.extend(suggestions.for_compilation_failure(compilation.errors, config.java_version))
    if not tips:
        tips.extend(suggestions.general(config.build_tool))
    return tips


def _cause_message(exc: BaseException) -> str:
    message = str(exc) or type(exc).__name__
    cause = exc.__cause__
    if cause is not None:
        message += f" - Caused by: {str(cause) or type(cause).__name__}"
    return message


class ResultSynthesizer:
    def compile_build_result(
        self,
        project: ProjectInfo,
        config: BuilderConfiguration,
        env: BuildEnvironment | None,
        dependencies: DependencyResult | None,
        compilation: CompilationResult | None,
        artifacts: ArtifactInfo | None,
        start_time: datetime,
    ) -> BuildResult:
        logger.debug(
            "Compiling build result for %s project: %s",
            project.build_tool.value,
            project.project_name,
        )
        status = final_status(dependencies, compilation, artifacts)
        success = status is BuildStatus.COMPLETED

        if success:
            message = success_message(project, config, artifacts)
            error_type = None
            tips: list[str] = []
        else:
            message = partial_result_message(dependencies, compilation)
            error_type = failing_stage(dependencies, compilation)
            tips = recovery_tips(config, dependencies, compilation)

        result = BuildResult(
            success=success,
            status=status,
            error_type=error_type,
            message=message,
            project_path=project.project_path,
            build_configuration=config,
            artifact_info=artifacts,
            start_time=start_time,
            end_time=datetime.now(UTC),
            duration_ms=total_duration(dependencies, compilation),
            suggestions=tuple(tips),
        )
        self.log_summary(result, project, dependencies, compilation, artifacts)
        return result

    def create_failure_result(
        self, error_type: ErrorType, exc: BaseException, project_path: str | None
    ) -> BuildResult:
        logger.error(
            "Creating failure result - ErrorType: %s, Message: %s", error_type.value, exc
        )
        now = datetime.now(UTC)
        return BuildResult(
            success=False,
            status=BuildStatus.FAILED,
            error_type=error_type,
            message=_cause_message(exc),
            project_path=project_path or "",
            start_time=now,
            end_time=now,
            duration_ms=0,
            suggestions=tuple(suggestions.for_error_type(error_type)),
        )

    def log_summary(
        self,
        result: BuildResult,
        project: ProjectInfo,
        dependencies: DependencyResult | None,
        compilation: CompilationResult | None,
        artifacts: ArtifactInfo | None,
    ) -> None:
        title = f"Project: {project.project_name}"
        if project.project_version and project.project_version != UNKNOWN_VERSION:
            title += f" v{project.project_version}"
        lines = ["", _RULE, "BUILD SUMMARY", _RULE, title, f"Build Tool: {project.build_tool.value}"]
        if result.build_configuration is not None:
            lines.append(f"Java Version: {result.build_configuration.java_version}")

        lines += ["", "--- Build Phases ---"]
        if dependencies is not None:
            line = (
                f"Dependencies: {'SUCCESS' if dependencies.success else 'FAILED'} "
                f"({dependencies.duration_ms}ms, {len(dependencies.resolved_dependencies)} resolved"
            )
            if dependencies.failed_dependencies:
                line += f", {len(dependencies.failed_dependencies)} failed"
            lines.append(line + ")")
        if compilation is not None:
            line = (
                f"Compilation: {'SUCCESS' if compilation.success else 'FAILED'} "
                f"({compilation.duration_ms}ms, {len(compilation.compiled_files)} files"
            )
            if compilation.errors:
                line += f", {len(compilation.errors)} errors"
            if compilation.warnings:
                line += f", {len(compilation.warnings)} warnings"
            lines.append(line + ")")

        if artifacts is not None and artifacts.artifact_count > 0:
            lines += [
                "",
                "--- Artifacts ---",
                f"Total: {artifacts.artifact_count} artifacts ({artifacts.formatted_size})",
            ]
            if artifacts.has_main_artifact:
                lines.append(f"Main: {Path(artifacts.main_artifact_path).name}")

        lines += [
            "",
            "--- Result ---",
            f"Status: {'SUCCESS' if result.success else 'FAILED'}",
            f"Duration: {result.duration_ms}ms",
        ]
        if result.build_configuration is not None and result.build_configuration.port is not None:
            lines.append(f"Port: {result.build_configuration.port}")
        lines.append(_RULE)

        summary = "\n".join(lines)
        if result.success:
            logger.info(summary, extra={"stage": "result", "project": project.project_name})
            return
        logger.error(summary, extra={"stage": "result", "project": project.project_name})
        if result.suggestions:
            logger.info("Recovery suggestions:")
            for tip in result.suggestions:
                logger.info("  - %s", tip)
