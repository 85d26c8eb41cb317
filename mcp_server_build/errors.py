"""Failure taxonomy for the build pipeline.

Every stage raises exactly one `BuildStageError` subclass. The subclass carries
its `ErrorType` so the orchestrator can turn any stage failure into a result
without knowing which stage produced it.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum


class ErrorType(str, Enum):
    PROJECT_DISCOVERY_FAILED = "PROJECT_DISCOVERY_FAILED"
    BUILD_TOOL_DETECTION_FAILED = "BUILD_TOOL_DETECTION_FAILED"
    BUILD_ENVIRONMENT_FAILED = "BUILD_ENVIRONMENT_FAILED"
    DEPENDENCY_RESOLUTION_FAILED = "DEPENDENCY_RESOLUTION_FAILED"
    COMPILATION_FAILED = "COMPILATION_FAILED"
    ARTIFACT_DISCOVERY_FAILED = "ARTIFACT_DISCOVERY_FAILED"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


class BuildStageError(Exception):
    """Base class for the distinguished failure of one pipeline stage."""

    error_type: ErrorType = ErrorType.UNEXPECTED_ERROR


class ProjectDiscoveryError(BuildStageError):
    error_type = ErrorType.PROJECT_DISCOVERY_FAILED


class BuildToolDetectionError(BuildStageError):
    error_type = ErrorType.BUILD_TOOL_DETECTION_FAILED


class BuildEnvironmentError(BuildStageError):
    error_type = ErrorType.BUILD_ENVIRONMENT_FAILED


class DependencyResolutionError(BuildStageError):
    error_type = ErrorType.DEPENDENCY_RESOLUTION_FAILED


class CompilationError(BuildStageError):
    error_type = ErrorType.COMPILATION_FAILED

    def __init__(self, message: str, errors: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.errors: tuple[str, ...] = tuple(errors)


class ArtifactDiscoveryError(BuildStageError):
    error_type = ErrorType.ARTIFACT_DISCOVERY_FAILED


# --- Process execution ------------------------------------------------------


class ProcessExecutionError(Exception):
    pass


class ProcessTimeoutError(ProcessExecutionError):
    def __init__(self, timeout_ms: int, output: str = "") -> None:
        super().__init__(f"Process timed out after {timeout_ms}ms")
        self.timeout_ms = timeout_ms
        self.output = output


class ProcessOutputError(ProcessExecutionError):
    """The output reader did not finish within its grace period."""
