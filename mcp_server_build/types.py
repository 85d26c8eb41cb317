"""Pipeline records (immutable Pydantic models).

Each stage produces exactly one of these and never mutates another stage's
output; sequences are stored as tuples so a record cannot change after
construction. Mappings are exposed read-only for the same reason.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from pathlib import Path
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from mcp_server_build.errors import ErrorType


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


def _read_only(value: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType(dict(value))


def _plain(value: Mapping[str, str]) -> dict[str, str]:
    return dict(value)


class BuildTool(str, Enum):
    MAVEN = "MAVEN"
    GRADLE = "GRADLE"
    GRADLE_KOTLIN = "GRADLE_KOTLIN"
    NPM = "NPM"

    @property
    def build_file(self) -> str:
        return _BUILD_FILES[self]

    @property
    def command(self) -> str:
        return _COMMANDS[self]

    @classmethod
    def detection_order(cls) -> tuple[BuildTool, ...]:
        # Kotlin DSL is more specific than the Groovy DSL
        return (cls.MAVEN, cls.GRADLE_KOTLIN, cls.GRADLE, cls.NPM)


_BUILD_FILES = {
    BuildTool.MAVEN: "pom.xml",
    BuildTool.GRADLE: "build.gradle",
    BuildTool.GRADLE_KOTLIN: "build.gradle.kts",
    BuildTool.NPM: "package.json",
}
_COMMANDS = {
    BuildTool.MAVEN: "mvn",
    BuildTool.GRADLE: "gradle",
    BuildTool.GRADLE_KOTLIN: "gradle",
    BuildTool.NPM: "npm",
}


class BuildStatus(str, Enum):
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ProjectInfo(_Record):
    project_path: str
    project_name: str
    project_version: str = "unknown"
    build_tool: BuildTool
    build_file_path: str
    additional_files: tuple[str, ...] = ()


class DockerHints(_Record):
    """Advisory deployment metadata; nothing in the pipeline acts on it."""

    base_image: str
    exposed_port: str | None = None
    health_check_path: str | None = None
    workdir: str = "/app"
    start_command: str


class BuilderConfiguration(_Record):
    build_tool: BuildTool
    project_path: str
    java_version: str
    main_class: str | None = None
    port: str | None = None
    build_commands: tuple[str, ...]
    properties: Mapping[str, str] = Field(default_factory=dict, validate_default=True)
    docker_hints: DockerHints

    _freeze_properties = field_validator("properties")(_read_only)
    _dump_properties = field_serializer("properties")(_plain)

    @model_validator(mode="after")
    def _require_commands(self) -> BuilderConfiguration:
        if not self.build_commands:
            raise ValueError("build_commands must not be empty")
        return self


class BuildEnvironment(_Record):
    environment_variables: Mapping[str, str]
    working_directory: str
    java_home: str | None = None
    build_tool_home: str | None = None
    temp_directory: str

    _freeze_variables = field_validator("environment_variables")(_read_only)
    _dump_variables = field_serializer("environment_variables")(_plain)


class DependencyResult(_Record):
    success: bool
    resolved_dependencies: tuple[str, ...] = ()
    failed_dependencies: tuple[str, ...] = ()
    output: str = ""
    duration_ms: int = 0


class CompilationResult(_Record):
    success: bool
    compiled_files: tuple[str, ...] = ()  # summaries like "12 source files compiled"
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    output: str = ""
    duration_ms: int = 0


class ArtifactType(str, Enum):
    SPRING_BOOT_JAR = "spring-boot-jar"
    EXECUTABLE_JAR = "executable-jar"
    WEB_ARCHIVE = "web-archive"
    ENTERPRISE_ARCHIVE = "enterprise-archive"
    LIBRARY_JAR = "library-jar"
    SOURCE_JAR = "source-jar"
    JAVADOC_JAR = "javadoc-jar"
    OTHER = "other"

    @property
    def priority(self) -> int:
        """Rank used for sorting; 1 is the most desirable main artifact."""
        return list(ArtifactType).index(self) + 1

    @property
    def is_executable(self) -> bool:
        return self in (ArtifactType.SPRING_BOOT_JAR, ArtifactType.EXECUTABLE_JAR)


def format_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


class Artifact(_Record):
    path: str
    type: ArtifactType
    size: int = Field(ge=0)
    checksum: str

    @property
    def file_name(self) -> str:
        return Path(self.path).name

    @property
    def formatted_size(self) -> str:
        return format_size(self.size)


class ArtifactInfo(_Record):
    artifacts: tuple[Artifact, ...] = ()
    main_artifact_path: str | None = None
    total_size: int = 0

    @model_validator(mode="after")
    def _check_total(self) -> ArtifactInfo:
        expected = sum(a.size for a in self.artifacts)
        if self.total_size != expected:
            raise ValueError(f"total_size {self.total_size} != sum of artifact sizes {expected}")
        return self

    @classmethod
    def empty(cls) -> ArtifactInfo:
        return cls(artifacts=(), main_artifact_path=None, total_size=0)

    @property
    def artifact_count(self) -> int:
        return len(self.artifacts)

    @property
    def has_main_artifact(self) -> bool:
        return bool(self.main_artifact_path and self.main_artifact_path.strip())

    @property
    def formatted_size(self) -> str:
        return format_size(self.total_size)


class BuildResult(_Record):
    """Terminal record of one `build_project` invocation.

    Attributes
    ----------
    success: bool
        Mirrors ``status == COMPLETED``.
    error_type: ErrorType | None
        Set on every failed result, absent on success.
    duration_ms: int
        Stage durations plus a fixed overhead; 0 for hard failures.
    suggestions: tuple[str, ...]
        Recovery hints, populated on failure.
    """

    success: bool
    status: BuildStatus
    error_type: ErrorType | None = None
    message: str
    project_path: str
    build_configuration: BuilderConfiguration | None = None
    artifact_info: ArtifactInfo | None = None
    start_time: datetime
    end_time: datetime
    duration_ms: int = 0
    suggestions: tuple[str, ...] = ()

    @model_validator(mode="after")
    def _check_consistency(self) -> BuildResult:
        if self.success != (self.status is BuildStatus.COMPLETED):
            raise ValueError("success must be true exactly when status is COMPLETED")
        if self.success and self.error_type is not None:
            raise ValueError("successful results carry no error_type")
        if not self.success:
            if self.error_type is None:
                raise ValueError("failed results require an error_type")
            if not self.message or not self.message.strip():
                raise ValueError("failed results require a message")
        return self

    @property
    def has_artifacts(self) -> bool:
        return self.artifact_info is not None and self.artifact_info.artifact_count > 0

    @property
    def formatted_duration(self) -> str:
        if self.duration_ms < 1000:
            return f"{self.duration_ms}ms"
        if self.duration_ms < 60_000:
            return f"{self.duration_ms / 1000:.1f}s"
        minutes, rest = divmod(self.duration_ms, 60_000)
        return f"{minutes}m {rest // 1000}s"

    @property
    def brief_summary(self) -> str:
        summary = "BUILD SUCCESS" if self.success else "BUILD FAILED"
        if self.build_configuration is not None:
            summary += f" - {self.build_configuration.build_tool.value}"
        summary += f" ({self.formatted_duration})"
        if self.has_artifacts:
            summary += f" - {self.artifact_info.artifact_count} artifacts"
        return summary

    @property
    def docker_hints(self) -> DockerHints | None:
        if self.build_configuration is None:
            return None
        return self.build_configuration.docker_hints
