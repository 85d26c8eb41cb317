"""Buildpack contract and dispatcher.

A buildpack holds everything toolchain-specific: descriptor analysis,
environment variables, toolchain-home lookup, command lines, and output
parsing. The pipeline stages are generic and look the buildpack up by
`BuildTool`, so the orchestrator never branches on the toolchain.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from mcp_server_build.errors import BuildToolDetectionError
from mcp_server_build.logging import get_logger
from mcp_server_build.types import BuilderConfiguration, BuildEnvironment, BuildTool, ProjectInfo

logger = get_logger(__name__)


@dataclass
class DependencyListing:
    resolved: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


@dataclass
class BuildOutput:
    compiled: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class Buildpack(Protocol):
    tool: BuildTool

    def analyze(self, project: ProjectInfo) -> BuilderConfiguration: ...

    def environment_variables(
        self, config: BuilderConfiguration, temp_directory: str
    ) -> dict[str, str]: ...

    def locate_tool_home(self, env: Mapping[str, str]) -> str: ...

    def requires_java(self) -> bool: ...

    def dependency_command(self, env: BuildEnvironment) -> list[str]: ...

    def dependency_listing_file(self, env: BuildEnvironment) -> Path | None: ...

    def parse_dependencies(self, output: str) -> DependencyListing: ...

    def build_command(self, command: str, env: BuildEnvironment) -> list[str]: ...

    def parse_build_output(self, output: str) -> BuildOutput: ...

    def output_directory(self, config: BuilderConfiguration) -> Path: ...


def get_buildpack(tool: BuildTool) -> Buildpack:
    from .maven import MavenBuildpack
    from .unsupported import UnsupportedBuildpack

    if tool is BuildTool.MAVEN:
        return MavenBuildpack()
    return UnsupportedBuildpack(tool)


def analyze_project(project: ProjectInfo) -> BuilderConfiguration:
    """Read the build descriptor and derive the build configuration."""
    logger.debug(
        "Analyzing build tool configuration for %s project: %s",
        project.build_tool.value,
        project.project_name,
    )
    try:
        return get_buildpack(project.build_tool).analyze(project)
    except BuildToolDetectionError:
        raise
    except Exception as exc:
        raise BuildToolDetectionError(
            f"Failed to analyze build configuration for {project.build_tool.value} project"
        ) from exc
