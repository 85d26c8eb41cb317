"""Placeholder buildpack for toolchains that are detected but not built yet.

Detection and discovery work for Gradle and NPM projects; every build hook
raises NotImplementedError, which the calling stage reports as its own
failure kind.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

from mcp_server_build.buildpacks.base import BuildOutput, DependencyListing
from mcp_server_build.types import BuilderConfiguration, BuildEnvironment, BuildTool, ProjectInfo


class UnsupportedBuildpack:
    def __init__(self, tool: BuildTool):
        self.tool = tool

    def _unsupported(self):
        return NotImplementedError(f"{self.tool.value} builds are not supported yet")

    def analyze(self, project: ProjectInfo) -> BuilderConfiguration:
        raise self._unsupported()

    def environment_variables(
        self, config: BuilderConfiguration, temp_directory: str
    ) -> dict[str, str]:
        raise self._unsupported()

    def locate_tool_home(self, env: Mapping[str, str]) -> str:
        raise self._unsupported()

    def requires_java(self) -> bool:
        return self.tool in (BuildTool.GRADLE, BuildTool.GRADLE_KOTLIN)

    def dependency_command(self, env: BuildEnvironment) -> list[str]:
        raise self._unsupported()

    def dependency_listing_file(self, env: BuildEnvironment) -> Path | None:
        return None

    def parse_dependencies(self, output: str) -> DependencyListing:
        raise self._unsupported()

    def build_command(self, command: str, env: BuildEnvironment) -> list[str]:
        raise self._unsupported()

    def parse_build_output(self, output: str) -> BuildOutput:
        raise self._unsupported()

    def output_directory(self, config: BuilderConfiguration) -> Path:
        raise self._unsupported()
