"""Dependency resolution stage: run the toolchain's resolve goal and parse its listing."""

from __future__ import annotations

import time
from pathlib import Path

from mcp_server_build.buildpacks.base import get_buildpack
from mcp_server_build.errors import DependencyResolutionError, ProcessTimeoutError
from mcp_server_build.logging import get_logger
from mcp_server_build.process.runner import ProcessRunner
from mcp_server_build.types import BuilderConfiguration, BuildEnvironment, DependencyResult

logger = get_logger(__name__)


def _read_listing(path: Path | None) -> str:
    if path is None or not path.is_file():
        return ""
    return path.read_text(encoding="utf-8", errors="replace")


class DependencyResolver:
    def __init__(self, runner: ProcessRunner) -> None:
        self.runner = runner

    def resolve(self, config: BuilderConfiguration, env: BuildEnvironment) -> DependencyResult:
        tool = config.build_tool.value
        logger.info(
            "Resolving dependencies for %s project",
            tool,
            extra={"stage": "dependencies", "tool": tool},
        )
        try:
            return self._resolve(config, env)
        except DependencyResolutionError:
            raise
        except ProcessTimeoutError as exc:
            raise DependencyResolutionError(
                f"Failed to resolve dependencies for {tool}: {exc}"
            ) from exc
        except Exception as exc:
            raise DependencyResolutionError(f"Failed to resolve dependencies for {tool}") from exc

    def _resolve(self, config: BuilderConfiguration, env: BuildEnvironment) -> DependencyResult:
        buildpack = get_buildpack(config.build_tool)
        command = buildpack.dependency_command(env)

        started = time.monotonic()
        result = self.runner.run(command, env.working_directory, env.environment_variables)
        duration_ms = int((time.monotonic() - started) * 1000)

        output = result.output
        listing_file = _read_listing(buildpack.dependency_listing_file(env))
        if listing_file:
            output = f"{output}\n{listing_file}" if output else listing_file

        listing = buildpack.parse_dependencies(output)
        if result.exit_code != 0 or listing.failed:
            reasons = listing.failed or [f"exit code {result.exit_code}"]
            raise DependencyResolutionError(
                f"{config.build_tool.value.capitalize()} dependency resolution failed: "
                + ", ".join(reasons)
            )

        logger.info(
            "Dependencies resolved successfully - %d dependencies",
            len(listing.resolved),
            extra={"stage": "dependencies", "duration_ms": duration_ms},
        )
        return DependencyResult(
            success=True,
            resolved_dependencies=tuple(listing.resolved),
            failed_dependencies=(),
            output=output,
            duration_ms=duration_ms,
        )
