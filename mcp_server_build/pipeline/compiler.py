"""Compilation stage.

Runs each configured build command in order, stopping at the first failure.
Output of every command is kept under a `=== Command: ... ===` delimiter.
"""

from __future__ import annotations

import time

from mcp_server_build.buildpacks.base import get_buildpack
from mcp_server_build.errors import CompilationError, ProcessTimeoutError
from mcp_server_build.logging import get_logger
from mcp_server_build.process.runner import ProcessRunner
from mcp_server_build.types import BuilderConfiguration, BuildEnvironment, CompilationResult

logger = get_logger(__name__)


class Compiler:
    def __init__(self, runner: ProcessRunner) -> None:
        self.runner = runner

    def compile(self, config: BuilderConfiguration, env: BuildEnvironment) -> CompilationResult:
        tool = config.build_tool.value
        logger.info("Compiling %s project", tool, extra={"stage": "compile", "tool": tool})
        try:
            return self._compile(config, env)
        except CompilationError:
            raise
        except ProcessTimeoutError as exc:
            raise CompilationError(f"Failed to compile {tool} project: {exc}") from exc
        except Exception as exc:
            raise CompilationError(f"Failed to compile {tool} project") from exc

    def _compile(self, config: BuilderConfiguration, env: BuildEnvironment) -> CompilationResult:
        buildpack = get_buildpack(config.build_tool)
        started = time.monotonic()

        compiled: list[str] = []
        errors: list[str] = []
        warnings: list[str] = []
        output: list[str] = []

        for command in config.build_commands:
            logger.info("Executing command: %s", command, extra={"command": command})
            argv = buildpack.build_command(command, env)
            result = self.runner.run(argv, env.working_directory, env.environment_variables)

            output.append(f"=== Command: {command} ===\n{result.output}\n")
            parsed = buildpack.parse_build_output(result.output)
            compiled.extend(parsed.compiled)
            errors.extend(parsed.errors)
            warnings.extend(parsed.warnings)

            if result.exit_code != 0:
                if not errors:
                    errors.append(f"Command exited with code {result.exit_code}")
                logger.error(
                    "Command failed with exit code %s: %s",
                    result.exit_code,
                    command,
                    extra={"command": command, "exit_code": result.exit_code},
                )
                raise CompilationError(
                    f"{config.build_tool.value.capitalize()} command failed: {command}. "
                    f"Errors: {', '.join(errors)}",
                    errors=errors,
                )

        duration_ms = int((time.monotonic() - started) * 1000)
        success = not errors
        logger.info(
            "Compilation completed - Success: %s, Errors: %d, Warnings: %d",
            success,
            len(errors),
            len(warnings),
            extra={"stage": "compile", "duration_ms": duration_ms},
        )
        return CompilationResult(
            success=success,
            compiled_files=tuple(compiled),
            errors=tuple(errors),
            warnings=tuple(warnings),
            output="".join(output),
            duration_ms=duration_ms,
        )
