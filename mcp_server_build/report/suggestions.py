"""Recovery hints attached to failed build results."""

from __future__ import annotations

from collections.abc import Iterable

from mcp_server_build.errors import ErrorType
from mcp_server_build.types import BuildTool

# Curated hints per failure kind, used when a stage raised
ERROR_TYPE_SUGGESTIONS: dict[ErrorType, tuple[str, ...]] = {
    ErrorType.PROJECT_DISCOVERY_FAILED: (
        "Ensure the project path exists and is accessible",
        "Check file system permissions for the project directory",
        "Verify the project contains a valid build configuration file "
        "(pom.xml, build.gradle, package.json)",
    ),
    ErrorType.BUILD_TOOL_DETECTION_FAILED: (
        "Ensure a supported build tool configuration file is present",
        "Supported files: pom.xml (Maven), build.gradle/.kts (Gradle), package.json (NPM)",
        "Check that the configuration file is not corrupted or empty",
    ),
    ErrorType.BUILD_ENVIRONMENT_FAILED: (
        "Install required build tools (Maven, Gradle, Node.js/NPM)",
        "Ensure build tools are available in PATH or set appropriate _HOME environment variables",
        "Verify Java installation and JAVA_HOME environment variable",
    ),
    ErrorType.DEPENDENCY_RESOLUTION_FAILED: (
        "Check internet connectivity and repository accessibility",
        "Verify dependency declarations in build configuration",
        "Clear build tool cache and retry",
    ),
    ErrorType.COMPILATION_FAILED: (
        "Review source code for syntax errors",
        "Ensure all dependencies are properly resolved",
        "Check Java version compatibility",
    ),
    ErrorType.ARTIFACT_DISCOVERY_FAILED: (
        "Check if compilation completed successfully",
        "Verify build output directories exist and are accessible",
        "Review build configuration for custom output paths",
    ),
    ErrorType.UNEXPECTED_ERROR: (
        "Review detailed error message for specific issues",
        "Check system resources (disk space, memory)",
        "Retry the build operation",
    ),
}

_GRADLE_DEPENDENCY_HINTS = (
    "Check internet connectivity and Gradle repository access",
    "Verify build.gradle dependency declarations are correct",
    "Try running 'gradle --refresh-dependencies' to force dependency refresh",
    "Check Gradle daemon status with 'gradle --status'",
)

DEPENDENCY_SUGGESTIONS: dict[BuildTool, tuple[str, ...]] = {
    BuildTool.MAVEN: (
        "Check internet connectivity and Maven repository access",
        "Verify pom.xml dependency declarations are correct",
        "Try running 'mvn dependency:purge-local-repository' to clear corrupted cache",
        "Check if corporate proxy/firewall is blocking Maven Central access",
    ),
    BuildTool.GRADLE: _GRADLE_DEPENDENCY_HINTS,
    BuildTool.GRADLE_KOTLIN: _GRADLE_DEPENDENCY_HINTS,
    BuildTool.NPM: (
        "Check internet connectivity and NPM registry access",
        "Verify package.json dependency versions are correct",
        "Try clearing NPM cache with 'npm cache clean --force'",
        "Consider using 'npm ci' instead of 'npm install' for clean installs",
    ),
}


def for_error_type(error_type: ErrorType) -> list[str]:
    return list(ERROR_TYPE_SUGGESTIONS[error_type])


def for_dependency_failure(tool: BuildTool) -> list[str]:
    return list(DEPENDENCY_SUGGESTIONS.get(tool, ()))


def for_compilation_failure(errors: Iterable[str], java_version: str) -> list[str]:
    """Hints derived from recognizable compiler error signatures."""
    errors = list(errors)
    hints: list[str] = []

    if any(
        "unsupported" in e and ("class file version" in e or "source version" in e)
        for e in errors
    ):
        hints.append(
            f"Java version mismatch detected. Ensure JAVA_HOME points to Java {java_version}"
        )
        hints.append("Check project's Java source and target compatibility settings")

    if any("OutOfMemoryError" in e or "Java heap space" in e for e in errors):
        hints.append("Increase JVM heap memory with -Xmx flag in build tool options")
        hints.append("Consider enabling parallel compilation to reduce memory pressure")

    if any("cannot find symbol" in e or "package does not exist" in e for e in errors):
        hints.append("Missing dependencies detected. Run dependency resolution again")
        hints.append("Check if all required dependencies are declared in build file")

    hints.append("Review compilation errors in the build output for specific issues")
    hints.append("Ensure all source files have correct syntax and imports")
    return hints


def general(tool: BuildTool) -> list[str]:
    return [
        "Check build tool installation and PATH configuration",
        f"Verify project structure follows {tool.value} conventions",
        "Ensure all required dependencies and plugins are available",
        "Review build configuration file for syntax errors",
    ]
