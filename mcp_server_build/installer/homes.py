"""Toolchain and JDK home resolution.

A home directory is valid when its `bin/` holds the expected executable in
POSIX (`mvn`, `java`) or Windows (`mvn.cmd`, `java.exe`) naming. Candidates are
tried in order: explicit environment variables, the executable found on the
build's PATH (home = the resolved executable's grandparent), then fixed
conventional install paths.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path

from mcp_server_build.errors import BuildEnvironmentError
from mcp_server_build.logging import get_logger
from mcp_server_build.process.runner import find_executable

logger = get_logger(__name__)

JAVA_HOME_CANDIDATES: tuple[str, ...] = (
    "/usr/lib/jvm/java-21-openjdk",
    "/usr/lib/jvm/java-17-openjdk",
    "/usr/lib/jvm/java-11-openjdk",
    "/usr/lib/jvm/default-java",
    "/Library/Java/JavaVirtualMachines/openjdk-21.jdk/Contents/Home",
    "C:\\Program Files\\Java\\jdk-21",
    "C:\\Program Files\\OpenJDK\\openjdk-21",
)

_WINDOWS_SUFFIXES = (".cmd", ".bat", ".exe")


def has_binary(home: str | Path | None, name: str) -> bool:
    if home is None or not str(home).strip():
        return False
    bindir = Path(str(home).strip()) / "bin"
    if (bindir / name).is_file():
        return True
    return any((bindir / f"{name}{suffix}").is_file() for suffix in _WINDOWS_SUFFIXES)


def home_from_path(executable: str, env: Mapping[str, str]) -> Path | None:
    """Derive an install home from *executable* found on the env's PATH."""
    found = find_executable(executable, env)
    if found is None:
        return None
    # <home>/bin/<exe>; symlinks such as /usr/bin/mvn point into the real home
    return Path(found).resolve().parent.parent


def find_tool_home(
    executable: str,
    env: Mapping[str, str],
    env_vars: Iterable[str],
    candidates: Iterable[str],
) -> str | None:
    for var in env_vars:
        value = env.get(var)
        if value and has_binary(value, executable):
            logger.debug("Using %s from %s", executable, var)
            return value.strip()

    from_path = home_from_path(executable, env)
    if from_path is not None and has_binary(from_path, executable):
        logger.debug("Derived %s home from PATH: %s", executable, from_path)
        return str(from_path)

    for path in candidates:
        if has_binary(path, executable):
            logger.debug("Auto-detected %s home: %s", executable, path)
            return path
    return None


def find_java_home(env: Mapping[str, str]) -> str:
    """Return a validated JDK home, raising BuildEnvironmentError when none exists.

    An explicit JAVA_HOME is authoritative: if it is set but has no java binary
    the lookup fails instead of silently picking another JDK.
    """
    explicit = (env.get("JAVA_HOME") or "").strip()
    if explicit:
        if not has_binary(explicit, "java"):
            raise BuildEnvironmentError(
                f"Java binary not found in JAVA_HOME: {explicit}/bin/java"
            )
        return explicit

    home = find_tool_home("java", env, (), JAVA_HOME_CANDIDATES)
    if home is None:
        raise BuildEnvironmentError(
            "JAVA_HOME not found. Please ensure Java is installed and JAVA_HOME is set."
        )
    return home
