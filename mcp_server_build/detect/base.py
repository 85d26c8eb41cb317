"""Project discovery: path validation and build-tool detection.

The governing build tool is chosen by marker file in the project root only,
in order of specificity (Maven, Gradle Kotlin DSL, Gradle, NPM). Name and
version extraction is delegated to the per-tool descriptor readers and never
fails the stage: unreadable metadata degrades to the directory name and
"unknown".
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Protocol

from mcp_server_build.errors import ProjectDiscoveryError
from mcp_server_build.logging import get_logger
from mcp_server_build.types import BuildTool, ProjectInfo

logger = get_logger(__name__)

UNKNOWN_VERSION = "unknown"


class DescriptorReader(Protocol):
    additional_files: tuple[str, ...]

    def project_name(self, root: Path) -> str | None: ...

    def project_version(self, root: Path) -> str | None: ...


def _readers() -> dict[BuildTool, DescriptorReader]:
    from .gradle_build import GRADLE_READER
    from .maven_pom import MAVEN_READER
    from .node_pkg import NPM_READER

    return {
        BuildTool.MAVEN: MAVEN_READER,
        BuildTool.GRADLE: GRADLE_READER,
        BuildTool.GRADLE_KOTLIN: GRADLE_READER,
        BuildTool.NPM: NPM_READER,
    }


def validate_project_path(project_path: str | None) -> Path:
    if project_path is None or not str(project_path).strip():
        raise ProjectDiscoveryError("Project path cannot be null or empty")

    path = Path(os.path.normpath(Path(str(project_path).strip()).absolute()))

    if not path.exists():
        raise ProjectDiscoveryError(f"Project path does not exist: {path}")
    if not path.is_dir():
        raise ProjectDiscoveryError(f"Project path is not a directory: {path}")
    if not os.access(path, os.R_OK):
        raise ProjectDiscoveryError(f"Project path is not readable: {path}")
    return path


def detect_build_tool(root: Path) -> tuple[BuildTool, Path]:
    for tool in BuildTool.detection_order():
        marker = root / tool.build_file
        if marker.is_file() and os.access(marker, os.R_OK):
            logger.debug("Detected %s project with %s", tool.value, tool.build_file)
            return tool, marker
    expected = ", ".join(t.build_file for t in (BuildTool.MAVEN, BuildTool.GRADLE,
                                                 BuildTool.GRADLE_KOTLIN, BuildTool.NPM))
    raise ProjectDiscoveryError(f"No supported build tool detected. Expected one of: {expected}")


def _extract_name(reader: DescriptorReader, root: Path) -> str:
    try:
        name = reader.project_name(root)
    except (OSError, ValueError) as exc:
        logger.warning("Could not extract project name, using directory name: %s", exc)
        name = None
    return name or root.name


def _extract_version(reader: DescriptorReader, root: Path) -> str:
    try:
        version = reader.project_version(root)
    except (OSError, ValueError) as exc:
        logger.warning("Could not extract project version, using default: %s", exc)
        version = None
    return version or UNKNOWN_VERSION


def discover_additional_files(root: Path, candidates: tuple[str, ...]) -> tuple[str, ...]:
    found = []
    for rel in candidates:
        p = root / rel
        if p.exists():
            found.append(str(p))
            logger.debug("Found additional file/directory: %s", rel)
    return tuple(found)


def discover_project(project_path: str) -> ProjectInfo:
    """Validate *project_path* and describe the project it contains.

    Raises ProjectDiscoveryError when the path is unusable or carries no
    supported build descriptor.
    """
    root = validate_project_path(project_path)
    tool, build_file = detect_build_tool(root)
    reader = _readers()[tool]

    info = ProjectInfo(
        project_path=str(root),
        project_name=_extract_name(reader, root),
        project_version=_extract_version(reader, root),
        build_tool=tool,
        build_file_path=str(build_file),
        additional_files=discover_additional_files(root, reader.additional_files),
    )
    logger.info(
        "Project discovery completed for %s project: %s",
        tool.value,
        info.project_name,
        extra={"stage": "discovery", "project": info.project_name, "tool": tool.value},
    )
    return info
