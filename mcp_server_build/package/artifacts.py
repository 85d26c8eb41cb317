"""Artifact discovery: classify, checksum and rank the archives a build produced.

Only `.jar`, `.war` and `.ear` files up to two levels below the build output
directory are considered. Each one is hashed in full, classified by file name
and manifest, then stably sorted by `ArtifactType.priority`; the first
runnable archive becomes the main artifact.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

from mcp_server_build.buildpacks.base import get_buildpack
from mcp_server_build.errors import ArtifactDiscoveryError
from mcp_server_build.logging import get_logger
from mcp_server_build.package.manifest import read_manifest
from mcp_server_build.signing.checks import sha256
from mcp_server_build.types import (
    Artifact,
    ArtifactInfo,
    ArtifactType,
    BuilderConfiguration,
    CompilationResult,
)

logger = get_logger(__name__)

ARCHIVE_SUFFIXES = (".jar", ".war", ".ear")
MAX_DEPTH = 2

SPRING_BOOT_LAUNCHERS = frozenset(
    {
        "org.springframework.boot.loader.JarLauncher",
        "org.springframework.boot.loader.WarLauncher",
        "org.springframework.boot.loader.PropertiesLauncher",
        "org.springframework.boot.loader.launch.JarLauncher",
        "org.springframework.boot.loader.launch.WarLauncher",
        "org.springframework.boot.loader.launch.PropertiesLauncher",
    }
)

_EXECUTABLE_NAME_RE = re.compile(r"-(exec|fat|uber|all|executable)\.jar$")


def find_archives(output_dir: Path) -> list[Path]:
    found: list[Path] = []
    base_depth = len(output_dir.parts)
    for dirpath, dirnames, filenames in os.walk(output_dir):
        depth = len(Path(dirpath).parts) - base_depth
        if depth + 1 >= MAX_DEPTH:
            dirnames[:] = []
        else:
            dirnames.sort()
        for name in sorted(filenames):
            if name.endswith(ARCHIVE_SUFFIXES):
                found.append(Path(dirpath) / name)
    return found


def classify(path: Path) -> ArtifactType:
    name = path.name
    if name.endswith("-sources.jar"):
        return ArtifactType.SOURCE_JAR
    if name.endswith("-javadoc.jar"):
        return ArtifactType.JAVADOC_JAR
    if _EXECUTABLE_NAME_RE.search(name):
        return ArtifactType.EXECUTABLE_JAR

    manifest = read_manifest(path)
    main_class = manifest.get("Main-Class", "").strip()
    if main_class in SPRING_BOOT_LAUNCHERS or manifest.get("Start-Class", "").strip():
        return ArtifactType.SPRING_BOOT_JAR
    if main_class:
        return ArtifactType.EXECUTABLE_JAR

    if name.endswith(".war"):
        return ArtifactType.WEB_ARCHIVE
    if name.endswith(".ear"):
        return ArtifactType.ENTERPRISE_ARCHIVE
    if name.endswith(".jar"):
        return ArtifactType.LIBRARY_JAR
    return ArtifactType.OTHER


def select_main_artifact(artifacts: list[Artifact]) -> str | None:
    for artifact in artifacts:
        if artifact.type.is_executable:
            return artifact.path
    return artifacts[0].path if artifacts else None


class ArtifactDiscoverer:
    def discover(
        self, config: BuilderConfiguration, compilation: CompilationResult | None = None
    ) -> ArtifactInfo:
        tool = config.build_tool.value
        logger.info("Discovering artifacts for %s project", tool, extra={"stage": "artifacts"})
        try:
            return self._discover(config)
        except ArtifactDiscoveryError:
            raise
        except Exception as exc:
            raise ArtifactDiscoveryError(f"Failed to discover artifacts for {tool}") from exc

    def _discover(self, config: BuilderConfiguration) -> ArtifactInfo:
        output_dir = get_buildpack(config.build_tool).output_directory(config)
        if not output_dir.is_dir():
            logger.warning("Build output directory not found: %s", output_dir)
            return ArtifactInfo.empty()

        artifacts = []
        for path in find_archives(output_dir):
            artifact = Artifact(
                path=str(path),
                type=classify(path),
                size=path.stat().st_size,
                checksum=sha256(path),
            )
            logger.debug("Found artifact: %s (%s)", artifact.file_name, artifact.type.value)
            artifacts.append(artifact)

        artifacts.sort(key=lambda a: a.type.priority)
        info = ArtifactInfo(
            artifacts=tuple(artifacts),
            main_artifact_path=select_main_artifact(artifacts),
            total_size=sum(a.size for a in artifacts),
        )
        logger.info(
            "Discovered %d artifacts - Main: %s",
            info.artifact_count,
            info.main_artifact_path,
            extra={"stage": "artifacts"},
        )
        return info
