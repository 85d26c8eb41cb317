"""Read the main attributes of a JAR manifest (META-INF/MANIFEST.MF)."""

from __future__ import annotations

import zipfile
from pathlib import Path

from mcp_server_build.logging import get_logger

logger = get_logger(__name__)

MANIFEST_PATH = "META-INF/MANIFEST.MF"


def parse_manifest(text: str) -> dict[str, str]:
    """Parse the main section; a line starting with one space continues the previous value."""
    attrs: dict[str, str] = {}
    key: str | None = None
    for raw in text.splitlines():
        if not raw.strip():
            # Blank line ends the main section
            if attrs:
                break
            continue
        if raw.startswith(" ") and key is not None:
            attrs[key] += raw[1:]
            continue
        name, sep, value = raw.partition(":")
        if not sep:
            continue
        key = name.strip()
        attrs[key] = value.strip()
    return attrs


def read_manifest(path: Path) -> dict[str, str]:
    """Return manifest attributes, or `{}` when the archive has none or is not a zip."""
    try:
        with zipfile.ZipFile(path) as zf:
            try:
                data = zf.read(MANIFEST_PATH)
            except KeyError:
                return {}
    except zipfile.BadZipFile:
        logger.debug("Not a zip archive: %s", path)
        return {}
    return parse_manifest(data.decode("utf-8", errors="replace"))
