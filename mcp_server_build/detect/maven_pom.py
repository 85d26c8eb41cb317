"""Maven descriptor reader (coordinates from pom.xml).

`<artifactId>` / `<version>` are read as direct children of `<project>`; a POM
that omits one inherits it from `<parent>`. Malformed XML falls back to a
regex scan with the nested sections stripped.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from pathlib import Path

_POM_NS = "{http://maven.apache.org/POM/4.0.0}"

_ARTIFACT_ID_RE = re.compile(r"<artifactId>([^<]+)</artifactId>")
_VERSION_RE = re.compile(r"<version>([^<]+)</version>")
_PARENT_RE = re.compile(r"<parent>(.*?)</parent>", re.DOTALL)
# Sections whose own coordinates must never be mistaken for the project's
_NESTED_RE = re.compile(
    r"<(dependencies|dependencyManagement|build|profiles|plugins|reporting)>.*?</\1>",
    re.DOTALL,
)


def _child_text(element: ET.Element, tag: str) -> str | None:
    for ns in (_POM_NS, ""):
        child = element.find(f"{ns}{tag}")
        if child is not None and child.text and child.text.strip():
            return child.text.strip()
    return None


def _parent(root: ET.Element) -> ET.Element | None:
    for ns in (_POM_NS, ""):
        parent = root.find(f"{ns}parent")
        if parent is not None:
            return parent
    return None


def _coordinate_by_regex(content: str, tag: str) -> str | None:
    pattern = _ARTIFACT_ID_RE if tag == "artifactId" else _VERSION_RE
    parent = _PARENT_RE.search(content)
    own = _NESTED_RE.sub("", _PARENT_RE.sub("", content))
    m = pattern.search(own)
    if m:
        return m.group(1).strip()
    if parent:
        m = pattern.search(parent.group(1))
        if m:
            return m.group(1).strip()
    return None


def read_coordinate(content: str, tag: str) -> str | None:
    """The project's own *tag* value, else the parent's, else None."""
    try:
        root = ET.fromstring(content)
    except ET.ParseError:
        return _coordinate_by_regex(content, tag)

    value = _child_text(root, tag)
    if value is not None:
        return value
    parent = _parent(root)
    return _child_text(parent, tag) if parent is not None else None


class MavenPomReader:
    additional_files = (
        "src/main/java",
        "src/main/resources",
        "src/test/java",
        "mvnw",
        "mvnw.cmd",
        ".mvn",
    )

    def _read(self, root: Path) -> str:
        return (root / "pom.xml").read_text(encoding="utf-8")

    def project_name(self, root: Path) -> str | None:
        return read_coordinate(self._read(root), "artifactId")

    def project_version(self, root: Path) -> str | None:
        return read_coordinate(self._read(root), "version")


MAVEN_READER = MavenPomReader()
