"""Gradle descriptor reader (Groovy and Kotlin DSL).

- Name: `rootProject.name = "..."` from settings.gradle.kts, else settings.gradle.
- Version: first `version = "..."` assignment in the build file (Kotlin DSL first).
"""

from __future__ import annotations

import re
from pathlib import Path

_ROOT_NAME_RE = re.compile(r"rootProject\.name\s*=\s*['\"]([^'\"]+)['\"]")
_VERSION_RE = re.compile(r"version\s*=\s*['\"]([^'\"]+)['\"]")


class GradleBuildReader:
    additional_files = (
        "src/main/java",
        "src/main/kotlin",
        "src/main/resources",
        "src/test/java",
        "src/test/kotlin",
        "gradlew",
        "gradlew.bat",
        "gradle",
        "settings.gradle",
        "settings.gradle.kts",
    )

    def project_name(self, root: Path) -> str | None:
        settings = root / "settings.gradle.kts"
        if not settings.exists():
            settings = root / "settings.gradle"
        if not settings.exists():
            return None
        m = _ROOT_NAME_RE.search(settings.read_text(encoding="utf-8"))
        return m.group(1).strip() if m else None

    def project_version(self, root: Path) -> str | None:
        build_file = root / "build.gradle.kts"
        if not build_file.exists():
            build_file = root / "build.gradle"
        m = _VERSION_RE.search(build_file.read_text(encoding="utf-8"))
        return m.group(1).strip() if m else None


GRADLE_READER = GradleBuildReader()
