from __future__ import annotations

import os
import shutil
import stat
import sys
from pathlib import Path

import pytest

from mcp_server_build.buildpacks import maven as maven_mod
from mcp_server_build.config import BuilderSettings
from mcp_server_build.installer import homes as homes_mod

FIXTURES = Path(__file__).resolve().parents[1] / "fixtures"
FAKE_MVN = Path(__file__).resolve().parent / "fake_mvn.py"


def _make_executable(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


@pytest.fixture(autouse=True)
def _no_conventional_homes(monkeypatch):
    """Never pick up a Maven or JDK installed on the test machine."""
    monkeypatch.setattr(maven_mod, "MAVEN_HOME_CANDIDATES", (), raising=True)
    monkeypatch.setattr(homes_mod, "JAVA_HOME_CANDIDATES", (), raising=True)


@pytest.fixture
def maven_home(tmp_path: Path) -> Path:
    home = tmp_path / "toolchains" / "maven"
    source = FAKE_MVN.read_text(encoding="utf-8")
    _make_executable(home / "bin" / "mvn", f"#!{sys.executable}\n{source}")
    return home


@pytest.fixture
def java_home(tmp_path: Path) -> Path:
    home = tmp_path / "toolchains" / "jdk"
    _make_executable(home / "bin" / "java", "#!/bin/sh\necho 'openjdk version \"17\"'\n")
    return home


@pytest.fixture
def ambient_env(maven_home: Path, java_home: Path, tmp_path: Path) -> dict[str, str]:
    return {
        "PATH": os.environ.get("PATH", ""),
        "MAVEN_HOME": str(maven_home),
        "JAVA_HOME": str(java_home),
        "FAKE_MVN_LOG": str(tmp_path / "mvn-calls.log"),
    }


@pytest.fixture
def settings(tmp_path: Path) -> BuilderSettings:
    return BuilderSettings(
        timeout=30_000,
        temp_directory=str(tmp_path / "build-tmp"),
        drain_grace_seconds=5.0,
    )


@pytest.fixture
def spring_project(tmp_path: Path) -> Path:
    dest = tmp_path / "projects" / "demo"
    shutil.copytree(FIXTURES / "maven-spring-demo", dest)
    return dest


@pytest.fixture
def library_project(tmp_path: Path) -> Path:
    dest = tmp_path / "projects" / "acme-tool"
    shutil.copytree(FIXTURES / "maven-library", dest)
    return dest


@pytest.fixture
def mvn_calls(ambient_env: dict[str, str]):
    """Return a callable listing the argument lines the fake mvn was invoked with."""
    log = Path(ambient_env["FAKE_MVN_LOG"])

    def _calls() -> list[str]:
        if not log.exists():
            return []
        return log.read_text(encoding="utf-8").splitlines()

    return _calls
