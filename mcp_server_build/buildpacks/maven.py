"""Maven buildpack.

Turns a pom.xml project into a build configuration and supplies the Maven
specifics for the later stages:
- analysis: Java version, Spring Boot marker, main class, port, commands,
  properties, and Docker hints
- environment: MAVEN_OPTS & batch flags, MAVEN_HOME lookup
- command lines for dependency resolution and each build command
- parsers for Maven's `[INFO]` / `[WARNING]` / `[ERROR]` console output
"""

from __future__ import annotations

import os
import re
import shlex
import xml.etree.ElementTree as ET
from collections.abc import Iterator, Mapping
from pathlib import Path

from mcp_server_build.buildpacks.base import BuildOutput, DependencyListing
from mcp_server_build.errors import BuildEnvironmentError
from mcp_server_build.installer.homes import find_tool_home
from mcp_server_build.logging import get_logger
from mcp_server_build.types import (
    BuilderConfiguration,
    BuildEnvironment,
    BuildTool,
    DockerHints,
    ProjectInfo,
)

logger = get_logger(__name__)

MAVEN_HOME_CANDIDATES: tuple[str, ...] = (
    "/usr/share/maven",
    "/opt/maven",
    "/usr/local/maven",
    "C:\\Program Files\\Apache\\Maven",
    "C:\\Maven",
)

DEFAULT_JAVA_VERSION = "21"
SPRING_BOOT_PORT = "8080"
GENERIC_PORT = "3000"
SPRING_BOOT_ANNOTATION = "@SpringBootApplication"

_SPRING_BOOT_RE = re.compile(r"spring-boot-starter|@SpringBootApplication")
_JAVA_VERSION_RES = (
    re.compile(r"<maven\.compiler\.source>\s*(?:1\.)?([0-9]+)\s*</maven\.compiler\.source>"),
    re.compile(r"<java\.version>\s*(?:1\.)?([0-9]+)\s*</java\.version>"),
    re.compile(r"<maven\.compiler\.target>\s*(?:1\.)?([0-9]+)\s*</maven\.compiler\.target>"),
)
_SERVER_PORT_RE = re.compile(r"server\.port\s*[:=]\s*([0-9]+)")
_NESTED_PORT_RE = re.compile(r"^server:[ \t]*\n(?:[ \t]+.*\n)*?[ \t]+port:[ \t]*([0-9]+)", re.MULTILINE)
_PACKAGE_RE = re.compile(r"^\s*package\s+([\w.]+)\s*;", re.MULTILINE)
_MAIN_METHOD_RE = re.compile(r"public\s+static\s+void\s+main\s*\(")
_PROPERTIES_BLOCK_RE = re.compile(r"<properties>(.*?)</properties>", re.DOTALL)
_PROPERTY_RE = re.compile(r"<([^>/\s]+)>([^<]+)</[^>]+>")
_POM_NS = "{http://maven.apache.org/POM/4.0.0}"

_CONFIG_FILES = ("application.properties", "application.yml", "application.yaml")
_SKIP_DIRS = {"target", "node_modules", "build"}

_BASE_IMAGES = {
    "8": "eclipse-temurin:8-jre",
    "11": "eclipse-temurin:11-jre",
    "17": "eclipse-temurin:17-jre",
    "21": "eclipse-temurin:21-jre",
    "25": "eclipse-temurin:25-jre",
}

# Coordinates as printed by dependency:resolve, e.g. `org.slf4j:slf4j-api:jar:2.0.9:compile`
_DEPENDENCY_RE = re.compile(r"^\s*(?:\[INFO\]\s+)?([\w.\-]+(?::[\w.\-]+){3,5})(?:\s|$)")
_ERROR_RE = re.compile(r"\[ERROR\](.+)")
_WARNING_RE = re.compile(r"\[WARNING\](.+)")
_COMPILING_RE = re.compile(r"\[INFO\] Compiling ([0-9]+) source files?")
_DEPENDENCY_FAILURE_MARKERS = ("Could not resolve", "Failed to")
_BATCH_FLAGS = ("--batch-mode", "--no-transfer-progress")


# --- Descriptor analysis ----------------------------------------------------


def extract_java_version(pom: str) -> str:
    for pattern in _JAVA_VERSION_RES:
        m = pattern.search(pom)
        if m:
            return m.group(1)
    logger.warning("Could not determine Java version from pom.xml, defaulting to %s",
                   DEFAULT_JAVA_VERSION)
    return DEFAULT_JAVA_VERSION


def iter_java_sources(root: Path) -> Iterator[Path]:
    """Yield `*.java` files under *root* in a stable order, skipping build output."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            d for d in dirnames if d not in _SKIP_DIRS and not d.startswith(".")
        )
        for name in sorted(filenames):
            if name.endswith(".java"):
                yield Path(dirpath) / name


def _read_source(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.debug("Skipping unreadable source %s: %s", path, exc)
        return ""


def _find_source(root: Path, predicate) -> Path | None:
    if not root.is_dir():
        return None
    for source in iter_java_sources(root):
        if predicate(_read_source(source)):
            return source
    return None


def _is_spring_boot_entry(text: str) -> bool:
    return SPRING_BOOT_ANNOTATION in text


def is_spring_boot_project(pom: str, root: Path) -> bool:
    if _SPRING_BOOT_RE.search(pom):
        return True
    return _find_source(root, _is_spring_boot_entry) is not None


def qualified_class_name(source: Path) -> str:
    m = _PACKAGE_RE.search(_read_source(source))
    package = m.group(1).strip() if m else ""
    return f"{package}.{source.stem}" if package else source.stem


def synthesize_main_class(project_name: str) -> str:
    capitalized = project_name[:1].upper() + re.sub(r"[^a-zA-Z0-9]", "", project_name[1:])
    return f"com.example.{capitalized.lower()}.{capitalized}Application"


def extract_main_class(root: Path, spring_boot: bool, project_name: str) -> str | None:
    if spring_boot:
        entry = _find_source(root, _is_spring_boot_entry)
        if entry is not None:
            return qualified_class_name(entry)
        return synthesize_main_class(project_name)

    entry = _find_source(root / "src" / "main" / "java", _MAIN_METHOD_RE.search)
    return qualified_class_name(entry) if entry is not None else None


def extract_server_port(root: Path, spring_boot: bool) -> str:
    if not spring_boot:
        return GENERIC_PORT

    resources = root / "src" / "main" / "resources"
    for name in _CONFIG_FILES:
        config_path = resources / name
        if not config_path.is_file():
            continue
        try:
            content = config_path.read_text(encoding="utf-8")
        except (OSError, ValueError) as exc:
            logger.warning("Error reading config file %s: %s", name, exc)
            continue
        m = _SERVER_PORT_RE.search(content)
        if m is None and name != "application.properties":
            m = _NESTED_PORT_RE.search(content)
        if m:
            return m.group(1)
    return SPRING_BOOT_PORT


def generate_build_commands(spring_boot: bool) -> tuple[str, ...]:
    if spring_boot:
        return ("mvn clean compile", "mvn package spring-boot:repackage")
    return ("mvn clean compile", "mvn package")


def extract_properties(pom: str) -> dict[str, str]:
    """Flat key/value pairs from the POM's top-level `<properties>` element."""
    try:
        root = ET.fromstring(pom)
    except ET.ParseError:
        return _extract_properties_by_regex(pom)

    props: dict[str, str] = {}
    for ns in (_POM_NS, ""):
        props_el = root.find(f"{ns}properties")
        if props_el is None:
            continue
        for child in props_el:
            if not isinstance(child.tag, str):
                continue
            tag = child.tag.split("}")[-1]
            if child.text and child.text.strip():
                props[tag] = child.text.strip()
    return props


def _extract_properties_by_regex(pom: str) -> dict[str, str]:
    m = _PROPERTIES_BLOCK_RE.search(pom)
    if not m:
        return {}
    return {k: v.strip() for k, v in _PROPERTY_RE.findall(m.group(1))}


def generate_docker_hints(java_version: str, port: str, spring_boot: bool) -> DockerHints:
    return DockerHints(
        base_image=_BASE_IMAGES.get(java_version, _BASE_IMAGES[DEFAULT_JAVA_VERSION]),
        exposed_port=port,
        health_check_path="/actuator/health" if spring_boot else None,
        workdir="/app",
        start_command="java -jar app.jar",
    )


# --- Output parsing ---------------------------------------------------------


def parse_dependency_output(output: str) -> DependencyListing:
    listing = DependencyListing()
    for line in output.splitlines():
        m = _DEPENDENCY_RE.match(line)
        if m:
            parts = m.group(1).split(":")
            # g:a:type:version[:scope] or g:a:type:classifier:version:scope
            version = parts[4] if len(parts) == 6 else parts[3]
            listing.resolved.append(f"{parts[0]}:{parts[1]}:{version}")
            continue
        err = _ERROR_RE.search(line)
        if err:
            message = err.group(1).strip()
            if any(marker in message for marker in _DEPENDENCY_FAILURE_MARKERS):
                listing.failed.append(message)
    logger.debug("Parsed %d Maven dependencies", len(listing.resolved))
    return listing


def parse_maven_output(output: str) -> BuildOutput:
    parsed = BuildOutput()
    for line in output.splitlines():
        m = _COMPILING_RE.search(line)
        if m:
            parsed.compiled.append(f"{int(m.group(1))} source files compiled")

        m = _ERROR_RE.search(line)
        if m:
            error = m.group(1).strip()
            if error and "BUILD FAILURE" not in error:
                parsed.errors.append(error)

        m = _WARNING_RE.search(line)
        if m:
            warning = m.group(1).strip()
            if warning:
                parsed.warnings.append(warning)
    return parsed


# --- Buildpack --------------------------------------------------------------


def maven_executable(home: str | None) -> str:
    name = "mvn.cmd" if os.name == "nt" else "mvn"
    if home:
        return str(Path(home) / "bin" / name)
    return name


class MavenBuildpack:
    tool = BuildTool.MAVEN

    def analyze(self, project: ProjectInfo) -> BuilderConfiguration:
        pom_path = Path(project.build_file_path)
        pom = pom_path.read_text(encoding="utf-8")
        root = pom_path.parent

        java_version = extract_java_version(pom)
        spring_boot = is_spring_boot_project(pom, root)
        port = extract_server_port(root, spring_boot)

        config = BuilderConfiguration(
            build_tool=BuildTool.MAVEN,
            project_path=project.project_path,
            java_version=java_version,
            main_class=extract_main_class(root, spring_boot, project.project_name),
            port=port,
            build_commands=generate_build_commands(spring_boot),
            properties=extract_properties(pom),
            docker_hints=generate_docker_hints(java_version, port, spring_boot),
        )
        logger.info(
            "Maven project analysis completed - Java %s, Spring Boot: %s, Port: %s",
            java_version,
            spring_boot,
            port,
            extra={"stage": "analysis", "project": project.project_name, "tool": "MAVEN"},
        )
        return config

    def environment_variables(
        self, config: BuilderConfiguration, temp_directory: str
    ) -> dict[str, str]:
        env = {
            "MAVEN_OPTS": f"-Xmx2g -XX:+UseG1GC -Djava.io.tmpdir={temp_directory}",
            "MAVEN_BATCH_MODE": "true",
            "MAVEN_CLI_OPTS": " ".join(_BATCH_FLAGS),
        }
        if config.java_version:
            env["JAVA_VERSION"] = config.java_version
        return env

    def locate_tool_home(self, env: Mapping[str, str]) -> str:
        home = find_tool_home("mvn", env, ("MAVEN_HOME", "M2_HOME"), MAVEN_HOME_CANDIDATES)
        if home is None:
            raise BuildEnvironmentError(
                "Maven not found. Please ensure Maven is installed and available in PATH "
                "or MAVEN_HOME is set."
            )
        return home

    def requires_java(self) -> bool:
        return True

    def dependency_listing_file(self, env: BuildEnvironment) -> Path | None:
        return Path(env.temp_directory) / "dependencies.txt"

    def dependency_command(self, env: BuildEnvironment) -> list[str]:
        return [
            maven_executable(env.build_tool_home),
            "dependency:resolve",
            "dependency:resolve-sources",
            *_BATCH_FLAGS,
            "--quiet",
            f"-DoutputFile={self.dependency_listing_file(env)}",
            "-DappendOutput=true",
        ]

    def parse_dependencies(self, output: str) -> DependencyListing:
        return parse_dependency_output(output)

    def build_command(self, command: str, env: BuildEnvironment) -> list[str]:
        # The leading `mvn` is replaced by the resolved executable
        args = shlex.split(command)[1:]
        argv = [maven_executable(env.build_tool_home), *args]
        for flag in _BATCH_FLAGS:
            if flag not in args:
                argv.append(flag)
        return argv

    def parse_build_output(self, output: str) -> BuildOutput:
        return parse_maven_output(output)

    def output_directory(self, config: BuilderConfiguration) -> Path:
        return Path(config.project_path) / "target"
