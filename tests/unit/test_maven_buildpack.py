from __future__ import annotations

import os
from pathlib import Path

import pytest

from mcp_server_build.buildpacks.base import analyze_project
from mcp_server_build.buildpacks.maven import (
    MavenBuildpack,
    extract_java_version,
    extract_properties,
    extract_server_port,
    generate_docker_hints,
    parse_dependency_output,
    parse_maven_output,
    synthesize_main_class,
)
from mcp_server_build.detect.base import discover_project
from mcp_server_build.errors import BuildToolDetectionError
from mcp_server_build.types import BuilderConfiguration, BuildEnvironment, BuildTool, DockerHints


def _analyze(path: Path):
    return analyze_project(discover_project(str(path)))


def test_spring_boot_project_analysis(spring_project: Path) -> None:
    config = _analyze(spring_project)

    assert config.java_version == "17"
    assert config.main_class == "com.example.demo.DemoApplication"
    assert config.port == "9090"
    assert config.build_commands == ("mvn clean compile", "mvn package spring-boot:repackage")
    assert config.properties == {
        "java.version": "17",
        "project.build.sourceEncoding": "UTF-8",
    }
    hints = config.docker_hints
    assert hints.base_image == "eclipse-temurin:17-jre"
    assert hints.exposed_port == "9090"
    assert hints.health_check_path == "/actuator/health"
    assert (hints.workdir, hints.start_command) == ("/app", "java -jar app.jar")


def test_configuration_mappings_are_read_only(spring_project: Path, tmp_path: Path) -> None:
    config = _analyze(spring_project)
    with pytest.raises(TypeError):
        config.properties["java.version"] = "8"
    assert config.properties["java.version"] == "17"
    assert config.model_dump()["properties"] == dict(config.properties)

    source = {"MAVEN_BATCH_MODE": "true"}
    env = BuildEnvironment(
        environment_variables=source,
        working_directory=str(spring_project),
        temp_directory=str(tmp_path),
    )
    source["MAVEN_BATCH_MODE"] = "false"
    with pytest.raises(TypeError):
        env.environment_variables["PATH"] = "/tmp"
    assert env.environment_variables == {"MAVEN_BATCH_MODE": "true"}
    assert env.model_dump(mode="json")["environment_variables"] == {"MAVEN_BATCH_MODE": "true"}

    bare = BuilderConfiguration(
        build_tool=BuildTool.MAVEN,
        project_path=str(spring_project),
        java_version="21",
        build_commands=("mvn package",),
        docker_hints=DockerHints(base_image="eclipse-temurin:21-jre", start_command="java -jar app.jar"),
    )
    with pytest.raises(TypeError):
        bare.properties["x"] = "y"


def test_plain_maven_project_analysis(library_project: Path) -> None:
    config = _analyze(library_project)

    assert config.java_version == "11"
    assert config.main_class == "com.acme.tool.Cli"
    assert config.port == "3000"
    assert config.build_commands == ("mvn clean compile", "mvn package")
    assert config.docker_hints.base_image == "eclipse-temurin:11-jre"
    assert config.docker_hints.health_check_path is None


def test_spring_boot_without_sources_synthesizes_main_class(tmp_path: Path) -> None:
    project = tmp_path / "orders"
    project.mkdir()
    (project / "pom.xml").write_text(
        "<project><artifactId>order-service</artifactId><version>1.0</version>"
        "<dependencies><dependency><artifactId>spring-boot-starter-web</artifactId>"
        "</dependency></dependencies></project>",
        encoding="utf-8",
    )

    config = _analyze(project)
    assert config.main_class == "com.example.orderservice.OrderserviceApplication"
    assert config.port == "8080"
    assert config.java_version == "21"


def test_spring_annotation_found_outside_descriptor(tmp_path: Path) -> None:
    (tmp_path / "pom.xml").write_text("<project><artifactId>x</artifactId></project>", "utf-8")
    src = tmp_path / "src" / "main" / "java" / "io" / "x"
    src.mkdir(parents=True)
    (src / "XApp.java").write_text(
        "package io.x;\n\n@SpringBootApplication\npublic class XApp {}\n", encoding="utf-8"
    )
    # Build output must not be scanned
    stale = tmp_path / "target" / "generated"
    stale.mkdir(parents=True)
    (stale / "Aaa.java").write_text("@SpringBootApplication class Aaa {}\n", encoding="utf-8")

    config = _analyze(tmp_path)
    assert config.main_class == "io.x.XApp"
    assert config.build_commands[-1] == "mvn package spring-boot:repackage"


@pytest.mark.parametrize(
    "pom, expected",
    [
        ("<maven.compiler.source>17</maven.compiler.source>", "17"),
        ("<java.version>21</java.version><maven.compiler.target>11</maven.compiler.target>", "21"),
        ("<maven.compiler.target>11</maven.compiler.target>", "11"),
        ("<maven.compiler.source>1.8</maven.compiler.source>", "8"),
        ("<project/>", "21"),
    ],
)
def test_java_version_extraction(pom: str, expected: str) -> None:
    assert extract_java_version(pom) == expected


def test_server_port_from_yaml(tmp_path: Path) -> None:
    resources = tmp_path / "src" / "main" / "resources"
    resources.mkdir(parents=True)
    (resources / "application.yml").write_text(
        "spring:\n  application:\n    name: x\nserver:\n  servlet:\n    context-path: /\n"
        "  port: 7070\n",
        encoding="utf-8",
    )
    assert extract_server_port(tmp_path, spring_boot=True) == "7070"

    (resources / "application.properties").write_text("server.port = 8181\n", "utf-8")
    assert extract_server_port(tmp_path, spring_boot=True) == "8181"
    assert extract_server_port(tmp_path, spring_boot=False) == "3000"


def test_synthesized_main_class_strips_punctuation() -> None:
    assert synthesize_main_class("demo") == "com.example.demo.DemoApplication"
    assert synthesize_main_class("my_app.v2") == "com.example.myappv2.Myappv2Application"


def test_unlisted_java_version_uses_default_image() -> None:
    assert generate_docker_hints("9", "3000", False).base_image == "eclipse-temurin:21-jre"
    assert generate_docker_hints("25", "3000", False).base_image == "eclipse-temurin:25-jre"


def test_properties_fall_back_to_text_for_malformed_pom() -> None:
    pom = "<project><properties><a.b>1</a.b><c> two </c></properties>"
    assert extract_properties(pom) == {"a.b": "1", "c": "two"}


def test_gradle_analysis_is_not_supported(tmp_path: Path) -> None:
    (tmp_path / "build.gradle").write_text("plugins { id 'java' }\n", encoding="utf-8")

    with pytest.raises(BuildToolDetectionError) as excinfo:
        _analyze(tmp_path)
    assert str(excinfo.value) == "Failed to analyze build configuration for GRADLE project"
    assert isinstance(excinfo.value.__cause__, NotImplementedError)


def test_parse_dependency_output() -> None:
    output = "\n".join(
        [
            "[INFO] --- maven-dependency-plugin:3.6.1:resolve (default-cli) @ demo ---",
            "The following files have been resolved:",
            "   org.slf4j:slf4j-api:jar:2.0.9:compile",
            "[INFO]    com.google.guava:guava:jar:33.0.0-jre:compile",
            "   org.lwjgl:lwjgl:jar:natives-linux:3.3.3:runtime",
            "   none",
            "[ERROR] Failed to execute goal on project demo: Could not resolve dependencies",
            "[ERROR] Re-run Maven using the -X switch to enable full debug logging.",
        ]
    )
    listing = parse_dependency_output(output)

    assert listing.resolved == [
        "org.slf4j:slf4j-api:2.0.9",
        "com.google.guava:guava:33.0.0-jre",
        "org.lwjgl:lwjgl:3.3.3",
    ]
    assert listing.failed == [
        "Failed to execute goal on project demo: Could not resolve dependencies"
    ]


def test_parse_maven_output() -> None:
    output = "\n".join(
        [
            "[INFO] Compiling 12 source files with javac [debug release 17] to target/classes",
            "[INFO] Compiling 1 source file to target/test-classes",
            "[WARNING] /src/Foo.java: uses a deprecated API",
            "[ERROR] /src/Foo.java:[3,8] cannot find symbol",
            "[ERROR] BUILD FAILURE",
            "[ERROR] ",
        ]
    )
    parsed = parse_maven_output(output)

    assert parsed.compiled == ["12 source files compiled", "1 source files compiled"]
    assert parsed.warnings == ["/src/Foo.java: uses a deprecated API"]
    assert parsed.errors == ["/src/Foo.java:[3,8] cannot find symbol"]


@pytest.mark.skipif(os.name == "nt", reason="POSIX executable naming")
def test_command_lines(tmp_path: Path) -> None:
    env = BuildEnvironment(
        environment_variables={},
        working_directory=str(tmp_path),
        build_tool_home="/opt/maven",
        temp_directory=str(tmp_path / "build-1"),
    )
    pack = MavenBuildpack()

    assert pack.build_command("mvn package -DskipTests", env) == [
        "/opt/maven/bin/mvn",
        "package",
        "-DskipTests",
        "--batch-mode",
        "--no-transfer-progress",
    ]
    assert pack.build_command("mvn clean install --batch-mode", env) == [
        "/opt/maven/bin/mvn",
        "clean",
        "install",
        "--batch-mode",
        "--no-transfer-progress",
    ]

    dep = pack.dependency_command(env)
    assert dep[:6] == [
        "/opt/maven/bin/mvn",
        "dependency:resolve",
        "dependency:resolve-sources",
        "--batch-mode",
        "--no-transfer-progress",
        "--quiet",
    ]
    assert f"-DoutputFile={tmp_path / 'build-1' / 'dependencies.txt'}" in dep

    bare = env.model_copy(update={"build_tool_home": None})
    assert pack.build_command("mvn verify", bare)[0] == "mvn"
