"""mcp-server-build CLI.

Commands:
- build PATH [--json] [--out FILE] [--timeout MS]
- detect PATH
- verify ARTIFACT SHA256
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mcp_server_build.buildpacks.base import analyze_project
from mcp_server_build.config import get_settings
from mcp_server_build.core import ProjectBuilder
from mcp_server_build.detect.base import discover_project
from mcp_server_build.errors import BuildStageError
from mcp_server_build.logging import configure_logging
from mcp_server_build.types import BuildResult
from mcp_server_build.validator import build_result_document

app = typer.Typer(add_completion=False, help="Build Maven, Gradle and NPM projects headlessly")
console = Console()


def _summary_table(result: BuildResult) -> Table:
    status_style = "green" if result.success else "red"
    table = Table(title="Build Summary")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Status", f"[{status_style}]{result.status.value}[/{status_style}]")
    if result.error_type is not None:
        table.add_row("Error", result.error_type.value)
    if result.build_configuration is not None:
        table.add_row("Tool", result.build_configuration.build_tool.value)
    table.add_row("Duration", result.formatted_duration)
    if result.artifact_info is not None:
        info = result.artifact_info
        table.add_row("Artifacts", f"{info.artifact_count} ({info.formatted_size})")
        if info.has_main_artifact:
            table.add_row("Main artifact", escape(info.main_artifact_path))
    table.add_row("Message", escape(result.message))
    for tip in result.suggestions:
        table.add_row("Suggestion", escape(tip))
    return table


@app.command()
def build(
    path: str = typer.Argument(".", help="Path to project root"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    out: str | None = typer.Option(None, "--out", help="Write the JSON result to a file"),
    timeout: int | None = typer.Option(None, "--timeout", help="Process timeout in ms"),
) -> None:
    settings = get_settings()
    if timeout is not None:
        settings = settings.model_copy(update={"timeout": timeout})
    configure_logging(settings.log_level)

    result = ProjectBuilder(settings=settings).build_project(path)

    if as_json or out:
        payload = json.dumps(build_result_document(result), indent=2)
        if out:
            Path(out).write_text(payload, encoding="utf-8")
            rprint(f"[green]Result written:[/green] {out}")
        if as_json:
            print(payload)
    if not as_json:
        console.print(_summary_table(result))

    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def detect(path: str = typer.Argument(".", help="Path to project root")) -> None:
    try:
        config = analyze_project(discover_project(path))
    except BuildStageError as exc:
        rprint(f"[red]{exc.error_type.value}:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    print(config.model_dump_json(indent=2))


@app.command()
def verify(
    artifact: str = typer.Argument(..., help="Path to a build artifact"),
    sha256: str = typer.Argument(..., help="Expected digest (hex or sha256:<hex>)"),
) -> None:
    from mcp_server_build.signing.checks import verify_sha256

    try:
        verify_sha256(Path(artifact), expected=sha256)
    except ValueError as exc:
        rprint(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc
    rprint("[green]SHA-256 verified.[/green]")


if __name__ == "__main__":
    app()
