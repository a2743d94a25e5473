from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from adapters.filesystem.json_utils import dump_json_bytes, write_text_atomic
from adapters.filesystem.scene_repository import FileSystemSceneRepository
from app.config import AppSettings, configure_logging, load_settings
from domain.coordinates import CoordinateSpace
from domain.errors import EmptyOutput, MalformedGenerationOutput
from domain.models import SceneModel
from domain.services.render_scene_svg import SceneSvgRenderer

app = typer.Typer(no_args_is_help=True)
console = Console()
err_console = Console(stderr=True)


def _settings(config: Optional[Path]) -> AppSettings:
    settings = load_settings(config)
    configure_logging(settings)
    return settings


def _normalize_file(input_path: Path, settings: AppSettings) -> SceneModel:
    if not input_path.exists():
        err_console.print(f"[red]File not found:[/] {input_path}")
        raise typer.Exit(code=1)
    raw = input_path.read_text(encoding="utf-8")
    normalizer = settings.normalizer.build_normalizer()
    try:
        return normalizer.convert(raw)
    except (MalformedGenerationOutput, EmptyOutput) as exc:
        err_console.print(f"[red]{type(exc).__name__}:[/] {exc}")
        raise typer.Exit(code=1) from exc


def _load_scene_file(input_path: Path) -> SceneModel:
    if not input_path.exists():
        err_console.print(f"[red]File not found:[/] {input_path}")
        raise typer.Exit(code=1)
    try:
        return FileSystemSceneRepository().load(input_path)
    except ValueError as exc:
        err_console.print(f"[red]Invalid scene file:[/] {input_path}: {exc}")
        raise typer.Exit(code=1) from exc


@app.command("normalize")
def normalize_output(
    input_path: Path = typer.Argument(..., help="Text file with raw generator output."),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the normalized scene JSON here instead of stdout.",
    ),
    config: Optional[Path] = typer.Option(None, help="YAML settings file."),
) -> None:
    settings = _settings(config)
    scene = _normalize_file(input_path, settings)
    if output is None:
        typer.echo(dump_json_bytes(scene.to_payload()).decode("utf-8"))
        return
    FileSystemSceneRepository().save(scene, output)
    console.print(f"[green]Wrote[/] {output}")


@app.command("render")
def render_svg(
    input_path: Path = typer.Argument(
        ..., help="Raw generator output, or a saved scene with --scene."
    ),
    output: Path = typer.Option(..., "--output", "-o", help="Target SVG file."),
    width: Optional[float] = typer.Option(None, help="Surface width in pixels."),
    height: Optional[float] = typer.Option(None, help="Surface height in pixels."),
    editing: bool = typer.Option(False, "--editing/--no-editing", help="Draw arrow handles."),
    saved_scene: bool = typer.Option(
        False, "--scene", help="Input is a scene file written by `normalize --output`.",
    ),
    config: Optional[Path] = typer.Option(None, help="YAML settings file."),
) -> None:
    settings = _settings(config)
    if saved_scene:
        scene = _load_scene_file(input_path)
    else:
        scene = _normalize_file(input_path, settings)
    surface = settings.surface
    space = CoordinateSpace(width or surface.width, height or surface.height, surface.margin)
    svg = SceneSvgRenderer(space).render(scene, editing=editing)
    write_text_atomic(output, svg)
    console.print(f"[green]Wrote[/] {output}")


@app.command("validate")
def validate(
    input_path: Path = typer.Argument(..., help="Generator output to validate."),
    config: Optional[Path] = typer.Option(None, help="YAML settings file."),
) -> None:
    settings = _settings(config)
    scene = _normalize_file(input_path, settings)
    console.print(
        f"[green]Valid scene:[/] {input_path} "
        f"({len(scene.players)} players, {len(scene.arrows)} arrows, "
        f"{len(scene.markers)} markers, {len(scene.dimension_labels)} dimension labels)"
    )


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address."),
    port: int = typer.Option(8080, help="Bind port."),
    config: Optional[Path] = typer.Option(None, help="YAML settings file."),
) -> None:
    import uvicorn

    from app.web_main import create_app

    settings = _settings(config)
    uvicorn.run(create_app(settings), host=host, port=port)


if __name__ == "__main__":
    app()
