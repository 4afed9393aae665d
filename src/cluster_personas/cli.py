from __future__ import annotations

import json
from pathlib import Path

import typer

from cluster_personas.colors import interpolate_palette
from cluster_personas.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from cluster_personas.contracts import sub_selection_to_dict
from cluster_personas.features.subselection import build_persona_selection
from cluster_personas.io.read import load_snapshot
from cluster_personas.io.write import write_json
from cluster_personas.logging import configure_logging
from cluster_personas.pipeline.convert import convert_table
from cluster_personas.selection import token_to_dict

app = typer.Typer(no_args_is_help=True, add_completion=False)


def _load_app_config(config_path: Path) -> AppConfig:
    return load_config(config_path)


@app.command()
def convert(
    table: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    out: Path = typer.Option(Path("out/personas.json"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """Convert a CSV/parquet table into the persona payload consumed by the renderer."""
    configure_logging()
    cfg = _load_app_config(config)
    try:
        snapshot = load_snapshot(table, cfg.columns)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    result = convert_table(snapshot, cfg.presentation)
    if result is None:
        typer.echo("Nothing to render: table has no rows or lacks group id, name or count.")
        return

    write_json(result.to_dict(), out, indent=cfg.outputs.indent, sort_keys=cfg.outputs.sort_keys)
    typer.echo(
        f"Conversion complete. Personas: {len(result.data.personas)}, "
        f"links: {len(result.data.links)}, other: {len(result.data.other.persona_ids)}"
    )
    typer.echo(f"Payload written to: {out}")


@app.command()
def palette(
    color: str = typer.Option(..., help="Base color in #rrggbb notation."),
    iterations: int = typer.Option(3, min=1),
    selection: bool = typer.Option(True, "--selection/--normal", help="Palette mode."),
) -> None:
    """Print an interpolated palette, one rgb() color per line."""
    try:
        colors = interpolate_palette(color, iterations, is_selection=selection)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    for rgb in colors:
        typer.echo(rgb.css())


@app.command()
def select(
    table: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    persona: str = typer.Option(..., help="Persona id, or __other__ for the overflow bucket."),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """Print the selection event emitted when a persona is selected."""
    configure_logging()
    cfg = _load_app_config(config)
    try:
        snapshot = load_snapshot(table, cfg.columns)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    result = convert_table(snapshot, cfg.presentation)
    event = None
    if result is not None:
        event = build_persona_selection(
            persona,
            result.data.personas,
            result.data.links,
            result.data.other,
            cfg.presentation.selected_color,
        )
    if event is None:
        raise typer.BadParameter(f"Unknown persona: {persona}")

    payload = {
        "persona": event.persona_id,
        "selection": [token_to_dict(token) for token in event.tokens],
        "subSelection": sub_selection_to_dict(event.sub_selection),
    }
    typer.echo(json.dumps(payload, indent=cfg.outputs.indent, default=str))


if __name__ == "__main__":
    app()
