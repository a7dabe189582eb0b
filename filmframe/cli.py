from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import NoReturn

import typer

from filmframe.compositor import RenderOptions, render_sync
from filmframe.config import load_config, write_default_config
from filmframe.constants import (
    COLLAGE_STYLES,
    LAYOUT_GRID,
    LAYOUT_SINGLE,
    VALID_LAYOUTS,
)
from filmframe.crop import build_cropper
from filmframe.discover import expand_sources
from filmframe.errors import RenderError
from filmframe.layout import compute_slots
from filmframe.look_loader import list_builtin_looks, load_look
from filmframe.models import FocalOffset, Rect, RenderSpec, SourceEntry
from filmframe.naming import build_output_name

app = typer.Typer(add_completion=False, no_args_is_help=True, help="Film-look polaroid and collage CLI.")
LOGGER = logging.getLogger("filmframe")


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _fail(message: str) -> NoReturn:
    typer.secho(message, err=True, fg=typer.colors.RED)
    raise typer.Exit(1)


def _parse_offsets(values: list[str], count: int) -> list[FocalOffset | None]:
    offsets: list[FocalOffset | None] = []
    for value in values:
        token = value.strip().lower()
        offsets.append(None if token in {"", "auto", "-"} else FocalOffset.parse(token))
    if len(offsets) > count:
        raise ValueError(f"{len(offsets)} offsets given for {count} images")
    return offsets + [None] * (count - len(offsets))


def _source_path(source: str) -> Path:
    if source.lower().startswith(("http://", "https://", "data:")):
        return Path("image")
    return Path(source)


def _default_out_dir(first: str) -> Path:
    path = _source_path(first)
    if path.exists():
        return path.parent / "output"
    return Path.cwd() / "output"


def _save(data: bytes, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


@app.command()
def render(
    inputs: list[str] = typer.Argument(..., help="Image files, directories, URLs or data URIs."),
    caption: str = typer.Option("", "--caption", help="Script caption under the photo."),
    date: str = typer.Option("", "--date", help="Date line under the caption."),
    layout: str | None = typer.Option(None, "--layout", help="single|grid|scrapbook"),
    framed: bool | None = typer.Option(None, "--frame/--no-frame", help="Polaroid paper frame."),
    offsets: list[str] = typer.Option([], "--offset", help='Focal offset "x,y" per image, in input order.'),
    look: str | None = typer.Option(None, "--look", help="Built-in look name or .yaml/.json path."),
    quality: int | None = typer.Option(None, "--quality", min=1, max=100),
    seed: int | None = typer.Option(None, "--seed", help="Seed for reproducible textures."),
    cropper: str | None = typer.Option(None, "--cropper", help="center|smartcrop"),
    recursive: bool = typer.Option(False, "--recursive", help="Recursively scan input directories."),
    out: Path | None = typer.Option(None, "--out", help="Output directory."),
    name_template: str | None = typer.Option(None, "--name", help='Output filename template, e.g. "{stem}__{layout}.{ext}"'),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Render one photo as a polaroid, or several as a collage."""
    _setup_logging(log_level)
    cfg = load_config()

    sources = expand_sources(inputs, recursive=recursive)
    if not sources:
        typer.echo("No supported image files found.")
        raise typer.Exit(0)

    layout_val = (layout or str(cfg.get("layout", LAYOUT_SINGLE))).lower()
    if layout_val not in VALID_LAYOUTS:
        _fail(f"layout must be one of {', '.join(sorted(VALID_LAYOUTS))}, got: {layout_val!r}")
    if layout_val == LAYOUT_SINGLE and len(sources) > 1:
        LOGGER.info("%s inputs given, rendering a grid collage", len(sources))
        layout_val = LAYOUT_GRID
    framed_val = bool(cfg.get("framed", True)) if framed is None else framed

    try:
        parsed_offsets = _parse_offsets(offsets, len(sources))
        options = RenderOptions(
            look=load_look(look or cfg.get("look")),
            cropper=build_cropper(cropper or str(cfg.get("cropper", "center"))),
            seed=seed if seed is not None else cfg.get("seed"),
            quality=quality if quality is not None else cfg.get("quality"),
            script_font=Path(cfg["script_font"]) if cfg.get("script_font") else None,
            sans_font=Path(cfg["sans_font"]) if cfg.get("sans_font") else None,
            max_source_edge=int(cfg.get("max_source_edge") or 0),
        )
        spec = RenderSpec(
            images=tuple(SourceEntry(source, offset) for source, offset in zip(sources, parsed_offsets)),
            caption=caption,
            date=date,
            layout=layout_val,
            framed=framed_val,
        )
        output_name = build_output_name(
            name_template or str(cfg.get("name_template", "{stem}__polaroid.{ext}")),
            _source_path(sources[0]),
            caption=caption,
            date=date,
            layout=layout_val,
            extension="jpg",
        )
    except (ValueError, FileNotFoundError, RenderError) as exc:
        _fail(str(exc))

    out_dir = out or _default_out_dir(sources[0])
    output_file = out_dir / output_name

    t0 = time.perf_counter()
    try:
        result = render_sync(spec, options)
    except RenderError as exc:
        LOGGER.error("FAIL %s", exc)
        _fail(f"Render failed: {exc}")
    _save(result.data, output_file)
    LOGGER.info(
        "OK   %s image(s) -> %s  %sx%s q=%s (%.2fs)",
        len(spec.images),
        output_file.name,
        result.width,
        result.height,
        result.quality,
        time.perf_counter() - t0,
    )
    typer.echo(str(output_file))


@app.command("layout")
def layout_command(
    count: int = typer.Argument(..., min=0, help="Number of images."),
    style: str = typer.Option(LAYOUT_GRID, "--style", help="grid|scrapbook"),
    width: int = typer.Option(2080, "--width", min=1),
    height: int = typer.Option(2600, "--height", min=1),
) -> None:
    """Print the collage slots for COUNT images as JSON."""
    if style not in COLLAGE_STYLES:
        _fail(f"style must be one of {', '.join(sorted(COLLAGE_STYLES))}, got: {style!r}")
    slots = compute_slots(count, style, Rect(0, 0, width, height))
    typer.echo(json.dumps([slot.to_dict() for slot in slots], indent=2))


@app.command("looks")
def looks_command() -> None:
    """List the built-in film looks."""
    for name in list_builtin_looks():
        typer.echo(name)


@app.command("init-config")
def init_config(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config file."),
) -> None:
    path = write_default_config(force=force)
    typer.echo(f"Config initialized: {path}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
