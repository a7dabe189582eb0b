from __future__ import annotations

import json
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from PIL import ImageColor

from filmframe.config import deep_merge
from filmframe.constants import DEFAULT_LOOK
from filmframe.models import ColorGrade, FilmLook

_DEFAULT_COLORS = {
    "paper": "#FAF9F6",
    "wash": "#FFFDF8",
    "warm": "#FFB432",
    "vignette": "#1E140A",
    "shadow_lift": "#141423",
    "caption": "#2A2A2A",
    "date": "#888888",
    "doodle": "#D1C4B9",
    "frame": "#FFFFFF",
}
_DEFAULT_OPACITY = {
    "wash": 0.10,
    "warm": 0.12,
    "collage_warm": 0.08,
    "vignette": 0.25,
    "collage_vignette": 0.20,
    "shadow_lift": 0.15,
    "collage_shadow_lift": 0.12,
    "grain": 0.25,
    "collage_grain": 0.20,
    "doodle": 0.40,
}
_DEFAULT_QUALITY = {"framed": 92, "collage": 90, "frameless": 80}


def list_builtin_looks() -> list[str]:
    files = resources.files("filmframe.looks")
    names = []
    for item in files.iterdir():
        if item.name.endswith((".yaml", ".yml", ".json")):
            names.append(Path(item.name).stem)
    return sorted(set(names))


def _parse_text(text: str, suffix: str) -> dict[str, Any]:
    if suffix == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)
    if not isinstance(data, dict):
        raise ValueError("look file is not a dict")
    return data


def _load_file(path: Path) -> dict[str, Any]:
    return _parse_text(path.read_text(encoding="utf-8"), path.suffix.lower())


def _load_builtin(name: str) -> dict[str, Any]:
    pkg = resources.files("filmframe.looks")
    for suffix in (".yaml", ".yml", ".json"):
        candidate = pkg / f"{name}{suffix}"
        if candidate.is_file():
            return _parse_text(candidate.read_text(encoding="utf-8"), suffix)
    raise FileNotFoundError(f"built-in look not found: {name}")


def _clamp(value: Any, minimum: float, maximum: float, fallback: float) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        parsed = fallback
    return max(minimum, min(maximum, parsed))


def _size_pair(value: Any, fallback: tuple[int, int]) -> tuple[int, int]:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return fallback
    return (int(_clamp(value[0], 64, 12000, fallback[0])), int(_clamp(value[1], 64, 12000, fallback[1])))


def _safe_color(value: Any, fallback: str) -> str:
    text = str(value or "").strip()
    try:
        rgb = ImageColor.getrgb(text)
    except ValueError:
        return fallback
    return "#{:02X}{:02X}{:02X}".format(int(rgb[0]), int(rgb[1]), int(rgb[2]))


def _normalize_grade(data: Any) -> ColorGrade:
    data = data if isinstance(data, dict) else {}
    return ColorGrade(
        contrast=_clamp(data.get("contrast"), 0.0, 4.0, 1.0),
        brightness=_clamp(data.get("brightness"), 0.0, 4.0, 1.0),
        saturation=_clamp(data.get("saturation"), 0.0, 4.0, 1.0),
        sepia=_clamp(data.get("sepia"), 0.0, 1.0, 0.0),
    )


def normalize_look_dict(data: dict[str, Any]) -> FilmLook:
    canvas = data.get("canvas") or {}
    framed_size = _size_pair(canvas.get("framed"), (2400, 3400))
    frameless_size = _size_pair(canvas.get("frameless"), (2080, 2600))
    margin = int(_clamp(data.get("margin"), 0, min(framed_size) // 4, 160))

    colors = dict(_DEFAULT_COLORS)
    for key, value in (data.get("colors") or {}).items():
        if key in colors:
            colors[key] = _safe_color(value, colors[key])

    fonts = {"caption": 220, "date": 70}
    fonts.update(data.get("fonts") or {})

    opacity = dict(_DEFAULT_OPACITY)
    for key, value in (data.get("opacity") or {}).items():
        if key in opacity:
            opacity[key] = _clamp(value, 0.0, 1.0, opacity[key])

    quality = dict(_DEFAULT_QUALITY)
    for key, value in (data.get("quality") or {}).items():
        if key in quality:
            quality[key] = int(_clamp(value, 1, 100, quality[key]))

    grain = data.get("grain") or {}
    band = grain.get("band") or (80, 180)
    band_low = int(_clamp(band[0] if len(band) > 0 else None, 0, 254, 80))
    band_high = int(_clamp(band[1] if len(band) > 1 else None, band_low + 1, 255, 180))

    radii = data.get("vignette_radii") or (0.4, 0.95)
    inner = _clamp(radii[0] if len(radii) > 0 else None, 0.0, 2.0, 0.4)
    outer = _clamp(radii[1] if len(radii) > 1 else None, inner + 0.01, 3.0, 0.95)

    return FilmLook(
        name=str(data.get("name") or "custom"),
        framed_size=framed_size,
        frameless_size=frameless_size,
        margin=margin,
        photo_aspect=_clamp(data.get("photo_aspect"), 0.25, 4.0, 1.25),
        colors=colors,
        fonts={
            "caption": int(_clamp(fonts["caption"], 10, 1000, 220)),
            "date": int(_clamp(fonts["date"], 8, 1000, 70)),
        },
        opacity=opacity,
        quality=quality,
        grade=_normalize_grade(data.get("grade")),
        collage_grade=_normalize_grade(data.get("collage_grade")),
        grain_tile=int(_clamp(grain.get("tile"), 16, 2048, 512)),
        grain_band=(band_low, band_high),
        vignette_radii=(inner, outer),
        caption_offset=int(_clamp(data.get("caption_offset"), 0, 4000, 300)),
        date_offset=int(_clamp(data.get("date_offset"), 0, 4000, 120)),
    )


def load_look(name_or_path: str | None = None) -> FilmLook:
    """Load a built-in look by name or a look file, layered over the default look."""
    base = _load_builtin(DEFAULT_LOOK)
    if not name_or_path or name_or_path == DEFAULT_LOOK:
        return normalize_look_dict(base)
    path = Path(name_or_path)
    if path.exists():
        raw = _load_file(path)
    else:
        raw = _load_builtin(name_or_path)
    return normalize_look_dict(deep_merge(base, raw))
