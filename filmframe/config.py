from __future__ import annotations

import copy
import os
import platform
from pathlib import Path
from typing import Any

import yaml

from filmframe.constants import CROPPER_CENTER, DEFAULT_LOOK, LAYOUT_SINGLE

DEFAULT_CONFIG: dict[str, Any] = {
    "look": DEFAULT_LOOK,
    "layout": LAYOUT_SINGLE,
    "framed": True,
    "quality": None,
    "seed": None,
    "script_font": None,
    "sans_font": None,
    "cropper": CROPPER_CENTER,
    "max_source_edge": 0,
    "name_template": "{stem}__polaroid.{ext}",
}


def get_user_data_dir() -> Path:
    """Return a user-writable directory for configuration."""
    system_name = platform.system().lower()
    if system_name == "windows":
        base = (
            os.environ.get("APPDATA")
            or os.environ.get("LOCALAPPDATA")
            or str(Path.home() / "AppData" / "Roaming")
        )
        return Path(base) / "FilmFrame"
    if system_name == "darwin":
        return Path.home() / "Library" / "Application Support" / "FilmFrame"

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        return Path(xdg_config_home) / "FilmFrame"
    return Path.home() / ".config" / "FilmFrame"


def get_config_path() -> Path:
    return get_user_data_dir() / "Config" / "config.yaml"


def deep_merge(base: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in incoming.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None) -> dict[str, Any]:
    cfg_path = path or get_config_path()
    if not cfg_path.exists():
        return copy.deepcopy(DEFAULT_CONFIG)

    text = cfg_path.read_text(encoding="utf-8")
    loaded = yaml.safe_load(text) or {}
    if not isinstance(loaded, dict):
        loaded = {}
    return deep_merge(DEFAULT_CONFIG, loaded)


def write_default_config(path: Path | None = None, force: bool = False) -> Path:
    cfg_path = path or get_config_path()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    if cfg_path.exists() and not force:
        return cfg_path
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    cfg_path.write_text(yaml.safe_dump(cfg, sort_keys=False, allow_unicode=True), encoding="utf-8")
    return cfg_path
