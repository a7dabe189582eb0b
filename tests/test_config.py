from pathlib import Path

from filmframe.config import DEFAULT_CONFIG, deep_merge, load_config, write_default_config


def test_load_config_without_file_returns_defaults(tmp_path: Path) -> None:
    cfg = load_config(tmp_path / "missing.yaml")
    assert cfg == DEFAULT_CONFIG
    assert cfg is not DEFAULT_CONFIG


def test_user_config_is_merged_over_defaults(tmp_path: Path) -> None:
    path = write_default_config(tmp_path / "Config" / "config.yaml")
    assert path.exists()
    path.write_text("look: classic\nframed: false\n", encoding="utf-8")
    cfg = load_config(path)
    assert cfg["look"] == "classic"
    assert cfg["framed"] is False
    assert cfg["name_template"] == DEFAULT_CONFIG["name_template"]


def test_write_default_config_keeps_existing_file(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("seed: 7\n", encoding="utf-8")
    write_default_config(path)
    assert path.read_text(encoding="utf-8") == "seed: 7\n"
    write_default_config(path, force=True)
    assert load_config(path)["seed"] is None


def test_deep_merge_nested() -> None:
    merged = deep_merge({"a": {"b": 1, "c": 2}}, {"a": {"c": 3}, "d": 4})
    assert merged == {"a": {"b": 1, "c": 3}, "d": 4}
