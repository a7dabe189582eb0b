import json
from pathlib import Path

import pytest
from PIL import Image
from typer.testing import CliRunner

from filmframe import config
from filmframe.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(config, "get_user_data_dir", lambda: tmp_path / "FilmFrame")


def test_layout_command_prints_slots() -> None:
    result = runner.invoke(app, ["layout", "3", "--style", "scrapbook", "--width", "1000", "--height", "1000"])
    assert result.exit_code == 0
    slots = json.loads(result.stdout)
    assert len(slots) == 3
    assert [slot["rotation"] for slot in slots] == [-3.0, 4.0, 2.0]


def test_layout_command_rejects_unknown_style() -> None:
    result = runner.invoke(app, ["layout", "2", "--style", "mosaic"])
    assert result.exit_code == 1


def test_looks_command_lists_builtins() -> None:
    result = runner.invoke(app, ["looks"])
    assert result.exit_code == 0
    assert "default" in result.stdout.split()
    assert "classic" in result.stdout.split()


def test_render_writes_jpeg(tmp_path: Path) -> None:
    source = tmp_path / "beach.png"
    Image.new("RGB", (640, 480), (40, 120, 200)).save(source)
    out_dir = tmp_path / "out"
    result = runner.invoke(
        app,
        ["render", str(source), "--no-frame", "--seed", "3", "--out", str(out_dir), "--name", "{stem}_{layout}.{ext}"],
    )
    assert result.exit_code == 0, result.output
    output = out_dir / "beach_single.jpg"
    assert output.exists()
    with Image.open(output) as image:
        assert image.size == (2080, 2600)


def test_render_reports_decode_failure(tmp_path: Path) -> None:
    source = tmp_path / "broken.jpg"
    source.write_bytes(b"not a jpeg")
    result = runner.invoke(app, ["render", str(source), "--out", str(tmp_path / "out")])
    assert result.exit_code == 1
    assert "Render failed" in result.output
    assert not (tmp_path / "out").exists()


def test_render_rejects_bad_offset(tmp_path: Path) -> None:
    source = tmp_path / "a.png"
    Image.new("RGB", (64, 64)).save(source)
    result = runner.invoke(app, ["render", str(source), "--offset", "2,2"])
    assert result.exit_code == 1


def test_init_config(tmp_path: Path) -> None:
    result = runner.invoke(app, ["init-config"])
    assert result.exit_code == 0
    assert (tmp_path / "FilmFrame" / "Config" / "config.yaml").exists()
