from pathlib import Path

from filmframe.discover import discover_inputs, expand_sources


def _tree(root: Path) -> None:
    (root / "sub").mkdir()
    for name in ("b.PNG", "a.jpg", "notes.txt", "sub/c.webp"):
        (root / name).write_bytes(b"x")


def test_discover_inputs_filters_and_sorts(tmp_path: Path) -> None:
    _tree(tmp_path)
    assert [p.name for p in discover_inputs(tmp_path)] == ["a.jpg", "b.PNG"]
    assert [p.name for p in discover_inputs(tmp_path, recursive=True)] == ["a.jpg", "b.PNG", "c.webp"]
    assert discover_inputs(tmp_path / "missing") == []
    assert discover_inputs(tmp_path / "notes.txt") == []


def test_expand_sources_keeps_urls_and_expands_directories(tmp_path: Path) -> None:
    _tree(tmp_path)
    expanded = expand_sources(["https://example.com/x.jpg", str(tmp_path), "data:image/png;base64,AA=="])
    assert expanded[0] == "https://example.com/x.jpg"
    assert [Path(p).name for p in expanded[1:3]] == ["a.jpg", "b.PNG"]
    assert expanded[3].startswith("data:")
