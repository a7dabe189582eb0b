import asyncio
import dataclasses
import io

import numpy as np
import pytest
from PIL import Image

from filmframe import compositor
from filmframe import (
    CropServiceError,
    FocalOffset,
    ImageDecodeError,
    RenderOptions,
    RenderSpec,
    SourceEntry,
    render,
    render_collage,
    render_single,
    render_sync,
)
from filmframe.look_loader import load_look
from filmframe.models import ColorGrade


def _solid(color, size=(1200, 900)) -> Image.Image:
    return Image.new("RGB", size, color)


def _png(color, size=(600, 400)) -> bytes:
    buffer = io.BytesIO()
    _solid(color, size).save(buffer, format="PNG")
    return buffer.getvalue()


def _decode(data: bytes) -> np.ndarray:
    with Image.open(io.BytesIO(data)) as image:
        assert image.format == "JPEG"
        return np.asarray(image.convert("RGB")).astype(np.int32)


def test_framed_single_is_a_polaroid_with_paper_margin() -> None:
    result = asyncio.run(
        render_single(
            SourceEntry(_solid((200, 40, 40))),
            "Summer",
            "Aug 12, 2024",
            options=RenderOptions(seed=1),
        )
    )
    assert (result.width, result.height) == (2400, 3400)
    assert result.quality == 92
    assert result.mime == "image/jpeg"
    assert result.to_data_uri().startswith("data:image/jpeg;base64,")

    pixels = _decode(result.data)
    assert pixels.shape == (3400, 2400, 3)
    # paper margin stays paper-coloured, photo area carries the red source
    assert pixels[40, 40].min() >= 235
    r, g, _ = pixels[160 + 1300, 1200]
    assert r > g + 80


def test_frameless_grid_collage_has_dark_gutter() -> None:
    entries = (SourceEntry(_png((230, 230, 230))), SourceEntry(_png((230, 230, 230))))
    result = asyncio.run(
        render_collage(entries, "ignored", "", style="grid", framed=False, options=RenderOptions(seed=2))
    )
    assert (result.width, result.height) == (2080, 2600)
    assert result.quality == 80

    pixels = _decode(result.data)
    # gutter is round(2080 * 0.03) = 62px between rows 1269 and 1331
    assert pixels[1285:1315, 900:1180].mean() < 40
    assert pixels[560:640, 1000:1080].mean() > 150
    assert pixels[1960:2040, 1000:1080].mean() > 150


def test_framed_scrapbook_collage() -> None:
    entries = [SourceEntry(_solid((30, 30, 200))) for _ in range(3)]
    spec = RenderSpec(images=tuple(entries), caption="Trip", date="2024", layout="scrapbook", framed=True)
    result = render_sync(spec, RenderOptions(seed=3))
    assert (result.width, result.height) == (2400, 3400)
    assert result.quality == 90

    pixels = _decode(result.data)
    # centre of the first tilted print
    r, _, b = pixels[810, 1159]
    assert b > r + 40


def test_failing_image_rejects_whole_collage() -> None:
    entries = [SourceEntry(_png((10, 10, 10))) for _ in range(4)]
    entries[2] = SourceEntry(b"corrupt")
    with pytest.raises(ImageDecodeError):
        asyncio.run(render_collage(entries, style="grid", options=RenderOptions(seed=4)))


def test_failing_cropper_rejects_render() -> None:
    def broken(image, width, height):
        raise RuntimeError("saliency model unavailable")

    with pytest.raises(CropServiceError):
        asyncio.run(
            render_single(SourceEntry(_solid((1, 2, 3))), framed=False, options=RenderOptions(cropper=broken))
        )


def test_images_beyond_four_are_ignored() -> None:
    entries = [SourceEntry(_png((120, 120, 120))) for _ in range(4)]
    entries.append(SourceEntry(b"never decoded"))
    result = asyncio.run(render_collage(entries, style="grid", framed=False, options=RenderOptions(seed=5)))
    assert (result.width, result.height) == (2080, 2600)


def test_focal_offsets_are_index_aligned() -> None:
    split = Image.new("RGB", (2000, 1000), (220, 20, 20))
    split.paste((20, 20, 220), (1000, 0, 2000, 1000))
    entries = (
        SourceEntry(split, FocalOffset(0.0, 0.5)),
        SourceEntry(split, FocalOffset(1.0, 0.5)),
    )
    result = asyncio.run(render_collage(entries, style="grid", framed=False, options=RenderOptions(seed=6)))
    pixels = _decode(result.data)
    top_r, _, top_b = pixels[634, 1040]
    bottom_r, _, bottom_b = pixels[1965, 1040]
    assert top_r > top_b
    assert bottom_b > bottom_r
    assert split.size == (2000, 1000)


def test_same_seed_renders_identical_bytes() -> None:
    entry = SourceEntry(_solid((90, 140, 60), (800, 800)))
    first = asyncio.run(render_single(entry, framed=False, options=RenderOptions(seed=9)))
    second = asyncio.run(render_single(entry, framed=False, options=RenderOptions(seed=9)))
    assert first.data == second.data


def test_quality_override_and_single_layout_validation() -> None:
    entry = SourceEntry(_solid((90, 140, 60), (400, 400)))
    result = asyncio.run(render_single(entry, framed=False, options=RenderOptions(seed=1, quality=55)))
    assert result.quality == 55
    with pytest.raises(ValueError):
        asyncio.run(render(RenderSpec(images=(entry, entry), layout="single")))
    with pytest.raises(ValueError):
        RenderSpec(images=())


def _below_area(data: bytes) -> np.ndarray:
    # framed area is 2080x2600 at (160, 160); caption and date sit underneath
    return _decode(data)[2800:3400, 160:2240]


def test_framed_single_draws_caption_below_photo() -> None:
    entry = SourceEntry(_solid((200, 40, 40)))
    with_text = asyncio.run(render_single(entry, "Summer", "Aug 12, 2024", options=RenderOptions(seed=1)))
    plain = asyncio.run(render_single(entry, options=RenderOptions(seed=1)))
    assert not np.array_equal(_below_area(with_text.data), _below_area(plain.data))


def test_framed_grid_draws_caption_below_area() -> None:
    entries = (SourceEntry(_png((90, 90, 90))), SourceEntry(_png((90, 90, 90))))
    with_text = asyncio.run(
        render_collage(entries, "Road trip", "May 2, 2024", style="grid", options=RenderOptions(seed=2))
    )
    plain = asyncio.run(render_collage(entries, style="grid", options=RenderOptions(seed=2)))
    assert not np.array_equal(_below_area(with_text.data), _below_area(plain.data))


@pytest.mark.parametrize("style,framed", [("scrapbook", True), ("scrapbook", False), ("grid", False)])
def test_collage_without_caption_area_ignores_text(style: str, framed: bool) -> None:
    entries = tuple(SourceEntry(_png((30, 30, 200))) for _ in range(3))
    with_text = asyncio.run(
        render_collage(entries, "XXXXXXXX", "Feb 14, 2025", style=style, framed=framed, options=RenderOptions(seed=1))
    )
    plain = asyncio.run(render_collage(entries, style=style, framed=framed, options=RenderOptions(seed=1)))
    assert with_text.data == plain.data


def test_collage_photos_are_drawn_ungraded() -> None:
    look = dataclasses.replace(load_look(), collage_grade=ColorGrade(saturation=0.0))
    entries = (SourceEntry(_solid((220, 20, 20))), SourceEntry(_solid((220, 20, 20))))
    result = asyncio.run(
        render_collage(entries, style="grid", framed=False, options=RenderOptions(look=look, seed=7))
    )
    r, g, _ = _decode(result.data)[634, 1040]
    assert r > g + 80


@pytest.mark.parametrize("collage", [False, True])
def test_crop_failure_releases_downscaled_source(monkeypatch, collage: bool) -> None:
    released: list[tuple[int, int]] = []

    def limited(image, max_edge):
        copy = image.copy()
        copy.close = lambda: released.append(copy.size)
        return copy

    def broken(image, width, height):
        raise RuntimeError("saliency model unavailable")

    monkeypatch.setattr(compositor, "limit_long_edge", limited)
    options = RenderOptions(cropper=broken, seed=8)
    with pytest.raises(CropServiceError):
        if collage:
            asyncio.run(render_collage([SourceEntry(_solid((5, 5, 5)))] * 2, framed=False, options=options))
        else:
            asyncio.run(render_single(SourceEntry(_solid((5, 5, 5))), framed=False, options=options))
    assert released == [(1200, 900)]
