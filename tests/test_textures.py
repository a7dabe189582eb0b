import random

import numpy as np
import pytest

from filmframe.models import Rect
from filmframe.render.session import DrawingSession
from filmframe.render.textures import (
    DOODLE_INSET,
    DOODLE_SHAPES,
    Doodle,
    create_grain_tile,
    doodle_outline,
    draw_dust_specks,
    draw_light_leak,
    plan_doodles,
    plan_dust_specks,
    plan_grain_streaks,
    plan_light_leak,
    radial_gradient_layer,
)

RECT = Rect(160, 160, 2080, 2600)


@pytest.mark.parametrize("seed", range(20))
def test_dust_speck_counts_and_ranges(seed: int) -> None:
    specks = plan_dust_specks(random.Random(seed), RECT)
    assert 15 <= len(specks) <= 29
    for speck in specks:
        assert RECT.x <= speck.x <= RECT.x + RECT.width
        assert RECT.y <= speck.y <= RECT.y + RECT.height
        assert 1.0 <= speck.radius <= 3.5
        assert 0.08 <= speck.opacity <= 0.23


def test_dust_specks_are_seed_deterministic() -> None:
    assert plan_dust_specks(random.Random(3), RECT) == plan_dust_specks(random.Random(3), RECT)
    assert plan_dust_specks(random.Random(3), RECT) != plan_dust_specks(random.Random(4), RECT)


@pytest.mark.parametrize("seed", range(20))
def test_light_leak_sits_on_a_corner(seed: int) -> None:
    leak = plan_light_leak(random.Random(seed), RECT)
    assert leak.x in (RECT.x, RECT.x + RECT.width)
    assert leak.y in (RECT.y, RECT.y + RECT.height)
    assert RECT.width * 0.5 <= leak.radius <= RECT.width
    assert 0.08 <= leak.opacity <= 0.16
    offsets = [stop[0] for stop in leak.stops]
    assert offsets == [0.0, 0.4, 1.0]
    assert leak.stops[-1][2] == 0.0


@pytest.mark.parametrize("seed", range(20))
def test_grain_streak_plan_ranges(seed: int) -> None:
    plan = plan_grain_streaks(random.Random(seed), RECT)
    assert 1 <= len(plan.streaks) <= 2
    assert 4.0 <= plan.line_width <= 8.0
    assert 0.08 <= plan.opacity <= 0.15
    for streak in plan.streaks:
        assert abs(streak.x_end - streak.x_start) <= 7.5
        assert streak.color in ("#FFFFFF", "#000000")


def test_doodles_stay_inside_inset() -> None:
    doodles = plan_doodles(random.Random(11), RECT)
    assert len(doodles) == 8
    for doodle in doodles:
        assert doodle.shape in DOODLE_SHAPES
        assert 30.0 <= doodle.size <= 70.0
        assert RECT.x + DOODLE_INSET <= doodle.x <= RECT.x + RECT.width - DOODLE_INSET
        assert RECT.y + DOODLE_INSET <= doodle.y <= RECT.y + RECT.height - DOODLE_INSET


@pytest.mark.parametrize("shape", DOODLE_SHAPES)
def test_doodle_outline_is_a_polyline(shape: str) -> None:
    points = doodle_outline(Doodle(shape=shape, x=500.0, y=500.0, size=50.0))
    assert len(points) > 4
    xs = [p[0] for p in points]
    assert max(xs) - min(xs) > 10


def test_grain_tile_values_within_band_and_seeded() -> None:
    tile = create_grain_tile(random.Random(5), 64, (80, 180))
    values = np.asarray(tile)
    assert tile.size == (64, 64)
    assert values.min() >= 80
    assert values.max() < 180
    again = np.asarray(create_grain_tile(random.Random(5), 64, (80, 180)))
    assert np.array_equal(values, again)


def test_radial_gradient_interpolates_stops() -> None:
    layer = radial_gradient_layer(
        (200, 200),
        (100, 100),
        20,
        80,
        [(0.0, (255, 0, 0), 0.0), (1.0, (255, 0, 0), 1.0)],
    )
    assert layer.mode == "RGBA"
    assert layer.getpixel((100, 100))[3] == 0
    assert layer.getpixel((0, 0))[3] == 255
    assert 0 < layer.getpixel((150, 100))[3] < 255


def test_light_leak_only_brightens_and_stays_clipped() -> None:
    rect = Rect(10, 10, 100, 100)
    leak = plan_light_leak(random.Random(0), rect)
    with DrawingSession.allocate((120, 120), "#404040") as session:
        draw_light_leak(session, rect, leak)
        assert session.canvas.getpixel((5, 5)) == (64, 64, 64)
        corner = (int(min(leak.x, 109)), int(min(leak.y, 109)))
        r, g, b = session.canvas.getpixel(corner)
        assert r > 64
        assert g >= 64 and b >= 64


def test_dust_specks_are_drawn() -> None:
    rect = Rect(0, 0, 64, 64)
    specks = plan_dust_specks(random.Random(2), rect)
    with DrawingSession.allocate((64, 64), "#000000") as session:
        draw_dust_specks(session, specks)
        assert np.asarray(session.canvas).max() > 0
