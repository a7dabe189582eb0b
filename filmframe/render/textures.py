# Procedural film textures: grain, dust, light leaks, streaks and doodles.
# Every random generator is split into a pure plan_* step driven by an injected
# random.Random and a draw_* step that paints the plan through a DrawingSession.
from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from PIL import Image, ImageDraw

from filmframe.constants import BLEND_MULTIPLY, BLEND_OVERLAY, BLEND_SCREEN
from filmframe.models import Rect
from filmframe.render.session import DrawingSession, allocate_surface, rgba

GradientStop = tuple[float, tuple[int, int, int], float]

DUST_MIN_COUNT = 15
DUST_COUNT_SPREAD = 15
DUST_COUNTER_DOT_CHANCE = 0.4
DOODLE_COUNT = 8
DOODLE_INSET = 100
DOODLE_SHAPES = ("heart", "star", "spiral")
DOODLE_LINE_WIDTH = 3
_SUPERSAMPLE = 4
_CURVE_STEPS = 12


@dataclass(frozen=True, slots=True)
class DustSpeck:
    x: float
    y: float
    radius: float
    opacity: float
    counter_dot: bool


@dataclass(frozen=True, slots=True)
class LightLeak:
    corner: int
    x: float
    y: float
    radius: float
    opacity: float

    @property
    def stops(self) -> list[GradientStop]:
        return [
            (0.0, (255, 80, 20), self.opacity),
            (0.4, (255, 120, 40), self.opacity * 0.6),
            (1.0, (255, 100, 50), 0.0),
        ]


@dataclass(frozen=True, slots=True)
class GrainStreak:
    x_start: float
    x_end: float
    color: str


@dataclass(frozen=True, slots=True)
class StreakPlan:
    streaks: tuple[GrainStreak, ...]
    line_width: float
    opacity: float


@dataclass(frozen=True, slots=True)
class Doodle:
    shape: str
    x: float
    y: float
    size: float


def radial_gradient_layer(
    size: tuple[int, int],
    center: tuple[float, float],
    inner_radius: float,
    outer_radius: float,
    stops: Sequence[GradientStop],
) -> Image.Image:
    """RGBA layer of a two-circle radial gradient; center is relative to the layer."""
    width, height = size
    xs = np.arange(width, dtype=np.float32) + 0.5 - float(center[0])
    ys = np.arange(height, dtype=np.float32) + 0.5 - float(center[1])
    dist = np.sqrt(xs[np.newaxis, :] ** 2 + ys[:, np.newaxis] ** 2)
    span = max(float(outer_radius) - float(inner_radius), 1e-6)
    t = np.clip((dist - float(inner_radius)) / span, 0.0, 1.0)
    offsets = [stop[0] for stop in stops]
    channel_values = [[float(stop[1][channel]) for stop in stops] for channel in range(3)]
    channel_values.append([max(0.0, min(1.0, stop[2])) * 255.0 for stop in stops])
    planes = [np.clip(np.rint(np.interp(t, offsets, values)), 0, 255).astype(np.uint8) for values in channel_values]
    return Image.fromarray(np.stack(planes, axis=-1))


def create_grain_tile(rng: random.Random, size: int = 512, band: tuple[int, int] = (80, 180)) -> Image.Image:
    """Tileable mid-gray noise with values drawn uniformly from ``[band[0], band[1])``."""
    generator = np.random.default_rng(rng.getrandbits(64))
    values = generator.integers(band[0], band[1], size=(size, size), dtype=np.uint8)
    return Image.fromarray(values).convert("RGB")


def tile_pattern(tile: Image.Image, size: tuple[int, int]) -> Image.Image:
    surface = allocate_surface(size, "RGB")
    for top in range(0, size[1], tile.height):
        for left in range(0, size[0], tile.width):
            surface.paste(tile, (left, top))
    return surface


def draw_grain(session: DrawingSession, rng: random.Random, *, opacity: float, tile_size: int, band: tuple[int, int]) -> None:
    """Overlay the grain pattern across the whole canvas."""
    tile = create_grain_tile(rng, tile_size, band)
    pattern = tile_pattern(tile, session.size)
    tile.close()
    with session.state(blend=BLEND_OVERLAY, alpha=opacity, clip=Rect(0, 0, *session.size)):
        session.composite(pattern)
    pattern.close()


def draw_vignette(
    session: DrawingSession,
    rect: Rect,
    *,
    color: str,
    opacity: float,
    radii: tuple[float, float],
) -> None:
    r, g, b, _ = rgba(color)
    center = (rect.width / 2.0, rect.height / 2.0)
    layer = radial_gradient_layer(
        (rect.width, rect.height),
        center,
        rect.width * radii[0],
        rect.width * radii[1],
        [(0.0, (r, g, b), 0.0), (1.0, (r, g, b), opacity)],
    )
    with session.state(blend=BLEND_MULTIPLY, clip=rect):
        session.composite(layer, (rect.x, rect.y))
    layer.close()


def plan_dust_specks(rng: random.Random, rect: Rect) -> list[DustSpeck]:
    count = DUST_MIN_COUNT + rng.randrange(DUST_COUNT_SPREAD)
    specks: list[DustSpeck] = []
    for _ in range(count):
        x = rect.x + rng.random() * rect.width
        y = rect.y + rng.random() * rect.height
        radius = 1.0 + rng.random() * 2.5
        opacity = 0.08 + rng.random() * 0.15
        counter_dot = rng.random() > 1.0 - DUST_COUNTER_DOT_CHANCE
        specks.append(DustSpeck(x=x, y=y, radius=radius, opacity=opacity, counter_dot=counter_dot))
    return specks


def _draw_disc(session: DrawingSession, x: float, y: float, radius: float, color: str, opacity: float) -> None:
    extent = int(math.ceil(radius)) + 2
    side = extent * 2
    big = Image.new("RGBA", (side * _SUPERSAMPLE, side * _SUPERSAMPLE), (0, 0, 0, 0))
    cx = (x - math.floor(x) + extent) * _SUPERSAMPLE
    cy = (y - math.floor(y) + extent) * _SUPERSAMPLE
    r = radius * _SUPERSAMPLE
    ImageDraw.Draw(big).ellipse((cx - r, cy - r, cx + r, cy + r), fill=rgba(color, opacity))
    layer = big.resize((side, side), Image.Resampling.LANCZOS)
    big.close()
    session.composite(layer, (int(math.floor(x)) - extent, int(math.floor(y)) - extent))
    layer.close()


def draw_dust_specks(session: DrawingSession, specks: Sequence[DustSpeck]) -> None:
    for speck in specks:
        _draw_disc(session, speck.x, speck.y, speck.radius, "#FFFFFF", speck.opacity)
        if speck.counter_dot:
            _draw_disc(session, speck.x + 1, speck.y + 1, speck.radius * 0.5, "#000000", speck.opacity * 0.6)


def plan_light_leak(rng: random.Random, rect: Rect) -> LightLeak:
    corner = rng.randrange(4)
    x = float(rect.x + (rect.width if corner in (1, 3) else 0))
    y = float(rect.y + (rect.height if corner in (2, 3) else 0))
    radius = rect.width * (0.5 + rng.random() * 0.5)
    opacity = 0.08 + rng.random() * 0.08
    return LightLeak(corner=corner, x=x, y=y, radius=radius, opacity=opacity)


def draw_light_leak(session: DrawingSession, rect: Rect, leak: LightLeak) -> None:
    reach = int(math.ceil(leak.radius))
    bounds = Rect(int(leak.x) - reach, int(leak.y) - reach, reach * 2, reach * 2).intersect(rect)
    if bounds.width <= 0 or bounds.height <= 0:
        return
    layer = radial_gradient_layer(
        (bounds.width, bounds.height),
        (leak.x - bounds.x, leak.y - bounds.y),
        0.0,
        leak.radius,
        leak.stops,
    )
    with session.state(blend=BLEND_SCREEN, clip=rect):
        session.composite(layer, (bounds.x, bounds.y))
    layer.close()


def plan_grain_streaks(rng: random.Random, rect: Rect) -> StreakPlan:
    count = 1 + rng.randrange(2)
    line_width = 4.0 + rng.random() * 4.0
    opacity = 0.08 + rng.random() * 0.07
    streaks: list[GrainStreak] = []
    for _ in range(count):
        x_start = rect.x + rng.random() * rect.width
        color = "#FFFFFF" if rng.random() > 0.5 else "#000000"
        x_end = x_start + (rng.random() * 15.0 - 7.5)
        streaks.append(GrainStreak(x_start=x_start, x_end=x_end, color=color))
    return StreakPlan(streaks=tuple(streaks), line_width=line_width, opacity=opacity)


def draw_grain_streaks(session: DrawingSession, rect: Rect, plan: StreakPlan) -> None:
    layer = Image.new("RGBA", (rect.width, rect.height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)
    width = max(1, int(round(plan.line_width)))
    for streak in plan.streaks:
        draw.line(
            [(streak.x_start - rect.x, 0), (streak.x_end - rect.x, rect.height)],
            fill=rgba(streak.color),
            width=width,
        )
    with session.state(alpha=plan.opacity, clip=rect):
        session.composite(layer, (rect.x, rect.y))
    layer.close()


def plan_doodles(rng: random.Random, rect: Rect, count: int = DOODLE_COUNT) -> list[Doodle]:
    doodles: list[Doodle] = []
    span_x = max(0, rect.width - DOODLE_INSET * 2)
    span_y = max(0, rect.height - DOODLE_INSET * 2)
    for _ in range(count):
        x = rect.x + DOODLE_INSET + rng.random() * span_x
        y = rect.y + DOODLE_INSET + rng.random() * span_y
        size = 30.0 + rng.random() * 40.0
        shape = DOODLE_SHAPES[rng.randrange(len(DOODLE_SHAPES))]
        doodles.append(Doodle(shape=shape, x=x, y=y, size=size))
    return doodles


def _quadratic(
    start: tuple[float, float], control: tuple[float, float], end: tuple[float, float]
) -> list[tuple[float, float]]:
    points = []
    for step in range(1, _CURVE_STEPS + 1):
        t = step / float(_CURVE_STEPS)
        u = 1.0 - t
        points.append(
            (
                u * u * start[0] + 2 * u * t * control[0] + t * t * end[0],
                u * u * start[1] + 2 * u * t * control[1] + t * t * end[1],
            )
        )
    return points


def doodle_outline(doodle: Doodle) -> list[tuple[float, float]]:
    """Polyline for one doodle in canvas coordinates."""
    x, y, s = doodle.x, doodle.y, doodle.size
    if doodle.shape == "heart":
        segments = [
            ((x, y), (x - s / 2, y)),
            ((x - s, y), (x - s, y + s / 2)),
            ((x - s, y + s), (x, y + s * 1.5)),
            ((x + s, y + s), (x + s, y + s / 2)),
            ((x + s, y), (x + s / 2, y)),
            ((x, y), (x, y + s / 4)),
        ]
        current = (x, y + s / 4)
        points = [current]
        for control, end in segments:
            points.extend(_quadratic(current, control, end))
            current = end
        return points
    if doodle.shape == "star":
        points = []
        for index in range(5):
            outer = math.radians(18 + index * 72)
            inner = math.radians(54 + index * 72)
            points.append((math.cos(outer) * s + x, -math.sin(outer) * s + y))
            points.append((math.cos(inner) * (s / 2) + x, -math.sin(inner) * (s / 2) + y))
        points.append(points[0])
        return points
    radius = s / 2
    steps = _CURVE_STEPS * 3
    return [
        (x + radius * math.cos(1.5 * math.pi * i / steps), y + radius * math.sin(1.5 * math.pi * i / steps))
        for i in range(steps + 1)
    ]


def draw_doodles(session: DrawingSession, doodles: Sequence[Doodle], *, color: str, opacity: float) -> None:
    pad = DOODLE_LINE_WIDTH + 2
    with session.state(alpha=opacity):
        for doodle in doodles:
            outline = doodle_outline(doodle)
            left = int(math.floor(min(p[0] for p in outline))) - pad
            top = int(math.floor(min(p[1] for p in outline))) - pad
            right = int(math.ceil(max(p[0] for p in outline))) + pad
            bottom = int(math.ceil(max(p[1] for p in outline))) + pad
            layer = Image.new("RGBA", (right - left, bottom - top), (0, 0, 0, 0))
            ImageDraw.Draw(layer).line(
                [(px - left, py - top) for px, py in outline],
                fill=rgba(color),
                width=DOODLE_LINE_WIDTH,
                joint="curve",
            )
            session.composite(layer, (left, top))
            layer.close()
