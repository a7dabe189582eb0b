"""Slot layout engine for multi-photo collages.

Templates are declarative tables keyed by image count. Grid templates are
expressed as rows of relative cell widths plus each row's share of the
height; scrapbook templates are fractional rectangles with a tilt.
"""
from __future__ import annotations

from dataclasses import dataclass

from filmframe.constants import LAYOUT_GRID, LAYOUT_SCRAPBOOK, MAX_COLLAGE_SLOTS
from filmframe.models import Rect, Slot

GRID_GUTTER_FRACTION = 0.03
SCRAPBOOK_FALLBACK_COUNT = 2
SCRAPBOOK_FRAME_PADDING = 0.08
SCRAPBOOK_FRAME_BOTTOM = 0.25


@dataclass(frozen=True, slots=True)
class GridRow:
    height_share: float
    columns: int


@dataclass(frozen=True, slots=True)
class ScrapbookCell:
    x: float
    y: float
    width: float
    height: float
    rotation: float


GRID_TEMPLATES: dict[int, tuple[GridRow, ...]] = {
    1: (GridRow(1.0, 1),),
    2: (GridRow(0.5, 1), GridRow(0.5, 1)),
    3: (GridRow(0.55, 1), GridRow(0.45, 2)),
    4: (GridRow(0.5, 2), GridRow(0.5, 2)),
}

SCRAPBOOK_TEMPLATES: dict[int, tuple[ScrapbookCell, ...]] = {
    2: (
        ScrapbookCell(0.05, 0.10, 0.62, 0.48, -4),
        ScrapbookCell(0.32, 0.40, 0.62, 0.48, 6),
    ),
    3: (
        ScrapbookCell(0.22, 0.05, 0.52, 0.40, -3),
        ScrapbookCell(0.05, 0.48, 0.52, 0.40, 4),
        ScrapbookCell(0.42, 0.52, 0.52, 0.40, 2),
    ),
    4: (
        ScrapbookCell(0.08, 0.10, 0.42, 0.36, -5),
        ScrapbookCell(0.48, 0.06, 0.42, 0.36, 4),
        ScrapbookCell(0.06, 0.52, 0.42, 0.36, -3),
        ScrapbookCell(0.50, 0.56, 0.42, 0.36, 6),
    ),
}


def clamp_count(count: int) -> int:
    return max(0, min(int(count), MAX_COLLAGE_SLOTS))


def grid_gutter(area: Rect) -> int:
    return int(round(min(area.width, area.height) * GRID_GUTTER_FRACTION))


def _split(total: int, shares: list[float]) -> list[int]:
    """Integer lengths proportional to ``shares`` that sum exactly to ``total``."""
    weight = sum(shares)
    sizes: list[int] = []
    consumed = 0
    running = 0.0
    for share in shares:
        running += share
        edge = int(round(total * running / weight))
        sizes.append(edge - consumed)
        consumed = edge
    return sizes


def grid_slots(count: int, area: Rect) -> list[Slot]:
    count = clamp_count(count)
    if count == 0:
        return []
    rows = GRID_TEMPLATES[count]
    gutter = grid_gutter(area)
    heights = _split(area.height - gutter * (len(rows) - 1), [row.height_share for row in rows])
    slots: list[Slot] = []
    y = area.y
    for row, row_height in zip(rows, heights):
        widths = _split(area.width - gutter * (row.columns - 1), [1.0] * row.columns)
        x = area.x
        for cell_width in widths:
            slots.append(Slot(x=x, y=y, width=cell_width, height=row_height))
            x += cell_width + gutter
        y += row_height + gutter
    return slots


def scrapbook_slots(count: int, area: Rect) -> list[Slot]:
    count = clamp_count(count)
    if count == 0:
        return []
    cells = SCRAPBOOK_TEMPLATES.get(count, SCRAPBOOK_TEMPLATES[SCRAPBOOK_FALLBACK_COUNT])
    slots = [
        Slot(
            x=area.x + int(round(cell.x * area.width)),
            y=area.y + int(round(cell.y * area.height)),
            width=int(round(cell.width * area.width)),
            height=int(round(cell.height * area.height)),
            rotation=float(cell.rotation),
        )
        for cell in cells
    ]
    return slots[:count]


def compute_slots(count: int, style: str, area: Rect) -> list[Slot]:
    """Ordered slots, index-aligned with the first ``min(count, 4)`` images."""
    if style == LAYOUT_GRID:
        return grid_slots(count, area)
    if style == LAYOUT_SCRAPBOOK:
        return scrapbook_slots(count, area)
    raise ValueError(f"unsupported collage style: {style}")


def scrapbook_frame_margins(slot: Slot) -> tuple[int, int]:
    """(side/top padding, bottom padding) of the white backing frame."""
    return (
        int(round(slot.width * SCRAPBOOK_FRAME_PADDING)),
        int(round(slot.width * SCRAPBOOK_FRAME_BOTTOM)),
    )
