from __future__ import annotations

import logging
from pathlib import Path

from PIL import ImageDraw, ImageFont

from filmframe.models import FilmLook, Rect
from filmframe.render.session import DrawingSession
from filmframe.render.typography import FACE_SANS, FACE_SCRIPT, ellipsize, letterspace, load_font

LOGGER = logging.getLogger(__name__)


def _draw_centered(
    draw: ImageDraw.ImageDraw,
    text: str,
    *,
    center_x: float,
    baseline_y: float,
    font: ImageFont.ImageFont,
    color: str,
) -> tuple[int, int, int, int]:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    x = int(round(center_x - (left + right) / 2.0))
    ascent = font.getmetrics()[0] if hasattr(font, "getmetrics") else bottom
    y = int(round(baseline_y - ascent))
    draw.text((x, y), text, font=font, fill=color)
    return (x + left, y + top, x + right, y + bottom)


def draw_caption(
    session: DrawingSession,
    photo_rect: Rect,
    look: FilmLook,
    *,
    caption: str,
    date: str,
    script_font: Path | None = None,
    sans_font: Path | None = None,
) -> list[tuple[int, int, int, int]]:
    """Draw the script caption and spaced-out date under the photo area.

    Returns the bounding boxes of the drawn lines, top to bottom.
    """
    draw = ImageDraw.Draw(session.canvas)
    center_x = session.size[0] / 2.0
    caption_y = photo_rect.y + photo_rect.height + look.caption_offset
    date_y = caption_y + look.date_offset
    boxes: list[tuple[int, int, int, int]] = []

    caption_text = (caption or "").strip()
    if caption_text:
        font = load_font(script_font, look.fonts["caption"], FACE_SCRIPT)
        line = ellipsize(draw, caption_text, font, max_width=photo_rect.width)
        boxes.append(
            _draw_centered(draw, line, center_x=center_x, baseline_y=caption_y, font=font, color=look.colors["caption"])
        )

    date_text = (date or "").strip()
    if date_text:
        font = load_font(sans_font, look.fonts["date"], FACE_SANS)
        line = ellipsize(draw, letterspace(date_text), font, max_width=photo_rect.width)
        boxes.append(
            _draw_centered(draw, line, center_x=center_x, baseline_y=date_y, font=font, color=look.colors["date"])
        )
    LOGGER.debug("caption lines drawn=%s", len(boxes))
    return boxes
