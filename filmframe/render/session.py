# Scoped drawing state over a single RGB canvas (PIL only).
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator

from PIL import Image, ImageChops, ImageColor

from filmframe.constants import (
    BLEND_MULTIPLY,
    BLEND_NORMAL,
    BLEND_OVERLAY,
    BLEND_SCREEN,
    VALID_BLEND_MODES,
)
from filmframe.errors import CanvasUnavailableError
from filmframe.models import ColorGrade, Rect
from filmframe.render.grading import apply_color_grade

LOGGER = logging.getLogger(__name__)

_BLEND_FUNCS: dict[str, Callable[[Image.Image, Image.Image], Image.Image]] = {
    BLEND_SCREEN: ImageChops.screen,
    BLEND_MULTIPLY: ImageChops.multiply,
    BLEND_OVERLAY: ImageChops.overlay,
}


@dataclass(frozen=True, slots=True)
class DrawState:
    blend: str = BLEND_NORMAL
    alpha: float = 1.0
    clip: Rect | None = None
    grade: ColorGrade | None = None


def allocate_surface(size: tuple[int, int], mode: str = "RGB", color=0) -> Image.Image:
    width, height = size
    if width <= 0 or height <= 0:
        raise CanvasUnavailableError(f"invalid surface size: {width}x{height}")
    try:
        return Image.new(mode, (int(width), int(height)), color=color)
    except (MemoryError, ValueError) as exc:
        raise CanvasUnavailableError(f"cannot allocate {width}x{height} {mode} surface: {exc}") from exc


def rgba(color: str, opacity: float = 1.0) -> tuple[int, int, int, int]:
    rgb = ImageColor.getrgb(color)
    return (int(rgb[0]), int(rgb[1]), int(rgb[2]), int(round(max(0.0, min(1.0, opacity)) * 255)))


def _scale_mask(mask: Image.Image, alpha: float) -> Image.Image:
    return mask.point(lambda value: int(round(value * alpha)))


class DrawingSession:
    """One render's canvas plus a save/restore stack of blend, alpha, clip and grade."""

    def __init__(self, canvas: Image.Image) -> None:
        if canvas.mode != "RGB":
            raise CanvasUnavailableError(f"drawing session needs an RGB canvas, got {canvas.mode}")
        self.canvas = canvas
        self._stack: list[DrawState] = [DrawState()]

    @classmethod
    def allocate(cls, size: tuple[int, int], background: str | None = None) -> "DrawingSession":
        canvas = allocate_surface(size, "RGB", color=background or 0)
        LOGGER.debug("canvas %sx%s background=%s", canvas.width, canvas.height, background)
        return cls(canvas)

    def __enter__(self) -> "DrawingSession":
        return self

    def __exit__(self, *_exc) -> None:
        self.close()

    def close(self) -> None:
        self.canvas.close()
        self._stack = [DrawState()]

    @property
    def size(self) -> tuple[int, int]:
        return self.canvas.size

    @property
    def current(self) -> DrawState:
        return self._stack[-1]

    @property
    def depth(self) -> int:
        return len(self._stack)

    @contextmanager
    def state(
        self,
        *,
        blend: str | None = None,
        alpha: float | None = None,
        clip: Rect | None = None,
        grade: ColorGrade | None = None,
    ) -> Iterator["DrawingSession"]:
        if blend is not None and blend not in VALID_BLEND_MODES:
            raise ValueError(f"unsupported blend mode: {blend}")
        current = self.current
        if clip is None:
            next_clip = current.clip
        elif current.clip is None:
            next_clip = clip
        else:
            next_clip = current.clip.intersect(clip)
        self._stack.append(
            DrawState(
                blend=blend if blend is not None else current.blend,
                alpha=max(0.0, min(1.0, alpha)) if alpha is not None else current.alpha,
                clip=next_clip,
                grade=grade if grade is not None else current.grade,
            )
        )
        try:
            yield self
        finally:
            self._stack.pop()

    def _target_rect(self, origin: tuple[int, int], size: tuple[int, int]) -> Rect:
        rect = Rect(int(origin[0]), int(origin[1]), int(size[0]), int(size[1]))
        rect = rect.intersect(Rect(0, 0, self.canvas.width, self.canvas.height))
        clip = self.current.clip
        if clip is not None:
            rect = rect.intersect(clip)
        return rect

    def composite(self, layer: Image.Image, origin: tuple[int, int] = (0, 0)) -> None:
        """Blend an RGB or RGBA layer onto the canvas under the current state."""
        state = self.current
        if state.alpha <= 0.0:
            return
        target = self._target_rect(origin, layer.size)
        if target.width <= 0 or target.height <= 0:
            return
        ox, oy = int(origin[0]), int(origin[1])
        src = layer.crop(
            (target.x - ox, target.y - oy, target.x - ox + target.width, target.y - oy + target.height)
        )
        mask: Image.Image | None = None
        if src.mode == "RGBA":
            mask = src.getchannel("A")
            src = src.convert("RGB")
        elif src.mode != "RGB":
            src = src.convert("RGB")
        if state.alpha < 1.0:
            mask = _scale_mask(mask or Image.new("L", src.size, 255), state.alpha)

        base = self.canvas.crop(target.box)
        if state.blend == BLEND_NORMAL:
            blended = src
        else:
            blended = _BLEND_FUNCS[state.blend](base, src)
        result = blended if mask is None else Image.composite(blended, base, mask)
        self.canvas.paste(result, (target.x, target.y))
        temps = [src, base]
        if blended is not src:
            temps.append(blended)
        if result is not blended:
            temps.append(result)
        if mask is not None:
            temps.append(mask)
        for temp in temps:
            temp.close()

    def fill_rect(self, rect: Rect, color: str, opacity: float = 1.0) -> None:
        if rect.width <= 0 or rect.height <= 0:
            return
        fill = rgba(color, opacity)
        grade = self.current.grade
        if grade is not None and not grade.is_identity:
            swatch = Image.new("RGB", (1, 1), fill[:3])
            graded = apply_color_grade(swatch, grade)
            fill = graded.getpixel((0, 0)) + (fill[3],)
            swatch.close()
            graded.close()
        layer = Image.new("RGBA", (rect.width, rect.height), fill)
        self.composite(layer, (rect.x, rect.y))
        layer.close()

    def draw_image(self, image: Image.Image, origin: tuple[int, int]) -> None:
        """Draw a photo, applying the active color grade during the draw."""
        grade = self.current.grade
        if grade is None or grade.is_identity:
            self.composite(image, origin)
            return
        graded = apply_color_grade(image, grade)
        self.composite(graded, origin)
        graded.close()
