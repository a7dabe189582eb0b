# Smart-crop adapter: saliency box size, with an optional manual focal pan.
from __future__ import annotations

import asyncio
import inspect
import logging
import math
from collections.abc import Mapping
from typing import Any, Awaitable, Protocol, Union

from PIL import Image

from filmframe.constants import CROPPER_CENTER, CROPPER_SMARTCROP
from filmframe.errors import CropServiceError
from filmframe.models import CropBox, FocalOffset

LOGGER = logging.getLogger(__name__)

CropResult = Union[CropBox, Mapping[str, Any]]


class Cropper(Protocol):
    """``crop(bitmap, width, height) -> box`` returning the best box of that aspect."""

    def __call__(self, image: Image.Image, width: int, height: int) -> CropResult | Awaitable[CropResult]:
        ...


def max_aspect_box(source_width: int, source_height: int, target_width: float, target_height: float) -> tuple[float, float]:
    """Largest (width, height) with the target aspect that fits in the source."""
    target_ratio = target_width / float(target_height)
    source_ratio = source_width / float(source_height)
    if source_ratio > target_ratio:
        return (source_height * target_ratio, float(source_height))
    return (float(source_width), source_width / target_ratio)


class CenterCropper:
    """Deterministic cropper: the maximal box of the target aspect, centered."""

    def __call__(self, image: Image.Image, width: int, height: int) -> CropBox:
        crop_w, crop_h = max_aspect_box(image.width, image.height, width, height)
        return CropBox(
            x=(image.width - crop_w) / 2.0,
            y=(image.height - crop_h) / 2.0,
            width=crop_w,
            height=crop_h,
        )


class SmartcropCropper:
    """Content-aware cropper backed by the ``smartcrop`` package."""

    def __init__(self) -> None:
        try:
            import smartcrop
        except ImportError as exc:
            raise CropServiceError(
                "smartcrop is not installed. Install it with `pip install filmframe[smartcrop]`."
            ) from exc
        self._engine = smartcrop.SmartCrop()

    def _crop_blocking(self, image: Image.Image, width: int, height: int) -> dict[str, Any]:
        result = self._engine.crop(image, int(width), int(height))
        return result["top_crop"]

    async def __call__(self, image: Image.Image, width: int, height: int) -> dict[str, Any]:
        return await asyncio.to_thread(self._crop_blocking, image, width, height)


def build_cropper(name: str) -> Cropper:
    key = (name or CROPPER_CENTER).strip().lower()
    if key == CROPPER_CENTER:
        return CenterCropper()
    if key == CROPPER_SMARTCROP:
        return SmartcropCropper()
    raise ValueError(f"unknown cropper: {name}")


def _coerce_box(result: CropResult) -> CropBox:
    if isinstance(result, CropBox):
        return result
    if not isinstance(result, Mapping):
        raise CropServiceError(f"cropper returned {type(result).__name__}, expected a crop box")
    try:
        return CropBox(
            x=float(result["x"]),
            y=float(result["y"]),
            width=float(result["width"]),
            height=float(result["height"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise CropServiceError(f"cropper returned malformed geometry: {result!r}") from exc


def _validate_box(box: CropBox, source_width: int, source_height: int) -> None:
    values = (box.x, box.y, box.width, box.height)
    if not all(math.isfinite(value) for value in values):
        raise CropServiceError(f"cropper returned non-finite geometry: {box}")
    # one pixel of slack for croppers that round their box outwards
    if box.width <= 0 or box.height <= 0 or box.width > source_width + 1 or box.height > source_height + 1:
        raise CropServiceError(f"crop size {box.width}x{box.height} does not fit {source_width}x{source_height}")
    if box.x < -1 or box.y < -1 or box.x + box.width > source_width + 1 or box.y + box.height > source_height + 1:
        raise CropServiceError(f"crop box {box} exceeds source {source_width}x{source_height}")


def focal_origin(source_dim: float, crop_dim: float, offset: float) -> float:
    """Origin along one axis: ``(source_dim - crop_dim) * offset`` clamped to the slide range."""
    slide = max(0.0, source_dim - crop_dim)
    return max(0.0, min(slide, slide * offset))


def apply_focal_offset(box: CropBox, source_width: int, source_height: int, offset: FocalOffset | None) -> CropBox:
    """Keep the box size; clamp it into the source and, with an offset, re-place its origin."""
    width = min(box.width, float(source_width))
    height = min(box.height, float(source_height))
    if offset is None:
        x = max(0.0, min(source_width - width, box.x))
        y = max(0.0, min(source_height - height, box.y))
    else:
        x = focal_origin(source_width, width, offset.x)
        y = focal_origin(source_height, height, offset.y)
    return CropBox(x=x, y=y, width=width, height=height)


async def smart_crop(
    cropper: Cropper,
    image: Image.Image,
    target_width: int,
    target_height: int,
    offset: FocalOffset | None = None,
) -> CropBox:
    """Ask the cropper for a box of the target aspect, then apply the focal override.

    Any failure inside the cropper surfaces as :class:`CropServiceError`.
    """
    try:
        result = cropper(image, int(target_width), int(target_height))
        if inspect.isawaitable(result):
            result = await result
    except CropServiceError:
        raise
    except Exception as exc:
        raise CropServiceError(f"cropper failed: {exc}") from exc

    box = _coerce_box(result)
    _validate_box(box, image.width, image.height)
    placed = apply_focal_offset(box, image.width, image.height, offset)
    LOGGER.debug(
        "crop %sx%s target=%sx%s suggested=%s offset=%s -> %s",
        image.width,
        image.height,
        target_width,
        target_height,
        box,
        offset,
        placed,
    )
    return placed
