from __future__ import annotations

from filmframe.compositor import RenderOptions, render, render_collage, render_single, render_sync
from filmframe.errors import CanvasUnavailableError, CropServiceError, ImageDecodeError, RenderError
from filmframe.models import FocalOffset, RenderedImage, RenderSpec, SourceEntry

__all__ = [
    "CanvasUnavailableError",
    "CropServiceError",
    "FocalOffset",
    "ImageDecodeError",
    "RenderError",
    "RenderOptions",
    "RenderSpec",
    "RenderedImage",
    "SourceEntry",
    "render",
    "render_collage",
    "render_single",
    "render_sync",
]
