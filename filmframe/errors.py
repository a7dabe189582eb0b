from __future__ import annotations


class RenderError(RuntimeError):
    """Base class for failures that abort a whole render."""


class ImageDecodeError(RenderError):
    """A source image could not be fetched or decoded."""


class CropServiceError(RenderError):
    """The saliency cropper raised or returned unusable geometry."""


class CanvasUnavailableError(RenderError):
    """A drawing surface could not be allocated."""
