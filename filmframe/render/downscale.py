from __future__ import annotations

import logging
import math

from PIL import Image

LOGGER = logging.getLogger(__name__)


def stepped_downscale(image: Image.Image, target_width: float, target_height: float) -> Image.Image:
    """Halve ``image`` until it is less than twice the target size.

    Returns ``image`` itself when it is already within 2x of the target on both
    axes. Otherwise returns a new image; the input is never modified and every
    intermediate pass is closed before returning.
    """
    target_w = max(1, int(math.ceil(target_width)))
    target_h = max(1, int(math.ceil(target_height)))
    if image.width < target_w * 2 and image.height < target_h * 2:
        return image

    current = image
    passes = 0
    while (current.width >= target_w * 2 or current.height >= target_h * 2) and (
        current.width // 2 >= target_w and current.height // 2 >= target_h
    ):
        halved = current.resize((current.width // 2, current.height // 2), Image.Resampling.BOX)
        if current is not image:
            current.close()
        current = halved
        passes += 1
    LOGGER.debug(
        "stepped downscale %sx%s -> %sx%s in %s passes (target %sx%s)",
        image.width,
        image.height,
        current.width,
        current.height,
        passes,
        target_w,
        target_h,
    )
    return current


def fit_exact(image: Image.Image, width: int, height: int) -> Image.Image:
    """Stepped downscale followed by one exact-size high quality resize."""
    stepped = stepped_downscale(image, width, height)
    if stepped.size == (width, height):
        return stepped if stepped is not image else image.copy()
    resized = stepped.resize((max(1, width), max(1, height)), Image.Resampling.LANCZOS)
    if stepped is not image:
        stepped.close()
    return resized


def limit_long_edge(image: Image.Image, max_long_edge: int) -> Image.Image:
    if max_long_edge <= 0:
        return image
    long_edge = max(image.width, image.height)
    if long_edge <= max_long_edge:
        return image
    scale = max_long_edge / float(long_edge)
    width = max(1, int(round(image.width * scale)))
    height = max(1, int(round(image.height * scale)))
    return fit_exact(image, width, height)
