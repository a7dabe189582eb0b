from __future__ import annotations

import logging
import platform
from functools import lru_cache
from pathlib import Path

from PIL import ImageDraw, ImageFont

LOGGER = logging.getLogger(__name__)

FACE_SCRIPT = "script"
FACE_SANS = "sans"


def _system_font_candidates(face: str) -> list[Path]:
    system = platform.system().lower()
    if "windows" in system:
        if face == FACE_SCRIPT:
            return [
                Path(r"C:\Windows\Fonts\GreatVibes-Regular.ttf"),
                Path(r"C:\Windows\Fonts\segoesc.ttf"),
                Path(r"C:\Windows\Fonts\BRUSHSCI.TTF"),
            ]
        return [
            Path(r"C:\Windows\Fonts\Inter-Medium.ttf"),
            Path(r"C:\Windows\Fonts\segoeui.ttf"),
            Path(r"C:\Windows\Fonts\arial.ttf"),
        ]
    if "darwin" in system:
        if face == FACE_SCRIPT:
            return [
                Path.home() / "Library" / "Fonts" / "GreatVibes-Regular.ttf",
                Path("/Library/Fonts/GreatVibes-Regular.ttf"),
                Path("/System/Library/Fonts/Supplemental/SnellRoundhand.ttc"),
                Path("/System/Library/Fonts/Supplemental/Zapfino.ttf"),
            ]
        return [
            Path.home() / "Library" / "Fonts" / "Inter-Medium.ttf",
            Path("/System/Library/Fonts/Helvetica.ttc"),
            Path("/Library/Fonts/Arial Unicode.ttf"),
        ]
    if face == FACE_SCRIPT:
        return [
            Path.home() / ".local" / "share" / "fonts" / "GreatVibes-Regular.ttf",
            Path("/usr/share/fonts/truetype/great-vibes/GreatVibes-Regular.ttf"),
            Path("/usr/share/fonts/TTF/GreatVibes-Regular.ttf"),
            Path("/usr/share/fonts/truetype/dejavu/DejaVuSerif-Italic.ttf"),
        ]
    return [
        Path.home() / ".local" / "share" / "fonts" / "Inter-Medium.ttf",
        Path("/usr/share/fonts/truetype/inter/Inter-Medium.ttf"),
        Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
        Path("/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf"),
    ]


@lru_cache(maxsize=32)
def load_font(font_path: Path | None, size: int, face: str = FACE_SANS) -> ImageFont.ImageFont:
    candidates: list[Path] = []
    if font_path:
        candidates.append(Path(font_path))
    candidates.extend(_system_font_candidates(face))
    for candidate in candidates:
        if candidate.exists():
            try:
                return ImageFont.truetype(str(candidate), size=size)
            except OSError:
                LOGGER.debug("font %s is not loadable", candidate)
                continue
    LOGGER.debug("no %s font found, using Pillow default at %spx", face, size)
    return ImageFont.load_default(size=size)


def text_size(draw: ImageDraw.ImageDraw, text: str, font: ImageFont.ImageFont) -> tuple[int, int]:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    return right - left, bottom - top


def ellipsize(
    draw: ImageDraw.ImageDraw,
    text: str,
    font: ImageFont.ImageFont,
    max_width: int,
) -> str:
    if max_width <= 0:
        return ""
    width, _ = text_size(draw, text, font)
    if width <= max_width:
        return text
    ellipsis = "..."
    for cut in range(len(text), -1, -1):
        candidate = text[:cut].rstrip() + ellipsis
        cand_width, _ = text_size(draw, candidate, font)
        if cand_width <= max_width:
            return candidate
    return ellipsis


def letterspace(text: str) -> str:
    """Upper-case ``text`` and put a single space between every character."""
    return " ".join(text.upper())
