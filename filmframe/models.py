from __future__ import annotations

import base64
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from PIL import Image

from filmframe.constants import JPEG_MIME, LAYOUT_SINGLE, VALID_LAYOUTS

ImageSource = Union[str, Path, bytes, Image.Image]


@dataclass(frozen=True, slots=True)
class FocalOffset:
    """Manual pan inside the crop slide range; (0.5, 0.5) is centered."""

    x: float = 0.5
    y: float = 0.5

    def __post_init__(self) -> None:
        for name, value in (("x", self.x), ("y", self.y)):
            if not 0.0 <= float(value) <= 1.0:
                raise ValueError(f"focal offset {name} must be within [0, 1], got: {value!r}")

    @classmethod
    def parse(cls, text: str) -> "FocalOffset":
        parts = [part.strip() for part in str(text).split(",")]
        if len(parts) != 2:
            raise ValueError(f"focal offset must look like 'x,y', got: {text!r}")
        return cls(float(parts[0]), float(parts[1]))


@dataclass(frozen=True, slots=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @property
    def box(self) -> tuple[int, int, int, int]:
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def intersect(self, other: "Rect") -> "Rect":
        left = max(self.x, other.x)
        top = max(self.y, other.y)
        right = min(self.x + self.width, other.x + other.width)
        bottom = min(self.y + self.height, other.y + other.height)
        return Rect(left, top, max(0, right - left), max(0, bottom - top))


@dataclass(frozen=True, slots=True)
class Slot:
    x: int
    y: int
    width: int
    height: int
    rotation: float | None = None

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "rotation": self.rotation,
        }


@dataclass(frozen=True, slots=True)
class CropBox:
    """Crop window in source pixel space."""

    x: float
    y: float
    width: float
    height: float

    def pixel_box(self) -> tuple[int, int, int, int]:
        left = int(round(self.x))
        top = int(round(self.y))
        return (left, top, left + int(round(self.width)), top + int(round(self.height)))


@dataclass(frozen=True, slots=True)
class SourceEntry:
    source: ImageSource
    offset: FocalOffset | None = None


@dataclass(frozen=True, slots=True)
class RenderSpec:
    images: tuple[SourceEntry, ...]
    caption: str = ""
    date: str = ""
    layout: str = LAYOUT_SINGLE
    framed: bool = True

    def __post_init__(self) -> None:
        if not self.images:
            raise ValueError("render spec needs at least one image")
        if self.layout not in VALID_LAYOUTS:
            raise ValueError(f"unsupported layout: {self.layout!r}")


@dataclass(frozen=True, slots=True)
class RenderedImage:
    data: bytes
    width: int
    height: int
    quality: int
    mime: str = JPEG_MIME

    def to_data_uri(self) -> str:
        payload = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime};base64,{payload}"


@dataclass(slots=True)
class ColorGrade:
    contrast: float = 1.0
    brightness: float = 1.0
    saturation: float = 1.0
    sepia: float = 0.0

    @property
    def is_identity(self) -> bool:
        return (
            self.contrast == 1.0
            and self.brightness == 1.0
            and self.saturation == 1.0
            and self.sepia == 0.0
        )


@dataclass(slots=True)
class FilmLook:
    name: str
    framed_size: tuple[int, int]
    frameless_size: tuple[int, int]
    margin: int
    photo_aspect: float
    colors: dict[str, str]
    fonts: dict[str, int]
    opacity: dict[str, float]
    quality: dict[str, int]
    grade: ColorGrade = field(default_factory=ColorGrade)
    collage_grade: ColorGrade = field(default_factory=ColorGrade)
    grain_tile: int = 512
    grain_band: tuple[int, int] = (80, 180)
    vignette_radii: tuple[float, float] = (0.4, 0.95)
    caption_offset: int = 300
    date_offset: int = 120
