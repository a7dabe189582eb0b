from __future__ import annotations

from PIL import Image, ImageEnhance

from filmframe.models import ColorGrade


def sepia_matrix(amount: float) -> tuple[float, ...]:
    """RGB->RGB convert matrix for a partial sepia tone (0 = none, 1 = full)."""
    a = max(0.0, min(1.0, amount))
    inv = 1.0 - a
    return (
        0.393 + 0.607 * inv, 0.769 - 0.769 * inv, 0.189 - 0.189 * inv, 0.0,
        0.349 - 0.349 * inv, 0.686 + 0.314 * inv, 0.168 - 0.168 * inv, 0.0,
        0.272 - 0.272 * inv, 0.534 - 0.534 * inv, 0.131 + 0.869 * inv, 0.0,
    )


def apply_color_grade(image: Image.Image, grade: ColorGrade) -> Image.Image:
    """Return a graded copy: contrast, brightness, saturation, then sepia."""
    graded = image.convert("RGB") if image.mode != "RGB" else image.copy()
    if grade.contrast != 1.0:
        graded = ImageEnhance.Contrast(graded).enhance(grade.contrast)
    if grade.brightness != 1.0:
        graded = ImageEnhance.Brightness(graded).enhance(grade.brightness)
    if grade.saturation != 1.0:
        graded = ImageEnhance.Color(graded).enhance(grade.saturation)
    if grade.sepia > 0.0:
        graded = graded.convert("RGB", sepia_matrix(grade.sepia))
    return graded
