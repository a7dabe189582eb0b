import pytest
from PIL import Image

from filmframe.models import ColorGrade
from filmframe.render.grading import apply_color_grade, sepia_matrix


def test_identity_grade_returns_equal_copy() -> None:
    image = Image.new("RGB", (8, 8), (12, 150, 240))
    graded = apply_color_grade(image, ColorGrade())
    assert graded is not image
    assert graded.tobytes() == image.tobytes()


def test_zero_sepia_matrix_is_identity() -> None:
    assert sepia_matrix(0.0) == pytest.approx(
        (
            1.0, 0.0, 0.0, 0.0,
            0.0, 1.0, 0.0, 0.0,
            0.0, 0.0, 1.0, 0.0,
        )
    )


def test_sepia_warms_blue() -> None:
    image = Image.new("RGB", (2, 2), (0, 0, 255))
    r, g, b = apply_color_grade(image, ColorGrade(sepia=0.5)).getpixel((0, 0))
    assert r > 0
    assert g > 0
    assert b < 255


def test_grade_does_not_mutate_source() -> None:
    image = Image.new("RGB", (2, 2), (90, 60, 30))
    apply_color_grade(image, ColorGrade(contrast=1.05, brightness=1.05, saturation=1.2, sepia=0.25))
    assert image.getpixel((0, 0)) == (90, 60, 30)


def test_rgba_input_is_flattened_to_rgb() -> None:
    image = Image.new("RGBA", (2, 2), (10, 20, 30, 128))
    assert apply_color_grade(image, ColorGrade(brightness=1.1)).mode == "RGB"
