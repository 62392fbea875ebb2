"""Tests for signature and image stamps."""

from io import BytesIO

import pytest
from PIL import Image
from pageink.stamps import stamp_from_image, stamp_from_strokes, stamp_from_text


def png_bytes(size=(40, 20), color=(0, 0, 255)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, "PNG")
    return buffer.getvalue()


class TestStampFromText:
    def test_renders_png(self):
        stamp = stamp_from_text("Jane Doe")
        assert stamp.data.startswith(b"\x89PNG")
        assert stamp.width > stamp.height > 0
        assert stamp.label == "Jane Doe"

    def test_size_matches_image(self):
        stamp = stamp_from_text("Jane Doe")
        image = Image.open(BytesIO(stamp.data))
        assert image.size == (stamp.width, stamp.height)
        assert image.mode == "RGBA"

    def test_empty_text(self):
        with pytest.raises(ValueError):
            stamp_from_text("   ")


class TestStampFromImage:
    def test_from_bytes(self):
        stamp = stamp_from_image(png_bytes())
        assert (stamp.width, stamp.height) == (40, 20)
        assert stamp.data.startswith(b"\x89PNG")

    def test_jpeg_converted_to_png(self, tmp_path):
        path = tmp_path / "photo.jpg"
        Image.new("RGB", (30, 30), (255, 0, 0)).save(path, "JPEG")
        stamp = stamp_from_image(path)
        assert stamp.data.startswith(b"\x89PNG")
        assert stamp.label == "photo.jpg"

    def test_unreadable(self):
        with pytest.raises(ValueError):
            stamp_from_image(b"not an image")

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValueError):
            stamp_from_image(tmp_path / "missing.png")


class TestStampFromStrokes:
    def test_renders_transparent_png(self):
        stamp = stamp_from_strokes([[(10, 10), (110, 60)]])
        image = Image.open(BytesIO(stamp.data))
        assert stamp.data.startswith(b"\x89PNG")
        assert image.mode == "RGBA"
        assert image.getpixel((0, 0))[3] == 0

    def test_trimmed_to_strokes_plus_padding(self):
        stamp = stamp_from_strokes([[(10, 10), (60, 35)], [(80, 20), (110, 60)]], padding=10)
        assert (stamp.width, stamp.height) == (120, 70)
        image = Image.open(BytesIO(stamp.data))
        assert image.size == (120, 70)
        assert image.getpixel((10, 10)) == (0, 0, 0, 255)

    def test_stroke_colour(self):
        stamp = stamp_from_strokes([[(0, 0), (50, 0)]], width=4, color="#0000FF")
        image = Image.open(BytesIO(stamp.data))
        assert image.getpixel((35, 10)) == (0, 0, 255, 255)

    def test_single_tap_draws_a_dot(self):
        stamp = stamp_from_strokes([[(5, 5)]], width=6)
        image = Image.open(BytesIO(stamp.data))
        assert image.getpixel((10, 10))[3] == 255

    def test_empty_pad(self):
        with pytest.raises(ValueError):
            stamp_from_strokes([])
        with pytest.raises(ValueError):
            stamp_from_strokes([[], []])
