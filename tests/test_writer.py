"""Tests for writing baked pages into a PDF."""

import fitz
import pytest
from pageink.export import ExportBaker
from pageink.geometry import Point, Rect
from pageink.models import (
    Annotation, AnnotationKind, AnnotationStore, BoxGeometry, StrokeGeometry,
    Style, TextGeometry,
)
from pageink.raster import open_document
from pageink.stamps import stamp_from_text
from pageink.writer import FitzDocumentWriter


@pytest.fixture
def opened(pdf_bytes):
    document, rasterizer = open_document(pdf_bytes)
    yield document, AnnotationStore(document.page_count)
    rasterizer.close()


def export(document, store) -> fitz.Document:
    report = ExportBaker(document, store).bake()
    data = FitzDocumentWriter(document.source).write(report)
    return fitz.open(stream=data, filetype="pdf")


class TestFitzDocumentWriter:
    def test_untouched_document(self, opened):
        document, store = opened
        out = export(document, store)
        assert out.page_count == 2
        assert out[0].get_drawings() == []

    def test_rectangle_drawn(self, opened):
        document, store = opened
        store.add(1, Annotation(AnnotationKind.RECTANGLE, BoxGeometry(100, 200, 50, 40)))
        drawings = export(document, store)[0].get_drawings()
        assert len(drawings) == 1
        rect = drawings[0]["rect"]
        assert (rect.x0, rect.y0) == (pytest.approx(50, abs=1), pytest.approx(100, abs=1))
        assert (rect.x1, rect.y1) == (pytest.approx(75, abs=1), pytest.approx(120, abs=1))

    def test_filled_rectangle_without_outline(self, opened):
        document, store = opened
        store.add(1, Annotation(AnnotationKind.RECTANGLE, BoxGeometry(100, 200, 50, 40),
                                style=Style(stroke_color=None, fill_color="#00FF00")))
        (drawing,) = export(document, store)[0].get_drawings()
        assert drawing["fill"] == pytest.approx((0.0, 1.0, 0.0))
        assert drawing["type"] == "f"
        assert drawing.get("color") is None

    def test_stroke_drawn(self, opened):
        document, store = opened
        store.add(2, Annotation(AnnotationKind.FREEHAND,
                                StrokeGeometry([Point(0, 0), Point(100, 100), Point(200, 0)])))
        out = export(document, store)
        assert out[1].get_drawings()
        assert out[0].get_drawings() == []

    def test_text_written(self, opened):
        document, store = opened
        store.add(1, Annotation(AnnotationKind.TEXT, TextGeometry(100, 200, "Hello", 32)))
        assert "Hello" in export(document, store)[0].get_text()

    def test_image_embedded(self, opened):
        document, store = opened
        stamp = stamp_from_text("Signature")
        store.add(1, Annotation(AnnotationKind.IMAGE, BoxGeometry(100, 100, 300, 100),
                                payload=stamp.data))
        assert len(export(document, store)[0].get_images()) == 1

    def test_crop_box(self, opened):
        document, store = opened
        store.set_crop(1, Rect(0.0, 0.0, 300 / 595, 400 / 842))
        page = export(document, store)[0]
        assert page.rect.width == pytest.approx(300, abs=0.5)
        assert page.rect.height == pytest.approx(400, abs=0.5)

    def test_rotation_applied(self, opened):
        document, store = opened
        store.set_rotation(1, 90)
        assert export(document, store)[0].rotation == 90

    def test_rotated_page_drawing_lands_on_content(self, opened):
        document, store = opened
        store.set_rotation(1, 90)
        # top-left corner of the rotated view is the bottom-left of the unrotated page
        store.add(1, Annotation(AnnotationKind.RECTANGLE, BoxGeometry(0, 0, 200, 100)))
        rect = export(document, store)[0].get_drawings()[0]["rect"]
        assert rect.x0 == pytest.approx(0, abs=1)
        assert rect.x1 == pytest.approx(50, abs=1)
        assert rect.y0 == pytest.approx(742, abs=1)
        assert rect.y1 == pytest.approx(842, abs=1)

    def test_save(self, opened, tmp_path):
        document, store = opened
        report = ExportBaker(document, store).bake()
        path = tmp_path / "out.pdf"
        FitzDocumentWriter(document.source).save(report, path)
        assert fitz.open(path).page_count == 2
