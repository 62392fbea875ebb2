"""Shared fixtures: a Qt core application, documents and editing sessions."""

import fitz
import pytest
from PySide6.QtCore import QCoreApplication

from pageink.models import Document
from pageink.raster import RasterImage
from pageink.session import EditorSession


@pytest.fixture(scope="session", autouse=True)
def qt_app():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


class FakeRasterizer:
    """Records rasterize calls and returns empty images of the right size."""

    def __init__(self, document: Document):
        self.document = document
        self.calls: list[tuple[int, float, int]] = []

    def rasterize(self, page_number: int, scale: float, rotation: int) -> RasterImage:
        self.calls.append((page_number, scale, rotation))
        page = self.document.page(page_number)
        width, height = page.rotated_size(rotation - page.rotation)
        return RasterImage(page_number, scale, rotation % 360,
                           int(width * scale), int(height * scale), b"", 0)


@pytest.fixture
def document() -> Document:
    return Document.blank(3)


@pytest.fixture
def rasterizer(document) -> FakeRasterizer:
    return FakeRasterizer(document)


@pytest.fixture
def session(document, rasterizer) -> EditorSession:
    """Three A4 pages at capture scale 2, page 1 rasterized."""
    s = EditorSession(document, rasterizer)
    s.rasterize_page(1)
    return s


@pytest.fixture
def pdf_bytes() -> bytes:
    doc = fitz.open()
    doc.new_page(width=595, height=842)
    doc.new_page(width=842, height=595)
    data = doc.tobytes()
    doc.close()
    return data
