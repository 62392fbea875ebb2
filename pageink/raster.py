"""Page rasterization and document metadata through PyMuPDF."""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Union

import fitz
from PySide6.QtGui import QImage

from .errors import InvalidPage
from .models import Document, Page


@dataclass
class RasterImage:
    """Pixels of one page rendered at `scale` and total `rotation`."""
    page_number: int
    scale: float
    rotation: int
    width: int
    height: int
    samples: bytes
    stride: int
    alpha: bool = False

    def to_qimage(self) -> QImage:
        if self.alpha:
            fmt = QImage.Format.Format_RGBA8888
        else:
            fmt = QImage.Format.Format_RGB888
        return QImage(self.samples, self.width, self.height, self.stride, fmt).copy()


class Rasterizer(Protocol):
    def rasterize(self, page_number: int, scale: float, rotation: int) -> RasterImage:
        ...


class FitzRasterizer:
    """Renders pages of an open PyMuPDF document."""

    def __init__(self, doc: fitz.Document):
        self._doc = doc

    @classmethod
    def open(cls, source: Union[str, Path, bytes]) -> "FitzRasterizer":
        if isinstance(source, bytes):
            return cls(fitz.open(stream=source, filetype="pdf"))
        return cls(fitz.open(source))

    @property
    def fitz_document(self) -> fitz.Document:
        return self._doc

    def page_count(self) -> int:
        return self._doc.page_count

    def rasterize(self, page_number: int, scale: float, rotation: int) -> RasterImage:
        """Render a page so that it appears rotated by `rotation` in total."""
        if not 1 <= page_number <= self._doc.page_count:
            raise InvalidPage(page_number, self._doc.page_count)
        page = self._doc.load_page(page_number - 1)
        # get_pixmap already honours the page's own /Rotate
        extra = (rotation - page.rotation) % 360
        mat = fitz.Matrix(scale, scale).prerotate(extra)
        pix = page.get_pixmap(matrix=mat)
        return RasterImage(
            page_number=page_number,
            scale=scale,
            rotation=rotation % 360,
            width=pix.width,
            height=pix.height,
            samples=bytes(pix.samples),
            stride=pix.stride,
            alpha=bool(pix.alpha),
        )

    def document(self, name: str = "document") -> Document:
        """Page metadata: unrotated size and stored rotation of every page."""
        pages = []
        for index in range(self._doc.page_count):
            page = self._doc.load_page(index)
            rect = page.rect
            if page.rotation % 180 == 90:
                width, height = rect.height, rect.width
            else:
                width, height = rect.width, rect.height
            pages.append(Page(index + 1, width, height, page.rotation))
        return Document(pages=pages, source=self._doc.tobytes(), name=name)

    def close(self) -> None:
        self._doc.close()


def open_document(source: Union[str, Path, bytes]) -> tuple[Document, FitzRasterizer]:
    """Open a PDF and return its metadata together with a rasterizer for it."""
    rasterizer = FitzRasterizer.open(source)
    name = "document" if isinstance(source, bytes) else Path(source).stem
    return rasterizer.document(name), rasterizer
