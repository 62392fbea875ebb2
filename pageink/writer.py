"""Writing baked pages into a PDF with PyMuPDF."""

from pathlib import Path
from typing import Optional, Union
import logging

import fitz

from .errors import EmbedFailure
from .export import BakedAnnotation, BakedPage, ExportReport
from .geometry import Point
from .models import TEXT_FONT, hex_to_rgb
from .primitives import DrawEllipse, DrawImage, DrawInstruction, DrawLine, DrawRect, DrawText

logger = logging.getLogger(__name__)


class FitzDocumentWriter:
    """Applies an ExportReport to a copy of the source PDF.

    Baked coordinates are in the rotated page with a bottom-left origin.
    They are flipped to PyMuPDF's top-left convention and then derotated,
    because drawing happens on the unrotated page.
    """

    def __init__(self, source: bytes):
        self._source = source

    def write(self, report: ExportReport) -> bytes:
        doc = fitz.open(stream=self._source, filetype="pdf")
        try:
            for baked in report.pages:
                self.write_page(doc, baked, report.failures)
            return doc.tobytes(garbage=3, deflate=True)
        finally:
            doc.close()

    def save(self, report: ExportReport, path: Union[str, Path]) -> None:
        data = self.write(report)
        Path(path).write_bytes(data)
        logger.info("Saved %s (%s)", path, report.summary())

    def write_page(self, doc: fitz.Document, baked: BakedPage,
                   failures: Optional[list[EmbedFailure]] = None) -> None:
        page = doc.load_page(baked.page_number - 1)
        page.set_rotation(baked.rotation)

        for annotation in list(baked.annotations):
            try:
                self._write_annotation(page, baked, annotation)
            except (ValueError, RuntimeError) as e:
                failure = EmbedFailure(annotation.annotation_id, baked.page_number, str(e))
                logger.warning("Could not write annotation: %s", failure)
                baked.annotations.remove(annotation)
                if failures is not None:
                    failures.append(failure)

        if baked.crop is not None:
            crop = self._rect(page, baked, baked.crop.origin, baked.crop.width, baked.crop.height)
            crop = crop & page.mediabox
            if crop.is_empty:
                logger.warning("Crop region of page %d is outside the page, ignored",
                               baked.page_number)
            else:
                page.set_cropbox(crop)

    def _write_annotation(self, page: fitz.Page, baked: BakedPage,
                          annotation: BakedAnnotation) -> None:
        shape = page.new_shape()
        texts = []
        drawn = False
        for instruction in annotation.instructions:
            if isinstance(instruction, DrawText):
                texts.append(instruction)
            else:
                self._draw(page, shape, baked, instruction)
                drawn = True
        if drawn:
            shape.commit()

        for text in texts:
            page.insert_text(
                self._point(page, baked, text.origin),
                text.text,
                fontsize=text.font_size,
                fontname=TEXT_FONT,
                color=hex_to_rgb(text.color),
                fill_opacity=text.opacity,
                rotate=page.rotation,
            )

    def _draw(self, page: fitz.Page, shape: fitz.Shape, baked: BakedPage,
              instruction: DrawInstruction) -> None:
        if isinstance(instruction, DrawLine):
            shape.draw_line(self._point(page, baked, instruction.start),
                            self._point(page, baked, instruction.end))
            shape.finish(color=hex_to_rgb(instruction.color), width=instruction.thickness,
                         lineCap=1, stroke_opacity=instruction.opacity)

        elif isinstance(instruction, DrawRect):
            shape.draw_rect(self._rect(page, baked, instruction.origin,
                                       instruction.width, instruction.height))
            self._finish(shape, instruction.stroke_color, instruction.fill_color,
                         instruction.stroke_width, instruction.opacity)

        elif isinstance(instruction, DrawEllipse):
            c = instruction.center
            origin = Point(c.x - instruction.radius_x, c.y - instruction.radius_y)
            shape.draw_oval(self._rect(page, baked, origin,
                                       instruction.radius_x * 2, instruction.radius_y * 2))
            self._finish(shape, instruction.stroke_color, instruction.fill_color,
                         instruction.stroke_width, instruction.opacity)

        elif isinstance(instruction, DrawImage):
            rect = self._rect(page, baked, instruction.origin, instruction.width, instruction.height)
            page.insert_image(rect, stream=instruction.image, keep_proportion=False,
                              rotate=page.rotation)

        else:
            raise ValueError(f"Unknown draw instruction: {instruction!r}")

    @staticmethod
    def _finish(shape: fitz.Shape, stroke: Optional[str], fill: Optional[str],
                width: float, opacity: float) -> None:
        shape.finish(
            color=hex_to_rgb(stroke) if stroke and width > 0 else None,
            fill=hex_to_rgb(fill) if fill else None,
            width=width,
            stroke_opacity=opacity,
            fill_opacity=opacity,
        )

    @staticmethod
    def _point(page: fitz.Page, baked: BakedPage, p: Point) -> fitz.Point:
        return fitz.Point(p.x, baked.height - p.y) * page.derotation_matrix

    @staticmethod
    def _rect(page: fitz.Page, baked: BakedPage, origin: Point,
              width: float, height: float) -> fitz.Rect:
        # origin is the bottom-left corner
        top = baked.height - origin.y - height
        rect = fitz.Rect(origin.x, top, origin.x + width, top + height)
        return (rect * page.derotation_matrix).normalize()
