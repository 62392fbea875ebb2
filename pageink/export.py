"""Baking annotations into document-space draw instructions."""

from dataclasses import dataclass, field
from typing import Callable, Optional
import logging

from .errors import EmbedFailure
from .geometry import Point, Rect
from .models import Annotation, AnnotationKind, AnnotationStore, Document, hex_to_rgb, text_ascent
from .primitives import DrawEllipse, DrawImage, DrawInstruction, DrawLine, DrawRect, DrawText
from .transform import CoordinateTransformer

logger = logging.getLogger(__name__)

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
JPEG_MAGIC = b"\xff\xd8\xff"


@dataclass
class BakedAnnotation:
    annotation_id: str
    kind: AnnotationKind
    instructions: list[DrawInstruction]


@dataclass
class BakedPage:
    """Everything the writer needs for one page, in document units."""
    page_number: int
    width: float  # as rotated
    height: float
    rotation: int  # total rotation to apply to the output page
    crop: Optional[Rect] = None  # bottom-left origin
    annotations: list[BakedAnnotation] = field(default_factory=list)

    @property
    def instructions(self) -> list[DrawInstruction]:
        """All instructions in paint order."""
        return [i for baked in self.annotations for i in baked.instructions]


@dataclass
class ExportReport:
    pages: list[BakedPage] = field(default_factory=list)
    failures: list[EmbedFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def summary(self) -> str:
        count = sum(len(p.annotations) for p in self.pages)
        text = f"Exported {count} annotation(s) on {len(self.pages)} page(s)"
        if self.failures:
            text += f", {len(self.failures)} skipped"
        return text


class ExportBaker:
    """Re-projects every annotation from capture space to document space."""

    def __init__(self, document: Document, store: AnnotationStore,
                 default_capture_scale: float = 2.0):
        self._document = document
        self._store = store
        self._default_capture_scale = default_capture_scale

    def transformer(self, page_number: int) -> CoordinateTransformer:
        page = self._document.page(page_number)
        width, height = page.rotated_size(self._store.rotation(page_number))
        scale = page.capture_scale or self._default_capture_scale
        return CoordinateTransformer(scale, width, height)

    def bake(self, progress: Optional[Callable[[int, int], None]] = None) -> ExportReport:
        """Bake all pages. Failing annotations are skipped and reported."""
        report = ExportReport()
        total = self._document.page_count
        for page_number in range(1, total + 1):
            baked = self.bake_page(page_number, report.failures)
            report.pages.append(baked)
            if progress is not None:
                progress(page_number, total)

        if report.failures:
            logger.warning("%s", report.summary())
        else:
            logger.info("%s", report.summary())
        return report

    def bake_page(self, page_number: int,
                  failures: Optional[list[EmbedFailure]] = None) -> BakedPage:
        page = self._document.page(page_number)
        transformer = self.transformer(page_number)
        user_rotation = self._store.rotation(page_number)
        crop = self._store.crop(page_number)

        baked = BakedPage(
            page_number=page_number,
            width=transformer.page_width,
            height=transformer.page_height,
            rotation=(page.rotation + user_rotation) % 360,
            crop=transformer.normalized_rect_to_document(crop) if crop else None,
        )
        for annotation in self._store.query(page_number):
            try:
                instructions = self.bake_annotation(annotation, transformer)
            except EmbedFailure as e:
                logger.warning("Skipping annotation: %s", e)
                if failures is not None:
                    failures.append(e)
                continue
            baked.annotations.append(BakedAnnotation(annotation.id, annotation.kind, instructions))
        return baked

    def bake_annotation(self, annotation: Annotation,
                        transformer: CoordinateTransformer) -> list[DrawInstruction]:
        try:
            return _bake(annotation, transformer)
        except EmbedFailure:
            raise
        except Exception as e:
            raise EmbedFailure(annotation.id, annotation.page_number,
                               f"{type(e).__name__}: {e}") from e


def _bake(annotation: Annotation, t: CoordinateTransformer) -> list[DrawInstruction]:
    style = annotation.style
    g = annotation.geometry
    kind = annotation.kind
    stroke_width = t.length_to_document(style.stroke_width)
    stroke_color = style.stroke_color or None
    if stroke_color:
        hex_to_rgb(stroke_color)
    if style.fill_color:
        hex_to_rgb(style.fill_color)
    if stroke_color is None and kind in (AnnotationKind.FREEHAND, AnnotationKind.LINE,
                                         AnnotationKind.TEXT):
        raise EmbedFailure(annotation.id, annotation.page_number,
                           f"{kind.value} needs a stroke colour")

    if kind == AnnotationKind.FREEHAND:
        if len(g.points) < 2:
            raise EmbedFailure(annotation.id, annotation.page_number,
                               "stroke has fewer than two points")
        points = [t.capture_to_document(p) for p in g.points]
        return [DrawLine(a, b, stroke_width, stroke_color, style.opacity)
                for a, b in zip(points, points[1:])]

    elif kind == AnnotationKind.LINE:
        if len(g.points) < 2:
            raise EmbedFailure(annotation.id, annotation.page_number,
                               "line needs a start and an end point")
        return [DrawLine(t.capture_to_document(g.points[0]),
                         t.capture_to_document(g.points[-1]),
                         stroke_width, stroke_color, style.opacity)]

    elif kind == AnnotationKind.RECTANGLE:
        rect = t.rect_to_document(g.rect)
        return [DrawRect(rect.origin, rect.width, rect.height, stroke_color,
                         stroke_width, style.fill_color, style.opacity)]

    elif kind == AnnotationKind.ELLIPSE:
        rect = g.rect
        return [DrawEllipse(t.capture_to_document(rect.center),
                            t.length_to_document(rect.width / 2),
                            t.length_to_document(rect.height / 2),
                            stroke_color, stroke_width, style.fill_color, style.opacity)]

    elif kind == AnnotationKind.TEXT:
        if not g.text:
            raise EmbedFailure(annotation.id, annotation.page_number, "empty text")
        baseline = Point(g.x, g.y + text_ascent(g.font_size))
        return [DrawText(t.capture_to_document(baseline), g.text,
                         t.length_to_document(g.font_size), stroke_color, style.opacity)]

    elif kind == AnnotationKind.IMAGE:
        data = annotation.payload
        if not data:
            raise EmbedFailure(annotation.id, annotation.page_number, "placed image has no image data")
        if not (data.startswith(PNG_MAGIC) or data.startswith(JPEG_MAGIC)):
            raise EmbedFailure(annotation.id, annotation.page_number,
                               "unsupported image format (PNG or JPEG expected)")
        rect = t.rect_to_document(g.rect)
        return [DrawImage(rect.origin, rect.width, rect.height, data)]

    raise ValueError(f"Unknown annotation kind: {kind}")
