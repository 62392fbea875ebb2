"""Conversions between pointer, capture, normalized and document space.

* pointer space: on-screen pixels, capture space multiplied by the live zoom Z
* capture space: pixels of the page image at the scale S_c it was rasterized at,
  origin top-left, y down
* normalized space: fractions of the page width/height, origin top-left
* document space: native page units, origin bottom-left, y up

Rotation is never applied here. The rasterizer already renders rotated pages,
so callers pass the dimensions of the page as currently rotated.
"""

from dataclasses import dataclass

from .geometry import Point, Rect


def pointer_to_capture(p: Point, zoom: float) -> Point:
    return Point(p.x / zoom, p.y / zoom)


def capture_to_pointer(p: Point, zoom: float) -> Point:
    return Point(p.x * zoom, p.y * zoom)


def capture_to_document(p: Point, capture_scale: float, page_height: float) -> Point:
    """Capture pixels to document units, flipping y to a bottom-left origin."""
    return Point(p.x / capture_scale, page_height - p.y / capture_scale)


def document_to_capture(p: Point, capture_scale: float, page_height: float) -> Point:
    return Point(p.x * capture_scale, (page_height - p.y) * capture_scale)


@dataclass(frozen=True)
class CoordinateTransformer:
    """All conversions for one page.

    `page_width`/`page_height` are the document-space dimensions of the page
    in its current rotation.
    """
    capture_scale: float
    page_width: float
    page_height: float
    zoom: float = 1.0

    @property
    def capture_size(self) -> tuple[float, float]:
        return (self.page_width * self.capture_scale,
                self.page_height * self.capture_scale)

    @property
    def capture_bounds(self) -> Rect:
        width, height = self.capture_size
        return Rect(0.0, 0.0, width, height)

    def with_zoom(self, zoom: float) -> "CoordinateTransformer":
        return CoordinateTransformer(self.capture_scale, self.page_width,
                                     self.page_height, zoom)

    # --- points ---

    def pointer_to_capture(self, p: Point) -> Point:
        return pointer_to_capture(p, self.zoom)

    def capture_to_pointer(self, p: Point) -> Point:
        return capture_to_pointer(p, self.zoom)

    def capture_to_document(self, p: Point) -> Point:
        return capture_to_document(p, self.capture_scale, self.page_height)

    def document_to_capture(self, p: Point) -> Point:
        return document_to_capture(p, self.capture_scale, self.page_height)

    def pointer_to_document(self, p: Point) -> Point:
        return self.capture_to_document(self.pointer_to_capture(p))

    def document_to_pointer(self, p: Point) -> Point:
        return self.capture_to_pointer(self.document_to_capture(p))

    def capture_to_normalized(self, p: Point) -> Point:
        width, height = self.capture_size
        return Point(p.x / width, p.y / height)

    def normalized_to_capture(self, p: Point) -> Point:
        width, height = self.capture_size
        return Point(p.x * width, p.y * height)

    # --- lengths ---

    def length_to_document(self, length: float) -> float:
        """Stroke widths and font sizes scale exactly like coordinates."""
        return length / self.capture_scale

    def length_to_capture(self, length: float) -> float:
        return length * self.capture_scale

    # --- rectangles ---

    def rect_to_document(self, rect: Rect) -> Rect:
        """Capture rect to a document rect whose (x, y) is its bottom-left corner."""
        bottom_left = self.capture_to_document(Point(rect.left, rect.bottom))
        return Rect(bottom_left.x, bottom_left.y,
                    self.length_to_document(rect.width),
                    self.length_to_document(rect.height))

    def rect_to_capture(self, rect: Rect) -> Rect:
        top_left = self.document_to_capture(Point(rect.x, rect.y + rect.height))
        return Rect(top_left.x, top_left.y,
                    self.length_to_capture(rect.width),
                    self.length_to_capture(rect.height))

    def capture_rect_to_normalized(self, rect: Rect) -> Rect:
        width, height = self.capture_size
        return Rect(rect.x / width, rect.y / height,
                    rect.width / width, rect.height / height)

    def normalized_rect_to_capture(self, rect: Rect) -> Rect:
        width, height = self.capture_size
        return Rect(rect.x * width, rect.y * height,
                    rect.width * width, rect.height * height)

    def normalized_rect_to_document(self, rect: Rect) -> Rect:
        """Normalized rect to a document rect with a bottom-left (x, y)."""
        return Rect(rect.x * self.page_width,
                    self.page_height * (1.0 - rect.y - rect.height),
                    rect.width * self.page_width,
                    rect.height * self.page_height)
