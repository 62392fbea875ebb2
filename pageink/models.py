"""Data models: annotations, pages and the per-page annotation store."""

from dataclasses import dataclass, field, asdict, fields
from enum import Enum
from typing import Callable, Optional, Union
import base64
import copy
import json
import uuid

import fitz

from .errors import InvalidPage, NotFound
from .geometry import (
    Point, Rect, ResizeHandle, resize_rect, distance_to_segment, rotate_point_cw,
)


TEXT_FONT = "helv"
_font: Optional[fitz.Font] = None


def _text_font() -> fitz.Font:
    global _font
    if _font is None:
        _font = fitz.Font(TEXT_FONT)
    return _font


def text_extent(text: str, font_size: float) -> tuple[float, float]:
    """Width and line height of `text` set in the annotation font."""
    return _text_font().text_length(text, fontsize=font_size), float(font_size)


def text_ascent(font_size: float) -> float:
    """Distance from the top of a text line to its baseline."""
    return _text_font().ascender * font_size


def hex_to_rgb(hex_color: str) -> tuple[float, float, float]:
    """'#RRGGBB' to an (r, g, b) tuple of floats in 0..1."""
    hex_color = hex_color.lstrip('#')
    if len(hex_color) != 6:
        raise ValueError(f"Invalid color: #{hex_color}")
    return tuple(int(hex_color[i:i + 2], 16) / 255 for i in (0, 2, 4))


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Style:
    """Paint settings of one annotation."""
    stroke_color: Optional[str] = "#FF0000"  # None draws no outline
    fill_color: Optional[str] = None
    stroke_width: float = 2.0
    opacity: float = 1.0

    @property
    def is_highlighter(self) -> bool:
        return self.opacity < 1.0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Style":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


class AnnotationKind(Enum):
    FREEHAND = "freehand-stroke"
    LINE = "straight-line"
    RECTANGLE = "rectangle"
    ELLIPSE = "ellipse"
    TEXT = "text"
    IMAGE = "placed-image"

    @property
    def uses_box(self) -> bool:
        return self in (AnnotationKind.RECTANGLE, AnnotationKind.ELLIPSE,
                        AnnotationKind.IMAGE)

    @property
    def uses_points(self) -> bool:
        return self in (AnnotationKind.FREEHAND, AnnotationKind.LINE)


@dataclass
class StrokeGeometry:
    """Ordered capture-space points (freehand strokes and straight lines)."""
    points: list[Point] = field(default_factory=list)


@dataclass
class BoxGeometry:
    """Top-left origin plus size (rectangles, ellipses, placed images)."""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    @classmethod
    def from_rect(cls, rect: Rect) -> "BoxGeometry":
        return cls(rect.x, rect.y, rect.width, rect.height)


@dataclass
class TextGeometry:
    """Top-left origin of the text line, the string and its font size."""
    x: float = 0.0
    y: float = 0.0
    text: str = ""
    font_size: float = 16.0


Geometry = Union[StrokeGeometry, BoxGeometry, TextGeometry]

_GEOMETRY_FOR_KIND = {
    AnnotationKind.FREEHAND: StrokeGeometry,
    AnnotationKind.LINE: StrokeGeometry,
    AnnotationKind.RECTANGLE: BoxGeometry,
    AnnotationKind.ELLIPSE: BoxGeometry,
    AnnotationKind.TEXT: TextGeometry,
    AnnotationKind.IMAGE: BoxGeometry,
}


@dataclass
class Annotation:
    """A drawn object anchored to one page, in that page's capture space."""
    kind: AnnotationKind
    geometry: Geometry
    page_number: int = 1
    style: Style = field(default_factory=Style)
    payload: Optional[bytes] = None  # image bytes for placed images
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        expected = _GEOMETRY_FOR_KIND[self.kind]
        if not isinstance(self.geometry, expected):
            raise TypeError(f"{self.kind.value} needs {expected.__name__}, "
                            f"got {type(self.geometry).__name__}")

    # --- capabilities ---

    def bbox(self) -> Rect:
        g = self.geometry
        if self.kind.uses_points:
            if not g.points:
                return Rect()
            return Rect.bounding(g.points)
        elif self.kind.uses_box:
            return g.rect
        elif self.kind == AnnotationKind.TEXT:
            width, height = text_extent(g.text, g.font_size)
            return Rect(g.x, g.y, width, height)
        raise ValueError(f"Unknown annotation kind: {self.kind}")

    @property
    def origin(self) -> Point:
        return self.bbox().origin

    def hit_test(self, point: Point, stroke_tolerance: float = 20.0) -> bool:
        """True when `point` picks this annotation.

        Strokes are picked within max(stroke_tolerance, stroke width) of any
        segment, everything else inside its bounding box.
        """
        if self.kind.uses_points:
            points = self.geometry.points
            tolerance = max(stroke_tolerance, self.style.stroke_width)
            if len(points) == 1:
                return points[0].distance_to(point) <= tolerance
            return any(distance_to_segment(point, a, b) <= tolerance
                       for a, b in zip(points, points[1:]))
        elif self.kind.uses_box or self.kind == AnnotationKind.TEXT:
            return self.bbox().contains(point, tolerance=self.style.stroke_width / 2)
        raise ValueError(f"Unknown annotation kind: {self.kind}")

    def translate(self, dx: float, dy: float) -> None:
        g = self.geometry
        if self.kind.uses_points:
            g.points = [Point(p.x + dx, p.y + dy) for p in g.points]
        elif self.kind.uses_box or self.kind == AnnotationKind.TEXT:
            g.x += dx
            g.y += dy
        else:
            raise ValueError(f"Unknown annotation kind: {self.kind}")

    def resize(self, handle: ResizeHandle, dx: float, dy: float,
               min_size: float = 1.0, bounds: Optional[Rect] = None) -> None:
        """Drag one handle of the bounding box by (dx, dy)."""
        old = self.bbox()
        new = resize_rect(old, handle, dx, dy, min_size, bounds)
        g = self.geometry
        if self.kind.uses_points:
            g.points = [_remap(p, old, new) for p in g.points]
        elif self.kind.uses_box:
            self.geometry = BoxGeometry.from_rect(new)
        elif self.kind == AnnotationKind.TEXT:
            if old.height > 0:
                g.font_size = max(min_size, g.font_size * new.height / old.height)
            g.x, g.y = new.x, new.y
        else:
            raise ValueError(f"Unknown annotation kind: {self.kind}")

    def rotate_cw(self, capture_height: float) -> None:
        """Follow a clockwise quarter turn of a page `capture_height` px high.

        Shapes turn with the page. Text and images keep their upright
        orientation and only move with their centre.
        """
        g = self.geometry
        if self.kind.uses_points:
            g.points = [rotate_point_cw(p, capture_height) for p in g.points]
        elif self.kind in (AnnotationKind.RECTANGLE, AnnotationKind.ELLIPSE):
            rect = g.rect
            self.geometry = BoxGeometry(capture_height - rect.bottom, rect.x,
                                        rect.height, rect.width)
        elif self.kind in (AnnotationKind.IMAGE, AnnotationKind.TEXT):
            box = self.bbox()
            center = rotate_point_cw(box.center, capture_height)
            g.x = center.x - box.width / 2
            g.y = center.y - box.height / 2
        else:
            raise ValueError(f"Unknown annotation kind: {self.kind}")

    def copy(self) -> "Annotation":
        """Deep copy keeping the same id."""
        return copy.deepcopy(self)

    # --- serialization ---

    def to_dict(self) -> dict:
        g = self.geometry
        if isinstance(g, StrokeGeometry):
            geometry = {"points": [p.to_list() for p in g.points]}
        else:
            geometry = asdict(g)
        data = {
            "id": self.id,
            "page_number": self.page_number,
            "kind": self.kind.value,
            "geometry": geometry,
            "style": self.style.to_dict(),
        }
        if self.payload is not None:
            data["payload"] = base64.b64encode(self.payload).decode("ascii")
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Annotation":
        kind = AnnotationKind(data["kind"])
        geometry_data = data.get("geometry", {})
        geometry_cls = _GEOMETRY_FOR_KIND[kind]
        if geometry_cls is StrokeGeometry:
            geometry = StrokeGeometry([Point.from_list(p) for p in geometry_data.get("points", [])])
        else:
            geometry = geometry_cls(**geometry_data)
        payload = data.get("payload")
        return cls(
            id=data.get("id") or new_id(),
            page_number=int(data.get("page_number", 1)),
            kind=kind,
            geometry=geometry,
            style=Style.from_dict(data.get("style", {})),
            payload=base64.b64decode(payload) if payload else None,
        )


def _remap(p: Point, old: Rect, new: Rect) -> Point:
    """Map `p` from rect `old` to rect `new` proportionally."""
    fx = (p.x - old.x) / old.width if old.width else 0.0
    fy = (p.y - old.y) / old.height if old.height else 0.0
    return Point(new.x + fx * new.width, new.y + fy * new.height)


@dataclass
class Page:
    """Page metadata. Width and height are the unrotated page size."""
    number: int
    width: float
    height: float
    rotation: int = 0  # rotation stored in the source document
    capture_scale: Optional[float] = None  # S_c of the last rasterization

    def rotated_size(self, extra_rotation: int = 0) -> tuple[float, float]:
        if (self.rotation + extra_rotation) % 180 == 90:
            return self.height, self.width
        return self.width, self.height


@dataclass
class Document:
    """Ordered pages of the document being edited."""
    pages: list[Page] = field(default_factory=list)
    source: Optional[bytes] = None
    name: str = "document"

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def page(self, page_number: int) -> Page:
        if not 1 <= page_number <= self.page_count:
            raise InvalidPage(page_number, self.page_count)
        return self.pages[page_number - 1]

    @classmethod
    def blank(cls, page_count: int, width: float = 595.0, height: float = 842.0) -> "Document":
        return cls(pages=[Page(i + 1, width, height) for i in range(page_count)])


@dataclass
class PageLayer:
    """Everything the user edited on one page."""
    annotations: list[Annotation] = field(default_factory=list)
    crop: Optional[Rect] = None  # normalized page units
    rotation: int = 0  # user rotation on top of the page's own

    def copy(self) -> "PageLayer":
        return PageLayer([a.copy() for a in self.annotations], self.crop, self.rotation)


class AnnotationStore:
    """Per-page, z-ordered annotation lists for a document.

    List order is paint order: the last entry of a page is drawn on top.
    """

    def __init__(self, page_count: int, stroke_tolerance: float = 20.0):
        self._page_count = page_count
        self.stroke_tolerance = stroke_tolerance
        self._layers: dict[int, PageLayer] = {
            n: PageLayer() for n in range(1, page_count + 1)
        }
        self._modified = False

    @property
    def page_count(self) -> int:
        return self._page_count

    def _layer(self, page_number: int) -> PageLayer:
        if not 1 <= page_number <= self._page_count:
            raise InvalidPage(page_number, self._page_count)
        return self._layers[page_number]

    # --- CRUD ---

    def add(self, page_number: int, annotation: Annotation) -> Annotation:
        layer = self._layer(page_number)
        annotation.page_number = page_number
        layer.annotations.append(annotation)
        self._modified = True
        return annotation

    def remove(self, annotation_id: str) -> Optional[Annotation]:
        for layer in self._layers.values():
            for i, a in enumerate(layer.annotations):
                if a.id == annotation_id:
                    self._modified = True
                    return layer.annotations.pop(i)
        return None

    def get(self, annotation_id: str) -> Optional[Annotation]:
        for layer in self._layers.values():
            for a in layer.annotations:
                if a.id == annotation_id:
                    return a
        return None

    def update(self, annotation_id: str, mutator: Callable[[Annotation], None]) -> Annotation:
        """Apply `mutator` to the annotation in place."""
        annotation = self.get(annotation_id)
        if annotation is None:
            raise NotFound(annotation_id)
        mutator(annotation)
        self._modified = True
        return annotation

    def query(self, page_number: int) -> tuple[Annotation, ...]:
        """The page's annotations in z-order (bottom first)."""
        return tuple(self._layer(page_number).annotations)

    def hit_test(self, page_number: int, point: Point) -> Optional[Annotation]:
        """Topmost annotation under `point`."""
        for annotation in reversed(self._layer(page_number).annotations):
            if annotation.hit_test(point, self.stroke_tolerance):
                return annotation
        return None

    def hit_all(self, page_number: int, point: Point, tolerance: float) -> list[Annotation]:
        """Every annotation under `point`, topmost first."""
        return [a for a in reversed(self._layer(page_number).annotations)
                if a.hit_test(point, tolerance)]

    def clear_page(self, page_number: int) -> list[Annotation]:
        layer = self._layer(page_number)
        removed = list(layer.annotations)
        layer.annotations.clear()
        if removed:
            self._modified = True
        return removed

    def all(self) -> list[Annotation]:
        return [a for n in sorted(self._layers) for a in self._layers[n].annotations]

    def count(self, page_number: Optional[int] = None) -> int:
        if page_number is not None:
            return len(self._layer(page_number).annotations)
        return sum(len(layer.annotations) for layer in self._layers.values())

    def pages_with_annotations(self) -> list[int]:
        return [n for n in sorted(self._layers) if self._layers[n].annotations]

    # --- page-level edits ---

    def crop(self, page_number: int) -> Optional[Rect]:
        return self._layer(page_number).crop

    def set_crop(self, page_number: int, crop: Optional[Rect]) -> None:
        self._layer(page_number).crop = crop
        self._modified = True

    def rotation(self, page_number: int) -> int:
        return self._layer(page_number).rotation

    def set_rotation(self, page_number: int, rotation: int) -> None:
        self._layer(page_number).rotation = rotation % 360
        self._modified = True

    # --- snapshots ---

    def snapshot_layers(self) -> dict[int, PageLayer]:
        """Deep copy of every page layer."""
        return {n: layer.copy() for n, layer in self._layers.items()}

    def restore_layers(self, layers: dict[int, PageLayer]) -> None:
        """Replace the contents with deep copies of `layers`."""
        self._layers = {n: layer.copy() for n, layer in layers.items()}
        self._modified = True

    def state(self) -> dict:
        """Comparable plain-data view of the whole store."""
        return {
            n: {
                "annotations": [a.to_dict() for a in layer.annotations],
                "crop": asdict(layer.crop) if layer.crop else None,
                "rotation": layer.rotation,
            }
            for n, layer in sorted(self._layers.items())
        }

    @property
    def modified(self) -> bool:
        return self._modified

    @modified.setter
    def modified(self, value: bool):
        self._modified = value

    def to_json(self) -> str:
        return json.dumps({str(n): v for n, v in self.state().items()}, indent=2)

    def from_json(self, json_str: str) -> None:
        data = json.loads(json_str)
        layers = {n: PageLayer() for n in range(1, self._page_count + 1)}
        for key, page_data in data.items():
            n = int(key)
            if n not in layers:
                raise InvalidPage(n, self._page_count)
            crop = page_data.get("crop")
            layers[n] = PageLayer(
                annotations=[Annotation.from_dict(a) for a in page_data.get("annotations", [])],
                crop=Rect(**crop) if crop else None,
                rotation=int(page_data.get("rotation", 0)),
            )
        self._layers = layers
        self._modified = True


class StylePresets:
    """Named pen styles offered by the tool palette."""

    def __init__(self):
        self._presets: dict[str, Style] = {
            "Pen": Style(),
            "Fine Black": Style(stroke_color="#000000", stroke_width=1.0),
            "Blue Marker": Style(stroke_color="#0055FF", stroke_width=6.0),
            "Highlighter": Style(stroke_color="#FFFF00", stroke_width=20.0, opacity=0.3),
        }

    def get(self, name: str) -> Optional[Style]:
        preset = self._presets.get(name)
        if preset:
            return Style(**asdict(preset))
        return None

    def save(self, name: str, style: Style) -> None:
        self._presets[name] = style

    def delete(self, name: str) -> bool:
        if name in self._presets and name != "Pen":
            del self._presets[name]
            return True
        return False

    def names(self) -> list[str]:
        return list(self._presets.keys())

    def to_json(self) -> str:
        data = {name: style.to_dict() for name, style in self._presets.items()}
        return json.dumps(data, indent=2)

    def from_json(self, json_str: str) -> None:
        data = json.loads(json_str)
        for name, style_data in data.items():
            self._presets[name] = Style.from_dict(style_data)
