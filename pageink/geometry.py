"""Points, rectangles and resize-handle math in a top-left-origin space."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import math


@dataclass(frozen=True)
class Point:
    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: "Point") -> "Point":
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Point") -> "Point":
        return Point(self.x - other.x, self.y - other.y)

    def scaled(self, factor: float) -> "Point":
        return Point(self.x * factor, self.y * factor)

    def distance_to(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def to_list(self) -> list[float]:
        return [self.x, self.y]

    @classmethod
    def from_list(cls, data) -> "Point":
        return cls(float(data[0]), float(data[1]))


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle. (x, y) is the top-left corner."""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @classmethod
    def from_points(cls, a: Point, b: Point) -> "Rect":
        """Normalized rectangle spanned by two corners in any order."""
        return cls(min(a.x, b.x), min(a.y, b.y), abs(b.x - a.x), abs(b.y - a.y))

    @classmethod
    def from_edges(cls, left: float, top: float, right: float, bottom: float) -> "Rect":
        return cls(left, top, right - left, bottom - top)

    @classmethod
    def bounding(cls, points: list[Point]) -> "Rect":
        xs = [p.x for p in points]
        ys = [p.y for p in points]
        return cls.from_edges(min(xs), min(ys), max(xs), max(ys))

    @property
    def left(self) -> float:
        return self.x

    @property
    def top(self) -> float:
        return self.y

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def origin(self) -> Point:
        return Point(self.x, self.y)

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    def contains(self, p: Point, tolerance: float = 0.0) -> bool:
        return (self.left - tolerance <= p.x <= self.right + tolerance and
                self.top - tolerance <= p.y <= self.bottom + tolerance)

    def translated(self, dx: float, dy: float) -> "Rect":
        return Rect(self.x + dx, self.y + dy, self.width, self.height)

    def scaled(self, factor: float) -> "Rect":
        return Rect(self.x * factor, self.y * factor,
                    self.width * factor, self.height * factor)


class ResizeHandle(Enum):
    """The eight grab points on a bounding box, named by compass position."""
    NW = "nw"
    N = "n"
    NE = "ne"
    E = "e"
    SE = "se"
    S = "s"
    SW = "sw"
    W = "w"

    @property
    def moves_left(self) -> bool:
        return self in (ResizeHandle.NW, ResizeHandle.W, ResizeHandle.SW)

    @property
    def moves_right(self) -> bool:
        return self in (ResizeHandle.NE, ResizeHandle.E, ResizeHandle.SE)

    @property
    def moves_top(self) -> bool:
        return self in (ResizeHandle.NW, ResizeHandle.N, ResizeHandle.NE)

    @property
    def moves_bottom(self) -> bool:
        return self in (ResizeHandle.SW, ResizeHandle.S, ResizeHandle.SE)


def handle_positions(rect: Rect) -> dict[ResizeHandle, Point]:
    """Centre point of each resize handle of `rect`."""
    cx, cy = rect.center.x, rect.center.y
    return {
        ResizeHandle.NW: Point(rect.left, rect.top),
        ResizeHandle.N: Point(cx, rect.top),
        ResizeHandle.NE: Point(rect.right, rect.top),
        ResizeHandle.E: Point(rect.right, cy),
        ResizeHandle.SE: Point(rect.right, rect.bottom),
        ResizeHandle.S: Point(cx, rect.bottom),
        ResizeHandle.SW: Point(rect.left, rect.bottom),
        ResizeHandle.W: Point(rect.left, cy),
    }


def handle_at(rect: Rect, point: Point, tolerance: float) -> Optional[ResizeHandle]:
    """Return the handle within `tolerance` of `point`, corners first."""
    positions = handle_positions(rect)
    # Corners win over edge midpoints on small boxes where they overlap
    order = [ResizeHandle.NW, ResizeHandle.NE, ResizeHandle.SW, ResizeHandle.SE,
             ResizeHandle.N, ResizeHandle.S, ResizeHandle.W, ResizeHandle.E]
    for handle in order:
        pos = positions[handle]
        if abs(point.x - pos.x) <= tolerance and abs(point.y - pos.y) <= tolerance:
            return handle
    return None


def resize_rect(rect: Rect, handle: ResizeHandle, dx: float, dy: float,
                min_size: float, bounds: Optional[Rect] = None) -> Rect:
    """Move the edges `handle` controls by (dx, dy).

    The moving edges are clamped so that width and height never drop below
    `min_size` and, when `bounds` is given, never cross the bounds. The
    opposite edges stay fixed.
    """
    left, top, right, bottom = rect.left, rect.top, rect.right, rect.bottom

    if handle.moves_left:
        left = min(left + dx, right - min_size)
        if bounds is not None:
            left = max(left, bounds.left)
    elif handle.moves_right:
        right = max(right + dx, left + min_size)
        if bounds is not None:
            right = min(right, bounds.right)

    if handle.moves_top:
        top = min(top + dy, bottom - min_size)
        if bounds is not None:
            top = max(top, bounds.top)
    elif handle.moves_bottom:
        bottom = max(bottom + dy, top + min_size)
        if bounds is not None:
            bottom = min(bottom, bounds.bottom)

    return Rect.from_edges(left, top, right, bottom)


def clamp_offset(rect: Rect, dx: float, dy: float, bounds: Rect) -> tuple[float, float]:
    """Limit a translation so `rect` stays inside `bounds` where it fits."""
    if rect.width <= bounds.width:
        dx = max(bounds.left - rect.left, min(dx, bounds.right - rect.right))
    if rect.height <= bounds.height:
        dy = max(bounds.top - rect.top, min(dy, bounds.bottom - rect.bottom))
    return dx, dy


def distance_to_segment(p: Point, a: Point, b: Point) -> float:
    """Shortest distance from `p` to the segment a-b."""
    seg_x = b.x - a.x
    seg_y = b.y - a.y
    length_sq = seg_x * seg_x + seg_y * seg_y
    if length_sq == 0:
        return p.distance_to(a)
    t = ((p.x - a.x) * seg_x + (p.y - a.y) * seg_y) / length_sq
    t = max(0.0, min(1.0, t))
    return p.distance_to(Point(a.x + t * seg_x, a.y + t * seg_y))


def rotate_point_cw(p: Point, height: float) -> Point:
    """Rotate a point a quarter turn clockwise inside a box of the given height.

    A box of size (w, h) becomes (h, w); its top-left corner maps to the new
    top-right corner.
    """
    return Point(height - p.y, p.x)
