"""Draw instructions shared by the overlay renderer and the export baker.

The same types are used in two spaces. Baked instructions are in document
units with a bottom-left origin, so a rectangle's `origin` is its bottom-left
corner and text `origin` is on the baseline. Overlay commands are in pointer
pixels with a top-left origin, so `origin` is the top-left corner.
"""

from dataclasses import dataclass
from typing import Optional, Union

from .geometry import Point


@dataclass(frozen=True)
class DrawLine:
    start: Point
    end: Point
    thickness: float
    color: str
    opacity: float = 1.0


@dataclass(frozen=True)
class DrawRect:
    origin: Point
    width: float
    height: float
    stroke_color: Optional[str]
    stroke_width: float
    fill_color: Optional[str] = None
    opacity: float = 1.0


@dataclass(frozen=True)
class DrawEllipse:
    center: Point
    radius_x: float
    radius_y: float
    stroke_color: Optional[str]
    stroke_width: float
    fill_color: Optional[str] = None
    opacity: float = 1.0


@dataclass(frozen=True)
class DrawText:
    origin: Point
    text: str
    font_size: float
    color: str
    opacity: float = 1.0


@dataclass(frozen=True)
class DrawImage:
    origin: Point
    width: float
    height: float
    image: bytes


DrawInstruction = Union[DrawLine, DrawRect, DrawEllipse, DrawText, DrawImage]
