"""Overlay rendering: annotations, selection and crop region as draw commands.

`render` is pure and works in pointer pixels (top-left origin), so it can be
tested without a display. `paint_commands` replays the commands on a QPainter.
"""

from typing import TYPE_CHECKING, Optional

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QBrush, QColor, QFont, QImage, QPainter, QPen

from .geometry import Point, Rect, handle_positions
from .interaction import Tool
from .models import Annotation, AnnotationKind, text_ascent
from .primitives import DrawEllipse, DrawImage, DrawInstruction, DrawLine, DrawRect, DrawText
from .transform import CoordinateTransformer

if TYPE_CHECKING:
    from .session import EditorSession

SELECTION_COLOR = "#0078D7"
HANDLE_FILL = "#FFFFFF"
CROP_SHADE = "#000000"
CROP_SHADE_OPACITY = 0.4
CROP_OUTLINE = "#FF8C00"


def annotation_commands(annotation: Annotation, t: CoordinateTransformer) -> list[DrawInstruction]:
    """Commands drawing one annotation in pointer space."""
    style = annotation.style
    g = annotation.geometry
    kind = annotation.kind
    width = style.stroke_width * t.zoom

    if kind == AnnotationKind.FREEHAND or kind == AnnotationKind.LINE:
        points = [t.capture_to_pointer(p) for p in g.points]
        if kind == AnnotationKind.LINE:
            points = [points[0], points[-1]]
        return [DrawLine(a, b, width, style.stroke_color, style.opacity)
                for a, b in zip(points, points[1:])]

    elif kind == AnnotationKind.RECTANGLE:
        rect = g.rect
        return [DrawRect(t.capture_to_pointer(rect.origin), rect.width * t.zoom, rect.height * t.zoom,
                         style.stroke_color, width, style.fill_color, style.opacity)]

    elif kind == AnnotationKind.ELLIPSE:
        rect = g.rect
        return [DrawEllipse(t.capture_to_pointer(rect.center), rect.width / 2 * t.zoom,
                            rect.height / 2 * t.zoom, style.stroke_color, width,
                            style.fill_color, style.opacity)]

    elif kind == AnnotationKind.TEXT:
        return [DrawText(t.capture_to_pointer(Point(g.x, g.y)), g.text, g.font_size * t.zoom,
                         style.stroke_color, style.opacity)]

    elif kind == AnnotationKind.IMAGE:
        rect = g.rect
        return [DrawImage(t.capture_to_pointer(rect.origin), rect.width * t.zoom,
                          rect.height * t.zoom, annotation.payload or b"")]

    raise ValueError(f"Unknown annotation kind: {kind}")


def frame_commands(rect: Rect, t: CoordinateTransformer, color: str,
                   handle_size: float) -> list[DrawInstruction]:
    """Outline of a capture-space rect plus its eight resize handles."""
    origin = t.capture_to_pointer(rect.origin)
    commands: list[DrawInstruction] = [
        DrawRect(origin, rect.width * t.zoom, rect.height * t.zoom, color, 1.0)
    ]
    half = handle_size / 2
    for position in handle_positions(rect).values():
        p = t.capture_to_pointer(position)
        commands.append(DrawRect(Point(p.x - half, p.y - half), handle_size, handle_size,
                                 color, 1.0, HANDLE_FILL))
    return commands


def crop_commands(crop: Rect, t: CoordinateTransformer) -> list[DrawInstruction]:
    """Shade outside a capture-space crop region, then its outline."""
    bounds = t.capture_bounds
    shades = [
        Rect.from_edges(bounds.left, bounds.top, bounds.right, crop.top),
        Rect.from_edges(bounds.left, crop.bottom, bounds.right, bounds.bottom),
        Rect.from_edges(bounds.left, crop.top, crop.left, crop.bottom),
        Rect.from_edges(crop.right, crop.top, bounds.right, crop.bottom),
    ]
    commands: list[DrawInstruction] = []
    for shade in shades:
        if shade.width > 0 and shade.height > 0:
            commands.append(DrawRect(t.capture_to_pointer(shade.origin), shade.width * t.zoom,
                                     shade.height * t.zoom, None, 0.0, CROP_SHADE,
                                     CROP_SHADE_OPACITY))
    commands.append(DrawRect(t.capture_to_pointer(crop.origin), crop.width * t.zoom,
                             crop.height * t.zoom, CROP_OUTLINE, 2.0))
    return commands


def render(session: "EditorSession", page_number: Optional[int] = None) -> list[DrawInstruction]:
    """Everything drawn over the page image, in paint order."""
    page_number = page_number or session.current_page
    t = session.transformer(page_number)
    interaction = session.interaction
    commands: list[DrawInstruction] = []

    for annotation in session.store.query(page_number):
        commands.extend(annotation_commands(annotation, t))

    on_current = page_number == session.current_page
    preview = interaction.preview() if on_current else None
    if preview is not None:
        commands.extend(annotation_commands(preview, t))

    crop = interaction.preview_crop() if on_current else None
    if crop is None and session.store.crop(page_number) is not None:
        crop = t.normalized_rect_to_capture(session.store.crop(page_number))
    if crop is not None:
        commands.extend(crop_commands(crop, t))
        if on_current and interaction.tool == Tool.CROP:
            commands.extend(frame_commands(crop, t, CROP_OUTLINE, session.settings.handle_size))

    selected = session.store.get(interaction.selected_id) if interaction.selected_id else None
    if on_current and selected is not None and selected.page_number == page_number:
        commands.extend(frame_commands(selected.bbox(), t, SELECTION_COLOR,
                                       session.settings.handle_size))
    return commands


# --- QPainter backend ---

def _color(hex_color: Optional[str], opacity: float = 1.0) -> QColor:
    color = QColor(hex_color)
    color.setAlphaF(opacity)
    return color


def _pen(hex_color: Optional[str], width: float, opacity: float) -> QPen:
    if not hex_color or width <= 0:
        return QPen(Qt.PenStyle.NoPen)
    pen = QPen(_color(hex_color, opacity), width)
    pen.setCapStyle(Qt.PenCapStyle.RoundCap)
    pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
    return pen


def _brush(hex_color: Optional[str], opacity: float) -> QBrush:
    if not hex_color:
        return QBrush(Qt.BrushStyle.NoBrush)
    return QBrush(_color(hex_color, opacity))


def paint_commands(painter: QPainter, commands: list[DrawInstruction]) -> None:
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    for command in commands:
        if isinstance(command, DrawLine):
            painter.setPen(_pen(command.color, command.thickness, command.opacity))
            painter.drawLine(QPointF(command.start.x, command.start.y),
                             QPointF(command.end.x, command.end.y))

        elif isinstance(command, DrawRect):
            painter.setPen(_pen(command.stroke_color, command.stroke_width, command.opacity))
            painter.setBrush(_brush(command.fill_color, command.opacity))
            painter.drawRect(QRectF(command.origin.x, command.origin.y, command.width, command.height))

        elif isinstance(command, DrawEllipse):
            painter.setPen(_pen(command.stroke_color, command.stroke_width, command.opacity))
            painter.setBrush(_brush(command.fill_color, command.opacity))
            painter.drawEllipse(QPointF(command.center.x, command.center.y),
                                command.radius_x, command.radius_y)

        elif isinstance(command, DrawText):
            font = QFont("Helvetica")
            font.setPixelSize(max(1, round(command.font_size)))
            painter.setFont(font)
            painter.setPen(QPen(_color(command.color, command.opacity)))
            # origin is the top-left of the text box
            baseline = command.origin.y + text_ascent(command.font_size)
            painter.drawText(QPointF(command.origin.x, baseline), command.text)

        elif isinstance(command, DrawImage):
            image = QImage.fromData(command.image)
            if not image.isNull():
                painter.drawImage(QRectF(command.origin.x, command.origin.y,
                                         command.width, command.height), image)
