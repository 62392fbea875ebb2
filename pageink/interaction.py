"""Pointer-driven tool state machine for the page being edited."""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional, Union
import logging

from PySide6.QtCore import QObject, Signal

from .errors import RasterNotReady
from .geometry import Point, Rect, ResizeHandle, clamp_offset, handle_at, resize_rect
from .models import (
    Annotation, AnnotationKind, BoxGeometry, StrokeGeometry, Style, TextGeometry,
)
from .transform import CoordinateTransformer

if TYPE_CHECKING:
    from .session import EditorSession
    from .stamps import PreparedStamp

logger = logging.getLogger(__name__)


class Tool(Enum):
    SELECT = "select"
    PEN = "pen"
    HIGHLIGHTER = "highlighter"
    LINE = "line"
    RECTANGLE = "rectangle"
    ELLIPSE = "ellipse"
    TEXT = "text"
    STAMP = "stamp"
    ERASER = "eraser"
    CROP = "crop"


DRAWING_TOOLS = {
    Tool.PEN: AnnotationKind.FREEHAND,
    Tool.HIGHLIGHTER: AnnotationKind.FREEHAND,
    Tool.LINE: AnnotationKind.LINE,
    Tool.RECTANGLE: AnnotationKind.RECTANGLE,
    Tool.ELLIPSE: AnnotationKind.ELLIPSE,
}


# --- states ---

@dataclass
class Idle:
    pass


@dataclass
class Drawing:
    """A gesture in progress. `annotation` is None while drawing a crop region."""
    tool: Tool
    anchor: Point
    annotation: Optional[Annotation] = None
    crop: Optional[Rect] = None


@dataclass
class Dragging:
    annotation_id: Optional[str]  # None when the crop region is dragged
    grab_offset: Point
    start: Union[Annotation, Rect]


@dataclass
class Resizing:
    annotation_id: Optional[str]  # None when the crop region is resized
    handle: ResizeHandle
    start_point: Point
    start: Union[Annotation, Rect]


@dataclass
class PlacingText:
    pass


@dataclass
class PlacingStamp:
    pass


State = Union[Idle, Drawing, Dragging, Resizing, PlacingText, PlacingStamp]


class InteractionStateMachine(QObject):
    """Turns pointer events on the current page into store mutations.

    Points arrive in pointer space and are converted with the page's
    transformer. History is recorded when a gesture commits, never while it
    is in progress.
    """

    tool_changed = Signal(str)
    selection_changed = Signal(object)  # annotation id or None
    page_changed = Signal(int)  # page whose overlay must be redrawn
    warning = Signal(str)

    def __init__(self, session: "EditorSession"):
        super().__init__()
        self._session = session
        self._state: State = Idle()
        self._tool = Tool.SELECT
        self._selected_id: Optional[str] = None
        self._pending_text: Optional[str] = None
        self._pending_stamp: Optional["PreparedStamp"] = None
        self._crop_before: Optional[Rect] = None  # normalized crop when a crop gesture began
        self.text_prompt: Optional[Callable[[], Optional[str]]] = None

    # --- accessors ---

    @property
    def state(self) -> State:
        return self._state

    @property
    def tool(self) -> Tool:
        return self._tool

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    @property
    def active_handle(self) -> Optional[ResizeHandle]:
        if isinstance(self._state, Resizing):
            return self._state.handle
        return None

    @property
    def pending_stamp(self) -> Optional["PreparedStamp"]:
        return self._pending_stamp

    def preview(self) -> Optional[Annotation]:
        """The annotation being drawn, if any."""
        if isinstance(self._state, Drawing):
            return self._state.annotation
        return None

    def preview_crop(self) -> Optional[Rect]:
        if isinstance(self._state, Drawing) and self._state.tool == Tool.CROP:
            return self._state.crop
        return None

    # --- tool and selection ---

    def set_tool(self, tool: Tool) -> None:
        self.cancel()
        self._tool = tool
        if tool == Tool.TEXT:
            self._state = PlacingText()
        elif tool == Tool.STAMP:
            self._state = PlacingStamp()
        if tool != Tool.SELECT:
            self.select(None)
        self.tool_changed.emit(tool.value)

    def set_pending_text(self, text: Optional[str]) -> None:
        """Text used by the next text placement."""
        self._pending_text = text

    def prepare_stamp(self, stamp: "PreparedStamp") -> None:
        """Arm the stamp tool with a signature or image."""
        self._pending_stamp = stamp
        self.set_tool(Tool.STAMP)

    def select(self, annotation_id: Optional[str]) -> None:
        if annotation_id == self._selected_id:
            return
        self._selected_id = annotation_id
        self.selection_changed.emit(annotation_id)

    def cancel(self) -> None:
        """Abandon an unfinished gesture, restoring what it changed."""
        state = self._state
        session = self._session
        if isinstance(state, (Dragging, Resizing)):
            page = session.current_page
            if state.annotation_id is None:
                session.store.set_crop(page, self._crop_before)
            else:
                start = state.start
                session.store.update(state.annotation_id, lambda a: setattr(a, "geometry", start.copy().geometry))
            self.page_changed.emit(page)
        self._state = Idle()

    def validate_selection(self) -> None:
        """Drop the selection when the selected annotation no longer exists."""
        if self._selected_id is not None and self._session.store.get(self._selected_id) is None:
            self.select(None)

    # --- pointer events ---

    def pointer_down(self, x: float, y: float) -> None:
        transformer = self._ready_transformer()
        if transformer is None:
            return
        point = transformer.pointer_to_capture(Point(x, y))
        if not transformer.capture_bounds.contains(point):
            logger.debug("Ignoring click outside page at %s", point)
            return

        state = self._state
        if isinstance(state, PlacingText):
            self._place_text(point)
        elif isinstance(state, PlacingStamp):
            self._place_stamp(point, transformer)
        elif not isinstance(state, Idle):
            return
        elif self._tool in DRAWING_TOOLS:
            self._begin_drawing(point)
        elif self._tool == Tool.SELECT:
            self._begin_select(point, transformer)
        elif self._tool == Tool.ERASER:
            self._erase(point)
        elif self._tool == Tool.CROP:
            self._begin_crop(point, transformer)

    def pointer_move(self, x: float, y: float) -> None:
        state = self._state
        if not isinstance(state, (Drawing, Dragging, Resizing)):
            return
        transformer = self._ready_transformer()
        if transformer is None:
            return
        point = _clamp_point(transformer.pointer_to_capture(Point(x, y)), transformer.capture_bounds)

        if isinstance(state, Drawing):
            self._update_drawing(state, point)
        elif isinstance(state, Dragging):
            self._update_drag(state, point, transformer)
        else:
            self._update_resize(state, point, transformer)
        self.page_changed.emit(self._session.current_page)

    def pointer_up(self, x: float, y: float) -> None:
        state = self._state
        if not isinstance(state, (Drawing, Dragging, Resizing)):
            return
        self.pointer_move(x, y)
        self._state = Idle()
        session = self._session

        if isinstance(state, Drawing):
            if state.tool == Tool.CROP:
                self._commit_crop(state)
            else:
                self._commit_drawing(state)
        elif state.annotation_id is None:
            if session.store.crop(session.current_page) != self._crop_before:
                session.commit("Adjust crop")
        else:
            current = session.store.get(state.annotation_id)
            if current is not None and current.geometry != state.start.geometry:
                session.commit("Move" if isinstance(state, Dragging) else "Resize")
        self.page_changed.emit(session.current_page)

    # --- drawing ---

    def _begin_drawing(self, point: Point) -> None:
        session = self._session
        kind = DRAWING_TOOLS[self._tool]
        if kind.uses_points:
            geometry = StrokeGeometry([point] if kind == AnnotationKind.FREEHAND else [point, point])
        else:
            geometry = BoxGeometry(point.x, point.y, 0.0, 0.0)
        annotation = Annotation(kind=kind, geometry=geometry,
                                page_number=session.current_page,
                                style=session.style_for(self._tool))
        self._state = Drawing(self._tool, point, annotation)

    def _update_drawing(self, state: Drawing, point: Point) -> None:
        if state.tool == Tool.CROP:
            state.crop = Rect.from_points(state.anchor, point)
            return
        annotation = state.annotation
        kind = annotation.kind
        if kind == AnnotationKind.FREEHAND:
            if point != annotation.geometry.points[-1]:
                annotation.geometry.points.append(point)
        elif kind == AnnotationKind.LINE:
            annotation.geometry.points[-1] = point
        else:
            annotation.geometry = BoxGeometry.from_rect(Rect.from_points(state.anchor, point))

    def _commit_drawing(self, state: Drawing) -> None:
        session = self._session
        annotation = state.annotation
        min_size = session.settings.min_size
        kind = annotation.kind

        if kind == AnnotationKind.FREEHAND:
            if len(annotation.geometry.points) < 2:
                logger.debug("Discarding single-point stroke")
                return
        elif kind == AnnotationKind.LINE:
            start, end = annotation.geometry.points[0], annotation.geometry.points[-1]
            if start.distance_to(end) < min_size:
                logger.debug("Discarding zero-length line")
                return
        else:
            rect = annotation.geometry.rect
            if rect.width < min_size and rect.height < min_size:
                logger.debug("Discarding %s smaller than %s", kind.value, min_size)
                return
            widened = Rect(rect.x, rect.y, max(rect.width, min_size), max(rect.height, min_size))
            bounds = session.transformer(session.current_page).capture_bounds
            dx, dy = clamp_offset(widened, 0.0, 0.0, bounds)
            widened = widened.translated(dx, dy)
            annotation.geometry = BoxGeometry(widened.x, widened.y, widened.width, widened.height)

        session.store.add(session.current_page, annotation)
        session.commit(f"Draw {kind.value}")

    # --- placement ---

    def _place_text(self, point: Point) -> None:
        session = self._session
        text = self._pending_text
        if not text and self.text_prompt is not None:
            text = self.text_prompt()
        if not text:
            self._warn("Enter some text before placing it on the page")
            return

        style = session.style_for(Tool.TEXT)
        annotation = Annotation(
            kind=AnnotationKind.TEXT,
            geometry=TextGeometry(point.x, point.y, text, session.settings.font_size),
            style=style,
        )
        session.store.add(session.current_page, annotation)
        self._pending_text = None
        self._state = Idle()
        session.commit("Add text")
        self.page_changed.emit(session.current_page)

    def _place_stamp(self, point: Point, transformer: CoordinateTransformer) -> None:
        session = self._session
        stamp = self._pending_stamp
        if stamp is None:
            self._warn("Prepare a signature or image before placing it")
            return

        width = session.settings.stamp_width
        height = width * stamp.height / stamp.width
        rect = Rect(point.x - width / 2, point.y - height / 2, width, height)
        dx, dy = clamp_offset(rect, 0.0, 0.0, transformer.capture_bounds)
        rect = rect.translated(dx, dy)

        annotation = Annotation(
            kind=AnnotationKind.IMAGE,
            geometry=BoxGeometry.from_rect(rect),
            style=Style(stroke_width=0.0),
            payload=stamp.data,
        )
        session.store.add(session.current_page, annotation)
        self._pending_stamp = None
        self._state = Idle()
        self._tool = Tool.SELECT
        self.tool_changed.emit(self._tool.value)
        session.commit("Place stamp")
        self.select(annotation.id)
        self.page_changed.emit(session.current_page)

    # --- selection, drag and resize ---

    def _begin_select(self, point: Point, transformer: CoordinateTransformer) -> None:
        session = self._session
        page = session.current_page
        tolerance = session.settings.handle_size / transformer.zoom

        selected = session.store.get(self._selected_id) if self._selected_id else None
        if selected is not None and selected.page_number == page:
            handle = handle_at(selected.bbox(), point, tolerance)
            if handle is not None:
                self._state = Resizing(selected.id, handle, point, selected.copy())
                return

        hit = session.store.hit_test(page, point)
        if hit is None:
            self.select(None)
            self.page_changed.emit(page)
            return

        self.select(hit.id)
        self._state = Dragging(hit.id, point - hit.origin, hit.copy())
        self.page_changed.emit(page)

    def _update_drag(self, state: Dragging, point: Point, transformer: CoordinateTransformer) -> None:
        session = self._session
        bounds = transformer.capture_bounds
        if state.annotation_id is None:
            page = session.current_page
            crop = transformer.normalized_rect_to_capture(session.store.crop(page))
            target = point - state.grab_offset
            dx, dy = clamp_offset(crop, target.x - crop.x, target.y - crop.y, bounds)
            session.store.set_crop(page, transformer.capture_rect_to_normalized(crop.translated(dx, dy)))
            return

        def move(annotation: Annotation) -> None:
            box = annotation.bbox()
            target = point - state.grab_offset
            dx, dy = clamp_offset(box, target.x - box.x, target.y - box.y, bounds)
            annotation.translate(dx, dy)

        session.store.update(state.annotation_id, move)

    def _update_resize(self, state: Resizing, point: Point, transformer: CoordinateTransformer) -> None:
        session = self._session
        bounds = transformer.capture_bounds
        delta = point - state.start_point
        if state.annotation_id is None:
            rect = resize_rect(state.start, state.handle, delta.x, delta.y,
                               session.settings.crop_min_size, bounds)
            session.store.set_crop(session.current_page, transformer.capture_rect_to_normalized(rect))
            return

        start = state.start

        def resize(annotation: Annotation) -> None:
            annotation.geometry = start.copy().geometry
            annotation.resize(state.handle, delta.x, delta.y, session.settings.min_size, bounds)

        session.store.update(state.annotation_id, resize)

    # --- eraser ---

    def _erase(self, point: Point) -> None:
        session = self._session
        page = session.current_page
        hits = session.store.hit_all(page, point, session.settings.eraser_tolerance)
        if not hits:
            return
        for annotation in hits:
            session.store.remove(annotation.id)
        self.validate_selection()
        session.commit("Erase")
        self.page_changed.emit(page)

    # --- crop region ---

    def _begin_crop(self, point: Point, transformer: CoordinateTransformer) -> None:
        session = self._session
        crop_norm = session.store.crop(session.current_page)
        self._crop_before = crop_norm
        if crop_norm is not None:
            crop = transformer.normalized_rect_to_capture(crop_norm)
            tolerance = session.settings.handle_size / transformer.zoom
            handle = handle_at(crop, point, tolerance)
            if handle is not None:
                self._state = Resizing(None, handle, point, crop)
                return
            if crop.contains(point):
                self._state = Dragging(None, point - crop.origin, crop)
                return
        self._state = Drawing(Tool.CROP, point, crop=Rect(point.x, point.y, 0.0, 0.0))

    def _commit_crop(self, state: Drawing) -> None:
        session = self._session
        rect = state.crop
        if rect is None or (rect.width < session.settings.min_size and
                            rect.height < session.settings.min_size):
            return
        transformer = session.transformer(session.current_page)
        bounds = transformer.capture_bounds
        min_size = min(session.settings.crop_min_size, bounds.width, bounds.height)
        rect = Rect(rect.x, rect.y, max(rect.width, min_size), max(rect.height, min_size))
        dx, dy = clamp_offset(rect, 0.0, 0.0, bounds)
        rect = rect.translated(dx, dy)
        session.store.set_crop(session.current_page, transformer.capture_rect_to_normalized(rect))
        session.commit("Crop")

    # --- helpers ---

    def _ready_transformer(self) -> Optional[CoordinateTransformer]:
        session = self._session
        if session.exporting:
            logger.debug("Ignoring pointer event during export")
            return None
        try:
            return session.require_raster(session.current_page)
        except RasterNotReady as e:
            logger.debug("Dropping pointer event: %s", e)
            return None

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.warning.emit(message)


def _clamp_point(p: Point, bounds: Rect) -> Point:
    return Point(min(max(p.x, bounds.left), bounds.right),
                 min(max(p.y, bounds.top), bounds.bottom))

