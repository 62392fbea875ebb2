"""Editing session: ties the document, store, history and tools together."""

from dataclasses import asdict
from typing import Callable, Optional
import logging

from PySide6.QtCore import QObject, Signal

from .config import EditorSettings
from .errors import ExportInProgress, NothingToRedo, NothingToUndo, RasterNotReady
from .export import ExportBaker, ExportReport
from .geometry import Rect
from .history import HistoryManager
from .interaction import InteractionStateMachine, Tool
from .models import Annotation, AnnotationStore, Document, Style
from .raster import RasterImage, Rasterizer
from .transform import CoordinateTransformer

logger = logging.getLogger(__name__)


class EditorSession(QObject):
    """One open document and everything edited on it.

    The session is the only owner of mutable editing state. Pass it to
    whatever needs that state instead of keeping globals.
    """

    changed = Signal(int)  # page number, 0 when every page may have changed
    page_rasterized = Signal(int)
    current_page_changed = Signal(int)
    zoom_changed = Signal(float)
    exporting_changed = Signal(bool)

    def __init__(self, document: Document, rasterizer: Optional[Rasterizer] = None,
                 settings: Optional[EditorSettings] = None):
        super().__init__()
        self.document = document
        self.rasterizer = rasterizer
        self.settings = settings or EditorSettings()
        self.store = AnnotationStore(document.page_count, self.settings.stroke_hit_tolerance)
        self.history = HistoryManager(self.settings.history_limit)
        self.history.reset(self.store)
        self.interaction = InteractionStateMachine(self)

        self._rasters: dict[int, RasterImage] = {}
        self._current_page = 1
        self._zoom = 1.0
        self._exporting = False
        self._styles: dict[Tool, Style] = self._default_styles()

    def _default_styles(self) -> dict[Tool, Style]:
        s = self.settings
        pen = Style(stroke_color=s.stroke_color, stroke_width=s.stroke_width)
        return {
            Tool.PEN: pen,
            Tool.HIGHLIGHTER: Style(stroke_color=s.stroke_color, stroke_width=s.highlighter_width,
                                    opacity=s.highlighter_opacity),
            Tool.LINE: pen,
            Tool.RECTANGLE: Style(stroke_color=s.stroke_color, stroke_width=s.stroke_width,
                                  fill_color=s.fill_color or None),
            Tool.ELLIPSE: Style(stroke_color=s.stroke_color, stroke_width=s.stroke_width,
                                fill_color=s.fill_color or None),
            Tool.TEXT: Style(stroke_color=s.stroke_color, stroke_width=0.0),
        }

    # --- navigation and zoom ---

    @property
    def current_page(self) -> int:
        return self._current_page

    def go_to_page(self, page_number: int) -> None:
        self.document.page(page_number)
        if page_number == self._current_page:
            return
        self.interaction.cancel()
        self._current_page = page_number
        self.current_page_changed.emit(page_number)

    def next_page(self) -> None:
        if self._current_page < self.document.page_count:
            self.go_to_page(self._current_page + 1)

    def prev_page(self) -> None:
        if self._current_page > 1:
            self.go_to_page(self._current_page - 1)

    @property
    def zoom(self) -> float:
        return self._zoom

    def set_zoom(self, zoom: float) -> None:
        """Change the on-screen zoom. Capture scales are not affected."""
        self._zoom = self.settings.clamp_zoom(zoom)
        self.zoom_changed.emit(self._zoom)

    def zoom_in(self) -> None:
        self.set_zoom(self._zoom * 1.25)

    def zoom_out(self) -> None:
        self.set_zoom(self._zoom / 1.25)

    # --- coordinates and rasters ---

    def rotation(self, page_number: int) -> int:
        """Total rotation of a page: its own plus the user's."""
        page = self.document.page(page_number)
        return (page.rotation + self.store.rotation(page_number)) % 360

    def capture_scale(self, page_number: int) -> float:
        return self.document.page(page_number).capture_scale or self.settings.capture_scale

    def transformer(self, page_number: int) -> CoordinateTransformer:
        page = self.document.page(page_number)
        width, height = page.rotated_size(self.store.rotation(page_number))
        return CoordinateTransformer(self.capture_scale(page_number), width, height, self._zoom)

    def require_raster(self, page_number: int) -> CoordinateTransformer:
        """Transformer of a page that has been rasterized."""
        if page_number not in self._rasters:
            raise RasterNotReady(page_number)
        return self.transformer(page_number)

    def raster(self, page_number: int) -> Optional[RasterImage]:
        return self._rasters.get(page_number)

    def rasterize_page(self, page_number: Optional[int] = None,
                       scale: Optional[float] = None) -> RasterImage:
        """Render a page and remember the scale as its capture scale."""
        if self.rasterizer is None:
            raise RuntimeError("Session has no rasterizer")
        page_number = page_number or self._current_page
        page = self.document.page(page_number)
        requested = scale or page.capture_scale or self.settings.capture_scale
        if (page.capture_scale is not None and requested != page.capture_scale
                and (self.store.count(page_number) or self.history.holds_annotations(page_number))):
            logger.warning("Page %d keeps capture scale %s because it has annotations or history; "
                           "use zoom to change the display size", page_number, page.capture_scale)
            requested = page.capture_scale

        image = self.rasterizer.rasterize(page_number, requested, self.rotation(page_number))
        page.capture_scale = requested
        self._rasters[page_number] = image
        self.page_rasterized.emit(page_number)
        return image

    def invalidate_raster(self, page_number: int) -> None:
        self._rasters.pop(page_number, None)

    # --- styles ---

    def style_for(self, tool: Tool) -> Style:
        """Copy of the style new annotations of `tool` get."""
        style = self._styles.get(tool, self._styles[Tool.PEN])
        return Style(**asdict(style))

    def set_tool_style(self, tool: Tool, style: Style) -> None:
        self._styles[tool] = style

    # --- pointer events (pointer space of the current page) ---

    def pointer_down(self, x: float, y: float) -> None:
        self.interaction.pointer_down(x, y)

    def pointer_move(self, x: float, y: float) -> None:
        self.interaction.pointer_move(x, y)

    def pointer_up(self, x: float, y: float) -> None:
        self.interaction.pointer_up(x, y)

    def set_tool(self, tool: Tool) -> None:
        self.interaction.set_tool(tool)

    @property
    def selected_id(self) -> Optional[str]:
        return self.interaction.selected_id

    # --- committed edits ---

    def _check_mutable(self) -> None:
        if self._exporting:
            raise ExportInProgress("Export in progress")

    def commit(self, description: str) -> None:
        """Record the current store as a new history entry."""
        self._check_mutable()
        self.history.record(self.store, description)
        self.changed.emit(self._current_page)

    def add_annotation(self, page_number: int, annotation: Annotation) -> Annotation:
        self._check_mutable()
        self.store.add(page_number, annotation)
        self.commit(f"Add {annotation.kind.value}")
        return annotation

    def remove_annotation(self, annotation_id: str) -> Optional[Annotation]:
        self._check_mutable()
        removed = self.store.remove(annotation_id)
        if removed is not None:
            self.interaction.validate_selection()
            self.commit(f"Delete {removed.kind.value}")
        return removed

    def update_annotation(self, annotation_id: str, mutator: Callable[[Annotation], None],
                          description: str = "Edit") -> Annotation:
        self._check_mutable()
        annotation = self.store.update(annotation_id, mutator)
        self.commit(description)
        return annotation

    def set_style(self, annotation_id: str, style: Style) -> Annotation:
        style = Style(**asdict(style))
        return self.update_annotation(annotation_id, lambda a: setattr(a, "style", style),
                                      "Change style")

    def delete_selected(self) -> Optional[Annotation]:
        if self.selected_id is None:
            return None
        return self.remove_annotation(self.selected_id)

    def clear_page(self, page_number: Optional[int] = None) -> int:
        """Remove every annotation of a page as one history entry."""
        self._check_mutable()
        page_number = page_number or self._current_page
        removed = self.store.clear_page(page_number)
        if removed:
            self.interaction.validate_selection()
            self.commit("Clear page")
        return len(removed)

    # --- undo / redo ---

    def undo(self) -> bool:
        self._check_mutable()
        self.interaction.cancel()
        try:
            snapshot = self.history.undo()
        except NothingToUndo:
            logger.info("Nothing to undo")
            return False
        self._restore(snapshot)
        return True

    def redo(self) -> bool:
        self._check_mutable()
        self.interaction.cancel()
        try:
            snapshot = self.history.redo()
        except NothingToRedo:
            logger.info("Nothing to redo")
            return False
        self._restore(snapshot)
        return True

    def _restore(self, snapshot) -> None:
        before = {n: self.store.rotation(n) for n in range(1, self.document.page_count + 1)}
        snapshot.apply_to(self.store)
        for n, rotation in before.items():
            if self.store.rotation(n) != rotation:
                self._rerasterize(n)
        self.interaction.validate_selection()
        self.changed.emit(0)

    # --- page rotation ---

    def rotate_page(self, page_number: Optional[int] = None, degrees: int = 90) -> None:
        self.rotate_pages(degrees, [page_number or self._current_page])

    def rotate_pages(self, degrees: int = 90, pages: Optional[list[int]] = None) -> None:
        """Rotate pages clockwise by a multiple of 90 degrees as one history entry.

        With `pages` None every page is rotated. Annotations and crop regions
        follow the page content.
        """
        self._check_mutable()
        if degrees % 90:
            raise ValueError("Rotation must be a multiple of 90 degrees")
        pages = list(range(1, self.document.page_count + 1)) if pages is None else pages
        for n in pages:
            self.document.page(n)
        self.interaction.cancel()

        turns = (degrees // 90) % 4
        for n in pages:
            for _ in range(turns):
                self._quarter_turn(n)
            self._rerasterize(n)
        self.commit(f"Rotate {degrees}°")
        self.changed.emit(0)

    def _quarter_turn(self, page_number: int) -> None:
        capture_height = self.transformer(page_number).capture_size[1]
        for annotation in self.store.query(page_number):
            annotation.rotate_cw(capture_height)
        crop = self.store.crop(page_number)
        if crop is not None:
            self.store.set_crop(page_number, Rect(1.0 - crop.y - crop.height, crop.x,
                                                  crop.height, crop.width))
        self.store.set_rotation(page_number, self.store.rotation(page_number) + 90)

    def _rerasterize(self, page_number: int) -> None:
        had_raster = page_number in self._rasters
        self.invalidate_raster(page_number)
        if had_raster and self.rasterizer is not None:
            self.rasterize_page(page_number)

    # --- crop regions ---

    def crop_rect(self, page_number: Optional[int] = None) -> Optional[Rect]:
        """Crop region of a page in capture space."""
        page_number = page_number or self._current_page
        crop = self.store.crop(page_number)
        if crop is None:
            return None
        return self.transformer(page_number).normalized_rect_to_capture(crop)

    def set_crop(self, rect: Optional[Rect], page_number: Optional[int] = None) -> None:
        """Set a crop region given in capture space, or clear it with None."""
        self._check_mutable()
        page_number = page_number or self._current_page
        normalized = self.transformer(page_number).capture_rect_to_normalized(rect) if rect else None
        self.store.set_crop(page_number, normalized)
        self.commit("Crop" if rect else "Clear crop")

    def clear_crop(self, page_number: Optional[int] = None) -> None:
        self.set_crop(None, page_number)

    def apply_crop_to_all_pages(self) -> bool:
        """Copy the current page's crop region to every page as one history entry."""
        self._check_mutable()
        crop = self.store.crop(self._current_page)
        if crop is None:
            self.interaction.warning.emit("Select a crop area first")
            return False
        for n in range(1, self.document.page_count + 1):
            self.store.set_crop(n, crop)
        self.commit("Crop all pages")
        self.changed.emit(0)
        return True

    # --- export ---

    @property
    def exporting(self) -> bool:
        return self._exporting

    def begin_export(self) -> None:
        self.interaction.cancel()
        self._exporting = True
        self.exporting_changed.emit(True)

    def end_export(self) -> None:
        self._exporting = False
        self.exporting_changed.emit(False)

    def bake(self, progress: Optional[Callable[[int, int], None]] = None) -> ExportReport:
        """Document-space draw instructions for every page."""
        baker = ExportBaker(self.document, self.store, self.settings.capture_scale)
        return baker.bake(progress)
