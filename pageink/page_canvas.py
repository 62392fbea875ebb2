"""Widget showing the current page image with the annotation overlay."""

from typing import Optional

from PySide6.QtWidgets import QWidget
from PySide6.QtCore import Qt, QRectF, QSize
from PySide6.QtGui import QPainter, QPixmap, QMouseEvent, QKeyEvent, QWheelEvent

from .interaction import Tool
from .render import paint_commands, render
from .session import EditorSession


class PageCanvas(QWidget):
    """Paints the rasterized page scaled by the session zoom.

    Widget coordinates are pointer space, so mouse positions go to the
    session unchanged.
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self._session: Optional[EditorSession] = None
        self._pixmap: Optional[QPixmap] = None
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setAutoFillBackground(False)

    def set_session(self, session: Optional[EditorSession]):
        self._session = session
        self._pixmap = None
        if session is not None:
            session.changed.connect(self._on_changed)
            session.page_rasterized.connect(self._on_rasterized)
            session.current_page_changed.connect(self._on_page_changed)
            session.zoom_changed.connect(self._on_zoom_changed)
            session.interaction.page_changed.connect(self._on_changed)
            session.interaction.selection_changed.connect(lambda _: self.update())
            session.interaction.tool_changed.connect(self._on_tool_changed)
            self._on_page_changed(session.current_page)
        self._resize_to_page()
        self.update()

    def sizeHint(self) -> QSize:
        if self._session is None:
            return QSize(400, 600)
        width, height = self._session.transformer(self._session.current_page).capture_size
        zoom = self._session.zoom
        return QSize(int(width * zoom), int(height * zoom))

    def _resize_to_page(self):
        self.setFixedSize(self.sizeHint())

    # --- session signals ---

    def _on_page_changed(self, page_number: int):
        session = self._session
        if session.raster(page_number) is None:
            session.rasterize_page(page_number)
        else:
            self._on_rasterized(page_number)

    def _on_rasterized(self, page_number: int):
        if page_number != self._session.current_page:
            return
        image = self._session.raster(page_number)
        self._pixmap = QPixmap.fromImage(image.to_qimage())
        self._resize_to_page()
        self.update()

    def _on_changed(self, page_number: int):
        session = self._session
        if session.raster(session.current_page) is None:
            session.rasterize_page(session.current_page)
        if page_number in (0, session.current_page):
            self.update()

    def _on_zoom_changed(self, zoom: float):
        self._resize_to_page()
        self.update()

    def _on_tool_changed(self, tool: str):
        if tool == Tool.SELECT.value:
            self.setCursor(Qt.CursorShape.ArrowCursor)
        else:
            self.setCursor(Qt.CursorShape.CrossCursor)
        self.update()

    # --- painting ---

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.fillRect(self.rect(), Qt.GlobalColor.white)
        if self._session is None:
            painter.end()
            return
        if self._pixmap is not None:
            painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
            painter.drawPixmap(QRectF(0, 0, self.width(), self.height()), self._pixmap,
                               QRectF(self._pixmap.rect()))
        paint_commands(painter, render(self._session))
        painter.end()

    # --- input ---

    def mousePressEvent(self, event: QMouseEvent):
        if self._session is not None and event.button() == Qt.MouseButton.LeftButton:
            pos = event.position()
            self._session.pointer_down(pos.x(), pos.y())
            event.accept()
            return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event: QMouseEvent):
        if self._session is not None and event.buttons() & Qt.MouseButton.LeftButton:
            pos = event.position()
            self._session.pointer_move(pos.x(), pos.y())
            event.accept()
            return
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event: QMouseEvent):
        if self._session is not None and event.button() == Qt.MouseButton.LeftButton:
            pos = event.position()
            self._session.pointer_up(pos.x(), pos.y())
            event.accept()
            return
        super().mouseReleaseEvent(event)

    def wheelEvent(self, event: QWheelEvent):
        if self._session is not None and event.modifiers() & Qt.KeyboardModifier.ControlModifier:
            if event.angleDelta().y() > 0:
                self._session.zoom_in()
            else:
                self._session.zoom_out()
            event.accept()
            return
        super().wheelEvent(event)

    def keyPressEvent(self, event: QKeyEvent):
        if self._session is None or self._session.exporting:
            super().keyPressEvent(event)
            return

        if event.key() == Qt.Key.Key_Delete:
            if self._session.delete_selected() is not None:
                event.accept()
                return

        if event.key() == Qt.Key.Key_Escape:
            self._session.interaction.cancel()
            self._session.interaction.select(None)
            self.update()
            event.accept()
            return

        super().keyPressEvent(event)
