"""Thumbnail panel for page navigation."""

from typing import Optional

from PySide6.QtWidgets import QWidget, QVBoxLayout, QScrollArea, QLabel, QFrame
from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QPixmap

from .session import EditorSession

THUMB_WIDTH = 100


class ThumbnailWidget(QFrame):
    """Single page thumbnail."""

    clicked = Signal(int)  # page number

    def __init__(self, page_number: int, parent=None):
        super().__init__(parent)
        self.page_number = page_number
        self._selected = False

        self.setFixedSize(120, 160)
        self.setFrameStyle(QFrame.Shape.Box)
        self.setCursor(Qt.CursorShape.PointingHandCursor)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(2, 2, 2, 2)
        layout.setSpacing(2)

        self._image_label = QLabel()
        self._image_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._image_label.setStyleSheet("background-color: white;")
        layout.addWidget(self._image_label, 1)

        self._page_label = QLabel(f"{page_number}")
        self._page_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._page_label.setStyleSheet("font-size: 10px;")
        layout.addWidget(self._page_label)

        self._update_style()

    def set_thumbnail(self, pixmap: QPixmap):
        scaled = pixmap.scaled(
            self._image_label.size(),
            Qt.AspectRatioMode.KeepAspectRatio,
            Qt.TransformationMode.SmoothTransformation
        )
        self._image_label.setPixmap(scaled)

    def set_selected(self, selected: bool):
        self._selected = selected
        self._update_style()

    def set_has_annotations(self, has_annotations: bool):
        """Mark pages that carry annotations with a dot."""
        if has_annotations:
            self._page_label.setText(f"{self.page_number} •")
        else:
            self._page_label.setText(f"{self.page_number}")

    def _update_style(self):
        if self._selected:
            self.setStyleSheet("""
                ThumbnailWidget {
                    border: 2px solid #0078D7;
                    background-color: #E5F1FB;
                }
            """)
        else:
            self.setStyleSheet("""
                ThumbnailWidget {
                    border: 1px solid #CCCCCC;
                    background-color: #F5F5F5;
                }
            """)

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self.clicked.emit(self.page_number)
        super().mousePressEvent(event)


class ThumbnailPanel(QScrollArea):
    """Page thumbnails of the open session. Clicking one changes page."""

    page_selected = Signal(int)  # page number

    def __init__(self, parent=None):
        super().__init__(parent)
        self._session: Optional[EditorSession] = None
        self._thumbnails: list[ThumbnailWidget] = []
        self._current_page = 1

        self.setWidgetResizable(True)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setMinimumWidth(140)
        self.setMaximumWidth(160)

        self._container = QWidget()
        self._layout = QVBoxLayout(self._container)
        self._layout.setAlignment(Qt.AlignmentFlag.AlignTop | Qt.AlignmentFlag.AlignHCenter)
        self._layout.setSpacing(8)
        self._layout.setContentsMargins(8, 8, 8, 8)
        self.setWidget(self._container)

        self._placeholder = QLabel("No document\nloaded")
        self._placeholder.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._placeholder.setStyleSheet("color: #888888;")
        self._layout.addWidget(self._placeholder)

    def set_session(self, session: Optional[EditorSession]):
        self._session = session
        self._clear_thumbnails()
        if session is None:
            return

        self._placeholder.setVisible(False)
        for n in range(1, session.document.page_count + 1):
            thumb = ThumbnailWidget(n)
            thumb.clicked.connect(self._on_thumbnail_clicked)
            self._layout.addWidget(thumb)
            self._thumbnails.append(thumb)
            self.refresh_thumbnail(n)

        session.changed.connect(self._on_session_changed)
        session.current_page_changed.connect(self.set_current_page)
        self._current_page = session.current_page
        self._thumbnails[self._current_page - 1].set_selected(True)
        self.update_annotation_indicators()

    def _clear_thumbnails(self):
        for thumb in self._thumbnails:
            self._layout.removeWidget(thumb)
            thumb.deleteLater()
        self._thumbnails.clear()
        self._placeholder.setVisible(True)

    def refresh_thumbnail(self, page_number: int):
        """Re-render one thumbnail with the page's current rotation."""
        session = self._session
        if session is None or session.rasterizer is None or page_number > len(self._thumbnails):
            return
        width = session.transformer(page_number).page_width
        image = session.rasterizer.rasterize(page_number, THUMB_WIDTH / width,
                                             session.rotation(page_number))
        self._thumbnails[page_number - 1].set_thumbnail(QPixmap.fromImage(image.to_qimage()))

    def _on_thumbnail_clicked(self, page_number: int):
        self.set_current_page(page_number)
        self.page_selected.emit(page_number)

    def set_current_page(self, page_number: int):
        if not 1 <= page_number <= len(self._thumbnails):
            return
        if 1 <= self._current_page <= len(self._thumbnails):
            self._thumbnails[self._current_page - 1].set_selected(False)
        self._current_page = page_number
        self._thumbnails[page_number - 1].set_selected(True)
        self.ensureWidgetVisible(self._thumbnails[page_number - 1])

    def update_annotation_indicators(self):
        if self._session is None:
            return
        annotated = self._session.store.pages_with_annotations()
        for thumb in self._thumbnails:
            thumb.set_has_annotations(thumb.page_number in annotated)

    def _on_session_changed(self, page_number: int):
        if page_number == 0:
            for n in range(1, len(self._thumbnails) + 1):
                self.refresh_thumbnail(n)
        self.update_annotation_indicators()

    def clear(self):
        self.set_session(None)
