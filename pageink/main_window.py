"""Main application window."""

import os
from typing import Optional

from PySide6.QtWidgets import (
    QMainWindow, QVBoxLayout, QHBoxLayout, QToolBar, QLabel, QSpinBox,
    QDoubleSpinBox, QPushButton, QColorDialog, QFileDialog, QMessageBox,
    QStatusBar, QSplitter, QScrollArea, QDialog, QLineEdit, QListWidget,
    QInputDialog, QCheckBox, QProgressDialog, QWidget
)
from PySide6.QtCore import Qt, QSettings, QPointF
from PySide6.QtGui import QAction, QActionGroup, QColor, QKeySequence, QPainter, QPen
import json
import logging

from .config import EditorSettings, load_settings, save_settings
from .export_worker import ExportWorker
from .interaction import Tool
from .models import Style, StylePresets
from .page_canvas import PageCanvas
from .raster import FitzRasterizer, open_document
from .session import EditorSession
from .stamps import stamp_from_image, stamp_from_strokes, stamp_from_text
from .thumbnail_panel import ThumbnailPanel

logger = logging.getLogger(__name__)

APP_TITLE = "PageInk"

TOOL_LABELS = [
    (Tool.SELECT, "Select", "V"),
    (Tool.PEN, "Pen", "P"),
    (Tool.HIGHLIGHTER, "Highlighter", "H"),
    (Tool.LINE, "Line", "L"),
    (Tool.RECTANGLE, "Rectangle", "R"),
    (Tool.ELLIPSE, "Ellipse", "O"),
    (Tool.TEXT, "Text", "T"),
    (Tool.ERASER, "Eraser", "E"),
    (Tool.CROP, "Crop", "C"),
]


class StylePresetDialog(QDialog):
    """Dialog for managing style presets."""

    def __init__(self, presets: StylePresets, current_style: Style, parent=None):
        super().__init__(parent)
        self.presets = presets
        self.current_style = current_style
        self.selected_preset: Optional[str] = None

        self.setWindowTitle("Style Presets")
        self.setMinimumSize(300, 400)

        layout = QVBoxLayout(self)

        self.list_widget = QListWidget()
        self._populate_list()
        self.list_widget.itemDoubleClicked.connect(self._on_double_click)
        layout.addWidget(self.list_widget)

        save_layout = QHBoxLayout()
        self.name_edit = QLineEdit()
        self.name_edit.setPlaceholderText("New preset name...")
        save_layout.addWidget(self.name_edit)

        save_btn = QPushButton("Save Current")
        save_btn.clicked.connect(self._save_current)
        save_layout.addWidget(save_btn)
        layout.addLayout(save_layout)

        btn_layout = QHBoxLayout()

        delete_btn = QPushButton("Delete")
        delete_btn.clicked.connect(self._delete_selected)
        btn_layout.addWidget(delete_btn)

        btn_layout.addStretch()

        load_btn = QPushButton("Load")
        load_btn.clicked.connect(self._load_selected)
        btn_layout.addWidget(load_btn)

        close_btn = QPushButton("Close")
        close_btn.clicked.connect(self.reject)
        btn_layout.addWidget(close_btn)

        layout.addLayout(btn_layout)

    def _populate_list(self):
        self.list_widget.clear()
        for name in self.presets.names():
            self.list_widget.addItem(name)

    def _save_current(self):
        name = self.name_edit.text().strip()
        if not name:
            QMessageBox.warning(self, "Error", "Please enter a name for the preset.")
            return
        self.presets.save(name, Style.from_dict(self.current_style.to_dict()))
        self._populate_list()
        self.name_edit.clear()

    def _delete_selected(self):
        item = self.list_widget.currentItem()
        if item and not self.presets.delete(item.text()):
            QMessageBox.warning(self, "Error", f"Cannot delete the {item.text()} preset.")
        self._populate_list()

    def _load_selected(self):
        item = self.list_widget.currentItem()
        if item:
            self.selected_preset = item.text()
            self.accept()

    def _on_double_click(self, item):
        self.selected_preset = item.text()
        self.accept()


class SignaturePad(QWidget):
    """Blank area that records mouse strokes."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._strokes: list[list[tuple[float, float]]] = []
        self.setFixedSize(700, 300)
        self.setCursor(Qt.CursorShape.CrossCursor)

    def strokes(self) -> list[list[tuple[float, float]]]:
        return [list(stroke) for stroke in self._strokes]

    def clear(self):
        self._strokes = []
        self.update()

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            pos = event.position()
            self._strokes.append([(pos.x(), pos.y())])
            self.update()

    def mouseMoveEvent(self, event):
        if self._strokes and event.buttons() & Qt.MouseButton.LeftButton:
            pos = event.position()
            self._strokes[-1].append((pos.x(), pos.y()))
            self.update()

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.fillRect(self.rect(), Qt.GlobalColor.white)
        pen = QPen(Qt.GlobalColor.black, 2)
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
        painter.setPen(pen)
        for stroke in self._strokes:
            points = [QPointF(x, y) for x, y in stroke]
            if len(points) == 1:
                painter.drawPoint(points[0])
            else:
                painter.drawPolyline(points)
        painter.end()


class SignaturePadDialog(QDialog):
    """Dialog for drawing a signature with the mouse."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Draw Signature")

        layout = QVBoxLayout(self)
        self.pad = SignaturePad()
        layout.addWidget(self.pad)

        btn_layout = QHBoxLayout()
        clear_btn = QPushButton("Clear")
        clear_btn.clicked.connect(self.pad.clear)
        btn_layout.addWidget(clear_btn)

        btn_layout.addStretch()

        use_btn = QPushButton("Use Signature")
        use_btn.clicked.connect(self.accept)
        btn_layout.addWidget(use_btn)

        cancel_btn = QPushButton("Cancel")
        cancel_btn.clicked.connect(self.reject)
        btn_layout.addWidget(cancel_btn)

        layout.addLayout(btn_layout)

    def strokes(self) -> list[list[tuple[float, float]]]:
        return self.pad.strokes()


class MainWindow(QMainWindow):
    """Main application window."""

    def __init__(self):
        super().__init__()
        self.setWindowTitle(APP_TITLE)
        self.setMinimumSize(1000, 700)

        # State
        self._current_file: Optional[str] = None
        self._session: Optional[EditorSession] = None
        self._rasterizer: Optional[FitzRasterizer] = None
        self._saved_cursor = 0
        self._style = Style()
        self._presets = StylePresets()
        self._recent_files: list[str] = []
        self._max_recent = 10
        self._worker: Optional[ExportWorker] = None
        self._progress: Optional[QProgressDialog] = None

        # Settings
        self._settings = QSettings("PageInk", "PageInk")
        self._editor_settings: EditorSettings = load_settings(self._settings)
        self._load_settings()

        self._create_actions()
        self._create_menus()
        self._create_toolbars()
        self._create_central_widget()
        self._create_statusbar()

        self._apply_style_to_ui()
        self._enable_document_actions(False)

    # --- UI construction ---

    def _create_actions(self):
        # File actions
        self.action_open = QAction("&Open PDF...", self)
        self.action_open.setShortcut(QKeySequence.StandardKey.Open)
        self.action_open.triggered.connect(self._open_file)

        self.action_export = QAction("&Export Annotated PDF...", self)
        self.action_export.setShortcut(QKeySequence.StandardKey.Save)
        self.action_export.triggered.connect(self._export_pdf)

        self.action_exit = QAction("E&xit", self)
        self.action_exit.setShortcut(QKeySequence.StandardKey.Quit)
        self.action_exit.triggered.connect(self.close)

        # Edit actions
        self.action_undo = QAction("&Undo", self)
        self.action_undo.setShortcut(QKeySequence.StandardKey.Undo)
        self.action_undo.triggered.connect(self._undo)
        self.action_undo.setEnabled(False)

        self.action_redo = QAction("&Redo", self)
        self.action_redo.setShortcut(QKeySequence.StandardKey.Redo)
        self.action_redo.triggered.connect(self._redo)
        self.action_redo.setEnabled(False)

        self.action_delete = QAction("&Delete Selected", self)
        self.action_delete.setShortcut(QKeySequence.StandardKey.Delete)
        self.action_delete.triggered.connect(self._delete_selected)
        self.action_delete.setEnabled(False)

        self.action_apply_style = QAction("Apply Style to &Selection", self)
        self.action_apply_style.triggered.connect(self._apply_style_to_selection)

        self.action_clear_page = QAction("&Clear Page", self)
        self.action_clear_page.triggered.connect(self._clear_page)

        # Page actions
        self.action_rotate_right = QAction("Rotate Page &Right", self)
        self.action_rotate_right.setShortcut(QKeySequence("Ctrl+R"))
        self.action_rotate_right.triggered.connect(lambda: self._rotate(90, False))

        self.action_rotate_left = QAction("Rotate Page &Left", self)
        self.action_rotate_left.setShortcut(QKeySequence("Ctrl+Shift+R"))
        self.action_rotate_left.triggered.connect(lambda: self._rotate(270, False))

        self.action_rotate_all = QAction("Rotate &All Pages Right", self)
        self.action_rotate_all.triggered.connect(lambda: self._rotate(90, True))

        self.action_crop_all = QAction("Apply Crop to All &Pages", self)
        self.action_crop_all.triggered.connect(self._crop_all_pages)

        self.action_clear_crop = QAction("Clear Cro&p", self)
        self.action_clear_crop.triggered.connect(self._clear_crop)

        # Signature actions
        self.action_sign_text = QAction("&Type Signature...", self)
        self.action_sign_text.triggered.connect(self._sign_with_text)

        self.action_sign_draw = QAction("&Draw Signature...", self)
        self.action_sign_draw.triggered.connect(self._sign_with_drawing)

        self.action_sign_image = QAction("Place &Image...", self)
        self.action_sign_image.triggered.connect(self._sign_with_image)

        # View actions
        self.action_zoom_in = QAction("Zoom &In", self)
        self.action_zoom_in.setShortcut(QKeySequence.StandardKey.ZoomIn)
        self.action_zoom_in.triggered.connect(lambda: self._session and self._session.zoom_in())

        self.action_zoom_out = QAction("Zoom &Out", self)
        self.action_zoom_out.setShortcut(QKeySequence.StandardKey.ZoomOut)
        self.action_zoom_out.triggered.connect(lambda: self._session and self._session.zoom_out())

        self.action_zoom_100 = QAction("&Actual Size", self)
        self.action_zoom_100.setShortcut(QKeySequence("Ctrl+1"))
        self.action_zoom_100.triggered.connect(lambda: self._session and self._session.set_zoom(1.0))

        self.action_next_page = QAction("&Next Page", self)
        self.action_next_page.setShortcut(QKeySequence("PgDown"))
        self.action_next_page.triggered.connect(lambda: self._session and self._session.next_page())

        self.action_prev_page = QAction("&Previous Page", self)
        self.action_prev_page.setShortcut(QKeySequence("PgUp"))
        self.action_prev_page.triggered.connect(lambda: self._session and self._session.prev_page())

        # Style actions
        self.action_presets = QAction("Style &Presets...", self)
        self.action_presets.triggered.connect(self._show_presets)

        # Tool actions
        self._tool_group = QActionGroup(self)
        self._tool_actions: dict[Tool, QAction] = {}
        for tool, label, shortcut in TOOL_LABELS:
            action = QAction(label, self)
            action.setCheckable(True)
            action.setShortcut(QKeySequence(shortcut))
            action.triggered.connect(lambda checked, t=tool: self._set_tool(t))
            self._tool_group.addAction(action)
            self._tool_actions[tool] = action
        self._tool_actions[Tool.SELECT].setChecked(True)

    def _create_menus(self):
        menubar = self.menuBar()

        file_menu = menubar.addMenu("&File")
        file_menu.addAction(self.action_open)
        self.recent_menu = file_menu.addMenu("Recent Files")
        self._update_recent_menu()
        file_menu.addSeparator()
        file_menu.addAction(self.action_export)
        file_menu.addSeparator()
        file_menu.addAction(self.action_exit)

        edit_menu = menubar.addMenu("&Edit")
        edit_menu.addAction(self.action_undo)
        edit_menu.addAction(self.action_redo)
        edit_menu.addSeparator()
        edit_menu.addAction(self.action_delete)
        edit_menu.addAction(self.action_apply_style)
        edit_menu.addAction(self.action_clear_page)

        page_menu = menubar.addMenu("&Page")
        page_menu.addAction(self.action_rotate_right)
        page_menu.addAction(self.action_rotate_left)
        page_menu.addAction(self.action_rotate_all)
        page_menu.addSeparator()
        page_menu.addAction(self.action_crop_all)
        page_menu.addAction(self.action_clear_crop)

        sign_menu = menubar.addMenu("&Sign")
        sign_menu.addAction(self.action_sign_text)
        sign_menu.addAction(self.action_sign_draw)
        sign_menu.addAction(self.action_sign_image)

        view_menu = menubar.addMenu("&View")
        view_menu.addAction(self.action_zoom_in)
        view_menu.addAction(self.action_zoom_out)
        view_menu.addAction(self.action_zoom_100)
        view_menu.addSeparator()
        view_menu.addAction(self.action_prev_page)
        view_menu.addAction(self.action_next_page)

        style_menu = menubar.addMenu("St&yle")
        style_menu.addAction(self.action_presets)

    def _create_toolbars(self):
        tools = QToolBar("Tools")
        tools.setMovable(False)
        self.addToolBar(Qt.ToolBarArea.LeftToolBarArea, tools)
        for action in self._tool_actions.values():
            tools.addAction(action)

        toolbar = QToolBar("Style")
        toolbar.setMovable(False)
        self.addToolBar(toolbar)

        toolbar.addWidget(QLabel(" Color: "))
        self._stroke_color_btn = QPushButton()
        self._stroke_color_btn.setFixedSize(30, 25)
        self._stroke_color_btn.clicked.connect(self._choose_stroke_color)
        toolbar.addWidget(self._stroke_color_btn)

        self._fill_check = QCheckBox(" Fill: ")
        self._fill_check.toggled.connect(self._on_style_changed)
        toolbar.addWidget(self._fill_check)
        self._fill_color_btn = QPushButton()
        self._fill_color_btn.setFixedSize(30, 25)
        self._fill_color_btn.clicked.connect(self._choose_fill_color)
        toolbar.addWidget(self._fill_color_btn)

        toolbar.addWidget(QLabel(" Width: "))
        self._width_spin = QDoubleSpinBox()
        self._width_spin.setRange(0.5, 50.0)
        self._width_spin.setSingleStep(0.5)
        self._width_spin.setFixedWidth(60)
        self._width_spin.valueChanged.connect(self._on_style_changed)
        toolbar.addWidget(self._width_spin)

        toolbar.addWidget(QLabel(" Opacity: "))
        self._opacity_spin = QDoubleSpinBox()
        self._opacity_spin.setRange(0.05, 1.0)
        self._opacity_spin.setSingleStep(0.1)
        self._opacity_spin.setFixedWidth(60)
        self._opacity_spin.valueChanged.connect(self._on_style_changed)
        toolbar.addWidget(self._opacity_spin)

        presets_btn = QPushButton("Presets")
        presets_btn.clicked.connect(self._show_presets)
        toolbar.addWidget(presets_btn)

        toolbar.addSeparator()

        toolbar.addWidget(QLabel(" Page: "))
        self._page_spin = QSpinBox()
        self._page_spin.setRange(1, 1)
        self._page_spin.setFixedWidth(60)
        self._page_spin.valueChanged.connect(self._on_page_spin_changed)
        toolbar.addWidget(self._page_spin)

        self._page_total_label = QLabel(" / 0 ")
        toolbar.addWidget(self._page_total_label)

        self._zoom_label = QLabel(" Zoom: 100% ")
        toolbar.addWidget(self._zoom_label)

    def _create_central_widget(self):
        splitter = QSplitter(Qt.Orientation.Horizontal)

        self._thumbnail_panel = ThumbnailPanel()
        self._thumbnail_panel.page_selected.connect(self._on_page_spin_changed)
        splitter.addWidget(self._thumbnail_panel)

        self._canvas = PageCanvas()
        self._scroll = QScrollArea()
        self._scroll.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._scroll.setStyleSheet("background-color: #404040;")
        self._scroll.setWidget(self._canvas)
        splitter.addWidget(self._scroll)

        splitter.setSizes([150, 850])
        self.setCentralWidget(splitter)

    def _create_statusbar(self):
        self._statusbar = QStatusBar()
        self.setStatusBar(self._statusbar)
        self._statusbar.showMessage("Ready")

    # --- settings ---

    def _load_settings(self):
        geometry = self._settings.value("geometry")
        if geometry:
            self.restoreGeometry(geometry)

        recent = self._settings.value("recent_files", [])
        if isinstance(recent, list):
            self._recent_files = recent

        presets_json = self._settings.value("style_presets")
        if presets_json:
            try:
                self._presets.from_json(presets_json)
            except (ValueError, KeyError, TypeError) as e:
                logger.warning("Ignoring stored style presets: %s", e)

        style_json = self._settings.value("current_style")
        if style_json:
            try:
                self._style = Style.from_dict(json.loads(style_json))
            except (ValueError, TypeError) as e:
                logger.warning("Ignoring stored style: %s", e)
        else:
            defaults = self._editor_settings
            self._style = Style(stroke_color=defaults.stroke_color,
                                fill_color=defaults.fill_color or None,
                                stroke_width=defaults.stroke_width)

    def _save_settings(self):
        self._settings.setValue("geometry", self.saveGeometry())
        self._settings.setValue("recent_files", self._recent_files)
        self._settings.setValue("style_presets", self._presets.to_json())
        self._settings.setValue("current_style", json.dumps(self._style.to_dict()))
        save_settings(self._settings, self._editor_settings)

    def _apply_style_to_ui(self):
        style = self._style
        for widget in (self._width_spin, self._opacity_spin, self._fill_check):
            widget.blockSignals(True)
        self._stroke_color_btn.setStyleSheet(f"background-color: {style.stroke_color};")
        self._fill_color_btn.setStyleSheet(f"background-color: {style.fill_color or '#FFFFFF'};")
        self._fill_check.setChecked(style.fill_color is not None)
        self._width_spin.setValue(style.stroke_width)
        self._opacity_spin.setValue(style.opacity)
        for widget in (self._width_spin, self._opacity_spin, self._fill_check):
            widget.blockSignals(False)

    # --- recent files ---

    def _update_recent_menu(self):
        self.recent_menu.clear()
        for path in self._recent_files:
            action = self.recent_menu.addAction(os.path.basename(path))
            action.setData(path)
            action.triggered.connect(lambda checked, p=path: self._open_recent(p))

        if self._recent_files:
            self.recent_menu.addSeparator()
            clear_action = self.recent_menu.addAction("Clear Recent")
            clear_action.triggered.connect(self._clear_recent)

    def _add_recent_file(self, path: str):
        if path in self._recent_files:
            self._recent_files.remove(path)
        self._recent_files.insert(0, path)
        self._recent_files = self._recent_files[:self._max_recent]
        self._update_recent_menu()

    def _clear_recent(self):
        self._recent_files.clear()
        self._update_recent_menu()

    def _open_recent(self, path: str):
        if os.path.exists(path):
            self.open_file(path)
        else:
            QMessageBox.warning(self, "File Not Found", f"File not found:\n{path}")
            self._recent_files.remove(path)
            self._update_recent_menu()

    # --- documents ---

    def _open_file(self):
        path, _ = QFileDialog.getOpenFileName(
            self, "Open PDF", "",
            "PDF Files (*.pdf);;All Files (*.*)"
        )
        if path:
            self.open_file(path)

    def open_file(self, path: str):
        if self._check_unsaved():
            return

        try:
            document, rasterizer = open_document(path)
        except (RuntimeError, ValueError, OSError) as e:
            logger.error("Could not open %s: %s", path, e)
            QMessageBox.warning(self, "Error", f"Could not open file:\n{path}\n\n{e}")
            return

        if self._rasterizer is not None:
            self._rasterizer.close()
        self._rasterizer = rasterizer
        self._current_file = path
        self._set_session(EditorSession(document, rasterizer, self._editor_settings))
        self._add_recent_file(path)
        logger.info("Opened %s (%d pages)", path, document.page_count)
        self._statusbar.showMessage(f"Opened: {os.path.basename(path)}")

    def _set_session(self, session: EditorSession):
        self._session = session
        self._saved_cursor = session.history.cursor

        session.history.state_changed.connect(self._update_undo_actions)
        session.history.state_changed.connect(self._update_title)
        session.current_page_changed.connect(self._on_page_changed)
        session.zoom_changed.connect(self._on_zoom_changed)
        session.interaction.selection_changed.connect(self._on_selection_changed)
        session.interaction.tool_changed.connect(self._on_tool_changed)
        session.interaction.warning.connect(self._statusbar.showMessage)
        session.interaction.text_prompt = self._prompt_text
        session.exporting_changed.connect(lambda busy: self._enable_document_actions(not busy))

        for tool in (Tool.PEN, Tool.LINE, Tool.RECTANGLE, Tool.ELLIPSE):
            session.set_tool_style(tool, self._current_tool_style())

        self._canvas.set_session(session)
        self._thumbnail_panel.set_session(session)
        self._enable_document_actions(True)
        self._update_undo_actions()
        self._on_page_changed(session.current_page)
        self._on_zoom_changed(session.zoom)
        self._update_title()

    def _check_unsaved(self) -> bool:
        """Returns True if the caller should cancel."""
        if self._session is None or self._session.history.cursor == self._saved_cursor:
            return False
        result = QMessageBox.question(
            self, "Unsaved Changes",
            "There are unexported annotations. Do you want to export them?",
            QMessageBox.StandardButton.Save |
            QMessageBox.StandardButton.Discard |
            QMessageBox.StandardButton.Cancel
        )
        if result == QMessageBox.StandardButton.Save:
            self._export_pdf()
            return True
        return result == QMessageBox.StandardButton.Cancel

    def _export_pdf(self):
        if self._session is None or self._worker is not None:
            return
        default = ""
        if self._current_file:
            root, _ = os.path.splitext(self._current_file)
            default = f"{root}_annotated.pdf"
        path, _ = QFileDialog.getSaveFileName(self, "Export Annotated PDF", default, "PDF Files (*.pdf)")
        if not path:
            return
        if not path.lower().endswith('.pdf'):
            path += '.pdf'

        self._progress = QProgressDialog("Exporting...", "", 0, self._session.document.page_count, self)
        self._progress.setCancelButton(None)
        self._progress.setWindowModality(Qt.WindowModality.WindowModal)
        self._progress.setMinimumDuration(300)

        self._worker = ExportWorker(self._session, path)
        self._worker.page_progress.connect(lambda current, total: self._progress.setValue(current))
        self._worker.export_finished.connect(self._on_export_finished)
        self._worker.start()

    def _on_export_finished(self, success: bool, message: str):
        report = None
        if self._worker is not None:
            self._worker.wait()
            report = self._worker.report
            self._worker = None
        if self._progress is not None:
            self._progress.close()
            self._progress = None

        if not success:
            QMessageBox.critical(self, "Export Error", message)
            return

        self._saved_cursor = self._session.history.cursor
        self._update_title()
        self._statusbar.showMessage(message)
        if report is not None and report.failures:
            details = "\n".join(str(f) for f in report.failures)
            QMessageBox.warning(self, "Some annotations were skipped", f"{message}\n\n{details}")

    def _enable_document_actions(self, enabled: bool):
        for action in (self.action_export, self.action_clear_page, self.action_rotate_right,
                       self.action_rotate_left, self.action_rotate_all, self.action_crop_all,
                       self.action_clear_crop, self.action_sign_text, self.action_sign_draw,
                       self.action_sign_image,
                       self.action_apply_style):
            action.setEnabled(enabled)
        for action in self._tool_actions.values():
            action.setEnabled(enabled)
        if enabled:
            self._update_undo_actions()
        else:
            self.action_undo.setEnabled(False)
            self.action_redo.setEnabled(False)

    def _update_title(self):
        title = APP_TITLE
        if self._current_file:
            title += f" - {os.path.basename(self._current_file)}"
        if self._session is not None and self._session.history.cursor != self._saved_cursor:
            title += " *"
        self.setWindowTitle(title)

    # --- navigation ---

    def _on_page_changed(self, page_number: int):
        total = self._session.document.page_count if self._session else 0
        self._page_spin.blockSignals(True)
        self._page_spin.setRange(1, max(1, total))
        self._page_spin.setValue(page_number)
        self._page_spin.blockSignals(False)
        self._page_total_label.setText(f" / {total} ")

    def _on_page_spin_changed(self, value: int):
        if self._session is not None:
            self._session.go_to_page(value)

    def _on_zoom_changed(self, zoom: float):
        self._zoom_label.setText(f" Zoom: {int(zoom * 100)}% ")

    # --- tools and styles ---

    def _set_tool(self, tool: Tool):
        if self._session is not None:
            self._session.set_tool(tool)

    def _on_tool_changed(self, value: str):
        action = self._tool_actions.get(Tool(value))
        if action is not None:
            action.setChecked(True)

    def _on_selection_changed(self, annotation_id):
        self.action_delete.setEnabled(annotation_id is not None)
        if annotation_id is not None:
            annotation = self._session.store.get(annotation_id)
            self._statusbar.showMessage(f"Selected: {annotation.kind.value}")
        else:
            self._statusbar.showMessage("Ready")

    def _current_tool_style(self) -> Style:
        return Style.from_dict(self._style.to_dict())

    def _on_style_changed(self):
        self._style.stroke_width = self._width_spin.value()
        self._style.opacity = self._opacity_spin.value()
        if not self._fill_check.isChecked():
            self._style.fill_color = None
        elif self._style.fill_color is None:
            self._style.fill_color = "#FFFFFF"
        if self._session is not None:
            for tool in (Tool.PEN, Tool.LINE, Tool.RECTANGLE, Tool.ELLIPSE):
                self._session.set_tool_style(tool, self._current_tool_style())

    def _choose_stroke_color(self):
        color = QColorDialog.getColor(QColor(self._style.stroke_color), self)
        if color.isValid():
            self._style.stroke_color = color.name().upper()
            self._apply_style_to_ui()
            self._on_style_changed()

    def _choose_fill_color(self):
        color = QColorDialog.getColor(QColor(self._style.fill_color or "#FFFFFF"), self)
        if color.isValid():
            self._style.fill_color = color.name().upper()
            self._apply_style_to_ui()
            self._on_style_changed()

    def _show_presets(self):
        dialog = StylePresetDialog(self._presets, self._style, self)
        if dialog.exec() == QDialog.DialogCode.Accepted and dialog.selected_preset:
            style = self._presets.get(dialog.selected_preset)
            if style:
                self._style = style
                self._apply_style_to_ui()
                self._on_style_changed()
                if style.is_highlighter and self._session is not None:
                    self._session.set_tool_style(Tool.HIGHLIGHTER, self._current_tool_style())

    def _apply_style_to_selection(self):
        if self._session is None or self._session.selected_id is None:
            return
        self._session.set_style(self._session.selected_id, self._current_tool_style())

    def _prompt_text(self) -> Optional[str]:
        text, ok = QInputDialog.getText(self, "Add Text", "Text:")
        if ok and text.strip():
            return text.strip()
        return None

    # --- edits ---

    def _undo(self):
        if self._session is None:
            return
        desc = self._session.history.undo_description()
        if self._session.undo():
            self._statusbar.showMessage(f"Undo: {desc}")

    def _redo(self):
        if self._session is None:
            return
        desc = self._session.history.redo_description()
        if self._session.redo():
            self._statusbar.showMessage(f"Redo: {desc}")

    def _update_undo_actions(self):
        history = self._session.history if self._session else None
        self.action_undo.setEnabled(history is not None and history.can_undo())
        self.action_redo.setEnabled(history is not None and history.can_redo())

        undo_desc = history.undo_description() if history is not None else None
        redo_desc = history.redo_description() if history is not None else None
        self.action_undo.setText(f"&Undo {undo_desc}" if undo_desc else "&Undo")
        self.action_redo.setText(f"&Redo {redo_desc}" if redo_desc else "&Redo")

    def _delete_selected(self):
        if self._session is not None and self._session.delete_selected() is not None:
            self._statusbar.showMessage("Deleted selection")

    def _clear_page(self):
        if self._session is None:
            return
        result = QMessageBox.question(
            self, "Clear Page",
            "Delete all annotations on this page?",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No
        )
        if result == QMessageBox.StandardButton.Yes:
            removed = self._session.clear_page()
            self._statusbar.showMessage(f"Removed {removed} annotation(s)")

    def _rotate(self, degrees: int, all_pages: bool):
        if self._session is None:
            return
        if all_pages:
            self._session.rotate_pages(degrees)
        else:
            self._session.rotate_page(degrees=degrees)

    def _crop_all_pages(self):
        if self._session is not None and self._session.apply_crop_to_all_pages():
            self._statusbar.showMessage("Crop applied to all pages")

    def _clear_crop(self):
        if self._session is not None and self._session.store.crop(self._session.current_page):
            self._session.clear_crop()

    def _sign_with_text(self):
        if self._session is None:
            return
        text, ok = QInputDialog.getText(self, "Type Signature", "Your name:")
        if not ok:
            return
        try:
            stamp = stamp_from_text(text, color=self._style.stroke_color or "#000000")
        except ValueError as e:
            QMessageBox.warning(self, "Signature", str(e))
            return
        self._session.interaction.prepare_stamp(stamp)
        self._statusbar.showMessage("Click on the page to place the signature")

    def _sign_with_drawing(self):
        if self._session is None:
            return
        dialog = SignaturePadDialog(self)
        if dialog.exec() != QDialog.DialogCode.Accepted:
            return
        try:
            stamp = stamp_from_strokes(dialog.strokes())
        except ValueError as e:
            QMessageBox.warning(self, "Signature", str(e))
            return
        self._session.interaction.prepare_stamp(stamp)
        self._statusbar.showMessage("Click on the page to place the signature")

    def _sign_with_image(self):
        if self._session is None:
            return
        path, _ = QFileDialog.getOpenFileName(
            self, "Place Image", "",
            "Images (*.png *.jpg *.jpeg *.bmp *.gif *.webp);;All Files (*.*)"
        )
        if not path:
            return
        try:
            stamp = stamp_from_image(path)
        except ValueError as e:
            QMessageBox.warning(self, "Image", str(e))
            return
        self._session.interaction.prepare_stamp(stamp)
        self._statusbar.showMessage("Click on the page to place the image")

    def closeEvent(self, event):
        if self._worker is not None or self._check_unsaved():
            event.ignore()
            return

        self._save_settings()
        if self._rasterizer is not None:
            self._rasterizer.close()
        event.accept()
