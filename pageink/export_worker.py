from pathlib import Path
import logging

from PySide6.QtCore import QThread, Signal

from .session import EditorSession
from .writer import FitzDocumentWriter

logger = logging.getLogger(__name__)


class ExportWorker(QThread):
    """Bakes and writes the annotated PDF without freezing the UI.

    The session refuses edits from `start()` until the worker finishes.
    """

    export_finished = Signal(bool, str)  # success, message
    page_progress = Signal(int, int)  # current, total pages

    def __init__(self, session: EditorSession, output_path: str):
        super().__init__()
        self.session = session
        self.output_path = Path(output_path)
        self.report = None
        self.finished.connect(self.session.end_export)

    def start(self, *args, **kwargs):
        self.session.begin_export()
        super().start(*args, **kwargs)

    def run(self):
        try:
            self.report = self.session.bake(self._on_page_progress)
            writer = FitzDocumentWriter(self.session.document.source)
            writer.save(self.report, self.output_path)
        except Exception as e:
            logger.exception("Export to %s failed", self.output_path)
            self.export_finished.emit(False, f"Error during export: {e}")
            return

        self.export_finished.emit(True, self.report.summary())

    def _on_page_progress(self, current: int, total: int):
        self.page_progress.emit(current, total)
