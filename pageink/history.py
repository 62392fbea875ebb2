"""Snapshot-based undo/redo over the annotation store."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional
import logging

from PySide6.QtCore import QObject, Signal

from .errors import NothingToRedo, NothingToUndo
from .models import AnnotationStore, PageLayer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistorySnapshot:
    """Full copy of the store at one point in time. Never mutated."""
    layers: Mapping[int, PageLayer]
    description: str = ""

    @classmethod
    def of(cls, store: AnnotationStore, description: str = "") -> "HistorySnapshot":
        return cls(MappingProxyType(store.snapshot_layers()), description)

    def apply_to(self, store: AnnotationStore) -> None:
        """Make `store` equal to this snapshot (the store gets its own copies)."""
        store.restore_layers(dict(self.layers))


class HistoryManager(QObject):
    """Linear history of store snapshots with a cursor.

    The snapshot under the cursor always equals the live store. `record()`
    after every committed mutation, never during a drag or a stroke.
    """

    state_changed = Signal()  # Emitted when undo/redo availability changes

    def __init__(self, max_history: Optional[int] = 100):
        super().__init__()
        self._snapshots: list[HistorySnapshot] = []
        self._cursor = -1
        self._max_history = max_history

    @property
    def cursor(self) -> int:
        return self._cursor

    def __len__(self) -> int:
        return len(self._snapshots)

    def reset(self, store: AnnotationStore) -> None:
        """Drop all history and make the current store the baseline."""
        self._snapshots = [HistorySnapshot.of(store, "Open")]
        self._cursor = 0
        self.state_changed.emit()

    def record(self, store: AnnotationStore, description: str = "") -> HistorySnapshot:
        """Push a copy of `store`, discarding any redoable snapshots."""
        del self._snapshots[self._cursor + 1:]
        snapshot = HistorySnapshot.of(store, description)
        self._snapshots.append(snapshot)

        if self._max_history is not None and len(self._snapshots) > self._max_history:
            del self._snapshots[:len(self._snapshots) - self._max_history]

        self._cursor = len(self._snapshots) - 1
        logger.debug("Recorded '%s' (%d/%d)", description, self._cursor + 1, len(self._snapshots))
        self.state_changed.emit()
        return snapshot

    def undo(self) -> HistorySnapshot:
        """Step back one snapshot and return it."""
        if not self.can_undo():
            raise NothingToUndo("Nothing to undo")
        undone = self._snapshots[self._cursor].description
        self._cursor -= 1
        self.state_changed.emit()
        logger.debug("Undo '%s'", undone)
        return self._snapshots[self._cursor]

    def redo(self) -> HistorySnapshot:
        """Step forward one snapshot and return it."""
        if not self.can_redo():
            raise NothingToRedo("Nothing to redo")
        self._cursor += 1
        self.state_changed.emit()
        logger.debug("Redo '%s'", self._snapshots[self._cursor].description)
        return self._snapshots[self._cursor]

    def current(self) -> Optional[HistorySnapshot]:
        if self._cursor < 0:
            return None
        return self._snapshots[self._cursor]

    def can_undo(self) -> bool:
        return self._cursor > 0

    def can_redo(self) -> bool:
        return 0 <= self._cursor < len(self._snapshots) - 1

    def holds_annotations(self, page_number: int) -> bool:
        """Whether any snapshot, undone or not, has annotations on a page."""
        for snapshot in self._snapshots:
            layer = snapshot.layers.get(page_number)
            if layer is not None and layer.annotations:
                return True
        return False

    def undo_description(self) -> Optional[str]:
        """Get description of next undo action."""
        if self.can_undo():
            return self._snapshots[self._cursor].description
        return None

    def redo_description(self) -> Optional[str]:
        """Get description of next redo action."""
        if self.can_redo():
            return self._snapshots[self._cursor + 1].description
        return None

    def clear(self) -> None:
        """Clear all undo/redo history."""
        self._snapshots.clear()
        self._cursor = -1
        self.state_changed.emit()
