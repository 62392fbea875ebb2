"""Editor settings and their persistence through QSettings."""

from dataclasses import dataclass, asdict, fields
import json
import logging

from PySide6.QtCore import QSettings

logger = logging.getLogger(__name__)

SETTINGS_KEY = "editor_settings"


@dataclass
class EditorSettings:
    """Tunable defaults of the editor. Lengths are capture pixels unless noted."""
    capture_scale: float = 2.0
    stroke_color: str = "#FF0000"
    fill_color: str = ""
    stroke_width: float = 2.0
    highlighter_width: float = 20.0
    highlighter_opacity: float = 0.3
    font_size: float = 16.0
    min_size: float = 1.0
    crop_min_size: float = 50.0
    stroke_hit_tolerance: float = 20.0
    eraser_tolerance: float = 20.0
    handle_size: float = 8.0  # pointer pixels
    history_limit: int = 100
    stamp_width: float = 150.0
    min_zoom: float = 0.25
    max_zoom: float = 4.0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "EditorSettings":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def clamp_zoom(self, zoom: float) -> float:
        return max(self.min_zoom, min(self.max_zoom, zoom))


def load_settings(settings: QSettings) -> EditorSettings:
    """Read settings, falling back to defaults when missing or unreadable."""
    raw = settings.value(SETTINGS_KEY)
    if not raw:
        return EditorSettings()
    try:
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise TypeError(f"expected an object, got {type(data).__name__}")
        return EditorSettings.from_dict(data)
    except (ValueError, TypeError) as e:
        logger.warning("Ignoring unreadable editor settings: %s", e)
        return EditorSettings()


def save_settings(settings: QSettings, value: EditorSettings) -> None:
    settings.setValue(SETTINGS_KEY, json.dumps(value.to_dict()))
    settings.sync()
