"""Tests for editor settings persistence."""

import pytest
from PySide6.QtCore import QSettings
from pageink.config import SETTINGS_KEY, EditorSettings, load_settings, save_settings


@pytest.fixture
def qsettings(tmp_path):
    return QSettings(str(tmp_path / "pageink.ini"), QSettings.Format.IniFormat)


class TestEditorSettings:
    def test_defaults(self):
        s = EditorSettings()
        assert s.capture_scale == 2.0
        assert s.crop_min_size == 50
        assert s.history_limit == 100

    def test_clamp_zoom(self):
        s = EditorSettings()
        assert s.clamp_zoom(10) == 4.0
        assert s.clamp_zoom(0.1) == 0.25
        assert s.clamp_zoom(1.5) == 1.5

    def test_from_dict_ignores_unknown_keys(self):
        s = EditorSettings.from_dict({"font_size": 20, "theme": "dark"})
        assert s.font_size == 20


class TestPersistence:
    def test_missing_gives_defaults(self, qsettings):
        assert load_settings(qsettings) == EditorSettings()

    def test_roundtrip(self, qsettings):
        save_settings(qsettings, EditorSettings(stamp_width=200, stroke_color="#000000"))
        loaded = load_settings(qsettings)
        assert loaded.stamp_width == 200
        assert loaded.stroke_color == "#000000"

    def test_garbage_falls_back_to_defaults(self, qsettings):
        qsettings.setValue(SETTINGS_KEY, "{not json")
        assert load_settings(qsettings) == EditorSettings()

    def test_wrong_shape_falls_back_to_defaults(self, qsettings):
        qsettings.setValue(SETTINGS_KEY, "[1, 2, 3]")
        assert load_settings(qsettings) == EditorSettings()
