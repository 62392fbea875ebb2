"""Tests for the pointer-driven tool state machine."""

import pytest
from pageink.geometry import Point, Rect
from pageink.interaction import Dragging, Drawing, Idle, PlacingText, Resizing, Tool
from pageink.models import (
    Annotation, AnnotationKind, BoxGeometry, StrokeGeometry, TextGeometry,
)
from pageink.stamps import PreparedStamp


def drag(session, start, end, steps=()):
    session.pointer_down(*start)
    for p in steps:
        session.pointer_move(*p)
    session.pointer_up(*end)


def add_box(session, x=10, y=10, w=100, h=50):
    return session.add_annotation(1, Annotation(AnnotationKind.RECTANGLE, BoxGeometry(x, y, w, h)))


# --- drawing ---

class TestDrawing:
    def test_pen_stroke(self, session):
        session.set_tool(Tool.PEN)
        drag(session, (10, 10), (40, 40), steps=[(20, 20), (30, 30)])
        (stroke,) = session.store.query(1)
        assert stroke.kind == AnnotationKind.FREEHAND
        assert stroke.geometry.points == [Point(10, 10), Point(20, 20), Point(30, 30), Point(40, 40)]
        assert session.history.undo_description() == "Draw freehand-stroke"

    def test_stroke_in_progress_is_not_stored(self, session):
        session.set_tool(Tool.PEN)
        session.pointer_down(10, 10)
        session.pointer_move(20, 20)
        assert isinstance(session.interaction.state, Drawing)
        assert session.store.count() == 0
        assert session.interaction.preview() is not None

    def test_single_click_stroke_discarded(self, session):
        session.set_tool(Tool.PEN)
        drag(session, (10, 10), (10, 10))
        assert session.store.count() == 0
        assert not session.history.can_undo()

    def test_highlighter_style(self, session):
        session.set_tool(Tool.HIGHLIGHTER)
        drag(session, (10, 10), (100, 10))
        (stroke,) = session.store.query(1)
        assert stroke.style.is_highlighter
        assert stroke.style.stroke_width == 20

    def test_line_keeps_two_points(self, session):
        session.set_tool(Tool.LINE)
        drag(session, (10, 10), (100, 50), steps=[(50, 50), (70, 20)])
        (line,) = session.store.query(1)
        assert line.geometry.points == [Point(10, 10), Point(100, 50)]

    def test_zero_length_line_discarded(self, session):
        session.set_tool(Tool.LINE)
        drag(session, (10, 10), (10, 10))
        assert session.store.count() == 0

    def test_rectangle(self, session):
        session.set_tool(Tool.RECTANGLE)
        drag(session, (10, 10), (110, 60))
        (rect,) = session.store.query(1)
        assert rect.geometry == BoxGeometry(10, 10, 100, 50)

    def test_rectangle_dragged_backwards(self, session):
        session.set_tool(Tool.ELLIPSE)
        drag(session, (110, 60), (10, 10))
        (ellipse,) = session.store.query(1)
        assert ellipse.geometry == BoxGeometry(10, 10, 100, 50)

    def test_tiny_rectangle_discarded(self, session):
        session.set_tool(Tool.RECTANGLE)
        drag(session, (10, 10), (10.5, 10.5))
        assert session.store.count() == 0

    def test_flat_rectangle_gets_min_height(self, session):
        session.set_tool(Tool.RECTANGLE)
        drag(session, (10, 10), (110, 10))
        (rect,) = session.store.query(1)
        assert rect.geometry.height == session.settings.min_size

    def test_zoom_scales_pointer(self, session):
        session.set_zoom(2.0)
        session.set_tool(Tool.RECTANGLE)
        drag(session, (20, 20), (220, 120))
        (rect,) = session.store.query(1)
        assert rect.geometry == BoxGeometry(10, 10, 100, 50)

    def test_drag_clamped_to_page(self, session):
        session.set_tool(Tool.RECTANGLE)
        drag(session, (1100, 1600), (5000, 5000))
        (rect,) = session.store.query(1)
        assert rect.geometry.rect.right == 1190
        assert rect.geometry.rect.bottom == 1684

    def test_flat_rectangle_on_bottom_edge_stays_on_page(self, session):
        session.set_tool(Tool.RECTANGLE)
        drag(session, (100, 1684), (300, 1684))
        (rect,) = session.store.query(1)
        assert rect.geometry == BoxGeometry(100, 1683, 200, 1)

    def test_thin_ellipse_on_right_edge_stays_on_page(self, session):
        session.set_tool(Tool.ELLIPSE)
        drag(session, (1190, 100), (1190, 300))
        (ellipse,) = session.store.query(1)
        assert ellipse.geometry.rect.right == 1190
        assert ellipse.geometry.rect.width == session.settings.min_size


# --- events that are ignored ---

class TestIgnoredEvents:
    def test_page_without_raster(self, session):
        session.go_to_page(2)
        session.set_tool(Tool.PEN)
        drag(session, (10, 10), (50, 50))
        assert isinstance(session.interaction.state, Idle)
        assert session.store.count() == 0

    def test_click_outside_page(self, session):
        session.set_tool(Tool.RECTANGLE)
        session.pointer_down(2000, 10)
        assert isinstance(session.interaction.state, Idle)

    def test_move_without_down(self, session):
        session.set_tool(Tool.PEN)
        session.pointer_move(10, 10)
        session.pointer_up(10, 10)
        assert session.store.count() == 0

    def test_pointer_ignored_while_exporting(self, session):
        session.set_tool(Tool.RECTANGLE)
        session.begin_export()
        drag(session, (10, 10), (110, 60))
        session.end_export()
        assert session.store.count() == 0


# --- select, drag and resize ---

class TestSelection:
    def test_click_selects_and_drag_moves(self, session):
        box = add_box(session)
        session.set_tool(Tool.SELECT)
        session.pointer_down(50, 50)
        assert session.selected_id == box.id
        assert isinstance(session.interaction.state, Dragging)
        session.pointer_move(80, 90)
        session.pointer_up(80, 90)
        assert session.store.get(box.id).geometry == BoxGeometry(40, 50, 100, 50)
        assert session.history.undo_description() == "Move"

    def test_click_without_move_records_nothing(self, session):
        add_box(session)
        entries = len(session.history)
        drag(session, (50, 30), (50, 30))
        assert len(session.history) == entries

    def test_click_on_empty_area_clears_selection(self, session):
        add_box(session)
        drag(session, (50, 30), (50, 30))
        assert session.selected_id is not None
        drag(session, (800, 800), (800, 800))
        assert session.selected_id is None

    def test_topmost_annotation_is_picked(self, session):
        add_box(session)
        top = add_box(session, x=40)
        drag(session, (60, 30), (60, 30))
        assert session.selected_id == top.id

    def test_drag_stays_inside_page(self, session):
        box = add_box(session)
        drag(session, (50, 30), (-500, -500))
        assert session.store.get(box.id).geometry.rect.origin == Point(0, 0)

    def test_resize_from_corner(self, session):
        box = add_box(session)
        drag(session, (50, 30), (50, 30))
        session.pointer_down(110, 60)
        assert isinstance(session.interaction.state, Resizing)
        session.pointer_move(130, 80)
        session.pointer_up(130, 80)
        assert session.store.get(box.id).geometry == BoxGeometry(10, 10, 120, 70)
        assert session.history.undo_description() == "Resize"

    def test_resize_respects_min_size(self, session):
        box = add_box(session)
        drag(session, (50, 30), (50, 30))
        drag(session, (110, 60), (-500, -500))
        g = session.store.get(box.id).geometry
        assert (g.x, g.y) == (10, 10)
        assert (g.width, g.height) == (1, 1)

    def test_cancel_restores_geometry(self, session):
        box = add_box(session)
        entries = len(session.history)
        session.pointer_down(50, 30)
        session.pointer_move(300, 300)
        session.interaction.cancel()
        assert session.store.get(box.id).geometry == BoxGeometry(10, 10, 100, 50)
        assert isinstance(session.interaction.state, Idle)
        assert len(session.history) == entries

    def test_tool_change_clears_selection(self, session):
        add_box(session)
        drag(session, (50, 30), (50, 30))
        session.set_tool(Tool.PEN)
        assert session.selected_id is None

    def test_selection_signal(self, session):
        box = add_box(session)
        selected = []
        session.interaction.selection_changed.connect(selected.append)
        drag(session, (50, 30), (50, 30))
        assert selected == [box.id]


# --- eraser ---

class TestEraser:
    def test_erases_everything_under_pointer(self, session):
        stroke = Annotation(AnnotationKind.FREEHAND,
                            StrokeGeometry([Point(0, 100), Point(100, 100)]))
        session.add_annotation(1, stroke)
        add_box(session, x=40, y=90, w=20, h=20)
        keep = add_box(session, x=500, y=500)
        session.set_tool(Tool.ERASER)
        session.pointer_down(50, 110)
        assert [a.id for a in session.store.query(1)] == [keep.id]
        assert session.history.undo_description() == "Erase"

    def test_miss_records_nothing(self, session):
        add_box(session)
        entries = len(session.history)
        session.set_tool(Tool.ERASER)
        session.pointer_down(800, 800)
        assert len(session.history) == entries


# --- text and stamps ---

class TestPlacement:
    def test_text_tool_waits_for_click(self, session):
        session.set_tool(Tool.TEXT)
        assert isinstance(session.interaction.state, PlacingText)

    def test_place_pending_text(self, session):
        session.set_tool(Tool.TEXT)
        session.interaction.set_pending_text("Hello")
        session.pointer_down(100, 100)
        (text,) = session.store.query(1)
        assert text.geometry == TextGeometry(100, 100, "Hello", 16.0)
        assert isinstance(session.interaction.state, Idle)

    def test_text_prompt(self, session):
        session.interaction.text_prompt = lambda: "Signed"
        session.set_tool(Tool.TEXT)
        session.pointer_down(100, 100)
        assert session.store.query(1)[0].geometry.text == "Signed"

    def test_no_text_warns(self, session):
        warnings = []
        session.interaction.warning.connect(warnings.append)
        session.set_tool(Tool.TEXT)
        session.pointer_down(100, 100)
        assert session.store.count() == 0
        assert len(warnings) == 1

    def test_place_stamp(self, session):
        stamp = PreparedStamp(b"\x89PNG\r\n\x1a\n", 300, 100)
        session.interaction.prepare_stamp(stamp)
        session.pointer_down(200, 200)
        (placed,) = session.store.query(1)
        assert placed.kind == AnnotationKind.IMAGE
        assert placed.geometry == BoxGeometry(125, 175, 150, 50)
        assert placed.payload == stamp.data
        assert session.interaction.tool == Tool.SELECT
        assert session.selected_id == placed.id

    def test_stamp_kept_inside_page(self, session):
        session.interaction.prepare_stamp(PreparedStamp(b"\x89PNG\r\n\x1a\n", 300, 100))
        session.pointer_down(5, 5)
        assert session.store.query(1)[0].geometry.rect.origin == Point(0, 0)

    def test_stamp_tool_without_stamp_warns(self, session):
        warnings = []
        session.interaction.warning.connect(warnings.append)
        session.set_tool(Tool.STAMP)
        session.pointer_down(200, 200)
        assert session.store.count() == 0
        assert warnings


# --- crop region ---

class TestCrop:
    def test_draw_crop(self, session):
        session.set_tool(Tool.CROP)
        drag(session, (119, 168.4), (595, 842))
        crop = session.store.crop(1)
        assert crop.x == pytest.approx(0.1)
        assert crop.y == pytest.approx(0.1)
        assert crop.width == pytest.approx(0.4)
        assert crop.height == pytest.approx(0.4)
        assert session.history.undo_description() == "Crop"

    def test_crop_preview_while_drawing(self, session):
        session.set_tool(Tool.CROP)
        session.pointer_down(100, 100)
        session.pointer_move(300, 300)
        assert session.interaction.preview_crop() == Rect(100, 100, 200, 200)
        assert session.store.crop(1) is None

    def test_small_crop_grows_to_min_size(self, session):
        session.set_tool(Tool.CROP)
        drag(session, (100, 100), (110, 120))
        assert session.crop_rect(1).width == pytest.approx(50)
        assert session.crop_rect(1).height == pytest.approx(50)

    def test_click_does_not_crop(self, session):
        session.set_tool(Tool.CROP)
        drag(session, (100, 100), (100, 100))
        assert session.store.crop(1) is None

    def test_move_existing_crop(self, session):
        session.set_crop(Rect(100, 100, 200, 200))
        session.set_tool(Tool.CROP)
        drag(session, (200, 200), (250, 220))
        crop = session.crop_rect(1)
        assert crop.x == pytest.approx(150)
        assert crop.y == pytest.approx(120)
        assert session.history.undo_description() == "Adjust crop"

    def test_resize_existing_crop(self, session):
        session.set_crop(Rect(100, 100, 200, 200))
        session.set_tool(Tool.CROP)
        drag(session, (300, 300), (400, 350))
        crop = session.crop_rect(1)
        assert crop.width == pytest.approx(300)
        assert crop.height == pytest.approx(250)
