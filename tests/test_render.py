"""Tests for overlay draw commands."""

from pageink.geometry import Point, Rect
from pageink.interaction import Tool
from pageink.models import Annotation, AnnotationKind, BoxGeometry, StrokeGeometry
from pageink.primitives import DrawLine, DrawRect
from pageink.render import CROP_OUTLINE, SELECTION_COLOR, render


def add_box(session):
    return session.add_annotation(1, Annotation(AnnotationKind.RECTANGLE, BoxGeometry(10, 10, 100, 50)))


class TestRender:
    def test_empty_page(self, session):
        assert render(session) == []

    def test_rectangle_scaled_by_zoom(self, session):
        add_box(session)
        session.set_zoom(2.0)
        (rect,) = render(session)
        assert isinstance(rect, DrawRect)
        assert rect.origin == Point(20, 20)
        assert (rect.width, rect.height) == (200, 100)
        assert rect.stroke_width == 4

    def test_stroke_segments(self, session):
        session.add_annotation(1, Annotation(AnnotationKind.FREEHAND,
                                             StrokeGeometry([Point(0, 0), Point(10, 0), Point(10, 10)])))
        commands = render(session)
        assert len(commands) == 2
        assert all(isinstance(c, DrawLine) for c in commands)

    def test_selection_frame(self, session):
        box = add_box(session)
        session.interaction.select(box.id)
        commands = render(session)
        assert len(commands) == 1 + 9
        assert commands[1].stroke_color == SELECTION_COLOR

    def test_preview_while_drawing(self, session):
        session.set_tool(Tool.RECTANGLE)
        session.pointer_down(10, 10)
        session.pointer_move(60, 60)
        assert len(render(session)) == 1

    def test_crop_shades_outside(self, session):
        session.set_crop(Rect(100, 100, 200, 200))
        commands = render(session)
        assert len(commands) == 5
        assert commands[-1].stroke_color == CROP_OUTLINE
        assert all(c.fill_color is not None for c in commands[:4])

    def test_crop_handles_with_crop_tool(self, session):
        session.set_crop(Rect(100, 100, 200, 200))
        session.set_tool(Tool.CROP)
        assert len(render(session)) == 5 + 9

    def test_other_page_has_no_selection(self, session):
        box = add_box(session)
        session.interaction.select(box.id)
        assert render(session, 2) == []
