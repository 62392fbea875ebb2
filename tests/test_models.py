"""Tests for data models: annotations, styles, pages and the annotation store."""

import json
import pytest
from pageink.errors import InvalidPage, NotFound
from pageink.geometry import Point, Rect, ResizeHandle
from pageink.models import (
    Annotation, AnnotationKind, AnnotationStore, BoxGeometry, Document, Page,
    StrokeGeometry, Style, StylePresets, TextGeometry, hex_to_rgb, text_extent,
)


def stroke(*points, width=2.0) -> Annotation:
    return Annotation(AnnotationKind.FREEHAND, StrokeGeometry([Point(*p) for p in points]),
                      style=Style(stroke_width=width))


def box(x, y, w, h, kind=AnnotationKind.RECTANGLE) -> Annotation:
    return Annotation(kind, BoxGeometry(x, y, w, h))


# --- Style ---

class TestStyle:
    def test_defaults(self):
        s = Style()
        assert s.stroke_color == "#FF0000"
        assert s.fill_color is None
        assert s.opacity == 1.0

    def test_from_dict_extra_keys_ignored(self):
        s = Style.from_dict({"stroke_width": 5, "nonexistent": True})
        assert s.stroke_width == 5

    def test_highlighter(self):
        assert Style(opacity=0.3).is_highlighter
        assert not Style().is_highlighter

    def test_hex_to_rgb(self):
        assert hex_to_rgb("#FF0000") == (1.0, 0.0, 0.0)

    def test_hex_to_rgb_invalid(self):
        with pytest.raises(ValueError):
            hex_to_rgb("#FFF")


# --- Annotation ---

class TestAnnotation:
    def test_geometry_must_match_kind(self):
        with pytest.raises(TypeError):
            Annotation(AnnotationKind.RECTANGLE, StrokeGeometry([]))

    def test_stroke_bbox(self):
        a = stroke((10, 20), (30, 5), (15, 40))
        assert a.bbox() == Rect(10, 5, 20, 35)

    def test_text_bbox_uses_font_metrics(self):
        a = Annotation(AnnotationKind.TEXT, TextGeometry(10, 10, "Hello", 20))
        width, height = text_extent("Hello", 20)
        assert a.bbox() == Rect(10, 10, width, height)
        assert width > 0

    def test_stroke_hit_within_tolerance(self):
        a = stroke((0, 0), (100, 0))
        assert a.hit_test(Point(50, 15), stroke_tolerance=20)
        assert not a.hit_test(Point(50, 25), stroke_tolerance=20)

    def test_wide_stroke_hit_uses_width(self):
        a = stroke((0, 0), (100, 0), width=30)
        assert a.hit_test(Point(50, 25), stroke_tolerance=20)

    def test_box_hit(self):
        a = box(10, 10, 50, 50)
        assert a.hit_test(Point(30, 30))
        assert not a.hit_test(Point(70, 70))

    def test_translate(self):
        a = stroke((0, 0), (10, 10))
        a.translate(5, -5)
        assert a.geometry.points == [Point(5, -5), Point(15, 5)]

    def test_resize_box(self):
        a = box(10, 10, 100, 50)
        a.resize(ResizeHandle.SE, 10, 10)
        assert a.geometry == BoxGeometry(10, 10, 110, 60)

    def test_resize_stroke_remaps_points(self):
        a = stroke((0, 0), (10, 10))
        a.resize(ResizeHandle.SE, 10, 10)
        assert a.geometry.points == [Point(0, 0), Point(20, 20)]

    def test_resize_text_scales_font(self):
        a = Annotation(AnnotationKind.TEXT, TextGeometry(0, 0, "Hi", 20))
        a.resize(ResizeHandle.S, 0, 20)
        assert a.geometry.font_size == pytest.approx(40)

    def test_rotate_rectangle(self):
        a = box(10, 20, 100, 50)
        a.rotate_cw(capture_height=400)
        assert a.geometry == BoxGeometry(330, 10, 50, 100)

    def test_rotate_image_keeps_size(self):
        a = box(10, 20, 100, 50, kind=AnnotationKind.IMAGE)
        a.rotate_cw(capture_height=400)
        assert (a.geometry.width, a.geometry.height) == (100, 50)
        assert a.bbox().center == Point(400 - 45, 60)

    def test_copy_is_deep_and_keeps_id(self):
        a = stroke((0, 0), (10, 10))
        b = a.copy()
        b.translate(1, 1)
        assert b.id == a.id
        assert a.geometry.points[0] == Point(0, 0)

    def test_to_dict_roundtrip_with_payload(self):
        a = box(1, 2, 3, 4, kind=AnnotationKind.IMAGE)
        a.payload = b"\x89PNG\r\n\x1a\nrest"
        b = Annotation.from_dict(json.loads(json.dumps(a.to_dict())))
        assert b.payload == a.payload
        assert b.geometry == a.geometry
        assert b.id == a.id


# --- Document ---

class TestDocument:
    def test_page_lookup(self):
        doc = Document.blank(2)
        assert doc.page(2).number == 2

    def test_invalid_page(self):
        with pytest.raises(InvalidPage):
            Document.blank(2).page(3)

    def test_rotated_size(self):
        page = Page(1, 595, 842, rotation=90)
        assert page.rotated_size() == (842, 595)
        assert page.rotated_size(90) == (595, 842)


# --- AnnotationStore ---

class TestAnnotationStore:
    def test_add_and_query(self):
        store = AnnotationStore(2)
        a = store.add(2, box(0, 0, 10, 10))
        assert a.page_number == 2
        assert store.query(2) == (a,)
        assert store.query(1) == ()

    def test_add_invalid_page(self):
        with pytest.raises(InvalidPage):
            AnnotationStore(2).add(3, box(0, 0, 10, 10))

    def test_query_is_z_ordered(self):
        store = AnnotationStore(1)
        first = store.add(1, box(0, 0, 10, 10))
        second = store.add(1, box(5, 5, 10, 10))
        assert store.query(1) == (first, second)

    def test_hit_test_returns_topmost(self):
        store = AnnotationStore(1)
        store.add(1, box(0, 0, 10, 10))
        top = store.add(1, box(5, 5, 10, 10))
        assert store.hit_test(1, Point(7, 7)) is top

    def test_hit_test_miss(self):
        store = AnnotationStore(1)
        store.add(1, box(0, 0, 10, 10))
        assert store.hit_test(1, Point(500, 500)) is None

    def test_remove(self):
        store = AnnotationStore(1)
        a = store.add(1, box(0, 0, 10, 10))
        assert store.remove(a.id) is a
        assert store.count() == 0

    def test_remove_nonexistent(self):
        assert AnnotationStore(1).remove("nonexistent") is None

    def test_update(self):
        store = AnnotationStore(1)
        a = store.add(1, box(0, 0, 10, 10))
        store.update(a.id, lambda x: x.translate(5, 5))
        assert store.get(a.id).geometry.x == 5

    def test_update_missing_raises(self):
        with pytest.raises(NotFound):
            AnnotationStore(1).update("missing", lambda a: None)

    def test_clear_page(self):
        store = AnnotationStore(2)
        store.add(1, box(0, 0, 10, 10))
        store.add(2, box(0, 0, 10, 10))
        assert len(store.clear_page(1)) == 1
        assert store.pages_with_annotations() == [2]

    def test_snapshot_is_independent(self):
        store = AnnotationStore(1)
        a = store.add(1, box(0, 0, 10, 10))
        layers = store.snapshot_layers()
        store.update(a.id, lambda x: x.translate(5, 5))
        assert layers[1].annotations[0].geometry.x == 0

    def test_rotation_wraps(self):
        store = AnnotationStore(1)
        store.set_rotation(1, 450)
        assert store.rotation(1) == 90

    def test_json_roundtrip(self):
        store = AnnotationStore(2)
        store.add(1, stroke((0, 0), (10, 10)))
        store.set_crop(2, Rect(0.1, 0.1, 0.5, 0.5))
        store2 = AnnotationStore(2)
        store2.from_json(store.to_json())
        assert store2.state() == store.state()

    def test_modified_flag(self):
        store = AnnotationStore(1)
        assert store.modified is False
        store.add(1, box(0, 0, 1, 1))
        assert store.modified is True


# --- StylePresets ---

class TestStylePresets:
    def test_default_preset_exists(self):
        assert "Pen" in StylePresets().names()

    def test_get_returns_copy(self):
        p = StylePresets()
        assert p.get("Pen") is not p.get("Pen")

    def test_cannot_delete_pen(self):
        assert StylePresets().delete("Pen") is False

    def test_json_roundtrip(self):
        p = StylePresets()
        p.save("Thick", Style(stroke_width=12))
        p2 = StylePresets()
        p2.from_json(p.to_json())
        assert p2.get("Thick").stroke_width == 12
