"""
Tests für SurfaceAdapter, MemorySurface und das Mess-Overlay

Run: pytest test/test_surface.py -v
"""

import asyncio

import pytest

from config.drawing_config import DrawingConfig, Unit
from drawing.measurement_overlay import MeasurementOverlay
from drawing.snapper import GridAngleSnapper, SnapResult
from drawing.surface import DRAFT_ID, MemorySurface, SurfaceAdapter
from drawing.tools import SnapKind
from sketcher.geometry import Point2D, points_from_tuples
from sketcher.scene import DiffKind, Scene, SceneDiff, SnapshotError
from sketcher.shapes import Stroke, Wall


@pytest.fixture
def surface():
    return MemorySurface()


@pytest.fixture
def adapter(surface):
    return SurfaceAdapter(surface)


class TestSurfaceAdapter:

    def test_diffs_render_once(self, surface, adapter):
        a, b = Wall((0, 0), (100, 0)), Wall((0, 0), (0, 100))
        adapter.apply([SceneDiff(DiffKind.ADD, a), SceneDiff(DiffKind.ADD, b)])
        assert set(surface.objects) == {a.id, b.id}
        assert surface.render_count == 1

    def test_empty_diff_list_does_not_render(self, surface, adapter):
        adapter.apply([])
        assert surface.render_count == 0

    def test_modify_replaces_object(self, surface, adapter):
        wall = Wall((0, 0), (100, 0))
        adapter.apply([SceneDiff(DiffKind.ADD, wall)])
        moved = wall.translated(10, 10)
        adapter.apply([SceneDiff(DiffKind.MODIFY, moved, previous=wall)])
        assert surface.objects[wall.id] is moved
        assert len(surface) == 1

    def test_remove(self, surface, adapter):
        wall = Wall((0, 0), (100, 0))
        adapter.apply([SceneDiff(DiffKind.ADD, wall)])
        adapter.apply([SceneDiff(DiffKind.REMOVE, wall)])
        assert len(surface) == 0

    def test_preview_never_shadows_committed_shape(self, surface, adapter):
        wall = Wall((0, 0), (100, 0))
        adapter.apply([SceneDiff(DiffKind.ADD, wall)])
        adapter.show_preview(wall.translated(0, 50))
        assert surface.objects[wall.id] is wall
        assert surface.objects[DRAFT_ID].start == Point2D(0, 50)

        adapter.clear_preview()
        assert DRAFT_ID not in surface.objects
        assert surface.objects[wall.id] is wall

    def test_preview_replaced(self, surface, adapter):
        adapter.show_preview(Stroke(points=[(0, 0), (10, 0)], id=DRAFT_ID))
        adapter.show_preview(Stroke(points=[(0, 0), (20, 0)], id=DRAFT_ID))
        assert len(surface) == 1
        assert adapter.preview.points[-1] == Point2D(20, 0)

    def test_serialize_skips_preview(self, surface, adapter):
        wall = Wall((0, 0), (100, 0))
        adapter.apply([SceneDiff(DiffKind.ADD, wall)])
        adapter.show_preview(Stroke(points=[(0, 0), (5, 5)], id=DRAFT_ID))
        restored = Scene.from_blob(surface.serialize_scene())
        assert [s.id for s in restored] == [wall.id]


class TestMemorySurfaceLoad:

    def test_load_replaces_content(self, surface, adapter):
        adapter.apply([SceneDiff(DiffKind.ADD, Wall((0, 0), (100, 0)))])
        scene = Scene()
        stroke = Stroke(points=[(1, 1), (2, 2)])
        scene.apply(SceneDiff(DiffKind.ADD, stroke))

        asyncio.run(adapter.load(scene.snapshot("neu")))
        assert list(surface.objects) == [stroke.id]
        assert surface.load_count == 1

    def test_corrupt_blob_leaves_surface_unchanged(self, surface, adapter):
        wall = Wall((0, 0), (100, 0))
        adapter.apply([SceneDiff(DiffKind.ADD, wall)])
        with pytest.raises(SnapshotError):
            asyncio.run(surface.load_scene("{nope"))
        assert list(surface.objects) == [wall.id]
        assert surface.load_count == 0


class TestMeasurementOverlay:

    def test_length_and_angle_text(self, config):
        overlay = MeasurementOverlay(config)
        snap = GridAngleSnapper(config).snap(Point2D(166, 168), reference=Point2D(0, 0))
        measurement = overlay.update(Point2D(0, 0), snap)
        assert measurement.angle == pytest.approx(45.0)
        assert measurement.snapped
        assert measurement.text.endswith(" m · 45°")
        assert overlay.current is measurement

    def test_unit_conversion(self):
        config = DrawingConfig(unit=Unit.CM, grid_snap=False, angle_snap=False)
        snap = SnapResult.unsnapped(Point2D(235, 0))
        measurement = MeasurementOverlay(config).update(Point2D(0, 0), snap)
        assert measurement.distance == pytest.approx(235.0)
        assert measurement.text == "235.00 cm · 0°"

    def test_room_area(self, config):
        vertices = points_from_tuples([(0, 0), (400, 0), (400, 300)])
        snap = SnapResult.unsnapped(Point2D(400, 300))
        measurement = MeasurementOverlay(config).update(Point2D(400, 0), snap, vertices)
        assert measurement.area == pytest.approx(6.0)
        assert measurement.text == "3.00 m · 90° · 6.00 m²"

    def test_without_anchor(self, config):
        measurement = MeasurementOverlay(config).update(None, SnapResult.unsnapped(Point2D(5, 5)))
        assert measurement.distance == 0.0
        assert measurement.angle is None
        assert measurement.snap_kind is SnapKind.NONE

    def test_clear(self, config):
        overlay = MeasurementOverlay(config)
        overlay.update(None, SnapResult.unsnapped(Point2D(0, 0)))
        overlay.clear()
        assert overlay.current is None
