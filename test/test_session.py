"""
Tests für die DrawingSession
============================

End-to-end über Tool-State-Machine, History, Zeichenfläche und Store.
Qt-Signale werden direkt (ohne Event-Loop) in Listen mitgeschrieben.

Run: pytest test/test_session.py -v
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from drawing.history import HistoryBusyError, SnapshotApplyError
from drawing.persistence import MemoryStore
from drawing.session import DrawingSession
from drawing.surface import DRAFT_ID, MemorySurface
from drawing.tools import DrawingTool, ToolState
from sketcher.geometry import Point2D
from sketcher.shapes import RoomType

CORNERS = [(0, 0), (400, 0), (400, 300), (0, 300)]


class GatedSurface(MemorySurface):
    """load_scene wartet, bis der Test das Gate öffnet."""

    def __init__(self):
        super().__init__()
        self.gate = None

    async def load_scene(self, blob):
        await self.gate.wait()
        await super().load_scene(blob)


@pytest.fixture
def signals(session):
    recorded = {
        "added": [], "removed": [], "modified": [],
        "history": [], "measurement": [], "failed": [], "tool": [],
    }
    session.shape_added.connect(lambda sid: recorded["added"].append(sid))
    session.shape_removed.connect(lambda sid: recorded["removed"].append(sid))
    session.shape_modified.connect(lambda sid: recorded["modified"].append(sid))
    session.history_changed.connect(lambda u, r: recorded["history"].append((u, r)))
    session.measurement_changed.connect(lambda m: recorded["measurement"].append(m))
    session.gesture_failed.connect(lambda msg: recorded["failed"].append(msg))
    session.tool_changed.connect(lambda name: recorded["tool"].append(name))
    return recorded


def _draw(session, tool, start, end):
    session.set_tool(tool)
    session.pointer_down(*start)
    session.pointer_move(*end)
    return session.pointer_up(*end)


def _draw_walls(session):
    for start, end in zip(CORNERS, CORNERS[1:] + CORNERS[:1]):
        _draw(session, DrawingTool.WALL, start, end)
    return session.scene.walls


def _draw_room(session):
    session.set_tool(DrawingTool.ROOM)
    result = None
    for p in CORNERS + [CORNERS[0]]:
        session.pointer_down(*p)
        result = session.pointer_up(*p)
    return result


class TestDrawing:

    def test_wall_commit(self, session, signals):
        result = _draw(session, DrawingTool.WALL, (0, 0), (400, 3))
        assert result.committed
        wall = session.scene.walls[0]
        assert wall.end == Point2D(400, 0)
        assert signals["added"] == [wall.id]
        assert signals["history"][-1] == (True, False)
        assert set(session.surface.objects) == {wall.id}
        assert session.state is ToolState.IDLE

    def test_live_measurement(self, session, signals):
        session.set_tool(DrawingTool.LINE)
        session.pointer_down(0, 0)
        session.pointer_move(250, 3)
        measurement = session.live_measurement
        assert measurement.distance == pytest.approx(2.5)
        assert measurement.text == "2.50 m · 0°"
        assert signals["measurement"][-1] == measurement
        assert DRAFT_ID in session.surface.objects

    def test_cancel_discards_draft(self, session, signals):
        _draw(session, DrawingTool.WALL, (0, 0), (400, 0))
        session.set_tool(DrawingTool.LINE)
        session.pointer_down(0, 100)
        session.pointer_move(200, 100)
        session.cancel()

        assert len(session.scene) == 1
        assert session.can_undo()
        assert not session.can_redo()
        assert DRAFT_ID not in session.surface.objects
        assert session.live_measurement is None
        assert signals["measurement"][-1] is None

    def test_set_tool_by_name(self, session, signals):
        session.set_tool("wall")
        assert session.tool is DrawingTool.WALL
        assert signals["tool"] == ["WALL"]

    def test_invalid_input_emits_failure(self, session, signals):
        session.set_tool(DrawingTool.LINE)
        session.pointer_down(0, 0)
        result = session.pointer_move(float("nan"), 0)
        assert result.is_error
        assert len(signals["failed"]) == 1
        assert len(session.scene) == 0
        assert not session.can_undo()
        assert session.state is ToolState.IDLE

    def test_drag_modifies_wall(self, session, signals):
        wall = _draw(session, DrawingTool.WALL, (0, 0), (400, 0)).diffs[0].shape
        session.set_tool(DrawingTool.SELECT)
        session.pointer_down(200, 2)
        session.pointer_move(200, 52)
        assert session.state is ToolState.DRAGGING
        assert session.surface.objects[wall.id] is wall

        session.pointer_up(200, 52)
        moved = session.scene.get(wall.id)
        assert moved.start == Point2D(0, 50)
        assert signals["modified"] == [wall.id]
        assert session.surface.objects[wall.id] is moved
        assert DRAFT_ID not in session.surface.objects


class TestRooms:

    def test_room_links_walls_and_reports_area(self, session):
        walls = _draw_walls(session)
        result = _draw_room(session)
        room = result.diffs[0].shape

        assert len(walls) == 4
        assert session.scene.walls_for_room(room.id) == sorted(w.id for w in walls)
        summary = session.gross_internal_area()
        assert summary.area_m2 == pytest.approx(12.0)
        assert summary.perimeter_m == pytest.approx(14.0)
        assert summary.room_count == 1

    def test_set_room_type(self, session, signals):
        room = _draw_room(session).diffs[0].shape
        assert session.set_room_type(room.id, "kitchen")
        assert session.scene.get(room.id).room_type is RoomType.KITCHEN
        assert signals["modified"] == [room.id]
        assert session.set_room_type(room.id, RoomType.KITCHEN) is False

    def test_set_room_type_on_wall(self, session):
        wall = _draw(session, DrawingTool.WALL, (0, 0), (400, 0)).diffs[0].shape
        assert session.set_room_type(wall.id, RoomType.OFFICE) is False

    def test_delete_shape(self, session, signals):
        wall = _draw(session, DrawingTool.WALL, (0, 0), (400, 0)).diffs[0].shape
        assert session.delete_shape(wall.id)
        assert len(session.scene) == 0
        assert signals["removed"] == [wall.id]
        assert session.delete_shape(wall.id) is False


class TestUndoRedo:

    def test_undo_and_redo(self, session, signals):
        wall = _draw(session, DrawingTool.WALL, (0, 0), (400, 0)).diffs[0].shape

        assert asyncio.run(session.undo())
        assert len(session.scene) == 0
        assert session.surface.objects == {}
        assert signals["removed"] == [wall.id]
        assert signals["history"][-1] == (False, True)

        assert asyncio.run(session.redo())
        assert session.scene.get(wall.id) == wall
        assert wall.id in session.surface.objects
        assert signals["history"][-1] == (True, False)

    def test_undo_all_redo_all(self, session):
        _draw_walls(session)
        final = session.scene.to_blob()

        async def scenario():
            while session.can_undo():
                await session.undo()
            assert len(session.scene) == 0
            while session.can_redo():
                await session.redo()

        asyncio.run(scenario())
        assert session.scene.to_blob() == final

    def test_nothing_to_undo(self, session):
        assert asyncio.run(session.undo()) is False
        assert asyncio.run(session.redo()) is False

    def test_failed_surface_load_keeps_state(self, session):
        wall = _draw(session, DrawingTool.WALL, (0, 0), (400, 0)).diffs[0].shape
        session.surface.load_scene = AsyncMock(side_effect=OSError("Zeichenfläche weg"))

        with pytest.raises(SnapshotApplyError):
            asyncio.run(session.undo())
        assert session.scene.get(wall.id) == wall
        assert session.can_undo()
        assert not session.can_redo()

    def test_busy_during_undo(self, qt_app, config, tmp_path):
        surface = GatedSurface()
        session = DrawingSession(config, surface=surface, store=MemoryStore())
        _draw(session, DrawingTool.WALL, (0, 0), (400, 0))

        async def scenario():
            surface.gate = asyncio.Event()
            task = asyncio.ensure_future(session.undo())
            while not session.history.busy:
                await asyncio.sleep(0)
            with pytest.raises(HistoryBusyError):
                session.commit()
            with pytest.raises(HistoryBusyError):
                session.delete_shape(session.scene.walls[0].id)
            with pytest.raises(HistoryBusyError):
                await session.redo()
            surface.gate.set()
            return await task

        assert asyncio.run(scenario())
        assert len(session.scene) == 0
        assert not session.history.busy


class TestPersistence:

    def test_save_and_load_roundtrip(self, session, qt_app, config):
        _draw_walls(session)
        _draw_room(session)
        assert session.save("erdgeschoss")

        other = DrawingSession(config, surface=MemorySurface(), store=session.store)
        assert asyncio.run(other.load("erdgeschoss"))
        assert other.scene.to_blob() == session.scene.to_blob()
        assert len(other.surface.objects) == 5
        assert not other.can_undo()
        assert other.gross_internal_area() == session.gross_internal_area()

    def test_load_missing_plan(self, session):
        _draw(session, DrawingTool.WALL, (0, 0), (400, 0))
        assert asyncio.run(session.load("gibtsnicht")) is False
        assert len(session.scene) == 1

    def test_load_corrupt_plan(self, session):
        _draw(session, DrawingTool.WALL, (0, 0), (400, 0))
        session.store.save("kaputt", "{nicht json")
        assert asyncio.run(session.load("kaputt")) is False
        assert len(session.scene) == 1
        assert session.can_undo()

    def test_save_over_quota(self, qt_app, config):
        session = DrawingSession(config, surface=MemorySurface(), store=MemoryStore(quota_bytes=16))
        _draw(session, DrawingTool.WALL, (0, 0), (400, 0))
        assert session.save("plan") is False
