"""
FloorSketch - Drawing Session

Fassade über Tool-State-Machine, Snapper, History, Messung, Zeichenfläche
und Persistenz. Einzige Stelle, die die committete Szene verändert.

Verwendet Qt Signals für reaktive Updates (Toolbar, Statusleiste, Tooltip):
die Session kennt keine Widgets.
"""

from typing import List, Optional, Union

from loguru import logger
from PySide6.QtCore import QObject, Signal

from config.drawing_config import DrawingConfig
from sketcher.measurement import AreaSummary, gross_internal_area
from sketcher.scene import DiffKind, Scene, SceneDiff, Snapshot, SnapshotError
from sketcher.shapes import RoomType, ShapeKind
from .history import HistoryBusyError, HistoryManager
from .measurement_overlay import LiveMeasurement, MeasurementOverlay
from .persistence import JsonFileStore, SceneStore
from .results import ToolResult
from .snapper import GridAngleSnapper
from .surface import MemorySurface, RenderingSurface, SurfaceAdapter
from .tool_state import ToolStateMachine
from .tools import DrawingTool, ToolState


class DrawingSession(QObject):
    """
    Interaktive Zeichen-Session.

    Signals:
        shape_added: Shape-ID wurde der Szene hinzugefügt
        shape_removed: Shape-ID wurde entfernt
        shape_modified: Shape-ID wurde verändert
        history_changed: (can_undo, can_redo) nach jeder History-Änderung
        measurement_changed: LiveMeasurement oder None
        gesture_failed: Fehlermeldung einer abgebrochenen Geste
        tool_changed: Name des neuen Werkzeugs
    """

    shape_added = Signal(str)
    shape_removed = Signal(str)
    shape_modified = Signal(str)
    history_changed = Signal(bool, bool)
    measurement_changed = Signal(object)
    gesture_failed = Signal(str)
    tool_changed = Signal(str)

    def __init__(self, config: DrawingConfig = None, surface: RenderingSurface = None,
                 store: SceneStore = None, parent=None):
        super().__init__(parent)
        self.config = config or DrawingConfig()
        self.scene = Scene()
        self.snapper = GridAngleSnapper(self.config)
        self.tools = ToolStateMachine(self.config, self.snapper, self.scene)
        self.overlay = MeasurementOverlay(self.config)
        self.surface = surface if surface is not None else MemorySurface()
        self.adapter = SurfaceAdapter(self.surface)
        self.store = store if store is not None else JsonFileStore()
        self.history = HistoryManager(self.scene.snapshot("Start"), max_depth=self.config.max_history)

    # ==================== STATUS ====================

    @property
    def tool(self) -> DrawingTool:
        return self.tools.tool

    @property
    def state(self) -> ToolState:
        return self.tools.state

    @property
    def live_measurement(self) -> Optional[LiveMeasurement]:
        return self.overlay.current

    def can_undo(self) -> bool:
        return self.history.can_undo()

    def can_redo(self) -> bool:
        return self.history.can_redo()

    def gross_internal_area(self) -> AreaSummary:
        return gross_internal_area(self.scene.rooms, self.config)

    # ==================== WERKZEUG / POINTER ====================

    def set_tool(self, tool: Union[DrawingTool, str]) -> ToolResult:
        if isinstance(tool, str):
            tool = DrawingTool[tool.upper()]
        result = self.tools.set_tool(tool)
        self._sync_draft()
        self.tool_changed.emit(tool.name)
        return result

    def pointer_down(self, x, y) -> ToolResult:
        return self._handle(self.tools.pointer_down(x, y))

    def pointer_move(self, x, y) -> ToolResult:
        return self._handle(self.tools.pointer_move(x, y))

    def pointer_up(self, x, y) -> ToolResult:
        # pointer_up kann committen: vor jeder Änderung prüfen
        self._ensure_history_idle("pointer_up")
        return self._handle(self.tools.pointer_up(x, y))

    def commit(self) -> ToolResult:
        self._ensure_history_idle("commit")
        return self._handle(self.tools.commit())

    def cancel(self) -> ToolResult:
        return self._handle(self.tools.cancel())

    # ==================== DIREKTE AKTIONEN ====================

    def delete_shape(self, shape_id: str) -> bool:
        shape = self.scene.get(shape_id)
        if shape is None:
            logger.warning(f"[Session] Löschen: Shape {shape_id} nicht gefunden")
            return False
        self._ensure_history_idle("delete_shape")
        if not self.tools.is_idle:
            self.tools.cancel()
            self._sync_draft()
        self._commit([SceneDiff(DiffKind.REMOVE, shape)], f"Lösche {shape_id}")
        return True

    def set_room_type(self, room_id: str, room_type: Union[RoomType, str]) -> bool:
        room = self.scene.get(room_id)
        if room is None or room.kind is not ShapeKind.ROOM:
            logger.warning(f"[Session] Raumtyp: {room_id} ist kein Raum")
            return False
        room_type = RoomType(room_type)
        if room.room_type is room_type:
            return False
        self._ensure_history_idle("set_room_type")
        updated = room.with_type(room_type)
        self._commit([SceneDiff(DiffKind.MODIFY, updated, previous=room)], f"Raumtyp {room_type.value}")
        return True

    # ==================== UNDO / REDO ====================

    async def undo(self) -> bool:
        """
        Macht die letzte Aktion rückgängig.

        Raises:
            HistoryBusyError: ein Undo/Redo läuft noch
            SnapshotApplyError: Snapshot unbrauchbar oder Zeichenfläche
                fehlgeschlagen; Szene und History sind unverändert
        """
        if not self.history.can_undo():
            return False
        return await self._restore(self.history.undo_async)

    async def redo(self) -> bool:
        if not self.history.can_redo():
            return False
        return await self._restore(self.history.redo_async)

    async def _restore(self, step) -> bool:
        self._ensure_history_idle("undo/redo")
        self.tools.cancel()
        self._sync_draft()

        loaded: List[Scene] = []

        async def apply(snapshot: Snapshot):
            # Erst parsen, dann die Fläche anfassen: kaputte Snapshots ändern nichts
            scene = Scene.from_snapshot(snapshot)
            await self.adapter.load(snapshot)
            loaded.append(scene)

        target = await step(apply)
        if target is None:
            return False
        self._swap_scene(loaded[0])
        self._emit_history()
        return True

    # ==================== PERSISTENZ ====================

    def save(self, key: str) -> bool:
        return self.store.save(key, self.scene.to_blob())

    async def load(self, key: str) -> bool:
        """
        Lädt einen gespeicherten Plan als neuen Ausgangszustand.

        Fehlende oder kaputte Pläne liefern False; Szene und History
        bleiben dann unverändert.
        """
        blob = self.store.load(key)
        if blob is None:
            return False
        try:
            scene = Scene.from_blob(blob)
        except SnapshotError as e:
            logger.warning(f"[Session] Plan '{key}' ist beschädigt: {e}")
            return False

        self._ensure_history_idle("load")
        self.tools.cancel()
        self._sync_draft()
        snapshot = scene.snapshot(f"Geladen: {key}")
        try:
            await self.adapter.load(snapshot)
        except (SnapshotError, OSError) as e:
            logger.error(f"[Session] Zeichenfläche konnte '{key}' nicht laden: {e}")
            return False

        self.history.reset(snapshot)
        self._swap_scene(scene)
        self._emit_history()
        logger.info(f"[Session] Plan '{key}' geladen: {scene!r}")
        return True

    # ==================== INTERN ====================

    def _handle(self, result: ToolResult) -> ToolResult:
        if result.is_error:
            self.gesture_failed.emit(result.message)
        if result.diffs:
            self._commit(result.diffs, result.message)
        self._sync_draft(result.preview)
        return result

    def _commit(self, diffs: List[SceneDiff], label: str):
        self._ensure_history_idle("commit")

        # Auf einer Kopie anwenden: ein ungültiger Diff lässt die Szene unverändert
        scene = self.scene.copy()
        scene.apply_all(diffs)
        self.scene = scene
        self.tools.scene = scene

        self.adapter.apply(diffs)
        self.history.commit(scene.snapshot(label))
        self._emit_diffs(diffs)
        self._emit_history()

    def _swap_scene(self, scene: Scene):
        diffs = self.scene.diff(scene)
        self.scene = scene
        self.tools.scene = scene
        self._emit_diffs(diffs)

    def _sync_draft(self, preview=None):
        draft = self.tools.draft
        if draft is None:
            self.adapter.clear_preview()
            if self.overlay.current is not None:
                self.overlay.clear()
                self.measurement_changed.emit(None)
            return

        self.adapter.show_preview(preview if preview is not None else draft.preview)
        if self.tools.state is ToolState.DRAWING and draft.snap is not None:
            vertices = draft.outline() if draft.tool is DrawingTool.ROOM else None
            measurement = self.overlay.update(draft.reference, draft.snap, vertices)
            self.measurement_changed.emit(measurement)

    def _emit_diffs(self, diffs: List[SceneDiff]):
        for diff in diffs:
            if diff.kind is DiffKind.ADD:
                self.shape_added.emit(diff.shape_id)
            elif diff.kind is DiffKind.REMOVE:
                self.shape_removed.emit(diff.shape_id)
            else:
                self.shape_modified.emit(diff.shape_id)

    def _emit_history(self):
        self.history_changed.emit(self.can_undo(), self.can_redo())

    def _ensure_history_idle(self, operation: str):
        if self.history.busy:
            raise HistoryBusyError(f"{operation} nicht möglich: Undo/Redo läuft noch")
