"""
FloorSketch - Tool State Machine

Interpretiert Pointer-Eingaben für das aktive Werkzeug.

States: IDLE -> DRAWING (Zeichen-Werkzeuge)
        IDLE -> DRAGGING / EDITING (SELECT auf Shape-Körper / Eckpunkt)
        * -> IDLE bei Commit, Cancel oder Fehler

Die State-Machine verändert die Szene nie selbst: sie liefert deklarative
SceneDiffs im ToolResult, die DrawingSession wendet sie an.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional

from loguru import logger

from config.drawing_config import DrawingConfig
from config.tolerances import Tolerances
from sketcher.geometry import Point2D, distance, is_valid_polygon
from sketcher.scene import DiffKind, Scene, SceneDiff
from sketcher.shapes import Room, ShapeKind, Stroke, StrokeType, Wall
from sketcher.smoothing import clean_freehand
from .results import ToolResult
from .snapper import GridAngleSnapper, SnapResult
from .surface import DRAFT_ID
from .tools import DrawingTool, ToolState

_STROKE_TYPES = {
    DrawingTool.LINE: StrokeType.LINE,
    DrawingTool.DOOR: StrokeType.DOOR,
    DrawingTool.WINDOW: StrokeType.WINDOW,
    DrawingTool.FURNITURE: StrokeType.FURNITURE,
    DrawingTool.ANNOTATION: StrokeType.ANNOTATION,
    DrawingTool.FREEHAND: StrokeType.LINE,
}


@dataclass
class DraftShape:
    """
    Shape im Aufbau. Gehört exklusiv der ToolStateMachine.

    Für Zeichen-Werkzeuge: anchor, current und (Raum/Freihand) vertices.
    Für SELECT-Gesten: original (committet) und preview (verändert).
    """
    tool: DrawingTool
    anchor: Point2D
    current: Point2D
    vertices: List[Point2D] = field(default_factory=list)
    snap: Optional[SnapResult] = None
    original: object = None
    preview: object = None
    vertex_index: Optional[int] = None

    @property
    def reference(self) -> Optional[Point2D]:
        """Bezugspunkt für Winkel-Snap und Live-Messung"""
        if self.tool is DrawingTool.ROOM:
            return self.vertices[-1] if self.vertices else self.anchor
        if self.tool is DrawingTool.FREEHAND:
            return None
        return self.anchor

    def outline(self) -> List[Point2D]:
        """Aktuelle Kontur inkl. Live-Punkt"""
        if self.tool is DrawingTool.ROOM:
            return list(self.vertices) + [self.current]
        if self.tool is DrawingTool.FREEHAND:
            return list(self.vertices)
        return [self.anchor, self.current]


class ToolStateMachine:
    """
    Zustandsautomat für Zeichen- und Auswahl-Gesten.

    Jede öffentliche Operation liefert ein ToolResult. Ungültige Eingaben
    (NaN, inf, kaputte Geometrie) brechen die Geste ab: State IDLE,
    ERROR-Ergebnis, committeter Zustand unverändert.
    """

    def __init__(self, config: DrawingConfig, snapper: GridAngleSnapper = None, scene: Scene = None):
        self.config = config
        self.snapper = snapper or GridAngleSnapper(config)
        self.scene = scene if scene is not None else Scene()
        self._tool = DrawingTool.SELECT
        self._state = ToolState.IDLE
        self._draft: Optional[DraftShape] = None

    # ==================== PROPERTIES ====================

    @property
    def tool(self) -> DrawingTool:
        return self._tool

    @property
    def state(self) -> ToolState:
        return self._state

    @property
    def draft(self) -> Optional[DraftShape]:
        return self._draft

    @property
    def is_idle(self) -> bool:
        return self._state is ToolState.IDLE

    # ==================== PUBLIC API ====================

    def set_tool(self, tool: DrawingTool) -> ToolResult:
        """Wechselt das Werkzeug. Eine laufende Geste wird verworfen."""
        tool = DrawingTool(tool)
        message = f"Werkzeug: {tool.name}"
        if self._state is not ToolState.IDLE:
            logger.debug(f"[ToolState] Werkzeugwechsel verwirft {self._state.name}-Geste")
            self._reset()
            message += " (laufende Geste verworfen)"
        self._tool = tool
        return ToolResult.ok(message)

    def pointer_down(self, x, y) -> ToolResult:
        return self._guarded("pointer_down", self._on_down, x, y)

    def pointer_move(self, x, y) -> ToolResult:
        return self._guarded("pointer_move", self._on_move, x, y)

    def pointer_up(self, x, y) -> ToolResult:
        return self._guarded("pointer_up", self._on_up, x, y)

    def commit(self) -> ToolResult:
        """Explizite Commit-Geste (Enter / Doppelklick)"""
        return self._guarded("commit", self._on_commit)

    def cancel(self) -> ToolResult:
        """Verwirft die laufende Geste ohne Diff."""
        if self._state is ToolState.IDLE:
            return ToolResult.empty("Keine aktive Geste")
        logger.debug(f"[ToolState] {self._state.name} abgebrochen")
        self._reset()
        return ToolResult.ok("Abgebrochen")

    # ==================== HANDLER ====================

    def _guarded(self, name: str, handler: Callable, *args) -> ToolResult:
        try:
            return handler(*args)
        except (ValueError, ArithmeticError) as e:
            logger.warning(f"[ToolState] {name} abgebrochen ({self._state.name}): {e}")
            self._reset()
            return ToolResult.error(f"Ungültige Eingabe: {e}")

    def _on_down(self, x, y) -> ToolResult:
        point = Point2D(x, y)

        if not self._tool.is_draw_tool:
            if self._state is not ToolState.IDLE:
                self._reset()
            return self._begin_select(point)

        if self._state is ToolState.DRAWING and self._tool is DrawingTool.ROOM:
            # Raum-Eckpunkte entstehen erst bei pointer_up
            return self._update_drawing(point)

        if self._state is not ToolState.IDLE:
            logger.debug(f"[ToolState] Neuer Entwurf verwirft {self._state.name}-Geste")
            self._reset()

        return self._begin_drawing(point)

    def _on_move(self, x, y) -> ToolResult:
        point = Point2D(x, y)
        if self._state is ToolState.DRAWING:
            return self._update_drawing(point)
        if self._state is ToolState.DRAGGING:
            return self._update_drag(point)
        if self._state is ToolState.EDITING:
            return self._update_edit(point)
        return ToolResult.empty()

    def _on_up(self, x, y) -> ToolResult:
        point = Point2D(x, y)
        if self._state is ToolState.DRAWING:
            if self._tool is DrawingTool.ROOM:
                return self._add_room_vertex(point)
            self._update_drawing(point)
            return self._commit_drawing()
        if self._state is ToolState.DRAGGING:
            self._update_drag(point)
            return self._finish_select()
        if self._state is ToolState.EDITING:
            self._update_edit(point)
            return self._finish_select()
        return ToolResult.empty()

    def _on_commit(self) -> ToolResult:
        if self._state is ToolState.DRAWING:
            return self._commit_drawing()
        if self._state in (ToolState.DRAGGING, ToolState.EDITING):
            return self._finish_select()
        return ToolResult.empty("Keine aktive Geste")

    # ==================== DRAWING ====================

    def _begin_drawing(self, point: Point2D) -> ToolResult:
        if self._tool is DrawingTool.FREEHAND:
            snap = SnapResult.unsnapped(point)
            draft = DraftShape(self._tool, point, point, vertices=[point], snap=snap)
        else:
            snap = self.snapper.snap(point, vertices=self.scene.vertices())
            draft = DraftShape(self._tool, snap.point, snap.point, snap=snap)

        self._draft = draft
        self._state = ToolState.DRAWING
        logger.debug(f"[ToolState] IDLE -> DRAWING ({self._tool.name}) bei {draft.anchor}")
        return ToolResult.ok(preview=self._draft_preview(), snap=snap)

    def _update_drawing(self, point: Point2D) -> ToolResult:
        draft = self._draft
        if draft.tool is DrawingTool.FREEHAND:
            draft.vertices.append(point)
            draft.current = point
            draft.snap = SnapResult.unsnapped(point)
        else:
            candidates = self.scene.vertices()
            if draft.tool is DrawingTool.ROOM:
                candidates.extend(draft.vertices)
            draft.snap = self.snapper.snap(point, reference=draft.reference, vertices=candidates)
            draft.current = draft.snap.point
        return ToolResult.ok(preview=self._draft_preview(), snap=draft.snap)

    def _add_room_vertex(self, point: Point2D) -> ToolResult:
        self._update_drawing(point)
        draft = self._draft
        vertex = draft.current

        if len(draft.vertices) >= 3 and distance(vertex, draft.vertices[0]) <= self.config.proximity_tolerance:
            logger.debug("[ToolState] Raum am ersten Eckpunkt geschlossen")
            return self._commit_drawing()

        if draft.vertices and vertex.is_close(draft.vertices[-1]):
            return ToolResult.ok("Eckpunkt doppelt, ignoriert", preview=self._draft_preview(), snap=draft.snap)

        draft.vertices.append(vertex)
        return ToolResult.ok(
            f"{len(draft.vertices)} Eckpunkte",
            preview=self._draft_preview(),
            snap=draft.snap,
        )

    def _commit_drawing(self) -> ToolResult:
        tool = self._draft.tool
        if tool is DrawingTool.ROOM:
            return self._commit_room()
        if tool is DrawingTool.FREEHAND:
            return self._commit_freehand()
        return self._commit_segment()

    def _commit_segment(self) -> ToolResult:
        draft = self._draft
        if distance(draft.anchor, draft.current) < Tolerances.MIN_SEGMENT_LENGTH:
            logger.debug(f"[ToolState] {draft.tool.name} zu kurz, verworfen")
            self._reset()
            return ToolResult.empty("Segment zu kurz")

        shape = self._build_segment(draft.anchor, draft.current)
        return self._finish_add(shape, snap=draft.snap)

    def _commit_freehand(self) -> ToolResult:
        draft = self._draft
        points = clean_freehand(
            draft.vertices,
            self.config.freehand_min_distance,
            self.config.freehand_smoothing_window,
        )
        stroke = Stroke(
            points=tuple(points),
            stroke_type=StrokeType.LINE,
            color=self.config.stroke_color,
            thickness=self.config.stroke_thickness,
        )
        if len(points) < 2 or stroke.length < Tolerances.MIN_SEGMENT_LENGTH:
            logger.debug("[ToolState] Freihand-Strich zu kurz, verworfen")
            self._reset()
            return ToolResult.empty("Strich zu kurz")
        logger.debug(f"[ToolState] Freihand: {len(draft.vertices)} -> {len(points)} Punkte")
        return self._finish_add(stroke)

    def _commit_room(self) -> ToolResult:
        draft = self._draft
        vertices = list(draft.vertices)
        if len(vertices) < 3:
            return ToolResult.warning(
                f"Raum braucht mindestens 3 Eckpunkte ({len(vertices)} gesetzt)",
                preview=self._draft_preview(),
                snap=draft.snap,
            )
        if not is_valid_polygon(vertices):
            return ToolResult.warning(
                "Raum ist degeneriert (keine Fläche oder doppelte Eckpunkte)",
                preview=self._draft_preview(),
                snap=draft.snap,
            )

        room = Room(vertices=tuple(vertices))
        if not room.is_simple:
            result = self._finish_add(room)
            logger.warning(f"[ToolState] Raum {room.id} schneidet sich selbst")
            return ToolResult.warning("Raum schneidet sich selbst", diffs=result.diffs)
        return self._finish_add(room)

    def _finish_add(self, shape, snap: SnapResult = None) -> ToolResult:
        logger.info(f"[ToolState] Commit {shape!r}")
        self._reset()
        return ToolResult.ok(f"{shape.kind.value} erstellt", diffs=[SceneDiff(DiffKind.ADD, shape)], snap=snap)

    def _build_segment(self, start: Point2D, end: Point2D, shape_id: str = None):
        extra = {"id": shape_id} if shape_id else {}
        if self._draft.tool is DrawingTool.WALL:
            return Wall(
                start=start,
                end=end,
                thickness=self.config.wall_thickness,
                height=self.config.wall_height,
                **extra,
            )
        return Stroke(
            points=(start, end),
            stroke_type=_STROKE_TYPES[self._draft.tool],
            color=self.config.stroke_color,
            thickness=self.config.stroke_thickness,
            **extra,
        )

    def _draft_preview(self):
        draft = self._draft
        if draft is None:
            return None
        if draft.tool.is_two_point:
            return self._build_segment(draft.anchor, draft.current, shape_id=DRAFT_ID)
        # Raum- und Freihand-Entwürfe als offene Polylinie
        return Stroke(
            points=tuple(draft.outline()),
            stroke_type=StrokeType.LINE,
            color=self.config.stroke_color,
            thickness=self.config.stroke_thickness,
            id=DRAFT_ID,
        )

    # ==================== SELECT (DRAG / EDIT) ====================

    def _begin_select(self, point: Point2D) -> ToolResult:
        hit = self.scene.hit_test(point)
        if hit is None:
            return ToolResult.empty("Kein Treffer")

        shape = self.scene.get(hit.shape_id)
        self._draft = DraftShape(
            DrawingTool.SELECT, point, point,
            original=shape, preview=shape, vertex_index=hit.vertex_index,
        )
        self._state = ToolState.EDITING if hit.is_vertex else ToolState.DRAGGING
        logger.debug(f"[ToolState] IDLE -> {self._state.name} auf {shape!r}")
        return ToolResult.ok(preview=shape)

    def _update_drag(self, point: Point2D) -> ToolResult:
        draft = self._draft
        dx, dy = self.snapper.snap_delta(point.x - draft.anchor.x, point.y - draft.anchor.y)
        draft.current = point
        draft.preview = draft.original.translated(dx, dy)
        return ToolResult.ok(preview=draft.preview)

    def _update_edit(self, point: Point2D) -> ToolResult:
        draft = self._draft
        original = draft.original
        index = draft.vertex_index
        reference = self._edit_neighbour(original, index)
        draft.snap = self.snapper.snap(
            point,
            reference=reference,
            vertices=self.scene.vertices(exclude_id=original.id),
        )
        draft.current = draft.snap.point
        draft.preview = original.with_vertex(index, draft.snap.point)
        return ToolResult.ok(preview=draft.preview, snap=draft.snap)

    @staticmethod
    def _edit_neighbour(shape, index: int) -> Optional[Point2D]:
        vertices = shape.vertices
        if len(vertices) < 2:
            return None
        if shape.kind is ShapeKind.ROOM:
            return vertices[index - 1]
        return vertices[index - 1] if index > 0 else vertices[1]

    def _finish_select(self) -> ToolResult:
        draft = self._draft
        original, preview = draft.original, draft.preview
        self._reset()
        if preview is None or preview.to_dict() == original.to_dict():
            return ToolResult.empty("Keine Änderung")

        logger.info(f"[ToolState] Modify {preview!r}")
        diffs = [SceneDiff(DiffKind.MODIFY, preview, previous=original)]
        if preview.kind is ShapeKind.ROOM and not preview.is_simple:
            return ToolResult.warning("Raum schneidet sich selbst", diffs=diffs)
        return ToolResult.ok("Geändert", diffs=diffs)

    # ==================== INTERN ====================

    def _reset(self):
        self._draft = None
        self._state = ToolState.IDLE
