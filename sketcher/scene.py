"""
FloorSketch Sketcher - Szene
Committete Geometrie, deklarative Diffs, Raum↔Wand-Index und Snapshots
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Union
import json
import time

from loguru import logger

from config.tolerances import Tolerances
from config.version import SCENE_FORMAT_VERSION
from .geometry import Point2D, distance, distance_to_polyline, point_in_polygon
from .shapes import Room, ShapeKind, Stroke, Wall, shape_from_dict

Shape = Union[Stroke, Wall, Room]


class SnapshotError(ValueError):
    """Raised when a snapshot blob cannot be parsed back into a Scene."""


class DiffKind(Enum):
    ADD = "add"
    REMOVE = "remove"
    MODIFY = "modify"


@dataclass(frozen=True)
class SceneDiff:
    """
    Deklarative Änderung an genau einem Shape.

    ADD/REMOVE tragen das betroffene Shape, MODIFY zusätzlich den Vorzustand
    in ``previous`` (für Rendering-Adapter, die alt gegen neu tauschen).
    """
    kind: DiffKind
    shape: Shape
    previous: Optional[Shape] = None

    @property
    def shape_id(self) -> str:
        return self.shape.id

    def __repr__(self):
        return f"SceneDiff({self.kind.value}, {self.shape.id})"


@dataclass(frozen=True)
class Snapshot:
    """Vollständig serialisierte Szene. Gleichheit nur über den Blob."""
    blob: str
    label: str = field(default="", compare=False)
    created_at: float = field(default_factory=time.time, compare=False)

    def __repr__(self):
        return f"Snapshot({self.label!r}, {len(self.blob)} bytes)"


@dataclass(frozen=True)
class HitResult:
    shape_id: str
    vertex_index: Optional[int] = None

    @property
    def is_vertex(self) -> bool:
        return self.vertex_index is not None


class RoomWallIndex:
    """
    Bidirektionaler Index Raum-ID ↔ Wand-IDs.

    Ersetzt Rückverweise in den Shapes selbst: Wände und Räume bleiben
    unveränderliche Werte, die Beziehung lebt nur hier.
    """

    def __init__(self):
        self._walls_by_room: Dict[str, set] = {}
        self._rooms_by_wall: Dict[str, set] = {}

    def link(self, room_id: str, wall_id: str):
        self._walls_by_room.setdefault(room_id, set()).add(wall_id)
        self._rooms_by_wall.setdefault(wall_id, set()).add(room_id)

    def unlink_room(self, room_id: str):
        for wall_id in self._walls_by_room.pop(room_id, set()):
            rooms = self._rooms_by_wall.get(wall_id)
            if rooms is not None:
                rooms.discard(room_id)
                if not rooms:
                    del self._rooms_by_wall[wall_id]

    def unlink_wall(self, wall_id: str):
        for room_id in self._rooms_by_wall.pop(wall_id, set()):
            walls = self._walls_by_room.get(room_id)
            if walls is not None:
                walls.discard(wall_id)
                if not walls:
                    del self._walls_by_room[room_id]

    def rooms_for_wall(self, wall_id: str) -> List[str]:
        return sorted(self._rooms_by_wall.get(wall_id, ()))

    def walls_for_room(self, room_id: str) -> List[str]:
        return sorted(self._walls_by_room.get(room_id, ()))

    def __len__(self):
        return sum(len(walls) for walls in self._walls_by_room.values())

    def to_dict(self) -> Dict[str, List[str]]:
        return {room_id: sorted(walls) for room_id, walls in sorted(self._walls_by_room.items())}

    @classmethod
    def from_dict(cls, data: Dict[str, List[str]]) -> "RoomWallIndex":
        index = cls()
        for room_id, wall_ids in data.items():
            for wall_id in wall_ids:
                index.link(room_id, wall_id)
        return index


def wall_on_room_boundary(wall: Wall, room: Room, tolerance: float = Tolerances.WALL_ROOM_LINK) -> bool:
    """Beide Wand-Endpunkte liegen (mit Toleranz) auf der Raum-Kontur."""
    return (distance_to_polyline(wall.start, room.vertices, closed=True) <= tolerance
            and distance_to_polyline(wall.end, room.vertices, closed=True) <= tolerance)


class Scene:
    """
    Committeter Zustand der Zeichnung.

    Shapes liegen in Einfügereihenfolge in einem Dict (spätere liegen oben).
    Nur die DrawingSession verändert eine Szene, und zwar ausschließlich über
    ``apply(diff)``.
    """

    def __init__(self):
        self._shapes: Dict[str, Shape] = {}
        self.index = RoomWallIndex()

    # === Zugriff ===

    def get(self, shape_id: str) -> Optional[Shape]:
        return self._shapes.get(shape_id)

    def shapes(self) -> List[Shape]:
        return list(self._shapes.values())

    @property
    def strokes(self) -> List[Stroke]:
        return [s for s in self._shapes.values() if s.kind is ShapeKind.STROKE]

    @property
    def walls(self) -> List[Wall]:
        return [s for s in self._shapes.values() if s.kind is ShapeKind.WALL]

    @property
    def rooms(self) -> List[Room]:
        return [s for s in self._shapes.values() if s.kind is ShapeKind.ROOM]

    def __contains__(self, shape_id) -> bool:
        return shape_id in self._shapes

    def __len__(self):
        return len(self._shapes)

    def __iter__(self) -> Iterator[Shape]:
        return iter(list(self._shapes.values()))

    def vertices(self, exclude_id: Optional[str] = None) -> List[Point2D]:
        """Alle Eckpunkte aller Shapes (Kandidaten für Vertex-Snap)"""
        result = []
        for shape in self._shapes.values():
            if shape.id != exclude_id:
                result.extend(shape.vertices)
        return result

    def rooms_for_wall(self, wall_id: str) -> List[str]:
        return self.index.rooms_for_wall(wall_id)

    def walls_for_room(self, room_id: str) -> List[str]:
        return self.index.walls_for_room(room_id)

    # === Mutation ===

    def apply(self, diff: SceneDiff):
        """
        Wendet einen Diff an.

        Raises:
            ValueError: ADD mit bereits vergebener ID, MODIFY mit anderem Shape-Typ
            KeyError: REMOVE/MODIFY einer unbekannten ID
        """
        shape = diff.shape
        if diff.kind is DiffKind.ADD:
            if shape.id in self._shapes:
                raise ValueError(f"Shape {shape.id} existiert bereits")
            self._shapes[shape.id] = shape
            self._relink(shape)
        elif diff.kind is DiffKind.REMOVE:
            if shape.id not in self._shapes:
                raise KeyError(shape.id)
            del self._shapes[shape.id]
            self._unlink(shape)
        elif diff.kind is DiffKind.MODIFY:
            existing = self._shapes.get(shape.id)
            if existing is None:
                raise KeyError(shape.id)
            if existing.kind is not shape.kind:
                raise ValueError(f"MODIFY ändert Shape-Typ von {shape.id}: {existing.kind.value} -> {shape.kind.value}")
            # Zuweisung an bestehenden Key behält die Z-Reihenfolge
            self._shapes[shape.id] = shape
            self._relink(shape)
        else:
            raise ValueError(f"Unbekannter Diff: {diff.kind!r}")

    def apply_all(self, diffs):
        for diff in diffs:
            self.apply(diff)

    def _unlink(self, shape: Shape):
        if shape.kind is ShapeKind.ROOM:
            self.index.unlink_room(shape.id)
        elif shape.kind is ShapeKind.WALL:
            self.index.unlink_wall(shape.id)

    def _relink(self, shape: Shape):
        self._unlink(shape)
        if shape.kind is ShapeKind.ROOM:
            for wall in self.walls:
                if wall_on_room_boundary(wall, shape):
                    self.index.link(shape.id, wall.id)
        elif shape.kind is ShapeKind.WALL:
            for room in self.rooms:
                if wall_on_room_boundary(shape, room):
                    self.index.link(room.id, shape.id)

    # === Vergleich ===

    def diff(self, other: "Scene") -> List[SceneDiff]:
        """Diffs, die diese Szene in `other` überführen (REMOVE, MODIFY, ADD)."""
        removes, modifies, adds = [], [], []
        for shape_id, shape in self._shapes.items():
            target = other.get(shape_id)
            if target is None:
                removes.append(SceneDiff(DiffKind.REMOVE, shape))
            elif target.to_dict() != shape.to_dict():
                modifies.append(SceneDiff(DiffKind.MODIFY, target, previous=shape))
        for shape in other.shapes():
            if shape.id not in self._shapes:
                adds.append(SceneDiff(DiffKind.ADD, shape))
        return removes + modifies + adds

    # === Hit-Test ===

    def hit_test(self, point: Point2D, tolerance: float = Tolerances.HIT_STROKE_PX,
                 vertex_tolerance: float = Tolerances.HIT_VERTEX_PX) -> Optional[HitResult]:
        """
        Findet das Shape unter `point`.

        Reihenfolge: Eckpunkt, dann Strich/Wand-Nähe (tolerance plus halbe
        Strichstärke), dann Rauminneres. Innerhalb einer Stufe gewinnt das
        oberste (zuletzt eingefügte) Shape.
        """
        ordered = list(reversed(self._shapes.values()))

        best = None
        best_dist = vertex_tolerance
        for shape in ordered:
            for i, v in enumerate(shape.vertices):
                d = distance(point, v)
                if d <= best_dist and (best is None or d < best_dist):
                    best, best_dist = HitResult(shape.id, i), d
        if best is not None:
            return best

        for shape in ordered:
            if shape.kind is ShapeKind.ROOM:
                continue
            if distance_to_polyline(point, shape.vertices) <= tolerance + shape.thickness / 2:
                return HitResult(shape.id)

        for shape in ordered:
            if shape.kind is ShapeKind.ROOM and point_in_polygon(point, shape.vertices):
                return HitResult(shape.id)
        return None

    # === Serialisierung ===

    def to_dict(self) -> Dict[str, Any]:
        return {
            "format": SCENE_FORMAT_VERSION,
            "shapes": [{"kind": s.kind.value, **s.to_dict()} for s in self._shapes.values()],
            "room_walls": self.index.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Scene":
        scene = cls()
        for entry in data.get("shapes", []):
            entry = dict(entry)
            kind = entry.pop("kind")
            shape = shape_from_dict(kind, entry)
            if shape.id in scene._shapes:
                raise ValueError(f"Doppelte Shape-ID {shape.id}")
            scene._shapes[shape.id] = shape
        scene.index = RoomWallIndex.from_dict(data.get("room_walls", {}))
        return scene

    def to_blob(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))

    @classmethod
    def from_blob(cls, blob: str) -> "Scene":
        """
        Parst einen Snapshot-Blob.

        Raises:
            SnapshotError: Blob ist kein gültiges JSON, hat ein fremdes Format
                oder enthält ungültige Shapes.
        """
        try:
            data = json.loads(blob)
        except (TypeError, ValueError) as e:
            raise SnapshotError(f"Snapshot ist kein gültiges JSON: {e}") from e
        if not isinstance(data, dict):
            raise SnapshotError("Snapshot ist kein JSON-Objekt")
        version = data.get("format")
        if version != SCENE_FORMAT_VERSION:
            raise SnapshotError(f"Unbekanntes Szenen-Format: {version!r}")
        try:
            return cls.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise SnapshotError(f"Snapshot enthält ungültige Shapes: {e!r}") from e

    def snapshot(self, label: str = "") -> Snapshot:
        return Snapshot(self.to_blob(), label=label)

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "Scene":
        return cls.from_blob(snapshot.blob)

    def copy(self) -> "Scene":
        scene = Scene()
        scene._shapes = dict(self._shapes)
        scene.index = RoomWallIndex.from_dict(self.index.to_dict())
        return scene

    def __repr__(self):
        return f"Scene({len(self.strokes)} strokes, {len(self.walls)} walls, {len(self.rooms)} rooms)"


def log_scene(scene: Scene, title: str = "Scene"):
    """Debug-Ausgabe des Szeneninhalts"""
    logger.debug(f"[{title}] {scene!r}")
    for shape in scene:
        logger.debug(f"  {shape!r}")
