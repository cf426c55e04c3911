"""
FloorSketch Sketcher - Grundriss-Elemente
Striche, Wände und Räume als unveränderliche Werte mit abgeleiteten Maßen
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple
import uuid

from loguru import logger

from .geometry import (
    Point2D, angle_degrees, area, centroid, distance, midpoint, perimeter,
)


def _new_id() -> str:
    return str(uuid.uuid4())[:8]


class StrokeType(Enum):
    """Typ-Tag eines Strichs"""
    LINE = "line"
    WALL = "wall"
    DOOR = "door"
    WINDOW = "window"
    FURNITURE = "furniture"
    ANNOTATION = "annotation"


class RoomType(Enum):
    """Geschlossene Aufzählung der Raumtypen"""
    LIVING = "living"
    BEDROOM = "bedroom"
    KITCHEN = "kitchen"
    BATHROOM = "bathroom"
    OFFICE = "office"
    OTHER = "other"


class ShapeKind(Enum):
    STROKE = "stroke"
    WALL = "wall"
    ROOM = "room"


@dataclass(frozen=True)
class Stroke:
    """Gezeichneter Strich (Linie, Tür, Fenster, Möbel, Beschriftung, Freihand)"""
    points: Tuple[Point2D, ...]
    stroke_type: StrokeType = StrokeType.LINE
    color: str = "#000000"
    thickness: float = 2.0
    id: str = field(default_factory=_new_id)

    kind = ShapeKind.STROKE

    def __post_init__(self):
        object.__setattr__(self, "points", tuple(Point2D.of(p) for p in self.points))
        if not isinstance(self.stroke_type, StrokeType):
            object.__setattr__(self, "stroke_type", StrokeType(self.stroke_type))

    @property
    def vertices(self) -> Tuple[Point2D, ...]:
        return self.points

    @property
    def length(self) -> float:
        """Länge entlang aller Punkte (offen)"""
        return sum(distance(a, b) for a, b in zip(self.points, self.points[1:]))

    def translated(self, dx: float, dy: float) -> "Stroke":
        return replace(self, points=tuple(p.translated(dx, dy) for p in self.points))

    def with_vertex(self, index: int, point: Point2D) -> "Stroke":
        points = list(self.points)
        points[index] = point
        return replace(self, points=tuple(points))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "points": [p.as_tuple() for p in self.points],
            "type": self.stroke_type.value,
            "color": self.color,
            "thickness": self.thickness,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Stroke":
        return cls(
            points=tuple(Point2D(x, y) for x, y in data["points"]),
            stroke_type=StrokeType(data.get("type", StrokeType.LINE.value)),
            color=data.get("color", "#000000"),
            thickness=float(data.get("thickness", 2.0)),
            id=data["id"],
        )

    def __repr__(self):
        return f"Stroke({self.id}, {self.stroke_type.value}, {len(self.points)}pts)"


@dataclass(frozen=True)
class Wall:
    """
    Wand zwischen zwei Punkten.

    Länge und Winkel werden immer berechnet, nie gespeichert (kein Drift).
    Zugehörige Räume stehen im RoomWallIndex der Szene, nicht in der Wand.
    """
    start: Point2D
    end: Point2D
    thickness: float = 10.0
    height: Optional[float] = None
    id: str = field(default_factory=_new_id)

    kind = ShapeKind.WALL

    def __post_init__(self):
        object.__setattr__(self, "start", Point2D.of(self.start))
        object.__setattr__(self, "end", Point2D.of(self.end))

    @property
    def length(self) -> float:
        return distance(self.start, self.end)

    @property
    def angle(self) -> float:
        """Winkel zur X-Achse in Grad [0, 360)"""
        return angle_degrees(self.start, self.end)

    @property
    def midpoint(self) -> Point2D:
        return midpoint(self.start, self.end)

    @property
    def vertices(self) -> Tuple[Point2D, ...]:
        return (self.start, self.end)

    def translated(self, dx: float, dy: float) -> "Wall":
        return replace(self, start=self.start.translated(dx, dy), end=self.end.translated(dx, dy))

    def with_vertex(self, index: int, point: Point2D) -> "Wall":
        if index == 0:
            return replace(self, start=point)
        if index == 1:
            return replace(self, end=point)
        raise IndexError(f"Wall hat nur 2 Eckpunkte, nicht {index}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "start": self.start.as_tuple(),
            "end": self.end.as_tuple(),
            "thickness": self.thickness,
            "height": self.height,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Wall":
        height = data.get("height")
        return cls(
            start=Point2D(*data["start"]),
            end=Point2D(*data["end"]),
            thickness=float(data.get("thickness", 10.0)),
            height=float(height) if height is not None else None,
            id=data["id"],
        )

    def __repr__(self):
        return f"Wall({self.id}, {self.start} -> {self.end})"


@dataclass(frozen=True)
class Room:
    """
    Raum als geschlossenes Polygon (mindestens 3 Eckpunkte).

    area, perimeter und center sind abgeleitet (Zeichen-Einheiten);
    Umrechnung in m² übernimmt sketcher.measurement.
    """
    vertices: Tuple[Point2D, ...]
    room_type: RoomType = RoomType.OTHER
    name: str = ""
    id: str = field(default_factory=_new_id)

    kind = ShapeKind.ROOM

    def __post_init__(self):
        vertices = tuple(Point2D.of(p) for p in self.vertices)
        if len(vertices) < 3:
            raise ValueError(f"Room braucht mindestens 3 Eckpunkte, nicht {len(vertices)}")
        object.__setattr__(self, "vertices", vertices)
        if not isinstance(self.room_type, RoomType):
            object.__setattr__(self, "room_type", RoomType(self.room_type))

    @property
    def area(self) -> float:
        return area(self.vertices)

    @property
    def perimeter(self) -> float:
        return perimeter(self.vertices)

    @property
    def center(self) -> Point2D:
        return centroid(self.vertices)

    @property
    def is_simple(self) -> bool:
        """False wenn sich die Kontur selbst schneidet (shapely)."""
        from shapely.geometry import Polygon as ShapelyPolygon

        try:
            return bool(ShapelyPolygon([p.as_tuple() for p in self.vertices]).is_valid)
        except ValueError as e:
            logger.debug(f"Shapely-Prüfung für Raum {self.id} fehlgeschlagen: {e}")
            return False

    def translated(self, dx: float, dy: float) -> "Room":
        return replace(self, vertices=tuple(p.translated(dx, dy) for p in self.vertices))

    def with_vertex(self, index: int, point: Point2D) -> "Room":
        vertices = list(self.vertices)
        vertices[index] = point
        return replace(self, vertices=tuple(vertices))

    def with_type(self, room_type: RoomType) -> "Room":
        return replace(self, room_type=room_type)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "vertices": [p.as_tuple() for p in self.vertices],
            "type": self.room_type.value,
            "name": self.name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Room":
        return cls(
            vertices=tuple(Point2D(x, y) for x, y in data["vertices"]),
            room_type=RoomType(data.get("type", RoomType.OTHER.value)),
            name=data.get("name", ""),
            id=data["id"],
        )

    def __repr__(self):
        return f"Room({self.id}, {self.room_type.value}, {len(self.vertices)} Ecken)"


def shape_from_dict(kind: str, data: Dict[str, Any]):
    """Factory für die Deserialisierung nach ShapeKind-Name."""
    factories = {
        ShapeKind.STROKE.value: Stroke.from_dict,
        ShapeKind.WALL.value: Wall.from_dict,
        ShapeKind.ROOM.value: Room.from_dict,
    }
    try:
        factory = factories[kind]
    except KeyError:
        raise ValueError(f"Unbekannter Shape-Typ: {kind!r}") from None
    return factory(data)
