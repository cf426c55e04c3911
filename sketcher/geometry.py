"""
FloorSketch Sketcher - Geometrie-Engine
Punkte und reine Funktionen über Punktfolgen (Fläche, Umfang, Schwerpunkt, Punkt-in-Polygon)
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple
import math

from config.tolerances import Tolerances


class InvalidPointError(ValueError):
    """Raised when a coordinate is not a finite number (NaN, inf, None, garbage)."""


def _coerce_coordinate(value, axis: str) -> float:
    # NumPy-Skalare: .item() nur nutzen, wenn wirklich aufrufbar
    item_attr = getattr(value, "item", None)
    if callable(item_attr):
        value = item_attr()
    if isinstance(value, bool):
        raise InvalidPointError(f"{axis}-Koordinate ist kein Zahlenwert: {value!r}")
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise InvalidPointError(f"{axis}-Koordinate ist kein Zahlenwert: {value!r}") from None
    if not math.isfinite(result):
        raise InvalidPointError(f"{axis}-Koordinate ist nicht endlich: {result!r}")
    return result


@dataclass(frozen=True, eq=False)
class Point2D:
    """2D-Punkt - unveränderlicher Wert, Gleichheit mit Toleranz"""
    x: float = 0.0
    y: float = 0.0

    def __post_init__(self):
        """
        FIREWALL: Wandelt alles sofort in native Python-Floats um und
        lehnt NaN/inf ab, bevor sie in Snapping oder Geometrie gelangen.
        """
        object.__setattr__(self, "x", _coerce_coordinate(self.x, "x"))
        object.__setattr__(self, "y", _coerce_coordinate(self.y, "y"))

    @classmethod
    def of(cls, value) -> "Point2D":
        """Accepts a Point2D, an (x, y) pair or anything with .x/.y attributes."""
        if isinstance(value, Point2D):
            return value
        if hasattr(value, "x") and hasattr(value, "y"):
            x, y = value.x, value.y
            # QPointF liefert x()/y() als Methoden
            return cls(x() if callable(x) else x, y() if callable(y) else y)
        try:
            x, y = value
        except (TypeError, ValueError):
            raise InvalidPointError(f"Kein Punkt: {value!r}") from None
        return cls(x, y)

    def __eq__(self, other):
        if not isinstance(other, Point2D):
            return NotImplemented
        return self.is_close(other)

    __hash__ = None

    def is_close(self, other: "Point2D", tolerance: float = Tolerances.COMPARE_POINT) -> bool:
        return abs(self.x - other.x) <= tolerance and abs(self.y - other.y) <= tolerance

    def distance_to(self, other: "Point2D") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def midpoint(self, other: "Point2D") -> "Point2D":
        return Point2D((self.x + other.x) / 2, (self.y + other.y) / 2)

    def translated(self, dx: float, dy: float) -> "Point2D":
        return Point2D(self.x + dx, self.y + dy)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def to_dict(self) -> dict:
        """Serialisiert zu Dictionary für JSON."""
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict) -> "Point2D":
        return cls(data["x"], data["y"])

    def __repr__(self):
        return f"P({self.x:.2f}, {self.y:.2f})"


def points_from_tuples(coords: Iterable[Tuple[float, float]]) -> List[Point2D]:
    """Convenience: [(x, y), ...] -> [Point2D, ...]"""
    return [Point2D(x, y) for x, y in coords]


# === Basis-Funktionen ===

def distance(a: Point2D, b: Point2D) -> float:
    """Euklidischer Abstand"""
    return math.hypot(b.x - a.x, b.y - a.y)


def midpoint(a: Point2D, b: Point2D) -> Point2D:
    """Komponentenweiser Mittelwert"""
    return Point2D((a.x + b.x) / 2, (a.y + b.y) / 2)


def angle_degrees(start: Point2D, end: Point2D) -> float:
    """Winkel start->end zur X-Achse in Grad, normiert auf [0, 360)"""
    angle = math.degrees(math.atan2(end.y - start.y, end.x - start.x)) % 360.0
    # -0.0 und Rundungsreste knapp unter 360 auf 0 abbilden
    if angle >= 360.0 - Tolerances.COMPARE_ANGLE:
        return 0.0
    return angle + 0.0


def translate(point: Point2D, dx: float, dy: float) -> Point2D:
    return Point2D(point.x + dx, point.y + dy)


# === Polygon-Funktionen ===

def area(vertices: Sequence[Point2D]) -> float:
    """
    Fläche nach der Gaußschen Trapezformel (Shoelace).

    Unabhängig von der Umlaufrichtung und von zyklischer Rotation der Liste.
    Weniger als 3 Punkte: 0 (Teil-Entwürfe sind der Normalfall, kein Fehler).
    """
    n = len(vertices)
    if n < 3:
        return 0.0
    total = 0.0
    for i in range(n):
        p = vertices[i]
        q = vertices[(i + 1) % n]
        total += p.x * q.y - q.x * p.y
    return abs(total) * 0.5


def perimeter(vertices: Sequence[Point2D]) -> float:
    """Umfang des geschlossenen Polygons (letzter Punkt verbindet zum ersten)."""
    n = len(vertices)
    if n < 2:
        return 0.0
    return sum(distance(vertices[i], vertices[(i + 1) % n]) for i in range(n))


def centroid(vertices: Sequence[Point2D]) -> Point2D:
    """
    Arithmetisches Mittel der Eckpunkte.

    Nicht flächengewichtet: für nahezu konvexe Räume ausreichend, bei stark
    konkaven Räumen kann der Punkt außerhalb der Fläche liegen.
    """
    if not vertices:
        return Point2D(0.0, 0.0)
    n = len(vertices)
    return Point2D(sum(p.x for p in vertices) / n, sum(p.y for p in vertices) / n)


def point_in_polygon(point: Point2D, vertices: Sequence[Point2D]) -> bool:
    """
    Even-Odd Ray-Casting (Strahl in +x Richtung).

    Randkonvention halb-offen: eine Kante zählt, wenn genau einer ihrer
    Endpunkte echt oberhalb von point.y liegt, und nur Schnitte echt rechts
    vom Punkt zählen. Bei achsparallelen Polygonen liegen Punkte auf der
    linken/unteren Kante innen, auf der rechten/oberen Kante außen.
    """
    n = len(vertices)
    if n < 3:
        return False
    inside = False
    j = n - 1
    for i in range(n):
        xi, yi = vertices[i].x, vertices[i].y
        xj, yj = vertices[j].x, vertices[j].y
        if (yi > point.y) != (yj > point.y):
            x_cross = (xj - xi) * (point.y - yi) / (yj - yi) + xi
            if point.x < x_cross:
                inside = not inside
        j = i
    return inside


def bounding_box(points: Sequence[Point2D]) -> Tuple[Point2D, Point2D]:
    """(min, max) Ecke; leere Liste ergibt zweimal den Ursprung."""
    if not points:
        return Point2D(0.0, 0.0), Point2D(0.0, 0.0)
    xs = [p.x for p in points]
    ys = [p.y for p in points]
    return Point2D(min(xs), min(ys)), Point2D(max(xs), max(ys))


def distance_to_segment(p: Point2D, a: Point2D, b: Point2D) -> float:
    """Kürzester Abstand von p zur Strecke a-b"""
    dx = b.x - a.x
    dy = b.y - a.y
    length_sq = dx * dx + dy * dy
    if length_sq < Tolerances.EPSILON_MATH:
        return distance(p, a)
    t = max(0.0, min(1.0, ((p.x - a.x) * dx + (p.y - a.y) * dy) / length_sq))
    return math.hypot(a.x + t * dx - p.x, a.y + t * dy - p.y)


def distance_to_polyline(p: Point2D, points: Sequence[Point2D], closed: bool = False) -> float:
    """Kürzester Abstand zu einer Polylinie (optional geschlossen)"""
    if not points:
        return math.inf
    if len(points) == 1:
        return distance(p, points[0])
    segments = list(zip(points, points[1:]))
    if closed and len(points) > 2:
        segments.append((points[-1], points[0]))
    return min(distance_to_segment(p, a, b) for a, b in segments)


def nearest_point(p: Point2D, candidates: Iterable[Point2D]) -> Optional[Tuple[Point2D, float]]:
    """Nächster Kandidat und sein Abstand, oder None"""
    best = None
    best_dist = math.inf
    for c in candidates:
        d = distance(p, c)
        if d < best_dist:
            best, best_dist = c, d
    if best is None:
        return None
    return best, best_dist


def is_valid_polygon(vertices: Sequence[Point2D]) -> bool:
    """
    Mindestens 3 Punkte, Fläche > 0, keine doppelten aufeinanderfolgenden Punkte.
    Selbstüberschneidungen prüft Room.is_simple (shapely).
    """
    n = len(vertices)
    if n < 3:
        return False
    if area(vertices) <= Tolerances.EPSILON_MATH:
        return False
    for i in range(n):
        if vertices[i].is_close(vertices[(i + 1) % n]):
            return False
    return True
