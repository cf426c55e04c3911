"""
FloorSketch - Grid/Angle/Vertex Snapper

Passt rohe Pointer-Koordinaten an die aktiven Constraints an.

Reihenfolge:
1. Vertex-Snap (magnetisch): liegt ein bestehender Eckpunkt innerhalb der
   proximity_tolerance, gewinnt er komplett, Grid/Winkel werden nicht
   zusätzlich angewendet.
2. Winkel-Snap relativ zum Referenzpunkt (Anker bzw. letzter Raum-Eckpunkt)
3. Grid-Snap auf das (evtl. winkelkorrigierte) Ergebnis
"""

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from loguru import logger

from config.drawing_config import DrawingConfig
from config.tolerances import Tolerances
from sketcher.geometry import Point2D, angle_degrees, distance, nearest_point
from .tools import SnapKind


@dataclass(frozen=True)
class SnapResult:
    """Ergebnis eines Snaps. Transient, wird nie persistiert."""
    point: Point2D
    snapped: bool
    kind: SnapKind
    raw: Point2D
    angle: Optional[float] = None  # Winkel Referenz -> point in Grad, falls Referenz vorhanden

    @classmethod
    def unsnapped(cls, raw: Point2D, angle: Optional[float] = None) -> "SnapResult":
        return cls(raw, False, SnapKind.NONE, raw, angle)


def _clean(value: float) -> float:
    # cos(90°) = 6e-17 usw. auf exakt 0 ziehen
    return 0.0 if abs(value) < Tolerances.EPSILON_MATH else value


class GridAngleSnapper:
    """
    Snapping-Engine für die Zeichen-Session.

    Zustandslos bis auf die Konfiguration; dasselbe SnapResult wird von der
    Tool-State-Machine (Commit) und dem MeasurementOverlay (Anzeige) genutzt.
    """

    def __init__(self, config: DrawingConfig):
        self.config = config

    # ==================== PUBLIC ====================

    def snap(self, raw, reference=None, vertices: Iterable[Point2D] = ()) -> SnapResult:
        """
        Snappt einen rohen Punkt.

        Args:
            raw: Roher Pointer-Punkt (Point2D, (x, y) oder QPointF)
            reference: Startpunkt für Winkel-Snap und Winkelangabe
            vertices: Kandidaten für Vertex-Snap

        Raises:
            InvalidPointError: raw/reference enthält NaN, inf oder keinen Zahlenwert
        """
        raw = Point2D.of(raw)
        reference = Point2D.of(reference) if reference is not None else None

        vertex_hit = self._snap_to_vertex(raw, vertices)
        if vertex_hit is not None:
            logger.debug(f"[Snapper] Vertex-Snap {raw} -> {vertex_hit}")
            return SnapResult(vertex_hit, True, SnapKind.VERTEX, raw, self._angle_from(reference, vertex_hit))

        point = raw
        angle_changed = False
        if self.config.angle_snap and reference is not None and self.config.snap_angles:
            if distance(reference, raw) > Tolerances.SNAP_EPSILON:
                chosen = self.nearest_snap_angle(angle_degrees(reference, raw))
                point = self._project(reference, raw, chosen)
                angle_changed = not point.is_close(raw, Tolerances.SNAP_EPSILON)

        grid_changed = False
        if self.config.grid_snap:
            gridded = self.snap_to_grid(point)
            grid_changed = not gridded.is_close(point, Tolerances.SNAP_EPSILON)
            point = gridded

        if angle_changed and grid_changed:
            kind = SnapKind.BOTH
        elif angle_changed:
            kind = SnapKind.ANGLE
        elif grid_changed:
            kind = SnapKind.GRID
        else:
            kind = SnapKind.NONE

        return SnapResult(point, kind is not SnapKind.NONE, kind, raw, self._angle_from(reference, point))

    def snap_to_grid(self, point: Point2D) -> Point2D:
        """Rundet auf das nächste Grid-Vielfache (idempotent)."""
        return Point2D(self._grid_coord(point.x), self._grid_coord(point.y))

    def snap_delta(self, dx: float, dy: float) -> Tuple[float, float]:
        """Verschiebungsvektor beim Ziehen: Grid-Snap ohne Winkel"""
        if not self.config.grid_snap:
            return dx, dy
        return self._grid_coord(dx), self._grid_coord(dy)

    def candidate_angles(self) -> Tuple[float, ...]:
        """snap_angles plus Gegenrichtungen, normiert auf [0, 360), sortiert"""
        candidates = set()
        for a in self.config.snap_angles:
            candidates.add(a % 360.0)
            candidates.add((a + 180.0) % 360.0)
        return tuple(sorted(candidates))

    def nearest_snap_angle(self, angle: float) -> float:
        """
        Nächster Kandidatenwinkel (zirkulärer Abstand).
        Bei Gleichstand gewinnt der kleinere Winkelwert.
        """
        best = None
        best_diff = math.inf
        for candidate in self.candidate_angles():
            diff = abs(angle - candidate) % 360.0
            diff = min(diff, 360.0 - diff)
            # Kandidaten sind aufsteigend sortiert: nur echt kleinere Abstände übernehmen
            if diff < best_diff - Tolerances.COMPARE_ANGLE:
                best, best_diff = candidate, diff
        return best

    # ==================== INTERN ====================

    def _grid_coord(self, value: float) -> float:
        size = self.config.grid_size
        snapped = round(value / size) * size
        if abs(value - snapped) <= Tolerances.SNAP_EPSILON:
            return value
        return snapped + 0.0

    def _project(self, reference: Point2D, raw: Point2D, angle: float) -> Point2D:
        rad = math.radians(angle)
        ux, uy = _clean(math.cos(rad)), _clean(math.sin(rad))
        vx, vy = raw.x - reference.x, raw.y - reference.y
        if self.config.angle_snap_preserve_length:
            t = math.hypot(vx, vy)
        else:
            t = max(0.0, vx * ux + vy * uy)
        return Point2D(reference.x + t * ux, reference.y + t * uy)

    def _snap_to_vertex(self, raw: Point2D, vertices: Iterable[Point2D]) -> Optional[Point2D]:
        if not self.config.vertex_snap:
            return None
        hit = nearest_point(raw, vertices)
        if hit is None:
            return None
        vertex, dist = hit
        if dist <= self.config.proximity_tolerance:
            return vertex
        return None

    @staticmethod
    def _angle_from(reference: Optional[Point2D], point: Point2D) -> Optional[float]:
        if reference is None or distance(reference, point) <= Tolerances.SNAP_EPSILON:
            return None
        return angle_degrees(reference, point)
