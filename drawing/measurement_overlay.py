"""
FloorSketch - Live Measurement Overlay
Tooltip-Daten (Länge, Winkel, Fläche) für den aktuellen Entwurf
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from config.drawing_config import DrawingConfig, Unit
from sketcher.geometry import Point2D, angle_degrees, area, distance
from sketcher.measurement import area_px_to_unit, px_to_unit
from .snapper import SnapResult
from .tools import SnapKind


@dataclass(frozen=True)
class LiveMeasurement:
    distance: float               # in `unit`
    angle: Optional[float]        # Grad [0, 360)
    unit: Unit
    snapped: bool
    snap_kind: SnapKind
    area: Optional[float] = None  # in `unit`², nur für Raum-Entwürfe
    text: str = ""


class MeasurementOverlay:
    """
    Dünner Konsument des SnapResults: rechnet nur um und formatiert.
    Snapping selbst passiert ausschließlich im GridAngleSnapper.
    """

    def __init__(self, config: DrawingConfig):
        self.config = config
        self._current: Optional[LiveMeasurement] = None

    @property
    def current(self) -> Optional[LiveMeasurement]:
        return self._current

    def update(self, anchor: Optional[Point2D], snap: SnapResult,
               vertices: Sequence[Point2D] = None) -> LiveMeasurement:
        point = snap.point
        if anchor is None:
            length_px, angle = 0.0, None
        else:
            length_px = distance(anchor, point)
            angle = snap.angle
            if angle is None and length_px > 0:
                angle = angle_degrees(anchor, point)

        room_area = None
        if vertices is not None and len(vertices) >= 3:
            room_area = area_px_to_unit(area(vertices), self.config)

        unit = self.config.unit
        length = px_to_unit(length_px, self.config)
        self._current = LiveMeasurement(
            distance=length,
            angle=angle,
            unit=unit,
            snapped=snap.snapped,
            snap_kind=snap.kind,
            area=room_area,
            text=self._format(length, angle, room_area, unit),
        )
        return self._current

    def clear(self):
        self._current = None

    @staticmethod
    def _format(length: float, angle: Optional[float], room_area: Optional[float], unit: Unit) -> str:
        parts = [f"{length:.2f} {unit.symbol}"]
        if angle is not None:
            parts.append(f"{angle:.0f}°")
        if room_area is not None:
            parts.append(f"{room_area:.2f} {unit.symbol}²")
        return " · ".join(parts)
