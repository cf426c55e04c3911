"""
FloorSketch Sketcher - Einheiten und Flächenberechnung

Die Geometrie-Engine rechnet einheitenlos in Zeichen-Pixeln. Hier wird über
``DrawingConfig.pixels_per_meter`` in physikalische Einheiten umgerechnet,
inklusive GIA (Gross Internal Area) über alle Räume.
"""

from dataclasses import dataclass
from typing import Iterable

from config.drawing_config import DrawingConfig, Unit

SQUARE_FEET_PER_SQUARE_METER = 10.7639


@dataclass(frozen=True)
class AreaSummary:
    """GIA-Ergebnis über eine Menge von Räumen"""
    area_m2: float
    area_sqft: float
    perimeter_m: float
    room_count: int

    @property
    def is_empty(self) -> bool:
        return self.room_count == 0


def px_to_meters(length_px: float, config: DrawingConfig) -> float:
    return length_px / config.pixels_per_meter


def px_to_unit(length_px: float, config: DrawingConfig, unit: Unit = None) -> float:
    """Länge in Pixeln -> Länge in der konfigurierten (oder angegebenen) Einheit"""
    unit = unit or config.unit
    return px_to_meters(length_px, config) * unit.per_meter


def area_px_to_square_meters(area_px: float, config: DrawingConfig) -> float:
    ppm = config.pixels_per_meter
    return area_px / (ppm * ppm)


def area_px_to_unit(area_px: float, config: DrawingConfig, unit: Unit = None) -> float:
    """Fläche in px² -> Fläche in Einheit²"""
    unit = unit or config.unit
    return area_px_to_square_meters(area_px, config) * unit.per_meter ** 2


def square_meters_to_square_feet(area_m2: float) -> float:
    return area_m2 * SQUARE_FEET_PER_SQUARE_METER


def gross_internal_area(rooms: Iterable, config: DrawingConfig) -> AreaSummary:
    """
    Summiert Fläche und Umfang aller Räume.

    Flächen werden auf 2 Nachkommastellen gerundet (m² und ft²), der Umfang
    bleibt ungerundet in Metern.
    """
    total_area_px = 0.0
    total_perimeter_px = 0.0
    count = 0
    for room in rooms:
        total_area_px += room.area
        total_perimeter_px += room.perimeter
        count += 1

    area_m2 = area_px_to_square_meters(total_area_px, config)
    return AreaSummary(
        area_m2=round(area_m2, 2),
        area_sqft=round(square_meters_to_square_feet(area_m2), 2),
        perimeter_m=px_to_meters(total_perimeter_px, config),
        room_count=count,
    )


def format_length(length_px: float, config: DrawingConfig, precision: int = 2) -> str:
    """z.B. '2.35 m' oder '235.00 cm'"""
    return f"{px_to_unit(length_px, config):.{precision}f} {config.unit.symbol}"


def format_area(area_px: float, config: DrawingConfig, precision: int = 2) -> str:
    """z.B. '12.50 m²'"""
    return f"{area_px_to_unit(area_px, config):.{precision}f} {config.unit.symbol}²"
