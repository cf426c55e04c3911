"""
FloorSketch - Drawing Configuration
===================================

Explizites, unveränderliches Konfigurationsobjekt für die Zeichen-Session.

Ersetzt globale Feature-Flags: Snapper, Tool-State-Machine und Session
bekommen die Konfiguration beim Erzeugen übergeben. Änderungen erzeugen
ein neues Objekt (``config.replace(grid_size=20)``).

Verwendung:
    from config.drawing_config import DrawingConfig, Unit

    config = DrawingConfig(grid_size=10.0, unit=Unit.CM)
    issues = config.validate()
"""

import json
from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from loguru import logger

from .tolerances import Tolerances


class Unit(Enum):
    """Physical length units for measurements and GIA."""
    MM = "mm"
    CM = "cm"
    M = "m"
    IN = "in"
    FT = "ft"

    @property
    def per_meter(self) -> float:
        """How many of this unit make one meter."""
        return _UNITS_PER_METER[self]

    @property
    def symbol(self) -> str:
        return self.value


_UNITS_PER_METER = {
    Unit.MM: 1000.0,
    Unit.CM: 100.0,
    Unit.M: 1.0,
    Unit.IN: 1.0 / 0.0254,
    Unit.FT: 1.0 / 0.3048,
}

# 100 px = 1 m, 10 px Grid = 0.1 m
DEFAULT_PIXELS_PER_METER = 100.0
DEFAULT_GRID_SIZE = 10.0
DEFAULT_SNAP_ANGLES = (0.0, 45.0, 90.0, 135.0)
DEFAULT_MAX_HISTORY = 50


@dataclass(frozen=True)
class DrawingConfig:
    """
    Konfiguration für Snapping, Einheiten und Standard-Stile.

    Alle Längen sind in Zeichen-Pixeln, solange nicht anders angegeben.
    """

    # Snapping
    grid_size: float = DEFAULT_GRID_SIZE
    grid_snap: bool = True
    angle_snap: bool = True
    snap_angles: Tuple[float, ...] = DEFAULT_SNAP_ANGLES
    angle_snap_preserve_length: bool = False
    vertex_snap: bool = True
    proximity_tolerance: float = Tolerances.SNAP_PROXIMITY_PX

    # Einheiten
    unit: Unit = Unit.M
    pixels_per_meter: float = DEFAULT_PIXELS_PER_METER

    # Standard-Stile für neue Geometrie
    stroke_color: str = "#000000"
    stroke_thickness: float = 2.0
    wall_thickness: float = 10.0
    wall_height: Optional[float] = None

    # History
    max_history: int = DEFAULT_MAX_HISTORY

    # Freihand-Bereinigung
    freehand_min_distance: float = 2.0
    freehand_smoothing_window: int = 3

    def __post_init__(self):
        # Listen aus JSON in Tupel wandeln, damit das Objekt hashbar/unveränderlich bleibt
        if not isinstance(self.snap_angles, tuple):
            object.__setattr__(self, "snap_angles", tuple(float(a) for a in self.snap_angles))
        if not isinstance(self.unit, Unit):
            object.__setattr__(self, "unit", Unit(self.unit))

    def replace(self, **changes) -> "DrawingConfig":
        """Returns a copy with the given fields changed."""
        return replace(self, **changes)

    def validate(self) -> List[str]:
        """
        Prüft die Konfiguration auf unsinnige Werte.

        Returns:
            Liste von Problem-Beschreibungen (leer wenn alles ok)
        """
        issues = []
        if self.grid_size <= 0:
            issues.append(f"grid_size muss positiv sein: {self.grid_size}")
        if self.pixels_per_meter <= 0:
            issues.append(f"pixels_per_meter muss positiv sein: {self.pixels_per_meter}")
        if self.proximity_tolerance < 0:
            issues.append(f"proximity_tolerance darf nicht negativ sein: {self.proximity_tolerance}")
        if self.angle_snap and not self.snap_angles:
            issues.append("angle_snap aktiv, aber snap_angles ist leer")
        for angle in self.snap_angles:
            if not 0.0 <= angle < 360.0:
                issues.append(f"snap_angle außerhalb [0, 360): {angle}")
        if self.max_history < 1:
            issues.append(f"max_history muss >= 1 sein: {self.max_history}")
        if self.freehand_smoothing_window < 1:
            issues.append(f"freehand_smoothing_window muss >= 1 sein: {self.freehand_smoothing_window}")
        if self.stroke_thickness <= 0 or self.wall_thickness <= 0:
            issues.append("Strichstärken müssen positiv sein")
        return issues

    # === Serialisierung ===

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["unit"] = self.unit.value
        data["snap_angles"] = list(self.snap_angles)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DrawingConfig":
        """Erstellt eine Konfiguration; unbekannte Schlüssel werden ignoriert."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.debug(f"[Config] Ignoriere unbekannte Schlüssel: {sorted(unknown)}")
        return cls(**{k: v for k, v in data.items() if k in known})


def load_drawing_config(path: Union[str, Path]) -> DrawingConfig:
    """
    Lädt eine DrawingConfig aus einer JSON-Datei.

    Fehlende oder ungültige Dateien liefern die Standard-Konfiguration
    (mit Warnung im Log), damit die Session immer starten kann.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        config = DrawingConfig.from_dict(data)
    except FileNotFoundError:
        logger.info(f"[Config] {path} nicht gefunden, verwende Standard-Konfiguration")
        return DrawingConfig()
    except (OSError, ValueError, TypeError, AttributeError) as e:
        logger.warning(f"[Config] {path} ungültig ({e}), verwende Standard-Konfiguration")
        return DrawingConfig()

    issues = config.validate()
    if issues:
        for issue in issues:
            logger.warning(f"[Config] {issue}")
        return DrawingConfig()
    return config
