"""
FloorSketch - Configuration Module
==================================

Zentrale Konfiguration: Toleranzen, Versions-Info und die explizite
DrawingConfig für Zeichen-Sessions.
"""

from .tolerances import Tolerances, compare_tolerance, snap_epsilon
from .drawing_config import DrawingConfig, Unit, load_drawing_config
