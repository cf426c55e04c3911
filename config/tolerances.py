"""
FloorSketch - Zentralisierte Toleranz-Konfiguration
===================================================

Alle Toleranzen der Zeichen-Engine an einem Ort.

Toleranz-Philosophie:
- Vergleiche (Punkt/Winkel/Länge): 1e-6 - numerisches Rauschen, keine Nutzer-Absicht
- Snapping: 1e-6 - "hat der Snap den Punkt wirklich verschoben?"
- Interaktion (Pixel): 1-8 px - was der Nutzer als "getroffen" empfindet

Verwendung:
    from config.tolerances import Tolerances

    eps = Tolerances.SNAP_EPSILON

    # Oder via Convenience-Funktionen
    from config.tolerances import compare_tolerance
    eps = compare_tolerance()
"""


class Tolerances:
    """
    Zentrale Toleranz-Konstanten für FloorSketch.

    Kategorien:
    - COMPARE_*: Gleichheit von Punkten, Winkeln, Längen
    - SNAP_*: Snapping-Engine
    - HIT_* / MIN_*: Interaktion mit Zeiger-Eingaben (Zeichen-Pixel)
    - WALL_*: Wand/Raum-Zuordnung
    """

    # =========================================================================
    # Vergleichs-Toleranzen
    # =========================================================================

    # Punkt-Vergleich (sind zwei Punkte "gleich"?)
    COMPARE_POINT = 1e-6

    # Winkel-Vergleich in Grad
    COMPARE_ANGLE = 1e-6

    # Längen-Vergleich
    COMPARE_LENGTH = 1e-6

    # =========================================================================
    # Snapping
    # =========================================================================

    # Ab dieser Verschiebung gilt ein Snap als "ausgelöst"
    SNAP_EPSILON = 1e-6

    # Standard-Fangradius für Vertex-Snapping in Pixel
    SNAP_PROXIMITY_PX = 8.0

    # =========================================================================
    # Interaktion
    # =========================================================================

    # Kürzere Segmente werden als Klick ohne Ziehen verworfen
    MIN_SEGMENT_LENGTH = 1.0

    # Trefferradius für Selektion von Strichen/Wänden (zusätzlich zur halben Strichstärke)
    HIT_STROKE_PX = 4.0

    # Trefferradius für Vertex-Griffe im Select-Tool
    HIT_VERTEX_PX = 6.0

    # =========================================================================
    # Wand/Raum-Zuordnung
    # =========================================================================

    # Wand-Endpunkte in diesem Abstand zur Raumkontur verknüpfen Wand und Raum
    WALL_ROOM_LINK = 1.0

    # =========================================================================
    # Mathematische Epsilon-Werte (Numerische Stabilität)
    # =========================================================================

    # Vermeidet Division durch Null
    EPSILON_MATH = 1e-12


# =============================================================================
# Convenience-Funktionen
# =============================================================================

def compare_tolerance() -> float:
    """Gibt die Standard-Vergleichstoleranz für Punkte zurück."""
    return Tolerances.COMPARE_POINT


def snap_epsilon() -> float:
    """Gibt die Standard-Snap-Schwelle zurück."""
    return Tolerances.SNAP_EPSILON


# =============================================================================
# Toleranz-Validierung (für Debugging)
# =============================================================================

def validate_tolerances():
    """
    Validiert dass alle Toleranzen sinnvolle Werte haben.
    Nützlich für Tests und Debugging.
    """
    issues = []

    if not (0 < Tolerances.COMPARE_POINT <= 1e-3):
        issues.append(f"COMPARE_POINT außerhalb sinnvoller Grenzen: {Tolerances.COMPARE_POINT}")

    # Snap-Schwelle darf nicht gröber sein als die Interaktions-Toleranzen
    if Tolerances.SNAP_EPSILON >= Tolerances.MIN_SEGMENT_LENGTH:
        issues.append(
            f"SNAP_EPSILON ({Tolerances.SNAP_EPSILON}) >= MIN_SEGMENT_LENGTH ({Tolerances.MIN_SEGMENT_LENGTH})"
        )

    if Tolerances.HIT_VERTEX_PX <= 0 or Tolerances.HIT_STROKE_PX <= 0:
        issues.append("HIT_* Toleranzen müssen positiv sein")

    return issues


# Automatische Validierung beim Import (nur Warnung, kein Fehler)
_validation_issues = validate_tolerances()
if _validation_issues:
    from loguru import logger
    for issue in _validation_issues:
        logger.warning(f"Toleranz-Validierung: {issue}")
