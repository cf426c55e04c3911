"""
FloorSketch Sketcher - Freihand-Bereinigung

Stylus- und Maus-Eingaben liefern viele, eng beieinander liegende und leicht
zitternde Punkte. Vor dem Commit eines Freihand-Strichs:
1. redundante Punkte entfernen (Mindestabstand)
2. gleitender Mittelwert (Fenster schrumpft an den Rändern)
"""

from typing import List, Sequence

import numpy as np

from .geometry import Point2D


def _as_array(points: Sequence[Point2D]) -> np.ndarray:
    return np.array([(p.x, p.y) for p in points], dtype=float).reshape(-1, 2)


def _to_points(arr: np.ndarray) -> List[Point2D]:
    return [Point2D(float(x), float(y)) for x, y in arr]


def filter_redundant_points(points: Sequence[Point2D], min_distance: float) -> List[Point2D]:
    """
    Entfernt Punkte, die näher als min_distance am zuletzt behaltenen Punkt liegen.

    Erster und letzter Punkt bleiben immer erhalten: liegt der letzte zu nah
    am zuletzt behaltenen, ersetzt er diesen.
    """
    if len(points) <= 2:
        return list(points)

    kept = [points[0]]
    for p in points[1:]:
        if kept[-1].distance_to(p) >= min_distance:
            kept.append(p)

    last = points[-1]
    if kept[-1] is not last:
        if len(kept) > 1 and kept[-1].distance_to(last) < min_distance:
            kept[-1] = last
        else:
            kept.append(last)
    return kept


def smooth_points(points: Sequence[Point2D], window: int = 3) -> List[Point2D]:
    """
    Gleitender Mittelwert über `window` Punkte.

    Start- und Endpunkt bleiben fix, damit der Strich dort beginnt und endet,
    wo der Stift aufgesetzt bzw. abgehoben wurde.
    """
    if len(points) <= 2 or window < 2:
        return list(points)

    arr = _as_array(points)
    half = window // 2
    n = len(arr)

    # Kumulative Summe: Fenster-Mittelwerte in O(n)
    csum = np.vstack([np.zeros((1, 2)), np.cumsum(arr, axis=0)])
    idx = np.arange(n)
    # Symmetrisches Fenster, das an den Rändern schrumpft
    reach = np.minimum(half, np.minimum(idx, n - 1 - idx))
    lo = idx - reach
    hi = idx + reach + 1
    smoothed = (csum[hi] - csum[lo]) / (hi - lo)[:, None]

    smoothed[0] = arr[0]
    smoothed[-1] = arr[-1]
    return _to_points(smoothed)


def clean_freehand(points: Sequence[Point2D], min_distance: float, window: int) -> List[Point2D]:
    """Filter + Glättung in der Reihenfolge des Commits"""
    return smooth_points(filter_redundant_points(points, min_distance), window)
