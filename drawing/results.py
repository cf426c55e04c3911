"""
FloorSketch - Structured Tool Results
=====================================

Jede Pointer- und Commit-Operation der Tool-State-Machine liefert ein
ToolResult statt Exceptions für erwartbare Fälle (zu kurz, zu wenige
Eckpunkte, ungültige Eingabe).
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from sketcher.scene import SceneDiff
    from .snapper import SnapResult


class ResultStatus(Enum):
    """Status einer Tool-Operation."""
    SUCCESS = auto()
    WARNING = auto()  # Erfolgreich, aber mit Einschränkungen
    EMPTY = auto()    # Nichts passiert (verworfen, kein Treffer)
    ERROR = auto()


@dataclass
class ToolResult:
    """
    Strukturiertes Ergebnis einer Tool-Operation.

    Attributes:
        diffs: Committete Szenen-Änderungen (leer während einer Geste)
        preview: Aktuelles Draft-Shape für die Vorschau, None wenn keins
        snap: Zuletzt berechnetes SnapResult
    """
    status: ResultStatus
    message: str = ""
    diffs: List["SceneDiff"] = field(default_factory=list)
    preview: object = None
    snap: Optional["SnapResult"] = None

    @property
    def success(self) -> bool:
        return self.status in (ResultStatus.SUCCESS, ResultStatus.WARNING)

    @property
    def is_error(self) -> bool:
        return self.status == ResultStatus.ERROR

    @property
    def committed(self) -> bool:
        return bool(self.diffs)

    @classmethod
    def ok(cls, message: str = "", diffs=None, preview=None, snap=None) -> "ToolResult":
        return cls(ResultStatus.SUCCESS, message, list(diffs or []), preview, snap)

    @classmethod
    def warning(cls, message: str, diffs=None, preview=None, snap=None) -> "ToolResult":
        return cls(ResultStatus.WARNING, message, list(diffs or []), preview, snap)

    @classmethod
    def empty(cls, message: str = "") -> "ToolResult":
        return cls(ResultStatus.EMPTY, message)

    @classmethod
    def error(cls, message: str) -> "ToolResult":
        return cls(ResultStatus.ERROR, message)
