"""
FloorSketch - History Manager
=============================

Snapshot-basiertes Undo/Redo.

Der Undo-Stack enthält immer mindestens den Ausgangszustand; sein oberstes
Element ist der aktuelle committete Zustand. Das Anwenden eines Snapshots auf
die Rendering-Oberfläche ist asynchron und läuft in genau einem Slot:
während ein Apply läuft, sind commit/undo/redo/reset gesperrt.

Verwendung:
    history = HistoryManager(scene.snapshot("Start"))
    history.commit(scene.snapshot("Wand"))
    await history.undo_async(surface_adapter.load)
"""

import asyncio
from typing import Awaitable, Callable, List, Optional

from loguru import logger

from config.drawing_config import DEFAULT_MAX_HISTORY
from sketcher.scene import Snapshot

SnapshotApply = Callable[[Snapshot], Awaitable[object]]


class HistoryBusyError(RuntimeError):
    """Raised when the history is mutated while a snapshot apply is in flight."""


class SnapshotApplyError(RuntimeError):
    """Raised when applying an undo/redo snapshot failed; the stacks were restored."""


class HistoryManager:
    """Undo/Redo-Stacks aus unveränderlichen Snapshots."""

    def __init__(self, initial: Snapshot, max_depth: int = DEFAULT_MAX_HISTORY):
        if max_depth < 1:
            raise ValueError(f"max_depth muss >= 1 sein: {max_depth}")
        self.max_depth = max_depth
        self._undo_stack: List[Snapshot] = [initial]
        self._redo_stack: List[Snapshot] = []
        self._task: Optional[asyncio.Task] = None

    # ==================== STATUS ====================

    @property
    def current(self) -> Snapshot:
        return self._undo_stack[-1]

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def can_undo(self) -> bool:
        return len(self._undo_stack) > 1

    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    @property
    def undo_depth(self) -> int:
        return len(self._undo_stack) - 1

    @property
    def redo_depth(self) -> int:
        return len(self._redo_stack)

    # ==================== SYNCHRON ====================

    def commit(self, snapshot: Snapshot):
        """Neuer Zustand nach einer Aktion. Leert den Redo-Stack."""
        self._ensure_idle("commit")
        self._undo_stack.append(snapshot)
        self._redo_stack.clear()

        # Älteste Einträge verwerfen; der aktuelle Zustand bleibt immer oben
        overflow = len(self._undo_stack) - (self.max_depth + 1)
        if overflow > 0:
            del self._undo_stack[:overflow]
            logger.debug(f"[History] {overflow} alte(r) Eintrag/Einträge verworfen")

        logger.info(f"[History] Commit '{snapshot.label}' (undo={self.undo_depth})")

    def undo(self) -> Optional[Snapshot]:
        """Zurück zum vorherigen Zustand. None wenn nur der Ausgangszustand da ist."""
        self._ensure_idle("undo")
        if not self.can_undo():
            return None
        self._redo_stack.append(self._undo_stack.pop())
        logger.info(f"[History] Undo -> '{self.current.label}'")
        return self.current

    def redo(self) -> Optional[Snapshot]:
        """Stellt den zuletzt rückgängig gemachten Zustand wieder her."""
        self._ensure_idle("redo")
        if not self._redo_stack:
            return None
        snapshot = self._redo_stack.pop()
        self._undo_stack.append(snapshot)
        logger.info(f"[History] Redo -> '{snapshot.label}'")
        return snapshot

    def reset(self, initial: Snapshot):
        """Neuer Ausgangszustand (z.B. nach dem Laden eines Plans)."""
        self._ensure_idle("reset")
        self._undo_stack = [initial]
        self._redo_stack = []
        logger.debug(f"[History] Reset auf '{initial.label}'")

    # ==================== ASYNCHRON ====================

    async def undo_async(self, apply: SnapshotApply) -> Optional[Snapshot]:
        """
        Undo plus asynchrones Anwenden des Ziel-Snapshots.

        Raises:
            HistoryBusyError: ein anderer Apply läuft noch
            SnapshotApplyError: apply ist fehlgeschlagen, Stacks sind zurückgesetzt
        """
        target = self.undo()
        if target is None:
            return None
        await self._run_apply(apply, target, self._revert_undo)
        return target

    async def redo_async(self, apply: SnapshotApply) -> Optional[Snapshot]:
        """Gegenstück zu undo_async."""
        target = self.redo()
        if target is None:
            return None
        await self._run_apply(apply, target, self._revert_redo)
        return target

    async def _run_apply(self, apply: SnapshotApply, snapshot: Snapshot, revert: Callable[[], None]):
        self._task = asyncio.ensure_future(apply(snapshot))
        try:
            await self._task
        except asyncio.CancelledError:
            revert()
            logger.warning(f"[History] Apply von '{snapshot.label}' abgebrochen, Stacks zurückgesetzt")
            raise
        except Exception as e:
            revert()
            logger.error(f"[History] Apply von '{snapshot.label}' fehlgeschlagen: {e}")
            raise SnapshotApplyError(f"Snapshot '{snapshot.label}' konnte nicht angewendet werden: {e}") from e
        finally:
            self._task = None

    def _revert_undo(self):
        self._undo_stack.append(self._redo_stack.pop())

    def _revert_redo(self):
        self._redo_stack.append(self._undo_stack.pop())

    def _ensure_idle(self, operation: str):
        if self.busy:
            raise HistoryBusyError(f"{operation} nicht möglich: Snapshot wird gerade angewendet")
