"""
Tests für den HistoryManager
============================

Snapshot-Stacks, Tiefenbegrenzung und der asynchrone Apply-Slot.

Run: pytest test/test_history.py -v
"""

import asyncio

import pytest

from drawing.history import HistoryBusyError, HistoryManager, SnapshotApplyError
from sketcher.scene import Snapshot


def _snap(label):
    return Snapshot(blob=f'{{"state": "{label}"}}', label=label)


@pytest.fixture
def history():
    history = HistoryManager(_snap("s0"), max_depth=10)
    for i in range(1, 4):
        history.commit(_snap(f"s{i}"))
    return history


class TestSyncStacks:

    def test_initial_state(self):
        history = HistoryManager(_snap("s0"))
        assert history.current.label == "s0"
        assert not history.can_undo()
        assert not history.can_redo()
        assert history.undo() is None
        assert history.redo() is None

    def test_undo_all_then_redo_all(self, history):
        labels = []
        while history.can_undo():
            labels.append(history.undo().label)
        assert labels == ["s2", "s1", "s0"]
        assert history.redo_depth == 3

        while history.can_redo():
            history.redo()
        assert history.current == _snap("s3")
        assert history.undo_depth == 3

    def test_commit_clears_redo(self, history):
        history.undo()
        assert history.can_redo()
        history.commit(_snap("neu"))
        assert not history.can_redo()
        assert history.current.label == "neu"

    def test_depth_limit_evicts_oldest(self):
        history = HistoryManager(_snap("s0"), max_depth=3)
        for i in range(1, 8):
            history.commit(_snap(f"s{i}"))
        assert history.undo_depth == 3
        assert history.current.label == "s7"
        labels = [history.undo().label for _ in range(3)]
        assert labels == ["s6", "s5", "s4"]
        assert not history.can_undo()

    def test_max_depth_must_be_positive(self):
        with pytest.raises(ValueError):
            HistoryManager(_snap("s0"), max_depth=0)

    def test_reset(self, history):
        history.undo()
        history.reset(_snap("geladen"))
        assert history.current.label == "geladen"
        assert not history.can_undo()
        assert not history.can_redo()


class TestAsyncApply:
    """Genau ein Apply gleichzeitig; Fehler setzen die Stacks zurück."""

    def test_undo_async_applies_target(self, history):
        applied = []

        async def apply(snapshot):
            applied.append(snapshot.label)

        target = asyncio.run(history.undo_async(apply))
        assert target.label == "s2"
        assert applied == ["s2"]
        assert history.current.label == "s2"
        assert not history.busy

    def test_redo_async(self, history):
        async def apply(snapshot):
            return None

        async def scenario():
            await history.undo_async(apply)
            return await history.redo_async(apply)

        assert asyncio.run(scenario()).label == "s3"
        assert not history.can_redo()

    def test_nothing_to_undo(self):
        history = HistoryManager(_snap("s0"))

        async def apply(snapshot):
            raise AssertionError("darf nicht aufgerufen werden")

        assert asyncio.run(history.undo_async(apply)) is None

    def test_busy_while_apply_in_flight(self, history):
        async def scenario():
            started = asyncio.Event()
            release = asyncio.Event()

            async def slow_apply(snapshot):
                started.set()
                await release.wait()

            task = asyncio.ensure_future(history.undo_async(slow_apply))
            await started.wait()
            assert history.busy
            with pytest.raises(HistoryBusyError):
                history.commit(_snap("zwischendurch"))
            with pytest.raises(HistoryBusyError):
                history.undo()
            with pytest.raises(HistoryBusyError):
                await history.redo_async(slow_apply)
            release.set()
            return await task

        target = asyncio.run(scenario())
        assert target.label == "s2"
        assert not history.busy
        history.commit(_snap("danach"))
        assert history.current.label == "danach"

    def test_failed_apply_restores_stacks(self, history):
        async def broken_apply(snapshot):
            raise RuntimeError("Zeichenfläche weg")

        with pytest.raises(SnapshotApplyError):
            asyncio.run(history.undo_async(broken_apply))
        assert history.current.label == "s3"
        assert history.undo_depth == 3
        assert not history.can_redo()
        assert not history.busy

    def test_failed_redo_restores_stacks(self, history):
        history.undo()

        async def broken_apply(snapshot):
            raise ValueError("kaputt")

        with pytest.raises(SnapshotApplyError):
            asyncio.run(history.redo_async(broken_apply))
        assert history.current.label == "s2"
        assert history.redo_depth == 1

    def test_cancelled_apply_restores_stacks(self, history):
        async def scenario():
            started = asyncio.Event()

            async def hanging_apply(snapshot):
                started.set()
                await asyncio.sleep(3600)

            task = asyncio.ensure_future(history.undo_async(hanging_apply))
            await started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())
        assert history.current.label == "s3"
        assert not history.can_redo()
        assert not history.busy
