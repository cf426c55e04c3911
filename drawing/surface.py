"""
FloorSketch - Rendering Surface Boundary

Die Engine kennt die Zeichenfläche nur über das RenderingSurface-Protokoll.
SurfaceAdapter übersetzt SceneDiffs in add/remove-Aufrufe und verwaltet das
Vorschau-Objekt des aktuellen Entwurfs. MemorySurface ist eine kopflose
Implementierung für Tests und die Demo.
"""

import asyncio
from dataclasses import replace
from typing import Dict, Iterable, Optional, Protocol

from loguru import logger

from sketcher.scene import DiffKind, Scene, SceneDiff, Snapshot

DRAFT_ID = "__draft__"


class RenderingSurface(Protocol):
    """Externe Zeichenfläche (Canvas, QGraphicsScene, ...)."""

    def add_object(self, obj) -> None: ...

    def remove_object(self, obj) -> None: ...

    def render(self) -> None: ...

    def serialize_scene(self) -> str: ...

    async def load_scene(self, blob: str) -> None: ...


class MemorySurface:
    """
    Kopflose RenderingSurface.

    Hält die Objekte in einem Dict nach ID und zählt render()-Aufrufe.
    load_delay simuliert eine langsame Oberfläche (Sekunden).
    """

    def __init__(self, load_delay: float = 0.0):
        self.objects: Dict[str, object] = {}
        self.render_count = 0
        self.load_count = 0
        self.load_delay = load_delay

    def add_object(self, obj):
        self.objects[obj.id] = obj

    def remove_object(self, obj):
        self.objects.pop(obj.id, None)

    def render(self):
        self.render_count += 1

    def serialize_scene(self) -> str:
        scene = Scene()
        scene.apply_all(SceneDiff(DiffKind.ADD, obj) for oid, obj in self.objects.items() if oid != DRAFT_ID)
        return scene.to_blob()

    async def load_scene(self, blob: str):
        if self.load_delay:
            await asyncio.sleep(self.load_delay)
        # Parsen vor dem Austausch: ein kaputter Blob lässt die Fläche unverändert
        scene = Scene.from_blob(blob)
        self.objects = {shape.id: shape for shape in scene}
        self.load_count += 1
        self.render()

    def __len__(self):
        return len(self.objects)


class SurfaceAdapter:
    """Wendet deklarative SceneDiffs auf eine RenderingSurface an."""

    def __init__(self, surface: RenderingSurface):
        self.surface = surface
        self._preview = None

    @property
    def preview(self):
        return self._preview

    def apply(self, diffs: Iterable[SceneDiff]):
        diffs = list(diffs)
        if not diffs:
            return
        for diff in diffs:
            if diff.kind is DiffKind.ADD:
                self.surface.add_object(diff.shape)
            elif diff.kind is DiffKind.REMOVE:
                self.surface.remove_object(diff.shape)
            elif diff.kind is DiffKind.MODIFY:
                self.surface.remove_object(diff.previous if diff.previous is not None else diff.shape)
                self.surface.add_object(diff.shape)
        self.surface.render()

    def show_preview(self, shape: Optional[object]):
        if shape is None:
            self.clear_preview()
            return
        if self._preview is not None:
            self.surface.remove_object(self._preview)
        # Vorschau nie unter der ID eines committeten Shapes ablegen
        if shape.id != DRAFT_ID:
            shape = replace(shape, id=DRAFT_ID)
        self._preview = shape
        self.surface.add_object(shape)
        self.surface.render()

    def clear_preview(self):
        if self._preview is None:
            return
        self.surface.remove_object(self._preview)
        self._preview = None
        self.surface.render()

    async def load(self, snapshot: Snapshot):
        """Ersetzt den kompletten Flächeninhalt durch den Snapshot."""
        self.clear_preview()
        logger.debug(f"[Surface] Lade {snapshot!r}")
        await self.surface.load_scene(snapshot.blob)
