#!/usr/bin/env python3
"""
FloorSketch - Grundriss-Skizzen mit Live-Maßen und Undo/Redo
Einstiegspunkt (kopflose Demo der Zeichen-Session)
"""

import asyncio
import sys
import os
import tempfile

from loguru import logger

# Füge Projektverzeichnis zum Pfad hinzu
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))


def configure_logging(debug: bool = False):
    logger.remove()
    logger.add(sys.stderr, format="<level>{level: <8}</level> | {message}", level="DEBUG" if debug else "INFO")


async def run_demo(store_dir: str):
    """Skriptet eine Session: Wände, Raum, GIA, Undo/Redo, Speichern/Laden"""
    from config.drawing_config import DrawingConfig
    from config.version import APP_NAME, VERSION_FULL
    from drawing import DrawingSession, DrawingTool, JsonFileStore, MemorySurface
    from sketcher.scene import log_scene

    print("=" * 50)
    print(f"{APP_NAME} {VERSION_FULL} - Session Demo")
    print("=" * 50)

    config = DrawingConfig()
    surface = MemorySurface()
    session = DrawingSession(config, surface=surface, store=JsonFileStore(store_dir))

    def on_measurement(measurement):
        if measurement is not None:
            logger.debug(f"Live: {measurement.text}")

    session.measurement_changed.connect(on_measurement)

    # Test 1: Vier Wände, 4 m x 3 m
    print("\n[1] Wände 4 m x 3 m")
    session.set_tool(DrawingTool.WALL)
    corners = [(0, 0), (400, 0), (400, 300), (0, 300)]
    for (x1, y1), (x2, y2) in zip(corners, corners[1:] + corners[:1]):
        session.pointer_down(x1, y1)
        session.pointer_move((x1 + x2) / 2, (y1 + y2) / 2 + 3)
        result = session.pointer_up(x2, y2)
        print(f"  {result.status.name}: {result.message}")

    # Test 2: Raum über dieselben Ecken, Schließen am ersten Eckpunkt
    print("\n[2] Raum zeichnen")
    session.set_tool(DrawingTool.ROOM)
    for x, y in corners + [corners[0]]:
        session.pointer_down(x, y)
        session.pointer_move(x + 1, y + 1)
        result = session.pointer_up(x, y)
    print(f"  {result.status.name}: {result.message}")
    room = session.scene.rooms[0]
    print(f"  Raum {room.id}: {len(session.scene.walls_for_room(room.id))} Wände verknüpft")

    gia = session.gross_internal_area()
    print(f"  GIA: {gia.area_m2:.2f} m² ({gia.area_sqft:.2f} ft²), Umfang {gia.perimeter_m:.2f} m")

    # Test 3: Undo/Redo
    print("\n[3] Undo / Redo")
    await session.undo()
    print(f"  nach Undo: {session.scene!r}")
    await session.redo()
    print(f"  nach Redo: {session.scene!r}")

    # Test 4: Speichern / Laden
    print("\n[4] Speichern / Laden")
    saved = session.save("demo")
    print(f"  gespeichert: {saved}")
    restored = DrawingSession(config, store=JsonFileStore(store_dir))
    loaded = await restored.load("demo")
    print(f"  geladen: {loaded} -> {restored.scene!r}")
    log_scene(restored.scene, "Geladen")

    print("\n" + "=" * 50)
    print(f"Demo abgeschlossen ({surface.render_count} Render-Aufrufe)")
    print("=" * 50)


def main():
    configure_logging(debug="--debug" in sys.argv)
    if "--store" in sys.argv:
        store_dir = sys.argv[sys.argv.index("--store") + 1]
        asyncio.run(run_demo(store_dir))
        return
    with tempfile.TemporaryDirectory(prefix="floorsketch-") as tmp:
        asyncio.run(run_demo(tmp))


if __name__ == "__main__":
    main()
