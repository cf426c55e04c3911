import os

import pytest

# Headless environment setup BEFORE Qt imports
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from config.drawing_config import DrawingConfig
from sketcher.geometry import points_from_tuples


@pytest.fixture
def config():
    """Default-Konfiguration: 10 px Grid, 45°-Winkel, 100 px = 1 m"""
    return DrawingConfig()


@pytest.fixture
def free_config():
    """Ohne jedes Snapping (rohe Koordinaten bleiben erhalten)"""
    return DrawingConfig(grid_snap=False, angle_snap=False, vertex_snap=False)


@pytest.fixture
def square():
    return points_from_tuples([(0, 0), (10, 0), (10, 10), (0, 10)])


@pytest.fixture(scope="session")
def qt_app():
    from PySide6.QtCore import QCoreApplication

    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    return app


@pytest.fixture
def session(qt_app, config, tmp_path):
    from drawing.persistence import JsonFileStore
    from drawing.session import DrawingSession
    from drawing.surface import MemorySurface

    return DrawingSession(config, surface=MemorySurface(), store=JsonFileStore(tmp_path / "plans"))
