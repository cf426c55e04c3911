"""
FloorSketch Drawing Module
Interaktive Zeichen-Session: Werkzeuge, Snapping, History, Messung
"""

from .tools import DrawingTool, ToolState, SnapKind
from .results import ResultStatus, ToolResult
from .snapper import GridAngleSnapper, SnapResult
from .tool_state import ToolStateMachine, DraftShape
from .history import HistoryManager, HistoryBusyError, SnapshotApplyError
from .measurement_overlay import MeasurementOverlay, LiveMeasurement
from .surface import RenderingSurface, MemorySurface, SurfaceAdapter, DRAFT_ID
from .persistence import SceneStore, JsonFileStore, MemoryStore
from .session import DrawingSession
