"""
FloorSketch - Drawing Tool Enums
Tool types, gesture states and snap kinds for the drawing session
"""

from enum import Enum, auto


class DrawingTool(Enum):
    """Available drawing tools"""
    SELECT = auto()
    LINE = auto()
    WALL = auto()
    DOOR = auto()
    WINDOW = auto()
    FURNITURE = auto()
    ANNOTATION = auto()
    ROOM = auto()
    FREEHAND = auto()

    @property
    def is_draw_tool(self) -> bool:
        return self is not DrawingTool.SELECT

    @property
    def is_two_point(self) -> bool:
        return self not in (DrawingTool.SELECT, DrawingTool.ROOM, DrawingTool.FREEHAND)


class ToolState(Enum):
    """Gesture states of the tool state machine"""
    IDLE = auto()
    DRAWING = auto()
    DRAGGING = auto()
    EDITING = auto()


class SnapKind(Enum):
    """Which constraint adjusted a point"""
    NONE = "none"
    GRID = "grid"
    ANGLE = "angle"
    BOTH = "both"
    VERTEX = "vertex"
