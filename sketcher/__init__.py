"""
FloorSketch Sketcher Module
"""

from .geometry import (
    Point2D, InvalidPointError,
    distance, midpoint, angle_degrees, translate,
    area, perimeter, centroid, point_in_polygon,
    bounding_box, distance_to_segment, distance_to_polyline,
    nearest_point, is_valid_polygon, points_from_tuples
)

from .shapes import Stroke, Wall, Room, StrokeType, RoomType, ShapeKind, shape_from_dict

from .scene import (
    Scene, SceneDiff, DiffKind, Snapshot, SnapshotError,
    RoomWallIndex, HitResult
)

from .measurement import (
    AreaSummary, gross_internal_area,
    px_to_meters, px_to_unit, area_px_to_unit,
    square_meters_to_square_feet, format_length, format_area
)

from .smoothing import filter_redundant_points, smooth_points, clean_freehand
