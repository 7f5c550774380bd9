"""
OrthoFlow - Orthogonal edge routing for diagram editors

Computes, validates, renders and interactively reshapes axis-aligned
connector paths between handles on movable nodes.

Example:
    >>> from orthoflow import Diagram
    >>> diagram = Diagram()
    >>> diagram.add_node("a", 0, 0, 100, 60)
    >>> diagram.add_node("b", 300, 200, 100, 60)
    >>> diagram.add_edge("e1", "a", "b")
    >>> print(diagram.render_edge("e1").svg_path)

Drag Example:
    >>> diagram.begin_segment_drag("e1", midpoint)
    >>> diagram.pointer_move("e1", Point(midpoint.x + 40, midpoint.y))
    >>> state = diagram.end_segment_drag("e1")
"""

from .config import RoutingConfig
from .constraints import MovementCheck, OrthogonalConstraintEngine, OrthogonalValidation
from .controller import (
    CommandCommitSink,
    EdgeGeometry,
    EdgeRoutingController,
    FrameThrottle,
    RenderedEdge,
    RoutingCommitSink,
)
from .diagram import Diagram
from .drag import DragPhase, DragResult, DragStateError, SegmentDragHandler
from .feedback import FeedbackOptions, RoutingDecision, RoutingFeedbackSystem
from .geometry import BoundingBox, Direction, GeometryError, Point, Segment, Side
from .handles import HandleSelectionService, create_handles_for_bounds
from .models import (
    EdgeRoutingState,
    HandleInfo,
    HandleType,
    NodeInfo,
    OrthogonalPath,
    RoutingMetrics,
    RoutingType,
    SegmentDragConstraints,
    SegmentDragState,
    SelectedHandles,
)
from .path_calculator import CalculatedPath, EdgeType, PathCalculator
from .png_renderer import PNGRenderer, render_to_png
from .routing_engine import OrthogonalRoutingEngine, RoutingComparison
from .waypoints import OrthogonalWaypointManager, WaypointInsertionResult

__version__ = "0.1.0"

__all__ = [
    # Main API
    "Diagram",
    "EdgeRoutingController",
    "EdgeGeometry",
    "RenderedEdge",
    "RoutingCommitSink",
    "CommandCommitSink",
    "FrameThrottle",
    "RoutingConfig",
    # Geometry
    "Point",
    "Segment",
    "Side",
    "Direction",
    "BoundingBox",
    "GeometryError",
    # Models
    "HandleInfo",
    "HandleType",
    "NodeInfo",
    "OrthogonalPath",
    "RoutingMetrics",
    "RoutingType",
    "EdgeRoutingState",
    "SelectedHandles",
    "SegmentDragConstraints",
    "SegmentDragState",
    # Services
    "HandleSelectionService",
    "create_handles_for_bounds",
    "OrthogonalRoutingEngine",
    "RoutingComparison",
    "PathCalculator",
    "CalculatedPath",
    "EdgeType",
    "OrthogonalConstraintEngine",
    "OrthogonalValidation",
    "MovementCheck",
    "OrthogonalWaypointManager",
    "WaypointInsertionResult",
    "SegmentDragHandler",
    "DragPhase",
    "DragResult",
    "DragStateError",
    # Feedback
    "RoutingFeedbackSystem",
    "FeedbackOptions",
    "RoutingDecision",
    # Output
    "PNGRenderer",
    "render_to_png",
]
