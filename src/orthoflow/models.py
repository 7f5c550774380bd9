"""
Data models for orthogonal edge routing.

This module contains the dataclasses passed between the routing services:
node and handle snapshots supplied by the canvas, computed paths and their
metrics, the durable per-edge routing record, and the ephemeral state of a
segment drag gesture.

Classes:
    HandleInfo: Attachment point on a node boundary.
    NodeInfo: Read-only snapshot of a node and its handles.
    OrthogonalPath: A computed route with its segments and metrics.
    RoutingMetrics: Read-only summary of a path for comparison/telemetry.
    EdgeRoutingState: The only routing state persisted per edge.
    SegmentDragConstraints: Legal range for dragging one segment.
    SegmentDragState: Ephemeral state of an active drag gesture.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .geometry import BoundingBox, Direction, Point, Segment, Side, clamp


class HandleType(Enum):
    """Role of a handle in a connection."""

    SOURCE = "source"
    TARGET = "target"


class RoutingType(Enum):
    """Whether the first leg of a path departs horizontally or vertically."""

    HORIZONTAL_FIRST = "horizontal-first"
    VERTICAL_FIRST = "vertical-first"

    @property
    def first_direction(self) -> Direction:
        if self is RoutingType.HORIZONTAL_FIRST:
            return Direction.HORIZONTAL
        return Direction.VERTICAL

    @classmethod
    def from_direction(cls, direction: Direction) -> "RoutingType":
        if direction is Direction.HORIZONTAL:
            return cls.HORIZONTAL_FIRST
        return cls.VERTICAL_FIRST


@dataclass(frozen=True)
class HandleInfo:
    """
    A fixed attachment point on a node's boundary.

    The position is derived from the node's current bounds on every render
    and is never authoritative on its own.

    Attributes:
        id: Handle identifier, unique within the diagram.
        node_id: Owning node.
        position: Canvas coordinate of the handle.
        side: Node side the handle projects from.
        type: Whether edges leave (source) or arrive (target) here.
    """

    id: str
    node_id: str
    position: Point
    side: Side
    type: HandleType = HandleType.SOURCE

    def translated(self, dx: float, dy: float) -> "HandleInfo":
        return HandleInfo(
            self.id, self.node_id, self.position.offset(dx, dy), self.side, self.type
        )


@dataclass(frozen=True)
class NodeInfo:
    """Read-only snapshot of a node supplied per query."""

    id: str
    bounds: BoundingBox
    handles: List[HandleInfo] = field(default_factory=list)

    def get_handle(self, handle_id: str) -> Optional[HandleInfo]:
        """Look up a handle by id."""
        for handle in self.handles:
            if handle.id == handle_id:
                return handle
        return None

    def handles_of_type(self, handle_type: HandleType) -> List[HandleInfo]:
        return [h for h in self.handles if h.type is handle_type]

    def moved_to(self, x: float, y: float) -> "NodeInfo":
        """Snapshot of this node at a new origin, handles re-derived."""
        dx = x - self.bounds.x
        dy = y - self.bounds.y
        return NodeInfo(
            self.id,
            self.bounds.moved_to(x, y),
            [handle.translated(dx, dy) for handle in self.handles],
        )


@dataclass(frozen=True)
class OrthogonalPath:
    """
    A computed orthogonal route between two endpoints.

    Invariants: segments are contiguous, consecutive segments alternate
    direction, ``len(control_points) == len(segments) - 1`` and
    ``0 < efficiency <= 1``.

    Attributes:
        segments: Axis-aligned legs from source to target.
        total_length: Sum of segment lengths.
        routing_type: Direction of the first leg.
        efficiency: Straight-line distance divided by total_length.
        control_points: Corner points between segments.
    """

    segments: List[Segment]
    total_length: float
    routing_type: RoutingType
    efficiency: float
    control_points: List[Point] = field(default_factory=list)

    @property
    def source(self) -> Point:
        return self.segments[0].start

    @property
    def target(self) -> Point:
        return self.segments[-1].end

    @property
    def points(self) -> List[Point]:
        """Source, every corner, then target."""
        return [self.source, *self.control_points, self.target]

    @property
    def segment_count(self) -> int:
        return len(self.segments)


@dataclass(frozen=True)
class RoutingMetrics:
    """Read-only snapshot of an OrthogonalPath for comparison and telemetry."""

    path_length: float
    segment_count: int
    routing_type: RoutingType
    efficiency: float
    handle_combination: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            "pathLength": self.path_length,
            "segmentCount": self.segment_count,
            "routingType": self.routing_type.value,
            "efficiency": self.efficiency,
            "handleCombination": self.handle_combination,
        }


@dataclass
class SelectedHandles:
    """Handle ids chosen for an edge's two endpoints."""

    source: Optional[str] = None
    target: Optional[str] = None


@dataclass
class EdgeRoutingState:
    """
    Durable routing record owned by an edge.

    This is the only routing state that survives between renders. An empty
    control point list means no custom route exists yet and the engine
    computes a default one.

    Attributes:
        control_points: Persisted corner points (source/target excluded).
        routing_type: Routing type of the stored route.
        use_orthogonal_routing: Whether the edge renders as an orthogonal path.
        selected_handles: Handle ids the edge is attached to.
    """

    control_points: List[Point] = field(default_factory=list)
    routing_type: RoutingType = RoutingType.HORIZONTAL_FIRST
    use_orthogonal_routing: bool = True
    selected_handles: SelectedHandles = field(default_factory=SelectedHandles)

    def with_control_points(
        self, control_points: List[Point], routing_type: Optional[RoutingType] = None
    ) -> "EdgeRoutingState":
        """Copy of this state with the control points replaced."""
        return EdgeRoutingState(
            control_points=list(control_points),
            routing_type=routing_type or self.routing_type,
            use_orthogonal_routing=self.use_orthogonal_routing,
            selected_handles=SelectedHandles(
                self.selected_handles.source, self.selected_handles.target
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the plain patch handed to the persistence layer."""
        return {
            "controlPoints": [{"x": p.x, "y": p.y} for p in self.control_points],
            "routingType": self.routing_type.value,
            "useOrthogonalRouting": self.use_orthogonal_routing,
            "selectedHandles": {
                "source": self.selected_handles.source,
                "target": self.selected_handles.target,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EdgeRoutingState":
        """Rebuild a state from a patch; missing keys take their defaults."""
        handles = data.get("selectedHandles") or {}
        return cls(
            control_points=[
                Point(p["x"], p["y"]) for p in data.get("controlPoints", [])
            ],
            routing_type=RoutingType(
                data.get("routingType", RoutingType.HORIZONTAL_FIRST.value)
            ),
            use_orthogonal_routing=data.get("useOrthogonalRouting", True),
            selected_handles=SelectedHandles(
                handles.get("source"), handles.get("target")
            ),
        )


@dataclass(frozen=True)
class SegmentDragConstraints:
    """
    Legal range for dragging a segment along its perpendicular axis.

    ``min_offset`` and ``max_offset`` are absolute canvas coordinates on
    that axis (y for a horizontal segment, x for a vertical one).
    """

    min_offset: float
    max_offset: float
    axis: str = "y"
    snap_to_grid: bool = False

    def clamp(self, value: float) -> float:
        return clamp(value, self.min_offset, self.max_offset)

    def contains(self, value: float) -> bool:
        return self.min_offset <= value <= self.max_offset


@dataclass
class SegmentDragState:
    """
    Ephemeral state of one drag gesture; never persisted.

    Attributes:
        segment_id: Id of the segment being dragged.
        start_position: Segment midpoint when the gesture began.
        current_position: Latest raw pointer position.
        constrained_position: Segment midpoint after clamping.
        drag_offset: Pointer minus midpoint at gesture start.
        control_points: Candidate control points for the current position.
        requires_insertion: Whether bridge waypoints were inserted.
    """

    segment_id: str
    start_position: Point
    current_position: Point
    constrained_position: Point
    drag_offset: Point = Point(0, 0)
    control_points: List[Point] = field(default_factory=list)
    requires_insertion: bool = False
