"""
Edge routing controller: the explicit recompute-on-change entry point.

The host render loop calls into the controller with the edge's stored
EdgeRoutingState and the live endpoint geometry; the controller never
caches geometry between calls. It owns only the ephemeral drag gestures
(one per edge). Every durable change leaves through a RoutingCommitSink as
a whole new EdgeRoutingState:

- ``connect`` commits the default route of a new edge.
- ``on_node_moved`` repairs stored control points that no longer fit and
  commits the repair.
- ``end_segment_drag`` commits the result of a drag gesture.

Rendering is pure. Geometry failures never escape: the edge is drawn as a
straight line between its raw endpoints instead.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Union

from .config import RoutingConfig
from .constraints import OrthogonalConstraintEngine
from .drag import DragStateError, SegmentDragHandler
from .feedback import RoutingFeedbackSystem
from .geometry import GeometryError, Point, Segment, Side, direction_between
from .models import EdgeRoutingState, RoutingType, SegmentDragState, SelectedHandles
from .path_calculator import EdgeType, PathCalculator
from .routing_engine import OrthogonalRoutingEngine, simplify_points

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EdgeGeometry:
    """Live endpoint geometry of one edge, supplied on every call."""

    source: Point
    target: Point
    source_side: Optional[Side] = None
    target_side: Optional[Side] = None


@dataclass
class RenderedEdge:
    """
    What the renderer needs to draw one edge.

    Attributes:
        edge_id: Edge the result belongs to.
        svg_path: Path command string to stroke.
        control_points: Corner points, for placing drag affordances.
        segments: Segments of the drawn path.
        midpoints: Segment midpoints, where drag handles are drawn.
        points: Polyline approximation of the stroke for raster output.
        is_fallback: True when a straight line is drawn instead of a route.
    """

    edge_id: str
    svg_path: str
    control_points: List[Point] = field(default_factory=list)
    segments: List[Segment] = field(default_factory=list)
    midpoints: List[Point] = field(default_factory=list)
    points: List[Point] = field(default_factory=list)
    is_fallback: bool = False


class RoutingCommitSink(Protocol):
    """Receives every durable routing change."""

    def commit(self, edge_id: str, state: EdgeRoutingState) -> None:
        ...


class CommandCommitSink:
    """
    Adapts a command layer to RoutingCommitSink.

    The command controller must provide
    ``create_update_edge_command(edge_id, patch)`` and ``execute(command)``;
    undo/redo stays entirely on its side.
    """

    def __init__(self, command_controller: Any):
        self.command_controller = command_controller

    def commit(self, edge_id: str, state: EdgeRoutingState) -> None:
        command = self.command_controller.create_update_edge_command(
            edge_id, {"data": state.to_dict()}
        )
        self.command_controller.execute(command)


class FrameThrottle:
    """
    Lets through at most one sample per frame interval.

    Samples arriving sooner are dropped, never queued.
    """

    def __init__(
        self,
        interval_ms: float,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.interval_ms = interval_ms
        self._clock = clock or (lambda: time.monotonic() * 1000)
        self._last: Optional[float] = None

    def ready(self) -> bool:
        now = self._clock()
        if self._last is not None and now - self._last < self.interval_ms:
            return False
        self._last = now
        return True

    def reset(self) -> None:
        self._last = None


@dataclass
class _ActiveDrag:
    handler: SegmentDragHandler
    state: EdgeRoutingState
    geometry: EdgeGeometry
    throttle: FrameThrottle


class EdgeRoutingController:
    """
    Recomputes, repairs and reshapes orthogonal edges on request.

    Args:
        sink: Where committed EdgeRoutingState updates go.
        config: Routing configuration shared by every service.
        feedback: Optional feedback system for routing decisions.
        edge_type: Stroke style for rendered edges.
        corner_radius: Arc radius for rounded edges.
        clock: Millisecond clock for pointer throttling.
    """

    def __init__(
        self,
        sink: RoutingCommitSink,
        config: Optional[RoutingConfig] = None,
        feedback: Optional[RoutingFeedbackSystem] = None,
        edge_type: Union[EdgeType, str] = EdgeType.ORTHOGONAL,
        corner_radius: Optional[float] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.sink = sink
        self.config = config or RoutingConfig()
        self.feedback = feedback
        self.edge_type = EdgeType(edge_type)
        self.corner_radius = corner_radius
        self.engine = OrthogonalRoutingEngine(self.config, feedback)
        self.path_calculator = PathCalculator(self.config)
        self.constraint_engine = OrthogonalConstraintEngine(self.config)
        self._clock = clock
        self._drags: Dict[str, _ActiveDrag] = {}

    def connect(
        self,
        edge_id: str,
        geometry: EdgeGeometry,
        selected_handles: Optional[SelectedHandles] = None,
        preferred_routing: Optional[RoutingType] = None,
    ) -> EdgeRoutingState:
        """Compute and commit the default route of a newly connected edge."""
        control_points: List[Point] = []
        routing_type = RoutingType.HORIZONTAL_FIRST
        try:
            path = self.engine.calculate_orthogonal_path_from_edge_coordinates(
                geometry.source.x,
                geometry.source.y,
                geometry.target.x,
                geometry.target.y,
                geometry.source_side,
                geometry.target_side,
                preferred_routing,
            )
            control_points = self.engine.generate_control_points(path)
            routing_type = path.routing_type
        except GeometryError as exc:
            logger.warning("Edge %s connected without a route: %s", edge_id, exc)

        state = EdgeRoutingState(
            control_points=control_points,
            routing_type=routing_type,
            use_orthogonal_routing=True,
            selected_handles=selected_handles or SelectedHandles(),
        )
        self.sink.commit(edge_id, state)
        logger.info(
            "Connected edge %s with %d control points", edge_id, len(control_points)
        )
        return state

    def render(
        self, edge_id: str, state: EdgeRoutingState, geometry: EdgeGeometry
    ) -> RenderedEdge:
        """
        Build the drawable path of an edge from its stored state.

        Pure: invalid stored points are repaired for drawing only, and an
        empty list draws the default route without committing it. While a
        gesture is active on the edge its candidate points are drawn.
        """
        if not state.use_orthogonal_routing:
            return self._fallback(edge_id, geometry)

        drag = self._drags.get(edge_id)
        try:
            if drag is not None and drag.handler.get_current_drag_state() is not None:
                control_points = drag.handler.get_current_drag_state().control_points
            else:
                control_points = self._effective_control_points(state, geometry)
            path = self.path_calculator.calculate_path(
                geometry.source,
                geometry.target,
                control_points,
                self.edge_type,
                self.corner_radius,
            )
        except GeometryError as exc:
            logger.warning("Edge %s falls back to a straight line: %s", edge_id, exc)
            return self._fallback(edge_id, geometry)

        return RenderedEdge(
            edge_id=edge_id,
            svg_path=path.svg_path,
            control_points=list(control_points),
            segments=path.segments,
            midpoints=self.path_calculator.calculate_segment_midpoints(path.segments),
            points=self.path_calculator.sample_points(
                geometry.source,
                geometry.target,
                control_points,
                self.edge_type,
                self.corner_radius,
            ),
        )

    def on_node_moved(
        self, edge_id: str, state: EdgeRoutingState, geometry: EdgeGeometry
    ) -> EdgeRoutingState:
        """
        Re-validate an edge after one of its nodes moved.

        Runs once per node position change. Stored points that still fit
        are left alone; otherwise they are repaired and the repair is
        committed. A gesture in progress on the edge is cancelled, since its
        geometry is stale.
        """
        if edge_id in self._drags:
            logger.info("Node moved under an active drag; cancelling it on %s", edge_id)
            self.cancel_segment_drag(edge_id)

        if not state.use_orthogonal_routing or not state.control_points:
            return state

        try:
            validation = self.constraint_engine.validate_orthogonal_path(
                state.control_points, geometry.source, geometry.target
            )
            if validation.is_orthogonal:
                return state
            repaired = self.constraint_engine.enforce_orthogonal_constraints(
                state.control_points, geometry.source, geometry.target
            )
        except GeometryError as exc:
            logger.warning("Edge %s could not be repaired: %s", edge_id, exc)
            return state

        new_state = state.with_control_points(
            repaired, self._routing_type(geometry.source, repaired, geometry.target)
        )
        self.sink.commit(edge_id, new_state)
        logger.info(
            "Rerouted edge %s: %d -> %d control points",
            edge_id,
            len(state.control_points),
            len(repaired),
        )
        return new_state

    def begin_segment_drag(
        self,
        edge_id: str,
        state: EdgeRoutingState,
        geometry: EdgeGeometry,
        pointer: Point,
        snap_to_grid: bool = False,
    ) -> Optional[SegmentDragState]:
        """
        Start dragging the segment under the pointer.

        Returns:
            The new drag state, or None when no segment midpoint is within
            reach of the pointer.

        Raises:
            DragStateError: If a gesture is already active on this edge.
        """
        if edge_id in self._drags:
            raise DragStateError(f"Edge {edge_id} already has an active drag")

        try:
            control_points = self._effective_control_points(state, geometry)
            handler = SegmentDragHandler(self.config, self.constraint_engine)
            segments = handler.calculate_segments(
                control_points, geometry.source, geometry.target
            )
            segment = handler.find_target_segment(pointer, segments)
            if segment is None:
                return None
            drag_state = handler.start_segment_drag(
                segment,
                pointer,
                control_points,
                geometry.source,
                geometry.target,
                geometry.source_side,
                geometry.target_side,
                snap_to_grid,
            )
        except GeometryError as exc:
            logger.warning("Edge %s cannot be dragged: %s", edge_id, exc)
            return None

        self._drags[edge_id] = _ActiveDrag(
            handler=handler,
            state=state,
            geometry=geometry,
            throttle=FrameThrottle(self.config.frame_interval_ms, self._clock),
        )
        return drag_state

    def pointer_move(self, edge_id: str, pointer: Point) -> Optional[SegmentDragState]:
        """
        Feed a pointer sample to the edge's gesture.

        Returns:
            The updated drag state, or None if the sample was dropped by the
            frame throttle.

        Raises:
            DragStateError: If no gesture is active on this edge.
        """
        drag = self._require_drag(edge_id)
        if not drag.throttle.ready():
            return None
        return drag.handler.update_segment_drag(pointer)

    def end_segment_drag(
        self, edge_id: str, pointer: Optional[Point] = None
    ) -> EdgeRoutingState:
        """
        Finish the gesture on an edge and commit its result.

        Args:
            edge_id: Edge being dragged.
            pointer: Release position; applied without throttling.

        Returns:
            The committed state, or the untouched stored state when the
            gesture was cancelled because nothing moved.

        Raises:
            DragStateError: If no gesture is active on this edge.
        """
        drag = self._require_drag(edge_id)
        try:
            if pointer is not None:
                drag.handler.update_segment_drag(pointer)
            result = drag.handler.end_segment_drag()
        finally:
            self._drags.pop(edge_id, None)

        if not result.committed:
            return drag.state

        geometry = drag.geometry
        new_state = drag.state.with_control_points(
            result.control_points,
            self._routing_type(geometry.source, result.control_points, geometry.target),
        )
        self.sink.commit(edge_id, new_state)
        logger.info(
            "Committed drag on edge %s (%s): %d control points",
            edge_id,
            result.segment_id,
            len(result.control_points),
        )
        return new_state

    def cancel_segment_drag(self, edge_id: str) -> None:
        """Discard the gesture on an edge; a no-op when there is none."""
        drag = self._drags.pop(edge_id, None)
        if drag is not None:
            drag.handler.cancel_segment_drag()

    def is_dragging(self, edge_id: str) -> bool:
        return edge_id in self._drags

    def _require_drag(self, edge_id: str) -> _ActiveDrag:
        drag = self._drags.get(edge_id)
        if drag is None:
            raise DragStateError(f"No drag in progress on edge {edge_id}")
        return drag

    def _effective_control_points(
        self, state: EdgeRoutingState, geometry: EdgeGeometry
    ) -> List[Point]:
        if not state.control_points:
            return self.engine.default_control_points(
                geometry.source,
                geometry.target,
                geometry.source_side,
                geometry.target_side,
            )
        validation = self.constraint_engine.validate_orthogonal_path(
            state.control_points, geometry.source, geometry.target
        )
        if not validation.is_orthogonal:
            return self.constraint_engine.enforce_orthogonal_constraints(
                state.control_points, geometry.source, geometry.target
            )
        # Matches the segments SegmentDragHandler.calculate_segments returns
        merged = simplify_points([geometry.source, *state.control_points, geometry.target])
        return merged[1:-1]

    def _routing_type(
        self, source: Point, control_points: List[Point], target: Point
    ) -> RoutingType:
        following = control_points[0] if control_points else target
        try:
            return RoutingType.from_direction(direction_between(source, following))
        except GeometryError:
            return RoutingType.HORIZONTAL_FIRST

    def _fallback(self, edge_id: str, geometry: EdgeGeometry) -> RenderedEdge:
        path = self.path_calculator.straight_line_path(geometry.source, geometry.target)
        return RenderedEdge(
            edge_id=edge_id,
            svg_path=path.svg_path,
            control_points=[],
            segments=path.segments,
            midpoints=[],
            points=[geometry.source, geometry.target],
            is_fallback=True,
        )
