"""
Segment drag gestures.

A SegmentDragHandler runs one drag gesture at a time through the states

    IDLE -> DRAGGING -> COMMITTED
                     -> CANCELLED

While dragging, every pointer update clamps the segment into its legal
range and produces candidate control points (never persisted). Ending the
gesture runs a final repair pass and hands the result back for commit;
cancelling discards everything.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Sequence

from .config import RoutingConfig
from .constraints import OrthogonalConstraintEngine
from .geometry import (
    Direction,
    Point,
    Segment,
    Side,
    euclidean_distance,
    points_equal,
    segments_from_points,
    snap_to_grid,
)
from .models import SegmentDragConstraints, SegmentDragState
from .path_calculator import move_segment
from .waypoints import OrthogonalWaypointManager

logger = logging.getLogger(__name__)


class DragStateError(RuntimeError):
    """Raised when the drag state machine is driven out of order."""

    pass


class DragPhase(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    COMMITTED = "committed"
    CANCELLED = "cancelled"


@dataclass
class DragResult:
    """
    Outcome of ending a gesture.

    Attributes:
        control_points: Final control points when committed, the untouched
                        original list when cancelled.
        committed: False when the gesture was cancelled.
        requires_insertion: Whether bridge waypoints were inserted.
        segment_id: Segment the gesture moved.
    """

    control_points: List[Point] = field(default_factory=list)
    committed: bool = False
    requires_insertion: bool = False
    segment_id: Optional[str] = None


@dataclass
class _Gesture:
    segment: Segment
    original_control_points: List[Point]
    control_points: List[Point]
    source: Point
    target: Point
    constraints: SegmentDragConstraints
    source_side: Optional[Side] = None
    target_side: Optional[Side] = None


class SegmentDragHandler:
    """
    Drives drag gestures on the segments of one edge.

    One handler serves one edge; only one gesture can be active on it.
    """

    def __init__(
        self,
        config: Optional[RoutingConfig] = None,
        constraint_engine: Optional[OrthogonalConstraintEngine] = None,
        waypoint_manager: Optional[OrthogonalWaypointManager] = None,
    ):
        self.config = config or RoutingConfig()
        self.constraint_engine = constraint_engine or OrthogonalConstraintEngine(
            self.config
        )
        self.waypoint_manager = waypoint_manager or OrthogonalWaypointManager(
            self.config
        )
        self.phase = DragPhase.IDLE
        self._gesture: Optional[_Gesture] = None
        self._state: Optional[SegmentDragState] = None

    def calculate_segments(
        self, control_points: Sequence[Point], source: Point, target: Point
    ) -> List[Segment]:
        """
        Draggable segments of a path.

        Collinear runs are merged first, so each returned segment is one
        visible leg and its index matches the cleaned point list.
        """
        cleaned = self.waypoint_manager.cleanup_waypoints(control_points, source, target)
        return segments_from_points([source, *cleaned, target])

    def is_near_segment_midpoint(
        self, point: Point, segment: Segment, threshold: Optional[float] = None
    ) -> bool:
        if threshold is None:
            threshold = self.config.segment_hit_threshold
        return euclidean_distance(point, segment.midpoint) <= threshold

    def find_target_segment(
        self, point: Point, segments: Sequence[Segment]
    ) -> Optional[Segment]:
        """First segment whose midpoint is within the hit threshold."""
        for segment in segments:
            if self.is_near_segment_midpoint(point, segment):
                return segment
        return None

    def start_segment_drag(
        self,
        segment: Segment,
        pointer: Point,
        control_points: Sequence[Point],
        source: Point,
        target: Point,
        source_side: Optional[Side] = None,
        target_side: Optional[Side] = None,
        snap_to_grid: bool = False,
    ) -> SegmentDragState:
        """
        Begin dragging a segment.

        Args:
            segment: Segment picked from ``calculate_segments``.
            pointer: Pointer position at gesture start.
            control_points: Stored control points of the edge.
            source: Current source point.
            target: Current target point.
            source_side: Side of the source handle, if known.
            target_side: Side of the target handle, if known.
            snap_to_grid: Move in grid steps.

        Raises:
            DragStateError: If a gesture is already active.
        """
        if self.phase is DragPhase.DRAGGING:
            raise DragStateError(
                f"Cannot start dragging {segment.id}: another gesture is active"
            )

        cleaned = self.waypoint_manager.cleanup_waypoints(control_points, source, target)
        segments = segments_from_points([source, *cleaned, target])
        if segment.index >= len(segments):
            raise DragStateError(f"{segment.id} is not part of this path")

        constraints = self.constraint_engine.calculate_segment_constraints(
            segment, segments, source, target, snap_to_grid
        )
        self._gesture = _Gesture(
            segment=segment,
            original_control_points=list(control_points),
            control_points=cleaned,
            source=source,
            target=target,
            constraints=constraints,
            source_side=source_side,
            target_side=target_side,
        )
        midpoint = segment.midpoint
        self._state = SegmentDragState(
            segment_id=segment.id,
            start_position=midpoint,
            current_position=pointer,
            constrained_position=midpoint,
            drag_offset=Point(pointer.x - midpoint.x, pointer.y - midpoint.y),
            control_points=list(cleaned),
        )
        self.phase = DragPhase.DRAGGING
        logger.debug("Started dragging %s", segment.id)
        return self._state

    def update_segment_drag(
        self,
        pointer: Point,
        segment: Optional[Segment] = None,
        constraints: Optional[SegmentDragConstraints] = None,
    ) -> SegmentDragState:
        """
        Move the dragged segment towards the pointer.

        The pointer's perpendicular coordinate (less the grab offset) is
        snapped to the grid when asked for, then clamped into the legal
        range. The neighbouring segments stretch to follow, with bridge
        waypoints keeping terminal segments attached.

        Args:
            pointer: Latest pointer position.
            segment: Segment being dragged; defaults to the one started.
            constraints: Legal range; defaults to the one computed at start.

        Raises:
            DragStateError: If no gesture is active or the segment differs.
        """
        gesture = self._require_gesture()
        if segment is not None and segment.id != gesture.segment.id:
            raise DragStateError(
                f"Gesture is on {gesture.segment.id}, not {segment.id}"
            )
        segment = gesture.segment
        constraints = constraints or gesture.constraints
        state = self._state

        if segment.direction is Direction.HORIZONTAL:
            wanted = pointer.y - state.drag_offset.y
            start = state.start_position.y
        else:
            wanted = pointer.x - state.drag_offset.x
            start = state.start_position.x
        if constraints.snap_to_grid:
            wanted = start + snap_to_grid(wanted - start, self.config.grid_size)
        coordinate = constraints.clamp(wanted)

        midpoint = segment.midpoint
        if segment.direction is Direction.HORIZONTAL:
            constrained = Point(midpoint.x, coordinate)
        else:
            constrained = Point(coordinate, midpoint.y)

        insertion = self.waypoint_manager.insert_preservation_waypoints(
            segment.index,
            constrained,
            gesture.control_points,
            gesture.source,
            gesture.target,
            is_preview=True,
            source_side=gesture.source_side,
            target_side=gesture.target_side,
        )
        self._state = replace(
            state,
            current_position=pointer,
            constrained_position=constrained,
            control_points=insertion.new_control_points,
            requires_insertion=insertion.requires_insertion,
        )
        return self._state

    def calculate_updated_control_points(
        self,
        control_points: Sequence[Point],
        segment: Segment,
        new_position: Point,
        source: Point,
        target: Point,
    ) -> List[Point]:
        """
        Naive move: shift the segment's interior endpoints to the new line.

        Terminal segments are left detached; see
        ``OrthogonalWaypointManager.insert_preservation_waypoints``.
        """
        if segment.direction is Direction.HORIZONTAL:
            coordinate = new_position.y
        else:
            coordinate = new_position.x
        return move_segment(control_points, source, target, segment.index, coordinate)

    def end_segment_drag(self) -> DragResult:
        """
        Finish the gesture.

        A gesture that never moved the segment is cancelled. Otherwise the
        final control points are computed without preview bridges, cleaned
        up and repaired, and the gesture is committed.

        Raises:
            DragStateError: If no gesture is active.
        """
        gesture = self._require_gesture()
        state = self._state

        if points_equal(state.constrained_position, state.start_position):
            logger.debug("Drag on %s ended without movement", gesture.segment.id)
            self.cancel_segment_drag()
            return DragResult(
                control_points=list(gesture.original_control_points),
                committed=False,
                segment_id=gesture.segment.id,
            )

        insertion = self.waypoint_manager.insert_preservation_waypoints(
            gesture.segment.index,
            state.constrained_position,
            gesture.control_points,
            gesture.source,
            gesture.target,
            is_preview=False,
            source_side=gesture.source_side,
            target_side=gesture.target_side,
        )
        cleaned = self.waypoint_manager.cleanup_waypoints(
            insertion.new_control_points, gesture.source, gesture.target
        )
        final = self.constraint_engine.enforce_orthogonal_constraints(
            cleaned, gesture.source, gesture.target
        )

        self.phase = DragPhase.COMMITTED
        self._gesture = None
        self._state = None
        logger.debug(
            "Committed drag on %s with %d control points", gesture.segment.id, len(final)
        )
        return DragResult(
            control_points=final,
            committed=True,
            requires_insertion=insertion.requires_insertion,
            segment_id=gesture.segment.id,
        )

    def cancel_segment_drag(self) -> None:
        """Discard the active gesture, if any. Never touches stored state."""
        if self.phase is DragPhase.DRAGGING:
            self.phase = DragPhase.CANCELLED
        self._gesture = None
        self._state = None

    def get_current_drag_state(self) -> Optional[SegmentDragState]:
        return self._state

    def is_dragging(self) -> bool:
        return self.phase is DragPhase.DRAGGING

    def _require_gesture(self) -> _Gesture:
        if self.phase is not DragPhase.DRAGGING or self._gesture is None:
            raise DragStateError("No segment drag in progress")
        return self._gesture
