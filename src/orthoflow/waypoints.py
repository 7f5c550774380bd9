"""
Waypoint management for segment drags.

Moving the first or last segment of a path would pull it off the fixed
source or target handle. The waypoint manager detects that case and
inserts a bridge waypoint so the path stays attached: the dragged segment
becomes an interior segment and a new leg connects it back to the handle.

When the handle's side is known and the new leg would leave the node
parallel to that side, a short stub perpendicular to the side is added as
well, so the leg touching the node stays perpendicular to it.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .config import RoutingConfig
from .geometry import (
    Direction,
    Point,
    Segment,
    Side,
    are_points_collinear,
    points_equal,
    same_coordinate,
)
from .models import HandleType
from .path_calculator import move_segment

logger = logging.getLogger(__name__)


@dataclass
class ConnectionAnalysis:
    """
    Effect of moving a segment on the path's attachment to its handles.

    Attributes:
        would_disconnect: True if any handle would be left detached.
        affected_handles: Handles the moved segment would pull away from.
        required_bridge_segments: Legs that reconnect the moved segment.
    """

    would_disconnect: bool
    affected_handles: List[HandleType] = field(default_factory=list)
    required_bridge_segments: List[Segment] = field(default_factory=list)


@dataclass
class WaypointInsertionResult:
    """
    Control points after a segment move, with any bridges inserted.

    ``requires_insertion`` tells the caller that ``new_control_points``
    holds more points than a naive move would produce.
    """

    new_control_points: List[Point]
    inserted_waypoints: List[Point] = field(default_factory=list)
    modified_segments: List[str] = field(default_factory=list)
    requires_insertion: bool = False


def _perpendicular_coordinate(position: Point, direction: Direction) -> float:
    if direction is Direction.HORIZONTAL:
        return position.y
    return position.x


def _on_line(point: Point, direction: Direction, coordinate: float) -> Point:
    """Project a point onto the moved segment's line."""
    if direction is Direction.HORIZONTAL:
        return Point(point.x, coordinate)
    return Point(coordinate, point.y)


def _dominant_direction(start: Point, end: Point) -> Direction:
    if abs(end.x - start.x) > abs(end.y - start.y):
        return Direction.HORIZONTAL
    return Direction.VERTICAL


class OrthogonalWaypointManager:
    """Inserts and removes waypoints so dragged paths stay attached."""

    def __init__(self, config: Optional[RoutingConfig] = None):
        self.config = config or RoutingConfig()

    def analyze_connection_impact(
        self,
        segment_index: int,
        dragged_position: Point,
        control_points: Sequence[Point],
        source: Point,
        target: Point,
    ) -> ConnectionAnalysis:
        """
        Work out which handles a segment move would detach.

        Only a terminal segment touches a handle. It is detached when its
        line moves more than ``connection_tolerance`` away from the handle.
        """
        points = [source, *control_points, target]
        index = min(max(0, segment_index), len(points) - 2)
        segment = Segment(points[index], points[index + 1], index)
        direction = segment.direction
        coordinate = _perpendicular_coordinate(dragged_position, direction)
        last_index = len(points) - 2

        affected: List[HandleType] = []
        bridges: List[Segment] = []
        if index == 0:
            bridge = _on_line(source, direction, coordinate)
            if abs(coordinate - segment.position) > self.config.connection_tolerance:
                affected.append(HandleType.SOURCE)
                bridges.append(Segment(source, bridge, 0))
        if index == last_index:
            bridge = _on_line(target, direction, coordinate)
            if abs(coordinate - segment.position) > self.config.connection_tolerance:
                affected.append(HandleType.TARGET)
                bridges.append(Segment(bridge, target, last_index + 1))

        return ConnectionAnalysis(
            would_disconnect=bool(affected),
            affected_handles=affected,
            required_bridge_segments=bridges,
        )

    def insert_preservation_waypoints(
        self,
        segment_index: int,
        dragged_position: Point,
        control_points: Sequence[Point],
        source: Point,
        target: Point,
        is_preview: bool = False,
        source_side: Optional[Side] = None,
        target_side: Optional[Side] = None,
    ) -> WaypointInsertionResult:
        """
        Move a segment, inserting bridge waypoints where it would detach.

        Args:
            segment_index: Index of the dragged segment.
            dragged_position: Where the segment is being dragged to; only
                              the perpendicular coordinate is used.
            control_points: Control points before the move.
            source: Fixed source point.
            target: Fixed target point.
            is_preview: Bridge a terminal segment even inside the connection
                        tolerance, so the point count stays stable while a
                        gesture is in progress. A preview at the
                        segment's own position adds no bridge.
            source_side: Side of the source handle, enables the stub.
            target_side: Side of the target handle, enables the stub.

        Returns:
            WaypointInsertionResult. Without insertion ``new_control_points``
            is the naive move of the segment's interior endpoints.
        """
        points = [source, *control_points, target]
        index = min(max(0, segment_index), len(points) - 2)
        last_index = len(points) - 2
        segment = Segment(points[index], points[index + 1], index)
        direction = segment.direction
        coordinate = _perpendicular_coordinate(dragged_position, direction)
        moved = move_segment(control_points, source, target, index, coordinate)

        analysis = self.analyze_connection_impact(
            index, dragged_position, control_points, source, target
        )
        affected = list(analysis.affected_handles)
        if is_preview:
            affected = []
            # An unmoved terminal segment is still attached
            if not same_coordinate(coordinate, segment.position):
                if index == 0:
                    affected.append(HandleType.SOURCE)
                if index == last_index:
                    affected.append(HandleType.TARGET)

        if not affected:
            return WaypointInsertionResult(new_control_points=moved)

        leading: List[Point] = []
        trailing: List[Point] = []
        modified: List[str] = []
        if HandleType.SOURCE in affected:
            leading = self._bridge(source, source_side, direction, coordinate)
            modified.extend(["segment-0", "segment-1"])
        if HandleType.TARGET in affected:
            trailing = list(
                reversed(self._bridge(target, target_side, direction, coordinate))
            )
            modified.extend([f"segment-{last_index}", f"segment-{last_index + 1}"])

        logger.debug(
            "Inserted %d bridge waypoints for segment-%d",
            len(leading) + len(trailing),
            index,
        )
        return WaypointInsertionResult(
            new_control_points=leading + moved + trailing,
            inserted_waypoints=leading + trailing,
            modified_segments=modified,
            requires_insertion=True,
        )

    def simplify_waypoints(
        self, control_points: Sequence[Point], tolerance: float = 5
    ) -> List[Point]:
        """Drop interior waypoints that lie on the line through their neighbours."""
        if len(control_points) <= 2:
            return list(control_points)

        simplified = [control_points[0]]
        for i in range(1, len(control_points) - 1):
            if not self.can_merge_waypoints(
                control_points[i - 1], control_points[i], control_points[i + 1], tolerance
            ):
                simplified.append(control_points[i])
        simplified.append(control_points[-1])
        return simplified

    def can_merge_waypoints(
        self, a: Point, b: Point, c: Point, tolerance: float = 5
    ) -> bool:
        """Check whether b is redundant between a and c."""
        return are_points_collinear(a, b, c, tolerance)

    def cleanup_waypoints(
        self, control_points: Sequence[Point], source: Point, target: Point
    ) -> List[Point]:
        """
        Remove waypoints a segment operation left behind.

        Duplicate points are dropped, then every point where the path keeps
        going in the same direction.
        """
        deduped = [source]
        for point in [*control_points, target]:
            if not points_equal(point, deduped[-1]):
                deduped.append(point)
        if len(deduped) < 2:
            deduped.append(target)

        cleaned = [deduped[0]]
        for i in range(1, len(deduped) - 1):
            incoming = _dominant_direction(cleaned[-1], deduped[i])
            outgoing = _dominant_direction(deduped[i], deduped[i + 1])
            if incoming is not outgoing:
                cleaned.append(deduped[i])
        return cleaned[1:]

    def _bridge(
        self,
        handle: Point,
        side: Optional[Side],
        direction: Direction,
        coordinate: float,
    ) -> List[Point]:
        """
        Waypoints leading from a handle out to the moved segment's line.

        Returned in order walking away from the handle.
        """
        if side is not None and side.axis is direction:
            dx, dy = side.outward
            standoff = self.config.terminal_standoff
            stub = handle.offset(dx * standoff, dy * standoff)
            return [stub, _on_line(stub, direction, coordinate)]
        return [_on_line(handle, direction, coordinate)]
