"""
Orthogonal constraint engine.

Validates stored control points against the current source and target,
repairs them when a node move has broken them, and computes how far a
single segment may be dragged.

Classes:
    OrthogonalValidation: Result of checking a control point list.
    MovementCheck: Result of checking one proposed segment move.
    PathIntersections: Segments a moved segment would cross.
    OrthogonalConstraintEngine: The validation/repair/drag-range service.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .config import RoutingConfig
from .geometry import (
    EPSILON,
    Direction,
    Point,
    Segment,
    ensure_finite,
    is_axis_aligned,
    points_equal,
    same_coordinate,
    snap_to_grid,
)
from .models import SegmentDragConstraints
from .routing_engine import route_points, simplify_points

logger = logging.getLogger(__name__)


@dataclass
class OrthogonalValidation:
    """
    Outcome of validating a control point list.

    Attributes:
        is_orthogonal: True when every step is axis-aligned and non-empty.
        non_orthogonal_segments: Indices of diagonal steps.
        zero_length_segments: Indices of steps between coincident points.
        correction_suggestions: Human-readable notes, one per problem.
    """

    is_orthogonal: bool
    non_orthogonal_segments: List[int] = field(default_factory=list)
    zero_length_segments: List[int] = field(default_factory=list)
    correction_suggestions: List[str] = field(default_factory=list)


@dataclass
class MovementCheck:
    """Outcome of checking a proposed perpendicular move for one segment."""

    is_valid: bool
    adjusted_position: float
    violated_constraints: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)


@dataclass
class PathIntersections:
    has_intersections: bool
    intersecting_segments: List[str] = field(default_factory=list)


def _perpendicular_coordinate(point: Point, direction: Direction) -> float:
    """y for a horizontal segment, x for a vertical one."""
    if direction is Direction.HORIZONTAL:
        return point.y
    return point.x


def _ranges_overlap(a1: float, a2: float, b1: float, b2: float) -> bool:
    return min(a1, a2) <= max(b1, b2) + EPSILON and min(b1, b2) <= max(a1, a2) + EPSILON


def segments_intersect(first: Segment, second: Segment) -> bool:
    """Check whether two axis-aligned segments touch or cross."""
    if first.direction is second.direction:
        if not same_coordinate(first.position, second.position):
            return False
        if first.direction is Direction.HORIZONTAL:
            return _ranges_overlap(first.start.x, first.end.x, second.start.x, second.end.x)
        return _ranges_overlap(first.start.y, first.end.y, second.start.y, second.end.y)

    horizontal, vertical = (
        (first, second) if first.direction is Direction.HORIZONTAL else (second, first)
    )
    return _ranges_overlap(
        horizontal.start.x, horizontal.end.x, vertical.position, vertical.position
    ) and _ranges_overlap(
        vertical.start.y, vertical.end.y, horizontal.position, horizontal.position
    )


class OrthogonalConstraintEngine:
    """
    Keeps control point lists orthogonal.

    Stateless; configuration only tunes gaps, standoffs and the grid.
    """

    def __init__(self, config: Optional[RoutingConfig] = None):
        self.config = config or RoutingConfig()

    def validate_orthogonal_path(
        self,
        control_points: Sequence[Point],
        source: Point,
        target: Point,
    ) -> OrthogonalValidation:
        """
        Check whether source, control points and target form a legal path.

        Every consecutive pair must share exactly one coordinate: a step that
        changes both is diagonal, a step that changes neither has zero
        length. Non-finite coordinates count as diagonal. The input is never
        modified.
        """
        points = [source, *control_points, target]
        non_orthogonal: List[int] = []
        zero_length: List[int] = []
        suggestions: List[str] = []

        for i in range(len(points) - 1):
            start, end = points[i], points[i + 1]
            if not start.is_finite() or not end.is_finite():
                non_orthogonal.append(i)
                suggestions.append(f"Drop non-finite point at segment {i}")
            elif points_equal(start, end):
                zero_length.append(i)
                suggestions.append(f"Remove duplicate point at segment {i}")
            elif not is_axis_aligned(start, end):
                non_orthogonal.append(i)
                if abs(end.x - start.x) > abs(end.y - start.y):
                    hint = f"({end.x}, {start.y})"
                else:
                    hint = f"({start.x}, {end.y})"
                suggestions.append(f"Snap segment {i} end to {hint}")

        return OrthogonalValidation(
            is_orthogonal=not non_orthogonal and not zero_length,
            non_orthogonal_segments=non_orthogonal,
            zero_length_segments=zero_length,
            correction_suggestions=suggestions,
        )

    def enforce_orthogonal_constraints(
        self,
        control_points: Sequence[Point],
        source: Point,
        target: Point,
    ) -> List[Point]:
        """
        Repair a control point list so it forms a legal orthogonal path.

        A valid list is returned unchanged, which makes the repair
        idempotent. Otherwise each point is snapped to the nearer
        axis-aligned position relative to the previous (already repaired)
        point; when both are equally near the step becomes horizontal. The
        last point is then slid along its own step until it lines up with
        the target, duplicates are dropped and corners left on a straight
        run are merged away.

        Raises:
            GeometryError: If source or target is not finite.
        """
        if self.validate_orthogonal_path(control_points, source, target).is_orthogonal:
            return list(control_points)

        ensure_finite(source, target)
        snapped: List[Point] = []
        previous = source
        for point in control_points:
            if not point.is_finite():
                continue
            dx = abs(point.x - previous.x)
            dy = abs(point.y - previous.y)
            if dx < dy:
                repaired = Point(previous.x, point.y)
            else:
                repaired = Point(point.x, previous.y)
            snapped.append(repaired)
            previous = repaired

        if snapped:
            last = snapped[-1]
            if not is_axis_aligned(last, target):
                before = snapped[-2] if len(snapped) > 1 else source
                if same_coordinate(last.y, before.y):
                    snapped[-1] = Point(target.x, last.y)
                else:
                    snapped[-1] = Point(last.x, target.y)
        elif not is_axis_aligned(source, target):
            snapped = [Point(target.x, source.y)]

        repaired_points = self._drop_duplicates(source, snapped, target)
        if self.validate_orthogonal_path(repaired_points, source, target).is_orthogonal:
            # Snapping can leave a corner on a straight run
            repaired_points = simplify_points([source, *repaired_points, target])[1:-1]
        elif points_equal(source, target):
            repaired_points = []
        else:
            repaired_points = route_points(source, target)[1:-1]

        logger.info(
            "Repaired %d control points into %d", len(control_points), len(repaired_points)
        )
        return repaired_points

    def calculate_segment_constraints(
        self,
        segment: Segment,
        all_segments: Sequence[Segment],
        source: Point,
        target: Point,
        snap_to_grid: bool = False,
    ) -> SegmentDragConstraints:
        """
        Legal perpendicular range for dragging one segment.

        Each neighbour's far end bounds the range from its side, keeping
        ``min_neighbor_gap`` so the neighbour never collapses. A neighbour
        attached to the source or target keeps ``terminal_standoff`` from
        the node instead. A direction nothing bounds gets
        ``max_drag_distance``. The segment's current position always lies in
        the range.

        Args:
            segment: Segment being dragged.
            all_segments: Every segment of the path, in order.
            source: Source point of the path.
            target: Target point of the path.
            snap_to_grid: Whether moves snap to the grid before clamping.

        Returns:
            SegmentDragConstraints in absolute canvas coordinates.
        """
        direction = segment.direction
        current = segment.position
        index = segment.index
        last_index = len(all_segments) - 1
        low, high = -math.inf, math.inf

        neighbours = []
        if index > 0:
            far_end = source if index - 1 == 0 else all_segments[index - 1].start
            gap = (
                self.config.terminal_standoff
                if index - 1 == 0
                else self.config.min_neighbor_gap
            )
            neighbours.append((far_end, gap))
        if index < last_index:
            far_end = target if index + 1 == last_index else all_segments[index + 1].end
            gap = (
                self.config.terminal_standoff
                if index + 1 == last_index
                else self.config.min_neighbor_gap
            )
            neighbours.append((far_end, gap))

        for far_end, gap in neighbours:
            bound = _perpendicular_coordinate(far_end, direction)
            if bound < current - EPSILON:
                low = max(low, bound + gap)
            elif bound > current + EPSILON:
                high = min(high, bound - gap)

        if low == -math.inf:
            low = current - self.config.max_drag_distance
        if high == math.inf:
            high = current + self.config.max_drag_distance
        low = min(low, current)
        high = max(high, current)

        return SegmentDragConstraints(
            min_offset=low,
            max_offset=high,
            axis="y" if direction is Direction.HORIZONTAL else "x",
            snap_to_grid=snap_to_grid,
        )

    def apply_movement_constraints(
        self,
        segment: Segment,
        proposed_position: float,
        constraints: SegmentDragConstraints,
    ) -> MovementCheck:
        """
        Bring a proposed perpendicular coordinate into the legal range.

        Snaps to the grid first when the constraints ask for it, then
        clamps into ``[min_offset, max_offset]``.
        """
        position = proposed_position
        violated: List[str] = []
        suggestions: List[str] = []

        if constraints.snap_to_grid:
            position = snap_to_grid(position, self.config.grid_size)
        if not constraints.contains(position):
            position = constraints.clamp(position)
            violated.append("drag-range")
            suggestions.append(
                f"Movement limited to {constraints.min_offset:g}..{constraints.max_offset:g}"
            )
        if abs(position - segment.position) > self.config.max_drag_distance:
            violated.append("maximum-distance")
            suggestions.append(
                f"Movement limited to {self.config.max_drag_distance:g}px"
            )

        return MovementCheck(
            is_valid=not violated,
            adjusted_position=position,
            violated_constraints=violated,
            suggestions=suggestions,
        )

    def validate_segment_movement(
        self,
        segment_id: str,
        new_position: float,
        all_segments: Sequence[Segment],
        source: Point,
        target: Point,
    ) -> MovementCheck:
        """Check a move of the segment with the given id."""
        segment = next((s for s in all_segments if s.id == segment_id), None)
        if segment is None:
            return MovementCheck(
                is_valid=False,
                adjusted_position=new_position,
                violated_constraints=["segment-not-found"],
                suggestions=["Invalid segment ID"],
            )
        constraints = self.calculate_segment_constraints(
            segment, all_segments, source, target
        )
        return self.apply_movement_constraints(segment, new_position, constraints)

    def check_path_intersections(
        self,
        segment_id: str,
        new_position: float,
        all_segments: Sequence[Segment],
    ) -> PathIntersections:
        """
        Segments the given segment would touch after moving.

        Immediate neighbours are skipped: they stretch with the move rather
        than being crossed.
        """
        segment = next((s for s in all_segments if s.id == segment_id), None)
        if segment is None:
            return PathIntersections(False, [])

        if segment.direction is Direction.HORIZONTAL:
            moved = Segment(
                Point(segment.start.x, new_position),
                Point(segment.end.x, new_position),
                segment.index,
            )
        else:
            moved = Segment(
                Point(new_position, segment.start.y),
                Point(new_position, segment.end.y),
                segment.index,
            )

        hits = [
            other.id
            for other in all_segments
            if abs(other.index - segment.index) > 1 and segments_intersect(moved, other)
        ]
        return PathIntersections(bool(hits), hits)

    def _drop_duplicates(
        self, source: Point, control_points: List[Point], target: Point
    ) -> List[Point]:
        kept: List[Point] = []
        previous = source
        for point in control_points:
            if points_equal(point, previous):
                continue
            kept.append(point)
            previous = point
        while kept and points_equal(kept[-1], target):
            kept.pop()
        return kept
