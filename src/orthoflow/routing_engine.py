"""
Orthogonal routing engine.

Computes axis-aligned (Manhattan-style) paths between two handles:

- The first leg leaves the source perpendicular to its side and the last
  leg reaches the target perpendicular to its side.
- A path turns at most twice: one turn for an L-shaped route, two for a
  Z/S-shaped route through a corridor halfway between the endpoints.
- Without side constraints the first leg follows the axis with the larger
  displacement; an exact tie goes horizontal-first.

Every computed path is simplified (duplicate points dropped, collinear legs
merged) so consecutive segments always alternate direction.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Sequence

from .config import RoutingConfig
from .geometry import (
    Direction,
    GeometryError,
    Point,
    Segment,
    Side,
    direction_between,
    ensure_finite,
    euclidean_distance,
    points_equal,
    same_coordinate,
)
from .models import HandleInfo, OrthogonalPath, RoutingMetrics, RoutingType

if TYPE_CHECKING:
    from .feedback import RoutingFeedbackSystem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoutingComparison:
    """Outcome of ranking two candidate paths."""

    selected_path: OrthogonalPath
    alternative_path: OrthogonalPath
    reason: str
    efficiency: float


def resolve_routing_type(
    dx: float, dy: float, preferred: Optional[RoutingType] = None
) -> RoutingType:
    """
    Pick the routing type for a displacement.

    An explicit preference wins. Otherwise the larger absolute displacement
    decides, and an exact tie resolves to horizontal-first.
    """
    if preferred is not None:
        return preferred
    if abs(dy) > abs(dx):
        return RoutingType.VERTICAL_FIRST
    return RoutingType.HORIZONTAL_FIRST


def simplify_points(points: Sequence[Point]) -> List[Point]:
    """
    Drop repeated points and interior points between collinear legs.

    The first and last points are always kept.
    """
    deduped: List[Point] = []
    for point in points:
        if deduped and points_equal(deduped[-1], point):
            continue
        deduped.append(point)
    if len(deduped) < 3:
        return deduped

    simplified = [deduped[0]]
    for i in range(1, len(deduped) - 1):
        incoming = direction_between(simplified[-1], deduped[i])
        outgoing = direction_between(deduped[i], deduped[i + 1])
        if incoming is not outgoing:
            simplified.append(deduped[i])
    simplified.append(deduped[-1])
    return simplified


def build_path(points: Sequence[Point]) -> OrthogonalPath:
    """
    Build a simplified OrthogonalPath through a point list.

    Args:
        points: Source, corner points, target. Every step must be
                axis-aligned.

    Raises:
        GeometryError: If a step is diagonal or the path has no length.
    """
    ensure_finite(*points)
    simplified = simplify_points(points)
    if len(simplified) < 2:
        raise GeometryError("Source and target coincide; no path to route")

    segments = [
        Segment(simplified[i], simplified[i + 1], i)
        for i in range(len(simplified) - 1)
    ]
    total_length = sum(segment.length for segment in segments)
    if total_length <= 0:
        raise GeometryError("Path has zero length")

    straight = euclidean_distance(simplified[0], simplified[-1])
    efficiency = 1.0 if len(segments) == 1 else min(straight / total_length, 1.0)

    return OrthogonalPath(
        segments=segments,
        total_length=total_length,
        routing_type=RoutingType.from_direction(segments[0].direction),
        efficiency=efficiency,
        control_points=[segment.end for segment in segments[:-1]],
    )


def route_points(
    source: Point,
    target: Point,
    source_side: Optional[Side] = None,
    target_side: Optional[Side] = None,
    preferred_routing: Optional[RoutingType] = None,
) -> List[Point]:
    """
    Corner-inclusive point list for the default route between two points.

    Aligned endpoints get a single straight leg. Otherwise the first and last
    leg directions come from the sides (or the routing type where a side is
    not given): different directions give an L, equal directions a Z/S
    through the midway corridor.
    """
    dx = target.x - source.x
    dy = target.y - source.y
    if same_coordinate(dx, 0) or same_coordinate(dy, 0):
        return [source, target]

    routing = resolve_routing_type(dx, dy, preferred_routing)
    first = source_side.axis if source_side is not None else routing.first_direction
    if target_side is not None:
        last = target_side.axis
    else:
        last = first.perpendicular()

    if first is not last:
        if first is Direction.HORIZONTAL:
            corner = Point(target.x, source.y)
        else:
            corner = Point(source.x, target.y)
        return [source, corner, target]

    if first is Direction.HORIZONTAL:
        corridor_x = (source.x + target.x) / 2
        return [
            source,
            Point(corridor_x, source.y),
            Point(corridor_x, target.y),
            target,
        ]
    corridor_y = (source.y + target.y) / 2
    return [
        source,
        Point(source.x, corridor_y),
        Point(target.x, corridor_y),
        target,
    ]


def straight_line_fallback(source: Point, target: Point) -> List[Point]:
    """Raw endpoints, drawn as a straight line when routing fails."""
    return [source, target]


class OrthogonalRoutingEngine:
    """
    Core engine for calculating orthogonal paths between node handles.

    Holds no mutable state: results depend only on the arguments, so the
    engine may be re-invoked any number of times per render.
    """

    def __init__(
        self,
        config: Optional[RoutingConfig] = None,
        feedback: Optional["RoutingFeedbackSystem"] = None,
    ):
        self.config = config or RoutingConfig()
        self.feedback = feedback

    def calculate_orthogonal_path_from_edge_coordinates(
        self,
        source_x: float,
        source_y: float,
        target_x: float,
        target_y: float,
        source_side: Optional[Side] = None,
        target_side: Optional[Side] = None,
        preferred_routing: Optional[RoutingType] = None,
    ) -> OrthogonalPath:
        """
        Compute the orthogonal path between two live endpoints.

        Args:
            source_x, source_y: Source handle position.
            target_x, target_y: Target handle position.
            source_side: Node side the source handle is on.
            target_side: Node side the target handle is on.
            preferred_routing: Force the first-leg direction where the sides
                               leave it open.

        Returns:
            A simplified OrthogonalPath.

        Raises:
            GeometryError: On non-finite or coincident endpoints. Callers
                           should fall back to a straight line.
        """
        source = Point(source_x, source_y)
        target = Point(target_x, target_y)
        ensure_finite(source, target)
        if points_equal(source, target):
            raise GeometryError("Source and target coincide; no path to route")

        points = route_points(
            source, target, source_side, target_side, preferred_routing
        )
        path = build_path(points)
        logger.debug(
            "Routed (%g, %g) -> (%g, %g): %d segments, %s",
            source_x,
            source_y,
            target_x,
            target_y,
            path.segment_count,
            path.routing_type.value,
        )
        return path

    def calculate_orthogonal_path(
        self,
        source_handle: HandleInfo,
        target_handle: HandleInfo,
        preferred_routing: Optional[RoutingType] = None,
    ) -> OrthogonalPath:
        """
        Compute the best orthogonal path between two handles.

        Both routing types are built. The preferred one is kept unless it is
        more than the configured threshold longer than the alternative;
        otherwise the comparison winner is used.
        """
        horizontal_first = self._path_for_handles(
            source_handle, target_handle, RoutingType.HORIZONTAL_FIRST
        )
        vertical_first = self._path_for_handles(
            source_handle, target_handle, RoutingType.VERTICAL_FIRST
        )

        if preferred_routing is not None:
            if preferred_routing is RoutingType.HORIZONTAL_FIRST:
                preferred, alternative = horizontal_first, vertical_first
            else:
                preferred, alternative = vertical_first, horizontal_first
            excess = (
                preferred.total_length - alternative.total_length
            ) / alternative.total_length
            if excess <= self.config.alternative_length_threshold:
                comparison = RoutingComparison(
                    selected_path=preferred,
                    alternative_path=alternative,
                    reason=(
                        f"{preferred_routing.value} routing kept as preferred "
                        f"({preferred.total_length:g} vs {alternative.total_length:g})"
                    ),
                    efficiency=preferred.efficiency,
                )
                self._report(comparison)
                return preferred

        comparison = self.compare_routing_options(
            horizontal_first, vertical_first, preferred_routing
        )
        self._report(comparison)
        return comparison.selected_path

    def compare_routing_options(
        self,
        path_a: OrthogonalPath,
        path_b: OrthogonalPath,
        preferred_routing: Optional[RoutingType] = None,
    ) -> RoutingComparison:
        """
        Rank two candidate paths.

        Shorter total length wins, then higher efficiency, then the path
        matching the preferred routing (horizontal-first when none is given).
        A complete tie keeps path_a.
        """
        preferred = preferred_routing or RoutingType.HORIZONTAL_FIRST

        if not same_coordinate(path_a.total_length, path_b.total_length):
            if path_a.total_length < path_b.total_length:
                selected, alternative = path_a, path_b
            else:
                selected, alternative = path_b, path_a
            reason = (
                f"{selected.routing_type.value} routing selected: shorter path "
                f"({selected.total_length:g} vs {alternative.total_length:g})"
            )
        elif not same_coordinate(path_a.efficiency, path_b.efficiency):
            if path_a.efficiency > path_b.efficiency:
                selected, alternative = path_a, path_b
            else:
                selected, alternative = path_b, path_a
            reason = (
                f"{selected.routing_type.value} routing selected: equal length, "
                f"higher efficiency ({selected.efficiency:.2f} vs "
                f"{alternative.efficiency:.2f})"
            )
        else:
            if (
                path_b.routing_type is preferred
                and path_a.routing_type is not preferred
            ):
                selected, alternative = path_b, path_a
            else:
                selected, alternative = path_a, path_b
            reason = (
                f"{selected.routing_type.value} routing selected: equal path "
                f"lengths, using tie-breaker rule"
            )

        return RoutingComparison(
            selected_path=selected,
            alternative_path=alternative,
            reason=reason,
            efficiency=selected.efficiency,
        )

    def generate_control_points(self, path: OrthogonalPath) -> List[Point]:
        """Corner points of a path, excluding the fixed endpoints."""
        return [segment.end for segment in path.segments[:-1]]

    def calculate_routing_metrics(
        self,
        path: OrthogonalPath,
        source_handle: HandleInfo,
        target_handle: HandleInfo,
    ) -> RoutingMetrics:
        """Read-only metrics snapshot of a path."""
        return RoutingMetrics(
            path_length=path.total_length,
            segment_count=path.segment_count,
            routing_type=path.routing_type,
            efficiency=path.efficiency,
            handle_combination=(
                f"{source_handle.node_id}:{source_handle.side.value} -> "
                f"{target_handle.node_id}:{target_handle.side.value}"
            ),
        )

    def default_control_points(
        self,
        source: Point,
        target: Point,
        source_side: Optional[Side] = None,
        target_side: Optional[Side] = None,
        preferred_routing: Optional[RoutingType] = None,
    ) -> List[Point]:
        """Control points of the default route for a freshly connected edge."""
        path = self.calculate_orthogonal_path_from_edge_coordinates(
            source.x,
            source.y,
            target.x,
            target.y,
            source_side,
            target_side,
            preferred_routing,
        )
        return self.generate_control_points(path)

    def _path_for_handles(
        self,
        source_handle: HandleInfo,
        target_handle: HandleInfo,
        routing_type: RoutingType,
    ) -> OrthogonalPath:
        return self.calculate_orthogonal_path_from_edge_coordinates(
            source_handle.position.x,
            source_handle.position.y,
            target_handle.position.x,
            target_handle.position.y,
            source_handle.side,
            target_handle.side,
            routing_type,
        )

    def _report(self, comparison: RoutingComparison) -> None:
        if self.feedback is not None:
            self.feedback.show_path_comparison(comparison)
