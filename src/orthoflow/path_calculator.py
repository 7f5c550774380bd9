"""
Path calculator: control points to renderable strokes and back.

Turns a source/target/control-point list into an SVG-style path command
string plus its segment list, and recovers control points from a segment
list. Two stroke styles are supported:

- ``orthogonal``: a plain polyline, one ``M`` then ``L`` per point.
- ``rounded``: every interior corner is blended with a circular arc
  (``A`` command). The radius is clamped to half of the shorter adjacent
  segment so an arc never overshoots a short leg.

Segments are never merged here: the segment list mirrors the point list
one to one, which makes ``extract_control_points_from_segments`` an exact
inverse of ``calculate_segments``.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

from .config import RoutingConfig
from .geometry import (
    Direction,
    Point,
    Segment,
    euclidean_distance,
    is_axis_aligned,
    path_length,
    segments_from_points,
)

logger = logging.getLogger(__name__)


class EdgeType(Enum):
    """Stroke style for an orthogonal edge."""

    ORTHOGONAL = "orthogonal"
    ROUNDED = "rounded"


@dataclass
class CalculatedPath:
    """
    A render-ready path.

    Attributes:
        svg_path: Path command string (``M``/``L``/``A`` commands).
        segments: One segment per consecutive point pair.
        total_length: Length of the polyline through the points.
        waypoints: Control points the path was built from.
    """

    svg_path: str
    segments: List[Segment] = field(default_factory=list)
    total_length: float = 0.0
    waypoints: List[Point] = field(default_factory=list)


def format_coordinate(value: float) -> str:
    """Compact number formatting for path commands."""
    if not math.isfinite(value):
        return str(value)
    value = round(value, 3)
    if value == int(value):
        return str(int(value))
    return repr(value)


def _xy(point: Point) -> str:
    return f"{format_coordinate(point.x)} {format_coordinate(point.y)}"


def move_segment(
    control_points: Sequence[Point],
    source: Point,
    target: Point,
    segment_index: int,
    position: float,
) -> List[Point]:
    """
    Naively translate one segment to a new perpendicular coordinate.

    Only the segment's interior endpoints move; the source and target stay
    where they are. Moving a terminal segment therefore produces a diagonal
    step next to the fixed endpoint, which the waypoint manager repairs.

    Args:
        control_points: Current control points.
        source: Fixed source point.
        target: Fixed target point.
        segment_index: Index of the segment in the point chain.
        position: New y for a horizontal segment, new x for a vertical one.

    Returns:
        The updated control point list.
    """
    points = [source, *control_points, target]
    if not 0 <= segment_index < len(points) - 1:
        raise IndexError(f"No segment {segment_index} in a {len(points)}-point path")

    direction = Segment(points[segment_index], points[segment_index + 1]).direction
    last = len(points) - 1
    for i in (segment_index, segment_index + 1):
        if i == 0 or i == last:
            continue
        point = points[i]
        if direction is Direction.HORIZONTAL:
            points[i] = Point(point.x, position)
        else:
            points[i] = Point(position, point.y)
    return points[1:-1]


class PathCalculator:
    """Builds stroke commands and segment lists from control points."""

    def __init__(self, config: Optional[RoutingConfig] = None):
        self.config = config or RoutingConfig()

    def calculate_path(
        self,
        source: Point,
        target: Point,
        control_points: Sequence[Point],
        edge_type: Union[EdgeType, str] = EdgeType.ORTHOGONAL,
        corner_radius: Optional[float] = None,
    ) -> CalculatedPath:
        """
        Build a render-ready path through the control points.

        Args:
            source: Source handle position.
            target: Target handle position.
            control_points: Corner points between source and target.
            edge_type: ``orthogonal`` for sharp corners, ``rounded`` for arcs.
            corner_radius: Arc radius for rounded corners.

        Returns:
            CalculatedPath with the command string and segment list.

        Raises:
            GeometryError: If a step between consecutive points is diagonal.
        """
        edge_type = EdgeType(edge_type)
        points = [source, *control_points, target]
        segments = self.calculate_segments(source, target, control_points)

        if edge_type is EdgeType.ROUNDED:
            svg_path = self._rounded_commands(points, self._radius(corner_radius))
        else:
            svg_path = self._polyline_commands(points)

        return CalculatedPath(
            svg_path=svg_path,
            segments=segments,
            total_length=path_length(points),
            waypoints=list(control_points),
        )

    def calculate_segments(
        self, source: Point, target: Point, control_points: Sequence[Point]
    ) -> List[Segment]:
        """One indexed segment per consecutive pair of points."""
        return segments_from_points([source, *control_points, target])

    def extract_control_points_from_segments(
        self, segments: Sequence[Segment]
    ) -> List[Point]:
        """Recover control points: every segment end except the last."""
        return [segment.end for segment in segments[:-1]]

    def calculate_segment_midpoints(self, segments: Sequence[Segment]) -> List[Point]:
        """Midpoints of each segment, used to place drag affordances."""
        return [segment.midpoint for segment in segments]

    def update_path_after_segment_drag(
        self,
        source: Point,
        target: Point,
        control_points: Sequence[Point],
        segment_index: int,
        position: float,
        edge_type: Union[EdgeType, str] = EdgeType.ORTHOGONAL,
        corner_radius: Optional[float] = None,
    ) -> CalculatedPath:
        """
        Rebuild the path with one segment moved to a new coordinate.

        Raises:
            GeometryError: If the move detaches a terminal segment. Use the
                           waypoint manager to keep terminal segments attached.
        """
        updated = move_segment(
            control_points, source, target, segment_index, position
        )
        return self.calculate_path(source, target, updated, edge_type, corner_radius)

    def straight_line_path(self, source: Point, target: Point) -> CalculatedPath:
        """
        Fallback stroke straight from source to target.

        The segment list is empty when the line is diagonal, since a
        diagonal can't be a Segment.
        """
        segments = []
        if source.is_finite() and target.is_finite() and is_axis_aligned(source, target):
            segments = [Segment(source, target, 0)]
        logger.debug("Straight-line fallback from %s to %s", source, target)
        return CalculatedPath(
            svg_path=f"M {_xy(source)} L {_xy(target)}",
            segments=segments,
            total_length=euclidean_distance(source, target),
            waypoints=[],
        )

    def sample_points(
        self,
        source: Point,
        target: Point,
        control_points: Sequence[Point],
        edge_type: Union[EdgeType, str] = EdgeType.ORTHOGONAL,
        corner_radius: Optional[float] = None,
        arc_steps: int = 8,
    ) -> List[Point]:
        """
        Polyline approximation of the stroke, for raster output.

        Sharp corners come back as-is; each rounded corner is replaced by
        ``arc_steps`` points along its arc.
        """
        points = [source, *control_points, target]
        if EdgeType(edge_type) is not EdgeType.ROUNDED:
            return points

        radius = self._radius(corner_radius)
        sampled = [points[0]]
        for i in range(1, len(points) - 1):
            arc = _corner_arc(points[i - 1], points[i], points[i + 1], radius)
            if arc is None:
                sampled.append(points[i])
                continue
            arc_start, arc_end, r, _ = arc
            # Centre sits one radius from the arc start along the outgoing leg
            centre = Point(
                arc_start.x + arc_end.x - points[i].x,
                arc_start.y + arc_end.y - points[i].y,
            )
            a0 = math.atan2(arc_start.y - centre.y, arc_start.x - centre.x)
            a1 = math.atan2(arc_end.y - centre.y, arc_end.x - centre.x)
            sweep = (a1 - a0 + math.pi) % (2 * math.pi) - math.pi
            for step in range(arc_steps + 1):
                angle = a0 + sweep * step / arc_steps
                sampled.append(
                    Point(centre.x + r * math.cos(angle), centre.y + r * math.sin(angle))
                )
        sampled.append(points[-1])
        return sampled

    def _radius(self, corner_radius: Optional[float]) -> float:
        if corner_radius is None:
            return self.config.default_corner_radius
        return corner_radius

    def _polyline_commands(self, points: Sequence[Point]) -> str:
        commands = [f"M {_xy(points[0])}"]
        commands.extend(f"L {_xy(point)}" for point in points[1:])
        return " ".join(commands)

    def _rounded_commands(self, points: Sequence[Point], radius: float) -> str:
        commands = [f"M {_xy(points[0])}"]
        for i in range(1, len(points) - 1):
            arc = _corner_arc(points[i - 1], points[i], points[i + 1], radius)
            if arc is None:
                commands.append(f"L {_xy(points[i])}")
                continue
            arc_start, arc_end, r, sweep = arc
            commands.append(f"L {_xy(arc_start)}")
            commands.append(
                f"A {format_coordinate(r)} {format_coordinate(r)} 0 0 {sweep} "
                f"{_xy(arc_end)}"
            )
        commands.append(f"L {_xy(points[-1])}")
        return " ".join(commands)


def _corner_arc(
    previous: Point, corner: Point, following: Point, radius: float
) -> Optional[Tuple[Point, Point, float, int]]:
    """
    Arc blending one corner: (arc start, arc end, radius, sweep flag).

    The radius is clamped to half of each adjacent leg. Returns None for a
    straight or reversing corner, or when the clamped radius is zero.
    """
    incoming = euclidean_distance(previous, corner)
    outgoing = euclidean_distance(corner, following)
    r = min(radius, incoming / 2, outgoing / 2)

    v1 = (corner.x - previous.x, corner.y - previous.y)
    v2 = (following.x - corner.x, following.y - corner.y)
    cross = v1[0] * v2[1] - v1[1] * v2[0]
    if r <= 0 or math.isclose(cross, 0.0, abs_tol=1e-9):
        return None

    arc_start = Point(corner.x - v1[0] / incoming * r, corner.y - v1[1] / incoming * r)
    arc_end = Point(corner.x + v2[0] / outgoing * r, corner.y + v2[1] / outgoing * r)
    # y grows downwards, so a positive cross product is a clockwise turn
    sweep = 1 if cross > 0 else 0
    return arc_start, arc_end, r, sweep
