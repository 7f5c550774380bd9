"""
Geometry primitives for orthogonal routing.

Points, axis-aligned segments, node sides and bounding boxes, plus the
small distance helpers shared by every routing service. Nothing here holds
state.

Coordinates are canvas pixels with y growing downwards, so a handle on the
``bottom`` side of a node points towards +y.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Sequence, Tuple

# Absolute tolerance for treating two coordinates as equal
EPSILON = 1e-9


class GeometryError(Exception):
    """Raised for non-finite or degenerate coordinates."""

    pass


class Direction(Enum):
    """Orientation of a path segment."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"

    def perpendicular(self) -> "Direction":
        """Return the other orientation."""
        if self is Direction.HORIZONTAL:
            return Direction.VERTICAL
        return Direction.HORIZONTAL


class Side(Enum):
    """Which side of a node a handle projects from."""

    TOP = "top"
    RIGHT = "right"
    BOTTOM = "bottom"
    LEFT = "left"

    @property
    def axis(self) -> Direction:
        """Direction of a segment leaving this side perpendicularly."""
        if self in (Side.LEFT, Side.RIGHT):
            return Direction.HORIZONTAL
        return Direction.VERTICAL

    @property
    def outward(self) -> Tuple[int, int]:
        """Unit vector pointing away from the node."""
        return {
            Side.TOP: (0, -1),
            Side.RIGHT: (1, 0),
            Side.BOTTOM: (0, 1),
            Side.LEFT: (-1, 0),
        }[self]

    @property
    def order(self) -> int:
        """Stable ordering used for tie-breaks (top, right, bottom, left)."""
        return [Side.TOP, Side.RIGHT, Side.BOTTOM, Side.LEFT].index(self)

    def opposite(self) -> "Side":
        """Get the opposite side."""
        return {
            Side.TOP: Side.BOTTOM,
            Side.BOTTOM: Side.TOP,
            Side.LEFT: Side.RIGHT,
            Side.RIGHT: Side.LEFT,
        }[self]


@dataclass(frozen=True)
class Point:
    """A canvas-space coordinate."""

    x: float
    y: float

    def offset(self, dx: float = 0, dy: float = 0) -> "Point":
        """Return a copy shifted by (dx, dy)."""
        return Point(self.x + dx, self.y + dy)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)


def same_coordinate(a: float, b: float) -> bool:
    """Check whether two coordinates are equal within EPSILON."""
    return abs(a - b) <= EPSILON


def points_equal(a: Point, b: Point) -> bool:
    """Check whether two points coincide within EPSILON."""
    return same_coordinate(a.x, b.x) and same_coordinate(a.y, b.y)


def is_axis_aligned(start: Point, end: Point) -> bool:
    """True when the step from start to end is purely horizontal or vertical."""
    return same_coordinate(start.x, end.x) or same_coordinate(start.y, end.y)


def direction_between(start: Point, end: Point) -> Direction:
    """
    Direction of the axis-aligned step from start to end.

    A zero-length step counts as horizontal.

    Raises:
        GeometryError: If the step is diagonal.
    """
    if same_coordinate(start.y, end.y):
        return Direction.HORIZONTAL
    if same_coordinate(start.x, end.x):
        return Direction.VERTICAL
    raise GeometryError(
        f"Segment ({start.x}, {start.y}) -> ({end.x}, {end.y}) is not axis-aligned"
    )


@dataclass(frozen=True)
class Segment:
    """
    One axis-aligned leg of an orthogonal path.

    Direction and length are derived from the endpoints, so a segment can
    never disagree with its own geometry. Construction fails for diagonal
    endpoints.

    Attributes:
        start: First point of the segment.
        end: Last point of the segment.
        index: Position of the segment in its path (0-based).
    """

    start: Point
    end: Point
    index: int = 0

    def __post_init__(self):
        ensure_finite(self.start, self.end)
        # Raises on diagonal endpoints
        direction_between(self.start, self.end)

    @property
    def id(self) -> str:
        return f"segment-{self.index}"

    @property
    def direction(self) -> Direction:
        return direction_between(self.start, self.end)

    @property
    def length(self) -> float:
        return abs(self.end.x - self.start.x) + abs(self.end.y - self.start.y)

    @property
    def midpoint(self) -> Point:
        return midpoint(self.start, self.end)

    @property
    def position(self) -> float:
        """Coordinate on the perpendicular axis (y for horizontal, x for vertical)."""
        if self.direction is Direction.HORIZONTAL:
            return self.start.y
        return self.start.x

    def with_index(self, index: int) -> "Segment":
        return Segment(self.start, self.end, index)


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box occupied by a node."""

    x: float
    y: float
    width: float
    height: float

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    def contains(self, point: Point) -> bool:
        """Check whether a point lies inside or on the box."""
        return self.x <= point.x <= self.x2 and self.y <= point.y <= self.y2

    def side_point(self, side: Side, fraction: float = 0.5) -> Point:
        """
        Point on a side of the box.

        Args:
            side: Which side of the box.
            fraction: Position along the side, 0.0 at the top/left end.
        """
        if side is Side.TOP:
            return Point(self.x + self.width * fraction, self.y)
        if side is Side.BOTTOM:
            return Point(self.x + self.width * fraction, self.y2)
        if side is Side.LEFT:
            return Point(self.x, self.y + self.height * fraction)
        return Point(self.x2, self.y + self.height * fraction)

    def translated(self, dx: float, dy: float) -> "BoundingBox":
        return BoundingBox(self.x + dx, self.y + dy, self.width, self.height)

    def moved_to(self, x: float, y: float) -> "BoundingBox":
        return BoundingBox(x, y, self.width, self.height)


def ensure_finite(*points: Point) -> None:
    """
    Check that every coordinate is a finite number.

    Raises:
        GeometryError: On NaN or infinite coordinates.
    """
    for point in points:
        if not point.is_finite():
            raise GeometryError(f"Non-finite coordinate ({point.x}, {point.y})")


def manhattan_distance(a: Point, b: Point) -> float:
    """Sum of absolute coordinate differences."""
    return abs(a.x - b.x) + abs(a.y - b.y)


def euclidean_distance(a: Point, b: Point) -> float:
    """Straight-line distance between two points."""
    return math.hypot(a.x - b.x, a.y - b.y)


def midpoint(a: Point, b: Point) -> Point:
    return Point((a.x + b.x) / 2, (a.y + b.y) / 2)


def are_points_collinear(a: Point, b: Point, c: Point, tolerance: float = 2) -> bool:
    """Check if three points lie on one line (cross product within tolerance)."""
    cross = abs((b.x - a.x) * (c.y - a.y) - (b.y - a.y) * (c.x - a.x))
    return cross <= tolerance


def snap_to_grid(value: float, grid_size: float) -> float:
    """Snap a value to the nearest grid line."""
    if grid_size <= 0:
        return value
    return round(value / grid_size) * grid_size


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def segments_from_points(points: Sequence[Point]) -> List[Segment]:
    """
    Build consecutive segments through a point list.

    Raises:
        GeometryError: If any consecutive pair is diagonal.
    """
    return [
        Segment(points[i], points[i + 1], i) for i in range(len(points) - 1)
    ]


def path_length(points: Iterable[Point]) -> float:
    """Total axis-aligned length of a polyline."""
    total = 0.0
    previous = None
    for point in points:
        if previous is not None:
            total += manhattan_distance(previous, point)
        previous = point
    return total
