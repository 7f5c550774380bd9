"""Tests for the orthogonal constraint engine."""

import math

import pytest

from orthoflow.config import RoutingConfig
from orthoflow.constraints import OrthogonalConstraintEngine, segments_intersect
from orthoflow.geometry import GeometryError, Point, Segment, segments_from_points


def is_valid(engine, control_points, source, target):
    return engine.validate_orthogonal_path(control_points, source, target).is_orthogonal


class TestValidateOrthogonalPath:
    """Tests for validate_orthogonal_path."""

    def test_valid_path(self, constraint_engine, source, target, z_control_points):
        """A Z route is valid and the input is left untouched."""
        original = list(z_control_points)
        validation = constraint_engine.validate_orthogonal_path(
            z_control_points, source, target
        )
        assert validation.is_orthogonal
        assert validation.non_orthogonal_segments == []
        assert validation.correction_suggestions == []
        assert z_control_points == original

    def test_diagonal_step(self, constraint_engine, source, target):
        """A diagonal step is reported with a snap suggestion."""
        validation = constraint_engine.validate_orthogonal_path(
            [Point(100, 20), Point(100, 100)], source, target
        )
        assert not validation.is_orthogonal
        assert validation.non_orthogonal_segments == [0]
        assert len(validation.correction_suggestions) == 1

    def test_zero_length_step(self, constraint_engine, target):
        """A point repeating the source is a zero-length step."""
        validation = constraint_engine.validate_orthogonal_path(
            [Point(0, 0), Point(200, 0)], Point(0, 0), target
        )
        assert not validation.is_orthogonal
        assert validation.zero_length_segments == [0]

    def test_non_finite_is_invalid(self, constraint_engine, source, target):
        """A NaN control point makes the path invalid."""
        validation = constraint_engine.validate_orthogonal_path(
            [Point(math.nan, 0)], source, target
        )
        assert not validation.is_orthogonal

    def test_non_finite_between_aligned_neighbours(self, constraint_engine, source):
        """A NaN point is rejected even when both neighbours share its y."""
        validation = constraint_engine.validate_orthogonal_path(
            [Point(math.nan, 0)], source, Point(200, 0)
        )
        assert not validation.is_orthogonal
        assert validation.non_orthogonal_segments == [0, 1]


class TestEnforceOrthogonalConstraints:
    """Tests for enforce_orthogonal_constraints."""

    def test_valid_input_unchanged(self, constraint_engine, source, target, z_control_points):
        """Valid points come back as an equal copy."""
        repaired = constraint_engine.enforce_orthogonal_constraints(
            z_control_points, source, target
        )
        assert repaired == z_control_points
        assert repaired is not z_control_points

    def test_target_moved_down(self, constraint_engine, source, z_control_points):
        """The last corner slides along its leg to meet the moved target."""
        target = Point(200, 130)
        repaired = constraint_engine.enforce_orthogonal_constraints(
            z_control_points, source, target
        )
        assert repaired == [Point(100, 0), Point(100, 130)]
        assert is_valid(constraint_engine, repaired, source, target)

    def test_equal_distance_snaps_horizontal(self, constraint_engine, source):
        """A point equally far from both axes snaps horizontally."""
        repaired = constraint_engine.enforce_orthogonal_constraints(
            [Point(50, 50)], source, Point(50, 100)
        )
        assert repaired == [Point(50, 0)]

    def test_empty_list_gets_corner(self, constraint_engine, source):
        """An empty list between offset endpoints gains one corner."""
        repaired = constraint_engine.enforce_orthogonal_constraints([], source, Point(100, 50))
        assert repaired == [Point(100, 0)]

    def test_coincident_endpoints(self, constraint_engine):
        """Coincident endpoints need no control points."""
        assert constraint_engine.enforce_orthogonal_constraints(
            [], Point(10, 10), Point(10, 10)
        ) == []

    def test_non_finite_endpoint(self, constraint_engine, source):
        """A non-finite endpoint raises GeometryError."""
        with pytest.raises(GeometryError):
            constraint_engine.enforce_orthogonal_constraints(
                [Point(10, 10)], source, Point(math.inf, 5)
            )

    def test_non_finite_points_dropped(self, constraint_engine, source, target):
        """NaN control points are dropped before snapping."""
        repaired = constraint_engine.enforce_orthogonal_constraints(
            [Point(math.nan, 0), Point(100, 0), Point(100, 100)], source, target
        )
        assert repaired == [Point(100, 0), Point(100, 100)]

    def test_nan_point_between_aligned_endpoints(self, constraint_engine, source):
        """A NaN point on an otherwise straight path is repaired away."""
        repaired = constraint_engine.enforce_orthogonal_constraints(
            [Point(math.nan, 0)], source, Point(200, 0)
        )
        assert repaired == []

    def test_collinear_corners_merged(self, constraint_engine, source, target):
        """Snapped corners on one straight leg collapse into a single corner."""
        repaired = constraint_engine.enforce_orthogonal_constraints(
            [Point(50, 5), Point(100, 0)], source, target
        )
        assert repaired == [Point(200, 0)]

    @pytest.mark.parametrize(
        "control_points,target",
        [
            ([Point(100, 0), Point(100, 100)], Point(200, 130)),
            ([Point(30, 70), Point(90, 10), Point(140, 160)], Point(200, 100)),
            ([Point(0, 0), Point(0, 0)], Point(80, 60)),
            ([Point(250, -40)], Point(200, 100)),
            ([], Point(-60, 45)),
        ],
    )
    def test_repair_is_valid_and_idempotent(self, constraint_engine, source, control_points, target):
        """Repair output validates and repairs to itself."""
        once = constraint_engine.enforce_orthogonal_constraints(control_points, source, target)
        twice = constraint_engine.enforce_orthogonal_constraints(once, source, target)
        assert is_valid(constraint_engine, once, source, target)
        assert twice == once


class TestSegmentConstraints:
    """Tests for drag ranges."""

    def test_interior_segment_keeps_standoff(self, constraint_engine, source, target, z_control_points):
        """An interior segment stays a standoff away from both terminals."""
        segments = segments_from_points([source, *z_control_points, target])
        constraints = constraint_engine.calculate_segment_constraints(
            segments[1], segments, source, target
        )
        assert constraints.axis == "x"
        assert constraints.min_offset == 20
        assert constraints.max_offset == 180

    def test_terminal_segment(self, constraint_engine, source, target, z_control_points):
        """Unbounded on the open side, gapped from the far neighbour end."""
        segments = segments_from_points([source, *z_control_points, target])
        constraints = constraint_engine.calculate_segment_constraints(
            segments[0], segments, source, target
        )
        assert constraints.axis == "y"
        assert constraints.min_offset == -500
        assert constraints.max_offset == 90

    def test_current_position_always_legal(self, constraint_engine):
        """The range always contains where the segment is now."""
        source, target = Point(0, 0), Point(200, 10)
        segments = segments_from_points([source, Point(100, 0), Point(100, 10), target])
        constraints = constraint_engine.calculate_segment_constraints(
            segments[0], segments, source, target
        )
        assert constraints.contains(segments[0].position)

    def test_clamped_move(self, constraint_engine, source, target, z_control_points):
        """A move past the range is clamped and reported."""
        segments = segments_from_points([source, *z_control_points, target])
        constraints = constraint_engine.calculate_segment_constraints(
            segments[1], segments, source, target
        )
        check = constraint_engine.apply_movement_constraints(segments[1], 250, constraints)
        assert not check.is_valid
        assert check.adjusted_position == 180
        assert check.violated_constraints == ["drag-range"]

    def test_grid_snapped_move(self, source, target, z_control_points):
        """Snapping happens before clamping."""
        engine = OrthogonalConstraintEngine(RoutingConfig(grid_size=25))
        segments = segments_from_points([source, *z_control_points, target])
        constraints = engine.calculate_segment_constraints(
            segments[1], segments, source, target, snap_to_grid=True
        )
        check = engine.apply_movement_constraints(segments[1], 138, constraints)
        assert check.is_valid
        assert check.adjusted_position == 150

    def test_validate_segment_movement(self, constraint_engine, source, target, z_control_points):
        """A move inside the range is accepted as given."""
        segments = segments_from_points([source, *z_control_points, target])
        check = constraint_engine.validate_segment_movement(
            "segment-1", 120, segments, source, target
        )
        assert check.is_valid
        assert check.adjusted_position == 120

    def test_unknown_segment(self, constraint_engine, source, target, z_control_points):
        """An unknown segment id is reported, not raised."""
        segments = segments_from_points([source, *z_control_points, target])
        check = constraint_engine.validate_segment_movement(
            "segment-9", 120, segments, source, target
        )
        assert check.violated_constraints == ["segment-not-found"]


class TestIntersections:
    """Tests for crossing detection."""

    def test_segments_intersect(self):
        """Crossing segments intersect, distant ones don't."""
        horizontal = Segment(Point(0, 50), Point(100, 50))
        vertical = Segment(Point(50, 0), Point(50, 100))
        apart = Segment(Point(200, 0), Point(200, 100))
        assert segments_intersect(horizontal, vertical)
        assert not segments_intersect(horizontal, apart)

    def test_overlapping_parallel(self):
        """Overlapping parallel segments count as touching."""
        first = Segment(Point(0, 0), Point(100, 0))
        second = Segment(Point(50, 0), Point(150, 0))
        assert segments_intersect(first, second)

    def test_check_path_intersections(self, constraint_engine):
        """A moved segment reports the non-neighbour it would cross."""
        points = [Point(0, 0), Point(100, 0), Point(100, 100), Point(-50, 100), Point(-50, 50)]
        segments = segments_from_points(points)
        result = constraint_engine.check_path_intersections("segment-0", 100, segments)
        assert result.has_intersections
        assert result.intersecting_segments == ["segment-2"]

    def test_neighbours_ignored(self, constraint_engine, source, target, z_control_points):
        """Adjacent segments never count as crossings."""
        segments = segments_from_points([source, *z_control_points, target])
        result = constraint_engine.check_path_intersections("segment-1", 150, segments)
        assert not result.has_intersections
