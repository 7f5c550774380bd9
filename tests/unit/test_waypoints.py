"""Tests for the waypoint manager."""

import pytest

from orthoflow.geometry import Direction, Point, Side, segments_from_points
from orthoflow.models import HandleType


class TestConnectionImpact:
    """Tests for analyze_connection_impact."""

    def test_terminal_segment_detaches(self, waypoint_manager, source, target, z_control_points):
        """Moving the first leg off the source needs a bridge from the source."""
        analysis = waypoint_manager.analyze_connection_impact(
            0, Point(50, 20), z_control_points, source, target
        )
        assert analysis.would_disconnect
        assert analysis.affected_handles == [HandleType.SOURCE]
        bridge = analysis.required_bridge_segments[0]
        assert bridge.start == source
        assert bridge.end == Point(0, 20)

    def test_interior_segment_never_detaches(self, waypoint_manager, source, target, z_control_points):
        """Interior segments drag their neighbours along."""
        analysis = waypoint_manager.analyze_connection_impact(
            1, Point(180, 50), z_control_points, source, target
        )
        assert not analysis.would_disconnect
        assert analysis.affected_handles == []

    def test_within_tolerance(self, waypoint_manager, source, target, z_control_points):
        """A move inside the connection tolerance stays attached."""
        analysis = waypoint_manager.analyze_connection_impact(
            2, Point(150, 104), z_control_points, source, target
        )
        assert not analysis.would_disconnect

    def test_single_segment_touches_both(self, waypoint_manager):
        """A lone segment detaches from both handles."""
        analysis = waypoint_manager.analyze_connection_impact(
            0, Point(100, 50), [], Point(0, 0), Point(200, 0)
        )
        assert analysis.affected_handles == [HandleType.SOURCE, HandleType.TARGET]


class TestInsertPreservationWaypoints:
    """Tests for insert_preservation_waypoints."""

    def test_first_segment_gets_one_bridge(self, waypoint_manager, source, target, z_control_points):
        """Dragging the first leg down adds exactly one waypoint."""
        result = waypoint_manager.insert_preservation_waypoints(
            0, Point(50, 20), z_control_points, source, target
        )
        assert result.requires_insertion
        assert result.new_control_points == [Point(0, 20), Point(100, 20), Point(100, 100)]
        assert result.inserted_waypoints == [Point(0, 20)]
        assert "segment-0" in result.modified_segments

    def test_last_segment_keeps_target_attached(self, waypoint_manager):
        """Dragging the last leg bridges back to the target."""
        source, target = Point(0, 0), Point(200, 0)
        result = waypoint_manager.insert_preservation_waypoints(
            2, Point(150, 50), [Point(0, 100), Point(200, 100)], source, target
        )
        assert result.requires_insertion
        assert result.new_control_points == [Point(0, 100), Point(150, 100), Point(150, 0)]

    @pytest.mark.parametrize("x", [100, 50, 0, -50])
    def test_preview_keeps_target_leg_attached(self, waypoint_manager, x):
        """Previews of the last leg always end on the target's line."""
        source, target = Point(0, 0), Point(200, 0)
        result = waypoint_manager.insert_preservation_waypoints(
            2, Point(x, 50), [Point(0, 100), Point(200, 100)], source, target, is_preview=True
        )
        points = result.new_control_points
        assert len(points) == 3
        assert points[-1].y == target.y
        assert points[-1].x == x

    def test_within_tolerance_is_naive_move(self, waypoint_manager, source, target, z_control_points):
        """A commit inside the tolerance moves the segment without bridging."""
        result = waypoint_manager.insert_preservation_waypoints(
            0, Point(50, 3), z_control_points, source, target
        )
        assert not result.requires_insertion
        assert result.new_control_points == [Point(100, 3), Point(100, 100)]

    def test_preview_bridges_inside_tolerance(self, waypoint_manager, source, target, z_control_points):
        """A preview bridges even inside the tolerance."""
        result = waypoint_manager.insert_preservation_waypoints(
            0, Point(50, 3), z_control_points, source, target, is_preview=True
        )
        assert result.requires_insertion
        assert len(result.new_control_points) == 3

    @pytest.mark.parametrize("side", [None, Side.RIGHT])
    def test_preview_at_zero_offset_adds_nothing(
        self, waypoint_manager, constraint_engine, source, target, z_control_points, side
    ):
        """A terminal segment previewed where it already lies stays attached as is."""
        result = waypoint_manager.insert_preservation_waypoints(
            0, Point(50, 0), z_control_points, source, target, is_preview=True, source_side=side
        )
        assert not result.requires_insertion
        assert result.new_control_points == z_control_points
        assert constraint_engine.validate_orthogonal_path(
            result.new_control_points, source, target
        ).is_orthogonal

    def test_interior_segment_moves_freely(self, waypoint_manager, source, target, z_control_points):
        """An interior segment moves without bridges."""
        result = waypoint_manager.insert_preservation_waypoints(
            1, Point(150, 50), z_control_points, source, target
        )
        assert not result.requires_insertion
        assert result.new_control_points == [Point(150, 0), Point(150, 100)]

    def test_side_adds_perpendicular_stub(self, waypoint_manager, source, target, z_control_points):
        """A right-side handle leaves horizontally even after the drag."""
        result = waypoint_manager.insert_preservation_waypoints(
            0, Point(50, 20), z_control_points, source, target, source_side=Side.RIGHT
        )
        points = [source, *result.new_control_points, target]
        assert result.new_control_points == [
            Point(20, 0),
            Point(20, 20),
            Point(100, 20),
            Point(100, 100),
        ]
        assert segments_from_points(points)[0].direction is Direction.HORIZONTAL

    def test_single_segment_bridged_at_both_ends(self, waypoint_manager):
        """A lone segment gets a bridge at each end."""
        result = waypoint_manager.insert_preservation_waypoints(
            0, Point(100, 50), [], Point(0, 0), Point(200, 0)
        )
        assert result.new_control_points == [Point(0, 50), Point(200, 50)]

    def test_result_is_orthogonal(self, waypoint_manager, constraint_engine, source, target, z_control_points):
        """Every kind of drag leaves a valid path."""
        for index, position in [(0, Point(50, -40)), (1, Point(60, 50)), (2, Point(150, 160))]:
            result = waypoint_manager.insert_preservation_waypoints(
                index, position, z_control_points, source, target
            )
            validation = constraint_engine.validate_orthogonal_path(
                result.new_control_points, source, target
            )
            assert validation.is_orthogonal


class TestCleanup:
    """Tests for waypoint simplification and cleanup."""

    def test_simplify_collinear(self, waypoint_manager):
        """Points between collinear neighbours are dropped."""
        points = [Point(0, 0), Point(50, 0), Point(100, 0), Point(100, 50)]
        assert waypoint_manager.simplify_waypoints(points) == [
            Point(0, 0),
            Point(100, 0),
            Point(100, 50),
        ]

    def test_simplify_short_list(self, waypoint_manager):
        """Two points or fewer are returned as is."""
        points = [Point(0, 0), Point(50, 0)]
        assert waypoint_manager.simplify_waypoints(points) == points

    def test_can_merge(self, waypoint_manager):
        """Only a point on the line through its neighbours can merge."""
        assert waypoint_manager.can_merge_waypoints(Point(0, 0), Point(0, 40), Point(0, 90))
        assert not waypoint_manager.can_merge_waypoints(Point(0, 0), Point(0, 40), Point(40, 40))

    def test_cleanup_drops_collinear(self, waypoint_manager, source, target):
        """Cleanup merges a collinear run starting at the source."""
        cleaned = waypoint_manager.cleanup_waypoints(
            [Point(50, 0), Point(100, 0), Point(100, 100)], source, target
        )
        assert cleaned == [Point(100, 0), Point(100, 100)]

    def test_cleanup_drops_duplicates(self, waypoint_manager, source, target):
        """Cleanup drops repeated points."""
        cleaned = waypoint_manager.cleanup_waypoints(
            [Point(100, 0), Point(100, 0), Point(100, 100)], source, target
        )
        assert cleaned == [Point(100, 0), Point(100, 100)]

    def test_cleanup_drops_points_on_endpoints(self, waypoint_manager, source, target):
        """Cleanup drops points sitting on the source or target."""
        cleaned = waypoint_manager.cleanup_waypoints(
            [Point(0, 0), Point(100, 0), Point(100, 100), Point(200, 100)], source, target
        )
        assert cleaned == [Point(100, 0), Point(100, 100)]
