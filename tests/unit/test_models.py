"""Tests for routing data models."""

from orthoflow.config import GRID_SIZE, MAX_HISTORY_SIZE, RoutingConfig
from orthoflow.geometry import BoundingBox, Direction, Point, Side
from orthoflow.handles import create_handles_for_bounds
from orthoflow.models import (
    EdgeRoutingState,
    HandleType,
    NodeInfo,
    RoutingMetrics,
    RoutingType,
    SegmentDragConstraints,
    SelectedHandles,
)


class TestRoutingType:
    """Tests for RoutingType."""

    def test_first_direction(self):
        """Each routing type knows the direction of its first leg."""
        assert RoutingType.HORIZONTAL_FIRST.first_direction is Direction.HORIZONTAL
        assert RoutingType.VERTICAL_FIRST.first_direction is Direction.VERTICAL

    def test_from_direction(self):
        """A vertical first leg means vertical-first routing."""
        assert RoutingType.from_direction(Direction.VERTICAL) is RoutingType.VERTICAL_FIRST

    def test_values(self):
        """Values match the persisted camelCase patch strings."""
        assert RoutingType.HORIZONTAL_FIRST.value == "horizontal-first"


class TestEdgeRoutingState:
    """Tests for the persisted per-edge record."""

    def test_to_dict(self):
        """Serialise to the camelCase update patch."""
        state = EdgeRoutingState(
            control_points=[Point(100, 0), Point(100, 100)],
            routing_type=RoutingType.HORIZONTAL_FIRST,
            selected_handles=SelectedHandles("a-right-1", "b-left-1-target"),
        )
        assert state.to_dict() == {
            "controlPoints": [{"x": 100, "y": 0}, {"x": 100, "y": 100}],
            "routingType": "horizontal-first",
            "useOrthogonalRouting": True,
            "selectedHandles": {"source": "a-right-1", "target": "b-left-1-target"},
        }

    def test_from_dict_restores_state(self):
        """A patch read back gives an equal state."""
        state = EdgeRoutingState(
            control_points=[Point(0, 50), Point(80, 50)],
            routing_type=RoutingType.VERTICAL_FIRST,
            use_orthogonal_routing=False,
            selected_handles=SelectedHandles("s", "t"),
        )
        assert EdgeRoutingState.from_dict(state.to_dict()) == state

    def test_from_dict_defaults(self):
        """Missing keys fall back to the defaults."""
        state = EdgeRoutingState.from_dict({})
        assert state.control_points == []
        assert state.routing_type is RoutingType.HORIZONTAL_FIRST
        assert state.use_orthogonal_routing is True
        assert state.selected_handles == SelectedHandles()

    def test_with_control_points_copies(self):
        """Replacing points leaves the original state untouched."""
        original = EdgeRoutingState(
            control_points=[Point(1, 1)], selected_handles=SelectedHandles("s", "t")
        )
        updated = original.with_control_points([Point(2, 2)], RoutingType.VERTICAL_FIRST)
        assert original.control_points == [Point(1, 1)]
        assert updated.control_points == [Point(2, 2)]
        assert updated.routing_type is RoutingType.VERTICAL_FIRST
        assert updated.selected_handles == original.selected_handles
        assert updated.selected_handles is not original.selected_handles


class TestNodeInfo:
    """Tests for node snapshots."""

    def test_moved_to_translates_handles(self):
        """Moving a node shifts its handles and leaves the original alone."""
        bounds = BoundingBox(0, 0, 100, 60)
        node = NodeInfo("a", bounds, create_handles_for_bounds("a", bounds))
        moved = node.moved_to(50, 20)
        handle = moved.get_handle("a-right-1")
        assert handle.position == Point(150, 50)
        assert handle.side is Side.RIGHT
        assert node.get_handle("a-right-1").position == Point(100, 30)

    def test_handles_of_type(self):
        """Every side carries three source and three target handles."""
        bounds = BoundingBox(0, 0, 100, 60)
        node = NodeInfo("a", bounds, create_handles_for_bounds("a", bounds))
        assert len(node.handles_of_type(HandleType.SOURCE)) == 12
        assert len(node.handles_of_type(HandleType.TARGET)) == 12

    def test_get_handle_missing(self):
        """An unknown handle id gives None."""
        assert NodeInfo("a", BoundingBox(0, 0, 10, 10)).get_handle("nope") is None


class TestSmallModels:
    """Tests for metrics, drag constraints and config."""

    def test_metrics_as_dict(self):
        """Metrics serialise with camelCase keys."""
        metrics = RoutingMetrics(300, 3, RoutingType.HORIZONTAL_FIRST, 0.75, "a:right -> b:left")
        data = metrics.as_dict()
        assert data["pathLength"] == 300
        assert data["segmentCount"] == 3
        assert data["routingType"] == "horizontal-first"
        assert data["handleCombination"] == "a:right -> b:left"

    def test_drag_constraints_clamp(self):
        """Drag constraints clamp into and test against their range."""
        constraints = SegmentDragConstraints(20, 180, axis="x")
        assert constraints.clamp(250) == 180
        assert constraints.clamp(-5) == 20
        assert constraints.contains(100)
        assert not constraints.contains(181)

    def test_config_defaults(self):
        """A bare config carries the module defaults."""
        config = RoutingConfig()
        assert config.grid_size == GRID_SIZE
        assert config.connection_tolerance == 5
        assert config.frame_interval_ms == 16
        assert config.max_history_size == MAX_HISTORY_SIZE
