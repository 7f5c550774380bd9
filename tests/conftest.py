"""Pytest configuration and shared fixtures for OrthoFlow tests."""

import pytest

from orthoflow import (
    Diagram,
    OrthogonalConstraintEngine,
    OrthogonalRoutingEngine,
    OrthogonalWaypointManager,
    PathCalculator,
    Point,
    RoutingConfig,
    SegmentDragHandler,
)


@pytest.fixture
def config():
    """Default routing configuration."""
    return RoutingConfig()


@pytest.fixture
def engine(config):
    """Routing engine without feedback."""
    return OrthogonalRoutingEngine(config)


@pytest.fixture
def calculator(config):
    """Default PathCalculator instance."""
    return PathCalculator(config)


@pytest.fixture
def constraint_engine(config):
    """Default OrthogonalConstraintEngine instance."""
    return OrthogonalConstraintEngine(config)


@pytest.fixture
def waypoint_manager(config):
    """Default OrthogonalWaypointManager instance."""
    return OrthogonalWaypointManager(config)


@pytest.fixture
def drag_handler(config):
    """Idle SegmentDragHandler."""
    return SegmentDragHandler(config)


@pytest.fixture
def source():
    return Point(0, 0)


@pytest.fixture
def target():
    return Point(200, 100)


@pytest.fixture
def z_control_points():
    """Corners of the Z route from (0, 0) to (200, 100) through x=100."""
    return [Point(100, 0), Point(100, 100)]


@pytest.fixture
def diagram():
    """Two nodes, the second below and to the right of the first."""
    diagram = Diagram()
    diagram.add_node("a", 0, 0, 100, 60)
    diagram.add_node("b", 300, 200, 100, 60)
    return diagram
