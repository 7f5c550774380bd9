"""
Handle selection for orthogonal edge routing.

Chooses which attachment handle an edge should use on a node, either for a
free pointer position (while an edge is being dragged out) or for a pair of
nodes (when an edge is connected). Handles are scored by distance, with a
bonus for handles whose side already faces the other end.

Also creates the standard handle layout for a node: three handles per side
at 25%, 50% and 75% of its length, for both roles.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .config import RoutingConfig
from .geometry import (
    BoundingBox,
    Point,
    Side,
    euclidean_distance,
    manhattan_distance,
)
from .models import HandleInfo, HandleType, NodeInfo, RoutingType
from .routing_engine import resolve_routing_type

logger = logging.getLogger(__name__)


class HandlePosition(Enum):
    """Discrete handle positions along each side of a node."""

    START = 0.25  # Near the start (top/left) of the side
    MIDDLE = 0.5  # Middle of the side
    END = 0.75  # Near the end (bottom/right) of the side


@dataclass(frozen=True)
class HandleCombination:
    """A candidate source/target handle pair and its routing estimate."""

    source_handle: HandleInfo
    target_handle: HandleInfo
    manhattan_distance: float
    path_length: float
    efficiency: float
    routing_type: RoutingType


@dataclass(frozen=True)
class HandleEvaluation:
    """Scored handle combination with a human-readable explanation."""

    combination: HandleCombination
    score: float
    reason: str


def create_handles_for_bounds(
    node_id: str,
    bounds: BoundingBox,
    handle_types: tuple = (HandleType.SOURCE, HandleType.TARGET),
) -> List[HandleInfo]:
    """
    Create the standard handle layout for a node.

    Handles are declared side by side (top, right, bottom, left) and, within
    a side, from its top/left end. Source handles are declared before target
    handles, which makes declaration order a stable tie-break.

    Ids are ``<node>-<side>-<index>`` for source handles and
    ``<node>-<side>-<index>-target`` for target handles.
    """
    handles: List[HandleInfo] = []
    for handle_type in handle_types:
        suffix = "" if handle_type is HandleType.SOURCE else "-target"
        for side in Side:
            for index, position in enumerate(HandlePosition):
                handles.append(
                    HandleInfo(
                        id=f"{node_id}-{side.value}-{index}{suffix}",
                        node_id=node_id,
                        position=bounds.side_point(side, position.value),
                        side=side,
                        type=handle_type,
                    )
                )
    return handles


def side_faces_point(side: Side, bounds: BoundingBox, point: Point) -> bool:
    """Check whether a node side faces towards a point outside the node."""
    if side is Side.RIGHT:
        return point.x > bounds.x2
    if side is Side.LEFT:
        return point.x < bounds.x
    if side is Side.BOTTOM:
        return point.y > bounds.y2
    return point.y < bounds.y


class HandleSelectionService:
    """
    Picks attachment handles for edges.

    Stateless: every method is a pure function of its arguments, so one
    instance can be shared or a fresh one built per query.
    """

    def __init__(self, config: Optional[RoutingConfig] = None):
        self.config = config or RoutingConfig()

    def handle_cost(self, handle: HandleInfo, node: NodeInfo, target: Point) -> float:
        """Distance to the target, reduced when the handle's side faces it."""
        cost = euclidean_distance(handle.position, target)
        if side_faces_point(handle.side, node.bounds, target):
            cost -= self.config.facing_bonus
        return cost

    def find_optimal_handles_for_position(
        self,
        node: NodeInfo,
        target: Point,
        handle_type: Optional[HandleType] = None,
    ) -> Optional[HandleInfo]:
        """
        Find the best handle on a node for reaching a target point.

        Args:
            node: Node snapshot to choose from.
            target: Point the edge should head towards.
            handle_type: Restrict the search to one role (all handles if None).

        Returns:
            The lowest-cost handle, or None when the node exposes none.
            Ties go to the handle declared first.
        """
        candidates = node.handles
        if handle_type is not None:
            candidates = node.handles_of_type(handle_type)
        if not candidates:
            logger.debug("Node %s exposes no handles", node.id)
            return None

        best_handle = candidates[0]
        best_cost = self.handle_cost(best_handle, node, target)
        for handle in candidates[1:]:
            cost = self.handle_cost(handle, node, target)
            if cost < best_cost:
                best_cost = cost
                best_handle = handle
        return best_handle

    def evaluate_handle_combination(
        self, source_handle: HandleInfo, target_handle: HandleInfo
    ) -> HandleEvaluation:
        """Score one source/target pair for routing."""
        distance = manhattan_distance(source_handle.position, target_handle.position)
        straight = euclidean_distance(source_handle.position, target_handle.position)
        # An L-shaped route has exactly the Manhattan length
        efficiency = straight / distance if distance > 0 else 1.0
        dx = target_handle.position.x - source_handle.position.x
        dy = target_handle.position.y - source_handle.position.y
        routing_type = resolve_routing_type(dx, dy)

        combination = HandleCombination(
            source_handle=source_handle,
            target_handle=target_handle,
            manhattan_distance=distance,
            path_length=distance,
            efficiency=efficiency,
            routing_type=routing_type,
        )
        score = distance - efficiency * 10
        reason = (
            f"{source_handle.side.value}-to-{target_handle.side.value} connection: "
            f"Manhattan distance {distance:g}, "
            f"efficiency {efficiency:.2f}, "
            f"{routing_type.value} routing, "
            f"score {score:.2f}"
        )
        return HandleEvaluation(combination, score, reason)

    def get_all_handle_combinations(
        self, source_node: NodeInfo, target_node: NodeInfo
    ) -> List[HandleCombination]:
        """Every source handle of one node paired with every target handle of the other."""
        combinations = []
        for source_handle in source_node.handles_of_type(HandleType.SOURCE):
            for target_handle in target_node.handles_of_type(HandleType.TARGET):
                evaluation = self.evaluate_handle_combination(
                    source_handle, target_handle
                )
                combinations.append(evaluation.combination)
        return combinations

    def find_optimal_handles(
        self, source_node: NodeInfo, target_node: NodeInfo
    ) -> Optional[HandleCombination]:
        """
        Find the best handle pair for connecting two nodes.

        Ranked by Manhattan distance, then higher efficiency, then
        horizontal-first routing, then source side and target side in
        top/right/bottom/left order.

        Returns:
            The best combination, or None if either node lacks handles
            of the needed role.
        """
        combinations = self.get_all_handle_combinations(source_node, target_node)
        if not combinations:
            logger.debug(
                "No handle combination between %s and %s",
                source_node.id,
                target_node.id,
            )
            return None

        def sort_key(combination: HandleCombination):
            return (
                combination.manhattan_distance,
                -combination.efficiency,
                combination.routing_type is not RoutingType.HORIZONTAL_FIRST,
                combination.source_handle.side.order,
                combination.target_handle.side.order,
            )

        # sorted() is stable, so declaration order settles any remaining tie
        return sorted(combinations, key=sort_key)[0]
