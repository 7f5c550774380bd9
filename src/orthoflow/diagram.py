"""
Diagram model using networkx.

Uses networkx for:
- Node and edge storage (a MultiDiGraph, so two nodes can share several edges)
- Looking up every edge attached to a node when that node moves

The diagram plays the host's part for the routing core: it owns node
snapshots and each edge's EdgeRoutingState, supplies live geometry to the
EdgeRoutingController and receives its commits.
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple, Union

import networkx as nx

from .config import RoutingConfig
from .controller import EdgeGeometry, EdgeRoutingController, RenderedEdge
from .feedback import RoutingFeedbackSystem
from .geometry import BoundingBox, GeometryError, Point
from .handles import HandleSelectionService, create_handles_for_bounds
from .models import (
    EdgeRoutingState,
    HandleInfo,
    NodeInfo,
    RoutingType,
    SegmentDragState,
    SelectedHandles,
)
from .path_calculator import EdgeType
from .routing_engine import build_path

logger = logging.getLogger(__name__)


class Diagram:
    """
    Nodes, edges and their persisted routing.

    Every committed routing change is stored on the edge and appended to
    ``commit_log`` as the patch a command layer would receive.
    """

    def __init__(
        self,
        config: Optional[RoutingConfig] = None,
        feedback: Optional[RoutingFeedbackSystem] = None,
        edge_type: Union[EdgeType, str] = EdgeType.ORTHOGONAL,
        corner_radius: Optional[float] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.config = config or RoutingConfig()
        self.feedback = feedback
        self.graph = nx.MultiDiGraph()
        self.handle_service = HandleSelectionService(self.config)
        self.controller = EdgeRoutingController(
            self, self.config, feedback, edge_type, corner_radius, clock
        )
        self.commit_log: List[Tuple[str, dict]] = []
        self._edge_ends: Dict[str, Tuple[str, str]] = {}

    # --- Nodes ---

    def add_node(
        self,
        node_id: str,
        x: float,
        y: float,
        width: float,
        height: float,
        handles: Optional[List[HandleInfo]] = None,
    ) -> NodeInfo:
        """
        Add a node; it gets the standard handle layout unless handles are given.

        Pass an empty list for a node that exposes no handles.
        """
        bounds = BoundingBox(x, y, width, height)
        if handles is None:
            handles = create_handles_for_bounds(node_id, bounds)
        node = NodeInfo(node_id, bounds, list(handles))
        self.graph.add_node(node_id, info=node)
        return node

    def node(self, node_id: str) -> NodeInfo:
        """
        Raises:
            KeyError: If the node does not exist.
        """
        if node_id not in self.graph:
            raise KeyError(f"Unknown node: {node_id}")
        return self.graph.nodes[node_id]["info"]

    @property
    def nodes(self) -> List[NodeInfo]:
        return [data["info"] for _, data in self.graph.nodes(data=True)]

    def move_node(self, node_id: str, x: float, y: float) -> List[str]:
        """
        Move a node and re-validate every edge attached to it, once each.

        Returns:
            Ids of the edges whose stored route had to be repaired.
        """
        moved = self.node(node_id).moved_to(x, y)
        self.graph.nodes[node_id]["info"] = moved

        rerouted = []
        for edge_id in self.connected_edges(node_id):
            state = self.routing_state(edge_id)
            if state is None:
                continue
            new_state = self.controller.on_node_moved(
                edge_id, state, self.edge_geometry(edge_id)
            )
            if new_state is not state:
                rerouted.append(edge_id)
        return rerouted

    def connected_edges(self, node_id: str) -> List[str]:
        """Ids of edges leaving or entering a node, without repeats."""
        edge_ids: List[str] = []
        for _, _, key in self.graph.out_edges(node_id, keys=True):
            edge_ids.append(key)
        for _, _, key in self.graph.in_edges(node_id, keys=True):
            if key not in edge_ids:
                edge_ids.append(key)
        return edge_ids

    # --- Edges ---

    def add_edge(
        self,
        edge_id: str,
        source_id: str,
        target_id: str,
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None,
        preferred_routing: Optional[RoutingType] = None,
    ) -> Optional[EdgeRoutingState]:
        """
        Connect two nodes and commit the edge's default route.

        Handles not given are chosen by the handle selection service.

        Returns:
            The committed routing state, or None when a node exposes no
            usable handle; such an edge is kept but never routed or drawn.

        Raises:
            KeyError: For an unknown node or handle id.
        """
        if edge_id in self._edge_ends:
            raise KeyError(f"Duplicate edge id: {edge_id}")
        source_node = self.node(source_id)
        target_node = self.node(target_id)

        if source_handle is None or target_handle is None:
            combination = self.handle_service.find_optimal_handles(
                source_node, target_node
            )
            chosen = (
                (combination.source_handle, combination.target_handle)
                if combination
                else (None, None)
            )
            source_info = (
                self._handle(source_node, source_handle) if source_handle else chosen[0]
            )
            target_info = (
                self._handle(target_node, target_handle) if target_handle else chosen[1]
            )
        else:
            source_info = self._handle(source_node, source_handle)
            target_info = self._handle(target_node, target_handle)

        self.graph.add_edge(
            source_id,
            target_id,
            key=edge_id,
            source_handle=source_info.id if source_info else None,
            target_handle=target_info.id if target_info else None,
            routing=None,
        )
        self._edge_ends[edge_id] = (source_id, target_id)

        if source_info is None or target_info is None:
            logger.warning("Edge %s has no available handle; not routed", edge_id)
            return None

        if self.feedback is not None:
            self.feedback.highlight_selected_handles([source_info, target_info])
        state = self.controller.connect(
            edge_id,
            self.edge_geometry(edge_id),
            SelectedHandles(source_info.id, target_info.id),
            preferred_routing,
        )
        self._log_metrics(state, source_info, target_info)
        return state

    def remove_edge(self, edge_id: str) -> None:
        """Delete an edge together with its routing state."""
        source_id, target_id = self._edge_ends.pop(edge_id)
        self.controller.cancel_segment_drag(edge_id)
        self.graph.remove_edge(source_id, target_id, key=edge_id)

    @property
    def edges(self) -> List[str]:
        return list(self._edge_ends)

    def routing_state(self, edge_id: str) -> Optional[EdgeRoutingState]:
        return self._edge_data(edge_id)["routing"]

    def edge_handles(self, edge_id: str) -> Tuple[Optional[HandleInfo], Optional[HandleInfo]]:
        """Live source and target handles of an edge."""
        source_id, target_id = self._edge_ends[edge_id]
        data = self._edge_data(edge_id)
        source = self.node(source_id).get_handle(data["source_handle"] or "")
        target = self.node(target_id).get_handle(data["target_handle"] or "")
        return source, target

    def edge_geometry(self, edge_id: str) -> EdgeGeometry:
        """
        Current endpoint geometry of an edge.

        Raises:
            KeyError: If the edge has no handles.
        """
        source, target = self.edge_handles(edge_id)
        if source is None or target is None:
            raise KeyError(f"Edge {edge_id} is not attached to handles")
        return EdgeGeometry(source.position, target.position, source.side, target.side)

    def commit(self, edge_id: str, state: EdgeRoutingState) -> None:
        """Store a committed routing state on its edge."""
        self._edge_data(edge_id)["routing"] = state
        self.commit_log.append((edge_id, state.to_dict()))

    # --- Rendering and interaction ---

    def render_edge(self, edge_id: str) -> Optional[RenderedEdge]:
        state = self.routing_state(edge_id)
        if state is None:
            return None
        return self.controller.render(edge_id, state, self.edge_geometry(edge_id))

    def render_all(self) -> Dict[str, RenderedEdge]:
        """Rendered path of every routed edge, keyed by edge id."""
        rendered = {}
        for edge_id in self._edge_ends:
            result = self.render_edge(edge_id)
            if result is not None:
                rendered[edge_id] = result
        return rendered

    def begin_segment_drag(
        self, edge_id: str, pointer: Point, snap_to_grid: bool = False
    ) -> Optional[SegmentDragState]:
        state = self.routing_state(edge_id)
        if state is None:
            return None
        return self.controller.begin_segment_drag(
            edge_id, state, self.edge_geometry(edge_id), pointer, snap_to_grid
        )

    def pointer_move(self, edge_id: str, pointer: Point) -> Optional[SegmentDragState]:
        return self.controller.pointer_move(edge_id, pointer)

    def end_segment_drag(
        self, edge_id: str, pointer: Optional[Point] = None
    ) -> EdgeRoutingState:
        return self.controller.end_segment_drag(edge_id, pointer)

    def cancel_segment_drag(self, edge_id: str) -> None:
        self.controller.cancel_segment_drag(edge_id)

    def _edge_data(self, edge_id: str) -> dict:
        if edge_id not in self._edge_ends:
            raise KeyError(f"Unknown edge: {edge_id}")
        source_id, target_id = self._edge_ends[edge_id]
        return self.graph.edges[source_id, target_id, edge_id]

    def _handle(self, node: NodeInfo, handle_id: str) -> HandleInfo:
        handle = node.get_handle(handle_id)
        if handle is None:
            raise KeyError(f"Node {node.id} has no handle {handle_id}")
        return handle

    def _log_metrics(
        self, state: EdgeRoutingState, source: HandleInfo, target: HandleInfo
    ) -> None:
        if self.feedback is None:
            return
        try:
            path = build_path([source.position, *state.control_points, target.position])
        except GeometryError:
            return
        metrics = self.controller.engine.calculate_routing_metrics(path, source, target)
        self.feedback.log_routing_metrics(metrics)
