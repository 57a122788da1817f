"""
Provenance Graph Builder.

Walks the lineage graph backward from a root node (normally a shipment lot
detail) to its origin nodes (raw inputs applied at geofenced locations).

Traversal is an explicit depth-first stack, not recursion:
- visited: nodes whose whole ancestry has been processed
- in_progress: nodes on the active path; reaching one again is a cycle
- height: longest distance from a visited node to an origin, so a shared
  ancestor reached again through a deeper path still counts against the
  depth ceiling without being re-expanded

Parent edges are sorted by parent id before they are followed, so the
traversal (and any error it raises) does not depend on accessor order.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, List, Optional, Tuple

from core.exceptions import (
    ConfigError,
    CycleDetectedError,
    DepthExceededError,
    NodeNotFoundError,
)
from core.geometry import GeometryConfig, LocationPolygon, PolygonValidator
from core.lineage.accessor import LineageAccessor
from core.lineage.models import InputRecord, LotNode, NodeKind, ParentEdge

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 500


@dataclass
class TraversalConfig:
    """
    Configuration for lineage traversal.

    Attributes:
        max_depth: Longest allowed path (in edges) from the root to an origin
        validate_inputs: Re-validate input locations even when the storage
            layer already returns LocationPolygon objects
    """

    max_depth: int = DEFAULT_MAX_DEPTH
    validate_inputs: bool = True

    def __post_init__(self):
        if isinstance(self.max_depth, bool) or not isinstance(self.max_depth, int):
            raise ConfigError("max_depth", self.max_depth, "must be an integer")
        if self.max_depth < 0:
            raise ConfigError("max_depth", self.max_depth, "must be non-negative")


@dataclass
class GraphNode:
    """
    A visited node and the parent edges followed from it.

    Attributes:
        node: The lineage node
        parent_edges: Parent edges sorted by (parent_id, edge_id)
        depth: Depth at which the node was first reached (root = 0)
        height: Longest distance to an origin node below it
    """

    node: LotNode
    parent_edges: Tuple[ParentEdge, ...] = ()
    depth: int = 0
    height: int = 0

    @property
    def node_id(self) -> str:
        return self.node.node_id


@dataclass
class ProvenanceGraph:
    """
    Result of a backward traversal.

    Each node identifier appears at most once in ``nodes``, however many
    paths reach it.

    Attributes:
        root_id: Node the traversal started from
        nodes: Visited nodes by identifier
        input_records: Input records of RAW_INPUT nodes, by node identifier
        accessor_calls: Number of accessor lookups performed
    """

    root_id: str
    nodes: Dict[str, GraphNode] = field(default_factory=dict)
    input_records: Dict[str, InputRecord] = field(default_factory=dict)
    accessor_calls: int = 0

    @property
    def root(self) -> GraphNode:
        return self.nodes[self.root_id]

    @property
    def max_depth(self) -> int:
        """Longest path from the root to an origin node."""
        return self.root.height if self.root_id in self.nodes else 0

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def parent_ids(self, node_id: str) -> List[str]:
        return [edge.parent_id for edge in self.nodes[node_id].parent_edges]


@dataclass
class _Frame:
    graph_node: GraphNode
    pending: Iterator[ParentEdge]


class ProvenanceGraphBuilder:
    """
    Builds a ProvenanceGraph by walking parent edges back to origins.

    A builder holds no state between calls to build(); the visited sets
    live inside each call.

    Example:
        builder = ProvenanceGraphBuilder(accessor, TraversalConfig(max_depth=50))
        graph = builder.build("shipment-detail-1")
        print(len(graph), graph.max_depth)
    """

    def __init__(
        self,
        accessor: LineageAccessor,
        config: Optional[TraversalConfig] = None,
        geometry_config: Optional[GeometryConfig] = None,
    ):
        self.accessor = accessor
        self.config = config or TraversalConfig()
        self._validator = PolygonValidator(geometry_config)

    def build(self, root_id: str) -> ProvenanceGraph:
        """
        Traverse the lineage of root_id.

        Args:
            root_id: Identifier of the node to trace

        Returns:
            ProvenanceGraph with every node reachable from root_id

        Raises:
            NodeNotFoundError: If root_id or any referenced parent is missing
            CycleDetectedError: If a node's ancestry reaches back to itself
            DepthExceededError: If a path is longer than max_depth
        """
        max_depth = self.config.max_depth
        graph = ProvenanceGraph(root_id=root_id)
        visited = set()
        in_progress = set()
        path: List[str] = []

        root = self._fetch_node(graph, root_id)
        stack = [self._open_frame(graph, root, depth=0)]
        in_progress.add(root_id)
        path.append(root_id)

        while stack:
            frame = stack[-1]
            current = frame.graph_node

            for edge in frame.pending:
                parent_id = edge.parent_id

                if parent_id in visited:
                    # Shared ancestor: edge is already recorded on current.
                    reach = current.depth + 1 + graph.nodes[parent_id].height
                    if reach > max_depth:
                        raise DepthExceededError(parent_id, max_depth)
                    continue

                if parent_id in in_progress:
                    raise CycleDetectedError(parent_id, path)

                if current.depth + 1 > max_depth:
                    raise DepthExceededError(parent_id, max_depth)

                parent = self._fetch_node(graph, parent_id, referenced_by=current.node_id)
                stack.append(self._open_frame(graph, parent, depth=current.depth + 1))
                in_progress.add(parent_id)
                path.append(parent_id)
                break
            else:
                # All parents processed.
                current.height = max(
                    (graph.nodes[e.parent_id].height + 1 for e in current.parent_edges),
                    default=0,
                )
                stack.pop()
                in_progress.discard(current.node_id)
                path.pop()
                visited.add(current.node_id)

        logger.info(
            f"Built provenance graph for {root_id}: {len(graph)} nodes, "
            f"{len(graph.input_records)} inputs, depth {graph.max_depth}, "
            f"{graph.accessor_calls} lookups"
        )
        return graph

    def _open_frame(self, graph: ProvenanceGraph, node: LotNode, depth: int) -> _Frame:
        """Record a newly reached node and queue its parents."""
        if node.kind is NodeKind.RAW_INPUT:
            graph.input_records[node.node_id] = self._fetch_input(graph, node.node_id)
            edges: Tuple[ParentEdge, ...] = ()
        elif node.kind in (NodeKind.INTERMEDIATE_LOT, NodeKind.SHIPMENT_LOT_DETAIL):
            graph.accessor_calls += 1
            edges = tuple(
                sorted(
                    self.accessor.get_parent_edges(node.node_id),
                    key=lambda e: (e.parent_id, e.edge_id or ""),
                )
            )
        else:
            raise ValueError(f"Unsupported node kind: {node.kind!r}")

        graph_node = GraphNode(node=node, parent_edges=edges, depth=depth)
        graph.nodes[node.node_id] = graph_node
        logger.debug(
            f"Expanding {node.kind.value} {node.node_id} at depth {depth} "
            f"({len(edges)} parents)"
        )
        return _Frame(graph_node=graph_node, pending=iter(edges))

    def _fetch_node(
        self,
        graph: ProvenanceGraph,
        node_id: str,
        referenced_by: Optional[str] = None,
    ) -> LotNode:
        graph.accessor_calls += 1
        try:
            return self.accessor.get_node(node_id)
        except NodeNotFoundError as e:
            if referenced_by is not None and e.referenced_by is None:
                raise NodeNotFoundError(node_id, referenced_by=referenced_by) from e
            raise

    def _fetch_input(self, graph: ProvenanceGraph, node_id: str) -> InputRecord:
        graph.accessor_calls += 1
        record = self.accessor.get_input_record(node_id)
        if self.config.validate_inputs or not isinstance(record.location, LocationPolygon):
            record = replace(record, location=self._validator.validate(record.location))
        return record
