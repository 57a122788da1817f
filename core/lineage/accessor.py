"""
Lineage Graph Accessor.

The traceability engine reads lineage through exactly three lookups:
- get_node(node_id)
- get_parent_edges(node_id)
- get_input_record(node_id)

Everything else (writes, filters, search) belongs to the persistence layer.
This module defines that contract, an in-memory implementation, and a
loader for lineage documents (JSON/YAML) into any writable accessor.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence

from core.exceptions import NodeNotFoundError
from core.geometry import GeometryConfig, PolygonValidator
from core.lineage.models import ContributionMetadata, InputRecord, LotNode, ParentEdge

logger = logging.getLogger(__name__)


class LineageAccessor(ABC):
    """
    Read-only view of the lineage graph.

    Implementations must be safe for concurrent reads if the service is
    used from several threads.
    """

    @abstractmethod
    def get_node(self, node_id: str) -> LotNode:
        """
        Look up a lineage node.

        Raises:
            NodeNotFoundError: If no node has this identifier
        """

    @abstractmethod
    def get_parent_edges(self, node_id: str) -> Sequence[ParentEdge]:
        """
        Edges pointing at the nodes that contributed to node_id.

        Order carries no meaning.
        """

    @abstractmethod
    def get_input_record(self, node_id: str) -> InputRecord:
        """
        Input record attached to a RAW_INPUT node.

        Raises:
            NodeNotFoundError: If the node has no input record
        """


def make_edge_id(child_id: str, parent_id: str, ordinal: int = 0) -> str:
    """
    Deterministic edge identifier for edges registered without one.

    ordinal counts earlier edges between the same child and parent.
    """
    return f"{child_id}<-{parent_id}#{ordinal}"


class InMemoryLineageAccessor(LineageAccessor):
    """
    Dictionary-backed lineage accessor.

    Example:
        accessor = InMemoryLineageAccessor()
        accessor.add_node(LotNode("S1", NodeKind.SHIPMENT_LOT_DETAIL, ts))
        accessor.add_node(LotNode("L1", NodeKind.INTERMEDIATE_LOT, ts))
        accessor.add_edge("S1", "L1", ContributionMetadata(quantity_kg=120.0))
    """

    def __init__(self):
        self._nodes: Dict[str, LotNode] = {}
        self._edges: Dict[str, List[ParentEdge]] = {}
        self._inputs: Dict[str, InputRecord] = {}

    def add_node(self, node: LotNode) -> LotNode:
        """Register or replace a node."""
        self._nodes[node.node_id] = node
        return node

    def add_edge(
        self,
        child_id: str,
        parent_id: str,
        contribution: Optional[ContributionMetadata] = None,
        edge_id: Optional[str] = None,
    ) -> ParentEdge:
        """
        Register an edge from child_id to the parent that contributed to it.

        The parent does not need to exist yet; a parent that never appears
        surfaces as NodeNotFoundError during a trace.
        """
        edges = self._edges.setdefault(child_id, [])
        if edge_id is None:
            ordinal = sum(1 for e in edges if e.parent_id == parent_id)
            edge_id = make_edge_id(child_id, parent_id, ordinal)
        edge = ParentEdge(
            parent_id=parent_id,
            contribution=contribution or ContributionMetadata(),
            edge_id=edge_id,
        )
        edges.append(edge)
        return edge

    def add_input_record(self, node_id: str, record: InputRecord) -> InputRecord:
        """Attach an input record to a RAW_INPUT node."""
        self._inputs[node_id] = record
        return record

    def get_node(self, node_id: str) -> LotNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        edges = self._edges.get(node_id)
        if edges:
            node = replace(node, parent_edge_ids=tuple(e.edge_id for e in edges))
        return node

    def get_parent_edges(self, node_id: str) -> Sequence[ParentEdge]:
        if node_id not in self._nodes:
            raise NodeNotFoundError(node_id)
        return list(self._edges.get(node_id, ()))

    def get_input_record(self, node_id: str) -> InputRecord:
        record = self._inputs.get(node_id)
        if record is None:
            raise NodeNotFoundError(node_id, record_type="input_record")
        return record

    def __len__(self) -> int:
        return len(self._nodes)


def load_lineage_document(
    data: Dict[str, Any],
    target=None,
    validate_geometry: bool = True,
    geometry_config: Optional[GeometryConfig] = None,
):
    """
    Load a lineage document into an accessor.

    The document has three lists:

        nodes:  [{node_id, kind, timestamp, label?, attributes?}]
        edges:  [{child_id, parent_id, edge_id?, contribution?}]
        inputs: [{node_id, input_id, product_name, applied_at, location, ...}]

    Args:
        data: Parsed document
        target: Accessor with add_node/add_edge/add_input_record
            (a new InMemoryLineageAccessor if None)
        validate_geometry: Validate input locations while loading
        geometry_config: Bounds used for validation

    Returns:
        The populated accessor
    """
    if target is None:
        target = InMemoryLineageAccessor()
    validator = PolygonValidator(geometry_config) if validate_geometry else None

    nodes = data.get("nodes") or []
    edges = data.get("edges") or []
    inputs = data.get("inputs") or []

    for node_data in nodes:
        target.add_node(LotNode.from_dict(node_data))

    for edge_data in edges:
        target.add_edge(
            edge_data["child_id"],
            edge_data["parent_id"],
            ContributionMetadata.from_dict(edge_data.get("contribution")),
            edge_id=edge_data.get("edge_id"),
        )

    for input_data in inputs:
        record = InputRecord.from_dict(input_data)
        if validator is not None:
            record = replace(record, location=validator.validate(record.location))
        target.add_input_record(input_data["node_id"], record)

    logger.info(
        f"Loaded lineage document: {len(nodes)} nodes, "
        f"{len(edges)} edges, {len(inputs)} input records"
    )
    return target
