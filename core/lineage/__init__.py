"""
Lineage Module.

Backward traversal of lot lineage and provenance aggregation:
- Models: LotNode, ParentEdge, ContributionMetadata, InputRecord
- Accessors: LineageAccessor contract, in-memory and SQLite implementations
- Builder: iterative traversal with dedup, cycle and depth protection
- Aggregator: canonical, order-independent ProvenanceReport

Usage:
    from core.lineage import (
        InMemoryLineageAccessor,
        ProvenanceGraphBuilder,
        aggregate,
    )

    graph = ProvenanceGraphBuilder(accessor).build("S1")
    report = aggregate(graph)
"""

from core.lineage.models import (
    ContributionMetadata,
    InputRecord,
    LotNode,
    NodeKind,
    ParentEdge,
    parse_timestamp,
)

from core.lineage.accessor import (
    InMemoryLineageAccessor,
    LineageAccessor,
    load_lineage_document,
    make_edge_id,
)

from core.lineage.store import SQLiteLineageStore

from core.lineage.builder import (
    DEFAULT_MAX_DEPTH,
    GraphNode,
    ProvenanceGraph,
    ProvenanceGraphBuilder,
    TraversalConfig,
)

from core.lineage.aggregator import (
    ProvenanceAggregator,
    ProvenanceReport,
    TimelineEntry,
    aggregate,
)

__all__ = [
    # Models
    "ContributionMetadata",
    "InputRecord",
    "LotNode",
    "NodeKind",
    "ParentEdge",
    "parse_timestamp",
    # Accessors
    "InMemoryLineageAccessor",
    "LineageAccessor",
    "SQLiteLineageStore",
    "load_lineage_document",
    "make_edge_id",
    # Builder
    "DEFAULT_MAX_DEPTH",
    "GraphNode",
    "ProvenanceGraph",
    "ProvenanceGraphBuilder",
    "TraversalConfig",
    # Aggregator
    "ProvenanceAggregator",
    "ProvenanceReport",
    "TimelineEntry",
    "aggregate",
]
