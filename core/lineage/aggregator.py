"""
Provenance Aggregator.

Folds a ProvenanceGraph into a canonical ProvenanceReport:
- Inputs deduplicated by identifier, sorted by identifier
- Locations deduplicated by structural equality, sorted by coordinates
- Timeline of processing steps sorted by (timestamp, node id)

Every collection is sorted before it is returned, so the report does not
depend on traversal or accessor order. Resolving the same unchanged graph
twice yields equal reports with the same fingerprint.
"""

import hashlib
import json
import logging
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from core.exceptions import InconsistentProvenanceError
from core.geometry import LocationPolygon, validate_polygon
from core.lineage.builder import ProvenanceGraph
from core.lineage.models import InputRecord, NodeKind, ParentEdge

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimelineEntry:
    """
    One processing step (non-origin node) in the provenance chain.

    Attributes:
        node_id: Node identifier
        kind: Node kind
        timestamp: When the step happened
        label: Lot code or step name
        contributions: Parent edges with their attribution, sorted by parent id
    """

    node_id: str
    kind: NodeKind
    timestamp: datetime
    label: Optional[str] = None
    contributions: Tuple[ParentEdge, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "node_id": self.node_id,
            "kind": self.kind.value,
            "timestamp": self.timestamp.isoformat(),
            "label": self.label,
            "contributions": [edge.to_dict() for edge in self.contributions],
        }


@dataclass(frozen=True)
class ProvenanceReport:
    """
    Canonical provenance of a lot.

    Attributes:
        root_id: Node the report was resolved for
        root_kind: Kind of the root node
        inputs: Distinct input records, sorted by input id
        locations: Distinct locations, sorted by coordinates
        timeline: Processing steps, sorted by (timestamp, node id)
        node_count: Number of distinct nodes visited
        max_depth: Longest path from the root to an origin
    """

    root_id: str
    root_kind: NodeKind
    inputs: Tuple[InputRecord, ...] = ()
    locations: Tuple[LocationPolygon, ...] = ()
    timeline: Tuple[TimelineEntry, ...] = ()
    node_count: int = 0
    max_depth: int = 0
    fingerprint: str = field(default="", compare=False)

    def __post_init__(self):
        if not self.fingerprint:
            object.__setattr__(self, "fingerprint", self.compute_fingerprint())

    def _payload(self) -> Dict[str, Any]:
        return {
            "root_id": self.root_id,
            "root_kind": self.root_kind.value,
            "inputs": [record.to_dict() for record in self.inputs],
            "locations": [location.to_geojson() for location in self.locations],
            "timeline": [entry.to_dict() for entry in self.timeline],
            "summary": {
                "input_count": len(self.inputs),
                "location_count": len(self.locations),
                "step_count": len(self.timeline),
                "node_count": self.node_count,
                "max_depth": self.max_depth,
            },
        }

    def compute_fingerprint(self) -> str:
        """16-character hash of the canonical report content."""
        canonical = json.dumps(self._payload(), sort_keys=True)
        return hashlib.sha256(canonical.encode()).hexdigest()[:16]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary in canonical order."""
        data = self._payload()
        data["fingerprint"] = self.fingerprint
        return data

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


class ProvenanceAggregator:
    """
    Builds ProvenanceReports from ProvenanceGraphs.

    Stateless; one instance can serve concurrent requests.
    """

    def aggregate(self, graph: ProvenanceGraph) -> ProvenanceReport:
        """
        Fold a graph into a report.

        Args:
            graph: Result of ProvenanceGraphBuilder.build()

        Returns:
            ProvenanceReport

        Raises:
            InconsistentProvenanceError: If one input id carries conflicting values
        """
        inputs = self._merge_inputs(graph)
        locations = self._merge_locations(inputs)
        timeline = self._build_timeline(graph)

        root = graph.root.node
        report = ProvenanceReport(
            root_id=graph.root_id,
            root_kind=root.kind,
            inputs=inputs,
            locations=locations,
            timeline=timeline,
            node_count=len(graph),
            max_depth=graph.max_depth,
        )
        logger.debug(
            f"Aggregated {graph.root_id}: {len(inputs)} inputs, "
            f"{len(locations)} locations, {len(timeline)} steps"
        )
        return report

    def _merge_inputs(self, graph: ProvenanceGraph) -> Tuple[InputRecord, ...]:
        merged: Dict[str, InputRecord] = {}
        for node_id in sorted(graph.input_records):
            record = graph.input_records[node_id]
            if not isinstance(record.location, LocationPolygon):
                record = replace(record, location=validate_polygon(record.location))

            existing = merged.get(record.input_id)
            if existing is None:
                merged[record.input_id] = record
                continue

            conflicts = _differing_fields(existing, record)
            if conflicts:
                raise InconsistentProvenanceError(record.input_id, conflicts)

        return tuple(merged[input_id] for input_id in sorted(merged))

    def _merge_locations(self, inputs: Tuple[InputRecord, ...]) -> Tuple[LocationPolygon, ...]:
        distinct = {record.location for record in inputs}
        return tuple(sorted(distinct, key=LocationPolygon.sort_key))

    def _build_timeline(self, graph: ProvenanceGraph) -> Tuple[TimelineEntry, ...]:
        entries: List[TimelineEntry] = []
        for graph_node in graph.nodes.values():
            node = graph_node.node
            if node.is_origin:
                continue
            entries.append(
                TimelineEntry(
                    node_id=node.node_id,
                    kind=node.kind,
                    timestamp=node.timestamp,
                    label=node.label,
                    contributions=tuple(
                        sorted(
                            graph_node.parent_edges,
                            key=lambda e: (e.parent_id, e.edge_id or ""),
                        )
                    ),
                )
            )
        entries.sort(key=lambda entry: (entry.timestamp, entry.node_id))
        return tuple(entries)


def _differing_fields(a: InputRecord, b: InputRecord) -> List[str]:
    return [f.name for f in fields(InputRecord) if getattr(a, f.name) != getattr(b, f.name)]


_default_aggregator = ProvenanceAggregator()


def aggregate(graph: ProvenanceGraph) -> ProvenanceReport:
    """Aggregate a graph with the default aggregator."""
    return _default_aggregator.aggregate(graph)
