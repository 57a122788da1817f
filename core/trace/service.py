"""
Traceability Service.

Single entry point for resolving the provenance of a shipment lot detail.
Callers (HTTP routes, CLI) must have authenticated and authorized the
request already; the service never inspects roles.
"""

import logging
import time
import uuid
from pathlib import Path
from typing import Optional, Union

from core.exceptions import InvalidIdentifierError
from core.lineage import (
    LineageAccessor,
    ProvenanceAggregator,
    ProvenanceGraphBuilder,
    ProvenanceReport,
)
from core.trace.config import TraceConfig

logger = logging.getLogger(__name__)


class TraceabilityService:
    """
    Resolves provenance reports.

    Holds the accessor and configuration only. Each resolve() call builds
    its own graph, so concurrent calls share no mutable state.

    Example:
        service = TraceabilityService(SQLiteLineageStore("lineage.db"))
        report = service.resolve("5f0c...")
        print(report.to_json())
    """

    def __init__(self, accessor: LineageAccessor, config: Optional[TraceConfig] = None):
        self.accessor = accessor
        self.config = config or TraceConfig()
        self._aggregator = ProvenanceAggregator()

    def resolve(self, shipment_lot_detail_id: str) -> ProvenanceReport:
        """
        Resolve the provenance of a shipment lot detail.

        Args:
            shipment_lot_detail_id: Identifier of the root node

        Returns:
            ProvenanceReport

        Raises:
            InvalidIdentifierError: If the identifier is empty or malformed
            NodeNotFoundError: If the root or a referenced parent is missing
            CycleDetectedError: If the lineage contains a cycle
            DepthExceededError: If the lineage is deeper than configured
            InconsistentProvenanceError: If an input id has conflicting values
            InvalidGeometryError: If a stored input location is malformed
        """
        node_id = self._check_identifier(shipment_lot_detail_id)
        start = time.perf_counter()

        builder = ProvenanceGraphBuilder(
            self.accessor,
            config=self.config.traversal,
            geometry_config=self.config.geometry,
        )
        graph = builder.build(node_id)
        report = self._aggregator.aggregate(graph)

        elapsed = time.perf_counter() - start
        logger.info(
            f"Resolved {node_id}: {len(report.inputs)} inputs, "
            f"{len(report.locations)} locations, {len(report.timeline)} steps "
            f"in {elapsed:.3f}s (fingerprint {report.fingerprint})"
        )
        return report

    def export_to_json(
        self,
        shipment_lot_detail_id: str,
        path: Union[str, Path],
    ) -> Path:
        """
        Resolve a report and write it to a JSON file.

        Args:
            shipment_lot_detail_id: Identifier of the root node
            path: Output file path

        Returns:
            Path to written file
        """
        report = self.resolve(shipment_lot_detail_id)

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            f.write(report.to_json())

        return path

    def _check_identifier(self, identifier) -> str:
        if not isinstance(identifier, str) or not identifier.strip():
            raise InvalidIdentifierError(identifier)
        if self.config.require_uuid:
            try:
                uuid.UUID(identifier)
            except ValueError:
                raise InvalidIdentifierError(identifier, "identifier must be a UUID") from None
        return identifier


def create_service(
    accessor: LineageAccessor,
    config: Optional[TraceConfig] = None,
) -> TraceabilityService:
    """Create a TraceabilityService with default or given configuration."""
    return TraceabilityService(accessor, config)
