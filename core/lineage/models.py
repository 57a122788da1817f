"""
Lineage Data Model.

Records handed to the traceability engine by the persistence layer:
- LotNode: a lineage vertex (raw input, intermediate lot, shipment lot detail)
- ParentEdge: a contribution from a parent node to a child node
- InputRecord: one application event of an input at a geofenced location

All records are frozen. The engine reads them and never mutates them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from core.geometry import LocationPolygon


class NodeKind(Enum):
    """Kinds of lineage vertices."""

    RAW_INPUT = "raw_input"
    INTERMEDIATE_LOT = "intermediate_lot"
    SHIPMENT_LOT_DETAIL = "shipment_lot_detail"

    @classmethod
    def parse(cls, value: Union[str, "NodeKind"]) -> "NodeKind":
        """Accept an enum member, its value, or its name in any case."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for kind in cls:
            if kind.value == text:
                return kind
        raise ValueError(f"Unknown node kind: {value!r}")


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse an ISO-8601 string or datetime into an aware UTC datetime.

    Naive datetimes are taken to be UTC so that timestamps from different
    sources always sort against each other.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if not isinstance(value, datetime):
        raise ValueError(f"Expected datetime or ISO string, got {type(value).__name__}")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class ContributionMetadata:
    """
    How much of a parent went into a child, and when.

    Attributes:
        quantity_kg: Quantity attributed to the parent
        contributed_at: When the contribution happened
        notes: Free-text note from the source record
    """

    quantity_kg: Optional[float] = None
    contributed_at: Optional[datetime] = None
    notes: Optional[str] = None

    def __post_init__(self):
        if self.quantity_kg is not None:
            object.__setattr__(self, "quantity_kg", float(self.quantity_kg))
        object.__setattr__(self, "contributed_at", parse_timestamp(self.contributed_at))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "quantity_kg": self.quantity_kg,
            "contributed_at": _isoformat(self.contributed_at),
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ContributionMetadata":
        data = data or {}
        return cls(
            quantity_kg=data.get("quantity_kg"),
            contributed_at=data.get("contributed_at"),
            notes=data.get("notes"),
        )


@dataclass(frozen=True)
class ParentEdge:
    """
    Edge from a child node to one of the nodes that contributed to it.

    Attributes:
        parent_id: Identifier of the contributing node
        contribution: Quantity/date attribution for reporting
        edge_id: Identifier of the edge record
    """

    parent_id: str
    contribution: ContributionMetadata = field(default_factory=ContributionMetadata)
    edge_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "edge_id": self.edge_id,
            "parent_id": self.parent_id,
            "contribution": self.contribution.to_dict(),
        }


@dataclass(frozen=True)
class LotNode:
    """
    A lineage vertex.

    Attributes:
        node_id: Unique node identifier
        kind: Node kind
        timestamp: When the lot/detail/input event happened
        parent_edge_ids: Identifiers of edges pointing at contributing nodes
        label: Human-readable label (lot code, work step name)
        attributes: Additional metadata from the source record
    """

    node_id: str
    kind: NodeKind
    timestamp: datetime
    parent_edge_ids: Tuple[str, ...] = ()
    label: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "kind", NodeKind.parse(self.kind))
        if self.timestamp is None:
            raise ValueError(f"Lineage node {self.node_id!r} has no timestamp")
        object.__setattr__(self, "timestamp", parse_timestamp(self.timestamp))
        object.__setattr__(self, "parent_edge_ids", tuple(self.parent_edge_ids))

    @property
    def is_origin(self) -> bool:
        return self.kind is NodeKind.RAW_INPUT

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "node_id": self.node_id,
            "kind": self.kind.value,
            "timestamp": _isoformat(self.timestamp),
            "parent_edge_ids": list(self.parent_edge_ids),
            "label": self.label,
            "attributes": self.attributes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LotNode":
        return cls(
            node_id=data["node_id"],
            kind=data["kind"],
            timestamp=data["timestamp"],
            parent_edge_ids=tuple(data.get("parent_edge_ids", ())),
            label=data.get("label"),
            attributes=dict(data.get("attributes") or {}),
        )


@dataclass(frozen=True)
class InputRecord:
    """
    One application of an input (fertilizer, treatment) to a location.

    The location is normally a validated LocationPolygon; storage layers
    that hand back raw GeoJSON mappings get it validated by the graph
    builder before aggregation.

    Attributes:
        input_id: Unique input record identifier
        product_name: Applied product
        applied_at: When it was applied
        location: Geofence of the application
        upstream_lot_ids: Lots the applied product came from
        quantity: Applied quantity
        unit: Unit of quantity
        applicator: Who applied it
    """

    input_id: str
    product_name: str
    applied_at: datetime
    location: Union[LocationPolygon, Dict[str, Any]]
    upstream_lot_ids: Tuple[str, ...] = ()
    quantity: Optional[float] = None
    unit: Optional[str] = None
    applicator: Optional[str] = None

    def __post_init__(self):
        if self.applied_at is None:
            raise ValueError(f"Input record {self.input_id!r} has no applied_at")
        object.__setattr__(self, "applied_at", parse_timestamp(self.applied_at))
        object.__setattr__(self, "upstream_lot_ids", tuple(self.upstream_lot_ids))
        if self.quantity is not None:
            object.__setattr__(self, "quantity", float(self.quantity))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        location = self.location
        if isinstance(location, LocationPolygon):
            location = location.to_geojson()
        return {
            "input_id": self.input_id,
            "product_name": self.product_name,
            "applied_at": _isoformat(self.applied_at),
            "location": location,
            "upstream_lot_ids": list(self.upstream_lot_ids),
            "quantity": self.quantity,
            "unit": self.unit,
            "applicator": self.applicator,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InputRecord":
        return cls(
            input_id=data["input_id"],
            product_name=data["product_name"],
            applied_at=data["applied_at"],
            location=data["location"],
            upstream_lot_ids=tuple(data.get("upstream_lot_ids", ())),
            quantity=data.get("quantity"),
            unit=data.get("unit"),
            applicator=data.get("applicator"),
        )
