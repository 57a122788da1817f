"""
Exceptions for Traceability Resolution.

Provides a hierarchy of exceptions for the failure modes of the
traceability engine. None of these are retried internally; every one
propagates to the caller instead of producing a partial report.
"""

from typing import List, Optional


class TraceabilityError(Exception):
    """
    Base exception for traceability failures.

    All engine-specific exceptions inherit from this class,
    allowing for broad exception handling when needed.

    Attributes:
        message: Human-readable error description
        details: Additional context about the failure
    """

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class ConfigError(TraceabilityError):
    """Configuration value is missing or out of range."""

    def __init__(self, field_name: str, value=None, reason: str = None):
        message = f"Invalid configuration for '{field_name}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, {"field": field_name, "value": value})
        self.field_name = field_name
        self.value = value
        self.reason = reason


class InvalidGeometryError(TraceabilityError):
    """
    Location polygon is malformed or out of range.

    Raised by the geometry validator for client-supplied polygons, both
    when records are written and when they are read back during a trace.

    Attributes:
        reason: Explanation of why the geometry is invalid
        ring_index: Index of the offending ring, if known
        point_index: Index of the offending point, if known
        value: The offending value, if any
    """

    def __init__(
        self,
        reason: str,
        ring_index: Optional[int] = None,
        point_index: Optional[int] = None,
        value=None,
    ):
        message = f"Invalid geometry: {reason}"
        details = {}
        if ring_index is not None:
            details["ring"] = ring_index
        if point_index is not None:
            details["point"] = point_index
        if value is not None:
            details["value"] = value
        super().__init__(message, details)
        self.reason = reason
        self.ring_index = ring_index
        self.point_index = point_index
        self.value = value


class InvalidIdentifierError(TraceabilityError):
    """Identifier passed to resolve() is empty or malformed."""

    def __init__(self, identifier, reason: str = "identifier must be a non-empty string"):
        super().__init__(f"Invalid identifier: {reason}", {"identifier": repr(identifier)})
        self.identifier = identifier
        self.reason = reason


class NodeNotFoundError(TraceabilityError):
    """
    Lineage reference does not resolve.

    A dangling lineage pointer indicates corrupt data, so it is reported
    rather than skipped.

    Attributes:
        node_id: Identifier that could not be resolved
        referenced_by: Node whose parent edge points at node_id, if any
        record_type: What was being looked up ("node" or "input_record")
    """

    def __init__(
        self,
        node_id: str,
        referenced_by: Optional[str] = None,
        record_type: str = "node",
    ):
        message = f"Lineage {record_type} '{node_id}' not found"
        details = {"node_id": node_id}
        if referenced_by is not None:
            details["referenced_by"] = referenced_by
        super().__init__(message, details)
        self.node_id = node_id
        self.referenced_by = referenced_by
        self.record_type = record_type


class CycleDetectedError(TraceabilityError):
    """
    Lineage graph contains a cycle.

    Attributes:
        node_id: Node that was reached again while still on the active path
        path: Active path from the root up to the repeated node
    """

    def __init__(self, node_id: str, path: List[str] = None):
        path = list(path or [])
        message = f"Cycle detected at lineage node '{node_id}'"
        details = {"node_id": node_id}
        if path:
            details["path"] = " -> ".join(path + [node_id])
        super().__init__(message, details)
        self.node_id = node_id
        self.path = path


class DepthExceededError(TraceabilityError):
    """
    Traversal went deeper than the configured ceiling.

    Attributes:
        node_id: First node found beyond the ceiling
        max_depth: The configured ceiling
    """

    def __init__(self, node_id: str, max_depth: int):
        message = f"Lineage depth exceeded maximum of {max_depth}"
        super().__init__(message, {"node_id": node_id, "max_depth": max_depth})
        self.node_id = node_id
        self.max_depth = max_depth


class InconsistentProvenanceError(TraceabilityError):
    """
    Same input identifier resolved to conflicting field values.

    Attributes:
        input_id: Identifier of the conflicting input record
        fields: Names of the fields whose values differ
    """

    def __init__(self, input_id: str, fields: List[str] = None):
        fields = sorted(fields or [])
        message = f"Input record '{input_id}' has conflicting values"
        super().__init__(message, {"input_id": input_id, "fields": ",".join(fields)})
        self.input_id = input_id
        self.fields = fields
