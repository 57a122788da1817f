"""
Pytest configuration and fixtures for lot traceability tests.

Markers:
    @pytest.mark.geometry - Polygon validation tests
    @pytest.mark.lineage - Accessor, builder and aggregator tests
    @pytest.mark.trace - Traceability service tests
    @pytest.mark.cli - Command-line interface tests
    @pytest.mark.slow - Tests that take longer to run

Usage:
    pytest -m geometry           # Run only geometry tests
    pytest -m "not slow"         # Skip slow tests
"""

import copy
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from core.lineage import (  # noqa: E402
    ContributionMetadata,
    InMemoryLineageAccessor,
    InputRecord,
    LotNode,
    NodeKind,
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "geometry: Polygon validation tests")
    config.addinivalue_line("markers", "lineage: Lineage accessor/builder/aggregator tests")
    config.addinivalue_line("markers", "trace: Traceability service tests")
    config.addinivalue_line("markers", "cli: Command-line interface tests")
    config.addinivalue_line("markers", "slow: Slow-running tests")


def pytest_collection_modifyitems(config, items):
    """Auto-apply markers based on test file names and test names."""
    for item in items:
        basename = item.fspath.basename
        if "geometry" in basename:
            item.add_marker(pytest.mark.geometry)
        if "lineage" in basename or "builder" in basename or "aggregator" in basename:
            item.add_marker(pytest.mark.lineage)
        if "service" in basename:
            item.add_marker(pytest.mark.trace)
        if "cli" in basename:
            item.add_marker(pytest.mark.cli)

        test_name = item.name.lower()
        if "large" in test_name or "stress" in test_name or "deep" in test_name:
            item.add_marker(pytest.mark.slow)


def ts(day: int, hour: int = 0) -> datetime:
    """UTC timestamp in March 2024."""
    return datetime(2024, 3, day, hour, tzinfo=timezone.utc)


def square(lon: float = -70.0, lat: float = -30.0, size: float = 0.1) -> dict:
    """Closed square polygon with its first corner at (lon, lat)."""
    return {
        "type": "Polygon",
        "coordinates": [[
            [lon, lat],
            [lon - size, lat],
            [lon - size, lat - size],
            [lon, lat - size],
            [lon, lat],
        ]],
    }


def raw_input(accessor, node_id, input_id, product, day, location, quantity=None):
    """Register a RAW_INPUT node and its input record."""
    accessor.add_node(LotNode(node_id, NodeKind.RAW_INPUT, ts(day)))
    accessor.add_input_record(
        node_id,
        InputRecord(
            input_id=input_id,
            product_name=product,
            applied_at=ts(day),
            location=copy.deepcopy(location),
            quantity=quantity,
            unit="kg" if quantity is not None else None,
        ),
    )


@pytest.fixture
def square_polygon():
    """Provide a valid closed polygon (P1)."""
    return square()


@pytest.fixture
def scenario_s1():
    """
    S1 (shipment lot detail) <- L1 (lot) <- {I1, I2} (raw inputs).

    I1 and I2 were applied at structurally identical polygons.
    """
    accessor = InMemoryLineageAccessor()
    accessor.add_node(LotNode("S1", NodeKind.SHIPMENT_LOT_DETAIL, ts(10)))
    accessor.add_node(LotNode("L1", NodeKind.INTERMEDIATE_LOT, ts(5), label="LOT-001"))
    raw_input(accessor, "I1", "INP-1", "Urea", 1, square(), quantity=40)
    raw_input(accessor, "I2", "INP-2", "Copper sulfate", 2, square(), quantity=25)

    accessor.add_edge("S1", "L1", ContributionMetadata(quantity_kg=500, contributed_at=ts(10)))
    accessor.add_edge("L1", "I1", ContributionMetadata(quantity_kg=40))
    accessor.add_edge("L1", "I2", ContributionMetadata(quantity_kg=25))
    return accessor


@pytest.fixture
def scenario_s2():
    """S2 is itself a RAW_INPUT node with no parent edges."""
    accessor = InMemoryLineageAccessor()
    raw_input(accessor, "S2", "INP-9", "Sulfur", 3, square(-71.0, -31.0))
    return accessor


@pytest.fixture
def diamond_accessor():
    """
    S <- {A, B}; A <- L; B <- L; L <- I.

    L is a shared ancestor reached through two paths.
    """
    accessor = InMemoryLineageAccessor()
    accessor.add_node(LotNode("S", NodeKind.SHIPMENT_LOT_DETAIL, ts(10)))
    accessor.add_node(LotNode("A", NodeKind.INTERMEDIATE_LOT, ts(6)))
    accessor.add_node(LotNode("B", NodeKind.INTERMEDIATE_LOT, ts(7)))
    accessor.add_node(LotNode("L", NodeKind.INTERMEDIATE_LOT, ts(3)))
    raw_input(accessor, "I", "INP-1", "Urea", 1, square())

    accessor.add_edge("S", "A", ContributionMetadata(quantity_kg=100))
    accessor.add_edge("S", "B", ContributionMetadata(quantity_kg=150))
    accessor.add_edge("A", "L", ContributionMetadata(quantity_kg=60))
    accessor.add_edge("B", "L", ContributionMetadata(quantity_kg=90))
    accessor.add_edge("L", "I", ContributionMetadata(quantity_kg=10))
    return accessor


def lineage_document() -> dict:
    """Scenario S1 as a lineage document."""
    return {
        "nodes": [
            {"node_id": "S1", "kind": "shipment_lot_detail", "timestamp": "2024-03-10T00:00:00+00:00"},
            {"node_id": "L1", "kind": "INTERMEDIATE_LOT", "timestamp": "2024-03-05T00:00:00+00:00",
             "label": "LOT-001"},
            {"node_id": "I1", "kind": "raw_input", "timestamp": "2024-03-01T00:00:00+00:00"},
            {"node_id": "I2", "kind": "raw_input", "timestamp": "2024-03-02T00:00:00+00:00"},
        ],
        "edges": [
            {"child_id": "S1", "parent_id": "L1", "contribution": {"quantity_kg": 500}},
            {"child_id": "L1", "parent_id": "I1", "contribution": {"quantity_kg": 40}},
            {"child_id": "L1", "parent_id": "I2", "contribution": {"quantity_kg": 25}},
        ],
        "inputs": [
            {"node_id": "I1", "input_id": "INP-1", "product_name": "Urea",
             "applied_at": "2024-03-01T00:00:00Z", "location": square(), "quantity": 40, "unit": "kg"},
            {"node_id": "I2", "input_id": "INP-2", "product_name": "Copper sulfate",
             "applied_at": "2024-03-02T00:00:00Z", "location": square(), "quantity": 25, "unit": "kg"},
        ],
    }


@pytest.fixture
def document():
    """Provide scenario S1 as a lineage document."""
    return lineage_document()
