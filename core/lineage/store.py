"""
SQLite Lineage Store.

Persists lineage nodes, parent edges and input records in a SQLite
database and serves them through the LineageAccessor contract. Input
records are validated on registration with the same polygon rules the
traceability engine applies when it reads them back.
"""

import json
import logging
import sqlite3
import threading
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence, Union

from core.exceptions import NodeNotFoundError
from core.geometry import GeometryConfig, LocationPolygon, PolygonValidator
from core.lineage.accessor import LineageAccessor, make_edge_id
from core.lineage.models import (
    ContributionMetadata,
    InputRecord,
    LotNode,
    ParentEdge,
)

logger = logging.getLogger(__name__)


class SQLiteLineageStore(LineageAccessor):
    """
    Lineage accessor backed by SQLite.

    Example:
        store = SQLiteLineageStore("lineage.db")
        store.add_node(LotNode("L1", NodeKind.INTERMEDIATE_LOT, ts))
        store.add_node(LotNode("I1", NodeKind.RAW_INPUT, ts))
        store.add_edge("L1", "I1", ContributionMetadata(quantity_kg=40.0))
        store.add_input_record("I1", record)
        store.close()
    """

    def __init__(
        self,
        db_path: Optional[Union[str, Path]] = None,
        geometry_config: Optional[GeometryConfig] = None,
    ):
        """
        Initialize SQLiteLineageStore.

        Args:
            db_path: Path to SQLite database (uses :memory: if None)
            geometry_config: Bounds used when validating input locations
        """
        self._db_path = str(db_path) if db_path else ":memory:"
        self._db: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        self._validator = PolygonValidator(geometry_config)

        self._init_database()

    def _init_database(self):
        """Initialize database schema."""
        self._db = sqlite3.connect(self._db_path, check_same_thread=False)
        self._db.row_factory = sqlite3.Row

        self._db.execute("""
            CREATE TABLE IF NOT EXISTS lot_nodes (
                node_id TEXT PRIMARY KEY,
                kind TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                label TEXT,
                attributes TEXT NOT NULL
            )
        """)

        self._db.execute("""
            CREATE TABLE IF NOT EXISTS lineage_edges (
                edge_id TEXT PRIMARY KEY,
                child_id TEXT NOT NULL,
                parent_id TEXT NOT NULL,
                contribution TEXT NOT NULL
            )
        """)

        self._db.execute("""
            CREATE TABLE IF NOT EXISTS input_records (
                node_id TEXT PRIMARY KEY,
                input_id TEXT NOT NULL,
                data TEXT NOT NULL
            )
        """)

        self._db.execute("""
            CREATE INDEX IF NOT EXISTS idx_edges_child_id
            ON lineage_edges(child_id)
        """)

        self._db.execute("""
            CREATE INDEX IF NOT EXISTS idx_inputs_input_id
            ON input_records(input_id)
        """)

        self._db.commit()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_node(self, node: LotNode) -> LotNode:
        """Register or replace a node."""
        with self._lock:
            self._db.execute(
                """
                INSERT OR REPLACE INTO lot_nodes
                (node_id, kind, timestamp, label, attributes)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    node.node_id,
                    node.kind.value,
                    node.timestamp.isoformat(),
                    node.label,
                    json.dumps(node.attributes, sort_keys=True, default=str),
                ),
            )
            self._db.commit()
        return node

    def add_edge(
        self,
        child_id: str,
        parent_id: str,
        contribution: Optional[ContributionMetadata] = None,
        edge_id: Optional[str] = None,
    ) -> ParentEdge:
        """Register an edge from child_id to a contributing parent."""
        contribution = contribution or ContributionMetadata()
        with self._lock:
            if edge_id is None:
                (count,) = self._db.execute(
                    "SELECT COUNT(*) FROM lineage_edges WHERE child_id = ? AND parent_id = ?",
                    (child_id, parent_id),
                ).fetchone()
                edge_id = make_edge_id(child_id, parent_id, count)

            self._db.execute(
                """
                INSERT OR REPLACE INTO lineage_edges
                (edge_id, child_id, parent_id, contribution)
                VALUES (?, ?, ?, ?)
                """,
                (edge_id, child_id, parent_id, json.dumps(contribution.to_dict())),
            )
            self._db.commit()
        return ParentEdge(parent_id=parent_id, contribution=contribution, edge_id=edge_id)

    def add_input_record(self, node_id: str, record: InputRecord) -> InputRecord:
        """
        Attach an input record to a RAW_INPUT node.

        Raises:
            InvalidGeometryError: If the record's location is not a valid polygon
        """
        record = replace(record, location=self._validator.validate(record.location))
        with self._lock:
            self._db.execute(
                """
                INSERT OR REPLACE INTO input_records
                (node_id, input_id, data)
                VALUES (?, ?, ?)
                """,
                (node_id, record.input_id, json.dumps(record.to_dict())),
            )
            self._db.commit()
        return record

    # ------------------------------------------------------------------
    # LineageAccessor
    # ------------------------------------------------------------------

    def get_node(self, node_id: str) -> LotNode:
        with self._lock:
            row = self._db.execute(
                "SELECT * FROM lot_nodes WHERE node_id = ?",
                (node_id,),
            ).fetchone()
            edge_rows = self._db.execute(
                "SELECT edge_id FROM lineage_edges WHERE child_id = ? ORDER BY edge_id",
                (node_id,),
            ).fetchall()

        if not row:
            raise NodeNotFoundError(node_id)

        return LotNode(
            node_id=row["node_id"],
            kind=row["kind"],
            timestamp=row["timestamp"],
            parent_edge_ids=tuple(r["edge_id"] for r in edge_rows),
            label=row["label"],
            attributes=json.loads(row["attributes"]),
        )

    def get_parent_edges(self, node_id: str) -> Sequence[ParentEdge]:
        with self._lock:
            exists = self._db.execute(
                "SELECT 1 FROM lot_nodes WHERE node_id = ?",
                (node_id,),
            ).fetchone()
            rows = self._db.execute(
                "SELECT * FROM lineage_edges WHERE child_id = ?",
                (node_id,),
            ).fetchall()

        if not exists:
            raise NodeNotFoundError(node_id)

        return [
            ParentEdge(
                parent_id=row["parent_id"],
                contribution=ContributionMetadata.from_dict(json.loads(row["contribution"])),
                edge_id=row["edge_id"],
            )
            for row in rows
        ]

    def get_input_record(self, node_id: str) -> InputRecord:
        with self._lock:
            row = self._db.execute(
                "SELECT data FROM input_records WHERE node_id = ?",
                (node_id,),
            ).fetchone()

        if not row:
            raise NodeNotFoundError(node_id, record_type="input_record")

        record = InputRecord.from_dict(json.loads(row["data"]))
        # Stored locations were validated on registration.
        location = record.location
        return replace(
            record,
            location=LocationPolygon(
                coordinates=tuple(
                    tuple((float(lon), float(lat)) for lon, lat in ring)
                    for ring in location["coordinates"]
                )
            ),
        )

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def list_node_ids(self, kind: Optional[str] = None) -> List[str]:
        """
        List node identifiers.

        Args:
            kind: Filter by node kind value

        Returns:
            Sorted node identifiers
        """
        with self._lock:
            if kind:
                rows = self._db.execute(
                    "SELECT node_id FROM lot_nodes WHERE kind = ? ORDER BY node_id",
                    (kind,),
                ).fetchall()
            else:
                rows = self._db.execute(
                    "SELECT node_id FROM lot_nodes ORDER BY node_id"
                ).fetchall()
        return [row["node_id"] for row in rows]

    def close(self):
        """Close store and release resources."""
        if self._db:
            self._db.close()
            self._db = None
            logger.debug(f"Closed lineage store {self._db_path}")

    def __enter__(self) -> "SQLiteLineageStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
