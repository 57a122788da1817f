"""
Load Command - Import a lineage document into a SQLite lineage store.

Usage:
    ltrace load --document lineage.yaml --db lineage.db
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict

import click
import yaml

from core.exceptions import TraceabilityError
from core.lineage import NodeKind, SQLiteLineageStore, load_lineage_document

logger = logging.getLogger("ltrace.load")


def read_document(path: Path) -> Dict[str, Any]:
    """
    Read a JSON or YAML document.

    Args:
        path: Document path; ".json" is parsed as JSON, anything else as YAML

    Returns:
        Parsed mapping
    """
    with open(path) as f:
        if path.suffix.lower() == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise click.BadParameter(f"{path} does not contain a mapping")
    return data


@click.command("load")
@click.option(
    "--document",
    "-d",
    "document_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Lineage document (JSON or YAML) with nodes, edges and inputs.",
)
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help="SQLite database to write (created if missing).",
)
@click.pass_obj
def load(ctx, document_path: Path, db_path: Path):
    """
    Import a lineage document into a SQLite lineage store.

    Input locations are validated on the way in, with the same rules
    the trace command applies.

    \b
    Examples:
        ltrace load --document lineage.yaml --db lineage.db
    """
    data = read_document(document_path)
    config = ctx.config

    db_path.parent.mkdir(parents=True, exist_ok=True)
    with SQLiteLineageStore(db_path, geometry_config=config.geometry) as store:
        try:
            load_lineage_document(data, target=store, geometry_config=config.geometry)
        except (TraceabilityError, KeyError, ValueError) as e:
            logger.error(f"Failed to load {document_path}: {e}")
            raise SystemExit(1)

        shipments = store.list_node_ids(kind=NodeKind.SHIPMENT_LOT_DETAIL.value)
        total = len(store.list_node_ids())

    click.echo(f"\n=== Lineage Loaded ===")
    click.echo(f"  Document: {document_path}")
    click.echo(f"  Database: {db_path}")
    click.echo(f"  Nodes: {total}")
    click.echo(f"  Shipment lot details: {len(shipments)}")
    for node_id in shipments:
        click.echo(f"    - {node_id}")
