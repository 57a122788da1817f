"""
Trace Command - Resolve the provenance of a shipment lot detail.

Usage:
    ltrace trace S1 --db lineage.db
    ltrace trace S1 --document lineage.yaml --format json --output S1.json
"""

import logging
from pathlib import Path
from typing import Optional

import click

from core.exceptions import TraceabilityError
from core.lineage import (
    InMemoryLineageAccessor,
    ProvenanceReport,
    SQLiteLineageStore,
    TraversalConfig,
    load_lineage_document,
)
from core.trace import TraceabilityService

from cli.commands.load import read_document

logger = logging.getLogger("ltrace.trace")


@click.command("trace")
@click.argument("shipment_lot_detail_id")
@click.option(
    "--db",
    "db_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="SQLite lineage store to read.",
)
@click.option(
    "--document",
    "-d",
    "document_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Lineage document (JSON or YAML) to read instead of a store.",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["text", "json"], case_sensitive=False),
    default="text",
    help="Output format for the report (default: text).",
)
@click.option(
    "--output",
    "-o",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the report to this file instead of stdout.",
)
@click.option(
    "--max-depth",
    type=int,
    default=None,
    help="Override the configured traversal depth ceiling.",
)
@click.pass_obj
def trace(
    ctx,
    shipment_lot_detail_id: str,
    db_path: Optional[Path],
    document_path: Optional[Path],
    output_format: str,
    output_path: Optional[Path],
    max_depth: Optional[int],
):
    """
    Resolve which inputs and locations went into a shipment lot detail.

    \b
    Examples:
        # Text summary from a SQLite store
        ltrace trace S1 --db lineage.db

        # JSON report from a lineage document
        ltrace trace S1 --document lineage.yaml --format json -o S1.json
    """
    if (db_path is None) == (document_path is None):
        raise click.UsageError("Specify exactly one of --db or --document")

    store = None
    try:
        config = ctx.config
        if max_depth is not None:
            config.traversal = TraversalConfig(
                max_depth=max_depth,
                validate_inputs=config.traversal.validate_inputs,
            )

        if db_path is not None:
            store = SQLiteLineageStore(db_path, geometry_config=config.geometry)
            accessor = store
        else:
            accessor = load_lineage_document(
                read_document(document_path),
                target=InMemoryLineageAccessor(),
                geometry_config=config.geometry,
            )

        report = TraceabilityService(accessor, config).resolve(shipment_lot_detail_id)
    except (TraceabilityError, KeyError, ValueError) as e:
        logger.error(f"Trace failed: {e}")
        raise SystemExit(1)
    finally:
        if store is not None:
            store.close()

    if output_format.lower() == "json":
        text = report.to_json()
    else:
        text = format_text(report)

    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(text)
        click.echo(f"Report written to {output_path}")
    else:
        click.echo(text)


def format_text(report: ProvenanceReport) -> str:
    """Render a report as a human-readable summary."""
    lines = [
        f"=== Provenance Report: {report.root_id} ===",
        f"  Root kind: {report.root_kind.value}",
        f"  Nodes visited: {report.node_count}",
        f"  Max depth: {report.max_depth}",
        f"  Fingerprint: {report.fingerprint}",
        "",
        f"--- Inputs ({len(report.inputs)}) ---",
    ]

    for record in report.inputs:
        amount = ""
        if record.quantity is not None:
            amount = f"  {record.quantity:g} {record.unit or ''}".rstrip()
        lines.append(
            f"  {record.input_id}  {record.product_name}  "
            f"{record.applied_at.isoformat()}{amount}"
        )

    lines.append("")
    lines.append(f"--- Locations ({len(report.locations)}) ---")
    for idx, location in enumerate(report.locations, start=1):
        minx, miny, maxx, maxy = location.bounds()
        lines.append(
            f"  [{idx}] bounds ({minx:.6f}, {miny:.6f}, {maxx:.6f}, {maxy:.6f}), "
            f"{location.ring_count} ring(s)"
        )

    lines.append("")
    lines.append(f"--- Timeline ({len(report.timeline)}) ---")
    for entry in report.timeline:
        label = f" ({entry.label})" if entry.label else ""
        lines.append(
            f"  {entry.timestamp.isoformat()}  {entry.kind.value}  {entry.node_id}{label}"
        )
        for edge in entry.contributions:
            quantity = edge.contribution.quantity_kg
            amount = f"  {quantity:g} kg" if quantity is not None else ""
            lines.append(f"      <- {edge.parent_id}{amount}")

    return "\n".join(lines)
