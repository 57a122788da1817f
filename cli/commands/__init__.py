"""
Lot Trace CLI Commands

This package contains all CLI subcommands for the ltrace tool.

Commands:
    load              - Import a lineage document into a SQLite store
    trace             - Resolve the provenance report of a shipment lot detail
    validate-geometry - Check a location polygon
"""

from cli.commands import (
    geometry,
    load,
    trace,
)

__all__ = [
    "geometry",
    "load",
    "trace",
]
