"""
Lot Trace CLI Package

Command-line interface for the lot traceability engine.

Usage:
    ltrace load --document lineage.yaml --db lineage.db
    ltrace trace S1 --db lineage.db --format json
    ltrace validate-geometry plot.geojson
"""

__version__ = "0.1.0"

from cli.main import app

__all__ = ["app", "__version__"]
