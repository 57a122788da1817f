"""
Validate Geometry Command - Check a location polygon before registering it.

Usage:
    ltrace validate-geometry plot.geojson
"""

import json
import logging
from pathlib import Path

import click

from core.exceptions import InvalidGeometryError
from core.geometry import PolygonValidator

from cli.commands.load import read_document

logger = logging.getLogger("ltrace.geometry")


@click.command("validate-geometry")
@click.argument(
    "geometry_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--normalized",
    is_flag=True,
    default=False,
    help="Print the normalized polygon as GeoJSON.",
)
@click.pass_obj
def validate_geometry(ctx, geometry_path: Path, normalized: bool):
    """
    Validate a GeoJSON Polygon (or a Feature wrapping one).

    Exits with status 1 if the polygon is invalid.

    \b
    Examples:
        ltrace validate-geometry plot.geojson
        ltrace validate-geometry plot.geojson --normalized
    """
    data = read_document(geometry_path)
    if data.get("type") == "Feature":
        data = data.get("geometry") or {}

    validator = PolygonValidator(ctx.config.geometry)
    try:
        polygon = validator.validate(data)
    except InvalidGeometryError as e:
        click.echo(f"INVALID: {e}")
        raise SystemExit(1)

    minx, miny, maxx, maxy = polygon.bounds()
    click.echo(f"VALID: {polygon.ring_count} ring(s), {len(polygon.outer_ring)} outer points")
    click.echo(f"  Bounds: ({minx}, {miny}, {maxx}, {maxy})")
    if normalized:
        click.echo(json.dumps(polygon.to_geojson()))
