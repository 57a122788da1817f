"""
Geometry Module.

Validation and normalization of location polygons (geofences):
- LocationPolygon: immutable, normalized polygon
- PolygonValidator: configurable validator
- validate_polygon: convenience function with default bounds

Example:
    from core.geometry import validate_polygon

    polygon = validate_polygon({
        "type": "Polygon",
        "coordinates": [[[-70.0, -30.0], [-70.1, -30.0],
                         [-70.1, -30.1], [-70.0, -30.1], [-70.0, -30.0]]],
    })
    print(polygon.bounds())
"""

from core.geometry.polygon import (
    GeometryConfig,
    LocationPolygon,
    PolygonValidator,
    validate_polygon,
)

__all__ = [
    "GeometryConfig",
    "LocationPolygon",
    "PolygonValidator",
    "validate_polygon",
]
