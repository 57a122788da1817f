"""
Location Polygon Validation.

Validates and normalizes the GeoJSON-style polygons that describe where an
input was applied (its geofence):
- Type tag must be "Polygon"
- Coordinates nested as rings of (longitude, latitude) pairs
- Every ring has at least four points and is closed
- Coordinates finite and within WGS84 bounds

Ring orientation is not enforced. The same validator runs when location
records are written and when they are read back during a trace.
"""

import logging
import numbers
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from core.exceptions import ConfigError, InvalidGeometryError

logger = logging.getLogger(__name__)

Point = Tuple[float, float]
Ring = Tuple[Point, ...]


@dataclass
class GeometryConfig:
    """
    Configuration for polygon validation.

    Attributes:
        valid_longitude_range: Inclusive longitude bounds
        valid_latitude_range: Inclusive latitude bounds
        min_ring_points: Minimum points per ring (closing point included)
    """

    valid_longitude_range: Tuple[float, float] = (-180.0, 180.0)
    valid_latitude_range: Tuple[float, float] = (-90.0, 90.0)
    min_ring_points: int = 4

    def __post_init__(self):
        for name in ("valid_longitude_range", "valid_latitude_range"):
            low, high = getattr(self, name)
            if low > high:
                raise ConfigError(name, (low, high), "lower bound exceeds upper bound")
            setattr(self, name, (float(low), float(high)))
        if self.min_ring_points < 4:
            raise ConfigError("min_ring_points", self.min_ring_points, "must be at least 4")

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "GeometryConfig":
        """Create configuration from dictionary."""
        kwargs = {}
        if "valid_longitude_range" in config_dict:
            kwargs["valid_longitude_range"] = tuple(config_dict["valid_longitude_range"])
        if "valid_latitude_range" in config_dict:
            kwargs["valid_latitude_range"] = tuple(config_dict["valid_latitude_range"])
        if "min_ring_points" in config_dict:
            kwargs["min_ring_points"] = int(config_dict["min_ring_points"])
        return cls(**kwargs)


@dataclass(frozen=True)
class LocationPolygon:
    """
    Validated, immutable polygon.

    Coordinates are stored as nested tuples of floats so that two polygons
    with the same rings compare (and hash) equal.

    Attributes:
        coordinates: Rings of (longitude, latitude) pairs; ring 0 is the outer ring
        type: Geometry type tag, always "Polygon"
    """

    coordinates: Tuple[Ring, ...]
    type: str = "Polygon"

    @property
    def outer_ring(self) -> Ring:
        return self.coordinates[0]

    @property
    def ring_count(self) -> int:
        return len(self.coordinates)

    def bounds(self) -> Tuple[float, float, float, float]:
        """Bounding box of the outer ring as (minx, miny, maxx, maxy)."""
        arr = np.asarray(self.outer_ring, dtype=float)
        minx, miny = arr.min(axis=0)
        maxx, maxy = arr.max(axis=0)
        return (float(minx), float(miny), float(maxx), float(maxy))

    def sort_key(self) -> Tuple[Ring, ...]:
        return self.coordinates

    def to_geojson(self) -> Dict[str, Any]:
        """Convert to a GeoJSON geometry dictionary."""
        return {
            "type": self.type,
            "coordinates": [[list(point) for point in ring] for ring in self.coordinates],
        }


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


class PolygonValidator:
    """
    Validator for location polygons.

    Example:
        validator = PolygonValidator()
        polygon = validator.validate({
            "type": "Polygon",
            "coordinates": [[[-70.0, -30.0], [-70.1, -30.0],
                             [-70.1, -30.1], [-70.0, -30.0]]],
        })
    """

    def __init__(self, config: Optional[GeometryConfig] = None):
        self.config = config or GeometryConfig()

    def validate(self, raw: Any) -> LocationPolygon:
        """
        Validate and normalize a polygon.

        Args:
            raw: Mapping with "type" and "coordinates", or a LocationPolygon

        Returns:
            Normalized LocationPolygon

        Raises:
            InvalidGeometryError: If the polygon violates any rule
        """
        if isinstance(raw, LocationPolygon):
            raw = raw.to_geojson()
        if not isinstance(raw, Mapping):
            raise InvalidGeometryError(
                f"expected a mapping with 'type' and 'coordinates', got {type(raw).__name__}"
            )

        geom_type = raw.get("type")
        if geom_type != "Polygon":
            raise InvalidGeometryError(f"type must be 'Polygon', got {geom_type!r}")

        rings = self._parse_rings(raw.get("coordinates"))
        normalized = tuple(self._check_ring(idx, ring) for idx, ring in enumerate(rings))
        logger.debug(f"Validated polygon with {len(normalized)} ring(s)")
        return LocationPolygon(coordinates=normalized)

    def _parse_rings(self, coordinates: Any) -> List[List[Sequence]]:
        """Check nesting: coordinates -> rings -> 2-element numeric pairs."""
        if coordinates is None:
            raise InvalidGeometryError("coordinates are missing")
        if not _is_sequence(coordinates):
            raise InvalidGeometryError("coordinates must be a list of rings")
        if len(coordinates) == 0:
            raise InvalidGeometryError("coordinates must contain at least one ring")

        rings = []
        for ring_idx, ring in enumerate(coordinates):
            # A bare [lon, lat] pair (or a list of pairs) sits one level too high.
            if not _is_sequence(ring) or any(_is_number(p) for p in ring):
                raise InvalidGeometryError(
                    "coordinates must be nested as rings of [longitude, latitude] pairs",
                    ring_index=ring_idx,
                )
            points = []
            for point_idx, point in enumerate(ring):
                if not _is_sequence(point):
                    raise InvalidGeometryError(
                        "point must be a [longitude, latitude] pair",
                        ring_index=ring_idx,
                        point_index=point_idx,
                        value=point,
                    )
                if len(point) != 2:
                    raise InvalidGeometryError(
                        f"point must have exactly 2 values, got {len(point)}",
                        ring_index=ring_idx,
                        point_index=point_idx,
                        value=list(point),
                    )
                if not all(_is_number(v) for v in point):
                    raise InvalidGeometryError(
                        "coordinate values must be numbers",
                        ring_index=ring_idx,
                        point_index=point_idx,
                        value=list(point),
                    )
                points.append(point)
            rings.append(points)
        return rings

    def _check_ring(self, ring_idx: int, points: List[Sequence]) -> Ring:
        """Check size, finiteness, bounds and closure of one ring."""
        if len(points) < self.config.min_ring_points:
            raise InvalidGeometryError(
                f"ring has {len(points)} points, at least "
                f"{self.config.min_ring_points} required",
                ring_index=ring_idx,
            )

        try:
            arr = np.asarray(points, dtype=float)
        except (OverflowError, ValueError):
            # Integers too large for a float are far outside any bounds.
            raise InvalidGeometryError(
                "coordinate out of bounds",
                ring_index=ring_idx,
            ) from None

        finite = np.isfinite(arr).all(axis=1)
        if not finite.all():
            bad = int(np.flatnonzero(~finite)[0])
            raise InvalidGeometryError(
                "coordinates must be finite",
                ring_index=ring_idx,
                point_index=bad,
                value=arr[bad].tolist(),
            )

        lon_min, lon_max = self.config.valid_longitude_range
        lat_min, lat_max = self.config.valid_latitude_range
        lon, lat = arr[:, 0], arr[:, 1]
        out_of_bounds = (lon < lon_min) | (lon > lon_max) | (lat < lat_min) | (lat > lat_max)
        if out_of_bounds.any():
            bad = int(np.flatnonzero(out_of_bounds)[0])
            raise InvalidGeometryError(
                "coordinate out of bounds (longitude in "
                f"[{lon_min}, {lon_max}], latitude in [{lat_min}, {lat_max}])",
                ring_index=ring_idx,
                point_index=bad,
                value=arr[bad].tolist(),
            )

        if not np.array_equal(arr[0], arr[-1]):
            raise InvalidGeometryError(
                "ring is not closed (first point must equal last point)",
                ring_index=ring_idx,
            )

        return tuple((lon_v, lat_v) for lon_v, lat_v in arr.tolist())


_default_validator = PolygonValidator()


def validate_polygon(raw: Any, config: Optional[GeometryConfig] = None) -> LocationPolygon:
    """
    Validate a polygon with default or given settings.

    Args:
        raw: Mapping with "type" and "coordinates", or a LocationPolygon
        config: Optional validation configuration

    Returns:
        Normalized LocationPolygon
    """
    validator = PolygonValidator(config) if config is not None else _default_validator
    return validator.validate(raw)
