"""
Tests for location polygon validation.

Tests cover:
- Valid polygons and normalization
- Nesting rules (flat pair lists are rejected)
- Ring size, closure, finiteness and bounds
- Configurable bounds
"""

import math

import numpy as np
import pytest

from core.exceptions import ConfigError, InvalidGeometryError
from core.geometry import (
    GeometryConfig,
    LocationPolygon,
    PolygonValidator,
    validate_polygon,
)

from conftest import square


class TestValidPolygons:
    """Polygons that must pass validation."""

    def test_closed_square(self, square_polygon):
        """Test a closed ring with five points."""
        polygon = validate_polygon(square_polygon)

        assert isinstance(polygon, LocationPolygon)
        assert polygon.type == "Polygon"
        assert polygon.ring_count == 1
        assert len(polygon.outer_ring) == 5

    def test_structurally_equal_to_input(self, square_polygon):
        """Test the normalized polygon keeps every point in order."""
        polygon = validate_polygon(square_polygon)

        expected = tuple(
            tuple((lon, lat) for lon, lat in ring)
            for ring in square_polygon["coordinates"]
        )
        assert polygon.coordinates == expected
        assert polygon.to_geojson() == square_polygon

    def test_minimum_four_points(self):
        """Test a closed triangle (four points) is accepted."""
        polygon = validate_polygon({
            "type": "Polygon",
            "coordinates": [[[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [0.0, 0.0]]],
        })
        assert len(polygon.outer_ring) == 4

    def test_integers_normalized_to_float(self):
        """Test integer coordinates become floats."""
        polygon = validate_polygon({
            "type": "Polygon",
            "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 0]]],
        })
        assert all(isinstance(v, float) for point in polygon.outer_ring for v in point)

    def test_tuples_and_numpy_values_accepted(self):
        """Test tuple rings and numpy scalars are accepted."""
        ring = (
            (np.float64(10.0), np.float64(10.0)),
            (11.0, 10.0),
            (11.0, 11.0),
            (np.float64(10.0), np.float64(10.0)),
        )
        polygon = validate_polygon({"type": "Polygon", "coordinates": (ring,)})
        assert polygon.outer_ring[0] == (10.0, 10.0)

    def test_boundary_coordinates(self):
        """Test coordinates exactly on the WGS84 bounds are valid."""
        polygon = validate_polygon({
            "type": "Polygon",
            "coordinates": [[[-180.0, -90.0], [180.0, -90.0], [180.0, 90.0], [-180.0, -90.0]]],
        })
        assert polygon.bounds() == (-180.0, -90.0, 180.0, 90.0)

    def test_polygon_with_hole(self):
        """Test an outer ring plus a closed hole."""
        outer = [[0.0, 0.0], [10.0, 0.0], [10.0, 10.0], [0.0, 10.0], [0.0, 0.0]]
        hole = [[2.0, 2.0], [3.0, 2.0], [3.0, 3.0], [2.0, 2.0]]
        polygon = validate_polygon({"type": "Polygon", "coordinates": [outer, hole]})
        assert polygon.ring_count == 2

    def test_idempotent(self, square_polygon):
        """Test validating an already validated polygon returns an equal one."""
        once = validate_polygon(square_polygon)
        twice = validate_polygon(once)
        assert once == twice
        assert hash(once) == hash(twice)

    def test_identical_polygons_collapse_in_set(self):
        """Test two separately built identical polygons are one set entry."""
        a = validate_polygon(square())
        b = validate_polygon(square())
        assert a is not b
        assert len({a, b}) == 1

    def test_bounds(self, square_polygon):
        """Test bounding box of the outer ring."""
        minx, miny, maxx, maxy = validate_polygon(square_polygon).bounds()
        assert minx == pytest.approx(-70.1)
        assert miny == pytest.approx(-30.1)
        assert maxx == pytest.approx(-70.0)
        assert maxy == pytest.approx(-30.0)


class TestNesting:
    """Coordinates must be nested as rings of pairs."""

    def test_flat_pair_rejected(self):
        """Test a bare [lon, lat] pair is not accepted as a ring."""
        with pytest.raises(InvalidGeometryError, match="nested as rings"):
            validate_polygon({"type": "Polygon", "coordinates": [-70.0, -30.0]})

    def test_flat_pair_list_rejected(self):
        """Test a list of pairs without the ring level is rejected."""
        with pytest.raises(InvalidGeometryError, match="nested as rings"):
            validate_polygon({
                "type": "Polygon",
                "coordinates": [[-70.0, -30.0], [-70.1, -30.0], [-70.1, -30.1],
                                [-70.0, -30.1], [-70.0, -30.0]],
            })

    def test_three_element_pair_rejected(self):
        """Test a point with altitude is rejected rather than truncated."""
        with pytest.raises(InvalidGeometryError, match="exactly 2 values") as exc_info:
            validate_polygon({
                "type": "Polygon",
                "coordinates": [[[0.0, 0.0, 5.0], [1.0, 0.0], [1.0, 1.0], [0.0, 0.0]]],
            })
        assert exc_info.value.ring_index == 0
        assert exc_info.value.point_index == 0

    def test_single_element_point_rejected(self):
        """Test a one-value point is rejected."""
        with pytest.raises(InvalidGeometryError, match="exactly 2 values"):
            validate_polygon({
                "type": "Polygon",
                "coordinates": [[[0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 0.0]]],
            })

    def test_string_values_rejected(self):
        """Test numeric strings are not accepted as coordinates."""
        with pytest.raises(InvalidGeometryError, match="must be numbers"):
            validate_polygon({
                "type": "Polygon",
                "coordinates": [[["0", "0"], [1.0, 0.0], [1.0, 1.0], ["0", "0"]]],
            })

    def test_boolean_values_rejected(self):
        """Test booleans are not treated as numbers."""
        with pytest.raises(InvalidGeometryError, match="must be numbers"):
            validate_polygon({
                "type": "Polygon",
                "coordinates": [[[True, False], [1.0, 0.0], [1.0, 1.0], [True, False]]],
            })

    def test_empty_coordinates_rejected(self):
        """Test a polygon without rings."""
        with pytest.raises(InvalidGeometryError, match="at least one ring"):
            validate_polygon({"type": "Polygon", "coordinates": []})

    def test_missing_coordinates_rejected(self):
        """Test a polygon without coordinates."""
        with pytest.raises(InvalidGeometryError, match="missing"):
            validate_polygon({"type": "Polygon"})

    def test_string_coordinates_rejected(self):
        """Test a string is not a ring list."""
        with pytest.raises(InvalidGeometryError):
            validate_polygon({"type": "Polygon", "coordinates": "0,0,1,1"})


class TestTypeTag:
    """The type tag must be "Polygon"."""

    @pytest.mark.parametrize("geom_type", ["MultiPolygon", "polygon", "Point", None])
    def test_wrong_type_rejected(self, square_polygon, geom_type):
        """Test anything but the exact tag is rejected."""
        square_polygon["type"] = geom_type
        with pytest.raises(InvalidGeometryError, match="type must be 'Polygon'"):
            validate_polygon(square_polygon)

    def test_non_mapping_rejected(self, square_polygon):
        """Test a bare coordinate list is rejected."""
        with pytest.raises(InvalidGeometryError, match="expected a mapping"):
            validate_polygon(square_polygon["coordinates"])


class TestRingRules:
    """Ring size, closure, finiteness and bounds."""

    def test_too_few_points(self):
        """Test a ring with three points."""
        with pytest.raises(InvalidGeometryError, match="at least 4 required"):
            validate_polygon({
                "type": "Polygon",
                "coordinates": [[[0.0, 0.0], [1.0, 0.0], [0.0, 0.0]]],
            })

    def test_empty_ring(self):
        """Test an empty ring."""
        with pytest.raises(InvalidGeometryError, match="has 0 points"):
            validate_polygon({"type": "Polygon", "coordinates": [[]]})

    def test_unclosed_ring(self):
        """Test first and last point must match."""
        with pytest.raises(InvalidGeometryError, match="not closed") as exc_info:
            validate_polygon({
                "type": "Polygon",
                "coordinates": [[[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]]],
            })
        assert exc_info.value.ring_index == 0

    def test_unclosed_hole(self):
        """Test holes must be closed too."""
        outer = [[0.0, 0.0], [10.0, 0.0], [10.0, 10.0], [0.0, 0.0]]
        hole = [[2.0, 2.0], [3.0, 2.0], [3.0, 3.0], [2.0, 3.0]]
        with pytest.raises(InvalidGeometryError, match="not closed") as exc_info:
            validate_polygon({"type": "Polygon", "coordinates": [outer, hole]})
        assert exc_info.value.ring_index == 1

    @pytest.mark.parametrize("point", [[181.0, 0.0], [-180.5, 0.0], [0.0, 90.5], [0.0, -91.0]])
    def test_out_of_bounds(self, point):
        """Test longitude/latitude bounds."""
        ring = [[0.0, 0.0], point, [1.0, 1.0], [0.0, 0.0]]
        with pytest.raises(InvalidGeometryError, match="out of bounds") as exc_info:
            validate_polygon({"type": "Polygon", "coordinates": [ring]})
        assert exc_info.value.point_index == 1

    def test_huge_integer_coordinate(self):
        """Test integers too large for a float are reported as out of bounds."""
        ring = [[10**400, 0], [1, 0], [1, 1], [10**400, 0]]
        with pytest.raises(InvalidGeometryError, match="out of bounds") as exc_info:
            validate_polygon({"type": "Polygon", "coordinates": [ring]})
        assert exc_info.value.ring_index == 0

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_non_finite(self, value):
        """Test NaN and infinities are rejected."""
        ring = [[0.0, 0.0], [1.0, value], [1.0, 1.0], [0.0, 0.0]]
        with pytest.raises(InvalidGeometryError, match="finite"):
            validate_polygon({"type": "Polygon", "coordinates": [ring]})

    def test_error_message_includes_details(self):
        """Test error string carries ring and point indices."""
        ring = [[0.0, 0.0], [200.0, 0.0], [1.0, 1.0], [0.0, 0.0]]
        with pytest.raises(InvalidGeometryError) as exc_info:
            validate_polygon({"type": "Polygon", "coordinates": [ring]})
        message = str(exc_info.value)
        assert "ring=0" in message
        assert "point=1" in message


class TestGeometryConfig:
    """Tests for configurable bounds."""

    def test_restricted_bounds(self):
        """Test a validator limited to a region."""
        config = GeometryConfig(
            valid_longitude_range=(-76.0, -66.0),
            valid_latitude_range=(-56.0, -17.0),
        )
        validator = PolygonValidator(config)

        validator.validate(square(-70.0, -30.0))
        with pytest.raises(InvalidGeometryError, match="out of bounds"):
            validator.validate(square(10.0, 10.0))

    def test_reversed_range(self):
        """Test lower bound above upper bound."""
        with pytest.raises(ConfigError):
            GeometryConfig(valid_longitude_range=(10.0, -10.0))

    def test_min_ring_points_floor(self):
        """Test min_ring_points cannot go below four."""
        with pytest.raises(ConfigError):
            GeometryConfig(min_ring_points=3)

    def test_min_ring_points_raised(self, square_polygon):
        """Test a stricter minimum."""
        validator = PolygonValidator(GeometryConfig(min_ring_points=6))
        with pytest.raises(InvalidGeometryError, match="at least 6 required"):
            validator.validate(square_polygon)

    def test_from_dict(self):
        """Test building config from a dictionary."""
        config = GeometryConfig.from_dict({
            "valid_longitude_range": [-80, -60],
            "min_ring_points": 5,
        })
        assert config.valid_longitude_range == (-80.0, -60.0)
        assert config.valid_latitude_range == (-90.0, 90.0)
        assert config.min_ring_points == 5
