"""
Tests for dropoffs.spatial.geo — Coordinate, ProximityQuery, unit conversion.
"""
from __future__ import annotations

import pytest

from dropoffs.errors import InvalidCoordinateError, QueryError
from dropoffs.spatial.geo import Coordinate, ProximityQuery, miles_to_meters

LA = Coordinate(latitude=34.0522, longitude=-118.2437)


# ═══════════════════════════════════════════════════════════════════
# Coordinate
# ═══════════════════════════════════════════════════════════════════
class TestCoordinate:
    def test_parse_decimal_strings(self):
        c = Coordinate.parse("30.262129", "-97.7468")
        assert c.latitude == 30.262129
        assert c.longitude == -97.7468

    def test_parse_accepts_floats(self):
        assert Coordinate.parse(1.5, 2.5) == Coordinate(1.5, 2.5)

    def test_parse_strips_whitespace(self):
        assert Coordinate.parse(" 1.0 ", "2.0\n") == Coordinate(1.0, 2.0)

    @pytest.mark.parametrize("lat, lng", [
        ("abc", "1.0"),
        ("1.0", ""),
        ("1.0; DROP TABLE austinrecycling", "2.0"),
        (None, "2.0"),
    ])
    def test_parse_rejects_non_numeric(self, lat, lng):
        with pytest.raises(InvalidCoordinateError):
            Coordinate.parse(lat, lng)

    @pytest.mark.parametrize("raw", ["nan", "inf", "-inf"])
    def test_parse_rejects_non_finite(self, raw):
        with pytest.raises(InvalidCoordinateError, match="finite"):
            Coordinate.parse(raw, "0")

    def test_invalid_coordinate_is_query_error(self):
        with pytest.raises(QueryError):
            Coordinate.parse("x", "y")

    def test_error_names_the_parameter(self):
        with pytest.raises(InvalidCoordinateError, match="centerLng"):
            Coordinate.parse("1.0", "east")

    def test_no_range_validation(self):
        c = Coordinate.parse("95", "200")
        assert (c.latitude, c.longitude) == (95.0, 200.0)

    def test_point_is_longitude_first(self):
        point = LA.to_point()
        assert point.x == -118.2437
        assert point.y == 34.0522

    def test_ewkt_is_longitude_first(self):
        ewkt = LA.to_ewkt()
        assert ewkt.startswith("SRID=4326;POINT")
        assert ewkt.index("-118.2437") < ewkt.index("34.0522")

    def test_frozen(self):
        with pytest.raises(AttributeError):
            LA.latitude = 0.0  # type: ignore[misc]


# ═══════════════════════════════════════════════════════════════════
# ProximityQuery
# ═══════════════════════════════════════════════════════════════════
class TestProximityQuery:
    def test_defaults(self):
        q = ProximityQuery(center=LA, radius_meters=16090, table_name="austinrecycling", row_limit=25)
        assert q.id_column == "ogc_fid"
        assert q.geometry_column == "wkb_geometry"
        assert q.schema is None

    @pytest.mark.parametrize("radius", [0, -1.0])
    def test_radius_must_be_positive(self, radius):
        with pytest.raises(ValueError, match="radius_meters"):
            ProximityQuery(center=LA, radius_meters=radius, table_name="t", row_limit=25)

    @pytest.mark.parametrize("limit", [0, -5])
    def test_row_limit_must_be_positive(self, limit):
        with pytest.raises(ValueError, match="row_limit"):
            ProximityQuery(center=LA, radius_meters=10, table_name="t", row_limit=limit)

    def test_table_name_required(self):
        with pytest.raises(ValueError, match="table_name"):
            ProximityQuery(center=LA, radius_meters=10, table_name="", row_limit=1)


class TestMilesToMeters:
    def test_ten_miles(self):
        assert miles_to_meters(10) == 16090

    def test_fractional(self):
        assert miles_to_meters(0.5) == pytest.approx(804.5)
