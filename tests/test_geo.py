"""Tests for coordinate parsing and haversine distance."""

import math

import pytest

from alertroute.core.errors import ValidationError
from alertroute.core.geo import Coordinate, haversine_km


class TestHaversine:
    def test_same_point_is_zero(self):
        p = Coordinate(-26.2041, 28.0473)
        assert haversine_km(p, p) == 0.0

    def test_symmetric(self):
        a = Coordinate(-26.2041, 28.0473)
        b = Coordinate(-33.9249, 18.4241)
        assert haversine_km(a, b) == pytest.approx(haversine_km(b, a), abs=1e-9)

    def test_one_degree_of_latitude(self):
        a = Coordinate(0.0, 0.0)
        b = Coordinate(1.0, 0.0)
        assert haversine_km(a, b) == pytest.approx(6371.0 * math.pi / 180, rel=1e-9)

    def test_johannesburg_to_cape_town(self):
        jhb = Coordinate(-26.2041, 28.0473)
        cpt = Coordinate(-33.9249, 18.4241)
        assert haversine_km(jhb, cpt) == pytest.approx(1262, abs=5)

    def test_antipodal_points(self):
        """Half the circumference, without a math domain error."""
        a = Coordinate(0.0, 0.0)
        b = Coordinate(0.0, 180.0)
        assert haversine_km(a, b) == pytest.approx(math.pi * 6371.0, rel=1e-9)


class TestCoordinateParse:
    def test_parses_strings(self):
        c = Coordinate.parse("-26.2041", "28.0473")
        assert c == Coordinate(-26.2041, 28.0473)

    def test_parses_numbers(self):
        assert Coordinate.parse(10, 20.5) == Coordinate(10.0, 20.5)

    @pytest.mark.parametrize(
        "latitude,longitude",
        [(None, "28.0"), ("-26.2", None), ("", "28.0"), ("-26.2", "")],
    )
    def test_missing_values(self, latitude, longitude):
        with pytest.raises(ValidationError, match="Missing location data"):
            Coordinate.parse(latitude, longitude)

    def test_non_numeric(self):
        with pytest.raises(ValidationError, match="must be numbers"):
            Coordinate.parse("north", "28.0")

    def test_non_finite(self):
        with pytest.raises(ValidationError, match="finite"):
            Coordinate.parse("nan", "28.0")

    @pytest.mark.parametrize("latitude,longitude", [(90.5, 0), (-91, 0), (0, 180.1)])
    def test_out_of_range(self, latitude, longitude):
        with pytest.raises(ValidationError) as exc_info:
            Coordinate.parse(latitude, longitude)
        assert exc_info.value.status_code == 400

    def test_bounds_are_inclusive(self):
        assert Coordinate.parse(90, -180) == Coordinate(90.0, -180.0)
