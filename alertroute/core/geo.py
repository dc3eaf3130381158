"""Great-circle distance between coordinates."""

import math
from dataclasses import dataclass
from typing import Any

from alertroute.core.errors import ValidationError

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Coordinate:
    """A latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float

    @classmethod
    def parse(cls, latitude: Any, longitude: Any) -> "Coordinate":
        """Build a coordinate from raw request values.

        Raises:
            ValidationError: If either value is missing, non-numeric,
                non-finite or out of range.
        """
        if latitude is None or longitude is None or latitude == "" or longitude == "":
            raise ValidationError("Missing location data")

        try:
            lat = float(latitude)
            lon = float(longitude)
        except (TypeError, ValueError):
            raise ValidationError("Latitude and longitude must be numbers")

        if not (math.isfinite(lat) and math.isfinite(lon)):
            raise ValidationError("Latitude and longitude must be finite")
        if not -90.0 <= lat <= 90.0:
            raise ValidationError("Latitude must be between -90 and 90")
        if not -180.0 <= lon <= 180.0:
            raise ValidationError("Longitude must be between -180 and 180")

        return cls(latitude=lat, longitude=lon)


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Haversine distance in kilometers.

    Inputs are assumed valid; callers reject bad coordinates first.
    """
    d_lat = math.radians(b.latitude - a.latitude)
    d_lon = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.latitude))
        * math.cos(math.radians(b.latitude))
        * math.sin(d_lon / 2) ** 2
    )
    # Rounding can push h past 1 for near-antipodal points
    h = min(1.0, h)

    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
