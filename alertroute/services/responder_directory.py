"""Nearest-responder selection.

Exhaustive scan: every available responder is ranked by haversine
distance from the alert location on each call.
"""

import uuid
from collections.abc import Collection, Iterable
from dataclasses import dataclass

from alertroute.core.geo import Coordinate, haversine_km
from alertroute.models.responder import Responder
from alertroute.stores.base import DispatchStore


@dataclass(frozen=True)
class RankedResponder:
    """A dispatch candidate and its distance from the alert."""

    responder: Responder
    distance_km: float


def rank_responders(
    origin: Coordinate,
    responders: Iterable[Responder],
    enforce_coverage_radius: bool = False,
) -> list[RankedResponder]:
    """Rank responders by distance from ``origin``.

    Ties are broken by ascending responder id so the ordering is
    deterministic. Responders without coordinates are skipped.

    Args:
        origin: Alert location.
        responders: Candidates (already filtered for availability).
        enforce_coverage_radius: Drop candidates farther away than their
            own declared coverage radius.

    Returns:
        Candidates nearest first.
    """
    ranked = []
    for responder in responders:
        if responder.latitude is None or responder.longitude is None:
            continue

        distance = haversine_km(
            origin, Coordinate(responder.latitude, responder.longitude)
        )
        if enforce_coverage_radius and distance > responder.coverage_radius_km:
            continue

        ranked.append(RankedResponder(responder=responder, distance_km=distance))

    ranked.sort(key=lambda r: (r.distance_km, r.responder.id))
    return ranked


async def find_nearest(
    store: DispatchStore,
    origin: Coordinate,
    exclude: Collection[uuid.UUID] = frozenset(),
    enforce_coverage_radius: bool = False,
) -> RankedResponder | None:
    """Find the nearest available responder not in ``exclude``.

    Args:
        store: Store to read responders from (read-only).
        origin: Alert location.
        exclude: Responder ids that must not be returned.
        enforce_coverage_radius: See ``rank_responders``.

    Returns:
        The best candidate, or None if nobody is eligible.
    """
    candidates = await store.list_available_responders(exclude=exclude)
    excluded = set(exclude)
    ranked = rank_responders(
        origin,
        (c for c in candidates if c.id not in excluded),
        enforce_coverage_radius=enforce_coverage_radius,
    )
    return ranked[0] if ranked else None
