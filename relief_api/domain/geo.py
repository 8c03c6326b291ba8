# SPDX-License-Identifier: Apache-2.0

"""
Great-circle distance and nearest-site ranking.

Pure functions over caller-supplied candidates; nothing here fetches data.
"""

import math
from dataclasses import dataclass
from operator import attrgetter
from typing import Any, Callable, List, Optional, Sequence

from ..models.entities import Coordinate

EARTH_RADIUS_KM = 6371.0

CoordinateGetter = Callable[[Any], Coordinate]


@dataclass(frozen=True)
class RankedSite:
    """A candidate paired with its distance from the search point."""
    site: Any
    distance_km: float


def distance(a: Coordinate, b: Coordinate) -> float:
    """
    Haversine distance between two coordinates.

    Args:
        a: First coordinate
        b: Second coordinate

    Returns:
        Distance in kilometers
    """
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    d_lat = math.radians(b.latitude - a.latitude)
    d_lon = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    )
    # Rounding can push h a hair above 1 for antipodal points
    h = min(1.0, h)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def within_radius(point_a: Coordinate, point_b: Coordinate, radius_km: float) -> bool:
    """Whether two points are at most radius_km apart."""
    return distance(point_a, point_b) <= radius_km


def rank_by_distance(
    point: Coordinate,
    candidates: Sequence[Any],
    coordinate_of: CoordinateGetter = attrgetter('coordinate')
) -> List[RankedSite]:
    """
    Order candidates by distance from a point.

    Python's sort is stable, so candidates at equal distance keep their
    input order.

    Args:
        point: Search origin
        candidates: Objects exposing a coordinate
        coordinate_of: Accessor for a candidate's coordinate

    Returns:
        Candidates with distances, nearest first
    """
    ranked = [RankedSite(site, distance(point, coordinate_of(site))) for site in candidates]
    ranked.sort(key=attrgetter('distance_km'))
    return ranked


def top_n(
    point: Coordinate,
    candidates: Sequence[Any],
    n: int,
    coordinate_of: CoordinateGetter = attrgetter('coordinate')
) -> List[RankedSite]:
    """First n entries of rank_by_distance; n is clamped to the candidate count."""
    if n <= 0 or not candidates:
        return []
    return rank_by_distance(point, candidates, coordinate_of)[:n]


def nearest(
    point: Coordinate,
    candidates: Sequence[Any],
    coordinate_of: CoordinateGetter = attrgetter('coordinate')
) -> Optional[RankedSite]:
    """Closest candidate, the first encountered on ties, or None when empty."""
    best: Optional[RankedSite] = None
    for site in candidates:
        d = distance(point, coordinate_of(site))
        if best is None or d < best.distance_km:
            best = RankedSite(site, d)
    return best
