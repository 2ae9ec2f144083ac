"""
Polygon statistics for user-drawn burn perimeters.

Area uses the spherical-excess approximation on the WGS-84 equatorial radius,
perimeter uses the Haversine formula. Every function here feeds a live map
while crews are drawing, so none of them raise: bad input gives zero stats.
"""
import math
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Tuple

LatLon = Tuple[float, float]

# WGS-84 equatorial radius, used by the area approximation
AREA_RADIUS_M = 6378137.0
# Mean earth radius, used for great-circle distances
DISTANCE_RADIUS_M = 6371000.0


@dataclass(frozen=True)
class AreaStats:
    area_ha: float
    perimeter_m: int
    center: Optional[LatLon]

    @property
    def center_label(self) -> str:
        if self.center is None:
            return ""
        return f"{self.center[0]:.4f}, {self.center[1]:.4f}"

    def as_dict(self) -> dict:
        return {
            "area_ha": self.area_ha,
            "perimeter_m": self.perimeter_m,
            "center": list(self.center) if self.center else None,
            "center_label": self.center_label,
        }


EMPTY_STATS = AreaStats(area_ha=0.0, perimeter_m=0, center=None)


def _coerce_vertex(v: Any) -> Optional[LatLon]:
    try:
        if isinstance(v, dict):
            lat = v.get("lat", v.get("latitude"))
            lon = v.get("lon", v.get("lng", v.get("longitude")))
        elif hasattr(v, "lat"):
            lat = getattr(v, "lat")
            lon = getattr(v, "lon", getattr(v, "lng", None))
        elif isinstance(v, (str, bytes)):
            return None
        else:
            lat, lon = v[0], v[1]
        lat, lon = float(lat), float(lon)
    except (TypeError, ValueError, IndexError, KeyError):
        return None
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return None
    return lat, lon


def clean_ring(vertices: Optional[Iterable[Any]]) -> List[LatLon]:
    """Usable (lat, lon) pairs of an open ring; junk entries are dropped."""
    if vertices is None:
        return []
    try:
        items = list(vertices)
    except TypeError:
        return []
    ring = [p for p in (_coerce_vertex(v) for v in items) if p is not None]
    if len(ring) > 1 and ring[0] == ring[-1]:
        ring = ring[:-1]
    return ring


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great circle distance between two points on Earth.

    Returns:
        Distance in meters
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_phi / 2) ** 2 +
        math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return DISTANCE_RADIUS_M * c


def _area_m2(ring: List[LatLon]) -> float:
    n = len(ring)
    if n < 3:
        return 0.0
    total = 0.0
    for i in range(n):
        lat1, lon1 = ring[i]
        lat2, lon2 = ring[(i + 1) % n]
        total += math.radians(lon2 - lon1) * (
            2 + math.sin(math.radians(lat1)) + math.sin(math.radians(lat2))
        )
    return abs(total * AREA_RADIUS_M * AREA_RADIUS_M / 2.0)


def compute_area_hectares(vertices: Optional[Iterable[Any]]) -> float:
    """Area of an open ring of (lat, lon) degrees, in hectares (2 decimals).

    Absolute value is taken, so clockwise and counter-clockwise rings agree.
    Fewer than three usable vertices gives 0.
    """
    ring = clean_ring(vertices)
    return round(_area_m2(ring) / 10000.0, 2)


def compute_perimeter_meters(vertices: Optional[Iterable[Any]]) -> float:
    """Great-circle length of the ring including the closing edge, in meters."""
    ring = clean_ring(vertices)
    if len(ring) < 2:
        return 0.0
    total = 0.0
    for i in range(len(ring)):
        lat1, lon1 = ring[i]
        lat2, lon2 = ring[(i + 1) % len(ring)]
        total += haversine_distance(lat1, lon1, lat2, lon2)
    return total


def compute_centroid(vertices: Optional[Iterable[Any]]) -> Optional[LatLon]:
    """Center of the ring's bounding box, not its area centroid."""
    ring = clean_ring(vertices)
    if not ring:
        return None
    lats = [p[0] for p in ring]
    lons = [p[1] for p in ring]
    return (min(lats) + max(lats)) / 2.0, (min(lons) + max(lons)) / 2.0


def polygon_stats(vertices: Optional[Iterable[Any]]) -> AreaStats:
    ring = clean_ring(vertices)
    if len(ring) < 3:
        return AreaStats(area_ha=0.0, perimeter_m=0, center=compute_centroid(ring))
    return AreaStats(
        area_ha=compute_area_hectares(ring),
        perimeter_m=int(math.floor(compute_perimeter_meters(ring))),
        center=compute_centroid(ring),
    )


def ring_to_geojson(vertices: Optional[Iterable[Any]]) -> Optional[dict]:
    """Closed GeoJSON Polygon ([lon, lat] order) or None for fewer than 3 vertices."""
    ring = clean_ring(vertices)
    if len(ring) < 3:
        return None
    coords = [[lon, lat] for lat, lon in ring]
    coords.append(coords[0])
    return {"type": "Polygon", "coordinates": [coords]}


def _first_ring(coords: Any) -> List[Any]:
    # Unwrap Polygon / MultiPolygon nesting down to a list of positions
    while isinstance(coords, list) and coords and isinstance(coords[0], list) and coords[0] and isinstance(coords[0][0], list):
        coords = coords[0]
    return coords if isinstance(coords, list) else []


def vertices_from_geojson(obj: Any) -> List[LatLon]:
    """Outer ring of a Feature / Polygon / MultiPolygon as (lat, lon) pairs."""
    if not isinstance(obj, (dict, list)):
        return []
    if isinstance(obj, dict):
        if obj.get("type") == "Feature":
            obj = obj.get("geometry") or {}
        if obj.get("type") == "FeatureCollection":
            features = obj.get("features") or []
            return vertices_from_geojson(features[0]) if features else []
        coords = obj.get("coordinates")
    else:
        coords = obj
    positions = _first_ring(coords)
    ring = []
    for pos in positions:
        if isinstance(pos, (list, tuple)) and len(pos) >= 2:
            # GeoJSON positions are [lon, lat]
            p = _coerce_vertex((pos[1], pos[0]))
            if p is not None:
                ring.append(p)
    return clean_ring(ring)
