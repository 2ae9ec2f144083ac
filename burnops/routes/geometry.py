from typing import Any, List, Optional

from fastapi import APIRouter
from pydantic import BaseModel

from ..services.geometry import polygon_stats, ring_to_geojson, vertices_from_geojson


router = APIRouter(prefix="/geometry", tags=["geometry"])


class StatsRequest(BaseModel):
    # [lat, lon] pairs or {lat, lng} objects, as the map widget sends them
    vertices: Optional[List[Any]] = None
    geojson: Optional[Any] = None


@router.post("/stats")
def area_stats(req: StatsRequest):
    vertices = req.vertices if req.vertices is not None else vertices_from_geojson(req.geojson)
    stats = polygon_stats(vertices)
    return {**stats.as_dict(), "geojson": ring_to_geojson(vertices)}
