from fastapi import APIRouter, Depends, HTTPException, Query

from ..services.container import AppServices, get_services
from ..services.lookups import LookupFailed, PlaceNotFound


router = APIRouter(prefix="/lookups", tags=["lookups"])


@router.get("/weather")
async def current_weather(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    services: AppServices = Depends(get_services),
):
    try:
        conditions = await services.lookups.current_weather(lat, lon)
    except LookupFailed as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {**conditions.model_dump(), "form": conditions.form_fields()}


@router.get("/geocode")
async def geocode(q: str = Query(..., min_length=1), services: AppServices = Depends(get_services)):
    try:
        place = await services.lookups.geocode(q)
    except PlaceNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except LookupFailed as e:
        raise HTTPException(status_code=502, detail=str(e))
    return place.model_dump()
