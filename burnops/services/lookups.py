"""
Weather and geocoding lookups (Open-Meteo, Nominatim).
Responses are converted into typed models here; raw payloads never leave this module.
"""
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel

from ..config import settings


class LookupFailed(RuntimeError):
    pass


class PlaceNotFound(LookupFailed):
    pass


class CurrentConditions(BaseModel):
    lat: float
    lon: float
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    wind_speed: Optional[float] = None
    wind_direction: Optional[float] = None
    units: Dict[str, str] = {}

    def form_fields(self) -> Dict[str, Any]:
        """Values the burn form pre-fills from a weather fetch."""
        return {"temp": self.temperature, "humidity": self.humidity, "wind": self.wind_speed}


class Place(BaseModel):
    lat: float
    lon: float
    display_name: str


def _num(data: Dict[str, Any], key: str) -> Optional[float]:
    value = data.get(key)
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def conditions_from_open_meteo(lat: float, lon: float, payload: Any) -> CurrentConditions:
    if not isinstance(payload, dict) or not isinstance(payload.get("current"), dict):
        raise LookupFailed("weather response has no current conditions")
    current = payload["current"]
    units = payload.get("current_units") if isinstance(payload.get("current_units"), dict) else {}
    return CurrentConditions(
        lat=lat,
        lon=lon,
        temperature=_num(current, "temperature_2m"),
        humidity=_num(current, "relative_humidity_2m"),
        wind_speed=_num(current, "wind_speed_10m"),
        wind_direction=_num(current, "wind_direction_10m"),
        units={str(k): str(v) for k, v in units.items()},
    )


def place_from_nominatim(payload: Any) -> Place:
    if not isinstance(payload, list) or not payload:
        raise PlaceNotFound("Luogo non trovato")
    first = payload[0]
    try:
        return Place(lat=float(first["lat"]), lon=float(first["lon"]), display_name=str(first.get("display_name", "")))
    except (KeyError, TypeError, ValueError) as e:
        raise LookupFailed(f"malformed geocoder result: {e}") from e


class LookupClient:
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport

    async def _get_json(self, url: str, params: Dict[str, Any]) -> Any:
        try:
            async with httpx.AsyncClient(
                timeout=settings.lookup_timeout_s,
                transport=self._transport,
                headers={"User-Agent": settings.user_agent},
            ) as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
                return response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise LookupFailed(f"lookup {url} failed: {e}") from e

    async def current_weather(self, lat: float, lon: float) -> CurrentConditions:
        payload = await self._get_json(
            settings.open_meteo_url,
            {
                "latitude": lat,
                "longitude": lon,
                "current": "temperature_2m,relative_humidity_2m,wind_speed_10m,wind_direction_10m",
            },
        )
        return conditions_from_open_meteo(lat, lon, payload)

    async def geocode(self, query: str) -> Place:
        payload = await self._get_json(settings.nominatim_url, {"format": "json", "q": query, "limit": 1})
        return place_from_nominatim(payload)
