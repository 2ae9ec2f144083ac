import httpx
import pytest

from burnops.services.lookups import (
    LookupClient,
    LookupFailed,
    PlaceNotFound,
    conditions_from_open_meteo,
    place_from_nominatim,
)


def test_open_meteo_payload_adapted():
    cond = conditions_from_open_meteo(40.0, 9.0, {
        "current": {"temperature_2m": 19.0, "relative_humidity_2m": "63", "wind_speed_10m": None},
    })
    assert cond.temperature == 19.0
    assert cond.humidity == 63.0
    assert cond.wind_speed is None
    assert cond.form_fields() == {"temp": 19.0, "humidity": 63.0, "wind": None}


@pytest.mark.parametrize("payload", [None, [], {}, {"current": "x"}])
def test_open_meteo_without_current_fails(payload):
    with pytest.raises(LookupFailed):
        conditions_from_open_meteo(40.0, 9.0, payload)


def test_nominatim_adapted_and_empty():
    place = place_from_nominatim([{"lat": "39.2238", "lon": "9.1217", "display_name": "Cagliari"}])
    assert (place.lat, place.lon, place.display_name) == (39.2238, 9.1217, "Cagliari")
    with pytest.raises(PlaceNotFound):
        place_from_nominatim([])
    with pytest.raises(LookupFailed):
        place_from_nominatim([{"display_name": "no coords"}])


@pytest.mark.anyio
async def test_client_weather_and_geocode(lookup_transport):
    client = LookupClient(transport=lookup_transport)
    cond = await client.current_weather(40.1, 9.0)
    assert cond.wind_direction == 280.0
    place = await client.geocode("Nuoro")
    assert place.display_name.startswith("Nuoro")
    with pytest.raises(PlaceNotFound):
        await client.geocode("nowhere")


@pytest.mark.anyio
async def test_client_http_error_is_lookup_failure():
    client = LookupClient(transport=httpx.MockTransport(lambda r: httpx.Response(503)))
    with pytest.raises(LookupFailed):
        await client.current_weather(40.0, 9.0)
