from typing import Optional, Union
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from homedash_core.domains import ConfigDomain
from homedash_core.errors import UpstreamError
from homedash_core.probe import ProbeAdapter
from homedash_core.schemas import validate_fields
from homedash_core.store import ConfigStore
from homedash_api.deps import get_probe, get_store

router = APIRouter(tags=["integrations"])
log = logging.getLogger("homedash_api")

PIHOLE = ConfigDomain.PIHOLE_CONFIG


class WeatherProbeRequest(BaseModel):
    provider: Optional[str] = None
    apiKey: Optional[str] = None
    lat: Optional[Union[float, str]] = None
    lon: Optional[Union[float, str]] = None
    units: str = "metric"


class PiholeConnectionRequest(BaseModel):
    url: Optional[str] = None
    appPassword: Optional[str] = None


def _check_pihole(probe: ProbeAdapter, url: str, app_password: str):
    """Return (connected, error message) for a Pi-hole login attempt."""
    try:
        probe.probe("pihole", {"url": url, "appPassword": app_password})
    except UpstreamError as e:
        return False, e.message
    return True, None


def _pihole_response(record, error: Optional[str], status_code: int = 200):
    body = record.as_dict(exclude=("app_password",))
    if error:
        body["connectionError"] = error
    return JSONResponse(body, status_code=status_code)


@router.post("/test-weather")
def test_weather(data: WeatherProbeRequest, probe: ProbeAdapter = Depends(get_probe)):
    result = probe.probe(
        data.provider,
        {"apiKey": data.apiKey, "lat": data.lat, "lon": data.lon},
        {"units": data.units},
    )
    return {"data": result.payload}


@router.get("/pihole-connection")
def read_pihole_connection(store: ConfigStore = Depends(get_store)):
    record = store.get(PIHOLE)
    if record is None:
        return None
    return record.as_dict(exclude=("app_password",))


@router.post("/pihole-connection")
def save_pihole_connection(data: PiholeConnectionRequest, store: ConfigStore = Depends(get_store),
                           probe: ProbeAdapter = Depends(get_probe)):
    url = (data.url or "").strip()
    app_password = (data.appPassword or "").strip()
    # Reject malformed input before contacting the device.
    validate_fields(PIHOLE, {"url": url, "app_password": app_password})
    connected, error = _check_pihole(probe, url, app_password)
    record, created = store.put(PIHOLE, {
        "url": url,
        "app_password": app_password,
        "connected": connected,
        "last_checked": store.now(),
    })
    log.info("pihole.save connected=%s created=%s", connected, created)
    return _pihole_response(record, error, status_code=201 if created else 200)


@router.post("/pihole-connection/recheck")
def recheck_pihole_connection(store: ConfigStore = Depends(get_store), probe: ProbeAdapter = Depends(get_probe)):
    current = store.require(PIHOLE)
    connected, error = _check_pihole(probe, current["url"] or "", current["app_password"] or "")
    record = store.upsert(PIHOLE, {"connected": connected, "last_checked": store.now()})
    log.info("pihole.recheck connected=%s", connected)
    return _pihole_response(record, error)
