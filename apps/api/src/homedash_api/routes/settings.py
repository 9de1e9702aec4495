from typing import Any, Dict
import logging

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from homedash_core.domains import ConfigDomain
from homedash_core.store import ConfigStore
from homedash_api.deps import get_store

router = APIRouter(prefix="/settings", tags=["settings"])
log = logging.getLogger("homedash_api")

# Secrets never echoed back by the generic settings surface.
HIDDEN_FIELDS = {
    ConfigDomain.PIHOLE_CONFIG: ("app_password",),
}


def _render(domain: ConfigDomain, record):
    if record is None:
        return None
    return record.as_dict(exclude=HIDDEN_FIELDS.get(domain, ()))


@router.get("/{domain}")
def read_settings(domain: str, store: ConfigStore = Depends(get_store)):
    d = ConfigDomain.parse(domain)
    return _render(d, store.get(d))


@router.post("/{domain}")
def update_settings(domain: str, fields: Dict[str, Any] = Body(...), store: ConfigStore = Depends(get_store)):
    d = ConfigDomain.parse(domain)
    record, created = store.put(d, fields)
    log.info("settings.update domain=%s created=%s", d.value, created)
    return JSONResponse(_render(d, record), status_code=201 if created else 200)
