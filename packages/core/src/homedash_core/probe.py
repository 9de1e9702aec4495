"""Outbound validation calls to external integrations.

A probe is a single round trip to a named provider using caller-supplied
credentials. There are no retries and no caching; whatever the provider
answers is handed back (on success) or raised as ``UpstreamError`` (on a
non-success status, timeout or connection failure).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import requests

from homedash_core.config import Settings
from homedash_core.errors import MissingParameterError, UnsupportedProviderError, UpstreamError

logger = logging.getLogger("homedash_core.probe")

RequestPlan = Tuple[str, str, Dict[str, Any]]


@dataclass(frozen=True)
class ProviderResponse:
    provider: str
    status: int
    payload: Any


def _missing(values: Mapping[str, Any], required: Tuple[str, ...]):
    return [k for k in required if values.get(k) is None or (isinstance(values.get(k), str) and not values[k].strip())]


def _payload(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


class ProbeAdapter:
    OPENWEATHERMAP_URL = "https://api.openweathermap.org/data/2.5/weather"

    def __init__(self, session: Optional[requests.Session] = None, timeout: Optional[float] = None) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout if timeout is not None else Settings().probe_timeout
        self._providers: Dict[str, Tuple[Tuple[str, ...], Callable[[Mapping[str, Any]], RequestPlan]]] = {
            "openweathermap": (("apiKey", "lat", "lon"), self._openweathermap),
            "pihole": (("url", "appPassword"), self._pihole),
        }

    @property
    def providers(self) -> Tuple[str, ...]:
        return tuple(sorted(self._providers))

    def _openweathermap(self, values: Mapping[str, Any]) -> RequestPlan:
        params = {
            "lat": values["lat"],
            "lon": values["lon"],
            "appid": values["apiKey"],
            "units": values.get("units") or "metric",
        }
        return "GET", self.OPENWEATHERMAP_URL, {"params": params}

    def _pihole(self, values: Mapping[str, Any]) -> RequestPlan:
        url = str(values["url"]).strip().rstrip("/")
        return "POST", f"{url}/api/auth", {"json": {"pw": values["appPassword"]}}

    def probe(self, provider: str, credentials: Optional[Mapping[str, Any]] = None,
              params: Optional[Mapping[str, Any]] = None) -> ProviderResponse:
        """Send one validation request to ``provider``.

        ``credentials`` and ``params`` are merged (credentials win) before the
        provider's required keys are checked, so callers may split them
        however suits the surface they serve.
        """
        entry = self._providers.get(provider) if isinstance(provider, str) else None
        if entry is None:
            raise UnsupportedProviderError(
                f"Unsupported provider {provider!r}; supported: {', '.join(self.providers)}"
            )
        required, build = entry
        values = {**(params or {}), **(credentials or {})}
        missing = _missing(values, required)
        if missing:
            raise MissingParameterError(missing)

        method, url, kwargs = build(values)
        logger.info("probe.request provider=%s method=%s url=%s", provider, method, url)
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as exc:
            logger.warning("probe.timeout provider=%s after=%ss", provider, self.timeout)
            raise UpstreamError(504, f"Request timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            logger.warning("probe.unreachable provider=%s error=%s", provider, exc.__class__.__name__)
            raise UpstreamError(502, f"Connection failed: {exc.__class__.__name__}") from exc

        if not resp.ok:
            logger.warning("probe.fail provider=%s status=%s", provider, resp.status_code)
            raise UpstreamError(resp.status_code, resp.text)
        logger.info("probe.ok provider=%s status=%s", provider, resp.status_code)
        return ProviderResponse(provider=provider, status=resp.status_code, payload=_payload(resp))


__all__ = ["ProbeAdapter", "ProviderResponse"]
