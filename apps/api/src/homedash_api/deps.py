"""Request dependencies resolving the handles attached to the app."""
from fastapi import Request

from homedash_core.probe import ProbeAdapter
from homedash_core.store import ConfigStore


def get_store(request: Request) -> ConfigStore:
    return request.app.state.store


def get_probe(request: Request) -> ProbeAdapter:
    return request.app.state.probe
