"""Error taxonomy shared by the store, the seeder and the probe adapter.

Every error carries a stable ``kind`` and a human-readable message. The API
layer renders them as ``{"error": message, "code": kind}`` using
``status_code``; nothing else (tracebacks, row ids) leaves the process.
"""
from __future__ import annotations

from typing import Any, List, Optional, Sequence


class HomedashError(Exception):
    kind = "error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.kind}


class ValidationError(HomedashError):
    """A field value does not fit its domain schema."""

    kind = "validation_error"
    status_code = 400

    def __init__(self, message: str, errors: Optional[Sequence[str]] = None) -> None:
        super().__init__(message)
        self.errors: List[str] = list(errors or [message])


class NotFoundError(HomedashError):
    kind = "not_found"
    status_code = 404


class UnsupportedProviderError(HomedashError):
    kind = "unsupported_provider"
    status_code = 400


class MissingParameterError(HomedashError):
    kind = "missing_parameter"
    status_code = 400

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = list(missing)
        super().__init__("Missing required parameters: " + ", ".join(self.missing))


class UpstreamError(HomedashError):
    """The remote side of a probe answered with a non-success status.

    ``status`` and ``body`` are the upstream values, forwarded verbatim.
    """

    kind = "upstream_error"

    def __init__(self, status: int, body: Any) -> None:
        self.status = status
        self.body = body
        super().__init__(f"Upstream error: {status} - {body}")

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return self.status

    def to_dict(self) -> dict:
        out = super().to_dict()
        out.update(status=self.status, body=self.body)
        return out


class StoreUnavailableError(HomedashError):
    kind = "store_unavailable"
    status_code = 503


__all__ = [
    "HomedashError",
    "ValidationError",
    "NotFoundError",
    "UnsupportedProviderError",
    "MissingParameterError",
    "UpstreamError",
    "StoreUnavailableError",
]
