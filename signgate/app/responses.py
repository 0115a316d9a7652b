"""Caller-facing encoding of signing results.

``Rejected`` and ``SigningFailed`` are documented outcomes of the signing API,
so they are reported with a success status and an ``error`` field. Only
request validation failures use a client-error status.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from signgate.app.signing_service import (
    InvalidRequest,
    Rejected,
    Signed,
    SigningFailed,
    SignResult,
)

API_VERSION = "1.0.0"
MEDIA_TYPE = f"application/v{API_VERSION}+json"

HTTP_OK = 200
HTTP_BAD_REQUEST = 400


@dataclass(frozen=True, slots=True)
class ApiResponse:
    """Transport-neutral response: status code, JSON body and media type."""

    status: int
    body: dict[str, Any]
    media_type: str = MEDIA_TYPE

    @property
    def ok(self) -> bool:
        return self.status < 400


def to_response(result: SignResult) -> ApiResponse:
    """Encode ``result`` for the caller."""
    if isinstance(result, Signed):
        return ApiResponse(
            HTTP_OK,
            {"url": result.signed_url, "valid-until": result.valid_until_iso},
        )
    if isinstance(result, (Rejected, SigningFailed)):
        return ApiResponse(HTTP_OK, {"error": result.reason})
    if isinstance(result, InvalidRequest):
        return ApiResponse(HTTP_BAD_REQUEST, {"error": result.reason})
    raise TypeError(f"Unsupported signing result: {result!r}")
