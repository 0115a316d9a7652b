"""Application layer for SignGate.

This layer orchestrates signing decisions without performing cryptography or
I/O itself. Signing and time are delegated to adapters via port interfaces.
"""

__all__ = [
    "ApiResponse",
    "InvalidRequest",
    "Rejected",
    "SignRequest",
    "SignResult",
    "Signed",
    "SigningFailed",
    "SigningGateway",
    "SigningPolicy",
    "to_response",
]

from signgate.app.responses import ApiResponse, to_response
from signgate.app.signing_service import (
    InvalidRequest,
    Rejected,
    Signed,
    SigningFailed,
    SigningGateway,
    SigningPolicy,
    SignRequest,
    SignResult,
)
