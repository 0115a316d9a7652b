"""Concrete adapters wiring application ports to built-in implementations."""

from __future__ import annotations

from .clock import FixedClock, SystemClock
from .hmac_signer import HmacUrlSigner, SigningKey, VerificationResult

__all__ = [
    "FixedClock",
    "HmacUrlSigner",
    "SigningKey",
    "SystemClock",
    "VerificationResult",
]
