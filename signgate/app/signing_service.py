"""Signing gateway: validation, expiration policy and signer arbitration.

The gateway never performs cryptographic work itself. It decides whether a
URL is signed and until when, delegates the signature to a ``SignerPort`` and
turns every outcome into a ``SignResult`` value.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from signgate.app.ports import ClockPort, SignerPort, UrlSigningError
from signgate.config import (
    DEFAULT_URL_SIGNING_EXPIRE_SECONDS,
    MAX_URL_SIGNING_EXPIRE_SECONDS,
    URL_SIGNING_EXPIRES_SECONDS_KEY,
    ConfigurationError,
    parse_expiry_property,
)
from signgate.utils.timestamps import format_utc, humanize_duration, parse_utc

logger = logging.getLogger(__name__)

URL_MANDATORY = "url is mandatory"
INVALID_VALID_UNTIL = "valid-until is not a valid ISO-8601 date string"
URL_NOT_SIGNABLE = "Given URL cannot be signed"
SIGNING_ERROR = "Error while signing url"


class SignRequest(BaseModel):
    """Raw signing request as submitted by a caller.

    Field aliases match the form parameter names (``valid-until``,
    ``valid-source``).
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    url: str = Field(default="", description="Resource URL to sign")
    valid_until: str | None = Field(
        default=None,
        alias="valid-until",
        description="ISO-8601 UTC instant after which the URL is invalid",
    )
    valid_source: str | None = Field(
        default=None,
        alias="valid-source",
        description="Opaque origin constraint passed through to the signer",
    )


@dataclass(frozen=True, slots=True)
class Signed:
    """URL was signed."""

    signed_url: str
    valid_until: datetime

    @property
    def valid_until_iso(self) -> str:
        return format_utc(self.valid_until)


@dataclass(frozen=True, slots=True)
class Rejected:
    """URL lies outside every signable URL space."""

    reason: str = URL_NOT_SIGNABLE


@dataclass(frozen=True, slots=True)
class SigningFailed:
    """Signer raised an error; the cause is logged, not returned."""

    reason: str = SIGNING_ERROR


@dataclass(frozen=True, slots=True)
class InvalidRequest:
    """Request failed validation before reaching the signer."""

    reason: str


SignResult = Signed | Rejected | SigningFailed | InvalidRequest


def _validate_expiry(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigurationError(
            f"{URL_SIGNING_EXPIRES_SECONDS_KEY} must be a positive integer, got {value!r}"
        )
    if value > MAX_URL_SIGNING_EXPIRE_SECONDS:
        raise ConfigurationError(
            f"{URL_SIGNING_EXPIRES_SECONDS_KEY} must be at most "
            f"{MAX_URL_SIGNING_EXPIRE_SECONDS} seconds, got {value!r}"
        )
    return value


@dataclass
class SigningPolicy:
    """Default expiration applied when a request carries no valid-until.

    Replaced wholesale under a lock so concurrent readers always see a
    complete value.
    """

    expiry_seconds: int = DEFAULT_URL_SIGNING_EXPIRE_SECONDS
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        _validate_expiry(self.expiry_seconds)

    def current(self) -> int:
        """Return the committed expiry in seconds."""
        with self._lock:
            return self.expiry_seconds

    def replace(self, expiry_seconds: int) -> None:
        """Commit a new expiry."""
        _validate_expiry(expiry_seconds)
        with self._lock:
            self.expiry_seconds = expiry_seconds


class SigningGateway:
    """Decide expiration and arbitrate between the four signing outcomes."""

    def __init__(
        self,
        signer: SignerPort,
        clock: ClockPort,
        *,
        policy: SigningPolicy | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            signer: Signing capability (shared, not owned)
            clock: Time source
            policy: Expiration policy (defaults to two hours)
        """
        self._signer = signer
        self._clock = clock
        self._policy = policy or SigningPolicy()

    @property
    def default_expiry_seconds(self) -> int:
        return self._policy.current()

    def sign_url(self, request: SignRequest) -> SignResult:
        """Validate ``request``, resolve its expiration and delegate to the signer."""
        now = self._clock.now()
        url = request.url

        if not url or not url.strip():
            return InvalidRequest(URL_MANDATORY)

        valid_until: datetime
        if request.valid_until is not None and request.valid_until.strip():
            try:
                valid_until = parse_utc(request.valid_until)
            except (ValueError, OverflowError):
                logger.debug("Rejecting unparseable valid-until %r", request.valid_until)
                return InvalidRequest(INVALID_VALID_UNTIL)
        else:
            valid_until = now + timedelta(seconds=self._policy.current())

        if not self._signer.accepts(url):
            logger.debug("No signer accepts url '%s'", url)
            return Rejected()

        try:
            signed_url = self._signer.sign(url, valid_until, None, request.valid_source)
        except UrlSigningError as exc:
            logger.warning("Error while trying to sign url '%s': %s", url, exc, exc_info=True)
            return SigningFailed()

        logger.debug("Signed url '%s' valid until %s", url, format_utc(valid_until))
        return Signed(signed_url=signed_url, valid_until=valid_until)

    def update_policy(self, expiry_seconds: int | None = None) -> int:
        """Replace the default expiry, or reset it to two hours when absent.

        Returns:
            The now-effective expiry in seconds

        Raises:
            ConfigurationError: If ``expiry_seconds`` is not a positive integer or
                exceeds one hundred years
        """
        if expiry_seconds is None:
            self._policy.replace(DEFAULT_URL_SIGNING_EXPIRE_SECONDS)
            logger.info(
                "The property %s has not been configured, so the default is being used "
                "to expire signed URLs in %s.",
                URL_SIGNING_EXPIRES_SECONDS_KEY,
                humanize_duration(DEFAULT_URL_SIGNING_EXPIRE_SECONDS),
            )
            return DEFAULT_URL_SIGNING_EXPIRE_SECONDS

        self._policy.replace(expiry_seconds)
        logger.info(
            "The property %s has been configured to expire signed URLs in %s.",
            URL_SIGNING_EXPIRES_SECONDS_KEY,
            humanize_duration(expiry_seconds),
        )
        return expiry_seconds

    def apply_properties(self, properties: Mapping[str, Any] | None) -> int:
        """Apply a pushed configuration mapping.

        Raises:
            ConfigurationError: If the expiry property is malformed
        """
        return self.update_policy(parse_expiry_property(properties))
