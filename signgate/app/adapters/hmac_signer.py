"""HMAC-SHA256 URL signer with prefix-matched key entries.

Each key entry maps a key id and shared secret to a URL prefix. A signed URL
carries three extra query parameters:

- ``policy``: base64url JSON document naming the resource, the expiry in epoch
  milliseconds and an optional client IP address
- ``keyId``: id of the key that produced the signature
- ``signature``: hex HMAC-SHA256 of the encoded policy

Resource servers holding the same key entries can verify such URLs without
any lookup.
"""

from __future__ import annotations

import hmac
import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Literal
from urllib.parse import unquote_plus, urlencode

from signgate.app.ports import SignerPort, UrlSigningError
from signgate.utils.crypto import hmac_sha256_hex, urlsafe_decode, urlsafe_encode
from signgate.utils.timestamps import to_epoch_millis

if TYPE_CHECKING:  # pragma: no cover
    from signgate.config import Settings

logger = logging.getLogger(__name__)

POLICY_PARAM = "policy"
KEY_ID_PARAM = "keyId"
SIGNATURE_PARAM = "signature"
SIGNING_PARAMS = (POLICY_PARAM, KEY_ID_PARAM, SIGNATURE_PARAM)

VerificationStatus = Literal["ok", "bad_request", "forbidden", "gone"]


@dataclass(frozen=True, slots=True)
class SigningKey:
    """Shared secret covering every URL that starts with ``url_prefix``."""

    key_id: str
    secret: bytes = field(repr=False)
    url_prefix: str


@dataclass(frozen=True, slots=True)
class VerificationResult:
    """Outcome of checking a signed URL on the resource-server side."""

    status: VerificationStatus
    reason: str | None = None
    resource: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


def _split_url(url: str) -> tuple[str, str | None, str]:
    """Split ``url`` into base, raw query (None when there is no ``?``) and fragment suffix."""
    head, hash_sign, fragment = url.partition("#")
    base, question, query = head.partition("?")
    return base, (query if question else None), hash_sign + fragment


def _split_signing_params(query: str | None) -> tuple[list[str], dict[str, str]]:
    """Separate signing parameters from the raw resource query pairs.

    Resource pairs are returned verbatim, empty ones included, so that
    joining them with ``&`` restores the original query text.
    """
    kept: list[str] = []
    params: dict[str, str] = {}
    if query is None:
        return kept, params
    for pair in query.split("&"):
        name, _, value = pair.partition("=")
        name = unquote_plus(name)
        if name in SIGNING_PARAMS:
            params[name] = unquote_plus(value)
        else:
            kept.append(pair)
    return kept, params


def _encode_policy(policy: dict[str, Any]) -> str:
    payload = json.dumps(policy, sort_keys=True, separators=(",", ":"))
    return urlsafe_encode(payload.encode("utf-8"))


class HmacUrlSigner(SignerPort):
    """Sign and verify URLs with per-prefix HMAC keys.

    Example:
        >>> signer = HmacUrlSigner([SigningKey("cdn", b"secret", "https://cdn.example/")])
        >>> signer.accepts("https://cdn.example/video.mp4")
        True
        >>> signer.accepts("https://other.example/video.mp4")
        False
    """

    def __init__(self, keys: Iterable[SigningKey]) -> None:
        """Initialize signer.

        Args:
            keys: Key entries; one key id may cover several prefixes

        Raises:
            ValueError: If one key id is configured with different secrets
        """
        self._secrets: dict[str, bytes] = {}
        entries = list(keys)
        for key in entries:
            known = self._secrets.setdefault(key.key_id, key.secret)
            if not hmac.compare_digest(known, key.secret):
                raise ValueError(f"Key id '{key.key_id}' is configured with conflicting secrets")

        # Longest prefix wins when entries overlap.
        self._keys = sorted(entries, key=lambda key: len(key.url_prefix), reverse=True)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "HmacUrlSigner":
        """Construct signer from configured key entries."""
        return cls(
            SigningKey(key_id=key_id, secret=secret, url_prefix=prefix)
            for key_id, secret, prefix in settings.get_key_entries()
        )

    @property
    def url_prefixes(self) -> list[str]:
        return [key.url_prefix for key in self._keys]

    def _match(self, url: str) -> SigningKey | None:
        for key in self._keys:
            if url.startswith(key.url_prefix):
                return key
        return None

    def accepts(self, url: str) -> bool:
        return self._match(url) is not None

    def sign(
        self,
        url: str,
        valid_until: datetime,
        client_certificate: str | None = None,
        valid_source: str | None = None,
    ) -> str:
        """Append policy, key id and signature parameters to ``url``.

        ``valid_source`` is embedded as the client IP address condition.
        ``client_certificate`` is not supported by this signer and is ignored.

        Raises:
            UrlSigningError: If no key covers ``url``, ``url`` is already
                signed, or ``valid_until`` is naive
        """
        key = self._match(url)
        if key is None:
            raise UrlSigningError(f"No signing key is configured for url '{url}'")

        if valid_until.tzinfo is None:
            raise UrlSigningError("valid_until must be timezone-aware")

        base, query, fragment = _split_url(url)
        _, existing = _split_signing_params(query)
        if existing:
            raise UrlSigningError(
                f"Url '{url}' already carries signing parameters: {', '.join(sorted(existing))}"
            )

        condition: dict[str, Any] = {"DateLessThan": to_epoch_millis(valid_until.astimezone(UTC))}
        if valid_source:
            condition["IpAddress"] = valid_source
        encoded_policy = _encode_policy({"Statement": {"Resource": url, "Condition": condition}})
        signature = hmac_sha256_hex(key.secret, encoded_policy.encode("ascii"))

        extra = urlencode(
            [
                (POLICY_PARAM, encoded_policy),
                (KEY_ID_PARAM, key.key_id),
                (SIGNATURE_PARAM, signature),
            ]
        )
        # Appended to the raw text so the resource is recoverable byte for byte.
        signed_query = extra if query is None else f"{query}&{extra}"
        return f"{base}?{signed_query}{fragment}"

    def verify(
        self,
        signed_url: str,
        *,
        client_ip: str | None = None,
        now: datetime | None = None,
    ) -> VerificationResult:
        """Check a URL produced by :meth:`sign`.

        Args:
            signed_url: URL including policy, keyId and signature parameters
            client_ip: Address of the requesting client, checked against the
                policy's IP condition when present
            now: Reference time (defaults to the current UTC time)

        Returns:
            VerificationResult with status ok, bad_request, forbidden or gone
        """
        base, query, fragment = _split_url(signed_url)
        kept, params = _split_signing_params(query)
        missing = [name for name in SIGNING_PARAMS if not params.get(name)]
        if missing:
            return VerificationResult("bad_request", f"Missing signing parameters: {', '.join(missing)}")

        key_id = params[KEY_ID_PARAM]
        secret = self._secrets.get(key_id)
        if secret is None:
            logger.debug("Unknown key id '%s' in signed url", key_id)
            return VerificationResult("forbidden", f"Unknown key id '{key_id}'")

        encoded_policy = params[POLICY_PARAM]
        expected = hmac_sha256_hex(secret, encoded_policy.encode("utf-8"))
        if not hmac.compare_digest(expected.encode("ascii"), params[SIGNATURE_PARAM].encode("utf-8")):
            logger.debug("Signature mismatch for key id '%s'", key_id)
            return VerificationResult("forbidden", "Signature does not match policy")

        try:
            policy = json.loads(urlsafe_decode(encoded_policy))
            statement = policy["Statement"]
            policy_resource = statement["Resource"]
            condition = statement["Condition"]
            expires_millis = int(condition["DateLessThan"])
            allowed_ip = condition.get("IpAddress")
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.debug("Malformed policy in signed url: %s", exc)
            return VerificationResult("bad_request", "Malformed signing policy")

        resource = f"{base}?{'&'.join(kept)}{fragment}" if kept else f"{base}{fragment}"
        if policy_resource != resource:
            return VerificationResult("forbidden", "Policy does not cover this resource", resource)

        reference = now or datetime.now(UTC)
        if to_epoch_millis(reference) >= expires_millis:
            return VerificationResult("gone", "Signed url has expired", resource)

        if allowed_ip and client_ip != allowed_ip:
            return VerificationResult(
                "forbidden", "Client address is not permitted by the policy", resource
            )

        return VerificationResult("ok", None, resource)
