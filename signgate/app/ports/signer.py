"""Signer port interface for URL signing operations."""

from datetime import datetime
from typing import Protocol


class UrlSigningError(Exception):
    """Raised by signers when a URL cannot be signed (missing key, bad parameters)."""


class SignerPort(Protocol):
    """Port interface for URL signing.

    Adapters own the key material and the token format. The gateway only
    decides whether and for how long a URL gets signed.

    Side effects: Adapter-defined; ``accepts`` must have none.
    """

    def accepts(self, url: str) -> bool:
        """Return True if ``url`` lies in a URL space this signer can sign.

        Must be fast and local: no signing, no network I/O, no exceptions.
        """
        ...

    def sign(
        self,
        url: str,
        valid_until: datetime,
        client_certificate: str | None = None,
        valid_source: str | None = None,
    ) -> str:
        """Sign ``url``.

        Args:
            url: Resource URL to sign
            valid_until: Aware UTC instant after which the URL is invalid
            client_certificate: Optional client certificate constraint
            valid_source: Optional opaque origin constraint

        Returns:
            Signed URL

        Raises:
            UrlSigningError: If the key or signing parameters are unusable
        """
        ...
