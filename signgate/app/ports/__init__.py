"""Port interfaces for the SignGate application layer.

Domain logic depends on these protocols, never on concrete implementations.
"""

__all__ = [
    "ClockPort",
    "SignerPort",
    "UrlSigningError",
]

from signgate.app.ports.clock import ClockPort
from signgate.app.ports.signer import SignerPort, UrlSigningError
