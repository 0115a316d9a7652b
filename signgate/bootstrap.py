"""Application bootstrap wiring ports, adapters, and services."""

from __future__ import annotations

from dataclasses import dataclass

from signgate.app import SigningGateway
from signgate.app.adapters import HmacUrlSigner, SystemClock
from signgate.app.ports import ClockPort, SignerPort
from signgate.config import ConfigurationError, Settings, get_settings


@dataclass(slots=True)
class ApplicationContainer:
    """Aggregates wired services and adapters for the CLI layer."""

    settings: Settings
    clock: ClockPort
    signer: SignerPort
    gateway: SigningGateway

    def refresh_configuration(self, settings: Settings) -> int:
        """Re-evaluate the expiration policy from freshly loaded settings.

        An unset expiry resets the policy to its default rather than keeping
        the previous override.
        """
        self.settings = settings
        return self.gateway.update_policy(settings.url_signing_expires_seconds)


def bootstrap_application(
    settings: Settings | None = None,
    *,
    signer: SignerPort | None = None,
    clock: ClockPort | None = None,
) -> ApplicationContainer:
    """Create the application container with default adapters.

    Raises:
        ConfigurationError: If settings are invalid or key entries conflict
    """
    active_settings = settings or get_settings()
    active_clock = clock or SystemClock()

    if signer is None:
        try:
            signer = HmacUrlSigner.from_settings(active_settings)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc

    gateway = SigningGateway(signer, active_clock)
    gateway.update_policy(active_settings.url_signing_expires_seconds)

    return ApplicationContainer(
        settings=active_settings,
        clock=active_clock,
        signer=signer,
        gateway=gateway,
    )
