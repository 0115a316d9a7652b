"""Configuration management with Pydantic and XDG base directory support."""

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from signgate.utils.crypto import load_or_create_hmac_key

URL_SIGNING_EXPIRES_SECONDS_KEY = "url.signing.expires.seconds"

# Two hours.
DEFAULT_URL_SIGNING_EXPIRE_SECONDS = 2 * 60 * 60

# One hundred years; keeps now + expiry well inside the datetime range.
MAX_URL_SIGNING_EXPIRE_SECONDS = 100 * 365 * 24 * 60 * 60


class ConfigurationError(ValueError):
    """Raised when a configuration value is malformed."""


def get_xdg_config_home() -> Path:
    """Get XDG_CONFIG_HOME directory, defaulting to ~/.config."""
    xdg_config = os.getenv("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config)
    return Path.home() / ".config"


class SigningKeyConfig(BaseModel):
    """Shared secret used to sign every URL below ``url_prefix``."""

    key_id: str = Field(..., min_length=1, description="Identifier embedded in signed URLs")
    secret: SecretStr = Field(..., description="Shared HMAC secret")
    url_prefix: str = Field(..., min_length=1, description="URL space covered by this key")


class Settings(BaseSettings):
    """SignGate configuration settings.

    Precedence: CLI flag > environment variable > .env file > defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="SIGNGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    url_signing_expires_seconds: int | None = Field(
        default=None,
        gt=0,
        le=MAX_URL_SIGNING_EXPIRE_SECONDS,
        description="Seconds before signed URLs expire when no valid-until is given",
    )

    config_dir: Path | None = Field(
        default=None,
        description="Override config directory (defaults to XDG_CONFIG_HOME/signgate)",
    )

    # Local default key
    signing_key_id: str = Field(
        default="default",
        min_length=1,
        description="Key id used for URLs matching signable_url_prefixes",
    )

    signing_key_path: Path | None = Field(
        default=None,
        description="Location of the default HMAC signing key (created when missing)",
    )

    signable_url_prefixes: list[str] = Field(
        default_factory=list,
        description="URL prefixes signed with the default key",
    )

    # Explicit key entries, e.g. shared with a CDN
    signing_keys: list[SigningKeyConfig] = Field(
        default_factory=list,
        description="Additional key entries as JSON: [{key_id, secret, url_prefix}]",
    )

    def get_config_dir(self) -> Path:
        """Get the config directory, creating if necessary."""
        if self.config_dir:
            config_dir = self.config_dir
        else:
            config_dir = get_xdg_config_home() / "signgate"

        config_dir.mkdir(parents=True, exist_ok=True)
        return config_dir

    def get_signing_key(self) -> bytes:
        """Return the secret of the local default signing key."""
        key_path = (
            self.signing_key_path
            if self.signing_key_path is not None
            else self.get_config_dir() / "signing.key"
        )
        return load_or_create_hmac_key(key_path, length=32)

    def get_key_entries(self) -> list[tuple[str, bytes, str]]:
        """Return every configured ``(key_id, secret, url_prefix)`` entry."""
        entries = [
            (key.key_id, key.secret.get_secret_value().encode("utf-8"), key.url_prefix)
            for key in self.signing_keys
        ]
        if self.signable_url_prefixes:
            secret = self.get_signing_key()
            entries.extend(
                (self.signing_key_id, secret, prefix) for prefix in self.signable_url_prefixes
            )
        return entries


def load_settings(**overrides: Any) -> Settings:
    """Build settings from the environment, surfacing bad values as ConfigurationError."""
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'settings'}: {error['msg']}"
            for error in exc.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {problems}") from exc


def parse_expiry_property(properties: Any) -> int | None:
    """Read the expiry from a pushed configuration mapping.

    Returns None when the key is missing or blank.

    Raises:
        ConfigurationError: If the value is not a positive integer or exceeds
            MAX_URL_SIGNING_EXPIRE_SECONDS
    """
    if properties is None:
        return None

    raw = properties.get(URL_SIGNING_EXPIRES_SECONDS_KEY)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None

    if isinstance(raw, bool) or (isinstance(raw, float) and not raw.is_integer()):
        raise ConfigurationError(
            f"{URL_SIGNING_EXPIRES_SECONDS_KEY} must be a positive integer, got {raw!r}"
        )
    try:
        seconds = int(raw.strip()) if isinstance(raw, str) else int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(
            f"{URL_SIGNING_EXPIRES_SECONDS_KEY} must be a positive integer, got {raw!r}"
        ) from exc

    if seconds <= 0 or seconds > MAX_URL_SIGNING_EXPIRE_SECONDS:
        raise ConfigurationError(
            f"{URL_SIGNING_EXPIRES_SECONDS_KEY} must be a positive integer of at most "
            f"{MAX_URL_SIGNING_EXPIRE_SECONDS}, got {raw!r}"
        )
    return seconds


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def set_settings(settings: Settings | None) -> None:
    """Set the global settings instance (useful for testing)."""
    global _settings
    _settings = settings
