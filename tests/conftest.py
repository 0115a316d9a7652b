"""Pytest configuration and fixtures."""

import shutil
import tempfile
from collections.abc import Generator
from datetime import UTC, datetime
from pathlib import Path

import pytest

from signgate.app.adapters import FixedClock
from signgate.app.ports import UrlSigningError
from signgate.config import Settings

FROZEN_NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=UTC)


class FakeSigner:
    """Scriptable signer recording every call."""

    def __init__(
        self,
        *,
        accepted_prefix: str = "https://cdn.example/",
        signed_suffix: str = "?sig=abc",
        error: Exception | None = None,
    ) -> None:
        self.accepted_prefix = accepted_prefix
        self.signed_suffix = signed_suffix
        self.error = error
        self.accepts_calls: list[str] = []
        self.sign_calls: list[tuple] = []

    def accepts(self, url: str) -> bool:
        self.accepts_calls.append(url)
        return url.startswith(self.accepted_prefix)

    def sign(self, url, valid_until, client_certificate=None, valid_source=None) -> str:
        self.sign_calls.append((url, valid_until, client_certificate, valid_source))
        if self.error is not None:
            raise self.error
        return f"{url}{self.signed_suffix}"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    try:
        yield Path(tmpdir)
    finally:
        shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def clock() -> FixedClock:
    """Clock frozen at a known instant."""
    return FixedClock(FROZEN_NOW)


@pytest.fixture
def fake_signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def failing_signer() -> FakeSigner:
    return FakeSigner(error=UrlSigningError("signing key 'cdn' is unavailable"))


@pytest.fixture
def override_settings(
    temp_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[Settings, None, None]:
    """Provide isolated SignGate settings scoped to tests."""

    import signgate.config as config_module

    for name in (
        "SIGNGATE_URL_SIGNING_EXPIRES_SECONDS",
        "SIGNGATE_SIGNABLE_URL_PREFIXES",
        "SIGNGATE_SIGNING_KEYS",
        "SIGNGATE_SIGNING_KEY_ID",
        "SIGNGATE_SIGNING_KEY_PATH",
        "SIGNGATE_CONFIG_DIR",
    ):
        monkeypatch.delenv(name, raising=False)

    original_settings = getattr(config_module, "_settings", None)

    config_dir = temp_dir / "appconfig"
    config_dir.mkdir(parents=True, exist_ok=True)

    settings = config_module.Settings(
        config_dir=config_dir,
        signable_url_prefixes=["https://cdn.example/"],
        _env_file=None,
    )

    config_module._settings = settings

    try:
        yield settings
    finally:
        config_module._settings = original_settings


@pytest.fixture
def frozen_now() -> datetime:
    return FROZEN_NOW


@pytest.fixture
def signer_factory() -> type[FakeSigner]:
    """Build fake signers with custom behaviour."""
    return FakeSigner
