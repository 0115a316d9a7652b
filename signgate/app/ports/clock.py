"""Clock port interface."""

from datetime import datetime
from typing import Protocol


class ClockPort(Protocol):
    """Source of the current time, injectable for deterministic tests."""

    def now(self) -> datetime:
        """Return the current time as an aware UTC datetime."""
        ...
