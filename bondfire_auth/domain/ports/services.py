from __future__ import annotations

from datetime import datetime
from typing import Protocol


class Clock(Protocol):
    """Source of the current time; returns timezone-aware UTC datetimes."""

    def now(self) -> datetime:
        ...


class NotificationSender(Protocol):
    """Delivers password reset tokens out-of-band.

    ``send`` returns True once the token has been handed off for delivery and
    False when it was not (sender disabled or transport failure).
    """

    def send(self, email: str, reset_token: str) -> bool:
        ...
