from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class TokenClaims:
    subject_id: str
    email: str
    name: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class MfaSetup:
    """Secret material handed to the user when enrollment starts."""

    secret: str
    provisioning_uri: str
