"""User domain model and its two-factor enrollment state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Union


def normalize_email(email: str) -> str:
    """Lookup key used for every email comparison."""
    return (email or "").strip().lower()


@dataclass(frozen=True, slots=True)
class MfaDisabled:
    pass


@dataclass(frozen=True, slots=True)
class MfaPending:
    secret: str


@dataclass(frozen=True, slots=True)
class MfaEnabled:
    secret: str
    last_used_step: Optional[int] = None


MfaState = Union[MfaDisabled, MfaPending, MfaEnabled]


@dataclass(slots=True)
class User:
    """
    Identity record owned by the credential store.

    Attributes:
        id: Opaque identifier, immutable after creation
        name: Display name
        email: Login email as entered; lookups use ``normalize_email``
        password_hash: bcrypt hash, never the raw password
        mfa: Two-factor enrollment state
        reset_token_hash: SHA-256 of the outstanding reset token, if any
        reset_expires_at: Expiry of the outstanding reset token
        created_at: Account creation timestamp
        updated_at: Last update timestamp
    """

    id: str
    name: str
    email: str
    password_hash: str
    mfa: MfaState = field(default_factory=MfaDisabled)
    reset_token_hash: Optional[str] = None
    reset_expires_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def normalized_email(self) -> str:
        return normalize_email(self.email)

    @property
    def mfa_enabled(self) -> bool:
        return isinstance(self.mfa, MfaEnabled)

    @property
    def mfa_secret(self) -> Optional[str]:
        return self.mfa.secret if isinstance(self.mfa, MfaEnabled) else None

    @property
    def mfa_pending_secret(self) -> Optional[str]:
        return self.mfa.secret if isinstance(self.mfa, MfaPending) else None

    def clear_reset_token(self) -> None:
        self.reset_token_hash = None
        self.reset_expires_at = None

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} mfa={type(self.mfa).__name__}>"
