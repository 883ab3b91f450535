"""Domain models for the Bondfire authentication core."""

from .token import MfaSetup, TokenClaims
from .user import MfaDisabled, MfaEnabled, MfaPending, MfaState, User, normalize_email

__all__ = [
    "MfaDisabled",
    "MfaEnabled",
    "MfaPending",
    "MfaSetup",
    "MfaState",
    "TokenClaims",
    "User",
    "normalize_email",
]
