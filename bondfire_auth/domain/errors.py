"""Error taxonomy for the authentication core.

Every failure a caller can observe is an ``AuthError`` subclass carrying a
stable ``code`` and a user-facing ``message``. ``http_status`` is only read by
the FastAPI adapter.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class AuthError(Exception):
    """Base exception for all authentication failures."""

    code = "auth_error"
    default_message = "Authentication failed."
    http_status = 400

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_response(self) -> Dict[str, Any]:
        return {"error": {"code": self.code, "message": self.message}}


class ValidationError(AuthError):
    code = "validation_error"
    default_message = "Missing or invalid fields."
    http_status = 400


class DuplicateEmail(AuthError):
    code = "duplicate_email"
    default_message = "Email already registered."
    http_status = 409


class InvalidCredentials(AuthError):
    code = "invalid_credentials"
    default_message = "Invalid email or password."
    http_status = 401


class MfaRequired(AuthError):
    code = "mfa_required"
    default_message = "MFA code required."
    http_status = 401


class InvalidMfaCode(AuthError):
    code = "invalid_mfa_code"
    default_message = "Invalid MFA code."
    http_status = 401


class MfaStateError(AuthError):
    code = "mfa_state"
    default_message = "MFA is not in a state that allows this operation."
    http_status = 409


class InvalidResetToken(AuthError):
    code = "invalid_token"
    default_message = "Invalid or expired reset token."
    http_status = 400


class TokenInvalid(AuthError):
    code = "token_invalid"
    default_message = "Invalid token."
    http_status = 401


class TokenExpired(AuthError):
    code = "token_expired"
    default_message = "Token expired."
    http_status = 401


class UserNotFound(AuthError):
    code = "user_not_found"
    default_message = "User not found."
    http_status = 404


class StoreUnavailable(AuthError):
    """The credential store could not be reached; never a credential failure."""

    code = "store_unavailable"
    default_message = "Credential store unavailable."
    http_status = 503


__all__ = [
    "AuthError",
    "DuplicateEmail",
    "InvalidCredentials",
    "InvalidMfaCode",
    "InvalidResetToken",
    "MfaRequired",
    "MfaStateError",
    "StoreUnavailable",
    "TokenExpired",
    "TokenInvalid",
    "UserNotFound",
    "ValidationError",
]
