"""Signed, expiring session tokens (JWT, HMAC-SHA256)."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from ..domain.errors import TokenExpired, TokenInvalid
from ..domain.models import TokenClaims
from ..domain.ports.services import Clock

logger = logging.getLogger(__name__)

MIN_SECRET_BYTES = 32


class TokenService:
    """Issues and verifies bearer tokens. Holds no state besides the signing key."""

    def __init__(
        self,
        secret_key: str,
        clock: Clock,
        ttl: timedelta = timedelta(hours=1),
        algorithm: str = "HS256",
    ) -> None:
        if not secret_key:
            raise RuntimeError("JWT_SECRET is not configured.")
        if len(secret_key.encode("utf-8")) < MIN_SECRET_BYTES:
            logger.warning("JWT_SECRET is shorter than %d bytes.", MIN_SECRET_BYTES)
        self._secret_key = secret_key
        self._clock = clock
        self._ttl = ttl
        self._algorithm = algorithm

    def issue(self, subject_id: str, email: str, name: str, ttl: Optional[timedelta] = None) -> str:
        now = self._clock.now()
        expire = now + (self._ttl if ttl is None else ttl)
        payload = {"sub": subject_id, "email": email, "name": name, "iat": now, "exp": expire}
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Check the signature, then the expiry against the injected clock.

        Raises:
            TokenInvalid: Bad signature, malformed token or missing claims
            TokenExpired: The token's expiry is in the past
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": ["sub", "exp", "iat"],
                },
            )
        except jwt.InvalidTokenError as exc:
            raise TokenInvalid() from exc

        email = payload.get("email")
        name = payload.get("name")
        if not isinstance(email, str) or not isinstance(name, str) or not payload["sub"]:
            raise TokenInvalid()
        try:
            issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError, OSError) as exc:
            raise TokenInvalid() from exc

        if self._clock.now() > expires_at:
            raise TokenExpired()
        return TokenClaims(
            subject_id=str(payload["sub"]),
            email=email,
            name=name,
            issued_at=issued_at,
            expires_at=expires_at,
        )
