"""Time-based one-time passwords (RFC 6238) on top of pyotp."""

import hmac
from datetime import datetime
from typing import Optional

import pyotp

from bondfire_auth.domain.models import MfaSetup
from bondfire_auth.domain.ports.services import Clock

TOTP_DIGITS = 6
TOTP_INTERVAL = 30
# 32 base32 characters == 160 bits of secret material.
SECRET_LENGTH = 32


class TotpEngine:
    """Stateless TOTP generation and verification against the injected clock."""

    def __init__(self, clock: Clock, issuer: str = "Bondfire", window_steps: int = 1):
        if window_steps < 0:
            raise ValueError("window_steps must be >= 0")
        self._clock = clock
        self.issuer = issuer
        self.window_steps = window_steps

    def generate_secret(self, account_label: str) -> MfaSetup:
        """Create fresh secret material and the otpauth:// URI for authenticator apps."""
        secret = pyotp.random_base32(length=SECRET_LENGTH)
        uri = self._totp(secret).provisioning_uri(name=account_label, issuer_name=self.issuer)
        return MfaSetup(secret=secret, provisioning_uri=uri)

    def current_code(self, secret: str, for_time: Optional[datetime] = None) -> str:
        return self._totp(secret).at(for_time or self._clock.now())

    def matching_step(self, secret: str, code: str, window_steps: Optional[int] = None) -> Optional[int]:
        """
        Find the time step whose code equals ``code``.

        Args:
            secret: Base32 shared secret
            code: Submitted code; surrounding whitespace is ignored
            window_steps: Steps accepted either side of now (defaults to the engine's)

        Returns:
            The matched step counter, or None when nothing in the window matches
        """
        candidate = str(code or "").strip()
        if len(candidate) != TOTP_DIGITS or not (candidate.isascii() and candidate.isdigit()):
            return None
        window = self.window_steps if window_steps is None else window_steps
        totp = self._totp(secret)
        now = self._clock.now()
        base_step = totp.timecode(now)
        matched = None
        # No early exit: every step in the window is compared.
        for offset in range(-window, window + 1):
            if hmac.compare_digest(candidate, totp.at(now, offset)) and matched is None:
                matched = base_step + offset
        return matched

    def verify_code(self, secret: str, code: str, window_steps: Optional[int] = None) -> bool:
        return self.matching_step(secret, code, window_steps) is not None

    @staticmethod
    def _totp(secret: str) -> pyotp.TOTP:
        return pyotp.TOTP(secret, digits=TOTP_DIGITS, interval=TOTP_INTERVAL)
