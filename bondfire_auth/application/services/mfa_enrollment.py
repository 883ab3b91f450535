from __future__ import annotations

import hmac
import logging
from typing import Optional

from ...domain.errors import InvalidMfaCode, MfaRequired, MfaStateError, ValidationError
from ...domain.models import MfaDisabled, MfaEnabled, MfaPending, MfaSetup, User
from ...services.totp import TotpEngine

logger = logging.getLogger(__name__)


class MfaEnrollment:
    """Two-factor state machine: disabled -> pending -> enabled -> disabled.

    Transitions mutate ``user.mfa`` in place by swapping the whole state
    object; persisting the user is the caller's job.
    """

    def __init__(self, totp: TotpEngine, reject_replay: bool = True) -> None:
        self._totp = totp
        self._reject_replay = reject_replay

    def begin_setup(self, user: User) -> MfaSetup:
        if isinstance(user.mfa, MfaEnabled):
            raise MfaStateError("MFA is already enabled. Disable it before enrolling again.")
        if isinstance(user.mfa, MfaPending):
            logger.info("Replacing pending MFA secret for user %s", user.id)
        setup = self._totp.generate_secret(user.email)
        user.mfa = MfaPending(secret=setup.secret)
        return setup

    def verify(self, user: User, code: Optional[str], secret: Optional[str] = None) -> None:
        if not code:
            raise ValidationError("Missing code.")
        if not isinstance(user.mfa, MfaPending):
            raise MfaStateError("No MFA enrollment is pending.")
        pending = user.mfa.secret
        if secret is not None and not _same_secret(secret, pending):
            raise ValidationError("Secret does not match the pending enrollment.")
        if not self._totp.verify_code(pending, code):
            raise InvalidMfaCode("Invalid code.")
        user.mfa = MfaEnabled(secret=pending)
        logger.info("MFA enabled for user %s", user.id)

    def disable(self, user: User) -> None:
        user.mfa = MfaDisabled()
        logger.info("MFA disabled for user %s", user.id)

    def check_login(self, user: User, code: Optional[str]) -> None:
        """Second-factor check at login; a no-op unless MFA is enabled."""
        state = user.mfa
        if not isinstance(state, MfaEnabled):
            return
        if not code:
            raise MfaRequired()
        step = self._totp.matching_step(state.secret, code)
        if step is None:
            raise InvalidMfaCode()
        if self._reject_replay:
            if state.last_used_step is not None and step <= state.last_used_step:
                logger.warning("Replayed MFA code rejected for user %s", user.id)
                raise InvalidMfaCode()
            user.mfa = MfaEnabled(secret=state.secret, last_used_step=step)


def _same_secret(supplied: str, pending: str) -> bool:
    return hmac.compare_digest(supplied.strip().upper().encode("utf-8"), pending.encode("utf-8"))
