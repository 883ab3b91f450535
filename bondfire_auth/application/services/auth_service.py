from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import timedelta
from typing import Optional, Tuple

from ...domain.errors import DuplicateEmail, InvalidCredentials, InvalidResetToken, UserNotFound, ValidationError
from ...domain.models import MfaSetup, User
from ...domain.ports.persistence import CredentialStore
from ...domain.ports.services import Clock, NotificationSender
from ...services.password_hasher import PasswordHasher
from ...services.token_service import TokenService
from .mfa_enrollment import MfaEnrollment

logger = logging.getLogger(__name__)


class AuthService:
    """Coordinates registration, login, password reset and MFA flows."""

    def __init__(
        self,
        store: CredentialStore,
        hasher: PasswordHasher,
        tokens: TokenService,
        mfa: MfaEnrollment,
        notifier: NotificationSender,
        clock: Clock,
        reset_ttl: timedelta = timedelta(minutes=60),
    ) -> None:
        self._store = store
        self._hasher = hasher
        self._tokens = tokens
        self._mfa = mfa
        self._notifier = notifier
        self._clock = clock
        self._reset_ttl = reset_ttl
        self._dummy_hash: Optional[str] = None

    # ------------------------------------------------------------------
    def register(self, name: str, email: str, password: str) -> Tuple[User, str]:
        """
        Create an account and sign it in.

        Returns:
            Tuple of (User, session token)

        Raises:
            ValidationError: If name, email or password is empty
            DuplicateEmail: If the email (case-insensitively) is taken
        """
        name_clean = (name or "").strip()
        email_clean = (email or "").strip()
        if not name_clean or not email_clean or not password:
            raise ValidationError("Missing fields.")
        if self._store.find_by_email(email_clean):
            raise DuplicateEmail()

        now = self._clock.now()
        user = User(
            id=f"u_{secrets.token_hex(8)}",
            name=name_clean,
            email=email_clean,
            password_hash=self._hasher.hash(password),
            created_at=now,
            updated_at=now,
        )
        user = self._store.insert(user)
        logger.info("Registered user %s", user.id)
        return user, self._issue(user)

    def login(self, email: str, password: str, mfa_code: Optional[str] = None) -> Tuple[User, str]:
        """
        Check credentials and, when enrolled, the second factor.

        Unknown emails and wrong passwords raise the same InvalidCredentials.
        """
        user = self._store.find_by_email(email or "")
        if user is None:
            # Unknown emails still pay for one bcrypt check.
            self._hasher.verify(password or "", self._get_dummy_hash())
            logger.info("Login failed: unknown email")
            raise InvalidCredentials()
        if not self._hasher.verify(password or "", user.password_hash):
            logger.info("Login failed for user %s: wrong password", user.id)
            raise InvalidCredentials()

        if user.mfa_enabled:
            with self._store.lock(user.id):
                user = self._require_user(user.id)
                self._mfa.check_login(user, mfa_code)
                self._save(user)

        logger.info("User %s logged in", user.id)
        return user, self._issue(user)

    def get_profile(self, user_id: str) -> User:
        return self._require_user(user_id)

    # Password reset ---------------------------------------------------
    def request_password_reset(self, email: str) -> None:
        """Issue a reset token for an existing account. Silent for unknown emails."""
        user = self._store.find_by_email(email or "")
        if user is None:
            logger.info("Password reset requested for unknown email")
            return

        token = secrets.token_urlsafe(32)
        with self._store.lock(user.id):
            user = self._require_user(user.id)
            user.reset_token_hash = _hash_token(token)
            user.reset_expires_at = self._clock.now() + self._reset_ttl
            self._save(user)
        logger.info("Password reset token issued for user %s", user.id)

        try:
            delivered = self._notifier.send(user.email, token)
        except Exception:
            logger.exception("Reset notification failed for user %s", user.id)
            return
        if not delivered:
            logger.warning("Reset notification was not delivered for user %s", user.id)

    def reset_password(self, token: str, new_password: str) -> None:
        if not token:
            raise InvalidResetToken()
        if not new_password:
            raise ValidationError("Missing fields.")
        digest = _hash_token(token)
        candidate = self._store.find_by_reset_token_hash(digest)
        if candidate is None:
            raise InvalidResetToken()

        with self._store.lock(candidate.id):
            user = self._require_user(candidate.id)
            if not user.reset_token_hash or not hmac.compare_digest(user.reset_token_hash, digest):
                raise InvalidResetToken()
            if user.reset_expires_at and self._clock.now() > user.reset_expires_at:
                user.clear_reset_token()
                self._save(user)
                logger.info("Expired reset token presented for user %s", user.id)
                raise InvalidResetToken()
            user.password_hash = self._hasher.hash(new_password)
            user.clear_reset_token()
            self._save(user)
        logger.info("Password reset completed for user %s", user.id)

    # MFA ----------------------------------------------------------------
    def mfa_setup(self, user_id: str) -> MfaSetup:
        with self._store.lock(user_id):
            user = self._require_user(user_id)
            setup = self._mfa.begin_setup(user)
            self._save(user)
        return setup

    def mfa_verify(self, user_id: str, code: Optional[str], secret: Optional[str] = None) -> User:
        with self._store.lock(user_id):
            user = self._require_user(user_id)
            self._mfa.verify(user, code, secret)
            return self._save(user)

    def mfa_disable(self, user_id: str) -> User:
        with self._store.lock(user_id):
            user = self._require_user(user_id)
            self._mfa.disable(user)
            return self._save(user)

    # ------------------------------------------------------------------
    def ensure_seed_user(self, name: Optional[str], email: Optional[str], password: Optional[str]) -> Optional[User]:
        if not name or not email or not password:
            return None
        existing = self._store.find_by_email(email)
        if existing:
            return existing
        logger.info("Creating seed account")
        user, _ = self.register(name, email, password)
        return user

    def _require_user(self, user_id: str) -> User:
        user = self._store.find_by_id(user_id)
        if user is None:
            raise UserNotFound()
        return user

    def _save(self, user: User) -> User:
        user.updated_at = self._clock.now()
        return self._store.update(user)

    def _issue(self, user: User) -> str:
        return self._tokens.issue(user.id, user.email, user.name)

    def _get_dummy_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = self._hasher.hash(secrets.token_urlsafe(16))
        return self._dummy_hash


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
