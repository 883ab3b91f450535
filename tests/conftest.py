"""Shared fixtures: fixed clock, fast bcrypt, in-memory store, recording notifier."""

from datetime import datetime, timedelta, timezone

import pytest

from bondfire_auth.application.services.auth_service import AuthService
from bondfire_auth.application.services.mfa_enrollment import MfaEnrollment
from bondfire_auth.infrastructure.persistence.memory import InMemoryCredentialStore
from bondfire_auth.services.password_hasher import PasswordHasher
from bondfire_auth.services.token_service import TokenService
from bondfire_auth.services.totp import TotpEngine

SIGNING_SECRET = "test-signing-secret-0123456789abcdef"
START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, current: datetime = START) -> None:
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current = self.current + timedelta(seconds=seconds)


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent = []

    def send(self, email: str, reset_token: str) -> bool:
        self.sent.append((email, reset_token))
        return True


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def store():
    return InMemoryCredentialStore()


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=4)


@pytest.fixture
def totp(clock):
    return TotpEngine(clock, issuer="Bondfire", window_steps=1)


@pytest.fixture
def tokens(clock):
    return TokenService(SIGNING_SECRET, clock)


@pytest.fixture
def mfa(totp):
    return MfaEnrollment(totp)


@pytest.fixture
def auth_service(store, hasher, tokens, mfa, notifier, clock):
    return AuthService(
        store=store,
        hasher=hasher,
        tokens=tokens,
        mfa=mfa,
        notifier=notifier,
        clock=clock,
    )
