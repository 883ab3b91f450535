"""Tests for the auth orchestrator: registration, login, reset and MFA flows."""

import threading
from datetime import timedelta

import pytest

from bondfire_auth.domain.errors import (
    DuplicateEmail,
    InvalidCredentials,
    InvalidMfaCode,
    InvalidResetToken,
    MfaRequired,
    MfaStateError,
    StoreUnavailable,
    UserNotFound,
    ValidationError,
)
from bondfire_auth.application.services.auth_service import AuthService
from bondfire_auth.infrastructure.persistence.sqlite import SQLiteCredentialStore


def _enable_mfa(auth_service, totp, user_id):
    setup = auth_service.mfa_setup(user_id)
    auth_service.mfa_verify(user_id, totp.current_code(setup.secret))
    return setup.secret


class TestRegistration:

    @pytest.mark.parametrize(
        "name,email,password",
        [
            ("Ada", "ada@example.org", "password123"),
            ("Grace Hopper", "Grace@Navy.MIL", "cobol-4-ever"),
            ("Linus", "linus@example.org", "p"),
        ],
    )
    def test_register_then_login(self, auth_service, tokens, name, email, password):
        user, token = auth_service.register(name, email, password)
        assert tokens.verify(token).subject_id == user.id
        logged_in, login_token = auth_service.login(email, password)
        assert logged_in.id == user.id
        assert tokens.verify(login_token).email == email

    def test_password_is_never_stored(self, auth_service, store):
        user, _ = auth_service.register("Ada", "ada@example.org", "password123")
        assert store.find_by_id(user.id).password_hash != "password123"

    def test_duplicate_email_differing_by_case(self, auth_service):
        auth_service.register("Ada", "ada@example.org", "password123")
        with pytest.raises(DuplicateEmail):
            auth_service.register("Ada Again", "ADA@Example.org", "password456")

    @pytest.mark.parametrize(
        "name,email,password",
        [("", "a@b.c", "pw"), ("Ada", "", "pw"), ("Ada", "a@b.c", ""), ("   ", "a@b.c", "pw")],
    )
    def test_missing_fields(self, auth_service, name, email, password):
        with pytest.raises(ValidationError):
            auth_service.register(name, email, password)

    def test_ids_are_unique(self, auth_service):
        first, _ = auth_service.register("A", "a@example.org", "pw")
        second, _ = auth_service.register("B", "b@example.org", "pw")
        assert first.id != second.id


class TestLogin:

    def test_unknown_email_and_wrong_password_look_the_same(self, auth_service):
        auth_service.register("Ada", "ada@example.org", "password123")
        with pytest.raises(InvalidCredentials) as wrong_password:
            auth_service.login("ada@example.org", "nope")
        with pytest.raises(InvalidCredentials) as unknown_email:
            auth_service.login("nobody@example.org", "password123")
        assert wrong_password.value.code == unknown_email.value.code
        assert wrong_password.value.message == unknown_email.value.message

    def test_login_is_case_insensitive_on_email(self, auth_service):
        auth_service.register("Ada", "ada@example.org", "password123")
        auth_service.login("ADA@EXAMPLE.ORG", "password123")

    def test_mfa_login_flow(self, auth_service, totp, clock):
        user, _ = auth_service.register("Ada", "ada@example.org", "password123")
        secret = _enable_mfa(auth_service, totp, user.id)
        assert auth_service.get_profile(user.id).mfa_enabled

        with pytest.raises(MfaRequired):
            auth_service.login("ada@example.org", "password123")

        stale = totp.current_code(secret, clock.now() - timedelta(seconds=300))
        with pytest.raises(InvalidMfaCode):
            auth_service.login("ada@example.org", "password123", stale)

        _, token = auth_service.login("ada@example.org", "password123", totp.current_code(secret))
        assert token

    def test_password_checked_before_mfa(self, auth_service, totp):
        user, _ = auth_service.register("Ada", "ada@example.org", "password123")
        secret = _enable_mfa(auth_service, totp, user.id)
        with pytest.raises(InvalidCredentials):
            auth_service.login("ada@example.org", "wrong", totp.current_code(secret))

    def test_mfa_code_cannot_be_replayed(self, auth_service, totp):
        user, _ = auth_service.register("Ada", "ada@example.org", "password123")
        secret = _enable_mfa(auth_service, totp, user.id)
        code = totp.current_code(secret)
        auth_service.login("ada@example.org", "password123", code)
        with pytest.raises(InvalidMfaCode):
            auth_service.login("ada@example.org", "password123", code)

    def test_login_after_disable_needs_no_code(self, auth_service, totp):
        user, _ = auth_service.register("Ada", "ada@example.org", "password123")
        _enable_mfa(auth_service, totp, user.id)
        auth_service.mfa_disable(user.id)
        auth_service.login("ada@example.org", "password123")

    def test_store_failure_is_not_invalid_credentials(self, hasher, tokens, mfa, notifier, clock):
        class BrokenStore:
            def find_by_email(self, email):
                raise StoreUnavailable()

        service = AuthService(BrokenStore(), hasher, tokens, mfa, notifier, clock)
        with pytest.raises(StoreUnavailable):
            service.login("ada@example.org", "password123")

    def test_unavailable_database_is_not_invalid_credentials(
        self, tmp_path, hasher, tokens, mfa, notifier, clock
    ):
        store = SQLiteCredentialStore(tmp_path / "auth.db")
        service = AuthService(store, hasher, tokens, mfa, notifier, clock)
        service.register("Ada", "ada@example.org", "password123")
        store.close()

        with pytest.raises(StoreUnavailable):
            service.login("ada@example.org", "password123")
        with pytest.raises(StoreUnavailable):
            service.login("nobody@example.org", "password123")


class TestPasswordReset:

    def test_reset_succeeds_exactly_once(self, auth_service, notifier):
        auth_service.register("Ada", "ada@example.org", "password123")
        assert auth_service.request_password_reset("ADA@example.org") is None
        email, token = notifier.sent[-1]
        assert email == "ada@example.org"

        auth_service.reset_password(token, "new-password")
        with pytest.raises(InvalidResetToken):
            auth_service.reset_password(token, "another-password")

        auth_service.login("ada@example.org", "new-password")
        with pytest.raises(InvalidCredentials):
            auth_service.login("ada@example.org", "password123")

    def test_unknown_email_is_silent(self, auth_service, notifier):
        assert auth_service.request_password_reset("nobody@example.org") is None
        assert notifier.sent == []

    def test_token_is_stored_hashed(self, auth_service, notifier, store):
        user, _ = auth_service.register("Ada", "ada@example.org", "password123")
        auth_service.request_password_reset("ada@example.org")
        _, token = notifier.sent[-1]
        stored = store.find_by_id(user.id)
        assert stored.reset_token_hash
        assert stored.reset_token_hash != token

    def test_new_request_supersedes_old_token(self, auth_service, notifier):
        auth_service.register("Ada", "ada@example.org", "password123")
        auth_service.request_password_reset("ada@example.org")
        _, first = notifier.sent[-1]
        auth_service.request_password_reset("ada@example.org")
        _, second = notifier.sent[-1]
        with pytest.raises(InvalidResetToken):
            auth_service.reset_password(first, "new-password")
        auth_service.reset_password(second, "new-password")

    def test_expired_token(self, auth_service, notifier, clock):
        auth_service.register("Ada", "ada@example.org", "password123")
        auth_service.request_password_reset("ada@example.org")
        _, token = notifier.sent[-1]
        clock.advance(61 * 60)
        with pytest.raises(InvalidResetToken):
            auth_service.reset_password(token, "new-password")

    def test_unknown_token(self, auth_service):
        with pytest.raises(InvalidResetToken):
            auth_service.reset_password("made-up", "new-password")

    def test_empty_new_password_keeps_token(self, auth_service, notifier):
        auth_service.register("Ada", "ada@example.org", "password123")
        auth_service.request_password_reset("ada@example.org")
        _, token = notifier.sent[-1]
        with pytest.raises(ValidationError):
            auth_service.reset_password(token, "")
        auth_service.reset_password(token, "new-password")

    def test_notifier_failure_is_not_surfaced(self, store, hasher, tokens, mfa, clock, caplog):
        class FailingNotifier:
            def send(self, email, reset_token):
                raise ConnectionError("smtp down")

        service = AuthService(store, hasher, tokens, mfa, FailingNotifier(), clock)
        service.register("Ada", "ada@example.org", "password123")
        service.request_password_reset("ada@example.org")
        assert "Reset notification failed" in caplog.text

    def test_undelivered_notification_is_logged(self, store, hasher, tokens, mfa, clock, caplog):
        class DisabledNotifier:
            def __init__(self):
                self.calls = 0

            def send(self, email, reset_token):
                self.calls += 1
                return False

        notifier = DisabledNotifier()
        service = AuthService(store, hasher, tokens, mfa, notifier, clock)
        service.register("Ada", "ada@example.org", "password123")
        with caplog.at_level("WARNING"):
            assert service.request_password_reset("ada@example.org") is None
        assert notifier.calls == 1
        assert "Reset notification was not delivered" in caplog.text


class TestMfaFlows:

    def test_setup_verify_disable(self, auth_service, totp, store):
        user, _ = auth_service.register("Ada", "ada@example.org", "password123")
        setup = auth_service.mfa_setup(user.id)
        assert store.find_by_id(user.id).mfa_pending_secret == setup.secret

        enabled = auth_service.mfa_verify(user.id, totp.current_code(setup.secret))
        assert enabled.mfa_enabled
        assert store.find_by_id(user.id).mfa_secret == setup.secret

        auth_service.mfa_disable(user.id)
        stored = store.find_by_id(user.id)
        assert not stored.mfa_enabled
        assert stored.mfa_secret is None
        assert stored.mfa_pending_secret is None

    def test_failed_verify_keeps_pending(self, auth_service, totp, clock, store):
        user, _ = auth_service.register("Ada", "ada@example.org", "password123")
        setup = auth_service.mfa_setup(user.id)
        stale = totp.current_code(setup.secret, clock.now() - timedelta(minutes=10))
        with pytest.raises(InvalidMfaCode):
            auth_service.mfa_verify(user.id, stale)
        assert store.find_by_id(user.id).mfa_pending_secret == setup.secret

    def test_unknown_user(self, auth_service):
        with pytest.raises(UserNotFound):
            auth_service.mfa_setup("u_missing")

    def test_concurrent_verify_enables_once(self, auth_service, totp):
        user, _ = auth_service.register("Ada", "ada@example.org", "password123")
        setup = auth_service.mfa_setup(user.id)
        code = totp.current_code(setup.secret)
        barrier = threading.Barrier(4)
        outcomes = []

        def worker():
            barrier.wait()
            try:
                auth_service.mfa_verify(user.id, code)
                outcomes.append("ok")
            except MfaStateError:
                outcomes.append("state")

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert outcomes.count("ok") == 1
        assert outcomes.count("state") == 3


class TestSeedUser:

    def test_creates_once(self, auth_service):
        first = auth_service.ensure_seed_user("Test User", "test@bondfire.org", "password123")
        second = auth_service.ensure_seed_user("Test User", "TEST@bondfire.org", "password123")
        assert first.id == second.id

    def test_skipped_without_config(self, auth_service):
        assert auth_service.ensure_seed_user(None, None, None) is None
