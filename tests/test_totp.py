"""Unit tests for the TOTP engine."""

import base64
from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import pyotp

from bondfire_auth.services.totp import TotpEngine


class TestSecretGeneration:

    def test_secret_has_160_bits(self, totp):
        setup = totp.generate_secret("ada@example.org")
        assert len(base64.b32decode(setup.secret)) * 8 >= 160

    def test_secrets_are_random(self, totp):
        assert totp.generate_secret("a@b.c").secret != totp.generate_secret("a@b.c").secret

    def test_provisioning_uri_embeds_issuer_and_label(self, totp):
        setup = totp.generate_secret("ada@example.org")
        parsed = urlparse(setup.provisioning_uri)
        assert parsed.scheme == "otpauth"
        assert parsed.netloc == "totp"
        assert "ada%40example.org" in parsed.path or "ada@example.org" in parsed.path
        query = parse_qs(parsed.query)
        assert query["secret"] == [setup.secret]
        assert query["issuer"] == ["Bondfire"]


class TestVerification:

    def test_current_code_matches_pyotp(self, totp, clock):
        secret = pyotp.random_base32()
        assert totp.current_code(secret) == pyotp.TOTP(secret).at(clock.now())

    def test_current_code_verifies(self, totp):
        secret = pyotp.random_base32()
        assert totp.verify_code(secret, totp.current_code(secret))

    def test_adjacent_steps_accepted(self, totp, clock):
        secret = pyotp.random_base32()
        previous = totp.current_code(secret, clock.now() - timedelta(seconds=30))
        following = totp.current_code(secret, clock.now() + timedelta(seconds=30))
        assert totp.verify_code(secret, previous)
        assert totp.verify_code(secret, following)

    def test_code_outside_window_rejected(self, totp, clock):
        secret = pyotp.random_base32()
        stale = totp.current_code(secret, clock.now() - timedelta(seconds=300))
        assert not totp.verify_code(secret, stale)

    def test_zero_window_only_accepts_current_step(self, clock):
        engine = TotpEngine(clock, window_steps=0)
        secret = pyotp.random_base32()
        previous = engine.current_code(secret, clock.now() - timedelta(seconds=30))
        assert engine.verify_code(secret, engine.current_code(secret))
        assert not engine.verify_code(secret, previous)

    def test_matching_step_reports_offset(self, totp, clock):
        secret = pyotp.random_base32()
        current = totp.matching_step(secret, totp.current_code(secret))
        previous = totp.matching_step(
            secret, totp.current_code(secret, clock.now() - timedelta(seconds=30))
        )
        assert current == previous + 1

    def test_malformed_codes_rejected(self, totp):
        secret = pyotp.random_base32()
        for code in ["", "12345", "1234567", "abcdef", None]:
            assert not totp.verify_code(secret, code)

    def test_whitespace_is_ignored(self, totp):
        secret = pyotp.random_base32()
        assert totp.verify_code(secret, f" {totp.current_code(secret)} ")

    def test_follows_injected_clock(self, totp, clock):
        secret = pyotp.random_base32()
        code = totp.current_code(secret)
        clock.advance(600)
        assert not totp.verify_code(secret, code)
