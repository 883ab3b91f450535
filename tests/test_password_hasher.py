"""Unit tests for bcrypt password hashing."""

import pytest

from bondfire_auth.domain.errors import ValidationError
from bondfire_auth.services.password_hasher import PasswordHasher


class TestPasswordHasher:

    def test_hash_is_not_plaintext(self, hasher):
        hashed = hasher.hash("password123")
        assert hashed != "password123"
        assert hashed.startswith("$2")

    def test_verify_correct_password(self, hasher):
        hashed = hasher.hash("correct horse")
        assert hasher.verify("correct horse", hashed)

    def test_verify_wrong_password(self, hasher):
        hashed = hasher.hash("correct horse")
        assert not hasher.verify("battery staple", hashed)

    def test_same_password_different_hashes(self, hasher):
        """Random salt: equal inputs never hash the same."""
        assert hasher.hash("same") != hasher.hash("same")

    def test_cost_factor_is_embedded(self):
        hashed = PasswordHasher(rounds=5).hash("pw")
        assert hashed.split("$")[2] == "05"

    def test_invalid_rounds_rejected(self):
        with pytest.raises(ValueError):
            PasswordHasher(rounds=3)

    def test_overlong_password_rejected(self, hasher):
        with pytest.raises(ValidationError):
            hasher.hash("x" * 73)

    def test_overlong_password_never_verifies(self, hasher):
        hashed = hasher.hash("x" * 72)
        assert not hasher.verify("x" * 73, hashed)

    def test_malformed_hash_does_not_verify(self, hasher):
        assert not hasher.verify("pw", "not-a-bcrypt-hash")
