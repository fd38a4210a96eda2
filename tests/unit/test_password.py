"""Password hashing and strength validation."""

import pytest

from elp.auth.errors import AuthError, AuthErrorKind
from elp.auth.password import (
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)


class TestPasswordHashing:
    def test_hash_and_verify(self):
        hashed = hash_password("correct-horse")
        assert hashed.startswith("$argon2id$")
        assert verify_password("correct-horse", hashed)

    def test_wrong_password(self):
        hashed = hash_password("correct-horse")
        assert not verify_password("battery-staple", hashed)

    def test_garbage_hash_does_not_raise(self):
        assert not verify_password("anything", "not-a-hash")

    def test_same_password_different_salts(self):
        assert hash_password("secret1") != hash_password("secret1")

    def test_fresh_hash_needs_no_rehash(self):
        assert not check_needs_rehash(hash_password("secret1"))


class TestPasswordStrength:
    @pytest.mark.parametrize("password", ["", "      ", "abc", "12345"])
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(AuthError) as exc_info:
            validate_password_strength(password)
        assert exc_info.value.kind is AuthErrorKind.WEAK_PASSWORD
        assert exc_info.value.status_code == 400

    def test_minimum_length_accepted(self):
        validate_password_strength("123456")

    def test_too_long_rejected(self):
        with pytest.raises(AuthError):
            validate_password_strength("x" * 129)
