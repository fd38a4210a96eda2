"""Structured authentication failures."""

from __future__ import annotations

from enum import Enum


class AuthErrorKind(str, Enum):
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    EMAIL_NOT_CONFIRMED = "EMAIL_NOT_CONFIRMED"
    RATE_LIMITED = "RATE_LIMITED"
    EMAIL_TAKEN = "EMAIL_TAKEN"
    WEAK_PASSWORD = "WEAK_PASSWORD"
    INVALID_EMAIL = "INVALID_EMAIL"
    INVALID_TOKEN = "INVALID_TOKEN"


STATUS_CODES: dict[AuthErrorKind, int] = {
    AuthErrorKind.INVALID_CREDENTIALS: 401,
    AuthErrorKind.EMAIL_NOT_CONFIRMED: 403,
    AuthErrorKind.RATE_LIMITED: 429,
    AuthErrorKind.EMAIL_TAKEN: 409,
    AuthErrorKind.WEAK_PASSWORD: 400,
    AuthErrorKind.INVALID_EMAIL: 400,
    AuthErrorKind.INVALID_TOKEN: 401,
}

DEFAULT_MESSAGES: dict[AuthErrorKind, str] = {
    AuthErrorKind.INVALID_CREDENTIALS: "Invalid email or password",
    AuthErrorKind.EMAIL_NOT_CONFIRMED: "Please confirm your email address before signing in",
    AuthErrorKind.RATE_LIMITED: "Too many failed login attempts. Try again later",
    AuthErrorKind.EMAIL_TAKEN: "An account with this email already exists",
    AuthErrorKind.WEAK_PASSWORD: "Password is too weak",
    AuthErrorKind.INVALID_EMAIL: "Invalid email address",
    AuthErrorKind.INVALID_TOKEN: "Invalid or expired token",
}


class AuthError(Exception):
    """Authentication failure with a machine-readable kind."""

    def __init__(self, kind: AuthErrorKind, message: str | None = None) -> None:
        self.kind = kind
        self.message = message or DEFAULT_MESSAGES[kind]
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.kind]
