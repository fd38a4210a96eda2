"""Domain exceptions rendered by the global error handler."""

from __future__ import annotations


class AppError(Exception):
    """Base class for expected, user-facing errors."""

    status_code = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFoundError(AppError):
    """A requested resource (exam, content item, exercise...) does not exist."""

    status_code = 404

    def __init__(self, resource: str, identifier: object | None = None) -> None:
        detail = f"{resource} not found" if identifier is None else f"{resource} {identifier} not found"
        super().__init__(detail)
        self.resource = resource
        self.identifier = identifier


class ConflictError(AppError):
    status_code = 409


class InvalidSubmissionError(AppError):
    """Submitted answers do not fit the exercise or exam."""

    status_code = 400
