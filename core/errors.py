"""
Error taxonomy shared by repositories, auth and the HTTP layer.

Each error carries the HTTP status it maps to and a message that is safe
to show to the client.  ``api.errors`` turns them into ``{"error": ...}``
responses.
"""

from __future__ import annotations


class AppError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(AppError):
    status_code = 400
    default_message = "Invalid input"


class Unauthorized(AppError):
    status_code = 401
    default_message = "Unauthorized"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class Conflict(AppError):
    status_code = 409
    default_message = "Conflict"


class Internal(AppError):
    status_code = 500
    default_message = "Internal server error"
