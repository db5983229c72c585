"""Application error taxonomy.

Services raise these instead of ``HTTPException`` so they stay usable outside
a request. ``main.py`` turns each one into a ``{"error": message}`` response
with the class's status code.
"""


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    """Missing or malformed input."""

    status_code = 400
    default_message = "Invalid input"


class ConflictError(AppError):
    """A unique field is already taken."""

    status_code = 400
    default_message = "Resource already exists"


class AuthenticationError(AppError):
    """Missing, invalid or expired token, or bad login credentials."""

    status_code = 401
    default_message = "Not authenticated"


class NotFoundError(AppError):
    """Resource is absent or belongs to another user."""

    status_code = 404
    default_message = "Not found"


class InternalError(AppError):
    """Storage, hashing or signing failure. Message is always generic."""

    status_code = 500
    default_message = "Server error"
