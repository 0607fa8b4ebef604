"""
Forum error taxonomy.

Services raise these; app.main renders them as {"error": message}.
"""


class ForumError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ForumError):
    """Category, thread, post or user does not exist."""

    status_code = 404


class ValidationError(ForumError):
    """Payload is well-formed but semantically invalid."""

    status_code = 400


class UnauthorizedError(ForumError):
    """Mutating call without an authenticated session."""

    status_code = 401


class ThreadLockedError(ForumError):
    """Thread no longer accepts replies."""

    status_code = 403
