"""Domain exceptions raised by the task, delegation and gamification services.

Services raise these before touching any row; app.main maps them onto HTTP
status codes in one place.
"""

from __future__ import annotations

ACCESS_DENIED = "Access denied."


class LanesError(Exception):
    """Base class for all domain errors."""

    status_code = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(LanesError):
    """Malformed or missing input (empty title, short password, ...)."""

    status_code = 400


class AuthenticationError(LanesError):
    """Missing, invalid or expired credentials."""

    status_code = 401


class AuthorizationError(LanesError):
    """Caller may not act on the resource.

    The message is always generic so the response does not reveal whether
    the resource exists.
    """

    status_code = 403

    def __init__(self, message: str = ACCESS_DENIED) -> None:
        super().__init__(message)


class NotFoundError(LanesError):
    status_code = 404


class StateError(LanesError):
    """Resource is in a state that forbids the operation (expired invite, ...)."""

    status_code = 409


class InviteCodeExhaustedError(StateError):
    """Every generated invite code collided with an existing one."""

    status_code = 503

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(
            f"Could not generate a unique invite code after {attempts} attempts. Please try again."
        )
