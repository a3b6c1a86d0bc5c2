"""
Exceptions raised by the Taskboard services.

Each class carries the HTTP status the gateway answers with; nothing below
the gateway formats a response itself.
"""
from typing import Optional


class TaskboardError(Exception):
    """Base exception class"""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(TaskboardError):
    """Missing, malformed or expired bearer token"""

    status_code = 401
    default_message = "Invalid token"


class InvalidCredentials(Unauthenticated):
    """Unknown email or wrong password; deliberately indistinguishable"""

    default_message = "Invalid credentials"


class ValidationError(TaskboardError):
    """A required field is missing or malformed"""

    status_code = 400
    default_message = "Missing fields"


class NotFoundOrForbidden(TaskboardError):
    """The object does not exist or belongs to somebody else"""

    status_code = 404

    def __init__(self, entity: str = "Resource"):
        self.entity = entity
        super().__init__(f"{entity} not found or access denied")


class Conflict(TaskboardError):
    status_code = 409
    default_message = "Resource already exists"


class DuplicateEmail(Conflict):
    default_message = "Email already in use"


class InvalidToken(Exception):
    """Raised by a token signer when a token cannot be verified."""
