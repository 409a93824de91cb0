"""Typed failures raised by the service layer.

Routers never build error responses themselves; the handlers registered in
``main.py`` turn these into RFC 7807 problem documents.
"""

from __future__ import annotations


class SignalBoardError(Exception):
    """Base class for all service-level failures."""

    status_code: int = 500
    title: str = "Error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.title)
        self.detail = detail or self.title


class ValidationError(SignalBoardError):
    """Malformed or missing input. Surfaced verbatim."""

    status_code = 400
    title = "Invalid request"


class PolicyViolation(SignalBoardError):
    """Content failed screening. Nothing was persisted."""

    status_code = 422
    title = "Content policy violation"

    def __init__(self, reasons: list[str]) -> None:
        super().__init__("Content did not pass screening")
        self.reasons = list(reasons)


class StateConflict(SignalBoardError):
    """The action does not apply to the entity's current state."""

    status_code = 409
    title = "Action not applicable"


class AuthorizationError(SignalBoardError):
    """Caller lacks the role or verification status. Never says which."""

    status_code = 403
    title = "Forbidden"

    def __init__(self, detail: str | None = None) -> None:
        # The detail is kept for logs only; responses always use the title.
        super().__init__(detail)


class NotFoundError(SignalBoardError):
    status_code = 404
    title = "Not found"


class StorageError(SignalBoardError):
    """Datastore failure. Not locally recoverable."""

    status_code = 503
    title = "Service temporarily unavailable"
