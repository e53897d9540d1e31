"""Error taxonomy for the apply pipeline."""
from __future__ import annotations


class ApplyHawkError(Exception):
    """Base class for every error raised by applyhawk."""


class ApiError(ApplyHawkError):
    """Non-2xx or transport failure from the AI provider or a job site.

    ``status`` is the HTTP status when one was received, ``None`` for
    transport-level failures.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"{self.message} (HTTP {self.status})"


class EmptyResponseError(ApiError):
    """2xx from the provider but no usable message body."""


class ParseError(ApplyHawkError):
    """Model output could not be coerced into the expected JSON shape."""

    def __init__(self, message: str, content: str = "") -> None:
        super().__init__(message)
        self.content = content


class ValidationError(ApplyHawkError):
    """Input rejected before any network call was made."""


class PromptNotFoundError(ApplyHawkError):
    pass


class SessionStateError(ApplyHawkError):
    """Operation not allowed in the session's current state."""


class SessionBusyError(SessionStateError):
    pass
