from typing import Any, Optional


class SessionClientError(Exception):
    pass


class StorageError(SessionClientError):
    """Persistence layer failure: quota exceeded, unwritable profile."""
    pass


class ApiError(SessionClientError):
    """Transport failure (status_code 0) or a non-2xx response."""

    def __init__(self, status_code: int, message: str, payload: Optional[Any] = None):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.payload = payload


class UnauthorizedError(ApiError):
    """401"""

    def __init__(self, message: str = "Unauthorized", payload: Optional[Any] = None):
        super().__init__(401, message, payload)


class DemoModeError(SessionClientError):
    """
    Raised to stop a mutation when the active identity is a demo account.
    Not a failure: callers swallow it and show the demo dialog instead.
    """
    pass


class ActiveAccountError(SessionClientError):
    """The requested account change would orphan the live session."""
    pass


class AccountNotFoundError(SessionClientError):
    pass
