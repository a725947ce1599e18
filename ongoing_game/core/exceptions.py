"""Error taxonomy for the ongoing-game engine.

Three outcomes matter to the loaders: a task was aborted (cooperative
cancellation, not a failure), the target does not exist (benign absence), or
anything else (logged as a warning and treated as a failed load).
"""

from typing import Optional, Dict, Any


class OngoingGameError(Exception):
    """Base exception for the engine."""

    pass


class TaskAbortedError(OngoingGameError):
    """A queued or running task was bound to a cancelled token."""

    def __init__(self, message: str = "Task aborted", reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason


class ClientAPIError(OngoingGameError):
    """Base exception for backend API errors with status code tracking."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[Dict[str, Any]] = None,
        retry_after: Optional[float] = None,
    ) -> None:
        """
        Initialize ClientAPIError.

        Args:
            message: Error message
            status_code: HTTP status code (400, 401, 403, 404, 429, 503, etc.)
            response_data: Raw response data from API
            retry_after: Seconds to wait before retry (for 429 errors)
        """
        super().__init__(message)
        self.status_code: Optional[int] = status_code
        self.response_data: Dict[str, Any] = response_data or {}
        self.retry_after: Optional[float] = retry_after
        self.message: str = message

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.status_code == 429 and self.retry_after:
            return f"Rate Limit Error {self.status_code}: {self.message} (Retry after: {self.retry_after}s)"
        if self.status_code:
            return f"API Error {self.status_code}: {self.message}"
        return f"API Error: {self.message}"


class BadRequestError(ClientAPIError):
    """Bad request (400) - invalid parameters."""

    pass


class AuthenticationError(ClientAPIError):
    """Authentication error (401) - client password or remote token rejected."""

    pass


class ForbiddenError(ClientAPIError):
    """Forbidden error (403) - insufficient permissions."""

    pass


class NotFoundError(ClientAPIError):
    """Not found error (404) - resource doesn't exist."""

    pass


class RateLimitError(ClientAPIError):
    """Rate limit error (429)."""

    pass


class ServiceUnavailableError(ClientAPIError):
    """Service unavailable (5xx) - backend down or still starting."""

    pass


def is_not_found(error: BaseException) -> bool:
    """Check whether an error means "no data" rather than a failure."""
    if isinstance(error, NotFoundError):
        return True
    return isinstance(error, ClientAPIError) and error.status_code == 404
