"""
Custom application-specific exceptions.
"""
from typing import Any, Dict, List, Optional


class BaseAppException(Exception):
    """Base exception for the application."""
    pass


class TriviaValidationError(BaseAppException):
    """
    Raised before any network call when an aggregate (or a single question)
    is not complete enough to be sent.

    `issues` lists what failed, one dict per problem, e.g.
    {"question_index": 2, "field": "options", "reason": "..."}.
    """

    def __init__(self, message: str, issues: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.issues = issues or []


class OperationCancelled(BaseAppException):
    """Raised when a caller cancels an operation. Not a failure."""
    pass


class RemoteAPIError(BaseAppException):
    """Base for errors reported by (or on the way to) the trivia backend."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        payload: Any = None,
    ):
        super().__init__(message)
        self.status = status
        self.payload = payload
        self.attempts = 1


class AuthError(RemoteAPIError):
    """401/403. Never retried."""
    pass


class NotFoundError(RemoteAPIError):
    """404."""
    pass


class ClientRequestError(RemoteAPIError):
    """Any other 4xx. Never retried."""
    pass


class RateLimitedError(RemoteAPIError):
    """429. Retried, honouring Retry-After when the backend sends it."""

    def __init__(self, message: str, retry_after: Optional[float] = None, payload: Any = None):
        super().__init__(message, status=429, payload=payload)
        self.retry_after = retry_after


class TransientNetworkError(RemoteAPIError):
    """5xx, connection failures and timeouts. Retried."""
    pass


_USER_MESSAGES = {
    400: "Invalid data. Check the information you entered.",
    401: "Your session is not valid. Sign in again.",
    403: "You do not have permission to perform this action.",
    404: "Resource not found.",
    409: "Conflict. The resource already exists.",
    422: "Invalid input data.",
    429: "Too many requests. Try again later.",
    500: "Internal server error. Try again later.",
    502: "Server unavailable. Try again later.",
    503: "Service temporarily unavailable.",
}


def user_message(error: BaseException) -> str:
    """Short, user-facing text for an error raised by the sync layer."""
    if isinstance(error, OperationCancelled):
        return "Operation cancelled."
    if isinstance(error, TriviaValidationError):
        return str(error)
    if isinstance(error, RemoteAPIError):
        if error.status is None:
            if isinstance(error, TransientNetworkError):
                return "Connection error. Check your internet connection."
            return str(error) or "Unknown error"
        return _USER_MESSAGES.get(error.status, str(error) or "Unknown error")
    return "Unknown error"
