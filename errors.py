from typing import Any, Optional

SESSION_EXPIRED_MESSAGE = "Session expired. Please login again."
PARSE_FAILED_MESSAGE = "Request failed"
CONNECTIVITY_MESSAGE = (
    "Cannot connect to backend. Please ensure:\n"
    "1. Your backend server is running\n"
    "2. CORS is configured correctly\n"
    "3. API URL is correct in environment variables (EXPENSES_API_BASE_URL)"
)


class ApiError(Exception):
    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ConnectivityError(ApiError):
    """The backend could not be reached at all."""

    def __init__(self, message: str = CONNECTIVITY_MESSAGE) -> None:
        super().__init__(message)


class SessionExpired(ApiError):
    def __init__(self, message: str = SESSION_EXPIRED_MESSAGE) -> None:
        super().__init__(message, status_code=401)


class ParseError(ApiError):
    def __init__(
        self, message: str = PARSE_FAILED_MESSAGE, *, status_code: Optional[int] = None
    ) -> None:
        super().__init__(message, status_code=status_code)


class RequestError(ApiError):
    pass


class ValidationError(RequestError):
    """Server answered with ``success=False`` and a message of its own."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        errors: Optional[list[Any]] = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.errors = errors or []
