"""Picodata HTTP API exceptions."""

from __future__ import annotations


class PicodataError(Exception):
    """Base exception for Picodata API errors.

    Attributes:
        message: Human-readable error message.
        endpoint: The API endpoint that was called.
    """

    def __init__(self, message: str, endpoint: str | None = None) -> None:
        """Initialize PicodataError.

        Args:
            message: Human-readable error message.
            endpoint: The API endpoint that was called.
        """
        super().__init__(message)
        self.message = message
        self.endpoint = endpoint

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message


class PicodataConnectionError(PicodataError):
    """Exception raised when the Picodata HTTP API cannot be reached.

    This includes refused connections, timeouts and DNS resolution failures.
    """

    def __init__(
        self,
        message: str = "Failed to connect to Picodata",
        endpoint: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """Initialize PicodataConnectionError.

        Args:
            message: Human-readable error message.
            endpoint: The API endpoint that was attempted.
            original_error: The original exception that caused this error.
        """
        super().__init__(message=message, endpoint=endpoint)
        self.original_error = original_error


class PicodataAPIError(PicodataError):
    """Exception raised when the API answers with a non-2xx status.

    Attributes:
        status_code: HTTP status code of the response.
        body: Raw response body text.
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        body: str = "",
        endpoint: str | None = None,
    ) -> None:
        """Initialize PicodataAPIError.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code of the response.
            body: Raw response body text.
            endpoint: The API endpoint that was called.
        """
        super().__init__(message=message, endpoint=endpoint)
        self.status_code = status_code
        self.body = body


class PicodataAuthError(PicodataAPIError):
    """Exception raised when the server rejects credentials or the token (401/403)."""

    def __init__(
        self,
        message: str = "Unauthorized",
        status_code: int = 401,
        body: str = "",
        endpoint: str | None = None,
    ) -> None:
        super().__init__(message=message, status_code=status_code, body=body, endpoint=endpoint)


class PicodataParseError(PicodataError):
    """Exception raised when a response body does not match the expected schema."""
