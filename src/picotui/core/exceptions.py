"""Local (non-network) picotui errors."""

from __future__ import annotations


class PicotuiError(Exception):
    """Base exception for local picotui errors."""

    def __init__(self, message: str, details: str | None = None) -> None:
        """Initialize exception.

        Args:
            message: Error message.
            details: Additional details.
        """
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ConfigError(PicotuiError):
    """Raised when configuration is invalid."""


class TokenStoreError(PicotuiError):
    """Raised when the token file cannot be read or written."""
