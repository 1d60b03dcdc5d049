"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class SeedkeeperError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(SeedkeeperError):
    """Raised when the remote URL or credentials are missing or invalid."""


class AuthenticationError(SeedkeeperError):
    """Raised when the download client rejects the configured credentials."""


class SessionExpiredError(SeedkeeperError):
    """Raised when the remote rejects a call because the session is no longer valid."""


class RemoteUnavailableError(SeedkeeperError):
    """Raised on connection failures and timeouts talking to the download client."""


class RemoteRequestError(SeedkeeperError):
    """Raised when the download client answers with an unexpected HTTP status."""

    def __init__(self, status: int, message: str = ""):
        self.status = status
        super().__init__(message or f"Download client returned HTTP {status}.")
