"""
Exception classes for mstodo-sync.
"""

from typing import Optional


class MSToDoSyncError(Exception):
    """Base exception for all mstodo-sync errors."""
    pass


class ConfigurationError(MSToDoSyncError):
    """Raised when configuration is invalid or missing."""
    pass


class VaultNotFoundError(MSToDoSyncError):
    """Raised when the configured vault directory does not exist."""
    pass


class DocumentError(MSToDoSyncError):
    """Raised when a vault document cannot be read or written."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path


class GraphAPIError(MSToDoSyncError):
    """Raised when a Microsoft Graph request fails."""

    def __init__(self, status: int, body: str = "", endpoint: Optional[str] = None):
        detail = f" ({endpoint})" if endpoint else ""
        super().__init__(f"Graph API error {status}{detail}: {body}")
        self.status = status
        self.body = body
        self.endpoint = endpoint


class AuthenticationError(GraphAPIError):
    """Raised when no usable access token is available or Graph rejects it."""

    def __init__(self, message: str, status: int = 401, body: str = ""):
        super().__init__(status, body or message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class TaskNotFoundError(MSToDoSyncError):
    """Raised when no remote list owns a task, or no list exists at all."""
    pass


class SyncError(MSToDoSyncError):
    """Raised when a sync pass cannot complete."""
    pass
