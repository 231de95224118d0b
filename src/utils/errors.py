"""
Error taxonomy shared by the request layer, the TMDB services and the
collaboration service.
"""


class CollabError(Exception):
    """Base exception for collaboration lookups."""


class NotFoundError(CollabError):
    """Raised when a name does not resolve to a TMDB person."""

    def __init__(self, names: list[str] | None = None):
        self.names = names or []
        detail = ", ".join(self.names) if self.names else "unknown"
        super().__init__(f"Could not find one or both participants: {detail}")


class NetworkError(CollabError):
    """Raised on a non-recoverable HTTP status or transport failure."""

    def __init__(self, status: int | None, key: str, message: str | None = None):
        self.status = status
        self.key = key
        if message is None:
            message = f"HTTP {status} for {key}" if status is not None else f"Transport error for {key}"
        super().__init__(message)


class SearchCancelledError(CollabError):
    """Raised when the caller's cancellation token has been signalled."""


class StorageError(CollabError):
    """Raised by the persistent cache tier. Never escapes the request layer."""
