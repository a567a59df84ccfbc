from __future__ import annotations


class MoviemailError(RuntimeError):
    """Base class for errors raised by moviemail."""


class SourceUnavailable(MoviemailError):
    """Raised when the catalog cannot be reached or rejects our credentials."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DirectorNotFound(SourceUnavailable):
    """Raised when the catalog has no person for the configured director id."""


class ArchiveUnavailable(MoviemailError):
    """Raised when the archive cannot be read or written."""


class DeliveryFailed(MoviemailError):
    """Raised when a notification could not be delivered."""


class MalformedRecord(MoviemailError):
    """Raised when a catalog record is missing its movie id."""


__all__ = [
    "ArchiveUnavailable",
    "DeliveryFailed",
    "DirectorNotFound",
    "MalformedRecord",
    "MoviemailError",
    "SourceUnavailable",
]
