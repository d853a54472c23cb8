"""Custom exception hierarchy for pyconsent."""

from __future__ import annotations


class ConsentError(Exception):
    """Base exception for all pyconsent errors."""


class ConsentConfigError(ConsentError):
    """Invalid or missing configuration."""


class ConsentTransportError(ConsentError):
    """Destination catalog fetch failure (network, non-200, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        write_key: str = "",
    ) -> None:
        self.status_code = status_code
        self.write_key = write_key
        super().__init__(message)


class ConsentStoreError(ConsentError):
    """A persisted preference record could not be read or written."""


class ConsentInitializationError(ConsentError):
    """The initialization protocol failed.

    The original failure (fetch, predicate, store or activation) is
    chained as ``__cause__``.
    """


class ConsentNotReadyError(ConsentError):
    """A mutation was attempted before initialization completed or after close."""
