"""Error types shared by the correlation core and its adapters."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


class SourceUnavailableError(RuntimeError):
    """Raised when the event source or the agreement accessor cannot be reached."""


class MalformedEventError(ValueError):
    """Raised when a raw event lacks an argument or carries an unusable value."""


class OutputWriteError(RuntimeError):
    """Raised when a derived table cannot be persisted to its artifact."""

    def __init__(self, message: str, *, table: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.table = table
        self.path = path
