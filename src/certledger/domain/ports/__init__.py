"""Domain port definitions for adapters."""

from __future__ import annotations

from .agreements import AgreementCache, AgreementDataAccessor
from .fetching import EventSource
from .output import TableWriter

__all__ = [
    "AgreementCache",
    "AgreementDataAccessor",
    "EventSource",
    "TableWriter",
]
