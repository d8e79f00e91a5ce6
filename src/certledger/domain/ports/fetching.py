"""Ports for fetching ledger events."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from certledger.domain.events import EventFilter, EventKind, RawEvent


@runtime_checkable
class EventSource(Protocol):
    """Returns the events of one kind in arrival order.

    Implementations raise ``SourceUnavailableError`` when the ledger cannot be
    read; retries are their own concern.
    """

    def query_events(
        self,
        kind: EventKind,
        event_filter: EventFilter | None = None,
    ) -> Sequence[RawEvent]: ...


__all__ = ["EventSource"]
