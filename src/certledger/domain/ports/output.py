"""Ports for persisting derived tables."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from certledger.domain.model import TableRow


@runtime_checkable
class TableWriter(Protocol):
    """Writes one named table; raises ``OutputWriteError`` on failure."""

    def write_table(
        self,
        name: str,
        columns: Sequence[str],
        rows: Iterable[TableRow],
    ) -> str: ...


__all__ = ["TableWriter"]
