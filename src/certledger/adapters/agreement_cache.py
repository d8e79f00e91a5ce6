"""Append-only CSV cache of agreement lookups.

The file is read once when the cache is entered, then kept open in append mode
until exit; every freshly fetched agreement is appended as one row.
"""

from __future__ import annotations

import csv
from logging import getLogger
from typing import TYPE_CHECKING, Final, Self, TextIO

from certledger.config.errors import ConfigurationError
from certledger.domain.model import AgreementData
from certledger.domain.ports import AgreementCache

if TYPE_CHECKING:
    from pathlib import Path
    from types import TracebackType

log = getLogger(__name__)

CACHE_COLUMNS: Final[tuple[str, ...]] = (
    "blockId",
    "address",
    "buyer",
    "seller",
    "amount",
    "metadata",
    "valid",
)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"true", "1"}


class CsvAgreementCache:
    """Agreement cache keyed by lower-cased address, persisted to ``path``."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._entries: dict[str, AgreementData] = {}
        self._handle: TextIO | None = None
        self._writer: csv.DictWriter[str] | None = None

    def __enter__(self) -> Self:
        self._entries = self._load()
        is_new = not self.path.exists() or self.path.stat().st_size == 0
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self.path.open("a", newline="", encoding="utf-8")
        self._writer = csv.DictWriter(self._handle, fieldnames=list(CACHE_COLUMNS))
        if is_new:
            self._writer.writeheader()
        log.info("Loaded %s cached agreements from %s", len(self._entries), self.path)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
        self._handle = None
        self._writer = None

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, address: str) -> AgreementData | None:
        return self._entries.get(address.lower())

    def put(self, address: str, data: AgreementData, *, block_number: int) -> None:
        if self._writer is None or self._handle is None:
            raise RuntimeError("Agreement cache is not open")
        self._entries[address.lower()] = data
        self._writer.writerow(
            {
                "blockId": block_number,
                "address": address,
                "buyer": data.buyer,
                "seller": data.seller,
                "amount": data.amount,
                "metadata": data.metadata,
                "valid": "true" if data.valid else "false",
            }
        )
        self._handle.flush()

    def _load(self) -> dict[str, AgreementData]:
        entries: dict[str, AgreementData] = {}
        if not self.path.exists():
            return entries
        with self.path.open(newline="", encoding="utf-8") as handle:
            reader = csv.DictReader(handle)
            if reader.fieldnames is None:
                return entries
            if tuple(reader.fieldnames) != CACHE_COLUMNS:
                raise ConfigurationError(
                    f"Agreement cache {self.path} has unexpected columns: {reader.fieldnames}",
                    setting=str(self.path),
                )
            for line_number, row in enumerate(reader, start=2):
                try:
                    entries[row["address"].lower()] = AgreementData(
                        buyer=row["buyer"],
                        seller=row["seller"],
                        amount=int(row["amount"]),
                        metadata=row["metadata"],
                        valid=_parse_bool(row["valid"]),
                    )
                except (AttributeError, TypeError, ValueError):
                    log.warning("Ignoring malformed cache row %s in %s", line_number, self.path)
        return entries


if TYPE_CHECKING:
    _cache_check: AgreementCache = CsvAgreementCache(Path())
