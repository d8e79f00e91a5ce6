"""CSV output for the derived tables."""

from __future__ import annotations

import csv
import json
from logging import getLogger
from typing import TYPE_CHECKING

from certledger.domain.errors import OutputWriteError
from certledger.domain.ports import TableWriter

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from pathlib import Path

    from certledger.domain.model import TableRow

log = getLogger(__name__)


def format_cell(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return json.dumps(list(value))
    return str(value)


class CsvTableWriter:
    """Writes each table to ``<output_dir>/<name>.csv`` with a header row."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = output_dir

    def write_table(
        self,
        name: str,
        columns: Sequence[str],
        rows: Iterable[TableRow],
    ) -> str:
        path = self.output_dir / f"{name}.csv"
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            with path.open("w", newline="", encoding="utf-8") as handle:
                writer = csv.DictWriter(handle, fieldnames=list(columns), extrasaction="ignore")
                writer.writeheader()
                for row in rows:
                    writer.writerow({column: format_cell(row.get(column)) for column in columns})
        except OSError as exc:
            raise OutputWriteError(f"Cannot write {path}: {exc}", table=name, path=path) from exc
        log.debug("Wrote %s", path)
        return str(path)


if TYPE_CHECKING:
    _writer_check: TableWriter = CsvTableWriter(Path())
