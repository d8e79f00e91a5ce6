"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from certledger.adapters.agreement_cache import CsvAgreementCache
from certledger.adapters.jsonrpc import LedgerAgreementDataAccessor, LedgerEventSource
from certledger.adapters.tables import CsvTableWriter
from certledger.config import get_ledger_config, get_storage_config
from certledger.domain.data_integration import (
    ExportSettlementsResult,
    ExportTablesResult,
    export_certificate_tables,
    export_settlement_table,
)

if TYPE_CHECKING:
    from pathlib import Path

    from certledger.domain.ports import AgreementDataAccessor, EventSource, TableWriter

log = getLogger(__name__)


def export_ledger_tables(
    *,
    output_dir: Path | None = None,
    start_block: int | None = None,
    block_span: int | None = None,
    source: EventSource | None = None,
    writer: TableWriter | None = None,
) -> ExportTablesResult:
    """Rebuild the Batch, Certificate and Claim tables from the ledger."""

    storage = get_storage_config(output_dir=output_dir)
    effective_source = source or LedgerEventSource(
        config=get_ledger_config(start_block=start_block, block_span=block_span)
    )
    effective_writer = writer or CsvTableWriter(storage.resolve_output_dir())
    log.info("Starting certificate export into %s", storage.resolve_output_dir())

    result = export_certificate_tables(source=effective_source, writer=effective_writer)

    log.info(
        "Finished certificate export: batches=%s, certificates=%s, claims=%s, failed tables=%s",
        len(result.correlation.batches),
        len(result.correlation.certificates),
        len(result.correlation.claims),
        sorted(result.outcome.failures),
    )
    return result


def export_ledger_settlements(
    *,
    output_dir: Path | None = None,
    start_block: int | None = None,
    block_span: int | None = None,
    source: EventSource | None = None,
    accessor: AgreementDataAccessor | None = None,
    writer: TableWriter | None = None,
) -> ExportSettlementsResult:
    """Reconcile agreement events and write the Agreement table."""

    storage = get_storage_config(output_dir=output_dir)
    effective_source = source or LedgerEventSource(
        config=get_ledger_config(start_block=start_block, block_span=block_span)
    )
    effective_accessor = accessor or LedgerAgreementDataAccessor(config=get_ledger_config())
    effective_writer = writer or CsvTableWriter(storage.resolve_output_dir())

    with CsvAgreementCache(storage.agreement_cache_path()) as cache:
        result = export_settlement_table(
            source=effective_source,
            accessor=effective_accessor,
            cache=cache,
            writer=effective_writer,
        )

    log.info(
        "Finished settlement export: agreements=%s, mismatches=%s, failed tables=%s",
        len(result.settlement.agreements),
        len(result.settlement.mismatches),
        sorted(result.outcome.failures),
    )
    return result
