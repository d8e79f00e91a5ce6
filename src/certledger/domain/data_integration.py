"""Application services: fetch events, correlate them and write the tables."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from .correlation import correlate_events
from .errors import OutputWriteError
from .events import ZERO_ADDRESS, EventKind
from .model import (
    AGREEMENT_COLUMNS,
    BATCH_COLUMNS,
    CERTIFICATE_COLUMNS,
    CLAIM_COLUMNS,
)
from .report import aggregate_values
from .settlement import reconcile_agreements

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from .correlation import CorrelationResult
    from .events import RawEvent
    from .model import TableRow
    from .ports import AgreementCache, AgreementDataAccessor, EventSource, TableWriter
    from .report import ValueReport
    from .settlement import SettlementResult

log = getLogger(__name__)

BATCHES_TABLE = "batches"
CERTIFICATES_TABLE = "certificates"
CLAIMS_TABLE = "claims"
AGREEMENTS_TABLE = "agreements"

type TableSpec = tuple[Sequence[str], list[TableRow]]


@dataclass(slots=True)
class CertificateEvents:
    redemption_sets: Sequence[RawEvent]
    batches_minted: Sequence[RawEvent]
    mints: Sequence[RawEvent]
    claims: Sequence[RawEvent]


@dataclass(slots=True)
class WriteOutcome:
    written: dict[str, str] = field(default_factory=dict["str", "str"])
    failures: dict[str, OutputWriteError] = field(default_factory=dict["str", "OutputWriteError"])


@dataclass(slots=True)
class ExportTablesResult:
    correlation: CorrelationResult
    report: ValueReport
    outcome: WriteOutcome


@dataclass(slots=True)
class ExportSettlementsResult:
    settlement: SettlementResult
    outcome: WriteOutcome


def fetch_certificate_events(source: EventSource) -> CertificateEvents:
    """Read the four certificate event families; source errors propagate."""

    events = CertificateEvents(
        mints=source.query_events(EventKind.TRANSFER_SINGLE, {"from": ZERO_ADDRESS}),
        redemption_sets=source.query_events(EventKind.REDEMPTION_SET),
        batches_minted=source.query_events(EventKind.CERTIFICATE_BATCH_MINTED),
        claims=source.query_events(EventKind.CLAIM_SINGLE),
    )
    log.info(
        "Fetched %s redemption statements, %s minted batches, %s mints, %s claims",
        len(events.redemption_sets),
        len(events.batches_minted),
        len(events.mints),
        len(events.claims),
    )
    return events


def write_tables(writer: TableWriter, tables: Mapping[str, TableSpec]) -> WriteOutcome:
    """Write each table independently; one failing table does not stop the others."""

    outcome = WriteOutcome()
    for name, (columns, rows) in tables.items():
        try:
            outcome.written[name] = writer.write_table(name, columns, rows)
        except OutputWriteError as exc:
            log.error("Error while generating %s table: %s", name, exc)
            outcome.failures[name] = exc
            continue
        log.info("%s table generated (%s rows)", name, len(rows))
    return outcome


def export_certificate_tables(*, source: EventSource, writer: TableWriter) -> ExportTablesResult:
    """Rebuild and write the Batch, Certificate and Claim tables."""

    events = fetch_certificate_events(source)
    correlation = correlate_events(
        redemption_sets=events.redemption_sets,
        batches_minted=events.batches_minted,
        mints=events.mints,
        claims=events.claims,
    )
    report = aggregate_values(correlation.certificates, correlation.claims)
    log.info("Minted value: %s, claimed value: %s", report.minted, report.claimed)

    outcome = write_tables(
        writer,
        {
            BATCHES_TABLE: (BATCH_COLUMNS, [batch.to_row() for batch in correlation.batches]),
            CERTIFICATES_TABLE: (
                CERTIFICATE_COLUMNS,
                [certificate.to_row() for certificate in correlation.certificates],
            ),
            CLAIMS_TABLE: (CLAIM_COLUMNS, [claim.to_row() for claim in correlation.claims]),
        },
    )
    return ExportTablesResult(correlation=correlation, report=report, outcome=outcome)


def export_settlement_table(
    *,
    source: EventSource,
    accessor: AgreementDataAccessor,
    cache: AgreementCache,
    writer: TableWriter,
) -> ExportSettlementsResult:
    """Reconcile agreement events and write the Agreement table."""

    settlement = reconcile_agreements(
        deployed=source.query_events(EventKind.AGREEMENT_DEPLOYED),
        signed=source.query_events(EventKind.AGREEMENT_SIGNED),
        filled=source.query_events(EventKind.AGREEMENT_FILLED),
        claimed=source.query_events(EventKind.AGREEMENT_CLAIMED),
        accessor=accessor,
        cache=cache,
    )
    outcome = write_tables(
        writer,
        {
            AGREEMENTS_TABLE: (
                AGREEMENT_COLUMNS,
                [agreement.to_row() for agreement in settlement.agreements],
            )
        },
    )
    return ExportSettlementsResult(settlement=settlement, outcome=outcome)
