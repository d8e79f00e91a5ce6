from __future__ import annotations

import logging

import pytest

from certledger.domain.data_integration import (
    AGREEMENTS_TABLE,
    BATCHES_TABLE,
    CERTIFICATES_TABLE,
    CLAIMS_TABLE,
    export_certificate_tables,
    export_settlement_table,
    fetch_certificate_events,
)
from certledger.domain.errors import SourceUnavailableError
from certledger.domain.events import ZERO_ADDRESS, EventFilter, EventKind, RawEvent
from certledger.domain.model import (
    AGREEMENT_COLUMNS,
    BATCH_COLUMNS,
    CERTIFICATE_COLUMNS,
    CLAIM_COLUMNS,
)
from tests.helpers.events import (
    FakeAgreementAccessor,
    FakeAgreementCache,
    FakeEventSource,
    FakeTableWriter,
    make_agreement_data,
    make_agreement_event,
    make_batch_minted,
    make_claim,
    make_mint,
    make_redemption_set,
)


def _certificate_source() -> FakeEventSource:
    return FakeEventSource(
        {
            EventKind.REDEMPTION_SET: [make_redemption_set("B1")],
            EventKind.CERTIFICATE_BATCH_MINTED: [make_batch_minted("B1", ["7"])],
            EventKind.TRANSFER_SINGLE: [make_mint(7, "1000")],
            EventKind.CLAIM_SINGLE: [make_claim(7, "400")],
        }
    )


def test_fetch_certificate_events_restricts_transfers_to_mints() -> None:
    source = _certificate_source()

    events = fetch_certificate_events(source)

    assert (EventKind.TRANSFER_SINGLE, {"from": ZERO_ADDRESS}) in source.queries
    assert len(events.redemption_sets) == 1
    assert len(events.batches_minted) == 1
    assert len(events.mints) == 1
    assert len(events.claims) == 1


def test_export_certificate_tables_writes_three_tables() -> None:
    writer = FakeTableWriter()

    result = export_certificate_tables(source=_certificate_source(), writer=writer)

    assert set(writer.tables) == {BATCHES_TABLE, CERTIFICATES_TABLE, CLAIMS_TABLE}
    assert writer.tables[BATCHES_TABLE][0] == BATCH_COLUMNS
    assert writer.tables[CERTIFICATES_TABLE][0] == CERTIFICATE_COLUMNS
    assert writer.tables[CLAIMS_TABLE][0] == CLAIM_COLUMNS

    (batch_row,) = writer.tables[BATCHES_TABLE][1]
    (certificate_row,) = writer.tables[CERTIFICATES_TABLE][1]
    assert batch_row["certificateIds"] == [certificate_row["id"]]
    assert certificate_row["value"] == "1000"

    assert result.report.minted == 1000
    assert result.report.claimed == 400
    assert result.outcome.failures == {}
    assert result.outcome.written[CLAIMS_TABLE] == "memory://claims"


def test_failed_table_does_not_stop_the_others(caplog: pytest.LogCaptureFixture) -> None:
    writer = FakeTableWriter(failing=[CERTIFICATES_TABLE])

    with caplog.at_level(logging.ERROR, logger="certledger.domain.data_integration"):
        result = export_certificate_tables(source=_certificate_source(), writer=writer)

    assert set(writer.tables) == {BATCHES_TABLE, CLAIMS_TABLE}
    assert set(result.outcome.failures) == {CERTIFICATES_TABLE}
    assert result.outcome.failures[CERTIFICATES_TABLE].table == CERTIFICATES_TABLE
    assert "Error while generating certificates table" in caplog.text


def test_source_failure_propagates() -> None:
    class UnavailableSource(FakeEventSource):
        def query_events(
            self,
            kind: EventKind,
            event_filter: EventFilter | None = None,
        ) -> list[RawEvent]:
            raise SourceUnavailableError("rpc down")

    writer = FakeTableWriter()

    with pytest.raises(SourceUnavailableError, match="rpc down"):
        export_certificate_tables(source=UnavailableSource(), writer=writer)

    assert writer.tables == {}


def test_export_settlement_table_writes_agreements() -> None:
    address = "0x00000000000000000000000000000000000000Aa"
    source = FakeEventSource(
        {
            EventKind.AGREEMENT_DEPLOYED: [
                make_agreement_event(EventKind.AGREEMENT_DEPLOYED, address, block_number=5)
            ],
            EventKind.AGREEMENT_SIGNED: [
                make_agreement_event(EventKind.AGREEMENT_SIGNED, address, 10, block_number=6)
            ],
            EventKind.AGREEMENT_FILLED: [
                make_agreement_event(EventKind.AGREEMENT_FILLED, address, 8, block_number=7)
            ],
        }
    )
    writer = FakeTableWriter()
    cache = FakeAgreementCache()

    result = export_settlement_table(
        source=source,
        accessor=FakeAgreementAccessor({address: make_agreement_data()}),
        cache=cache,
        writer=writer,
    )

    columns, rows = writer.tables[AGREEMENTS_TABLE]
    assert columns == AGREEMENT_COLUMNS
    assert [row["agreementAddress"] for row in rows] == [address]
    assert len(result.settlement.mismatches) == 1
    assert cache.puts[0][2] == 5
