"""Reusable builders and fakes for ledger event tests."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from eth_abi import encode as abi_encode

from certledger.domain.errors import OutputWriteError
from certledger.domain.events import ZERO_ADDRESS, EventKind, RawEvent
from certledger.domain.model import AgreementData
from certledger.domain.ports import AgreementCache, AgreementDataAccessor, EventSource, TableWriter

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from certledger.domain.events import EventFilter
    from certledger.domain.model import TableRow

OPERATOR = "0x00000000000000000000000000000000000000A1"
OWNER = "0x00000000000000000000000000000000000000B2"
ISSUER = "0x00000000000000000000000000000000000000C3"

V3_FIELDS = (
    "Example Beneficiary",
    "Central Region",
    "DE",
    "2024-01-01",
    "2024-01-31",
    "Green supply",
    "consumer-42",
    "proof-9",
)
V1_FIELDS = (
    "Legacy Beneficiary",
    "Berlin",
    "DE",
    "2020-01-01",
    "2020-12-31",
    "Legacy purpose",
)
V2_RECORD = {
    "beneficiary": "Json Beneficiary",
    "location": "Vienna",
    "countryCode": "AT",
    "periodStartDate": "2022-05-01",
    "periodEndDate": "2022-05-31",
    "purpose": "Json purpose",
}


def encode_v3_claim(fields: Sequence[str] = V3_FIELDS) -> bytes:
    return abi_encode(["string"] * 8, list(fields))


def encode_v1_claim(fields: Sequence[str] = V1_FIELDS) -> bytes:
    return abi_encode(["string"] * 6, list(fields))


def encode_v2_claim(record: Mapping[str, object] | None = None) -> bytes:
    inner = json.dumps(dict(record if record is not None else V2_RECORD))
    return abi_encode(["string"], [inner])


def make_redemption_set(
    batch_id: str = "B1",
    *,
    block_number: int = 1,
    transaction_hash: str = "0xredemption",
    redemption_statement: str = "statement",
    storage_pointer: str = "ipfs://statement",
) -> RawEvent:
    return RawEvent(
        kind=EventKind.REDEMPTION_SET,
        args={
            "batchId": batch_id,
            "redemptionStatement": redemption_statement,
            "storagePointer": storage_pointer,
        },
        block_number=block_number,
        transaction_hash=transaction_hash,
    )


def make_batch_minted(
    batch_id: str = "B1",
    certificate_ids: Sequence[object] = ("7",),
    *,
    block_number: int = 2,
    transaction_hash: str = "0xbatchminted",
) -> RawEvent:
    return RawEvent(
        kind=EventKind.CERTIFICATE_BATCH_MINTED,
        args={"batchId": batch_id, "certificateIds": list(certificate_ids)},
        block_number=block_number,
        transaction_hash=transaction_hash,
    )


def make_mint(
    token_id: object = 7,
    value: object = "1000",
    *,
    to: str = OWNER,
    block_number: int = 3,
    transaction_hash: str = "0xmint",
) -> RawEvent:
    return RawEvent(
        kind=EventKind.TRANSFER_SINGLE,
        args={
            "operator": OPERATOR,
            "from": ZERO_ADDRESS,
            "to": to,
            "id": token_id,
            "value": value,
        },
        block_number=block_number,
        transaction_hash=transaction_hash,
    )


def make_claim(
    token_id: object = 7,
    value: object = "400",
    *,
    claim_data: bytes | str | None = None,
    topic: object = 1,
    block_number: int = 4,
    transaction_hash: str = "0xclaim",
) -> RawEvent:
    return RawEvent(
        kind=EventKind.CLAIM_SINGLE,
        args={
            "claimIssuer": ISSUER,
            "claimSubject": OWNER,
            "topic": topic,
            "id": token_id,
            "value": value,
            "claimData": claim_data if claim_data is not None else encode_v3_claim(),
        },
        block_number=block_number,
        transaction_hash=transaction_hash,
    )


def make_agreement_event(
    kind: EventKind,
    agreement: str,
    amount: int | None = None,
    *,
    block_number: int = 10,
    transaction_hash: str | None = None,
) -> RawEvent:
    args: dict[str, object] = {"agreement": agreement}
    if amount is not None:
        args["amount"] = amount
    return RawEvent(
        kind=kind,
        args=args,
        block_number=block_number,
        transaction_hash=transaction_hash or f"0x{kind.value.lower()}-{block_number}",
    )


def make_agreement_data(*, valid: bool = True, amount: int = 500) -> AgreementData:
    return AgreementData(
        buyer="0x00000000000000000000000000000000000000D4",
        seller="0x00000000000000000000000000000000000000E5",
        amount=amount,
        metadata="ppa-2024",
        valid=valid,
    )


class FakeEventSource(EventSource):
    """In-memory event source keyed by event kind."""

    def __init__(self, events: Mapping[EventKind, Iterable[RawEvent]] | None = None) -> None:
        self.events = {kind: list(items) for kind, items in (events or {}).items()}
        self.queries: list[tuple[EventKind, EventFilter | None]] = []

    def query_events(
        self,
        kind: EventKind,
        event_filter: EventFilter | None = None,
    ) -> list[RawEvent]:
        self.queries.append((kind, event_filter))
        return list(self.events.get(kind, []))


class FakeAgreementAccessor(AgreementDataAccessor):
    def __init__(self, data: Mapping[str, AgreementData]) -> None:
        self.data = {address.lower(): value for address, value in data.items()}
        self.calls: list[str] = []

    def get_agreement_data(self, address: str) -> AgreementData:
        self.calls.append(address)
        return self.data[address.lower()]


class FakeAgreementCache(AgreementCache):
    def __init__(self, entries: Mapping[str, AgreementData] | None = None) -> None:
        self.entries = {address.lower(): value for address, value in (entries or {}).items()}
        self.puts: list[tuple[str, AgreementData, int]] = []

    def get(self, address: str) -> AgreementData | None:
        return self.entries.get(address.lower())

    def put(self, address: str, data: AgreementData, *, block_number: int) -> None:
        self.entries[address.lower()] = data
        self.puts.append((address, data, block_number))


class FakeTableWriter(TableWriter):
    """Collects written tables; names listed in ``failing`` raise ``OutputWriteError``."""

    def __init__(self, failing: Iterable[str] = ()) -> None:
        self.failing = set(failing)
        self.tables: dict[str, tuple[tuple[str, ...], list[TableRow]]] = {}

    def write_table(
        self,
        name: str,
        columns: Sequence[str],
        rows: Iterable[TableRow],
    ) -> str:
        if name in self.failing:
            raise OutputWriteError(f"disk full while writing {name}", table=name)
        self.tables[name] = (tuple(columns), list(rows))
        return f"memory://{name}"
