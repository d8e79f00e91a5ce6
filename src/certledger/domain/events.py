"""Raw ledger events and their typed views.

Adapters hand over :class:`RawEvent` instances whose ``args`` mapping holds the
decoded event arguments as plain Python values (ints, hex strings, tuples).
The parsers below validate one event kind each and raise
:class:`MalformedEventError` when an argument is missing or unusable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from .errors import MalformedEventError

if TYPE_CHECKING:
    from collections.abc import Mapping

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

type EventFilter = Mapping[str, object]


class EventKind(StrEnum):
    REDEMPTION_SET = "RedemptionStatementSet"
    CERTIFICATE_BATCH_MINTED = "CertificateBatchMinted"
    TRANSFER_SINGLE = "TransferSingle"
    CLAIM_SINGLE = "ClaimSingle"
    AGREEMENT_DEPLOYED = "AgreementDeployed"
    AGREEMENT_SIGNED = "AgreementSigned"
    AGREEMENT_FILLED = "AgreementFilled"
    AGREEMENT_CLAIMED = "AgreementClaimed"


@dataclass(slots=True, frozen=True, kw_only=True)
class RawEvent:
    """One decoded log record as delivered by an event source."""

    kind: EventKind
    args: Mapping[str, object] = field(default_factory=dict["str", "object"])
    block_number: int
    transaction_hash: str
    log_index: int = 0


def parse_uint(value: object) -> int:
    """Return ``value`` as a non-negative integer.

    Accepts ints, decimal strings (leading zeros allowed) and ``0x`` hex strings,
    so ids that differ only in their textual encoding compare equal.
    """

    if isinstance(value, bool):
        raise MalformedEventError(f"Expected an unsigned integer, got {value!r}")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            parsed = int(text, 16) if text.lower().startswith("0x") else int(text, 10)
        except ValueError as exc:
            raise MalformedEventError(f"Expected an unsigned integer, got {value!r}") from exc
    else:
        raise MalformedEventError(f"Expected an unsigned integer, got {value!r}")
    if parsed < 0:
        raise MalformedEventError(f"Expected an unsigned integer, got {value!r}")
    return parsed


def _arg(event: RawEvent, name: str) -> object:
    try:
        return event.args[name]
    except KeyError:
        raise MalformedEventError(
            f"{event.kind} event in {event.transaction_hash} has no {name!r} argument"
        ) from None


def _text_arg(event: RawEvent, name: str) -> str:
    value = _arg(event, name)
    if not isinstance(value, str):
        raise MalformedEventError(
            f"{event.kind} event in {event.transaction_hash}: {name!r} must be text"
        )
    return value


def _uint_arg(event: RawEvent, name: str) -> int:
    return parse_uint(_arg(event, name))


@dataclass(slots=True, frozen=True, kw_only=True)
class RedemptionSetEvent:
    batch_id: str
    redemption_statement: str
    storage_pointer: str
    block_number: int
    transaction_hash: str


@dataclass(slots=True, frozen=True, kw_only=True)
class BatchMintedEvent:
    batch_id: str
    certificate_ids: tuple[int, ...]
    block_number: int
    transaction_hash: str


@dataclass(slots=True, frozen=True, kw_only=True)
class MintEvent:
    token_id: int
    value: int
    operator: str
    from_address: str
    to: str
    block_number: int
    transaction_hash: str


@dataclass(slots=True, frozen=True, kw_only=True)
class ClaimSingleEvent:
    claim_issuer: str
    claim_subject: str
    topic: int
    token_id: int
    value: int
    claim_data: bytes | str
    block_number: int
    transaction_hash: str


@dataclass(slots=True, frozen=True, kw_only=True)
class AgreementEvent:
    """Agreement lifecycle event; ``amount`` is ``None`` for deployments."""

    kind: EventKind
    agreement: str
    amount: int | None
    block_number: int
    transaction_hash: str


def parse_redemption_set(event: RawEvent) -> RedemptionSetEvent:
    return RedemptionSetEvent(
        batch_id=_text_arg(event, "batchId"),
        redemption_statement=_text_arg(event, "redemptionStatement"),
        storage_pointer=_text_arg(event, "storagePointer"),
        block_number=event.block_number,
        transaction_hash=event.transaction_hash,
    )


def parse_batch_minted(event: RawEvent) -> BatchMintedEvent:
    raw_ids = _arg(event, "certificateIds")
    if isinstance(raw_ids, (str, bytes)) or not isinstance(raw_ids, (list, tuple)):
        raise MalformedEventError(
            f"{event.kind} event in {event.transaction_hash}: certificateIds must be a sequence"
        )
    return BatchMintedEvent(
        batch_id=_text_arg(event, "batchId"),
        certificate_ids=tuple(parse_uint(value) for value in raw_ids),
        block_number=event.block_number,
        transaction_hash=event.transaction_hash,
    )


def parse_mint(event: RawEvent) -> MintEvent:
    return MintEvent(
        token_id=_uint_arg(event, "id"),
        value=_uint_arg(event, "value"),
        operator=_text_arg(event, "operator"),
        from_address=_text_arg(event, "from"),
        to=_text_arg(event, "to"),
        block_number=event.block_number,
        transaction_hash=event.transaction_hash,
    )


def parse_claim_single(event: RawEvent) -> ClaimSingleEvent:
    claim_data = _arg(event, "claimData")
    if not isinstance(claim_data, (bytes, str)):
        raise MalformedEventError(
            f"{event.kind} event in {event.transaction_hash}: claimData must be bytes or hex"
        )
    return ClaimSingleEvent(
        claim_issuer=_text_arg(event, "claimIssuer"),
        claim_subject=_text_arg(event, "claimSubject"),
        topic=_uint_arg(event, "topic"),
        token_id=_uint_arg(event, "id"),
        value=_uint_arg(event, "value"),
        claim_data=claim_data,
        block_number=event.block_number,
        transaction_hash=event.transaction_hash,
    )


def parse_agreement_event(event: RawEvent) -> AgreementEvent:
    amount = None if event.kind is EventKind.AGREEMENT_DEPLOYED else _uint_arg(event, "amount")
    return AgreementEvent(
        kind=event.kind,
        agreement=_text_arg(event, "agreement"),
        amount=amount,
        block_number=event.block_number,
        transaction_hash=event.transaction_hash,
    )
