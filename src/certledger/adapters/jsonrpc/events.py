"""ABI definitions of the ledger events and their log codec."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_abi.exceptions import DecodingError
from eth_utils import encode_hex, event_signature_to_log_topic, to_checksum_address
from hexbytes import HexBytes

from certledger.domain.errors import MalformedEventError
from certledger.domain.events import EventKind, RawEvent

if TYPE_CHECKING:
    from certledger.domain.events import EventFilter

    from .schema import LogEntry


class ContractRole(StrEnum):
    REGISTRY = "registry"
    BATCH_FACTORY = "batch_factory"
    AGREEMENT_FACTORY = "agreement_factory"


@dataclass(slots=True, frozen=True)
class EventParam:
    name: str
    abi_type: str
    indexed: bool = False


@dataclass(slots=True, frozen=True)
class EventSpec:
    kind: EventKind
    contract: ContractRole
    params: tuple[EventParam, ...]

    @property
    def signature(self) -> str:
        return f"{self.kind.value}({','.join(param.abi_type for param in self.params)})"

    @property
    def topic0(self) -> str:
        return encode_hex(event_signature_to_log_topic(self.signature))

    @property
    def indexed(self) -> tuple[EventParam, ...]:
        return tuple(param for param in self.params if param.indexed)

    @property
    def non_indexed(self) -> tuple[EventParam, ...]:
        return tuple(param for param in self.params if not param.indexed)


EVENT_SPECS: dict[EventKind, EventSpec] = {
    spec.kind: spec
    for spec in (
        EventSpec(
            kind=EventKind.REDEMPTION_SET,
            contract=ContractRole.BATCH_FACTORY,
            params=(
                EventParam("batchId", "bytes32", indexed=True),
                EventParam("redemptionStatement", "string"),
                EventParam("storagePointer", "string"),
            ),
        ),
        EventSpec(
            kind=EventKind.CERTIFICATE_BATCH_MINTED,
            contract=ContractRole.BATCH_FACTORY,
            params=(
                EventParam("batchId", "bytes32", indexed=True),
                EventParam("certificateIds", "uint256[]"),
            ),
        ),
        # ERC-1155 TransferSingle; mints are the transfers from the zero address.
        EventSpec(
            kind=EventKind.TRANSFER_SINGLE,
            contract=ContractRole.REGISTRY,
            params=(
                EventParam("operator", "address", indexed=True),
                EventParam("from", "address", indexed=True),
                EventParam("to", "address", indexed=True),
                EventParam("id", "uint256"),
                EventParam("value", "uint256"),
            ),
        ),
        # ERC-1888 ClaimSingle
        EventSpec(
            kind=EventKind.CLAIM_SINGLE,
            contract=ContractRole.REGISTRY,
            params=(
                EventParam("claimIssuer", "address", indexed=True),
                EventParam("claimSubject", "address", indexed=True),
                EventParam("topic", "uint256", indexed=True),
                EventParam("id", "uint256"),
                EventParam("value", "uint256"),
                EventParam("claimData", "bytes"),
            ),
        ),
        EventSpec(
            kind=EventKind.AGREEMENT_DEPLOYED,
            contract=ContractRole.AGREEMENT_FACTORY,
            params=(EventParam("agreement", "address", indexed=True),),
        ),
        EventSpec(
            kind=EventKind.AGREEMENT_SIGNED,
            contract=ContractRole.AGREEMENT_FACTORY,
            params=(
                EventParam("agreement", "address", indexed=True),
                EventParam("amount", "uint256"),
            ),
        ),
        EventSpec(
            kind=EventKind.AGREEMENT_FILLED,
            contract=ContractRole.AGREEMENT_FACTORY,
            params=(
                EventParam("agreement", "address", indexed=True),
                EventParam("amount", "uint256"),
            ),
        ),
        EventSpec(
            kind=EventKind.AGREEMENT_CLAIMED,
            contract=ContractRole.AGREEMENT_FACTORY,
            params=(
                EventParam("agreement", "address", indexed=True),
                EventParam("amount", "uint256"),
            ),
        ),
    )
}


def normalize_abi_value(abi_type: str, value: object) -> object:
    """Turn eth_abi output into the plain values the domain expects."""

    if abi_type.endswith("]"):
        inner = abi_type[: abi_type.rindex("[")]
        return tuple(normalize_abi_value(inner, item) for item in value)  # type: ignore[union-attr]
    if abi_type == "address":
        return to_checksum_address(value)  # type: ignore[arg-type]
    if isinstance(value, bytes):
        return encode_hex(value)
    return value


def encode_topic_filter(spec: EventSpec, event_filter: EventFilter | None) -> list[str | None]:
    """Build the ``topics`` array for ``eth_getLogs``, trailing wildcards trimmed."""

    topics: list[str | None] = [spec.topic0]
    filters = dict(event_filter or {})
    for param in spec.indexed:
        if param.name not in filters:
            topics.append(None)
            continue
        value = filters.pop(param.name)
        topics.append(encode_hex(abi_encode([param.abi_type], [value])))
    if filters:
        unknown = ", ".join(sorted(filters))
        raise ValueError(f"{spec.kind} has no indexed argument(s): {unknown}")
    while topics and topics[-1] is None:
        topics.pop()
    return topics


def decode_log(spec: EventSpec, entry: LogEntry) -> RawEvent:
    """Decode one log entry of ``spec``'s event into a :class:`RawEvent`."""

    if not entry.topics or entry.topics[0].lower() != spec.topic0:
        raise MalformedEventError(
            f"Log in {entry.transaction_hash} is not a {spec.kind} event"
        )
    topics = entry.topics[1:]
    if len(topics) != len(spec.indexed):
        raise MalformedEventError(
            f"{spec.kind} log in {entry.transaction_hash} has {len(topics)} indexed topics, "
            f"expected {len(spec.indexed)}"
        )

    args: dict[str, object] = {}
    try:
        for param, topic in zip(spec.indexed, topics, strict=True):
            (value,) = abi_decode([param.abi_type], bytes(HexBytes(topic)))
            args[param.name] = normalize_abi_value(param.abi_type, value)
        data_types = [param.abi_type for param in spec.non_indexed]
        values = abi_decode(data_types, bytes(HexBytes(entry.data)))
        for param, value in zip(spec.non_indexed, values, strict=True):
            args[param.name] = normalize_abi_value(param.abi_type, value)
    except (DecodingError, ValueError, OverflowError) as exc:
        raise MalformedEventError(
            f"Cannot decode {spec.kind} log in {entry.transaction_hash}: {exc}"
        ) from exc

    return RawEvent(
        kind=spec.kind,
        args=args,
        block_number=entry.block_number,
        transaction_hash=entry.transaction_hash,
        log_index=entry.log_index,
    )
