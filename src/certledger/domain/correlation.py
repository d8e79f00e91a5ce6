"""Correlate certificate lifecycle events into Batch, Certificate and Claim rows.

The four event families carry no foreign keys beyond batch ids and certificate
ids, so rows are produced by matching keys across unordered collections:

    redemption set --batchId--> batch minted --certificateId--> mint --id--> claim

Matching is a cross product. Every matching combination yields its own row and
nothing is deduplicated: two mint events for the same certificate id produce two
Certificate rows. Lookups go through per-collection indexes whose per-key lists
keep arrival order and duplicates, which gives the same rows in the same order
as a nested scan.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from .claim_payload import ClaimDecodeFailure, decode_claim_data
from .errors import MalformedEventError
from .events import (
    parse_batch_minted,
    parse_claim_single,
    parse_mint,
    parse_redemption_set,
)
from .model import Batch, Certificate, Claim

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable, Iterable, Sequence

    from .claim_payload import ClaimDecodeResult, ClaimSchema
    from .events import (
        BatchMintedEvent,
        ClaimSingleEvent,
        MintEvent,
        RawEvent,
        RedemptionSetEvent,
    )

log = getLogger(__name__)


@dataclass(slots=True)
class DecodeStats:
    """Run-scoped counters for claim payload decoding."""

    by_schema: Counter[ClaimSchema] = field(default_factory=Counter["ClaimSchema"])
    failed: int = 0

    def record(self, result: ClaimDecodeResult) -> None:
        if isinstance(result, ClaimDecodeFailure):
            self.failed += 1
        else:
            self.by_schema[result.schema] += 1

    @property
    def decoded(self) -> int:
        return sum(self.by_schema.values())

    @property
    def total(self) -> int:
        return self.decoded + self.failed


@dataclass(slots=True)
class CorrelationResult:
    batches: list[Batch] = field(default_factory=list["Batch"])
    certificates: list[Certificate] = field(default_factory=list["Certificate"])
    claims: list[Claim] = field(default_factory=list["Claim"])
    decode_stats: DecodeStats = field(default_factory=DecodeStats)
    skipped_events: int = 0


def _parse_events[TEvent](
    raw_events: Iterable[RawEvent],
    parser: Callable[[RawEvent], TEvent],
    result: CorrelationResult,
) -> list[TEvent]:
    parsed: list[TEvent] = []
    for raw in raw_events:
        try:
            parsed.append(parser(raw))
        except MalformedEventError as exc:
            result.skipped_events += 1
            log.warning("Skipping malformed %s event: %s", raw.kind, exc)
    return parsed


def _index_by[TKey: Hashable, TEvent](
    events: Iterable[TEvent], key: Callable[[TEvent], TKey]
) -> dict[TKey, list[TEvent]]:
    index: defaultdict[TKey, list[TEvent]] = defaultdict(list)
    for event in events:
        index[key(event)].append(event)
    return dict(index)


def _hex_text(raw: bytes | str) -> str:
    if isinstance(raw, bytes):
        return "0x" + raw.hex()
    return raw


class _RowBuilder:
    """Accumulates rows and hands out their positional ids."""

    def __init__(self, result: CorrelationResult) -> None:
        self._result = result

    def add_claim(self, event: ClaimSingleEvent) -> str:
        decoded = decode_claim_data(event.claim_data)
        self._result.decode_stats.record(decoded)
        claim_id = str(len(self._result.claims))
        self._result.claims.append(
            Claim(
                id=claim_id,
                token_id=str(event.token_id),
                claim_issuer=event.claim_issuer,
                claim_subject=event.claim_subject,
                topic=str(event.topic),
                value=event.value,
                claim_data=_hex_text(event.claim_data),
                claim_data_decoded=decoded,
                transaction_hash=event.transaction_hash,
            )
        )
        return claim_id

    def add_certificate(
        self, *, certificate_id: int, batch_id: str, mint: MintEvent, claim_ids: list[str]
    ) -> str:
        row_id = str(len(self._result.certificates))
        self._result.certificates.append(
            Certificate(
                id=row_id,
                token_id=str(certificate_id),
                batch_id=batch_id,
                value=mint.value,
                operator=mint.operator,
                from_address=mint.from_address,
                to=mint.to,
                claim_ids=claim_ids,
                transaction_hash=mint.transaction_hash,
            )
        )
        return row_id

    def add_batch(self, event: RedemptionSetEvent, certificate_ids: list[str]) -> None:
        self._result.batches.append(
            Batch(
                id=str(len(self._result.batches)),
                batch_id=event.batch_id,
                redemption_statement=event.redemption_statement,
                storage_pointer=event.storage_pointer,
                certificate_ids=certificate_ids,
                transaction_hash=event.transaction_hash,
            )
        )


def correlate_events(
    *,
    redemption_sets: Sequence[RawEvent],
    batches_minted: Sequence[RawEvent],
    mints: Sequence[RawEvent],
    claims: Sequence[RawEvent],
) -> CorrelationResult:
    """Build Batch, Certificate and Claim rows from the four raw event collections.

    Redemption sets are processed in ascending ledger order (stable for events in
    the same block); that order fixes the row ids. A batch without matching
    batch-minted events still yields its Batch row, with no certificates.
    """

    result = CorrelationResult()
    builder = _RowBuilder(result)

    redemption_events: list[RedemptionSetEvent] = _parse_events(
        redemption_sets, parse_redemption_set, result
    )
    minted_by_batch: dict[str, list[BatchMintedEvent]] = _index_by(
        _parse_events(batches_minted, parse_batch_minted, result), lambda e: e.batch_id
    )
    mints_by_token: dict[int, list[MintEvent]] = _index_by(
        _parse_events(mints, parse_mint, result), lambda e: e.token_id
    )
    claims_by_token: dict[int, list[ClaimSingleEvent]] = _index_by(
        _parse_events(claims, parse_claim_single, result), lambda e: e.token_id
    )

    for redemption in sorted(redemption_events, key=lambda e: e.block_number):
        batch_certificate_ids: list[str] = []
        for minted in minted_by_batch.get(redemption.batch_id, []):
            for certificate_id in minted.certificate_ids:
                for mint in mints_by_token.get(certificate_id, []):
                    claim_ids = [
                        builder.add_claim(claim)
                        for claim in claims_by_token.get(certificate_id, [])
                    ]
                    batch_certificate_ids.append(
                        builder.add_certificate(
                            certificate_id=certificate_id,
                            batch_id=redemption.batch_id,
                            mint=mint,
                            claim_ids=claim_ids,
                        )
                    )
        if not batch_certificate_ids:
            log.debug("Batch %s has no minted certificates", redemption.batch_id)
        builder.add_batch(redemption, batch_certificate_ids)

    stats = result.decode_stats
    log.info(
        "Correlated %s batches, %s certificates, %s claims "
        "(claims decoded=%s, undecodable=%s, skipped events=%s)",
        len(result.batches),
        len(result.certificates),
        len(result.claims),
        stats.decoded,
        stats.failed,
        result.skipped_events,
    )
    return result
