"""Reconcile agreement lifecycle events against the agreement data lookup.

Agreements are keyed by contract address. Each deployed address is resolved
once per run, read-through a cache that is written through on every fetch.
Agreements the lookup reports as invalid drop out before any further matching.
Amount disagreements between signed and filled events are reported as
diagnostics; both amounts stay visible in the output rows.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from .errors import MalformedEventError
from .events import parse_agreement_event
from .model import Agreement

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from .events import AgreementEvent, RawEvent
    from .model import AgreementData
    from .ports.agreements import AgreementCache, AgreementDataAccessor

log = getLogger(__name__)


@dataclass(slots=True, frozen=True, kw_only=True)
class AmountMismatch:
    agreement_address: str
    signed_amount: int
    filled_amount: int
    signed_transaction_hash: str
    filled_transaction_hash: str


@dataclass(slots=True)
class SettlementResult:
    agreements: list[Agreement] = field(default_factory=list["Agreement"])
    mismatches: list[AmountMismatch] = field(default_factory=list["AmountMismatch"])
    excluded: list[str] = field(default_factory=list["str"])
    lookups: int = 0
    cache_hits: int = 0


def _address_key(address: str) -> str:
    return address.lower()


def _parse_sorted(raw_events: Iterable[RawEvent]) -> list[AgreementEvent]:
    parsed: list[AgreementEvent] = []
    for raw in raw_events:
        try:
            parsed.append(parse_agreement_event(raw))
        except MalformedEventError as exc:
            log.warning("Skipping malformed %s event: %s", raw.kind, exc)
    return sorted(parsed, key=lambda event: event.block_number)


def _index_by_address(events: Iterable[AgreementEvent]) -> dict[str, list[AgreementEvent]]:
    index: defaultdict[str, list[AgreementEvent]] = defaultdict(list)
    for event in events:
        index[_address_key(event.agreement)].append(event)
    return dict(index)


def _last_amount(events: Sequence[AgreementEvent]) -> int | None:
    return events[-1].amount if events else None


class _AgreementResolver:
    def __init__(
        self,
        accessor: AgreementDataAccessor,
        cache: AgreementCache,
        result: SettlementResult,
    ) -> None:
        self._accessor = accessor
        self._cache = cache
        self._result = result

    def resolve(self, address: str, *, block_number: int) -> AgreementData:
        cached = self._cache.get(address)
        if cached is not None:
            self._result.cache_hits += 1
            return cached
        data = self._accessor.get_agreement_data(address)
        self._result.lookups += 1
        self._cache.put(address, data, block_number=block_number)
        return data


def _find_mismatches(
    address: str,
    signed: Sequence[AgreementEvent],
    filled: Sequence[AgreementEvent],
) -> list[AmountMismatch]:
    mismatches: list[AmountMismatch] = []
    for signed_event in signed:
        for filled_event in filled:
            if signed_event.amount == filled_event.amount:
                continue
            mismatch = AmountMismatch(
                agreement_address=address,
                signed_amount=signed_event.amount or 0,
                filled_amount=filled_event.amount or 0,
                signed_transaction_hash=signed_event.transaction_hash,
                filled_transaction_hash=filled_event.transaction_hash,
            )
            log.warning(
                "Agreement %s signed amount %s differs from filled amount %s (tx %s / %s)",
                address,
                mismatch.signed_amount,
                mismatch.filled_amount,
                mismatch.signed_transaction_hash,
                mismatch.filled_transaction_hash,
            )
            mismatches.append(mismatch)
    return mismatches


def reconcile_agreements(
    *,
    deployed: Sequence[RawEvent],
    signed: Sequence[RawEvent],
    filled: Sequence[RawEvent],
    claimed: Sequence[RawEvent],
    accessor: AgreementDataAccessor,
    cache: AgreementCache,
) -> SettlementResult:
    """Build one Agreement row per valid deployed agreement."""

    result = SettlementResult()
    resolver = _AgreementResolver(accessor, cache, result)

    signed_by_address = _index_by_address(_parse_sorted(signed))
    filled_by_address = _index_by_address(_parse_sorted(filled))
    claimed_by_address = _index_by_address(_parse_sorted(claimed))

    seen: set[str] = set()
    for deployment in _parse_sorted(deployed):
        key = _address_key(deployment.agreement)
        if key in seen:
            log.warning(
                "Agreement %s deployed more than once (tx %s); keeping the first deployment",
                deployment.agreement,
                deployment.transaction_hash,
            )
            continue
        seen.add(key)

        data = resolver.resolve(deployment.agreement, block_number=deployment.block_number)
        if not data.valid:
            log.info("Excluding invalid agreement %s", deployment.agreement)
            result.excluded.append(deployment.agreement)
            continue

        signed_events = signed_by_address.get(key, [])
        filled_events = filled_by_address.get(key, [])
        result.mismatches.extend(
            _find_mismatches(deployment.agreement, signed_events, filled_events)
        )
        result.agreements.append(
            Agreement(
                agreement_address=deployment.agreement,
                data=data,
                signed_amount=_last_amount(signed_events),
                filled_amount=_last_amount(filled_events),
                claimed_amount=_last_amount(claimed_by_address.get(key, [])),
                transaction_hash=deployment.transaction_hash,
            )
        )

    orphans = (set(signed_by_address) | set(filled_by_address) | set(claimed_by_address)) - seen
    for address in sorted(orphans):
        log.debug("Ignoring events for agreement %s with no deployment", address)

    log.info(
        "Reconciled %s agreements (excluded=%s, amount mismatches=%s, lookups=%s, cache hits=%s)",
        len(result.agreements),
        len(result.excluded),
        len(result.mismatches),
        result.lookups,
        result.cache_hits,
    )
    return result
