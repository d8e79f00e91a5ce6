"""Ledger-backed implementations of the event source and agreement lookup ports."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_abi.exceptions import DecodingError
from eth_utils import encode_hex, function_signature_to_4byte_selector, to_checksum_address
from hexbytes import HexBytes

from certledger.config.ledger import LedgerConfig, get_ledger_config
from certledger.domain.errors import MalformedEventError
from certledger.domain.model import AgreementData
from certledger.domain.ports import AgreementDataAccessor, EventSource

from .client import JsonRpcClient, JsonRpcError
from .events import EVENT_SPECS, ContractRole, decode_log, encode_topic_filter

if TYPE_CHECKING:
    from collections.abc import Callable

    from certledger.adapters.http_resilience import ResilientClient
    from certledger.config.http_resilience import ResilienceConfig
    from certledger.domain.events import EventFilter, EventKind, RawEvent

log = getLogger(__name__)

AGREEMENT_DATA_SIGNATURE = "agreementData(address)"
AGREEMENT_DATA_TYPES = ["address", "address", "uint256", "string", "bool"]


def _contract_address(config: LedgerConfig, role: ContractRole) -> str:
    if role is ContractRole.REGISTRY:
        return config.registry_address
    if role is ContractRole.BATCH_FACTORY:
        return config.batch_factory_address
    return config.require_agreement_factory_address()


@dataclass(slots=True)
class LedgerEventSource:
    """Reads decoded events from the configured contracts via ``eth_getLogs``."""

    config: LedgerConfig = field(default_factory=get_ledger_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None
    to_block: int | None = None

    def query_events(
        self,
        kind: EventKind,
        event_filter: EventFilter | None = None,
    ) -> list[RawEvent]:
        spec = EVENT_SPECS[kind]
        client = JsonRpcClient(config=self.config, client_factory=self.client_factory)
        entries = client.get_logs(
            address=_contract_address(self.config, spec.contract),
            topics=encode_topic_filter(spec, event_filter),
            from_block=self.config.start_block,
            to_block=self.to_block,
        )

        events: list[RawEvent] = []
        for entry in entries:
            if entry.removed:
                continue
            try:
                events.append(decode_log(spec, entry))
            except MalformedEventError as exc:
                log.warning("Skipping undecodable log: %s", exc)
        log.info("Found %s %s events", len(events), kind)
        return events


@dataclass(slots=True)
class LedgerAgreementDataAccessor:
    """Looks up agreement terms with ``agreementData(address)`` on the agreement factory."""

    config: LedgerConfig = field(default_factory=get_ledger_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None

    def get_agreement_data(self, address: str) -> AgreementData:
        factory = self.config.require_agreement_factory_address()
        selector = function_signature_to_4byte_selector(AGREEMENT_DATA_SIGNATURE)
        call_data = encode_hex(selector + abi_encode(["address"], [to_checksum_address(address)]))

        client = JsonRpcClient(config=self.config, client_factory=self.client_factory)
        result = bytes(HexBytes(client.call(to=factory, data=call_data)))
        if not result:
            log.warning("No agreement data for %s; treating it as invalid", address)
            return AgreementData(buyer="", seller="", amount=0, metadata="", valid=False)

        try:
            buyer, seller, amount, metadata, valid = abi_decode(AGREEMENT_DATA_TYPES, result)
        except (DecodingError, ValueError, OverflowError) as exc:
            raise JsonRpcError(f"Undecodable agreement data for {address}: {exc}") from exc
        return AgreementData(
            buyer=to_checksum_address(buyer),
            seller=to_checksum_address(seller),
            amount=amount,
            metadata=metadata,
            valid=bool(valid),
        )


if TYPE_CHECKING:
    _source_check: EventSource = LedgerEventSource()
    _accessor_check: AgreementDataAccessor = LedgerAgreementDataAccessor()
