from __future__ import annotations

import pytest
from eth_abi import encode as abi_encode
from eth_utils import encode_hex, function_signature_to_4byte_selector, to_checksum_address

from certledger.adapters.jsonrpc.events import (
    EVENT_SPECS,
    ContractRole,
    decode_log,
    encode_topic_filter,
)
from certledger.adapters.jsonrpc.schema import LogEntry
from certledger.domain.errors import MalformedEventError
from certledger.domain.events import ZERO_ADDRESS, EventKind, parse_claim_single, parse_mint
from tests.helpers.events import encode_v3_claim

OPERATOR = "0x1111111111111111111111111111111111111111"
RECIPIENT = "0x2222222222222222222222222222222222222222"
ISSUER = "0x3333333333333333333333333333333333333333"


def _address_topic(address: str) -> str:
    return encode_hex(abi_encode(["address"], [address]))


def _uint_topic(value: int) -> str:
    return encode_hex(abi_encode(["uint256"], [value]))


def _log(topics: list[str], data: bytes, **overrides: object) -> LogEntry:
    payload: dict[str, object] = {
        "address": "0x5651a7a38753a9692b7740cceca3824a4d33aefb",
        "topics": topics,
        "data": encode_hex(data),
        "blockNumber": "0x1b4",
        "transactionHash": "0x" + "ab" * 32,
        "logIndex": "0x2",
    }
    payload.update(overrides)
    return LogEntry.model_validate(payload)


def test_transfer_single_topic_matches_erc1155() -> None:
    spec = EVENT_SPECS[EventKind.TRANSFER_SINGLE]

    assert spec.signature == "TransferSingle(address,address,address,uint256,uint256)"
    assert spec.topic0 == "0xc3d58168c5ae7397731d063d5bbf3d657854427343f4c083240f7aacaa2d0f62"
    assert spec.contract is ContractRole.REGISTRY


def test_function_selectors_use_keccak() -> None:
    selector = function_signature_to_4byte_selector("transfer(address,uint256)")

    assert selector == bytes.fromhex("a9059cbb")


def test_every_event_kind_has_an_abi_definition() -> None:
    assert set(EVENT_SPECS) == set(EventKind)


def test_mint_filter_targets_from_topic() -> None:
    spec = EVENT_SPECS[EventKind.TRANSFER_SINGLE]

    topics = encode_topic_filter(spec, {"from": ZERO_ADDRESS})

    assert topics == [spec.topic0, None, "0x" + "00" * 32]


def test_topic_filter_trims_trailing_wildcards() -> None:
    spec = EVENT_SPECS[EventKind.CLAIM_SINGLE]

    assert encode_topic_filter(spec, None) == [spec.topic0]


def test_topic_filter_rejects_non_indexed_arguments() -> None:
    spec = EVENT_SPECS[EventKind.TRANSFER_SINGLE]

    with pytest.raises(ValueError, match="value"):
        encode_topic_filter(spec, {"value": 1})


def test_decode_transfer_single_log() -> None:
    spec = EVENT_SPECS[EventKind.TRANSFER_SINGLE]
    entry = _log(
        [
            spec.topic0,
            _address_topic(OPERATOR),
            _address_topic(ZERO_ADDRESS),
            _address_topic(RECIPIENT),
        ],
        abi_encode(["uint256", "uint256"], [7, 10**30]),
    )

    raw = decode_log(spec, entry)

    assert raw.kind is EventKind.TRANSFER_SINGLE
    assert raw.block_number == 436
    assert raw.log_index == 2
    assert raw.args["to"] == to_checksum_address(RECIPIENT)
    mint = parse_mint(raw)
    assert mint.token_id == 7
    assert mint.value == 10**30
    assert mint.from_address == ZERO_ADDRESS


def test_decode_claim_single_log_keeps_payload_as_hex() -> None:
    spec = EVENT_SPECS[EventKind.CLAIM_SINGLE]
    payload = encode_v3_claim()
    entry = _log(
        [spec.topic0, _address_topic(ISSUER), _address_topic(RECIPIENT), _uint_topic(1)],
        abi_encode(["uint256", "uint256", "bytes"], [7, 400, payload]),
    )

    claim = parse_claim_single(decode_log(spec, entry))

    assert claim.claim_data == encode_hex(payload)
    assert claim.topic == 1
    assert claim.value == 400


def test_decode_batch_minted_log() -> None:
    spec = EVENT_SPECS[EventKind.CERTIFICATE_BATCH_MINTED]
    batch_id = b"\x01" * 32
    entry = _log(
        [spec.topic0, encode_hex(batch_id)],
        abi_encode(["uint256[]"], [[7, 8]]),
    )

    raw = decode_log(spec, entry)

    assert raw.args["batchId"] == encode_hex(batch_id)
    assert raw.args["certificateIds"] == (7, 8)


def test_decode_log_rejects_other_events() -> None:
    spec = EVENT_SPECS[EventKind.TRANSFER_SINGLE]
    other = EVENT_SPECS[EventKind.CLAIM_SINGLE]

    with pytest.raises(MalformedEventError, match="not a TransferSingle"):
        decode_log(spec, _log([other.topic0], b""))


def test_decode_log_rejects_truncated_data() -> None:
    spec = EVENT_SPECS[EventKind.REDEMPTION_SET]
    entry = _log([spec.topic0, "0x" + "00" * 32], b"\x00" * 16)

    with pytest.raises(MalformedEventError, match="Cannot decode"):
        decode_log(spec, entry)
