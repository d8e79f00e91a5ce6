"""Decode the versioned metadata attached to ``ClaimSingle`` events.

Three historical ABI layouts exist on chain. They are tried in a fixed order,
V3 then V1 then V2, and the first one that decodes cleanly wins:

* V3: tuple of eight strings (beneficiary, region, countryCode, periodStartDate,
  periodEndDate, purpose, consumptionEntityID, proofID).
* V1: tuple of six strings (beneficiary, location, countryCode, periodStartDate,
  periodEndDate, purpose).
* V2: tuple of one string holding a JSON object of the same logical shape.

V3 goes first because a V3 payload also satisfies the V1 layout (its first six
pointers are valid), while a V1 payload fails the eight-slot head of V3.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import StrEnum

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from hexbytes import HexBytes
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

_V3_TYPES = ["string"] * 8
_V1_TYPES = ["string"] * 6
_V2_TYPES = ["string"]

# UnicodeDecodeError is a ValueError; huge pointers surface as OverflowError on seek.
_ABI_ERRORS = (DecodingError, ValueError, OverflowError, TypeError)


class ClaimSchema(StrEnum):
    V3 = "v3"
    V1 = "v1"
    V2 = "v2"


class ClaimData(BaseModel):
    """Claim metadata in its unified shape; absent fields are empty strings."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    beneficiary: str = ""
    region: str = ""
    country_code: str = Field(default="", alias="countryCode")
    period_start_date: str = Field(default="", alias="periodStartDate")
    period_end_date: str = Field(default="", alias="periodEndDate")
    purpose: str = ""
    consumption_entity_id: str = Field(default="", alias="consumptionEntityID")
    proof_id: str = Field(default="", alias="proofID")
    location: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _scalars_to_text(cls, value: object) -> object:
        # V2 JSON may carry booleans or nested values; keep their JSON text
        if value is None:
            return ""
        if isinstance(value, bool | dict | list):
            return json.dumps(value, separators=(",", ":"))
        return value


@dataclass(slots=True, frozen=True)
class SchemaMismatch:
    """One schema did not apply to the payload."""

    schema: ClaimSchema
    reason: str


@dataclass(slots=True, frozen=True)
class DecodedClaim:
    schema: ClaimSchema
    data: ClaimData


@dataclass(slots=True, frozen=True)
class ClaimDecodeFailure:
    """No schema matched; kept distinct from a successful all-empty decode."""

    attempts: tuple[SchemaMismatch, ...]


type SchemaAttempt = DecodedClaim | SchemaMismatch
type ClaimDecodeResult = DecodedClaim | ClaimDecodeFailure


def _decode_strings(
    schema: ClaimSchema, types: list[str], payload: bytes
) -> tuple[str, ...] | SchemaMismatch:
    try:
        values = abi_decode(types, payload)
    except _ABI_ERRORS as exc:
        return SchemaMismatch(schema=schema, reason=f"{type(exc).__name__}: {exc}")
    if len(values) != len(types) or not all(isinstance(value, str) for value in values):
        return SchemaMismatch(schema=schema, reason="tuple has undefined fields")
    return tuple(values)


def decode_v3(payload: bytes) -> SchemaAttempt:
    values = _decode_strings(ClaimSchema.V3, _V3_TYPES, payload)
    if isinstance(values, SchemaMismatch):
        return values
    (
        beneficiary,
        region,
        country_code,
        period_start_date,
        period_end_date,
        purpose,
        consumption_entity_id,
        proof_id,
    ) = values
    return DecodedClaim(
        schema=ClaimSchema.V3,
        data=ClaimData(
            beneficiary=beneficiary,
            region=region,
            country_code=country_code,
            period_start_date=period_start_date,
            period_end_date=period_end_date,
            purpose=purpose,
            consumption_entity_id=consumption_entity_id,
            proof_id=proof_id,
            location="",
        ),
    )


def decode_v1(payload: bytes) -> SchemaAttempt:
    values = _decode_strings(ClaimSchema.V1, _V1_TYPES, payload)
    if isinstance(values, SchemaMismatch):
        return values
    beneficiary, location, country_code, period_start_date, period_end_date, purpose = values
    return DecodedClaim(
        schema=ClaimSchema.V1,
        data=ClaimData(
            beneficiary=beneficiary,
            location=location,
            country_code=country_code,
            period_start_date=period_start_date,
            period_end_date=period_end_date,
            purpose=purpose,
        ),
    )


def decode_v2(payload: bytes) -> SchemaAttempt:
    values = _decode_strings(ClaimSchema.V2, _V2_TYPES, payload)
    if isinstance(values, SchemaMismatch):
        return values
    (inner,) = values
    try:
        data = ClaimData.model_validate_json(inner)
    except ValidationError as exc:
        return SchemaMismatch(
            schema=ClaimSchema.V2, reason=f"inner payload is not a claim record: {exc}"
        )
    return DecodedClaim(schema=ClaimSchema.V2, data=data)


_DECODERS = ((ClaimSchema.V3, decode_v3), (ClaimSchema.V1, decode_v1), (ClaimSchema.V2, decode_v2))

CANONICAL_SCHEMA_ORDER = tuple(schema for schema, _ in _DECODERS)


def _to_bytes(raw: bytes | str) -> bytes | None:
    try:
        return bytes(HexBytes(raw))
    except (ValueError, TypeError):
        return None


def decode_claim_data(raw: bytes | str) -> ClaimDecodeResult:
    """Decode ``raw`` (bytes or a hex string) with the first matching schema.

    Never raises: a payload that fits no schema yields :class:`ClaimDecodeFailure`
    listing why each candidate was rejected.
    """

    payload = _to_bytes(raw)
    if payload is None:
        return ClaimDecodeFailure(
            attempts=tuple(
                SchemaMismatch(schema=schema, reason="payload is not valid hex")
                for schema in CANONICAL_SCHEMA_ORDER
            )
        )

    attempts: list[SchemaMismatch] = []
    for _schema, decoder in _DECODERS:
        result = decoder(payload)
        if isinstance(result, DecodedClaim):
            return result
        attempts.append(result)
    return ClaimDecodeFailure(attempts=tuple(attempts))


def serialize_decode_result(result: ClaimDecodeResult) -> str:
    """Render a decode result for tabular output; failures become ``null``."""

    if isinstance(result, ClaimDecodeFailure):
        return "null"
    return result.data.model_dump_json(by_alias=True)
