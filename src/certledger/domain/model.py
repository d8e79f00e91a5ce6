"""Derived entities rebuilt from the ledger log."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from .claim_payload import serialize_decode_result

if TYPE_CHECKING:
    from .claim_payload import ClaimDecodeResult

type TableRow = dict[str, object]

BATCH_COLUMNS: Final[tuple[str, ...]] = (
    "id",
    "batchId",
    "redemptionStatement",
    "storagePointer",
    "certificateIds",
    "transactionHash",
)
CERTIFICATE_COLUMNS: Final[tuple[str, ...]] = (
    "id",
    "tokenId",
    "batchId",
    "value",
    "operator",
    "from",
    "to",
    "claimIds",
    "transactionHash",
)
CLAIM_COLUMNS: Final[tuple[str, ...]] = (
    "id",
    "tokenId",
    "claimIssuer",
    "claimSubject",
    "topic",
    "value",
    "claimData",
    "claimDataDecoded",
    "transactionHash",
)
AGREEMENT_COLUMNS: Final[tuple[str, ...]] = (
    "agreementAddress",
    "buyer",
    "seller",
    "amount",
    "metadata",
    "valid",
    "signedAmount",
    "filledAmount",
    "claimedAmount",
    "transactionHash",
)


def _text(value: int | None) -> str:
    return "" if value is None else str(value)


@dataclass(slots=True, kw_only=True)
class Batch:
    id: str
    batch_id: str
    redemption_statement: str
    storage_pointer: str
    certificate_ids: list[str] = field(default_factory=list["str"])
    transaction_hash: str

    def to_row(self) -> TableRow:
        return {
            "id": self.id,
            "batchId": self.batch_id,
            "redemptionStatement": self.redemption_statement,
            "storagePointer": self.storage_pointer,
            "certificateIds": list(self.certificate_ids),
            "transactionHash": self.transaction_hash,
        }


@dataclass(slots=True, kw_only=True)
class Certificate:
    id: str
    token_id: str
    batch_id: str
    value: int
    operator: str
    from_address: str
    to: str
    claim_ids: list[str] = field(default_factory=list["str"])
    transaction_hash: str

    def to_row(self) -> TableRow:
        return {
            "id": self.id,
            "tokenId": self.token_id,
            "batchId": self.batch_id,
            "value": str(self.value),
            "operator": self.operator,
            "from": self.from_address,
            "to": self.to,
            "claimIds": list(self.claim_ids),
            "transactionHash": self.transaction_hash,
        }


@dataclass(slots=True, kw_only=True)
class Claim:
    id: str
    token_id: str
    claim_issuer: str
    claim_subject: str
    topic: str
    value: int
    claim_data: str
    claim_data_decoded: ClaimDecodeResult
    transaction_hash: str

    def to_row(self) -> TableRow:
        return {
            "id": self.id,
            "tokenId": self.token_id,
            "claimIssuer": self.claim_issuer,
            "claimSubject": self.claim_subject,
            "topic": self.topic,
            "value": str(self.value),
            "claimData": self.claim_data,
            "claimDataDecoded": serialize_decode_result(self.claim_data_decoded),
            "transactionHash": self.transaction_hash,
        }


@dataclass(slots=True, frozen=True, kw_only=True)
class AgreementData:
    """Result of the agreement point lookup."""

    buyer: str
    seller: str
    amount: int
    metadata: str
    valid: bool


@dataclass(slots=True, kw_only=True)
class Agreement:
    agreement_address: str
    data: AgreementData
    signed_amount: int | None = None
    filled_amount: int | None = None
    claimed_amount: int | None = None
    transaction_hash: str

    def to_row(self) -> TableRow:
        return {
            "agreementAddress": self.agreement_address,
            "buyer": self.data.buyer,
            "seller": self.data.seller,
            "amount": str(self.data.amount),
            "metadata": self.data.metadata,
            "valid": self.data.valid,
            "signedAmount": _text(self.signed_amount),
            "filledAmount": _text(self.filled_amount),
            "claimedAmount": _text(self.claimed_amount),
            "transactionHash": self.transaction_hash,
        }
