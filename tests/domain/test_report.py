from __future__ import annotations

from certledger.domain.claim_payload import decode_claim_data
from certledger.domain.model import Certificate, Claim
from certledger.domain.report import ValueReport, aggregate_values


def _certificate(value: int) -> Certificate:
    return Certificate(
        id="0",
        token_id="1",
        batch_id="B1",
        value=value,
        operator="0xop",
        from_address="0x0",
        to="0xto",
        transaction_hash="0xtx",
    )


def _claim(value: int) -> Claim:
    return Claim(
        id="0",
        token_id="1",
        claim_issuer="0xissuer",
        claim_subject="0xsubject",
        topic="1",
        value=value,
        claim_data="0x",
        claim_data_decoded=decode_claim_data(b""),
        transaction_hash="0xtx",
    )


def test_aggregate_values_empty() -> None:
    assert aggregate_values([], []) == ValueReport(minted=0, claimed=0)


def test_aggregate_values_sums_and_reports_unclaimed() -> None:
    report = aggregate_values(
        [_certificate(1000), _certificate(2**70)],
        [_claim(400)],
    )

    assert report.minted == 1000 + 2**70
    assert report.claimed == 400
    assert report.unclaimed == 600 + 2**70


def test_aggregate_values_does_not_mutate_inputs() -> None:
    certificates = [_certificate(5)]
    claims = [_claim(3)]

    aggregate_values(certificates, claims)

    assert [certificate.value for certificate in certificates] == [5]
    assert [claim.value for claim in claims] == [3]
