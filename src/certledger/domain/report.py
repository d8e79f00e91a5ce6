"""Value totals across the derived tables."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .model import Certificate, Claim


@dataclass(slots=True, frozen=True)
class ValueReport:
    minted: int
    claimed: int

    @property
    def unclaimed(self) -> int:
        return self.minted - self.claimed


def aggregate_values(certificates: Iterable[Certificate], claims: Iterable[Claim]) -> ValueReport:
    """Sum minted and claimed values; Python ints keep the sums exact."""

    return ValueReport(
        minted=sum((certificate.value for certificate in certificates), 0),
        claimed=sum((claim.value for claim in claims), 0),
    )
