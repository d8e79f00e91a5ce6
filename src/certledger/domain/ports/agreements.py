"""Ports for agreement data lookups and their cache."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from certledger.domain.model import AgreementData


@runtime_checkable
class AgreementDataAccessor(Protocol):
    """Point lookup of an agreement's terms by contract address."""

    def get_agreement_data(self, address: str) -> AgreementData: ...


@runtime_checkable
class AgreementCache(Protocol):
    """Run-local cache of agreement lookups, keyed by address."""

    def get(self, address: str) -> AgreementData | None: ...

    def put(self, address: str, data: AgreementData, *, block_number: int) -> None: ...


__all__ = ["AgreementCache", "AgreementDataAccessor"]
