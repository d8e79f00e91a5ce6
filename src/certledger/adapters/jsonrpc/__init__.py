"""Public interface for the JSON-RPC ledger adapter."""

from __future__ import annotations

from .client import JsonRpcClient, JsonRpcError
from .events import EVENT_SPECS, ContractRole, EventParam, EventSpec, decode_log
from .fetcher import LedgerAgreementDataAccessor, LedgerEventSource
from .schema import LogEntry, RpcResponse

__all__ = [
    "EVENT_SPECS",
    "ContractRole",
    "EventParam",
    "EventSpec",
    "JsonRpcClient",
    "JsonRpcError",
    "LedgerAgreementDataAccessor",
    "LedgerEventSource",
    "LogEntry",
    "RpcResponse",
    "decode_log",
]
