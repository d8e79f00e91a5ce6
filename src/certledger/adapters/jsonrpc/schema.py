"""Pydantic models describing Ethereum JSON-RPC payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


def _quantity_to_int(value: object) -> object:
    if isinstance(value, str) and value.lower().startswith("0x"):
        return int(value, 16)
    return value


class RpcBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class RpcError(RpcBaseModel):
    code: int
    message: str
    data: object | None = None


class RpcResponse(RpcBaseModel):
    jsonrpc: str = "2.0"
    id: int | str | None = None
    result: object | None = None
    error: RpcError | None = None


class LogEntry(RpcBaseModel):
    address: str
    topics: list[str]
    data: str = "0x"
    block_number: int = Field(alias="blockNumber")
    transaction_hash: str = Field(alias="transactionHash")
    log_index: int = Field(default=0, alias="logIndex")
    removed: bool = False

    _parse_quantities = field_validator("block_number", "log_index", mode="before")(
        _quantity_to_int
    )


LOG_ENTRIES = TypeAdapter(list[LogEntry])
