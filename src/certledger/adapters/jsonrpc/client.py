"""Minimal Ethereum JSON-RPC client over the resilient HTTP client."""

from __future__ import annotations

import asyncio
import itertools
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from certledger.adapters.http_resilience import ResilientClient
from certledger.domain.errors import SourceUnavailableError

from .schema import LOG_ENTRIES, RpcResponse

if TYPE_CHECKING:
    from collections.abc import Callable

    from certledger.config.http_resilience import ResilienceConfig
    from certledger.config.ledger import LedgerConfig

    from .schema import LogEntry

log = getLogger(__name__)


class JsonRpcError(SourceUnavailableError):
    """Raised when the node answers with a JSON-RPC error or an unusable payload."""

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class JsonRpcClient:
    """Low-level client for the ``eth_*`` methods the exporter needs."""

    def __init__(
        self,
        *,
        config: LedgerConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient
        self._request_ids = itertools.count(1)

    def get_logs(
        self,
        *,
        address: str,
        topics: list[str | None],
        from_block: int,
        to_block: int | None = None,
        block_span: int | None = None,
    ) -> list[LogEntry]:
        """Return logs between ``from_block`` and ``to_block`` (default: latest).

        The range is requested in windows of ``block_span`` blocks; entries keep
        the order in which the node returned them.
        """

        return asyncio.run(
            self._get_logs_async(
                address=address,
                topics=topics,
                from_block=from_block,
                to_block=to_block,
                block_span=block_span or self._config.block_span,
            )
        )

    def call(self, *, to: str, data: str, block: str = "latest") -> str:
        return asyncio.run(self._call_async(to=to, data=data, block=block))

    async def _fetch_block_number(self, client: ResilientClient) -> int:
        result = await self._perform_request(client=client, method="eth_blockNumber", params=[])
        if not isinstance(result, str):
            raise JsonRpcError("Unexpected eth_blockNumber result")
        return int(result, 16)

    async def _get_logs_async(
        self,
        *,
        address: str,
        topics: list[str | None],
        from_block: int,
        to_block: int | None,
        block_span: int,
    ) -> list[LogEntry]:
        entries: list[LogEntry] = []
        async with self._client_factory(self._resilience) as client:
            last_block = to_block if to_block is not None else await self._fetch_block_number(client)
            start = from_block
            while start <= last_block:
                end = min(start + block_span - 1, last_block)
                params = [
                    {
                        "address": address,
                        "topics": topics,
                        "fromBlock": hex(start),
                        "toBlock": hex(end),
                    }
                ]
                result = await self._perform_request(
                    client=client, method="eth_getLogs", params=params
                )
                try:
                    entries.extend(LOG_ENTRIES.validate_python(result))
                except ValidationError as exc:
                    raise JsonRpcError(f"Unexpected eth_getLogs result: {exc}") from exc
                log.debug("Fetched logs for blocks %s-%s (%s so far)", start, end, len(entries))
                start = end + 1
        return entries

    async def _call_async(self, *, to: str, data: str, block: str) -> str:
        async with self._client_factory(self._resilience) as client:
            result = await self._perform_request(
                client=client,
                method="eth_call",
                params=[{"to": to, "data": data}, block],
            )
        if not isinstance(result, str):
            raise JsonRpcError("Unexpected eth_call result")
        return result

    async def _perform_request(
        self,
        *,
        client: ResilientClient,
        method: str,
        params: list[object],
    ) -> object:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": method,
            "params": params,
        }
        try:
            response = await client.post(self._config.rpc_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise SourceUnavailableError(f"{method} request failed: {exc}") from exc

        try:
            body = RpcResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise JsonRpcError(f"Unexpected {method} response payload") from exc

        if body.error is not None:
            log.error("JSON-RPC error %s on %s: %s", body.error.code, method, body.error.message)
            raise JsonRpcError(body.error.message, code=body.error.code) from None

        return body.result
