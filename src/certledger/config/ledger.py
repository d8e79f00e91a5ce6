"""Energy Web Chain ledger configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, optional_int_env_var
from .errors import MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_RPC_URL = "https://rpc.energyweb.org"
DEFAULT_REGISTRY_ADDRESS = "0x5651a7A38753A9692B7740CCeCA3824a4d33aEFb"
DEFAULT_BATCH_FACTORY_ADDRESS = "0x2248a8e53c8cf533aeef2369fff9dc8c036c8900"
DEFAULT_BLOCK_SPAN = 100_000
LEDGER_TIMEOUT_SECONDS = 60
LEDGER_CALLS_PER_SECOND = 10
LEDGER_RETRIES = 5


@dataclass(frozen=True, slots=True)
class LedgerConfig:
    """Holds the JSON-RPC endpoint and the contract addresses to read events from."""

    rpc_url: str
    registry_address: str
    batch_factory_address: str
    resilience: ResilienceConfig
    agreement_factory_address: str | None = None
    start_block: int = 0
    block_span: int = DEFAULT_BLOCK_SPAN

    def require_agreement_factory_address(self) -> str:
        if self.agreement_factory_address is None:
            raise MissingConfigurationError(
                "Missing configuration for: CERTLEDGER_AGREEMENT_FACTORY_ADDRESS",
                setting="CERTLEDGER_AGREEMENT_FACTORY_ADDRESS",
            )
        return self.agreement_factory_address


def default_ledger_resilience(rpc_url: str) -> ResilienceConfig:
    """Transport settings for the node, tunable for public or private endpoints."""

    return ResilienceConfig(
        name="ledger",
        base_url=rpc_url,
        timeout_seconds=float(
            optional_int_env_var("CERTLEDGER_RPC_TIMEOUT", default=LEDGER_TIMEOUT_SECONDS, minimum=1)
        ),
        ratelimit=RateLimit(
            max_calls=optional_int_env_var(
                "CERTLEDGER_RPC_RATE_LIMIT", default=LEDGER_CALLS_PER_SECOND, minimum=1
            )
        ),
        retry=RetryPolicy(
            total=optional_int_env_var("CERTLEDGER_RPC_RETRIES", default=LEDGER_RETRIES)
        ),
        headers={"Content-Type": "application/json"},
    )


def get_ledger_config(
    *,
    start_block: int | None = None,
    block_span: int | None = None,
    resilience: ResilienceConfig | None = None,
) -> LedgerConfig:
    rpc_url = optional_env_var("CERTLEDGER_RPC_URL") or DEFAULT_RPC_URL
    return LedgerConfig(
        rpc_url=rpc_url,
        registry_address=optional_env_var("CERTLEDGER_REGISTRY_ADDRESS")
        or DEFAULT_REGISTRY_ADDRESS,
        batch_factory_address=optional_env_var("CERTLEDGER_BATCH_FACTORY_ADDRESS")
        or DEFAULT_BATCH_FACTORY_ADDRESS,
        agreement_factory_address=optional_env_var("CERTLEDGER_AGREEMENT_FACTORY_ADDRESS"),
        start_block=start_block
        if start_block is not None
        else optional_int_env_var("CERTLEDGER_START_BLOCK", default=0),
        block_span=block_span
        if block_span is not None
        else optional_int_env_var("CERTLEDGER_BLOCK_SPAN", default=DEFAULT_BLOCK_SPAN, minimum=1),
        resilience=resilience or default_ledger_resilience(rpc_url),
    )
