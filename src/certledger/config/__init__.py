"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_var, optional_int_env_var
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .ledger import LedgerConfig, get_ledger_config
from .logging import configure_logging
from .storage import StorageConfig, get_storage_config

__all__ = [
    "ConfigurationError",
    "LedgerConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "get_ledger_config",
    "get_storage_config",
    "optional_env_var",
    "optional_int_env_var",
]
