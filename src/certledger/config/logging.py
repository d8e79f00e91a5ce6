"""Root logger setup for the command line entry point."""

from __future__ import annotations

import logging

from .env import optional_env_var

LOG_LEVEL_ENV_VAR = "CERTLEDGER_LOG_LEVEL"

# httpx and httpcore log every eth_getLogs window at INFO
_TRANSPORT_LOGGERS = ("httpx", "httpcore")


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Configure the root logger with a terse format.

    ``level`` defaults to ``CERTLEDGER_LOG_LEVEL`` (INFO when unset or unknown).
    Transport loggers stay at WARNING unless DEBUG is requested.
    """

    requested = optional_env_var(LOG_LEVEL_ENV_VAR)
    env_level = logging.getLevelNamesMapping().get(requested.upper()) if requested else None
    effective = level if level is not None else (env_level or logging.INFO)

    logging.basicConfig(
        level=effective,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    transport_level = effective if effective <= logging.DEBUG else max(effective, logging.WARNING)
    for name in _TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)

    if level is None and requested and env_level is None:
        logging.getLogger(__name__).warning(
            "Ignoring unknown %s=%r, using INFO", LOG_LEVEL_ENV_VAR, requested
        )
