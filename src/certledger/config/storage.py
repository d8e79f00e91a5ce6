"""Output and cache location helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = "certledger"
DEFAULT_OUTPUT_DIR: Final[str] = "output"
AGREEMENT_CACHE_FILENAME: Final[str] = "agreement_cache.csv"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    output_dir: Path
    cache_dir: Path
    agreement_cache_filename: str = AGREEMENT_CACHE_FILENAME

    def resolve_output_dir(self) -> Path:
        return self.output_dir.expanduser().resolve()

    def agreement_cache_path(self, *, ensure: bool = True) -> Path:
        base = self.cache_dir.expanduser().resolve()
        if ensure:
            base.mkdir(parents=True, exist_ok=True)
        return base / self.agreement_cache_filename


def _default_cache_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        base_path = Path(base) if base else (Path.home() / "AppData" / "Local")
    else:
        base = os.getenv("XDG_DATA_HOME")
        base_path = Path(base) if base else (Path.home() / ".local" / "share")
    return (base_path / APP_DIR_NAME).expanduser().resolve()


def get_storage_config(*, output_dir: Path | None = None) -> StorageConfig:
    env_output = os.getenv("CERTLEDGER_OUTPUT_DIR")
    env_cache = os.getenv("CERTLEDGER_CACHE_DIR")
    resolved_output = output_dir or (Path(env_output) if env_output else Path(DEFAULT_OUTPUT_DIR))
    cache_dir = Path(env_cache) if env_cache else _default_cache_dir()
    return StorageConfig(output_dir=resolved_output, cache_dir=cache_dir)
