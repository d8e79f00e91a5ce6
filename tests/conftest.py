from __future__ import annotations

import os

import pytest

_CERTLEDGER_ENV_PREFIX = "CERTLEDGER_"


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith(_CERTLEDGER_ENV_PREFIX):
            monkeypatch.delenv(name)
