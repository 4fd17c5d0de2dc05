"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture
def fixtures_dir() -> Path:
    return Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def _clear_txa_env(monkeypatch):
    """Keep TXA_* variables of the calling shell out of config tests."""
    for var in (
        "TXA_BIG_SIZE_THRESHOLD",
        "TXA_BIG_SIZE_PROPORTION_THRESHOLD",
        "TXA_TIME_WINDOW_SECONDS",
        "TXA_TIME_WINDOW_STEP_SECONDS",
        "TXA_TPM_THRESHOLD",
        "TXA_STORE_BACKEND",
        "TXA_MONGO_URI",
        "TXA_MONGO_DB",
        "TXA_LOG_LEVEL",
        "TXA_ALARM_LOG_FILE",
    ):
        monkeypatch.delenv(var, raising=False)
