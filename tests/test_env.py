# tests/test_env.py
from __future__ import annotations

import os
from pathlib import Path

import pytest

import marketledger.env as env_mod


@pytest.fixture(autouse=True)
def _fresh_loader(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(env_mod, "_attempted", False)
    monkeypatch.setattr(env_mod, "_loaded_from", None)
    monkeypatch.delenv("MARKET_DOTENV_PATH", raising=False)


def test_dotenv_loads_once_and_keeps_existing_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    p = tmp_path / "ledger.env"
    p.write_text("MARKET_TEST_DOTENV_A=from_file\nMARKET_TEST_DOTENV_B=from_file\n", encoding="utf-8")
    monkeypatch.delenv("MARKET_TEST_DOTENV_A", raising=False)
    monkeypatch.setenv("MARKET_TEST_DOTENV_B", "from_env")
    monkeypatch.setenv("MARKET_DOTENV_PATH", str(p))

    assert env_mod.load_dotenv_if_present() is True
    assert env_mod.loaded_dotenv_path() == p

    assert os.environ["MARKET_TEST_DOTENV_A"] == "from_file"
    assert os.environ["MARKET_TEST_DOTENV_B"] == "from_env"
    monkeypatch.delenv("MARKET_TEST_DOTENV_A", raising=False)

    assert env_mod.load_dotenv_if_present() is False


def test_missing_dotenv_is_not_an_error(tmp_path: Path) -> None:
    assert env_mod.load_dotenv_if_present(str(tmp_path / "nope.env")) is False
    assert env_mod.loaded_dotenv_path() is None
