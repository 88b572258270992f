# src/marketledger/env.py
"""Process-wide .env handling.

The API entry point calls load_dotenv_if_present() before the ledger config is
read, so MARKET_* values from a local .env file behave like real environment
variables. Values already set in the environment always win.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

_attempted = False
_loaded_from: Optional[Path] = None


def resolve_dotenv_path(dotenv_path: Optional[str] = None) -> Path:
    """Explicit path, else MARKET_DOTENV_PATH, else ./.env."""
    raw = dotenv_path or os.environ.get("MARKET_DOTENV_PATH") or ".env"
    return Path(raw).expanduser()


def load_dotenv_if_present(dotenv_path: Optional[str] = None) -> bool:
    """Load the dotenv file at most once per process.

    Returns True only for the call that actually loaded a file.
    """
    global _attempted, _loaded_from
    if _attempted:
        return False
    _attempted = True

    path = resolve_dotenv_path(dotenv_path)
    if not path.is_file():
        return False

    if load_dotenv(dotenv_path=path, override=False):
        _loaded_from = path
        return True
    return False


def loaded_dotenv_path() -> Optional[Path]:
    return _loaded_from
