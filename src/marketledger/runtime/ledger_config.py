# src/marketledger/runtime/ledger_config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from marketledger.ledger.constants import DEFAULT_ESCROW_ACCOUNT

Json = Dict[str, Any]


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


def _as_origins(v: Any, default: Tuple[str, ...]) -> Tuple[str, ...]:
    if v is None:
        return default
    if isinstance(v, str):
        items = v.split(",")
    elif isinstance(v, (list, tuple)):
        items = [str(x) for x in v]
    else:
        return default
    return tuple(o.strip() for o in items if o.strip())


@dataclass(frozen=True)
class LedgerConfig:
    mode: str  # "dev" | "test" | "prod"

    # SQLite file holding the snapshot + receipts. Empty keeps state in memory only.
    db_path: str

    escrow_account: str

    api_host: str
    api_port: int
    cors_origins: Tuple[str, ...]

    log_level: str


_ALLOWED_MODES = {"dev", "test", "prod"}
_ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def validate_ledger_config(cfg: LedgerConfig) -> None:
    """Fail-fast validation for operator config."""

    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {sorted(_ALLOWED_MODES)}; got: {cfg.mode!r}")

    if not isinstance(cfg.escrow_account, str) or not cfg.escrow_account.strip():
        raise ValueError("escrow_account must be a non-empty string")

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")

    if str(cfg.log_level or "").strip().upper() not in _ALLOWED_LOG_LEVELS:
        raise ValueError(f"log_level must be one of {sorted(_ALLOWED_LOG_LEVELS)}; got: {cfg.log_level!r}")

    if mode == "prod" and "*" in cfg.cors_origins:
        raise ValueError("wildcard '*' CORS origin is not allowed in prod mode")


def default_ledger_config() -> LedgerConfig:
    return LedgerConfig(
        mode="prod",
        db_path="./data/marketledger.db",
        escrow_account=DEFAULT_ESCROW_ACCOUNT,
        api_host="127.0.0.1",
        api_port=8080,
        cors_origins=(),
        log_level="INFO",
    )


def _from_mapping(raw: Json, base: LedgerConfig) -> LedgerConfig:
    return LedgerConfig(
        mode=_as_str(raw.get("mode"), base.mode).strip().lower(),
        db_path=str(raw.get("db_path")) if raw.get("db_path") is not None else base.db_path,
        escrow_account=_as_str(raw.get("escrow_account"), base.escrow_account),
        api_host=_as_str(raw.get("api_host"), base.api_host),
        api_port=_as_int(raw.get("api_port"), base.api_port),
        cors_origins=_as_origins(raw.get("cors_origins"), base.cors_origins),
        log_level=_as_str(raw.get("log_level"), base.log_level).strip().upper(),
    )


def read_ledger_config_file(path: str) -> LedgerConfig:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("ledger config must be a JSON object")
    return _from_mapping(raw, default_ledger_config())


_ENV_KEYS = {
    "mode": "MARKET_MODE",
    "db_path": "MARKET_DB_PATH",
    "escrow_account": "MARKET_ESCROW_ACCOUNT",
    "api_host": "MARKET_API_HOST",
    "api_port": "MARKET_API_PORT",
    "cors_origins": "MARKET_CORS_ORIGINS",
    "log_level": "MARKET_LOG_LEVEL",
}


def _env_overrides() -> Json:
    out: Json = {}
    for field_name, env_name in _ENV_KEYS.items():
        v = os.environ.get(env_name)
        if v is not None:
            out[field_name] = v
    return out


def load_ledger_config(*, config_path: Optional[str] = None) -> LedgerConfig:
    """File (MARKET_CONFIG_PATH) or defaults, then MARKET_* env overrides."""
    p = config_path or os.environ.get("MARKET_CONFIG_PATH")
    cfg = read_ledger_config_file(p) if p else default_ledger_config()
    cfg = _from_mapping(_env_overrides(), cfg)
    validate_ledger_config(cfg)
    return cfg


def with_overrides(cfg: LedgerConfig, **changes: Any) -> LedgerConfig:
    out = replace(cfg, **changes)
    validate_ledger_config(out)
    return out
