# src/marketledger/api/__main__.py
from __future__ import annotations

import logging

import uvicorn

from marketledger.env import load_dotenv_if_present, loaded_dotenv_path


def main() -> None:
    # MARKET_* from .env must be visible before the config is read
    load_dotenv_if_present()

    from marketledger.api.app import create_app
    from marketledger.runtime.ledger_config import load_ledger_config
    from marketledger.util.ledger_logging import log_event

    cfg = load_ledger_config()
    app = create_app(cfg=cfg)
    log_event(
        logging.getLogger("marketledger.api"),
        "api_starting",
        mode=cfg.mode,
        host=cfg.api_host,
        port=cfg.api_port,
        db_path=cfg.db_path,
        dotenv=str(loaded_dotenv_path() or ""),
    )
    uvicorn.run(app, host=cfg.api_host, port=cfg.api_port, log_level=cfg.log_level.lower())


if __name__ == "__main__":
    main()
