# src/marketledger/runtime/sqlite_db.py
from __future__ import annotations

"""SQLite persistence for the ledger.

One database file holds:
  meta          schema version
  ledger_state  a single row with the canonical JSON snapshot of the state dict
  tx_receipts   append-only log of committed calls (envelope + result)

Connections are never shared between threads. SQLite admits one writer at a
time, so write_tx() retries BEGIN IMMEDIATE with jittered backoff until a
deadline and then fails closed.
"""

import json
import os
import random
import sqlite3
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

Json = Dict[str, Any]

SCHEMA_VERSION = 1

_DDL: Tuple[str, ...] = (
    "CREATE TABLE IF NOT EXISTS meta (key TEXT PRIMARY KEY, value TEXT NOT NULL);",
    """
    CREATE TABLE IF NOT EXISTS ledger_state (
      id INTEGER PRIMARY KEY CHECK (id = 1),
      state_json TEXT NOT NULL,
      updated_ts_ms INTEGER NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS tx_receipts (
      seq INTEGER PRIMARY KEY AUTOINCREMENT,
      tx_type TEXT NOT NULL,
      signer TEXT NOT NULL,
      envelope_json TEXT NOT NULL,
      result_json TEXT NOT NULL,
      applied_ts_ms INTEGER NOT NULL
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_receipts_signer ON tx_receipts(signer, seq);",
)

_SYNC_MODES = ("OFF", "NORMAL", "FULL", "EXTRA")


def _now_ms() -> int:
    return int(time.time() * 1000)


def _canon_json(obj: Any) -> str:
    # no default=str: a non-JSON value in persisted state must fail loudly
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _env_ms(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return max(0, int(raw))
    except ValueError:
        return default


@dataclass(frozen=True)
class SqliteSettings:
    """Connection and write-retry knobs (MARKET_SQLITE_* env vars)."""

    synchronous: str = "FULL"
    busy_timeout_ms: int = 30_000
    write_deadline_ms: int = 30_000
    backoff_base_ms: int = 5
    backoff_max_ms: int = 250

    @classmethod
    def from_env(cls) -> "SqliteSettings":
        mode = (os.environ.get("MARKET_MODE") or "prod").strip().lower()
        default_sync = "FULL" if mode == "prod" else "NORMAL"
        sync = (os.environ.get("MARKET_SQLITE_SYNCHRONOUS") or default_sync).strip().upper()
        return cls(
            synchronous=sync if sync in _SYNC_MODES else default_sync,
            busy_timeout_ms=_env_ms("MARKET_SQLITE_BUSY_TIMEOUT_MS", 30_000),
            write_deadline_ms=max(250, _env_ms("MARKET_SQLITE_WRITE_DEADLINE_MS", 30_000)),
            backoff_base_ms=max(1, _env_ms("MARKET_SQLITE_WRITE_BACKOFF_BASE_MS", 5)),
            backoff_max_ms=_env_ms("MARKET_SQLITE_WRITE_BACKOFF_MAX_MS", 250),
        )

    def backoff_s(self, attempt: int) -> float:
        base = self.backoff_base_ms / 1000.0
        cap = max(base, self.backoff_max_ms / 1000.0)
        return min(cap, base * (2.0 ** min(attempt, 8))) * (0.5 + random.random())


def _is_lock_contention(e: sqlite3.OperationalError) -> bool:
    msg = str(e).lower()
    return "database is locked" in msg or "database is busy" in msg


class SqliteDB:
    def __init__(self, *, path: str, settings: Optional[SqliteSettings] = None) -> None:
        self.path = str(path)
        self.settings = settings or SqliteSettings.from_env()

    def _connect(self) -> sqlite3.Connection:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        s = self.settings
        # isolation_level=None: transactions are opened explicitly in write_tx()
        con = sqlite3.connect(
            self.path,
            timeout=s.busy_timeout_ms / 1000.0,
            isolation_level=None,
            check_same_thread=False,
        )
        con.row_factory = sqlite3.Row
        for pragma in (
            "journal_mode=WAL",
            f"synchronous={s.synchronous}",
            "temp_store=MEMORY",
            f"busy_timeout={s.busy_timeout_ms}",
        ):
            con.execute(f"PRAGMA {pragma};")
        return con

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            yield con
        finally:
            con.close()

    def _begin_immediate(self, con: sqlite3.Connection) -> None:
        deadline = _now_ms() + self.settings.write_deadline_ms
        attempt = 0
        while True:
            try:
                con.execute("BEGIN IMMEDIATE;")
                return
            except sqlite3.OperationalError as e:
                if not _is_lock_contention(e) or _now_ms() >= deadline:
                    raise
                time.sleep(self.settings.backoff_s(attempt))
                attempt += 1

    @contextmanager
    def write_tx(self) -> Iterator[sqlite3.Connection]:
        """Single write transaction: COMMIT on success, ROLLBACK on any exception."""
        with self.connection() as con:
            self._begin_immediate(con)
            try:
                yield con
            except BaseException:
                con.execute("ROLLBACK;")
                raise
            con.execute("COMMIT;")

    def init_schema(self) -> None:
        with self.write_tx() as con:
            for stmt in _DDL:
                con.execute(stmt)
            self._check_schema_version(con)

    @staticmethod
    def _check_schema_version(con: sqlite3.Connection) -> None:
        row = con.execute("SELECT value FROM meta WHERE key='schema_version';").fetchone()
        if row is None:
            con.execute("INSERT INTO meta(key, value) VALUES('schema_version', ?);", (str(SCHEMA_VERSION),))
            return
        try:
            have = int(str(row["value"]))
        except ValueError:
            have = 0
        if have != SCHEMA_VERSION:
            raise RuntimeError(f"sqlite schema_version mismatch: have={have} want={SCHEMA_VERSION}; refusing to open")


class SqliteLedgerStore:
    """Ledger snapshot store persisted in SQLite.

    - read(): load the latest snapshot
    - commit(st, receipts): overwrite the snapshot and append receipts in one
      transaction, so the receipt log never runs ahead of (or behind) state
    - revert(st, from_seq): undo commits from a call whose payout failed

    The authoritative snapshot is a single row.
    """

    def __init__(self, *, db: SqliteDB) -> None:
        self._db = db
        self._db.init_schema()

    @property
    def db(self) -> SqliteDB:
        return self._db

    def exists(self) -> bool:
        with self._db.connection() as con:
            return con.execute("SELECT 1 FROM ledger_state WHERE id=1;").fetchone() is not None

    def read(self) -> Json:
        with self._db.connection() as con:
            row = con.execute("SELECT state_json FROM ledger_state WHERE id=1;").fetchone()
            if row is None:
                raise FileNotFoundError("sqlite ledger_state is missing")
            st = json.loads(str(row["state_json"]))
            if not isinstance(st, dict):
                raise ValueError("ledger_state is not a JSON object")
            return st

    @staticmethod
    def _write_snapshot(con: sqlite3.Connection, st: Json) -> None:
        con.execute(
            """
            INSERT INTO ledger_state(id, state_json, updated_ts_ms)
            VALUES(1, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
              state_json=excluded.state_json,
              updated_ts_ms=excluded.updated_ts_ms;
            """,
            (_canon_json(st), _now_ms()),
        )

    def write(self, st: Json) -> None:
        if not isinstance(st, dict):
            raise ValueError("ledger write expects dict")
        with self._db.write_tx() as con:
            self._write_snapshot(con, st)

    def commit(self, st: Json, receipts: List[Tuple[Json, Json]]) -> int:
        """Persist state + (envelope, result) receipts atomically.

        Returns the seq of the last receipt written (0 if none).
        """
        if not isinstance(st, dict):
            raise ValueError("ledger commit expects dict")
        last = 0
        with self._db.write_tx() as con:
            self._write_snapshot(con, st)
            for envelope, result in receipts:
                cur = con.execute(
                    """
                    INSERT INTO tx_receipts(tx_type, signer, envelope_json, result_json, applied_ts_ms)
                    VALUES(?, ?, ?, ?, ?);
                    """,
                    (
                        str(envelope.get("tx_type") or ""),
                        str(envelope.get("signer") or ""),
                        _canon_json(envelope),
                        _canon_json(result),
                        _now_ms(),
                    ),
                )
                last = int(cur.lastrowid or 0)
        return last

    def revert(self, st: Json, *, from_seq: int) -> None:
        """Restore snapshot `st` and drop receipts with seq >= from_seq, in one transaction."""
        if not isinstance(st, dict):
            raise ValueError("ledger revert expects dict")
        with self._db.write_tx() as con:
            self._write_snapshot(con, st)
            con.execute("DELETE FROM tx_receipts WHERE seq >= ?;", (int(from_seq),))

    def recent_receipts(self, *, limit: int = 50, signer: Optional[str] = None) -> List[Json]:
        n = max(1, min(int(limit), 1000))
        with self._db.connection() as con:
            if signer:
                rows = con.execute(
                    "SELECT * FROM tx_receipts WHERE signer=? ORDER BY seq DESC LIMIT ?;", (str(signer), n)
                ).fetchall()
            else:
                rows = con.execute("SELECT * FROM tx_receipts ORDER BY seq DESC LIMIT ?;", (n,)).fetchall()
        return [
            {
                "seq": int(r["seq"]),
                "tx_type": str(r["tx_type"]),
                "signer": str(r["signer"]),
                "envelope": json.loads(str(r["envelope_json"])),
                "result": json.loads(str(r["result_json"])),
                "applied_ts_ms": int(r["applied_ts_ms"]),
            }
            for r in rows
        ]
