from __future__ import annotations

"""In-process notification bus.

Appliers describe notifications as plain dicts in their result
(`{"event": name, **fields}`); the executor turns them into LedgerEvent values
and publishes them only after the call has committed.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from marketledger.util.ledger_logging import log_event

Json = Dict[str, Any]

ASSET_CREATED = "AssetCreated"
SUBSCRIPTION_UPDATE = "SubscriptionUpdate"

_log = logging.getLogger("marketledger.events")


@dataclass(frozen=True)
class LedgerEvent:
    name: str
    fields: Json = field(default_factory=dict)

    @classmethod
    def from_json(cls, j: Json) -> "LedgerEvent":
        body = dict(j)
        name = str(body.pop("event", "") or "")
        return cls(name=name, fields=body)

    def to_json(self) -> Json:
        out: Json = {"event": self.name}
        out.update(self.fields)
        return out


Listener = Callable[[LedgerEvent], None]


def make_event(name: str, **fields: Any) -> Json:
    out: Json = {"event": name}
    out.update(fields)
    return out


class EventBus:
    """Synchronous publish/subscribe.

    A listener that raises is logged and skipped; it cannot undo a committed
    call or starve later listeners.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: List[Listener] = []
        self._history: List[LedgerEvent] = []
        self._history_max = 1000

    def subscribe(self, fn: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(fn)

        def _unsubscribe() -> None:
            with self._lock:
                if fn in self._listeners:
                    self._listeners.remove(fn)

        return _unsubscribe

    def publish(self, ev: LedgerEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
            self._history.append(ev)
            if len(self._history) > self._history_max:
                del self._history[: len(self._history) - self._history_max]

        log_event(_log, ev.name, **ev.fields)
        for fn in listeners:
            try:
                fn(ev)
            except Exception as e:
                log_event(_log, "listener_failed", listener=repr(fn), error=str(e), notification=ev.name)

    def recent(self, limit: int = 50) -> List[LedgerEvent]:
        with self._lock:
            n = max(0, int(limit))
            return list(self._history[-n:]) if n else []
