from __future__ import annotations

"""Read-only projections over ledger state.

Everything here takes a state dict and returns immutable snapshots; nothing
mutates state. Multi-asset results are ordered by ascending asset id, which
is creation order.
"""

from typing import Any, Callable, Dict, Iterator, List, Optional

from marketledger.ledger.state import (
    counter,
    escrow_account,
    find_profile,
    key_of,
    require_asset,
    table,
)
from marketledger.ledger.types import Asset, Profile
from marketledger.runtime.apply.subscriptions import expires_at
from marketledger.runtime.errors import NotFound

Json = Dict[str, Any]


def iter_assets(state: Json) -> Iterator[Asset]:
    """Lazily yield every asset in ascending id order."""
    assets = table(state, "assets")
    ids: List[int] = []
    for k in assets.keys():
        try:
            ids.append(int(k))
        except (TypeError, ValueError):
            continue
    for asset_id in sorted(ids):
        rec = assets.get(key_of(asset_id))
        if isinstance(rec, dict):
            yield Asset.from_record(rec)


def _select(state: Json, pred: Callable[[Asset], bool]) -> List[Asset]:
    return [a for a in iter_assets(state) if pred(a)]


def get_asset(state: Json, asset_id: int) -> Asset:
    """Snapshot of one asset; NotFound if it was never created."""
    return Asset.from_record(require_asset(state, asset_id))


def get_by_id(state: Json, asset_id: int) -> List[Asset]:
    """Sequence form of get_asset: one element, or empty if unknown."""
    try:
        return [get_asset(state, asset_id)]
    except NotFound:
        return []


def for_sale(state: Json) -> List[Asset]:
    escrow = escrow_account(state)
    return _select(state, lambda a: a.owner == escrow)


def subscribed_by(state: Json, account: str) -> List[Asset]:
    return _select(state, lambda a: account in a.subscribers)


def owned_by(state: Json, account: str) -> List[Asset]:
    return _select(state, lambda a: a.owner == account)


def listed_count(state: Json) -> int:
    return counter(state, "listed")


def subscription_expiration(state: Json, asset_id: int) -> int:
    return expires_at(state, asset_id)


def get_profile(state: Json, account: str) -> Optional[Profile]:
    rec = find_profile(state, account)
    return Profile.from_record(rec) if rec is not None else None


def get_profile_by_id(state: Json, user_id: int) -> Optional[Profile]:
    rec = table(state, "profiles").get(key_of(user_id))
    return Profile.from_record(rec) if isinstance(rec, dict) else None
