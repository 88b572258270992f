"""marketledger.ledger.types

Immutable snapshots of ledger records.

The authoritative records live in the JSON state dict (see ledger.state); the
dataclasses here are what read paths hand back to callers, so a caller holding
a snapshot can never mutate ledger state through it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

Json = Dict[str, Any]


def _as_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _as_str(v: Any) -> str:
    return v if isinstance(v, str) else ""


def _as_str_tuple(v: Any) -> Tuple[str, ...]:
    if not isinstance(v, list):
        return ()
    return tuple(str(x) for x in v)


@dataclass(frozen=True)
class Asset:
    asset_id: int
    seller: str
    owner: str
    price: int
    subscribers: Tuple[str, ...] = field(default_factory=tuple)
    likes: int = 0
    title: str = ""
    description: str = ""
    metadata_ref: str = ""

    @classmethod
    def from_record(cls, rec: Json) -> "Asset":
        return cls(
            asset_id=_as_int(rec.get("asset_id")),
            seller=_as_str(rec.get("seller")),
            owner=_as_str(rec.get("owner")),
            price=_as_int(rec.get("price")),
            subscribers=_as_str_tuple(rec.get("subscribers")),
            likes=_as_int(rec.get("likes")),
            title=_as_str(rec.get("title")),
            description=_as_str(rec.get("description")),
            metadata_ref=_as_str(rec.get("metadata_ref")),
        )

    def to_json(self) -> Json:
        return {
            "asset_id": self.asset_id,
            "seller": self.seller,
            "owner": self.owner,
            "price": self.price,
            "subscribers": list(self.subscribers),
            "likes": self.likes,
            "title": self.title,
            "description": self.description,
            "metadata_ref": self.metadata_ref,
        }


@dataclass(frozen=True)
class Profile:
    """Social-graph record. followers/following are sets; tuples are sorted."""

    user_id: int
    account: str
    followers: Tuple[str, ...] = field(default_factory=tuple)
    following: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_record(cls, rec: Json) -> "Profile":
        return cls(
            user_id=_as_int(rec.get("user_id")),
            account=_as_str(rec.get("account")),
            followers=tuple(sorted(_as_str_tuple(rec.get("followers")))),
            following=tuple(sorted(_as_str_tuple(rec.get("following")))),
        )

    def to_json(self) -> Json:
        return {
            "user_id": self.user_id,
            "account": self.account,
            "followers": list(self.followers),
            "following": list(self.following),
        }
