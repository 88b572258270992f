from __future__ import annotations

"""Injectable policy and collaborator hooks consulted during apply."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict

Json = Dict[str, Any]

RenewalPolicy = Callable[[Json, int], bool]
BalanceLookup = Callable[[str], int]


def always_renewable(state: Json, asset_id: int) -> bool:
    return True


def zero_balance(account: str) -> int:
    return 0


@dataclass(frozen=True)
class ApplyHooks:
    """is_renewable(state, asset_id) gates stacking onto an existing window.

    balance_of(account) supplies the balance snapshot returned by
    PROFILE_REGISTER.
    """

    is_renewable: RenewalPolicy = field(default=always_renewable)
    balance_of: BalanceLookup = field(default=zero_balance)


DEFAULT_HOOKS = ApplyHooks()
