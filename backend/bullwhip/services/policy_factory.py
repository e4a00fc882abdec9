"""Factory helpers for creating bullwhip game order policies."""

from __future__ import annotations

import random
from typing import Any, Dict

from ..core.roles import Role
from .policies import (
    INTERNAL_POLICY_CLASSES,
    AggressivePolicy,
    BalancedPolicy,
    InternalPolicy,
    InternalStrategy,
    LeanPolicy,
    OrderPolicy,
    PredictivePolicy,
    ReactivePolicy,
    select_internal_strategy,
)


def make_policy(kind: str, params: Dict[str, Any] | None = None) -> OrderPolicy:
    """Instantiate a named :class:`OrderPolicy` from a configuration mapping."""

    params = params or {}
    key = (kind or "").strip().lower()

    if key == "lean":
        return LeanPolicy()

    if key == "balanced":
        return BalancedPolicy(buffer=int(params.get("buffer", 5)))

    if key in {"aggressive", "safety_stock"}:
        return AggressivePolicy(buffer=int(params.get("buffer", 15)))

    if key in {"reactive", "trend_following"}:
        return ReactivePolicy()

    if key in {"predictive", "forecasting"}:
        return PredictivePolicy(
            window=int(params.get("window", 5)),
            safety_factor=float(params.get("safety_factor", 1.5)),
        )

    raise ValueError(f"Unknown policy kind: {kind}")


def make_internal_policy(strategy: InternalStrategy | str, rng: random.Random | None = None) -> InternalPolicy:
    """Instantiate one of the internal policies sharing the game's RNG."""

    try:
        key = InternalStrategy(strategy)
    except ValueError:
        raise ValueError(f"Unknown internal strategy: {strategy}") from None
    return INTERNAL_POLICY_CLASSES[key](rng)


def internal_policy_for(role: Role, round_number: int, rng: random.Random | None = None) -> InternalPolicy:
    """Pick and build the internal policy that drives ``role`` in ``round_number``."""

    return make_internal_policy(select_internal_strategy(role, round_number), rng)
