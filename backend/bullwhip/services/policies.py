"""Order policies for the bullwhip game engine.

Policies consume a read-only :class:`EntityView` of one supply chain role and
return the order quantity that role places upstream this round.  Two
independent families live here:

* Named strategies (:class:`NamedStrategy`) that an external actor can pick
  or ask for a suggestion from: lean, balanced, aggressive, reactive and
  predictive.  They are deterministic functions of the view.
* Internal policies (:class:`InternalStrategy`) that drive every role not
  controlled by the external actor.  The policy is chosen from the round
  number and role (:func:`select_internal_strategy`) and its base quantity is
  perturbed with noise drawn from an injected ``random.Random``.

Policies never mutate the view; the engine hands them frozen snapshots so the
round-to-round dependency chain cannot be corrupted from here.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core.roles import Role
from ..utils.numeric import (
    linear_regression_slope,
    mean,
    population_std,
    round_half_up,
)

logger = logging.getLogger(__name__)

BALANCED_TARGET_BUFFER = 5
AGGRESSIVE_TARGET_BUFFER = 15
PREDICTIVE_WINDOW = 5
PREDICTIVE_SAFETY_FACTOR = 1.5

NOISE_SPREAD = 2
OVERSTOCK_THRESHOLD = 20
UNDERSTOCK_THRESHOLD = 3
OVERSTOCK_FACTOR = 0.7
UNDERSTOCK_FACTOR = 1.3


class NamedStrategy(str, Enum):
    LEAN = "lean"
    BALANCED = "balanced"
    AGGRESSIVE = "aggressive"
    REACTIVE = "reactive"
    PREDICTIVE = "predictive"


class InternalStrategy(str, Enum):
    CONSERVATIVE = "conservative"
    BALANCED = "balanced"
    AGGRESSIVE = "aggressive"
    REACTIVE = "reactive"


@dataclass(frozen=True)
class EntityView:
    """Immutable observation of one role handed to a policy."""

    role: Role
    inventory: int
    incoming_order: int = 0
    order_history: Tuple[int, ...] = field(default_factory=tuple)
    incoming_shipments: Tuple[int, ...] = field(default_factory=tuple)
    round_number: int = 0

    @property
    def expected_inventory(self) -> int:
        """On-hand stock plus everything already in transit."""

        return self.inventory + sum(self.incoming_shipments)

    def recent_orders(self, count: int = 3) -> Tuple[int, ...]:
        return self.order_history[-count:] if count > 0 else ()


def _trend(orders: Sequence[int]) -> int:
    if len(orders) < 2:
        return 0
    return orders[-1] - orders[0]


class OrderPolicy:
    """Base interface for order policies."""

    name: str = "policy"

    def order(self, view: EntityView) -> int:
        """Return the order quantity for the current round."""
        raise NotImplementedError


# ----------------------------------------------------------------------
# Named strategies
# ----------------------------------------------------------------------
class LeanPolicy(OrderPolicy):
    """Order only the shortfall between demand and stock on hand or in transit."""

    name = NamedStrategy.LEAN.value

    def order(self, view: EntityView) -> int:
        return round_half_up(max(0, view.incoming_order - view.expected_inventory))


class BalancedPolicy(OrderPolicy):
    """Like lean, but keeps a small buffer on top of demand."""

    name = NamedStrategy.BALANCED.value

    def __init__(self, buffer: int = BALANCED_TARGET_BUFFER) -> None:
        self.buffer = int(buffer)

    def order(self, view: EntityView) -> int:
        quantity = view.incoming_order + self.buffer - view.expected_inventory
        return round_half_up(max(0, quantity))


class AggressivePolicy(OrderPolicy):
    """Build a large buffer over the higher of demand and the recent average."""

    name = NamedStrategy.AGGRESSIVE.value

    def __init__(self, buffer: int = AGGRESSIVE_TARGET_BUFFER) -> None:
        self.buffer = int(buffer)

    def order(self, view: EntityView) -> int:
        recent_avg = mean(view.recent_orders(3), default=view.incoming_order)
        quantity = max(view.incoming_order, recent_avg) + self.buffer - view.inventory
        return round_half_up(max(0, quantity))


class ReactivePolicy(OrderPolicy):
    """Follow the recent trend, doubling it."""

    name = NamedStrategy.REACTIVE.value

    def order(self, view: EntityView) -> int:
        if len(view.order_history) < 2:
            return round_half_up(max(0, view.incoming_order - view.inventory))

        recent = view.recent_orders(3)
        projected = mean(recent) + 2 * _trend(recent)
        return round_half_up(max(0, projected - view.inventory))


class PredictivePolicy(OrderPolicy):
    """Moving average plus least-squares trend with a variability-based safety stock."""

    name = NamedStrategy.PREDICTIVE.value

    def __init__(self, window: int = PREDICTIVE_WINDOW, safety_factor: float = PREDICTIVE_SAFETY_FACTOR) -> None:
        self.window = int(window)
        self.safety_factor = float(safety_factor)
        self._fallback = BalancedPolicy()

    def order(self, view: EntityView) -> int:
        if len(view.order_history) < 3:
            return self._fallback.order(view)

        window = view.order_history[-min(self.window, len(view.order_history)):]
        forecast = mean(window) + 2 * linear_regression_slope(window)
        safety_stock = self.safety_factor * population_std(window)
        return round_half_up(max(0.0, forecast + safety_stock - view.inventory))


NAMED_POLICIES: Dict[NamedStrategy, OrderPolicy] = {
    NamedStrategy.LEAN: LeanPolicy(),
    NamedStrategy.BALANCED: BalancedPolicy(),
    NamedStrategy.AGGRESSIVE: AggressivePolicy(),
    NamedStrategy.REACTIVE: ReactivePolicy(),
    NamedStrategy.PREDICTIVE: PredictivePolicy(),
}


def calculate_optimal_order(view: EntityView, strategy: NamedStrategy | str = NamedStrategy.BALANCED) -> int:
    """Suggest an order with a named strategy; unknown names echo the incoming order."""

    try:
        key = NamedStrategy(strategy)
    except ValueError:
        return max(0, int(view.incoming_order or 0))
    return NAMED_POLICIES[key].order(view)


# ----------------------------------------------------------------------
# Internal policies
# ----------------------------------------------------------------------
MID_GAME_STRATEGIES: Dict[Role, InternalStrategy] = {
    Role.RETAILER: InternalStrategy.REACTIVE,
    Role.DISTRIBUTOR: InternalStrategy.BALANCED,
    Role.WHOLESALER: InternalStrategy.BALANCED,
    Role.MANUFACTURER: InternalStrategy.CONSERVATIVE,
    Role.SUPPLIER: InternalStrategy.AGGRESSIVE,
}


def select_internal_strategy(role: Role, round_number: int) -> InternalStrategy:
    """Conservative early, role-specific mid game (rounds 5-11), reactive late."""

    if round_number < 5:
        return InternalStrategy.CONSERVATIVE
    if round_number < 12:
        return MID_GAME_STRATEGIES.get(role, InternalStrategy.BALANCED)
    return InternalStrategy.REACTIVE


def adjust_order(quantity: float, inventory: int, rng: random.Random) -> int:
    """Apply noise, clamp at zero and correct for over- or under-stocking."""

    adjusted: float = quantity + rng.randint(-NOISE_SPREAD, NOISE_SPREAD)
    adjusted = max(0, adjusted)

    if inventory > OVERSTOCK_THRESHOLD:
        adjusted = math.floor(adjusted * OVERSTOCK_FACTOR)
    elif inventory < UNDERSTOCK_THRESHOLD:
        adjusted = math.ceil(adjusted * UNDERSTOCK_FACTOR)

    return round_half_up(adjusted)


class InternalPolicy(OrderPolicy):
    """Base class for the policies that drive roles without an external actor."""

    strategy: InternalStrategy = InternalStrategy.CONSERVATIVE

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng if rng is not None else random.Random()

    @property
    def name(self) -> str:  # type: ignore[override]
        return self.strategy.value

    def base_quantity(self, view: EntityView) -> int:
        raise NotImplementedError

    def order(self, view: EntityView) -> int:
        base = self.base_quantity(view)
        quantity = adjust_order(base, view.inventory, self.rng)
        logger.debug(
            "%s round %s: %s policy base=%s final=%s (inventory=%s)",
            view.role.value,
            view.round_number,
            self.strategy.value,
            base,
            quantity,
            view.inventory,
        )
        return quantity


class ConservativePolicy(InternalPolicy):
    strategy = InternalStrategy.CONSERVATIVE

    def base_quantity(self, view: EntityView) -> int:
        return view.incoming_order


class InternalBalancedPolicy(InternalPolicy):
    strategy = InternalStrategy.BALANCED

    def base_quantity(self, view: EntityView) -> int:
        return round_half_up(view.incoming_order * 1.2)


class InternalAggressivePolicy(InternalPolicy):
    strategy = InternalStrategy.AGGRESSIVE

    def base_quantity(self, view: EntityView) -> int:
        quantity = round_half_up(view.incoming_order * 1.5)
        if view.inventory < 5:
            quantity += 5  # emergency buffer
        return quantity


class InternalReactivePolicy(InternalPolicy):
    strategy = InternalStrategy.REACTIVE

    def base_quantity(self, view: EntityView) -> int:
        recent = view.recent_orders(3)
        avg_recent = mean(recent, default=view.incoming_order)
        return round_half_up(avg_recent + _trend(recent) * 1.5)


INTERNAL_POLICY_CLASSES = {
    InternalStrategy.CONSERVATIVE: ConservativePolicy,
    InternalStrategy.BALANCED: InternalBalancedPolicy,
    InternalStrategy.AGGRESSIVE: InternalAggressivePolicy,
    InternalStrategy.REACTIVE: InternalReactivePolicy,
}


# ----------------------------------------------------------------------
# Decision support
# ----------------------------------------------------------------------
def forecast_range(view: EntityView) -> List[int]:
    """Return a ``[low, high]`` demand forecast band from the last three orders."""

    recent = view.recent_orders(3)
    if not recent:
        return [4, 8]

    avg = mean(recent)
    trend = _trend(recent) / len(recent)
    forecast = avg + trend * 2
    return [max(0, math.floor(forecast * 0.8)), math.ceil(forecast * 1.2)]


STRATEGY_DESCRIPTIONS: Dict[NamedStrategy, Dict[str, Any]] = {
    NamedStrategy.LEAN: {
        "name": "Lean Inventory",
        "description": "Minimize inventory by ordering only what is needed. Reduces holding costs but increases stockout risk.",
        "pros": ["Low holding costs", "Efficient capital use"],
        "cons": ["Higher stockout risk", "Sensitive to demand spikes"],
    },
    NamedStrategy.BALANCED: {
        "name": "Balanced Approach",
        "description": "Maintain moderate buffer stock. Balances holding costs against stockout risk.",
        "pros": ["Moderate costs", "Reasonable service level"],
        "cons": ["May not optimize either metric"],
    },
    NamedStrategy.AGGRESSIVE: {
        "name": "Safety Stock",
        "description": "Build large inventory buffers. Maximizes service level but increases holding costs.",
        "pros": ["Low stockout risk", "High service level"],
        "cons": ["High holding costs", "Capital intensive"],
    },
    NamedStrategy.REACTIVE: {
        "name": "Trend Following",
        "description": "React strongly to demand changes. Can amplify the Bullwhip Effect.",
        "pros": ["Responsive to changes"],
        "cons": ["Can amplify volatility", "May overreact"],
    },
    NamedStrategy.PREDICTIVE: {
        "name": "Forecasting",
        "description": "Use statistical forecasting with safety stock. Data-driven approach.",
        "pros": ["Scientific approach", "Accounts for variability"],
        "cons": ["Requires historical data", "Complex calculations"],
    },
}


def strategy_description(strategy: NamedStrategy | str) -> Dict[str, Any]:
    try:
        key = NamedStrategy(strategy)
    except ValueError:
        key = NamedStrategy.BALANCED
    return {"strategy": key.value, **STRATEGY_DESCRIPTIONS[key]}
