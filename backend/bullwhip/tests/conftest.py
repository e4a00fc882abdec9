import random
from typing import Callable, List

import pytest

from bullwhip.core.demand_patterns import DemandGenerator, DemandPhase
from bullwhip.core.roles import Role
from bullwhip.services.engine import RoundProcessor, RoundRecord, SupplyChainEntity
from bullwhip.services.state import SESSION


class FixedRandom(random.Random):
    """Random source whose integer noise is pinned to a single value."""

    def __init__(self, noise: int = 0) -> None:
        super().__init__(0)
        self.noise = noise

    def randint(self, a: int, b: int) -> int:
        return max(a, min(b, self.noise))


@pytest.fixture
def fixed_rng() -> Callable[[int], FixedRandom]:
    return FixedRandom


@pytest.fixture
def constant_demand_processor() -> Callable[..., RoundProcessor]:
    """Factory for a processor whose customer demand is the same every round."""

    def _build(demand: int = 5, seed: int = 1) -> RoundProcessor:
        rng = random.Random(seed)
        schedule = [DemandPhase(demand, demand, 0.0) for _ in range(20)]
        return RoundProcessor(demand_generator=DemandGenerator(rng, schedule), rng=rng)

    return _build


def make_entity(
    role: Role,
    stockouts: List[int] = (),
    holding: List[float] = (),
    order_history: List[int] = (),
) -> SupplyChainEntity:
    """Build an entity whose per-round records carry the given stockouts and holding costs."""

    entity = SupplyChainEntity(role)
    rounds = max(len(stockouts), len(holding))
    for idx in range(rounds):
        unfulfilled = stockouts[idx] if idx < len(stockouts) else 0
        holding_cost = holding[idx] if idx < len(holding) else 0.0
        entity.records.append(
            RoundRecord(
                round_number=idx + 1,
                role=role,
                incoming_order=unfulfilled,
                fulfilled=0,
                unfulfilled=unfulfilled,
                received=0,
                order_placed=0,
                inventory=int(holding_cost * 2),
                stockout_cost=float(unfulfilled),
                holding_cost=float(holding_cost),
                strategy="test",
            )
        )
        entity.inventory_history.append(int(holding_cost * 2))
    entity.order_history = list(order_history)
    return entity


@pytest.fixture(autouse=True)
def reset_session():
    SESSION.clear()
    yield
    SESSION.clear()


@pytest.fixture
def entity_factory() -> Callable[..., SupplyChainEntity]:
    return make_entity
