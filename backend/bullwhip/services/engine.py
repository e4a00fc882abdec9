"""Core round-processing engine for the five-stage bullwhip game."""

from __future__ import annotations

import copy
import logging
import random
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, Optional

from ..core.config import settings
from ..core.demand_patterns import DemandGenerator
from ..core.exceptions import InvalidRound, InvariantViolation
from ..core.roles import CHAIN, PROCESSING_ORDER, Role, downstream_of
from .policies import EntityView
from .policy_factory import internal_policy_for

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_INVENTORY = 12
MIN_SHIPMENT_LEAD_TIME = 2
SNAPSHOT_HISTORY_LENGTH = 10

#: Maps the observable state of a role to the quantity it orders upstream.
OrderSource = Callable[[EntityView], int]

EXTERNAL_STRATEGY_LABEL = "external"


@dataclass(frozen=True)
class RoundRecord:
    """Everything that happened to one role in one round."""

    round_number: int
    role: Role
    incoming_order: int
    fulfilled: int
    unfulfilled: int
    received: int
    order_placed: int
    inventory: int
    stockout_cost: float
    holding_cost: float
    strategy: str

    @property
    def total_cost(self) -> float:
        return self.stockout_cost + self.holding_cost


class SupplyChainEntity:
    """Mutable state of a single role in the supply chain."""

    def __init__(self, role: Role, inventory: int = DEFAULT_INITIAL_INVENTORY) -> None:
        self.role = role
        self.inventory = int(inventory)
        if self.inventory < 0:
            raise ValueError("Initial inventory cannot be negative")

        self.incoming_orders: Deque[int] = deque()
        self.outgoing_orders: Deque[int] = deque()
        self.incoming_shipments: Deque[int] = deque()

        self.order_history: List[int] = []
        self.inventory_history: List[int] = [self.inventory]
        self.records: List[RoundRecord] = []

    # ------------------------------------------------------------------
    # Derived accumulators
    # ------------------------------------------------------------------
    @property
    def rounds_processed(self) -> int:
        return len(self.records)

    @property
    def stockout_costs(self) -> float:
        return sum(record.stockout_cost for record in self.records)

    @property
    def holding_costs(self) -> float:
        return sum(record.holding_cost for record in self.records)

    @property
    def total_cost(self) -> float:
        return self.stockout_costs + self.holding_costs

    @property
    def unfulfilled_demand(self) -> int:
        return sum(record.unfulfilled for record in self.records)

    @property
    def fulfilled_demand(self) -> int:
        return sum(record.fulfilled for record in self.records)

    @property
    def stockout_history(self) -> List[int]:
        """Unfulfilled units per round, indexed from round 1 at position 0."""

        return [record.unfulfilled for record in self.records]

    @property
    def cost_history(self) -> List[Dict[str, float]]:
        return [
            {
                "stockout": record.stockout_cost,
                "holding": record.holding_cost,
                "total": record.total_cost,
            }
            for record in self.records
        ]

    @property
    def placed_order_history(self) -> List[int]:
        return [record.order_placed for record in self.records]

    # ------------------------------------------------------------------
    # State transition helpers
    # ------------------------------------------------------------------
    def receive_shipment(self, lead_time: int = MIN_SHIPMENT_LEAD_TIME) -> int:
        """Move the oldest shipment into stock once the pipeline is ``lead_time`` deep."""

        if len(self.incoming_shipments) < lead_time:
            return 0
        arrived = self.incoming_shipments.popleft()
        self.inventory += arrived
        return arrived

    def view(self, incoming_order: int = 0, round_number: int = 0) -> EntityView:
        """Return a frozen observation that policies can read but not modify."""

        return EntityView(
            role=self.role,
            inventory=self.inventory,
            incoming_order=int(incoming_order),
            order_history=tuple(self.order_history),
            incoming_shipments=tuple(self.incoming_shipments),
            round_number=round_number,
        )

    def check_invariants(self) -> None:
        if self.inventory < 0:
            raise InvariantViolation(
                f"{self.role.value} inventory went negative ({self.inventory}) "
                f"in round {self.rounds_processed}"
            )
        if len(self.inventory_history) != self.rounds_processed + 1:
            raise InvariantViolation(f"{self.role.value} inventory history is out of step")
        if len(self.order_history) != self.rounds_processed:
            raise InvariantViolation(f"{self.role.value} order history is out of step")


class RoundProcessor:
    """Advances every role of the chain exactly once per round."""

    def __init__(
        self,
        *,
        demand_generator: Optional[DemandGenerator] = None,
        rng: Optional[random.Random] = None,
        initial_inventory: int = DEFAULT_INITIAL_INVENTORY,
        holding_cost: float = 0.5,
        stockout_cost: float = 1.0,
        max_rounds: int = 20,
        shipment_lead_time: int = MIN_SHIPMENT_LEAD_TIME,
    ) -> None:
        self.rng = rng if rng is not None else random.Random()
        self.demand_generator = demand_generator or DemandGenerator(self.rng)
        self.holding_cost = float(holding_cost)
        self.stockout_cost = float(stockout_cost)
        self.max_rounds = int(max_rounds)
        self.shipment_lead_time = max(MIN_SHIPMENT_LEAD_TIME, int(shipment_lead_time))

        self.entities: Dict[Role, SupplyChainEntity] = {
            role: SupplyChainEntity(role, initial_inventory) for role in CHAIN
        }
        self.current_round = 0
        self.demand_history: List[int] = []

    @classmethod
    def from_settings(cls, rng: Optional[random.Random] = None) -> "RoundProcessor":
        rng = rng if rng is not None else random.Random(settings.RANDOM_SEED)
        return cls(
            rng=rng,
            initial_inventory=settings.INITIAL_INVENTORY,
            holding_cost=settings.HOLDING_COST_PER_UNIT,
            stockout_cost=settings.STOCKOUT_COST_PER_UNIT,
            max_rounds=settings.MAX_ROUNDS,
            shipment_lead_time=settings.SHIPMENT_LEAD_TIME,
        )

    @property
    def is_finished(self) -> bool:
        return self.current_round >= self.max_rounds

    def entity(self, role: Role | str) -> SupplyChainEntity:
        return self.entities[Role.parse(role)]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def validate_round(self, round_number: int) -> None:
        if isinstance(round_number, bool) or not isinstance(round_number, int):
            raise InvalidRound(round_number, max_rounds=self.max_rounds)
        if round_number < 1 or round_number > self.max_rounds:
            raise InvalidRound(round_number, max_rounds=self.max_rounds)
        expected = self.current_round + 1
        if round_number != expected:
            raise InvalidRound(round_number, expected=expected)

    # ------------------------------------------------------------------
    # Simulation step
    # ------------------------------------------------------------------
    def _next_incoming_order(self, role: Role, round_number: int) -> int:
        if role is Role.RETAILER:
            demand = self.demand_generator.demand(round_number)
            self.demand_history.append(demand)
            return demand
        downstream = self.entities[downstream_of(role)]
        return downstream.outgoing_orders.popleft() if downstream.outgoing_orders else 0

    def step_entity(
        self,
        entity: SupplyChainEntity,
        round_number: int,
        incoming_order: int,
        order_source: OrderSource,
        strategy: str,
    ) -> RoundRecord:
        """Run the per-role protocol once; ``order_source`` decides the upstream order."""

        # Incoming orders are strictly FIFO even if several have accumulated.
        entity.incoming_orders.append(int(incoming_order))
        order_to_process = entity.incoming_orders.popleft()

        fulfilled = min(order_to_process, entity.inventory)
        unfulfilled = order_to_process - fulfilled
        entity.inventory -= fulfilled

        received = entity.receive_shipment(self.shipment_lead_time)

        view = entity.view(order_to_process, round_number)
        order_placed = max(0, int(order_source(view)))
        entity.outgoing_orders.append(order_placed)
        entity.order_history.append(order_to_process)

        record = RoundRecord(
            round_number=round_number,
            role=entity.role,
            incoming_order=order_to_process,
            fulfilled=fulfilled,
            unfulfilled=unfulfilled,
            received=received,
            order_placed=order_placed,
            inventory=entity.inventory,
            stockout_cost=unfulfilled * self.stockout_cost,
            holding_cost=entity.inventory * self.holding_cost,
            strategy=strategy,
        )
        entity.records.append(record)
        entity.inventory_history.append(entity.inventory)

        downstream_role = downstream_of(entity.role)
        if downstream_role is not None:
            # The supplier produces raw material on demand rather than
            # shipping from its own (possibly empty) stock.
            shipped = order_to_process if entity.role is Role.SUPPLIER else fulfilled
            self.entities[downstream_role].incoming_shipments.append(shipped)

        entity.check_invariants()
        return record

    def process_round(
        self,
        round_number: int,
        external_role: Optional[Role] = None,
        external_quantity: int = 0,
    ) -> Dict[Role, RoundRecord]:
        """Process one complete round; either every role advances or none does."""

        self.validate_round(round_number)

        checkpoint = (
            copy.deepcopy(self.entities),
            list(self.demand_history),
            self.rng.getstate(),
            self.demand_generator.rng.getstate(),
        )
        try:
            records: Dict[Role, RoundRecord] = {}
            for role in PROCESSING_ORDER:
                entity = self.entities[role]
                incoming = self._next_incoming_order(role, round_number)
                if role is external_role:
                    quantity = max(0, int(external_quantity))
                    source: OrderSource = lambda _view, q=quantity: q
                    strategy = EXTERNAL_STRATEGY_LABEL
                else:
                    policy = internal_policy_for(role, round_number, self.rng)
                    source = policy.order
                    strategy = policy.name
                records[role] = self.step_entity(entity, round_number, incoming, source, strategy)
        except Exception:
            self.entities, self.demand_history, rng_state, demand_rng_state = checkpoint
            self.demand_generator.rng.setstate(demand_rng_state)
            self.rng.setstate(rng_state)
            logger.exception("Round %s failed; state rolled back", round_number)
            raise

        self.current_round = round_number
        logger.info(
            "Round %s complete: demand=%s external=%s",
            round_number,
            records[Role.RETAILER].incoming_order,
            external_role.value if external_role else None,
        )
        return records

    def process_external_turn(self, role: Role | str, order_quantity: int, round_number: int) -> RoundRecord:
        """Advance a full round with ``role`` ordering ``order_quantity``."""

        external_role = Role.parse(role)
        records = self.process_round(round_number, external_role, order_quantity)
        return records[external_role]

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------
    def snapshot(self, role: Role | str) -> Dict[str, Any]:
        entity = self.entity(role)
        return {
            "inventory": entity.inventory,
            "pending_orders": list(entity.incoming_orders)[:1],
            "incoming_shipments": list(entity.incoming_shipments),
            "order_history": entity.order_history[-SNAPSHOT_HISTORY_LENGTH:],
        }
