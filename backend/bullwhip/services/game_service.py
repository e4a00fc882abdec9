"""Single-session game service wrapping the round processor and analytics."""

from __future__ import annotations

import logging
import random
import threading
from typing import Dict, Iterable, List, Optional

from ..core.config import settings
from ..core.exceptions import GameNotFinished, InvalidRound
from ..core.roles import CHAIN, Role
from ..schemas.game import (
    BullwhipMetric,
    ExternalRoleAssignment,
    FinalResults,
    GameReport,
    Insight,
    OrderSuggestion,
    PerformanceAnalysis,
    PerformanceReport,
    RankingEntry,
    RoundResult,
    RoundState,
)
from . import analytics
from .engine import RoundProcessor, SupplyChainEntity
from .policies import NamedStrategy, calculate_optimal_order, forecast_range, strategy_description

logger = logging.getLogger(__name__)


class GameService:
    """Owns one game: the only entry point that mutates supply chain state.

    Readers (charts, reports, the HTTP layer) receive pydantic models or
    copies of the histories, never the live entities.  Every public
    operation runs under one re-entrant lock, so a round is validated,
    processed and committed before any other call sees the game.
    """

    def __init__(self, external_actor: str, processor: RoundProcessor, seed: Optional[int] = None) -> None:
        self.external_actor = external_actor
        self.processor = processor
        self.seed = seed
        self._lock = threading.RLock()
        self._role_rng = random.Random(None if seed is None else f"{seed}:roles")
        self._external_roles: Dict[int, Role] = {}
        self._final_results: Optional[FinalResults] = None

    @classmethod
    def initialize(
        cls,
        role_list: Iterable[Role | str],
        external_actor_label: str,
        seed: Optional[int] = None,
    ) -> "GameService":
        """Build the five entities with the configured initial inventory and demand schedule."""

        roles = [Role.parse(role) for role in role_list]
        if sorted(roles, key=CHAIN.index) != list(CHAIN):
            raise ValueError("A game needs each of the five supply chain roles exactly once")

        if seed is None:
            seed = settings.RANDOM_SEED
        processor = RoundProcessor.from_settings(random.Random(seed))
        logger.info("Initialized game for %s (seed=%s)", external_actor_label, seed)
        return cls(external_actor_label, processor, seed=seed)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def current_round(self) -> int:
        return self.processor.current_round

    @property
    def max_rounds(self) -> int:
        return self.processor.max_rounds

    @property
    def is_finished(self) -> bool:
        return self.processor.is_finished

    @property
    def entities(self) -> Dict[Role, SupplyChainEntity]:
        return self.processor.entities

    @property
    def external_actor_role_history(self) -> List[ExternalRoleAssignment]:
        with self._lock:
            return [
                ExternalRoleAssignment(round=round_number, role=role)
                for round_number, role in sorted(self._external_roles.items())
            ]

    # ------------------------------------------------------------------
    # Turn handling
    # ------------------------------------------------------------------
    def assign_random_role(self, round_number: int) -> Role:
        """Pick the role the external actor plays in ``round_number``."""

        with self._lock:
            if round_number < 1 or round_number > self.max_rounds:
                raise InvalidRound(round_number, max_rounds=self.max_rounds)
            role = self._role_rng.choice(CHAIN)
            self._external_roles[round_number] = role
            return role

    def process_external_turn(self, role: Role | str, quantity: int, round_number: int) -> RoundResult:
        with self._lock:
            record = self.processor.process_external_turn(role, quantity, round_number)
            self._external_roles[round_number] = record.role
            self._final_results = None
        return RoundResult(
            new_inventory=record.inventory,
            stockout_cost=record.stockout_cost,
            holding_cost=record.holding_cost,
            fulfilled=record.fulfilled,
            unfulfilled=record.unfulfilled,
        )

    def snapshot(self, round_number: int, role: Role | str) -> RoundState:
        if round_number < 0 or round_number > self.max_rounds:
            raise InvalidRound(round_number, max_rounds=self.max_rounds)
        parsed = Role.parse(role)
        with self._lock:
            state = self.processor.snapshot(parsed)
        return RoundState(round=round_number, role=parsed, **state)

    def suggest_order(self, role: Role | str, strategy: NamedStrategy | str = NamedStrategy.BALANCED) -> OrderSuggestion:
        """Suggest an order for ``role`` using a named strategy, without changing state.

        The upcoming round's incoming order is not known until the round is
        processed, so the suggestion treats the order ``role`` received last
        round as the demand to cover (0 before the first round).
        """

        key = NamedStrategy(strategy)
        with self._lock:
            entity = self.processor.entity(role)
            incoming = entity.order_history[-1] if entity.order_history else 0
            view = entity.view(incoming, self.current_round + 1)
        return OrderSuggestion(
            role=entity.role,
            strategy=key,
            quantity=calculate_optimal_order(view, key),
            forecast=forecast_range(view),
            description=strategy_description(key),
            recommendations=analytics.recommendations(view),
        )

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------
    def _last_external_role(self) -> Optional[Role]:
        if not self._external_roles:
            return None
        return self._external_roles[max(self._external_roles)]

    def final_results(self) -> FinalResults:
        """Rankings and histories once the last round has been played (idempotent)."""

        with self._lock:
            if not self.is_finished:
                raise GameNotFinished(
                    f"Final results need {self.max_rounds} rounds; only {self.current_round} played"
                )
            if self._final_results is None:
                rankings = analytics.rank_entities(self.entities, self._last_external_role())
                self._final_results = FinalResults(
                    rankings=[RankingEntry(**row) for row in rankings],
                    inventory_history_by_role={
                        role: list(entity.inventory_history) for role, entity in self.entities.items()
                    },
                    order_history_by_role={
                        role: list(entity.order_history) for role, entity in self.entities.items()
                    },
                    external_actor_role_history=self.external_actor_role_history,
                )
            return self._final_results.model_copy(deep=True)

    def _performance_report(self, entity: SupplyChainEntity) -> PerformanceReport:
        # Orders placed are scored against customer demand, with the stock on
        # hand at the start of each round.
        performance = analytics.analyze_performance(
            entity.placed_order_history,
            entity.inventory_history,
            self.processor.demand_history,
        )
        return PerformanceReport(
            **analytics.performance_report(entity),
            performance=PerformanceAnalysis(**performance),
        )

    def report(self) -> GameReport:
        with self._lock:
            results = self.final_results()
            metrics = analytics.bullwhip_metrics(self.entities)
            rankings = [entry.model_dump() for entry in results.rankings]
            return GameReport(
                external_actor=self.external_actor,
                results=results,
                bullwhip={role: BullwhipMetric(**stats) for role, stats in metrics.items()},
                insights=[Insight(**item) for item in analytics.insights(rankings, metrics)],
                reports=[self._performance_report(self.entities[role]) for role in CHAIN],
            )

    def export(self) -> Dict[str, object]:
        with self._lock:
            results = self.final_results()
            metrics = analytics.bullwhip_metrics(self.entities)
            rankings = [entry.model_dump() for entry in results.rankings]
            return analytics.export_results(
                self.entities, rankings, metrics, self.external_actor, self.max_rounds
            )
