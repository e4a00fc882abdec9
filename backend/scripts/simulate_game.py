#!/usr/bin/env python3
"""Play a full 20-round bullwhip game with a named strategy for the external role."""

from __future__ import annotations

import argparse
import json
import os
from typing import Optional

from bullwhip.core.logging import setup_logging
from bullwhip.core.roles import CHAIN, Role
from bullwhip.services.game_service import GameService
from bullwhip.services.policies import NamedStrategy

logger = setup_logging("bullwhip")


def play_game(
    strategy: NamedStrategy,
    role: Optional[Role],
    seed: Optional[int],
    external_actor: str = "Simulated Player",
) -> GameService:
    game = GameService.initialize(CHAIN, external_actor, seed=seed)
    for round_number in range(1, game.max_rounds + 1):
        played = role or game.assign_random_role(round_number)
        suggestion = game.suggest_order(played, strategy)
        result = game.process_external_turn(played, suggestion.quantity, round_number)
        print(
            f"Round {round_number:>2} {played.value:<12} ordered {suggestion.quantity:>3} "
            f"-> inventory {result.new_inventory:>3}, unfulfilled {result.unfulfilled:>3}"
        )
    return game


def print_report(game: GameService) -> None:
    report = game.report()
    print("\nRankings:")
    for entry in report.results.rankings:
        marker = " *" if entry.is_external else ""
        print(
            f"  {entry.rank}. {entry.role_name:<12} total {entry.total_costs:8.1f} "
            f"(stockout {entry.stockout_costs:.1f}, holding {entry.holding_costs:.1f}, "
            f"responsibility {entry.responsibility_score}){marker}"
        )

    print("\nBullwhip ratios:")
    for role in CHAIN:
        metric = report.bullwhip[role]
        print(f"  {role.label:<12} variance {metric.variance:7.2f}  ratio {metric.bullwhip_ratio:5.2f}")

    print("\nPerformance against customer demand:")
    for entry in report.reports:
        perf = entry.performance
        print(
            f"  {entry.role_name:<12} score {perf.performance_score:7.1f}  "
            f"stockouts {perf.total_stockouts:>4}  ratio {perf.bullwhip_ratio:5.2f}"
        )

    print("\nInsights:")
    for insight in report.insights:
        print(f"  [{insight.type}] {insight.title}: {insight.message}")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in NamedStrategy],
        default=NamedStrategy.BALANCED.value,
        help="Named strategy used for the external role (default: balanced).",
    )
    parser.add_argument(
        "--role",
        choices=[r.value for r in CHAIN],
        default=None,
        help="Role played every round; a random role per round when omitted.",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for a reproducible run.")
    parser.add_argument(
        "--output",
        default=None,
        help="Optional path of a JSON file receiving the exported results.",
    )
    args = parser.parse_args()

    role = Role.parse(args.role) if args.role else None
    game = play_game(NamedStrategy(args.strategy), role, args.seed)
    print_report(game)

    if args.output:
        directory = os.path.dirname(args.output)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(args.output, "w", encoding="utf-8") as handle:
            json.dump(game.export(), handle, indent=2, default=str)
        print(f"\nExported results -> {args.output}")


if __name__ == "__main__":
    main()
