"""Post-game analytics: costs, service levels, bullwhip metrics, rankings and insights.

Every function here is stateless and only reads the entities it is given.
``entities`` arguments are mappings from :class:`Role` (or role name) to
:class:`~bullwhip.services.engine.SupplyChainEntity`.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ..core.roles import CHAIN, Role, chain_distance, chain_index, downstream_of
from ..utils.numeric import mean, population_std, population_variance, safe_ratio
from .engine import SupplyChainEntity
from .policies import EntityView

COST_STOCKOUT = 1.0
COST_HOLDING = 0.5

#: Shipments need this many rounds per chain hop before a stockout propagates.
RESPONSIBILITY_LAG_PER_HOP = 2
HIGH_RESPONSIBILITY_THRESHOLD = 10


def _by_role(entities: Mapping[Any, SupplyChainEntity]) -> Dict[Role, SupplyChainEntity]:
    return {Role.parse(role): entity for role, entity in entities.items()}


# ----------------------------------------------------------------------
# Costs and ratios
# ----------------------------------------------------------------------
def round_cost(
    inventory: int,
    unfulfilled: int,
    stockout_rate: float = COST_STOCKOUT,
    holding_rate: float = COST_HOLDING,
) -> Dict[str, float]:
    stockout = unfulfilled * stockout_rate
    holding = inventory * holding_rate
    return {"stockout": stockout, "holding": holding, "total": stockout + holding}


def total_costs(cost_history: Iterable[Mapping[str, float]]) -> Dict[str, float]:
    totals = {"stockout": 0.0, "holding": 0.0, "total": 0.0}
    for entry in cost_history:
        for key in totals:
            totals[key] += float(entry.get(key, 0.0))
    return totals


def service_level(fulfilled: float, total: float) -> float:
    """Percentage of demand met from stock; 100 when there was no demand."""
    if total == 0:
        return 100.0
    return fulfilled / total * 100


def fill_rate(orders_filled: float, total_orders: float) -> float:
    if total_orders == 0:
        return 100.0
    return orders_filled / total_orders * 100


def inventory_turnover(avg_inventory: float, total_demand: float) -> float:
    return safe_ratio(total_demand, avg_inventory, default=0.0)


# ----------------------------------------------------------------------
# Bullwhip
# ----------------------------------------------------------------------
def order_statistics(orders: Sequence[int]) -> Dict[str, float]:
    avg = mean(orders)
    variance = population_variance(orders)
    std_dev = math.sqrt(variance)
    return {
        "mean": avg,
        "variance": variance,
        "std_dev": std_dev,
        "coefficient_of_variation": safe_ratio(std_dev, avg, default=0.0),
    }


def bullwhip_metrics(entities: Mapping[Any, SupplyChainEntity]) -> Dict[Role, Dict[str, float]]:
    """Order-variance statistics per role and the ratio to the downstream neighbour.

    ``bullwhip_ratio`` is ``variance(role) / variance(downstream)``.  The most
    downstream role present, and any role whose downstream variance is zero,
    gets a neutral ratio of 1.
    """
    by_role = _by_role(entities)
    metrics: Dict[Role, Dict[str, float]] = {}

    for role in CHAIN:
        entity = by_role.get(role)
        if entity is None:
            continue
        metrics[role] = order_statistics(entity.order_history)

    for role, stats in metrics.items():
        downstream = downstream_of(role)
        downstream_stats = metrics.get(downstream) if downstream is not None else None
        if downstream_stats is None:
            stats["bullwhip_ratio"] = 1.0
        else:
            stats["bullwhip_ratio"] = safe_ratio(stats["variance"], downstream_stats["variance"], default=1.0)

    return metrics


# ----------------------------------------------------------------------
# Responsibility and rankings
# ----------------------------------------------------------------------
def responsibility_score(
    role: Role | str,
    entities: Mapping[Any, SupplyChainEntity],
    role_order: Sequence[Role | str] = CHAIN,
) -> int:
    """Attribute downstream stockouts to this role's earlier stockouts.

    For every round ``r`` in which ``role`` stocked out, each downstream role
    ``k`` hops away is inspected at round ``r + 2k``; if it also stocked out
    then, the smaller of the two shortfalls is added to the score.
    """
    by_role = _by_role(entities)
    source = Role.parse(role)
    entity = by_role.get(source)
    if entity is None:
        return 0

    downstream_roles = [
        (other, chain_distance(source, other))
        for other in (Role.parse(r) for r in role_order)
        if chain_distance(source, other) > 0
    ]

    score = 0
    stockouts = entity.stockout_history
    for round_idx, stockout in enumerate(stockouts):
        if stockout <= 0:
            continue
        for downstream_role, distance in downstream_roles:
            downstream_entity = by_role.get(downstream_role)
            if downstream_entity is None:
                continue
            affected = round_idx + RESPONSIBILITY_LAG_PER_HOP * distance
            downstream_stockouts = downstream_entity.stockout_history
            if affected < len(downstream_stockouts) and downstream_stockouts[affected] > 0:
                score += min(stockout, downstream_stockouts[affected])
    return score


def rank_entities(
    entities: Mapping[Any, SupplyChainEntity],
    external_role: Optional[Role | str] = None,
) -> List[Dict[str, Any]]:
    """Rank roles by total cost (lowest first); ties keep chain order."""
    by_role = _by_role(entities)
    external = Role.parse(external_role) if external_role is not None else None

    rows: List[Dict[str, Any]] = []
    for role in sorted(by_role, key=chain_index):
        entity = by_role[role]
        history = entity.inventory_history
        rows.append(
            {
                "role": role,
                "role_name": role.label,
                "total_costs": entity.stockout_costs + entity.holding_costs,
                "stockout_costs": entity.stockout_costs,
                "holding_costs": entity.holding_costs,
                "responsibility_score": responsibility_score(role, by_role),
                "avg_inventory": mean(history),
                "total_stockouts": entity.unfulfilled_demand,
                "is_external": role is external,
            }
        )

    # sorted() is stable, so equal costs keep the supplier-first chain order.
    rows = sorted(rows, key=lambda row: row["total_costs"])
    for idx, row in enumerate(rows, start=1):
        row["rank"] = idx
    return rows


# ----------------------------------------------------------------------
# Insights
# ----------------------------------------------------------------------
def insights(
    rankings: Sequence[Mapping[str, Any]],
    metrics: Mapping[Any, Mapping[str, float]],
) -> List[Dict[str, str]]:
    messages: List[Dict[str, str]] = []

    external = next((row for row in rankings if row.get("is_external")), None)
    if external is not None:
        if external["rank"] == 1:
            messages.append({
                "type": "success",
                "title": "Excellent Performance!",
                "message": "You achieved the lowest total costs in the supply chain. Great job managing inventory and demand!",
            })
        elif external["rank"] <= 2:
            messages.append({
                "type": "good",
                "title": "Strong Performance",
                "message": "You performed well, though there's room for optimization in balancing inventory and stockouts.",
            })
        else:
            messages.append({
                "type": "info",
                "title": "Learning Opportunity",
                "message": "Consider strategies to better balance inventory levels and order quantities to reduce costs.",
            })

    ratios = [float(m.get("bullwhip_ratio", 1.0)) for m in metrics.values()] or [1.0]
    max_bullwhip = max(ratios)
    if max_bullwhip > 2:
        messages.append({
            "type": "warning",
            "title": "Strong Bullwhip Effect Detected",
            "message": (
                f"Order variance amplified by {max_bullwhip:.1f}x up the supply chain. This demonstrates "
                "how small demand changes cascade into larger fluctuations."
            ),
        })
    elif max_bullwhip > 1.5:
        messages.append({
            "type": "info",
            "title": "Moderate Bullwhip Effect",
            "message": "The supply chain showed typical variance amplification. Better information sharing could reduce this.",
        })
    else:
        messages.append({
            "type": "success",
            "title": "Controlled Variance",
            "message": "The supply chain maintained relatively stable order quantities, minimizing the Bullwhip Effect.",
        })

    responsible = [row for row in rankings if row.get("responsibility_score", 0) > HIGH_RESPONSIBILITY_THRESHOLD]
    if responsible:
        names = ", ".join(str(row["role_name"]) for row in responsible)
        messages.append({
            "type": "info",
            "title": "Upstream Impact",
            "message": f"{names} had high responsibility scores, meaning their stockouts cascaded downstream.",
        })

    # Roles without any cost carry no signal about the stockout/holding mix.
    shares = [
        row["stockout_costs"] / row["total_costs"]
        for row in rankings
        if row.get("total_costs", 0) > 0
    ]
    if shares:
        avg_stockout_ratio = sum(shares) / len(shares)
        if avg_stockout_ratio > 0.7:
            messages.append({
                "type": "tip",
                "title": "High Stockout Costs",
                "message": "Most costs came from stockouts. Consider maintaining higher safety stock levels.",
            })
        elif avg_stockout_ratio < 0.3:
            messages.append({
                "type": "tip",
                "title": "High Holding Costs",
                "message": "Most costs came from excess inventory. Consider more aggressive inventory reduction.",
            })

    return messages


# ----------------------------------------------------------------------
# Reports
# ----------------------------------------------------------------------
def performance_report(entity: SupplyChainEntity) -> Dict[str, Any]:
    inventory_history = entity.inventory_history
    stockout_history = entity.stockout_history
    total_demand = sum(entity.order_history)
    total_stockouts = sum(stockout_history)
    avg_inventory = mean(inventory_history)
    costs = total_costs(entity.cost_history)

    return {
        "role": entity.role,
        "role_name": entity.role.label,
        "total_costs": costs["total"],
        "stockout_costs": costs["stockout"],
        "holding_costs": costs["holding"],
        "avg_inventory": avg_inventory,
        "max_inventory": max(inventory_history),
        "min_inventory": min(inventory_history),
        "total_demand": total_demand,
        "total_stockouts": total_stockouts,
        "stockout_rounds": sum(1 for s in stockout_history if s > 0),
        "service_level": round(service_level(total_demand - total_stockouts, total_demand), 1),
        "fill_rate": round(fill_rate(entity.fulfilled_demand, total_demand), 1),
        "inventory_turnover": round(inventory_turnover(avg_inventory, total_demand), 2),
        "inventory_history": list(inventory_history),
        "order_history": list(entity.order_history),
        "stockout_history": list(stockout_history),
        "cost_history": entity.cost_history,
    }


def performance_score(total_stockouts: float, avg_inventory: float, bullwhip_ratio: float) -> float:
    penalty = total_stockouts * 10 + avg_inventory * 0.5 + max(0.0, bullwhip_ratio - 1) * 20
    return max(0.0, 1000 - penalty)


def analyze_performance(
    order_history: Sequence[int],
    inventory_history: Sequence[int],
    demand_history: Sequence[int],
) -> Dict[str, float]:
    """Score a single order stream against the demand it was answering."""
    total_stockouts = sum(
        max(0, demand - (inventory_history[idx] if idx < len(inventory_history) else 0))
        for idx, demand in enumerate(demand_history)
    )
    avg_inventory = mean(inventory_history)
    order_variability = population_std(order_history)
    demand_variability = population_std(demand_history)
    ratio = order_variability / (demand_variability or 1)

    return {
        "total_stockouts": total_stockouts,
        "avg_inventory": avg_inventory,
        "order_variability": order_variability,
        "demand_variability": demand_variability,
        "bullwhip_ratio": ratio,
        "performance_score": performance_score(total_stockouts, avg_inventory, ratio),
    }


def recommendations(view: EntityView) -> List[Dict[str, str]]:
    advice: List[Dict[str, str]] = []

    if view.inventory < 3:
        advice.append({
            "type": "warning",
            "message": "Low inventory detected. Consider ordering more to prevent stockouts.",
            "priority": "high",
        })
    elif view.inventory > 20:
        advice.append({
            "type": "info",
            "message": "High inventory levels. Consider reducing orders to minimize holding costs.",
            "priority": "medium",
        })

    if len(view.order_history) >= 3:
        recent = view.recent_orders(3)
        if population_std(recent) > mean(recent) * 0.5:
            advice.append({
                "type": "tip",
                "message": "Your order quantities vary significantly. Consistent ordering helps reduce the Bullwhip Effect.",
                "priority": "medium",
            })

    if view.round_number < 5:
        advice.append({
            "type": "info",
            "message": "Early game: Focus on understanding demand patterns before building large inventories.",
            "priority": "low",
        })
    elif view.round_number > 15:
        advice.append({
            "type": "info",
            "message": "End game approaching: Consider liquidating excess inventory to minimize holding costs.",
            "priority": "low",
        })

    return advice


def export_results(
    entities: Mapping[Any, SupplyChainEntity],
    rankings: Sequence[Mapping[str, Any]],
    metrics: Mapping[Any, Mapping[str, float]],
    external_actor: str,
    total_rounds: int,
) -> Dict[str, Any]:
    by_role = _by_role(entities)
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "external_actor": external_actor,
        "summary": {
            "total_rounds": total_rounds,
            "rankings": [
                {
                    "rank": row["rank"],
                    "role": row["role_name"],
                    "total_costs": row["total_costs"],
                    "responsibility_score": row["responsibility_score"],
                }
                for row in rankings
            ],
        },
        "detailed_metrics": {
            "cost_breakdown": [
                {
                    "role": row["role_name"],
                    "stockout_costs": row["stockout_costs"],
                    "holding_costs": row["holding_costs"],
                    "total": row["total_costs"],
                }
                for row in rankings
            ],
            "bullwhip_effect": {Role.parse(role).value: dict(stats) for role, stats in metrics.items()},
            "inventory_profiles": [
                {
                    "role": role.value,
                    "avg_inventory": mean(entity.inventory_history),
                    "max_inventory": max(entity.inventory_history),
                    "min_inventory": min(entity.inventory_history),
                }
                for role, entity in by_role.items()
            ],
        },
    }
