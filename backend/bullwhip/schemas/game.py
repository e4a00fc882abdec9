from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.roles import CHAIN, Role
from ..services.policies import NamedStrategy


class GameCreate(BaseModel):
    external_actor: str = Field(default="Player", max_length=100, description="Label of the external actor")
    roles: List[Role] = Field(default_factory=lambda: list(CHAIN), description="Roles taking part in the chain")
    seed: Optional[int] = Field(default=None, description="Seed for reproducible demand and policy noise")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "external_actor": "Alice",
                "roles": ["supplier", "manufacturer", "wholesaler", "distributor", "retailer"],
                "seed": 42,
            }
        }
    )

    @field_validator("roles")
    @classmethod
    def validate_full_chain(cls, v: List[Role]) -> List[Role]:
        if sorted(v, key=CHAIN.index) != list(CHAIN):
            raise ValueError("roles must list each of the five supply chain roles exactly once")
        return v


class TurnRequest(BaseModel):
    role: str = Field(..., description="Role the external actor controls this round")
    quantity: int = Field(..., ge=0, description="Order quantity placed upstream")
    round: int = Field(..., ge=1, description="Round number being played")


class RoundResult(BaseModel):
    new_inventory: int
    stockout_cost: float
    holding_cost: float
    fulfilled: int
    unfulfilled: int


class RoundState(BaseModel):
    round: int
    role: Role
    inventory: int
    pending_orders: List[int] = Field(default_factory=list)
    incoming_shipments: List[int] = Field(default_factory=list)
    order_history: List[int] = Field(default_factory=list, description="Last 10 orders received")


class OrderSuggestion(BaseModel):
    role: Role
    strategy: NamedStrategy
    quantity: int
    forecast: List[int]
    description: Dict[str, Any]
    recommendations: List[Dict[str, str]] = Field(default_factory=list)


class RankingEntry(BaseModel):
    rank: int
    role: Role
    role_name: str
    total_costs: float
    stockout_costs: float
    holding_costs: float
    responsibility_score: int
    avg_inventory: float
    total_stockouts: int
    is_external: bool = False


class BullwhipMetric(BaseModel):
    mean: float
    variance: float
    std_dev: float
    coefficient_of_variation: float
    bullwhip_ratio: float


class Insight(BaseModel):
    type: str
    title: str
    message: str


class ExternalRoleAssignment(BaseModel):
    round: int
    role: Role


class FinalResults(BaseModel):
    rankings: List[RankingEntry]
    inventory_history_by_role: Dict[Role, List[int]]
    order_history_by_role: Dict[Role, List[int]]
    external_actor_role_history: List[ExternalRoleAssignment]


class PerformanceAnalysis(BaseModel):
    total_stockouts: int
    avg_inventory: float
    order_variability: float
    demand_variability: float
    bullwhip_ratio: float
    performance_score: float = Field(..., ge=0, le=1000)


class PerformanceReport(BaseModel):
    role: Role
    role_name: str
    total_costs: float
    stockout_costs: float
    holding_costs: float
    avg_inventory: float
    max_inventory: int
    min_inventory: int
    total_demand: int
    total_stockouts: int
    stockout_rounds: int
    service_level: float
    fill_rate: float
    inventory_turnover: float
    inventory_history: List[int]
    order_history: List[int]
    stockout_history: List[int]
    cost_history: List[Dict[str, float]]
    performance: PerformanceAnalysis


class GameReport(BaseModel):
    external_actor: str
    results: FinalResults
    bullwhip: Dict[Role, BullwhipMetric]
    insights: List[Insight]
    reports: List[PerformanceReport]
