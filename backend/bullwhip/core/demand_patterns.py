"""Customer demand for the retailer, drawn from a fixed market-cycle schedule."""

import random
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from ..utils.numeric import round_half_up


class DemandPhaseName(str, Enum):
    STABLE_LOW = "stable_low"
    RAMP = "ramp"
    PEAK = "peak"
    SHARP_DROP = "sharp_drop"
    STABILIZE = "stabilize"
    FINAL_SPIKE = "final_spike"


@dataclass(frozen=True)
class DemandPhase:
    """Inclusive demand bounds and relative noise for one round."""

    min: int
    max: int
    volatility: float
    name: DemandPhaseName = DemandPhaseName.STABLE_LOW


def build_phase_schedule() -> List[DemandPhase]:
    """Return the 20-round schedule: 5 + 4 + 3 + 3 + 3 + 2 rounds across six phases."""
    schedule: List[DemandPhase] = []

    # Stable low demand (rounds 1-5)
    schedule.extend(DemandPhase(4, 6, 0.1, DemandPhaseName.STABLE_LOW) for _ in range(5))

    # Gradual increase (rounds 6-9)
    schedule.extend(DemandPhase(5 + i, 7 + i, 0.15, DemandPhaseName.RAMP) for i in range(4))

    # Peak (rounds 10-12)
    schedule.extend(DemandPhase(8, 12, 0.2, DemandPhaseName.PEAK) for _ in range(3))

    # Sharp drop (rounds 13-15)
    schedule.extend(DemandPhase(6 - i, 8 - i, 0.15, DemandPhaseName.SHARP_DROP) for i in range(3))

    # Stabilization (rounds 16-18)
    schedule.extend(DemandPhase(4, 6, 0.1, DemandPhaseName.STABILIZE) for _ in range(3))

    # Final spike (rounds 19-20)
    schedule.extend(DemandPhase(7, 10, 0.2, DemandPhaseName.FINAL_SPIKE) for _ in range(2))

    return schedule


class DemandGenerator:
    """Generates retailer demand from the phase schedule and an injected RNG."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        schedule: Optional[List[DemandPhase]] = None,
    ) -> None:
        self.rng = rng if rng is not None else random.Random()
        self.schedule = list(schedule) if schedule is not None else build_phase_schedule()

    @property
    def num_rounds(self) -> int:
        return len(self.schedule)

    def phase_for(self, round_number: int) -> Optional[DemandPhase]:
        if round_number < 1 or round_number > self.num_rounds:
            return None
        return self.schedule[round_number - 1]

    def demand(self, round_number: int) -> int:
        """Draw the customer demand for ``round_number`` (0 outside the schedule)."""
        phase = self.phase_for(round_number)
        if phase is None:
            return 0

        base = self.rng.randint(phase.min, phase.max)
        noise = self.rng.uniform(-1.0, 1.0) * phase.volatility * base
        return max(0, round_half_up(base + noise))

    def generate(self, num_rounds: Optional[int] = None) -> List[int]:
        """Draw a whole demand series, consuming the RNG round by round."""
        count = self.num_rounds if num_rounds is None else num_rounds
        return [self.demand(week) for week in range(1, count + 1)]
