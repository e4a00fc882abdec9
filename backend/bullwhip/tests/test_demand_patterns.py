import math
import random

from bullwhip.core.demand_patterns import (
    DemandGenerator,
    DemandPhase,
    DemandPhaseName,
    build_phase_schedule,
)


def test_schedule_has_six_phases_over_twenty_rounds():
    schedule = build_phase_schedule()

    assert len(schedule) == 20
    counts = {}
    for phase in schedule:
        counts[phase.name] = counts.get(phase.name, 0) + 1
    assert counts == {
        DemandPhaseName.STABLE_LOW: 5,
        DemandPhaseName.RAMP: 4,
        DemandPhaseName.PEAK: 3,
        DemandPhaseName.SHARP_DROP: 3,
        DemandPhaseName.STABILIZE: 3,
        DemandPhaseName.FINAL_SPIKE: 2,
    }


def test_schedule_bounds_drift_per_phase():
    schedule = build_phase_schedule()

    assert (schedule[0].min, schedule[0].max, schedule[0].volatility) == (4, 6, 0.1)
    # Ramp climbs one unit per round.
    assert [(p.min, p.max) for p in schedule[5:9]] == [(5, 7), (6, 8), (7, 9), (8, 10)]
    assert all((p.min, p.max) == (8, 12) for p in schedule[9:12])
    assert [(p.min, p.max) for p in schedule[12:15]] == [(6, 8), (5, 7), (4, 6)]
    assert all((p.min, p.max) == (7, 10) for p in schedule[18:20])


def test_demand_outside_schedule_is_zero():
    generator = DemandGenerator(random.Random(3))

    assert generator.demand(0) == 0
    assert generator.demand(21) == 0
    assert generator.demand(-4) == 0


def test_demand_stays_within_noisy_bounds():
    generator = DemandGenerator(random.Random(11))
    schedule = build_phase_schedule()

    for _ in range(25):
        for week, phase in enumerate(schedule, start=1):
            value = generator.demand(week)
            assert 0 <= value <= math.ceil(phase.max * (1 + phase.volatility))


def test_seeded_generators_repeat_the_same_series():
    first = DemandGenerator(random.Random(42)).generate()
    second = DemandGenerator(random.Random(42)).generate()

    assert first == second
    assert len(first) == 20


def test_zero_volatility_phase_returns_the_base():
    schedule = [DemandPhase(5, 5, 0.0) for _ in range(20)]
    generator = DemandGenerator(random.Random(0), schedule)

    assert generator.generate() == [5] * 20
