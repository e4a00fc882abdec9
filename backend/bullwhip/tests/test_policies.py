import dataclasses

import pytest

from bullwhip.core.roles import Role
from bullwhip.services.policies import (
    AggressivePolicy,
    BalancedPolicy,
    ConservativePolicy,
    EntityView,
    InternalAggressivePolicy,
    InternalBalancedPolicy,
    InternalReactivePolicy,
    InternalStrategy,
    LeanPolicy,
    NamedStrategy,
    PredictivePolicy,
    ReactivePolicy,
    adjust_order,
    calculate_optimal_order,
    forecast_range,
    select_internal_strategy,
    strategy_description,
)
from bullwhip.services.policy_factory import internal_policy_for, make_internal_policy, make_policy


def _view(inventory=10, incoming=0, history=(), shipments=(), role=Role.WHOLESALER, round_number=6):
    return EntityView(
        role=role,
        inventory=inventory,
        incoming_order=incoming,
        order_history=tuple(history),
        incoming_shipments=tuple(shipments),
        round_number=round_number,
    )


class TestNamedStrategies:
    def test_lean_orders_only_the_shortfall(self):
        assert LeanPolicy().order(_view(inventory=3, incoming=10, shipments=(2, 1))) == 4
        assert LeanPolicy().order(_view(inventory=30, incoming=10)) == 0

    def test_balanced_adds_a_buffer_of_five(self):
        assert BalancedPolicy().order(_view(inventory=3, incoming=10, shipments=(2, 1))) == 9

    def test_aggressive_uses_the_higher_of_demand_and_recent_average(self):
        assert AggressivePolicy().order(_view(inventory=10, incoming=6, history=(4, 8, 9))) == 12
        assert AggressivePolicy().order(_view(inventory=10, incoming=6)) == 11
        assert AggressivePolicy().order(_view(inventory=40, incoming=6)) == 0

    def test_reactive_falls_back_without_history(self):
        assert ReactivePolicy().order(_view(inventory=4, incoming=9, history=(5,))) == 5

    def test_reactive_doubles_the_trend(self):
        assert ReactivePolicy().order(_view(inventory=10, incoming=7, history=(1, 4, 6, 8))) == 4

    def test_predictive_delegates_to_balanced_with_short_history(self):
        view = _view(inventory=3, incoming=10, history=(4, 5), shipments=(2, 1))
        assert PredictivePolicy().order(view) == BalancedPolicy().order(view)

    def test_predictive_combines_trend_and_safety_stock(self):
        # mean 6, slope 2, population std sqrt(8): 6 + 4 + 1.5 * 2.828 - 5 = 9.24
        assert PredictivePolicy().order(_view(inventory=5, history=(2, 4, 6, 8, 10))) == 9

    def test_predictive_uses_only_the_last_five_orders(self):
        assert PredictivePolicy().order(_view(inventory=2, history=(50, 40, 5, 5, 5, 5, 5))) == 3

    def test_unknown_strategy_echoes_the_incoming_order(self):
        assert calculate_optimal_order(_view(incoming=7), "telepathic") == 7

    @pytest.mark.parametrize("strategy", list(NamedStrategy))
    def test_named_strategies_never_go_negative(self, strategy):
        view = _view(inventory=100, incoming=1, history=(9, 1, 9, 1, 9))
        assert calculate_optimal_order(view, strategy) >= 0


class TestInternalPolicies:
    @pytest.mark.parametrize(
        "round_number, role, expected",
        [
            (1, Role.SUPPLIER, InternalStrategy.CONSERVATIVE),
            (4, Role.RETAILER, InternalStrategy.CONSERVATIVE),
            (5, Role.RETAILER, InternalStrategy.REACTIVE),
            (8, Role.DISTRIBUTOR, InternalStrategy.BALANCED),
            (8, Role.WHOLESALER, InternalStrategy.BALANCED),
            (11, Role.MANUFACTURER, InternalStrategy.CONSERVATIVE),
            (11, Role.SUPPLIER, InternalStrategy.AGGRESSIVE),
            (12, Role.SUPPLIER, InternalStrategy.REACTIVE),
            (20, Role.DISTRIBUTOR, InternalStrategy.REACTIVE),
        ],
    )
    def test_strategy_selection_by_round_and_role(self, round_number, role, expected):
        assert select_internal_strategy(role, round_number) is expected

    def test_conservative_echoes_the_current_order(self, fixed_rng):
        assert ConservativePolicy(fixed_rng(0)).order(_view(inventory=10, incoming=6)) == 6

    def test_balanced_adds_twenty_percent(self, fixed_rng):
        assert InternalBalancedPolicy(fixed_rng(0)).order(_view(inventory=10, incoming=5)) == 6

    def test_aggressive_adds_an_emergency_buffer_when_low(self, fixed_rng):
        policy = InternalAggressivePolicy(fixed_rng(0))
        assert policy.order(_view(inventory=10, incoming=5)) == 8
        assert policy.order(_view(inventory=4, incoming=5)) == 13

    def test_reactive_follows_the_trend(self, fixed_rng):
        policy = InternalReactivePolicy(fixed_rng(0))
        assert policy.order(_view(inventory=10, incoming=3, history=(4, 6, 8))) == 12
        # Without history the average is the current order and the trend is zero.
        assert policy.order(_view(inventory=10, incoming=3)) == 3

    def test_noise_is_applied_before_clamping(self, fixed_rng):
        assert adjust_order(1, inventory=10, rng=fixed_rng(-2)) == 0
        assert adjust_order(5, inventory=10, rng=fixed_rng(2)) == 7

    def test_overstock_scales_orders_down(self, fixed_rng):
        assert adjust_order(10, inventory=25, rng=fixed_rng(2)) == 8

    def test_understock_scales_orders_up(self, fixed_rng):
        assert adjust_order(10, inventory=2, rng=fixed_rng(-2)) == 11

    def test_views_are_frozen(self):
        view = _view()
        with pytest.raises(dataclasses.FrozenInstanceError):
            view.inventory = 0

    def test_factory_builds_the_scheduled_policy(self, fixed_rng):
        policy = internal_policy_for(Role.SUPPLIER, 7, fixed_rng(0))
        assert isinstance(policy, InternalAggressivePolicy)
        assert policy.name == "aggressive"
        assert isinstance(make_internal_policy("conservative"), ConservativePolicy)
        with pytest.raises(ValueError):
            make_internal_policy("lean")


class TestDecisionSupport:
    def test_forecast_without_history(self):
        assert forecast_range(_view()) == [4, 8]

    def test_forecast_from_recent_trend(self):
        # avg 6, trend 4/3, forecast 8.67
        assert forecast_range(_view(history=(4, 6, 8))) == [6, 11]

    def test_unknown_strategy_description_falls_back_to_balanced(self):
        assert strategy_description("mystery")["name"] == "Balanced Approach"
        assert strategy_description(NamedStrategy.PREDICTIVE)["name"] == "Forecasting"

    def test_make_policy(self):
        assert isinstance(make_policy("lean"), LeanPolicy)
        assert make_policy("balanced", {"buffer": 0}).order(_view(inventory=3, incoming=10)) == 7
        with pytest.raises(ValueError):
            make_policy("unknown")
