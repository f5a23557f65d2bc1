"""Tests for station generation and the market simulation."""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import numpy as np
import pytest

from z3d.core.numeric import EPSILON
from z3d.market import (
    REFERENCE_MONTHLY_PRICE,
    MarketSimulator,
    ShowCategory,
    Station,
    StationGenerator,
    base_upsell_fraction,
    converge_weights,
    execute_spend,
    gross_sales,
    run_market_simulation,
    sales_per_dollar,
    timeline_frame,
)


def make_station(station_id, spot_cost="100", opd="0.5", upsell="0.4", month=1):
    return Station(
        station_id=station_id,
        spot_cost=Decimal(spot_cost),
        response_ratio=Decimal(opd) * REFERENCE_MONTHLY_PRICE,
        orders_per_dollar=Decimal(opd),
        upsell_rate=Decimal(upsell),
        first_month=month,
        last_active_month=month + 11,
    )


BASE_RUN = dict(
    initial_budget=1000,
    months=1,
    new_units_per_month=1,
    cancellation_rate=0,
    category="C",
    monthly_price=Decimal("59.95"),
    yearly_price=Decimal("499.00"),
    weight_steps=4,
)


class TestShowCategory:
    """Test category parsing and ranges."""

    @pytest.mark.parametrize("raw,expected", [
        ("A", ShowCategory.A),
        ("b", ShowCategory.B),
        ("delta", ShowCategory.D),
        ("X", ShowCategory.C),
        ("", ShowCategory.C),
        (None, ShowCategory.C),
        (ShowCategory.A, ShowCategory.A),
    ])
    def test_parse(self, raw, expected):
        """First letter picks the category; anything else is C."""
        assert ShowCategory.parse(raw) is expected

    def test_response_ranges(self):
        """Each category carries its response-ratio range."""
        assert ShowCategory.A.response_range == (Decimal("0"), Decimal("2"))
        assert ShowCategory.B.response_range == (Decimal("4"), Decimal("12"))
        assert ShowCategory.C.response_range == (Decimal("12"), Decimal("60"))
        assert ShowCategory.D.response_range == (Decimal("60"), Decimal("100"))


class TestStationGenerator:
    """Test station parameter draws."""

    def test_base_upsell_curve(self):
        """Base upsell runs 10% -> 90% with a 40% midpoint."""
        assert base_upsell_fraction(Decimal("0")) == Decimal("0.10")
        assert float(base_upsell_fraction(Decimal("1"))) == pytest.approx(0.90)
        assert float(base_upsell_fraction(Decimal("0.5"))) == pytest.approx(0.40, abs=1e-6)

    @pytest.mark.parametrize("category", list(ShowCategory))
    def test_draws_within_bounds(self, category):
        """Ratios, upsell and costs stay within their ranges."""
        gen = StationGenerator(category, np.random.default_rng(11))
        low, high = category.response_range

        for i in range(200):
            s = gen.generate(station_id=i + 1, month=3)
            assert low <= s.response_ratio <= high
            assert Decimal("0.10") <= s.upsell_rate <= Decimal("0.90")
            assert Decimal("20") <= s.spot_cost <= Decimal("200")
            assert s.orders_per_dollar >= EPSILON
            assert s.first_month == 3
            assert s.last_active_month == 14

    def test_orders_per_dollar_from_reference_price(self):
        """orders_per_dollar is the ratio at the reference price."""
        gen = StationGenerator("D", np.random.default_rng(5))
        s = gen.generate(station_id=1, month=1)

        assert s.orders_per_dollar == s.response_ratio / REFERENCE_MONTHLY_PRICE

    def test_two_decimal_draws(self):
        """Ratio and cost are drawn to the cent."""
        gen = StationGenerator("C", np.random.default_rng(2))
        s = gen.generate(station_id=1, month=1)

        assert s.response_ratio == s.response_ratio.quantize(Decimal("0.01"))
        assert s.spot_cost == s.spot_cost.quantize(Decimal("0.01"))

    def test_seeded_generators_agree(self):
        """The same seed yields the same stations."""
        a = StationGenerator("B", np.random.default_rng(99))
        b = StationGenerator("B", np.random.default_rng(99))

        assert [a.generate(i, 1) for i in range(10)] == [b.generate(i, 1) for i in range(10)]

    def test_station_lifetime(self):
        """A station is active for exactly 12 months."""
        s = make_station(1, month=2)

        assert not s.is_active(1)
        assert s.is_active(2)
        assert s.is_active(13)
        assert not s.is_active(14)


class TestSalesPerDollar:
    """Test sales arithmetic."""

    def test_front_end_and_upsell(self):
        """Sales per dollar adds front-end and amortised upsell."""
        s = make_station(1, opd="0.5", upsell="0.4")

        score = sales_per_dollar(s, Decimal("60"), Decimal("120"))

        # 0.5 * 60 + 0.5 * 0.4 * 10
        assert score == Decimal("32")

    def test_zero_prices_floored(self):
        """Zero prices leave a small positive score."""
        s = make_station(1)

        assert sales_per_dollar(s, Decimal("0"), Decimal("0")) > 0

    def test_gross_sales(self):
        """Gross sales scale with spend."""
        s = make_station(1, opd="0.5", upsell="0.4")

        assert gross_sales(s, Decimal("100"), Decimal("60"), Decimal("120")) == Decimal("3200")


class TestConvergeWeights:
    """Test the weight smoothing step."""

    def test_empty(self):
        """No candidates, no weights."""
        assert converge_weights([], Decimal("60"), Decimal("120"), 4) == []

    def test_weights_sum_to_one(self):
        """Weights stay normalised."""
        stations = [make_station(i, opd=str(0.1 * (i + 1))) for i in range(5)]

        weights = converge_weights(stations, Decimal("59.95"), Decimal("499"), 16)

        assert len(weights) == 5
        assert float(sum(weights)) == pytest.approx(1.0)

    def test_single_step_blend(self):
        """One step moves 35% of the way from uniform to the target."""
        stations = [make_station(1, opd="0.3", upsell="0.1"), make_station(2, opd="0.1", upsell="0.1")]

        (w1, w2) = converge_weights(stations, Decimal("60"), Decimal("0"), 1)

        # scores 18 and 6 (plus the 1e-7 upsell floor): target ~0.75 / 0.25
        assert float(w1) == pytest.approx(0.65 * 0.5 + 0.35 * 0.75, abs=1e-6)
        assert float(w2) == pytest.approx(0.65 * 0.5 + 0.35 * 0.25, abs=1e-6)

    def test_better_station_weighted_higher(self):
        """Higher sales per dollar means higher weight."""
        stations = [make_station(1, opd="0.1"), make_station(2, opd="0.4")]

        w_low, w_high = converge_weights(stations, Decimal("59.95"), Decimal("499"), 64)

        assert w_high > w_low


class TestExecuteSpend:
    """Test the two-pass spend."""

    def test_proportional_pass_respects_cap(self):
        """A fully weighted station buys at most four units."""
        s = make_station(1, spot_cost="100", opd="0.5")

        outcome = execute_spend(
            [s], [Decimal("1")], Decimal("1000"), Decimal("1"),
            Decimal("60"), Decimal("0"),
        )

        assert outcome.units == {1: 4}
        assert outcome.total_spend == Decimal("400")
        assert outcome.total_sales == Decimal("12000")
        assert outcome.remaining_cash == Decimal("600")

    def test_cancellations_reduce_cash_out(self):
        """Only the realized share of each unit is paid."""
        s = make_station(1, spot_cost="100", opd="0.5")

        outcome = execute_spend(
            [s], [Decimal("1")], Decimal("1000"), Decimal("0.5"),
            Decimal("60"), Decimal("0"),
        )

        assert outcome.units_purchased == 4
        assert outcome.total_spend == Decimal("200")

    def test_greedy_fill_spends_leftover_cash(self):
        """Small weights still lead to purchases in the fill pass."""
        stations = [make_station(1, spot_cost="100"), make_station(2, spot_cost="100")]

        outcome = execute_spend(
            stations, [Decimal("0.05"), Decimal("0.05")], Decimal("1000"), Decimal("1"),
            Decimal("59.95"), Decimal("499"),
        )

        assert outcome.units == {1: 4, 2: 4}
        assert outcome.total_spend == Decimal("800")

    def test_equal_weights_rank_by_sales_per_dollar(self):
        """With tied weights the better-selling station buys first."""
        weak = make_station(1, spot_cost="100", opd="0.2")
        strong = make_station(2, spot_cost="100", opd="0.9")

        outcome = execute_spend(
            [weak, strong], [Decimal("0.5"), Decimal("0.5")], Decimal("150"), Decimal("1"),
            Decimal("59.95"), Decimal("499"),
        )

        assert outcome.units == {1: 0, 2: 1}
        assert outcome.total_spend == Decimal("100")

    def test_full_cancellation_spends_nothing(self):
        """With everything cancelled no cash leaves."""
        s = make_station(1)

        outcome = execute_spend(
            [s], [Decimal("1")], Decimal("1000"), Decimal("0"),
            Decimal("59.95"), Decimal("499"),
        )

        assert outcome.total_spend == 0
        assert outcome.total_sales == 0

    def test_never_overspends(self):
        """Spend never exceeds the available cash."""
        gen = StationGenerator("C", np.random.default_rng(4))
        stations = [gen.generate(i + 1, 1) for i in range(60)]
        weights = converge_weights(stations, Decimal("59.95"), Decimal("499"), 8)

        outcome = execute_spend(
            stations, weights, Decimal("2500"), Decimal("0.94"),
            Decimal("59.95"), Decimal("499"),
        )

        assert 0 < outcome.total_spend <= Decimal("2500")
        assert all(units <= 4 for units in outcome.units.values())


class TestRunMarketSimulation:
    """Test the monthly loop."""

    def test_single_month(self):
        """One month, one station: snapshot identity holds."""
        (snap,) = run_market_simulation(**BASE_RUN, seed=1)

        assert snap.period_index == 1
        assert snap.starting_budget == 1000
        assert snap.total_spend <= 1000
        assert snap.ending_budget == 1000 - snap.total_spend + snap.total_sales
        assert snap.channel_allocations == ()

    @pytest.mark.parametrize("override", [
        {"initial_budget": 0},
        {"initial_budget": -1},
        {"months": 0},
        {"new_units_per_month": 0},
    ])
    def test_degenerate_inputs_return_empty(self, override):
        """Non-positive budget, months or units give an empty timeline."""
        assert run_market_simulation(**{**BASE_RUN, **override}, seed=1) == []

    def test_compounding(self):
        """Each month starts with the previous month's ending budget."""
        timeline = run_market_simulation(
            **{**BASE_RUN, "months": 6, "new_units_per_month": 5}, seed=3,
        )

        assert [s.period_index for s in timeline] == [1, 2, 3, 4, 5, 6]
        for prev, cur in zip(timeline, timeline[1:]):
            assert cur.starting_budget == prev.ending_budget

    def test_station_pool_ages_out(self):
        """Stations drop out after 12 months."""
        timeline = run_market_simulation(
            **{**BASE_RUN, "months": 14}, seed=8,
        )

        assert [s.active_stations for s in timeline] == [
            1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12, 12, 12,
        ]

    def test_seeded_runs_identical(self):
        """Same seed, same timeline."""
        args = {**BASE_RUN, "months": 4, "new_units_per_month": 10}

        assert run_market_simulation(**args, seed=21) == run_market_simulation(**args, seed=21)

    def test_injected_rng_matches_seed(self):
        """Passing a generator is equivalent to passing its seed."""
        args = {**BASE_RUN, "months": 3, "new_units_per_month": 4}

        assert (
            run_market_simulation(**args, rng=np.random.default_rng(5))
            == run_market_simulation(**args, seed=5)
        )

    def test_out_of_range_knobs_are_clamped(self):
        """Cancellation and weight steps outside their ranges are clamped."""
        sim = MarketSimulator(**{**BASE_RUN, "cancellation_rate": 1.5, "weight_steps": 500})

        assert sim.cancellation_rate == 1
        assert sim.weight_steps == 64

        low = MarketSimulator(**{**BASE_RUN, "cancellation_rate": -0.2, "weight_steps": 0})
        assert low.cancellation_rate == 0
        assert low.weight_steps == 1

    def test_full_cancellation_keeps_budget(self):
        """With every buy cancelled the budget is unchanged."""
        timeline = run_market_simulation(
            **{**BASE_RUN, "months": 3, "cancellation_rate": 1}, seed=2,
        )

        assert all(s.total_spend == 0 and s.ending_budget == 1000 for s in timeline)

    def test_higher_price_raises_sales(self):
        """Sales respond to the product price."""
        base = {**BASE_RUN, "months": 1, "new_units_per_month": 1}

        (cheap,) = run_market_simulation(**{**base, "monthly_price": 30}, seed=6)
        (dear,) = run_market_simulation(**{**base, "monthly_price": 90}, seed=6)

        assert dear.total_sales > cheap.total_sales

    def test_concurrent_runs_match_sequential(self):
        """Runs in parallel threads do not disturb each other."""
        args = {**BASE_RUN, "months": 3, "new_units_per_month": 8}
        seeds = [1, 2, 3, 4]

        expected = [run_market_simulation(**args, seed=s) for s in seeds]
        with ThreadPoolExecutor(max_workers=4) as pool:
            actual = list(pool.map(lambda s: run_market_simulation(**args, seed=s), seeds))

        assert actual == expected

    def test_timeline_frame(self):
        """One row per month."""
        timeline = run_market_simulation(**{**BASE_RUN, "months": 3}, seed=1)
        df = timeline_frame(timeline)

        assert len(df) == 3
        assert list(df["period_index"]) == [1, 2, 3]
