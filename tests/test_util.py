"""Tests for formatting, parsing and the scenario tables."""

import math

import pytest

from calculator import Toggles, compute
from config import DEFAULT_CONFIG, default_assumptions
from util import (
    PLACEHOLDER, SENSITIVITY_DRIVERS, WHAT_IF_LABELS, audience_sweep, fmt_count, fmt_currency,
    fmt_pct, funnel_stages, one_at_a_time_sensitivity, parse_number, result_frame, tier_table,
    what_if_table,
)


BASE = default_assumptions()


class TestFormatting:
    def test_currency(self):
        assert fmt_currency(2387.28) == "$2,387.28"
        assert fmt_currency(1234567.5) == "$1,234,567.50"
        assert fmt_currency(0) == "$0.00"

    def test_negative_currency(self):
        assert fmt_currency(-12.18) == "-$12.18"

    def test_currency_placeholder(self):
        assert fmt_currency(math.nan) == PLACEHOLDER
        assert fmt_currency(math.inf) == PLACEHOLDER

    def test_pct(self):
        assert fmt_pct(0.1) == "0.1%"
        assert fmt_pct(0.8) == "0.8%"
        assert fmt_pct(12.34) == "12.3%"
        assert fmt_pct(math.nan) == PLACEHOLDER

    def test_count(self):
        assert fmt_count(10000.000000000002) == "10,000"
        assert fmt_count(11) == "11"
        assert fmt_count(-math.inf) == PLACEHOLDER


class TestParseNumber:
    def test_numbers_pass_through(self):
        assert parse_number(7) == 7
        assert parse_number(2.5) == 2.5

    def test_strings(self):
        assert parse_number("12.5") == 12.5
        assert parse_number(" 1,000 ") == 1000.0

    def test_blank_is_zero(self):
        assert parse_number("") == 0.0
        assert parse_number("   ") == 0.0
        assert parse_number(None) == 0.0

    def test_garbage_is_nan(self):
        assert math.isnan(parse_number("abc"))
        assert math.isnan(parse_number("12$"))

    def test_bool_rejected(self):
        with pytest.raises(TypeError):
            parse_number(True)


class TestResultViews:
    def test_result_frame(self):
        df = result_frame(compute(BASE))
        assert list(df.columns) == ["Metric", "Value"]
        assert len(df) == 18
        assert df.set_index("Metric").loc["total_buyers", "Value"] == 11

    def test_funnel_stages(self):
        df = funnel_stages(compute(BASE))
        assert list(df["Stage"]) == ["Reach", "Buyers", "Order bump", "Upsell"]
        assert df["Value"].tolist()[1:] == [11, 3, 2]


class TestTierTable:
    def test_one_row_per_tier(self):
        df = tier_table(BASE, None, DEFAULT_CONFIG["tiers"])
        assert list(df["Tier"]) == ["Micro", "Mid-tier", "Macro", "Mega"]
        assert list(df["Audience"]) == [10000, 100000, 500000, 1000000]

    def test_mid_tier_matches_defaults(self):
        df = tier_table(BASE, None, DEFAULT_CONFIG["tiers"]).set_index("Tier")
        assert df.loc["Mid-tier", "Annual gross"] == pytest.approx(2387.28)

    def test_micro_tier(self):
        df = tier_table(BASE, None, DEFAULT_CONFIG["tiers"]).set_index("Tier")
        # 1 platform + 1 email buyer, 1 bump, 0 upsell
        assert df.loc["Micro", "Total buyers"] == 2
        assert df.loc["Micro", "Per launch"] == pytest.approx(94.08)
        assert df.loc["Micro", "Annual gross"] == pytest.approx(376.32)

    def test_input_record_unchanged(self):
        tier_table(BASE, None, DEFAULT_CONFIG["tiers"])
        assert BASE.audience_size == 100000


class TestWhatIfTable:
    def test_baseline_and_single_toggles(self):
        df = what_if_table(BASE)
        assert list(df["Scenario"]) == ["Baseline"] + list(WHAT_IF_LABELS.values())
        assert df.loc[0, "Annual lift"] == 0

    def test_bump_lift(self):
        df = what_if_table(BASE).set_index("Scenario")
        row = df.loc[WHAT_IF_LABELS["bump_take_rate_up10"]]
        assert row["Bump buyers"] == 4
        assert row["Annual lift"] == pytest.approx(86.24)

    def test_combination_row_added(self):
        t = Toggles(platform_buyers_up10=True, bump_take_rate_up10=True)
        df = what_if_table(BASE, t)
        assert len(df) == 6
        last = df.iloc[-1]
        assert last["Scenario"] == "Current selection"
        assert last["Annual gross"] == pytest.approx(compute(BASE, t).annual_gross)

    def test_single_toggle_not_duplicated(self):
        df = what_if_table(BASE, Toggles(email_buyers_up10=True))
        assert len(df) == 5


class TestSensitivity:
    def test_every_driver_reported(self):
        df = one_at_a_time_sensitivity(BASE)
        assert sorted(df["Driver"]) == sorted(label for label, _ in SENSITIVITY_DRIVERS)
        assert list(df.columns) == ["Driver", "Down", "Up", "Range"]

    def test_sorted_by_range(self):
        df = one_at_a_time_sensitivity(BASE)
        assert df["Range"].is_monotonic_decreasing

    def test_price_moves_gross(self):
        df = one_at_a_time_sensitivity(BASE, step=0.10).set_index("Driver")
        # 11 buyers * 3.70 * 0.98 * 4 launches
        assert df.loc["Front-end price", "Up"] == pytest.approx(159.544)
        assert df.loc["Front-end price", "Down"] == pytest.approx(-159.544)

    def test_refunds_move_the_other_way(self):
        df = one_at_a_time_sensitivity(BASE).set_index("Driver")
        assert df.loc["Refund rate", "Up"] < 0
        assert df.loc["Refund rate", "Down"] > 0


class TestAudienceSweep:
    def test_grid(self):
        df = audience_sweep(BASE, None, 10000, 1000000, points=5)
        assert len(df) == 5
        assert df["Audience"].iloc[0] == 10000
        assert df["Audience"].iloc[-1] == 1000000

    def test_gross_grows_with_audience(self):
        df = audience_sweep(BASE, Toggles(platform_buyers_up10=True), 10000, 1000000)
        assert df["Annual gross"].is_monotonic_increasing
