"""Tests for zeninvest.metrics — risk/reward, win rate, equity curve."""

import random

import pytest

from zeninvest.metrics import (
    UNDEFINED_RATIO,
    compute_dashboard,
    equity_curve,
    risk_reward,
    risk_reward_for,
    win_rate,
)
from zeninvest.models.plan import Side
from tests.conftest import make_closed, make_planned


# ── Risk / reward ───────────────────────────────────────────────────

class TestRiskReward:
    def test_long_plan(self):
        rr = risk_reward(Side.LONG, entry=100, stop=90, target=130)
        assert rr.reward == 30
        assert rr.risk == 10
        assert rr.ratio == pytest.approx(3.0)
        assert rr.reward_pct == pytest.approx(30.0)
        assert rr.risk_pct == pytest.approx(10.0)
        assert rr.is_valid

    def test_short_plan(self):
        rr = risk_reward(Side.SHORT, entry=50000, stop=52000, target=44000)
        assert rr.reward == 6000
        assert rr.risk == 2000
        assert rr.ratio == pytest.approx(3.0)
        assert rr.reward_pct == pytest.approx(12.0)

    def test_accepts_string_side(self):
        assert risk_reward("SHORT", 10, 12, 6).ratio == pytest.approx(2.0)

    @pytest.mark.parametrize("side,entry,stop,target", [
        (Side.LONG, 100, 100, 130),   # zero risk
        (Side.LONG, 100, 110, 130),   # stop above entry
        (Side.SHORT, 100, 100, 80),   # zero risk
        (Side.SHORT, 100, 95, 80),    # stop below entry
    ])
    def test_non_positive_risk_is_undefined(self, side, entry, stop, target):
        rr = risk_reward(side, entry, stop, target)
        assert rr.ratio is None
        assert rr.display_ratio == UNDEFINED_RATIO
        assert not rr.is_valid

    def test_zero_entry_has_no_percentages(self):
        rr = risk_reward(Side.LONG, 0, -1, 5)
        assert rr.reward_pct is None
        assert rr.risk_pct is None

    def test_target_on_wrong_side_is_invalid(self):
        rr = risk_reward(Side.LONG, 100, 90, 95)
        assert rr.ratio == pytest.approx(-0.5)
        assert not rr.is_valid

    def test_display_ratio(self):
        assert risk_reward(Side.LONG, 100, 90, 130).display_ratio == "3.00"

    def test_for_plan(self):
        plan = make_planned(entry_price=100, stop_loss=90, target_price=130)
        assert risk_reward_for(plan).ratio == pytest.approx(3.0)


# ── Win rate ────────────────────────────────────────────────────────

class TestWinRate:
    def test_empty(self):
        assert win_rate([]) == 0.0

    def test_all_wins(self):
        assert win_rate([make_closed(pnl=5), make_closed(pnl=1)]) == 1.0

    def test_breakeven_is_not_a_win(self):
        closed = [make_closed(pnl=5), make_closed(pnl=0)]
        assert win_rate(closed) == 0.5

    def test_bounded(self):
        rng = random.Random(7)
        closed = [make_closed(pnl=rng.uniform(-50, 50)) for _ in range(20)]
        assert 0.0 <= win_rate(closed) <= 1.0


# ── Equity curve ───────────────────────────────────────────────────

class TestEquityCurve:
    def test_empty_has_zero_point(self):
        curve = equity_curve([])
        assert len(curve) == 1
        assert curve[0].equity == 0.0
        assert curve[0].plan_id is None

    def test_sorted_by_creation_time(self):
        a = make_closed(pnl=10, day_offset=0, symbol="AAA")
        b = make_closed(pnl=-4, day_offset=1, symbol="BBB")
        c = make_closed(pnl=7, day_offset=2, symbol="CCC")
        curve = equity_curve([c, a, b])
        assert [p.symbol for p in curve] == [None, "AAA", "BBB", "CCC"]
        assert [p.equity for p in curve] == [0.0, 10.0, 6.0, 13.0]

    def test_length_is_n_plus_one(self):
        closed = [make_closed(pnl=1, day_offset=i) for i in range(5)]
        assert len(equity_curve(closed)) == 6

    def test_independent_of_input_order(self):
        closed = [make_closed(pnl=p, day_offset=i) for i, p in enumerate([3, -1, 8, -2.5])]
        shuffled = list(closed)
        random.Random(3).shuffle(shuffled)
        assert equity_curve(shuffled) == equity_curve(closed)
        assert equity_curve(list(reversed(closed))) == equity_curve(closed)

    def test_final_point_is_rounded_total(self):
        pnls = [0.105, 1.333, -0.2, 2.001]
        closed = [make_closed(pnl=p, day_offset=i) for i, p in enumerate(pnls)]
        total = sum(c.profit_and_loss for c in closed)
        assert equity_curve(closed)[-1].equity == round(total, 2)

    def test_points_are_rounded(self):
        curve = equity_curve([make_closed(pnl=1.23456)])
        assert curve[-1].equity == 1.23


# ── Dashboard ──────────────────────────────────────────────────────

class TestDashboard:
    def test_empty(self):
        stats = compute_dashboard([])
        assert stats.total_closed == 0
        assert stats.win_rate == 0.0
        assert stats.total_pnl == 0.0
        assert len(stats.equity_curve) == 1

    def test_mixed_collection(self):
        plans = [
            make_planned(day_offset=5),
            make_closed(pnl=30, day_offset=0),
            make_closed(pnl=-10, day_offset=1),
            make_closed(pnl=0, day_offset=2),
        ]
        stats = compute_dashboard(plans)
        assert stats.total_closed == 3
        assert stats.open_count == 1
        assert stats.wins == 1
        assert stats.total_pnl == 20.0
        assert stats.win_rate == pytest.approx(1 / 3)
        assert stats.win_rate_pct == 33
        assert stats.equity_curve[-1].equity == 20.0

    def test_nvda_scenario(self):
        plan = make_planned(symbol="NVDA", entry_price=100, stop_loss=90, target_price=130)
        closed = plan.close(130, "Hit target as planned")
        assert closed.profit_and_loss == 30
        stats = compute_dashboard([closed])
        assert stats.win_rate_pct == 100

    def test_btc_short_scenario(self):
        plan = make_planned(
            symbol="BTC", side=Side.SHORT,
            entry_price=50000, stop_loss=52000, target_price=44000,
        )
        assert risk_reward_for(plan).ratio == pytest.approx(3.0)
        closed = plan.close(53000, "Ignored my stop")
        assert closed.profit_and_loss == -3000
        assert compute_dashboard([closed]).win_rate == 0.0
