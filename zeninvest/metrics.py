"""Journal metrics — risk/reward, win rate, equity curve, dashboard stats."""

from collections.abc import Iterable, Sequence

from pydantic import BaseModel

from zeninvest.models.plan import ClosedPlan, Side

UNDEFINED_RATIO = "∞"


class RiskReward(BaseModel):
    reward: float
    risk: float
    ratio: float | None = None  # None when risk <= 0 (undefined)
    reward_pct: float | None = None
    risk_pct: float | None = None
    is_valid: bool = False

    @property
    def display_ratio(self) -> str:
        if self.ratio is None:
            return UNDEFINED_RATIO
        return f"{self.ratio:.2f}"


class EquityPoint(BaseModel):
    index: int
    plan_id: str | None = None  # None for the synthetic starting point
    symbol: str | None = None
    profit_and_loss: float = 0.0
    equity: float = 0.0


class DashboardStats(BaseModel):
    total_closed: int = 0
    open_count: int = 0
    wins: int = 0
    total_pnl: float = 0.0
    win_rate: float = 0.0
    win_rate_pct: int = 0
    equity_curve: list[EquityPoint] = []


def risk_reward(
    side: Side | str, entry: float, stop: float, target: float
) -> RiskReward:
    """Reward/risk for a trade plan. Never divides by zero."""
    if Side(side) == Side.LONG:
        reward = target - entry
        risk = entry - stop
    else:
        reward = entry - target
        risk = stop - entry

    ratio = reward / risk if risk > 0 else None
    reward_pct = reward / entry * 100 if entry > 0 else None
    risk_pct = risk / entry * 100 if entry > 0 else None

    return RiskReward(
        reward=reward,
        risk=risk,
        ratio=ratio,
        reward_pct=reward_pct,
        risk_pct=risk_pct,
        is_valid=reward > 0 and risk > 0,
    )


def risk_reward_for(plan) -> RiskReward:
    return risk_reward(plan.side, plan.entry_price, plan.stop_loss, plan.target_price)


def is_win(plan: ClosedPlan) -> bool:
    # Breakeven is not a win
    return plan.profit_and_loss > 0


def win_rate(closed: Sequence[ClosedPlan]) -> float:
    if not closed:
        return 0.0
    wins = sum(1 for p in closed if is_win(p))
    return wins / len(closed)


def equity_curve(closed: Iterable[ClosedPlan]) -> list[EquityPoint]:
    """Cumulative realized P&L, oldest plan first, with a leading zero point.

    Ordering is by creation time (stable for ties), so the result is
    the same for any ordering of the same plans.
    """
    ordered = sorted(closed, key=lambda p: p.created_at)
    points = [EquityPoint(index=0)]
    running = 0.0
    for i, plan in enumerate(ordered, start=1):
        running += plan.profit_and_loss
        points.append(EquityPoint(
            index=i,
            plan_id=plan.id,
            symbol=plan.symbol,
            profit_and_loss=plan.profit_and_loss,
            equity=round(running, 2),
        ))
    return points


def compute_dashboard(plans: Sequence) -> DashboardStats:
    """Aggregate stats over one user's whole collection."""
    closed = [p for p in plans if isinstance(p, ClosedPlan)]
    wins = sum(1 for p in closed if is_win(p))
    # Unclosed plans contribute nothing to realized P&L
    total_pnl = sum(p.profit_and_loss for p in closed)
    rate = win_rate(closed)

    return DashboardStats(
        total_closed=len(closed),
        open_count=len(plans) - len(closed),
        wins=wins,
        total_pnl=round(total_pnl, 2),
        win_rate=rate,
        win_rate_pct=round(rate * 100),
        equity_curve=equity_curve(closed),
    )
