"""Shared test fixtures for the journal tests."""

from datetime import datetime, timedelta, timezone

import pytest

from zeninvest.config import settings
from zeninvest.db.database import Database
from zeninvest.models.plan import ClosedPlan, PlanDraft, PlannedPlan, Side

BASE_TIME = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


def make_draft(
    symbol="NVDA",
    side=Side.LONG,
    entry_price=100.0,
    stop_loss=90.0,
    target_price=130.0,
    reasoning="Breakout above resistance on volume",
    **kwargs,
) -> PlanDraft:
    return PlanDraft(
        symbol=symbol,
        side=side,
        entry_price=entry_price,
        stop_loss=stop_loss,
        target_price=target_price,
        reasoning=reasoning,
        **kwargs,
    )


def make_planned(day_offset=0, **kwargs) -> PlannedPlan:
    return PlannedPlan.from_draft(
        make_draft(**kwargs), now=BASE_TIME + timedelta(days=day_offset)
    )


def make_closed(
    pnl=10.0,
    day_offset=0,
    side=Side.LONG,
    entry_price=100.0,
    review_notes="Followed the plan",
    **kwargs,
) -> ClosedPlan:
    """Closed plan whose exit price yields the requested P&L."""
    planned = make_planned(day_offset=day_offset, side=side, entry_price=entry_price, **kwargs)
    exit_price = entry_price + pnl if side == Side.LONG else entry_price - pnl
    return planned.close(exit_price, review_notes)


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "journal.db")


@pytest.fixture
def make_db(db_path):
    """Factory for a connected Database; call inside the test's event loop."""
    async def _connect() -> Database:
        db = Database(db_path)
        await db.connect()
        return db
    return _connect


@pytest.fixture
def no_review_minimum(monkeypatch):
    monkeypatch.setattr(settings, "min_review_notes_length", 0)
