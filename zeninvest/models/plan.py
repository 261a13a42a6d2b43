"""Plan models — a journaled trade idea from creation through close-out."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator


class Side(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class PlanStatus(str, Enum):
    PLANNED = "PLANNED"
    CLOSED = "CLOSED"


CUSTOM_STRATEGY = "Other (custom)"
UNCATEGORIZED_STRATEGY = "Uncategorized"

PRESET_STRATEGIES = [
    "Trend following",
    "Value investing",
    "Oversold rebound",
    "Swing trading",
    "Arbitrage",
    CUSTOM_STRATEGY,
]

PSYCHOLOGICAL_STATES = ["Calm", "Excited", "Fearful", "Greedy", "Tired", "Anxious"]


class PlanDraft(BaseModel):
    """Creation form input."""
    symbol: str
    side: Side = Side.LONG
    strategy: str = PRESET_STRATEGIES[0]
    custom_strategy: str = ""  # only read when strategy == CUSTOM_STRATEGY
    entry_price: float = Field(gt=0)
    stop_loss: float = Field(gt=0)
    target_price: float = Field(gt=0)
    position_size: str = ""
    psychological_state: str = PSYCHOLOGICAL_STATES[0]
    reasoning: str

    @field_validator("symbol")
    @classmethod
    def _normalize_symbol(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("symbol is required")
        return v

    @field_validator("reasoning")
    @classmethod
    def _require_reasoning(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("reasoning is required")
        return v

    def resolved_strategy(self) -> str:
        if self.strategy == CUSTOM_STRATEGY:
            return self.custom_strategy.strip() or UNCATEGORIZED_STRATEGY
        return self.strategy.strip() or UNCATEGORIZED_STRATEGY


class _PlanFields(BaseModel):
    """Planning attributes — set once at creation, never changed."""
    model_config = {"frozen": True}

    id: str
    symbol: str
    side: Side
    strategy: str
    entry_price: float
    stop_loss: float
    target_price: float
    position_size: str = ""
    psychological_state: str = ""
    reasoning: str
    created_at: datetime


class PlannedPlan(_PlanFields):
    status: Literal["PLANNED"] = "PLANNED"

    @classmethod
    def from_draft(cls, draft: PlanDraft, now: datetime | None = None) -> "PlannedPlan":
        return cls(
            id=uuid.uuid4().hex,
            symbol=draft.symbol,
            side=draft.side,
            strategy=draft.resolved_strategy(),
            entry_price=draft.entry_price,
            stop_loss=draft.stop_loss,
            target_price=draft.target_price,
            position_size=draft.position_size.strip(),
            psychological_state=draft.psychological_state.strip(),
            reasoning=draft.reasoning.strip(),
            created_at=now or datetime.now(timezone.utc),
        )

    def close(
        self, exit_price: float, review_notes: str, now: datetime | None = None
    ) -> "ClosedPlan":
        """Build the CLOSED record. P&L is per unit: position size is free text."""
        direction = 1 if self.side == Side.LONG else -1
        return ClosedPlan(
            **self.model_dump(exclude={"status"}),
            exit_price=exit_price,
            profit_and_loss=(exit_price - self.entry_price) * direction,
            review_notes=review_notes.strip(),
            closed_at=now or datetime.now(timezone.utc),
        )


class ClosedPlan(_PlanFields):
    status: Literal["CLOSED"] = "CLOSED"

    # Lifecycle attributes
    exit_price: float
    profit_and_loss: float
    review_notes: str
    closed_at: datetime
    critique: str | None = None  # absent when the coach never answered

    def with_critique(self, text: str) -> "ClosedPlan":
        return self.model_copy(update={"critique": text})


Plan = Annotated[Union[PlannedPlan, ClosedPlan], Field(discriminator="status")]

plan_list_adapter = TypeAdapter(list[Plan])
