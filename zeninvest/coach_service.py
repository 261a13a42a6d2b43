"""Coach Service — Claude critique of a closed trade plan.

Journaling never depends on this: every failure is classified and
returned as a CritiqueResult, never raised.
"""

import asyncio
from enum import Enum

import anthropic
from loguru import logger
from pydantic import BaseModel

from zeninvest.config import settings
from zeninvest.models.plan import ClosedPlan, Side

PLACEHOLDER_KEYS = {"", "sk-ant-xxxxx", "your-api-key-here"}

EMPTY_REPLY_TEXT = "The mentor is meditating and has nothing to say right now."
UNAVAILABLE_TEXT = (
    "The path is misty today (AI critique unavailable). "
    "Hold to your discipline and keep reviewing your trades."
)
NOT_CONFIGURED_DETAIL = (
    "AI coach is not configured. Set ANTHROPIC_API_KEY in .env or on the settings page."
)
REJECTED_DETAIL = (
    "AI coach rejected the configured API key. Check ANTHROPIC_API_KEY on the settings page."
)

SYSTEM_PROMPT = (
    'You are "Zen Trading Mentor", a seasoned investor. Review a closed trade '
    "in about 150 words, calm and wise in tone. Cover three angles: discipline "
    "(did the trader follow the stop and target plan), emotional management, "
    "and concrete suggestions for improvement."
)


class CritiqueStatus(str, Enum):
    OK = "ok"
    NOT_CONFIGURED = "not_configured"
    REJECTED = "rejected"
    UNAVAILABLE = "unavailable"


class CritiqueResult(BaseModel):
    status: CritiqueStatus
    text: str | None = None  # what gets attached to the plan
    detail: str = ""


def build_prompt(plan: ClosedPlan, analysis_date: str) -> str:
    side = "Long (buy)" if plan.side == Side.LONG else "Short (sell)"
    return (
        f"Analysis date: {analysis_date}\n"
        f"Symbol: {plan.symbol}\n"
        f"Side: {side}\n"
        f"Strategy: {plan.strategy}\n"
        f"Entry price: {plan.entry_price}\n"
        f"Stop loss: {plan.stop_loss}\n"
        f"Target price: {plan.target_price}\n"
        f"Exit price: {plan.exit_price}\n"
        f"Realized P&L: {plan.profit_and_loss}\n"
        f"Entry rationale: {plan.reasoning}\n"
        f"Emotional state at entry: {plan.psychological_state}\n"
        f"Trader's own reflection: {plan.review_notes}"
    )


class CoachService:
    def __init__(self, api_key: str | None = None):
        self._api_key = settings.anthropic_api_key if api_key is None else api_key
        self._client: anthropic.AsyncAnthropic | None = None
        self._init_client()

    def _init_client(self):
        self._client = None
        if not self.api_key_set:
            logger.warning("Coach Service: No API key — AI critiques disabled")
            return
        try:
            self._client = anthropic.AsyncAnthropic(api_key=self._api_key, max_retries=0)
            logger.info("Coach Service: Using Anthropic API (key configured)")
        except Exception as e:
            logger.warning(f"Coach Service: Failed to init Anthropic client: {e}")

    @property
    def api_key_set(self) -> bool:
        return bool(self._api_key and self._api_key not in PLACEHOLDER_KEYS)

    @property
    def masked_key(self) -> str:
        if not self.api_key_set:
            return ""
        if len(self._api_key) > 4:
            return "sk-ant-•••" + self._api_key[-4:]
        return "••••"

    def update_api_key(self, key: str):
        """Update the API key at runtime and reinitialize the client."""
        self._api_key = key
        self._init_client()

    async def _call(self, system: str, prompt: str, max_tokens: int) -> str:
        response = await asyncio.wait_for(
            self._client.messages.create(
                model=settings.coach_model,
                max_tokens=max_tokens,
                system=system,
                messages=[{"role": "user", "content": prompt}],
            ),
            timeout=settings.coach_timeout_seconds,
        )
        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        ).strip()

    async def critique(self, plan: ClosedPlan, analysis_date: str) -> CritiqueResult:
        """Ask the coach about a closed plan. Single attempt, no retries."""
        if not self.api_key_set or self._client is None:
            logger.warning(f"Coach skipped for plan {plan.id}: not configured")
            return CritiqueResult(
                status=CritiqueStatus.NOT_CONFIGURED, detail=NOT_CONFIGURED_DETAIL
            )

        try:
            text = await self._call(
                SYSTEM_PROMPT, build_prompt(plan, analysis_date), settings.coach_max_tokens
            )
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError) as e:
            logger.warning(f"Coach rejected API key for plan {plan.id}: {e}")
            return CritiqueResult(status=CritiqueStatus.REJECTED, detail=REJECTED_DETAIL)
        except asyncio.TimeoutError:
            logger.warning(
                f"Coach timed out after {settings.coach_timeout_seconds}s for plan {plan.id}"
            )
            return CritiqueResult(
                status=CritiqueStatus.UNAVAILABLE,
                text=UNAVAILABLE_TEXT,
                detail="AI coach timed out",
            )
        except Exception as e:
            logger.warning(f"Coach unavailable for plan {plan.id}: {e}")
            return CritiqueResult(
                status=CritiqueStatus.UNAVAILABLE, text=UNAVAILABLE_TEXT, detail=str(e)
            )

        logger.info(f"Coach critique for plan {plan.id} ({len(text)} chars)")
        return CritiqueResult(status=CritiqueStatus.OK, text=text or EMPTY_REPLY_TEXT)

    async def test_connection(self) -> dict:
        """Quick ping to verify AI connectivity."""
        if not self.api_key_set or self._client is None:
            return {"success": False, "error": NOT_CONFIGURED_DETAIL}
        try:
            text = await self._call("You are a test assistant.", "Reply with exactly: OK", 10)
        except Exception as e:
            return {"success": False, "error": str(e)}
        return {"success": True, "response": text, "model": settings.coach_model}
