"""Plan endpoints — create, list, close out, review and delete trade plans."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger
from pydantic import BaseModel, Field, field_validator

from zeninvest.api.auth import get_current_user
from zeninvest.config import settings
from zeninvest.metrics import risk_reward, risk_reward_for
from zeninvest.models.plan import PlanDraft, PlanStatus, Side
from zeninvest.models.user import User
from zeninvest.plan_store import (
    PersistenceError,
    PlanAlreadyClosedError,
    PlanNotFoundError,
    PlanStore,
)

router = APIRouter(prefix="/api/plans", tags=["plans"])


class CloseRequest(BaseModel):
    exit_price: float = Field(gt=0)
    review_notes: str = ""

    @field_validator("review_notes")
    @classmethod
    def _check_notes_length(cls, v: str) -> str:
        min_len = settings.min_review_notes_length
        if min_len and len(v.strip()) < min_len:
            raise ValueError(f"Reflection must be at least {min_len} characters")
        return v


async def get_store(user: User) -> PlanStore:
    from zeninvest.api.main import app_state

    try:
        return await app_state["plan_stores"].for_user(user.id)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))


def _plan_out(plan) -> dict:
    rr = risk_reward_for(plan)
    data = plan.model_dump(mode="json")
    data["risk_reward"] = {
        **rr.model_dump(mode="json"),
        "display_ratio": rr.display_ratio,
    }
    return data


@router.get("")
async def list_plans(
    status: PlanStatus | None = None,
    user: User = Depends(get_current_user),
):
    """List the user's plans, newest first."""
    store = await get_store(user)
    plans = store.plans
    if status is not None:
        plans = [p for p in plans if p.status == status.value]
    return [_plan_out(p) for p in plans]


@router.get("/risk-reward")
async def preview_risk_reward(
    side: Side,
    entry_price: float,
    stop_loss: float,
    target_price: float,
):
    """Live risk/reward for the creation form, before anything is saved."""
    rr = risk_reward(side, entry_price, stop_loss, target_price)
    return {**rr.model_dump(mode="json"), "display_ratio": rr.display_ratio}


@router.post("")
async def create_plan(draft: PlanDraft, user: User = Depends(get_current_user)):
    store = await get_store(user)
    persisted = True
    try:
        plan = await store.create(draft)
    except PersistenceError as e:
        persisted = False
        plan = e.plan
    return {"plan": _plan_out(plan), "persisted": persisted}


@router.get("/{plan_id}")
async def get_plan(plan_id: str, user: User = Depends(get_current_user)):
    """Read-only detail view of a single plan."""
    store = await get_store(user)
    plan = store.get(plan_id)
    if plan is None:
        raise HTTPException(status_code=404, detail="Plan not found")
    return _plan_out(plan)


@router.post("/{plan_id}/close")
async def close_plan(
    plan_id: str,
    req: CloseRequest,
    user: User = Depends(get_current_user),
):
    """Close a plan, then ask the coach for a critique.

    The CLOSED record is committed before the coach is called, so a
    slow or failing coach never loses the close-out.
    """
    from zeninvest.api.main import app_state

    store = await get_store(user)
    persisted = True
    try:
        closed = await store.close(plan_id, req.exit_price, req.review_notes)
    except PlanNotFoundError:
        raise HTTPException(status_code=404, detail="Plan not found")
    except PlanAlreadyClosedError:
        raise HTTPException(status_code=409, detail="Plan is already closed")
    except PersistenceError as e:
        persisted = False
        closed = e.plan

    result = await app_state["coach"].critique(
        closed, datetime.now().strftime("%Y-%m-%d")
    )
    if result.text:
        try:
            closed = await store.attach_critique(plan_id, result.text)
        except PersistenceError:
            persisted = False
            closed = store.get(plan_id) or closed
        except PlanNotFoundError:
            # Deleted while the coach was thinking; the close itself stands
            logger.info(f"Plan {plan_id} deleted before its critique arrived")
            closed = closed.with_critique(result.text)

    if not persisted:
        logger.warning(f"Plan {plan_id} closed in memory only; will retry on next save")

    return {
        "plan": _plan_out(closed),
        "critique_status": result.status.value,
        "critique_detail": result.detail,
        "persisted": persisted,
    }


@router.delete("/{plan_id}")
async def delete_plan(
    plan_id: str,
    confirm: bool = False,
    user: User = Depends(get_current_user),
):
    """Delete a plan permanently. Requires confirm=true."""
    if not confirm:
        raise HTTPException(
            status_code=400, detail="Deleting a plan requires confirm=true"
        )
    store = await get_store(user)
    persisted = True
    try:
        deleted = await store.delete(plan_id)
    except PersistenceError:
        deleted, persisted = True, False
    if not deleted:
        raise HTTPException(status_code=404, detail="Plan not found")
    return {"success": True, "persisted": persisted}
