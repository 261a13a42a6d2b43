"""Dashboard endpoint — aggregate stats and equity curve."""

from fastapi import APIRouter, Depends

from zeninvest.api.auth import get_current_user
from zeninvest.api.plans import get_store
from zeninvest.metrics import compute_dashboard
from zeninvest.models.user import User

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("")
async def get_dashboard(user: User = Depends(get_current_user)):
    store = await get_store(user)
    stats = compute_dashboard(store.plans)
    return stats.model_dump(mode="json")
