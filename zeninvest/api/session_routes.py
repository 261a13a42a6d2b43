"""Session endpoints that need an authenticated user."""

from fastapi import APIRouter, Depends, HTTPException

from zeninvest.api.auth import get_current_user
from zeninvest.models.user import User
from zeninvest.plan_store import PersistenceError

router = APIRouter(prefix="/api/session", tags=["session"])


@router.get("/me")
async def current_user(user: User = Depends(get_current_user)):
    return user.model_dump(mode="json")


@router.post("/logout")
async def logout(user: User = Depends(get_current_user)):
    """End this user's session. The user's plans stay on disk."""
    from zeninvest.api.main import app_state

    try:
        await app_state["sessions"].logout(user.id)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))
    app_state["plan_stores"].evict(user.id)
    return {"success": True}
