"""AI coach configuration endpoints."""

import re
from pathlib import Path

from fastapi import APIRouter, Depends
from loguru import logger
from pydantic import BaseModel, field_validator

from zeninvest.api.auth import get_current_user
from zeninvest.config import settings
from zeninvest.models.user import User

router = APIRouter(prefix="/api", tags=["settings"])


class CoachSettings(BaseModel):
    anthropic_api_key: str | None = None

    @field_validator("anthropic_api_key")
    @classmethod
    def _single_env_value(cls, v: str | None) -> str | None:
        # Written verbatim as one KEY=value line of .env
        if v is not None and any(c in v for c in "\r\n="):
            raise ValueError("API key may not contain line breaks or '='")
        return v


@router.get("/settings")
async def get_settings(user: User = Depends(get_current_user)):
    from zeninvest.api.main import app_state
    coach = app_state["coach"]

    return {
        "api_key_set": coach.api_key_set,
        "api_key_masked": coach.masked_key,
        "coach_model": settings.coach_model,
        "coach_timeout_seconds": settings.coach_timeout_seconds,
        "min_review_notes_length": settings.min_review_notes_length,
    }


@router.put("/settings")
async def update_settings(req: CoachSettings, user: User = Depends(get_current_user)):
    from zeninvest.api.main import app_state

    if req.anthropic_api_key is not None:
        app_state["coach"].update_api_key(req.anthropic_api_key)
        write_env_value("ANTHROPIC_API_KEY", req.anthropic_api_key)
        logger.info(f"Coach API key updated by {user.display_name}")

    return {"success": True}


@router.post("/settings/test-ai")
async def test_ai(user: User = Depends(get_current_user)):
    """Quick test to verify AI connectivity."""
    from zeninvest.api.main import app_state
    return await app_state["coach"].test_connection()


def write_env_value(key: str, value: str, env_path: Path = Path(".env")):
    """Set KEY=value in the env file, replacing an existing KEY line or appending one."""
    line = f"{key}={value}"
    content = env_path.read_text() if env_path.exists() else ""
    pattern = re.compile(rf"^{re.escape(key)}=.*$", re.MULTILINE)
    if pattern.search(content):
        # Callable replacement keeps backslashes in the value literal
        content = pattern.sub(lambda _: line, content)
    else:
        content = (content.rstrip() + "\n" if content.strip() else "") + line + "\n"
    env_path.write_text(content)
