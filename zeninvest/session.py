"""Session Manager — maps display names to stable user ids.

Known users live under one key, the last active user id under another.
Plan collections are partitioned by user id (see plan_store.plans_key).
Backend failures surface as PersistenceError, same as the plan store.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

import aiosqlite
from loguru import logger

from zeninvest.models.user import User
from zeninvest.plan_store import KeyValueBackend, PersistenceError

USERS_KEY = "zen_invest_users"
LAST_SESSION_KEY = "zen_invest_last_session"


class SessionManager:
    def __init__(self, backend: KeyValueBackend):
        self.backend = backend

    async def _read(self, key: str) -> Any:
        try:
            return await self.backend.get_value(key)
        except (aiosqlite.Error, OSError) as e:
            logger.error(f"Failed to read {key}: {e}")
            raise PersistenceError(f"Session storage unavailable: {e}") from e

    async def _write(self, key: str, value: Any):
        try:
            await self.backend.set_value(key, value)
        except (aiosqlite.Error, OSError) as e:
            logger.error(f"Failed to write {key}: {e}")
            raise PersistenceError(f"Session storage unavailable: {e}") from e

    async def list_users(self) -> list[User]:
        raw = await self._read(USERS_KEY) or []
        return [User(**u) for u in raw]

    async def get_user(self, user_id: str) -> User | None:
        for user in await self.list_users():
            if user.id == user_id:
                return user
        return None

    async def login(self, display_name: str) -> User:
        """Resolve a display name to its user, creating one on first use."""
        name = display_name.strip()
        if not name:
            raise ValueError("Display name is required")

        users = await self.list_users()
        now = datetime.now(timezone.utc)
        user = next((u for u in users if u.display_name == name), None)
        if user is None:
            user = User(id=uuid.uuid4().hex, display_name=name, last_login=now)
            users.append(user)
            logger.info(f"New journal user '{name}' ({user.id})")
        else:
            user.last_login = now
            logger.info(f"User '{name}' ({user.id}) logged in")

        await self._write(USERS_KEY, [u.model_dump(mode="json") for u in users])
        await self._write(LAST_SESSION_KEY, user.id)
        return user

    async def resume(self) -> User | None:
        """Return the last active user if it still resolves to a known user."""
        user_id = await self._read(LAST_SESSION_KEY)
        if not user_id:
            return None
        user = await self.get_user(user_id)
        if user is None:
            logger.warning(f"Last session points at unknown user {user_id}")
        return user

    async def logout(self, user_id: str):
        """End user_id's session. Users and plans are kept.

        The last-session pointer is cleared only while it still names
        user_id; a later login by someone else stays resumable.
        """
        if await self._read(LAST_SESSION_KEY) != user_id:
            logger.info(f"User {user_id} logged out; last session belongs to another user")
            return
        await self._write(LAST_SESSION_KEY, None)
        logger.info(f"User {user_id} logged out")
