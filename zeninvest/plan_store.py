"""Plan Store — one user's journal, held in memory and mirrored to the KV store.

Every mutating call rewrites the user's whole collection. The in-memory
list stays authoritative when a write fails; the next successful save
brings the backing store back in line.
"""

import asyncio
from collections import OrderedDict
from typing import Any, Callable, Protocol

import aiosqlite
from loguru import logger
from pydantic import ValidationError

from zeninvest.models.plan import (
    ClosedPlan,
    Plan,
    PlanDraft,
    PlannedPlan,
    plan_list_adapter,
)

PLANS_KEY_PREFIX = "zen_invest_plans"


class KeyValueBackend(Protocol):
    async def get_value(self, key: str) -> Any: ...

    async def set_value(self, key: str, value: Any) -> None: ...


class PlanNotFoundError(Exception):
    pass


class PlanAlreadyClosedError(Exception):
    pass


class PersistenceError(Exception):
    def __init__(self, message: str, plan: Plan | None = None):
        super().__init__(message)
        self.plan = plan  # the record that is held in memory only


def plans_key(user_id: str) -> str:
    return f"{PLANS_KEY_PREFIX}:{user_id}"


class PlanStore:
    def __init__(self, backend: KeyValueBackend, user_id: str):
        self.backend = backend
        self.user_id = user_id
        self.plans: list[Plan] = []  # newest first
        self.dirty = False  # True while the last save failed
        self._save_lock = asyncio.Lock()

    @property
    def key(self) -> str:
        return plans_key(self.user_id)

    @property
    def busy(self) -> bool:
        return self._save_lock.locked()

    async def load(self) -> list[Plan]:
        """Read the user's partition. A missing partition is an empty journal."""
        try:
            raw = await self.backend.get_value(self.key)
        except (aiosqlite.Error, OSError) as e:
            logger.error(f"Failed to load plans for user {self.user_id}: {e}")
            raise PersistenceError(f"Could not read plans: {e}") from e

        if not raw:
            self.plans = []
            return self.plans
        try:
            self.plans = plan_list_adapter.validate_python(raw)
        except ValidationError as e:
            logger.error(f"Stored plans for user {self.user_id} are malformed: {e}")
            raise PersistenceError("Stored plan collection is malformed") from e
        return self.plans

    async def save(self):
        """Overwrite the persisted collection with the in-memory one."""
        async with self._save_lock:
            await self._write()

    async def _write(self):
        # Snapshot under the lock so the newest collection is written last
        payload = plan_list_adapter.dump_python(self.plans, mode="json")
        try:
            await self.backend.set_value(self.key, payload)
        except (aiosqlite.Error, OSError) as e:
            self.dirty = True
            logger.error(f"Failed to save {len(self.plans)} plans for user {self.user_id}: {e}")
            raise PersistenceError(f"Could not save plans: {e}") from e
        if self.dirty:
            logger.info(f"Plan store for user {self.user_id} back in sync")
        self.dirty = False

    # --- Queries ---

    def get(self, plan_id: str) -> Plan | None:
        for plan in self.plans:
            if plan.id == plan_id:
                return plan
        return None

    def open_plans(self) -> list[PlannedPlan]:
        return [p for p in self.plans if isinstance(p, PlannedPlan)]

    def closed_plans(self) -> list[ClosedPlan]:
        return [p for p in self.plans if isinstance(p, ClosedPlan)]

    # --- Mutations ---

    async def create(self, draft: PlanDraft) -> PlannedPlan:
        plan = PlannedPlan.from_draft(draft)
        self.plans.insert(0, plan)
        logger.info(f"Plan {plan.id} created: {plan.side.value} {plan.symbol} @ {plan.entry_price}")
        try:
            await self.save()
        except PersistenceError as e:
            e.plan = plan
            raise
        return plan

    async def update(self, plan_id: str, mutator: Callable[[Plan], Plan]) -> Plan | None:
        """Replace the matching plan with mutator(plan). Unknown ids are a no-op."""
        for i, plan in enumerate(self.plans):
            if plan.id == plan_id:
                updated = mutator(plan)
                self.plans[i] = updated
                await self.save()
                return updated
        return None

    async def close(self, plan_id: str, exit_price: float, review_notes: str) -> ClosedPlan:
        """Commit the PLANNED -> CLOSED transition. A plan closes at most once."""
        plan = self.get(plan_id)
        if plan is None:
            raise PlanNotFoundError(plan_id)
        if isinstance(plan, ClosedPlan):
            raise PlanAlreadyClosedError(plan_id)

        closed = plan.close(exit_price, review_notes)
        logger.info(
            f"Plan {plan_id} closed: {closed.symbol} exit {exit_price} "
            f"P&L {closed.profit_and_loss:+.2f}"
        )
        try:
            await self.update(plan_id, lambda _: closed)
        except PersistenceError as e:
            e.plan = closed
            raise
        return closed

    async def attach_critique(self, plan_id: str, text: str) -> ClosedPlan:
        """Set the coaching critique once. Later calls keep the first one."""
        plan = self.get(plan_id)
        if plan is None:
            raise PlanNotFoundError(plan_id)
        if not isinstance(plan, ClosedPlan):
            raise ValueError(f"Plan {plan_id} is not closed")
        if plan.critique is not None:
            return plan

        return await self.update(plan_id, lambda p: p.with_critique(text))

    async def delete(self, plan_id: str) -> bool:
        for i, plan in enumerate(self.plans):
            if plan.id == plan_id:
                del self.plans[i]
                logger.info(f"Plan {plan_id} deleted ({plan.symbol})")
                await self.save()
                return True
        return False


class PlanStoreRegistry:
    """Loaded plan stores, one per user id, least recently used first."""

    def __init__(self, backend: KeyValueBackend, max_users: int = 64):
        self.backend = backend
        self.max_users = max_users
        self._stores: OrderedDict[str, PlanStore] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}

    async def for_user(self, user_id: str) -> PlanStore:
        store = self._stores.get(user_id)
        if store is None:
            # One load per user; concurrent callers share the result
            lock = self._locks.setdefault(user_id, asyncio.Lock())
            async with lock:
                store = self._stores.get(user_id)
                if store is None:
                    store = PlanStore(self.backend, user_id)
                    await store.load()
                    self._stores[user_id] = store
        self._stores.move_to_end(user_id)
        self._trim()
        return store

    def _trim(self):
        for user_id in list(self._stores)[:-1]:
            if len(self._stores) <= self.max_users:
                break
            store = self._stores[user_id]
            if not store.dirty and not store.busy:
                del self._stores[user_id]
                self._locks.pop(user_id, None)
                logger.debug(f"Evicted idle plan store for user {user_id}")

    def evict(self, user_id: str):
        store = self._stores.get(user_id)
        # Unsaved changes would be lost
        if store is not None and not store.dirty:
            del self._stores[user_id]
            self._locks.pop(user_id, None)
