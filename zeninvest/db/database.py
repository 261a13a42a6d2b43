"""SQLite key-value store with async support."""

import json
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite
from loguru import logger

from zeninvest.config import settings


class Database:
    def __init__(self, db_path: str | None = None):
        self.db_path = db_path or settings.db_path
        self._db: aiosqlite.Connection | None = None

    async def connect(self):
        """Connect to SQLite and run migrations."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self.db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.execute("PRAGMA journal_mode=WAL")
        await self._db.execute("PRAGMA synchronous=NORMAL")
        await self._db.execute(f"PRAGMA cache_size=-{settings.db_cache_mb * 1024}")
        await self._run_migrations()
        logger.info(f"Database connected: {self.db_path}")

    async def disconnect(self):
        if self._db:
            await self._db.close()
            self._db = None
            logger.info("Database disconnected")

    async def _run_migrations(self):
        """Run all SQL migration files."""
        migrations_dir = Path(__file__).parent / "migrations"
        for sql_file in sorted(migrations_dir.glob("*.sql")):
            sql = sql_file.read_text()
            await self._db.executescript(sql)
        await self._db.commit()

    # --- Key-value ---

    async def get_value(self, key: str) -> Any:
        cursor = await self._db.execute(
            "SELECT value_json FROM kv_store WHERE key = ?", (key,)
        )
        row = await cursor.fetchone()
        if row:
            return json.loads(row["value_json"])
        return None

    async def set_value(self, key: str, value: Any):
        await self._db.execute(
            """INSERT INTO kv_store (key, value_json, updated_at) VALUES (?, ?, ?)
               ON CONFLICT(key) DO UPDATE SET
                   value_json = excluded.value_json,
                   updated_at = excluded.updated_at""",
            (key, json.dumps(value), datetime.now().isoformat()),
        )
        await self._db.commit()

