# Storage Module - SQLite persistence for plugin data
# Saves each plugin's settings blob so it survives restarts

"""
Database Module

Provides async SQLite storage for the host:
- One JSON settings blob per plugin id
- Insert-or-replace on every save

Uses aiosqlite for non-blocking async I/O.
"""

import aiosqlite
import json
import time
from pathlib import Path
from typing import Optional

from ..utils.logger import setup_logger

# Default database path
DEFAULT_DB_PATH = Path(__file__).parent.parent.parent / "data" / "crackboard.db"


class PluginDataStore:
    """
    Async SQLite storage for plugin settings blobs.

    Blobs are small; every save commits immediately.
    """

    def __init__(self, db_path: str = None):
        self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.logger = setup_logger("PluginDataStore")
        self._db: Optional[aiosqlite.Connection] = None

    async def connect(self):
        """Open database connection and create tables."""
        self._db = await aiosqlite.connect(str(self.db_path))
        self._db.row_factory = aiosqlite.Row
        await self._db.execute("PRAGMA journal_mode=WAL")
        await self._create_tables()
        self.logger.info(f"Database connected: {self.db_path}")

    def _ensure_connected(self):
        """Raise if database not connected."""
        if self._db is None:
            raise RuntimeError("Database not connected. Call connect() first.")

    async def close(self):
        """Close database connection."""
        if self._db:
            await self._db.close()
            self._db = None
            self.logger.info("Database closed")

    async def _create_tables(self):
        """Create tables if they don't exist."""
        await self._db.executescript("""
            CREATE TABLE IF NOT EXISTS plugin_data (
                plugin_id TEXT PRIMARY KEY,
                data_json TEXT NOT NULL,
                updated_at REAL NOT NULL
            );
        """)
        await self._db.commit()

    async def load_plugin_data(self, plugin_id: str) -> Optional[dict]:
        """Load a plugin's blob, None if it was never saved."""
        self._ensure_connected()
        cursor = await self._db.execute(
            "SELECT data_json FROM plugin_data WHERE plugin_id = ?",
            (plugin_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return json.loads(row["data_json"])

    async def save_plugin_data(self, plugin_id: str, data: dict):
        """Save a plugin's blob (replaces the previous one)."""
        self._ensure_connected()
        await self._db.execute(
            """INSERT OR REPLACE INTO plugin_data (plugin_id, data_json, updated_at)
               VALUES (?, ?, ?)""",
            (plugin_id, json.dumps(data), time.time())
        )
        await self._db.commit()
