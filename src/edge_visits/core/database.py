"""
Visit store backends.

Both backends speak SQLite's dialect (D1 is SQLite at the edge), so the
statements built in ``core.query`` run unchanged on either.
"""
import asyncio
import logging
import sqlite3
from threading import Lock
from typing import Optional, Protocol

import httpx

from ..config import VisitsConfig
from ..errors import StoreQueryError
from .models import VisitRecord
from .query import TABLE

logger = logging.getLogger(__name__)

D1_API_BASE = "https://api.cloudflare.com/client/v4"


def schema_statements() -> list[str]:
    """DDL for the sparse visits table and its timestamp index."""
    columns = ",\n    ".join(
        f"{column} TEXT NOT NULL DEFAULT ''" for column in VisitRecord.COLUMNS
    )
    return [
        f"""CREATE TABLE IF NOT EXISTS {TABLE} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    {columns}
)""",
        f"CREATE INDEX IF NOT EXISTS idx_{TABLE}_timestamp ON {TABLE} (timestamp)",
    ]


class Database(Protocol):
    """Parameterized access to the visit store."""

    async def query(self, sql: str, params: Optional[list] = None) -> list[dict]:
        ...

    async def execute(self, sql: str, params: Optional[list] = None) -> None:
        ...


class D1Database:
    """Cloudflare D1 over the account-scoped HTTP API."""

    def __init__(
        self,
        d1_database_id: str,
        cf_account_id: str,
        cf_api_token: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.database_id = d1_database_id
        self.account_id = cf_account_id
        self.api_token = cf_api_token
        self.timeout = timeout
        self.transport = transport
        self.base_url = f"{D1_API_BASE}/accounts/{cf_account_id}/d1/database/{d1_database_id}"

    async def query(self, sql: str, params: Optional[list] = None) -> list[dict]:
        """Execute a SQL query against D1."""
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.post(
                    f"{self.base_url}/query",
                    headers={
                        "Authorization": f"Bearer {self.api_token}",
                        "Content-Type": "application/json",
                    },
                    json={"sql": sql, "params": params or []},
                )
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise StoreQueryError(f"D1 request failed: {e}") from e

            data = response.json()

            if not data.get("success"):
                raise StoreQueryError(f"D1 query failed: {data.get('errors')}")

            results = data.get("result", [])
            if results and len(results) > 0:
                return results[0].get("results", [])
            return []

    async def execute(self, sql: str, params: Optional[list] = None) -> None:
        """Execute a SQL statement without returning results."""
        await self.query(sql, params)

    async def ensure_schema(self) -> None:
        """Create the visits table if it does not exist."""
        for statement in schema_statements():
            await self.execute(statement)


class SQLiteDatabase:
    """Local SQLite file (or ``:memory:``) for development and tests.

    One connection is shared and guarded by a lock; statements run in a
    worker thread so the event loop is never blocked on disk I/O.
    """

    def __init__(self, path: str):
        self.path = path
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = Lock()

    def _run(self, sql: str, params: list) -> list[dict]:
        with self._lock:
            try:
                cursor = self._conn.execute(sql, params)
                rows = [dict(row) for row in cursor.fetchall()]
                self._conn.commit()
            except sqlite3.Error as e:
                self._conn.rollback()
                raise StoreQueryError(str(e)) from e
        return rows

    async def query(self, sql: str, params: Optional[list] = None) -> list[dict]:
        """Execute a SQL query against the local database."""
        return await asyncio.to_thread(self._run, sql, list(params or []))

    async def execute(self, sql: str, params: Optional[list] = None) -> None:
        """Execute a SQL statement without returning results."""
        await self.query(sql, params)

    def ensure_schema(self) -> None:
        """Create the visits table if it does not exist."""
        with self._lock:
            for statement in schema_statements():
                self._conn.execute(statement)
            self._conn.commit()

    def close(self) -> None:
        with self._lock:
            self._conn.close()


def create_database(config: VisitsConfig) -> D1Database | SQLiteDatabase | None:
    """Create the store selected by config, or None when none is configured."""
    if config.has_d1:
        logger.debug(f"Using D1 store {config.d1_database_id}")
        return D1Database(
            d1_database_id=config.d1_database_id,
            cf_account_id=config.cf_account_id,
            cf_api_token=config.cf_api_token,
            timeout=config.timeout_seconds,
        )
    if config.sqlite_path:
        logger.debug(f"Using SQLite store {config.sqlite_path}")
        database = SQLiteDatabase(config.sqlite_path)
        database.ensure_schema()
        return database
    logger.warning("No visit store configured; tracking is disabled")
    return None
