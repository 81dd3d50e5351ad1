from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Dict, List, Optional, Sequence

import duckdb

from nodeflow.config.settings import (
    ATOM_BASE_TABLE,
    ATOM_DAILY_VIEW,
    ATONE_BASE_TABLE,
    ATONE_DAILY_VIEW,
    DUCKDB_ENSURE_VIEWS,
    DUCKDB_PATH,
)
from nodeflow.core.errors import DataSourceError
from nodeflow.ports.analytical_store_port import AnalyticalStorePort


logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"

# one averaged close per KST day, from "YYYY.MM.DD HH:MM" snapshot rows
DAILY_VIEW_SQL = """
CREATE OR REPLACE VIEW {view} AS
SELECT date_kst, AVG(marketPrice) AS {column}
FROM (
    SELECT
        CAST(TRY_STRPTIME(CAST(timestamp_converted AS VARCHAR), '%Y.%m.%d %H:%M') AS DATE) AS date_kst,
        marketPrice
    FROM {table}
    WHERE timestamp_converted IS NOT NULL
)
WHERE date_kst IS NOT NULL
GROUP BY date_kst
ORDER BY date_kst
"""

DAILY_VIEWS = (
    (ATOM_DAILY_VIEW, "atom_price_close", ATOM_BASE_TABLE),
    (ATONE_DAILY_VIEW, "atone_price_close", ATONE_BASE_TABLE),
)


class DuckDBAnalyticalStore(AnalyticalStorePort):

    def __init__(
        self,
        path: str = DUCKDB_PATH,
        ensure_views: bool = DUCKDB_ENSURE_VIEWS,
    ) -> None:
        self._path = path
        self._ensure_views = ensure_views

        self._conn: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = asyncio.Lock()

    # ---------- internal ----------

    def _connect(self) -> duckdb.DuckDBPyConnection:
        if self._path != MEMORY_PATH and not os.path.exists(self._path):
            raise DataSourceError(f"DuckDB file not found: {self._path}")
        try:
            conn = duckdb.connect(self._path)
        except duckdb.Error as e:
            raise DataSourceError(f"DuckDB connect failed: {e}") from e

        if self._ensure_views:
            try:
                self._create_views(conn)
            except duckdb.Error as e:
                logger.warning("Daily price views not created: %s", e)
        logger.info("Opened DuckDB database %s", self._path)
        return conn

    async def _connection(self) -> duckdb.DuckDBPyConnection:
        if self._conn is not None:
            return self._conn
        async with self._lock:
            if self._conn is None:
                self._conn = await asyncio.to_thread(self._connect)
        return self._conn

    @staticmethod
    def _create_views(conn: duckdb.DuckDBPyConnection) -> None:
        cur = conn.cursor()
        try:
            for view, column, table in DAILY_VIEWS:
                cur.execute(DAILY_VIEW_SQL.format(view=view, column=column, table=table))
        finally:
            cur.close()

    @staticmethod
    def _fetch(
        conn: duckdb.DuckDBPyConnection,
        sql: str,
        params: Optional[Sequence[Any]],
    ) -> List[Dict[str, Any]]:
        cur = conn.cursor()
        try:
            cur.execute(sql, list(params) if params else None)
            if cur.description is None:
                return []
            columns = [d[0] for d in cur.description]
            return [dict(zip(columns, row)) for row in cur.fetchall()]
        except duckdb.Error as e:
            raise DataSourceError(f"DuckDB query failed: {e}") from e
        finally:
            cur.close()

    @staticmethod
    def _run(conn: duckdb.DuckDBPyConnection, sql: str) -> None:
        cur = conn.cursor()
        try:
            cur.execute(sql)
        except duckdb.Error as e:
            raise DataSourceError(f"DuckDB statement failed: {e}") from e
        finally:
            cur.close()

    # ---------- port methods ----------

    async def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        conn = await self._connection()
        return await asyncio.to_thread(self._fetch, conn, sql, params)

    async def execute(self, sql: str) -> None:
        conn = await self._connection()
        await asyncio.to_thread(self._run, conn, sql)

    async def ensure_views(self) -> None:
        conn = await self._connection()
        try:
            await asyncio.to_thread(self._create_views, conn)
        except duckdb.Error as e:
            raise DataSourceError(f"Could not create daily price views: {e}") from e

    async def close(self) -> None:
        async with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
