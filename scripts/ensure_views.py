from __future__ import annotations

import argparse
import asyncio

from nodeflow.adapters.store.duckdb_store_adapter import DAILY_VIEWS, DuckDBAnalyticalStore
from nodeflow.config import settings


async def _run(path: str) -> None:
    store = DuckDBAnalyticalStore(path=path, ensure_views=False)
    try:
        await store.ensure_views()
        for view, column, _ in DAILY_VIEWS:
            rows = await store.query(f"SELECT COUNT(*) AS n, MAX(date_kst) AS last_day FROM {view}")
            print(f"{view}.{column}: {rows[0]['n']} day(s), last {rows[0]['last_day']}")
    finally:
        await store.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or refresh the daily price views in DuckDB")
    parser.add_argument("--duckdb-path", default=settings.DUCKDB_PATH, help="DuckDB database file")
    args = parser.parse_args()
    asyncio.run(_run(args.duckdb_path))


if __name__ == "__main__":
    main()
