from __future__ import annotations

import argparse
import asyncio
import json

from nodeflow.adapters.store.duckdb_store_adapter import DuckDBAnalyticalStore
from nodeflow.config import settings
from nodeflow.io.schemas import market_to_dict
from nodeflow.services.market_service import MarketService


async def _run(path: str) -> dict:
    store = DuckDBAnalyticalStore(path=path)
    try:
        snapshot = await MarketService(store).fetch_snapshot()
    finally:
        await store.close()
    return {asset.value: market_to_dict(m) for asset, m in snapshot.items()}


def main() -> None:
    parser = argparse.ArgumentParser(description="Print price, 24h change and 24h volume for ATOM and ATONE")
    parser.add_argument("--duckdb-path", default=settings.DUCKDB_PATH, help="DuckDB database file")
    args = parser.parse_args()
    print(json.dumps(asyncio.run(_run(args.duckdb_path)), indent=2))


if __name__ == "__main__":
    main()
