from __future__ import annotations

import argparse
import asyncio
import datetime as dt
import logging
import sys
import time
from typing import List, Optional

from nodeflow.config import settings
from nodeflow.core.errors import NodeflowError
from nodeflow.core.models import DateRange, NodeProfile
from nodeflow.ports.profile_sink_port import ProfileSinkPort
from nodeflow.services.market_service import MarketService
from nodeflow.services.price_series import PriceSeriesBuilder
from nodeflow.services.profile_service import ProfileService
from nodeflow.services.record_source import RecordSource
from nodeflow.services.temporal import parse_day
from nodeflow.io.output_writer import write_market_json, write_profiles_json, write_summary_md

from nodeflow.adapters.store.duckdb_store_adapter import DuckDBAnalyticalStore
from nodeflow.adapters.store.mongo_store_adapter import MongoDocumentStore, MongoProfileSink


logger = logging.getLogger("nodeflow")


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="nodeflow", description="Per-sender swap profiles with lead/lag timing (ATOM + ATONE)")
    p.add_argument("--start", help="First KST date to include (YYYY-MM-DD)")
    p.add_argument("--end", help="Last KST date to include (YYYY-MM-DD)")
    p.add_argument("--no-history", action="store_true", help="Omit the per-day history from each profile")
    p.add_argument("--limit", type=int, default=0, help="Top N profiles in the written files (0=all); --persist always stores every profile")
    p.add_argument("--out", default="out", help="Output folder")
    p.add_argument("--persist", action="store_true", help="Replace the nodes collection in MongoDB with the result")
    p.add_argument("--market", action="store_true", help="Also write market.json with price/24h change per asset")
    p.add_argument("--skip-mongo", action="store_true", help="Read swaps from DuckDB only")
    p.add_argument("--duckdb-path", default=settings.DUCKDB_PATH, help="DuckDB database file (secondary source + prices)")
    p.add_argument("--log-level", default=settings.LOG_LEVEL, help="Logging level (DEBUG, INFO, WARNING...)")
    return p


def _ts() -> str:
    return dt.datetime.now().strftime("%H:%M:%S")


def _validate_range(args: argparse.Namespace) -> Optional[str]:
    for flag, value in (("--start", args.start), ("--end", args.end)):
        if value and parse_day(value) is None:
            return f"Invalid {flag} date: {value}"
    if args.start and args.end and parse_day(args.start) > parse_day(args.end):
        return "--start must not be after --end"
    if args.limit < 0:
        return "--limit must be >= 0"
    return None


async def _publish(
    profiles: List[NodeProfile],
    args: argparse.Namespace,
    duck: DuckDBAnalyticalStore,
    sink: Optional[ProfileSinkPort],
    date_range: DateRange,
) -> None:
    """
    Write the output files and optionally replace the stored profiles.
    --limit only trims the files; the sink always gets the full list.
    """
    shown = profiles[: args.limit] if args.limit else profiles

    print("Writing outputs...")
    print(f"Wrote: {write_profiles_json(shown, args.out)}")
    print(f"Wrote: {write_summary_md(shown, args.out, date_range=date_range)}")

    if args.market:
        snapshot = await MarketService(duck).fetch_snapshot()
        print(f"Wrote: {write_market_json(snapshot, args.out)}")

    if sink is not None:
        count = await sink.replace_all(profiles)
        print(f"Persisted {count} profile(s) to {settings.NODES_DB_NAME}.{settings.NODES_COLLECTION_NAME}")


async def _run(args: argparse.Namespace) -> int:
    mongo: Optional[MongoDocumentStore] = None
    if args.skip_mongo:
        adapter_label = "DuckDB only"
    elif not settings.MONGODB_URI:
        logger.warning("MONGODB_URI is not set; reading swaps from DuckDB only")
        adapter_label = "DuckDB only"
    else:
        mongo = MongoDocumentStore()
        adapter_label = "MongoDB -> DuckDB"

    if args.persist and mongo is None:
        print("--persist needs MongoDB (set MONGODB_URI, drop --skip-mongo)", file=sys.stderr)
        return 2

    duck = DuckDBAnalyticalStore(path=args.duckdb_path)
    svc = ProfileService(
        source=RecordSource(primary=mongo, secondary=duck),
        prices=PriceSeriesBuilder(duck),
    )
    date_range = DateRange(start=args.start, end=args.end)

    print(f"[{_ts()}] Sources: {adapter_label}")
    started = time.time()
    try:
        profiles = await svc.compute_profiles(date_range, include_history=not args.no_history)
        print(f"[{_ts()}] Done in {time.time() - started:.1f}s • {len(profiles)} profile(s)")

        sink = MongoProfileSink(mongo) if args.persist else None
        await _publish(profiles, args, duck, sink, date_range)
    finally:
        await duck.close()
        if mongo is not None:
            await mongo.close()
    return 0


def main(argv=None) -> int:
    args = build_arg_parser().parse_args(argv)

    logging.basicConfig(
        level=str(args.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    problem = _validate_range(args)
    if problem:
        print(problem, file=sys.stderr)
        return 2

    try:
        return asyncio.run(_run(args))
    except NodeflowError as exc:
        logger.error("%s: %s", exc.__class__.__name__, exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
