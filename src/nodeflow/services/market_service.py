from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

from nodeflow.config import settings
from nodeflow.core.dto import MarketSnapshot
from nodeflow.core.enums import Asset
from nodeflow.core.errors import DataSourceError
from nodeflow.ports.analytical_store_port import AnalyticalStorePort
from nodeflow.services.temporal import date_key, parse_timestamp


logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000


def _f(val) -> float:
    try:
        return float(val) if val is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


class MarketService:
    """
    Latest price, 24h change, market cap and 24h swap volume per asset.
    """

    def __init__(
        self,
        store: AnalyticalStorePort,
        history_rows: int = settings.MARKET_HISTORY_ROWS,
        swap_table: str = settings.SWAP_TABLE,
    ) -> None:
        self._store = store
        self._history_rows = history_rows
        self._swap_table = swap_table
        self._tables = {
            Asset.ATOM: (settings.ATOM_BASE_TABLE, "ATOM"),
            Asset.ATONE: (settings.ATONE_BASE_TABLE, "ATONE"),
        }

    async def fetch_snapshot(self) -> Dict[Asset, Optional[MarketSnapshot]]:
        atom, atone = await asyncio.gather(
            self.fetch_asset(Asset.ATOM),
            self.fetch_asset(Asset.ATONE),
        )
        return {Asset.ATOM: atom, Asset.ATONE: atone}

    async def fetch_asset(self, asset: Asset) -> Optional[MarketSnapshot]:
        table, _ = self._tables[asset]
        try:
            rows = await self._store.query(
                f"""
                SELECT
                    marketPrice AS price,
                    marketCap AS market_cap,
                    TRY_CAST(timestamp AS DOUBLE) AS ts
                FROM {table}
                WHERE marketPrice IS NOT NULL
                  AND TRY_CAST(timestamp AS DOUBLE) IS NOT NULL
                ORDER BY ts DESC
                LIMIT {int(self._history_rows)}
                """
            )
        except DataSourceError as exc:
            logger.warning("Market rows for %s unavailable: %s", asset.value, exc)
            return None

        if not rows:
            return None

        current = rows[0]
        latest_ts = _f(current.get("ts"))
        cutoff = latest_ts - DAY_MS
        past = next((r for r in rows if _f(r.get("ts")) <= cutoff), rows[-1])

        price = _f(current.get("price"))
        past_price = _f(past.get("price"))
        change = (price - past_price) / past_price * 100 if past_price else 0.0

        history = []
        for r in reversed(rows):
            instant = parse_timestamp(_f(r.get("ts")))
            if instant is None:
                continue
            history.append((date_key(instant), _f(r.get("price"))))

        return MarketSnapshot(
            price=price,
            change_24h=change,
            market_cap=_f(current.get("market_cap")),
            volume_24h=await self._volume(asset, cutoff, latest_ts),
            history=history,
        )

    async def _volume(self, asset: Asset, start_ts: float, end_ts: float) -> float:
        _, symbol = self._tables[asset]
        try:
            rows = await self._store.query(
                f"""
                SELECT COALESCE(SUM(tx_volume), 0) AS volume
                FROM {self._swap_table}
                WHERE TRY_CAST(timestamp AS DOUBLE) BETWEEN ? AND ?
                  AND (
                    tokenInDenom1 = ?
                    OR tokenOutDenom1 = ?
                    OR tokenOutDenom2 = ?
                    OR tokenOutDenom3 = ?
                  )
                """,
                [start_ts, end_ts, symbol, symbol, symbol, symbol],
            )
        except DataSourceError as exc:
            logger.warning("24h volume for %s unavailable: %s", asset.value, exc)
            return 0.0
        if not rows:
            return 0.0
        return _f(rows[0].get("volume"))
