from __future__ import annotations

import asyncio
import logging
import math
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from nodeflow.config import settings
from nodeflow.core.dto import PriceSeries
from nodeflow.core.enums import Asset
from nodeflow.ports.analytical_store_port import AnalyticalStorePort
from nodeflow.services.temporal import parse_day


logger = logging.getLogger(__name__)

FilledPrices = Dict[str, Dict[Asset, Optional[float]]]


def build_spine(start: Any, end: Any) -> List[str]:
    start_day = parse_day(start)
    end_day = parse_day(end)
    if start_day is None or end_day is None or start_day > end_day:
        return []
    return [d.strftime("%Y-%m-%d") for d in pd.date_range(start_day, end_day, freq="D")]


def _price(val: Any) -> Optional[float]:
    if val is None:
        return None
    try:
        out = float(val)
    except (TypeError, ValueError):
        return None
    return out if math.isfinite(out) else None


def forward_fill(spine: Sequence[str], series: PriceSeries) -> FilledPrices:
    """
    Carries the last observed price of each asset forward across the spine.
    Dates before an asset's first observation stay None.
    """
    if not spine:
        return {}

    frame = pd.DataFrame(index=pd.Index(list(spine), name="date"))
    for asset in Asset:
        observed = pd.Series(series.for_asset(asset), dtype="float64")
        frame[asset.value] = observed.reindex(frame.index)

    filled = frame.ffill()
    out: FilledPrices = {}
    for day, row in filled.iterrows():
        out[day] = {asset: _price(row[asset.value]) for asset in Asset}
    return out


class PriceSeriesBuilder:
    """
    Daily closing prices for both assets from the analytical store's daily views.
    """

    def __init__(
        self,
        store: AnalyticalStorePort,
        atom_view: str = settings.ATOM_DAILY_VIEW,
        atone_view: str = settings.ATONE_DAILY_VIEW,
    ) -> None:
        self._store = store
        self._views = {
            Asset.ATOM: (atom_view, "atom_price_close"),
            Asset.ATONE: (atone_view, "atone_price_close"),
        }

    async def fetch_daily_prices(self, start: Optional[date], end: Optional[date]) -> PriceSeries:
        atom, atone = await asyncio.gather(
            self._fetch_asset(Asset.ATOM, start, end),
            self._fetch_asset(Asset.ATONE, start, end),
        )
        return PriceSeries(atom=atom, atone=atone)

    async def _fetch_asset(self, asset: Asset, start: Optional[date], end: Optional[date]) -> Dict[str, float]:
        view, column = self._views[asset]
        sql = f"SELECT CAST(date_kst AS VARCHAR) AS date, {column} AS price FROM {view}"
        clauses: List[str] = []
        params: List[str] = []
        if start is not None:
            clauses.append("date_kst >= CAST(? AS DATE)")
            params.append(start.isoformat())
        if end is not None:
            clauses.append("date_kst <= CAST(? AS DATE)")
            params.append(end.isoformat())
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY date_kst"

        try:
            rows = await self._store.query(sql, params)
        except Exception as exc:
            logger.warning("Daily %s price query failed, using empty series: %s", asset.value, exc)
            return {}

        prices: Dict[str, float] = {}
        for row in rows:
            day = parse_day(row.get("date"))
            price = _price(row.get("price"))
            if day is None or price is None:
                continue
            prices[day.isoformat()] = price
        return prices
