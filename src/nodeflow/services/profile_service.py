from __future__ import annotations

import logging
from typing import List, Optional

from nodeflow.core.enums import SourcePath
from nodeflow.core.errors import SourceExhaustedError
from nodeflow.core.models import DateRange, NodeProfile
from nodeflow.services.accumulator import accumulate
from nodeflow.services.composer import ScoreComposer
from nodeflow.services.price_series import PriceSeriesBuilder, build_spine, forward_fill
from nodeflow.services.record_source import RecordSource
from nodeflow.services.temporal import filter_by_range, resolve_range


logger = logging.getLogger(__name__)

DESCRIPTIONS = {
    SourcePath.PRIMARY: "Derived from document-store swap logs.",
    SourcePath.FALLBACK: "Derived from analytical-store swap_data.",
}


class ProfileService:
    """
    Builds ranked per-sender swap profiles for one date range.

    - Records: primary store, else secondary store
    - Prices: daily closes per asset, forward-filled over the range
    - Timing: best lead/lag of daily net flow against price returns
    Each call recomputes everything; nothing is kept between calls.
    """

    def __init__(
        self,
        source: RecordSource,
        prices: PriceSeriesBuilder,
        composer: Optional[ScoreComposer] = None,
    ) -> None:
        self.source = source
        self.prices = prices
        self.composer = composer or ScoreComposer()

    async def compute_profiles(
        self,
        date_range: Optional[DateRange] = None,
        include_history: bool = True,
    ) -> List[NodeProfile]:
        result = await self.source.fetch_records()
        if result.path is SourcePath.EXHAUSTED:
            raise SourceExhaustedError("No swap records in primary or secondary store")

        records = filter_by_range(result.records, date_range)
        aggregates = accumulate(records)
        if not aggregates:
            logger.info("No usable swap records in range %s", date_range)
            return []

        start, end = resolve_range(date_range, records)
        spine = build_spine(start, end)
        series = await self.prices.fetch_daily_prices(start, end)
        filled = forward_fill(spine, series)

        profiles = self.composer.compose(
            aggregates.values(),
            spine,
            filled,
            include_history=include_history,
            description=DESCRIPTIONS.get(result.path, ""),
        )
        logger.info(
            "Built %d profile(s) from %d record(s) over %s..%s (%s)",
            len(profiles), len(records), start, end, result.path.value,
        )
        return profiles
