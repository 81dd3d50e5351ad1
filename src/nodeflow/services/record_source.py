from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from nodeflow.config import settings
from nodeflow.core.dto import SourceResult
from nodeflow.core.enums import SourceKind, SourcePath
from nodeflow.core.errors import SourceExhaustedError
from nodeflow.io.records import swap_records_from_raw
from nodeflow.ports.analytical_store_port import AnalyticalStorePort
from nodeflow.ports.document_store_port import DocumentStorePort


logger = logging.getLogger(__name__)


class RecordSource:
    """
    Two-step resolution of raw swap records.

    - Primary: document store. Failures are logged and read as "no rows".
    - Secondary: analytical store, used when the primary has no rows. Failures propagate.
    """

    def __init__(
        self,
        primary: Optional[DocumentStorePort],
        secondary: AnalyticalStorePort,
        swap_table: str = settings.SWAP_TABLE,
    ) -> None:
        self.primary = primary
        self.secondary = secondary
        self._swap_table = swap_table

    async def fetch_records(self) -> SourceResult:
        rows = await self._fetch_primary()
        if rows:
            logger.info("Loaded %d swap row(s) from primary store", len(rows))
            return SourceResult(path=SourcePath.PRIMARY, records=swap_records_from_raw(rows))

        try:
            rows = await self.secondary.query(f"SELECT * FROM {self._swap_table}")
        except Exception as exc:
            raise SourceExhaustedError(f"Secondary store failed: {exc}") from exc

        if not rows:
            logger.warning("Both stores returned no swap rows")
            return SourceResult(path=SourcePath.EXHAUSTED, records=[])

        logger.info("Loaded %d swap row(s) from secondary store", len(rows))
        return SourceResult(path=SourcePath.FALLBACK, records=swap_records_from_raw(rows))

    async def _fetch_primary(self) -> List[Dict[str, Any]]:
        if self.primary is None:
            return []
        try:
            return await self.primary.fetch_raw(SourceKind.SWAPS)
        except Exception as exc:
            logger.warning("Primary store unavailable, falling back: %s", exc)
            return []
