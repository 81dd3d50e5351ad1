from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from nodeflow.core.enums import SourceKind


class DocumentStorePort(ABC):
    """
    Abstract document store holding raw swap logs and market snapshots.
    """

    @abstractmethod
    async def fetch_raw(self, source_kind: SourceKind) -> List[Dict[str, Any]]:
        raise NotImplementedError
