from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence


class AnalyticalStorePort(ABC):

    # --- read ---

    @abstractmethod
    async def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        raise NotImplementedError

    # --- DDL / writes ---

    @abstractmethod
    async def execute(self, sql: str) -> None:
        raise NotImplementedError
