from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from nodeflow.core.models import NodeProfile


class ProfileSinkPort(ABC):
    @abstractmethod
    async def replace_all(self, profiles: Sequence[NodeProfile]) -> int:
        raise NotImplementedError
