from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from nodeflow.core.enums import Asset, SourcePath


@dataclass(frozen=True)
class SwapLeg:
    amount: float               # as stored; sign is ignored by the accumulator
    denom: Optional[str]


Legs = Tuple[Optional[SwapLeg], Optional[SwapLeg], Optional[SwapLeg]]


@dataclass(frozen=True)
class SwapRecord:
    sender: str
    timestamp: Optional[datetime]      # tz-aware; None when unparseable
    token_in: Legs
    token_out: Legs
    price_atom: Optional[float] = None
    price_atone: Optional[float] = None
    volume: Optional[float] = None     # pre-computed tx_volume

    @property
    def in_legs(self) -> List[SwapLeg]:
        return [leg for leg in self.token_in if leg is not None]

    @property
    def out_legs(self) -> List[SwapLeg]:
        return [leg for leg in self.token_out if leg is not None]


@dataclass(frozen=True)
class SourceResult:
    path: SourcePath
    records: List[SwapRecord]


@dataclass(frozen=True)
class PriceSeries:
    atom: Dict[str, float] = field(default_factory=dict)
    atone: Dict[str, float] = field(default_factory=dict)

    def for_asset(self, asset: Asset) -> Dict[str, float]:
        return self.atom if asset is Asset.ATOM else self.atone


@dataclass(frozen=True)
class LagResult:
    lag: Optional[int]
    correlation: Optional[float]
    pair_count: int = 0


@dataclass(frozen=True)
class MarketSnapshot:
    price: float
    change_24h: float
    market_cap: float
    volume_24h: float
    history: List[Tuple[str, float]]
