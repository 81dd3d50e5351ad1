from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from nodeflow.core.dto import LagResult
from nodeflow.core.enums import Asset, Bias, SwapCategory, Timing



# Run configuration

@dataclass(frozen=True)
class DateRange:
    """
    Requested calendar window (KST dates, inclusive on both ends).
    """

    start: Optional[str] = None
    end: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.start and not self.end



# Accumulator state

@dataclass
class CategoryStat:
    count: int = 0
    volume: float = 0.0
    routes: List[str] = field(default_factory=list)


def _empty_categories() -> Dict[SwapCategory, CategoryStat]:
    return {c: CategoryStat() for c in SwapCategory}


def _empty_asset_flows() -> Dict[Asset, Dict[str, float]]:
    return {a: {} for a in Asset}


@dataclass
class SenderAggregate:
    """
    Running totals for one sender. A freshly constructed instance is the zero value.
    """

    sender: str
    tx_count: int = 0
    total_volume: float = 0.0
    buy_volume: float = 0.0
    sell_volume: float = 0.0
    net_flow_sum: float = 0.0
    atom_volume: float = 0.0
    one_volume: float = 0.0
    last_active: Optional[datetime] = None

    day_flow: Dict[str, float] = field(default_factory=dict)
    day_tx_count: Dict[str, int] = field(default_factory=dict)

    swap_volume: float = 0.0
    ibc_volume: float = 0.0
    stake_volume: float = 0.0

    category_stats: Dict[SwapCategory, CategoryStat] = field(default_factory=_empty_categories)
    daily_price_samples: Dict[str, Dict[Asset, List[float]]] = field(default_factory=dict)
    daily_asset_flow: Dict[Asset, Dict[str, float]] = field(default_factory=_empty_asset_flows)

    @property
    def active_days(self) -> int:
        return len(self.day_flow)



# Profile models

@dataclass(frozen=True)
class Composition:
    swap: int
    ibc: int
    stake: int


@dataclass(frozen=True)
class CategoryProfile:
    share: float
    count: int
    volume: float
    sample_routes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TimingDetail:
    atom: LagResult
    atone: LagResult
    unified: LagResult
    weight_atom: float
    weight_atone: float


@dataclass(frozen=True)
class HistoryEntry:
    date: str
    price: Optional[float]
    atom_price: Optional[float]
    atone_price: Optional[float]
    net_flow: float
    atom_net_flow: float
    atone_net_flow: float
    tx_count: int


@dataclass(frozen=True)
class NodeProfile:

    address: str

    size: float
    bias: Bias
    timing: Timing

    total_volume: float
    avg_trade_size: float
    buy_volume: float
    sell_volume: float
    net_flow_sum: float
    net_buy_ratio: float
    tx_count: int

    atom_volume_share: float
    one_volume_share: float
    ibc_volume_share: float

    active_days: int
    last_active_date: Optional[datetime]

    timing_score: float
    correlation_score: float
    flow_correlation_score: int
    scale_score: float
    share_score: int
    roi: float

    composition: Composition
    swap_profile: Dict[SwapCategory, CategoryProfile]
    timing_detail: TimingDetail

    history: Optional[Tuple[HistoryEntry, ...]] = None
    description: str = ""

    @property
    def id(self) -> str:
        return self.address

    @property
    def name(self) -> str:
        return self.address
