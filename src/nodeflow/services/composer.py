from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from nodeflow.config import settings
from nodeflow.core.dto import LagResult
from nodeflow.core.enums import Asset, Bias, SwapCategory
from nodeflow.core.models import (
    CategoryProfile,
    Composition,
    HistoryEntry,
    NodeProfile,
    SenderAggregate,
    TimingDetail,
)
from nodeflow.services.lead_lag import (
    best_lag,
    blend_weights,
    classify_timing,
    timing_score,
    to_returns,
)
from nodeflow.services.price_series import FilledPrices


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _clamp(lo: float, hi: float, x: float) -> float:
    return max(lo, min(hi, x))


def blend_price(
    atom_price: Optional[float],
    atone_price: Optional[float],
    w_atom: float,
    w_atone: float,
) -> Optional[float]:
    if atom_price is not None and atone_price is not None:
        return w_atom * atom_price + w_atone * atone_price
    if atom_price is not None:
        return atom_price
    return atone_price


def flow_consistency(day_flows: Iterable[float]) -> float:
    values = np.asarray(list(day_flows), dtype=float)
    if values.size == 0:
        return 0.5
    std = float(values.std())
    if std <= 0:
        return 0.5
    return max(0.0, 1.0 - std / (abs(float(values.mean())) + 1.0))


def bias_for(atom_share: float, one_share: float) -> Bias:
    if atom_share > one_share and atom_share >= 0.5:
        return Bias.ATOM
    if one_share > atom_share and one_share >= 0.5:
        return Bias.ATOMONE
    return Bias.MIXED


def composition_for(agg: SenderAggregate) -> Composition:
    total = agg.swap_volume + agg.ibc_volume + agg.stake_volume
    if total <= 0:
        return Composition(swap=100, ibc=0, stake=0)
    return Composition(
        swap=round_half_up(100 * agg.swap_volume / total),
        ibc=round_half_up(100 * agg.ibc_volume / total),
        stake=round_half_up(100 * agg.stake_volume / total),
    )


class SenderSeries:
    """
    Per-sender price and flow series on one ordered date axis.
    """

    def __init__(self, agg: SenderAggregate, axis: Sequence[str], filled: FilledPrices) -> None:
        self.axis = list(axis)
        self.w_atom, self.w_atone = blend_weights(agg.atom_volume, agg.one_volume)

        atom_flows = agg.daily_asset_flow[Asset.ATOM]
        atone_flows = agg.daily_asset_flow[Asset.ATONE]

        self.atom_prices = [self._asset_price(agg, filled, d, Asset.ATOM) for d in self.axis]
        self.atone_prices = [self._asset_price(agg, filled, d, Asset.ATONE) for d in self.axis]
        self.unified_prices = [
            blend_price(a, b, self.w_atom, self.w_atone)
            for a, b in zip(self.atom_prices, self.atone_prices)
        ]

        self.atom_flows = [atom_flows.get(d, 0.0) for d in self.axis]
        self.atone_flows = [atone_flows.get(d, 0.0) for d in self.axis]
        self.unified_flows = []
        for d in self.axis:
            if d in atom_flows or d in atone_flows:
                self.unified_flows.append(
                    self.w_atom * atom_flows.get(d, 0.0) + self.w_atone * atone_flows.get(d, 0.0)
                )
            else:
                self.unified_flows.append(agg.day_flow.get(d, 0.0))

    @staticmethod
    def _asset_price(agg: SenderAggregate, filled: FilledPrices, day: str, asset: Asset) -> Optional[float]:
        price = filled.get(day, {}).get(asset)
        if price is not None:
            return price
        samples = agg.daily_price_samples.get(day, {}).get(asset) or []
        if not samples:
            return None
        return sum(samples) / len(samples)


class ScoreComposer:
    """
    Turns the run's sender aggregates into ranked NodeProfiles.
    """

    def __init__(
        self,
        max_lag: int = settings.LEAD_LAG_MAX_LAG,
        min_pairs: int = settings.LEAD_LAG_MIN_PAIRS,
    ) -> None:
        self._max_lag = max_lag
        self._min_pairs = min_pairs

    def compose(
        self,
        aggregates: Iterable[SenderAggregate],
        spine: Sequence[str],
        filled: FilledPrices,
        include_history: bool = True,
        description: str = "",
    ) -> List[NodeProfile]:
        aggs = list(aggregates)
        if not aggs:
            return []

        max_volume = max(max(a.total_volume for a in aggs), 1.0)
        max_tx = max(max(a.tx_count for a in aggs), 1)
        volume_sum = max(sum(a.total_volume for a in aggs), 1.0)

        profiles = [
            self._profile(a, spine, filled, max_volume, max_tx, volume_sum, include_history, description)
            for a in aggs
        ]
        profiles.sort(key=lambda p: (-p.size, -p.total_volume, p.address))
        return profiles

    def _lag(self, flows: Sequence[float], prices: Sequence[Optional[float]]) -> LagResult:
        return best_lag(flows, to_returns(prices), max_lag=self._max_lag, min_pairs=self._min_pairs)

    def _profile(
        self,
        agg: SenderAggregate,
        spine: Sequence[str],
        filled: FilledPrices,
        max_volume: float,
        max_tx: int,
        volume_sum: float,
        include_history: bool,
        description: str,
    ) -> NodeProfile:
        axis = spine if spine else sorted(agg.day_flow)
        s = SenderSeries(agg, axis, filled)

        atom_lag = self._lag(s.atom_flows, s.atom_prices)
        atone_lag = self._lag(s.atone_flows, s.atone_prices)
        unified = self._lag(s.unified_flows, s.unified_prices)

        total = agg.total_volume
        ratio_denom = (agg.buy_volume + agg.sell_volume) or 1.0
        net_buy_ratio = (agg.buy_volume - agg.sell_volume) / ratio_denom
        atom_share = agg.atom_volume / total if total else 0.0
        one_share = agg.one_volume / total if total else 0.0

        t_score = timing_score(unified.lag)
        if unified.correlation is not None:
            flow_corr_score = round_half_up(min(100.0, 100.0 * abs(unified.correlation)))
            correlation = unified.correlation
        else:
            flow_corr_score = 0
            correlation = _clamp(-1.0, 1.0, net_buy_ratio * flow_consistency(agg.day_flow.values()))

        scale = min(100.0, 100.0 * total / max_volume)
        share = round_half_up(100.0 * total / volume_sum)
        size = _clamp(
            10.0,
            100.0,
            0.4 * scale
            + 40.0 * agg.tx_count / max_tx
            + 0.2 * share
            + 0.2 * t_score
            + 0.2 * flow_corr_score,
        )

        category_total = agg.swap_volume + agg.ibc_volume + agg.stake_volume
        swap_profile: Dict[SwapCategory, CategoryProfile] = {
            cat: CategoryProfile(
                share=stat.volume / total if total else 0.0,
                count=stat.count,
                volume=stat.volume,
                sample_routes=tuple(stat.routes),
            )
            for cat, stat in agg.category_stats.items()
        }

        history = None
        if include_history:
            history = self._history(agg, s)

        return NodeProfile(
            address=agg.sender,
            size=size,
            bias=bias_for(atom_share, one_share),
            timing=classify_timing(unified.lag, net_buy_ratio),
            total_volume=total,
            avg_trade_size=total / agg.tx_count if agg.tx_count else 0.0,
            buy_volume=agg.buy_volume,
            sell_volume=agg.sell_volume,
            net_flow_sum=agg.net_flow_sum,
            net_buy_ratio=net_buy_ratio,
            tx_count=agg.tx_count,
            atom_volume_share=atom_share,
            one_volume_share=one_share,
            ibc_volume_share=agg.ibc_volume / category_total if category_total > 0 else 0.0,
            active_days=agg.active_days,
            last_active_date=agg.last_active,
            timing_score=t_score,
            correlation_score=correlation,
            flow_correlation_score=flow_corr_score,
            scale_score=scale,
            share_score=share,
            roi=100.0 * agg.net_flow_sum / max(1.0, total),
            composition=composition_for(agg),
            swap_profile=swap_profile,
            timing_detail=TimingDetail(
                atom=atom_lag,
                atone=atone_lag,
                unified=unified,
                weight_atom=s.w_atom,
                weight_atone=s.w_atone,
            ),
            history=history,
            description=description,
        )

    @staticmethod
    def _history(agg: SenderAggregate, s: SenderSeries) -> tuple:
        atom_flows = agg.daily_asset_flow[Asset.ATOM]
        atone_flows = agg.daily_asset_flow[Asset.ATONE]
        return tuple(
            HistoryEntry(
                date=day,
                price=s.unified_prices[i],
                atom_price=s.atom_prices[i],
                atone_price=s.atone_prices[i],
                net_flow=agg.day_flow.get(day, 0.0),
                atom_net_flow=atom_flows.get(day, 0.0),
                atone_net_flow=atone_flows.get(day, 0.0),
                tx_count=agg.day_tx_count.get(day, 0),
            )
            for i, day in enumerate(s.axis)
        )
