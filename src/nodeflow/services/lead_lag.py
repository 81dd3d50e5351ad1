from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from nodeflow.config import settings
from nodeflow.core.dto import LagResult
from nodeflow.core.enums import Timing


NO_LAG = LagResult(lag=None, correlation=None, pair_count=0)

# |r| values this close count as a tie
TIE_REL_TOL = 1e-9
TIE_ABS_TOL = 1e-12


def to_returns(prices: Sequence[Optional[float]]) -> List[Optional[float]]:
    returns: List[Optional[float]] = [None] * len(prices)
    for t in range(1, len(prices)):
        prev, cur = prices[t - 1], prices[t]
        if prev is None or cur is None or prev == 0:
            continue
        returns[t] = (cur - prev) / prev
    return returns


def pearson(xs: Sequence[float], ys: Sequence[float]) -> Optional[float]:
    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    if x.size < 2 or x.size != y.size:
        return None
    # constant inputs: no variance, no correlation
    if x.max() == x.min() or y.max() == y.min():
        return None
    dx = x - x.mean()
    dy = y - y.mean()
    denom = np.sqrt((dx * dx).sum() * (dy * dy).sum())
    if denom == 0 or not np.isfinite(denom):
        return None
    return float(np.clip((dx * dy).sum() / denom, -1.0, 1.0))


def _stronger(corr: float, current: float) -> bool:
    a, b = abs(corr), abs(current)
    if math.isclose(a, b, rel_tol=TIE_REL_TOL, abs_tol=TIE_ABS_TOL):
        return False
    return a > b


def best_lag(
    flows: Sequence[Optional[float]],
    returns: Sequence[Optional[float]],
    max_lag: int = settings.LEAD_LAG_MAX_LAG,
    min_pairs: int = settings.LEAD_LAG_MIN_PAIRS,
) -> LagResult:
    """
    Scans lags -max_lag..max_lag (0 excluded), pairing flow[t - lag] with return[t].

    Negative lag = flow moves before price. The strongest |r| wins; on a tie the
    earliest lag scanned (most negative) is kept.
    """
    best = NO_LAG
    for lag in range(-max_lag, max_lag + 1):
        if lag == 0:
            continue
        xs: List[float] = []
        ys: List[float] = []
        for t, r in enumerate(returns):
            i = t - lag
            if r is None or i < 0 or i >= len(flows) or flows[i] is None:
                continue
            xs.append(flows[i])
            ys.append(r)
        if len(xs) < min_pairs:
            continue
        corr = pearson(xs, ys)
        if corr is None:
            continue
        if best.correlation is None or _stronger(corr, best.correlation):
            best = LagResult(lag=lag, correlation=corr, pair_count=len(xs))
    return best


def blend_weights(atom_volume: float, one_volume: float) -> Tuple[float, float]:
    total = atom_volume + one_volume
    if total <= 0:
        return 0.5, 0.5
    w_atom = atom_volume / total
    return w_atom, 1.0 - w_atom


def classify_timing(lag: Optional[int], net_buy_ratio: float) -> Timing:
    if lag is None:
        if net_buy_ratio > 0.1:
            return Timing.LEADING
        if net_buy_ratio < -0.1:
            return Timing.LAGGING
        return Timing.SYNC
    if lag <= -2:
        return Timing.LEADING
    if lag >= 2:
        return Timing.LAGGING
    return Timing.SYNC


def timing_score(lag: Optional[int]) -> float:
    if lag is None:
        return 48.0
    return float(max(12, 90 - 12 * min(6, abs(lag))))
