from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from nodeflow.config import settings
from nodeflow.core.dto import SwapLeg, SwapRecord
from nodeflow.core.enums import Asset, SwapCategory
from nodeflow.core.models import SenderAggregate
from nodeflow.services.temporal import date_key


logger = logging.getLogger(__name__)

# micro-denominated base tokens
MICRO_DENOMS = {
    "uatom": "ATOM",
    "uatone": "ATONE",
}


def is_atom_denom(denom: Optional[str]) -> bool:
    if not denom:
        return False
    upper = denom.upper()
    return "ATOM" in upper and "ONE" not in upper


def is_atone_denom(denom: Optional[str]) -> bool:
    if not denom:
        return False
    upper = denom.upper()
    return "ATONE" in upper or "ATOMONE" in upper


def simplify_denom(denom: str) -> str:
    """
    ibc/ABC..., transfer/channel-0/uatom, factory/<addr>/name -> last path segment, uppercased.
    """
    d = denom.strip()
    if "/" in d:
        d = d.rstrip("/").rsplit("/", 1)[-1]
    return MICRO_DENOMS.get(d.lower(), d.upper())


def route_label(record: SwapRecord) -> str:
    ins = "+".join(simplify_denom(leg.denom) for leg in record.in_legs if leg.denom) or "?"
    outs = "+".join(simplify_denom(leg.denom) for leg in record.out_legs if leg.denom) or "?"
    return f"{ins} → {outs}"


def _abs_sum(legs: Iterable[SwapLeg], match=None) -> float:
    total = 0.0
    for leg in legs:
        if match is None or match(leg.denom):
            total += abs(leg.amount)
    return total


@dataclass(frozen=True)
class _SwapFacts:
    day: str
    in_sum: float
    out_sum: float
    net_flow: float
    tx_volume: float
    atom_volume: float
    one_volume: float
    atom_net_flow: Optional[float]      # None when the record never touches the asset
    atone_net_flow: Optional[float]
    is_ibc: bool
    is_stake: bool
    category: SwapCategory
    route: str


def swap_facts(record: SwapRecord) -> _SwapFacts:
    in_legs = record.in_legs
    out_legs = record.out_legs

    in_sum = _abs_sum(in_legs)
    out_sum = _abs_sum(out_legs)

    denoms = [leg.denom for leg in in_legs + out_legs if leg.denom]
    has_atom = any(is_atom_denom(d) for d in denoms)
    has_atone = any(is_atone_denom(d) for d in denoms)

    is_ibc = has_atom and has_atone
    is_stake = in_sum == 0 or out_sum == 0

    if is_ibc:
        category = SwapCategory.CROSS
    elif has_atom:
        category = SwapCategory.ATOM_ONLY
    elif has_atone:
        category = SwapCategory.ATONE_ONLY
    else:
        category = SwapCategory.OTHER

    atom_in = _abs_sum(in_legs, is_atom_denom)
    atom_out = _abs_sum(out_legs, is_atom_denom)
    atone_in = _abs_sum(in_legs, is_atone_denom)
    atone_out = _abs_sum(out_legs, is_atone_denom)

    volume = record.volume if record.volume is not None and record.volume > 0 else in_sum + out_sum

    return _SwapFacts(
        day=date_key(record.timestamp),
        in_sum=in_sum,
        out_sum=out_sum,
        net_flow=out_sum - in_sum,
        tx_volume=volume,
        atom_volume=atom_in + atom_out,
        one_volume=atone_in + atone_out,
        atom_net_flow=(atom_out - atom_in) if has_atom else None,
        atone_net_flow=(atone_out - atone_in) if has_atone else None,
        is_ibc=is_ibc,
        is_stake=is_stake,
        category=category,
        route=route_label(record),
    )


def _keep_route(routes: List[str], route: str, limit: int) -> None:
    # keeps the `limit` smallest distinct labels so samples do not depend on input order
    if route in routes:
        return
    routes.append(route)
    routes.sort()
    del routes[limit:]


def _add_price_sample(agg: SenderAggregate, day: str, asset: Asset, price: Optional[float]) -> None:
    if price is None or price <= 0:
        return
    samples = agg.daily_price_samples.setdefault(day, {a: [] for a in Asset})
    samples[asset].append(price)


class SwapAccumulator:
    """
    Single-pass fold of swap records into one SenderAggregate per sender.
    """

    def __init__(self, max_route_samples: int = settings.MAX_ROUTE_SAMPLES) -> None:
        self._max_routes = max_route_samples
        self._aggs: Dict[str, SenderAggregate] = {}
        self.skipped = 0

    @property
    def aggregates(self) -> Dict[str, SenderAggregate]:
        return self._aggs

    def add(self, record: SwapRecord) -> bool:
        if not record.sender or record.timestamp is None:
            self.skipped += 1
            return False

        f = swap_facts(record)
        agg = self._aggs.get(record.sender)
        if agg is None:
            agg = SenderAggregate(sender=record.sender)
            self._aggs[record.sender] = agg

        agg.tx_count += 1
        agg.total_volume += f.tx_volume
        agg.buy_volume += max(0.0, f.net_flow)
        agg.sell_volume += max(0.0, -f.net_flow)
        agg.net_flow_sum += f.net_flow
        agg.atom_volume += f.atom_volume
        agg.one_volume += f.one_volume
        if agg.last_active is None or record.timestamp > agg.last_active:
            agg.last_active = record.timestamp

        agg.day_flow[f.day] = agg.day_flow.get(f.day, 0.0) + f.net_flow
        agg.day_tx_count[f.day] = agg.day_tx_count.get(f.day, 0) + 1

        if f.is_ibc:
            agg.ibc_volume += f.tx_volume
        elif f.is_stake:
            agg.stake_volume += f.tx_volume
        else:
            agg.swap_volume += f.tx_volume

        stat = agg.category_stats[f.category]
        stat.count += 1
        stat.volume += f.tx_volume
        _keep_route(stat.routes, f.route, self._max_routes)

        if f.atom_net_flow is not None:
            flows = agg.daily_asset_flow[Asset.ATOM]
            flows[f.day] = flows.get(f.day, 0.0) + f.atom_net_flow
        if f.atone_net_flow is not None:
            flows = agg.daily_asset_flow[Asset.ATONE]
            flows[f.day] = flows.get(f.day, 0.0) + f.atone_net_flow

        _add_price_sample(agg, f.day, Asset.ATOM, record.price_atom)
        _add_price_sample(agg, f.day, Asset.ATONE, record.price_atone)
        return True


def accumulate(
    records: Iterable[SwapRecord],
    max_route_samples: int = settings.MAX_ROUTE_SAMPLES,
) -> Dict[str, SenderAggregate]:
    acc = SwapAccumulator(max_route_samples=max_route_samples)
    for r in records:
        acc.add(r)
    if acc.skipped:
        logger.debug("Skipped %d record(s) without sender or readable timestamp", acc.skipped)
    return acc.aggregates
