from __future__ import annotations

from typing import Any, Dict, Optional

from nodeflow.core.dto import LagResult, MarketSnapshot
from nodeflow.core.models import NodeProfile


def _lag_to_dict(r: LagResult) -> Dict[str, Any]:
    return {
        "lag": r.lag,
        "correlation": r.correlation,
        "pairCount": r.pair_count,
    }


def profile_to_dict(p: NodeProfile) -> Dict[str, Any]:
    # camelCase keys are what the front-end reads
    out: Dict[str, Any] = {
        "id": p.id,
        "name": p.name,
        "address": p.address,
        "size": p.size,
        "bias": p.bias.value,
        "totalVolume": p.total_volume,
        "avgTradeSize": p.avg_trade_size,
        "buyVolume": p.buy_volume,
        "sellVolume": p.sell_volume,
        "netFlowSum": p.net_flow_sum,
        "netBuyRatio": p.net_buy_ratio,
        "txCount": p.tx_count,
        "atomVolumeShare": p.atom_volume_share,
        "oneVolumeShare": p.one_volume_share,
        "ibcVolumeShare": p.ibc_volume_share,
        "activeDays": p.active_days,
        "lastActiveDate": p.last_active_date.isoformat() if p.last_active_date else None,
        "timing": p.timing.value,
        "timingScore": p.timing_score,
        "correlationScore": p.correlation_score,
        "flowCorrelationScore": p.flow_correlation_score,
        "scaleScore": p.scale_score,
        "shareScore": p.share_score,
        "roi": p.roi,
        "composition": {
            "swap": p.composition.swap,
            "ibc": p.composition.ibc,
            "stake": p.composition.stake,
        },
        "swapProfile": {
            cat.value: {
                "share": c.share,
                "count": c.count,
                "volume": c.volume,
                "sampleRoutes": list(c.sample_routes),
            }
            for cat, c in p.swap_profile.items()
        },
        "timingDetail": {
            "atom": _lag_to_dict(p.timing_detail.atom),
            "atone": _lag_to_dict(p.timing_detail.atone),
            "unified": _lag_to_dict(p.timing_detail.unified),
            "weights": {
                "atom": p.timing_detail.weight_atom,
                "atone": p.timing_detail.weight_atone,
            },
        },
        "description": p.description,
    }
    if p.history is not None:
        out["history"] = [
            {
                "date": h.date,
                "price": h.price,
                "atomPrice": h.atom_price,
                "atonePrice": h.atone_price,
                "netFlow": h.net_flow,
                "atomNetFlow": h.atom_net_flow,
                "atoneNetFlow": h.atone_net_flow,
                "txCount": h.tx_count,
            }
            for h in p.history
        ]
    return out


def profile_to_document(p: NodeProfile) -> Dict[str, Any]:
    doc = profile_to_dict(p)
    doc["lastActiveDate"] = p.last_active_date
    return doc


def market_to_dict(m: Optional[MarketSnapshot]) -> Optional[Dict[str, Any]]:
    if m is None:
        return None
    return {
        "price": m.price,
        "change24h": m.change_24h,
        "marketCap": m.market_cap,
        "volume24h": m.volume_24h,
        "history": [{"date": d, "price": price} for d, price in m.history],
    }
