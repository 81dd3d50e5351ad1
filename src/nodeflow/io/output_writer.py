from __future__ import annotations

import json
from collections import Counter
from pathlib import Path
from typing import Dict, Optional, Sequence

from nodeflow.core.dto import MarketSnapshot
from nodeflow.core.enums import Asset, Bias, Timing
from nodeflow.core.models import DateRange, NodeProfile
from nodeflow.io.schemas import market_to_dict, profile_to_dict


def write_profiles_json(
    profiles: Sequence[NodeProfile],
    out_dir: str,
    filename: str = "profiles.json",
) -> str:
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)

    out_path = p / filename
    with out_path.open("w", encoding="utf-8") as f:
        json.dump([profile_to_dict(x) for x in profiles], f, indent=2, ensure_ascii=False)

    return str(out_path)


def write_summary_md(
    profiles: Sequence[NodeProfile],
    out_dir: str,
    filename: str = "summary.md",
    date_range: Optional[DateRange] = None,
    top_n: int = 15,
) -> str:
    """
    Short overview of one profiling run.
    """
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)

    out_path = p / filename

    total_volume = sum(x.total_volume for x in profiles)
    bias_counts = Counter(x.bias for x in profiles)
    timing_counts = Counter(x.timing for x in profiles)
    with_lag = [x for x in profiles if x.timing_detail.unified.lag is not None]

    def short(addr: str) -> str:
        return addr if len(addr) <= 16 else f"{addr[:10]}...{addr[-4:]}"

    def fmt(x: float) -> str:
        return f"{x:,.2f}"

    lines = []
    lines.append("# Swap Node Summary\n")
    if date_range is not None and not date_range.is_empty:
        lines.append(f"- Range: **{date_range.start or '...'}** to **{date_range.end or '...'}**\n")
    lines.append(f"- Senders: **{len(profiles)}**\n")
    lines.append(f"- Total volume: **{fmt(total_volume)}**\n")
    lines.append(f"- Senders with a lead/lag estimate: **{len(with_lag)}**\n")
    lines.append("\n")

    lines.append("## Bias\n\n")
    for b in Bias:
        lines.append(f"- **{b.value}**: {bias_counts.get(b, 0)}\n")
    lines.append("\n")

    lines.append("## Timing\n\n")
    for t in Timing:
        lines.append(f"- **{t.value}**: {timing_counts.get(t, 0)}\n")
    lines.append("\n")

    lines.append(f"## Top {top_n} Senders (by size)\n\n")
    if not profiles:
        lines.append("_No senders found in the selected window._\n")
    else:
        for x in profiles[:top_n]:
            lag = x.timing_detail.unified.lag
            lines.append(
                f"- **{x.size:.1f}** | {short(x.address)} | {x.bias.value} | {x.timing.value}"
                f" (lag {lag if lag is not None else 'n/a'}) | vol {fmt(x.total_volume)}"
                f" | tx {x.tx_count}\n"
            )

    with out_path.open("w", encoding="utf-8") as f:
        f.writelines(lines)

    return str(out_path)


def write_market_json(
    snapshot: Dict[Asset, Optional[MarketSnapshot]],
    out_dir: str,
    filename: str = "market.json",
) -> str:
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)

    out_path = p / filename
    payload = {asset.value: market_to_dict(snapshot.get(asset)) for asset in Asset}
    with out_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)

    return str(out_path)
