from __future__ import annotations

import math
from typing import Any, Iterable, List, Mapping, Optional

from nodeflow.core.dto import Legs, SwapLeg, SwapRecord
from nodeflow.services.temporal import parse_timestamp


TIMESTAMP_FIELDS = ("timestamp", "timestamp_converted", "date")
VOLUME_FIELDS = ("tx_volume", "volume")


def _num(val: Any) -> Optional[float]:
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, str):
        val = val.strip().replace(",", "")
        if not val:
            return None
    try:
        out = float(val)
    except (TypeError, ValueError):
        return None
    return out if math.isfinite(out) else None


def _denom(val: Any) -> Optional[str]:
    if val is None:
        return None
    s = str(val).strip()
    return s or None


def _legs(row: Mapping[str, Any], side: str) -> Legs:
    legs = []
    for i in (1, 2, 3):
        amount = _num(row.get(f"token{side}Amount{i}")) or 0.0
        denom = _denom(row.get(f"token{side}Denom{i}"))
        if denom is None and amount == 0:
            legs.append(None)
        else:
            legs.append(SwapLeg(amount=amount, denom=denom))
    return legs[0], legs[1], legs[2]


def _first_present(row: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for k in keys:
        val = row.get(k)
        if val is not None and val != "":
            return val
    return None


def swap_record_from_raw(row: Mapping[str, Any]) -> SwapRecord:
    """
    One canonical record from either store's row shape (Mongo document or DuckDB row).
    """
    volume = _num(_first_present(row, VOLUME_FIELDS))
    price_atom = _num(row.get("price_atom"))
    price_atone = _num(row.get("price_atone"))
    return SwapRecord(
        sender=_denom(row.get("sender")) or "",
        timestamp=parse_timestamp(_first_present(row, TIMESTAMP_FIELDS)),
        token_in=_legs(row, "In"),
        token_out=_legs(row, "Out"),
        price_atom=price_atom,
        price_atone=price_atone,
        volume=volume,
    )


def swap_records_from_raw(rows: Iterable[Mapping[str, Any]]) -> List[SwapRecord]:
    return [swap_record_from_raw(r) for r in rows]
