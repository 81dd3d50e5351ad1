import json
import tempfile
import unittest
from pathlib import Path

from nodeflow.core.dto import MarketSnapshot
from nodeflow.core.enums import Asset
from nodeflow.core.models import DateRange
from nodeflow.io.output_writer import write_market_json, write_profiles_json, write_summary_md
from nodeflow.io.records import swap_record_from_raw
from nodeflow.io.schemas import market_to_dict, profile_to_dict, profile_to_document
from nodeflow.services.accumulator import accumulate
from nodeflow.services.composer import ScoreComposer
from nodeflow.services.price_series import build_spine


def _profiles(include_history=True):
    rows = [
        {"sender": "cosmos1qqqqqqqqqqqqqqqqqqqqqqqqqqqqqq", "timestamp_converted": "2024.01.01 10:00",
         "tokenInAmount1": 10, "tokenInDenom1": "ATOM", "tokenOutAmount1": 20, "tokenOutDenom1": "ATONE"},
        {"sender": "cosmos1b", "timestamp_converted": "2024.01.02 10:00",
         "tokenInAmount1": 1, "tokenInDenom1": "OSMO", "tokenOutAmount1": 2, "tokenOutDenom1": "ATOM"},
    ]
    aggs = accumulate([swap_record_from_raw(r) for r in rows])
    return ScoreComposer().compose(
        aggs.values(),
        build_spine("2024-01-01", "2024-01-02"),
        {},
        include_history=include_history,
        description="test run",
    )


class SchemaTests(unittest.TestCase):
    def test_wire_keys(self) -> None:
        d = profile_to_dict(_profiles()[0])

        for key in (
            "id", "name", "address", "size", "bias", "totalVolume", "avgTradeSize", "buyVolume",
            "sellVolume", "netFlowSum", "netBuyRatio", "txCount", "atomVolumeShare",
            "oneVolumeShare", "ibcVolumeShare", "activeDays", "lastActiveDate", "timing",
            "timingScore", "correlationScore", "flowCorrelationScore", "scaleScore", "shareScore",
            "roi", "composition", "swapProfile", "timingDetail", "description", "history",
        ):
            self.assertIn(key, d)
        self.assertEqual(d["id"], d["address"])
        self.assertEqual(set(d["swapProfile"]), {"cross", "atomOnly", "atoneOnly", "other"})
        self.assertEqual(set(d["timingDetail"]), {"atom", "atone", "unified", "weights"})
        self.assertEqual(set(d["history"][0]), {
            "date", "price", "atomPrice", "atonePrice", "netFlow", "atomNetFlow", "atoneNetFlow", "txCount",
        })
        # serializable as-is
        json.dumps(d)

    def test_history_key_absent_when_not_requested(self) -> None:
        d = profile_to_dict(_profiles(include_history=False)[0])
        self.assertNotIn("history", d)

    def test_document_keeps_datetime(self) -> None:
        p = _profiles()[0]
        self.assertEqual(profile_to_document(p)["lastActiveDate"], p.last_active_date)
        self.assertIsInstance(profile_to_dict(p)["lastActiveDate"], str)

    def test_market(self) -> None:
        snap = MarketSnapshot(price=1.5, change_24h=-2.0, market_cap=10.0, volume_24h=3.0,
                              history=[("2024-01-01", 1.4), ("2024-01-02", 1.5)])
        self.assertEqual(market_to_dict(snap), {
            "price": 1.5,
            "change24h": -2.0,
            "marketCap": 10.0,
            "volume24h": 3.0,
            "history": [{"date": "2024-01-01", "price": 1.4}, {"date": "2024-01-02", "price": 1.5}],
        })
        self.assertIsNone(market_to_dict(None))


class OutputWriterTests(unittest.TestCase):
    def test_writes_files(self) -> None:
        profiles = _profiles()
        with tempfile.TemporaryDirectory() as tmp:
            out = Path(tmp) / "run"
            json_path = write_profiles_json(profiles, str(out))
            md_path = write_summary_md(profiles, str(out), date_range=DateRange("2024-01-01", "2024-01-02"))
            market_path = write_market_json({Asset.ATOM: None}, str(out))

            data = json.loads(Path(json_path).read_text(encoding="utf-8"))
            self.assertEqual([d["address"] for d in data], [p.address for p in profiles])

            summary = Path(md_path).read_text(encoding="utf-8")
            self.assertIn("# Swap Node Summary", summary)
            self.assertIn("Senders: **2**", summary)
            self.assertIn("cosmos1qqq...qqqq", summary)
            self.assertIn("2024-01-01", summary)

            market = json.loads(Path(market_path).read_text(encoding="utf-8"))
            self.assertEqual(market, {"atom": None, "atone": None})

    def test_empty_summary(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            md_path = write_summary_md([], tmp)
            self.assertIn("No senders found", Path(md_path).read_text(encoding="utf-8"))


if __name__ == "__main__":
    unittest.main()
