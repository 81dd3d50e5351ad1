import unittest

from nodeflow.core.enums import Asset, Bias, SwapCategory, Timing
from nodeflow.core.models import SenderAggregate
from nodeflow.io.records import swap_record_from_raw
from nodeflow.services.accumulator import accumulate
from nodeflow.services.composer import (
    ScoreComposer,
    SenderSeries,
    blend_price,
    bias_for,
    composition_for,
    flow_consistency,
    round_half_up,
)
from nodeflow.services.price_series import build_spine


def _row(sender, ts, ins=(), outs=(), **extra):
    row = {"sender": sender, "timestamp_converted": ts}
    for i, (amount, denom) in enumerate(ins, start=1):
        row[f"tokenInAmount{i}"] = amount
        row[f"tokenInDenom{i}"] = denom
    for i, (amount, denom) in enumerate(outs, start=1):
        row[f"tokenOutAmount{i}"] = amount
        row[f"tokenOutDenom{i}"] = denom
    row.update(extra)
    return row


def _compose(rows, spine=(), filled=None, **kwargs):
    aggs = accumulate([swap_record_from_raw(r) for r in rows])
    return ScoreComposer().compose(aggs.values(), list(spine), filled or {}, **kwargs)


class HelperTests(unittest.TestCase):
    def test_round_half_up(self) -> None:
        self.assertEqual(round_half_up(0.5), 1)
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(2.49), 2)

    def test_bias(self) -> None:
        self.assertEqual(bias_for(0.7, 0.3), Bias.ATOM)
        self.assertEqual(bias_for(0.2, 0.6), Bias.ATOMONE)
        self.assertEqual(bias_for(0.4, 0.4), Bias.MIXED)
        self.assertEqual(bias_for(0.45, 0.3), Bias.MIXED)

    def test_flow_consistency(self) -> None:
        self.assertEqual(flow_consistency([]), 0.5)
        self.assertEqual(flow_consistency([3.0, 3.0]), 0.5)
        self.assertGreaterEqual(flow_consistency([100.0, -100.0]), 0.0)

    def test_composition_of_empty_aggregate(self) -> None:
        comp = composition_for(SenderAggregate(sender="a"))
        self.assertEqual((comp.swap, comp.ibc, comp.stake), (100, 0, 0))


class ScoreComposerTests(unittest.TestCase):
    def test_two_day_atom_profile(self) -> None:
        spine = build_spine("2024-01-01", "2024-01-02")
        [p] = _compose(
            [
                _row("cosmos1a", "2024.01.01 10:00", ins=[(100, "ATOM")]),
                _row("cosmos1a", "2024.01.02 10:00", outs=[(150, "ATOM")]),
            ],
            spine=spine,
        )

        self.assertEqual(p.address, "cosmos1a")
        self.assertEqual(p.tx_count, 2)
        self.assertEqual(p.total_volume, 250)
        self.assertEqual(p.net_flow_sum, 50)
        self.assertEqual(p.atom_volume_share, 1.0)
        self.assertEqual(p.bias, Bias.ATOM)
        self.assertEqual(p.active_days, 2)
        self.assertEqual(p.avg_trade_size, 125)
        self.assertAlmostEqual(p.net_buy_ratio, 0.2)
        self.assertEqual(p.roi, 20.0)
        self.assertEqual((p.composition.swap, p.composition.ibc, p.composition.stake), (0, 0, 100))
        # no prices at all: no lag, timing from the buy ratio
        self.assertIsNone(p.timing_detail.unified.lag)
        self.assertEqual(p.timing, Timing.LEADING)
        self.assertEqual(p.timing_score, 48.0)
        self.assertEqual(p.flow_correlation_score, 0)
        self.assertEqual([h.date for h in p.history], spine)
        self.assertEqual([h.net_flow for h in p.history], [-100, 150])

    def test_equal_shares_are_mixed(self) -> None:
        [p] = _compose([
            _row("cosmos1b", "2024.01.01 10:00", ins=[(10, "ATOM")], outs=[(10, "ATONE")]),
        ])
        self.assertEqual(p.atom_volume_share, p.one_volume_share)
        self.assertEqual(p.bias, Bias.MIXED)
        self.assertEqual(p.ibc_volume_share, 1.0)
        self.assertEqual(p.composition.ibc, 100)
        self.assertEqual(p.swap_profile[SwapCategory.CROSS].share, 1.0)

    def test_composition_and_ratio_bounds(self) -> None:
        rows = [
            _row("a", "2024.01.01 10:00", ins=[(1, "OSMO")], outs=[(1, "USDC")]),
            _row("a", "2024.01.01 11:00", ins=[(1, "ATOM")], outs=[(1, "ATONE")]),
            _row("a", "2024.01.02 11:00", ins=[(1, "ATOM")]),
            _row("b", "2024.01.01 10:00", ins=[(7, "ATONE")], outs=[(3, "USDC")]),
            _row("b", "2024.01.03 10:00", ins=[(5, "ATONE")], outs=[(1, "ATOM")]),
            _row("c", "2024.01.02 10:00", outs=[(40, "uatone")]),
        ]
        profiles = _compose(rows, spine=build_spine("2024-01-01", "2024-01-03"))

        self.assertEqual(len(profiles), 3)
        for p in profiles:
            comp = p.composition
            self.assertLessEqual(abs(comp.swap + comp.ibc + comp.stake - 100), 1)
            self.assertGreaterEqual(p.net_buy_ratio, -1.0)
            self.assertLessEqual(p.net_buy_ratio, 1.0)
            self.assertGreaterEqual(p.correlation_score, -1.0)
            self.assertLessEqual(p.correlation_score, 1.0)
            self.assertGreaterEqual(p.size, 10.0)
            self.assertLessEqual(p.size, 100.0)
        self.assertEqual(profiles[0].address, "c")

    def test_profiles_sorted_by_size(self) -> None:
        profiles = _compose([
            _row("small", "2024.01.01 10:00", ins=[(1, "ATOM")], outs=[(1, "USDC")]),
            _row("big", "2024.01.01 10:00", ins=[(500, "ATOM")], outs=[(500, "USDC")]),
            _row("big", "2024.01.02 10:00", ins=[(500, "ATOM")], outs=[(500, "USDC")]),
        ])
        self.assertEqual([p.address for p in profiles], ["big", "small"])
        self.assertEqual(profiles[0].share_score, 100)
        self.assertEqual(profiles[0].scale_score, 100.0)

    def test_history_can_be_omitted(self) -> None:
        [p] = _compose(
            [_row("a", "2024.01.01 10:00", ins=[(1, "ATOM")])],
            include_history=False,
            description="x",
        )
        self.assertIsNone(p.history)
        self.assertEqual(p.description, "x")

    def test_leading_sender_from_prices(self) -> None:
        spine = build_spine("2024-01-01", "2024-01-10")
        flows = [1, 4, 2, 8, 5, 7, 3, 6, 9, 0]
        rows = [
            _row("lead", f"2024.01.{i + 1:02d} 10:00", outs=[(f, "ATOM")])
            for i, f in enumerate(flows)
            if f
        ]
        # price on day t moves by 1% per unit of flow two days later
        prices = [100.0]
        for t in range(1, 8):
            prices.append(prices[-1] * (1 + 0.01 * flows[t + 2]))
        filled = {
            day: {Asset.ATOM: prices[i] if i < len(prices) else None, Asset.ATONE: None}
            for i, day in enumerate(spine)
        }

        [p] = _compose(rows, spine=spine, filled=filled)

        self.assertEqual(p.timing_detail.atom.lag, -2)
        self.assertEqual(p.timing_detail.unified.lag, -2)
        self.assertEqual(p.timing_detail.weight_atom, 1.0)
        self.assertEqual(p.timing, Timing.LEADING)
        self.assertEqual(p.timing_score, 66.0)
        self.assertEqual(p.flow_correlation_score, 100)
        self.assertAlmostEqual(p.correlation_score, 1.0)
        self.assertIsNone(p.timing_detail.atone.lag)
        self.assertEqual(p.history[0].atom_price, 100.0)
        self.assertIsNone(p.history[-1].price)

    def test_unified_series_blends_both_assets(self) -> None:
        rows = [
            # day 1: ATOM flow -30, ATONE flow +10, total day flow -18
            _row("mix", "2024.01.01 10:00", ins=[(30, "ATOM")], outs=[(6, "USDC")]),
            _row("mix", "2024.01.01 11:00", ins=[(4, "USDC")], outs=[(10, "ATONE")]),
            # day 2: neither asset
            _row("mix", "2024.01.02 10:00", ins=[(1, "OSMO")], outs=[(2, "USDC")]),
        ]
        spine = build_spine("2024-01-01", "2024-01-03")
        filled = {
            "2024-01-01": {Asset.ATOM: 10.0, Asset.ATONE: 2.0},
            "2024-01-02": {Asset.ATOM: 12.0, Asset.ATONE: 4.0},
            "2024-01-03": {Asset.ATOM: 12.0, Asset.ATONE: None},
        }

        [p] = _compose(rows, spine=spine, filled=filled)

        self.assertEqual(p.timing_detail.weight_atom, 0.75)
        self.assertEqual(p.timing_detail.weight_atone, 0.25)
        self.assertEqual([h.price for h in p.history], [8.0, 10.0, 12.0])
        self.assertEqual([h.net_flow for h in p.history], [-18.0, 1.0, 0.0])
        self.assertEqual([h.atom_net_flow for h in p.history], [-30.0, 0.0, 0.0])
        self.assertEqual([h.atone_net_flow for h in p.history], [10.0, 0.0, 0.0])

        agg = accumulate([swap_record_from_raw(r) for r in rows])["mix"]
        series = SenderSeries(agg, spine, filled)
        # 0.75 * -30 + 0.25 * 10 on the mixed day, plain day flow otherwise
        self.assertEqual(series.unified_flows, [-20.0, 1.0, 0.0])
        self.assertEqual(series.unified_prices, [8.0, 10.0, 12.0])

    def test_blend_price(self) -> None:
        self.assertEqual(blend_price(10.0, 2.0, 0.75, 0.25), 8.0)
        self.assertEqual(blend_price(None, 2.0, 0.75, 0.25), 2.0)
        self.assertEqual(blend_price(10.0, None, 0.75, 0.25), 10.0)
        self.assertIsNone(blend_price(None, None, 0.5, 0.5))

    def test_sample_prices_fill_missing_days(self) -> None:
        [p] = _compose(
            [
                _row("a", "2024.01.01 10:00", ins=[(1, "ATOM")], price_atom=9.0),
                _row("a", "2024.01.01 12:00", ins=[(1, "ATOM")], price_atom=11.0),
            ],
            spine=["2024-01-01"],
        )
        self.assertEqual(p.history[0].atom_price, 10.0)
        self.assertEqual(p.history[0].price, 10.0)


if __name__ == "__main__":
    unittest.main()
