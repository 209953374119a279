import copy
import math
import random
import unittest
from dataclasses import replace

from fx_rater.config import DEFAULTS, RaterConfig
from fx_rater.confidence.models import ScoringInputs, SelectedZone
from fx_rater.confidence.scoring import (
    InvalidScoringInputs,
    band_score,
    bollinger_score,
    deterministic_confidence,
    fill_probability,
    macd_score,
    mtf_score,
    rsi_score,
    sr_score,
    trend_score,
    volatility_score,
)


def _inputs(**overrides) -> ScoringInputs:
    base = ScoringInputs(
        side="BUY",
        price=1.1000,
        entry=1.1000,
        sl=1.0950,
        atr=0.0020,
        atr_pct=0.18,
        rsi=62.0,
        macd_hist=0.0,
        ema20=1.0990,
        ema50=1.0980,
        ema100=1.0970,
        ema20_slope=0.0001,
        ema50_slope=0.0001,
        bb_lower=1.0965,
        bb_upper=1.1065,
        bb_width_pct=0.9,
        bias4h=0.0,
        squeeze=False,
        adr_used=0.5,
        session="London",
        red_news_soon=False,
        zone=SelectedZone(type="none", strength=0.0, mid=1.1000),
        entry_dist_atr=0.0,
        volume_type="real",
    )
    return replace(base, **overrides)


class TestSubScores(unittest.TestCase):
    def test_trend_alignment_and_slopes(self) -> None:
        self.assertEqual(trend_score(_inputs()), 1.0)
        self.assertEqual(trend_score(_inputs(ema50_slope=-0.0001)), 0.8)
        self.assertEqual(trend_score(_inputs(ema20=1.1010)), 0.0)
        sell = _inputs(side="SELL", price=1.0960, ema20=1.0970, ema50=1.0980, ema100=1.0990,
                       ema20_slope=-0.0001, ema50_slope=-0.0002)
        self.assertEqual(trend_score(sell), 1.0)
        self.assertEqual(trend_score(_inputs(side="SELL")), 0.0)

    def test_rsi_band(self) -> None:
        self.assertEqual(rsi_score(62, "BUY"), 1.0)
        self.assertAlmostEqual(rsi_score(52, "BUY"), 0.5)
        self.assertEqual(rsi_score(30, "BUY"), 0.0)
        self.assertEqual(rsi_score(38, "SELL"), 1.0)
        self.assertAlmostEqual(rsi_score(48, "SELL"), 0.5)
        self.assertEqual(band_score(5, 0, 0), 0.0)

    def test_macd_direction(self) -> None:
        self.assertEqual(macd_score(0.0, "BUY"), 0.5)
        self.assertGreater(macd_score(0.01, "BUY"), 0.95)
        self.assertLess(macd_score(0.01, "SELL"), 0.05)
        self.assertGreater(macd_score(-0.01, "SELL"), 0.95)

    def test_volatility_sweet_spot(self) -> None:
        self.assertEqual(volatility_score(0.18), 1.0)
        self.assertAlmostEqual(volatility_score(0.28), math.exp(-1))
        self.assertAlmostEqual(volatility_score(0.08), math.exp(-1))
        self.assertLess(volatility_score(0.6), 0.001)

    def test_bollinger_position(self) -> None:
        self.assertAlmostEqual(bollinger_score(1.35, 1.0, 2.0, "BUY"), 1.0)
        self.assertAlmostEqual(bollinger_score(1.65, 1.0, 2.0, "SELL"), 1.0)
        self.assertEqual(bollinger_score(1.9, 1.0, 2.0, "BUY"), 0.0)
        self.assertAlmostEqual(bollinger_score(1.5, 1.0, 2.0, "BUY"), 1 - 0.15 / 0.35)

    def test_sr_score(self) -> None:
        self.assertEqual(sr_score(_inputs()), 0.5)
        near_support = _inputs(zone=SelectedZone(type="support", strength=100.0, mid=1.1000))
        self.assertAlmostEqual(sr_score(near_support), 1.0)
        # 0.5 ATR away -> 0.7 proximity
        mid_support = _inputs(zone=SelectedZone(type="support", strength=50.0, mid=1.1010))
        self.assertAlmostEqual(sr_score(mid_support), 0.6 + 0.4 * 0.5 * 0.7)
        far_resistance = _inputs(zone=SelectedZone(type="resistance", strength=50.0, mid=1.1100))
        self.assertAlmostEqual(sr_score(far_resistance), 0.4 + 0.4 * 0.5 * 0.4)

    def test_mtf_inverted_for_sell(self) -> None:
        self.assertEqual(mtf_score(0.0, "BUY"), 0.5)
        self.assertEqual(mtf_score(0.0, "SELL"), 0.5)
        self.assertAlmostEqual(mtf_score(0.5, "BUY") + mtf_score(0.5, "SELL"), 1.0)
        self.assertGreater(mtf_score(0.5, "BUY"), 0.5)

    def test_fill_probability_decay(self) -> None:
        self.assertEqual(fill_probability(0.0), 1.0)
        prev = 1.0
        for dist in [0.1, 0.3, 0.6, 1.0, 2.0, 5.0]:
            p = fill_probability(dist)
            self.assertLess(p, prev)
            prev = p
        self.assertAlmostEqual(fill_probability(0.6), math.exp(-1))


class TestDeterministicConfidence(unittest.TestCase):
    def test_reference_blend(self) -> None:
        out = deterministic_confidence(_inputs())
        # trend 1, rsi 1, sr .5, macd .5, bb 1, vol 1 -> blend .84
        self.assertAlmostEqual(out.telemetry["blend"], 0.84, places=9)
        self.assertAlmostEqual(out.confidence_conditional, 0.754, places=9)
        self.assertEqual(out.p_fill, 1.0)
        self.assertAlmostEqual(out.headline_confidence, 0.754, places=9)

    def test_adr_guardrails(self) -> None:
        self.assertAlmostEqual(deterministic_confidence(_inputs(adr_used=0.8)).confidence_conditional, 0.704, places=9)
        self.assertAlmostEqual(deterministic_confidence(_inputs(adr_used=0.9)).confidence_conditional, 0.654, places=9)
        self.assertAlmostEqual(deterministic_confidence(_inputs(adr_used=0.79)).confidence_conditional, 0.754, places=9)

    def test_squeeze_tilts_by_side(self) -> None:
        out = deterministic_confidence(_inputs(squeeze=True))
        self.assertAlmostEqual(out.telemetry["blend"], 0.84 * 1.03, places=9)
        sell = _inputs(side="SELL", squeeze=True)
        plain = deterministic_confidence(replace(sell, squeeze=False)).telemetry["blend"]
        self.assertAlmostEqual(deterministic_confidence(sell).telemetry["blend"], plain * 0.97, places=9)

    def test_external_confidence_blended(self) -> None:
        out = deterministic_confidence(_inputs(algo_confidence=0.55))
        self.assertAlmostEqual(out.telemetry["blend"], 0.7 * 0.84 + 0.3 * 0.55, places=9)

    def test_mtf_tilt(self) -> None:
        out = deterministic_confidence(_inputs(bias4h=10.0))
        self.assertAlmostEqual(out.telemetry["blend"], 0.84 * 1.10, places=6)

    def test_session_and_news_are_ignored(self) -> None:
        a = deterministic_confidence(_inputs())
        b = deterministic_confidence(_inputs(session="Asia", red_news_soon=True))
        self.assertEqual(a, b)

    def test_wrong_side_zone_cuts_fill(self) -> None:
        zone = SelectedZone(type="resistance", strength=50.0, mid=1.1050)
        out = deterministic_confidence(_inputs(entry_dist_atr=0.3, zone=zone))
        self.assertAlmostEqual(out.p_fill, math.exp(-0.3 / 0.6) * 0.9)
        favored = SelectedZone(type="support", strength=50.0, mid=1.0990)
        out = deterministic_confidence(_inputs(entry_dist_atr=0.3, zone=favored))
        self.assertAlmostEqual(out.p_fill, math.exp(-0.3 / 0.6))

    def test_headline_mixes_fill(self) -> None:
        out = deterministic_confidence(_inputs(entry_dist_atr=0.6))
        p = out.confidence_conditional
        self.assertAlmostEqual(out.headline_confidence, 0.5 * p + 0.5 * p * math.exp(-1))

    def test_determinism(self) -> None:
        i = _inputs(rsi=47.3, macd_hist=-0.00012, bias4h=-0.3, squeeze=True, entry_dist_atr=0.42)
        self.assertEqual(deterministic_confidence(i), deterministic_confidence(i))

    def test_bounds_over_random_inputs(self) -> None:
        rng = random.Random(1234)
        for _ in range(500):
            price = rng.uniform(0.5, 200.0)
            atr = rng.uniform(0.0, price * 0.02)
            lower = price * rng.uniform(0.95, 1.0)
            i = _inputs(
                side=rng.choice(["BUY", "SELL"]),
                price=price,
                entry=price * rng.uniform(0.98, 1.02),
                atr=atr,
                atr_pct=rng.uniform(0.0, 2.0),
                rsi=rng.uniform(0.0, 100.0),
                macd_hist=rng.uniform(-0.05, 0.05),
                ema20=price * rng.uniform(0.97, 1.03),
                ema50=price * rng.uniform(0.97, 1.03),
                ema100=price * rng.uniform(0.97, 1.03),
                ema20_slope=rng.uniform(-1, 1),
                ema50_slope=rng.uniform(-1, 1),
                bb_lower=lower,
                bb_upper=lower + price * rng.uniform(0.0, 0.05),
                bias4h=rng.uniform(-3, 3),
                squeeze=rng.random() < 0.5,
                adr_used=rng.random(),
                zone=SelectedZone(
                    type=rng.choice(["support", "resistance", "none"]),
                    strength=rng.uniform(0, 100),
                    mid=price * rng.uniform(0.98, 1.02),
                ),
                entry_dist_atr=rng.uniform(0.0, 10.0),
                algo_confidence=rng.choice([None, rng.uniform(0.25, 0.85)]),
            )
            out = deterministic_confidence(i)
            self.assertGreaterEqual(out.confidence_conditional, 0.15)
            self.assertLessEqual(out.confidence_conditional, 0.90)
            self.assertGreaterEqual(out.p_fill, 0.0)
            self.assertLessEqual(out.p_fill, 1.0)
            self.assertGreaterEqual(out.headline_confidence, 0.0)
            self.assertLessEqual(out.headline_confidence, 1.0)


class TestInputChecks(unittest.TestCase):
    def test_non_finite_rejected(self) -> None:
        with self.assertRaises(InvalidScoringInputs) as cm:
            deterministic_confidence(_inputs(rsi=float("nan")))
        self.assertIn("rsi", str(cm.exception))
        with self.assertRaises(InvalidScoringInputs):
            deterministic_confidence(_inputs(atr_pct=float("inf")))

    def test_price_and_atr_ranges(self) -> None:
        with self.assertRaises(InvalidScoringInputs):
            deterministic_confidence(_inputs(price=0.0))
        with self.assertRaises(InvalidScoringInputs):
            deterministic_confidence(_inputs(atr=-0.1))

    def test_checks_can_be_disabled(self) -> None:
        raw = copy.deepcopy(DEFAULTS)
        raw["scoring"]["validate_inputs"] = False
        out = deterministic_confidence(_inputs(atr=-0.1), RaterConfig(raw=raw))
        self.assertGreaterEqual(out.confidence_conditional, 0.15)

    def test_custom_weights(self) -> None:
        raw = copy.deepcopy(DEFAULTS)
        raw["scoring"]["weights"] = {"trend": 1.0, "rsi": 0.0, "sr": 0.0, "macd": 0.0, "bollinger": 0.0, "volatility": 0.0}
        out = deterministic_confidence(_inputs(), RaterConfig(raw=raw))
        self.assertAlmostEqual(out.telemetry["blend"], 1.0)
        self.assertAlmostEqual(out.confidence_conditional, 0.85)


if __name__ == "__main__":
    unittest.main()
