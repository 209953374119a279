import json
import unittest

from fx_rater.config import DEFAULTS
from fx_rater.confidence.ai_gate import (
    blend_alpha,
    blend_confidence,
    build_ai_request_payload,
    build_ai_user_prompt,
    coerce_ai_response,
    parse_rater_output,
    within_gate,
)
from fx_rater.confidence.models import AIAssessment, DeterministicResult, ScoringInputs, SelectedZone

ALPHA = dict(DEFAULTS["ai"]["alpha"])


def _ai(conf=0.8, delta=0.0, agree=True) -> AIAssessment:
    return AIAssessment(ai_confidence_conditional=conf, delta_confidence=delta, direction_agree=agree)


class TestGate(unittest.TestCase):
    def test_band_is_inclusive(self) -> None:
        self.assertTrue(within_gate(0.45))
        self.assertTrue(within_gate(0.70))
        self.assertTrue(within_gate(0.60))
        self.assertFalse(within_gate(0.449999))
        self.assertFalse(within_gate(0.700001))

    def test_custom_band(self) -> None:
        self.assertTrue(within_gate(0.3, (0.2, 0.4)))
        self.assertFalse(within_gate(0.6, (0.2, 0.4)))


class TestCoerce(unittest.TestCase):
    def test_defaults_for_missing_fields(self) -> None:
        ai = coerce_ai_response({})
        self.assertEqual(ai.ai_confidence_conditional, 0.5)
        self.assertEqual(ai.delta_confidence, 0.0)
        self.assertEqual(ai.delta_p_fill, 0.0)
        self.assertFalse(ai.direction_agree)
        self.assertEqual(ai.reasons, [])

    def test_non_object_becomes_defaults(self) -> None:
        self.assertEqual(coerce_ai_response(None), coerce_ai_response({}))
        self.assertEqual(coerce_ai_response([1, 2]), coerce_ai_response({}))

    def test_clamps_every_number(self) -> None:
        ai = coerce_ai_response(
            {
                "ai_confidence_conditional": 1.4,
                "delta_confidence": 0.9,
                "delta_p_fill": -3,
                "direction_agree": True,
                "reasons": ["trend aligned", 7],
            }
        )
        self.assertEqual(ai.ai_confidence_conditional, 0.9)
        self.assertEqual(ai.delta_confidence, 0.15)
        self.assertEqual(ai.delta_p_fill, -0.2)
        self.assertTrue(ai.direction_agree)
        self.assertEqual(ai.reasons, ["trend aligned", "7"])
        low = coerce_ai_response({"ai_confidence_conditional": 0.0, "delta_confidence": -1})
        self.assertEqual(low.ai_confidence_conditional, 0.2)
        self.assertEqual(low.delta_confidence, -0.15)

    def test_non_numeric_falls_back(self) -> None:
        ai = coerce_ai_response({"ai_confidence_conditional": "high", "delta_confidence": float("nan")})
        self.assertEqual(ai.ai_confidence_conditional, 0.5)
        self.assertEqual(ai.delta_confidence, 0.0)

    def test_string_numbers_and_flags(self) -> None:
        ai = coerce_ai_response({"ai_confidence_conditional": "0.66", "direction_agree": "yes"})
        self.assertAlmostEqual(ai.ai_confidence_conditional, 0.66)
        self.assertTrue(ai.direction_agree)
        self.assertFalse(coerce_ai_response({"direction_agree": "no"}).direction_agree)


class TestParse(unittest.TestCase):
    def test_accepts_text_bytes_and_objects(self) -> None:
        self.assertEqual(parse_rater_output('{"a": 1}'), {"a": 1})
        self.assertEqual(parse_rater_output(b'{"a": 1}'), {"a": 1})
        self.assertEqual(parse_rater_output({"a": 1}), {"a": 1})

    def test_invalid_json_raises(self) -> None:
        with self.assertRaises(ValueError):
            parse_rater_output("not json")


class TestBlend(unittest.TestCase):
    def test_alpha_rules(self) -> None:
        self.assertEqual(blend_alpha(_ai(), 0.5, "real", ALPHA), 0.25)
        self.assertEqual(blend_alpha(_ai(agree=False), 0.5, "real", ALPHA), 0.10)
        self.assertEqual(blend_alpha(_ai(), 0.95, "real", ALPHA), 0.15)
        self.assertEqual(blend_alpha(_ai(), 0.9, "real", ALPHA), 0.25)
        self.assertEqual(blend_alpha(_ai(), 0.5, "synthetic", ALPHA), 0.15)
        self.assertEqual(blend_alpha(_ai(agree=False), 0.95, "synthetic", ALPHA), 0.10)

    def test_weighted_blend_plus_delta(self) -> None:
        combined = blend_confidence(0.6, _ai(conf=0.8, delta=0.05), 0.5, "real", ALPHA)
        self.assertAlmostEqual(combined, 0.6 * 0.75 + 0.8 * 0.25 + 0.05)

    def test_combined_is_clamped(self) -> None:
        self.assertEqual(blend_confidence(0.9, _ai(conf=0.9, delta=0.15), 0.5, "real", ALPHA), 0.9)
        self.assertEqual(blend_confidence(0.15, _ai(conf=0.2, delta=-0.15), 0.5, "real", ALPHA), 0.2)


class TestPayload(unittest.TestCase):
    def _inputs(self) -> ScoringInputs:
        return ScoringInputs(
            side="SELL",
            price=150.2,
            entry=150.4,
            sl=150.9,
            atr=0.35,
            atr_pct=0.23,
            rsi=41.0,
            macd_hist=-0.02,
            ema20=150.5,
            ema50=150.8,
            ema100=151.2,
            ema20_slope=-0.01,
            ema50_slope=-0.02,
            bb_lower=149.8,
            bb_upper=151.0,
            bb_width_pct=0.8,
            bias4h=-0.4,
            squeeze=False,
            adr_used=0.6,
            session="New York",
            red_news_soon=True,
            zone=SelectedZone(type="resistance", strength=65.0, mid=150.45),
            entry_dist_atr=0.571,
            volume_type="real",
        )

    def test_payload_shape(self) -> None:
        det = DeterministicResult(confidence_conditional=0.58, p_fill=0.38, headline_confidence=0.4, telemetry={})
        payload = build_ai_request_payload(self._inputs(), det)
        self.assertFalse(payload["redNewsSoon"])
        self.assertEqual(payload["session"], "New York")
        self.assertEqual(payload["zone"], {"type": "resistance", "strength": 65.0, "mid": 150.45})
        self.assertEqual(payload["entryDistATR"], 0.571)
        self.assertEqual(payload["base_confidence_conditional"], 0.58)
        self.assertEqual(payload["p_fill"], 0.38)
        self.assertEqual(json.loads(build_ai_user_prompt(payload)), payload)


if __name__ == "__main__":
    unittest.main()
