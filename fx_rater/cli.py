from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import RaterConfig, config_hash, load_rater_config
from .confidence import ChatCompletionsRater, IndicatorSet, PriceSnapshot, TradeContext, rate_setup
from .fundamentals import compute_fundamental_bias, contributions_frame, validate_fundamentals
from .fundamentals.validate import parse_iso_time
from .logging_config import configure_logging

logger = logging.getLogger(__name__)


def _read_json(path: str) -> Any:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Input file not found: {p}")
    try:
        return json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {p}: {exc}") from exc


def _load_cfg(args: argparse.Namespace) -> RaterConfig:
    overrides: Dict[str, Any] = {}
    if getattr(args, "fallback", False):
        overrides["ai"] = {"fallback_on_error": True}
    return load_rater_config(args.config, overrides=overrides or None)


def cmd_score(args: argparse.Namespace) -> None:
    cfg = _load_cfg(args)
    doc = _read_json(args.input)
    if not isinstance(doc, dict):
        raise ValueError("Setup file must be a JSON object with price, indicators and context.")
    missing = [k for k in ("price", "indicators", "context") if not isinstance(doc.get(k), dict)]
    if missing:
        raise ValueError(f"Setup file missing objects: {', '.join(missing)}")

    price = PriceSnapshot.from_dict(doc["price"])
    ta = IndicatorSet.from_dict(doc["indicators"])
    ctx = TradeContext.from_dict(doc["context"])

    use_ai = bool(args.use_ai or cfg.ai["enabled"])
    rater = ChatCompletionsRater.from_config(cfg.ai["endpoint"]) if use_ai else None
    gate = tuple(args.gate) if args.gate else None

    rating = asyncio.run(rate_setup(price, ta, ctx, use_ai=use_ai, rater=rater, gate_band=gate, cfg=cfg))
    out = rating.to_dict()
    out["symbol"] = price.symbol
    out["config_hash"] = config_hash(cfg)
    print(json.dumps(out, indent=2))


def cmd_fundamentals(args: argparse.Namespace) -> None:
    cfg = _load_cfg(args)
    doc = _read_json(args.input)
    now = None
    if args.as_of:
        now = parse_iso_time(args.as_of)
        if now is None:
            raise ValueError(f"Invalid --as-of '{args.as_of}'. Use ISO-8601.")

    validation = validate_fundamentals(doc, now=now, cfg=cfg)
    bias = compute_fundamental_bias(validation.cleaned, cfg=cfg)
    if args.csv:
        out_path = Path(args.csv)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        contributions_frame(validation.cleaned, cfg=cfg).to_csv(out_path, index=False)
        logger.info("wrote %s", out_path)
    print(json.dumps({"validation": validation.to_dict(), "bias": bias.to_dict()}, indent=2, ensure_ascii=False))


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="fx_rater", description="FX trade setup confidence and fundamentals bias")
    p.add_argument("--config", default=None, help="Optional path to config.yaml (fx_rater block).")
    p.add_argument("--log-level", default=None, help="Logging level (overrides config).")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_score = sub.add_parser("score", help="Score a trade setup from a JSON file.")
    p_score.add_argument("--input", required=True, help="JSON file with price, indicators and context.")
    p_score.add_argument("--use-ai", action="store_true", help="Consult the configured rater inside the gate band.")
    p_score.add_argument(
        "--gate",
        nargs=2,
        type=float,
        metavar=("LOW", "HIGH"),
        default=None,
        help="Gate band for the rater (default from config: 0.45 0.70).",
    )
    p_score.add_argument("--fallback", action="store_true", help="Fall back to the deterministic score on rater errors.")
    p_score.set_defaults(func=cmd_score)

    p_fund = sub.add_parser("fundamentals", help="Validate and score economic releases from a JSON file.")
    p_fund.add_argument("--input", required=True, help="JSON file with baseCcy, quoteCcy and releases.")
    p_fund.add_argument("--as-of", default=None, help="Reference time for the lookback window (ISO-8601).")
    p_fund.add_argument("--csv", default=None, help="Optional path for the per-event contributions CSV.")
    p_fund.set_defaults(func=cmd_fundamentals)

    return p


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    level = args.log_level
    if level is None:
        try:
            level = load_rater_config(args.config).log_level
        except (FileNotFoundError, ValueError):
            level = "INFO"
    configure_logging(level)
    try:
        args.func(args)
    except (ValueError, RuntimeError, FileNotFoundError, KeyError) as exc:
        logger.debug("command failed", exc_info=True)
        parser.exit(1, f"error: {exc}\n")
