from __future__ import annotations

import copy
import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml


DEFAULTS: Dict[str, Any] = {
    "scoring": {
        "weights": {
            "trend": 0.26,
            "rsi": 0.22,
            "sr": 0.18,
            "macd": 0.14,
            "bollinger": 0.12,
            "volatility": 0.08,
        },
        "mtf_tilt": 0.10,
        "squeeze": {"buy": 1.03, "sell": 0.97},
        "algo_confidence_weight": 0.30,
        "confidence_range": [0.25, 0.85],
        "clamp": [0.15, 0.90],
        "adr_guardrails": [
            {"min": 0.9, "penalty": 0.10},
            {"min": 0.8, "penalty": 0.05},
        ],
        "fill_decay_atr": 0.6,
        "wrong_side_fill_multiplier": 0.9,
        "validate_inputs": True,
    },
    "ai": {
        "enabled": False,
        "gate_band": [0.45, 0.70],
        "alpha": {
            "base": 0.25,
            "disagree": 0.10,
            "low_trust_cap": 0.15,
            "adr_cap_above": 0.9,
        },
        "combined_clamp": [0.2, 0.9],
        "fallback_on_error": False,
        "endpoint": {
            "url": "https://api.openai.com/v1/chat/completions",
            "model": "gpt-4.1",
            "api_key_env": "OPENAI_API_KEY",
            "timeout_seconds": 60,
            "temperature": 0.1,
        },
    },
    "fundamentals": {
        "lookback_days": 14,
        "max_releases": 60,
        "strength_threshold": 30,
        "max_key_events": 5,
        "summary_key_events": 3,
        "event_weights": {
            "CPI": 3.0,
            "Core CPI": 3.0,
            "PCE": 3.0,
            "NFP": 3.0,
            "Unemployment": 3.0,
            "Jobless Claims": 1.0,
            "GDP": 2.5,
            "PMI Manufacturing": 2.0,
            "PMI Services": 2.0,
            "Retail Sales": 1.0,
            "Rate Decision": 4.0,
        },
    },
    "logging": {
        "level": "INFO",
    },
}


def _pair(value: Any, fallback: List[float]) -> Tuple[float, float]:
    vals = value if isinstance(value, (list, tuple)) and len(value) == 2 else fallback
    return float(vals[0]), float(vals[1])


@dataclass(frozen=True)
class RaterConfig:
    raw: Dict[str, Any]

    @property
    def scoring(self) -> Dict[str, Any]:
        block = self.raw.get("scoring", {})
        d = DEFAULTS["scoring"]
        weights = block.get("weights", {})
        squeeze = block.get("squeeze", {})
        guardrails = block.get("adr_guardrails", d["adr_guardrails"])
        rules = [
            {"min": float(g.get("min", 1.0)), "penalty": float(g.get("penalty", 0.0))}
            for g in (guardrails if isinstance(guardrails, list) else [])
            if isinstance(g, dict)
        ]
        return {
            "weights": {k: float(weights.get(k, v)) for k, v in d["weights"].items()},
            "mtf_tilt": float(block.get("mtf_tilt", d["mtf_tilt"])),
            "squeeze": {
                "buy": float(squeeze.get("buy", 1.03)),
                "sell": float(squeeze.get("sell", 0.97)),
            },
            "algo_confidence_weight": float(block.get("algo_confidence_weight", d["algo_confidence_weight"])),
            "confidence_range": _pair(block.get("confidence_range"), d["confidence_range"]),
            "clamp": _pair(block.get("clamp"), d["clamp"]),
            # evaluated highest threshold first
            "adr_guardrails": sorted(rules, key=lambda g: g["min"], reverse=True),
            "fill_decay_atr": float(block.get("fill_decay_atr", d["fill_decay_atr"])),
            "wrong_side_fill_multiplier": float(
                block.get("wrong_side_fill_multiplier", d["wrong_side_fill_multiplier"])
            ),
            "validate_inputs": bool(block.get("validate_inputs", True)),
        }

    @property
    def ai(self) -> Dict[str, Any]:
        block = self.raw.get("ai", {})
        d = DEFAULTS["ai"]
        alpha = block.get("alpha", {})
        endpoint = block.get("endpoint", {})
        return {
            "enabled": bool(block.get("enabled", False)),
            "gate_band": self.gate_band,
            "alpha": {k: float(alpha.get(k, v)) for k, v in d["alpha"].items()},
            "combined_clamp": _pair(block.get("combined_clamp"), d["combined_clamp"]),
            "fallback_on_error": bool(block.get("fallback_on_error", False)),
            "endpoint": {
                "url": str(endpoint.get("url", d["endpoint"]["url"])),
                "model": str(endpoint.get("model", d["endpoint"]["model"])),
                "api_key_env": str(endpoint.get("api_key_env", d["endpoint"]["api_key_env"])),
                "timeout_seconds": float(endpoint.get("timeout_seconds", d["endpoint"]["timeout_seconds"])),
                "temperature": float(endpoint.get("temperature", d["endpoint"]["temperature"])),
            },
        }

    @property
    def gate_band(self) -> Tuple[float, float]:
        block = self.raw.get("ai", {})
        return validate_gate_band(_pair(block.get("gate_band"), DEFAULTS["ai"]["gate_band"]))

    @property
    def fundamentals(self) -> Dict[str, Any]:
        block = self.raw.get("fundamentals", {})
        d = DEFAULTS["fundamentals"]
        weights = block.get("event_weights", {})
        return {
            "lookback_days": float(block.get("lookback_days", d["lookback_days"])),
            "max_releases": int(block.get("max_releases", d["max_releases"])),
            "strength_threshold": float(block.get("strength_threshold", d["strength_threshold"])),
            "max_key_events": int(block.get("max_key_events", d["max_key_events"])),
            "summary_key_events": int(block.get("summary_key_events", d["summary_key_events"])),
            "event_weights": {k: float(weights.get(k, v)) for k, v in d["event_weights"].items()},
        }

    @property
    def log_level(self) -> str:
        block = self.raw.get("logging", {})
        return str(block.get("level", "INFO")).strip().upper()


def validate_gate_band(band: Tuple[float, float]) -> Tuple[float, float]:
    lo, hi = float(band[0]), float(band[1])
    if not (0.0 <= lo <= hi <= 1.0):
        raise ValueError(f"Invalid gate band: [{lo}, {hi}]. Expected 0 <= low <= high <= 1.")
    return lo, hi


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _deep_merge(out[key], value)
        else:
            out[key] = copy.deepcopy(value)
    return out


def default_config() -> RaterConfig:
    return RaterConfig(raw=copy.deepcopy(DEFAULTS))


def load_rater_config(config_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None) -> RaterConfig:
    # Search order:
    # 1) explicit path
    # 2) ./config.yaml
    # 3) defaults
    doc: Dict[str, Any] = {}
    path = Path(config_path) if config_path else Path("config.yaml")
    if config_path and not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    if path.exists():
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
        if isinstance(loaded, dict):
            doc = loaded
    block = doc.get("fx_rater")
    if not isinstance(block, dict):
        block = {}
    merged = _deep_merge(DEFAULTS, block)
    if overrides:
        merged = _deep_merge(merged, overrides)
    return RaterConfig(raw=merged)


def config_hash(cfg: RaterConfig) -> str:
    payload = repr(cfg.raw).encode("utf-8")
    return hashlib.sha256(payload).hexdigest()
