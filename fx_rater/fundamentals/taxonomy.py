from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional, Pattern, Tuple

ALLOWED_CCYS = ("USD", "EUR", "GBP", "JPY", "CHF", "AUD", "NZD", "CAD")

ALLOWED_EVENTS = (
    "CPI",
    "Core CPI",
    "PCE",
    "NFP",
    "Unemployment",
    "Jobless Claims",
    "GDP",
    "PMI Manufacturing",
    "PMI Services",
    "Retail Sales",
    "Rate Decision",
)


@dataclass(frozen=True)
class EventRule:
    label: str
    patterns: Tuple[Pattern[str], ...]

    def matches(self, name: str) -> bool:
        return any(p.search(name) for p in self.patterns)


def _rule(label: str, *patterns: str) -> EventRule:
    return EventRule(label=label, patterns=tuple(re.compile(p, re.IGNORECASE) for p in patterns))


# Evaluated top to bottom, first match wins. Order matters:
# "core ... cpi" before plain CPI, claims before the unemployment rate,
# services/non-manufacturing before manufacturing.
EVENT_RULES: Tuple[EventRule, ...] = (
    _rule("Core CPI", r"(^|\b)core\b.*(cpi|consumer\s*price|inflation)"),
    _rule(
        "CPI",
        r"^cpi\b",
        r"(consumer\s*price|inflation\s*rate|inflation)\b",
        r"\bcpi\s*(m/m|q/q|y/y)",
    ),
    _rule(
        "PCE",
        r"^pce$",
        r"(core\s*)?\bpce\b(\s*price\s*index)?",
        r"personal\s*consumption\s*expenditures",
    ),
    _rule(
        "NFP",
        r"non[-\s]?farm.*payroll",
        r"non[-\s]?farm\s*employment",
        r"\bnfp\b",
        r"payrolls",
    ),
    _rule(
        "Jobless Claims",
        r"((initial|continuing)\s*)?(jobless|unemployment)\s*claims",
        r"^claims$",
    ),
    _rule("Unemployment", r"unemployment(\s*rate)?", r"jobless\s*rate"),
    _rule("GDP", r"^gdp\b", r"gross\s*domestic\s*product"),
    _rule(
        "PMI Services",
        r"((ism|s&p\s*global|markit).*)?(services|non[-\s]?manufacturing).*(pmi|index)",
        r"services\s*pmi",
    ),
    _rule(
        "PMI Manufacturing",
        r"((ism|s&p\s*global|markit).*)?manufacturing.*(pmi|index)",
        r"manufacturing\s*pmi",
    ),
    _rule("Retail Sales", r"retail\s*sales"),
    _rule(
        "Rate Decision",
        r"rate.*decision",
        r"\bfomc\b",
        r"federal\s*funds\s*rate",
        r"policy\s*rate",
        r"monetary\s*policy\s*decision",
        r"cash\s*rate",
        r"overnight\s*rate",
    ),
)


def normalize_event_name(raw: Any) -> Optional[str]:
    name = str(raw if raw is not None else "").strip()
    if not name:
        return None
    for rule in EVENT_RULES:
        if rule.matches(name):
            return rule.label
    if name in ALLOWED_EVENTS:
        return name
    return None


def normalize_currency(raw: Any) -> Optional[str]:
    code = str(raw if raw is not None else "").strip().upper()
    return code if code in ALLOWED_CCYS else None
