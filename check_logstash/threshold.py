"""
check_logstash/threshold.py — Monitoring-plugin range thresholds.

Range syntax follows the monitoring plugin guidelines:

    10       alert if value < 0 or value > 10
    10:      alert if value < 10
    ~:10     alert if value > 10
    10:20    alert if value < 10 or value > 20
    @10:20   alert if 10 <= value <= 20
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

NEG_INF = float("-inf")
POS_INF = float("inf")

# plain decimal with optional exponent; no underscores, whitespace, inf or nan
_NUMBER = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


class ParseError(ValueError):
    """Raised when a threshold string is not a valid range."""


@dataclass(frozen=True)
class Threshold:
    low: float = 0.0
    high: float = POS_INF
    inverted: bool = False
    # parse_threshold always yields inclusive bounds; exclusive ones are for
    # thresholds built in code
    low_inclusive: bool = True
    high_inclusive: bool = True
    spec: str = ""

    def _inside(self, value: float) -> bool:
        above_low = value >= self.low if self.low_inclusive else value > self.low
        below_high = value <= self.high if self.high_inclusive else value < self.high
        return above_low and below_high

    def violates(self, value: float) -> bool:
        """True when *value* should raise an alert for this range."""
        if math.isnan(value):
            return False
        if self.inverted:
            return self._inside(value)
        return not self._inside(value)

    def __str__(self) -> str:
        return self.spec


def _parse_bound(raw: str, default: float, spec: str) -> float:
    if raw == "":
        return default
    if not _NUMBER.fullmatch(raw):
        raise ParseError(f"invalid threshold '{spec}': '{raw}' is not a number")
    return float(raw)


def parse_threshold(spec: str) -> Threshold:
    """Parse a ``[@]start:end`` range string into a Threshold."""
    if spec is None:
        raise ParseError("threshold must not be empty")
    text = spec.strip()
    if not text:
        raise ParseError("threshold must not be empty")

    body = text
    inverted = body.startswith("@")
    if inverted:
        body = body[1:]

    if body.count(":") > 1:
        raise ParseError(f"invalid threshold '{text}': more than one ':'")

    if ":" in body:
        start, end = body.split(":")
    else:
        start, end = "", body
        if not end:
            raise ParseError(f"invalid threshold '{text}': missing value")

    low = NEG_INF if start == "~" else _parse_bound(start, 0.0, text)
    high = _parse_bound(end, POS_INF, text)
    if low > high:
        raise ParseError(f"invalid threshold '{text}': start {start} is greater than end {end}")

    return Threshold(low=low, high=high, inverted=inverted, spec=text)
