"""
check_logstash/result.py — Plugin severities and worst-state aggregation.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import IntEnum


class Severity(IntEnum):
    """Plugin states; the integer value is the process exit code."""

    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3

    def __str__(self) -> str:
        return self.name


_ORDERED = (Severity.OK, Severity.WARNING, Severity.CRITICAL)


def normalize_state(value: int) -> Severity:
    """Map an operator supplied state to a Severity; only 0, 1 and 2 are accepted."""
    if value in _ORDERED:
        return Severity(value)
    return Severity.UNKNOWN


def worst_state(states: Iterable[int]) -> Severity:
    """Reduce sub-check states to one overall state.

    OK < WARNING < CRITICAL. An empty input, or any state outside that
    order (including UNKNOWN), makes the aggregate UNKNOWN.
    """
    worst = None
    for state in states:
        if state not in _ORDERED:
            return Severity.UNKNOWN
        if worst is None or state > worst:
            worst = Severity(state)
    return Severity.UNKNOWN if worst is None else worst
