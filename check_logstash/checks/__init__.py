"""
check_logstash/checks — Check routines for check_logstash.

Each module exposes run_* functions that take the Settings of this run
(and optionally a client, so tests can stub the API) and return one
CheckOutcome. Routines never raise for expected failures: configuration,
transport and decode problems become an UNKNOWN outcome.

Usage:
    from check_logstash.checks import CheckOutcome
    from check_logstash.checks.health import run_health
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, TypeVar

from check_logstash.client import ConfigError, HTTPStatusError, LogstashClient, TransportError
from check_logstash.logstash_api import DecodeError
from check_logstash.perfdata import PerfdataList
from check_logstash.result import Severity, normalize_state, worst_state
from check_logstash.threshold import Threshold

if TYPE_CHECKING:
    from config.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ApiClient(Protocol):
    def get(self, path: str) -> bytes: ...


@dataclass
class SubCheck:
    state: Severity
    text: str

    def __str__(self) -> str:
        return f" \\_[{self.state.name}] {self.text}"


@dataclass
class CheckOutcome:
    state: Severity
    summary: str
    details: list[SubCheck] = field(default_factory=list)
    perfdata: PerfdataList = field(default_factory=PerfdataList)

    @property
    def exit_code(self) -> int:
        return int(self.state)

    @classmethod
    def error(cls, exc: BaseException | str, state: int = Severity.UNKNOWN) -> CheckOutcome:
        return cls(normalize_state(state), str(exc))

    @classmethod
    def aggregate(
        cls,
        details: list[SubCheck],
        summaries: dict[Severity, str],
        perfdata: PerfdataList | None = None,
    ) -> CheckOutcome:
        """Worst state of the sub-checks, worded with the routine's summary phrases."""
        state = worst_state(d.state for d in details)
        return cls(state, summaries[state], details, perfdata or PerfdataList())

    def render(self) -> str:
        lines = [f"{self.state.name} - {self.summary}"]
        lines.extend(str(d) for d in self.details)
        perf = str(self.perfdata)
        if perf:
            lines.append(f"| {perf}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.render()


def classify(value: float, warn: Threshold, crit: Threshold) -> Severity:
    """Critical is checked first; the first violated threshold wins."""
    if crit.violates(value):
        return Severity.CRITICAL
    if warn.violates(value):
        return Severity.WARNING
    return Severity.OK


def fetch(
    cfg: Settings,
    path: str,
    decode: Callable[[bytes], T],
    client: ApiClient | None = None,
) -> T | CheckOutcome:
    """GET and decode one API document, or the UNKNOWN outcome explaining why not.

    Transport failures use the configured unreachable state instead of UNKNOWN.
    """
    try:
        api = client if client is not None else LogstashClient(cfg)
    except ConfigError as exc:
        return CheckOutcome.error(exc)
    try:
        body = api.get(path)
    except TransportError as exc:
        return CheckOutcome.error(exc, state=cfg.UNREACHABLE_STATE)
    except HTTPStatusError as exc:
        return CheckOutcome.error(exc)
    try:
        return decode(body)
    except DecodeError as exc:
        logger.debug("decoding %s failed: %s", path, exc)
        return CheckOutcome.error(exc)
