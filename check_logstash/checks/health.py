"""
check_logstash/checks/health.py — Node health: status, heap, file descriptors, CPU.

Uses GET /_node/stats. Logstash 6 does not report a status, a successfully
decoded Logstash 6 response counts as green.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from check_logstash.checks import ApiClient, CheckOutcome, SubCheck, fetch
from check_logstash.client import NODE_STATS_PATH
from check_logstash.logstash_api import NodeStats, decode_node_stats
from check_logstash.perfdata import Perfdata, PerfdataList
from check_logstash.result import Severity, worst_state
from check_logstash.threshold import ParseError, Threshold, parse_threshold

if TYPE_CHECKING:
    from config.settings import Settings

logger = logging.getLogger(__name__)

STATUS_STATES = {
    "green": Severity.OK,
    "yellow": Severity.WARNING,
    "red": Severity.CRITICAL,
}

SUMMARIES = {
    Severity.OK: "Logstash is healthy",
    Severity.WARNING: "Logstash may not be healthy",
    Severity.CRITICAL: "Logstash is unhealthy",
    Severity.UNKNOWN: "Status unknown",
}


@dataclass(frozen=True)
class HealthThresholds:
    file_desc_warn: Threshold
    file_desc_crit: Threshold
    heap_warn: Threshold
    heap_crit: Threshold
    cpu_warn: Threshold
    cpu_crit: Threshold


def parse_health_thresholds(cfg: Settings) -> HealthThresholds:
    return HealthThresholds(
        file_desc_warn=parse_threshold(cfg.FILE_DESCRIPTOR_THRESHOLD_WARN),
        file_desc_crit=parse_threshold(cfg.FILE_DESCRIPTOR_THRESHOLD_CRIT),
        heap_warn=parse_threshold(cfg.HEAP_USAGE_THRESHOLD_WARN),
        heap_crit=parse_threshold(cfg.HEAP_USAGE_THRESHOLD_CRIT),
        cpu_warn=parse_threshold(cfg.CPU_USAGE_THRESHOLD_WARN),
        cpu_crit=parse_threshold(cfg.CPU_USAGE_THRESHOLD_CRIT),
    )


def _warn_then_crit(value: float, warn: Threshold, crit: Threshold) -> Severity:
    # Both are evaluated; a critical violation overrides a warning one
    state = Severity.OK
    if warn.violates(value):
        state = Severity.WARNING
    if crit.violates(value):
        state = Severity.CRITICAL
    return state


def node_status_state(stats: NodeStats) -> Severity | None:
    """Severity of the reported node status, or None if it is missing/unknown."""
    status = "green" if stats.major_version == 6 else stats.status
    return STATUS_STATES.get(status)


def build_perfdata(stats: NodeStats, t: HealthThresholds) -> PerfdataList:
    perf = PerfdataList()
    perf.add(Perfdata("status", stats.status))
    perf.add(
        Perfdata(
            "process.cpu.percent",
            stats.process.cpu.percent,
            uom="%",
            warn=t.cpu_warn,
            crit=t.cpu_crit,
            min=0,
            max=100,
        )
    )
    perf.add(
        Perfdata(
            "jvm.mem.heap_used_percent",
            stats.jvm.mem.heap_used_percent,
            uom="%",
            warn=t.heap_warn,
            crit=t.heap_crit,
            min=0,
            max=100,
        )
    )
    perf.add(Perfdata("jvm.threads.count", stats.jvm.threads.count, max=0))
    perf.add(
        Perfdata(
            "process.open_file_descriptors",
            stats.process.open_file_descriptors,
            warn=t.file_desc_warn,
            crit=t.file_desc_crit,
            min=0,
            max=stats.process.max_file_descriptors,
        )
    )
    return perf


def evaluate_health(stats: NodeStats, t: HealthThresholds) -> CheckOutcome:
    status_state = node_status_state(stats)
    if status_state is None:
        return CheckOutcome.error("could not determine status")

    fd_percent = stats.process.file_descriptors_percent
    heap_percent = stats.jvm.mem.heap_used_percent
    cpu_percent = stats.process.cpu.percent

    heap_state = _warn_then_crit(heap_percent, t.heap_warn, t.heap_crit)
    fd_state = _warn_then_crit(fd_percent, t.file_desc_warn, t.file_desc_crit)
    cpu_state = _warn_then_crit(cpu_percent, t.cpu_warn, t.cpu_crit)
    logger.debug(
        "status=%s heap=%.2f%% (%s) fd=%.2f%% (%s) cpu=%.2f%% (%s)",
        status_state.name,
        heap_percent,
        heap_state.name,
        fd_percent,
        fd_state.name,
        cpu_percent,
        cpu_state.name,
    )

    details = [
        SubCheck(heap_state, f"Heap usage at {heap_percent:.2f}%"),
        SubCheck(fd_state, f"Open file descriptors at {fd_percent:.2f}%"),
        SubCheck(cpu_state, f"CPU usage at {cpu_percent:.2f}%"),
    ]
    # The node status feeds the overall state but has no detail line of its own
    state = worst_state([status_state, heap_state, fd_state, cpu_state])
    return CheckOutcome(state, SUMMARIES[state], details, build_perfdata(stats, t))


def run_health(cfg: Settings, client: ApiClient | None = None) -> CheckOutcome:
    try:
        thresholds = parse_health_thresholds(cfg)
    except ParseError as exc:
        return CheckOutcome.error(exc)

    stats = fetch(cfg, NODE_STATS_PATH, decode_node_stats, client)
    if isinstance(stats, CheckOutcome):
        return stats
    return evaluate_health(stats, thresholds)
