"""
check_logstash/checks/pipeline.py — Pipeline inflight events, config reloads and flow metrics.

All three routines use GET /_node/stats/pipelines/<name>; an empty name
(the default "/") returns every pipeline of the node.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from check_logstash.checks import ApiClient, CheckOutcome, SubCheck, classify, fetch
from check_logstash.client import ConfigError, pipeline_path
from check_logstash.logstash_api import PipelineSet, PipelineStats, decode_pipeline_set
from check_logstash.perfdata import Perfdata, PerfdataList
from check_logstash.result import Severity
from check_logstash.threshold import ParseError, Threshold, parse_threshold

if TYPE_CHECKING:
    from config.settings import Settings

logger = logging.getLogger(__name__)

INFLIGHT_SUMMARIES = {
    Severity.OK: "Inflight events alright",
    Severity.WARNING: "Inflight events may not be alright",
    Severity.CRITICAL: "Inflight events not alright",
    Severity.UNKNOWN: "Inflight events status unknown",
}

RELOAD_SUMMARIES = {
    Severity.OK: "Configuration successfully reloaded",
    Severity.WARNING: "Configuration reload may not be successful",
    Severity.CRITICAL: "Configuration reload failed",
    Severity.UNKNOWN: "Configuration reload status unknown",
}

FLOW_SUMMARIES = {
    Severity.OK: "Flow metrics alright",
    Severity.WARNING: "Flow metrics may not be alright",
    Severity.CRITICAL: "Flow metrics not alright",
    Severity.UNKNOWN: "Flow metrics status unknown",
}


def parse_pipeline_thresholds(
    warning: str | None,
    critical: str | None,
    flags: tuple[str, str],
) -> tuple[Threshold, Threshold]:
    """Parse the warning/critical pair; both are mandatory for these routines."""
    missing = [flag for flag, value in zip(flags, (warning, critical)) if not value]
    if missing:
        quoted = ", ".join(f'"{flag}"' for flag in missing)
        raise ConfigError(f"required flag(s) {quoted} not set")
    return parse_threshold(warning), parse_threshold(critical)


def _fetch_pipelines(cfg: Settings, client: ApiClient | None) -> PipelineSet | CheckOutcome:
    pipelines = fetch(cfg, pipeline_path(cfg.PIPELINE), decode_pipeline_set, client)
    if isinstance(pipelines, PipelineSet):
        logger.debug("decoded %d pipeline(s)", len(pipelines.pipelines))
    return pipelines


# -----------------------------------------------------------------------------
# Inflight events
# -----------------------------------------------------------------------------


def inflight_perfdata(name: str, pipe: PipelineStats, warn: Threshold, crit: Threshold) -> list[Perfdata]:
    return [
        Perfdata(f"pipelines.{name}.events.in", pipe.events.in_, uom="c"),
        Perfdata(f"pipelines.{name}.events.out", pipe.events.out, uom="c"),
        Perfdata(f"inflight_events_{name}", pipe.events.inflight, warn=warn, crit=crit),
        Perfdata(f"pipelines.{name}.reloads.failures", pipe.reloads.failures),
        Perfdata(f"pipelines.{name}.reloads.successes", pipe.reloads.successes),
    ]


def evaluate_inflight(pipelines: PipelineSet, warn: Threshold, crit: Threshold) -> CheckOutcome:
    details: list[SubCheck] = []
    perf = PerfdataList()
    for name, pipe in pipelines.sorted_items():
        inflight = pipe.events.inflight
        state = classify(inflight, warn, crit)
        logger.debug("pipeline %s: inflight=%d state=%s", name, inflight, state.name)
        details.append(SubCheck(state, f"inflight_events_{name}:{inflight};"))
        for entry in inflight_perfdata(name, pipe, warn, crit):
            perf.add(entry)
    return CheckOutcome.aggregate(details, INFLIGHT_SUMMARIES, perf)


def run_inflight(cfg: Settings, client: ApiClient | None = None) -> CheckOutcome:
    try:
        warn, crit = parse_pipeline_thresholds(
            cfg.INFLIGHT_EVENTS_WARN,
            cfg.INFLIGHT_EVENTS_CRIT,
            ("inflight-events-warn", "inflight-events-crit"),
        )
    except (ConfigError, ParseError) as exc:
        return CheckOutcome.error(exc)

    pipelines = _fetch_pipelines(cfg, client)
    if isinstance(pipelines, CheckOutcome):
        return pipelines
    return evaluate_inflight(pipelines, warn, crit)


# -----------------------------------------------------------------------------
# Configuration reloads
# -----------------------------------------------------------------------------


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC 3339 timestamp; a timezone is required.

    Raises ValueError for anything else, including date-only and naive values.
    """
    raw = value.strip()
    if "T" not in raw.upper():
        raise ValueError(f"not an RFC 3339 timestamp: {value!r}")
    if raw.endswith(("Z", "z")):
        raw = f"{raw[:-1]}+00:00"
    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        raise ValueError(f"timestamp without timezone: {value!r}")
    return parsed


def reload_subcheck(name: str, pipe: PipelineStats) -> SubCheck | None:
    """Reload state of one pipeline, None if it never reloaded successfully."""
    reloads = pipe.reloads
    if not reloads.last_success_timestamp:
        return None
    try:
        last_success = parse_rfc3339(reloads.last_success_timestamp)
        last_failure = parse_rfc3339(reloads.last_failure_timestamp)
    except ValueError as exc:
        logger.debug("pipeline %s: %s", name, exc)
        return SubCheck(Severity.UNKNOWN, f"Configuration reload for pipeline {name} unknown;")

    if last_failure > last_success:
        text = f"Configuration reload for pipeline {name} failed on {last_failure.isoformat()};"
        if reloads.last_error is not None and reloads.last_error.message:
            text += f" {reloads.last_error.message}"
        return SubCheck(Severity.CRITICAL, text)
    return SubCheck(
        Severity.OK,
        f"Configuration successfully reloaded for pipeline {name} on {last_success.isoformat()};",
    )


def evaluate_reload(pipelines: PipelineSet) -> CheckOutcome:
    details = [
        sub
        for name, pipe in pipelines.sorted_items()
        if (sub := reload_subcheck(name, pipe)) is not None
    ]
    return CheckOutcome.aggregate(details, RELOAD_SUMMARIES)


def run_reload(cfg: Settings, client: ApiClient | None = None) -> CheckOutcome:
    pipelines = _fetch_pipelines(cfg, client)
    if isinstance(pipelines, CheckOutcome):
        return pipelines
    return evaluate_reload(pipelines)


# -----------------------------------------------------------------------------
# Flow metrics
# -----------------------------------------------------------------------------


def flow_perfdata(name: str, pipe: PipelineStats, warn: Threshold, crit: Threshold) -> list[Perfdata]:
    flow = pipe.flow
    return [
        Perfdata(f"pipelines.queue_backpressure_{name}", flow.queue_backpressure.current, warn=warn, crit=crit),
        Perfdata(f"pipelines.{name}.output_throughput", flow.output_throughput.current),
        Perfdata(f"pipelines.{name}.input_throughput", flow.input_throughput.current),
        Perfdata(f"pipelines.{name}.filter_throughput", flow.filter_throughput.current),
    ]


def evaluate_flow(pipelines: PipelineSet, warn: Threshold, crit: Threshold) -> CheckOutcome:
    details: list[SubCheck] = []
    perf = PerfdataList()
    for name, pipe in pipelines.sorted_items():
        backpressure = pipe.flow.queue_backpressure.current
        state = classify(backpressure, warn, crit)
        logger.debug("pipeline %s: queue_backpressure=%s state=%s", name, backpressure, state.name)
        details.append(SubCheck(state, f"queue_backpressure_{name}:{backpressure:.2f};"))
        for entry in flow_perfdata(name, pipe, warn, crit):
            perf.add(entry)
    return CheckOutcome.aggregate(details, FLOW_SUMMARIES, perf)


def run_flow(cfg: Settings, client: ApiClient | None = None) -> CheckOutcome:
    try:
        warn, crit = parse_pipeline_thresholds(cfg.FLOW_WARN, cfg.FLOW_CRIT, ("warning", "critical"))
    except (ConfigError, ParseError) as exc:
        return CheckOutcome.error(exc)

    pipelines = _fetch_pipelines(cfg, client)
    if isinstance(pipelines, CheckOutcome):
        return pipelines
    return evaluate_flow(pipelines, warn, crit)
