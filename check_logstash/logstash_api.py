"""
Typed model of the Logstash node stats API.

https://www.elastic.co/guide/en/logstash/current/node-stats-api.html

One tolerant model covers Logstash 6, 7 and 8:
  - unknown fields are ignored
  - missing or null fields fall back to zero values
  - version specific interpretation (Logstash 6 has no `status`) is left to
    the check routines
"""

from __future__ import annotations

from typing import Any

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator


class DecodeError(ValueError):
    """Raised when an API response cannot be turned into the stats model."""


class _StatsModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        # null means "not reported", same as a missing key
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


# -----------------------------------------------------------------------------
# /_node/stats
# -----------------------------------------------------------------------------


class CPUStats(_StatsModel):
    percent: float = 0.0
    total_in_millis: int = 0


class ProcessStats(_StatsModel):
    open_file_descriptors: float = 0.0
    peak_open_file_descriptors: float = 0.0
    max_file_descriptors: float = 0.0
    cpu: CPUStats = CPUStats()

    @property
    def file_descriptors_percent(self) -> float:
        """Open descriptors relative to the limit; 0 when no limit is reported."""
        if self.max_file_descriptors <= 0:
            return 0.0
        return self.open_file_descriptors / self.max_file_descriptors * 100


class JVMMemStats(_StatsModel):
    heap_used_percent: float = 0.0
    heap_used_in_bytes: int = 0
    heap_max_in_bytes: int = 0


class JVMThreadStats(_StatsModel):
    count: int = 0
    peak_count: int = 0


class JVMStats(_StatsModel):
    mem: JVMMemStats = JVMMemStats()
    threads: JVMThreadStats = JVMThreadStats()
    uptime_in_millis: int = 0


class NodeStats(_StatsModel):
    """Snapshot of one Logstash node as returned by GET /_node/stats."""

    host: str = ""
    version: str = ""
    status: str = ""
    process: ProcessStats = ProcessStats()
    jvm: JVMStats = JVMStats()
    major_version: int = 0


# -----------------------------------------------------------------------------
# /_node/stats/pipelines
# -----------------------------------------------------------------------------


class EventStats(_StatsModel):
    in_: int = Field(0, alias="in")
    out: int = 0
    filtered: int = 0
    duration_in_millis: int = 0
    queue_push_duration_in_millis: int = 0

    @property
    def inflight(self) -> int:
        return self.in_ - self.out


class ReloadError(_StatsModel):
    message: str = ""
    backtrace: list[str] = []


class ReloadStats(_StatsModel):
    successes: int = 0
    failures: int = 0
    last_success_timestamp: str = ""
    last_failure_timestamp: str = ""
    last_error: ReloadError | None = None


class QueueStats(_StatsModel):
    type: str = ""
    events_count: int = 0
    queue_size_in_bytes: int = 0
    max_queue_size_in_bytes: int = 0


class FlowMetric(_StatsModel):
    current: float = 0.0
    last_1_minute: float = 0.0
    lifetime: float = 0.0


class FlowStats(_StatsModel):
    """Flow metrics, only reported by Logstash >= 8.5."""

    queue_backpressure: FlowMetric = FlowMetric()
    input_throughput: FlowMetric = FlowMetric()
    output_throughput: FlowMetric = FlowMetric()
    filter_throughput: FlowMetric = FlowMetric()
    worker_concurrency: FlowMetric = FlowMetric()


class PipelineStats(_StatsModel):
    events: EventStats = EventStats()
    reloads: ReloadStats = ReloadStats()
    queue: QueueStats = QueueStats()
    flow: FlowStats = FlowStats()


class PipelineSet(_StatsModel):
    """Pipelines as returned by GET /_node/stats/pipelines[/<name>]."""

    host: str = ""
    version: str = ""
    pipelines: dict[str, PipelineStats] = {}

    def sorted_items(self) -> list[tuple[str, PipelineStats]]:
        """Pipelines ordered by name so reports are deterministic."""
        return sorted(self.pipelines.items())


# -----------------------------------------------------------------------------
# Decoding
# -----------------------------------------------------------------------------


def _load_object(body: bytes | str) -> dict:
    try:
        payload = orjson.loads(body)
    except orjson.JSONDecodeError as exc:
        raise DecodeError(f"could not decode JSON response: {exc}") from exc
    if not isinstance(payload, dict):
        raise DecodeError("could not decode JSON response: expected an object")
    return payload


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    location = ".".join(str(part) for part in err.get("loc", ()))
    return f"{location}: {err.get('msg')}" if location else str(err.get("msg"))


def parse_major_version(version: str) -> int:
    """Major version from a dotted version string, e.g. "8.7.1" -> 8."""
    head = version.split(".", 1)[0].strip()
    if not (head.isascii() and head.isdigit()):
        raise DecodeError("could not determine version")
    return int(head)


def decode_node_stats(body: bytes | str) -> NodeStats:
    payload = _load_object(body)
    try:
        stats = NodeStats.model_validate(payload)
    except ValidationError as exc:
        raise DecodeError(f"could not decode node stats: {_first_error(exc)}") from exc

    if payload.get("version") is None:
        return stats
    return stats.model_copy(update={"major_version": parse_major_version(stats.version)})


def decode_pipeline_set(body: bytes | str) -> PipelineSet:
    payload = _load_object(body)
    try:
        return PipelineSet.model_validate(payload)
    except ValidationError as exc:
        raise DecodeError(f"could not decode pipeline stats: {_first_error(exc)}") from exc
