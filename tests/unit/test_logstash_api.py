"""Unit tests for check_logstash.logstash_api decoding."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from check_logstash.logstash_api import (
    DecodeError,
    ProcessStats,
    decode_node_stats,
    decode_pipeline_set,
    parse_major_version,
)
from tests.fixtures.payloads import NODE_STATS_V6, node_stats, pipeline_entry, pipelines


class TestNodeStats:
    def test_v7_payload(self):
        stats = decode_node_stats(node_stats(version="7.17.8", heap=20, cpu=1, threads=50))
        assert stats.major_version == 7
        assert stats.status == "green"
        assert stats.jvm.mem.heap_used_percent == 20
        assert stats.jvm.threads.count == 50
        assert stats.process.cpu.percent == 1
        assert stats.process.max_file_descriptors == 16384

    def test_v6_payload_without_status(self):
        stats = decode_node_stats(NODE_STATS_V6)
        assert stats.major_version == 6
        assert stats.status == ""
        assert stats.jvm.threads.count == 1
        # empty objects fall back to zero values
        assert stats.process.open_file_descriptors == 0
        assert stats.jvm.mem.heap_used_percent == 0

    def test_null_fields_are_treated_as_missing(self):
        stats = decode_node_stats(b'{"version":"8.7.1","status":null,"process":{"cpu":null}}')
        assert stats.status == ""
        assert stats.process.cpu.percent == 0

    def test_unknown_fields_are_ignored(self):
        stats = decode_node_stats(b'{"foo":"bar"}')
        assert stats.version == ""
        assert stats.major_version == 0

    def test_unparseable_version(self):
        with pytest.raises(DecodeError, match="could not determine version"):
            decode_node_stats(node_stats(version="foo"))

    @pytest.mark.parametrize("body", [b"", b"{", b"[1, 2]", b"null", b"not json"])
    def test_invalid_json(self, body):
        with pytest.raises(DecodeError, match="could not decode JSON response"):
            decode_node_stats(body)

    def test_type_mismatch(self):
        with pytest.raises(DecodeError, match="could not decode node stats"):
            decode_node_stats(b'{"jvm":{"threads":{"count":"many"}}}')

    def test_models_are_immutable(self):
        stats = decode_node_stats(node_stats())
        with pytest.raises(ValidationError):
            stats.status = "red"


@pytest.mark.parametrize("version,major", [("8.7.1", 8), ("6.8.23", 6), ("7", 7), ("10.0.0-SNAPSHOT", 10)])
def test_parse_major_version(version, major):
    assert parse_major_version(version) == major


@pytest.mark.parametrize("version", ["", "foo", "v8.1.0", ".1", "².1.0", "٨.1.0"])
def test_parse_major_version_rejects(version):
    with pytest.raises(DecodeError):
        parse_major_version(version)


@pytest.mark.parametrize(
    "open_fds,max_fds,expected",
    [(45, 100, 45.0), (0, 100, 0.0), (120, 0, 0.0), (50, 200, 25.0)],
)
def test_file_descriptors_percent(open_fds, max_fds, expected):
    process = ProcessStats(open_file_descriptors=open_fds, max_file_descriptors=max_fds)
    assert process.file_descriptors_percent == pytest.approx(expected)


class TestPipelineSet:
    def test_events_and_inflight(self):
        result = decode_pipeline_set(pipelines({"main": pipeline_entry(events_in=100, events_out=40)}))
        pipe = result.pipelines["main"]
        assert pipe.events.in_ == 100
        assert pipe.events.out == 40
        assert pipe.events.inflight == 60
        assert result.host == "localhost"

    def test_null_reload_timestamps_become_empty(self):
        result = decode_pipeline_set(pipelines({"main": pipeline_entry()}))
        reloads = result.pipelines["main"].reloads
        assert reloads.last_success_timestamp == ""
        assert reloads.last_failure_timestamp == ""
        assert reloads.last_error is None

    def test_flow_metrics(self):
        body = pipelines({"main": pipeline_entry(backpressure=12.34, input_throughput=10)})
        flow = decode_pipeline_set(body).pipelines["main"].flow
        assert flow.queue_backpressure.current == 12.34
        assert flow.queue_backpressure.lifetime == pytest.approx(2.503e-05)
        assert flow.input_throughput.current == 10
        assert flow.worker_concurrency.last_1_minute == pytest.approx(0.0009501)

    def test_missing_flow_block_is_zero(self):
        flow = decode_pipeline_set(pipelines({"main": pipeline_entry()})).pipelines["main"].flow
        assert flow.queue_backpressure.current == 0

    def test_sorted_items(self):
        body = pipelines({"zeta": pipeline_entry(), "alpha": pipeline_entry(), "mid": pipeline_entry()})
        assert [name for name, _ in decode_pipeline_set(body).sorted_items()] == ["alpha", "mid", "zeta"]

    def test_reload_error_message(self):
        entry = pipeline_entry()
        entry["reloads"]["last_error"] = {"message": "Expected one of #", "backtrace": ["a", "b"]}
        reloads = decode_pipeline_set(pipelines({"main": entry})).pipelines["main"].reloads
        assert reloads.last_error.message == "Expected one of #"
        assert reloads.last_error.backtrace == ["a", "b"]

    def test_no_pipelines(self):
        assert decode_pipeline_set(b'{"host":"x"}').pipelines == {}

    def test_invalid_pipeline_document(self):
        with pytest.raises(DecodeError, match="could not decode pipeline stats"):
            decode_pipeline_set(b'{"pipelines":{"main":{"events":{"in":"lots"}}}}')


def test_non_ascii_digit_version_is_a_decode_error():
    with pytest.raises(DecodeError, match="could not determine version"):
        decode_node_stats(b'{"version":"\xc2\xb2.1.0","status":"green"}')
