"""
tests/conftest.py — Shared fixtures and path setup for all tests.

Adds the project root to sys.path so tests can import without installing:
    from config.settings import Settings
    from check_logstash.checks import CheckOutcome
    from tests.fixtures.payloads import node_stats, pipelines
"""
import pathlib
import sys

import pytest

# Make project root importable without installing as a package
PROJECT_ROOT = pathlib.Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from config.settings import Settings  # noqa: E402


class StubClient:
    """Stands in for LogstashClient: serves one canned body or raises one error."""

    def __init__(self, body: bytes | str = b"{}", error: Exception | None = None) -> None:
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        self.error = error
        self.paths: list[str] = []

    def get(self, path: str) -> bytes:
        self.paths.append(path)
        if self.error is not None:
            raise self.error
        return self.body


@pytest.fixture
def make_cfg():
    def _make(**overrides) -> Settings:
        return Settings(**overrides)

    return _make


@pytest.fixture
def stub_client():
    return StubClient
