"""Shared pytest fixtures for influxwire tests."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import requests

from influxwire.utils.config import BackoffPolicy, InfluxDbSettings


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_response(status_code: int = 204, text: str = "") -> MagicMock:
    """Create a MagicMock standing in for requests.Response."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.text = text
    return response


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return InfluxDbSettings(base_uri="http://localhost:8086", database="influx")


@pytest.fixture
def policy():
    return BackoffPolicy(failures_before_backoff=3, backoff_period=60.0)


@pytest.fixture
def session():
    """A requests.Session mock whose post() answers 204 No Content."""
    mock_session = MagicMock(spec=requests.Session)
    mock_session.post.return_value = make_response(204)
    return mock_session


@pytest.fixture
def timestamp():
    """2017-01-01T01:01:01Z, i.e. 1483232461000000000 ns."""
    return datetime(2017, 1, 1, 1, 1, 1, tzinfo=timezone.utc)
