"""Tests for Payload aggregation."""

import io
from datetime import datetime, timezone

from influxwire.protocol.models import Point
from influxwire.protocol.payload import Payload


def _two_points():
    point_one = Point(
        "measurement",
        {"key": "value"},
        timestamp=datetime(2017, 1, 1, 1, 1, 1, tzinfo=timezone.utc),
    )
    point_two = Point(
        "measurement",
        {"field1key": "field1value", "field2key": 2, "field3key": False},
        timestamp=datetime(2017, 1, 2, 1, 1, 1, tzinfo=timezone.utc),
    )
    return point_one, point_two


def test_format_payload() -> None:
    sink = io.StringIO()
    payload = Payload()
    for point in _two_points():
        payload.add(point)

    payload.format(sink)

    assert sink.getvalue() == (
        'measurement key="value" 1483232461000000000\n'
        'measurement field1key="field1value",field2key=2i,field3key=f 1483318861000000000\n'
    )


def test_null_point_is_ignored() -> None:
    payload = Payload()

    payload.add(None)

    assert len(payload) == 0
    assert payload.to_text() == ""


def test_null_point_does_not_appear_in_output() -> None:
    point_one, point_two = _two_points()
    payload = Payload([point_one, None, point_two])

    assert len(payload) == 2
    assert payload.to_text().count("\n") == 2


def test_null_sink_is_ignored() -> None:
    payload = Payload()
    payload.add(Point("measurement", {"key": "value"}))

    payload.format(None)


def test_empty_payload_formats_nothing() -> None:
    sink = io.StringIO()

    Payload().format(sink)

    assert sink.getvalue() == ""


def test_payload_without_timestamps() -> None:
    payload = Payload(_two_points(), include_timestamps=False)

    assert payload.to_text() == (
        'measurement key="value"\n'
        'measurement field1key="field1value",field2key=2i,field3key=f\n'
    )


def test_to_bytes_is_utf8() -> None:
    payload = Payload([Point("weather", {"summary": "sunny ☀"}, tags={"city": "Zürich"})])

    assert payload.to_bytes() == 'weather,city=Zürich summary="sunny ☀"\n'.encode("utf-8")


def test_iteration_keeps_insertion_order() -> None:
    point_one, point_two = _two_points()
    payload = Payload()
    payload.add(point_two)
    payload.add(point_one)

    assert list(payload) == [point_two, point_one]


def test_clear() -> None:
    payload = Payload(_two_points())

    payload.clear()

    assert len(payload) == 0
