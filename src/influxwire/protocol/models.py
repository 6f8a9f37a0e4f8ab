"""Data model for line protocol points."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Mapping, Optional, TextIO

from influxwire.errors import ValidationError
from influxwire.protocol.line_protocol import FieldValue, encode_line

_FIELD_TYPES = (str, int, float, bool)

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def _check_name(kind: str, name: str) -> None:
    """Reject text that line protocol cannot carry in a name or tag value.

    Newlines end the line and cannot be escaped there. A trailing backslash
    would escape the separator that follows it.
    """
    if "\n" in name or "\r" in name:
        raise ValidationError(f"{kind} {name!r} must not contain line breaks")
    if name.endswith("\\"):
        raise ValidationError(f"{kind} {name!r} must not end with a backslash")


def _check_tags(tags: Mapping[str, str]) -> None:
    for key, value in tags.items():
        if not isinstance(key, str) or not key:
            raise ValidationError("tag keys must be non-empty strings")
        if not isinstance(value, str) or not value:
            raise ValidationError(f"tag {key!r} must have a non-empty string value")
        _check_name("tag key", key)
        _check_name("tag value", value)


def _check_fields(fields: Mapping[str, FieldValue]) -> None:
    if not fields:
        raise ValidationError("at least one field is required")
    for key, value in fields.items():
        if not isinstance(key, str) or not key:
            raise ValidationError("field keys must be non-empty strings")
        _check_name("field key", key)
        if not isinstance(value, _FIELD_TYPES):
            raise ValidationError(
                f"field {key!r} has unsupported type {type(value).__name__}"
            )
        if isinstance(value, float) and not math.isfinite(value):
            raise ValidationError(f"field {key!r} must be finite, got {value!r}")
        if (
            isinstance(value, int)
            and not isinstance(value, bool)
            and not INT64_MIN <= value <= INT64_MAX
        ):
            raise ValidationError(f"field {key!r} does not fit in a signed 64-bit integer")


def _check_timestamp(timestamp: Optional[datetime]) -> None:
    if timestamp is None:
        return
    if not isinstance(timestamp, datetime):
        raise ValidationError("timestamp must be a datetime")
    offset = timestamp.utcoffset()
    if offset is None:
        raise ValidationError("timestamp must be timezone-aware UTC, got a naive datetime")
    if offset != timedelta(0):
        raise ValidationError(f"timestamp must be UTC, got offset {offset}")


@dataclass(frozen=True)
class Point:
    """A single time-stamped observation.

    Validated on construction; an invalid point can never exist. Tags and
    fields are copied, so later changes to the caller's dicts do not leak in.
    """

    measurement: str
    fields: Mapping[str, FieldValue]
    tags: Mapping[str, str] = field(default_factory=dict)
    timestamp: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not isinstance(self.measurement, str) or not self.measurement:
            raise ValidationError("measurement is required")
        _check_name("measurement", self.measurement)

        fields = dict(self.fields or {})
        tags = dict(self.tags or {})
        _check_fields(fields)
        _check_tags(tags)
        _check_timestamp(self.timestamp)

        object.__setattr__(self, "fields", MappingProxyType(fields))
        object.__setattr__(self, "tags", MappingProxyType(tags))

    def format(self, include_timestamp: bool = True) -> str:
        """Encode as one line protocol line, without a trailing newline."""
        return encode_line(
            self.measurement,
            self.tags,
            self.fields,
            self.timestamp,
            include_timestamp=include_timestamp,
        )

    def write_to(self, sink: TextIO, include_timestamp: bool = True) -> None:
        """Write the encoded line to a text sink."""
        sink.write(self.format(include_timestamp=include_timestamp))
