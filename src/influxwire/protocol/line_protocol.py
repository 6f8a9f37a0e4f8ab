"""InfluxDB line protocol encoding.

Implements the text format accepted by the InfluxDB ``/write`` endpoint:

    measurement[,tag=value...] field=value[,field=value...] [timestamp_ns]
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable, Mapping, Optional, Tuple, Union

FieldValue = Union[str, int, float, bool]

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_MEASUREMENT_ESCAPES = str.maketrans({",": r"\,", " ": r"\ "})
_KEY_ESCAPES = str.maketrans({",": r"\,", "=": r"\=", " ": r"\ "})
_STRING_ESCAPES = str.maketrans({"\\": "\\\\", '"': '\\"'})


def escape_measurement(name: str) -> str:
    """Escape commas and spaces in a measurement name."""
    return name.translate(_MEASUREMENT_ESCAPES)


def escape_key(key: str) -> str:
    """Escape commas, equals signs and spaces in a tag key, tag value or field key."""
    return key.translate(_KEY_ESCAPES)


def encode_value(value: FieldValue) -> str:
    """Encode a field value as a line protocol literal.

    Raises:
        TypeError: If the value is not a str, int, float or bool.
    """
    # bool before int: bool is a subclass of int
    if isinstance(value, bool):
        return "t" if value else "f"
    if isinstance(value, int):
        return f"{value}i"
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, str):
        return f'"{value.translate(_STRING_ESCAPES)}"'
    raise TypeError(f"unsupported field value type: {type(value).__name__}")


def to_unix_nanos(timestamp: datetime) -> int:
    """Nanoseconds since the Unix epoch for an aware datetime."""
    return (timestamp - EPOCH) // timedelta(microseconds=1) * 1000


def _join_pairs(pairs: Iterable[Tuple[str, str]]) -> str:
    return ",".join(f"{key}={value}" for key, value in pairs)


def encode_line(
    measurement: str,
    tags: Mapping[str, str],
    fields: Mapping[str, FieldValue],
    timestamp: Optional[datetime] = None,
    include_timestamp: bool = True,
) -> str:
    """Encode one observation as a single line, without a trailing newline.

    Tags and fields keep the order of the mappings they come from.

    Args:
        measurement: Measurement name.
        tags: Tag keys to tag values.
        fields: Field keys to typed values.
        timestamp: UTC instant of the observation, or None.
        include_timestamp: Emit the timestamp when one is present.

    Returns:
        The encoded line.
    """
    line = escape_measurement(measurement)

    if tags:
        line += "," + _join_pairs(
            (escape_key(key), escape_key(value)) for key, value in tags.items()
        )

    line += " " + _join_pairs(
        (escape_key(key), encode_value(value)) for key, value in fields.items()
    )

    if include_timestamp and timestamp is not None:
        line += f" {to_unix_nanos(timestamp)}"

    return line
