"""Encode metric points as InfluxDB line protocol and ship them over HTTP."""

from influxwire.errors import ValidationError
from influxwire.protocol.models import Point
from influxwire.protocol.payload import Payload
from influxwire.sync.writer import ResilientWriter, WriteOutcome, WriteResult
from influxwire.utils.config import BackoffPolicy, InfluxDbSettings

__version__ = "0.1.0"

__all__ = [
    "BackoffPolicy",
    "InfluxDbSettings",
    "Payload",
    "Point",
    "ResilientWriter",
    "ValidationError",
    "WriteOutcome",
    "WriteResult",
]
