"""Line protocol encoding: points and payloads."""

from influxwire.protocol.models import Point
from influxwire.protocol.payload import Payload

__all__ = ["Payload", "Point"]
