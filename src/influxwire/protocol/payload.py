"""Aggregation of points into a single line protocol request body."""

import io
from typing import Iterable, Iterator, List, Optional, TextIO

from influxwire.protocol.models import Point


class Payload:
    """An ordered batch of points sent in one request body.

    Missing points are dropped rather than rejected, so callers can add
    best-effort data without guarding every call.
    """

    def __init__(
        self,
        points: Optional[Iterable[Optional[Point]]] = None,
        include_timestamps: bool = True,
    ):
        """Initialise payload.

        Args:
            points: Initial points. None entries are skipped.
            include_timestamps: Emit each point's timestamp when formatting.
        """
        self.include_timestamps = include_timestamps
        self._points: List[Point] = []

        for point in points or ():
            self.add(point)

    def add(self, point: Optional[Point]) -> None:
        """Append a point. None is ignored."""
        if point is None:
            return
        self._points.append(point)

    def format(self, sink: Optional[TextIO]) -> None:
        """Write every point followed by a newline to ``sink``.

        A None sink is ignored.
        """
        if sink is None:
            return

        for point in self._points:
            point.write_to(sink, include_timestamp=self.include_timestamps)
            sink.write("\n")

    def to_text(self) -> str:
        """Return the formatted payload as a string."""
        buffer = io.StringIO()
        self.format(buffer)
        return buffer.getvalue()

    def to_bytes(self) -> bytes:
        """Return the formatted payload as UTF-8 bytes, ready to send."""
        return self.to_text().encode("utf-8")

    def clear(self) -> None:
        """Remove all points."""
        self._points.clear()

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[Point]:
        return iter(self._points)

    def __repr__(self) -> str:
        return f"Payload(points={len(self._points)})"
