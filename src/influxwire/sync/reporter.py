"""Periodic reporting of points to InfluxDB."""

import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from influxwire.protocol.models import Point
from influxwire.protocol.payload import Payload
from influxwire.sync.writer import ResilientWriter, WriteOutcome, WriteResult
from influxwire.utils.config import ReporterConfig
from influxwire.utils.logging import get_logger

log = get_logger(__name__)

PointSource = Callable[[], Iterable[Optional[Point]]]


@dataclass(frozen=True)
class ReporterStats:
    """Cumulative counters since the service was created."""

    cycles: int = 0
    points_sent: int = 0
    failed: int = 0
    suppressed: int = 0
    cancelled: int = 0
    errors: int = 0
    last_success: Optional[str] = None
    last_error: Optional[str] = None


class ReportingService:
    """Pull points from a source on a fixed interval and write them.

    Holds no queue: whatever the source returns in a cycle is sent in that
    cycle or dropped. Errors are logged and never stop the loop.
    """

    def __init__(
        self,
        config: ReporterConfig,
        writer: ResilientWriter,
        point_source: PointSource,
    ):
        """Initialise reporting service.

        Args:
            config: Flush interval and timestamp emission.
            writer: Writer used for every cycle.
            point_source: Called once per cycle for the points to send.
        """
        self.config = config
        self.writer = writer
        self.point_source = point_source

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._stats = ReporterStats()

    def start(self) -> None:
        """Start reporting in the background."""
        if self._thread is not None and self._thread.is_alive():
            return

        log.info(
            "starting_reporter",
            endpoint=self.writer.settings.write_url,
            database=self.writer.settings.database,
            interval_s=self.config.flush_interval_seconds,
        )

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._report_loop, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop reporting and wait for the current cycle to finish."""
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)
        self._thread = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def stats(self) -> ReporterStats:
        with self._lock:
            return self._stats

    def _report_loop(self) -> None:
        """Main reporting loop."""
        while not self._stop_event.wait(self.config.flush_interval_seconds):
            try:
                self.report_once()
            except Exception as e:
                self._update(errors=1, last_error=str(e))
                log.error("report_error", error=str(e), error_type=type(e).__name__)

    def report_once(self) -> Optional[WriteResult]:
        """Run one cycle.

        Returns:
            The write result, or None when the source had nothing to send.
        """
        payload = Payload(
            self.point_source(),
            include_timestamps=self.config.include_timestamps,
        )
        self._update(cycles=1)

        if len(payload) == 0:
            log.debug("report_no_points")
            return None

        result = self.writer.write_payload(payload, cancel=self._stop_event)

        if result.outcome is WriteOutcome.SUCCESS:
            self._update(
                points_sent=len(payload),
                last_success=datetime.now(timezone.utc).isoformat(),
            )
            log.info("report_complete", points=len(payload))
        elif result.outcome is WriteOutcome.FAILURE:
            self._update(failed=1, last_error=result.error)
            log.warning(
                "report_failed",
                points=len(payload),
                status_code=result.status_code,
                error=result.error,
                consecutive_failures=self.writer.consecutive_failures,
            )
        elif result.outcome is WriteOutcome.SUPPRESSED:
            self._update(suppressed=1)
            log.info("report_suppressed_backing_off", points=len(payload))
        else:
            self._update(cancelled=1)

        return result

    def _update(
        self,
        last_success: Optional[str] = None,
        last_error: Optional[str] = None,
        **increments: int,
    ) -> None:
        """Add to the named counters and record the latest success or error."""
        with self._lock:
            stats = self._stats
            changes = {key: getattr(stats, key) + n for key, n in increments.items()}
            if last_success is not None:
                changes["last_success"] = last_success
            if last_error is not None:
                changes["last_error"] = last_error
            self._stats = replace(stats, **changes)
