"""HTTP writer for line protocol payloads with failure backoff."""

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

import requests

from influxwire.errors import ValidationError
from influxwire.protocol.payload import Payload
from influxwire.sync.backoff import BackoffState
from influxwire.utils.config import BackoffPolicy, InfluxDbSettings
from influxwire.utils.logging import get_logger

log = get_logger(__name__)


class WriteOutcome(str, Enum):
    """How a write call ended."""

    SUCCESS = "success"
    FAILURE = "failure"
    SUPPRESSED = "suppressed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class WriteResult:
    """Result of a single write call."""

    outcome: WriteOutcome
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.outcome is WriteOutcome.SUCCESS


class ResilientWriter:
    """Send line protocol payloads to InfluxDB, backing off when it fails.

    Only FAILURE outcomes feed the backoff state. SUPPRESSED writes never
    reach the network and CANCELLED writes leave the state untouched.
    Operational problems are returned as results, never raised.
    """

    # How often a cancellable send checks its cancel event
    CANCEL_POLL_SECONDS = 0.05

    def __init__(
        self,
        settings: InfluxDbSettings,
        policy: BackoffPolicy,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
        max_workers: int = 4,
    ):
        """Initialise writer.

        Args:
            settings: InfluxDB connection target and credentials.
            policy: Backoff threshold, window and request timeout.
            session: Pre-built HTTP session. One is created when omitted.
            clock: Monotonic clock in seconds, used for backoff windows.
            max_workers: Thread pool size for write_async().

        Raises:
            ValidationError: If settings or policy is missing.
        """
        if settings is None:
            raise ValidationError("InfluxDB settings are required")
        if policy is None:
            raise ValidationError("backoff policy is required")

        self.settings = settings
        self.policy = policy

        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()

        self._state = BackoffState(policy, clock=clock)
        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()
        self._database_ready = not settings.create_database_if_missing

    @property
    def consecutive_failures(self) -> int:
        return self._state.consecutive_failures

    @property
    def is_backing_off(self) -> bool:
        return self._state.is_backing_off

    def write(
        self,
        data: Union[bytes, str],
        cancel: Optional[threading.Event] = None,
    ) -> WriteResult:
        """Send one request body, unless backing off.

        Args:
            data: Line protocol body. str is encoded as UTF-8.
            cancel: Set to abandon the send. A cancelled send does not
                count as a failure.

        Returns:
            WriteResult describing the outcome.
        """
        if cancel is not None and cancel.is_set():
            log.info("influx_write_cancelled", in_flight=False)
            return WriteResult(WriteOutcome.CANCELLED)

        if not self._state.try_acquire():
            log.debug(
                "influx_write_suppressed",
                backoff_remaining_s=round(self._state.remaining(), 1),
            )
            return WriteResult(WriteOutcome.SUPPRESSED)

        if isinstance(data, str):
            data = data.encode("utf-8")

        result = self._attempt(data, cancel)

        if result.outcome is WriteOutcome.SUCCESS:
            self._state.record_success()
        elif result.outcome is WriteOutcome.FAILURE:
            self._state.record_failure()

        return result

    def write_payload(
        self,
        payload: Payload,
        cancel: Optional[threading.Event] = None,
    ) -> WriteResult:
        """Format and send a payload. An empty payload is not sent."""
        if len(payload) == 0:
            return WriteResult(WriteOutcome.SUCCESS)
        return self.write(payload.to_bytes(), cancel=cancel)

    def write_async(
        self,
        data: Union[bytes, str],
        cancel: Optional[threading.Event] = None,
    ) -> "Future[WriteResult]":
        """Run write() on the writer's thread pool.

        Returns:
            Future resolving to the WriteResult.
        """
        return self._get_executor().submit(self.write, data, cancel)

    def close(self) -> None:
        """Wait for pending async writes and release the HTTP session."""
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "ResilientWriter":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers,
                    thread_name_prefix="influxwire",
                )
            return self._executor

    def _attempt(
        self, data: bytes, cancel: Optional[threading.Event]
    ) -> WriteResult:
        """Create the database if needed, then post the body."""
        # Unlocked: concurrent first writes may each send CREATE DATABASE,
        # which InfluxDB treats as a no-op when the database exists.
        if not self._database_ready:
            result = self._run(self._create_database, cancel)
            if not result.success:
                return result
            self._database_ready = True

        return self._run(lambda: self._post_write(data), cancel)

    def _run(
        self,
        send: Callable[[], WriteResult],
        cancel: Optional[threading.Event],
    ) -> WriteResult:
        """Run a send, abandoning it if ``cancel`` is set while in flight.

        An abandoned send keeps running on its daemon thread; its response
        is discarded.
        """
        if cancel is None:
            return send()

        future: "Future[WriteResult]" = Future()

        def runner() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(send())
            except BaseException as e:
                future.set_exception(e)

        threading.Thread(target=runner, daemon=True).start()

        while True:
            try:
                return future.result(timeout=self.CANCEL_POLL_SECONDS)
            except FutureTimeoutError:
                if cancel.is_set():
                    log.info("influx_write_cancelled", in_flight=True)
                    return WriteResult(WriteOutcome.CANCELLED)

    def _post_write(self, data: bytes) -> WriteResult:
        return self._post(
            "influx_write",
            self.settings.write_url,
            params=self.settings.write_params,
            data=data,
        )

    def _create_database(self) -> WriteResult:
        name = self.settings.database.replace('"', '\\"')
        return self._post(
            "influx_create_database",
            self.settings.query_url,
            params={"q": f'CREATE DATABASE "{name}"'},
        )

    def _post(
        self,
        event: str,
        url: str,
        params: dict,
        data: Optional[bytes] = None,
    ) -> WriteResult:
        """POST to InfluxDB and classify the response.

        2xx is success. Any other status, or a transport error, is failure.
        """
        t0 = time.monotonic()
        try:
            response = self.session.post(
                url,
                params=params,
                data=data,
                headers={"Content-Type": "text/plain; charset=utf-8"},
                auth=self.settings.auth,
                timeout=self.policy.timeout_seconds,
            )
        except requests.RequestException as e:
            duration_ms = round((time.monotonic() - t0) * 1000, 1)
            log.error(
                f"{event}_request_error",
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=duration_ms,
                url=url,
                consecutive_failures=self._state.consecutive_failures,
            )
            return WriteResult(WriteOutcome.FAILURE, error=str(e))

        duration_ms = round((time.monotonic() - t0) * 1000, 1)

        if 200 <= response.status_code < 300:
            log.debug(
                f"{event}_success",
                status_code=response.status_code,
                payload_bytes=len(data) if data else 0,
                duration_ms=duration_ms,
            )
            return WriteResult(WriteOutcome.SUCCESS, status_code=response.status_code)

        response_text = response.text[:500] if response.text else ""
        log.error(
            f"{event}_http_error",
            status_code=response.status_code,
            response_text=response_text,
            duration_ms=duration_ms,
            url=url,
            consecutive_failures=self._state.consecutive_failures,
        )
        return WriteResult(
            WriteOutcome.FAILURE,
            status_code=response.status_code,
            error=f"{response.status_code} {response_text}".strip(),
        )
