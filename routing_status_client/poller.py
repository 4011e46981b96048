import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from loguru import logger
from routing_status_client.models import (
    PollOutcome,
    PollStatus,
    StatusClass,
    StatusPollingConfig,
    StatusResponse,
)
from routing_status_client.status import classify_status, get_status_message

TIMEOUT_ERROR = "Transaction took too long to complete"
TRANSACTION_FAILED_ERROR = "Transaction failed"
POLLING_ERROR = "An error occurred while polling"
CANCELLED_ERROR = "Polling was cancelled"

FetchStatus = Callable[[str], Awaitable[StatusResponse]]


@dataclass
class _PollSession:
    """Mutable state of a single poll() call, never shared between calls"""

    request_id: str
    start_time: float
    is_polling: bool = True
    poll_status: PollStatus = PollStatus.pending
    error: Optional[str] = None
    has_timed_out: bool = False
    was_cancelled: bool = False
    polling_message: Optional[str] = None
    last_status: Optional[str] = None
    poll_count: int = 0
    fetch_failures: int = 0

    def stop(self, poll_status: PollStatus, error: Optional[str] = None) -> None:
        self.poll_status = poll_status
        self.error = error
        self.is_polling = False


class StatusPoller:
    def __init__(
        self,
        fetch_status: FetchStatus,
        config: Optional[StatusPollingConfig] = None,
        on_status_change: Optional[Callable[[StatusResponse], Awaitable[Any]]] = None,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        self.fetch_status = fetch_status
        self.config = config or StatusPollingConfig()
        self.on_status_change = on_status_change
        self.logger = logger
        self._clock = clock or time.monotonic
        self._sleep = sleep or asyncio.sleep

    def _calculate_retry_delay(self, retry: int) -> float:
        """Calculates the backoff before retrying a failed fetch, retry counts from 1"""
        return min(
            self.config.retry_initial_delay
            * (self.config.retry_backoff_factor ** (retry - 1)),
            self.config.retry_max_delay,
        )

    async def _handle_status_change(
        self, status_response: StatusResponse, last_status: Optional[str]
    ) -> None:
        """Invoke the status change callback if the status has changed"""
        if last_status != status_response.status and self.on_status_change is not None:
            self.logger.debug(f"Request status changed to {status_response.status}")
            await self.on_status_change(status_response)

    async def _wait(self, delay: float, cancel_event: Optional[asyncio.Event]) -> None:
        """Sleeps for delay, returning early if cancel_event fires"""
        if cancel_event is None:
            await self._sleep(delay)
            return

        sleeper = asyncio.ensure_future(self._sleep(delay))
        canceller = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait(
                {sleeper, canceller}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            pending = [task for task in (sleeper, canceller) if not task.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

    def _outcome(self, session: _PollSession) -> PollOutcome:
        return PollOutcome(
            request_id=session.request_id,
            poll_status=session.poll_status,
            error=session.error,
            has_timed_out=session.has_timed_out,
            was_cancelled=session.was_cancelled,
            polling_message=session.polling_message,
            last_status=session.last_status,
            poll_count=session.poll_count,
            elapsed_time=self._clock() - session.start_time,
        )

    async def poll(
        self,
        request_id: str,
        poll_interval: Optional[float] = None,
        max_polling_duration: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> PollOutcome:
        """Poll the status of a routing request until it settles.

        The loop ends on a terminal status, when ``max_polling_duration``
        seconds have passed, when ``cancel_event`` is set, or once a failing
        fetch has used up ``max_fetch_retries``. Each of these is reported in
        the returned ``PollOutcome`` rather than raised.
        """
        if poll_interval is None:
            poll_interval = self.config.poll_interval
        if max_polling_duration is None:
            max_polling_duration = self.config.max_polling_duration
        if poll_interval <= 0 or max_polling_duration <= 0:
            raise ValueError("poll_interval and max_polling_duration must be positive")

        session = _PollSession(request_id=request_id, start_time=self._clock())
        self.logger.info(
            f"Polling request {request_id} every {poll_interval}s "
            f"for up to {max_polling_duration}s"
        )

        while session.is_polling:
            if cancel_event is not None and cancel_event.is_set():
                self.logger.info(f"Polling of request {request_id} was cancelled")
                session.was_cancelled = True
                session.stop(PollStatus.error, CANCELLED_ERROR)
                break

            # Checked before fetching so a late iteration never issues another request
            if self._clock() - session.start_time >= max_polling_duration:
                self.logger.warning(
                    f"Request {request_id} did not settle within {max_polling_duration}s"
                )
                session.has_timed_out = True
                session.stop(PollStatus.error, TIMEOUT_ERROR)
                break

            session.poll_count += 1
            try:
                status_response = await self.fetch_status(request_id)
            except Exception as polling_error:
                session.fetch_failures += 1
                if session.fetch_failures > self.config.max_fetch_retries:
                    self.logger.error(
                        f"Error polling request status for {request_id}: {polling_error}"
                    )
                    session.stop(PollStatus.error, POLLING_ERROR)
                    break

                # A retry never waits past the polling deadline
                remaining = max_polling_duration - (self._clock() - session.start_time)
                delay = min(
                    self._calculate_retry_delay(session.fetch_failures),
                    max(0.0, remaining),
                )
                self.logger.warning(
                    f"Status fetch failed (retry {session.fetch_failures}/"
                    f"{self.config.max_fetch_retries}), retrying in {delay:.2f}s: "
                    f"{polling_error}"
                )
                await self._wait(delay, cancel_event)
                continue

            session.fetch_failures = 0
            status = status_response.status
            session.polling_message = get_status_message(status)
            self.logger.info(f"Polling message: {session.polling_message}")

            await self._handle_status_change(status_response, session.last_status)
            session.last_status = status

            status_class = classify_status(status)
            if status_class == StatusClass.terminal_success:
                session.stop(PollStatus.success)
            elif status_class == StatusClass.terminal_failure:
                session.stop(PollStatus.error, TRANSACTION_FAILED_ERROR)
            else:
                self.logger.debug(
                    f"Request {request_id} is {status}, "
                    f"waiting {poll_interval:.2f}s before next attempt"
                )
                await self._wait(poll_interval, cancel_event)

        outcome = self._outcome(session)
        self.logger.info(
            f"Polling of request {request_id} finished with {outcome.poll_status.value} "
            f"after {outcome.poll_count} fetch(es)"
        )
        return outcome


async def poll_transaction_status(
    fetch_status: FetchStatus,
    request_id: str,
    poll_interval: float = 5.0,
    max_polling_duration: float = 480.0,
    cancel_event: Optional[asyncio.Event] = None,
) -> PollOutcome:
    """One-shot helper that polls with a default StatusPoller"""
    poller = StatusPoller(fetch_status)
    return await poller.poll(
        request_id,
        poll_interval=poll_interval,
        max_polling_duration=max_polling_duration,
        cancel_event=cancel_event,
    )
