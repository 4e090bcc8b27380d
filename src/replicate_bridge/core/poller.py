"""Bounded poll loop that drives a prediction to a terminal state.

State machine
-------------
::

    CREATED --fetch: non-terminal--> POLLING --fetch: non-terminal--> POLLING
       |                                |
       |                                +--fetch: succeeded--------> SUCCEEDED
       |                                +--fetch: failed/canceled--> FAILED
       |                                +--budget exhausted--------> TIMED_OUT
       +--(same transitions from the first fetch)

A :class:`Poller` is request-scoped: create one per prediction, call
:meth:`Poller.wait` once, then discard it.  ``state`` and ``attempts`` stay
readable afterwards for logging and tests.

Timing is a fixed interval, not exponential backoff.  The sleep function is
injectable so tests can run a full 60-attempt budget instantly.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from replicate_bridge.core.errors import RemoteJobFailed, RemoteJobTimeout
from replicate_bridge.core.jobs import Job, JobStatus
from replicate_bridge.core.remote_client import ReplicateClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 60
DEFAULT_INTERVAL = 2.0

SleepFunc = Callable[[float], Awaitable[None]]


class PollState(Enum):
    CREATED = "created"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class Poller:
    """Poll one prediction until it succeeds, fails, or runs out of attempts.

    Attributes:
        state: Current :class:`PollState`.
        attempts: Number of fetch calls made so far.
    """

    def __init__(
        self,
        client: ReplicateClient,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval: float = DEFAULT_INTERVAL,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._client = client
        self._max_attempts = max_attempts
        self._interval = interval
        self._sleep = sleep
        self.state = PollState.CREATED
        self.attempts = 0

    async def wait(self, job_id: str, cancel_event: asyncio.Event | None = None) -> Job:
        """Poll *job_id* until it reaches a terminal state.

        Args:
            job_id: Prediction to poll.
            cancel_event: Optional event.  When it is set before an attempt,
                the prediction is cancelled remotely and the wait ends.

        Returns:
            The job in ``succeeded`` status.

        Raises:
            RemoteJobFailed: The prediction failed, was canceled remotely, or
                was cancelled through *cancel_event*.
            RemoteJobTimeout: ``max_attempts`` fetches returned non-terminal
                statuses.
            RemoteServiceError: A fetch failed; propagated unchanged.
        """
        while self.attempts < self._max_attempts:
            if cancel_event is not None and cancel_event.is_set():
                await self._cancel(job_id)

            self.attempts += 1
            try:
                job = await self._client.fetch_job(job_id)
            except Exception:
                self.state = PollState.FAILED
                raise

            logger.debug(
                "Prediction %s attempt %d/%d: %s",
                job_id,
                self.attempts,
                self._max_attempts,
                job.status,
            )

            if job.status == JobStatus.SUCCEEDED:
                self.state = PollState.SUCCEEDED
                return job

            if job.status == JobStatus.FAILED:
                self.state = PollState.FAILED
                raise RemoteJobFailed(job.error or "unknown error")

            if job.status == JobStatus.CANCELED:
                self.state = PollState.FAILED
                raise RemoteJobFailed.cancellation()

            self.state = PollState.POLLING
            if self.attempts < self._max_attempts:
                await self._sleep(self._interval)

        self.state = PollState.TIMED_OUT
        logger.warning("Prediction %s timed out after %d attempts", job_id, self.attempts)
        raise RemoteJobTimeout(job_id, self.attempts)

    async def _cancel(self, job_id: str) -> None:
        self.state = PollState.FAILED
        logger.info("Cancelling prediction %s after %d attempts", job_id, self.attempts)
        await self._client.cancel_job(job_id)
        raise RemoteJobFailed.cancellation()
