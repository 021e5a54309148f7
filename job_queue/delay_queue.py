"""
Delayable Job Queue — strictly serial, optionally throttled send execution.

One queue per conversation context. Jobs run one at a time in enqueue order:

  enqueue ──▶ pending (deque) ──▶ before-hook(job) ──▶ instance.method(*args)
                                                           │
                                         on_success(result) | on_error(exc)

A failing job is reported to its own error handler and the queue moves on.
Nothing is retried or persisted.
"""
from __future__ import annotations

import asyncio
import inspect
import uuid
import structlog
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from models.schemas import DeliveryMode

logger = structlog.get_logger()

BeforeHook = Callable[["SendJob"], Union[Awaitable[None], None]]


# ──────────────────────────────────────────────────────────────
#  Job Model
# ──────────────────────────────────────────────────────────────

@dataclass
class SendJob:
    """One pending outbound operation."""
    instance: Any
    method: str
    on_success: Callable[[Any], None]
    on_error: Callable[[BaseException], None]
    args: tuple = ()
    delay: float = 0                          # milliseconds, consumed by the before-hook
    show_indicators: bool = True
    mode: Optional[DeliveryMode] = None
    job_id: str = ""

    def __post_init__(self):
        if self.delay < 0:
            raise ValueError(f"delay must be non-negative, got {self.delay}")
        self.args = tuple(self.args)
        if not self.job_id:
            self.job_id = f"job_{uuid.uuid4().hex[:12]}"

    def log_context(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "method": self.method,
            "mode": self.mode.value if self.mode else None,
            "delay": self.delay,
        }


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _draining_cancelled() -> bool:
    """True when the current task was asked to cancel, not just handed a CancelledError."""
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


# ──────────────────────────────────────────────────────────────
#  Queue
# ──────────────────────────────────────────────────────────────

class DelayableJobQueue:
    """
    Runs enqueued jobs one at a time, in submission order.

    Usage:
        queue = DelayableJobQueue()
        queue.before_each(lambda job: asyncio.sleep(job.delay / 1000))
        queue.enqueue(SendJob(instance=client, method="push_text", ...))
        await queue.join()
    """

    def __init__(self):
        self._pending: deque[SendJob] = deque()
        self._before_each: Optional[BeforeHook] = None
        self._running: Optional[SendJob] = None
        self._worker: Optional[asyncio.Task] = None
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def before_each(self, hook: BeforeHook) -> None:
        """Register the hook awaited before every job. Replaces any previous hook."""
        self._before_each = hook

    def enqueue(self, job: SendJob) -> None:
        """
        Append a job to the tail. Starts draining on the running loop if the
        queue is idle; never blocks. The outcome is reported via the job's
        handlers.
        """
        self._pending.append(job)
        self._idle.clear()
        logger.debug("job_enqueued", pending=len(self._pending), **job.log_context())
        if not self.is_running:
            self._worker = asyncio.get_running_loop().create_task(self._drain())

    async def join(self) -> None:
        """Wait until every enqueued job has completed."""
        await self._idle.wait()

    async def _drain(self) -> None:
        try:
            while self._pending:
                job = self._pending.popleft()
                self._running = job
                await self._run(job)
                self._running = None
        except asyncio.CancelledError:
            self._abandon_pending()
            raise
        finally:
            self._running = None
            if not self._pending:
                self._idle.set()

    async def _run(self, job: SendJob) -> None:
        logger.debug("job_started", **job.log_context())
        try:
            if self._before_each is not None:
                await _maybe_await(self._before_each(job))
            result = await _maybe_await(getattr(job.instance, job.method)(*job.args))
        except asyncio.CancelledError as e:
            logger.warning("job_cancelled", **job.log_context())
            self._complete(job, job.on_error, e)
            if _draining_cancelled():
                raise
            return
        except Exception as e:
            logger.warning("job_failed", error=str(e), **job.log_context())
            self._complete(job, job.on_error, e)
            return

        logger.debug("job_succeeded", **job.log_context())
        self._complete(job, job.on_success, result)

    def _abandon_pending(self) -> None:
        """Fail every waiting job when the drain task itself is cancelled."""
        while self._pending:
            job = self._pending.popleft()
            self._complete(job, job.on_error, asyncio.CancelledError("job queue cancelled"))

    def _complete(self, job: SendJob, handler: Callable[[Any], None], value: Any) -> None:
        try:
            handler(value)
        except Exception as e:
            logger.error("job_handler_error", error=str(e), **job.log_context())
