"""Redis-backed verification job queue with a bounded consumer pool.

Keys (``{q}`` is ``queue:<name>``):
    {q}:waiting              LIST  producers LPUSH, consumers take from the right
    {q}:active:<worker_id>   LIST  jobs a worker has taken but not finished
    {q}:worker:<worker_id>   STR   heartbeat, expires if the worker dies
    {q}:delayed              ZSET  retries, scored by the epoch second they are due
    {q}:failed               LIST  jobs that exhausted their attempts
    {q}:result:<job_id>      STR   JSON return value of a completed job

Delivery is at-least-once: a job is moved atomically (BLMOVE) from waiting
into the worker's active list and only removed from there after it
completed or was rescheduled. Active lists whose heartbeat has expired are
re-queued on startup and reported as stalled.

A lost Redis connection pauses the affected loop with exponential backoff
(capped at ``max_reconnect_delay_seconds``); it never stops the pool. A job
interrupted that way stays in the active list and is re-queued as stalled.

Lifecycle hooks are observational only: an exception raised by a hook is
logged and has no effect on the job.
"""

from __future__ import annotations

import asyncio
import json
import time
import uuid
from typing import TYPE_CHECKING, Any, Protocol

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from aid_escrow.domain.verification import VerificationJob
from aid_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    import redis.asyncio as aioredis

    ProgressReporter = Callable[[float | dict], Awaitable[None]]

logger = get_logger(__name__)

HEARTBEAT_TTL_SECONDS = 30

# Errors a worker rides out (logged, then retried after a pause) instead of exiting.
TRANSIENT_REDIS_ERRORS = (RedisConnectionError, RedisTimeoutError)


class JobHandler(Protocol):
    """What the worker pool needs from a job processor."""

    async def process(
        self, job: VerificationJob, report_progress: ProgressReporter
    ) -> dict[str, Any]: ...

    def on_active(self, job: VerificationJob) -> None: ...

    def on_progress(self, job: VerificationJob, progress: float | dict) -> None: ...

    def on_completed(self, job: VerificationJob, result: dict[str, Any]) -> None: ...

    def on_failed(self, job: VerificationJob | None, error: BaseException) -> None: ...

    def on_stalled(self, job_id: str) -> None: ...


class QueueKeys:
    """Key layout for one named queue."""

    def __init__(self, name: str) -> None:
        self.prefix = f"queue:{name}"
        self.waiting = f"{self.prefix}:waiting"
        self.delayed = f"{self.prefix}:delayed"
        self.failed = f"{self.prefix}:failed"

    def active(self, worker_id: str) -> str:
        return f"{self.prefix}:active:{worker_id}"

    def heartbeat(self, worker_id: str) -> str:
        return f"{self.prefix}:worker:{worker_id}"

    def result(self, job_id: str) -> str:
        return f"{self.prefix}:result:{job_id}"


class VerificationQueue:
    """Producer side of the queue."""

    def __init__(self, redis: aioredis.Redis, name: str = "verification") -> None:
        self._redis = redis
        self.name = name
        self.keys = QueueKeys(name)

    async def enqueue(self, job: VerificationJob) -> VerificationJob:
        await self._redis.lpush(self.keys.waiting, json.dumps(job.to_dict()))
        logger.info("queue.job_enqueued", queue=self.name, job_id=job.id, claim_id=job.claim_id)
        return job

    async def get_result(self, job_id: str) -> dict[str, Any] | None:
        raw = await self._redis.get(self.keys.result(job_id))
        return json.loads(raw) if raw else None


class JobQueueWorker:
    """Consumer pool: ``concurrency`` jobs in flight at most."""

    def __init__(
        self,
        redis: aioredis.Redis,
        handler: JobHandler,
        name: str = "verification",
        concurrency: int = 5,
        max_attempts: int = 3,
        backoff_seconds: float = 2.0,
        poll_timeout_seconds: int = 1,
        result_ttl_seconds: int = 86400,
        worker_id: str | None = None,
        reconnect_delay_seconds: float = 1.0,
        max_reconnect_delay_seconds: float = 30.0,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._redis = redis
        self._handler = handler
        self.name = name
        self.keys = QueueKeys(name)
        self.concurrency = concurrency
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.poll_timeout_seconds = poll_timeout_seconds
        self.result_ttl_seconds = result_ttl_seconds
        self.reconnect_delay_seconds = reconnect_delay_seconds
        self.max_reconnect_delay_seconds = max_reconnect_delay_seconds
        self.worker_id = worker_id or uuid.uuid4().hex[:12]
        self._active_key = self.keys.active(self.worker_id)

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    async def run(self, stop_event: asyncio.Event) -> None:
        """Consume until ``stop_event`` is set."""
        await self._heartbeat()
        await self.recover_stalled()

        tasks = [
            asyncio.create_task(self._consume(stop_event), name=f"{self.name}-consumer-{i}")
            for i in range(self.concurrency)
        ]
        tasks.append(asyncio.create_task(self._maintenance(stop_event)))
        logger.info(
            "queue.worker_started",
            queue=self.name,
            worker_id=self.worker_id,
            concurrency=self.concurrency,
        )
        try:
            await asyncio.gather(*tasks)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            try:
                await self._redis.delete(self.keys.heartbeat(self.worker_id))
            except TRANSIENT_REDIS_ERRORS as exc:
                # The key expires on its own after HEARTBEAT_TTL_SECONDS.
                logger.warning("queue.heartbeat_not_cleared", queue=self.name, error=str(exc))
            logger.info("queue.worker_stopped", queue=self.name, worker_id=self.worker_id)

    async def _consume(self, stop_event: asyncio.Event) -> None:
        failures = 0
        while not stop_event.is_set():
            try:
                raw = await self._redis.blmove(
                    self.keys.waiting,
                    self._active_key,
                    self.poll_timeout_seconds,
                    "RIGHT",
                    "LEFT",
                )
                if raw is not None:
                    await self.handle(raw)
            except TRANSIENT_REDIS_ERRORS as exc:
                failures += 1
                await self._pause(stop_event, failures, exc, "consumer")
                continue
            failures = 0

    async def _maintenance(self, stop_event: asyncio.Event) -> None:
        failures = 0
        while not stop_event.is_set():
            try:
                await self._heartbeat()
                await self.promote_delayed()
            except TRANSIENT_REDIS_ERRORS as exc:
                failures += 1
                await self._pause(stop_event, failures, exc, "maintenance")
                continue
            failures = 0
            await self._wait(stop_event, self.poll_timeout_seconds)

    async def _pause(
        self, stop_event: asyncio.Event, failures: int, exc: Exception, loop: str
    ) -> None:
        delay = min(
            self.reconnect_delay_seconds * (2 ** (failures - 1)),
            self.max_reconnect_delay_seconds,
        )
        logger.warning(
            "queue.redis_unavailable",
            queue=self.name,
            worker_id=self.worker_id,
            loop=loop,
            failures=failures,
            retry_in_seconds=delay,
            error=str(exc),
        )
        await self._wait(stop_event, delay)

    @staticmethod
    async def _wait(stop_event: asyncio.Event, timeout: float) -> None:
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=timeout)
        except TimeoutError:
            pass

    async def _heartbeat(self) -> None:
        await self._redis.set(
            self.keys.heartbeat(self.worker_id), str(time.time()), ex=HEARTBEAT_TTL_SECONDS
        )

    # ------------------------------------------------------------------
    # Job handling
    # ------------------------------------------------------------------

    async def handle(self, raw: str) -> None:
        """Process one raw job already sitting in this worker's active list."""
        try:
            job = VerificationJob.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as exc:
            logger.error("queue.job_malformed", queue=self.name, raw=raw[:200])
            await self._redis.lrem(self._active_key, 1, raw)
            await self._redis.lpush(self.keys.failed, raw)
            self._emit("on_failed", None, exc)
            return

        self._emit("on_active", job)

        async def report_progress(progress: float | dict) -> None:
            self._emit("on_progress", job, progress)

        try:
            result = await self._handler.process(job, report_progress)
        except Exception as exc:
            await self._record_failure(job, raw, exc)
            return

        await self._redis.set(
            self.keys.result(job.id), json.dumps(result), ex=self.result_ttl_seconds
        )
        await self._redis.lrem(self._active_key, 1, raw)
        self._emit("on_completed", job, result)

    async def _record_failure(self, job: VerificationJob, raw: str, exc: Exception) -> None:
        attempts = job.attempts_made + 1
        retried = VerificationJob(
            id=job.id,
            claim_id=job.claim_id,
            enqueued_at=job.enqueued_at,
            attempts_made=attempts,
        )
        payload = json.dumps(retried.to_dict())

        if attempts < self.max_attempts:
            delay = self.backoff_seconds * (2 ** (attempts - 1))
            await self._redis.zadd(self.keys.delayed, {payload: time.time() + delay})
            logger.warning(
                "queue.job_retry_scheduled",
                queue=self.name,
                job_id=job.id,
                attempt=attempts,
                delay_seconds=delay,
            )
        else:
            await self._redis.lpush(self.keys.failed, payload)
            logger.error(
                "queue.job_exhausted",
                queue=self.name,
                job_id=job.id,
                attempts=attempts,
            )
        await self._redis.lrem(self._active_key, 1, raw)
        self._emit("on_failed", retried, exc)

    async def promote_delayed(self) -> int:
        """Move due retries back onto the waiting list."""
        due = await self._redis.zrangebyscore(self.keys.delayed, "-inf", time.time())
        promoted = 0
        for payload in due:
            # Only the worker whose ZREM succeeds re-queues the job.
            if await self._redis.zrem(self.keys.delayed, payload):
                await self._redis.lpush(self.keys.waiting, payload)
                promoted += 1
        return promoted

    async def recover_stalled(self) -> int:
        """Re-queue jobs held by workers whose heartbeat has expired."""
        recovered = 0
        marker = f"{self.keys.prefix}:active:"
        async for key in self._redis.scan_iter(match=f"{marker}*"):
            owner = key[len(marker):]
            if owner == self.worker_id:
                continue
            if await self._redis.exists(self.keys.heartbeat(owner)):
                continue
            while True:
                # Re-queued on the right so stalled jobs are picked up next.
                raw = await self._redis.lmove(key, self.keys.waiting, "RIGHT", "RIGHT")
                if raw is None:
                    break
                recovered += 1
                self._emit("on_stalled", _job_id(raw))
        return recovered

    def _emit(self, hook: str, *args: Any) -> None:
        try:
            getattr(self._handler, hook)(*args)
        except Exception:
            logger.exception("queue.hook_failed", queue=self.name, hook=hook)


def _job_id(raw: str) -> str:
    try:
        return str(json.loads(raw)["id"])
    except (ValueError, KeyError, TypeError):
        return "unknown"
