"""Tests for the Redis-backed verification queue.

Redis is an AsyncMock throughout; the assertions are about which keys the
queue touches for each outcome.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from aid_escrow.domain.verification import VerificationJob
from aid_escrow.infrastructure.job_queue import JobQueueWorker, QueueKeys, VerificationQueue


class RecordingHandler:
    """JobHandler that records every hook call."""

    def __init__(self, result: dict | None = None, error: Exception | None = None) -> None:
        self.result = result or {"score": 0.8}
        self.error = error
        self.calls: list[tuple[str, Any]] = []

    async def process(self, job: VerificationJob, report_progress: Any) -> dict:
        await report_progress(0.5)
        if self.error is not None:
            raise self.error
        return self.result

    def on_active(self, job: VerificationJob) -> None:
        self.calls.append(("active", job.id))

    def on_progress(self, job: VerificationJob, progress: float | dict) -> None:
        self.calls.append(("progress", progress))

    def on_completed(self, job: VerificationJob, result: dict) -> None:
        self.calls.append(("completed", result))

    def on_failed(self, job: VerificationJob | None, error: BaseException) -> None:
        self.calls.append(("failed", job))

    def on_stalled(self, job_id: str) -> None:
        self.calls.append(("stalled", job_id))


def _worker(redis: AsyncMock, handler: Any, **kwargs: Any) -> JobQueueWorker:
    return JobQueueWorker(redis, handler, worker_id="w1", **kwargs)


def _raw(job: VerificationJob) -> str:
    return json.dumps(job.to_dict())


KEYS = QueueKeys("verification")


class TestProducer:
    @pytest.mark.asyncio
    async def test_enqueue_pushes_job(self) -> None:
        redis = AsyncMock()
        job = VerificationJob(claim_id="c-1")

        await VerificationQueue(redis).enqueue(job)

        redis.lpush.assert_awaited_once_with(KEYS.waiting, _raw(job))

    @pytest.mark.asyncio
    async def test_get_result(self) -> None:
        redis = AsyncMock()
        redis.get.return_value = json.dumps({"score": 0.9})
        assert await VerificationQueue(redis).get_result("j1") == {"score": 0.9}
        redis.get.assert_awaited_once_with(KEYS.result("j1"))


class TestHandle:
    @pytest.mark.asyncio
    async def test_success_stores_result_and_acks(self) -> None:
        redis = AsyncMock()
        handler = RecordingHandler(result={"score": 0.75})
        job = VerificationJob(claim_id="c-1")

        await _worker(redis, handler, result_ttl_seconds=60).handle(_raw(job))

        redis.set.assert_awaited_once_with(
            KEYS.result(job.id), json.dumps({"score": 0.75}), ex=60
        )
        redis.lrem.assert_awaited_once_with(KEYS.active("w1"), 1, _raw(job))
        assert [name for name, _ in handler.calls] == ["active", "progress", "completed"]

    @pytest.mark.asyncio
    async def test_failure_schedules_retry_with_backoff(self) -> None:
        redis = AsyncMock()
        handler = RecordingHandler(error=RuntimeError("scorer down"))
        job = VerificationJob(claim_id="c-1")

        await _worker(redis, handler, max_attempts=3, backoff_seconds=2.0).handle(_raw(job))

        redis.zadd.assert_awaited_once()
        key, mapping = redis.zadd.await_args.args
        assert key == KEYS.delayed
        (payload,) = mapping
        assert json.loads(payload)["attempts_made"] == 1
        redis.lpush.assert_not_awaited()
        redis.lrem.assert_awaited_once_with(KEYS.active("w1"), 1, _raw(job))

        failed = [arg for name, arg in handler.calls if name == "failed"]
        assert failed[0].attempts_made == 1

    @pytest.mark.asyncio
    async def test_exhausted_job_is_parked(self) -> None:
        redis = AsyncMock()
        handler = RecordingHandler(error=RuntimeError("still down"))
        job = VerificationJob(claim_id="c-1", attempts_made=2)

        await _worker(redis, handler, max_attempts=3).handle(_raw(job))

        redis.zadd.assert_not_awaited()
        key, payload = redis.lpush.await_args.args
        assert key == KEYS.failed
        assert json.loads(payload)["attempts_made"] == 3

    @pytest.mark.asyncio
    async def test_malformed_job_goes_to_failed_list(self) -> None:
        redis = AsyncMock()
        handler = RecordingHandler()

        await _worker(redis, handler).handle("not-json")

        redis.lpush.assert_awaited_once_with(KEYS.failed, "not-json")
        assert handler.calls == [("failed", None)]

    @pytest.mark.asyncio
    async def test_hook_exception_does_not_change_outcome(self) -> None:
        redis = AsyncMock()
        handler = RecordingHandler(result={"score": 0.6})
        handler.on_active = MagicMock(side_effect=RuntimeError("hook blew up"))
        handler.on_completed = MagicMock(side_effect=RuntimeError("hook blew up"))
        job = VerificationJob(claim_id="c-1")

        await _worker(redis, handler).handle(_raw(job))

        redis.set.assert_awaited_once()
        redis.zadd.assert_not_awaited()
        handler.on_completed.assert_called_once()


class TestMaintenance:
    @pytest.mark.asyncio
    async def test_promote_delayed(self) -> None:
        redis = AsyncMock()
        redis.zrangebyscore.return_value = ["p1", "p2"]
        redis.zrem.side_effect = [1, 0]

        promoted = await _worker(redis, RecordingHandler()).promote_delayed()

        assert promoted == 1
        redis.lpush.assert_awaited_once_with(KEYS.waiting, "p1")

    @pytest.mark.asyncio
    async def test_recover_stalled_requeues_dead_worker_jobs(self) -> None:
        redis = AsyncMock()
        dead_key = KEYS.active("dead")

        async def scan_iter(match: str):  # noqa: ANN202
            for key in (KEYS.active("w1"), dead_key):
                yield key

        redis.scan_iter = MagicMock(side_effect=scan_iter)
        redis.exists.return_value = 0
        stalled = _raw(VerificationJob(id="stalled-job", claim_id="c-9"))
        redis.lmove.side_effect = [stalled, None]
        handler = RecordingHandler()

        recovered = await _worker(redis, handler).recover_stalled()

        assert recovered == 1
        redis.lmove.assert_any_await(dead_key, KEYS.waiting, "RIGHT", "RIGHT")
        assert handler.calls == [("stalled", "stalled-job")]

    @pytest.mark.asyncio
    async def test_live_worker_is_left_alone(self) -> None:
        redis = AsyncMock()

        async def scan_iter(match: str):  # noqa: ANN202
            yield KEYS.active("alive")

        redis.scan_iter = MagicMock(side_effect=scan_iter)
        redis.exists.return_value = 1

        assert await _worker(redis, RecordingHandler()).recover_stalled() == 0
        redis.lmove.assert_not_awaited()

    def test_concurrency_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            JobQueueWorker(AsyncMock(), RecordingHandler(), concurrency=0)


def _scripted_blmove(*outcomes: Any) -> Any:
    """BLMOVE that plays back ``outcomes`` (raising exceptions), then idles."""
    pending = list(outcomes)

    async def blmove(*args: Any) -> str | None:
        if pending:
            outcome = pending.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        await asyncio.sleep(0.01)
        return None

    return blmove


async def _no_keys(match: str):  # noqa: ANN202
    return
    yield


def _run_redis(*outcomes: Any) -> AsyncMock:
    redis = AsyncMock()
    redis.scan_iter = MagicMock(side_effect=_no_keys)
    redis.zrangebyscore.return_value = []
    redis.blmove.side_effect = _scripted_blmove(*outcomes)
    return redis


class CountingHandler(RecordingHandler):
    """Tracks jobs in flight and sets ``stop`` once ``total`` have finished."""

    def __init__(self, stop: asyncio.Event, total: int, hold_seconds: float = 0.0) -> None:
        super().__init__()
        self.stop = stop
        self.total = total
        self.hold_seconds = hold_seconds
        self.in_flight = 0
        self.peak = 0
        self.done = 0

    async def process(self, job: VerificationJob, report_progress: Any) -> dict:
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        await asyncio.sleep(self.hold_seconds)
        self.in_flight -= 1
        self.done += 1
        if self.done >= self.total:
            self.stop.set()
        return self.result


class TestRun:
    @pytest.mark.asyncio
    async def test_consumer_survives_connection_error(self) -> None:
        job = VerificationJob(claim_id="c-1")
        redis = _run_redis(RedisConnectionError("blip"), _raw(job))
        stop = asyncio.Event()
        handler = CountingHandler(stop, total=1)
        worker = _worker(redis, handler, concurrency=1, reconnect_delay_seconds=0.01)

        await asyncio.wait_for(worker.run(stop), timeout=5)

        assert handler.done == 1
        assert redis.blmove.await_count >= 2
        redis.set.assert_any_await(KEYS.result(job.id), json.dumps(handler.result), ex=86400)
        redis.delete.assert_awaited_with(KEYS.heartbeat("w1"))

    @pytest.mark.asyncio
    async def test_maintenance_survives_connection_error(self) -> None:
        redis = _run_redis()
        stop = asyncio.Event()
        heartbeats = 0

        async def heartbeat(*args: Any, **kwargs: Any) -> bool:
            nonlocal heartbeats
            heartbeats += 1
            if heartbeats == 2:
                raise RedisConnectionError("blip")
            if heartbeats >= 4:
                stop.set()
            return True

        redis.set.side_effect = heartbeat
        worker = _worker(
            redis,
            RecordingHandler(),
            concurrency=1,
            poll_timeout_seconds=0.01,
            reconnect_delay_seconds=0.01,
        )

        await asyncio.wait_for(worker.run(stop), timeout=5)

        assert heartbeats >= 4

    @pytest.mark.asyncio
    async def test_shutdown_tolerates_unreachable_redis(self) -> None:
        redis = _run_redis()
        redis.delete.side_effect = RedisConnectionError("gone")
        stop = asyncio.Event()
        stop.set()

        await asyncio.wait_for(_worker(redis, RecordingHandler()).run(stop), timeout=5)

        redis.delete.assert_awaited_once_with(KEYS.heartbeat("w1"))

    @pytest.mark.asyncio
    async def test_in_flight_jobs_bounded_by_concurrency(self) -> None:
        jobs = [_raw(VerificationJob(claim_id=f"c-{i}")) for i in range(6)]
        redis = _run_redis(*jobs)
        stop = asyncio.Event()
        handler = CountingHandler(stop, total=len(jobs), hold_seconds=0.02)

        await asyncio.wait_for(_worker(redis, handler, concurrency=2).run(stop), timeout=5)

        assert handler.done == len(jobs)
        assert handler.peak == 2
