"""
Unit tests for JobRegistry: pending → done / error, lookups, id generation.
"""

import asyncio

from agent_relay.core.jobs import GENERIC_JOB_ERROR, NO_LOOP_ERROR, Job, JobRegistry, JobStatus, new_job_id


async def _wait_finished(registry: JobRegistry, job_id: str, attempts: int = 200) -> Job:
    for _ in range(attempts):
        job = registry.get(job_id)
        if job is not None and job.finished:
            return job
        await asyncio.sleep(0.005)
    return registry.get(job_id)


def test_job_is_pending_until_work_settles() -> None:
    async def scenario():
        registry = JobRegistry()
        gate = asyncio.Event()

        async def work() -> str:
            await gate.wait()
            return "42"

        job_id = registry.submit(work)
        seen = [registry.get(job_id).status]
        await asyncio.sleep(0.01)
        seen.append(registry.get(job_id).status)
        gate.set()
        job = await _wait_finished(registry, job_id)
        return job_id, seen, job

    job_id, seen, job = asyncio.run(scenario())
    assert seen == [JobStatus.PENDING, JobStatus.PENDING]
    assert job == Job(id=job_id, status=JobStatus.DONE, result="42")
    assert job.to_dict() == {"id": job_id, "status": "done", "result": "42", "error": None}


def test_failed_work_records_error_message() -> None:
    async def scenario():
        registry = JobRegistry()

        async def work() -> str:
            await asyncio.sleep(0)
            raise ValueError("upstream exploded")

        job_id = registry.submit(work)
        return await _wait_finished(registry, job_id)

    job = asyncio.run(scenario())
    assert job.status is JobStatus.ERROR
    assert job.error == "upstream exploded"
    assert job.result is None


def test_error_without_message_uses_generic_text() -> None:
    async def scenario():
        registry = JobRegistry()

        async def work() -> str:
            raise RuntimeError()

        job_id = registry.submit(work)
        return await _wait_finished(registry, job_id)

    job = asyncio.run(scenario())
    assert job.status is JobStatus.ERROR
    assert job.error == GENERIC_JOB_ERROR


def test_work_that_fails_before_awaiting_is_captured() -> None:
    def work():
        raise KeyError("sync failure")

    async def scenario():
        registry = JobRegistry()
        job_id = registry.submit(work)
        return await _wait_finished(registry, job_id)

    job = asyncio.run(scenario())
    assert job.status is JobStatus.ERROR
    assert "sync failure" in job.error


def test_terminal_state_is_written_once() -> None:
    async def scenario():
        registry = JobRegistry()

        async def work() -> str:
            return "first"

        job_id = registry.submit(work)
        await _wait_finished(registry, job_id)
        registry._settle(job_id, status=JobStatus.ERROR, error="late")
        return registry.get(job_id), registry.get(job_id)

    first_read, second_read = asyncio.run(scenario())
    assert first_read.status is JobStatus.DONE
    assert first_read.result == "first"
    assert first_read == second_read


def test_unknown_job_returns_none() -> None:
    registry = JobRegistry()
    assert registry.get("does-not-exist") is None
    assert registry.get("") is None
    assert registry.get(None) is None  # type: ignore[arg-type]


def test_ids_are_unique_even_if_factory_repeats() -> None:
    ids = iter(["aaa", "aaa", "bbb"])

    async def scenario():
        registry = JobRegistry(id_factory=lambda: next(ids))

        async def work() -> str:
            return "ok"

        first = registry.submit(work)
        second = registry.submit(work)
        await _wait_finished(registry, second)
        return first, second, len(registry)

    first, second, total = asyncio.run(scenario())
    assert (first, second, total) == ("aaa", "bbb", 2)


def test_counts_by_status() -> None:
    async def scenario():
        registry = JobRegistry()
        gate = asyncio.Event()

        async def ok() -> str:
            return "fine"

        async def bad() -> str:
            raise ValueError("nope")

        async def slow() -> str:
            await gate.wait()
            return "late"

        done_id = registry.submit(ok)
        error_id = registry.submit(bad)
        registry.submit(slow)
        await _wait_finished(registry, done_id)
        await _wait_finished(registry, error_id)
        counts = registry.counts()
        gate.set()
        await asyncio.sleep(0.01)
        return counts

    assert asyncio.run(scenario()) == {"pending": 1, "done": 1, "error": 1}


def test_new_job_id_is_base36() -> None:
    job_id = new_job_id()
    assert len(job_id) == 16
    assert set(job_id) <= set("0123456789abcdefghijklmnopqrstuvwxyz")
    assert new_job_id() != job_id


def test_submit_without_running_loop_records_error() -> None:
    called = []

    async def work() -> str:
        called.append(True)
        return "never"

    registry = JobRegistry()
    job_id = registry.submit(work)
    job = registry.get(job_id)
    assert job.status is JobStatus.ERROR
    assert job.error == NO_LOOP_ERROR
    assert called == []
