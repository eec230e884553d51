"""
In-memory job registry for fire-and-forget agent runs. Keyed by job_id; no eviction.

One registry per app (app.state.jobs). All mutation happens on the event loop thread,
between awaits, so no lock is needed.
"""

import asyncio
import logging
import secrets
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
_ID_LENGTH = 16

GENERIC_JOB_ERROR = "Agent error"
NO_LOOP_ERROR = "No running event loop to execute the job"


class JobStatus(str, Enum):
    PENDING = "pending"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class Job:
    """Immutable snapshot of a job. A settled job is replaced once and never again."""

    id: str
    status: JobStatus
    result: Any = None
    error: str | None = None

    @property
    def finished(self) -> bool:
        return self.status is not JobStatus.PENDING

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


def new_job_id(length: int = _ID_LENGTH) -> str:
    """Random base-36 token."""
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


class JobRegistry:
    """Accepts async work, runs it in the background, records done/error."""

    def __init__(self, id_factory: Callable[[], str] = new_job_id) -> None:
        self._jobs: dict[str, Job] = {}
        # Strong refs so running tasks are not garbage-collected
        self._tasks: set[asyncio.Task] = set()
        self._id_factory = id_factory

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._jobs

    def _new_id(self) -> str:
        job_id = self._id_factory()
        while job_id in self._jobs:
            job_id = self._id_factory()
        return job_id

    def submit(self, work: Callable[[], Awaitable[Any]]) -> str:
        """
        Register a pending job and start `work()` on the running loop. Returns the id
        immediately. Called from inside a coroutine (e.g. an async route); without a
        running loop the work is not started and the job is recorded as an error.
        """
        job_id = self._new_id()
        self._jobs[job_id] = Job(id=job_id, status=JobStatus.PENDING)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("[jobs:submit] no running event loop for job_id=%s", job_id)
            self._settle(job_id, status=JobStatus.ERROR, error=NO_LOOP_ERROR)
            return job_id
        task = loop.create_task(self._run(job_id, work))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info("[jobs:submit] job_id=%s total_jobs=%d", job_id, len(self._jobs))
        return job_id

    async def _run(self, job_id: str, work: Callable[[], Awaitable[Any]]) -> None:
        try:
            result = await work()
        except Exception as e:
            logger.warning("[jobs:run] job_id=%s failed: %s", job_id, e)
            self._settle(job_id, status=JobStatus.ERROR, error=str(e) or GENERIC_JOB_ERROR)
        else:
            self._settle(job_id, status=JobStatus.DONE, result=result)

    def _settle(self, job_id: str, **changes: Any) -> None:
        current = self._jobs.get(job_id)
        if current is None or current.finished:
            logger.warning("[jobs:settle] ignoring second settle for job_id=%s", job_id)
            return
        self._jobs[job_id] = replace(current, **changes)
        logger.info("[jobs:settle] job_id=%s status=%s", job_id, changes["status"].value)

    def get(self, job_id: str) -> Job | None:
        """Current record, or None if the id was never submitted."""
        if not job_id or not isinstance(job_id, str):
            return None
        return self._jobs.get(job_id)

    def counts(self) -> dict[str, int]:
        out = {s.value: 0 for s in JobStatus}
        for job in self._jobs.values():
            out[job.status.value] += 1
        return out
