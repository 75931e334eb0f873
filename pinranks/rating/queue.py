"""Per-user FIFO serialization of rating mutations.

Each active user gets one worker task fed by an ``asyncio.Queue``. The
worker runs that user's tasks strictly one at a time in submission order
and exits once the backlog is empty; the next submission starts a fresh
worker. Different users never share a lock.

Queued work lives only in memory. A crash drops tasks that have not started
running, so a rating mutation is delivered at most once even when the vote
itself was accepted.
"""

import asyncio
import itertools
from collections.abc import Awaitable, Callable
from typing import Any

from pinranks.events import EventHandler, NullEventHandler, VoteStatus
from pinranks.logging import get_logger, vote_context

log = get_logger(__name__)

Task = Callable[[], Awaitable[Any]]


class _Job:
    __slots__ = ("task_id", "task", "future")

    def __init__(self, task_id: int, task: Task, future: asyncio.Future):
        self.task_id = task_id
        self.task = task
        self.future = future


class VoteQueue:
    """Actor-per-user queue guaranteeing ordered, non-overlapping execution."""

    def __init__(self, event_handler: EventHandler | None = None):
        self.event_handler = event_handler or NullEventHandler()
        self._queues: dict[str, asyncio.Queue[_Job]] = {}
        self._workers: dict[str, asyncio.Task] = {}
        self._ids = itertools.count(1)

    def pending(self, user_id: str) -> int:
        """Number of jobs waiting (not yet running) for a user."""
        queue = self._queues.get(user_id)
        return queue.qsize() if queue else 0

    def active_users(self) -> set[str]:
        return set(self._workers)

    def submit(self, user_id: str, task: Task) -> tuple[int, asyncio.Future]:
        """Queue ``task`` for ``user_id`` and return its id and result future."""
        loop = asyncio.get_running_loop()
        task_id = next(self._ids)
        self.event_handler.on_vote_status(user_id, task_id, VoteStatus.SUBMITTED)

        job = _Job(task_id, task, loop.create_future())
        queue = self._queues.setdefault(user_id, asyncio.Queue())
        queue.put_nowait(job)
        self.event_handler.on_vote_status(user_id, task_id, VoteStatus.QUEUED)
        log.info("vote_queued", user_id=user_id, task_id=task_id, queue_length=queue.qsize())

        if user_id not in self._workers:
            self._workers[user_id] = loop.create_task(self._drain(user_id, queue))
        return task_id, job.future

    async def enqueue(self, user_id: str, task: Task) -> Any:
        """Run ``task`` after every earlier task for the same user.

        Returns the task's result or raises its exception; either way later
        tasks for the user still run.
        """
        _, future = self.submit(user_id, task)
        return await future

    def _fail(self, user_id: str, job: _Job, exc: BaseException) -> None:
        log.error(
            "vote_failed",
            user_id=user_id,
            task_id=job.task_id,
            error=str(exc) or type(exc).__name__,
            error_type=type(exc).__name__,
        )
        self.event_handler.on_vote_status(user_id, job.task_id, VoteStatus.FAILED, error=exc)
        if job.future.done():
            return
        if isinstance(exc, asyncio.CancelledError):
            job.future.cancel()
        else:
            job.future.set_exception(exc)

    async def _drain(self, user_id: str, queue: asyncio.Queue[_Job]) -> None:
        log.debug("vote_worker_started", user_id=user_id)
        try:
            while not queue.empty():
                job = queue.get_nowait()
                self.event_handler.on_vote_status(user_id, job.task_id, VoteStatus.RUNNING)
                try:
                    with vote_context(user_id, job.task_id):
                        result = await job.task()
                except asyncio.CancelledError as exc:
                    self._fail(user_id, job, exc)
                    # A task cancelling itself is just a failed vote; the
                    # worker being cancelled stops the whole backlog.
                    if asyncio.current_task().cancelling():
                        raise
                except Exception as exc:
                    self._fail(user_id, job, exc)
                except BaseException as exc:
                    self._fail(user_id, job, exc)
                    raise
                else:
                    log.info("vote_completed", user_id=user_id, task_id=job.task_id)
                    self.event_handler.on_vote_status(user_id, job.task_id, VoteStatus.COMPLETED)
                    if not job.future.done():
                        job.future.set_result(result)
                finally:
                    queue.task_done()
        finally:
            # Jobs left behind by a stopped worker would otherwise never settle
            while not queue.empty():
                job = queue.get_nowait()
                queue.task_done()
                self._fail(user_id, job, asyncio.CancelledError("vote worker stopped"))
            # No await between the empty check and teardown, so a submit
            # cannot slip in unseen.
            del self._workers[user_id]
            del self._queues[user_id]
            log.debug("vote_worker_stopped", user_id=user_id)

    async def join(self) -> None:
        """Wait until every queued task for every user has finished."""
        while self._workers:
            await asyncio.gather(*list(self._workers.values()), return_exceptions=True)
