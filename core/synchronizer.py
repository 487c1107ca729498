"""
Keeps the local job list in step with the service.

The poll loop is the only writer of `jobs`: every refresh replaces the whole
tuple in one assignment. Mutations (create, cancel, delete, ...) perform their
request, report exactly one toast, then force an extra refresh instead of
guessing the outcome locally.

Each refresh is tagged with a sequence number and the generation it was
issued in. A result older than the one already installed is dropped, and so is
anything that lands after stop()/dispose().
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union

from api.client import JobServiceClient, ServiceError
from api.schemas import Job, JobRequest, JobStatus
from config import settings
from core.confirmation import ConfirmationGate
from core.notifications import NotificationQueue

logger = logging.getLogger(__name__)

DELETE_ALL_MESSAGE = "Delete every job? Rendered videos and uploaded artifacts are removed and cannot be recovered."


def order_jobs(jobs: Sequence[Job]) -> List[Job]:
    """Newest first, ties broken by id so the order is stable between polls."""
    by_id = sorted(jobs, key=lambda j: j.id)
    return sorted(by_id, key=lambda j: j.created_at, reverse=True)


class JobSynchronizer:
    def __init__(self, client: JobServiceClient, notifications: NotificationQueue,
                 gate: ConfirmationGate, request_model=None, interval: float = None,
                 server_ordered: bool = None):
        self.client = client
        self.notifications = notifications
        self.gate = gate
        self.request_model = request_model
        self.interval = settings.poll_interval if interval is None else interval
        self.server_ordered = settings.jobs_server_ordered if server_ordered is None else server_ordered

        self.jobs: Tuple[Job, ...] = ()
        self._listeners: List[Callable[[Tuple[Job, ...]], None]] = []
        self._task: Optional[asyncio.Task] = None
        self._generation = 0
        self._issued = 0
        self._installed = 0
        self._disposed = False

    # ── Poll loop ────────────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def add_listener(self, listener: Callable[[Tuple[Job, ...]], None]):
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def start(self):
        if self._disposed:
            raise RuntimeError("JobSynchronizer has been disposed")
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self):
        self._generation += 1
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def dispose(self):
        self.stop()
        self._disposed = True
        self._listeners.clear()

    async def _run(self):
        while True:
            try:
                await self.refresh()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Unexpected error while polling jobs")
            await asyncio.sleep(self.interval)

    async def refresh(self) -> bool:
        if self._disposed:
            return False

        self._issued += 1
        seq = self._issued
        generation = self._generation
        try:
            fetched = await self.client.list_jobs()
        except ServiceError as e:
            logger.warning(f"Job poll #{seq} failed: {e}")
            return False

        if self._disposed or generation != self._generation:
            logger.debug(f"Discarding poll #{seq}: synchronizer stopped while it was in flight")
            return False
        if seq < self._installed:
            logger.debug(f"Discarding stale poll #{seq} (#{self._installed} already installed)")
            return False

        self.jobs = tuple(fetched if self.server_ordered else order_jobs(fetched))
        self._installed = seq
        for listener in list(self._listeners):
            listener(self.jobs)
        return True

    # ── Mutations ────────────────────────────────────────────────────────

    def _report_failure(self, fallback: str, e: ServiceError):
        logger.warning(f"{fallback}: {e}")
        self.notifications.error(e.detail or fallback)

    async def create(self, request: JobRequest) -> Optional[str]:
        submitted = request.model_copy(deep=True)
        try:
            job_id = await self.client.create_job(submitted)
        except ServiceError as e:
            self._report_failure("Failed to create job", e)
            return None

        logger.info(f"Created job {job_id}")
        self.notifications.success(f"Job {job_id} created")
        await self.refresh()
        return job_id

    async def cancel(self, job_id: str) -> bool:
        try:
            await self.client.cancel_job(job_id)
        except ServiceError as e:
            self._report_failure("Failed to cancel job", e)
            return False

        self.notifications.success(f"Job {job_id} canceled")
        await self.refresh()
        return True

    async def delete(self, job_id: str) -> bool:
        try:
            await self.client.delete_job(job_id)
        except ServiceError as e:
            self._report_failure("Failed to delete job", e)
            return False

        self.notifications.success(f"Job {job_id} deleted")
        await self.refresh()
        return True

    def delete_all(self):
        """Ask first; the request only runs on the gate's confirm path."""
        return self.gate.request(DELETE_ALL_MESSAGE, self._delete_all_confirmed)

    async def _delete_all_confirmed(self) -> bool:
        try:
            await self.client.delete_all_jobs()
        except ServiceError as e:
            self._report_failure("Failed to delete all jobs", e)
            return False

        logger.info("Deleted all jobs")
        self.notifications.success("All jobs deleted")
        await self.refresh()
        return True

    async def duplicate(self, job: Job) -> Optional[str]:
        return await self.create(job.request)

    def copy_into_draft(self, job: Job) -> JobRequest:
        if self.request_model is None:
            raise RuntimeError("copy_into_draft needs a RequestModel")
        draft = self.request_model.replace(job.request.model_copy(deep=True))
        self.notifications.success(f"Settings of job {job.id} copied into the form")
        return draft

    async def get(self, job_id: str) -> Optional[Job]:
        try:
            return await self.client.get_job(job_id)
        except ServiceError as e:
            self._report_failure("Failed to load job", e)
            return None

    async def download(self, job: Job, dest: Union[str, Path]) -> Optional[Path]:
        if job.status != JobStatus.SUCCESS:
            self.notifications.error(f"Job {job.id} has no result yet")
            return None
        try:
            path = await self.client.download_result(job.id, dest)
        except ServiceError as e:
            self._report_failure("Failed to download result", e)
            return None

        self.notifications.success(f"Saved {path.name}")
        return path
