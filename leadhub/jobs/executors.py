"""Queue-or-inline execution of CSV import jobs.

The executor is chosen once at startup: with the queue enabled, jobs go to the
Celery worker and the request waits for the result; otherwise the same
processing function runs in-process. A broker that cannot be reached at
enqueue time degrades to inline processing instead of failing the upload.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Protocol

from celery.exceptions import TimeoutError as CeleryTimeoutError
from kombu.exceptions import OperationalError as BrokerUnavailable
from sqlalchemy.engine import Engine

from leadhub.config import Settings
from leadhub.ingest.models import CsvFormatError, ImportJobFailedError, ImportTimeoutError
from leadhub.jobs.csv_upload import CsvJob, run_csv_job

logger = logging.getLogger(__name__)


class JobExecutor(Protocol):
    name: str

    async def submit(self, job: CsvJob) -> dict[str, Any]:
        ...


class InlineExecutor:
    name = "inline"

    def __init__(self, engine: Engine, *, duplicate_policy: str = "insert") -> None:
        self.engine = engine
        self.duplicate_policy = duplicate_policy

    async def submit(self, job: CsvJob) -> dict[str, Any]:
        logger.info("Processing %s import %s inline", job.kind.value, job.filename)
        work = functools.partial(run_csv_job, self.engine, job, None, duplicate_policy=self.duplicate_policy)
        return await asyncio.get_running_loop().run_in_executor(None, work)


class QueuedExecutor:
    name = "queued"

    def __init__(self, task, *, timeout: float = 180.0, fallback: InlineExecutor | None = None) -> None:
        self.task = task
        self.timeout = timeout
        self.fallback = fallback

    async def submit(self, job: CsvJob) -> dict[str, Any]:
        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(None, self._enqueue, job)
        except BrokerUnavailable as exc:
            if self.fallback is None:
                raise
            logger.warning("Queue unavailable (%s), processing %s import inline", exc, job.kind.value)
            return await self.fallback.submit(job)

        wait = functools.partial(result.get, timeout=self.timeout, propagate=False)
        try:
            outcome = await loop.run_in_executor(None, wait)
        except CeleryTimeoutError as exc:
            # the worker keeps going; only the caller stops waiting
            raise ImportTimeoutError(f"Import job {result.id} did not finish within {self.timeout:.0f}s") from exc
        if not result.successful():
            if isinstance(outcome, CsvFormatError):
                raise outcome
            raise ImportJobFailedError(f"Import job {result.id} failed: {outcome}")
        return {"jobId": result.id, **outcome}

    def _enqueue(self, job: CsvJob):
        logger.info("Queueing %s import for %s", job.kind.value, job.filename)
        return self.task.apply_async(args=(job.kind.value, job.to_payload()))


def build_executor(settings: Settings, engine: Engine) -> JobExecutor:
    inline = InlineExecutor(engine, duplicate_policy=settings.duplicate_policy)
    if not settings.queue_enabled:
        logger.info("CSV queue disabled; imports run inline")
        return inline
    from leadhub.jobs.celery_app import process_csv_upload

    logger.info("CSV imports queued via Celery (timeout %ss)", settings.job_timeout)
    return QueuedExecutor(process_csv_upload, timeout=settings.job_timeout, fallback=inline)
