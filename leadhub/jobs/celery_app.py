"""Celery configuration for background CSV imports."""

from __future__ import annotations

import functools

from celery import Celery
from sqlalchemy.exc import OperationalError

from leadhub.config import load_settings

settings = load_settings()

celery_app = Celery("leadhub", broker=settings.redis_url, backend=settings.redis_url)
celery_app.conf.update(
    task_track_started=True,
    result_expires=60 * 60,
    # a dead broker surfaces after a single publish retry
    task_publish_retry_policy={"max_retries": 1, "interval_start": 0, "interval_step": 0.5, "interval_max": 1},
)


@functools.lru_cache(maxsize=1)
def _worker_engine():
    from leadhub.db.session import create_engine_from_env

    return create_engine_from_env(settings.database_url)


@celery_app.task(
    bind=True,
    name="leadhub.jobs.csv_upload.process_csv_upload",
    autoretry_for=(OperationalError,),
    max_retries=max(settings.job_attempts - 1, 0),
    retry_backoff=int(settings.job_backoff),
    retry_jitter=False,
)
def process_csv_upload(self, kind: str, payload: dict) -> dict:
    from leadhub.jobs.csv_upload import CsvJob, run_csv_job

    job = CsvJob.from_payload(kind, payload)

    def report(progress: float) -> None:
        self.update_state(state="PROGRESS", meta={"progress": round(progress, 2)})

    return run_csv_job(_worker_engine(), job, report, duplicate_policy=settings.duplicate_policy)
