"""CSV bulk import: spend data and leads."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from leadhub.ingest.models import ImportKind, ImportSummary, RowError
from leadhub.ingest.normalize import CampaignIndex, validate_lead_row, validate_spend_row
from leadhub.ingest.parser import parse_lead_rows, parse_spend_rows
from leadhub.ingest.reconcile import Reconciler

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


def _ignore_progress(_: float) -> None:
    return None


@dataclass(slots=True)
class CsvJob:
    kind: ImportKind
    data: bytes
    filename: str
    mimetype: str | None = None
    user_id: int = 0

    def to_payload(self) -> dict[str, Any]:
        return {
            "file": base64.b64encode(self.data).decode("ascii"),
            "filename": self.filename,
            "mimetype": self.mimetype,
            "userId": self.user_id,
        }

    @classmethod
    def from_payload(cls, kind: str, payload: dict[str, Any]) -> "CsvJob":
        return cls(
            kind=ImportKind(kind),
            data=base64.b64decode(payload["file"]),
            filename=payload.get("filename") or "upload.csv",
            mimetype=payload.get("mimetype"),
            user_id=int(payload.get("userId") or 0),
        )


class ProgressTracker:
    def __init__(self, total: int, callback: ProgressCallback | None) -> None:
        self.total = total
        self.done = 0
        self.callback = callback or _ignore_progress

    def advance(self) -> None:
        self.done += 1
        self.callback(self.done / self.total * 100)

    def finish_if_empty(self) -> None:
        if self.total == 0:
            self.callback(100.0)


def _row_failure(row_number: int, exc: SQLAlchemyError) -> str:
    # rows already written stay committed, so the batch keeps going
    logger.warning("Row %s failed to persist: %s", row_number, exc)
    detail = getattr(exc, "orig", None) or exc
    return f"Row {row_number}: {detail}"


def process_spend_csv(engine: Engine, data: bytes, progress: ProgressCallback | None = None) -> ImportSummary:
    rows = list(parse_spend_rows(data))
    reconciler = Reconciler(engine)
    index = CampaignIndex(reconciler.load_campaigns())
    tracker = ProgressTracker(len(rows), progress)
    summary = ImportSummary(matched_campaigns=0)
    logger.info("Importing %s spend rows against %s campaigns", len(rows), len(index))

    for row_number, row in enumerate(rows, start=1):
        summary.processed += 1
        try:
            record = validate_spend_row(row, row_number, index)
            summary.matched_campaigns += 1
            reconciler.upsert_spend(record)
            summary.imported += 1
        except RowError as exc:
            summary.errors.append(str(exc))
        except SQLAlchemyError as exc:
            summary.errors.append(_row_failure(row_number, exc))
        finally:
            tracker.advance()

    tracker.finish_if_empty()
    return summary


def process_leads_csv(
    engine: Engine,
    data: bytes,
    progress: ProgressCallback | None = None,
    *,
    duplicate_policy: str = "insert",
) -> ImportSummary:
    """Import leads; duplicates by email/phone are reported and, under the
    ``insert`` policy, still inserted."""
    rows = list(parse_lead_rows(data))
    reconciler = Reconciler(engine)
    index = CampaignIndex(reconciler.load_campaigns())
    tracker = ProgressTracker(len(rows), progress)
    summary = ImportSummary()
    logger.info("Importing %s lead rows (duplicate policy: %s)", len(rows), duplicate_policy)

    for row_number, row in enumerate(rows, start=1):
        summary.processed += 1
        try:
            record = validate_lead_row(row, row_number, index)
            duplicates = reconciler.find_duplicates(record, row_number)
            summary.duplicates.extend(duplicates)
            if duplicates and duplicate_policy == "skip":
                continue
            reconciler.insert_lead(record)
            summary.imported += 1
        except RowError as exc:
            summary.errors.append(str(exc))
        except SQLAlchemyError as exc:
            summary.errors.append(_row_failure(row_number, exc))
        finally:
            tracker.advance()

    tracker.finish_if_empty()
    return summary


def run_csv_job(
    engine: Engine,
    job: CsvJob,
    progress: ProgressCallback | None = None,
    *,
    duplicate_policy: str = "insert",
) -> dict[str, Any]:
    logger.info(
        "Processing %s CSV %s from user %s (%s bytes)", job.kind.value, job.filename, job.user_id, len(job.data)
    )
    if job.kind is ImportKind.SPEND:
        summary = process_spend_csv(engine, job.data, progress)
    else:
        summary = process_leads_csv(engine, job.data, progress, duplicate_policy=duplicate_policy)
    logger.info(
        "Finished %s CSV %s: %s processed, %s imported, %s errors",
        job.kind.value,
        job.filename,
        summary.processed,
        summary.imported,
        len(summary.errors),
    )
    return summary.as_dict()
