"""Run a CSV import in-process, without the API or the queue."""

from __future__ import annotations

import argparse
import json
import pathlib
import sys

from leadhub.config import configure_logging, load_settings
from leadhub.db.session import create_engine_from_env
from leadhub.ingest.models import CsvFormatError, ImportKind
from leadhub.jobs.csv_upload import CsvJob, run_csv_job


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("kind", choices=[kind.value for kind in ImportKind])
    parser.add_argument("path", type=pathlib.Path)
    parser.add_argument("--user-id", type=int, default=0)
    args = parser.parse_args(argv)

    settings = load_settings()
    configure_logging(settings)
    engine = create_engine_from_env(settings.database_url)
    job = CsvJob(kind=ImportKind(args.kind), data=args.path.read_bytes(), filename=args.path.name, user_id=args.user_id)
    try:
        result = run_csv_job(engine, job, duplicate_policy=settings.duplicate_policy)
    except CsvFormatError as exc:
        print(f"Import failed: {exc}", file=sys.stderr)
        sys.exit(2)
    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
