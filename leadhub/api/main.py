"""FastAPI application for CSV bulk imports."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError

from leadhub.config import Settings, configure_logging, load_settings
from leadhub.db.session import create_engine_from_env
from leadhub.ingest.models import CsvFormatError, ImportJobFailedError, ImportKind, ImportTimeoutError
from leadhub.jobs.csv_upload import CsvJob
from leadhub.jobs.executors import JobExecutor, build_executor
from leadhub.utils.tokens import CurrentUser, InvalidToken, load_user

logger = logging.getLogger(__name__)

UPLOAD_ROLES = {"admin", "super_admin"}

bearer = HTTPBearer(auto_error=False)


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging(get_settings())
    yield


app = FastAPI(title="Leadhub CRM Import API", lifespan=lifespan)


class ImportResponse(BaseModel):
    processed: int
    imported: int
    matchedCampaigns: int | None = None
    duplicates: list[str] | None = None
    errors: list[str] | None = None
    jobId: str | None = None


class HealthResponse(BaseModel):
    status: str
    executor: str


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_engine_from_env(get_settings().database_url)


@lru_cache(maxsize=1)
def get_executor() -> JobExecutor:
    return build_executor(get_settings(), get_engine())


def current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    settings: Settings = Depends(get_settings),
) -> CurrentUser:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        return load_user(credentials.credentials, secret=settings.signing_secret)
    except InvalidToken as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc


def require_uploader(user: CurrentUser = Depends(current_user)) -> CurrentUser:
    if user.role not in UPLOAD_ROLES:
        raise HTTPException(status_code=403, detail="Only admins can upload CSV data")
    return user


async def _import(kind: ImportKind, upload: UploadFile | None, user: CurrentUser, executor: JobExecutor) -> dict:
    if upload is None:
        raise HTTPException(status_code=400, detail="No file uploaded")
    data = await upload.read()
    job = CsvJob(
        kind=kind,
        data=data,
        filename=upload.filename or "upload.csv",
        mimetype=upload.content_type,
        user_id=user.id,
    )
    try:
        return await executor.submit(job)
    except CsvFormatError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ImportTimeoutError as exc:
        logger.error("%s", exc)
        raise HTTPException(status_code=504, detail=str(exc)) from exc
    except ImportJobFailedError as exc:
        logger.error("%s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except OperationalError as exc:
        logger.error("Database unavailable during %s import: %s", kind.value, exc)
        raise HTTPException(status_code=503, detail="Database unavailable") from exc


@app.post("/csv-upload/spend-data", response_model=ImportResponse, response_model_exclude_none=True)
async def upload_spend_data(
    csv_file: UploadFile | None = File(None, alias="csvFile"),
    user: CurrentUser = Depends(require_uploader),
    executor: JobExecutor = Depends(get_executor),
) -> dict:
    return await _import(ImportKind.SPEND, csv_file, user, executor)


@app.post("/csv-upload/leads", response_model=ImportResponse, response_model_exclude_none=True)
async def upload_leads(
    csv_file: UploadFile | None = File(None, alias="csvFile"),
    user: CurrentUser = Depends(require_uploader),
    executor: JobExecutor = Depends(get_executor),
) -> dict:
    return await _import(ImportKind.LEADS, csv_file, user, executor)


@app.get("/health", response_model=HealthResponse)
async def health(executor: JobExecutor = Depends(get_executor)) -> HealthResponse:
    return HealthResponse(status="ok", executor=executor.name)
