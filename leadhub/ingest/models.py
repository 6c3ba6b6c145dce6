"""Import pipeline data models."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any


class ImportJobError(Exception):
    """Base class for failures that abort a whole import job."""


class CsvFormatError(ImportJobError):
    """The uploaded file could not be decoded or parsed as CSV."""


class ImportTimeoutError(ImportJobError):
    """A queued job did not finish within the wait window."""


class ImportJobFailedError(ImportJobError):
    """A queued job finished in a failed state."""


class RowError(ValueError):
    """A single row was rejected; the batch continues."""


class ImportKind(str, enum.Enum):
    SPEND = "spend"
    LEADS = "leads"


class LeadSource(str, enum.Enum):
    MANUAL = "manual"
    META = "meta"
    TIKTOK = "tiktok"
    LANDING_PAGE = "landing_page"
    WORDPRESS = "wordpress"
    IMPORT = "import"
    API = "api"


@dataclass(slots=True)
class Campaign:
    id: int
    name: str


@dataclass(slots=True)
class SpendRow:
    date: str | None = None
    campaign_name: str | None = None
    spend_amount: str | None = None
    currency_code: str | None = None


@dataclass(slots=True)
class LeadRow:
    full_name: str | None = None
    phone: str | None = None
    email: str | None = None
    country: str | None = None
    city: str | None = None
    language: str | None = None
    source_label: str | None = None
    campaign_name: str | None = None
    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None
    utm_term: str | None = None
    utm_content: str | None = None


@dataclass(slots=True)
class SpendRecord:
    campaign_id: int
    date: date
    spend: Decimal
    currency: str


@dataclass(slots=True)
class LeadRecord:
    full_name: str
    phone: str | None
    email: str | None
    country: str | None
    city: str | None
    language: str | None
    source: LeadSource
    campaign_id: int | None
    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None
    utm_term: str | None = None
    utm_content: str | None = None


@dataclass(slots=True)
class ImportSummary:
    processed: int = 0
    imported: int = 0
    matched_campaigns: int | None = None
    duplicates: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        """Wire shape; empty ``duplicates``/``errors`` are left out."""
        payload: dict[str, Any] = {"processed": self.processed, "imported": self.imported}
        if self.matched_campaigns is not None:
            payload["matchedCampaigns"] = self.matched_campaigns
        if self.duplicates:
            payload["duplicates"] = list(self.duplicates)
        if self.errors:
            payload["errors"] = list(self.errors)
        return payload
