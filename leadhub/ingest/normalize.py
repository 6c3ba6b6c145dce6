"""Row validation and normalisation."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Iterable, Mapping

from leadhub.ingest.models import (
    Campaign,
    LeadRecord,
    LeadRow,
    LeadSource,
    RowError,
    SpendRecord,
    SpendRow,
)
from leadhub.utils.dates import parse_calendar_date

# ad_spend.spend is NUMERIC(10, 2)
MAX_SPEND = Decimal("100000000")

SOURCE_ALIASES: Mapping[str, LeadSource] = {
    "manual": LeadSource.MANUAL,
    "meta": LeadSource.META,
    "facebook": LeadSource.META,
    "fb": LeadSource.META,
    "tiktok": LeadSource.TIKTOK,
    "landing": LeadSource.LANDING_PAGE,
    "landing_page": LeadSource.LANDING_PAGE,
    "landingpage": LeadSource.LANDING_PAGE,
    "wordpress": LeadSource.WORDPRESS,
    "wp": LeadSource.WORDPRESS,
    "import": LeadSource.IMPORT,
    "api": LeadSource.API,
}


def normalize_lead_source(label: str | None) -> LeadSource:
    """Map a free-text source label onto a known source; unknown labels are manual."""
    if not label:
        return LeadSource.MANUAL
    return SOURCE_ALIASES.get(label.strip().lower(), LeadSource.MANUAL)


def campaign_key(name: str) -> str:
    return name.strip().lower()


class CampaignIndex:
    """Case-insensitive campaign lookup, built once per import job."""

    def __init__(self, campaigns: Iterable[Campaign]) -> None:
        self._by_name: dict[str, Campaign] = {}
        for campaign in campaigns:
            self._by_name[campaign_key(campaign.name)] = campaign

    def __len__(self) -> int:
        return len(self._by_name)

    def get(self, name: str | None) -> Campaign | None:
        if not name:
            return None
        return self._by_name.get(campaign_key(name))


def parse_spend_amount(value: str) -> Decimal:
    try:
        amount = Decimal(value.strip().replace(",", ""))
    except InvalidOperation as exc:
        raise ValueError(value) from exc
    if not amount.is_finite() or amount < 0 or amount >= MAX_SPEND or round(amount, 2) >= MAX_SPEND:
        raise ValueError(value)
    return amount


def validate_spend_row(row: SpendRow, row_number: int, campaigns: CampaignIndex) -> SpendRecord:
    if not (row.date and row.campaign_name and row.spend_amount and row.currency_code):
        raise RowError(f"Row {row_number}: Missing required fields")
    try:
        spend_date = parse_calendar_date(row.date)
    except ValueError as exc:
        raise RowError(f"Row {row_number}: Invalid date format: {row.date}") from exc
    try:
        amount = parse_spend_amount(row.spend_amount)
    except ValueError as exc:
        raise RowError(f"Row {row_number}: Invalid spend amount: {row.spend_amount}") from exc
    campaign = campaigns.get(row.campaign_name)
    if campaign is None:
        raise RowError(f"Row {row_number}: Campaign not found: {row.campaign_name}")
    return SpendRecord(
        campaign_id=campaign.id,
        date=spend_date,
        spend=amount,
        currency=row.currency_code.strip().upper(),
    )


def validate_lead_row(row: LeadRow, row_number: int, campaigns: CampaignIndex) -> LeadRecord:
    if not row.full_name or not (row.email or row.phone):
        raise RowError(
            f"Row {row_number}: Missing required fields (full_name and at least email or phone)"
        )
    campaign = campaigns.get(row.campaign_name)
    return LeadRecord(
        full_name=row.full_name.strip(),
        phone=_clean(row.phone),
        email=normalize_email(row.email),
        country=_clean(row.country),
        city=_clean(row.city),
        language=_clean(row.language),
        source=normalize_lead_source(row.source_label),
        campaign_id=campaign.id if campaign else None,
        utm_source=_clean(row.utm_source),
        utm_medium=_clean(row.utm_medium),
        utm_campaign=_clean(row.utm_campaign),
        utm_term=_clean(row.utm_term),
        utm_content=_clean(row.utm_content),
    )


def normalize_email(value: str | None) -> str | None:
    cleaned = _clean(value)
    return cleaned.lower() if cleaned else None


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None
