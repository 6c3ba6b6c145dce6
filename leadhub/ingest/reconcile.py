"""Write validated rows to the CRM tables."""

from __future__ import annotations

import logging

from sqlalchemy import func, insert, select, update
from sqlalchemy.engine import Connection, Engine

from leadhub.db.tables import ad_spend, campaigns, leads
from leadhub.ingest.models import Campaign, LeadRecord, SpendRecord
from leadhub.utils.dates import format_date

logger = logging.getLogger(__name__)

NEW_LEAD_STATUS = "new"


class Reconciler:
    """Row-at-a-time persistence; every call runs in its own transaction."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def load_campaigns(self) -> list[Campaign]:
        with self.engine.connect() as conn:
            result = conn.execute(select(campaigns.c.id, campaigns.c.name).order_by(campaigns.c.id))
            return [Campaign(id=row.id, name=row.name) for row in result]

    def upsert_spend(self, record: SpendRecord) -> bool:
        """Store one day of spend; returns True when a new row was inserted."""
        with self.engine.begin() as conn:
            existing = conn.execute(
                select(ad_spend.c.id).where(
                    ad_spend.c.campaign_id == record.campaign_id,
                    ad_spend.c.date == record.date,
                )
            ).scalar_one_or_none()
            if existing is not None:
                conn.execute(
                    update(ad_spend)
                    .where(ad_spend.c.id == existing)
                    .values(spend=record.spend, currency=record.currency, updated_at=func.current_timestamp())
                )
                logger.debug(
                    "Updated spend for campaign %s on %s", record.campaign_id, format_date(record.date)
                )
                return False
            conn.execute(
                insert(ad_spend).values(
                    campaign_id=record.campaign_id,
                    date=record.date,
                    spend=record.spend,
                    currency=record.currency,
                )
            )
            return True

    def find_duplicates(self, record: LeadRecord, row_number: int) -> list[str]:
        """Describe existing leads sharing the record's email or phone."""
        messages: list[str] = []
        with self.engine.connect() as conn:
            if record.email:
                name = self._lead_name(conn, leads.c.email == record.email)
                if name is not None:
                    messages.append(f"Row {row_number}: Email already exists - {record.email} (lead {name})")
            if record.phone:
                name = self._lead_name(conn, leads.c.phone == record.phone)
                if name is not None:
                    messages.append(f"Row {row_number}: Phone already exists - {record.phone} (lead {name})")
        return messages

    def insert_lead(self, record: LeadRecord) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(
                insert(leads).values(
                    full_name=record.full_name,
                    phone=record.phone,
                    email=record.email,
                    country=record.country,
                    city=record.city,
                    language=record.language,
                    status=NEW_LEAD_STATUS,
                    source=record.source.value,
                    campaign_id=record.campaign_id,
                    utm_source=record.utm_source,
                    utm_medium=record.utm_medium,
                    utm_campaign=record.utm_campaign,
                    utm_term=record.utm_term,
                    utm_content=record.utm_content,
                )
            )
            return int(result.inserted_primary_key[0])

    @staticmethod
    def _lead_name(conn: Connection, clause) -> str | None:
        return conn.execute(
            select(leads.c.full_name).where(clause).order_by(leads.c.id).limit(1)
        ).scalar_one_or_none()
