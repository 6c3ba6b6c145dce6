"""Table definitions for the entities the import pipeline reads and writes.

Mirrors ``schema.sql``; used for query building and by the test fixtures.
"""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    Table,
    Text,
    UniqueConstraint,
    func,
)

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False),
    Column("email", Text, nullable=False, unique=True),
    Column("role", Text, nullable=False, server_default="sales"),
    Column("active", Boolean, nullable=False, server_default="1"),
)

campaigns = Table(
    "campaigns",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False),
    Column("description", Text),
    Column("country", Text),
    Column("platform", Text),
    Column("active", Boolean, nullable=False, server_default="1"),
    Column("budget", Numeric(10, 2), nullable=False, server_default="0"),
    Column("created_by", Integer, ForeignKey("users.id", ondelete="SET NULL")),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
)

ad_spend = Table(
    "ad_spend",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("campaign_id", Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False),
    Column("date", Date, nullable=False),
    Column("spend", Numeric(10, 2), nullable=False),
    Column("currency", Text, nullable=False, server_default="USD"),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    Column("updated_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    UniqueConstraint("campaign_id", "date", name="uq_ad_spend_campaign_date"),
)

leads = Table(
    "leads",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("full_name", Text, nullable=False),
    Column("phone", Text, index=True),
    Column("email", Text, index=True),
    Column("country", Text),
    Column("city", Text),
    Column("language", Text),
    Column("status", Text, nullable=False, server_default="new"),
    Column("source", Text, nullable=False, server_default="manual"),
    Column("campaign_id", Integer, ForeignKey("campaigns.id", ondelete="SET NULL")),
    Column("utm_source", Text),
    Column("utm_medium", Text),
    Column("utm_campaign", Text),
    Column("utm_term", Text),
    Column("utm_content", Text),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
)
