from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError

from leadhub.db.tables import ad_spend, leads
from leadhub.ingest.models import CsvFormatError, ImportKind
from leadhub.ingest.reconcile import Reconciler
from leadhub.jobs.csv_upload import CsvJob, process_leads_csv, process_spend_csv, run_csv_job

SPEND_CSV = (
    b"Date,Campaign,Spend,Currency\n"
    b"2024-03-01,Spring Promo,120.50,usd\n"
    b"2024-03-02,spring promo,80,USD\n"
    b"2024-03-01,TikTok Awareness,40.25,AED\n"
)


def _spend_by_key(engine):
    with engine.connect() as conn:
        rows = conn.execute(select(ad_spend.c.campaign_id, ad_spend.c.date, ad_spend.c.spend, ad_spend.c.currency))
        return {(row.campaign_id, row.date): (row.spend, row.currency) for row in rows}


def test_valid_spend_file_imports_every_row(seeded_engine):
    summary = process_spend_csv(seeded_engine, SPEND_CSV)
    assert summary.as_dict() == {"processed": 3, "imported": 3, "matchedCampaigns": 3}
    stored = _spend_by_key(seeded_engine)
    assert stored[(1, date(2024, 3, 1))] == (Decimal("120.50"), "USD")
    assert stored[(2, date(2024, 3, 1))] == (Decimal("40.25"), "AED")


def test_spend_reimport_is_idempotent(seeded_engine, count_rows):
    first = process_spend_csv(seeded_engine, SPEND_CSV).as_dict()
    second = process_spend_csv(seeded_engine, SPEND_CSV).as_dict()
    assert first == second
    assert second["imported"] == second["processed"]
    assert count_rows(seeded_engine, ad_spend) == 3


def test_spend_reimport_overwrites_amount_and_currency(seeded_engine):
    process_spend_csv(seeded_engine, SPEND_CSV)
    process_spend_csv(seeded_engine, b"Date,Campaign,Spend,Currency\n2024-03-01,Spring Promo,99,eur\n")
    assert _spend_by_key(seeded_engine)[(1, date(2024, 3, 1))] == (Decimal("99"), "EUR")


def test_negative_spend_is_never_persisted(seeded_engine, count_rows):
    result = process_spend_csv(seeded_engine, b"Date,Campaign,Spend,Currency\n2024-03-01,Spring Promo,-5,USD\n").as_dict()
    assert result == {
        "processed": 1,
        "imported": 0,
        "matchedCampaigns": 0,
        "errors": ["Row 1: Invalid spend amount: -5"],
    }
    assert count_rows(seeded_engine, ad_spend) == 0


def test_mixed_spend_file_reports_row_errors(seeded_engine):
    data = (
        b"Date,Campaign,Spend,Currency\n"
        b"2024-03-01,Spring Promo,120.50,USD\n"
        b"2024-03-02,Spring Promo,abc,USD\n"
        b"2024-03-03,Ghost Campaign,50,USD\n"
    )
    result = process_spend_csv(seeded_engine, data).as_dict()
    assert result == {
        "processed": 3,
        "imported": 1,
        "matchedCampaigns": 1,
        "errors": [
            "Row 2: Invalid spend amount: abc",
            "Row 3: Campaign not found: Ghost Campaign",
        ],
    }


def test_progress_is_monotonic_and_ends_at_100(seeded_engine):
    seen = []
    process_spend_csv(seeded_engine, SPEND_CSV, seen.append)
    assert len(seen) == 3
    assert seen == sorted(seen)
    assert seen[-1] == pytest.approx(100.0)


def test_empty_file_reports_completion_without_dividing_by_zero(seeded_engine):
    seen = []
    summary = process_leads_csv(seeded_engine, b"full_name,email,phone\n", seen.append)
    assert summary.as_dict() == {"processed": 0, "imported": 0}
    assert seen == [100.0]


def test_malformed_file_aborts_before_any_write(seeded_engine, count_rows):
    data = b'Date,Campaign,Spend,Currency\n2024-03-01,Spring Promo,10,USD\n2024-03-02,"Spring Promo,10,USD\n'
    with pytest.raises(CsvFormatError):
        process_spend_csv(seeded_engine, data)
    assert count_rows(seeded_engine, ad_spend) == 0


def test_database_error_on_one_spend_row_keeps_the_batch_going(seeded_engine, monkeypatch):
    original = Reconciler.upsert_spend

    def upsert_spend(self, record):
        if record.campaign_id == 2:
            raise IntegrityError("INSERT INTO ad_spend", {}, Exception("UNIQUE constraint failed: ad_spend.campaign_id"))
        return original(self, record)

    monkeypatch.setattr(Reconciler, "upsert_spend", upsert_spend)
    summary = process_spend_csv(seeded_engine, SPEND_CSV)
    assert summary.processed == 3
    assert summary.imported == 2
    assert summary.errors == ["Row 3: UNIQUE constraint failed: ad_spend.campaign_id"]
    assert set(_spend_by_key(seeded_engine)) == {(1, date(2024, 3, 1)), (1, date(2024, 3, 2))}


def test_connection_loss_mid_batch_is_recorded_and_later_rows_still_import(seeded_engine, count_rows, monkeypatch):
    original = Reconciler.insert_lead

    def insert_lead(self, record):
        if record.full_name == "Second Lead":
            raise OperationalError("INSERT INTO leads", {}, Exception("server closed the connection unexpectedly"))
        return original(self, record)

    monkeypatch.setattr(Reconciler, "insert_lead", insert_lead)
    data = (
        b"full_name,email\n"
        b"First Lead,first@example.com\n"
        b"Second Lead,second@example.com\n"
        b"Third Lead,third@example.com\n"
    )
    progress = []
    summary = process_leads_csv(seeded_engine, data, progress.append)
    assert summary.processed == 3
    assert summary.imported == 2
    assert summary.errors == ["Row 2: server closed the connection unexpectedly"]
    assert progress[-1] == 100
    with seeded_engine.connect() as conn:
        names = set(conn.execute(select(leads.c.full_name)).scalars())
    assert {"First Lead", "Third Lead"} <= names
    assert "Second Lead" not in names
    assert count_rows(seeded_engine, leads) == 3


def test_lead_without_contact_is_rejected_and_phone_only_accepted(seeded_engine, count_rows):
    data = (
        b"full_name,email,phone,source\n"
        b"No Contact,,,meta\n"
        b"Phone Only,,+971500000042,tiktok\n"
    )
    result = process_leads_csv(seeded_engine, data).as_dict()
    assert result == {
        "processed": 2,
        "imported": 1,
        "errors": ["Row 1: Missing required fields (full_name and at least email or phone)"],
    }
    assert count_rows(seeded_engine, leads) == 2


def test_duplicate_email_is_flagged_and_still_inserted(seeded_engine, count_rows):
    data = b"full_name,email,phone\nJane Again, JANE@example.com ,\n"
    result = process_leads_csv(seeded_engine, data).as_dict()
    assert result["imported"] == 1
    assert result["duplicates"] == ["Row 1: Email already exists - jane@example.com (lead Jane Existing)"]
    assert "errors" not in result
    assert count_rows(seeded_engine, leads) == 2


def test_duplicate_by_email_and_phone_gives_two_warnings(seeded_engine):
    data = b"full_name,email,phone\nJane Twin,jane@example.com,+971500000001\n"
    result = process_leads_csv(seeded_engine, data).as_dict()
    assert len(result["duplicates"]) == 2
    assert "Phone already exists - +971500000001 (lead Jane Existing)" in result["duplicates"][1]


def test_skip_policy_does_not_insert_duplicates(seeded_engine, count_rows):
    data = b"full_name,email\nJane Again,jane@example.com\nNew Person,new@example.com\n"
    result = process_leads_csv(seeded_engine, data, duplicate_policy="skip").as_dict()
    assert result["processed"] == 2
    assert result["imported"] == 1
    assert len(result["duplicates"]) == 1
    assert count_rows(seeded_engine, leads) == 2


def test_imported_lead_fields(seeded_engine):
    data = (
        b"full_name,email,phone,country,city,language,source,campaign_name,utm_source,utm_medium\n"
        b"Sara Ahmed,Sara@Example.com,+971509999999,AE,Dubai,ar,Facebook,spring promo,facebook,cpc\n"
        b"Omar Ali,omar@example.com,,SA,Riyadh,en,billboard,Ghost,,\n"
    )
    process_leads_csv(seeded_engine, data)
    with seeded_engine.connect() as conn:
        rows = conn.execute(select(leads).where(leads.c.id > 1).order_by(leads.c.id)).mappings().all()
    sara, omar = rows
    assert sara["email"] == "sara@example.com"
    assert sara["source"] == "meta"
    assert sara["status"] == "new"
    assert sara["campaign_id"] == 1
    assert sara["utm_medium"] == "cpc"
    assert omar["source"] == "manual"
    assert omar["campaign_id"] is None
    assert omar["phone"] is None


def test_run_csv_job_round_trips_payload(seeded_engine):
    job = CsvJob(kind=ImportKind.SPEND, data=SPEND_CSV, filename="spend.csv", mimetype="text/csv", user_id=7)
    restored = CsvJob.from_payload("spend", job.to_payload())
    assert restored == job
    assert run_csv_job(seeded_engine, restored) == {"processed": 3, "imported": 3, "matchedCampaigns": 3}
