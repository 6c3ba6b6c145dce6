"""Decode uploaded CSV bytes into typed rows."""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import fields
from typing import Iterator, Mapping, Sequence, TypeVar

from leadhub.ingest.models import CsvFormatError, LeadRow, SpendRow

logger = logging.getLogger(__name__)

RowT = TypeVar("RowT", SpendRow, LeadRow)

# Keys are normalised header strings (lowercase, stripped, spaces/dashes as underscores).
SPEND_HEADERS: Mapping[str, Sequence[str]] = {
    "date": ("date", "day"),
    "campaign_name": ("campaign", "campaign_name"),
    "spend_amount": ("spend", "spend_amount", "amount", "cost"),
    "currency_code": ("currency", "currency_code"),
}

LEAD_HEADERS: Mapping[str, Sequence[str]] = {
    "full_name": ("full_name", "name", "fullname"),
    "phone": ("phone", "phone_number", "mobile"),
    "email": ("email", "email_address"),
    "country": ("country",),
    "city": ("city",),
    "language": ("language", "lang"),
    "source_label": ("source", "lead_source"),
    "campaign_name": ("campaign_name", "campaign"),
    "utm_source": ("utm_source",),
    "utm_medium": ("utm_medium",),
    "utm_campaign": ("utm_campaign",),
    "utm_term": ("utm_term",),
    "utm_content": ("utm_content",),
}


def parse_spend_rows(data: bytes) -> Iterator[SpendRow]:
    return _parse(data, SpendRow, SPEND_HEADERS)


def parse_lead_rows(data: bytes) -> Iterator[LeadRow]:
    return _parse(data, LeadRow, LEAD_HEADERS)


def _normalise_header(value: str | None) -> str:
    return (value or "").strip().lower().replace(" ", "_").replace("-", "_")


def _column_map(header: Sequence[str], synonyms: Mapping[str, Sequence[str]]) -> dict[int, str]:
    """Map column positions to row field names; first matching column wins."""
    positions = {}
    for idx, name in enumerate(header):
        key = _normalise_header(name)
        if key and key not in positions:
            positions[key] = idx
    mapping: dict[int, str] = {}
    for field_name, candidates in synonyms.items():
        for candidate in candidates:
            if candidate in positions and positions[candidate] not in mapping:
                mapping[positions[candidate]] = field_name
                break
    return mapping


def _parse(data: bytes, row_type: type[RowT], synonyms: Mapping[str, Sequence[str]]) -> Iterator[RowT]:
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise CsvFormatError(f"File is not valid UTF-8: {exc}") from exc

    reader = csv.reader(io.StringIO(text, newline=""), strict=True)
    known = {f.name for f in fields(row_type)}
    try:
        header = next(reader, None)
        if header is None:
            return
        mapping = _column_map(header, synonyms)
        missing = known - set(mapping.values())
        if missing:
            logger.debug("CSV has no column for %s", ", ".join(sorted(missing)))
        for values in reader:
            if not any(value.strip() for value in values):
                continue
            row = row_type()
            for idx, field_name in mapping.items():
                if idx < len(values):
                    setattr(row, field_name, values[idx].strip() or None)
            yield row
    except csv.Error as exc:
        raise CsvFormatError(f"Malformed CSV near line {reader.line_num}: {exc}") from exc
