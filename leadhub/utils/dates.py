"""Datetime helpers."""

from __future__ import annotations

from datetime import date, datetime

import pendulum


def parse_calendar_date(value: str) -> date:
    """Parse a spreadsheet date cell into a plain ``date``.

    Accepts ISO 8601 as well as the looser formats ad-platform exports use
    (``01/31/2024``, ``Jan 31 2024``). Raises ``ValueError`` for anything that
    is not a calendar date, including bare times and durations.
    """
    try:
        parsed = pendulum.parse(value.strip(), strict=False, exact=True)
    except OverflowError as exc:
        raise ValueError(f"Date out of range: {value}") from exc
    if isinstance(parsed, datetime):
        return date(parsed.year, parsed.month, parsed.day)
    if isinstance(parsed, date):
        return date(parsed.year, parsed.month, parsed.day)
    raise ValueError(f"Not a calendar date: {value}")


def format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")
