from __future__ import annotations

from datetime import date, datetime, timezone

from .config import ROC_YEAR_OFFSET, TAIPEI


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_taipei(dt: datetime) -> datetime:
    return dt.astimezone(TAIPEI)


def today_taipei() -> date:
    return to_taipei(utc_now()).date()


def to_roc_year(year: int) -> int:
    return year - ROC_YEAR_OFFSET


def format_roc_date(d: date) -> str:
    """Format as ROC calendar text, e.g. 2024-08-05 -> 113年8月5日."""

    return f"{to_roc_year(d.year)}年{d.month}月{d.day}日"
