from __future__ import annotations

import json
import logging
import os
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from .holiday_feed import HolidayFeedError, parse_holiday_feed
from .models import HolidayCacheRecord
from .utils import utc_now

logger = logging.getLogger(__name__)


class HolidayCache:
    """Parsed holiday/workday sets plus the time they were fetched.

    The record lives in memory and, when ``path`` is given, in a JSON file so
    separate runs (e.g. a daily cron) share one fetch.
    """

    def __init__(
        self,
        fetch: Callable[[], str],
        *,
        path: str | Path | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._fetch = fetch
        self._path = Path(path) if path else None
        self._clock = clock
        self._record: Optional[HolidayCacheRecord] = None

    def get_current(self) -> HolidayCacheRecord:
        record = self._stored()
        if record is not None:
            return record
        logger.info("Holiday cache is empty; refreshing once")
        return self.refresh()

    def refresh(self) -> HolidayCacheRecord:
        try:
            feed_text = self._fetch()
        except HolidayFeedError as exc:
            logger.error("refresh_holidays: %s", exc)
            previous = self._stored()
            if previous is not None:
                logger.warning("Keeping holiday data fetched at %s", previous.fetched_at.isoformat())
                return previous
            logger.warning("No holiday data available; falling back to weekends only")
            return HolidayCacheRecord.empty()

        holidays, workdays = parse_holiday_feed(feed_text)
        record = HolidayCacheRecord(holidays=holidays, workdays=workdays, fetched_at=self._clock())
        self._record = record
        if self._path is not None:
            try:
                _write_record(self._path, record)
            except OSError as exc:
                logger.warning("Failed to persist holiday cache %s: %s", self._path, exc)
        logger.info(
            "Holiday cache refreshed: holidays=%s workdays=%s", len(holidays), len(workdays)
        )
        return record

    def _stored(self) -> Optional[HolidayCacheRecord]:
        if self._record is None and self._path is not None:
            self._record = _read_record(self._path)
        return self._record


def is_stale(record: HolidayCacheRecord, max_age: timedelta, now: datetime) -> bool:
    return now - record.fetched_at > max_age


def _read_record(path: Path) -> Optional[HolidayCacheRecord]:
    if not path.exists():
        return None
    try:
        with path.open("r", encoding="utf-8") as fp:
            data = json.load(fp)
        return _from_json(data)
    except (OSError, ValueError, KeyError, TypeError) as exc:
        logger.warning("Ignoring unreadable holiday cache %s: %s", path, exc)
        return None


def _write_record(path: Path, record: HolidayCacheRecord) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    with tmp.open("w", encoding="utf-8") as fp:
        json.dump(_to_json(record), fp, indent=2, ensure_ascii=False)
    os.replace(tmp, path)


def _to_json(record: HolidayCacheRecord) -> Dict[str, Any]:
    return {
        "fetched_at": record.fetched_at.isoformat(),
        "holidays": sorted(d.isoformat() for d in record.holidays),
        "workdays": sorted(d.isoformat() for d in record.workdays),
    }


def _from_json(data: Dict[str, Any]) -> HolidayCacheRecord:
    fetched_at = datetime.fromisoformat(data["fetched_at"])
    if fetched_at.tzinfo is None:
        fetched_at = fetched_at.replace(tzinfo=timezone.utc)
    return HolidayCacheRecord(
        holidays=frozenset(date.fromisoformat(s) for s in data["holidays"]),
        workdays=frozenset(date.fromisoformat(s) for s in data["workdays"]),
        fetched_at=fetched_at,
    )
