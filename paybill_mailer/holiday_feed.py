from __future__ import annotations

import logging
import re
from datetime import date
from typing import Dict, FrozenSet, Iterator, List, Tuple

import httpx

from .config import (
    DEFAULT_HOLIDAY_FEED_URL,
    HOLIDAY_DESCRIPTION_KEYWORDS,
    HOLIDAY_FEED_TIMEOUT_SECONDS,
    OBSERVED_HOLIDAY_TITLE_KEYWORDS,
    WORKDAY_TITLE_KEYWORDS,
)

logger = logging.getLogger(__name__)

HolidaySets = Tuple[FrozenSet[date], FrozenSet[date]]

_EVENT_RE = re.compile(r"^BEGIN:VEVENT$(?P<body>.*?)^END:VEVENT$", flags=re.MULTILINE | re.DOTALL)
_DATE_RE = re.compile(r"(\d{4})(\d{2})(\d{2})")
_ESCAPE_RE = re.compile(r"\\([\\;,nN])")


class HolidayFeedError(Exception):
    """Raised when the holiday calendar feed cannot be fetched."""


def fetch_holiday_feed(
    url: str = DEFAULT_HOLIDAY_FEED_URL,
    *,
    timeout: float = HOLIDAY_FEED_TIMEOUT_SECONDS,
    transport: httpx.BaseTransport | None = None,
) -> str:
    logger.info("Fetching holiday feed: %s", url)
    last_exc: Exception | None = None
    with httpx.Client(timeout=timeout, transport=transport, follow_redirects=True) as client:
        for attempt in range(2):
            try:
                response = client.get(url)
                response.raise_for_status()
                return response.text
            except httpx.RequestError as exc:
                last_exc = exc
                logger.warning("Holiday feed request error: %s", exc)
                if attempt == 0:
                    continue
                break
            except httpx.HTTPStatusError as exc:
                last_exc = exc
                status = exc.response.status_code
                if status in {502, 503, 504} and attempt == 0:
                    logger.warning("Holiday feed transient status %s; retrying once", status)
                    continue
                break
            except (httpx.InvalidURL, ValueError) as exc:
                last_exc = exc
                logger.warning("Holiday feed URL is invalid: %r", url)
                break
    raise HolidayFeedError(f"Holiday feed fetch failed: {last_exc}") from last_exc


def parse_holiday_feed(feed_text: str) -> HolidaySets:
    """Split an iCalendar feed into (holidays, workdays).

    Make-up workdays are recognised by their title; holidays either by a
    national-holiday description or an observed-holiday title. Events missing
    a start date, title or description are ignored.
    """

    holidays: set[date] = set()
    workdays: set[date] = set()
    if not feed_text:
        return frozenset(), frozenset()

    for fields in _iter_events(feed_text):
        start = _parse_date(fields.get("DTSTART"))
        title = fields.get("SUMMARY")
        description = fields.get("DESCRIPTION")
        if start is None or not title or not description:
            logger.debug("Skipping incomplete calendar event: %s", fields)
            continue
        if _contains_any(title, WORKDAY_TITLE_KEYWORDS):
            workdays.add(start)
        elif _contains_any(description, HOLIDAY_DESCRIPTION_KEYWORDS) or _contains_any(
            title, OBSERVED_HOLIDAY_TITLE_KEYWORDS
        ):
            holidays.add(start)

    logger.info("Parsed holiday feed: holidays=%s workdays=%s", len(holidays), len(workdays))
    return frozenset(holidays), frozenset(workdays)


def _iter_events(feed_text: str) -> Iterator[Dict[str, str]]:
    text = _unfold(feed_text)
    for match in _EVENT_RE.finditer(text):
        fields: Dict[str, str] = {}
        for line in match.group("body").split("\n"):
            name, sep, value = line.partition(":")
            if not sep:
                continue
            # DTSTART;VALUE=DATE:20240101 -> DTSTART
            key = name.split(";", 1)[0].strip().upper()
            if key and key not in fields:
                fields[key] = _unescape(value.strip())
        yield fields


def _unfold(text: str) -> str:
    lines: List[str] = []
    for raw in re.split(r"\r\n|\n|\r", text):
        if raw[:1] in (" ", "\t") and lines:
            lines[-1] += raw[1:]
        else:
            lines.append(raw)
    return "\n".join(lines)


def _unescape(value: str) -> str:
    def repl(match: re.Match[str]) -> str:
        ch = match.group(1)
        return "\n" if ch in "nN" else ch

    return _ESCAPE_RE.sub(repl, value)


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    match = _DATE_RE.match(value)
    if not match:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def _contains_any(text: str, keywords: Tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)
