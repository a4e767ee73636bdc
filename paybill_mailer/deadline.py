"""Send-date and payment-deadline resolution.

Both resolvers start from a fixed anchor day and step one day at a time until
they reach a working day. A date listed as a make-up workday is always a
working day, even on a weekend or when it is also listed as a holiday.

- Send date: 25th of the month, stepping backward. Crossing into the previous
  month means there is no send date that month.
- Deadline: 5th of the following month, stepping forward with no boundary.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Container, Optional

from .config import DEADLINE_ANCHOR_DAY, SEND_ANCHOR_DAY

_ONE_DAY = timedelta(days=1)


def is_weekend(d: date) -> bool:
    return d.weekday() >= 5


def is_working_day(d: date, holidays: Container[date], workdays: Container[date]) -> bool:
    if d in workdays:
        return True
    if is_weekend(d) or d in holidays:
        return False
    return True


def resolve_send_date(
    year: int,
    month: int,
    holidays: Container[date],
    workdays: Container[date],
) -> Optional[date]:
    candidate = date(year, month, SEND_ANCHOR_DAY)
    while candidate.month == month:
        if is_working_day(candidate, holidays, workdays):
            return candidate
        candidate -= _ONE_DAY
    return None


def resolve_deadline(
    year: int,
    month: int,
    holidays: Container[date],
    workdays: Container[date],
) -> date:
    if month == 12:
        candidate = date(year + 1, 1, DEADLINE_ANCHOR_DAY)
    else:
        candidate = date(year, month + 1, DEADLINE_ANCHOR_DAY)
    while not is_working_day(candidate, holidays, workdays):
        candidate += _ONE_DAY
    return candidate
