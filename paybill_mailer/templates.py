from __future__ import annotations

from datetime import date
from typing import Container, Mapping

from .deadline import resolve_deadline
from .models import RenderedEmail, TemplatePair
from .utils import format_roc_date, to_roc_year

TOKEN_ROC_YEAR = "{{rocYear}}"
TOKEN_CURRENT_MONTH = "{{currentMonth}}"
TOKEN_NEXT_ROC_YEAR = "{{nextRocYear}}"
TOKEN_DEADLINE_DATE = "{{deadlineDate}}"


def substitute(text: str, values: Mapping[str, str]) -> str:
    """Replace every literal occurrence of each token; unknown tokens stay as-is."""

    for token, value in values.items():
        text = text.replace(token, value)
    return text


def select_templates(normal: TemplatePair, year_end: TemplatePair, month: int) -> TemplatePair:
    return year_end if month == 12 else normal


def render_email(
    *,
    normal: TemplatePair,
    year_end: TemplatePair,
    year: int,
    month: int,
    holidays: Container[date],
    workdays: Container[date],
) -> RenderedEmail:
    templates = select_templates(normal, year_end, month)
    roc_year = to_roc_year(year)
    deadline = resolve_deadline(year, month, holidays, workdays)

    values = {
        TOKEN_ROC_YEAR: str(roc_year),
        TOKEN_CURRENT_MONTH: str(month),
        TOKEN_DEADLINE_DATE: format_roc_date(deadline),
    }
    if month == 12:
        values[TOKEN_NEXT_ROC_YEAR] = str(roc_year + 1)

    return RenderedEmail(
        subject=substitute(templates.subject or "", values),
        body=substitute(templates.body or "", values),
    )
