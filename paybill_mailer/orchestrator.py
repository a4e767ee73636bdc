from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from . import config
from .config import HOLIDAY_CACHE_MAX_AGE
from .deadline import resolve_send_date
from .holiday_cache import HolidayCache, is_stale
from .holiday_feed import fetch_holiday_feed
from .html_email import build_preview_html, load_signature, wrap_in_email_shell
from .mailer import MailError, MailSender, build_mailer
from .markup import markdown_to_html
from .models import DispatchResult, HolidayCacheRecord
from .templates import render_email
from .utils import today_taipei, utc_now

logger = logging.getLogger(__name__)

OP_SEND_MONTHLY = "send_monthly"
OP_SEND_PREVIEW = "send_preview"
OP_RENDER_PREVIEW = "render_preview"

PREVIEW_KINDS = {"normal": 1, "december": 12}


def build_holiday_cache(settings: config.Settings) -> HolidayCache:
    return HolidayCache(
        lambda: fetch_holiday_feed(settings.holiday_feed_url),
        path=settings.holiday_cache_path,
    )


def current_holidays(cache: HolidayCache, *, now: Optional[datetime] = None) -> HolidayCacheRecord:
    record = cache.get_current()
    now = now or utc_now()
    if is_stale(record, HOLIDAY_CACHE_MAX_AGE, now):
        logger.info("Holiday data fetched at %s is stale; refreshing", record.fetched_at.isoformat())
        record = cache.refresh()
    return record


def run_scheduled(
    settings: config.Settings,
    *,
    today: Optional[date] = None,
    cache: Optional[HolidayCache] = None,
    mailer: Optional[MailSender] = None,
) -> DispatchResult:
    today = today or today_taipei()
    record = current_holidays(cache or build_holiday_cache(settings))

    send_date = resolve_send_date(today.year, today.month, record.holidays, record.workdays)
    if send_date is None:
        logger.info(
            "%s: no working day on or before the anchor in %s-%02d; nothing to send this month.",
            OP_SEND_MONTHLY,
            today.year,
            today.month,
        )
        return DispatchResult(operation=OP_SEND_MONTHLY, status="skipped")
    if send_date != today:
        logger.info(
            "%s: today (%s) is not the send date (%s); nothing sent.",
            OP_SEND_MONTHLY,
            today.isoformat(),
            send_date.isoformat(),
        )
        return DispatchResult(operation=OP_SEND_MONTHLY, status="skipped", send_date=send_date)

    logger.info("%s: today (%s) is the send date; preparing mail.", OP_SEND_MONTHLY, today.isoformat())
    return _dispatch(
        OP_SEND_MONTHLY,
        settings,
        recipient=settings.recipient,
        today=today,
        record=record,
        mailer=mailer,
        send_date=send_date,
    )


def send_preview(
    settings: config.Settings,
    *,
    to_email: Optional[str] = None,
    today: Optional[date] = None,
    cache: Optional[HolidayCache] = None,
    mailer: Optional[MailSender] = None,
) -> DispatchResult:
    recipient = to_email or settings.preview_to_email or settings.from_email
    today = today or today_taipei()
    record = current_holidays(cache or build_holiday_cache(settings))
    logger.info("%s: sending preview to %s", OP_SEND_PREVIEW, recipient)
    return _dispatch(
        OP_SEND_PREVIEW,
        settings,
        recipient=recipient,
        today=today,
        record=record,
        mailer=mailer,
    )


def render_preview(
    settings: config.Settings,
    kind: str,
    *,
    year: Optional[int] = None,
    cache: Optional[HolidayCache] = None,
) -> str:
    """Render the normal or december templates to preview HTML without sending."""

    if kind not in PREVIEW_KINDS:
        raise ValueError(f"Unknown template kind: {kind!r} (expected one of {sorted(PREVIEW_KINDS)})")
    year = year or today_taipei().year
    record = current_holidays(cache or build_holiday_cache(settings))
    rendered = render_email(
        normal=settings.normal,
        year_end=settings.year_end,
        year=year,
        month=PREVIEW_KINDS[kind],
        holidays=record.holidays,
        workdays=record.workdays,
    )
    logger.info("%s: rendered %s templates for %s", OP_RENDER_PREVIEW, kind, year)
    return build_preview_html(rendered.subject, markdown_to_html(rendered.body), load_signature(settings))


def _dispatch(
    operation: str,
    settings: config.Settings,
    *,
    recipient: Optional[str],
    today: date,
    record: HolidayCacheRecord,
    mailer: Optional[MailSender],
    send_date: Optional[date] = None,
) -> DispatchResult:
    rendered = render_email(
        normal=settings.normal,
        year_end=settings.year_end,
        year=today.year,
        month=today.month,
        holidays=record.holidays,
        workdays=record.workdays,
    )

    missing = [
        name
        for name, value in (("recipient", recipient), ("subject", rendered.subject), ("body", rendered.body))
        if not value
    ]
    if missing:
        error = f"Not configured: {', '.join(missing)}."
        logger.error("%s: %s Mail not sent.", operation, error)
        return DispatchResult(
            operation=operation,
            status="failed",
            recipient=recipient,
            subject=rendered.subject or None,
            send_date=send_date,
            error=error,
            error_kind="config",
        )

    if mailer is None:
        try:
            mailer = build_mailer(
                brevo_api_key=settings.brevo_api_key,
                sendgrid_api_key=settings.sendgrid_api_key,
                from_email=settings.from_email,
                from_name=settings.sender_name,
            )
        except MailError as exc:
            logger.error("%s: %s", operation, exc)
            return DispatchResult(
                operation=operation,
                status="failed",
                recipient=recipient,
                subject=rendered.subject,
                send_date=send_date,
                error=str(exc),
                error_kind="config",
            )
    logger.info("Using mail provider=%s", mailer.provider)

    html_body = wrap_in_email_shell(markdown_to_html(rendered.body), load_signature(settings))
    try:
        mailer.send(
            to_email=recipient,
            subject=rendered.subject,
            html_body=html_body,
            text_body=rendered.body,
        )
    except MailError as exc:
        logger.exception("%s: mail sending failed: %s", operation, exc)
        return DispatchResult(
            operation=operation,
            status="failed",
            recipient=recipient,
            subject=rendered.subject,
            send_date=send_date,
            error=str(exc),
            error_kind="transport",
        )

    logger.info("%s: mail sent to %s", operation, recipient)
    return DispatchResult(
        operation=operation,
        status="sent",
        recipient=recipient,
        subject=rendered.subject,
        send_date=send_date,
    )
