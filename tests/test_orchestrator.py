from __future__ import annotations

from datetime import date
from typing import Any, Dict, List

import pytest

from paybill_mailer.config import Settings
from paybill_mailer.holiday_cache import HolidayCache
from paybill_mailer.holiday_feed import HolidayFeedError
from paybill_mailer.mailer import MailError
from paybill_mailer.models import TemplatePair
from paybill_mailer.orchestrator import render_preview, run_scheduled, send_preview

NORMAL = TemplatePair(
    subject="【通知】{{rocYear}}年{{currentMonth}}月款項申請(至{{deadlineDate}}前截止)",
    body="各位同仁好：\n請於 **紅字**{{deadlineDate}}**紅字** 前完成申請。\n- 發票\n- 收據",
)
YEAR_END = TemplatePair(
    subject="【通知】{{rocYear}}年{{currentMonth}}月款項申請",
    body="{{nextRocYear}}年度帳務將於{{deadlineDate}}關帳。",
)


class FakeMailer:
    provider = "fake"

    def __init__(self) -> None:
        self.sent: List[Dict[str, Any]] = []

    def send(self, *, to_email: str, subject: str, html_body: str, text_body: str | None = None) -> None:
        self.sent.append({"to": to_email, "subject": subject, "html": html_body, "text": text_body})


class FailingMailer:
    provider = "failing"

    def send(self, **kwargs: Any) -> None:
        raise MailError("SMTP relay refused the message")


def _settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = dict(
        from_email="accounting@example.com",
        sender_name="會計室",
        recipient="staff@example.com",
        normal=NORMAL,
        year_end=YEAR_END,
        signature_html="<p>-- 會計室</p>",
    )
    values.update(overrides)
    return Settings(**values)


def _feed(*holidays: date) -> str:
    events = [
        f"BEGIN:VEVENT\nDTSTART;VALUE=DATE:{d:%Y%m%d}\nSUMMARY:假日\nDESCRIPTION:國定假日\nEND:VEVENT"
        for d in holidays
    ]
    return "BEGIN:VCALENDAR\n" + "\n".join(events) + "\nEND:VCALENDAR\n"


def _cache(*holidays: date) -> HolidayCache:
    return HolidayCache(lambda: _feed(*holidays))


def test_sends_on_resolved_send_date():
    mailer = FakeMailer()
    result = run_scheduled(_settings(), today=date(2024, 8, 23), cache=_cache(), mailer=mailer)

    assert result.status == "sent"
    assert result.send_date == date(2024, 8, 23)
    assert len(mailer.sent) == 1
    mail = mailer.sent[0]
    assert mail["to"] == "staff@example.com"
    assert mail["subject"] == "【通知】113年8月款項申請(至113年9月5日前截止)"
    assert mail["html"].startswith("<html><body>各位同仁好：<br>\n")
    assert "<ul><li>發票</li>\n<li>收據</li>\n</ul>" in mail["html"]
    assert mail["html"].endswith("<p>-- 會計室</p></body></html>")
    assert "**紅字**" in mail["text"]


def test_skips_when_today_is_not_send_date():
    mailer = FakeMailer()
    result = run_scheduled(_settings(), today=date(2024, 8, 25), cache=_cache(), mailer=mailer)

    assert result.status == "skipped"
    assert result.send_date == date(2024, 8, 23)
    assert mailer.sent == []


def test_skips_when_month_has_no_send_date():
    mailer = FakeMailer()
    holidays = [date(2024, 8, day) for day in range(1, 26)]
    result = run_scheduled(_settings(), today=date(2024, 8, 23), cache=_cache(*holidays), mailer=mailer)

    assert result.status == "skipped"
    assert result.send_date is None
    assert mailer.sent == []


def test_holiday_moves_send_date_and_deadline():
    mailer = FakeMailer()
    cache = _cache(date(2024, 10, 25), date(2024, 11, 5))
    assert run_scheduled(_settings(), today=date(2024, 10, 25), cache=cache, mailer=mailer).status == "skipped"

    result = run_scheduled(_settings(), today=date(2024, 10, 24), cache=cache, mailer=mailer)
    assert result.status == "sent"
    assert "113年11月6日" in mailer.sent[0]["subject"]


def test_feed_failure_falls_back_to_weekends():
    def failing_fetch() -> str:
        raise HolidayFeedError("timeout")

    mailer = FakeMailer()
    result = run_scheduled(_settings(), today=date(2024, 8, 23), cache=HolidayCache(failing_fetch), mailer=mailer)
    assert result.status == "sent"


def test_missing_recipient_is_a_config_failure():
    mailer = FakeMailer()
    result = run_scheduled(_settings(recipient=None), today=date(2024, 8, 23), cache=_cache(), mailer=mailer)

    assert result.status == "failed"
    assert result.error_kind == "config"
    assert "recipient" in (result.error or "")
    assert mailer.sent == []


def test_empty_template_is_a_config_failure():
    mailer = FakeMailer()
    settings = _settings(normal=TemplatePair(subject="主旨", body=""))
    result = run_scheduled(settings, today=date(2024, 8, 23), cache=_cache(), mailer=mailer)

    assert result.status == "failed"
    assert result.error_kind == "config"
    assert mailer.sent == []


def test_missing_mail_provider_is_a_config_failure():
    result = run_scheduled(_settings(), today=date(2024, 8, 23), cache=_cache())
    assert result.status == "failed"
    assert result.error_kind == "config"


def test_transport_failure_is_reported_separately():
    result = run_scheduled(_settings(), today=date(2024, 8, 23), cache=_cache(), mailer=FailingMailer())

    assert result.status == "failed"
    assert result.error_kind == "transport"
    assert "refused" in (result.error or "")


def test_preview_sends_immediately_to_fallback_address():
    mailer = FakeMailer()
    result = send_preview(_settings(), today=date(2024, 8, 2), cache=_cache(), mailer=mailer)
    assert result.status == "sent"
    assert mailer.sent[0]["to"] == "accounting@example.com"

    send_preview(_settings(preview_to_email="me@example.com"), today=date(2024, 8, 2), cache=_cache(), mailer=mailer)
    assert mailer.sent[1]["to"] == "me@example.com"

    send_preview(_settings(), to_email="other@example.com", today=date(2024, 8, 2), cache=_cache(), mailer=mailer)
    assert mailer.sent[2]["to"] == "other@example.com"


def test_render_preview_december():
    html = render_preview(_settings(), "december", year=2024, cache=_cache())
    assert html.startswith("<h4>主旨: 【通知】113年12月款項申請</h4><hr>")
    assert "114年度帳務將於114年1月6日關帳。<br>\n" in html
    assert html.endswith("<p>-- 會計室</p>")


def test_render_preview_normal_uses_january():
    html = render_preview(_settings(), "normal", year=2024, cache=_cache())
    assert "113年1月款項申請(至113年2月5日前截止)" in html


def test_render_preview_rejects_unknown_kind():
    with pytest.raises(ValueError):
        render_preview(_settings(), "weekly", year=2024, cache=_cache())


def test_invalid_feed_url_still_sends_with_weekend_only_skipping(tmp_path):
    mailer = FakeMailer()
    settings = _settings(holiday_feed_url="http://[::1", holiday_cache_path=str(tmp_path / "holidays.json"))

    assert run_scheduled(settings, today=date(2024, 8, 25), mailer=mailer).status == "skipped"
    result = run_scheduled(settings, today=date(2024, 8, 23), mailer=mailer)

    assert result.status == "sent"
    assert result.send_date == date(2024, 8, 23)
    assert len(mailer.sent) == 1
