from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta, timezone
from pathlib import Path

from .models import TemplatePair

TAIPEI = timezone(timedelta(hours=8))

# --------------------------------
# 設定值

# 民國紀年 = 西元年 - 1911
ROC_YEAR_OFFSET = 1911

# 每月寄信基準日（遇假日往前推）
SEND_ANCHOR_DAY = 25

# 繳費截止基準日（次月 5 日，遇假日往後推）
DEADLINE_ANCHOR_DAY = 5

# Google 日曆「台灣的節慶假日」公開 ICS
DEFAULT_HOLIDAY_FEED_URL = (
    "https://calendar.google.com/calendar/ical/"
    "zh-tw.taiwan%23holiday%40group.v.calendar.google.com/public/basic.ics"
)
HOLIDAY_FEED_TIMEOUT_SECONDS = 20.0

# 行事曆事件判斷關鍵字
WORKDAY_TITLE_KEYWORDS = ("補行上班", "補班")
HOLIDAY_DESCRIPTION_KEYWORDS = ("國定假日",)
OBSERVED_HOLIDAY_TITLE_KEYWORDS = ("補假",)

# 假日快取多久後視為過期
HOLIDAY_CACHE_MAX_AGE = timedelta(hours=24)
DEFAULT_HOLIDAY_CACHE_PATH = ".cache/holidays.json"
# --------------------------------


@dataclass(frozen=True)
class Settings:
    from_email: str
    sender_name: str
    recipient: str | None = None
    normal: TemplatePair = TemplatePair()
    year_end: TemplatePair = TemplatePair()
    brevo_api_key: str | None = None
    sendgrid_api_key: str | None = None
    preview_to_email: str | None = None
    signature_html: str | None = None
    signature_file: str | None = None
    holiday_feed_url: str = DEFAULT_HOLIDAY_FEED_URL
    holiday_cache_path: str = DEFAULT_HOLIDAY_CACHE_PATH

    @staticmethod
    def from_env() -> "Settings":
        def require(name: str) -> str:
            value = os.getenv(name)
            if value is None or not value.strip():
                raise ValueError(f"Environment variable {name} is required.")
            return value.strip()

        def optional_with_default(name: str, default: str) -> str:
            value = os.getenv(name)
            if value is None or not value.strip():
                return default
            return value.strip()

        def optional(name: str) -> str | None:
            value = os.getenv(name)
            if value is None or not value.strip():
                return None
            return value.strip()

        def template(name: str) -> str:
            # 內文可能多行，不做 strip；也可改由檔案提供
            value = os.getenv(name)
            if value:
                return value
            path = optional(f"{name}_FILE")
            if path is None:
                return ""
            try:
                return Path(path).read_text(encoding="utf-8")
            except OSError as exc:
                raise ValueError(f"Cannot read {name}_FILE={path!r}: {exc}") from exc

        from_email = require("FROM_EMAIL")
        return Settings(
            from_email=from_email,
            sender_name=optional_with_default("SENDER_NAME", from_email),
            recipient=optional("RECIPIENT"),
            normal=TemplatePair(subject=template("SUBJECT_NORMAL"), body=template("BODY_NORMAL")),
            year_end=TemplatePair(subject=template("SUBJECT_DECEMBER"), body=template("BODY_DECEMBER")),
            brevo_api_key=optional("BREVO_API_KEY"),
            sendgrid_api_key=optional("SENDGRID_API_KEY"),
            preview_to_email=optional("PREVIEW_TO_EMAIL"),
            signature_html=os.getenv("SIGNATURE_HTML") or None,
            signature_file=optional("SIGNATURE_FILE"),
            holiday_feed_url=optional_with_default("HOLIDAY_FEED_URL", DEFAULT_HOLIDAY_FEED_URL),
            holiday_cache_path=optional_with_default("HOLIDAY_CACHE_PATH", DEFAULT_HOLIDAY_CACHE_PATH),
        )
