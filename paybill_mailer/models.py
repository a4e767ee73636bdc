from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import FrozenSet, Optional


@dataclass(frozen=True)
class TemplatePair:
    subject: str = ""
    body: str = ""


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    body: str  # markup source, not yet converted to HTML


@dataclass(frozen=True)
class HolidayCacheRecord:
    holidays: FrozenSet[date]
    workdays: FrozenSet[date]
    fetched_at: datetime

    @staticmethod
    def empty() -> "HolidayCacheRecord":
        return HolidayCacheRecord(
            holidays=frozenset(),
            workdays=frozenset(),
            fetched_at=datetime.now(timezone.utc),
        )

    def is_empty(self) -> bool:
        return not self.holidays and not self.workdays


@dataclass(frozen=True)
class DispatchResult:
    operation: str
    status: str  # "sent" | "skipped" | "failed"
    recipient: Optional[str] = None
    subject: Optional[str] = None
    send_date: Optional[date] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None  # "config" | "transport"

    def is_failure(self) -> bool:
        return self.status == "failed"
