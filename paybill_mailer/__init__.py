"""Monthly payment-notice mailer with holiday-aware deadlines."""

__all__ = [
    "config",
    "models",
    "holiday_feed",
    "holiday_cache",
    "deadline",
    "templates",
    "markup",
    "html_email",
    "mailer",
    "orchestrator",
]
