from __future__ import annotations

import logging
from pathlib import Path

from .config import Settings

logger = logging.getLogger(__name__)


def wrap_in_email_shell(body_html: str, signature_html: str = "") -> str:
    """Build the minimal HTML document sent as the mail body.

    The signature is appended verbatim after the converted body.
    """

    return f"<html><body>{body_html}{signature_html}</body></html>"


def build_preview_html(subject: str, body_html: str, signature_html: str = "") -> str:
    return f"<h4>主旨: {_escape_title(subject)}</h4><hr>{body_html}{signature_html}"


def load_signature(settings: Settings) -> str:
    if settings.signature_html:
        return settings.signature_html
    if not settings.signature_file:
        return ""
    try:
        return Path(settings.signature_file).read_text(encoding="utf-8")
    except OSError as exc:
        logger.error("load_signature: cannot read %s: %s", settings.signature_file, exc)
        return ""


def _escape_title(title: str) -> str:
    return (
        title.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )
