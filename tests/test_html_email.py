from __future__ import annotations

from paybill_mailer.config import Settings
from paybill_mailer.html_email import build_preview_html, load_signature, wrap_in_email_shell


def _settings(**overrides) -> Settings:
    return Settings(from_email="from@example.com", sender_name="From", **overrides)


def test_wrap_appends_signature_verbatim():
    html = wrap_in_email_shell("內文<br>\n", "<div>簽名 &amp; 聯絡方式</div>")
    assert html == "<html><body>內文<br>\n<div>簽名 &amp; 聯絡方式</div></body></html>"


def test_wrap_without_signature():
    assert wrap_in_email_shell("x") == "<html><body>x</body></html>"


def test_preview_escapes_subject():
    html = build_preview_html("<b>主旨</b>", "內文")
    assert html == "<h4>主旨: &lt;b&gt;主旨&lt;/b&gt;</h4><hr>內文"


def test_load_signature_prefers_inline_html(tmp_path):
    path = tmp_path / "sig.html"
    path.write_text("<p>file</p>", encoding="utf-8")
    assert load_signature(_settings(signature_html="<p>inline</p>", signature_file=str(path))) == "<p>inline</p>"
    assert load_signature(_settings(signature_file=str(path))) == "<p>file</p>"


def test_load_signature_missing_is_empty(tmp_path):
    assert load_signature(_settings()) == ""
    assert load_signature(_settings(signature_file=str(tmp_path / "missing.html"))) == ""
