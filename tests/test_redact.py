from __future__ import annotations

from stingray._redact import redact_url_for_log


def test_redact_url_for_log_masks_sensitive_keys() -> None:
    url = "https://collector.example/b.gif?page=home&token=abc123&Password=hunter2"

    redacted = redact_url_for_log(url)

    assert "abc123" not in redacted
    assert "hunter2" not in redacted
    assert "page=home" in redacted
    assert "token=%3Credacted%3E" in redacted


def test_redact_url_for_log_truncates_long_urls() -> None:
    url = "https://collector.example/b.gif?data=" + "x" * 600

    redacted = redact_url_for_log(url, max_length=40)

    assert redacted.startswith(url[:40])
    assert "<truncated:" in redacted


def test_redact_url_for_log_leaves_plain_urls_alone() -> None:
    assert redact_url_for_log("https://collector.example/b.gif") == "https://collector.example/b.gif"
