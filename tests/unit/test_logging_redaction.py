import logging

from app.utils.logging_redaction import RedactingFilter, redact_message


def test_fred_api_key_in_query_string_is_redacted():
    url = "GET https://api.stlouisfed.org/fred/series/observations?series_id=DGS10&api_key=abc123&limit=5"
    redacted = redact_message(url)
    assert "abc123" not in redacted
    assert "api_key=[REDACTED]&limit=5" in redacted


def test_bearer_and_header_tokens_are_redacted():
    assert redact_message("Authorization: Bearer tok.en-1") == "Authorization: Bearer [REDACTED]"
    assert "secret" not in redact_message("x-cg-demo-api-key: secret")


def test_plain_messages_untouched():
    assert redact_message("BTC 12.5% below 200D MA") == "BTC 12.5% below 200D MA"


def test_filter_rewrites_record():
    record = logging.LogRecord(
        name="test", level=logging.INFO, pathname=__file__, lineno=1,
        msg="fetch %s", args=("?api_key=zzz",), exc_info=None,
    )
    assert RedactingFilter().filter(record) is True
    assert record.getMessage() == "fetch ?api_key=[REDACTED]"
