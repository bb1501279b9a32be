import io
import json
import logging

import pytest

from app.core.config import Settings
from app.core.logging import (
    JsonFormatter,
    RequestContextFilter,
    init_logging,
    request_id_ctx,
    request_path_ctx,
)


def test_defaults_match_daily_feed_policy():
    s = Settings()
    assert s.rates_fresh_window_seconds == 8 * 3600
    assert s.rates_stale_window_seconds == 48 * 3600
    assert s.rates_max_attempts == 3
    assert s.rates_retry_backoff_seconds == 1.0
    assert s.port == 3000


def test_port_override_from_environment(monkeypatch):
    monkeypatch.setenv("PORT", "8080")
    assert Settings().port == 8080


@pytest.mark.parametrize(
    "kwargs",
    [
        {"exchange_rate_provider": "bogus"},
        {"rates_max_attempts": 0},
        {"rates_fresh_window_seconds": 100, "rates_stale_window_seconds": 50},
    ],
)
def test_invalid_settings_rejected(kwargs):
    with pytest.raises(ValueError):
        Settings(**kwargs).init_post_load()


def test_json_log_lines_carry_request_id():
    record = logging.LogRecord("app.rates.cache", logging.WARNING, __file__, 1, "attempt %d failed", (2,), None)
    token = request_id_ctx.set("rid-1")
    try:
        RequestContextFilter().filter(record)
    finally:
        request_id_ctx.reset(token)
    line = json.loads(JsonFormatter().format(record))
    assert line["message"] == "attempt 2 failed"
    assert line["request_id"] == "rid-1"
    assert line["level"] == "WARNING"
    assert line["logger"] == "app.rates.cache"
    assert line["path"] == "-"


def test_extra_fields_and_request_path_reach_the_log_line():
    stream = io.StringIO()
    init_logging(debug=False, stream=stream)
    id_token = request_id_ctx.set("rid-2")
    path_token = request_path_ctx.set("/convert")
    try:
        logging.getLogger("app.rates.cache").warning(
            "attempt failed", extra={"attempt": 3, "source": "ecb"}
        )
    finally:
        request_path_ctx.reset(path_token)
        request_id_ctx.reset(id_token)
    line = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert line["path"] == "/convert"
    assert line["request_id"] == "rid-2"
    assert line["attempt"] == 3
    assert line["source"] == "ecb"
    assert "args" not in line
