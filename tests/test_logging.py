import json
import logging

from helpdesk.core.logging import JsonLogFormatter
from helpdesk.middlewares import request_id_ctx_var


def _record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("helpdesk.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_merges_extra_data_and_request_id():
    token = request_id_ctx_var.set("abc123")
    try:
        line = JsonLogFormatter(service="Help Desk").format(_record("ticket.created", extra_data={"ticket_id": 5}))
    finally:
        request_id_ctx_var.reset(token)
    payload = json.loads(line)
    assert payload["message"] == "ticket.created"
    assert payload["service"] == "Help Desk"
    assert payload["request_id"] == "abc123"
    assert payload["ticket_id"] == 5
    assert payload["timestamp"].endswith("Z")


def test_formatter_omits_empty_context():
    payload = json.loads(JsonLogFormatter().format(_record("startup")))
    assert "request_id" not in payload
    assert "principal" not in payload
    assert "service" not in payload
