import json
import logging

from mentormatch.core.logging_config import JSONFormatter, generate_request_id, request_id_var, set_request_id


def _record(**extra):
    record = logging.LogRecord("mentormatch", logging.INFO, __file__, 1, "application a1: pending -> approved",
                               None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_carries_request_id_and_event_fields():
    token = request_id_var.set("")
    try:
        set_request_id("abc12345")
        line = json.loads(JSONFormatter().format(_record(event_type="transition", actor="sup-1", unrelated="x")))
    finally:
        request_id_var.reset(token)

    assert line["request_id"] == "abc12345"
    assert line["event_type"] == "transition"
    assert line["actor"] == "sup-1"
    assert "unrelated" not in line


def test_generate_request_id_is_short_and_unique():
    ids = {generate_request_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(len(i) == 8 for i in ids)
