"""
Unit tests for logging configuration.
"""

import json
import logging

from sightings.logging_config import ContextFilter, JsonFormatter, request_id_var, user_id_var


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("sightings.test", logging.INFO, __file__, 1, "Published %s", ("r1",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestContextFilter:

    def test_fills_from_context(self):
        request_token = request_id_var.set("req-1")
        user_token = user_id_var.set("user-u")
        try:
            record = make_record()
            assert ContextFilter().filter(record) is True
        finally:
            user_id_var.reset(user_token)
            request_id_var.reset(request_token)
        assert record.request_id == "req-1"
        assert record.user_id == "user-u"

    def test_placeholder_outside_request(self):
        record = make_record()
        ContextFilter().filter(record)
        assert record.request_id == "-"
        assert record.user_id == "-"

    def test_explicit_extra_wins(self):
        token = user_id_var.set("from-context")
        try:
            record = make_record(user_id="from-extra")
            ContextFilter().filter(record)
        finally:
            user_id_var.reset(token)
        assert record.user_id == "from-extra"


class TestJsonFormatter:

    def test_structured_fields(self):
        record = make_record(item_id="abc", revision_id=1, request_id="req-9", user_id="-")
        data = json.loads(JsonFormatter().format(record))
        assert data["message"] == "Published r1"
        assert data["level"] == "INFO"
        assert data["logger"] == "sightings.test"
        assert data["item_id"] == "abc"
        assert data["revision_id"] == 1
        assert data["request_id"] == "req-9"
        # Placeholders are not emitted
        assert "user_id" not in data

    def test_unserializable_values_are_stringified(self):
        record = make_record(roles={"moderator"})
        data = json.loads(JsonFormatter().format(record))
        assert data["roles"] == str({"moderator"})
