"""Unit tests for the JSON log formatter."""

import json
import logging

from shared.logging_config import JSONFormatter


def _record(level=logging.INFO, **extra):
    record = logging.LogRecord("agent.orchestrator", level, __file__, 42, "Turn done | tokens=%s", (10,), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "agent.orchestrator"
        assert entry["message"] == "Turn done | tokens=10"
        assert "source" not in entry

    def test_extra_fields_copied(self):
        entry = json.loads(JSONFormatter().format(_record(conversation_id="conv-1", client_id=7)))

        assert entry["conversation_id"] == "conv-1"
        assert entry["client_id"] == 7
        assert "tool_name" not in entry

    def test_errors_carry_source(self):
        entry = json.loads(JSONFormatter().format(_record(level=logging.ERROR)))

        assert entry["source"].endswith(":42")
