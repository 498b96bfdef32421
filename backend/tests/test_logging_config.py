"""
Tests for prpay/core/logging_config.py - request-scoped log context and formatters.
"""
import json
import logging

import pytest


class _CapturingHandler(logging.Handler):
    def __init__(self):
        from prpay.core.logging_config import RequestContextFilter

        super().__init__(level=logging.DEBUG)
        self.addFilter(RequestContextFilter())
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def captured():
    handler = _CapturingHandler()
    root = logging.getLogger()
    root.addHandler(handler)
    yield handler
    root.removeHandler(handler)


def _record(msg="hello", **extra):
    record = logging.LogRecord("prpay.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestRequestContextFilter:
    """Request id binding"""

    def test_stamps_bound_request_id(self):
        from prpay.core.logging_config import RequestContextFilter, request_id_var

        token = request_id_var.set("abc12345")
        try:
            record = _record()
            assert RequestContextFilter().filter(record) is True
        finally:
            request_id_var.reset(token)

        assert record.request_id == "abc12345"

    def test_no_request_bound(self):
        from prpay.core.logging_config import RequestContextFilter

        record = _record()
        RequestContextFilter().filter(record)

        assert record.request_id is None

    def test_explicit_request_id_kept(self):
        from prpay.core.logging_config import RequestContextFilter, request_id_var

        token = request_id_var.set("outer")
        try:
            record = _record(request_id="explicit")
            RequestContextFilter().filter(record)
        finally:
            request_id_var.reset(token)

        assert record.request_id == "explicit"


class TestFormatters:
    """JSON and console output"""

    def test_json_includes_request_id_and_extras(self):
        from prpay.core.logging_config import JSONFormatter

        payload = json.loads(JSONFormatter().format(_record(request_id="r1", tool="read_table")))

        assert payload["request_id"] == "r1"
        assert payload["message"] == "hello"
        assert payload["extra"] == {"tool": "read_table"}

    def test_colored_shows_request_id(self):
        from prpay.core.logging_config import ColoredFormatter

        line = ColoredFormatter().format(_record(request_id="r1"))

        assert "prpay.test [r1] | hello" in line

    def test_colored_without_request(self):
        from prpay.core.logging_config import ColoredFormatter

        line = ColoredFormatter().format(_record(request_id=None))

        assert "prpay.test | hello" in line


class TestRequestLoggingMiddleware:
    """Request id propagation through a served request"""

    def test_agent_logs_carry_request_id(self, client, captured):
        from prpay.api.deps import get_completion_backend
        from prpay.core.logging_config import request_id_var
        from prpay.main import app
        from tests.utils.fakes import ScriptedCompletionBackend, text_turn

        app.dependency_overrides[get_completion_backend] = lambda: ScriptedCompletionBackend([text_turn("done")])

        response = client.post("/api/v1/agent/chat", json={"message": "balance?"})

        request_id = response.headers["x-request-id"]
        agent_records = [r for r in captured.records if r.name == "prpay.services.tools.agent"]
        access_records = [r for r in captured.records if r.name == "prpay.http"]
        assert response.status_code == 200
        assert len(request_id) == 8
        assert agent_records
        assert {r.request_id for r in agent_records} == {request_id}
        assert access_records[-1].request_id == request_id
        assert request_id_var.get() is None

    def test_each_request_gets_its_own_id(self, client):
        first = client.get("/").headers["x-request-id"]
        second = client.get("/").headers["x-request-id"]

        assert first != second
