"""
Tests for prpay/api/v1/agent.py - payments-only and full agent sessions over HTTP.
"""
import asyncio

import pytest


@pytest.fixture
def scripted(client):
    """Install a scripted completion backend for the next request."""
    from prpay.api.deps import get_completion_backend
    from prpay.main import app
    from tests.utils.fakes import ScriptedCompletionBackend

    def install(turns):
        backend = ScriptedCompletionBackend(turns)
        app.dependency_overrides[get_completion_backend] = lambda: backend
        return backend

    return install


class TestPaymentsChat:
    """POST /api/v1/agent/chat"""

    def test_payment_flow(self, client, scripted, payment_backend):
        from tests.utils.fakes import text_turn, tool_call, tool_turn

        scripted([
            tool_turn(tool_call("locus_payment", {"prompt": "send 5 usdc to 0xdeadbeef"}, id="p1")),
            text_turn("Sent 5 USDC to 0xdeadbeef."),
        ])

        response = client.post("/api/v1/agent/chat", json={"message": "Send 5 USDC to 0xdeadbeef"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["text"] == "Sent 5 USDC to 0xdeadbeef."
        assert body["toolCalls"] == [{"id": "p1", "name": "locus_payment", "arguments": {"prompt": "send 5 usdc to 0xdeadbeef"}}]
        assert body["toolResults"][0]["success"] is True
        assert body["toolResults"][0]["data"]["result"] == payment_backend.result
        assert isinstance(body["toolResults"][0]["executionTimeMs"], int)

    def test_database_tools_denied(self, client, scripted, memory_store):
        from tests.utils.fakes import text_turn, tool_call, tool_turn

        scripted([
            tool_turn(tool_call("delete_data", {"tableName": "contractors", "filters": {"id": 1}}, id="d1")),
            text_turn("I can only make payments."),
        ])

        body = client.post("/api/v1/agent/chat", json={"message": "delete contractor 1"}).json()

        assert body["toolResults"][0]["success"] is False
        assert body["toolResults"][0]["error"] == "Only payment tools are allowed"
        assert body["toolResults"][0]["errorType"] == "denied"
        assert len(memory_store.tables["contractors"]) == 2

    @pytest.mark.parametrize("missing_key", ["OPENAI_API_KEY", "LOCUS_API_KEY"])
    def test_missing_credentials(self, client, scripted, monkeypatch, missing_key):
        from prpay.core.config import settings

        backend = scripted([])
        monkeypatch.setattr(settings, missing_key, None)

        response = client.post("/api/v1/agent/chat", json={"message": "pay"})

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": f"Missing required configuration: {missing_key}"}
        assert backend.requests == []

    def test_empty_message_rejected(self, client):
        response = client.post("/api/v1/agent/chat", json={"message": ""})

        assert response.status_code == 422

    def test_completion_failure(self, client, scripted):
        scripted([RuntimeError("model overloaded")])

        response = client.post("/api/v1/agent/chat", json={"message": "pay"})

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "model overloaded"}

    def test_request_timeout(self, client, monkeypatch):
        from prpay.api.deps import get_completion_backend
        from prpay.core.config import settings
        from prpay.main import app
        from tests.utils.fakes import text_turn

        class SlowBackend:
            async def complete(self, messages, tools):
                await asyncio.sleep(1)
                return text_turn("late")

        app.dependency_overrides[get_completion_backend] = lambda: SlowBackend()
        monkeypatch.setattr(settings, "AGENT_REQUEST_TIMEOUT_SECONDS", 0.01)

        response = client.post("/api/v1/agent/chat", json={"message": "pay"})

        assert response.status_code == 504
        assert response.json()["success"] is False


class TestFullChat:
    """POST /api/v1/agent/chat/full"""

    def test_read_then_answer(self, client, scripted):
        from tests.utils.fakes import text_turn, tool_call, tool_turn

        scripted([
            tool_turn(tool_call("read_table", {"tableName": "orders", "filters": {"status": "active"}, "limit": 2}, id="r1")),
            text_turn("There are active orders."),
        ])

        body = client.post("/api/v1/agent/chat/full", json={"message": "show active orders"}).json()

        assert body["success"] is True
        data = body["toolResults"][0]["data"]
        assert data["count"] == 2
        assert body["iterations"] == 2

    def test_empty_table_seeded_before_insert(self, client, scripted, memory_store):
        from tests.utils.fakes import text_turn, tool_call, tool_turn

        scripted([
            tool_turn(tool_call("get_table_schema", {"tableName": "invoices"}, id="s1")),
            tool_turn(tool_call("get_table_schema", {"tableName": "invoices", "insertSampleData": True}, id="s2")),
            tool_turn(tool_call("insert_data", {"tableName": "invoices", "data": {"amount": 42}}, id="i1")),
            text_turn("Created."),
        ])

        body = client.post("/api/v1/agent/chat/full", json={"message": "add an invoice for 42"}).json()

        assert [r["success"] for r in body["toolResults"]] == [True, True, True]
        assert body["toolResults"][1]["data"]["sampleDataInserted"] is True
        assert memory_store.tables["invoices"][-1]["amount"] == 42

    @pytest.mark.parametrize("missing_key", ["OPENAI_API_KEY", "LOCUS_API_KEY"])
    def test_missing_credentials(self, client, scripted, monkeypatch, missing_key):
        from prpay.core.config import settings

        backend = scripted([])
        monkeypatch.setattr(settings, missing_key, None)

        response = client.post("/api/v1/agent/chat/full", json={"message": "hi"})

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": f"Missing required configuration: {missing_key}"}
        assert backend.requests == []

    def test_missing_table_store_config(self, client, scripted, monkeypatch):
        """Without the fake store override, the real provider checks configuration."""
        from prpay.api.deps import get_table_store
        from prpay.core.config import settings
        from prpay.main import app

        scripted([])
        app.dependency_overrides.pop(get_table_store, None)
        monkeypatch.setattr(settings, "SUPABASE_URL", None)

        response = client.post("/api/v1/agent/chat/full", json={"message": "hi"})

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Missing required configuration: SUPABASE_URL"}
