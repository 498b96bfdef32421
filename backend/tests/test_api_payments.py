"""
Tests for prpay/api/v1/payments.py - contractor payment summary.
"""
from unittest.mock import AsyncMock


class TestPaymentSummary:
    """GET /api/v1/payments/summary"""

    def test_summary(self, client):
        response = client.get("/api/v1/payments/summary", params={"contractorId": "1"})

        assert response.status_code == 200
        body = response.json()
        assert body["contractor"]["personName"] == "Mona Lisa"
        assert body["summary"] == {
            "totalPaid": 100.0,
            "totalPending": 50.0,
            "remainingAmount": 400.0,
            "totalAmountPayable": 500.0,
        }
        assert len(body["payments"]) == 3

    def test_contractor_id_required(self, client):
        response = client.get("/api/v1/payments/summary")

        assert response.status_code == 400
        assert response.json() == {"error": "contractorId is required"}

    def test_unknown_contractor(self, client):
        response = client.get("/api/v1/payments/summary", params={"contractorId": "999"})

        assert response.status_code == 404
        assert response.json() == {"error": "Contractor not found"}

    def test_store_error(self, client, memory_store):
        from prpay.connectors.table_store import TableStoreError

        memory_store.select = AsyncMock(side_effect=TableStoreError("timeout"))

        response = client.get("/api/v1/payments/summary", params={"contractorId": "1"})

        assert response.status_code == 500
        assert response.json() == {"error": "timeout"}
