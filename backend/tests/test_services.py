"""
Tests for prpay/services/contractor_service.py and payment_summary_service.py.
"""
import pytest


class TestContractorService:
    """Contractor listing, registration and search."""

    @pytest.mark.asyncio
    async def test_list_newest_first(self, memory_store):
        from prpay.services.contractor_service import ContractorService

        contractors = await ContractorService(memory_store).list_contractors()

        assert [c["github_login"] for c in contractors] == ["hubot", "octocat"]

    @pytest.mark.asyncio
    async def test_create_maps_to_columns(self, memory_store):
        from prpay.schemas.contractors import ContractorCreate
        from prpay.services.contractor_service import ContractorService

        payload = ContractorCreate(
            githubLogin="newdev",
            personName="New Dev",
            repoName="hello-world",
            walletAddress="0x123",
            role="contributor",
            totalAmountPayable=250,
        )

        contractor = await ContractorService(memory_store).create_contractor(payload)

        assert contractor["github_login"] == "newdev"
        assert contractor["track_prs"] is False
        assert contractor["total_amount_payable"] == 250.0
        assert isinstance(contractor["total_amount_payable"], float)
        assert "repo_owner" not in memory_store.calls_to("insert")[0][2]

    @pytest.mark.asyncio
    async def test_search_filters(self, memory_store):
        from prpay.services.contractor_service import ContractorService

        found = await ContractorService(memory_store).search_contractors({"role": "maintainer"})
        everyone = await ContractorService(memory_store).search_contractors({})

        assert [c["id"] for c in found] == [1]
        assert len(everyone) == 2


class TestPaymentSummaryService:
    """Totals over a contractor's payments."""

    def test_summarize_payments(self):
        from prpay.services.payment_summary_service import summarize_payments

        summary = summarize_payments(500.0, [
            {"amount": 100, "payment_status": "completed"},
            {"amount": "50.5", "payment_status": "pending"},
            {"amount": 25, "payment_status": "failed"},
            {"amount": None, "payment_status": "completed"},
        ])

        assert summary == {
            "totalPaid": 100.0,
            "totalPending": 50.5,
            "remainingAmount": 400.0,
            "totalAmountPayable": 500.0,
        }

    def test_totals_read_payment_status_column(self):
        from prpay.services.payment_summary_service import summarize_payments

        summary = summarize_payments(500.0, [
            {"amount": 100, "payment_status": "completed", "status": "archived"},
            {"amount": 50, "payment_status": "pending"},
            {"amount": 70, "status": "completed"},
        ])

        assert summary["totalPaid"] == 100.0
        assert summary["totalPending"] == 50.0
        assert summary["remainingAmount"] == 400.0

    @pytest.mark.asyncio
    async def test_summary(self, memory_store):
        from prpay.services.payment_summary_service import PaymentSummaryService

        summary = await PaymentSummaryService(memory_store).get_summary(1)

        assert summary["contractor"] == {
            "id": 1,
            "personName": "Mona Lisa",
            "walletAddress": "0xdeadbeef",
            "totalAmountPayable": 500.0,
        }
        assert summary["summary"]["totalPaid"] == 100.0
        assert summary["summary"]["totalPending"] == 50.0
        assert summary["summary"]["remainingAmount"] == 400.0
        assert [p["id"] for p in summary["payments"]] == [12, 11, 10]

    @pytest.mark.asyncio
    async def test_unknown_contractor(self, memory_store):
        from prpay.core.exceptions import NotFoundError
        from prpay.services.payment_summary_service import PaymentSummaryService

        with pytest.raises(NotFoundError, match="Contractor not found"):
            await PaymentSummaryService(memory_store).get_summary(999)
