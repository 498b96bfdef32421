"""
Shared test fixtures and configuration for PR Pay backend tests.
"""
import os

import pytest

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "development"
os.environ["DEBUG"] = "true"
os.environ["TABLE_STORE_BACKEND"] = "supabase"
os.environ.setdefault("OPENAI_API_KEY", "sk-test")
os.environ.setdefault("LOCUS_API_KEY", "locus-test-key")
os.environ.setdefault("SUPABASE_URL", "https://project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "anon-test-key")
os.environ.setdefault("METORIAL_API_KEY", "metorial-test-key")
os.environ.setdefault("GITHUB_SERVER_DEPLOYMENT_ID", "svd_test")


@pytest.fixture(autouse=True)
def disable_rate_limiting():
    """Rate limits are exercised in test_rate_limiter.py; keep them out of route tests."""
    from prpay.core.rate_limiter import limiter

    previous = limiter.enabled
    limiter.enabled = False
    yield
    limiter.enabled = previous


@pytest.fixture
def memory_store():
    """Table store with a contractors table and a payments table."""
    from tests.utils.fakes import InMemoryTableStore

    return InMemoryTableStore(
        tables={
            "contractors": [
                {
                    "id": 1,
                    "github_login": "octocat",
                    "person_name": "Mona Lisa",
                    "repo_name": "hello-world",
                    "wallet_address": "0xdeadbeef",
                    "role": "maintainer",
                    "track_prs": True,
                    "total_amount_payable": 500.0,
                    "created_at": "2025-01-01T00:00:00+00:00",
                },
                {
                    "id": 2,
                    "github_login": "hubot",
                    "person_name": "Hubot",
                    "repo_name": "hello-world",
                    "wallet_address": "0xfeedface",
                    "role": "contributor",
                    "track_prs": False,
                    "total_amount_payable": 120.0,
                    "created_at": "2025-02-01T00:00:00+00:00",
                },
            ],
            "payments": [
                {"id": 10, "contractor_id": 1, "amount": 100.0, "payment_status": "completed", "created_at": "2025-01-10T00:00:00+00:00"},
                {"id": 11, "contractor_id": 1, "amount": 50.0, "payment_status": "pending", "created_at": "2025-01-20T00:00:00+00:00"},
                {"id": 12, "contractor_id": 1, "amount": 25.0, "payment_status": "failed", "created_at": "2025-01-25T00:00:00+00:00"},
                {"id": 13, "contractor_id": 2, "amount": 120.0, "payment_status": "completed", "created_at": "2025-02-10T00:00:00+00:00"},
            ],
            "orders": [
                {"id": 1, "status": "active", "total": 10},
                {"id": 2, "status": "active", "total": 20},
                {"id": 3, "status": "active", "total": 30},
                {"id": 4, "status": "closed", "total": 40},
            ],
            "invoices": [],
        },
    )


@pytest.fixture
def payment_backend():
    from tests.utils.fakes import RecordingPaymentBackend

    return RecordingPaymentBackend()


@pytest.fixture
def client(memory_store, payment_backend):
    """TestClient with the table store and payment backend replaced by fakes."""
    from fastapi.testclient import TestClient

    from prpay.api.deps import get_payment_backend, get_table_store
    from prpay.main import app

    app.dependency_overrides[get_table_store] = lambda: memory_store
    app.dependency_overrides[get_payment_backend] = lambda: payment_backend
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
