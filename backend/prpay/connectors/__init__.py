"""
External Connectors Package

Adapters for the systems the agent talks to:

- table_store.py: TableStore interface for row-oriented table access
- supabase_store.py: Supabase (PostgREST) table store over httpx
- sql_store.py: SQLAlchemy async table store
- payment.py: PaymentBackend interface and execution results
- locus.py: Locus MCP payment backend
- metorial.py: Metorial OAuth session broker for the GitHub integration
"""

from prpay.connectors.table_store import TableStore, TableStoreError, require_filters
from prpay.connectors.payment import PaymentBackend, PaymentConnectionStatus, PaymentExecution

__all__ = [
    "TableStore",
    "TableStoreError",
    "require_filters",
    "PaymentBackend",
    "PaymentConnectionStatus",
    "PaymentExecution",
]
