"""
Contractor records: listing, registration and search.
"""

from typing import Any, Dict, List, Optional
import logging

from prpay.connectors.table_store import Row, TableStore
from prpay.schemas.contractors import ContractorCreate

logger = logging.getLogger(__name__)

CONTRACTORS_TABLE = "contractors"


class ContractorService:
    def __init__(self, store: TableStore, table: str = CONTRACTORS_TABLE):
        self.store = store
        self.table = table

    async def list_contractors(self) -> List[Row]:
        return await self.store.select(self.table, order_by="created_at", descending=True)

    async def create_contractor(self, payload: ContractorCreate) -> Row:
        record: Dict[str, Any] = {
            "github_login": payload.github_login,
            "person_name": payload.person_name,
            "repo_name": payload.repo_name,
            "wallet_address": payload.wallet_address,
            "role": payload.role,
            "track_prs": payload.track_prs,
            "total_amount_payable": float(payload.total_amount_payable),
        }
        if payload.repo_owner:
            record["repo_owner"] = payload.repo_owner

        rows = await self.store.insert(self.table, record)
        logger.info(f"Registered contractor {payload.github_login} for {payload.repo_name}")
        return rows[0] if rows else record

    async def search_contractors(self, filters: Optional[Dict[str, Any]] = None) -> List[Row]:
        """Equality search over any combination of login, wallet, repo and role"""
        return await self.store.select(
            self.table,
            filters=filters or None,
            order_by="created_at",
            descending=True,
        )
