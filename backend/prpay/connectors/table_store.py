"""
Table Store Interface

The agent's tools see persistence as a generic, schema-less row store
addressed by table name with equality filters. Concrete stores wrap a
vendor API (Supabase PostgREST) or a SQL database (SQLAlchemy).
"""

from typing import Any, Dict, List, Optional, Protocol

Row = Dict[str, Any]
Filters = Dict[str, Any]


class TableStoreError(Exception):
    """Raised when the backing store rejects or fails an operation"""

    def __init__(self, message: str, code: Optional[str] = None, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.hint = hint


class TableStore(Protocol):
    """
    Row-level operations every store provides.

    Filters are ANDed column equality predicates. `update` and `delete`
    require at least one filter and raise TableStoreError otherwise.
    """

    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        limit: Optional[int] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Row]:
        ...

    async def insert(self, table: str, record: Row) -> List[Row]:
        ...

    async def update(self, table: str, filters: Filters, patch: Row) -> List[Row]:
        ...

    async def delete(self, table: str, filters: Filters) -> List[Row]:
        ...

    async def describe(self, table: str) -> Optional[List[Row]]:
        """Server-side column catalog for a table, or None when unavailable"""
        ...

    async def aclose(self) -> None:
        ...


def require_filters(operation: str, table: str, filters: Optional[Filters]) -> Filters:
    """Guard shared by every store: writes never run without a predicate."""
    if not filters:
        raise TableStoreError(
            f"Refusing to {operation} rows in '{table}' without filters",
            code="missing_filters",
        )
    return filters
