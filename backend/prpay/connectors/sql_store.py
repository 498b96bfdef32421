"""
SQL Table Store

TableStore over any SQLAlchemy async engine (PostgreSQL via asyncpg in
deployments, SQLite via aiosqlite in tests). Tables are reflected on first
use, so no models need to be declared for the tables the agent touches.
"""

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import MetaData, Table, delete, insert, select, update
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from prpay.connectors.table_store import Filters, Row, TableStoreError, require_filters

logger = logging.getLogger(__name__)


class SqlTableStore:
    """
    TableStore backed by a relational database.

    Writes run in their own transaction and use RETURNING so callers get
    the stored rows, including server-generated ids and defaults.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._tables: Dict[str, Table] = {}

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> "SqlTableStore":
        return cls(create_async_engine(database_url, echo=echo, pool_pre_ping=True))

    async def _table(self, name: str) -> Table:
        table = self._tables.get(name)
        if table is not None:
            return table
        try:
            async with self.engine.connect() as conn:
                table = await conn.run_sync(
                    lambda sync_conn: Table(name, MetaData(), autoload_with=sync_conn)
                )
        except NoSuchTableError as e:
            raise TableStoreError(f'relation "{name}" does not exist', code="42P01") from e
        except SQLAlchemyError as e:
            raise TableStoreError(str(e)) from e
        self._tables[name] = table
        return table

    def _where(self, table: Table, filters: Optional[Filters]) -> List[Any]:
        clauses = []
        for column_name, value in (filters or {}).items():
            if column_name not in table.c:
                raise TableStoreError(
                    f'column {table.name}.{column_name} does not exist', code="42703"
                )
            column = table.c[column_name]
            clauses.append(column.is_(None) if value is None else column == value)
        return clauses

    async def _execute_returning(self, statement) -> List[Row]:
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(statement)
                return [dict(row._mapping) for row in result]
        except SQLAlchemyError as e:
            # DBAPI errors carry the driver message in .orig
            message = str(getattr(e, "orig", None) or e)
            raise TableStoreError(message) from e

    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        limit: Optional[int] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Row]:
        target = await self._table(table)
        statement = select(target).where(*self._where(target, filters))
        if order_by:
            if order_by not in target.c:
                raise TableStoreError(f"column {table}.{order_by} does not exist", code="42703")
            column = target.c[order_by]
            statement = statement.order_by(column.desc() if descending else column.asc())
        if limit:
            statement = statement.limit(limit)
        return await self._execute_returning(statement)

    async def insert(self, table: str, record: Row) -> List[Row]:
        target = await self._table(table)
        statement = insert(target).returning(*target.c)
        if record:
            statement = statement.values(**record)
        return await self._execute_returning(statement)

    async def update(self, table: str, filters: Filters, patch: Row) -> List[Row]:
        require_filters("update", table, filters)
        target = await self._table(table)
        statement = (
            update(target)
            .where(*self._where(target, filters))
            .values(**patch)
            .returning(*target.c)
        )
        return await self._execute_returning(statement)

    async def delete(self, table: str, filters: Filters) -> List[Row]:
        require_filters("delete", table, filters)
        target = await self._table(table)
        statement = delete(target).where(*self._where(target, filters)).returning(*target.c)
        return await self._execute_returning(statement)

    async def describe(self, table: str) -> Optional[List[Row]]:
        try:
            target = await self._table(table)
        except TableStoreError as e:
            logger.debug(f"No catalog entry for {table}: {e}")
            return None
        return [
            {
                "column_name": column.name,
                "data_type": str(column.type),
                "is_nullable": "YES" if column.nullable else "NO",
                "column_default": str(column.server_default.arg) if column.server_default is not None else None,
            }
            for column in target.columns
        ]

    async def aclose(self) -> None:
        await self.engine.dispose()
