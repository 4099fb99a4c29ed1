"""
SCHEMA CATALOG - which tables exist and what their columns look like

The browser never imports models. It asks a SchemaProvider for table
names and column descriptions, and the catalog turns those into
TableMetadata.

    SchemaProvider (MetaData / reflected database)
            ↓
    SchemaCatalog.get_table_metadata(name) → TableMetadata | None
"""

import logging
from typing import Dict, List, Optional, Protocol

from sqlalchemy import Column, Integer, MetaData, Table, UniqueConstraint
from sqlalchemy.ext.asyncio import AsyncEngine

from dbadmin.core.browser import statements
from dbadmin.core.browser.errors import TableNotFound
from dbadmin.core.browser.executor import StatementExecutor
from dbadmin.core.browser.metadata import ColumnMetadata, TableMetadata
from dbadmin.core.browser.types import map_native_type, sqlalchemy_type_name

logger = logging.getLogger(__name__)


class SchemaProvider(Protocol):
    def list_tables(self) -> List[str]:
        ...

    def describe_table(self, name: str) -> Optional[List[ColumnMetadata]]:
        """Columns of `name` in declaration order, None if there is no such table."""
        ...


# ============================================================================
# SQLALCHEMY METADATA PROVIDER
# ============================================================================


def _covers_only(columns, column: Column) -> bool:
    columns = list(columns)
    return len(columns) == 1 and columns[0] is column


def _is_unique(column: Column) -> bool:
    if column.unique:
        return True
    table = column.table
    for constraint in table.constraints:
        if isinstance(constraint, UniqueConstraint) and _covers_only(constraint.columns, column):
            return True
    for index in table.indexes:
        if index.unique and _covers_only(index.columns, column):
            return True
    return False


def _is_autoincrement(column: Column) -> bool:
    return (
        column.primary_key
        and len(column.table.primary_key.columns) == 1
        and isinstance(column.type, Integer)
        and column.autoincrement in (True, "auto")
    )


def describe_column(column: Column) -> ColumnMetadata:
    native_type = sqlalchemy_type_name(column.type)
    return ColumnMetadata(
        name=column.name,
        canonical_type=map_native_type(native_type),
        native_type=native_type,
        is_nullable=bool(column.nullable),
        is_primary_key=bool(column.primary_key),
        is_unique=_is_unique(column),
        # Python-side defaults only apply to ORM inserts, so they don't count
        has_default=column.server_default is not None or _is_autoincrement(column),
    )


class MetaDataSchemaProvider:
    """SchemaProvider over a SQLAlchemy MetaData (declared or reflected)."""

    def __init__(self, metadata: MetaData):
        self.metadata = metadata

    def _find(self, name: str) -> Optional[Table]:
        for table in self.metadata.tables.values():
            if table.name == name:
                return table
        return None

    def list_tables(self) -> List[str]:
        return [table.name for table in self.metadata.tables.values()]

    def describe_table(self, name: str) -> Optional[List[ColumnMetadata]]:
        table = self._find(name)
        if table is None:
            return None
        return [describe_column(column) for column in table.columns]


async def reflect_metadata(engine: AsyncEngine) -> MetaData:
    """Load the live database schema into a fresh MetaData."""
    metadata = MetaData()
    async with engine.connect() as conn:
        await conn.run_sync(metadata.reflect)
    logger.info(f"Reflected {len(metadata.tables)} tables from the database")
    return metadata


# ============================================================================
# CATALOG
# ============================================================================


class SchemaCatalog:
    def __init__(self, provider: SchemaProvider):
        self.provider = provider
        self._tables: Dict[str, TableMetadata] = {}

    def list_table_names(self) -> List[str]:
        return sorted(self.provider.list_tables())

    def get_table_metadata(self, name: str) -> Optional[TableMetadata]:
        """
        Metadata for `name`, or None when no such table is declared.

        Results are cached; the schema does not change while the process runs.
        """
        if name in self._tables:
            return self._tables[name]

        columns = self.provider.describe_table(name)
        if columns is None:
            return None

        table = TableMetadata(name=name, columns=columns)
        self._tables[name] = table
        return table

    def refresh(self):
        self._tables.clear()

    async def get_row_count(self, name: str, executor: StatementExecutor) -> int:
        table = self.get_table_metadata(name)
        if table is None:
            raise TableNotFound(name)

        rows = await executor.fetch_all(statements.count_rows(table))
        if not rows:
            return 0
        return int(rows[0]["count"])
