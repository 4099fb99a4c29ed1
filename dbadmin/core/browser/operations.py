"""
OPERATIONS - generic list/insert/update/delete for any catalogued table

Every operation follows the same order:
    1. resolve TableMetadata through the catalog (TableNotFound otherwise)
    2. check names and apply RowLifecyclePolicy
    3. validate values against the table's columns
    4. build the statement (dbadmin.core.browser.statements) and run it

Nothing reaches the executor before step 4, so a bad table or column name
never costs a round trip.
"""

import logging
import math
from typing import Any, Dict, List, Optional

from dbadmin.core.browser import statements
from dbadmin.core.browser.catalog import SchemaCatalog
from dbadmin.core.browser.errors import (
    InsertFailed,
    NoPrimaryKey,
    NoUpdateData,
    PrimaryKeyImmutable,
    RowNotFound,
    TableNotFound,
    UnknownColumn,
    UnknownSortColumn,
)
from dbadmin.core.browser.executor import StatementExecutor
from dbadmin.core.browser.lifecycle import RowLifecyclePolicy
from dbadmin.core.browser.metadata import (
    ColumnMetadata,
    QuerySpec,
    TableInfo,
    TableMetadata,
    TablePage,
)
from dbadmin.core.browser.types import INTEGER_TYPES, from_storage, to_storage
from dbadmin.core.browser.validator import validate_row

logger = logging.getLogger(__name__)

RowRecord = Dict[str, Any]


def project_row(table: TableMetadata, row: RowRecord) -> RowRecord:
    """Convert a storage row into its canonical-typed form."""
    projected = {}
    for key, value in row.items():
        col = table.column(key)
        projected[key] = from_storage(col.canonical_type, value) if col else value
    return projected


def coerce_row_id(primary_key: ColumnMetadata, row_id: Any) -> Any:
    # Row ids arrive as strings from URLs
    if (
        primary_key.canonical_type in INTEGER_TYPES
        and isinstance(row_id, str)
        and row_id.lstrip("-").isdigit()
    ):
        return int(row_id)
    return row_id


class TableBrowser:
    def __init__(
        self,
        catalog: SchemaCatalog,
        executor: StatementExecutor,
        policy: Optional[RowLifecyclePolicy] = None,
    ):
        self.catalog = catalog
        self.executor = executor
        self.policy = policy or RowLifecyclePolicy()

    # -------------------------------------------------------------------------
    # Schema
    # -------------------------------------------------------------------------

    def list_table_names(self) -> List[str]:
        return self.catalog.list_table_names()

    def get_table(self, table_name: str) -> TableMetadata:
        table = self.catalog.get_table_metadata(table_name)
        if table is None:
            raise TableNotFound(table_name)
        return table

    async def list_tables(self) -> List[TableInfo]:
        """Every table with its current row count, sorted by name."""
        tables = []
        for name in self.catalog.list_table_names():
            row_count = await self.catalog.get_row_count(name, self.executor)
            tables.append(TableInfo(name=name, row_count=row_count))
        return tables

    def _primary_key(self, table: TableMetadata) -> ColumnMetadata:
        primary_key = table.primary_key
        if primary_key is None:
            raise NoPrimaryKey(table.name)
        return primary_key

    def _to_storage(self, table: TableMetadata, values: RowRecord) -> RowRecord:
        storage = {}
        for name, value in values.items():
            col = table.column(name)
            storage[name] = to_storage(col.canonical_type, value, col.native_type)
        return storage

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    async def list_rows(
        self, table_name: str, spec: Optional[QuerySpec] = None
    ) -> TablePage:
        """
        One page of rows, optionally filtered and sorted.

        The filter is a "contains" match over every text column; tables
        without text columns ignore it.
        Row order is unspecified unless spec.sort is given.

        Raises:
            TableNotFound, UnknownSortColumn
        """
        spec = spec or QuerySpec()
        table = self.get_table(table_name)

        if spec.sort is not None and not table.has_column(spec.sort.column):
            raise UnknownSortColumn(table.name, spec.sort.column)

        if spec.filter and spec.filter.strip() and not table.text_columns:
            logger.debug(f"Table {table.name} has no text columns, filter ignored")

        count_rows = await self.executor.fetch_all(
            statements.count_rows(table, spec.filter)
        )
        total = int(count_rows[0]["count"]) if count_rows else 0

        rows = await self.executor.fetch_all(statements.select_page(table, spec))

        return TablePage(
            rows=[project_row(table, row) for row in rows],
            total=total,
            page=spec.page,
            total_pages=math.ceil(total / spec.limit),
        )

    # -------------------------------------------------------------------------
    # Write
    # -------------------------------------------------------------------------

    async def insert_row(self, table_name: str, data: RowRecord) -> RowRecord:
        """
        Insert one row and return it as stored.

        Keys that are not columns of the table are dropped.

        Raises:
            TableNotFound, ValidationFailed, InsertFailed, StorageError
        """
        table = self.get_table(table_name)

        prepared = self.policy.prepare_insert(table, data)
        validated = validate_row(table.columns, prepared)

        values = {name: value for name, value in validated.items() if table.has_column(name)}
        dropped = set(validated) - set(values)
        if dropped:
            logger.debug(f"Ignoring unknown columns for {table.name}: {sorted(dropped)}")

        self.policy.check_required(table, values, inserting=True)

        rows = await self.executor.fetch_all(
            statements.insert_returning(table, self._to_storage(table, values))
        )
        if not rows:
            raise InsertFailed(table.name)

        return project_row(table, rows[0])

    async def update_row(self, table_name: str, row_id: Any, data: RowRecord) -> RowRecord:
        """
        Update several columns of one row and return the updated row.

        The primary key is silently left out of `data`.

        Raises:
            TableNotFound, NoPrimaryKey, UnknownColumn, NoUpdateData,
            ValidationFailed, RowNotFound, StorageError
        """
        table = self.get_table(table_name)
        primary_key = self._primary_key(table)

        prepared = self.policy.prepare_update(table, data)

        for name in prepared:
            if not table.has_column(name):
                raise UnknownColumn(table.name, name)

        if not prepared:
            raise NoUpdateData()

        return await self._write_update(table, primary_key, row_id, prepared)

    async def update_cell(
        self, table_name: str, row_id: Any, column: str, value: Any
    ) -> RowRecord:
        """
        Update a single column of one row and return the updated row.

        Raises:
            TableNotFound, UnknownColumn, PrimaryKeyImmutable, NoPrimaryKey,
            ValidationFailed, RowNotFound, StorageError
        """
        table = self.get_table(table_name)

        target = table.column(column)
        if target is None:
            raise UnknownColumn(table.name, column)
        if target.is_primary_key:
            raise PrimaryKeyImmutable(column)

        primary_key = self._primary_key(table)
        prepared = self.policy.prepare_update(table, {column: value})

        return await self._write_update(table, primary_key, row_id, prepared)

    async def _write_update(
        self,
        table: TableMetadata,
        primary_key: ColumnMetadata,
        row_id: Any,
        values: RowRecord,
    ) -> RowRecord:
        validated = validate_row(table.columns, values)
        self.policy.check_required(table, validated, inserting=False)

        rows = await self.executor.fetch_all(
            statements.update_returning(
                table,
                primary_key.name,
                coerce_row_id(primary_key, row_id),
                self._to_storage(table, validated),
            )
        )
        if not rows:
            raise RowNotFound(table.name)

        return project_row(table, rows[0])

    async def delete_row(self, table_name: str, row_id: Any):
        """
        Delete one row by primary key.

        Raises:
            TableNotFound, NoPrimaryKey, RowNotFound, StorageError
        """
        table = self.get_table(table_name)
        primary_key = self._primary_key(table)

        affected = await self.executor.execute(
            statements.delete_row(table, primary_key.name, coerce_row_id(primary_key, row_id))
        )
        if affected == 0:
            raise RowNotFound(table.name)
