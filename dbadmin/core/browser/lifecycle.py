import uuid
from typing import Any, Callable, Dict

from dbadmin.core.browser.errors import ValidationFailed
from dbadmin.core.browser.metadata import TableMetadata
from dbadmin.core.browser.types import INTEGER_TYPES, now_millis


def _missing(value: Any) -> bool:
    return value is None or value == ""


class RowLifecyclePolicy:
    """
    Identity and audit column rules shared by every write.

    - insert: generate the identity column, stamp created/updated columns
    - update: never touch the primary key, always restamp the updated column
    """

    def __init__(
        self,
        identity_column: str = "id",
        created_at_column: str = "created_at",
        updated_at_column: str = "updated_at",
        clock: Callable[[], int] = now_millis,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.identity_column = identity_column
        self.created_at_column = created_at_column
        self.updated_at_column = updated_at_column
        self.clock = clock
        self.id_factory = id_factory

    def prepare_insert(self, table: TableMetadata, data: Dict[str, Any]) -> Dict[str, Any]:
        prepared = dict(data)

        identity = table.column(self.identity_column)
        if identity is not None and _missing(prepared.get(identity.name)):
            if identity.canonical_type in INTEGER_TYPES:
                # left to the database's autoincrement
                prepared.pop(identity.name, None)
            else:
                prepared[identity.name] = self.id_factory()

        # A null for a NOT NULL column with a default means "use the default"
        for col in table.columns:
            if col.has_default and not col.is_nullable and col.name in prepared:
                if prepared[col.name] is None:
                    del prepared[col.name]

        now = self.clock()
        for name in (self.created_at_column, self.updated_at_column):
            if table.has_column(name) and prepared.get(name) is None:
                prepared[name] = now

        return prepared

    def prepare_update(self, table: TableMetadata, data: Dict[str, Any]) -> Dict[str, Any]:
        prepared = dict(data)

        primary_key = table.primary_key
        if primary_key is not None:
            prepared.pop(primary_key.name, None)

        if table.has_column(self.updated_at_column):
            prepared[self.updated_at_column] = self.clock()

        return prepared

    def check_required(
        self, table: TableMetadata, record: Dict[str, Any], inserting: bool
    ):
        """
        Reject nulls in NOT NULL columns.

        On insert a missing value is also rejected unless the schema supplies
        a default; on update only keys present in `record` are checked.
        """
        for col in table.columns:
            if col.is_nullable:
                continue
            if col.name in record:
                if record[col.name] is None:
                    raise ValidationFailed(col.name, "value is required")
            elif inserting and not col.has_default:
                raise ValidationFailed(col.name, "value is required")
