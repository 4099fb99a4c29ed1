from enum import Enum


class ErrorKind(Enum):
    TABLE_NOT_FOUND = "TableNotFound"
    UNKNOWN_COLUMN = "UnknownColumn"
    UNKNOWN_SORT_COLUMN = "UnknownSortColumn"
    NO_PRIMARY_KEY = "NoPrimaryKey"
    PRIMARY_KEY_IMMUTABLE = "PrimaryKeyImmutable"
    ROW_NOT_FOUND = "RowNotFound"
    NO_UPDATE_DATA = "NoUpdateData"
    INSERT_FAILED = "InsertFailed"
    VALIDATION_FAILED = "ValidationFailed"
    STORAGE_ERROR = "StorageError"


class BrowserError(Exception):
    """Base class for every failure the database browser reports."""

    kind: ErrorKind = ErrorKind.STORAGE_ERROR
    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class TableNotFound(BrowserError):
    kind = ErrorKind.TABLE_NOT_FOUND
    status_code = 404

    def __init__(self, table_name: str):
        self.table_name = table_name
        super().__init__(f'Table "{table_name}" not found')


class UnknownColumn(BrowserError):
    kind = ErrorKind.UNKNOWN_COLUMN
    status_code = 400

    def __init__(self, table_name: str, column: str):
        self.table_name = table_name
        self.column = column
        super().__init__(f'Column "{column}" not found in table "{table_name}"')


class UnknownSortColumn(BrowserError):
    kind = ErrorKind.UNKNOWN_SORT_COLUMN
    status_code = 400

    def __init__(self, table_name: str, column: str):
        self.table_name = table_name
        self.column = column
        super().__init__(
            f'Cannot sort by "{column}": column not found in table "{table_name}"'
        )


class NoPrimaryKey(BrowserError):
    kind = ErrorKind.NO_PRIMARY_KEY
    status_code = 400

    def __init__(self, table_name: str):
        self.table_name = table_name
        super().__init__(f'No primary key found for table "{table_name}"')


class PrimaryKeyImmutable(BrowserError):
    kind = ErrorKind.PRIMARY_KEY_IMMUTABLE
    status_code = 400

    def __init__(self, column: str):
        self.column = column
        super().__init__(f'Cannot update primary key column "{column}"')


class RowNotFound(BrowserError):
    kind = ErrorKind.ROW_NOT_FOUND
    status_code = 404

    def __init__(self, table_name: str):
        self.table_name = table_name
        super().__init__(f'Row not found in table "{table_name}"')


class NoUpdateData(BrowserError):
    kind = ErrorKind.NO_UPDATE_DATA
    status_code = 400

    def __init__(self):
        super().__init__("No data to update")


class InsertFailed(BrowserError):
    kind = ErrorKind.INSERT_FAILED
    status_code = 500

    def __init__(self, table_name: str):
        self.table_name = table_name
        super().__init__(f'Failed to insert row into table "{table_name}"')


class ValidationFailed(BrowserError):
    kind = ErrorKind.VALIDATION_FAILED
    status_code = 422

    def __init__(self, column: str, reason: str):
        self.column = column
        self.reason = reason
        super().__init__(f'Invalid value for column "{column}": {reason}')


class StorageError(BrowserError):
    """Driver failure, message passed through as-is."""

    kind = ErrorKind.STORAGE_ERROR
    status_code = 500
