"""
TYPE TAXONOMY - map native column types to the browser's canonical set

Every driver names its types differently ("VARCHAR(255)", "Text",
"TIMESTAMPTZ", "JSONB", ...). The rest of the browser only ever looks at
the small canonical set below.

    native type name → map_native_type() → CanonicalType

The canonical type decides validation. The native name still decides how a
value is bound: a TIMESTAMP column stored as epoch millis takes an int, a
real TIMESTAMP column takes a datetime.
"""

import json
import re
import time
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any


class CanonicalType(str, Enum):
    TEXT = "text"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    JSON = "json"
    BIGINT = "bigint"
    OTHER = "other"


NATIVE_TYPE_MAP = {
    # text
    "STRING": CanonicalType.TEXT,
    "VARCHAR": CanonicalType.TEXT,
    "NVARCHAR": CanonicalType.TEXT,
    "CHAR": CanonicalType.TEXT,
    "NCHAR": CanonicalType.TEXT,
    "TEXT": CanonicalType.TEXT,
    "UNICODE": CanonicalType.TEXT,
    "UNICODETEXT": CanonicalType.TEXT,
    "CLOB": CanonicalType.TEXT,
    "UUID": CanonicalType.TEXT,
    "ENUM": CanonicalType.TEXT,
    # integer
    "INTEGER": CanonicalType.INTEGER,
    "INT": CanonicalType.INTEGER,
    "SMALLINTEGER": CanonicalType.INTEGER,
    "SMALLINT": CanonicalType.INTEGER,
    "TINYINT": CanonicalType.INTEGER,
    "MEDIUMINT": CanonicalType.INTEGER,
    "NUMBER": CanonicalType.INTEGER,
    # bigint
    "BIGINTEGER": CanonicalType.BIGINT,
    "BIGINT": CanonicalType.BIGINT,
    # boolean
    "BOOLEAN": CanonicalType.BOOLEAN,
    "BOOL": CanonicalType.BOOLEAN,
    # timestamp
    "TIMESTAMP": CanonicalType.TIMESTAMP,
    "TIMESTAMPTZ": CanonicalType.TIMESTAMP,
    "DATETIME": CanonicalType.TIMESTAMP,
    "DATE": CanonicalType.TIMESTAMP,
    # integer milliseconds, see dbadmin.core.models.EpochMillis
    "EPOCHMILLIS": CanonicalType.TIMESTAMP,
    # json
    "JSON": CanonicalType.JSON,
    "JSONB": CanonicalType.JSON,
}

INTEGER_TYPES = (CanonicalType.INTEGER, CanonicalType.BIGINT)

# Text-like for the browser, but not character columns in the database
NON_CHARACTER_TEXT_TYPES = {"UUID", "ENUM"}


def native_base_name(native_name: str) -> str:
    """Upper-cased base of a type name: "VARCHAR(255)" → "VARCHAR"."""
    if not native_name:
        return ""
    return re.split(r"[\s(]", native_name.strip(), maxsplit=1)[0].upper()


def map_native_type(native_name: str) -> CanonicalType:
    """
    Map a driver-reported type name to its canonical type.

    Unknown names never fail, they come back as OTHER.

    Examples:
        "VARCHAR(255)" → CanonicalType.TEXT
        "BigInteger"   → CanonicalType.BIGINT
        "NUMERIC(12, 2)" → CanonicalType.OTHER
    """
    return NATIVE_TYPE_MAP.get(native_base_name(native_name), CanonicalType.OTHER)


def sqlalchemy_type_name(sa_type: Any) -> str:
    """Name of a SQLAlchemy column type as fed to map_native_type()."""
    override = getattr(sa_type, "admin_type_name", None)
    if override:
        return override

    name = type(sa_type).__name__
    # DateTime(timezone=True) / reflected TIMESTAMP WITH TIME ZONE
    if getattr(sa_type, "timezone", False) and name.upper() in ("DATETIME", "TIMESTAMP"):
        return "TIMESTAMPTZ"
    return name


def is_character_column(native_name: str) -> bool:
    return native_base_name(native_name) not in NON_CHARACTER_TEXT_TYPES


# ============================================================================
# TIMESTAMP CONVERSIONS
# ============================================================================

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def now_millis() -> int:
    """Current time as integer epoch milliseconds."""
    return int(time.time() * 1000)


def to_epoch_millis(value: Any) -> Any:
    """
    Convert a date/datetime to epoch milliseconds.

    Naive datetimes are read as UTC, plain dates as midnight UTC.
    Anything else (ints included) is returned untouched.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    if isinstance(value, date):
        midnight = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
        return int(midnight.timestamp() * 1000)
    return value


def from_epoch_millis(millis: int) -> datetime:
    return EPOCH + timedelta(milliseconds=millis)


def timestamp_to_storage(value: Any, native_type: str = "") -> Any:
    """
    Bind a timestamp the way its column stores it.

    DATE → date, TIMESTAMP/DATETIME → naive UTC datetime,
    TIMESTAMPTZ → aware UTC datetime, anything else (EPOCHMILLIS, BIGINT,
    unknown) → epoch millis.
    """
    millis = to_epoch_millis(value)
    if not isinstance(millis, int) or isinstance(millis, bool):
        return value

    base = native_base_name(native_type)
    if base == "DATE":
        return from_epoch_millis(millis).date()
    if base == "TIMESTAMPTZ" or "WITH TIME ZONE" in native_type.upper():
        return from_epoch_millis(millis)
    if base in ("TIMESTAMP", "DATETIME"):
        return from_epoch_millis(millis).replace(tzinfo=None)
    return millis


# ============================================================================
# STORAGE PROJECTION
# ============================================================================


def to_storage(canonical: CanonicalType, value: Any, native_type: str = "") -> Any:
    """
    Shape a validated value the way the driver should bind it.

    JSON structures are serialized (strings are taken as already serialized),
    timestamps follow timestamp_to_storage().
    """
    if value is None:
        return None
    if canonical == CanonicalType.JSON and not isinstance(value, str):
        return json.dumps(value)
    if canonical == CanonicalType.TIMESTAMP:
        return timestamp_to_storage(value, native_type)
    if canonical == CanonicalType.BOOLEAN:
        return bool(value)
    return value


def from_storage(canonical: CanonicalType, value: Any) -> Any:
    """
    Undo driver quirks on the way out.

    0/1 booleans become bools, JSON returned as text is parsed, and native
    datetimes come back as epoch millis like every other timestamp.
    """
    if value is None:
        return None
    if canonical == CanonicalType.BOOLEAN and isinstance(value, int) and value in (0, 1):
        return bool(value)
    if canonical == CanonicalType.TIMESTAMP and isinstance(value, (datetime, date)):
        return to_epoch_millis(value)
    if canonical == CanonicalType.JSON and isinstance(value, (str, bytes)):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value
