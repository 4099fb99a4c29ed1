from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from dbadmin.core.browser.types import CanonicalType


# =========================
# Schema metadata
# =========================
class ColumnMetadata(BaseModel):
    name: str
    canonical_type: CanonicalType
    native_type: str = ""
    is_nullable: bool = True
    is_primary_key: bool = False
    is_unique: bool = False
    has_default: bool = False

    model_config = ConfigDict(frozen=True)


class TableMetadata(BaseModel):
    name: str
    columns: List[ColumnMetadata]

    model_config = ConfigDict(frozen=True)

    def column(self, name: str) -> Optional[ColumnMetadata]:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def has_column(self, name: str) -> bool:
        return self.column(name) is not None

    @property
    def column_names(self) -> List[str]:
        return [col.name for col in self.columns]

    @property
    def primary_key(self) -> Optional[ColumnMetadata]:
        """The column used to address rows (first declared primary key)."""
        return next((col for col in self.columns if col.is_primary_key), None)

    @property
    def text_columns(self) -> List[ColumnMetadata]:
        return [col for col in self.columns if col.canonical_type == CanonicalType.TEXT]


# =========================
# List requests
# =========================
class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class SortSpec(BaseModel):
    column: str
    direction: SortDirection = SortDirection.ASC


class QuerySpec(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    sort: Optional[SortSpec] = None
    filter: Optional[str] = None


class TablePage(BaseModel):
    rows: List[Dict[str, Any]]
    total: int
    page: int
    total_pages: int


class TableInfo(BaseModel):
    name: str
    row_count: int
