from datetime import date, datetime
from functools import lru_cache
from typing import Annotated, Any, Dict, Optional, Sequence, Tuple, Type, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    create_model,
)

from dbadmin.core.browser.errors import ValidationFailed
from dbadmin.core.browser.metadata import ColumnMetadata
from dbadmin.core.browser.types import CanonicalType, to_epoch_millis


def reject_bool(value: Any) -> Any:
    # bool is an int subclass, lax mode would store True as 1
    if isinstance(value, bool):
        raise ValueError("expected a number, got a boolean")
    return value


NumberValue = Annotated[Union[int, float], BeforeValidator(reject_bool)]
WholeNumberValue = Annotated[int, BeforeValidator(reject_bool)]
EpochMillisValue = Annotated[Union[int, datetime, date], AfterValidator(to_epoch_millis)]

# Every rule is optional and nullable; requiredness is RowLifecyclePolicy's job
FIELD_TYPES = {
    CanonicalType.TEXT: Optional[str],
    # numeric strings are coerced by pydantic's lax mode
    CanonicalType.INTEGER: Optional[NumberValue],
    CanonicalType.BIGINT: Optional[WholeNumberValue],
    # accepts 0/1 as stored by SQLite
    CanonicalType.BOOLEAN: Optional[bool],
    CanonicalType.TIMESTAMP: Optional[EpochMillisValue],
    # raw structures or pre-serialized strings, shape is not checked
    CanonicalType.JSON: Any,
}


class RowRecordBase(BaseModel):
    model_config = ConfigDict(extra="ignore")


@lru_cache(maxsize=256)
def _row_model(columns: Tuple[ColumnMetadata, ...], model_name: str) -> Type[BaseModel]:
    fields: Dict[str, Any] = {}
    for index, col in enumerate(columns):
        field_type = FIELD_TYPES.get(col.canonical_type, Any)
        fields[f"field_{index}"] = (field_type, Field(default=None, alias=col.name))

    return create_model(model_name, __base__=RowRecordBase, **fields)


def build_row_validator(
    columns: Sequence[ColumnMetadata], model_name: str = "RowRecord"
) -> Type[BaseModel]:
    """
    Build a pydantic model with one optional field per column.

    Fields are aliased to the column names, so columns called "json",
    "model_config" or "_rowid" are all fine. Models are cached per column
    list, the same table always gets the same class back.

    Example:
        Row = build_row_validator(table.columns)
        Row.model_validate({"age": "42"}).model_dump(by_alias=True, exclude_unset=True)
        # {"age": 42}
    """
    return _row_model(tuple(columns), model_name)


def validate_row(
    columns: Sequence[ColumnMetadata], record: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Validate and coerce `record` against `columns`.

    Only keys present in `record` come back, in the same order. Keys that
    are not columns never reach the model and pass through untouched.

    Raises:
        ValidationFailed: a value does not fit its column's canonical type.
    """
    declared = {col.name for col in columns}
    known = {key: value for key, value in record.items() if key in declared}

    row_model = build_row_validator(columns)
    try:
        validated = row_model.model_validate(known)
    except ValidationError as error:
        first = error.errors()[0]
        column = str(first["loc"][0]) if first["loc"] else "?"
        raise ValidationFailed(column, first["msg"]) from error

    coerced = validated.model_dump(by_alias=True, exclude_unset=True)
    return {
        key: coerced[key] if key in declared else value
        for key, value in record.items()
    }
