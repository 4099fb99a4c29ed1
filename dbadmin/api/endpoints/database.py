import logging
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from dbadmin.api.dependencies import get_browser
from dbadmin.core import models, schemas
from dbadmin.core.security import validate_admin_role
from dbadmin.core.browser.errors import BrowserError, StorageError
from dbadmin.core.browser.metadata import (
    QuerySpec,
    SortDirection,
    SortSpec,
    TableInfo,
    TableMetadata,
    TablePage,
)
from dbadmin.core.browser.operations import TableBrowser

router = APIRouter(prefix="/admin/database", tags=["Database"])

admin_dep = Annotated[models.User, Depends(validate_admin_role)]
browser_dep = Annotated[TableBrowser, Depends(get_browser)]


def to_http_error(error: BrowserError) -> HTTPException:
    if isinstance(error, StorageError):
        logging.error(f"Database browser storage failure: {error.message}")
    return HTTPException(status_code=error.status_code, detail=error.message)


# List tables
@router.get("/tables", response_model=List[TableInfo])
async def list_tables(admin: admin_dep, browser: browser_dep):
    try:
        return await browser.list_tables()
    except BrowserError as error:
        raise to_http_error(error)


# Table structure
@router.get("/tables/{table_name}", response_model=TableMetadata)
async def get_table(table_name: str, admin: admin_dep, browser: browser_dep):
    try:
        return browser.get_table(table_name)
    except BrowserError as error:
        raise to_http_error(error)


# One page of rows
@router.get("/tables/{table_name}/rows", response_model=TablePage)
async def list_rows(
    table_name: str,
    admin: admin_dep,
    browser: browser_dep,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort: Optional[str] = None,
    direction: SortDirection = SortDirection.ASC,
    filter: Optional[str] = None,
):
    spec = QuerySpec(
        page=page,
        limit=limit,
        sort=SortSpec(column=sort, direction=direction) if sort else None,
        filter=filter,
    )
    try:
        return await browser.list_rows(table_name, spec)
    except BrowserError as error:
        raise to_http_error(error)


# Add row
@router.post("/tables/{table_name}/rows", status_code=status.HTTP_201_CREATED)
async def insert_row(
    table_name: str,
    payload: schemas.RowDataRequest,
    admin: admin_dep,
    browser: browser_dep,
):
    try:
        return await browser.insert_row(table_name, payload.data)
    except BrowserError as error:
        raise to_http_error(error)


# Edit whole row
@router.patch("/tables/{table_name}/rows/{row_id}")
async def update_row(
    table_name: str,
    row_id: str,
    payload: schemas.RowDataRequest,
    admin: admin_dep,
    browser: browser_dep,
):
    try:
        return await browser.update_row(table_name, row_id, payload.data)
    except BrowserError as error:
        raise to_http_error(error)


# Edit a single cell
@router.patch("/tables/{table_name}/rows/{row_id}/cells/{column}")
async def update_cell(
    table_name: str,
    row_id: str,
    column: str,
    payload: schemas.CellUpdateRequest,
    admin: admin_dep,
    browser: browser_dep,
):
    try:
        return await browser.update_cell(table_name, row_id, column, payload.value)
    except BrowserError as error:
        raise to_http_error(error)


# Delete row
@router.delete("/tables/{table_name}/rows/{row_id}")
async def delete_row(
    table_name: str, row_id: str, admin: admin_dep, browser: browser_dep
):
    try:
        await browser.delete_row(table_name, row_id)
        return {"message": f"Deleted row {row_id} from {table_name}"}
    except BrowserError as error:
        raise to_http_error(error)
