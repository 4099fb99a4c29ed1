from typing import Annotated, Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dbadmin.core import models  # registers the declared tables on Base.metadata
from dbadmin.core.config import settings
from dbadmin.core.database import Base, get_db
from dbadmin.core.browser.catalog import MetaDataSchemaProvider, SchemaCatalog
from dbadmin.core.browser.executor import SessionExecutor
from dbadmin.core.browser.lifecycle import RowLifecyclePolicy
from dbadmin.core.browser.operations import TableBrowser

_catalog: Optional[SchemaCatalog] = None


def set_catalog(catalog: SchemaCatalog):
    global _catalog
    _catalog = catalog


def get_catalog() -> SchemaCatalog:
    # Declared models unless the app swapped in a reflected catalog at startup
    global _catalog
    if _catalog is None:
        _catalog = SchemaCatalog(MetaDataSchemaProvider(Base.metadata))
    return _catalog


def get_lifecycle_policy() -> RowLifecyclePolicy:
    return RowLifecyclePolicy(
        identity_column=settings.IDENTITY_COLUMN,
        created_at_column=settings.CREATED_AT_COLUMN,
        updated_at_column=settings.UPDATED_AT_COLUMN,
    )


def get_browser(
    db: Annotated[AsyncSession, Depends(get_db)],
    catalog: Annotated[SchemaCatalog, Depends(get_catalog)],
    policy: Annotated[RowLifecyclePolicy, Depends(get_lifecycle_policy)],
) -> TableBrowser:
    return TableBrowser(catalog, SessionExecutor(db), policy)
