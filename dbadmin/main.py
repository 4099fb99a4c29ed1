import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from dbadmin.core.config import settings
from dbadmin.core.database import engine, Base
from dbadmin.core.browser.catalog import MetaDataSchemaProvider, SchemaCatalog, reflect_metadata
from dbadmin.api.dependencies import set_catalog
from dbadmin.api.router import api_router

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


# Close the engine once everything is done and close all the sessions
@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.CREATE_TABLES:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Declared tables created (or already present)")

    # Browse the live database instead of the declared models
    if settings.SCHEMA_SOURCE == "reflected":
        metadata = await reflect_metadata(engine)
        set_catalog(SchemaCatalog(MetaDataSchemaProvider(metadata)))

    yield
    await engine.dispose()


app = FastAPI(title="DB Admin API", lifespan=lifespan)

# Include the master router containing all our endpoints
app.include_router(api_router)


@app.get("/")
async def root():
    return {"message": "Welcome to the DB Admin API"}
