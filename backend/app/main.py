"""
vaultschema Backend - FastAPI Application

Validation and client-side encryption schemas for MongoDB collections.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import get_settings
from app.core.logging_config import configure_logging
from app.database.connections import get_mongo_client, close_connections
from app.database.registry import apply_schemas
from app.dependencies.schemas import get_schema_registry
from app.routers import documents, health, schemas

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
    - Load the schema registry
    - Define the registered collections with their validators

    Shutdown:
    - Close the database connection
    """
    logger.info("Starting up vaultschema backend...")

    registry = get_schema_registry()
    logger.info(f"Loaded schemas for {len(registry)} namespace(s)")

    if settings.apply_schemas_on_startup:
        try:
            client = await get_mongo_client()
            created = await apply_schemas(client, registry)
            logger.info(f"Collections defined: {created or 'none'}")
        except Exception as e:
            logger.warning(f"Database initialization warning: {e}")

    yield

    logger.info("Shutting down vaultschema backend...")
    await close_connections()
    logger.info("Database connection closed")


app = FastAPI(
    title="vaultschema API",
    description="""
## Collection Schema API

Validation and client-side field level encryption schemas for MongoDB collections.

### Features
- **Schemas**: Inspect the $jsonSchema validator of each registered collection
- **Validation**: Check documents for missing, mistyped or undeclared fields
- **Encryption plans**: See which fields are encrypted, deterministically or randomly
- **Inserts**: Write documents only after they pass their collection schema

### Request bodies
Documents are read as MongoDB Extended JSON, e.g. `{"createdAt": {"$date": "2024-01-01T00:00:00Z"}}`.
    """,
    version="0.1.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(health.router)
app.include_router(schemas.router)
app.include_router(documents.router)


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": "vaultschema API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
