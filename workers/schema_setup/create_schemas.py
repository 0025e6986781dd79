#!/usr/bin/env python3
"""
Collection Schema Setup Worker

Defines every registered collection with its $jsonSchema validator, the
equivalent of running the createCollection setup script by hand. Existing
collections are left untouched.

Usage:
    python -m workers.schema_setup.create_schemas

Environment Variables:
    MONGO_URI: MongoDB connection string (same variable as the backend)
    SCHEMA_FILE: Extended JSON schema file (default: built-in app.users schema)
    DRY_RUN: Print the createCollection options instead of applying them
    LOG_LEVEL: Logging level (default: INFO)
"""
import asyncio
import logging
import sys
from typing import Optional

from bson import json_util
from motor.motor_asyncio import AsyncIOMotorClient
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.config import Settings
from app.core.exceptions import MalformedSchema
from app.core.logging_config import configure_logging
from app.database.registry import SchemaRegistry, apply_schemas, load_registry
from app.services.schema_loader import to_collection_options


# ==================== Configuration ====================

class SetupConfig(BaseSettings):
    """Worker configuration from environment."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongo_uri: str = Field(default="mongodb://mongodb:27017")
    schema_file: Optional[str] = Field(default=None)
    dry_run: bool = Field(default=False)
    log_level: str = Field(default="INFO")


config = SetupConfig()

configure_logging(config.log_level)
logger = logging.getLogger("schema_setup")


# ==================== Setup ====================

def render_options(registry: SchemaRegistry) -> str:
    """createCollection options of every namespace, as Extended JSON."""
    options = {
        namespace: to_collection_options(registry.get(namespace))
        for namespace in registry.namespaces
    }
    return json_util.dumps(options, indent=2)


async def run(registry: SchemaRegistry) -> list[str]:
    """Apply the registry to the configured MongoDB."""
    client = AsyncIOMotorClient(config.mongo_uri)
    try:
        await client.admin.command("ping")
        logger.info("Connected to MongoDB")
        return await apply_schemas(client, registry)
    finally:
        client.close()
        logger.info("Disconnected")


def main() -> int:
    """Main entry point."""
    try:
        registry = load_registry(Settings(schema_file=config.schema_file))
    except (OSError, MalformedSchema) as e:
        logger.error(f"Could not load schemas: {e}")
        return 1

    logger.info(f"Loaded schemas for {len(registry)} namespace(s)")

    if config.dry_run:
        print(render_options(registry))
        return 0

    try:
        created = asyncio.run(run(registry))
    except Exception as e:
        logger.error(f"Schema setup failed: {e}")
        return 1

    logger.info(f"Created {len(created)} collection(s): {created}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
