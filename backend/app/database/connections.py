"""
Database connection management for MongoDB.
"""
import logging
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorClient

from app.config import get_settings
from app.database.encryption import build_auto_encryption_opts
from app.database.registry import load_registry

logger = logging.getLogger(__name__)

# Global connection instance
_mongo_client: Optional[AsyncIOMotorClient] = None


async def get_mongo_client() -> AsyncIOMotorClient:
    """
    Get or create MongoDB client.

    Encrypts the registered collections automatically when a master key
    file is configured.
    """
    global _mongo_client
    if _mongo_client is None:
        settings = get_settings()
        options: dict[str, Any] = {}
        if settings.master_key_file:
            registry = load_registry(settings)
            options["auto_encryption_opts"] = build_auto_encryption_opts(
                settings, registry.schema_map()
            )
            logger.info(
                f"Auto encryption enabled for {len(registry)} namespace(s), "
                f"key vault {settings.key_vault_namespace}"
            )
        _mongo_client = AsyncIOMotorClient(settings.mongo_uri, **options)
    return _mongo_client


async def close_connections():
    """Close the MongoDB connection."""
    global _mongo_client

    if _mongo_client is not None:
        _mongo_client.close()
        _mongo_client = None
