"""
Schema registry management.
Loads the collection schemas and defines the collections on startup.
"""
import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import CollectionInvalid, OperationFailure

from app.config import Settings, get_settings
from app.core.exceptions import CollectionExists, UnknownNamespace
from app.database.databases import app_db
from app.models.schema import SchemaDefinition
from app.services.schema_loader import (
    build_schema_map,
    load_schema_file,
    parse_schema_entry,
    to_collection_options,
)

logger = logging.getLogger(__name__)

# All database manifests
ALL_DB_MANIFESTS = [
    app_db.DB_MANIFEST,
]

# Server error code for an existing namespace.
NAMESPACE_EXISTS = 48


class SchemaRegistry:
    """Immutable map of "db.collection" namespaces to their schemas."""

    def __init__(self, schemas: Mapping[str, SchemaDefinition]):
        self._schemas = MappingProxyType(dict(schemas))

    def get(self, namespace: str) -> SchemaDefinition:
        """
        Get the schema of a namespace.

        Raises:
            UnknownNamespace: If no schema is registered for it
        """
        try:
            return self._schemas[namespace]
        except KeyError:
            raise UnknownNamespace(namespace) from None

    @property
    def namespaces(self) -> list[str]:
        return list(self._schemas)

    def schema_map(self) -> dict[str, dict[str, Any]]:
        return build_schema_map(self._schemas)

    def __contains__(self, namespace: object) -> bool:
        return namespace in self._schemas

    def __iter__(self) -> Iterator[str]:
        return iter(self._schemas)

    def __len__(self) -> int:
        return len(self._schemas)


def split_namespace(namespace: str) -> tuple[str, str]:
    db_name, _, coll_name = namespace.partition(".")
    return db_name, coll_name


def default_schemas() -> dict[str, SchemaDefinition]:
    """Schemas declared by the built-in database manifests."""
    schemas = {}
    for manifest in ALL_DB_MANIFESTS:
        for coll_name, entry in manifest["collections"].items():
            namespace = f"{manifest['db_name']}.{coll_name}"
            schemas[namespace] = parse_schema_entry(entry, namespace)
    return schemas


def load_registry(settings: Optional[Settings] = None) -> SchemaRegistry:
    """
    Load the schema registry.

    Uses settings.schema_file when set, the built-in manifests otherwise.
    """
    settings = settings or get_settings()
    if settings.schema_file:
        schemas = load_schema_file(settings.schema_file)
    else:
        schemas = default_schemas()
    return SchemaRegistry(schemas)


async def define_collection(
    db: AsyncIOMotorDatabase,
    name: str,
    schema: SchemaDefinition,
) -> None:
    """
    Create a collection with its validator.

    Raises:
        CollectionExists: If the collection already exists
    """
    namespace = f"{db.name}.{name}"
    try:
        await db.create_collection(name, **to_collection_options(schema))
    except CollectionInvalid as e:
        raise CollectionExists(namespace) from e
    except OperationFailure as e:
        if e.code == NAMESPACE_EXISTS:
            raise CollectionExists(namespace) from e
        raise
    logger.info(
        f"Defined collection {namespace} "
        f"(level={schema.validation_level.value}, action={schema.validation_action.value})"
    )


async def apply_schemas(client: AsyncIOMotorClient, registry: SchemaRegistry) -> list[str]:
    """
    Define every registered collection, skipping those that already exist.

    Returns:
        Namespaces created by this call
    """
    created = []
    for namespace in registry.namespaces:
        db_name, coll_name = split_namespace(namespace)
        try:
            await define_collection(client[db_name], coll_name, registry.get(namespace))
        except CollectionExists:
            logger.info(f"Collection {namespace} already defined, skipping")
            continue
        created.append(namespace)
    return created
