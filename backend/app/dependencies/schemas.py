"""
Schema registry and request body dependencies.
"""
from functools import lru_cache
from typing import Any

from bson import json_util
from fastapi import Depends, HTTPException, Request, status

from app.config import get_settings
from app.core.exceptions import UnknownNamespace
from app.database.connections import get_mongo_client
from app.database.registry import SchemaRegistry, load_registry
from app.models.schema import SchemaDefinition
from app.services.document_service import DocumentService


@lru_cache
def get_schema_registry() -> SchemaRegistry:
    """Get the cached schema registry."""
    return load_registry()


def get_schema(
    namespace: str,
    registry: SchemaRegistry = Depends(get_schema_registry),
) -> SchemaDefinition:
    """
    Dependency resolving the {namespace} path parameter to its schema.

    Raises:
        HTTPException 404: If no schema is registered for the namespace
    """
    try:
        return registry.get(namespace)
    except UnknownNamespace as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


async def _read_extended_json(request: Request) -> Any:
    body = await request.body()
    try:
        return json_util.loads(body)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid JSON body: {e}",
        )


async def get_document(request: Request) -> dict[str, Any]:
    """
    Dependency reading the request body as one Extended JSON document.

    Extended JSON keeps BSON types, e.g. {"$date": "2024-01-01T00:00:00Z"}.
    """
    document = await _read_extended_json(request)
    if not isinstance(document, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Body must be a JSON object",
        )
    return document


async def get_documents(request: Request) -> list[dict[str, Any]]:
    """Dependency reading the request body as a list of Extended JSON documents."""
    documents = await _read_extended_json(request)
    if not isinstance(documents, list) or not all(isinstance(d, dict) for d in documents):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Body must be a JSON array of objects",
        )
    return documents


async def get_document_service(
    registry: SchemaRegistry = Depends(get_schema_registry),
) -> DocumentService:
    """Dependency to get DocumentService instance."""
    client = await get_mongo_client()
    auto_encryption = bool(get_settings().master_key_file)
    return DocumentService(client, registry, auto_encryption=auto_encryption)
