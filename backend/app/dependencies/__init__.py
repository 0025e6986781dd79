"""
Dependencies for dependency injection in routes.
"""
from app.dependencies.schemas import (
    get_schema_registry,
    get_schema,
    get_document,
    get_documents,
    get_document_service,
)

__all__ = [
    "get_schema_registry",
    "get_schema",
    "get_document",
    "get_documents",
    "get_document_service",
]
