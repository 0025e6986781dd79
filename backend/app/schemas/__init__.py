"""
Request and response schemas for API endpoints.
"""
from app.schemas.validation import (
    NamespaceList,
    SchemaResponse,
    ValidateResponse,
    AnnotateResponse,
    InsertResponse,
)

__all__ = [
    "NamespaceList",
    "SchemaResponse",
    "ValidateResponse",
    "AnnotateResponse",
    "InsertResponse",
]
