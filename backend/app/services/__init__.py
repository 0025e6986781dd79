"""
Service layer for schema validation, encryption annotation and writes.
"""
from app.services.annotator import annotate
from app.services.document_service import DocumentService
from app.services.validator import ValidatedDocument, find_violations, validate, validate_many

__all__ = [
    "annotate",
    "DocumentService",
    "ValidatedDocument",
    "find_violations",
    "validate",
    "validate_many",
]
