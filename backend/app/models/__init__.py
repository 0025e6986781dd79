"""
Pydantic models for collection schemas and their derived data.
"""
from app.models.schema import (
    BsonType,
    EncryptionAlgorithm,
    ValidationLevel,
    ValidationAction,
    PlainField,
    EncryptedField,
    FieldSpec,
    EncryptMetadata,
    SchemaDefinition,
)
from app.models.encryption import EncryptionMode, EncryptionPlan
from app.models.report import Violation, RejectedDocument, ValidationReport

__all__ = [
    "BsonType",
    "EncryptionAlgorithm",
    "ValidationLevel",
    "ValidationAction",
    "PlainField",
    "EncryptedField",
    "FieldSpec",
    "EncryptMetadata",
    "SchemaDefinition",
    "EncryptionMode",
    "EncryptionPlan",
    "Violation",
    "RejectedDocument",
    "ValidationReport",
]
