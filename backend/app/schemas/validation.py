"""
Schema validation request/response schemas.
"""
from typing import Any

from pydantic import BaseModel, Field

from app.models.encryption import EncryptionMode
from app.models.report import Violation


class NamespaceList(BaseModel):
    """Registered namespaces."""
    namespaces: list[str] = Field(..., description="Namespaces with a schema, as db.collection")


class SchemaResponse(BaseModel):
    """A collection schema as sent to createCollection."""
    namespace: str = Field(..., description="db.collection")
    validator: dict[str, Any] = Field(..., description="Validator document in Extended JSON")
    validation_level: str = Field(..., description="Server validationLevel")
    validation_action: str = Field(..., description="Server validationAction")
    encrypted_fields: list[str] = Field(default_factory=list, description="Fields encrypted on the client")


class ValidateResponse(BaseModel):
    """Outcome of validating one accepted document."""
    accepted: bool = Field(default=True, description="Whether the document may be stored")
    warnings: list[Violation] = Field(default_factory=list, description="Tolerated violations")
    plan: dict[str, EncryptionMode] = Field(default_factory=dict, description="Per-field encryption")


class AnnotateResponse(BaseModel):
    """Encryption plan of a document."""
    plan: dict[str, EncryptionMode] = Field(default_factory=dict, description="Per-field encryption")
    encrypted_fields: list[str] = Field(default_factory=list, description="Fields to encrypt/decrypt")
    queryable_fields: list[str] = Field(default_factory=list, description="Fields usable in equality queries")


class InsertResponse(BaseModel):
    """Result of a schema-checked insert."""
    inserted_id: str = Field(..., description="ID of the inserted document")
    plan: dict[str, EncryptionMode] = Field(default_factory=dict, description="Per-field encryption")
    warnings: list[Violation] = Field(default_factory=list, description="Tolerated violations")
