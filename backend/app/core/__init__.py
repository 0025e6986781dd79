"""
Core module - Errors and logging setup.
"""
from app.core.exceptions import (
    SchemaError,
    DocumentRejected,
    MissingRequiredField,
    TypeMismatch,
    UnknownField,
    NotEncrypted,
    MalformedSchema,
    UnknownAlgorithm,
    CollectionExists,
    UnknownNamespace,
)
from app.core.logging_config import configure_logging

__all__ = [
    "SchemaError",
    "DocumentRejected",
    "MissingRequiredField",
    "TypeMismatch",
    "UnknownField",
    "NotEncrypted",
    "MalformedSchema",
    "UnknownAlgorithm",
    "CollectionExists",
    "UnknownNamespace",
    "configure_logging",
]
