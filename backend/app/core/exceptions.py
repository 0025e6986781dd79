"""
Schema and document errors.

All errors derive from ValueError so callers that already treat bad input
as ValueError keep working. None of them are transient: a rejected document
or a malformed schema never succeeds on retry.
"""
from typing import Any, Optional


class SchemaError(ValueError):
    """Base class for every schema-related error."""


class DocumentRejected(SchemaError):
    """A document does not satisfy its collection schema."""

    code = "DocumentRejected"

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "field": self.field, "message": self.message}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DocumentRejected):
            return NotImplemented
        return type(self) is type(other) and self.to_dict() == other.to_dict()

    def __hash__(self) -> int:
        return hash((self.code, self.field, self.message))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(field={self.field!r})"


class MissingRequiredField(DocumentRejected):
    code = "MissingRequiredField"

    def __init__(self, field: str):
        super().__init__(field, f"Missing required field '{field}'")


class TypeMismatch(DocumentRejected):
    code = "TypeMismatch"

    def __init__(self, field: str, expected: str, actual: str):
        super().__init__(
            field,
            f"Field '{field}' must be of type '{expected}', got '{actual}'",
        )
        self.expected = expected
        self.actual = actual


class UnknownField(DocumentRejected):
    code = "UnknownField"

    def __init__(self, field: str):
        super().__init__(field, f"Field '{field}' is not declared in the schema")


class NotEncrypted(DocumentRejected):
    code = "NotEncrypted"

    def __init__(self, field: str):
        super().__init__(
            field,
            f"Field '{field}' must hold ciphertext when client-side encryption is off",
        )


class MalformedSchema(SchemaError):
    """A schema definition was rejected while loading."""

    def __init__(self, message: str, path: Optional[str] = None):
        if path:
            message = f"{path}: {message}"
        super().__init__(message)
        self.path = path


class UnknownAlgorithm(MalformedSchema):
    """An encryption algorithm name is not recognized."""

    def __init__(self, algorithm: Any, path: Optional[str] = None):
        super().__init__(f"Unknown encryption algorithm {algorithm!r}", path)
        self.algorithm = algorithm


class CollectionExists(SchemaError):
    """A collection could not be defined because it already exists."""

    def __init__(self, namespace: str):
        super().__init__(f"Collection '{namespace}' already exists")
        self.namespace = namespace


class UnknownNamespace(KeyError):
    """No schema is registered for a namespace."""

    def __init__(self, namespace: str):
        super().__init__(namespace)
        self.namespace = namespace

    def __str__(self) -> str:
        return f"No schema registered for '{self.namespace}'"
