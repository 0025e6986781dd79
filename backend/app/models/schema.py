"""
Collection schema models.

A SchemaDefinition mirrors the $jsonSchema validator of a MongoDB collection
that uses client-side field level encryption: declared field types, which
fields are encrypted and with which algorithm, and which fields are required.
Definitions are immutable and validated once, when they are built.
"""
from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Annotated, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class BsonType(str, Enum):
    """BSON type aliases accepted by $jsonSchema bsonType."""
    STRING = "string"
    DATE = "date"
    OBJECT = "object"
    ARRAY = "array"
    INT = "int"
    LONG = "long"
    DOUBLE = "double"
    DECIMAL = "decimal"
    NUMBER = "number"
    BOOL = "bool"
    OBJECT_ID = "objectId"
    BIN_DATA = "binData"
    NULL = "null"
    TIMESTAMP = "timestamp"
    REGEX = "regex"


class EncryptionAlgorithm(str, Enum):
    """Client-side field level encryption algorithms."""
    DETERMINISTIC = "AEAD_AES_256_CBC_HMAC_SHA_512-Deterministic"
    RANDOM = "AEAD_AES_256_CBC_HMAC_SHA_512-Random"


class ValidationLevel(str, Enum):
    """Which checks run against a document."""
    OFF = "off"
    WARN = "warn"
    STRICT = "strict"


class ValidationAction(str, Enum):
    """What happens to a document that fails a check."""
    WARN = "warn"
    ERROR = "error"


# Deterministic encryption of these types is refused by the server.
DETERMINISTIC_UNSUPPORTED_TYPES = frozenset({
    BsonType.DOUBLE,
    BsonType.DECIMAL,
    BsonType.BOOL,
    BsonType.OBJECT,
    BsonType.ARRAY,
    BsonType.NULL,
})


class PlainField(BaseModel):
    """A field stored as-is."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["plain"] = "plain"
    bson_type: BsonType = Field(..., description="Declared BSON type")


class EncryptedField(BaseModel):
    """A field encrypted on the client before it reaches the server."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["encrypted"] = "encrypted"
    bson_type: BsonType = Field(..., description="BSON type of the plaintext")
    algorithm: Optional[EncryptionAlgorithm] = Field(
        None,
        description="Overrides the schema default algorithm when set",
    )


FieldSpec = Annotated[Union[PlainField, EncryptedField], Field(discriminator="kind")]


class EncryptMetadata(BaseModel):
    """Schema-wide encryption defaults."""
    model_config = ConfigDict(frozen=True)

    key_id: UUID = Field(..., description="Data encryption key identifier")
    algorithm: Optional[EncryptionAlgorithm] = Field(
        None,
        description="Default algorithm for encrypted fields",
    )


class SchemaDefinition(BaseModel):
    """
    Validation and encryption schema of one collection.

    Field declaration order is kept and drives the order in which
    required fields are checked.
    """
    model_config = ConfigDict(frozen=True)

    required_fields: tuple[str, ...] = Field(default=(), description="Mandatory top-level fields")
    encrypt_metadata: Optional[EncryptMetadata] = Field(None, description="Encryption defaults")
    properties: Mapping[str, FieldSpec] = Field(
        default_factory=dict,
        validate_default=True,
        description="Declared fields",
    )
    validation_level: ValidationLevel = Field(default=ValidationLevel.STRICT)
    validation_action: ValidationAction = Field(default=ValidationAction.ERROR)

    @field_validator("required_fields")
    @classmethod
    def required_fields_unique(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if len(set(value)) != len(value):
            raise ValueError("required fields must be unique")
        return value

    @field_validator("properties")
    @classmethod
    def freeze_properties(cls, value: Mapping[str, FieldSpec]) -> Mapping[str, FieldSpec]:
        return MappingProxyType(dict(value))

    @model_validator(mode="after")
    def check_consistency(self) -> "SchemaDefinition":
        undeclared = [name for name in self.required_fields if name not in self.properties]
        if undeclared:
            raise ValueError(f"required fields not declared in properties: {undeclared}")

        for name, spec in self.properties.items():
            if not isinstance(spec, EncryptedField):
                continue
            if self.encrypt_metadata is None:
                raise ValueError(f"encrypted field '{name}' needs encryptMetadata with a keyId")
            algorithm = self.algorithm_for(name)
            if algorithm is None:
                raise ValueError(
                    f"encrypted field '{name}' has no algorithm and the schema has no default"
                )
            if (
                algorithm == EncryptionAlgorithm.DETERMINISTIC
                and spec.bson_type in DETERMINISTIC_UNSUPPORTED_TYPES
            ):
                raise ValueError(
                    f"field '{name}' of type '{spec.bson_type.value}' "
                    "cannot use deterministic encryption"
                )
        return self

    def algorithm_for(self, name: str) -> Optional[EncryptionAlgorithm]:
        """Effective algorithm of an encrypted field, None for plain or unknown fields."""
        spec = self.properties.get(name)
        if not isinstance(spec, EncryptedField):
            return None
        if spec.algorithm is not None:
            return spec.algorithm
        if self.encrypt_metadata is not None:
            return self.encrypt_metadata.algorithm
        return None

    @property
    def encrypted_fields(self) -> list[str]:
        return [
            name for name, spec in self.properties.items()
            if isinstance(spec, EncryptedField)
        ]
