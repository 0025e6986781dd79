"""
Schema loading and rendering.

Reads collection schemas from the MongoDB $jsonSchema shape used when the
collection is created, or from the flat record shape stored in config files,
and renders them back as createCollection options or a driver schema map.

All shape problems are reported here, at load time, as MalformedSchema
(UnknownAlgorithm for unrecognized algorithm names). A SchemaDefinition that
comes out of this module is safe to validate and annotate against.
"""
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional, Union
from uuid import UUID

from bson import json_util
from bson.binary import UUID_SUBTYPE, Binary
from pydantic import ValidationError

from app.core.exceptions import MalformedSchema, UnknownAlgorithm
from app.models.schema import (
    BsonType,
    EncryptedField,
    EncryptionAlgorithm,
    EncryptMetadata,
    PlainField,
    SchemaDefinition,
    ValidationAction,
    ValidationLevel,
)

logger = logging.getLogger(__name__)

# Server-side validationLevel used for each local level.
SERVER_VALIDATION_LEVELS = {
    ValidationLevel.OFF: "off",
    ValidationLevel.WARN: "moderate",
    ValidationLevel.STRICT: "strict",
}

_LEVEL_ALIASES = {"moderate": ValidationLevel.WARN}


# ==================== Field Parsing ====================

def parse_algorithm(value: Any, path: Optional[str] = None) -> Optional[EncryptionAlgorithm]:
    """Parse an algorithm name, None when unset."""
    if value is None:
        return None
    if isinstance(value, EncryptionAlgorithm):
        return value
    try:
        return EncryptionAlgorithm(value)
    except ValueError:
        raise UnknownAlgorithm(value, path) from None


def parse_key_id(value: Any, path: Optional[str] = None) -> UUID:
    """
    Parse an encryptMetadata keyId.

    Accepts a UUID, a BSON Binary of subtype 4, or a UUID string, either bare
    or as the one-element array MongoDB uses.
    """
    if isinstance(value, (list, tuple)):
        if len(value) != 1:
            raise MalformedSchema("keyId must contain exactly one key", path)
        value = value[0]

    if isinstance(value, UUID):
        return value
    if isinstance(value, Binary):
        if value.subtype != UUID_SUBTYPE:
            raise MalformedSchema(f"keyId binary must be subtype 4, got {value.subtype}", path)
        return value.as_uuid()
    if isinstance(value, str):
        if value.startswith("/"):
            raise MalformedSchema("keyId JSON pointers are not supported", path)
        try:
            return UUID(value)
        except ValueError:
            raise MalformedSchema(f"keyId {value!r} is not a UUID", path) from None
    raise MalformedSchema(f"keyId of type {type(value).__name__} is not a UUID", path)


def parse_bson_type(value: Any, path: Optional[str] = None) -> BsonType:
    if isinstance(value, BsonType):
        return value
    if isinstance(value, (list, tuple)):
        raise MalformedSchema("multiple bsonTypes per field are not supported", path)
    try:
        return BsonType(value)
    except ValueError:
        raise MalformedSchema(f"unknown bsonType {value!r}", path) from None


def parse_validation_level(value: Any) -> ValidationLevel:
    if isinstance(value, ValidationLevel):
        return value
    if isinstance(value, str) and value in _LEVEL_ALIASES:
        return _LEVEL_ALIASES[value]
    try:
        return ValidationLevel(value)
    except ValueError:
        raise MalformedSchema(f"unknown validationLevel {value!r}") from None


def parse_validation_action(value: Any) -> ValidationAction:
    if isinstance(value, ValidationAction):
        return value
    try:
        return ValidationAction(value)
    except ValueError:
        raise MalformedSchema(f"unknown validationAction {value!r}") from None


def _parse_required(value: Any, path: str) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise MalformedSchema("required must be a list of field names", path)
    return tuple(value)


def _expect_mapping(value: Any, path: str) -> Mapping:
    if not isinstance(value, Mapping):
        raise MalformedSchema(f"expected an object, got {type(value).__name__}", path)
    return value


def _build(path: str, **kwargs: Any) -> SchemaDefinition:
    try:
        return SchemaDefinition(**kwargs)
    except ValidationError as e:
        reasons = "; ".join(err["msg"] for err in e.errors())
        raise MalformedSchema(reasons, path) from e


# ==================== $jsonSchema ====================

def parse_json_schema(
    json_schema: Mapping,
    validation_level: Union[str, ValidationLevel] = ValidationLevel.STRICT,
    validation_action: Union[str, ValidationAction] = ValidationAction.ERROR,
    path: str = "$jsonSchema",
) -> SchemaDefinition:
    """
    Build a SchemaDefinition from a MongoDB $jsonSchema document.

    A full validator ({"$jsonSchema": {...}}) is unwrapped. The implicit
    _id property is skipped.

    Raises:
        UnknownAlgorithm: If an algorithm name is not recognized
        MalformedSchema: For any other invalid shape
    """
    json_schema = _expect_mapping(json_schema, path)
    if "$jsonSchema" in json_schema:
        json_schema = _expect_mapping(json_schema["$jsonSchema"], path)

    root_type = json_schema.get("bsonType", "object")
    if root_type != "object":
        raise MalformedSchema(f"root bsonType must be 'object', got {root_type!r}", path)

    required = _parse_required(json_schema.get("required", []), f"{path}.required")

    encrypt_metadata = None
    if json_schema.get("encryptMetadata") is not None:
        meta_path = f"{path}.encryptMetadata"
        meta = _expect_mapping(json_schema["encryptMetadata"], meta_path)
        if "keyId" not in meta:
            raise MalformedSchema("keyId is required", meta_path)
        encrypt_metadata = EncryptMetadata(
            key_id=parse_key_id(meta["keyId"], f"{meta_path}.keyId"),
            algorithm=parse_algorithm(meta.get("algorithm"), f"{meta_path}.algorithm"),
        )

    properties = {}
    raw_properties = _expect_mapping(json_schema.get("properties", {}), f"{path}.properties")
    for name, prop in raw_properties.items():
        if name == "_id":
            continue
        prop_path = f"{path}.properties.{name}"
        prop = _expect_mapping(prop, prop_path)
        if "encrypt" in prop:
            encrypt = _expect_mapping(prop["encrypt"], f"{prop_path}.encrypt")
            if "bsonType" not in encrypt:
                raise MalformedSchema("encrypt needs a bsonType", f"{prop_path}.encrypt")
            properties[name] = EncryptedField(
                bson_type=parse_bson_type(encrypt["bsonType"], f"{prop_path}.encrypt.bsonType"),
                algorithm=parse_algorithm(encrypt.get("algorithm"), f"{prop_path}.encrypt.algorithm"),
            )
        elif "bsonType" in prop:
            properties[name] = PlainField(
                bson_type=parse_bson_type(prop["bsonType"], f"{prop_path}.bsonType"),
            )
        else:
            raise MalformedSchema("property needs a bsonType or an encrypt block", prop_path)

    return _build(
        path,
        required_fields=required,
        encrypt_metadata=encrypt_metadata,
        properties=properties,
        validation_level=parse_validation_level(validation_level),
        validation_action=parse_validation_action(validation_action),
    )


def to_json_schema(schema: SchemaDefinition) -> dict[str, Any]:
    """
    Render a SchemaDefinition as a $jsonSchema document.

    Strict schemas close the document to undeclared fields, so _id is
    declared with an open schema.
    """
    json_schema: dict[str, Any] = {"bsonType": "object"}
    if schema.required_fields:
        json_schema["required"] = list(schema.required_fields)

    if schema.encrypt_metadata is not None:
        meta: dict[str, Any] = {"keyId": [Binary.from_uuid(schema.encrypt_metadata.key_id)]}
        if schema.encrypt_metadata.algorithm is not None:
            meta["algorithm"] = schema.encrypt_metadata.algorithm.value
        json_schema["encryptMetadata"] = meta

    properties: dict[str, Any] = {}
    if schema.validation_level == ValidationLevel.STRICT:
        properties["_id"] = {}
    for name, spec in schema.properties.items():
        if isinstance(spec, EncryptedField):
            encrypt: dict[str, Any] = {"bsonType": spec.bson_type.value}
            if spec.algorithm is not None:
                encrypt["algorithm"] = spec.algorithm.value
            properties[name] = {"encrypt": encrypt}
        else:
            properties[name] = {"bsonType": spec.bson_type.value}
    json_schema["properties"] = properties

    if schema.validation_level == ValidationLevel.STRICT:
        json_schema["additionalProperties"] = False
    return json_schema


def to_collection_options(schema: SchemaDefinition) -> dict[str, Any]:
    """Options for createCollection / collMod."""
    return {
        "validator": {"$jsonSchema": to_json_schema(schema)},
        "validationLevel": SERVER_VALIDATION_LEVELS[schema.validation_level],
        "validationAction": schema.validation_action.value,
    }


def build_schema_map(schemas: Mapping[str, SchemaDefinition]) -> dict[str, dict[str, Any]]:
    """Namespace to $jsonSchema map for a driver's automatic encryption settings."""
    return {namespace: to_json_schema(schema) for namespace, schema in schemas.items()}


# ==================== Record Shape ====================

def parse_record(record: Mapping, path: str = "record") -> SchemaDefinition:
    """
    Build a SchemaDefinition from the flat record shape:

        {
            "requiredFields": [...],
            "encryptMetadata": {"keyId": ..., "algorithm": ...},
            "fields": {"name": {"type": ..., "encrypted": bool, "algorithm": ...}},
            "validationLevel": "strict",
            "validationAction": "error"
        }
    """
    record = _expect_mapping(record, path)

    encrypt_metadata = None
    if record.get("encryptMetadata") is not None:
        meta_path = f"{path}.encryptMetadata"
        meta = _expect_mapping(record["encryptMetadata"], meta_path)
        if "keyId" not in meta:
            raise MalformedSchema("keyId is required", meta_path)
        encrypt_metadata = EncryptMetadata(
            key_id=parse_key_id(meta["keyId"], f"{meta_path}.keyId"),
            algorithm=parse_algorithm(meta.get("algorithm"), f"{meta_path}.algorithm"),
        )

    properties = {}
    fields = _expect_mapping(record.get("fields", {}), f"{path}.fields")
    for name, field in fields.items():
        field_path = f"{path}.fields.{name}"
        field = _expect_mapping(field, field_path)
        if "type" not in field:
            raise MalformedSchema("field needs a type", field_path)
        bson_type = parse_bson_type(field["type"], f"{field_path}.type")
        algorithm = parse_algorithm(field.get("algorithm"), f"{field_path}.algorithm")
        encrypted = field.get("encrypted", False)
        if not isinstance(encrypted, bool):
            raise MalformedSchema(
                f"encrypted must be a boolean, got {encrypted!r}",
                f"{field_path}.encrypted",
            )
        if encrypted:
            properties[name] = EncryptedField(bson_type=bson_type, algorithm=algorithm)
        elif algorithm is not None:
            raise MalformedSchema("algorithm set on a field that is not encrypted", field_path)
        else:
            properties[name] = PlainField(bson_type=bson_type)

    return _build(
        path,
        required_fields=_parse_required(record.get("requiredFields", []), f"{path}.requiredFields"),
        encrypt_metadata=encrypt_metadata,
        properties=properties,
        validation_level=parse_validation_level(record.get("validationLevel", ValidationLevel.STRICT)),
        validation_action=parse_validation_action(record.get("validationAction", ValidationAction.ERROR)),
    )


# ==================== Schema Files ====================

def parse_schema_entry(entry: Mapping, path: str) -> SchemaDefinition:
    """Parse one namespace entry of a schema file, in either shape."""
    entry = _expect_mapping(entry, path)
    level = entry.get("validationLevel", ValidationLevel.STRICT)
    action = entry.get("validationAction", ValidationAction.ERROR)

    if "$jsonSchema" in entry:
        return parse_json_schema(entry["$jsonSchema"], level, action, path)
    if "validator" in entry:
        return parse_json_schema(entry["validator"], level, action, path)
    if "fields" in entry or "requiredFields" in entry:
        return parse_record(entry, path)
    raise MalformedSchema("entry needs $jsonSchema, validator or fields", path)


def load_schemas(data: Mapping) -> dict[str, SchemaDefinition]:
    """Parse a namespace -> schema mapping."""
    data = _expect_mapping(data, "schemas")
    schemas = {}
    for namespace, entry in data.items():
        db_name, _, coll_name = namespace.partition(".")
        if not db_name or not coll_name:
            raise MalformedSchema("namespace must look like 'db.collection'", namespace)
        schemas[namespace] = parse_schema_entry(entry, namespace)
    return schemas


def load_schema_file(path: Union[str, Path]) -> dict[str, SchemaDefinition]:
    """
    Load every schema from an Extended JSON file.

    Raises:
        OSError: If the file cannot be read
        MalformedSchema: If the content is not a valid schema file
    """
    raw = Path(path).read_bytes()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedSchema(f"not valid UTF-8: {e}", str(path)) from e
    try:
        data = json_util.loads(text)
    except ValueError as e:
        raise MalformedSchema(f"invalid JSON: {e}", str(path)) from e

    schemas = load_schemas(data)
    logger.info(f"Loaded {len(schemas)} schema(s) from {path}")
    return schemas
