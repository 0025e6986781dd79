"""
Document validation against a collection schema.

Validation is read-only: the document passed in is never modified, and the
same (document, schema) pair always yields the same outcome.

Checks by validation level:
- off: none
- warn: required fields and declared types
- strict: required fields, declared types and undeclared fields

On failure, validationAction "error" rejects the document with the first
violation; "warn" accepts it and reports the violations as warnings.
"""
import datetime
import decimal
import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable

from bson import ObjectId, Regex, Timestamp
from bson.binary import Binary
from bson.decimal128 import Decimal128

from app.core.exceptions import (
    DocumentRejected,
    MissingRequiredField,
    TypeMismatch,
    UnknownField,
)
from app.models.report import RejectedDocument, ValidationReport, Violation
from app.models.schema import (
    BsonType,
    EncryptedField,
    SchemaDefinition,
    ValidationAction,
    ValidationLevel,
)

logger = logging.getLogger(__name__)

# Fields every stored document may carry without being declared.
IMPLICIT_FIELDS = frozenset({"_id"})

# BSON binary subtype of client-side encrypted values.
ENCRYPTED_SUBTYPE = 6

INT32_MIN, INT32_MAX = -(2**31), 2**31 - 1
INT64_MIN, INT64_MAX = -(2**63), 2**63 - 1


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


TYPE_CHECKS: dict[BsonType, Callable[[Any], bool]] = {
    BsonType.STRING: lambda v: isinstance(v, str),
    BsonType.DATE: lambda v: isinstance(v, datetime.datetime),
    BsonType.OBJECT: lambda v: isinstance(v, Mapping),
    BsonType.ARRAY: lambda v: isinstance(v, (list, tuple)),
    BsonType.INT: lambda v: _is_int(v) and INT32_MIN <= v <= INT32_MAX,
    BsonType.LONG: lambda v: _is_int(v) and INT64_MIN <= v <= INT64_MAX,
    BsonType.DOUBLE: lambda v: isinstance(v, float),
    BsonType.DECIMAL: lambda v: isinstance(v, (Decimal128, decimal.Decimal)),
    BsonType.NUMBER: lambda v: _is_int(v) or isinstance(v, (float, Decimal128, decimal.Decimal)),
    BsonType.BOOL: lambda v: isinstance(v, bool),
    BsonType.OBJECT_ID: lambda v: isinstance(v, ObjectId),
    BsonType.BIN_DATA: lambda v: isinstance(v, (bytes, Binary)),
    BsonType.NULL: lambda v: v is None,
    BsonType.TIMESTAMP: lambda v: isinstance(v, Timestamp),
    BsonType.REGEX: lambda v: isinstance(v, (Regex, re.Pattern)),
}


@dataclass(frozen=True)
class ValidatedDocument:
    """A document accepted by its schema, with any tolerated violations."""
    document: Mapping[str, Any]
    warnings: tuple[DocumentRejected, ...] = field(default=())

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


def is_ciphertext(value: Any) -> bool:
    """True for a client-side encrypted BSON value."""
    return isinstance(value, Binary) and value.subtype == ENCRYPTED_SUBTYPE


def bson_type_name(value: Any) -> str:
    """Best-effort BSON type name of a Python value, for error messages."""
    for bson_type in (
        BsonType.NULL, BsonType.BOOL, BsonType.LONG, BsonType.DOUBLE,
        BsonType.STRING, BsonType.DATE, BsonType.OBJECT_ID, BsonType.DECIMAL,
        BsonType.BIN_DATA, BsonType.TIMESTAMP, BsonType.REGEX,
        BsonType.OBJECT, BsonType.ARRAY,
    ):
        if TYPE_CHECKS[bson_type](value):
            if bson_type == BsonType.LONG and TYPE_CHECKS[BsonType.INT](value):
                return BsonType.INT.value
            return bson_type.value
    return type(value).__name__


def matches_type(value: Any, bson_type: BsonType) -> bool:
    return TYPE_CHECKS[bson_type](value)


def find_violations(document: Mapping[str, Any], schema: SchemaDefinition) -> list[DocumentRejected]:
    """
    List every violation of document against schema, ignoring validationAction.

    Order: missing required fields in declaration order, then type and
    unknown-field violations in document order.

    _id is never reported as an unknown field, even under strict
    validation: MongoDB adds it to every document.
    """
    if schema.validation_level == ValidationLevel.OFF:
        return []

    violations: list[DocumentRejected] = [
        MissingRequiredField(name)
        for name in schema.required_fields
        if name not in document
    ]

    strict = schema.validation_level == ValidationLevel.STRICT
    for name, value in document.items():
        spec = schema.properties.get(name)
        if spec is None:
            if strict and name not in IMPLICIT_FIELDS:
                violations.append(UnknownField(name))
            continue
        if isinstance(spec, EncryptedField) and is_ciphertext(value):
            continue
        if not matches_type(value, spec.bson_type):
            violations.append(TypeMismatch(name, spec.bson_type.value, bson_type_name(value)))

    return violations


def validate(document: Mapping[str, Any], schema: SchemaDefinition) -> ValidatedDocument:
    """
    Validate a document before it is written.

    Args:
        document: Candidate document
        schema: Schema of the target collection

    Returns:
        ValidatedDocument wrapping a read-only view of the document

    Raises:
        MissingRequiredField: If a required field is absent
        TypeMismatch: If a declared field has the wrong type
        UnknownField: If an undeclared field is present under strict validation
    """
    if not isinstance(document, Mapping):
        raise TypeError(f"document must be a mapping, got {type(document).__name__}")

    violations = find_violations(document, schema)
    if violations and schema.validation_action == ValidationAction.ERROR:
        raise violations[0]

    for violation in violations:
        logger.warning(f"Schema violation tolerated: {violation}")

    return ValidatedDocument(
        document=MappingProxyType(dict(document)),
        warnings=tuple(violations),
    )


def validate_many(documents: Iterable[Mapping[str, Any]], schema: SchemaDefinition) -> ValidationReport:
    """
    Validate a batch of documents and report every rejection.

    Document violations never raise; under validationAction "warn" every
    document counts as accepted.

    Raises:
        TypeError: If an item of the batch is not a mapping
    """
    report = ValidationReport()
    for index, document in enumerate(documents):
        if not isinstance(document, Mapping):
            raise TypeError(
                f"document {index} must be a mapping, got {type(document).__name__}"
            )
        report.total += 1
        violations = find_violations(document, schema)
        if not violations or schema.validation_action == ValidationAction.WARN:
            report.accepted += 1
            continue

        document_id = document.get("_id")
        report.rejected.append(
            RejectedDocument(
                index=index,
                document_id=str(document_id) if document_id is not None else None,
                violations=[Violation(**v.to_dict()) for v in violations],
            )
        )

    if report.rejected:
        logger.info(f"Validated {report.total} document(s): {report.rejected_count} rejected")
    return report
