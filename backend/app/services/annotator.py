"""
Encryption annotation: which fields of a document are encrypted, and how.

This only classifies fields. Encrypting and decrypting values is left to the
driver's crypto provider. Deterministic fields always encrypt to the same
ciphertext and can be matched by equality; random fields cannot.
"""
from collections.abc import Mapping
from typing import Any

from app.core.exceptions import UnknownAlgorithm
from app.models.encryption import EncryptionMode, EncryptionPlan
from app.models.schema import (
    EncryptedField,
    EncryptionAlgorithm,
    PlainField,
    SchemaDefinition,
)

ALGORITHM_MODES = {
    EncryptionAlgorithm.DETERMINISTIC: EncryptionMode.DETERMINISTIC,
    EncryptionAlgorithm.RANDOM: EncryptionMode.RANDOM,
}


def _encrypted_mode(name: str, spec: EncryptedField, schema: SchemaDefinition) -> EncryptionMode:
    algorithm = spec.algorithm
    if algorithm is None and schema.encrypt_metadata is not None:
        algorithm = schema.encrypt_metadata.algorithm
    try:
        return ALGORITHM_MODES[EncryptionAlgorithm(algorithm)]
    except ValueError:
        raise UnknownAlgorithm(algorithm, name) from None


def field_mode(name: str, schema: SchemaDefinition) -> EncryptionMode:
    """Encryption mode of a declared field."""
    match schema.properties[name]:
        case PlainField():
            return EncryptionMode.NONE
        case EncryptedField() as spec:
            return _encrypted_mode(name, spec, schema)


def annotate(document: Mapping[str, Any], schema: SchemaDefinition) -> EncryptionPlan:
    """
    Classify every field present in both document and schema.

    Raises:
        UnknownAlgorithm: If a field resolves to an unrecognized algorithm
    """
    return EncryptionPlan(
        modes={
            name: field_mode(name, schema)
            for name in document
            if name in schema.properties
        }
    )
