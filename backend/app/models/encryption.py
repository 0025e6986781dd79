"""
Encryption plan produced by the annotator.
"""
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EncryptionMode(str, Enum):
    """How a field is transformed before write and after read."""
    NONE = "none"
    DETERMINISTIC = "deterministic"
    RANDOM = "random"


class EncryptionPlan(BaseModel):
    """
    Per-field encryption classification of one document.

    Only fields present in both the document and the schema appear.
    """
    model_config = ConfigDict(frozen=True)

    modes: dict[str, EncryptionMode] = Field(default_factory=dict)

    def __getitem__(self, field: str) -> EncryptionMode:
        return self.modes[field]

    def __contains__(self, field: object) -> bool:
        return field in self.modes

    def _fields_with(self, *modes: EncryptionMode) -> list[str]:
        return [name for name, mode in self.modes.items() if mode in modes]

    @property
    def encrypted_fields(self) -> list[str]:
        """Fields to encrypt before write and decrypt after read."""
        return self._fields_with(EncryptionMode.DETERMINISTIC, EncryptionMode.RANDOM)

    @property
    def deterministic_fields(self) -> list[str]:
        return self._fields_with(EncryptionMode.DETERMINISTIC)

    @property
    def random_fields(self) -> list[str]:
        return self._fields_with(EncryptionMode.RANDOM)

    @property
    def queryable_fields(self) -> list[str]:
        """Fields that still support equality queries once stored."""
        return self._fields_with(EncryptionMode.NONE, EncryptionMode.DETERMINISTIC)
