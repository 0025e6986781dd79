"""
Batch validation report models.
"""
from typing import Optional

from pydantic import BaseModel, Field


class Violation(BaseModel):
    """One schema violation of a document."""
    error: str = Field(..., description="Error kind, e.g. MissingRequiredField")
    field: str = Field(..., description="Offending field")
    message: str = Field(..., description="Human readable description")


class RejectedDocument(BaseModel):
    """A document of a batch that failed validation."""
    index: int = Field(..., description="Position of the document in the batch")
    document_id: Optional[str] = Field(None, description="String form of _id when present")
    violations: list[Violation] = Field(default_factory=list)


class ValidationReport(BaseModel):
    """Outcome of validating a batch of documents against one schema."""
    total: int = Field(default=0, description="Documents checked")
    accepted: int = Field(default=0, description="Documents that passed")
    rejected: list[RejectedDocument] = Field(default_factory=list)

    @property
    def rejected_count(self) -> int:
        return len(self.rejected)

    @property
    def ok(self) -> bool:
        return not self.rejected
