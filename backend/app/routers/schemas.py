"""
Schemas router for inspecting collection schemas and checking documents.
"""
import json
from typing import Any

from bson import json_util
from fastapi import APIRouter, Depends, HTTPException, status

from app.core.exceptions import DocumentRejected
from app.database.registry import SchemaRegistry
from app.dependencies.schemas import (
    get_document,
    get_documents,
    get_schema,
    get_schema_registry,
)
from app.models.report import ValidationReport, Violation
from app.models.schema import SchemaDefinition
from app.schemas.validation import (
    AnnotateResponse,
    NamespaceList,
    SchemaResponse,
    ValidateResponse,
)
from app.services.annotator import annotate
from app.services.schema_loader import to_collection_options
from app.services.validator import validate, validate_many

router = APIRouter(prefix="/schemas", tags=["Schemas"])


def rejection(error: DocumentRejected) -> HTTPException:
    """422 response for a rejected document."""
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=error.to_dict(),
    )


@router.get(
    "",
    response_model=NamespaceList,
    summary="List registered namespaces",
)
async def list_schemas(registry: SchemaRegistry = Depends(get_schema_registry)):
    """List every namespace with a registered schema."""
    return NamespaceList(namespaces=registry.namespaces)


@router.get(
    "/{namespace}",
    response_model=SchemaResponse,
    summary="Get a collection schema",
)
async def get_collection_schema(
    namespace: str,
    schema: SchemaDefinition = Depends(get_schema),
):
    """
    Get the createCollection options of a namespace.

    The validator is rendered as Extended JSON so the key ID keeps its
    UUID binary subtype.
    """
    options = to_collection_options(schema)
    validator: dict[str, Any] = json.loads(json_util.dumps(options["validator"]))
    return SchemaResponse(
        namespace=namespace,
        validator=validator,
        validation_level=options["validationLevel"],
        validation_action=options["validationAction"],
        encrypted_fields=schema.encrypted_fields,
    )


@router.post(
    "/{namespace}/validate",
    response_model=ValidateResponse,
    summary="Validate a document",
)
async def validate_document(
    schema: SchemaDefinition = Depends(get_schema),
    document: dict[str, Any] = Depends(get_document),
):
    """
    Check a document against a namespace schema without storing it.

    Returns 422 with the first violation when the document is rejected.
    """
    try:
        validated = validate(document, schema)
    except DocumentRejected as e:
        raise rejection(e)

    return ValidateResponse(
        accepted=True,
        warnings=[Violation(**w.to_dict()) for w in validated.warnings],
        plan=annotate(validated.document, schema).modes,
    )


@router.post(
    "/{namespace}/annotate",
    response_model=AnnotateResponse,
    summary="Get the encryption plan of a document",
)
async def annotate_document(
    schema: SchemaDefinition = Depends(get_schema),
    document: dict[str, Any] = Depends(get_document),
):
    """Classify the document fields as none, deterministic or random."""
    plan = annotate(document, schema)
    return AnnotateResponse(
        plan=plan.modes,
        encrypted_fields=plan.encrypted_fields,
        queryable_fields=plan.queryable_fields,
    )


@router.post(
    "/{namespace}/report",
    response_model=ValidationReport,
    summary="Validate a batch of documents",
)
async def report_documents(
    schema: SchemaDefinition = Depends(get_schema),
    documents: list[dict[str, Any]] = Depends(get_documents),
):
    """Validate every document of the batch and list the rejected ones."""
    return validate_many(documents, schema)
