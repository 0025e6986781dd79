"""
Documents router for schema-checked inserts.
"""
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pymongo.errors import WriteError

from app.core.exceptions import DocumentRejected, UnknownNamespace
from app.dependencies.schemas import get_document, get_document_service
from app.routers.schemas import rejection
from app.schemas.validation import InsertResponse
from app.services.document_service import DocumentService

router = APIRouter(prefix="/collections", tags=["Documents"])


@router.post(
    "/{namespace}/documents",
    response_model=InsertResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Insert a document",
)
async def insert_document(
    namespace: str,
    document: dict[str, Any] = Depends(get_document),
    document_service: DocumentService = Depends(get_document_service),
):
    """
    Insert a document after checking it against the collection schema.

    - **404**: no schema for the namespace
    - **422**: the document was rejected, by this service or by the
      server validator, and nothing was written
    """
    try:
        return await document_service.insert(namespace, document)
    except UnknownNamespace as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except DocumentRejected as e:
        raise rejection(e)
    except WriteError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"error": "WriteError", "code": e.code, "message": str(e)},
        )
