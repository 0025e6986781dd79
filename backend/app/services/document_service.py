"""
Document service: schema-checked writes to encrypted collections.
"""
import logging
from typing import TYPE_CHECKING, Any, Mapping

from motor.motor_asyncio import AsyncIOMotorClient

from app.core.exceptions import NotEncrypted
from app.models.report import Violation
from app.schemas.validation import InsertResponse
from app.services.annotator import annotate
from app.services.validator import is_ciphertext, validate

if TYPE_CHECKING:
    from app.database.registry import SchemaRegistry

logger = logging.getLogger(__name__)


class DocumentService:
    """Service for writing documents that must satisfy a collection schema."""

    def __init__(
        self,
        client: AsyncIOMotorClient,
        registry: "SchemaRegistry",
        auto_encryption: bool = False,
    ):
        """
        Initialize with a MongoDB client and the schema registry.

        auto_encryption tells whether the client encrypts fields on write.
        Without it, encrypted fields must already hold ciphertext.
        """
        self.client = client
        self.registry = registry
        self.auto_encryption = auto_encryption

    async def insert(self, namespace: str, document: Mapping[str, Any]) -> InsertResponse:
        """
        Validate and insert a document.

        The document is checked and classified before anything is written;
        a rejected document is never sent to the database.

        Args:
            namespace: Target "db.collection"
            document: Document to insert

        Returns:
            InsertResponse with the inserted ID and the encryption plan

        Raises:
            UnknownNamespace: If the namespace has no schema
            DocumentRejected: If the document violates the schema, or holds
                plaintext in an encrypted field without auto encryption
            WriteError: If the server validator rejects the document
        """
        schema = self.registry.get(namespace)
        validated = validate(document, schema)
        plan = annotate(validated.document, schema)

        if not self.auto_encryption:
            for name in plan.encrypted_fields:
                if not is_ciphertext(validated.document[name]):
                    raise NotEncrypted(name)

        db_name, _, coll_name = namespace.partition(".")
        collection = self.client[db_name][coll_name]
        result = await collection.insert_one(dict(validated.document))

        logger.info(
            f"Inserted {result.inserted_id} into {namespace} "
            f"({len(plan.encrypted_fields)} encrypted field(s))"
        )
        return InsertResponse(
            inserted_id=str(result.inserted_id),
            plan=plan.modes,
            warnings=[Violation(**w.to_dict()) for w in validated.warnings],
        )
