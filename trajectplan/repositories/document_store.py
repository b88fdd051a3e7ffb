"""Document Store collaborator of the autofill pipeline, backed by SQLAlchemy."""

from typing import Any, Dict, List
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from trajectplan.core.exceptions import DatabaseError, PersistenceError
from trajectplan.models.source_document import SourceDocument
from trajectplan.repositories.document_repository import DocumentRepository
from trajectplan.repositories.field_record_repository import FieldRecordRepository


class SqlDocumentStore:
    """Lists a subject's documents and reads/writes its reconciled field record."""

    def __init__(self, session: AsyncSession):
        self.documents = DocumentRepository(session)
        self.field_records = FieldRecordRepository(session)

    async def list_documents(self, subject_id: UUID) -> List[SourceDocument]:
        try:
            records = await self.documents.list_by_employee(subject_id)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to list documents for {subject_id}", original_error=e)
        return [SourceDocument.from_record(record) for record in records]

    async def get_field_record(self, subject_id: UUID) -> Dict[str, Any]:
        try:
            return await self.field_records.get_fields(subject_id)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to read field record for {subject_id}", original_error=e)

    async def upsert_field_record(self, subject_id: UUID, fields: Dict[str, Any]) -> None:
        try:
            await self.field_records.upsert_fields(subject_id, fields)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to store field record for {subject_id}", original_error=e)
