from typing import List
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from trajectplan.database.models import Document
from trajectplan.repositories.base_repository import BaseRepository


class DocumentRepository(BaseRepository[Document]):
    """Uploaded source documents."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Document)

    async def list_by_employee(self, employee_id: UUID) -> List[Document]:
        """All documents of one employee, newest upload first."""
        return await self.list_where(
            filters={"employee_id": employee_id},
            order_by=Document.uploaded_at.desc(),
        )
