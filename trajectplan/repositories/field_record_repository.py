from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from trajectplan.database.models import TPMeta
from trajectplan.repositories.base_repository import BaseRepository
from trajectplan.utils.logging import get_logger

LOGGER = get_logger(__name__)


class FieldRecordRepository(BaseRepository[TPMeta]):
    """Repository for the per-employee reconciled field record (``tp_meta``)."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, TPMeta)

    async def get_by_employee(self, employee_id: UUID) -> Optional[TPMeta]:
        try:
            query = select(TPMeta).where(TPMeta.employee_id == employee_id)
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error retrieving field record for employee {employee_id}: {str(e)}",
                exc_info=True
            )
            raise

    async def get_fields(self, employee_id: UUID) -> Dict[str, Any]:
        """Stored fields of an employee; empty when no record exists."""
        record = await self.get_by_employee(employee_id)
        if record is None or not record.fields:
            return {}
        return dict(record.fields)

    async def upsert_fields(self, employee_id: UUID, fields: Dict[str, Any]) -> None:
        """Merge fields into the employee's record, creating it if needed.

        Keys present in ``fields`` overwrite stored keys; other stored keys are
        kept. Concurrent writers for one employee are last-writer-wins per key.

        Args:
            employee_id: Employee (subject) ID
            fields: Field values to store
        """
        now = datetime.now(timezone.utc)
        stmt = insert(TPMeta).values(
            employee_id=employee_id,
            fields=fields,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[TPMeta.employee_id],
            set_={
                "fields": TPMeta.fields.op("||")(stmt.excluded.fields),
                "updated_at": now,
            },
        )
        try:
            await self.session.execute(stmt)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(
                f"Error upserting field record for employee {employee_id}: {str(e)}",
                exc_info=True
            )
            raise
