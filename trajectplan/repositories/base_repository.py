from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from trajectplan.utils.logging import get_logger

ModelType = TypeVar("ModelType")

LOGGER = get_logger(__name__)


class BaseRepository(Generic[ModelType]):
    """Read helpers shared by the autofill repositories.

    The pipeline never deletes or updates rows one by one; writes are the
    field-record upsert in ``FieldRecordRepository``.
    """

    def __init__(self, session: AsyncSession, model: Type[ModelType]):
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session
            model: Mapped class this repository reads
        """
        self.session = session
        self.model = model
        self.logger = LOGGER

    def _where(self, query: Select, filters: Optional[Dict[str, Any]]) -> Select:
        """Apply equality filters; names that are not columns are ignored."""
        for name, value in (filters or {}).items():
            column = getattr(self.model, name, None)
            if column is None:
                self.logger.debug(f"Ignoring unknown filter '{name}' on {self.model.__name__}")
                continue
            query = query.where(column == value)
        return query

    async def list_where(
        self,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Any = None,
        limit: Optional[int] = None,
    ) -> List[ModelType]:
        """Rows matching ``filters``.

        Args:
            filters: column name -> required value
            order_by: Column expression to sort by
            limit: Maximum number of rows

        Returns:
            Matching rows, possibly empty
        """
        query = self._where(select(self.model), filters)
        if order_by is not None:
            query = query.order_by(order_by)
        if limit is not None:
            query = query.limit(limit)

        try:
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error listing {self.model.__name__} rows: {str(e)}",
                exc_info=True,
                extra={"filters": list((filters or {}).keys())}
            )
            raise

