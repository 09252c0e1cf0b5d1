"""Generic async repository shared by the cardspend tables."""

import operator
from typing import Any, Callable, Generic, List, Optional, Type, TypeVar

from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cardspend.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)

# ``column__op=value`` suffixes understood by ``filter`` and ``count``
_OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "eq": operator.eq,
    "ne": operator.ne,
    "lt": operator.lt,
    "lte": operator.le,
    "gt": operator.gt,
    "gte": operator.ge,
}


class BaseRepository(Generic[ModelType]):
    """
    Row access for one mapped table.

    Repositories flush but never commit; the UnitOfWork that owns the
    session ends the transaction.
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    async def create(self, **values: Any) -> ModelType:
        """Insert a row and return it with server-side columns loaded."""
        row = self.model(**values)
        self.session.add(row)
        await self.session.flush()
        await self.session.refresh(row)
        return row

    async def get_by_id(self, row_id: int) -> Optional[ModelType]:
        return await self.get_by_field("id", row_id)

    async def get_by_field(self, column: str, value: Any) -> Optional[ModelType]:
        """Row whose ``column`` equals ``value``; the column must be unique."""
        result = await self.session.execute(
            select(self.model).where(getattr(self.model, column) == value)
        )
        return result.scalar_one_or_none()

    async def filter(self, order_by: Optional[str] = None, **conditions: Any) -> List[ModelType]:
        """
        Rows matching every condition.

        Conditions are ``column=value`` or ``column__op=value`` with ``op`` one
        of eq, ne, lt, lte, gt, gte. ``order_by`` sorts ascending, ties broken
        by id.

        Example:
            await repo.filter(order_by="datetime_of_use",
                              datetime_of_use__gte=start, datetime_of_use__lt=end)
        """
        query = self._where(select(self.model), conditions)
        if order_by is not None:
            query = query.order_by(getattr(self.model, order_by), self.model.id)  # type: ignore[attr-defined]
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count(self, **conditions: Any) -> int:
        query = self._where(select(func.count()).select_from(self.model), conditions)
        result = await self.session.execute(query)
        return result.scalar_one()

    async def delete(self, row_id: int) -> bool:
        """Delete by id. False when no row had that id."""
        result = await self.session.execute(
            delete(self.model).where(self.model.id == row_id)  # type: ignore[attr-defined]
        )
        await self.session.flush()
        return (result.rowcount or 0) > 0  # type: ignore[attr-defined]

    def _where(self, query: Select, conditions: dict[str, Any]) -> Select:
        for key, value in conditions.items():
            column, _, op = key.partition("__")
            compare = _OPERATORS.get(op or "eq")
            if compare is None:
                raise ValueError(f"Unknown filter operator: {op}")
            query = query.where(compare(getattr(self.model, column), value))
        return query
