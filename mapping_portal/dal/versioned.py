"""Base repository for bitemporally versioned entities.

Rows of one entity share ``id``; the open version has ``valid_to IS NULL``.
Subclasses bind the model and the column that scopes ownership
(``user_id`` for top-level entities, ``project_id`` for workflows).
"""

from datetime import datetime
from typing import Any, Generic, TypeVar

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class VersionedRepository(Generic[T]):
    """Read and write version rows of one entity kind.

    Subclasses must set:
    - model: The SQLAlchemy model class (uses VersionedMixin)
    - owner_field: Name of the column that scopes entities to an owner
    - order_by_field: Field used to order current rows (default: "name")
    """

    model: type[T]
    owner_field: str
    order_by_field: str = "name"

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    @property
    def _owner(self) -> Any:
        return getattr(self.model, self.owner_field)

    async def list_current(self, owner_id: Any) -> list[T]:
        """List the open versions of all entities of an owner.

        Args:
            owner_id: Owner scope value

        Returns:
            Open rows ordered by ``order_by_field``, then identity
        """
        result = await self.session.execute(
            select(self.model)
            .where(self._owner == owner_id, self.model.valid_to.is_(None))
            .order_by(getattr(self.model, self.order_by_field), self.model.id)
        )
        return list(result.scalars().all())

    async def list_at(self, owner_id: Any, at: datetime) -> list[T]:
        """List the versions of all entities of an owner valid at an instant."""
        result = await self.session.execute(
            select(self.model)
            .where(self._owner == owner_id, *self._valid_at(at))
            .order_by(getattr(self.model, self.order_by_field), self.model.id)
        )
        return list(result.scalars().all())

    async def list_versions(self, owner_id: Any, entity_id: str) -> list[T]:
        """List every version of one entity, newest first.

        Args:
            owner_id: Owner scope value
            entity_id: Entity identity

        Returns:
            Rows ordered by valid_from descending
        """
        result = await self.session.execute(
            select(self.model)
            .where(self._owner == owner_id, self.model.id == entity_id)
            .order_by(self.model.valid_from.desc(), self.model.row_id.desc())
        )
        return list(result.scalars().all())

    async def get_current(self, owner_id: Any, entity_id: str) -> T | None:
        """Get the open version of an entity.

        Returns:
            Open row or None (unknown or deleted entity)
        """
        result = await self.session.execute(
            select(self.model).where(
                self._owner == owner_id,
                self.model.id == entity_id,
                self.model.valid_to.is_(None),
            )
        )
        return result.scalar_one_or_none()

    async def get_at(self, owner_id: Any, entity_id: str, at: datetime) -> T | None:
        """Get the version of an entity whose validity window contains ``at``.

        Returns:
            Matching row or None
        """
        result = await self.session.execute(
            select(self.model)
            .where(self._owner == owner_id, self.model.id == entity_id, *self._valid_at(at))
            .order_by(self.model.valid_from.desc(), self.model.row_id.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def get_latest_by_name(
        self,
        owner_id: Any,
        name: str,
        *,
        lock: bool = False,
    ) -> T | None:
        """Get the most recent version row for a name, open or closed.

        The open row, when present, is always the most recent one.

        Args:
            owner_id: Owner scope value
            name: Entity name
            lock: Take a row lock (``SELECT ... FOR UPDATE``) so concurrent
                writers of the same name serialize on it

        Returns:
            Latest row or None if the name was never used
        """
        query = (
            select(self.model)
            .where(self._owner == owner_id, self.model.name == name)
            .order_by(self.model.valid_from.desc(), self.model.row_id.desc())
            .limit(1)
        )
        if lock:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalars().first()

    async def add_version(self, **values: Any) -> T:
        """Insert a new version row.

        Args:
            **values: Column values (``id`` and ``valid_from`` included)

        Returns:
            The flushed row
        """
        row = self.model(**values)
        self.session.add(row)
        await self.session.flush()
        return row

    async def close_version(self, row: T, at: datetime) -> bool:
        """Close one open version row.

        The update only matches while the row is still open, so a row that
        a concurrent writer already closed is left alone.

        Args:
            row: Row read earlier in this transaction
            at: Close timestamp (becomes valid_to)

        Returns:
            True if the row was closed, False if it was no longer open
        """
        result = await self.session.execute(
            update(self.model)
            .where(self.model.row_id == row.row_id, self.model.valid_to.is_(None))
            .values(valid_to=at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def close_current(self, owner_id: Any, entity_id: str, at: datetime) -> int:
        """Close the open version of an entity.

        Returns:
            Number of rows closed (0 if nothing was open)
        """
        result = await self.session.execute(
            update(self.model)
            .where(
                self._owner == owner_id,
                self.model.id == entity_id,
                self.model.valid_to.is_(None),
            )
            .values(valid_to=at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def close_all_current(self, owner_id: Any, at: datetime) -> int:
        """Close every open row of an owner.

        Returns:
            Number of rows closed
        """
        result = await self.session.execute(
            update(self.model)
            .where(self._owner == owner_id, self.model.valid_to.is_(None))
            .values(valid_to=at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def _valid_at(self, at: datetime) -> tuple[Any, ...]:
        return (
            self.model.valid_from <= at,
            or_(self.model.valid_to.is_(None), self.model.valid_to > at),
        )
