"""
Persistent collection of revision rows for one entity type.

A thin document-style facade over an AsyncSession: point lookups by
(item_id, revision_id), scans by item sorted by revision, inserts and
criteria-based updates/deletes. Writes are flushed immediately so later
reads in the same unit of work see them; committing is the caller's job.
"""

from typing import Any, Dict, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from sightings.kernel.errors import ConflictError
from sightings.kernel.models.base import RevisionMixin

ModelT = TypeVar("ModelT", bound=RevisionMixin)


class RevisionCollection(Generic[ModelT]):
    """
    Usage:
        collection = RevisionCollection(session, ObservationRevision)
        latest = await collection.find_latest(item_id)
    """

    def __init__(self, session: AsyncSession, model: Type[ModelT]):
        self.session = session
        self.model = model

    def _key(self, item_id: str, revision_id: int) -> List[ColumnElement[bool]]:
        return [self.model.item_id == item_id, self.model.revision_id == revision_id]

    async def find_one(self, item_id: str, revision_id: int) -> Optional[ModelT]:
        result = await self.session.execute(select(self.model).where(*self._key(item_id, revision_id)))
        return result.scalar_one_or_none()

    async def find_latest(self, item_id: str) -> Optional[ModelT]:
        query = (
            select(self.model)
            .where(self.model.item_id == item_id)
            .order_by(self.model.revision_id.desc())
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def find_all_sorted_by_revision_desc(self, item_id: str) -> List[ModelT]:
        query = (
            select(self.model)
            .where(self.model.item_id == item_id)
            .order_by(self.model.revision_id.desc())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def find(
        self,
        *criteria: ColumnElement[bool],
        order_by: Sequence[Any] = (),
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[ModelT]:
        query = select(self.model).where(*criteria).order_by(*order_by)
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count(self, *criteria: ColumnElement[bool]) -> int:
        query = select(func.count()).select_from(self.model).where(*criteria)
        result = await self.session.execute(query)
        return result.scalar_one()

    async def insert_one(self, doc: ModelT) -> ModelT:
        """
        Insert a new revision row.

        Raises:
            ConflictError: the (item_id, revision_id) pair is taken or the
                row would be a second published revision of the item
        """
        self.session.add(doc)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise ConflictError(
                f"Revision {doc.revision_id} of {doc.item_id} was written concurrently",
                item_id=doc.item_id,
                revision_id=doc.revision_id,
            ) from exc
        return doc

    async def _execute_write(self, statement, *, item_id: str) -> int:
        try:
            result = await self.session.execute(statement)
        except IntegrityError as exc:
            raise ConflictError(f"Concurrent write on {item_id}", item_id=item_id) from exc
        return result.rowcount

    async def update_one(self, item_id: str, revision_id: int, patch: Dict[str, Any]) -> int:
        statement = update(self.model).where(*self._key(item_id, revision_id)).values(**patch)
        return await self._execute_write(statement, item_id=item_id)

    async def update_many(self, *criteria: ColumnElement[bool], patch: Dict[str, Any], item_id: str = "") -> int:
        statement = update(self.model).where(*criteria).values(**patch)
        return await self._execute_write(statement, item_id=item_id)

    async def delete_one(self, item_id: str, revision_id: int) -> int:
        statement = delete(self.model).where(*self._key(item_id, revision_id))
        result = await self.session.execute(statement)
        return result.rowcount

    async def delete_many(self, *criteria: ColumnElement[bool]) -> int:
        result = await self.session.execute(delete(self.model).where(*criteria))
        return result.rowcount
