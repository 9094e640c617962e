"""
Revision Store Engine.

Generic over one revisioned entity table. Every operation authorizes close
to the data: it loads the smallest snapshot it needs, asks the caller's
AuthContext, and only then writes.
"""

import copy
from typing import Any, ClassVar, Dict, FrozenSet, Generic, List, Mapping, Optional, Type, Union

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from sightings.kernel.errors import InvalidStateError, NotAuthorizedError, NotFoundError
from sightings.kernel.identity.context import AuthContext
from sightings.kernel.models.base import generate_item_id, utcnow
from sightings.kernel.permissions import Permission
from sightings.kernel.revisions.collection import ModelT, RevisionCollection
from sightings.kernel.search import SearchFilters, SearchPage, compose_search, finish_page
from sightings.logging_config import get_logger

logger = get_logger(__name__)

Fields = Union[BaseModel, Mapping[str, Any]]


class RevisionStore(Generic[ModelT]):
    """
    Append-only revision lifecycle for one entity type.

    Subclasses bind the model and declare which payload columns exist and
    which of them may change between revisions.

    Usage:
        store = ObservationStore(session, context)
        obs = await store.create_object(ObservationCreate(description="heron"))
        await store.publish_revision(obs.item_id, obs.revision_id)
    """

    model: ClassVar[Type[Any]]
    entity_name: ClassVar[str] = "entity"
    # Every domain column copied from revision to revision
    payload_fields: ClassVar[FrozenSet[str]] = frozenset()
    # The subset a later revision may change
    mutable_fields: ClassVar[FrozenSet[str]] = frozenset()

    def __init__(self, session: AsyncSession, context: AuthContext, *, max_limit: int = 1000):
        self.session = session
        self.context = context
        self.max_limit = max_limit
        self.collection: RevisionCollection[ModelT] = RevisionCollection(session, self.model)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _log_extra(self, item_id: Optional[str], revision_id: Optional[int] = None, **extra: Any) -> Dict[str, Any]:
        return {
            "entity": self.entity_name,
            "item_id": item_id,
            "revision_id": revision_id,
            **extra,
        }

    def _deny(self, action: str, item_id: Optional[str] = None, revision_id: Optional[int] = None) -> NotAuthorizedError:
        logger.info(
            "Denied %s on %s", action, self.entity_name,
            extra=self._log_extra(item_id, revision_id, action=action),
        )
        return NotAuthorizedError(
            f"Not allowed to {action} this {self.entity_name}",
            item_id=item_id,
            revision_id=revision_id,
        )

    def _not_found(self, item_id: str, revision_id: Optional[int] = None) -> NotFoundError:
        if revision_id is None:
            message = f"{self.entity_name.capitalize()} {item_id} not found"
        else:
            message = f"Revision {revision_id} of {self.entity_name} {item_id} not found"
        return NotFoundError(message, item_id=item_id, revision_id=revision_id)

    def _prepare_fields(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Entity-specific conversion of payload values to column values."""
        return values

    def _to_columns(self, fields: Optional[Fields], allowed: FrozenSet[str]) -> Dict[str, Any]:
        """
        Flatten a payload into column values.

        Only fields the caller actually set are returned, so omitted fields
        keep their prior value while an explicit None clears it.

        Raises:
            InvalidStateError: a field outside `allowed` was supplied
        """
        if fields is None:
            return {}
        if isinstance(fields, BaseModel):
            values = fields.model_dump(exclude_unset=True)
        else:
            values = dict(fields)

        if "location" in values:
            location = values.pop("location")
            if location is None:
                values["latitude"] = None
                values["longitude"] = None
            else:
                if isinstance(location, BaseModel):
                    location = location.model_dump()
                values["latitude"] = location["latitude"]
                values["longitude"] = location["longitude"]

        values = self._prepare_fields(values)

        rejected = sorted(set(values) - allowed)
        if rejected:
            raise InvalidStateError(
                f"Cannot set {', '.join(rejected)} on a {self.entity_name} revision"
            )
        return values

    def _creation_defaults(self) -> Dict[str, Any]:
        return {}

    async def _validate_payload(self, values: Dict[str, Any]) -> None:
        """Hook for checks that need I/O, e.g. referenced items exist."""

    async def _reload(self, row: ModelT) -> ModelT:
        await self.session.refresh(row)
        return row

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_latest_revision(self, item_id: str) -> ModelT:
        """
        Revision with the highest revision_id.

        Raises:
            NotFoundError: the item has no revisions
            NotAuthorizedError: the caller cannot read that revision
        """
        row = await self.collection.find_latest(item_id)
        if row is None:
            raise self._not_found(item_id)
        if not self.context.can_read(row):
            raise self._deny("read", item_id, row.revision_id)
        return row

    async def get_revision(self, item_id: str, revision_id: int) -> ModelT:
        row = await self.collection.find_one(item_id, revision_id)
        if row is None:
            raise self._not_found(item_id, revision_id)
        if not self.context.can_read(row):
            raise self._deny("read", item_id, revision_id)
        return row

    async def get_published_revision(self, item_id: str) -> ModelT:
        """The canonical revision of an item."""
        rows = await self.collection.find(
            self.model.item_id == item_id,
            self.model.published.is_(True),
            limit=1,
        )
        if not rows:
            raise NotFoundError(
                f"{self.entity_name.capitalize()} {item_id} has no published revision",
                item_id=item_id,
            )
        row = rows[0]
        if not self.context.can_read(row):
            raise self._deny("read", item_id, row.revision_id)
        return row

    async def list_revisions(self, item_id: str) -> List[ModelT]:
        """
        Every revision of an item the caller may read, newest first.

        Raises:
            NotFoundError: the item has no revisions
            NotAuthorizedError: it has revisions but none are readable
        """
        rows = await self.collection.find_all_sorted_by_revision_desc(item_id)
        if not rows:
            raise self._not_found(item_id)
        readable = [row for row in rows if self.context.can_read(row)]
        if not readable:
            raise self._deny("read", item_id)
        return readable

    async def search_objects(
        self,
        filters: Optional[SearchFilters] = None,
        extra_predicate: Optional[ColumnElement[bool]] = None,
    ) -> List[ModelT]:
        """Permission-aware search; see search_page."""
        page = await self.search_page(filters, extra_predicate)
        return page.items

    async def search_page(
        self,
        filters: Optional[SearchFilters] = None,
        extra_predicate: Optional[ColumnElement[bool]] = None,
    ) -> SearchPage[ModelT]:
        """
        Permission-aware search returning one page.

        The SQL query narrows to what the caller may see; every row is
        then checked again with can_read before it is returned.
        """
        filters = filters or SearchFilters()
        plan = compose_search(
            self.model,
            self.context,
            filters,
            extra_predicate=extra_predicate,
            max_limit=self.max_limit,
        )
        rows = await self.collection.find(
            *plan.criteria,
            order_by=plan.order_by,
            offset=plan.sql_offset,
            limit=plan.sql_limit,
        )
        return finish_page(rows, self.context, plan)

    async def list_pending(self, skip: int = 0, limit: int = 100) -> List[ModelT]:
        """
        Moderation queue: submitted, unpublished revisions, newest first.

        Raises:
            NotAuthorizedError: caller lacks read-all
        """
        if not self.context.has(Permission.READ_ALL):
            raise self._deny("list pending")
        return await self.collection.find(
            self.model.submitted.is_(True),
            self.model.published.is_(False),
            order_by=(self.model.revision_created_at.desc(), self.model.item_id.asc()),
            offset=skip,
            limit=min(limit, self.max_limit),
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_object(self, fields: Optional[Fields] = None) -> ModelT:
        """
        Create a new item at revision 0.

        Args:
            fields: Initial payload

        Returns:
            The inserted revision (published=False, submitted=True)

        Raises:
            NotAuthorizedError: anonymous caller or no edit-own permission
            InvalidStateError: unknown field in the payload
        """
        if not self.context.can_create():
            raise self._deny("create")

        values = {**self._creation_defaults(), **self._to_columns(fields, self.payload_fields)}
        await self._validate_payload(values)
        now = utcnow()
        row = self.model(
            item_id=generate_item_id(),
            revision_id=0,
            owner=self.context.user_id,
            published=False,
            submitted=True,
            created_at=now,
            updated_at=now,
            revision_created_at=now,
            **values,
        )
        await self.collection.insert_one(row)

        logger.info(
            "Created %s", self.entity_name,
            extra=self._log_extra(row.item_id, 0, user_id=self.context.user_id),
        )
        return row

    async def create_revision(self, item_id: str, fields: Optional[Fields] = None) -> ModelT:
        """
        Append a revision: the latest one overlaid with the supplied fields.

        The new revision is an unsubmitted draft until submit_revision.

        Raises:
            NotFoundError: no such item
            NotAuthorizedError: caller cannot edit the latest revision
            InvalidStateError: a field that may not change was supplied
            ConflictError: another writer created the same revision number
        """
        latest = await self.get_latest_revision(item_id)
        if not self.context.can_edit(latest):
            raise self._deny("edit", item_id, latest.revision_id)

        values = self._to_columns(fields, self.mutable_fields)
        await self._validate_payload(values)
        payload = {name: copy.deepcopy(getattr(latest, name)) for name in self.payload_fields}
        payload.update(values)

        now = utcnow()
        row = self.model(
            item_id=item_id,
            revision_id=latest.revision_id + 1,
            owner=latest.owner,
            created_at=latest.created_at,
            published=False,
            submitted=False,
            updated_at=now,
            revision_created_at=now,
            **payload,
        )
        await self.collection.insert_one(row)

        logger.info(
            "Created %s revision", self.entity_name,
            extra=self._log_extra(item_id, row.revision_id, user_id=self.context.user_id),
        )
        return row

    async def update_revision(self, item_id: str, revision_id: int, fields: Optional[Fields] = None) -> ModelT:
        """
        Patch an unpublished revision in place.

        Raises:
            NotFoundError: no such revision
            NotAuthorizedError: caller cannot edit it
            InvalidStateError: the revision is published, or a field that
                may not change was supplied
        """
        row = await self.get_revision(item_id, revision_id)
        if not self.context.can_edit(row):
            raise self._deny("edit", item_id, revision_id)
        if row.published:
            raise InvalidStateError(
                "Cannot modify a published revision; create a new revision instead",
                item_id=item_id,
                revision_id=revision_id,
            )

        values = self._to_columns(fields, self.mutable_fields)
        if not values:
            return row
        await self._validate_payload(values)
        values["updated_at"] = utcnow()
        await self.collection.update_one(item_id, revision_id, values)

        logger.info(
            "Updated %s revision", self.entity_name,
            extra=self._log_extra(item_id, revision_id, user_id=self.context.user_id, fields=sorted(values)),
        )
        return await self._reload(row)

    async def submit_revision(self, item_id: str, revision_id: int) -> ModelT:
        """Put an unpublished revision forward for moderation."""
        row = await self.get_revision(item_id, revision_id)
        if not self.context.can_edit(row):
            raise self._deny("submit", item_id, revision_id)
        if row.published:
            raise InvalidStateError(
                "Revision is already published",
                item_id=item_id,
                revision_id=revision_id,
            )
        if row.submitted:
            return row

        await self.collection.update_one(item_id, revision_id, {"submitted": True, "updated_at": utcnow()})
        logger.info(
            "Submitted %s revision", self.entity_name,
            extra=self._log_extra(item_id, revision_id, user_id=self.context.user_id),
        )
        return await self._reload(row)

    async def publish_revision(self, item_id: str, revision_id: int) -> ModelT:
        """
        Make one revision the published one.

        Unpublishes every other revision of the item, then publishes the
        target. Both writes share the caller's transaction, and the partial
        unique index on published rows rejects a concurrent second publisher.

        Raises:
            NotFoundError: no such revision
            NotAuthorizedError: caller cannot publish it
            ConflictError: a concurrent publish of the same item won
        """
        row = await self.get_revision(item_id, revision_id)
        if not self.context.can_publish(row):
            raise self._deny("publish", item_id, revision_id)

        now = utcnow()
        unpublished = await self.collection.update_many(
            self.model.item_id == item_id,
            self.model.published.is_(True),
            self.model.revision_id != revision_id,
            patch={"published": False, "updated_at": now},
            item_id=item_id,
        )
        await self.collection.update_one(
            item_id,
            revision_id,
            {"published": True, "submitted": True, "updated_at": now},
        )

        logger.info(
            "Published %s revision", self.entity_name,
            extra=self._log_extra(
                item_id, revision_id, user_id=self.context.user_id, unpublished=unpublished
            ),
        )
        return await self._reload(row)

    async def delete_revision(self, item_id: str, revision_id: int) -> None:
        """
        Delete one unpublished revision.

        Raises:
            NotFoundError: no such revision
            NotAuthorizedError: caller cannot delete it
            InvalidStateError: the revision is published
        """
        row = await self.get_revision(item_id, revision_id)
        if not self.context.can_delete(row):
            raise self._deny("delete", item_id, revision_id)
        if row.published:
            raise InvalidStateError(
                "Cannot delete a published revision",
                item_id=item_id,
                revision_id=revision_id,
            )

        await self.collection.delete_one(item_id, revision_id)
        logger.info(
            "Deleted %s revision", self.entity_name,
            extra=self._log_extra(item_id, revision_id, user_id=self.context.user_id),
        )

    async def delete_object(self, item_id: str) -> ModelT:
        """
        Delete every revision of an item, published ones included.

        Authorization is checked against the latest revision only.

        Returns:
            The latest revision as it was before deletion
        """
        latest = await self.collection.find_latest(item_id)
        if latest is None:
            raise self._not_found(item_id)
        if not self.context.can_delete(latest):
            raise self._deny("delete", item_id, latest.revision_id)

        removed = await self.collection.delete_many(self.model.item_id == item_id)
        logger.info(
            "Deleted %s", self.entity_name,
            extra=self._log_extra(item_id, user_id=self.context.user_id, revisions=removed),
        )
        return latest
