"""
Search filters and the permission-aware query composer.

The SQL produced here is only a coarse pre-selection: rows are always
re-checked with the permission evaluator before they leave the store.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, List, Optional, Sequence, TypeVar, Union

from pydantic import BaseModel, Field, model_validator
from sqlalchemy import false, func, or_, select
from sqlalchemy.orm import aliased
from sqlalchemy.sql import ColumnElement

from sightings.kernel.identity.context import AuthContext
from sightings.kernel.permissions import Permission
from sightings.kernel.search.geo import BoundingBox, NearPoint, WithinRadius

RowT = TypeVar("RowT")

GeoPredicate = Union[BoundingBox, NearPoint, WithinRadius]

DEFAULT_LIMIT = 100


class SortField(str, Enum):
    """Timestamp used to order search results."""
    CREATED = "created"
    UPDATED = "updated"
    REVISION_CREATED = "revision_created"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


_SORT_COLUMNS = {
    SortField.CREATED: "created_at",
    SortField.UPDATED: "updated_at",
    SortField.REVISION_CREATED: "revision_created_at",
}


class SearchFilters(BaseModel):
    """Requested constraints for a search; visibility is added on top."""

    owner: Optional[str] = None
    published: Optional[bool] = None
    submitted: Optional[bool] = None
    revision_id: Optional[int] = Field(None, ge=0)
    latest_only: bool = False

    bounding_box: Optional[BoundingBox] = None
    near_point: Optional[NearPoint] = None
    within_radius: Optional[WithinRadius] = None

    skip: int = Field(0, ge=0)
    limit: int = Field(DEFAULT_LIMIT, ge=1)
    sort_by: SortField = SortField.CREATED
    sort_order: SortOrder = SortOrder.DESC

    @model_validator(mode="after")
    def _single_geo_predicate(self) -> "SearchFilters":
        given = [p for p in (self.bounding_box, self.near_point, self.within_radius) if p is not None]
        if len(given) > 1:
            raise ValueError("Only one of bounding_box, near_point, within_radius may be given")
        return self

    @property
    def geo(self) -> Optional[GeoPredicate]:
        return self.bounding_box or self.near_point or self.within_radius


def visibility_clause(model: Any, context: AuthContext) -> Optional[ColumnElement[bool]]:
    """
    Rows the caller may see, as SQL.

    None means unrestricted (read-all). A caller with no read permission at
    all gets a clause that matches nothing.
    """
    if context.has(Permission.READ_ALL):
        return None

    visible = []
    if context.has(Permission.READ_PUBLISHED):
        visible.append(model.published.is_(True))
    if context.has(Permission.READ_OWN) and context.user_id:
        visible.append(model.owner == context.user_id)

    if not visible:
        return false()
    return or_(*visible)


def _requested_clauses(model: Any, filters: SearchFilters) -> List[ColumnElement[bool]]:
    clauses = []
    if filters.owner is not None:
        clauses.append(model.owner == filters.owner)
    if filters.published is not None:
        clauses.append(model.published.is_(filters.published))
    if filters.submitted is not None:
        clauses.append(model.submitted.is_(filters.submitted))
    if filters.revision_id is not None:
        clauses.append(model.revision_id == filters.revision_id)
    return clauses


@dataclass
class SearchPlan:
    """A composed query: SQL criteria plus what is left to do in Python."""

    criteria: List[ColumnElement[bool]]
    order_by: List[Any]
    skip: int
    limit: int
    predicate: Optional[GeoPredicate] = None

    @property
    def paginate_in_python(self) -> bool:
        return self.predicate is not None and self.predicate.needs_refinement

    @property
    def sql_offset(self) -> Optional[int]:
        return None if self.paginate_in_python else self.skip

    @property
    def sql_limit(self) -> Optional[int]:
        # One extra row tells whether another page exists
        return None if self.paginate_in_python else self.limit + 1


@dataclass
class SearchPage(Generic[RowT]):
    """Readable rows of one page, and whether the query had more."""

    items: List[RowT]
    has_more: bool = False


def compose_search(
    model: Any,
    context: AuthContext,
    filters: SearchFilters,
    *,
    extra_predicate: Optional[ColumnElement[bool]] = None,
    max_limit: int = 1000,
) -> SearchPlan:
    """
    Build the SQL side of a search.

    Requested filters are always applied; for callers without read-all they
    are AND-ed with the visibility clause, so they can narrow but never
    broaden what the caller sees.
    """
    criteria = _requested_clauses(model, filters)
    visibility = visibility_clause(model, context)
    if visibility is not None:
        criteria.append(visibility)

    predicate = filters.geo
    if predicate is not None:
        criteria.append(predicate.clause(model))
    if extra_predicate is not None:
        criteria.append(extra_predicate)

    if filters.latest_only:
        newer = aliased(model)
        latest = select(func.max(newer.revision_id)).where(
            newer.item_id == model.item_id,
            *_requested_clauses(newer, filters),
        )
        newer_visibility = visibility_clause(newer, context)
        if newer_visibility is not None:
            latest = latest.where(newer_visibility)
        criteria.append(model.revision_id == latest.scalar_subquery())

    column = getattr(model, _SORT_COLUMNS[filters.sort_by])
    if filters.sort_order == SortOrder.ASC:
        order_by = [column.asc(), model.item_id.asc(), model.revision_id.asc()]
    else:
        order_by = [column.desc(), model.item_id.asc(), model.revision_id.desc()]

    return SearchPlan(
        criteria=criteria,
        order_by=order_by,
        skip=filters.skip,
        limit=min(filters.limit, max_limit),
        predicate=predicate,
    )


def finish_page(rows: Sequence[RowT], context: AuthContext, plan: SearchPlan) -> SearchPage[RowT]:
    """
    Refine geometry, drop anything unreadable, then paginate if SQL could not.

    has_more is decided before the permission pass, so a page the
    post-filter thinned out still reports the rows behind it.
    """
    if plan.paginate_in_python:
        if plan.predicate is not None:
            rows = plan.predicate.refine(rows)
        readable = [row for row in rows if context.can_read(row)]
        end = plan.skip + plan.limit
        return SearchPage(items=readable[plan.skip:end], has_more=len(readable) > end)

    has_more = len(rows) > plan.limit
    rows = rows[:plan.limit]
    if plan.predicate is not None:
        rows = plan.predicate.refine(rows)
    return SearchPage(items=[row for row in rows if context.can_read(row)], has_more=has_more)


def finish_search(rows: Sequence[RowT], context: AuthContext, plan: SearchPlan) -> List[RowT]:
    return finish_page(rows, context, plan).items
