"""
planboard/features/plans/service.py

Plan service.

Handles:
- Upload (validation, id/timestamp assignment)
- Lookup with view counting
- Owner-only update and delete
- Paginated multi-criteria search
"""

import uuid
from datetime import datetime, timezone
from typing import Optional, Union

import pydantic

from planboard.core.errors import NotFoundError, ParseError, PermissionError
from planboard.core.logging import log_event
from planboard.features.plans.query import Pagination, build_plan_filter, resolve_sort
from planboard.features.plans.store import PlanStore, get_plan_store
from planboard.features.plans.validators import validate_plan
from planboard.models.plan import Plan, PlanPage, PlanQuery
from planboard.models.user import CurrentUser


def can_mutate(user: CurrentUser, plan: Plan) -> bool:
    """Whether `user` may update or delete `plan`. Only the uploader may."""
    return plan.uploader_id is not None and plan.uploader_id == user.id


def parse_plan(content: Union[str, bytes]) -> Plan:
    """Deserialize a raw JSON payload into a Plan. Bytes must be valid UTF-8."""
    try:
        if isinstance(content, bytes):
            content = content.decode("utf-8")
        return Plan.model_validate_json(content)
    except UnicodeDecodeError as e:
        log_event("warning", "plan.parse_failed", error_code="parse_error", extra={"reason": "invalid utf-8"})
        raise ParseError("failed to parse plan") from e
    except pydantic.ValidationError as e:
        log_event("warning", "plan.parse_failed", error_code="parse_error", extra={"errors": e.error_count()})
        raise ParseError("failed to parse plan") from e


def _now() -> datetime:
    return datetime.now(timezone.utc)


class PlanService:
    """Service for plan operations. Stateless apart from the store it talks to."""

    def __init__(self, store: Optional[PlanStore] = None):
        self._store = store

    @property
    def store(self) -> PlanStore:
        return self._store if self._store is not None else get_plan_store()

    def _find_or_raise(self, plan_id: Optional[str]) -> Plan:
        plan = self.store.find_by_id(plan_id) if plan_id else None
        if plan is None:
            raise NotFoundError(f"Plan {plan_id} not found")
        return plan

    def upload(self, user: CurrentUser, plan: Plan) -> str:
        """Validate and store a new plan. Returns the generated id."""
        validate_plan(plan)

        now = _now()
        stored = plan.model_copy(
            update={
                "id": uuid.uuid4().hex,
                "uploader_id": user.id,
                "uploader_name": user.display_name,
                "views": 0,
                "created_at": now,
                "updated_at": now,
            },
            deep=True,
        )
        self.store.insert(stored)

        log_event("info", "plan.uploaded", user_id=user.id, plan_id=stored.id, event_type="plan_uploaded")
        return stored.id

    def upload_raw(self, user: CurrentUser, content: Union[str, bytes]) -> str:
        """Parse a raw JSON payload and upload it."""
        return self.upload(user, parse_plan(content))

    def get_by_id(self, plan_id: str) -> Plan:
        """
        Fetch a plan and count the view.

        The returned snapshot is read before the increment, so its `views`
        can lag the stored counter by one.
        """
        plan = self._find_or_raise(plan_id)
        self.store.increment_views(plan_id)
        return plan

    def update(self, user: CurrentUser, plan: Plan) -> None:
        """Replace a plan's content. Only the uploader may do this."""
        existing = self._find_or_raise(plan.id)
        if not can_mutate(user, existing):
            raise PermissionError("cannot modify another user's plan")
        validate_plan(plan)

        now = _now()
        if existing.updated_at is not None and now < existing.updated_at:
            now = existing.updated_at
        replacement = plan.model_copy(
            update={
                "uploader_id": existing.uploader_id,
                "uploader_name": existing.uploader_name,
                "created_at": existing.created_at,
                "views": existing.views,
                "updated_at": now,
            },
            deep=True,
        )
        self.store.save(replacement)

        log_event("info", "plan.updated", user_id=user.id, plan_id=plan.id, event_type="plan_updated")

    def delete(self, user: CurrentUser, plan_id: str) -> None:
        """Hard-delete a plan. Only the uploader may do this."""
        existing = self._find_or_raise(plan_id)
        if not can_mutate(user, existing):
            raise PermissionError("cannot delete another user's plan")
        self.store.delete_by_id(plan_id)

        log_event("info", "plan.deleted", user_id=user.id, plan_id=plan_id, event_type="plan_deleted")

    def search(self, query: PlanQuery) -> PlanPage:
        """
        Paginated search.

        Returns total matches, whether another page follows, the total page
        count (in `page`) and the requested page of plans.
        """
        pagination = Pagination.from_raw(query.page, query.limit)
        sort = resolve_sort(query.order_by, query.desc)
        plan_filter = build_plan_filter(query)

        total, data = self.store.count_and_find(
            plan_filter,
            sort,
            pagination.offset,
            pagination.limit,
        )

        log_event(
            "debug",
            "plan.search",
            event_type="plan_search",
            extra={"clauses": len(plan_filter.clauses), "total": total, "page": pagination.page},
        )
        return PlanPage(
            total=total,
            has_next=pagination.has_next(total),
            page=pagination.page_count(total),
            data=data,
        )


plan_service = PlanService()


def get_plan_service() -> PlanService:
    """Service bound to the process-wide selected store."""
    return plan_service
