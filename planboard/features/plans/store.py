"""
planboard/features/plans/store.py

Plan storage gateway.

PlanStore is the boundary between the plan service and the document store.
Two implementations share the contract:
- InMemoryPlanStore (this module): process-local, used in development and tests
- SqlPlanStore (store_sql.py): SQLAlchemy-backed, used whenever a database is configured

Filters arrive as store-neutral PlanFilter expressions and each gateway
translates them itself.
"""

import logging
import os
import re
import threading
from typing import Dict, List, Optional, Protocol, Tuple

from planboard.core.config import settings
from planboard.core.errors import PersistenceError
from planboard.features.plans.query import (
    AnyOf,
    Clause,
    Equals,
    Match,
    Not,
    PlanField,
    PlanFilter,
    Sort,
)
from planboard.models.plan import Plan

logger = logging.getLogger("planboard")


class PlanStore(Protocol):
    """Storage contract for plan documents."""

    def insert(self, plan: Plan) -> None:
        """Store a new plan. Raises PersistenceError if the id already exists."""
        ...

    def find_by_id(self, plan_id: str) -> Optional[Plan]:
        ...

    def save(self, plan: Plan) -> None:
        """Upsert by id, replacing the whole document except the view counter."""
        ...

    def delete_by_id(self, plan_id: str) -> None:
        ...

    def increment_views(self, plan_id: str) -> None:
        """Atomically add one to the stored view counter."""
        ...

    def count_and_find(
        self,
        plan_filter: PlanFilter,
        sort: Sort,
        offset: int,
        size: int,
    ) -> Tuple[int, List[Plan]]:
        """Return (total matches ignoring paging, requested page of matches)."""
        ...


def _field_values(plan: Plan, field: PlanField) -> List[object]:
    if field is PlanField.ID:
        return [plan.id]
    if field is PlanField.STAGE_NAME:
        return [plan.stage_name]
    if field is PlanField.DOCUMENT_TITLE:
        return [plan.document.title if plan.document else None]
    if field is PlanField.DOCUMENT_DETAILS:
        return [plan.document.details if plan.document else None]
    if field is PlanField.OPERATOR_NAME:
        return list(plan.operator_names())
    if field is PlanField.UPLOADER_NAME:
        return [plan.uploader_name]
    if field is PlanField.VIEWS:
        return [plan.views]
    if field is PlanField.CREATED_AT:
        return [plan.created_at]
    if field is PlanField.UPDATED_AT:
        return [plan.updated_at]
    raise ValueError(f"Unsupported plan field: {field}")


def matches_clause(plan: Plan, clause: Clause) -> bool:
    """Evaluate a single filter clause against a plan in memory."""
    if isinstance(clause, Match):
        return any(
            isinstance(value, str) and re.search(clause.pattern, value) is not None
            for value in _field_values(plan, clause.field)
        )
    if isinstance(clause, Equals):
        return any(value == clause.value for value in _field_values(plan, clause.field))
    if isinstance(clause, AnyOf):
        return any(matches_clause(plan, c) for c in clause.clauses)
    if isinstance(clause, Not):
        return not matches_clause(plan, clause.clause)
    raise ValueError(f"Unsupported filter clause: {clause!r}")


def matches_filter(plan: Plan, plan_filter: PlanFilter) -> bool:
    return all(matches_clause(plan, clause) for clause in plan_filter.clauses)


class InMemoryPlanStore:
    """
    Dict-backed plan store.

    Documents are copied on the way in and out so callers never share state
    with the store. A single lock serializes writes and view increments.
    """

    def __init__(self):
        self._plans: Dict[str, Plan] = {}
        self._lock = threading.Lock()

    def insert(self, plan: Plan) -> None:
        with self._lock:
            if plan.id in self._plans:
                raise PersistenceError(f"Plan {plan.id} already exists")
            self._plans[plan.id] = plan.model_copy(deep=True)

    def find_by_id(self, plan_id: str) -> Optional[Plan]:
        with self._lock:
            stored = self._plans.get(plan_id)
            return stored.model_copy(deep=True) if stored else None

    def save(self, plan: Plan) -> None:
        with self._lock:
            copy = plan.model_copy(deep=True)
            existing = self._plans.get(plan.id)
            if existing is not None:
                copy.views = existing.views
            self._plans[plan.id] = copy

    def delete_by_id(self, plan_id: str) -> None:
        with self._lock:
            self._plans.pop(plan_id, None)

    def increment_views(self, plan_id: str) -> None:
        with self._lock:
            stored = self._plans.get(plan_id)
            if stored is not None:
                stored.views += 1

    def count_and_find(
        self,
        plan_filter: PlanFilter,
        sort: Sort,
        offset: int,
        size: int,
    ) -> Tuple[int, List[Plan]]:
        with self._lock:
            matched = [p for p in self._plans.values() if matches_filter(p, plan_filter)]

            def sort_key(plan: Plan):
                value = _field_values(plan, sort.field)[0]
                # Missing values sort first, like a document store does
                return (value is not None, value if value is not None else 0)

            # Stable id order underneath the requested order
            matched.sort(key=lambda p: p.id)
            matched.sort(key=sort_key, reverse=sort.descending)
            page = matched[offset:offset + size]
            return len(matched), [p.model_copy(deep=True) for p in page]


# ============================================================================
# Store selection
# ============================================================================

def select_plan_store() -> PlanStore:
    """
    Pick the store implementation from configuration.

    PLAN_STORE=memory  -> InMemoryPlanStore
    PLAN_STORE=sql     -> SqlPlanStore (fails loudly if the database is unusable)
    PLAN_STORE=auto    -> SqlPlanStore if a database URL is set and reachable,
                          otherwise InMemoryPlanStore
    """
    mode = (os.getenv("PLAN_STORE") or settings.PLAN_STORE or "auto").lower()

    if mode == "memory":
        return InMemoryPlanStore()

    from planboard.core.database import check_connection, get_database_url
    from planboard.features.plans.store_sql import SqlPlanStore

    if mode == "sql":
        store = SqlPlanStore()
        store.ensure_schema()
        return store

    if get_database_url():
        if check_connection():
            store = SqlPlanStore()
            store.ensure_schema()
            return store
        logger.warning("[plan_store] database unavailable, falling back to in-memory")

    return InMemoryPlanStore()


# Global store instance (lazy initialization)
_store_instance: Optional[PlanStore] = None


def get_plan_store() -> PlanStore:
    """
    Get the singleton plan store instance.

    This is the primary API that all consumers should use.
    """
    global _store_instance
    if _store_instance is None:
        _store_instance = select_plan_store()
    return _store_instance


def set_plan_store(store: Optional[PlanStore]) -> None:
    """Install a specific store instance (tests, embedding)."""
    global _store_instance
    _store_instance = store


def reset_plan_store() -> None:
    """
    Reset the store instance.

    FOR TESTING ONLY - forces re-initialization on next get_plan_store() call.
    """
    global _store_instance
    _store_instance = None
