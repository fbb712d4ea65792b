"""
planboard/features/plans/store_sql.py

SQLAlchemy-backed plan store.

Maintains the PlanStore contract from store.py. The full document lives in
`plans.content`; searchable fields are mirrored into columns and operator
names into `plan_operators` so filters translate to plain SQL.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import and_, delete, func, insert, not_, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from planboard.core.database import create_all_tables, get_db_session, plan_operators, plans
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

_COLUMNS = {
    PlanField.ID: plans.c.id,
    PlanField.STAGE_NAME: plans.c.stage_name,
    PlanField.DOCUMENT_TITLE: plans.c.doc_title,
    PlanField.DOCUMENT_DETAILS: plans.c.doc_details,
    PlanField.UPLOADER_NAME: plans.c.uploader_name,
    PlanField.VIEWS: plans.c.views,
    PlanField.CREATED_AT: plans.c.created_at,
    PlanField.UPDATED_AT: plans.c.updated_at,
}


def _operator_exists(condition):
    return (
        select(plan_operators.c.id)
        .where(and_(plan_operators.c.plan_id == plans.c.id, condition))
        .exists()
    )


def translate_clause(clause: Clause):
    """Translate a filter clause into a SQLAlchemy boolean expression."""
    if isinstance(clause, Match):
        if clause.field is PlanField.OPERATOR_NAME:
            return _operator_exists(plan_operators.c.name.regexp_match(clause.pattern))
        column = _COLUMNS[clause.field]
        # NULL never matches, and NOT(match) stays true for NULL
        return and_(column.isnot(None), column.regexp_match(clause.pattern))
    if isinstance(clause, Equals):
        if clause.field is PlanField.OPERATOR_NAME:
            return _operator_exists(plan_operators.c.name == clause.value)
        column = _COLUMNS[clause.field]
        return and_(column.isnot(None), column == clause.value)
    if isinstance(clause, AnyOf):
        return or_(*[translate_clause(c) for c in clause.clauses])
    if isinstance(clause, Not):
        return not_(translate_clause(clause.clause))
    raise ValueError(f"Unsupported filter clause: {clause!r}")


def translate_filter(plan_filter: PlanFilter):
    if not plan_filter:
        return None
    return and_(*[translate_clause(c) for c in plan_filter.clauses])


def _row_values(plan: Plan) -> dict:
    return {
        'uploader_id': plan.uploader_id,
        'uploader_name': plan.uploader_name,
        'stage_name': plan.stage_name,
        'doc_title': plan.document.title if plan.document else None,
        'doc_details': plan.document.details if plan.document else None,
        'content': plan.to_wire(),
        'created_at': plan.created_at,
        'updated_at': plan.updated_at,
    }


def _row_to_plan(row) -> Plan:
    content = dict(row.content or {})
    content['id'] = row.id
    content['views'] = row.views
    return Plan.model_validate(content)


class SqlPlanStore:
    """
    SQL-backed plan store.

    Maintains identical interface to InMemoryPlanStore.
    """

    def ensure_schema(self) -> None:
        create_all_tables()

    @staticmethod
    def _write_operators(session, plan: Plan) -> None:
        session.execute(delete(plan_operators).where(plan_operators.c.plan_id == plan.id))
        for position, name in enumerate(plan.operator_names()):
            session.execute(
                insert(plan_operators).values(plan_id=plan.id, position=position, name=name)
            )

    def insert(self, plan: Plan) -> None:
        try:
            with get_db_session() as session:
                session.execute(
                    insert(plans).values(id=plan.id, views=plan.views, **_row_values(plan))
                )
                self._write_operators(session, plan)
        except IntegrityError as e:
            raise PersistenceError(f"Plan {plan.id} already exists") from e
        except SQLAlchemyError as e:
            logger.error(f"[plan_store] insert failed for plan {plan.id}: {e}")
            raise PersistenceError("Failed to store plan") from e

    def find_by_id(self, plan_id: str) -> Optional[Plan]:
        try:
            with get_db_session() as session:
                row = session.execute(
                    select(plans).where(plans.c.id == plan_id)
                ).first()
        except SQLAlchemyError as e:
            logger.error(f"[plan_store] lookup failed for plan {plan_id}: {e}")
            raise PersistenceError("Failed to load plan") from e

        if not row:
            return None
        return _row_to_plan(row)

    def save(self, plan: Plan) -> None:
        try:
            with get_db_session() as session:
                existing = session.execute(
                    select(plans.c.id).where(plans.c.id == plan.id)
                ).first()
                if existing:
                    session.execute(
                        update(plans)
                        .where(plans.c.id == plan.id)
                        .values(**_row_values(plan))
                    )
                else:
                    session.execute(
                        insert(plans).values(id=plan.id, views=plan.views, **_row_values(plan))
                    )
                self._write_operators(session, plan)
        except SQLAlchemyError as e:
            logger.error(f"[plan_store] save failed for plan {plan.id}: {e}")
            raise PersistenceError("Failed to save plan") from e

    def delete_by_id(self, plan_id: str) -> None:
        try:
            with get_db_session() as session:
                session.execute(delete(plan_operators).where(plan_operators.c.plan_id == plan_id))
                session.execute(delete(plans).where(plans.c.id == plan_id))
        except SQLAlchemyError as e:
            logger.error(f"[plan_store] delete failed for plan {plan_id}: {e}")
            raise PersistenceError("Failed to delete plan") from e

    def increment_views(self, plan_id: str) -> None:
        try:
            with get_db_session() as session:
                session.execute(
                    update(plans)
                    .where(plans.c.id == plan_id)
                    .values(views=plans.c.views + 1)
                )
        except SQLAlchemyError as e:
            logger.error(f"[plan_store] view increment failed for plan {plan_id}: {e}")
            raise PersistenceError("Failed to record plan view") from e

    def count_and_find(
        self,
        plan_filter: PlanFilter,
        sort: Sort,
        offset: int,
        size: int,
    ) -> Tuple[int, List[Plan]]:
        condition = translate_filter(plan_filter)
        column = _COLUMNS[sort.field]
        order = column.desc() if sort.descending else column.asc()

        count_stmt = select(func.count()).select_from(plans)
        page_stmt = select(plans)
        if condition is not None:
            count_stmt = count_stmt.where(condition)
            page_stmt = page_stmt.where(condition)
        page_stmt = page_stmt.order_by(order, plans.c.id.asc()).offset(offset).limit(size)

        try:
            with get_db_session() as session:
                total = session.execute(count_stmt).scalar_one()
                rows = session.execute(page_stmt).all()
        except SQLAlchemyError as e:
            logger.error(f"[plan_store] search failed: {e}")
            raise PersistenceError("Failed to search plans") from e

        return int(total), [_row_to_plan(row) for row in rows]
