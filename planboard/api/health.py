"""
Health endpoints for the planboard service.

Lightweight checks for operational monitoring without exposing secrets.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from planboard.core.database import get_engine
from planboard.features.plans.store import get_plan_store
from planboard.features.plans.store_sql import SqlPlanStore

logger = logging.getLogger("planboard")

root_router = APIRouter(tags=["health"])

REQUIRED_TABLES = ["plans", "plan_operators"]


@root_router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@root_router.get("/readyz")
def readyz():
    """Readiness check: store reachable and, for SQL storage, tables present."""
    store = get_plan_store()
    if not isinstance(store, SqlPlanStore):
        return {"status": "ok", "store": "memory"}

    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")

        inspector = inspect(engine)
        missing = [t for t in REQUIRED_TABLES if not inspector.has_table(t)]
        if missing:
            detail = f"missing tables: {', '.join(missing)}"
            logger.warning(f"[readyz] {detail}")
            return JSONResponse(status_code=503, content={"status": "error", "detail": detail})

        return {"status": "ok", "store": "sql"}
    except SQLAlchemyError as e:
        logger.error(f"[readyz] readiness check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})
