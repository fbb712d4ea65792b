"""Plans API: upload, fetch, update, delete and search operation plans.

Handlers only translate HTTP to service calls; errors raised by the service
are AppError subclasses rendered by the app-level handlers. Store calls block,
so handlers are plain functions and run in the threadpool.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from starlette.concurrency import run_in_threadpool

from planboard.core.auth import get_current_user
from planboard.core.logging import get_request_id
from planboard.features.plans.service import PlanService, get_plan_service
from planboard.models.plan import Plan, PlanQuery
from planboard.models.user import CurrentUser

router = APIRouter(prefix="/v1/plans", tags=["plans"])


def _rid(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None) or get_request_id()


@router.post("")
def upload_plan(
    body: Plan,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    service: PlanService = Depends(get_plan_service),
):
    """Upload a new plan. Returns the generated id."""
    plan_id = service.upload(user, body)
    return {"data": plan_id, "request_id": _rid(request)}


@router.post("/raw")
async def upload_raw_plan(
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    service: PlanService = Depends(get_plan_service),
):
    """Upload a plan from its raw JSON text (as exported by the editor)."""
    content = await request.body()
    plan_id = await run_in_threadpool(service.upload_raw, user, content)
    return {"data": plan_id, "request_id": _rid(request)}


@router.get("")
def search_plans(
    request: Request,
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    level_keyword: Optional[str] = Query(None, alias="levelKeyword"),
    document: Optional[str] = Query(None),
    operator: Optional[str] = Query(None, description="Comma-separated; prefix with ~ to exclude"),
    uploader: Optional[str] = Query(None),
    order_by: Optional[str] = Query(None, alias="orderBy"),
    desc: Optional[bool] = Query(None),
    service: PlanService = Depends(get_plan_service),
):
    """Paginated search. `page` in the response is the total page count."""
    query = PlanQuery(
        page=page,
        limit=limit,
        level_keyword=level_keyword,
        document=document,
        operator=operator,
        uploader=uploader,
        order_by=order_by,
        desc=desc,
    )
    result = service.search(query)
    return {"data": result.to_wire(), "request_id": _rid(request)}


@router.get("/{plan_id}")
def get_plan(
    plan_id: str,
    request: Request,
    service: PlanService = Depends(get_plan_service),
):
    """Fetch a plan by id (counts as a view)."""
    plan = service.get_by_id(plan_id)
    return {"data": plan.to_wire(), "request_id": _rid(request)}


@router.put("/{plan_id}")
def update_plan(
    plan_id: str,
    body: Plan,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    service: PlanService = Depends(get_plan_service),
):
    """Replace a plan's content. The full document must be submitted."""
    body.id = plan_id
    service.update(user, body)
    return {"data": None, "request_id": _rid(request)}


@router.delete("/{plan_id}")
def delete_plan(
    plan_id: str,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    service: PlanService = Depends(get_plan_service),
):
    """Delete a plan (uploader only)."""
    service.delete(user, plan_id)
    return {"data": None, "request_id": _rid(request)}
