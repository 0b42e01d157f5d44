"""Read-only analytics routes over the usage ledger."""

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from ai_gateway.storage.reports import all_user_report, usage_summary
from ai_gateway.storage.repository import MAX_RECENT_LOG_HOURS, AnalyticsStore

from .deps import get_store, verify_request

router = APIRouter(prefix="/api/analytics", tags=["analytics"], dependencies=[Depends(verify_request)])


@router.get("/users/{user_id}")
def user_stats(user_id: str, store: AnalyticsStore = Depends(get_store)):
    summary = store.get_user_stats(user_id)
    if summary is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": "User not found", "userId": user_id},
        )
    return {"userId": user_id, **summary.to_dict()}


@router.get("/users")
def all_user_stats(store: AnalyticsStore = Depends(get_store)):
    return all_user_report(store)


@router.get("/logs")
def recent_logs(
    hours: float = Query(24, gt=0, description="Maximum entry age; at most 72 hours are ever covered"),
    store: AnalyticsStore = Depends(get_store),
):
    hours = min(hours, MAX_RECENT_LOG_HOURS)
    logs = store.get_recent_logs(hours)
    return {"hours": hours, "count": len(logs), "logs": [entry.to_dict() for entry in logs]}


@router.get("/summary")
def summary(store: AnalyticsStore = Depends(get_store)):
    return usage_summary(store)
