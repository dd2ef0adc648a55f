"""
Queue API routes.

Read-only: every response is projected from the current order rows.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.order import QueueListResponse, QueueStats, Store
from models.stage import Stage
from services.queue_service import get_queue_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/queue", tags=["Queue"])


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# ROUTES
# ===================

@router.get("", response_model=QueueListResponse)
async def list_queue(
    store: Optional[Store] = Query(None, description="Only this store"),
    stage: Optional[Stage] = Query(None, description="Only this stage"),
    assignee_id: Optional[str] = Query(None, description="Only orders assigned to this staff member"),
    storage: Optional[str] = Query(None, description="Only orders in this storage location"),
    search: Optional[str] = Query(None, description="Free-text search"),
    include_complete: bool = Query(True, description="Include completed orders"),
    include_cancelled: bool = Query(True, description="Include cancelled orders"),
    offset: int = Query(0, ge=0, description="Matching items to skip"),
    limit: Optional[int] = Query(None, ge=1, description="Items per page")
):
    """
    List queue items, most urgent first.

    Orders without a due date have no priority and are listed last
    with needs_attention set. has_more is true when another page follows.
    """
    try:
        service = get_queue_service()
        return service.get_queue(
            store=store,
            stage=stage,
            assignee_id=assignee_id,
            storage=storage,
            search=search,
            include_complete=include_complete,
            include_cancelled=include_cancelled,
            offset=offset,
            limit=limit,
        )

    except Exception as e:
        return handle_error(e)


@router.get("/stats", response_model=QueueStats)
async def queue_stats(
    store: Optional[Store] = Query(None, description="Only this store")
):
    """Counts per stage, priority, and attention flags."""
    try:
        service = get_queue_service()
        return service.get_stats(store=store)

    except Exception as e:
        return handle_error(e)
