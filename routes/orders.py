"""
Order API routes.

Stage commands are POSTs named after the RPC they run. A refused command
returns 409; the client should reload the order before trying again.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.order import (
    QueueItem,
    StageCommandRequest,
    StageCommandResponse,
    Store,
)
from models.stage import StageCommand
from services.queue_service import get_queue_service
from services.stage_service import get_stage_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/orders", tags=["Orders"])


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

@router.get("/{store}/{order_id}", response_model=QueueItem)
async def get_order(store: Store, order_id: str):
    """
    Get a single order as a queue item.

    Raises:
        404: Order not found
    """
    try:
        service = get_queue_service()
        return service.get_order(order_id, store)

    except Exception as e:
        return handle_error(e)


@router.post("/{store}/{order_id}/commands/{command}", response_model=StageCommandResponse)
async def run_stage_command(
    store: Store,
    order_id: str,
    command: StageCommand,
    data: Optional[StageCommandRequest] = None
):
    """
    Run a stage command.

    Raises:
        404: Order not found
        409: Command not legal from the current state, or refused by the store
    """
    try:
        service = get_stage_service()
        return service.execute(command, order_id, store, notes=data.notes if data else None)

    except Exception as e:
        return handle_error(e)


@router.post("/{store}/{order_id}/scan", response_model=StageCommandResponse)
async def scan_order(store: Store, order_id: str):
    """
    Advance an order the way a station barcode scan does.

    Covering and Decorating start on the first scan and complete on the second.

    Raises:
        404: Order not found
        409: Nothing to do from the current stage
    """
    try:
        service = get_stage_service()
        return service.scan(order_id, store)

    except Exception as e:
        return handle_error(e)
