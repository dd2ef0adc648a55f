"""
Order and queue schemas.

QueueItem is a read-only projection of a raw order row. It is rebuilt on
every read and never written back.
"""

from pydantic import Field
from typing import Optional
from enum import Enum
from datetime import date

from models.base import BaseSchema
from models.stage import Stage, StageCommand


class Store(str, Enum):
    """Stores that share the production pipeline."""
    BANNOS = "bannos"
    FLOURLANE = "flourlane"


# Rows with a missing or unknown store are shown under this one
DEFAULT_STORE = Store.BANNOS


class OrderStatus(str, Enum):
    """Operational status derived from stage and cancellation."""
    CANCELLED = "cancelled"
    IN_PRODUCTION = "in_production"
    COMPLETED = "completed"


class Priority(str, Enum):
    """Urgency tier derived from the due date."""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


# Sort rank, most urgent first
PRIORITY_RANK = {
    Priority.HIGH: 0,
    Priority.MEDIUM: 1,
    Priority.LOW: 2,
}


class DeliveryMethod(str, Enum):
    """How the order leaves the bakery."""
    DELIVERY = "Delivery"
    PICKUP = "Pickup"
    UNKNOWN = "unknown"


# ===================
# QUEUE SCHEMAS
# ===================

class QueueItem(BaseSchema):
    """
    UI-ready order record.

    status, priority and needs_attention are derived, never read from the row.
    """

    id: str = Field(..., description="Order row identifier")
    order_number: str = Field(..., description="Human-facing order number")
    shopify_order_number: Optional[str] = Field(None, description="Marketplace order number")
    store: Store
    stage: Stage
    status: OrderStatus
    priority: Optional[Priority] = Field(
        None,
        description="None when the order has no due date"
    )
    needs_attention: bool = Field(
        ...,
        description="True when the due date is missing"
    )
    due_date: Optional[date] = None
    cancelled_at: Optional[str] = Field(None, description="Cancellation timestamp as stored")
    assignee_id: Optional[str] = None
    delivery_method: DeliveryMethod = DeliveryMethod.UNKNOWN

    # Display fields carried through from the row
    customer_name: Optional[str] = None
    product_title: Optional[str] = None
    size: Optional[str] = None
    quantity: int = 1
    flavour: Optional[str] = None
    storage: Optional[str] = None
    covering_start_ts: Optional[str] = None
    decorating_start_ts: Optional[str] = None

    available_commands: list[StageCommand] = Field(
        default_factory=list,
        description="Stage commands legal from the current state"
    )


class QueueListResponse(BaseSchema):
    """A page of queue items."""

    data: list[QueueItem]
    count: int = Field(..., description="Items on this page")
    offset: int
    limit: int
    has_more: bool = Field(
        False,
        description="True when more matching items follow this page"
    )


class QueueStats(BaseSchema):
    """Counts over a set of queue items."""

    total: int = 0
    by_stage: dict[Stage, int] = Field(
        default_factory=lambda: {stage: 0 for stage in Stage}
    )
    unassigned: int = 0
    cancelled: int = 0
    needs_attention: int = 0
    by_priority: dict[Priority, int] = Field(
        default_factory=lambda: {priority: 0 for priority in Priority}
    )


# ===================
# STAGE COMMAND SCHEMAS
# ===================

class StageCommandRequest(BaseSchema):
    """Optional free-text notes sent with a stage command."""

    notes: Optional[str] = Field(
        None,
        max_length=1000,
        description="Notes (the cancellation reason for cancel_order)"
    )


class StageCommandResponse(BaseSchema):
    """Outcome of a stage command accepted by the backing store."""

    order_id: str
    store: Store
    command: StageCommand
    from_stage: Stage
    to_stage: Stage
    cancelled: bool = False
