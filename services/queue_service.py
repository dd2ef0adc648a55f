"""
Queue projection service.

Turns raw order rows from the get_queue / get_order RPCs into QueueItems.
Status and priority come from status_service; the rest is field
normalization.
"""

from typing import Any, Iterable, Iterator, Optional
from datetime import date
import structlog

from config import get_supabase_client, settings
from models.order import (
    PRIORITY_RANK,
    OrderStatus,
    QueueItem,
    QueueListResponse,
    QueueStats,
    Store,
)
from models.stage import Stage, available_commands
from services.status_service import derive_priority, derive_status, needs_attention
from utils.date_utils import to_calendar_date
from utils.text_utils import (
    clean_text,
    first_non_empty,
    normalize_delivery_method,
    normalize_store,
)
from exceptions import DatabaseError, OrderNotFoundError

logger = structlog.get_logger(__name__)


# ===================
# PROJECTION
# ===================

def _quantity(value: Any) -> int:
    """Item quantity, 1 when missing or unreadable."""
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        return 1
    return quantity if quantity > 0 else 1


def build_queue_item(row: dict, today: Optional[date] = None) -> QueueItem:
    """
    Project a raw order row into a QueueItem.

    - order_number: first non-empty of human_id, shopify_order_number, id
    - delivery_method: Delivery / Pickup / unknown
    - store: unknown values fall back to the default store
    - stage: unknown values display as Filling
    - needs_attention: due date missing, regardless of stage

    Args:
        row: Row as returned by the queue RPCs
        today: Reference date for priority (defaults to today)

    Returns:
        QueueItem
    """
    today = today or date.today()

    due_date = to_calendar_date(row.get("due_date"))
    cancelled_at = clean_text(row.get("cancelled_at"))
    stage = Stage.parse(row.get("stage"))
    covering_start_ts = clean_text(row.get("covering_start_ts"))
    decorating_start_ts = clean_text(row.get("decorating_start_ts"))

    return QueueItem(
        id=str(row["id"]),
        order_number=first_non_empty(
            row.get("human_id"),
            row.get("shopify_order_number"),
            row["id"],
        ),
        shopify_order_number=clean_text(row.get("shopify_order_number")),
        store=normalize_store(row.get("store")),
        stage=stage,
        status=derive_status(stage, cancelled_at),
        priority=derive_priority(due_date, today),
        needs_attention=needs_attention(due_date),
        due_date=due_date,
        cancelled_at=cancelled_at,
        assignee_id=clean_text(row.get("assignee_id")),
        delivery_method=normalize_delivery_method(row.get("delivery_method")),
        customer_name=clean_text(row.get("customer_name")),
        product_title=clean_text(row.get("product_title")),
        size=clean_text(row.get("size")),
        quantity=_quantity(row.get("item_qty")),
        flavour=clean_text(row.get("flavour")),
        storage=clean_text(row.get("storage")),
        covering_start_ts=covering_start_ts,
        decorating_start_ts=decorating_start_ts,
        available_commands=available_commands(
            row.get("stage"),
            cancelled_at,
            covering_started=covering_start_ts is not None,
            decorating_started=decorating_start_ts is not None,
        ),
    )


def sort_queue_items(items: Iterable[QueueItem]) -> list[QueueItem]:
    """Most urgent first, then earliest due date. Undated orders go last."""
    def key(item: QueueItem):
        rank = PRIORITY_RANK.get(item.priority, len(PRIORITY_RANK))
        return (rank, item.due_date or date.max, item.order_number)

    return sorted(items, key=key)


def summarize_queue(items: Iterable[QueueItem]) -> QueueStats:
    """Count items per stage, priority and attention flags."""
    stats = QueueStats()

    for item in items:
        stats.total += 1
        stats.by_stage[item.stage] += 1
        if item.assignee_id is None:
            stats.unassigned += 1
        if item.status == OrderStatus.CANCELLED:
            stats.cancelled += 1
        if item.needs_attention:
            stats.needs_attention += 1
        if item.priority is not None:
            stats.by_priority[item.priority] += 1

    return stats


# ===================
# SERVICE
# ===================

class QueueService:
    """
    Order queue reads.

    Rows are fetched through Supabase RPCs and projected on every call.
    get_queue asks the RPC for due-date order; since priority only
    tightens as the due date nears, that is also priority order.
    """

    SORT_BY = "due_date"
    SORT_ORDER = "ASC"

    def __init__(self):
        self.db = get_supabase_client()

    def fetch_rows(
        self,
        store: Optional[Store] = None,
        stage: Optional[Stage] = None,
        assignee_id: Optional[str] = None,
        storage: Optional[str] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[dict]:
        """
        Call get_queue and return one page of raw rows.

        Raises:
            DatabaseError: If the RPC fails
        """
        limit = min(limit or settings.queue_default_limit, settings.queue_max_limit)

        try:
            result = self.db.rpc("get_queue", {
                "p_store": store.value if store else None,
                "p_stage": stage.value if stage else None,
                "p_assignee_id": assignee_id,
                "p_storage": storage,
                "p_search": search,
                "p_offset": offset,
                "p_limit": limit,
                "p_sort_by": self.SORT_BY,
                "p_sort_order": self.SORT_ORDER,
            }).execute()
        except Exception as e:
            logger.error("get_queue_failed", store=store, error=str(e))
            raise DatabaseError("get_queue", str(e))

        return result.data or []

    def iter_rows(
        self,
        batch_size: int,
        offset: int = 0,
        **filters
    ) -> Iterator[dict]:
        """
        Yield raw rows from offset onwards, one RPC page at a time.

        Pages are fetched lazily; stop iterating to stop fetching.
        A short page ends the scan.
        """
        batch_size = min(batch_size, settings.queue_max_limit)

        while True:
            rows = self.fetch_rows(offset=offset, limit=batch_size, **filters)
            yield from rows
            if len(rows) < batch_size:
                return
            offset += len(rows)

    def get_queue(
        self,
        store: Optional[Store] = None,
        stage: Optional[Stage] = None,
        assignee_id: Optional[str] = None,
        storage: Optional[str] = None,
        search: Optional[str] = None,
        include_complete: bool = True,
        include_cancelled: bool = True,
        offset: int = 0,
        limit: Optional[int] = None,
        today: Optional[date] = None,
    ) -> QueueListResponse:
        """
        Get one page of projected queue items.

        The RPC cannot filter on derived status, so when completed or
        cancelled orders are excluded the rows are scanned from the start
        and offset counts matching items only.

        Args:
            store: Only this store (both when None)
            stage: Only this stage
            assignee_id: Only orders assigned to this staff member
            storage: Only orders in this storage location
            search: Free-text search passed to the RPC
            include_complete: Keep completed orders
            include_cancelled: Keep cancelled orders
            offset: Matching items to skip
            limit: Items to return
            today: Reference date for priority

        Returns:
            QueueListResponse sorted by priority then due date
        """
        limit = min(limit or settings.queue_default_limit, settings.queue_max_limit)

        logger.info(
            "getting_queue",
            store=store,
            stage=stage,
            assignee_id=assignee_id,
            offset=offset,
            limit=limit
        )

        filtered = not (include_complete and include_cancelled)
        skip = offset if filtered else 0
        # One item past the page tells whether there is more
        wanted = skip + limit + 1

        rows = self.iter_rows(
            batch_size=limit + 1 if not filtered else settings.queue_max_limit,
            offset=0 if filtered else offset,
            store=store,
            stage=stage,
            assignee_id=assignee_id,
            storage=storage,
            search=search,
        )

        matched: list[QueueItem] = []
        scanned = 0
        for row in rows:
            scanned += 1
            item = build_queue_item(row, today)
            if not include_complete and item.status == OrderStatus.COMPLETED:
                continue
            if not include_cancelled and item.status == OrderStatus.CANCELLED:
                continue
            matched.append(item)
            if len(matched) >= wanted:
                break

        page = sort_queue_items(matched[skip:skip + limit])

        logger.info("queue_retrieved", count=len(page), rows=scanned)

        return QueueListResponse(
            data=page,
            count=len(page),
            offset=offset,
            limit=limit,
            has_more=len(matched) > skip + limit,
        )

    def get_stats(
        self,
        store: Optional[Store] = None,
        today: Optional[date] = None,
    ) -> QueueStats:
        """Counts over the whole queue of a store (or both)."""
        rows = self.iter_rows(batch_size=settings.queue_max_limit, store=store)
        stats = summarize_queue(build_queue_item(row, today) for row in rows)

        logger.info("queue_stats_computed", store=store, total=stats.total)
        return stats

    def get_order_row(self, order_id: str, store: Store) -> dict:
        """
        Call get_order and return the raw row.

        Raises:
            OrderNotFoundError: If no row comes back
            DatabaseError: If the RPC fails
        """
        logger.debug("getting_order", order_id=order_id, store=store.value)

        try:
            result = self.db.rpc("get_order", {
                "p_order_id": order_id,
                "p_store": store.value,
            }).execute()
        except Exception as e:
            logger.error("get_order_failed", order_id=order_id, error=str(e))
            raise DatabaseError("get_order", str(e))

        data = result.data
        if isinstance(data, list):
            data = data[0] if data else None
        if not data:
            raise OrderNotFoundError(order_id, store.value)

        return data

    def get_order(self, order_id: str, store: Store, today: Optional[date] = None) -> QueueItem:
        """Get one order as a QueueItem."""
        return build_queue_item(self.get_order_row(order_id, store), today)


# Singleton instance
_queue_service: Optional[QueueService] = None


def get_queue_service() -> QueueService:
    """Get or create QueueService instance."""
    global _queue_service
    if _queue_service is None:
        _queue_service = QueueService()
    return _queue_service
