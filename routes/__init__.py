"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.queue import router as queue_router
from routes.orders import router as orders_router
from routes.due_dates import router as due_dates_router

__all__ = [
    "queue_router",
    "orders_router",
    "due_dates_router",
]
