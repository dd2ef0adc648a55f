"""
Business logic services.

Each service handles one domain area.
"""

from services.due_date_service import DueDateService, get_due_date_service
from services.queue_service import QueueService, get_queue_service
from services.stage_service import StageService, get_stage_service

__all__ = [
    "DueDateService",
    "get_due_date_service",
    "QueueService",
    "get_queue_service",
    "StageService",
    "get_stage_service",
]
