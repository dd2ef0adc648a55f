"""
Stage command service.

Checks a command against the transition table using a fresh read of the
order, then runs the matching RPC. The backing store stays the final
arbiter: if it refuses, the caller gets StageTransitionRejectedError and
must re-read before retrying. Nothing here retries automatically.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from models.order import StageCommandResponse, Store
from models.stage import (
    TRANSITIONS,
    Stage,
    StageCommand,
    resolve_scan_command,
    transition_error,
)
from services.queue_service import QueueService
from utils.text_utils import clean_text
from exceptions import (
    InvalidStageTransitionError,
    StageTransitionRejectedError,
)

logger = structlog.get_logger(__name__)

# Start commands take no notes; cancellation sends its notes as the reason
NOTES_PARAM = {
    StageCommand.START_COVERING: None,
    StageCommand.START_DECORATING: None,
    StageCommand.CANCEL_ORDER: "p_reason",
}


class StageService:
    """
    Stage transition commands.

    One method per command; all go through execute().
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.queue_service = QueueService()

    def _params(self, command: StageCommand, order_id: str, store: Store, notes: Optional[str]) -> dict:
        """RPC arguments for a command."""
        params = {
            "p_order_id": order_id,
            "p_store": store.value,
        }
        notes_param = NOTES_PARAM.get(command, "p_notes")
        if notes_param:
            params[notes_param] = clean_text(notes)
        return params

    def execute(
        self,
        command: StageCommand,
        order_id: str,
        store: Store,
        notes: Optional[str] = None
    ) -> StageCommandResponse:
        """
        Run a stage command against the backing store.

        Args:
            command: Command to run
            order_id: Order row identifier
            store: Store the order belongs to
            notes: Optional notes (cancellation reason for cancel_order)

        Returns:
            StageCommandResponse

        Raises:
            OrderNotFoundError: Order does not exist
            InvalidStageTransitionError: Command not legal from current state
            StageTransitionRejectedError: Backing store refused the command
        """
        logger.info(
            "executing_stage_command",
            command=command.value,
            order_id=order_id,
            store=store.value
        )

        row = self.queue_service.get_order_row(order_id, store)
        stage = row.get("stage")

        reason = transition_error(
            command,
            stage,
            cancelled_at=clean_text(row.get("cancelled_at")),
            covering_started=clean_text(row.get("covering_start_ts")) is not None,
            decorating_started=clean_text(row.get("decorating_start_ts")) is not None,
        )
        if reason:
            logger.warning(
                "stage_command_refused",
                command=command.value,
                order_id=order_id,
                stage=stage,
                reason=reason
            )
            raise InvalidStageTransitionError(command.value, str(stage), reason)

        try:
            result = self.db.rpc(
                command.value,
                self._params(command, order_id, store, notes)
            ).execute()
        except Exception as e:
            logger.error(
                "stage_command_rejected",
                command=command.value,
                order_id=order_id,
                error=str(e)
            )
            raise StageTransitionRejectedError(command.value, order_id, str(e))

        if result.data is False:
            logger.error(
                "stage_command_rejected",
                command=command.value,
                order_id=order_id,
                error="rpc returned false"
            )
            raise StageTransitionRejectedError(command.value, order_id, "rpc returned false")

        from_stage = Stage(stage)
        target = TRANSITIONS[command].target

        logger.info(
            "stage_command_executed",
            command=command.value,
            order_id=order_id,
            from_stage=from_stage.value,
            to_stage=(target or from_stage).value
        )

        return StageCommandResponse(
            order_id=order_id,
            store=store,
            command=command,
            from_stage=from_stage,
            to_stage=target or from_stage,
            cancelled=command == StageCommand.CANCEL_ORDER,
        )

    def scan(self, order_id: str, store: Store) -> StageCommandResponse:
        """
        Run whatever command a station scan means for this order.

        Raises:
            InvalidStageTransitionError: Nothing to do from the current stage
        """
        row = self.queue_service.get_order_row(order_id, store)
        stage = row.get("stage")

        command = resolve_scan_command(
            stage,
            covering_started=clean_text(row.get("covering_start_ts")) is not None,
            decorating_started=clean_text(row.get("decorating_start_ts")) is not None,
        )
        if command is None:
            raise InvalidStageTransitionError("scan", str(stage), "no scan action for this stage")

        logger.info("scan_resolved", order_id=order_id, stage=stage, command=command.value)
        return self.execute(command, order_id, store)

    # ===================
    # NAMED COMMANDS
    # ===================

    def complete_filling(self, order_id: str, store: Store, notes: Optional[str] = None) -> StageCommandResponse:
        return self.execute(StageCommand.COMPLETE_FILLING, order_id, store, notes)

    def start_covering(self, order_id: str, store: Store) -> StageCommandResponse:
        return self.execute(StageCommand.START_COVERING, order_id, store)

    def complete_covering(self, order_id: str, store: Store, notes: Optional[str] = None) -> StageCommandResponse:
        return self.execute(StageCommand.COMPLETE_COVERING, order_id, store, notes)

    def start_decorating(self, order_id: str, store: Store) -> StageCommandResponse:
        return self.execute(StageCommand.START_DECORATING, order_id, store)

    def complete_decorating(self, order_id: str, store: Store, notes: Optional[str] = None) -> StageCommandResponse:
        return self.execute(StageCommand.COMPLETE_DECORATING, order_id, store, notes)

    def complete_packing(self, order_id: str, store: Store, notes: Optional[str] = None) -> StageCommandResponse:
        return self.execute(StageCommand.COMPLETE_PACKING, order_id, store, notes)

    def mark_order_complete(self, order_id: str, store: Store, notes: Optional[str] = None) -> StageCommandResponse:
        return self.execute(StageCommand.MARK_ORDER_COMPLETE, order_id, store, notes)

    def qc_return_to_decorating(self, order_id: str, store: Store, notes: Optional[str] = None) -> StageCommandResponse:
        return self.execute(StageCommand.QC_RETURN_TO_DECORATING, order_id, store, notes)

    def cancel_order(self, order_id: str, store: Store, reason: Optional[str] = None) -> StageCommandResponse:
        return self.execute(StageCommand.CANCEL_ORDER, order_id, store, reason)


# Singleton instance
_stage_service: Optional[StageService] = None


def get_stage_service() -> StageService:
    """Get or create StageService instance."""
    global _stage_service
    if _stage_service is None:
        _stage_service = StageService()
    return _stage_service
