"""
Unit tests for StageService.

Run: pytest tests/unit/test_stage_service.py -v
"""

import pytest

from models.order import Store
from models.stage import Stage, StageCommand
from services.stage_service import StageService
from exceptions import (
    InvalidStageTransitionError,
    OrderNotFoundError,
    StageTransitionRejectedError,
)
from tests.factories import OrderRowFactory


@pytest.fixture
def stage_service(mock_db) -> StageService:
    return StageService()


def load_order(mock_db, **overrides) -> dict:
    """Make get_order return one row."""
    row = OrderRowFactory.create(id="order-1", **overrides)
    mock_db.set_rpc_result("get_order", [row])
    return row


# ===================
# ACCEPTED COMMANDS
# ===================

class TestExecute:
    """Tests for StageService.execute()"""

    def test_complete_filling(self, mock_db, stage_service):
        load_order(mock_db, stage="Filling")

        result = stage_service.complete_filling("order-1", Store.BANNOS, notes="  two layers ")

        assert result.from_stage == Stage.FILLING
        assert result.to_stage == Stage.COVERING
        assert result.cancelled is False
        assert mock_db.rpc_names() == ["get_order", "complete_filling"]
        assert mock_db.rpc_calls[1][1] == {
            "p_order_id": "order-1",
            "p_store": "bannos",
            "p_notes": "two layers",
        }

    def test_start_covering_sends_no_notes(self, mock_db, stage_service):
        load_order(mock_db, stage="Covering")

        result = stage_service.start_covering("order-1", Store.BANNOS)

        assert result.to_stage == Stage.COVERING
        assert mock_db.rpc_calls[1] == ("start_covering", {
            "p_order_id": "order-1",
            "p_store": "bannos",
        })

    def test_cancel_sends_reason(self, mock_db, stage_service):
        load_order(mock_db, stage="Decorating", store="flourlane")

        result = stage_service.cancel_order("order-1", Store.FLOURLANE, reason="customer called")

        assert result.cancelled is True
        assert result.to_stage == Stage.DECORATING
        assert mock_db.rpc_calls[1][1]["p_reason"] == "customer called"
        assert "p_notes" not in mock_db.rpc_calls[1][1]

    def test_qc_return(self, mock_db, stage_service):
        load_order(mock_db, stage="Packing")

        result = stage_service.qc_return_to_decorating("order-1", Store.BANNOS, notes="smudged")

        assert result.from_stage == Stage.PACKING
        assert result.to_stage == Stage.DECORATING

    def test_mark_order_complete(self, mock_db, stage_service):
        load_order(mock_db, stage="Packing")

        result = stage_service.mark_order_complete("order-1", Store.BANNOS)

        assert result.to_stage == Stage.COMPLETE
        assert mock_db.rpc_names()[-1] == "mark_order_complete"


# ===================
# REFUSED COMMANDS
# ===================

class TestRefusal:
    """Illegal commands are refused before any RPC runs."""

    def test_wrong_stage(self, mock_db, stage_service):
        load_order(mock_db, stage="Filling")

        with pytest.raises(InvalidStageTransitionError) as exc_info:
            stage_service.complete_packing("order-1", Store.BANNOS)

        assert exc_info.value.status_code == 409
        assert mock_db.rpc_names() == ["get_order"]

    def test_cancelled_order(self, mock_db, stage_service):
        load_order(mock_db, stage="Packing", cancelled_at="2024-01-01T00:00:00Z")

        with pytest.raises(InvalidStageTransitionError) as exc_info:
            stage_service.complete_packing("order-1", Store.BANNOS)

        assert exc_info.value.details["reason"] == "order is cancelled"
        assert mock_db.rpc_names() == ["get_order"]

    def test_cancel_complete_order(self, mock_db, stage_service):
        load_order(mock_db, stage="Complete")

        with pytest.raises(InvalidStageTransitionError):
            stage_service.cancel_order("order-1", Store.BANNOS)

    def test_start_twice(self, mock_db, stage_service):
        load_order(mock_db, stage="Decorating", decorating_start_ts="2024-12-24T10:00:00Z")

        with pytest.raises(InvalidStageTransitionError):
            stage_service.start_decorating("order-1", Store.BANNOS)

    def test_unknown_stage(self, mock_db, stage_service):
        load_order(mock_db, stage="Baking")

        with pytest.raises(InvalidStageTransitionError):
            stage_service.complete_filling("order-1", Store.BANNOS)

        assert mock_db.rpc_names() == ["get_order"]

    def test_missing_order(self, mock_db, stage_service):
        mock_db.set_rpc_result("get_order", [])

        with pytest.raises(OrderNotFoundError):
            stage_service.complete_filling("nope", Store.BANNOS)


class TestRejection:
    """The backing store has the final word."""

    def test_rpc_error(self, mock_db, stage_service):
        load_order(mock_db, stage="Filling")
        mock_db.set_rpc_error("complete_filling", RuntimeError("stage changed"))

        with pytest.raises(StageTransitionRejectedError) as exc_info:
            stage_service.complete_filling("order-1", Store.BANNOS)

        assert exc_info.value.status_code == 409
        assert exc_info.value.details["reason"] == "stage changed"

    def test_rpc_returns_false(self, mock_db, stage_service):
        load_order(mock_db, stage="Filling")
        mock_db.set_rpc_result("complete_filling", False)

        with pytest.raises(StageTransitionRejectedError):
            stage_service.complete_filling("order-1", Store.BANNOS)

    def test_no_automatic_retry(self, mock_db, stage_service):
        load_order(mock_db, stage="Filling")
        mock_db.set_rpc_error("complete_filling", RuntimeError("conflict"))

        with pytest.raises(StageTransitionRejectedError):
            stage_service.complete_filling("order-1", Store.BANNOS)

        assert mock_db.rpc_names().count("complete_filling") == 1


# ===================
# SCAN
# ===================

class TestScan:
    """Tests for StageService.scan()"""

    def test_first_covering_scan_starts(self, mock_db, stage_service):
        load_order(mock_db, stage="Covering")

        result = stage_service.scan("order-1", Store.BANNOS)

        assert result.command == StageCommand.START_COVERING
        assert result.to_stage == Stage.COVERING

    def test_second_covering_scan_completes(self, mock_db, stage_service):
        load_order(mock_db, stage="Covering", covering_start_ts="2024-12-24T09:00:00Z")

        result = stage_service.scan("order-1", Store.BANNOS)

        assert result.command == StageCommand.COMPLETE_COVERING
        assert result.to_stage == Stage.DECORATING

    def test_packing_scan(self, mock_db, stage_service):
        load_order(mock_db, stage="Packing")

        result = stage_service.scan("order-1", Store.BANNOS)

        assert result.command == StageCommand.COMPLETE_PACKING
        assert result.to_stage == Stage.COMPLETE

    def test_complete_order_has_no_scan(self, mock_db, stage_service):
        load_order(mock_db, stage="Complete")

        with pytest.raises(InvalidStageTransitionError):
            stage_service.scan("order-1", Store.BANNOS)

    def test_cancelled_order_scan_refused(self, mock_db, stage_service):
        load_order(mock_db, stage="Filling", cancelled_at="2024-12-01T00:00:00Z")

        with pytest.raises(InvalidStageTransitionError):
            stage_service.scan("order-1", Store.BANNOS)

        assert "complete_filling" not in mock_db.rpc_names()
