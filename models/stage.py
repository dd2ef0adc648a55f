"""
Production stages and the commands that move an order between them.

Flow: Filling → Covering → Decorating → Packing → Complete.
Packing can send an order back to Decorating when it fails QC.
Cancellation is a timestamp on the order, not a stage, so it can be set
from any stage before Complete without losing the stage it happened in.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union


class Stage(str, Enum):
    """Production stage values as stored on the order row."""
    FILLING = "Filling"
    COVERING = "Covering"
    DECORATING = "Decorating"
    PACKING = "Packing"
    COMPLETE = "Complete"

    @classmethod
    def parse(cls, value: Optional[str], default: Optional["Stage"] = None) -> "Stage":
        """
        Read a stage from a raw row value for display.

        Unknown or missing values fall back to the first stage of the
        pipeline (or the given default).
        """
        if isinstance(value, Stage):
            return value
        try:
            return cls(value)
        except ValueError:
            return default or STAGE_ORDER[0]


# Pipeline order, initial stage first
STAGE_ORDER = (
    Stage.FILLING,
    Stage.COVERING,
    Stage.DECORATING,
    Stage.PACKING,
    Stage.COMPLETE,
)


class StageCommand(str, Enum):
    """Stage commands, named after the RPCs that execute them."""
    COMPLETE_FILLING = "complete_filling"
    START_COVERING = "start_covering"
    COMPLETE_COVERING = "complete_covering"
    START_DECORATING = "start_decorating"
    COMPLETE_DECORATING = "complete_decorating"
    COMPLETE_PACKING = "complete_packing"
    MARK_ORDER_COMPLETE = "mark_order_complete"
    QC_RETURN_TO_DECORATING = "qc_return_to_decorating"
    CANCEL_ORDER = "cancel_order"


@dataclass(frozen=True)
class Transition:
    """
    One edge of the stage graph.

    target is None when the command leaves the stage field alone
    (cancellation). starts names the stage whose start timestamp the
    command records.
    """
    command: StageCommand
    sources: frozenset
    target: Optional[Stage]
    starts: Optional[Stage] = None


TRANSITIONS: dict[StageCommand, Transition] = {
    t.command: t
    for t in (
        Transition(StageCommand.COMPLETE_FILLING, frozenset({Stage.FILLING}), Stage.COVERING),
        Transition(StageCommand.START_COVERING, frozenset({Stage.COVERING}), Stage.COVERING, starts=Stage.COVERING),
        Transition(StageCommand.COMPLETE_COVERING, frozenset({Stage.COVERING}), Stage.DECORATING),
        Transition(StageCommand.START_DECORATING, frozenset({Stage.DECORATING}), Stage.DECORATING, starts=Stage.DECORATING),
        Transition(StageCommand.COMPLETE_DECORATING, frozenset({Stage.DECORATING}), Stage.PACKING),
        Transition(StageCommand.COMPLETE_PACKING, frozenset({Stage.PACKING}), Stage.COMPLETE),
        Transition(StageCommand.MARK_ORDER_COMPLETE, frozenset({Stage.PACKING}), Stage.COMPLETE),
        Transition(StageCommand.QC_RETURN_TO_DECORATING, frozenset({Stage.PACKING}), Stage.DECORATING),
        Transition(
            StageCommand.CANCEL_ORDER,
            frozenset(s for s in STAGE_ORDER if s != Stage.COMPLETE),
            None,
        ),
    )
}


def transition_error(
    command: StageCommand,
    stage: Union[Stage, str, None],
    cancelled_at: Union[str, datetime, None] = None,
    covering_started: bool = False,
    decorating_started: bool = False,
) -> Optional[str]:
    """
    Explain why a command is not legal from the given state.

    Unlike Stage.parse, an unknown stage is never coerced here: the
    command is refused.

    Returns:
        Reason string, or None when the command is legal
    """
    try:
        current = Stage(stage)
    except ValueError:
        return f"unknown stage {stage!r}"

    if cancelled_at:
        return "order is cancelled"
    if current == Stage.COMPLETE:
        return "order is complete"

    transition = TRANSITIONS[command]
    if current not in transition.sources:
        allowed = ", ".join(s.value for s in STAGE_ORDER if s in transition.sources)
        return f"{command.value} requires stage {allowed}"

    started = {
        Stage.COVERING: covering_started,
        Stage.DECORATING: decorating_started,
    }
    if transition.starts is not None and started[transition.starts]:
        return f"{transition.starts.value} already started"

    return None


def is_valid_stage_transition(
    command: StageCommand,
    stage: Union[Stage, str, None],
    cancelled_at: Union[str, datetime, None] = None,
    covering_started: bool = False,
    decorating_started: bool = False,
) -> bool:
    """
    Check if a command may run from the given state.

    Rules:
    - Cancelled and completed orders accept no command
    - Each command has a fixed set of source stages
    - Starting Covering/Decorating twice is refused
    """
    return transition_error(
        command, stage, cancelled_at, covering_started, decorating_started
    ) is None


def available_commands(
    stage: Union[Stage, str, None],
    cancelled_at: Union[str, datetime, None] = None,
    covering_started: bool = False,
    decorating_started: bool = False,
) -> list[StageCommand]:
    """List the commands legal from the given state, in declaration order."""
    return [
        command
        for command in StageCommand
        if is_valid_stage_transition(
            command, stage, cancelled_at, covering_started, decorating_started
        )
    ]


def resolve_scan_command(
    stage: Union[Stage, str, None],
    covering_started: bool = False,
    decorating_started: bool = False,
) -> Optional[StageCommand]:
    """
    Pick the command a station barcode scan stands for.

    Covering and Decorating take two scans: the first starts the stage,
    the second completes it. Filling and Packing complete on one scan.

    Returns:
        StageCommand, or None for Complete and unknown stages
    """
    try:
        current = Stage(stage)
    except ValueError:
        return None

    if current == Stage.FILLING:
        return StageCommand.COMPLETE_FILLING
    if current == Stage.COVERING:
        return StageCommand.COMPLETE_COVERING if covering_started else StageCommand.START_COVERING
    if current == Stage.DECORATING:
        return StageCommand.COMPLETE_DECORATING if decorating_started else StageCommand.START_DECORATING
    if current == Stage.PACKING:
        return StageCommand.COMPLETE_PACKING
    return None
