"""Forward-only, one-step-at-a-time transition rules."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import InvalidTransition
from .stages import StageLike, parse_stage, position_of


class RejectionReason(Enum):
    """Why a proposed status change was refused."""
    BACKWARD = "backward"
    NON_SEQUENTIAL = "non_sequential"


@dataclass(frozen=True)
class TransitionDecision:
    """Outcome of checking a proposed status change."""
    accepted: bool
    reason: Optional[RejectionReason] = None
    message: str = ""


def validate_transition(current: StageLike, proposed: StageLike) -> TransitionDecision:
    """Check `proposed` against `current`.

    Raises UnknownStage if either value is not a lifecycle stage. Any other
    problem is reported through the returned decision.
    """
    current_index = position_of(current)
    next_index = position_of(proposed)
    current, proposed = parse_stage(current), parse_stage(proposed)

    if next_index <= current_index:
        return TransitionDecision(
            accepted=False,
            reason=RejectionReason.BACKWARD,
            message=f"Invalid transition from {current.value} to {proposed.value}. Can only move forward.",
        )

    if next_index != current_index + 1:
        return TransitionDecision(
            accepted=False,
            reason=RejectionReason.NON_SEQUENTIAL,
            message=f"Invalid transition from {current.value} to {proposed.value}. Stages must be sequential.",
        )

    return TransitionDecision(accepted=True)


def ensure_transition(current: StageLike, proposed: StageLike) -> None:
    """Raise InvalidTransition unless the change is allowed."""
    decision = validate_transition(current, proposed)
    if not decision.accepted:
        raise InvalidTransition(
            parse_stage(current), parse_stage(proposed), decision.reason, decision.message
        )
