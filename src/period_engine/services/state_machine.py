"""Center period state machine with transition validation."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from period_engine.exceptions import InvalidTransitionError

if TYPE_CHECKING:
    from period_engine.models import CenterPeriodStatus


class CenterPeriodState(str, Enum):
    """Derived state of one (period, center) pair."""

    PENDING = "pending"
    PROCESSED = "processed"
    CLOSED = "closed"


class PeriodAction(str, Enum):
    """Operations that move a (period, center) pair."""

    RUN = "run"
    REFRESH = "refresh"
    CLOSE = "close"
    REOPEN = "reopen"
    RESET = "reset"


ALREADY_RUN = "Period has already been run for this center"
NOT_YET_RUN = "Period has not been run yet for this center"
ALREADY_CLOSED = "Period has already been closed for this center"
NOT_CLOSED = "Period is not closed for this center"


def derive_state(status: CenterPeriodStatus | None) -> CenterPeriodState:
    """State from the status row's timestamps; a missing row is pending."""
    if status is None or status.period_run_date is None:
        return CenterPeriodState.PENDING
    if status.pay_run_date is None:
        return CenterPeriodState.PROCESSED
    return CenterPeriodState.CLOSED


class PeriodStateMachine:
    """State machine for (period, center) transitions.

    Allowed transitions:
    - pending   → processed  (run)
    - processed → processed  (refresh)
    - processed → closed     (close)
    - closed    → processed  (reopen)
    - processed → pending    (reset)
    """

    # {action: (required from_state, resulting to_state)}
    TRANSITIONS: dict[PeriodAction, tuple[CenterPeriodState, CenterPeriodState]] = {
        PeriodAction.RUN: (CenterPeriodState.PENDING, CenterPeriodState.PROCESSED),
        PeriodAction.REFRESH: (CenterPeriodState.PROCESSED, CenterPeriodState.PROCESSED),
        PeriodAction.CLOSE: (CenterPeriodState.PROCESSED, CenterPeriodState.CLOSED),
        PeriodAction.REOPEN: (CenterPeriodState.CLOSED, CenterPeriodState.PROCESSED),
        PeriodAction.RESET: (CenterPeriodState.PROCESSED, CenterPeriodState.PENDING),
    }

    # Backward moves that must leave an audit trail
    AUDITED_ACTIONS = {PeriodAction.REOPEN, PeriodAction.RESET}

    @classmethod
    def can_apply(cls, state: CenterPeriodState, action: PeriodAction) -> bool:
        required, _ = cls.TRANSITIONS[action]
        return state == required

    @classmethod
    def target_state(cls, action: PeriodAction) -> CenterPeriodState:
        return cls.TRANSITIONS[action][1]

    @classmethod
    def allowed_actions(cls, state: CenterPeriodState) -> list[PeriodAction]:
        return [a for a, (required, _) in cls.TRANSITIONS.items() if required == state]

    @classmethod
    def rejection_reason(cls, state: CenterPeriodState, action: PeriodAction) -> str:
        """Human-readable reason an action is refused from a state."""
        if action == PeriodAction.REOPEN:
            return NOT_CLOSED
        if action == PeriodAction.RUN:
            return ALREADY_RUN
        if state == CenterPeriodState.PENDING:
            return NOT_YET_RUN
        return ALREADY_CLOSED

    @classmethod
    def validate_action(cls, state: CenterPeriodState, action: PeriodAction) -> None:
        """Validate an action, raising InvalidTransitionError if not allowed."""
        if not cls.can_apply(state, action):
            raise InvalidTransitionError(
                state.value, action.value, cls.rejection_reason(state, action)
            )
