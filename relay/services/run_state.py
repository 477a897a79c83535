from enum import Enum

from relay.schemas.assistant import RunStatus


class RunState(str, Enum):
    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


VALID_TRANSITIONS = {
    RunState.SUBMITTED: [RunState.POLLING, RunState.COMPLETED, RunState.FAILED, RunState.TIMED_OUT],
    RunState.POLLING: [RunState.POLLING, RunState.COMPLETED, RunState.FAILED, RunState.TIMED_OUT],
    RunState.COMPLETED: [],
    RunState.FAILED: [],
    RunState.TIMED_OUT: [],
}


class InvalidTransitionError(Exception):
    def __init__(self, from_state: RunState, to_state: RunState):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Invalid transition: {from_state.value} -> {to_state.value}")


def is_final(state: RunState) -> bool:
    return not VALID_TRANSITIONS[state]


def can_transition(from_state: RunState, to_state: RunState) -> bool:
    """Check if transition is valid."""
    allowed = VALID_TRANSITIONS.get(from_state, [])
    return to_state in allowed


def transition(from_state: RunState, to_state: RunState) -> RunState:
    """Perform state transition. Raises InvalidTransitionError if not allowed."""
    if not can_transition(from_state, to_state):
        raise InvalidTransitionError(from_state, to_state)
    return to_state


def next_state(
    current: RunState,
    status: RunStatus,
    elapsed_seconds: float,
    deadline_seconds: float,
) -> RunState:
    """Decide the next local state from the last reported run status and elapsed time.

    A terminal backend status wins over the deadline: a run reported as
    completed on the last poll is still used.
    """
    if status == RunStatus.COMPLETED:
        target = RunState.COMPLETED
    elif status.is_terminal:
        target = RunState.FAILED
    elif elapsed_seconds >= deadline_seconds:
        target = RunState.TIMED_OUT
    else:
        target = RunState.POLLING
    return transition(current, target)
