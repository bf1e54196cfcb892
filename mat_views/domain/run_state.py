"""Run status state machine shared by jobs and the run repository."""

from __future__ import annotations

from typing import Final

from .enums import RunStatus
from .errors import RunStateTransitionError

RUN_ALLOWED_TRANSITIONS: Final[dict[RunStatus, frozenset[RunStatus]]] = {
    RunStatus.PENDING: frozenset({RunStatus.RUNNING, RunStatus.FAILED}),
    RunStatus.RUNNING: frozenset({RunStatus.SUCCESS, RunStatus.FAILED}),
    RunStatus.SUCCESS: frozenset(),
    RunStatus.FAILED: frozenset(),
}


def domain_run_validate_transition(current: RunStatus, target: RunStatus) -> None:
    """Validate one run status change.

    Args:
        current: Status currently persisted.
        target: Requested next status.

    Returns:
        None: Returns silently when the transition is allowed.

    Raises:
        RunStateTransitionError: Raised when the transition is not allowed.
    """

    if target not in RUN_ALLOWED_TRANSITIONS[current]:
        raise RunStateTransitionError(f"run status transition {current.label} -> {target.label} is not allowed")


def domain_run_duration_ms(started_monotonic: float, finished_monotonic: float) -> int:
    """Convert monotonic clock readings to a non-negative duration in ms.

    Args:
        started_monotonic: `time.monotonic()` reading at start.
        finished_monotonic: `time.monotonic()` reading at finish.

    Returns:
        int: Rounded, non-negative milliseconds.
    """

    return max(0, int(round((finished_monotonic - started_monotonic) * 1000)))
