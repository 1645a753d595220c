"""Phase transition engine.

State progression: 1 -> 2 -> ... -> 9. Moves are forward only, one phase
per evaluation, triggered by lifetime steps reaching the current phase's
step_requirement. The last phase of the table is terminal.

A phase completed after its time limit is still reported via a
PhaseDeadlineExceeded advisory. What happens to the user then depends on
the DeadlinePolicy: INFORMATIONAL advances anyway (the countdown is for
display only), FREEZE keeps the user in the phase.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from yogicmile.errors import InvalidPhaseTransition
from yogicmile.phases.phase_table import PhaseTable
from yogicmile.phases.schemas import PhaseDeadlineExceeded, PhaseTransitionResult, UserPhaseState


class DeadlinePolicy(str, Enum):
    INFORMATIONAL = "informational"
    FREEZE = "freeze"


def elapsed_days(start: datetime, now: datetime) -> int:
    """Whole days from ``start`` to ``now``; never negative. Naive datetimes are UTC."""
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return max(0, (now - start).days)


def validate_phase_transition(current_phase: int, target_phase: int, phase_table: PhaseTable) -> None:
    """Validate a phase move. Raises InvalidPhaseTransition if it is not a single forward step."""
    phase_table.get(current_phase)
    if phase_table.is_terminal(current_phase):
        raise InvalidPhaseTransition(f"Phase {current_phase} is terminal; no further phases")
    if target_phase != current_phase + 1:
        raise InvalidPhaseTransition(
            f"Invalid transition: {current_phase} -> {target_phase}. "
            f"Valid transitions: [{current_phase + 1}]"
        )


def evaluate_phase_transition(
    user_state: UserPhaseState,
    phase_table: PhaseTable,
    *,
    now: datetime | None = None,
    deadline_policy: DeadlinePolicy | str = DeadlinePolicy.INFORMATIONAL,
) -> PhaseTransitionResult:
    """Advance the user by at most one phase.

    Pure: ``user_state`` is not modified, and the same inputs always give
    the same result. Feeding ``new_state`` back in transitions again only if
    lifetime steps also meet the next phase's requirement.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    policy = DeadlinePolicy(deadline_policy)

    phase = phase_table.get(user_state.current_phase)
    unchanged = PhaseTransitionResult(
        new_state=user_state,
        transitioned=False,
        previous_phase=phase.id,
    )

    if phase_table.is_terminal(phase.id):
        return unchanged

    if user_state.total_lifetime_steps < phase.step_requirement:
        return unchanged

    days = elapsed_days(user_state.phase_start_date, now)
    deadline = None
    if days > phase.time_limit:
        advance = policy is DeadlinePolicy.INFORMATIONAL
        deadline = PhaseDeadlineExceeded(
            phase_id=phase.id,
            days_elapsed=days,
            time_limit=phase.time_limit,
            advanced=advance,
        )
        if not advance:
            return unchanged.model_copy(update={"deadline": deadline})

    target = phase.id + 1
    validate_phase_transition(phase.id, target, phase_table)
    new_state = user_state.model_copy(
        update={"current_phase": target, "phase_start_date": now}
    )
    return PhaseTransitionResult(
        new_state=new_state,
        transitioned=True,
        previous_phase=phase.id,
        deadline=deadline,
    )


def catch_up_phases(
    user_state: UserPhaseState,
    phase_table: PhaseTable,
    *,
    now: datetime | None = None,
    deadline_policy: DeadlinePolicy | str = DeadlinePolicy.INFORMATIONAL,
) -> tuple[UserPhaseState, list[PhaseTransitionResult]]:
    """Evaluate repeatedly until no further transition happens.

    For bulk step imports that cross several thresholds at once. Returns
    the settled state and every evaluation made; the last one always has
    ``transitioned=False``.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    results: list[PhaseTransitionResult] = []
    state = user_state
    # One evaluation per phase plus the final settling check
    for _ in range(len(phase_table)):
        result = evaluate_phase_transition(
            state, phase_table, now=now, deadline_policy=deadline_policy
        )
        results.append(result)
        state = result.new_state
        if not result.transitioned:
            break
    return state, results
