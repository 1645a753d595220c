"""Phase progress for progress rings, countdowns and phase badges."""

from __future__ import annotations

from datetime import datetime, timezone

from yogicmile.phases.phase_table import PhaseTable
from yogicmile.phases.schemas import PhaseProgress, UserPhaseState
from yogicmile.phases.transitions import elapsed_days


def compute_phase_progress(
    user_state: UserPhaseState,
    phase_table: PhaseTable,
    *,
    now: datetime | None = None,
) -> PhaseProgress:
    """Summarise how far the user is through their current phase.

    Percentage is measured from the previous phase's requirement (0 for
    phase 1) to the current one, so each phase's ring starts empty.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    phase = phase_table.get(user_state.current_phase)
    next_phase = phase_table.next_phase(phase.id)
    floor = phase_table.get(phase.id - 1).step_requirement if phase.id > 1 else 0

    total = user_state.total_lifetime_steps
    span = phase.step_requirement - floor
    into_phase = min(max(total - floor, 0), span)
    progress = round(into_phase / span * 100, 1)

    days = elapsed_days(user_state.phase_start_date, now)
    met = total >= phase.step_requirement

    return PhaseProgress(
        phase_id=phase.id,
        phase_name=phase.name,
        symbol=phase.symbol,
        rate=phase.rate,
        total_lifetime_steps=total,
        steps_required=phase.step_requirement,
        steps_to_next=max(0, phase.step_requirement - total),
        progress_percentage=progress,
        days_elapsed=days,
        days_remaining=max(0, phase.time_limit - days),
        deadline_passed=days > phase.time_limit,
        is_terminal=next_phase is None,
        is_eligible_for_advancement=met and next_phase is not None,
        next_phase_id=next_phase.id if next_phase else None,
        next_phase_name=next_phase.name if next_phase else None,
        next_rate=next_phase.rate if next_phase else None,
    )
