"""Daily step-to-paisa conversion.

Steps earn in whole blocks of STEPS_PER_UNIT; each block is worth the
active phase's rate. Steps past MAX_DAILY_STEPS earn nothing.

    10,000 steps in Paisa Phase (rate 1) -> 400 paisa
    15,000 steps in Paisa Phase          -> 480 paisa (capped at 12,000)
"""

from __future__ import annotations

import math
import numbers

from yogicmile.errors import InvalidInputError
from yogicmile.phases.phase_table import MAX_DAILY_STEPS, STEPS_PER_UNIT, PhaseDefinition
from yogicmile.phases.schemas import DailyEarnings


def coerce_step_count(value: object, name: str = "steps") -> int:
    """Validate a step count and return it as an int.

    Rejects bools, non-numbers, NaN/inf and negatives. Fractional
    counts are floored.
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidInputError(f"{name} must be a number, got {value!r}")
    if not isinstance(value, numbers.Integral) and not math.isfinite(value):
        raise InvalidInputError(f"{name} must be finite, got {value!r}")
    if value < 0:
        raise InvalidInputError(f"{name} must not be negative, got {value!r}")
    if isinstance(value, numbers.Integral):
        return int(value)
    return math.floor(value)


def compute_daily_earnings(
    raw_steps: int,
    active_phase: PhaseDefinition,
    *,
    max_daily_steps: int = MAX_DAILY_STEPS,
    steps_per_unit: int = STEPS_PER_UNIT,
) -> DailyEarnings:
    """Convert one day's steps into paisa at ``active_phase.rate``.

    Raises InvalidInputError for negative or non-finite ``raw_steps``.
    """
    steps = coerce_step_count(raw_steps, "raw_steps")
    capped = min(steps, max_daily_steps)
    groups = capped // steps_per_unit

    return DailyEarnings(
        raw_steps=steps,
        capped_steps=capped,
        steps_over_cap=steps - capped,
        step_groups=groups,
        units_earned=groups * active_phase.rate,
        phase_id=active_phase.id,
        rate=active_phase.rate,
    )


def steps_to_next_unit(
    raw_steps: int,
    *,
    max_daily_steps: int = MAX_DAILY_STEPS,
    steps_per_unit: int = STEPS_PER_UNIT,
) -> int:
    """Steps still needed to complete the current block. 0 once the cap is hit."""
    steps = coerce_step_count(raw_steps, "raw_steps")
    if steps >= max_daily_steps:
        return 0
    remainder = steps % steps_per_unit
    needed = steps_per_unit - remainder if remainder else steps_per_unit
    # The last block may straddle the cap
    return min(needed, max_daily_steps - steps)


def daily_potential(
    active_phase: PhaseDefinition,
    target_steps: int = 10000,
    *,
    max_daily_steps: int = MAX_DAILY_STEPS,
    steps_per_unit: int = STEPS_PER_UNIT,
) -> DailyEarnings:
    """What a user would earn today by walking ``target_steps``."""
    return compute_daily_earnings(
        target_steps,
        active_phase,
        max_daily_steps=max_daily_steps,
        steps_per_unit=steps_per_unit,
    )
