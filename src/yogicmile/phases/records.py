"""Daily earning records and their redemption lifecycle.

Status progression: pending -> redeemed | expired.
A day's coins can only be redeemed on that day; once the day has passed
they expire. Redeemed and expired are terminal.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timezone

from yogicmile.errors import InvalidRecordTransition
from yogicmile.phases.earnings import compute_daily_earnings
from yogicmile.phases.phase_table import MAX_DAILY_STEPS, STEPS_PER_UNIT, PhaseDefinition
from yogicmile.phases.schemas import DailyEarningRecord, RecordStatus

VALID_TRANSITIONS: dict[RecordStatus, list[RecordStatus]] = {
    RecordStatus.PENDING: [RecordStatus.REDEEMED, RecordStatus.EXPIRED],
    RecordStatus.REDEEMED: [],
    RecordStatus.EXPIRED: [],
}


def validate_transition(current: RecordStatus, target: RecordStatus) -> None:
    """Validate a status change. Raises InvalidRecordTransition if invalid."""
    valid = VALID_TRANSITIONS.get(current, [])
    if target not in valid:
        raise InvalidRecordTransition(
            f"Invalid transition: {current.value} -> {target.value}. "
            f"Valid transitions: {[s.value for s in valid]}"
        )


def build_daily_record(
    user_id: str,
    day: date,
    raw_steps: int,
    active_phase: PhaseDefinition,
    *,
    max_daily_steps: int = MAX_DAILY_STEPS,
    steps_per_unit: int = STEPS_PER_UNIT,
) -> DailyEarningRecord:
    """Derive a pending record for ``day`` at the rate of ``active_phase``."""
    earnings = compute_daily_earnings(
        raw_steps,
        active_phase,
        max_daily_steps=max_daily_steps,
        steps_per_unit=steps_per_unit,
    )
    return DailyEarningRecord(
        user_id=user_id,
        date=day,
        raw_steps=earnings.raw_steps,
        steps=earnings.capped_steps,
        coins_earned=earnings.units_earned,
        phase_id=earnings.phase_id,
        phase_rate=earnings.rate,
    )


def redeem_record(record: DailyEarningRecord, now: datetime | None = None) -> DailyEarningRecord:
    """Mark a pending record redeemed. Only allowed on the record's own (UTC) day."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    validate_transition(record.status, RecordStatus.REDEEMED)

    today = now.astimezone(timezone.utc).date()
    if today != record.date:
        raise InvalidRecordTransition(
            f"Coins for {record.date.isoformat()} can only be redeemed on that day"
        )
    return record.model_copy(update={"status": RecordStatus.REDEEMED, "redeemed_at": now})


def expire_record(record: DailyEarningRecord, today: date) -> DailyEarningRecord:
    """Mark a pending record expired once its day is over."""
    validate_transition(record.status, RecordStatus.EXPIRED)
    if record.date >= today:
        raise InvalidRecordTransition(
            f"Record for {record.date.isoformat()} has not expired yet"
        )
    return record.model_copy(update={"status": RecordStatus.EXPIRED})


def expire_stale_records(records: Iterable[DailyEarningRecord], today: date) -> list[DailyEarningRecord]:
    """Return ``records`` with every pending record dated before ``today`` expired."""
    return [
        expire_record(r, today) if r.status is RecordStatus.PENDING and r.date < today else r
        for r in records
    ]
