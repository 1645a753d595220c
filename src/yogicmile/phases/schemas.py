"""Pydantic value models for the accrual engine.

All models are frozen: engine operations return new instances instead of
mutating their inputs.
"""

from __future__ import annotations

import datetime as dt
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from yogicmile.errors import InvalidInputError

PAISA_PER_RUPEE = 100


def paisa_to_rupees(paisa: int) -> Decimal:
    """Display conversion, e.g. 250 -> Decimal('2.50')."""
    return (Decimal(paisa) / PAISA_PER_RUPEE).quantize(Decimal("0.01"))


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# --- Phase state ---


class UserPhaseState(BaseModel):
    model_config = ConfigDict(frozen=True)

    current_phase: int = Field(default=1, ge=1)
    total_lifetime_steps: int = Field(default=0, ge=0)
    phase_start_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("phase_start_date")
    @classmethod
    def _tz_aware(cls, value: datetime) -> datetime:
        """Naive timestamps are taken as UTC."""
        return _as_utc(value)

    def with_added_steps(self, steps: int) -> UserPhaseState:
        """Copy with ``steps`` added to the lifetime total. Lifetime steps never shrink."""
        if isinstance(steps, bool) or not isinstance(steps, int) or steps < 0:
            raise InvalidInputError(f"Added steps must be a non-negative integer, got {steps!r}")
        return self.model_copy(update={"total_lifetime_steps": self.total_lifetime_steps + steps})


class PhaseDeadlineExceeded(BaseModel):
    """Advisory: the phase requirement was met after its time limit ran out.

    Returned to the caller for display and notifications, never raised.
    ``advanced`` tells whether the user moved on anyway.
    """

    model_config = ConfigDict(frozen=True)

    phase_id: int
    days_elapsed: int
    time_limit: int
    advanced: bool

    @computed_field  # type: ignore[prop-decorator]
    @property
    def days_over(self) -> int:
        return self.days_elapsed - self.time_limit


class PhaseTransitionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    new_state: UserPhaseState
    transitioned: bool
    previous_phase: int
    deadline: PhaseDeadlineExceeded | None = None


# --- Earnings ---


class DailyEarnings(BaseModel):
    """Outcome of converting one day's steps into paisa."""

    model_config = ConfigDict(frozen=True)

    raw_steps: int
    capped_steps: int
    steps_over_cap: int
    step_groups: int
    units_earned: int
    phase_id: int
    rate: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def was_capped(self) -> bool:
        return self.steps_over_cap > 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def rupees_earned(self) -> Decimal:
        return paisa_to_rupees(self.units_earned)


class PhaseProgress(BaseModel):
    """Progress ring / countdown data for the presentation layer."""

    model_config = ConfigDict(frozen=True)

    phase_id: int
    phase_name: str
    symbol: str
    rate: int
    total_lifetime_steps: int
    steps_required: int
    steps_to_next: int
    progress_percentage: float
    days_elapsed: int
    days_remaining: int
    deadline_passed: bool
    is_terminal: bool
    is_eligible_for_advancement: bool
    next_phase_id: int | None = None
    next_phase_name: str | None = None
    next_rate: int | None = None


# --- Daily records ---


class RecordStatus(str, Enum):
    PENDING = "pending"
    REDEEMED = "redeemed"
    EXPIRED = "expired"


class DailyEarningRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    date: dt.date
    raw_steps: int = Field(ge=0)
    steps: int = Field(ge=0)
    coins_earned: int = Field(ge=0)
    phase_id: int
    phase_rate: int
    status: RecordStatus = RecordStatus.PENDING
    redeemed_at: datetime | None = None


class Wallet(BaseModel):
    """Balances in paisa."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    total_balance: int = 0
    total_earned: int = 0

    def credit(self, paisa: int) -> Wallet:
        if paisa < 0:
            raise InvalidInputError(f"Cannot credit a negative amount: {paisa}")
        return self.model_copy(
            update={
                "total_balance": self.total_balance + paisa,
                "total_earned": self.total_earned + paisa,
            }
        )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def balance_rupees(self) -> Decimal:
        return paisa_to_rupees(self.total_balance)
