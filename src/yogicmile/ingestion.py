"""Step ingestion: daily records, lifetime steps and phase advancement.

Devices report today's running step total. Each report:
1. Raises the day's step count to the reported total (never lowers it)
2. Adds the increase to lifetime steps
3. Rebuilds the day's record at the rate of the phase active before this report
4. Settles phase transitions (catch_up_phases) and stores the new state

Writers for the same user are serialised with a per-user asyncio.Lock, held
only while some caller is using or waiting for it.
Persistence sits behind PhaseStateStore; only an in-memory store ships here.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Protocol

import structlog
from pydantic import BaseModel, ConfigDict, Field

from yogicmile.config import Settings, get_settings
from yogicmile.errors import InvalidRecordTransition
from yogicmile.phases.earnings import coerce_step_count
from yogicmile.phases.phase_table import DEFAULT_PHASE_TABLE, PhaseTable
from yogicmile.phases.records import build_daily_record, expire_stale_records, redeem_record
from yogicmile.phases.schemas import (
    DailyEarningRecord,
    PhaseDeadlineExceeded,
    PhaseTransitionResult,
    RecordStatus,
    UserPhaseState,
    Wallet,
)
from yogicmile.phases.transitions import catch_up_phases

logger = structlog.get_logger()


def _utc(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


class PhaseStateStore(Protocol):
    """Persistence boundary for per-user phase state, daily records and wallets."""

    async def get_state(self, user_id: str) -> UserPhaseState | None: ...

    async def put_state(self, user_id: str, state: UserPhaseState) -> None: ...

    async def get_record(self, user_id: str, day: date) -> DailyEarningRecord | None: ...

    async def put_record(self, record: DailyEarningRecord) -> None: ...

    async def list_records(self, user_id: str) -> list[DailyEarningRecord]: ...

    async def get_wallet(self, user_id: str) -> Wallet | None: ...

    async def put_wallet(self, wallet: Wallet) -> None: ...


class InMemoryPhaseStateStore:
    """Dict-backed store for tests and guest sessions.

    Every call yields to the event loop once, like a real database round trip.
    """

    def __init__(self) -> None:
        self._states: dict[str, UserPhaseState] = {}
        self._records: dict[tuple[str, date], DailyEarningRecord] = {}
        self._wallets: dict[str, Wallet] = {}

    async def get_state(self, user_id: str) -> UserPhaseState | None:
        await asyncio.sleep(0)
        return self._states.get(user_id)

    async def put_state(self, user_id: str, state: UserPhaseState) -> None:
        await asyncio.sleep(0)
        self._states[user_id] = state

    async def get_record(self, user_id: str, day: date) -> DailyEarningRecord | None:
        await asyncio.sleep(0)
        return self._records.get((user_id, day))

    async def put_record(self, record: DailyEarningRecord) -> None:
        await asyncio.sleep(0)
        self._records[(record.user_id, record.date)] = record

    async def list_records(self, user_id: str) -> list[DailyEarningRecord]:
        await asyncio.sleep(0)
        return sorted(
            (r for (uid, _), r in self._records.items() if uid == user_id),
            key=lambda r: r.date,
        )

    async def get_wallet(self, user_id: str) -> Wallet | None:
        await asyncio.sleep(0)
        return self._wallets.get(user_id)

    async def put_wallet(self, wallet: Wallet) -> None:
        await asyncio.sleep(0)
        self._wallets[wallet.user_id] = wallet


class IngestionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    record: DailyEarningRecord
    state: UserPhaseState
    created: bool
    steps_added: int
    transitions: list[PhaseTransitionResult] = Field(default_factory=list)
    deadlines: list[PhaseDeadlineExceeded] = Field(default_factory=list)


class RedemptionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    record: DailyEarningRecord
    wallet: Wallet


class StepIngestionService:
    """Applies device step reports to a user's phase state."""

    def __init__(
        self,
        store: PhaseStateStore,
        phase_table: PhaseTable = DEFAULT_PHASE_TABLE,
        settings: Settings | None = None,
    ) -> None:
        self._store = store
        self._phase_table = phase_table
        self._settings = settings or get_settings()
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def _user_lock(self, user_id: str) -> AsyncIterator[None]:
        """Hold the user's lock with ``user_id`` bound to the log context.

        The lock is dropped once nobody holds or waits for it.
        """
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        self._lock_users[user_id] = self._lock_users.get(user_id, 0) + 1
        try:
            async with lock:
                with structlog.contextvars.bound_contextvars(user_id=user_id):
                    yield
        finally:
            self._lock_users[user_id] -= 1
            if self._lock_users[user_id] == 0:
                del self._lock_users[user_id]
                del self._locks[user_id]

    async def record_steps(
        self,
        user_id: str,
        day_steps: int,
        *,
        now: datetime | None = None,
    ) -> IngestionResult:
        """Record today's running step total for ``user_id``."""
        steps = coerce_step_count(day_steps, "day_steps")
        now = _utc(now)
        today = now.date()

        async with self._user_lock(user_id):
            return await self._apply(user_id, steps, today, now)

    async def _apply(self, user_id: str, steps: int, today: date, now: datetime) -> IngestionResult:
        state = await self._store.get_state(user_id)
        created = state is None
        if state is None:
            state = UserPhaseState(phase_start_date=now)
            logger.info("phase_state_created", phase=state.current_phase)

        existing = await self._store.get_record(user_id, today)
        previous_steps = existing.raw_steps if existing else 0
        day_total = max(steps, previous_steps)
        added = day_total - previous_steps

        active_phase = self._phase_table.get(state.current_phase)
        if existing is not None and existing.status is not RecordStatus.PENDING:
            # Settled records keep their coins; later steps still count toward phases
            record = existing.model_copy(update={"raw_steps": day_total})
        else:
            record = build_daily_record(
                user_id,
                today,
                day_total,
                active_phase,
                max_daily_steps=self._settings.max_daily_steps,
                steps_per_unit=self._settings.steps_per_unit,
            )

        state = state.with_added_steps(added)
        state, evaluations = catch_up_phases(
            state,
            self._phase_table,
            now=now,
            deadline_policy=self._settings.deadline_policy,
        )

        await self._store.put_record(record)
        await self._store.put_state(user_id, state)

        transitions = [r for r in evaluations if r.transitioned]
        deadlines = [r.deadline for r in evaluations if r.deadline is not None]
        for result in transitions:
            new_phase = self._phase_table.get(result.new_state.current_phase)
            logger.info(
                "phase_advanced",
                from_phase=result.previous_phase,
                to_phase=new_phase.id,
                phase_name=new_phase.name,
                rate=new_phase.rate,
                lifetime_steps=state.total_lifetime_steps,
            )
        for advisory in deadlines:
            logger.warning(
                "phase_deadline_exceeded",
                phase=advisory.phase_id,
                days_elapsed=advisory.days_elapsed,
                time_limit=advisory.time_limit,
                advanced=advisory.advanced,
            )

        return IngestionResult(
            record=record,
            state=state,
            created=created,
            steps_added=added,
            transitions=transitions,
            deadlines=deadlines,
        )

    async def redeem_today(self, user_id: str, *, now: datetime | None = None) -> RedemptionResult:
        """Redeem today's pending coins into the user's wallet."""
        now = _utc(now)
        today = now.date()

        async with self._user_lock(user_id):
            record = await self._store.get_record(user_id, today)
            if record is None:
                raise InvalidRecordTransition(f"No steps recorded for {user_id} on {today.isoformat()}")

            redeemed = redeem_record(record, now)
            wallet = await self._store.get_wallet(user_id) or Wallet(user_id=user_id)
            wallet = wallet.credit(redeemed.coins_earned)

            await self._store.put_record(redeemed)
            await self._store.put_wallet(wallet)
            logger.info(
                "daily_coins_redeemed",
                day=today.isoformat(),
                paisa=redeemed.coins_earned,
                balance=wallet.total_balance,
            )
        return RedemptionResult(record=redeemed, wallet=wallet)

    async def expire_stale(self, user_id: str, today: date) -> int:
        """Expire every pending record before ``today``. Returns how many expired."""
        async with self._user_lock(user_id):
            records = await self._store.list_records(user_id)
            updated = expire_stale_records(records, today)
            expired = 0
            for before, after in zip(records, updated):
                if after is not before:
                    await self._store.put_record(after)
                    expired += 1
            if expired:
                logger.info("daily_coins_expired", count=expired)
        return expired
