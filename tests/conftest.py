"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from yogicmile.config import Settings, get_settings
from yogicmile.ingestion import InMemoryPhaseStateStore, StepIngestionService
from yogicmile.phases.phase_table import DEFAULT_PHASE_TABLE, PhaseTable
from yogicmile.phases.schemas import UserPhaseState

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def phase_table() -> PhaseTable:
    return DEFAULT_PHASE_TABLE


@pytest.fixture
def settings() -> Settings:
    """Default settings, ignoring any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def make_state(now):
    """Build a UserPhaseState whose phase started ``days_ago`` days before NOW."""

    def _make(phase: int = 1, lifetime: int = 0, days_ago: int = 10) -> UserPhaseState:
        return UserPhaseState(
            current_phase=phase,
            total_lifetime_steps=lifetime,
            phase_start_date=now - timedelta(days=days_ago),
        )

    return _make


@pytest.fixture
def store() -> InMemoryPhaseStateStore:
    return InMemoryPhaseStateStore()


@pytest.fixture
def service(store, settings) -> StepIngestionService:
    return StepIngestionService(store, settings=settings)
