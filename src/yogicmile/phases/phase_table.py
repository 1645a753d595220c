"""Phase definitions and the immutable phase table.

The default rows MUST match the app's phase constants exactly:
  Paisa (1 per 25 steps) through Immortal (30 per 25 steps),
  each completed at a cumulative lifetime step total within 60 days.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from yogicmile.errors import InvalidInputError, PhaseTableError

MAX_DAILY_STEPS = 12000
STEPS_PER_UNIT = 25
MAX_PHASE = 9
DEFAULT_TIME_LIMIT_DAYS = 60


class PhaseDefinition(BaseModel):
    """One tier of the progression.

    ``rate`` is paisa earned per block of STEPS_PER_UNIT steps.
    ``step_requirement`` is the lifetime step total that completes the phase.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=1)
    name: str
    symbol: str = ""
    rate: int = Field(gt=0)
    step_requirement: int = Field(gt=0)
    time_limit: int = Field(default=DEFAULT_TIME_LIMIT_DAYS, gt=0)
    spiritual_name: str = ""
    description: str = ""


PHASE_DEFINITIONS: tuple[PhaseDefinition, ...] = (
    PhaseDefinition(
        id=1, name="Paisa Phase", symbol="🟡", rate=1, step_requirement=200_000,
        spiritual_name="Foundation of Discipline", description="Begin your journey",
    ),
    PhaseDefinition(
        id=2, name="Coin Phase", symbol="🪙", rate=2, step_requirement=300_000,
        spiritual_name="Consistent Practice", description="Building consistency",
    ),
    PhaseDefinition(
        id=3, name="Token Phase", symbol="🎟️", rate=3, step_requirement=400_000,
        spiritual_name="Strengthened Willpower", description="Growing stronger",
    ),
    PhaseDefinition(
        id=4, name="Gem Phase", symbol="💎", rate=5, step_requirement=500_000,
        spiritual_name="Inner Clarity", description="Finding clarity",
    ),
    PhaseDefinition(
        id=5, name="Diamond Phase", symbol="💠", rate=7, step_requirement=600_000,
        spiritual_name="Unshakeable Focus", description="Unshakeable determination",
    ),
    PhaseDefinition(
        id=6, name="Crown Phase", symbol="👑", rate=10, step_requirement=800_000,
        spiritual_name="Mastery of Self", description="Mastering yourself",
    ),
    PhaseDefinition(
        id=7, name="Emperor Phase", symbol="🏵️", rate=15, step_requirement=1_000_000,
        spiritual_name="Transcendent Power", description="Transcendent power",
    ),
    PhaseDefinition(
        id=8, name="Legend Phase", symbol="🏅", rate=20, step_requirement=1_200_000,
        spiritual_name="Enlightened Being", description="Legendary status",
    ),
    PhaseDefinition(
        id=9, name="Immortal Phase", symbol="🏆", rate=30, step_requirement=1_500_000,
        spiritual_name="Eternal Consciousness", description="Maximum achievement",
    ),
)


class PhaseTable:
    """Ordered, validated, read-only collection of phase definitions.

    Pass a custom table to the engine to test alternative schedules
    without touching module state.
    """

    __slots__ = ("_phases",)

    def __init__(self, phases: Iterable[PhaseDefinition]) -> None:
        rows = tuple(phases)
        _validate(rows)
        self._phases = rows

    def __len__(self) -> int:
        return len(self._phases)

    def __iter__(self) -> Iterator[PhaseDefinition]:
        return iter(self._phases)

    def __getitem__(self, index: int) -> PhaseDefinition:
        return self._phases[index]

    def __repr__(self) -> str:
        return f"PhaseTable({[p.id for p in self._phases]})"

    @property
    def first(self) -> PhaseDefinition:
        return self._phases[0]

    @property
    def last(self) -> PhaseDefinition:
        return self._phases[-1]

    @property
    def max_phase(self) -> int:
        return self._phases[-1].id

    def get(self, phase_id: int) -> PhaseDefinition:
        """Return the definition for ``phase_id``. Ids are 1-based and contiguous."""
        if isinstance(phase_id, bool) or not isinstance(phase_id, int):
            raise InvalidInputError(f"Phase id must be an integer, got {phase_id!r}")
        if not 1 <= phase_id <= len(self._phases):
            raise InvalidInputError(
                f"Unknown phase {phase_id}; valid phases are 1..{len(self._phases)}"
            )
        return self._phases[phase_id - 1]

    def is_terminal(self, phase_id: int) -> bool:
        return self.get(phase_id).id == self.max_phase

    def next_phase(self, phase_id: int) -> PhaseDefinition | None:
        """The phase after ``phase_id``, or None at the terminal phase."""
        if self.is_terminal(phase_id):
            return None
        return self._phases[phase_id]

    def phase_for_lifetime_steps(self, total_lifetime_steps: int) -> PhaseDefinition:
        """Phase implied by lifetime steps alone, ignoring deadlines.

        Display helper only. Real progression moves one phase per
        evaluation, see ``evaluate_phase_transition``.
        """
        current = self._phases[0]
        for phase in self._phases[:-1]:
            if total_lifetime_steps >= phase.step_requirement:
                current = self._phases[phase.id]
        return current


def _validate(rows: Sequence[PhaseDefinition]) -> None:
    if not rows:
        raise PhaseTableError("Phase table must contain at least one phase")

    for idx, phase in enumerate(rows):
        if phase.id != idx + 1:
            raise PhaseTableError(
                f"Phase ids must run 1..{len(rows)} in order; position {idx} has id {phase.id}"
            )

    for prev, cur in zip(rows, rows[1:]):
        if cur.step_requirement <= prev.step_requirement:
            raise PhaseTableError(
                f"step_requirement must strictly increase: phase {prev.id} "
                f"({prev.step_requirement}) >= phase {cur.id} ({cur.step_requirement})"
            )
        if cur.rate < prev.rate:
            raise PhaseTableError(
                f"rate must not decrease: phase {prev.id} ({prev.rate}) > phase {cur.id} ({cur.rate})"
            )


def load_phase_table(rows: Iterable[Mapping[str, Any]]) -> PhaseTable:
    """Build a table from plain dicts, e.g. rows read from JSON config.

    Accepts both ``step_requirement``/``time_limit`` and the camelCase keys
    used by the mobile client.
    """
    aliases = {"stepRequirement": "step_requirement", "timeLimit": "time_limit", "spiritualName": "spiritual_name"}
    phases = []
    for row in rows:
        data = {aliases.get(key, key): value for key, value in row.items()}
        try:
            phases.append(PhaseDefinition(**data))
        except ValidationError as exc:
            raise PhaseTableError(f"Invalid phase row {dict(row)!r}: {exc}") from exc
    return PhaseTable(phases)


DEFAULT_PHASE_TABLE = PhaseTable(PHASE_DEFINITIONS)
