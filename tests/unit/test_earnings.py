"""Daily earnings tests: 25-step blocks at the phase rate, capped at 12,000 steps."""

from decimal import Decimal
from fractions import Fraction

import pytest

from yogicmile.errors import InvalidInputError
from yogicmile.phases.earnings import compute_daily_earnings, daily_potential, steps_to_next_unit
from yogicmile.phases.phase_table import DEFAULT_PHASE_TABLE
from yogicmile.phases.schemas import paisa_to_rupees

PAISA = DEFAULT_PHASE_TABLE.get(1)
COIN = DEFAULT_PHASE_TABLE.get(2)
IMMORTAL = DEFAULT_PHASE_TABLE.get(9)


class TestComputeDailyEarnings:
    def test_10000_steps_in_paisa_phase(self):
        result = compute_daily_earnings(10000, PAISA)
        assert result.units_earned == 400
        assert result.capped_steps == 10000
        assert result.steps_over_cap == 0
        assert result.was_capped is False

    def test_15000_steps_capped_to_12000(self):
        result = compute_daily_earnings(15000, PAISA)
        assert result.units_earned == 480
        assert result.capped_steps == 12000
        assert result.steps_over_cap == 3000
        assert result.raw_steps == 15000
        assert result.was_capped is True

    def test_immortal_rate(self):
        """1000 steps = 40 blocks * 30 paisa."""
        assert compute_daily_earnings(1000, IMMORTAL).units_earned == 1200

    def test_zero_steps_is_not_an_error(self):
        result = compute_daily_earnings(0, PAISA)
        assert result.units_earned == 0
        assert result.step_groups == 0

    @pytest.mark.parametrize(
        "steps,groups",
        [(0, 0), (24, 0), (25, 1), (49, 1), (50, 2), (9999, 399), (11999, 479), (12000, 480)],
    )
    def test_block_boundaries(self, steps, groups):
        result = compute_daily_earnings(steps, COIN)
        assert result.step_groups == groups
        assert result.units_earned == groups * 2

    def test_monotonic_up_to_cap(self):
        previous = -1
        for steps in range(0, 12001, 7):
            units = compute_daily_earnings(steps, PAISA).units_earned
            assert units == steps // 25
            assert units >= previous
            previous = units

    @pytest.mark.parametrize("steps", [12001, 20000, 10**9])
    def test_above_cap_equals_cap(self, steps):
        capped = compute_daily_earnings(12000, COIN)
        result = compute_daily_earnings(steps, COIN)
        assert result.units_earned == capped.units_earned
        assert result.capped_steps == capped.capped_steps

    def test_huge_integer_capped(self):
        capped = compute_daily_earnings(12000, PAISA)
        result = compute_daily_earnings(10**400, PAISA)
        assert result.units_earned == capped.units_earned
        assert result.capped_steps == 12000
        assert result.was_capped

    def test_result_carries_phase(self):
        result = compute_daily_earnings(100, COIN)
        assert result.phase_id == 2
        assert result.rate == 2

    def test_rupees(self):
        assert compute_daily_earnings(15000, PAISA).rupees_earned == Decimal("4.80")

    def test_fractional_steps_floored(self):
        assert compute_daily_earnings(100.9, PAISA).raw_steps == 100
        assert compute_daily_earnings(Fraction(51, 2), PAISA).units_earned == 1

    def test_custom_cap_and_block(self):
        result = compute_daily_earnings(5000, PAISA, max_daily_steps=1000, steps_per_unit=100)
        assert result.capped_steps == 1000
        assert result.units_earned == 10

    @pytest.mark.parametrize("bad", [-1, -0.5, float("nan"), float("inf"), float("-inf"), "100", None, True])
    def test_invalid_input(self, bad):
        with pytest.raises(InvalidInputError):
            compute_daily_earnings(bad, PAISA)

    def test_invalid_input_is_value_error(self):
        with pytest.raises(ValueError):
            compute_daily_earnings(-5, PAISA)


class TestStepsToNextUnit:
    @pytest.mark.parametrize(
        "steps,needed",
        [(0, 25), (10, 15), (25, 25), (11990, 10), (11999, 1), (12000, 0), (15000, 0)],
    )
    def test_remaining(self, steps, needed):
        assert steps_to_next_unit(steps) == needed

    def test_block_straddling_cap(self):
        assert steps_to_next_unit(12000, max_daily_steps=12010) == 10

    def test_negative_rejected(self):
        with pytest.raises(InvalidInputError):
            steps_to_next_unit(-1)


class TestDailyPotential:
    def test_default_target(self):
        assert daily_potential(COIN).units_earned == 800

    def test_target_above_cap(self):
        assert daily_potential(IMMORTAL, 20000).units_earned == 480 * 30


class TestPaisaToRupees:
    @pytest.mark.parametrize(
        "paisa,rupees",
        [(0, "0.00"), (5, "0.05"), (250, "2.50"), (14400, "144.00")],
    )
    def test_conversion(self, paisa, rupees):
        assert paisa_to_rupees(paisa) == Decimal(rupees)
