"""Exceptions raised by the accrual engine.

Deadline overruns are not errors; see
:class:`yogicmile.phases.schemas.PhaseDeadlineExceeded`.
"""

from __future__ import annotations


class YogicMileError(Exception):
    """Base class for all engine errors."""


class InvalidInputError(YogicMileError, ValueError):
    """Step counts or phase ids the engine cannot compute with."""


class PhaseTableError(YogicMileError, ValueError):
    """A phase table breaks ordering or rate invariants."""


class InvalidPhaseTransition(YogicMileError, ValueError):
    """A phase move that is not a single forward step."""


class InvalidRecordTransition(YogicMileError, ValueError):
    """A daily record status change that is not allowed."""
