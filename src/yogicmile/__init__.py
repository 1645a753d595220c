"""Step-to-reward accrual engine for the Yogic Mile walking app."""

__version__ = "0.1.0"
