"""Phase economy: phase table, daily earnings, transitions, progress and records."""
