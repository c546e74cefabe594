"""Constants for the scoring module."""

# Hours over which the recency weight halves (w = 1 / (1 + hours / 24))
RECENCY_HALF_LIFE_HOURS: float = 24.0

SECONDS_PER_HOUR: float = 60.0 * 60.0
SECONDS_PER_DAY: float = 24.0 * SECONDS_PER_HOUR

# Bounds of every engagement score
MIN_SCORE: float = 0.0
MAX_SCORE: float = 1.0
