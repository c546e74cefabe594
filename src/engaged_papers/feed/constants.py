"""Constants for feed listings."""

# Papers stored within this window count as new
NEW_PAPER_WINDOW_HOURS: int = 24

# Snapshot dates considered for the rising listing
RISING_WINDOW_DAYS: int = 7

# Share of positive-score metrics shown as rising
DEFAULT_RISING_FRACTION: float = 0.1

# Publication window of the ranked paper listing when no start date is given
LISTING_WINDOW_DAYS: int = 7
