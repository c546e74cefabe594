"""Min-max normalization with an explicit degenerate-range policy."""


def normalize(value: float, min_value: float, max_value: float) -> float:
    """Scale a value into [0, 1] relative to an observed range.

    A constant range carries no information, so it maps to 0 rather
    than to an invented midpoint.

    Args:
        value: Value to scale.
        min_value: Smallest value observed in the batch.
        max_value: Largest value observed in the batch.

    Returns:
        ``(value - min) / (max - min)``, or 0.0 when ``max == 0`` or
        ``max <= min``.
    """
    if max_value == 0 or max_value <= min_value:
        return 0.0
    return (value - min_value) / (max_value - min_value)
