"""Half-up rounding (Python's built-in round() rounds half to even)."""

import math


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, ties away from minus infinity.

    Example:
        >>> round_half_up(2.5), round(2.5)
        (3, 2)
    """
    return int(math.floor(value + 0.5))
