"""Rounding helpers matching how scores are displayed to learners"""

import math


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (2.5 -> 3, not 2)."""
    return int(math.floor(value + 0.5))
