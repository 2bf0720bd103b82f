import math


def round_amount(value: float) -> int:
    """Round half up to a whole currency unit (so 0.5 -> 1 and -0.5 -> 0)."""
    return int(math.floor(value + 0.5))


def round_pct(value: float) -> float:
    return math.floor(value * 100 + 0.5) / 100
