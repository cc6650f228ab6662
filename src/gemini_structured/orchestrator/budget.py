"""Output-size budgeting.

The requested output budget grows linearly with the number of items the
caller expects, so short requests do not over-reserve and long ones are not cut
short. It never exceeds the model's hard ceiling.
"""

import math


def output_budget(
    expected_item_count: int,
    *,
    base: int,
    per_item: int,
    ceiling: int,
) -> int:
    """Initial output budget for a request expecting ``expected_item_count`` items."""
    items = max(0, int(expected_item_count))
    return max(1, min(ceiling, base + items * per_item))


def grow_budget(current: int, *, growth: float, ceiling: int) -> int:
    """Larger budget for a retry after a truncated response."""
    grown = max(current + 1, math.ceil(current * growth))
    return min(ceiling, grown)
