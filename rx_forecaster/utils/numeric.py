"""
Numeric helpers shared by the forecasting stages.

Every unit count the engine reports (estimator outputs, blended and adjusted
forecasts, stocking quantities, confidence bands) is rounded with
``round_half_up``. Python's built-in ``round`` sends .5 ties to the nearest
even integer, so a reorder point of 4.5 units would come out as 4; here it
is 5.
"""

from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 ties towards +infinity.

    Examples:
        >>> round_half_up(4.5)
        5
        >>> round_half_up(2.4)
        2
        >>> round_half_up(-0.5)
        0
    """
    return math.floor(value + 0.5)
