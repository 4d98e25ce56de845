# src/transfer_network/utils/stats.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass(frozen=True)
class BoxplotStats:
    """
    Box-plot summary of a numeric series.

    stats : (lower whisker, lower hinge, median, upper hinge, upper whisker)
    fences : (hinge_lo - coef*IQR, hinge_hi + coef*IQR)
    out : boolean mask of values outside the fences
    """
    stats: np.ndarray
    fences: tuple
    out: np.ndarray

    @property
    def lower_fence(self) -> float:
        return float(self.fences[0])

    @property
    def upper_fence(self) -> float:
        return float(self.fences[1])


def fivenum(values) -> np.ndarray:
    """
    Tukey five-number summary (minimum, lower hinge, median, upper hinge, maximum).

    Hinges are the medians of the lower/upper halves, the same statistics a
    classic box plot draws its box with.
    """
    x = np.sort(np.asarray(values, dtype=float))
    n = len(x)
    if n == 0:
        raise ValueError("fivenum requires at least one value.")
    n4 = np.floor((n + 3) / 2.0) / 2.0
    d = np.array([1.0, n4, (n + 1) / 2.0, n + 1 - n4, float(n)])
    # 1-based positions -> 0-based indices
    lo = np.floor(d).astype(int) - 1
    hi = np.ceil(d).astype(int) - 1
    return 0.5 * (x[lo] + x[hi])


def boxplot_stats(values, coef: float = 1.5) -> Optional[BoxplotStats]:
    """
    Box-plot statistics for `values` (non-finite values must be filtered by the caller).

    Returns None for an empty series. A single value (or a constant series)
    yields an IQR of 0, fences equal to the value and no outliers.
    """
    x = np.asarray(values, dtype=float)
    if x.size == 0:
        return None

    five = fivenum(x)
    iqr = five[3] - five[1]
    lower_fence = five[1] - coef * iqr
    upper_fence = five[3] + coef * iqr

    out = (x < lower_fence) | (x > upper_fence)
    inside = x[~out]
    stats = five.copy()
    stats[0] = inside.min()
    stats[4] = inside.max()

    return BoxplotStats(stats=stats, fences=(float(lower_fence), float(upper_fence)), out=out)
