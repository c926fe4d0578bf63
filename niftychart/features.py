"""
Moving-average features on a quote frame.

Functions in this module are pure: they take a DataFrame and return a new
one, leaving the input untouched.
"""

import numpy as np
import pandas as pd

from niftychart.types import EmptyDatasetError, InvalidWindowConfigError, check_int_param

__all__ = ["add_sma", "sma_bounds"]


def sma_bounds(length: int, window: int, offset: int) -> tuple[np.ndarray, np.ndarray]:
    """
    Returns the unclamped [lo, hi) index range averaged for every position.

    For position i the range is [i - window - offset, i - offset), so a
    positive offset lags the average and a negative one leads it.
    """
    idx = np.arange(length)
    return idx - window - offset, idx - offset


def add_sma(
    df: pd.DataFrame, window: int = 100, offset: int = 0, policy: str = "clamp"
) -> pd.DataFrame:
    """
    Adds an 'sma' column: the trailing simple moving average of 'Close'.

    The first `window` rows get 0, the sentinel for "not enough history".
    Every later row gets the mean of 'Close' over its range from
    `sma_bounds`. While the range lies inside the frame the divisor is
    `window`.

    Ranges that reach outside the frame are handled by `policy`:

    - "clamp": out-of-range positions are dropped and the divisor is the
      number of positions left. A range with nothing left gets 0, the
      same value as the warmup sentinel; the crossover detector reads it
      as an average of 0, so any positive close after the warmup buys.
    - "strict": raise InvalidWindowConfigError.

    Args:
        df: Quote frame with a 'Close' column, in chronological order.
        window: Number of quotes averaged, a positive integer.
        offset: Integer shift of the averaged range relative to the current row.
        policy: "clamp" or "strict".

    Returns:
        A new DataFrame with the 'sma' column set (any previous one is
        replaced).
    """
    if "Close" not in df.columns:
        raise ValueError("Input DataFrame must contain a 'Close' column.")
    if df.empty:
        raise EmptyDatasetError("Dataset must contain at least one quote.")
    window = check_int_param("SMA window", window, minimum=1)
    offset = check_int_param("SMA offset", offset)
    if policy not in ("clamp", "strict"):
        raise InvalidWindowConfigError(f"Unknown SMA offset policy: {policy!r}")

    close = df["Close"].to_numpy(dtype=float)
    n = len(close)
    lo, hi = sma_bounds(n, window, offset)
    active = np.arange(n) >= window

    if policy == "strict":
        out_of_range = active & ((lo < 0) | (hi > n))
        if out_of_range.any():
            first = int(np.argmax(out_of_range))
            raise InvalidWindowConfigError(
                f"window={window}, offset={offset} averages indices "
                f"[{lo[first]}, {hi[first]}) at row {first}, outside 0..{n}."
            )

    lo = np.clip(lo, 0, n)
    hi = np.clip(hi, 0, n)
    count = np.maximum(hi - lo, 0)

    # Prefix sums give every range total in one pass.
    prefix = np.concatenate(([0.0], np.cumsum(close)))
    totals = np.where(count > 0, prefix[hi] - prefix[np.minimum(lo, hi)], 0.0)

    sma = np.zeros(n)
    has_values = active & (count > 0)
    sma[has_values] = totals[has_values] / count[has_values]

    return df.assign(sma=sma)
