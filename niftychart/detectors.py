"""
Price / moving-average crossover detection.

The detector is a pure function over an SMA-annotated quote frame and
returns completed buy -> sell transactions.
"""
from typing import List, Optional

import pandas as pd

from niftychart.types import Quote, Transaction, check_int_param

__all__ = ["detect_transactions"]


def _quote_at(df: pd.DataFrame, i: int) -> Quote:
    row = df.iloc[i]
    return Quote(date=str(row["Date"]), close=float(row["Close"]), sma=float(row["sma"]))


def detect_transactions(df: pd.DataFrame, warmup_days: int = 100) -> List[Transaction]:
    """
    Scans quotes once, from `warmup_days` onwards, for close/SMA crossovers.

    A position opens when the close rises strictly above the SMA and closes
    when it falls strictly below it; equality never triggers either side.
    A position still open on the last quote is closed there and flagged as
    `forced`. No position is opened on the last quote itself.

    Args:
        df: Quote frame with 'Date', 'Close' and 'sma' columns, in
            chronological order.
        warmup_days: Index of the first quote considered.

    Returns:
        Transactions ordered by their buy date.
    """
    if not all(c in df.columns for c in ["Date", "Close", "sma"]):
        raise ValueError("Input DataFrame must contain 'Date', 'Close' and an 'sma' column.")
    warmup_days = check_int_param("warmup_days", warmup_days, minimum=1)

    close = df["Close"].to_numpy(dtype=float)
    sma = df["sma"].to_numpy(dtype=float)
    last = len(df) - 1

    transactions: List[Transaction] = []
    buy: Optional[Quote] = None

    for i in range(warmup_days, len(df)):
        if buy is None:
            if close[i] > sma[i] and i < last:
                buy = _quote_at(df, i)
        elif close[i] < sma[i]:
            transactions.append(Transaction(buy=buy, sell=_quote_at(df, i)))
            buy = None
        elif i == last:
            transactions.append(Transaction(buy=buy, sell=_quote_at(df, i), forced=True))
            buy = None

    return transactions
