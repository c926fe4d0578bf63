"""
Chart data pipeline.

Turns raw quote records into the annotated quote frame and the transaction
list the presentation layer consumes. Every call is a fresh pass over the
raw records, so changing the window, offset or date range is simply another
call with other parameters.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Any, List, Mapping, Optional, Sequence, Union

import pandas as pd

from niftychart.config import Config
from niftychart.data import normalize_quotes
from niftychart.detectors import detect_transactions
from niftychart.features import add_sma
from niftychart.types import Transaction

__all__ = [
    "ChartParams",
    "ChartData",
    "PipelineError",
    "build_chart_data",
    "recompute",
    "filter_date_range",
    "transactions_in_range",
]

DEFAULT_WINDOW = 100


class PipelineError(Exception):
    """Custom exception for pipeline failures."""


@dataclass(frozen=True)
class ChartParams:
    """Moving-average and detection parameters for one chart rendering."""
    window: int = DEFAULT_WINDOW
    offset: int = 0
    warmup_days: Optional[int] = None
    policy: str = "clamp"

    @property
    def warmup(self) -> int:
        """The detector's starting index; follows the window unless set."""
        return self.window if self.warmup_days is None else self.warmup_days

    @classmethod
    def from_config(cls, config: Config) -> "ChartParams":
        return cls(
            window=config.sma.window,
            offset=config.sma.offset,
            warmup_days=config.sma.warmup_days,
            policy=config.sma.policy,
        )

    @classmethod
    def from_controls(cls, period: Any, offset: Any = 0, **kwargs: Any) -> "ChartParams":
        """
        Builds params from raw UI control values.

        An empty or zero period falls back to the default window, as the
        period input on the chart page does.
        """
        window = int(period or 0) or DEFAULT_WINDOW
        return cls(window=window, offset=int(offset or 0), **kwargs)


@dataclass
class ChartData:
    """Everything the presentation layer needs for one rendering."""
    quotes: pd.DataFrame
    transactions: List[Transaction] = field(default_factory=list)
    params: ChartParams = field(default_factory=ChartParams)


def build_chart_data(
    raw_rows: Sequence[Mapping[str, Any]],
    params: ChartParams = ChartParams(),
    drop_incomplete: bool = False,
) -> ChartData:
    """
    Normalizes raw records, adds the SMA and detects transactions.

    Errors from any step propagate unchanged, so a caller never receives a
    partially built chart.
    """
    quotes = normalize_quotes(raw_rows, drop_incomplete=drop_incomplete)
    annotated = add_sma(quotes, window=params.window, offset=params.offset, policy=params.policy)
    transactions = detect_transactions(annotated, warmup_days=params.warmup)
    return ChartData(quotes=annotated, transactions=transactions, params=params)


def recompute(
    raw_rows: Sequence[Mapping[str, Any]],
    params: ChartParams,
    drop_incomplete: bool = False,
) -> ChartData:
    """Rebuilds chart data after a control change, always from the raw records."""
    return build_chart_data(raw_rows, params, drop_incomplete=drop_incomplete)


def filter_date_range(
    quotes: pd.DataFrame,
    start: Optional[Union[date, str]] = None,
    end: Optional[Union[date, str]] = None,
) -> pd.DataFrame:
    """
    Keeps the quotes whose date lies within [start, end], both inclusive.

    'Date' stays text in the result; it is parsed here for comparison only.
    An open bound keeps everything on that side.
    """
    start_ts = pd.Timestamp(start) if start is not None else None
    end_ts = pd.Timestamp(end) if end is not None else None
    if start_ts is not None and end_ts is not None and end_ts < start_ts:
        raise PipelineError(f"Date range end {end} is before start {start}.")

    dates = pd.to_datetime(quotes["Date"], format="mixed")
    mask = pd.Series(True, index=quotes.index)
    if start_ts is not None:
        mask &= dates >= start_ts
    if end_ts is not None:
        mask &= dates <= end_ts
    return quotes.loc[mask].reset_index(drop=True)


def transactions_in_range(
    transactions: List[Transaction],
    start: Optional[Union[date, str]] = None,
    end: Optional[Union[date, str]] = None,
) -> List[Transaction]:
    """Keeps the transactions whose buy date lies within [start, end]."""
    start_ts = pd.Timestamp(start) if start is not None else None
    end_ts = pd.Timestamp(end) if end is not None else None

    kept = []
    for t in transactions:
        bought = pd.Timestamp(t.buy.date)
        if start_ts is not None and bought < start_ts:
            continue
        if end_ts is not None and bought > end_ts:
            continue
        kept.append(t)
    return kept
