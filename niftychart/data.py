"""
Quote ingestion: CSV reading, record normalization and data refresh.
"""
import math
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence

import pandas as pd
import yfinance as yf
from rich.console import Console

from niftychart.types import EmptyDatasetError, MalformedRecordError

__all__ = ["read_quotes_csv", "normalize_quotes", "fetch_quotes_csv"]

REQUIRED_COLUMNS = ("Date", "Close")
CSV_COLUMNS = ["Date", "Open", "High", "Low", "Close", "Adj Close", "Volume"]

# Yahoo Finance marks days without a quote with the literal "null".
_MISSING_MARKERS = {"", "null"}


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and pd.isna(value):
        return True
    return isinstance(value, str) and value.strip().lower() in _MISSING_MARKERS


def _to_number(value: Any, position: int, field: str) -> float:
    """Coerces a single field to float, raising on anything non-numeric."""
    if _is_missing(value):
        raise MalformedRecordError(f"Row {position}: field '{field}' is empty.")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise MalformedRecordError(
            f"Row {position}: field '{field}' is not numeric: {value!r}"
        ) from None
    if not math.isfinite(number):
        raise MalformedRecordError(f"Row {position}: field '{field}' is not finite: {value!r}")
    return number


# impure
def read_quotes_csv(path: Path) -> List[Dict[str, str]]:
    """
    Reads a quotes CSV as raw text records, one dict per row.
    #impure: Reads from the filesystem.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Quotes file not found: {path}")

    # Everything stays text here; coercion happens in normalize_quotes.
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    return df.to_dict(orient="records")


def normalize_quotes(
    rows: Sequence[Mapping[str, Any]], drop_incomplete: bool = False
) -> pd.DataFrame:
    """
    Converts raw records into a typed quote frame.

    The 'Date' field is kept verbatim as text; every other field is coerced
    to a float. Row order is preserved and never sorted.

    Args:
        rows: Raw records, each with a 'Date' and a 'Close' field.
        drop_incomplete: Skip rows holding empty or 'null' numeric fields
            instead of failing on them.

    Returns:
        A DataFrame with a fresh RangeIndex, one row per quote.

    Raises:
        EmptyDatasetError: If there are no rows left to normalize.
        MalformedRecordError: If a required column is missing or a numeric
            field holds non-numeric text.
    """
    if not rows:
        raise EmptyDatasetError("Dataset must contain at least one quote.")

    records = []
    for position, row in enumerate(rows):
        missing = [c for c in REQUIRED_COLUMNS if c not in row]
        if missing:
            raise MalformedRecordError(f"Row {position}: missing required column(s) {missing}.")

        numeric_fields = {k: v for k, v in row.items() if k != "Date"}
        if drop_incomplete and any(_is_missing(v) for v in numeric_fields.values()):
            continue

        record: Dict[str, Any] = {"Date": str(row["Date"])}
        for field, value in numeric_fields.items():
            record[field] = _to_number(value, position, field)
        if record["Close"] < 0:
            raise MalformedRecordError(f"Row {position}: 'Close' must not be negative.")
        records.append(record)

    if not records:
        raise EmptyDatasetError("Dataset must contain at least one quote.")

    return pd.DataFrame.from_records(records)


# impure
def fetch_quotes_csv(
    symbol: str, start_date: date, end_date: date, path: Path, console: Console
) -> int:
    """
    Downloads daily quotes from yfinance and writes them as a Yahoo-style CSV.
    Returns the number of rows written.
    #impure: Accesses network and filesystem.
    """
    console.print(f"Downloading {symbol} from {start_date} to {end_date}...")
    data = yf.download(
        tickers=symbol,
        start=start_date,
        end=end_date,
        interval="1d",
        auto_adjust=False,
        prepost=False,
        actions=False,
        progress=False,
    )
    if data is None or data.empty:
        raise ValueError(f"No data returned for symbol {symbol}")

    # Single-ticker downloads may still come back with (field, ticker) columns.
    if isinstance(data.columns, pd.MultiIndex):
        data.columns = data.columns.get_level_values(0)

    data = data.reset_index()
    data["Date"] = pd.to_datetime(data["Date"]).dt.strftime("%Y-%m-%d")
    columns = [c for c in CSV_COLUMNS if c in data.columns]

    path.parent.mkdir(parents=True, exist_ok=True)
    data[columns].to_csv(path, index=False)
    console.print(f"Wrote {len(data)} rows to [cyan]{path}[/cyan]")
    return len(data)
