"""
Shared data structures and exceptions for the application.
"""
import math
import numbers
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

__all__ = [
    "Quote",
    "Transaction",
    "QuoteDataError",
    "MalformedRecordError",
    "EmptyDatasetError",
    "InvalidWindowConfigError",
    "check_int_param",
]


class QuoteDataError(ValueError):
    """Base class for failures of the quote processing core."""


class MalformedRecordError(QuoteDataError):
    """A required column is missing or a numeric field holds non-numeric text."""


class EmptyDatasetError(QuoteDataError):
    """The dataset contains no quotes."""


class InvalidWindowConfigError(QuoteDataError):
    """The moving-average window, offset or warmup cannot be applied."""


def check_int_param(name: str, value: Any, minimum: Optional[int] = None) -> int:
    """Returns `value` as an int, or raises InvalidWindowConfigError."""
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidWindowConfigError(f"{name} must be an integer, got {value!r}.")
    if minimum is not None and value < minimum:
        raise InvalidWindowConfigError(f"{name} must be at least {minimum}, got {value}.")
    return int(value)


def _round_half_up(value: float) -> int:
    # Half-up: .5 always rounds towards +inf, also for negative values.
    return int(math.floor(value + 0.5))


class Quote(BaseModel):
    """
    One trading day, as it appears in a transaction.
    """

    date: str = Field(..., description="The date field, verbatim from the source.")
    close: float = Field(..., description="The closing price.")
    sma: float = Field(0.0, description="Trailing simple moving average of close; 0 when undefined.")

    class Config:
        frozen = True


class Transaction(BaseModel):
    """
    A completed buy -> sell cycle.
    """

    buy: Quote = Field(..., description="The quote at which the position was opened.")
    sell: Quote = Field(..., description="The quote at which the position was closed.")
    forced: bool = Field(False, description="True when closed at the end of the data.")

    class Config:
        frozen = True  # Make transactions immutable

    @property
    def net_profit(self) -> int:
        return _round_half_up(self.sell.close - self.buy.close)

    def summary(self) -> Dict[str, Any]:
        """Display fields for the transaction table, in column order."""
        return {
            "Buy_Date": self.buy.date,
            "Buying_Price": _round_half_up(self.buy.close),
            "Sell_Date": self.sell.date,
            "Selling_Price": _round_half_up(self.sell.close),
            "Net_Profit": self.net_profit,
        }
