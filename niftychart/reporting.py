"""
Output reports for a chart run: transaction table, summaries and the
interactive price chart.
"""
import json
from pathlib import Path
from typing import Any, Dict, List

import numpy as np
import pandas as pd
import plotly.graph_objects as go
from rich.console import Console
from rich.table import Table

from niftychart.config import Config
from niftychart.pipeline import ChartData
from niftychart.types import Transaction

__all__ = [
    "TRANSACTION_COLUMNS",
    "transactions_frame",
    "render_transactions_table",
    "build_price_figure",
    "generate_all_reports",
]

TRANSACTION_COLUMNS = ["Buy_Date", "Buying_Price", "Sell_Date", "Selling_Price", "Net_Profit"]


def _to_json_serializable(data: Any) -> Any:
    """Recursively converts non-serializable types in a dictionary."""
    if isinstance(data, dict):
        return {k: _to_json_serializable(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_to_json_serializable(i) for i in data]
    if isinstance(data, (Path, pd.Timestamp)):
        return str(data)
    if data is None or (isinstance(data, float) and np.isnan(data)):
        return None
    if isinstance(data, np.integer):
        return int(data)
    if isinstance(data, np.floating):
        return float(data)
    if isinstance(data, np.bool_):
        return bool(data)
    return data


def transactions_frame(transactions: List[Transaction]) -> pd.DataFrame:
    """One row per transaction with the display columns, in buy order."""
    return pd.DataFrame([t.summary() for t in transactions], columns=TRANSACTION_COLUMNS)


def _summary_stats(chart: ChartData) -> Dict[str, Any]:
    profits = [t.net_profit for t in chart.transactions]
    quotes = chart.quotes
    return {
        "first_date": quotes["Date"].iloc[0],
        "last_date": quotes["Date"].iloc[-1],
        "quotes": len(quotes),
        "transactions": len(profits),
        "winning_transactions": sum(1 for p in profits if p > 0),
        "total_net_profit": sum(profits),
        "forced_close": any(t.forced for t in chart.transactions),
    }


# impure
def render_transactions_table(transactions: List[Transaction], console: Console) -> None:
    """Prints the transaction table to the console."""
    table = Table(title="Transactions")
    for column in TRANSACTION_COLUMNS:
        table.add_column(column, justify="left" if column.endswith("Date") else "right")

    for t in transactions:
        row = t.summary()
        profit = row["Net_Profit"]
        style = "green" if profit > 0 else "red" if profit < 0 else None
        table.add_row(*(str(row[c]) for c in TRANSACTION_COLUMNS), style=style)

    console.print(table)
    if not transactions:
        console.print("[yellow]No crossover transactions in this range.[/yellow]")


def build_price_figure(quotes: pd.DataFrame, title: str = "NIFTY 50") -> go.Figure:
    """
    Builds the price chart: close line, SMA line and a date range slider.

    Quotes still in the SMA warmup (sma == 0) are left off the SMA line.
    """
    dates = pd.to_datetime(quotes["Date"], format="mixed")
    with_sma = quotes["sma"] != 0

    fig = go.Figure()
    fig.add_trace(go.Scatter(x=dates, y=quotes["Close"], mode="lines", name="Close"))
    fig.add_trace(
        go.Scatter(x=dates[with_sma], y=quotes.loc[with_sma, "sma"], mode="lines", name="SMA")
    )
    fig.update_layout(
        title=title,
        xaxis=dict(title="Date", rangeslider=dict(visible=True), type="date"),
        yaxis=dict(title="Close"),
        width=1200,
        height=600,
    )
    return fig


# impure
def _generate_transactions_csv(chart: ChartData, output_dir: Path) -> None:
    transactions_frame(chart.transactions).to_csv(output_dir / "transactions.csv", index=False)


# impure
def _generate_summary_json(chart: ChartData, config: Config, output_dir: Path) -> None:
    """Generates a JSON file with the run parameters, stats and transactions."""
    summary = {
        "run_name": config.run.name,
        "symbol": config.data.symbol,
        "sma_params": {
            "window": chart.params.window,
            "offset": chart.params.offset,
            "warmup_days": chart.params.warmup,
            "policy": chart.params.policy,
        },
        "stats": _summary_stats(chart),
        "transactions": [t.summary() for t in chart.transactions],
    }
    with (output_dir / "summary.json").open("w") as f:
        json.dump(_to_json_serializable(summary), f, indent=2)


# impure
def _generate_summary_markdown(chart: ChartData, config: Config, output_dir: Path) -> None:
    """Generates a Markdown file with a human-readable summary."""
    stats = _summary_stats(chart)
    md = f"# SMA Crossover Summary: {config.run.name}\n\n"
    md += f"- **Symbol**: {config.data.symbol}\n"
    md += f"- **Period**: {stats['first_date']} to {stats['last_date']} ({stats['quotes']} quotes)\n"
    md += f"- **SMA window / offset**: {chart.params.window} / {chart.params.offset}\n"
    md += f"- **Transactions**: {stats['transactions']} ({stats['winning_transactions']} profitable)\n"
    md += f"- **Total net profit**: {stats['total_net_profit']}\n\n"

    md += "## Transactions\n\n"
    md += "| " + " | ".join(TRANSACTION_COLUMNS) + " |\n"
    md += "|" + "---|" * len(TRANSACTION_COLUMNS) + "\n"
    for t in chart.transactions:
        row = t.summary()
        md += "| " + " | ".join(str(row[c]) for c in TRANSACTION_COLUMNS) + " |\n"

    (output_dir / "summary.md").write_text(md)


# impure
def generate_all_reports(
    config: Config,
    chart: ChartData,
    run_dir: Path,
    console: Console,
) -> None:
    """
    Orchestrates the generation of all output reports.
    #impure: Writes to the filesystem.
    """
    formats = config.reporting.output_formats

    if "csv" in formats:
        console.print("Generating transactions CSV...")
        _generate_transactions_csv(chart, run_dir)

    if "json" in formats:
        console.print("Generating summary JSON...")
        _generate_summary_json(chart, config, run_dir)

    if "markdown" in formats:
        console.print("Generating summary Markdown...")
        _generate_summary_markdown(chart, config, run_dir)

    if config.reporting.generate_chart:
        console.print("Generating price chart...")
        fig = build_price_figure(chart.quotes, title=config.reporting.chart_title)
        fig.write_html(run_dir / "chart.html", include_plotlyjs="cdn")

    console.print("All reports generated.")
