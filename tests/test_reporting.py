"""Tests for the reporting functions."""
import copy
import json
from pathlib import Path
from typing import Dict, Any, cast

import numpy as np
import pandas as pd
import pytest
from rich.console import Console

from niftychart.config import Config, _from_dict
from niftychart.pipeline import ChartData, ChartParams, build_chart_data
from niftychart.reporting import (
    TRANSACTION_COLUMNS,
    build_price_figure,
    generate_all_reports,
    render_transactions_table,
    transactions_frame,
)

# A complete and valid dictionary for creating a Config object in tests.
FULL_CONFIG_DICT: Dict[str, Any] = {
    "run": {"name": "test_reporting_run", "output_dir": ""},
    "data": {
        "symbol": "^NSEI", "csv_path": "", "start_date": "2019-01-01",
        "end_date": "2019-12-31", "drop_incomplete": False,
    },
    "sma": {"window": 20, "offset": 0, "warmup_days": None, "policy": "clamp"},
    "reporting": {"output_formats": ["csv", "json", "markdown"], "generate_chart": True, "chart_title": "Test"},
}


@pytest.fixture
def test_config(tmp_path: Path) -> Config:
    """Pytest fixture to create a valid Config dataclass object for testing."""
    config_dict = copy.deepcopy(FULL_CONFIG_DICT)
    config_dict["run"]["output_dir"] = str(tmp_path)
    return cast(Config, _from_dict(Config, config_dict))


@pytest.fixture
def sample_chart() -> ChartData:
    """Chart data from a seeded random walk, long enough for several crossovers."""
    np.random.seed(42)
    periods = 200
    dates = pd.date_range(start="2019-01-01", periods=periods, freq="D").strftime("%Y-%m-%d")
    closes = 100 + np.random.randn(periods).cumsum()
    rows = [{"Date": d, "Close": str(c)} for d, c in zip(dates, closes)]
    return build_chart_data(rows, ChartParams(window=20))


def test_transactions_frame(sample_chart: ChartData) -> None:
    df = transactions_frame(sample_chart.transactions)
    assert list(df.columns) == TRANSACTION_COLUMNS
    assert len(df) == len(sample_chart.transactions)
    assert list(df["Buy_Date"]) == [t.buy.date for t in sample_chart.transactions]
    assert list(df["Buy_Date"]) == sorted(df["Buy_Date"])


def test_transactions_frame_empty() -> None:
    df = transactions_frame([])
    assert df.empty
    assert list(df.columns) == TRANSACTION_COLUMNS


def test_render_transactions_table(sample_chart: ChartData) -> None:
    console = Console(record=True, width=120)
    render_transactions_table(sample_chart.transactions, console)
    text = console.export_text()
    assert "Buy_Date" in text
    assert sample_chart.transactions[0].buy.date in text


def test_render_empty_transactions_table() -> None:
    console = Console(record=True, width=120)
    render_transactions_table([], console)
    assert "No crossover transactions" in console.export_text()


def test_build_price_figure(sample_chart: ChartData) -> None:
    fig = build_price_figure(sample_chart.quotes, title="NIFTY")

    close_trace, sma_trace = fig.data
    assert close_trace.name == "Close"
    assert sma_trace.name == "SMA"
    assert len(close_trace.y) == 200
    # The warmup rows (sma == 0) are left off the SMA line.
    assert len(sma_trace.y) == 180
    assert fig.layout.xaxis.rangeslider.visible is True
    assert fig.layout.xaxis.title.text == "Date"
    assert fig.layout.yaxis.title.text == "Close"


def test_build_price_figure_mixed_date_formats() -> None:
    quotes = pd.DataFrame({
        "Date": ["2019-01-01", "Jan 2, 2019", "2019/01/03"],
        "Close": [10.0, 11.0, 12.0],
        "sma": [0.0, 10.0, 10.5],
    })
    close_trace, sma_trace = build_price_figure(quotes).data
    assert list(pd.to_datetime(close_trace.x)) == list(pd.date_range("2019-01-01", periods=3, freq="D"))
    assert len(sma_trace.x) == 2


def test_generate_all_reports(test_config: Config, sample_chart: ChartData, tmp_path: Path) -> None:
    """
    Tests that generate_all_reports creates the specified output files.
    """
    run_dir = tmp_path / "test_run_output"
    run_dir.mkdir()

    generate_all_reports(test_config, sample_chart, run_dir, Console())

    assert (run_dir / "transactions.csv").exists()
    assert (run_dir / "summary.json").exists()
    assert (run_dir / "summary.md").exists()
    assert (run_dir / "chart.html").exists()

    with (run_dir / "summary.json").open("r") as f:
        summary_data = json.load(f)

    assert summary_data["run_name"] == "test_reporting_run"
    assert summary_data["sma_params"] == {"window": 20, "offset": 0, "warmup_days": 20, "policy": "clamp"}
    assert summary_data["stats"]["quotes"] == 200
    assert summary_data["stats"]["transactions"] == len(sample_chart.transactions)
    assert len(summary_data["transactions"]) == len(sample_chart.transactions)

    ledger = pd.read_csv(run_dir / "transactions.csv")
    assert list(ledger.columns) == TRANSACTION_COLUMNS
    assert len(ledger) == len(sample_chart.transactions)

    assert "# SMA Crossover Summary: test_reporting_run" in (run_dir / "summary.md").read_text()


def test_generate_reports_respects_formats(sample_chart: ChartData, tmp_path: Path) -> None:
    config_dict = copy.deepcopy(FULL_CONFIG_DICT)
    config_dict["reporting"]["output_formats"] = ["json"]
    config_dict["reporting"]["generate_chart"] = False
    config = cast(Config, _from_dict(Config, config_dict))

    generate_all_reports(config, sample_chart, tmp_path, Console())

    assert (tmp_path / "summary.json").exists()
    assert not (tmp_path / "transactions.csv").exists()
    assert not (tmp_path / "summary.md").exists()
    assert not (tmp_path / "chart.html").exists()
