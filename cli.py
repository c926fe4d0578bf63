"""
CLI entry point for the niftychart application.
"""
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from niftychart.config import Config, load_config
from niftychart.data import fetch_quotes_csv, read_quotes_csv
from niftychart.pipeline import (
    ChartParams,
    PipelineError,
    build_chart_data,
    filter_date_range,
    transactions_in_range,
)
from niftychart.reporting import generate_all_reports, render_transactions_table

# Console is created once and passed down.
# Log to stderr to separate from potential data output to stdout.
app = typer.Typer(pretty_exceptions_show_locals=False, help="NIFTY price chart with SMA crossover transactions.")
console = Console(stderr=True)

CONFIG_OPTION = typer.Option(..., "--config", "-c", help="Path to the YAML configuration file.", exists=True)


def _load_config_or_exit(config_path: Path) -> Config:
    """Helper to load config and exit on failure."""
    try:
        return load_config(config_path)
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[bold red]Configuration Error:[/bold red] {e}")
        raise typer.Exit(code=1)


def _params(
    config: Config, window: Optional[int], offset: Optional[int], warmup: Optional[int]
) -> ChartParams:
    """Config values, with any command-line overrides applied."""
    base = ChartParams.from_config(config)
    return ChartParams(
        window=base.window if window is None else window,
        offset=base.offset if offset is None else offset,
        warmup_days=base.warmup_days if warmup is None else warmup,
        policy=base.policy,
    )


@app.command()
def run(
    config_path: Path = CONFIG_OPTION,
    window: Optional[int] = typer.Option(None, "--window", "-w", help="SMA period (overrides config)."),
    offset: Optional[int] = typer.Option(None, "--offset", "-o", help="SMA offset (overrides config)."),
    warmup: Optional[int] = typer.Option(None, "--warmup", help="First index scanned for crossovers."),
):
    """Build the SMA chart and crossover transactions, then write reports."""
    config = _load_config_or_exit(config_path)
    params = _params(config, window, offset, warmup)

    try:
        console.rule("[bold]1. Loading Quotes[/bold]")
        raw_rows = read_quotes_csv(config.data.csv_path)
        console.print(f"Read {len(raw_rows)} rows from [cyan]{config.data.csv_path}[/cyan]")

        console.rule("[bold]2. Computing SMA and Transactions[/bold]")
        console.print(f"Using params: window={params.window}, offset={params.offset}, warmup={params.warmup}")
        chart = build_chart_data(raw_rows, params, drop_incomplete=config.data.drop_incomplete)
        render_transactions_table(chart.transactions, console)
    except (ValueError, FileNotFoundError) as e:
        # Nothing is rendered when the core fails.
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)

    console.rule("[bold]3. Generating Reports[/bold]")
    run_dir = Path(config.run.output_dir)
    try:
        run_dir.mkdir(parents=True, exist_ok=True)
        console.print(f"Run artifacts will be saved to: [cyan]{run_dir}[/cyan]")
        generate_all_reports(config, chart, run_dir, console)
    except (OSError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] Could not write reports to {run_dir}: {e}")
        raise typer.Exit(code=1)

    console.print("[bold green]Run command finished.[/bold green]")


@app.command()
def transactions(
    config_path: Path = CONFIG_OPTION,
    start: Optional[str] = typer.Option(None, "--start", help="First date of the range (YYYY-MM-DD)."),
    end: Optional[str] = typer.Option(None, "--end", help="Last date of the range (YYYY-MM-DD)."),
    window: Optional[int] = typer.Option(None, "--window", "-w", help="SMA period (overrides config)."),
    offset: Optional[int] = typer.Option(None, "--offset", "-o", help="SMA offset (overrides config)."),
    warmup: Optional[int] = typer.Option(None, "--warmup", help="First index scanned for crossovers."),
):
    """
    Print the crossover transactions bought within a date range.
    """
    config = _load_config_or_exit(config_path)
    params = _params(config, window, offset, warmup)

    try:
        raw_rows = read_quotes_csv(config.data.csv_path)
        chart = build_chart_data(raw_rows, params, drop_incomplete=config.data.drop_incomplete)
        visible = filter_date_range(chart.quotes, start, end)
        selected = transactions_in_range(chart.transactions, start, end)
    except (ValueError, FileNotFoundError, PipelineError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)

    if visible.empty:
        console.print("[yellow]No quotes in the selected range.[/yellow]")
    else:
        console.print(f"Range: {visible['Date'].iloc[0]} <-> {visible['Date'].iloc[-1]}")
    render_transactions_table(selected, console)


@app.command(name="refresh-data")
def refresh_data(config_path: Path = CONFIG_OPTION):
    """
    Download daily quotes for the configured symbol into the CSV file.
    """
    config = _load_config_or_exit(config_path)
    console.print(f"Starting data refresh for {config.data.symbol}...")

    try:
        fetch_quotes_csv(
            config.data.symbol,
            config.data.start_date,
            config.data.end_date,
            config.data.csv_path,
            console,
        )
    except Exception as e:
        console.print(f"[bold red]Failed to fetch data for {config.data.symbol}:[/bold red] {e}")
        raise typer.Exit(code=1)

    console.print("[bold green]Data refresh completed.[/bold green]")


if __name__ == "__main__":
    app()
