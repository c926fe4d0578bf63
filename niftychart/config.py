"""
Configuration loading and validation for the niftychart application.

This module uses standard library dataclasses for configuration objects.
Validation is done by explicit, pure functions on the raw YAML dictionary
before any object is constructed.
"""

import yaml
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import List, Literal, Dict, Any, Optional, Type, cast

__all__ = ["load_config", "Config"]

SMA_POLICIES = ("clamp", "strict")
OUTPUT_FORMATS = ("csv", "json", "markdown")


# §1. Nested Configuration Dataclasses
# --------------------------------------------------------------------------------------


@dataclass(frozen=True)
class RunConfig:
    name: str
    output_dir: Path


@dataclass(frozen=True)
class DataConfig:
    symbol: str
    csv_path: Path
    start_date: date
    end_date: date
    drop_incomplete: bool = False


@dataclass(frozen=True)
class SmaConfig:
    window: int = 100
    offset: int = 0
    warmup_days: Optional[int] = None
    policy: Literal["clamp", "strict"] = "clamp"


@dataclass(frozen=True)
class ReportingConfig:
    output_formats: List[Literal["json", "markdown", "csv"]]
    generate_chart: bool = True
    chart_title: str = "NIFTY 50"


# §2. Top-Level Configuration
# --------------------------------------------------------------------------------------


@dataclass(frozen=True)
class Config:
    """The root configuration object, composing all nested sections."""
    run: RunConfig
    data: DataConfig
    sma: SmaConfig
    reporting: ReportingConfig


# §3. Validation and Loading
# --------------------------------------------------------------------------------------


def _from_dict(data_class: Type[Any], data: Any) -> Any:
    """Recursively creates nested dataclasses from a dictionary."""
    if isinstance(data, dict) and hasattr(data_class, "__dataclass_fields__"):
        field_types = {f.name: f.type for f in data_class.__dataclass_fields__.values()}

        kwargs = {}
        for k, v in data.items():
            field_type = field_types.get(k)
            # Unknown keys are passed through; the dataclass constructor
            # raises a TypeError for them, which the caller handles.
            kwargs[k] = _from_dict(field_type, v) if field_type else v
        return data_class(**kwargs)

    # Convert date strings to date objects
    if isinstance(data, str) and data_class is date:
        return date.fromisoformat(data)
    # Convert path strings to Path objects
    if isinstance(data, str) and data_class is Path:
        return Path(data)
    return data


def _as_date(value: Any) -> date:
    # PyYAML already turns unquoted ISO dates into date objects.
    return value if isinstance(value, date) else date.fromisoformat(str(value))


def _is_int(value: Any) -> bool:
    # bool is an int subclass; YAML "true" is not a window length.
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_config(cfg: Dict[str, Any]) -> None:
    """
    Performs simple, explicit validation checks on the raw config dictionary.
    Fail fast on any logical inconsistencies.
    """
    if not isinstance(cfg, dict):
        raise ValueError("Configuration must be a YAML object.")

    for section in ("run", "data", "sma", "reporting"):
        if not isinstance(cfg.get(section), dict):
            raise ValueError(f"Configuration section '{section}' is missing.")

    data_start = _as_date(cfg["data"]["start_date"])
    data_end = _as_date(cfg["data"]["end_date"])
    if data_end <= data_start:
        raise ValueError("data.end_date must be after data.start_date")

    sma_cfg = cfg["sma"]
    window = sma_cfg.get("window", 100)
    if not _is_int(window) or window <= 0:
        raise ValueError(f"sma.window must be a positive integer, got {window!r}.")

    offset = sma_cfg.get("offset", 0)
    if not _is_int(offset):
        raise ValueError(f"sma.offset must be an integer, got {offset!r}.")

    warmup = sma_cfg.get("warmup_days")
    if warmup is not None and (not _is_int(warmup) or warmup <= 0):
        raise ValueError(f"sma.warmup_days must be a positive integer or null, got {warmup!r}.")

    if sma_cfg.get("policy", "clamp") not in SMA_POLICIES:
        raise ValueError(f"sma.policy must be one of {', '.join(SMA_POLICIES)}.")

    unknown = set(cfg["reporting"].get("output_formats", [])) - set(OUTPUT_FORMATS)
    if unknown:
        raise ValueError(f"Unknown reporting.output_formats: {sorted(unknown)}")


# impure
def load_config(config_path: Path) -> Config:
    """
    Loads and validates a YAML configuration file into a Config object.
    #impure: Reads from the filesystem.
    """
    if not config_path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in {config_path}: {e}") from e

    try:
        _validate_config(raw_config)
        # _from_dict is too dynamic for mypy to track types.
        return cast(Config, _from_dict(Config, raw_config))
    except (TypeError, KeyError) as e:
        raise ValueError(f"Configuration validation failed: missing or invalid key. Details: {e}") from e
