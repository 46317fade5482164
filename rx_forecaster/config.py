"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``     : committed static defaults
  2. ``config/local.toml``       : optional local overrides (gitignored)
  3. ``.env``                    : local secrets and env overrides (gitignored)
  4. Environment variables       : ``RX_FORECASTER_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The forecasting pipeline and every CLI command receive an ``AppConfig``
instance, never raw dicts or individual env var lookups scattered through
the codebase. Every field has a default, so ``AppConfig()`` is a valid
configuration for tests and library callers.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite settings for the local stock + ledger store."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/rx_forecaster.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class DataConfig(BaseModel):
    """Filesystem paths for imports, profiles, and report output."""

    model_config = ConfigDict(frozen=True)

    raw_dir: str = "data/raw"
    output_dir: str = "data/outputs"
    seasonal_profile_file: str = ""      # empty → built-in profile
    market_trends_file: str = ""         # empty → built-in market fixture


class HistoryConfig(BaseModel):
    """Sales-history extraction parameters."""

    model_config = ConfigDict(frozen=True)

    window_days: int = 365
    bucket_days: int = 7
    fetch_timeout_s: float = 30.0

    @field_validator("window_days", "bucket_days")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"must be >= 1, got {v}.")
        return v

    @field_validator("fetch_timeout_s")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"fetch_timeout_s must be > 0, got {v}.")
        return v


class EnsembleConfig(BaseModel):
    """Weights and parameters for the three demand estimators."""

    model_config = ConfigDict(frozen=True)

    trend_weight: float = 0.3
    smoothing_weight: float = 0.4
    cyclical_weight: float = 0.3
    smoothing_alpha: float = 0.3
    smoothing_growth: float = 0.05
    cycle_length: int = 4
    default_forecast: int = 10
    trend_min_obs: int = 4
    smoothing_min_obs: int = 3
    cyclical_min_obs: int = 12
    fallback_weight_factor: float = 1.0

    @field_validator("smoothing_alpha")
    @classmethod
    def validate_alpha(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError(f"smoothing_alpha must be in (0.0, 1.0], got {v}.")
        return v

    @field_validator("fallback_weight_factor")
    @classmethod
    def validate_fallback_factor(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"fallback_weight_factor must be in [0.0, 1.0], got {v}.")
        return v

    @model_validator(mode="after")
    def validate_weights(self) -> "EnsembleConfig":
        weights = (self.trend_weight, self.smoothing_weight, self.cyclical_weight)
        if any(w < 0 for w in weights) or sum(weights) <= 0:
            raise ValueError(
                f"Estimator weights must be non-negative with a positive sum, got {weights}."
            )
        return self


class EnvironmentConfig(BaseModel):
    """Bounds on the seasonal / weather adjustment."""

    model_config = ConfigDict(frozen=True)

    weather_min: float = 0.5
    weather_max: float = 2.0
    peak_season_cutoff: float = 1.2

    @model_validator(mode="after")
    def validate_bounds(self) -> "EnvironmentConfig":
        if not 0.0 < self.weather_min <= self.weather_max:
            raise ValueError(
                f"Require 0 < weather_min <= weather_max, got "
                f"{self.weather_min} / {self.weather_max}."
            )
        return self


class RiskConfig(BaseModel):
    """Thresholds for stocking actions, risk factors and confidence scoring."""

    model_config = ConfigDict(frozen=True)

    increase_ratio: float = 1.5
    reduce_ratio: float = 0.5
    high_demand_ratio: float = 2.0
    high_growth_cutoff_pct: float = 20.0
    expiry_window_days: int = 90
    confidence_base: float = 50.0
    confidence_per_obs: float = 2.0
    confidence_data_cap: float = 30.0
    confidence_moderation_bonus: float = 20.0
    moderate_band_low: float = 0.8
    moderate_band_high: float = 1.5
    trend_increasing_above: float = 1.3
    trend_decreasing_below: float = 0.8
    cyclical_margin: float = 0.3
    recent_window: int = 4


class AggregationConfig(BaseModel):
    """Result aggregation and dashboard summary settings."""

    model_config = ConfigDict(frozen=True)

    high_confidence_above: float = 80.0
    top_n: int = 5
    max_workers: int = 1


class StoreConfig(BaseModel):
    """Hosted data-store (PostgREST-style) connection settings.

    The API key is never read from TOML; it comes from
    ``RX_FORECASTER_STORE_KEY`` in ``.env`` or the environment.
    """

    model_config = ConfigDict(frozen=True)

    base_url: str = ""
    api_key: Optional[str] = None
    timeout_s: float = 30.0
    stock_table: str = "stock"
    invoice_table: str = "invoices"


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/rx_forecaster.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration, the single source of truth.

    Constructed by ``load_config()`` which merges TOML + .env; tests build
    it directly with ``AppConfig()`` or ``AppConfig(ensemble=...)``.
    """

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    data: DataConfig = DataConfig()
    history: HistoryConfig = HistoryConfig()
    ensemble: EnsembleConfig = EnsembleConfig()
    environment: EnvironmentConfig = EnvironmentConfig()
    risk: RiskConfig = RiskConfig()
    aggregation: AggregationConfig = AggregationConfig()
    store: StoreConfig = StoreConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config explicitly."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    # 3. Apply RX_FORECASTER_* environment variable overrides
    raw = _apply_env_overrides(raw)

    # 4. Build and validate AppConfig
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply RX_FORECASTER_* env vars to the raw config dict.

    Supported overrides:
      RX_FORECASTER_DB_PATH         → raw["database"]["db_path"]
      RX_FORECASTER_LOG_LEVEL       → raw["logging"]["level"]
      RX_FORECASTER_STORE_URL       → raw["store"]["base_url"]
      RX_FORECASTER_STORE_KEY       → raw["store"]["api_key"]
      RX_FORECASTER_FETCH_TIMEOUT_S → raw["history"]["fetch_timeout_s"]
      RX_FORECASTER_DEBUG           → raw["debug"]
    """
    if db_path := os.environ.get("RX_FORECASTER_DB_PATH"):
        raw.setdefault("database", {})["db_path"] = db_path

    if log_level := os.environ.get("RX_FORECASTER_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if store_url := os.environ.get("RX_FORECASTER_STORE_URL"):
        raw.setdefault("store", {})["base_url"] = store_url

    if store_key := os.environ.get("RX_FORECASTER_STORE_KEY"):
        raw.setdefault("store", {})["api_key"] = store_key

    if timeout := os.environ.get("RX_FORECASTER_FETCH_TIMEOUT_S"):
        raw.setdefault("history", {})["fetch_timeout_s"] = float(timeout)

    if debug := os.environ.get("RX_FORECASTER_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        database=DatabaseConfig(**raw.get("database", {})),
        data=DataConfig(**raw.get("data", {})),
        history=HistoryConfig(**raw.get("history", {})),
        ensemble=EnsembleConfig(**raw.get("ensemble", {})),
        environment=EnvironmentConfig(**raw.get("environment", {})),
        risk=RiskConfig(**raw.get("risk", {})),
        aggregation=AggregationConfig(**raw.get("aggregation", {})),
        store=StoreConfig(**raw.get("store", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
