"""Backtest-specific configuration.

Loaded from ``BACKTEST_*`` environment variables (or a ``.env`` file).
Every value can still be passed explicitly to the engine and runner.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BacktestSettings(BaseSettings):
    """Backtest configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BACKTEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Portfolio
    initial_capital: float = Field(default=100_000.0, gt=0.0)
    commission_rate: float = Field(default=0.001, ge=0.0, lt=1.0)

    # Statistics
    risk_free_rate: float = 0.03
    trading_days_per_year: int = Field(default=252, gt=0)

    # Batch / optimisation
    max_workers: int | None = None  # None = CPU count
    use_processes: bool = True
    max_combinations: int = Field(default=50, gt=0)

    # Bars between DEBUG progress log lines
    progress_log_interval: int = Field(default=1000, gt=0)


_settings: BacktestSettings | None = None


def get_backtest_settings() -> BacktestSettings:
    """Get cached backtest settings instance."""
    global _settings
    if _settings is None:
        _settings = BacktestSettings()
    return _settings
