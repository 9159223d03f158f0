"""Core shared logic for indicators, strategies, and models.

This package contains pure business logic with no I/O dependencies
(no files, database, or network access). The backtesting system
(backtest/) builds on it.
"""
