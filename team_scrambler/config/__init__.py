"""
Team Scrambler Configuration Module

Provides centralized configuration management for the entire package.
Import the global config instance to access all configuration values.

Usage:
    from team_scrambler.config import config

    # Planner settings
    cap = config.scramble.capacity_per_team

    # Executor settings
    interval = config.executor.retry_interval_ms
"""

from .settings import (
    TeamScramblerConfig,
    ScrambleConfig,
    ExecutorConfig,
    DiagnosticsConfig,
    LoggingConfig,
    MIN_RETRY_INTERVAL_MS,
    MIN_SESSION_DURATION_MS,
    config,
    load_config,
)

__all__ = [
    "TeamScramblerConfig",
    "ScrambleConfig",
    "ExecutorConfig",
    "DiagnosticsConfig",
    "LoggingConfig",
    "MIN_RETRY_INTERVAL_MS",
    "MIN_SESSION_DURATION_MS",
    "config",
    "load_config",
]
