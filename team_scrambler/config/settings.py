"""
Global Configuration System for Team Scrambler

Centralized configuration management for the planner, the move executor and
the diagnostics suite. Provides type-safe configuration with validation and
environment variable support.
"""

import json
import os
from pathlib import Path
from typing import Dict, Optional

from loguru import logger
from pydantic import BaseModel, Field, field_validator, model_validator

# Authoritative lower bounds for executor timing. Values below these are
# clamped (with a warning) rather than rejected.
MIN_RETRY_INTERVAL_MS = 200
MIN_SESSION_DURATION_MS = 5000


class ScrambleConfig(BaseModel):
    """Plan Generator Configuration"""

    churn_fraction: float = Field(
        default=0.5,
        description="Fraction of all players to relocate in one scramble",
        ge=0.0,
        le=1.0,
    )
    capacity_per_team: int = Field(
        default=50, description="Maximum allowed players on one team", ge=1, le=500
    )

    # Trial schedule
    max_trials: int = Field(
        default=121,
        description="Trial budget; the last trial is the full-decomposition fallback",
        ge=2,
        le=5000,
    )
    whole_group_trials: int = Field(
        default=30,
        description="Trials that only ever select whole groups",
        ge=0,
        le=5000,
    )
    good_enough_score: float = Field(
        default=5.0, description="Stop early once the best score is at or below this", ge=0.0
    )
    split_trigger_score: float = Field(
        default=10.0,
        description="Surgical splitting only runs while the best score is above this",
        ge=0.0,
    )
    target_jitter: int = Field(
        default=2, description="Per-trial +/- jitter on each side's move budget", ge=0, le=10
    )
    max_overshoot: int = Field(
        default=3, description="Players a single group may overshoot the budget by", ge=0, le=20
    )

    # Scoring weights
    churn_weight: float = Field(default=2.0, description="Weight on |moved - target|", ge=0.0)
    balance_weight: float = Field(
        default=50.0, description="Weight on final team size difference", ge=0.0
    )
    overcap_penalty: float = Field(
        default=10000.0, description="Penalty per player above the cap, per team", ge=0.0
    )
    underpopulation_penalty: float = Field(
        default=50.0, description="Fixed penalty when a team falls well below half", ge=0.0
    )
    underpopulation_margin: int = Field(
        default=5, description="Players below ideal half before underpopulation applies", ge=0
    )
    locked_split_penalty: float = Field(
        default=500.0, description="Penalty per broken locked squad", ge=0.0
    )
    cohesion_split_penalty: float = Field(
        default=25.0, description="Penalty per broken unlocked squad", ge=0.0
    )
    churn_shortfall_penalty: float = Field(
        default=100.0,
        description="Penalty when fewer than half of a >10 player churn target is moved",
        ge=0.0,
    )

    announcement_delay_ms: int = Field(
        default=10000,
        description="Countdown between scheduling a live scramble and running it",
        ge=0,
    )

    random_seed: Optional[int] = Field(
        default=None,
        description="Random seed for reproducible plans (None = different plans each run)",
    )

    @model_validator(mode="after")
    def validate_trial_schedule(self):
        if self.whole_group_trials >= self.max_trials:
            raise ValueError("whole_group_trials must be smaller than max_trials")
        return self


class ExecutorConfig(BaseModel):
    """Move Executor Configuration"""

    retry_interval_ms: int = Field(
        default=200, description="Interval between retry ticks (ms)"
    )
    max_session_duration_ms: int = Field(
        default=15000, description="Hard upper bound on one scramble session (ms)"
    )
    max_attempts_per_move: int = Field(
        default=5, description="Set-team attempts before a move is abandoned", ge=1, le=50
    )
    warn_on_move: bool = Field(
        default=True, description="Send a warning to each player after they are moved"
    )
    move_warning_message: str = Field(
        default="You have been moved to balance the teams. Thanks for understanding!",
        description="Message sent to moved players when warn_on_move is enabled",
        min_length=1,
    )
    drain_poll_interval_ms: int = Field(
        default=100, description="Poll interval used while waiting for a drain", ge=10
    )

    @field_validator("retry_interval_ms")
    @classmethod
    def clamp_retry_interval(cls, v: int) -> int:
        if v < MIN_RETRY_INTERVAL_MS:
            logger.warning(
                f"retry_interval_ms ({v}ms) too low. Enforcing minimum {MIN_RETRY_INTERVAL_MS}ms."
            )
            return MIN_RETRY_INTERVAL_MS
        return v

    @field_validator("max_session_duration_ms")
    @classmethod
    def clamp_session_duration(cls, v: int) -> int:
        if v < MIN_SESSION_DURATION_MS:
            logger.warning(
                f"max_session_duration_ms ({v}ms) too low. Enforcing minimum {MIN_SESSION_DURATION_MS}ms."
            )
            return MIN_SESSION_DURATION_MS
        return v


class DiagnosticsConfig(BaseModel):
    """Self-test and stress batch Configuration"""

    min_players_for_live_test: int = Field(
        default=10,
        description="Live planner self-test is skipped below this population",
        ge=0,
    )
    stress_runs: int = Field(
        default=5, description="Repetitions of each stress scenario", ge=1, le=200
    )


class LoggingConfig(BaseModel):
    """Logging Configuration"""

    level: str = Field(default="INFO", description="Minimum log level for the stderr sink")
    debug_logs: bool = Field(
        default=False, description="Emit per-trial and per-move debug messages"
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]:
            raise ValueError(f"Unknown log level: {v}")
        return v


class TeamScramblerConfig(BaseModel):
    """Root configuration object"""

    scramble: ScrambleConfig = Field(
        default_factory=ScrambleConfig, description="Plan Generator Configuration"
    )
    executor: ExecutorConfig = Field(
        default_factory=ExecutorConfig, description="Move Executor Configuration"
    )
    diagnostics: DiagnosticsConfig = Field(
        default_factory=DiagnosticsConfig, description="Diagnostics Configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging Configuration"
    )


def _coerce_env_value(value: str):
    """Convert an environment string to bool/int/float where it looks like one."""
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    if value.isdigit() or (value.startswith("-") and value[1:].isdigit()):
        return int(value)
    if "." in value:
        try:
            return float(value)
        except ValueError:
            return value
    return value


def load_config(
    config_path: Optional[Path] = None, config_data: Optional[Dict] = None
) -> TeamScramblerConfig:
    """
    Load configuration with environment variable overrides and optional config file

    Args:
        config_path: Optional path to a JSON configuration file
        config_data: Optional dictionary of configuration data

    Environment variables can override any config value using the pattern:
    SCRAMBLE_{SECTION}_{FIELD} = value

    Example: SCRAMBLE_EXECUTOR_RETRY_INTERVAL_MS=750
    """
    config_dict: Dict = {}

    if config_path and config_path.exists():
        try:
            with open(config_path, "r") as f:
                if config_path.suffix.lower() == ".json":
                    config_dict = json.load(f)
        except Exception as e:
            logger.warning(f"⚠️ Failed to load config file {config_path}: {e}")

    if config_data:
        for section, fields in config_data.items():
            if isinstance(fields, dict):
                config_dict.setdefault(section, {}).update(fields)
            else:
                config_dict[section] = fields

    sections = set(TeamScramblerConfig.model_fields)
    env_overrides: Dict[str, Dict] = {}
    for env_var, value in os.environ.items():
        if not env_var.startswith("SCRAMBLE_"):
            continue
        remainder = env_var[len("SCRAMBLE_") :].lower()
        section, _, field = remainder.partition("_")
        if section in sections and field:
            env_overrides.setdefault(section, {})[field] = _coerce_env_value(value)

    for section, fields in env_overrides.items():
        config_dict.setdefault(section, {}).update(fields)

    try:
        return TeamScramblerConfig(**config_dict)
    except Exception as e:
        logger.warning(f"⚠️ Configuration validation failed: {e}")
        logger.warning("Using default configuration...")
        return TeamScramblerConfig()


# Global configuration instance
config = load_config()
