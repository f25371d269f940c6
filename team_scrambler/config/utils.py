"""
Configuration Utilities

Helper functions for managing scrambler configuration: validation, export,
comparison and a one-screen summary used by the CLI.
"""

import json
from pathlib import Path
from typing import Any, Dict, List

from loguru import logger

from .settings import TeamScramblerConfig


def export_config_to_json(config: TeamScramblerConfig, output_path: Path) -> None:
    """
    Export configuration to JSON file

    Args:
        config: TeamScramblerConfig instance to export
        output_path: Path where to save the JSON file
    """
    with open(output_path, "w") as f:
        json.dump(config.model_dump(), f, indent=2, default=str)

    logger.info(f"✅ Configuration exported to {output_path}")


def validate_config_file(config_path: Path) -> List[str]:
    """
    Validate a configuration file and return any issues

    load_config() falls back to defaults on invalid input, so the file is
    validated directly against the model here.

    Returns:
        List of validation messages (empty if valid)
    """
    try:
        with open(config_path, "r") as f:
            TeamScramblerConfig(**json.load(f))
        return []
    except Exception as e:
        return [f"Configuration validation failed: {str(e)}"]


def compare_configs(
    config1: TeamScramblerConfig, config2: TeamScramblerConfig
) -> Dict[str, Any]:
    """
    Compare two configurations and return differences keyed by dotted path
    """
    differences = {}

    def compare_dicts(d1, d2, path=""):
        for key in set(d1.keys()) | set(d2.keys()):
            current_path = f"{path}.{key}" if path else key

            if key not in d1:
                differences[current_path] = {"config1": "<missing>", "config2": d2[key]}
            elif key not in d2:
                differences[current_path] = {"config1": d1[key], "config2": "<missing>"}
            elif isinstance(d1[key], dict) and isinstance(d2[key], dict):
                compare_dicts(d1[key], d2[key], current_path)
            elif d1[key] != d2[key]:
                differences[current_path] = {"config1": d1[key], "config2": d2[key]}

    compare_dicts(config1.model_dump(), config2.model_dump())
    return differences


def config_summary_lines(config: TeamScramblerConfig) -> List[str]:
    """Human-readable summary of the settings that matter during a scramble."""
    scramble = config.scramble
    executor = config.executor
    return [
        "🔀 Planner:",
        f"  • Churn: {scramble.churn_fraction:.0%} of players",
        f"  • Capacity: {scramble.capacity_per_team} per team",
        f"  • Trials: {scramble.max_trials} ({scramble.whole_group_trials} whole-group only)",
        f"  • Seed: {scramble.random_seed if scramble.random_seed is not None else 'random'}",
        "🚚 Executor:",
        f"  • Retry interval: {executor.retry_interval_ms}ms",
        f"  • Session timeout: {executor.max_session_duration_ms}ms",
        f"  • Attempts per move: {executor.max_attempts_per_move}",
        f"  • Warn moved players: {'On' if executor.warn_on_move else 'Off'}",
    ]
