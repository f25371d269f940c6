"""
Scramble Utility Functions

This package contains helpers for:
- Applying and inspecting move lists
- Generating synthetic rosters
- Configuring the log sink
"""

from .helpers import apply_moves, final_team_counts, find_broken_squads, plan_to_dataframe
from .logging import configure_logging

__all__ = [
    "apply_moves",
    "final_team_counts",
    "find_broken_squads",
    "plan_to_dataframe",
    "configure_logging",
]
