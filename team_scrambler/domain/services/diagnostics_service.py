"""Self-diagnostics for the scramble planner.

Two checks:
- A dry-run plan against the live roster (skipped on low population)
- A stress batch over synthetic rosters, reported as a DataFrame
"""

import random
import time
from typing import Callable, Dict, List, Optional, Tuple

import pandas as pd
from loguru import logger
from pydantic import BaseModel, Field

from team_scrambler.config import DiagnosticsConfig, config
from team_scrambler.domain.repositories.team_control_repository import (
    TeamControlRepository,
)
from team_scrambler.domain.services.snapshot_normalizer import normalize_snapshot
from team_scrambler.utils.helpers import final_team_counts, find_broken_squads
from team_scrambler.utils.mock_roster import (
    mock_roster,
    scenario_all_locked,
    scenario_david_goliath,
)

from .scramble_plan_service import ScramblePlanService

RosterFactory = Callable[[random.Random], Tuple[List[Dict], List[Dict]]]

STRESS_SCENARIOS: Dict[str, RosterFactory] = {
    "50/50 Balanced": lambda rng: mock_roster(80, 0.5, rng=rng),
    "45/55 Imbalanced": lambda rng: mock_roster(80, 0.45, rng=rng),
    "50/52 Slight Overcap": lambda rng: mock_roster(102, 0.49, rng=rng),
    "20/80 Severe Imbalance": lambda rng: mock_roster(80, 0.2, rng=rng),
    "Max Capacity (102 Players)": lambda rng: mock_roster(102, 0.6, rng=rng),
    "Absolute Packed (0% Unassigned)": lambda rng: mock_roster(80, 0.55, 0.0, rng=rng),
    "All Locked Squads": lambda rng: scenario_all_locked(100, 0.8),
    "David vs Goliath": lambda rng: scenario_david_goliath(),
}


class DiagnosticResult(BaseModel):
    """Outcome of one diagnostic check."""

    name: str
    passed: bool
    message: str
    details: Dict = Field(default_factory=dict)


class DiagnosticsService:
    """Runs planner health checks without touching the live server."""

    def __init__(
        self,
        planner: ScramblePlanService,
        diagnostics_config: Optional[DiagnosticsConfig] = None,
    ):
        self.planner = planner
        self.settings = diagnostics_config or config.diagnostics

    def run_live_plan_test(
        self, team_control: TeamControlRepository, squads: Optional[List] = None
    ) -> DiagnosticResult:
        """Plan (but never apply) a scramble for the current live roster."""
        name = "Live Scramble Test"
        try:
            players = team_control.current_roster()
            if len(players) < self.settings.min_players_for_live_test:
                return DiagnosticResult(
                    name=name,
                    passed=True,
                    message=f"SKIPPED (Low Pop: {len(players)} players)",
                )
            plan = self.planner.generate_plan(players, squads)
            return DiagnosticResult(
                name=name,
                passed=True,
                message=f"SUCCESS ({len(plan.moves)} moves calculated)",
                details={"final_team_sizes": plan.final_team_sizes},
            )
        except Exception as e:
            logger.warning(f"[Diagnostics] Scrambler test failed: {e}")
            return DiagnosticResult(name=name, passed=False, message=f"FAIL: {e}")

    def run_stress_batch(
        self,
        runs: Optional[int] = None,
        scenarios: Optional[Dict[str, RosterFactory]] = None,
        rng: Optional[random.Random] = None,
    ) -> pd.DataFrame:
        """
        Plan every stress scenario repeatedly and tabulate the results

        Args:
            runs: Repetitions per scenario (defaults to config)
            scenarios: Name -> roster factory (defaults to the built-in set)
            rng: Random source for roster generation

        Returns:
            One row per run: scenario, run, initial/final sizes, diff, moves,
            broken squad counts, overcap flag, duration_ms and a balanced flag
            (diff <= 2)
        """
        runs = runs or self.settings.stress_runs
        scenarios = scenarios or STRESS_SCENARIOS
        rng = rng or random.Random()

        rows = []
        for scenario_name, factory in scenarios.items():
            for run in range(1, runs + 1):
                players, squads = factory(rng)
                snapshot = normalize_snapshot(players, squads)
                started = time.perf_counter()
                plan = self.planner.generate_plan(snapshot.players, snapshot.squads)
                duration_ms = (time.perf_counter() - started) * 1000

                initial = snapshot.team_counts()
                final = final_team_counts(snapshot, plan.moves)
                diff = abs(final["1"] - final["2"])
                rows.append(
                    {
                        "scenario": scenario_name,
                        "run": run,
                        "initial": f"{initial['1']}/{initial['2']}",
                        "final": f"{final['1']}/{final['2']}",
                        "diff": diff,
                        "moves": len(plan.moves),
                        "broken_locked": len(find_broken_squads(snapshot, plan.moves, locked=True)),
                        "broken_unlocked": len(find_broken_squads(snapshot, plan.moves, locked=False)),
                        "unresolved_overcap": plan.unresolved_overcap,
                        "duration_ms": round(duration_ms, 2),
                        "balanced": diff <= 2,
                    }
                )

        results = pd.DataFrame(rows)
        if not results.empty:
            logger.info(
                f"📊 Stress batch: {len(results)} runs, "
                f"{results['balanced'].mean() * 100:.1f}% balanced, "
                f"{int((results['broken_locked'] > 0).sum())} with locked squad breaks"
            )
        return results

    @staticmethod
    def summarize_stress_results(results: pd.DataFrame) -> pd.DataFrame:
        """Per-scenario aggregates of a stress batch."""
        if results.empty:
            return pd.DataFrame()
        return (
            results.groupby("scenario", sort=False)
            .agg(
                runs=("run", "count"),
                balanced_pct=("balanced", lambda s: round(s.mean() * 100, 1)),
                max_diff=("diff", "max"),
                avg_moves=("moves", lambda s: round(s.mean(), 1)),
                locked_breaks=("broken_locked", "sum"),
                avg_duration_ms=("duration_ms", lambda s: round(s.mean(), 2)),
            )
            .reset_index()
        )
