#!/usr/bin/env python3
"""Team Scrambler CLI - plan, simulate and stress-test squad-preserving scrambles.

Rosters come from a JSON file (``{"players": [...], "squads": [...]}`` in
server format) or are generated on the fly.

Usage:
    # Plan a scramble for a generated 80-player roster
    uv run python scripts/scramble_cli.py plan --players 80 --seed 7

    # Plan against a captured roster and list every move
    uv run python scripts/scramble_cli.py plan --roster roster.json --show-moves

    # Apply a plan to a simulated server that rejects 20% of moves
    uv run python scripts/scramble_cli.py simulate --players 90 --failure-rate 0.2

    # Stress batch over the built-in scenarios
    uv run python scripts/scramble_cli.py stress --runs 10
"""

import asyncio
import json
import random
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from team_scrambler.adapters import InMemoryTeamControlRepository  # noqa: E402
from team_scrambler.config import config  # noqa: E402
from team_scrambler.config.utils import config_summary_lines  # noqa: E402
from team_scrambler.domain.models import ScramblePlan  # noqa: E402
from team_scrambler.domain.services import (  # noqa: E402
    DiagnosticsService,
    MoveExecutor,
    ScrambleCoordinator,
    ScramblePlanService,
    normalize_snapshot,
)
from team_scrambler.utils import configure_logging, plan_to_dataframe  # noqa: E402
from team_scrambler.utils.mock_roster import mock_roster  # noqa: E402

app = typer.Typer(help="Team Scrambler - squad-preserving team scrambles")
console = Console()


def _load_roster(
    roster: Optional[Path],
    players: int,
    team1_ratio: float,
    rng: random.Random,
) -> Tuple[List[Dict], List[Dict]]:
    if roster is None:
        return mock_roster(players, team1_ratio, rng=rng)
    if not roster.exists():
        console.print(f"[red]Error: roster file not found: {roster}[/red]")
        raise typer.Exit(1)
    data = json.loads(roster.read_text())
    return data.get("players", []), data.get("squads", [])


def _planner(seed: Optional[int]) -> ScramblePlanService:
    return ScramblePlanService(rng=random.Random(seed) if seed is not None else None)


def _print_plan(plan: ScramblePlan) -> None:
    table = Table(title="🔀 Scramble Plan", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    initial = plan.initial_team_sizes
    final = plan.final_team_sizes
    table.add_row("Initial sizes", f"{initial.get('1', 0)} / {initial.get('2', 0)}")
    table.add_row("Final sizes", f"{final.get('1', 0)} / {final.get('2', 0)}")
    table.add_row("Target moves", str(plan.target_moves))
    table.add_row("Planned moves", str(len(plan.moves)))
    table.add_row("Trim moves", str(plan.trimmed_moves))
    table.add_row("Anchor team", str(plan.anchor_team))
    table.add_row(
        "Best score",
        f"{plan.best_score:.2f}" if plan.best_score is not None else "-",
    )
    table.add_row(
        "Trials",
        f"{plan.trials_run} ({plan.best_trial_kind.value if plan.best_trial_kind else '-'})",
    )
    table.add_row("Broken squads", ", ".join(plan.broken_squads) or "-")
    table.add_row("Broken locked squads", ", ".join(plan.broken_locked_squads) or "-")
    overcap = "[red]YES[/red]" if plan.unresolved_overcap else "no"
    table.add_row("Over capacity", overcap)
    console.print(table)


@app.command()
def plan(
    roster: Optional[Path] = typer.Option(
        None, "--roster", "-r", help="JSON roster file (generated when omitted)"
    ),
    players: int = typer.Option(80, "--players", "-p", help="Generated roster size"),
    team1_ratio: float = typer.Option(
        0.5, "--team1-ratio", help="Share of generated players on Team 1"
    ),
    churn: Optional[float] = typer.Option(
        None, "--churn", "-c", help="Fraction of players to move (default from config)"
    ),
    capacity: Optional[int] = typer.Option(
        None, "--capacity", help="Per-team capacity (default from config)"
    ),
    anchor: Optional[int] = typer.Option(
        None, "--anchor", "-a", help="Team taking rounding ties (1 or 2)"
    ),
    seed: Optional[int] = typer.Option(None, "--seed", "-s", help="Random seed"),
    show_moves: bool = typer.Option(False, "--show-moves", help="List every move"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """Compute a scramble plan without applying it."""
    configure_logging(verbose=debug)
    rng = random.Random(seed)
    raw_players, raw_squads = _load_roster(roster, players, team1_ratio, rng)

    try:
        snapshot = normalize_snapshot(raw_players, raw_squads)
        result = _planner(seed).generate_plan(
            snapshot.players,
            snapshot.squads,
            anchor_team=anchor,
            churn_fraction=churn,
            capacity_per_team=capacity,
        )
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    _print_plan(result)

    if show_moves and result.moves:
        moves_df = plan_to_dataframe(snapshot, result.moves)
        table = Table(title="Moves", show_header=True)
        for column in moves_df.columns:
            table.add_column(column)
        for _, row in moves_df.iterrows():
            table.add_row(*[str(v) for v in row.tolist()])
        console.print(table)


@app.command()
def simulate(
    roster: Optional[Path] = typer.Option(
        None, "--roster", "-r", help="JSON roster file (generated when omitted)"
    ),
    players: int = typer.Option(80, "--players", "-p", help="Generated roster size"),
    team1_ratio: float = typer.Option(
        0.5, "--team1-ratio", help="Share of generated players on Team 1"
    ),
    failure_rate: float = typer.Option(
        0.1, "--failure-rate", "-f", help="Chance each set-team call is rejected"
    ),
    seed: Optional[int] = typer.Option(None, "--seed", "-s", help="Random seed"),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Plan and log the moves without executing them"
    ),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """Plan a scramble and execute it against a simulated server."""
    configure_logging(verbose=debug)
    rng = random.Random(seed)
    raw_players, raw_squads = _load_roster(roster, players, team1_ratio, rng)

    server = InMemoryTeamControlRepository(
        raw_players, failure_rate=failure_rate, rng=random.Random(seed)
    )
    coordinator = ScrambleCoordinator(_planner(seed), MoveExecutor(server))

    result = asyncio.run(
        coordinator.execute_scramble(raw_players, raw_squads, simulate=dry_run)
    )
    if result.is_failure:
        console.print(f"[red]Error: {result.error.message}[/red]")
        raise typer.Exit(1)

    outcome = result.value
    _print_plan(outcome.plan)

    summary = outcome.summary
    if summary is None:
        console.print("[yellow]No moves executed[/yellow]")
        return

    counts = server.team_counts()
    table = Table(title="🚚 Move Session", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Completed", f"{summary.completed_moves}/{summary.total_moves}")
    table.add_row("Failed", str(summary.failed_moves))
    table.add_row("Abandoned", str(summary.abandoned_moves))
    table.add_row("Success rate", f"{summary.success_rate:.1%}")
    table.add_row("Duration", f"{summary.duration_ms / 1000:.1f}s")
    table.add_row("Server sizes", f"{counts['1']} / {counts['2']}")
    console.print(table)
    if summary.needs_manual_intervention:
        console.print("[yellow]⚠️ Some moves did not complete; manual intervention may be needed[/yellow]")


@app.command()
def stress(
    runs: Optional[int] = typer.Option(
        None, "--runs", "-n", help="Runs per scenario (default from config)"
    ),
    seed: Optional[int] = typer.Option(None, "--seed", "-s", help="Random seed"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write per-run results to this CSV file"
    ),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """Run the planner over synthetic stress scenarios."""
    configure_logging(verbose=debug)
    diagnostics = DiagnosticsService(_planner(seed))
    results = diagnostics.run_stress_batch(runs=runs, rng=random.Random(seed))
    summary = diagnostics.summarize_stress_results(results)

    table = Table(title="📊 Stress Batch", show_header=True)
    for column in summary.columns:
        table.add_column(str(column))
    for _, row in summary.iterrows():
        table.add_row(*[str(v) for v in row.tolist()])
    console.print(table)

    if output is not None:
        results.to_csv(output, index=False)
        console.print(f"[green]✅ Results written to {output}[/green]")

    if not results.empty and not results["balanced"].all():
        console.print("[red]❌ Some runs ended with teams more than 2 apart[/red]")
        raise typer.Exit(1)


@app.command("config")
def show_config():
    """Print the active configuration."""
    for line in config_summary_lines(config):
        console.print(line)


if __name__ == "__main__":
    app()
