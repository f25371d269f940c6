"""Scramble planning service.

Computes a list of player moves that shuffles roughly ``churn_fraction`` of a
match between its two teams while keeping squads together where possible:

- Snapshot normalization (camelCase server records accepted)
- Candidate pools of whole squads and unaffiliated players
- Stochastic swap search with whole-group, surgical and full-decomposition tiers
- Per-team capacity trimming

This is a thin facade that composes the planning mixins.
"""

import random
from typing import Dict, Iterable, List, Optional, Union

from loguru import logger

from team_scrambler.config import ScrambleConfig, config
from team_scrambler.domain.models.moves import MoveOrder, ScramblePlan
from team_scrambler.domain.models.roster import Player, Squad

from .scramble import CandidatePoolMixin, CapEnforcementMixin, SwapSearchMixin
from .snapshot_normalizer import normalize_snapshot


class ScramblePlanService(
    CandidatePoolMixin,
    SwapSearchMixin,
    CapEnforcementMixin,
):
    """Service generating squad-preserving scramble plans.

    This class composes all planning functionality through mixins:
    - CandidatePoolMixin: Pools of movable units, anchor team choice
    - SwapSearchMixin: Churn budgets, tiered selection, scored trial loop
    - CapEnforcementMixin: Move list assembly and capacity trimming
    """

    def __init__(
        self,
        scramble_config: Optional[ScrambleConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        """Initialize the planner.

        Args:
            scramble_config: Optional settings override (defaults to global config)
            rng: Random source; built from ``random_seed`` when omitted
        """
        self.settings = scramble_config or config.scramble
        self.rng = rng or random.Random(self.settings.random_seed)

    def generate_plan(
        self,
        players: Iterable[Union[Player, Dict]],
        squads: Optional[Iterable[Union[Squad, Dict]]] = None,
        anchor_team: Optional[Union[int, str]] = None,
        churn_fraction: Optional[float] = None,
        capacity_per_team: Optional[int] = None,
    ) -> ScramblePlan:
        """Build a scramble plan for one roster snapshot.

        Args:
            players: Connected players (models or raw server dicts)
            squads: Squads on the server
            anchor_team: Team taking rounding ties; random when None or invalid
            churn_fraction: Fraction of all players to move (defaults to config)
            capacity_per_team: Hard per-team cap (defaults to config)

        Returns:
            ScramblePlan. ``moves`` is empty when there is nobody to move or no
            conflict-free selection exists. ``unresolved_overcap`` is set when
            trimming could not bring both teams under the cap.

        Raises:
            pydantic.ValidationError, ValueError: Malformed snapshot
        """
        fraction = self.settings.churn_fraction if churn_fraction is None else churn_fraction
        if not 0.0 <= fraction <= 1.0:
            raise ValueError(f"churn_fraction must be within [0, 1], got {fraction}")
        capacity = (
            self.settings.capacity_per_team if capacity_per_team is None else capacity_per_team
        )
        if capacity < 1:
            raise ValueError(f"capacity_per_team must be positive, got {capacity}")

        snapshot = normalize_snapshot(players, squads)
        team_counts = snapshot.team_counts()
        anchor = self.resolve_anchor_team(anchor_team, self.rng)
        target = self.compute_churn_target(snapshot.total_players, fraction)

        logger.info(
            f"🔀 Scramble requested: {snapshot.total_players} players "
            f"(Team1 = {team_counts['1']}, Team2 = {team_counts['2']}), "
            f"target {target} moves, cap {capacity}"
        )

        plan = ScramblePlan(
            initial_team_sizes=team_counts,
            final_team_sizes=dict(team_counts),
            target_moves=target,
            anchor_team=anchor,
            capacity_per_team=capacity,
        )
        if snapshot.total_players == 0:
            logger.info("Nothing to scramble: roster is empty")
            return plan

        pools = self.build_candidate_pools(snapshot)
        result = self.run_swap_search(pools, team_counts, target, capacity, anchor, self.rng)
        if result is None:
            logger.error("❌ Swap search produced no usable selection; returning empty plan")
            return plan

        tentative = self.build_tentative_moves(result.from_team1, result.from_team2)
        if tentative is None:
            logger.error("❌ Final selection conflicts; returning empty plan")
            return plan.model_copy(
                update={"best_score": result.score, "trials_run": result.trials_run}
            )

        moves, trimmed, unresolved = self.enforce_capacity(snapshot, tentative, capacity)
        final_sizes = self.project_team_counts(snapshot, moves)

        plan = plan.model_copy(
            update={
                "moves": [MoveOrder(player_id=pid, target_team_id=t) for pid, t in moves.items()],
                "final_team_sizes": final_sizes,
                "best_score": result.score,
                "trials_run": result.trials_run,
                "best_trial_kind": result.trial_kind,
                "broken_squads": result.broken_squads,
                "broken_locked_squads": result.broken_locked_squads,
                "trimmed_moves": trimmed,
                "unresolved_overcap": unresolved,
            }
        )

        logger.info(
            f"✅ Plan: {len(plan.moves)} moves (T1->T2 = {result.players_from_team1}, "
            f"T2->T1 = {result.players_from_team2}, trimmed = {trimmed}), "
            f"sizes {final_sizes['1']}/{final_sizes['2']}, "
            f"score {result.score:.2f} at trial {result.best_trial}/{result.trials_run} "
            f"({result.trial_kind.value})"
        )
        if result.broken_locked_squads:
            logger.warning(
                f"⚠️ Plan splits locked squad(s): {', '.join(result.broken_locked_squads)}"
            )
        return plan

    def scramble_teams_preserving_squads(
        self,
        players: Iterable[Union[Player, Dict]],
        squads: Optional[Iterable[Union[Squad, Dict]]] = None,
        anchor_team: Optional[Union[int, str]] = None,
        churn_fraction: Optional[float] = None,
        capacity_per_team: Optional[int] = None,
    ) -> List[MoveOrder]:
        """Plain move list form of ``generate_plan``."""
        return self.generate_plan(
            players,
            squads,
            anchor_team=anchor_team,
            churn_fraction=churn_fraction,
            capacity_per_team=capacity_per_team,
        ).moves
