"""Stochastic swap search for squad-preserving team scrambles.

The search runs many randomized trials. Each trial reshuffles both candidate
pools, draws a jittered move budget per side, greedily picks units on each
side and scores the resulting swap; the lowest score wins.

Fallback tiers across the trial budget:
- Early trials only ever move whole squads.
- Middle trials (while the best score is still poor) decompose exactly one
  random unlocked squad into individual split units before selecting.
- The final trial decomposes every squad, locked ones included, and aims the
  per-side budgets at exact parity.
"""

import math
import random
from collections import Counter
from typing import Any, Dict, List, Optional, Set

from loguru import logger
from pydantic import BaseModel, Field

from team_scrambler.domain.models.moves import TrialKind
from team_scrambler.domain.models.roster import TEAM_IDS, MovableUnit, UnitKind


class SwapSearchResult(BaseModel):
    """Best trial found by the search."""

    from_team1: List[MovableUnit] = Field(default_factory=list)
    from_team2: List[MovableUnit] = Field(default_factory=list)
    score: float
    trials_run: int = Field(..., ge=1)
    best_trial: int = Field(..., ge=1, description="1-based trial number")
    trial_kind: TrialKind
    broken_squads: List[str] = Field(default_factory=list)
    broken_locked_squads: List[str] = Field(default_factory=list)

    @property
    def players_from_team1(self) -> int:
        return sum(u.size for u in self.from_team1)

    @property
    def players_from_team2(self) -> int:
        return sum(u.size for u in self.from_team2)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class SwapSearchMixin:
    """Mixin providing the randomized swap search.

    Expects ``self.settings`` to be a ScrambleConfig.
    """

    def compute_churn_target(self, total_players: int, churn_fraction: float) -> int:
        """Total players to relocate: round(total x fraction)."""
        return round_half_up(total_players * churn_fraction)

    def split_churn_target(
        self, target: int, team_counts: Dict[str, int], anchor_team: str
    ) -> Dict[str, int]:
        """Split the churn target into per-team move budgets.

        The larger team gives up a quarter of the size difference more than
        half the target and the smaller team a quarter less, so an even swap
        also closes the gap. A leftover player from rounding goes to the team
        with the larger fractional share; an exact tie goes to the anchor team.
        """
        shift = (team_counts["1"] - team_counts["2"]) / 4
        raw = {"1": target / 2 + shift, "2": target / 2 - shift}
        budgets = {team_id: math.floor(value) for team_id, value in raw.items()}

        remainder = target - sum(budgets.values())
        if remainder > 0:
            fractions = {t: raw[t] - budgets[t] for t in TEAM_IDS}
            if math.isclose(fractions["1"], fractions["2"]):
                receiver = anchor_team
            else:
                receiver = max(TEAM_IDS, key=lambda t: fractions[t])
            budgets[receiver] += remainder

        return {team_id: max(0, budget) for team_id, budget in budgets.items()}

    def _jittered_budgets(
        self,
        base: Dict[str, int],
        pool_counts: Dict[str, int],
        rng: random.Random,
    ) -> Dict[str, int]:
        jitter = self.settings.target_jitter
        budgets = {}
        for team_id in TEAM_IDS:
            budget = max(0, base[team_id] + rng.randint(-jitter, jitter))
            budgets[team_id] = min(budget, pool_counts[team_id])
        return budgets

    def _parity_budgets(
        self,
        base: Dict[str, int],
        team_counts: Dict[str, int],
        pool_counts: Dict[str, int],
    ) -> Dict[str, int]:
        # Net players that must cross from team 1 to team 2 for parity
        need = round_half_up((team_counts["1"] - team_counts["2"]) / 2)
        from1, from2 = base["1"], base["2"]
        if from1 - from2 != need:
            if need >= 0:
                from1 = from2 + need
            else:
                from2 = from1 - need
        from1 = max(0, min(from1, pool_counts["1"]))
        from2 = max(0, min(from2, pool_counts["2"]))
        return {"1": from1, "2": from2}

    @staticmethod
    def decompose_units(
        units: List[MovableUnit], target_unit_id: Optional[str] = None
    ) -> List[MovableUnit]:
        """Split one real squad (or every real squad if no id is given)."""
        result: List[MovableUnit] = []
        for unit in units:
            if unit.is_real_squad and (target_unit_id is None or unit.unit_id == target_unit_id):
                result.extend(unit.split())
            else:
                result.append(unit)
        return result

    def select_tiered_units(
        self,
        candidates: List[MovableUnit],
        budget: int,
        used_unit_ids: Set[str],
    ) -> List[MovableUnit]:
        """Greedy tiered selection of units up to a player budget.

        Multi-player units go first, largest first; singletons fill the rest,
        pseudo-squads before split units, with split units of the same source
        squad kept adjacent so a partial fill breaks as few squads as
        possible. Ties keep the candidates' (shuffled) order. One unit may
        overshoot the budget by at most ``max_overshoot`` players, and only if
        that lands strictly closer to the budget than stopping short.

        Selected unit ids are added to ``used_unit_ids``.
        """
        cluster_rank: Dict[str, int] = {}
        for unit in candidates:
            if unit.kind == UnitKind.SPLIT and unit.source_squad_id not in cluster_rank:
                cluster_rank[unit.source_squad_id] = len(cluster_rank)

        def tier_key(indexed):
            position, unit = indexed
            if unit.size > 1:
                return (0, -unit.size, position)
            if unit.kind == UnitKind.SPLIT:
                return (2, cluster_rank[unit.source_squad_id], position)
            return (1, 0, position)

        ordered = [unit for _, unit in sorted(enumerate(candidates), key=tier_key)]

        selected: List[MovableUnit] = []
        count = 0
        for unit in ordered:
            if count >= budget:
                break
            if unit.unit_id in used_unit_ids:
                continue
            if count + unit.size <= budget:
                selected.append(unit)
                used_unit_ids.add(unit.unit_id)
                count += unit.size
                continue
            overshoot = count + unit.size - budget
            if overshoot <= self.settings.max_overshoot and overshoot < budget - count:
                selected.append(unit)
                used_unit_ids.add(unit.unit_id)
                count += unit.size
                break
        return selected

    @staticmethod
    def find_broken_squads(
        local_pools: Dict[str, List[MovableUnit]], selected: List[MovableUnit]
    ) -> Dict[str, List[str]]:
        """Squads with some but not all members selected, split by lock state."""
        totals: Counter = Counter()
        locked: Dict[str, bool] = {}
        for pool in local_pools.values():
            for unit in pool:
                if unit.kind == UnitKind.SPLIT:
                    totals[unit.source_squad_id] += 1
                    locked[unit.source_squad_id] = unit.locked

        chosen = Counter(
            unit.source_squad_id for unit in selected if unit.kind == UnitKind.SPLIT
        )
        broken = sorted(sid for sid, n in chosen.items() if n < totals[sid])
        return {
            "unlocked": [sid for sid in broken if not locked[sid]],
            "locked": [sid for sid in broken if locked[sid]],
        }

    def evaluate_swap(
        self,
        selected_team1: List[MovableUnit],
        selected_team2: List[MovableUnit],
        team_counts: Dict[str, int],
        capacity: int,
        target: int,
        broken: Dict[str, List[str]],
    ) -> Dict[str, Any]:
        """Score one trial's swap (lower is better)."""
        s = self.settings
        moved1 = sum(u.size for u in selected_team1)
        moved2 = sum(u.size for u in selected_team2)
        new1 = team_counts["1"] - moved1 + moved2
        new2 = team_counts["2"] - moved2 + moved1
        actual = moved1 + moved2

        churn_score = abs(actual - target)
        balance_score = abs(new1 - new2)
        overcap = max(0, new1 - capacity) + max(0, new2 - capacity)

        ideal = (team_counts["1"] + team_counts["2"]) / 2
        underpopulated = (
            new1 < ideal - s.underpopulation_margin
            or new2 < ideal - s.underpopulation_margin
        )

        score = (
            churn_score * s.churn_weight
            + balance_score * s.balance_weight
            + overcap * s.overcap_penalty
            + (s.underpopulation_penalty if underpopulated else 0.0)
            + len(broken["locked"]) * s.locked_split_penalty
            + len(broken["unlocked"]) * s.cohesion_split_penalty
        )
        if target > 10 and actual < target * 0.5:
            score += s.churn_shortfall_penalty

        return {
            "score": score,
            "moved_from_team1": moved1,
            "moved_from_team2": moved2,
            "team1_after": new1,
            "team2_after": new2,
        }

    def run_swap_search(
        self,
        pools: Dict[str, List[MovableUnit]],
        team_counts: Dict[str, int],
        target: int,
        capacity: int,
        anchor_team: str,
        rng: random.Random,
    ) -> Optional[SwapSearchResult]:
        """Run the trial loop and return the best conflict-free swap.

        Args:
            pools: Candidate pools per team (not modified)
            team_counts: Current team sizes
            target: Total churn target
            capacity: Per-team cap
            anchor_team: Team that takes rounding ties in the churn split
            rng: Random source; pass a seeded ``random.Random`` for
                reproducible results

        Returns:
            Best trial, or None if every trial produced overlapping selections
        """
        s = self.settings
        base_budgets = self.split_churn_target(target, team_counts, anchor_team)
        logger.debug(
            f"Churn target {target}: base budgets Team1 = {base_budgets['1']}, Team2 = {base_budgets['2']}"
        )

        best: Optional[Dict[str, Any]] = None
        best_score = math.inf
        trials_run = 0

        for i in range(s.max_trials):
            trials_run = i + 1
            local = {team_id: list(pools[team_id]) for team_id in TEAM_IDS}
            is_final = i == s.max_trials - 1
            kind = TrialKind.WHOLE_GROUPS

            if is_final:
                logger.debug("Engaging full decomposition: splitting every squad for the final trial")
                local = {t: self.decompose_units(local[t]) for t in TEAM_IDS}
                kind = TrialKind.NUCLEAR
            elif i >= s.whole_group_trials and best_score > s.split_trigger_score:
                eligible = [
                    unit
                    for t in TEAM_IDS
                    for unit in local[t]
                    if unit.is_real_squad and not unit.locked and unit.size > 1
                ]
                if eligible:
                    victim = eligible[rng.randrange(len(eligible))]
                    local[victim.team_id] = self.decompose_units(
                        local[victim.team_id], victim.unit_id
                    )
                    kind = TrialKind.SURGICAL

            rng.shuffle(local["1"])
            rng.shuffle(local["2"])

            pool_counts = {t: self.pool_player_count(local[t]) for t in TEAM_IDS}
            if is_final:
                budgets = self._parity_budgets(base_budgets, team_counts, pool_counts)
            else:
                budgets = self._jittered_budgets(base_budgets, pool_counts, rng)

            used: Set[str] = set()
            sel1 = self.select_tiered_units(local["1"], budgets["1"], used)
            sel2 = self.select_tiered_units(local["2"], budgets["2"], used)

            overlap = {u.unit_id for u in sel1} & {u.unit_id for u in sel2}
            if overlap:
                logger.warning(
                    f"Duplicate unit selection detected: {sorted(overlap)} - skipping trial {i + 1}"
                )
                continue

            broken = self.find_broken_squads(local, sel1 + sel2)
            evaluation = self.evaluate_swap(
                sel1, sel2, team_counts, capacity, target, broken
            )
            logger.debug(
                f"Trial {i + 1} ({kind.value}): score = {evaluation['score']:.2f}, "
                f"T1->T2 = {evaluation['moved_from_team1']}, T2->T1 = {evaluation['moved_from_team2']}, "
                f"sizes after = {evaluation['team1_after']}/{evaluation['team2_after']}"
            )

            if evaluation["score"] < best_score:
                best_score = evaluation["score"]
                best = {
                    "from_team1": sel1,
                    "from_team2": sel2,
                    "score": best_score,
                    "best_trial": i + 1,
                    "trial_kind": kind,
                    "broken_squads": broken["unlocked"],
                    "broken_locked_squads": broken["locked"],
                }
                if best_score <= s.good_enough_score:
                    logger.debug(
                        f"Good score ({best_score:.2f}) at trial {i + 1}. Stopping early."
                    )
                    break

        if best is None:
            logger.warning("No conflict-free swap found within the trial budget")
            return None

        return SwapSearchResult(trials_run=trials_run, **best)
