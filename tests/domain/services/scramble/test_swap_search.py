"""Tests for the stochastic swap search."""

import random

import pytest

from team_scrambler.config import ScrambleConfig
from team_scrambler.domain.models.moves import TrialKind
from team_scrambler.domain.models.roster import MovableUnit, UnitKind
from team_scrambler.domain.services.scramble.swap_search import round_half_up
from team_scrambler.domain.services.scramble_plan_service import ScramblePlanService


def squad_unit(unit_id, team_id, size, locked=False):
    return MovableUnit(
        unit_id=unit_id,
        team_id=team_id,
        player_ids=tuple(f"{unit_id}-{i}" for i in range(size)),
        locked=locked,
    )


def single_unit(player_id, team_id):
    return MovableUnit(
        unit_id=f"unassigned:{player_id}",
        team_id=team_id,
        player_ids=(player_id,),
        kind=UnitKind.UNASSIGNED,
    )


@pytest.fixture
def service():
    return ScramblePlanService(ScrambleConfig(), rng=random.Random(7))


class TestChurnTarget:
    """Churn target and per-team budgets."""

    @pytest.mark.parametrize("total, fraction, expected", [(80, 0.5, 40), (81, 0.5, 41), (3, 0.5, 2), (0, 0.5, 0)])
    def test_round_half_up(self, service, total, fraction, expected):
        assert service.compute_churn_target(total, fraction) == expected

    def test_round_half_up_helper(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(-0.5) == 0
        assert round_half_up(1.49) == 1

    def test_even_teams_split_evenly(self, service):
        assert service.split_churn_target(40, {"1": 40, "2": 40}, "1") == {"1": 20, "2": 20}

    def test_larger_team_gives_more(self, service):
        assert service.split_churn_target(40, {"1": 64, "2": 16}, "2") == {"1": 32, "2": 8}

    def test_remainder_goes_to_larger_fraction(self, service):
        # raw budgets 20.25 / 20.75
        assert service.split_churn_target(41, {"1": 40, "2": 41}, "1") == {"1": 20, "2": 21}

    @pytest.mark.parametrize("anchor, expected", [("1", {"1": 21, "2": 20}), ("2", {"1": 20, "2": 21})])
    def test_tie_goes_to_anchor(self, service, anchor, expected):
        assert service.split_churn_target(41, {"1": 41, "2": 41}, anchor) == expected

    def test_budgets_never_negative(self, service):
        budgets = service.split_churn_target(2, {"1": 20, "2": 0}, "1")
        assert budgets["2"] == 0
        assert budgets["1"] >= 2


class TestSelectTieredUnits:
    """Greedy tiered selection."""

    def test_large_units_first_then_pseudo_squads(self, service):
        candidates = [
            single_unit("x", "1"),
            squad_unit("S3", "1", 3),
            squad_unit("S5", "1", 5),
            single_unit("y", "1"),
        ]
        selected = service.select_tiered_units(candidates, 9, set())
        assert [u.unit_id for u in selected] == ["S5", "S3", "unassigned:x"]

    def test_overshoot_only_when_closer(self, service):
        units = [squad_unit("S6", "1", 6), squad_unit("S4", "1", 4)]

        # 10 vs budget 8 is no closer than stopping at 6
        assert [u.unit_id for u in service.select_tiered_units(units, 8, set())] == ["S6"]
        # 10 vs budget 9 is closer than 6
        assert [u.unit_id for u in service.select_tiered_units(units, 9, set())] == ["S6", "S4"]

    def test_overshoot_capped(self, service):
        units = [squad_unit("S9", "1", 9)]
        assert service.select_tiered_units(units, 5, set()) == []

    def test_used_ids_shared_and_updated(self, service):
        units = [squad_unit("S2", "1", 2), single_unit("x", "1")]
        used = {"S2"}
        selected = service.select_tiered_units(units, 3, used)

        assert [u.unit_id for u in selected] == ["unassigned:x"]
        assert used == {"S2", "unassigned:x"}

    def test_split_units_clustered_by_source(self, service):
        a, b = squad_unit("A", "1", 2).split(), squad_unit("B", "1", 2).split()
        candidates = [b[0], a[0], b[1], a[1]]

        selected = service.select_tiered_units(candidates, 2, set())
        assert {u.source_squad_id for u in selected} == {"B"}

    def test_zero_budget(self, service):
        assert service.select_tiered_units([single_unit("x", "1")], 0, set()) == []


class TestBrokenSquadsAndScoring:
    """Trial evaluation."""

    def test_find_broken_squads(self, service):
        locked = squad_unit("L", "1", 2, locked=True).split()
        unlocked = squad_unit("U", "2", 2).split()
        pools = {"1": locked, "2": unlocked}

        broken = service.find_broken_squads(pools, [locked[0]] + unlocked)
        assert broken == {"unlocked": [], "locked": ["L"]}

    def test_perfect_swap_scores_zero(self, service):
        sel1 = [squad_unit("A", "1", 20)]
        sel2 = [squad_unit("B", "2", 20)]
        result = service.evaluate_swap(
            sel1, sel2, {"1": 40, "2": 40}, 50, 40, {"locked": [], "unlocked": []}
        )
        assert result["score"] == 0
        assert (result["team1_after"], result["team2_after"]) == (40, 40)

    def test_overcap_dominates(self, service):
        result = service.evaluate_swap(
            [squad_unit("A", "1", 2)], [], {"1": 50, "2": 50}, 50, 2, {"locked": [], "unlocked": []}
        )
        # balance 4 x 50 + 2 over cap x 10000
        assert result["score"] == 20200

    def test_churn_shortfall_and_split_penalties(self, service):
        result = service.evaluate_swap(
            [squad_unit("A", "1", 5)],
            [squad_unit("B", "2", 5)],
            {"1": 40, "2": 40},
            50,
            40,
            {"locked": ["L"], "unlocked": ["U1", "U2"]},
        )
        # churn 30 x 2 + shortfall 100 + locked 500 + 2 x 25
        assert result["score"] == 60 + 100 + 500 + 50

    def test_underpopulation_penalty(self, service):
        result = service.evaluate_swap(
            [squad_unit("A", "1", 10)], [], {"1": 40, "2": 40}, 50, 10, {"locked": [], "unlocked": []}
        )
        # balance 20 x 50 + underpopulated
        assert result["score"] == 1000 + 50


class TestRunSwapSearch:
    """End-to-end trial loop behaviour."""

    def test_whole_squads_balance_early(self, service):
        pools = {
            "1": [squad_unit(f"A{i}", "1", 5) for i in range(8)],
            "2": [squad_unit(f"B{i}", "2", 5) for i in range(8)],
        }
        result = service.run_swap_search(
            pools, {"1": 40, "2": 40}, 40, 50, "1", random.Random(3)
        )

        assert result is not None
        assert result.score <= service.settings.good_enough_score
        assert result.trials_run < service.settings.max_trials
        assert result.trial_kind == TrialKind.WHOLE_GROUPS
        assert result.players_from_team1 == result.players_from_team2 == 20

    def test_surgical_split_of_one_unlocked_squad(self):
        """Whole squads overshoot, so the search splits the single unlocked squad."""
        service = ScramblePlanService(ScrambleConfig(target_jitter=0), rng=random.Random(5))
        pools = {
            "1": [squad_unit("L1", "1", 8, locked=True), squad_unit("U1", "1", 8)],
            "2": [single_unit(f"s{i}", "2") for i in range(16)],
        }
        result = service.run_swap_search(
            pools, {"1": 16, "2": 16}, 8, 50, "1", random.Random(5)
        )

        assert result.trial_kind == TrialKind.SURGICAL
        assert result.best_trial == service.settings.whole_group_trials + 1
        assert result.broken_squads == ["U1"]
        assert result.broken_locked_squads == []
        assert result.players_from_team1 == result.players_from_team2 == 4
        assert all(u.source_squad_id == "U1" for u in result.from_team1)
        assert result.score == service.settings.cohesion_split_penalty

    def test_locked_wall_reaches_full_decomposition(self, service, log_capture):
        pools = {
            "1": [squad_unit("L1", "1", 32, locked=True), squad_unit("L2", "1", 32, locked=True)],
            "2": [squad_unit("L3", "2", 16, locked=True)],
        }
        result = service.run_swap_search(
            pools, {"1": 64, "2": 16}, 40, 50, "1", random.Random(11)
        )

        assert result.trial_kind == TrialKind.NUCLEAR
        assert result.trials_run == service.settings.max_trials
        assert result.best_trial == service.settings.max_trials
        assert result.players_from_team1 == 32
        assert result.players_from_team2 == 8
        assert result.broken_locked_squads == ["L3"]
        assert log_capture.contains("DEBUG", "full decomposition")

    def test_same_seed_same_result(self, service):
        pools = {
            "1": [squad_unit(f"A{i}", "1", s) for i, s in enumerate([9, 7, 4, 2, 1])],
            "2": [squad_unit(f"B{i}", "2", s) for i, s in enumerate([8, 6, 3, 3, 1])],
        }
        counts = {"1": 23, "2": 21}
        first = service.run_swap_search(pools, counts, 22, 50, "2", random.Random(42))
        second = service.run_swap_search(pools, counts, 22, 50, "2", random.Random(42))
        assert first == second

    def test_pools_not_modified(self, service):
        pools = {"1": [squad_unit("A", "1", 4)], "2": [squad_unit("B", "2", 4)]}
        snapshot = {t: list(units) for t, units in pools.items()}
        service.run_swap_search(pools, {"1": 4, "2": 4}, 4, 50, "1", random.Random(0))
        assert pools == snapshot

    def test_decompose_single_squad(self, service):
        units = [squad_unit("A", "1", 3), squad_unit("B", "1", 2), single_unit("x", "1")]
        result = service.decompose_units(units, "A")

        assert [u.kind for u in result] == [UnitKind.SPLIT] * 3 + [UnitKind.SQUAD, UnitKind.UNASSIGNED]

    def test_decompose_everything(self, service):
        units = [squad_unit("A", "1", 3), squad_unit("B", "1", 2), single_unit("x", "1")]
        result = service.decompose_units(units)
        assert sum(1 for u in result if u.kind == UnitKind.SPLIT) == 5
