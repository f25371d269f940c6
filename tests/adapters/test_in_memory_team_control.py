"""Tests for the simulated game server."""

import asyncio
import random

import pytest

from team_scrambler.adapters.in_memory_team_control import InMemoryTeamControlRepository


@pytest.fixture
def server():
    return InMemoryTeamControlRepository(
        [
            {"steamID": "a", "teamID": 1, "squadID": "S1"},
            {"steamID": "b", "teamID": 2},
        ]
    )


class TestInMemoryTeamControl:
    """Set-team semantics and failure injection."""

    def test_move_changes_team_and_leaves_squad(self, server):
        accepted = asyncio.run(server.set_player_team("a", 2))

        assert accepted
        player = {p.player_id: p for p in server.current_roster()}["a"]
        assert player.team_id == "2"
        assert player.squad_id is None
        assert server.team_counts() == {"1": 0, "2": 2}
        assert server.set_team_calls == [("a", "2")]

    def test_unknown_player_rejected(self, server):
        assert asyncio.run(server.set_player_team("ghost", "1")) is False

    def test_failing_player_rejected(self):
        server = InMemoryTeamControlRepository(
            [{"steamID": "a", "teamID": 1}], failing_player_ids=["a"]
        )
        assert asyncio.run(server.set_player_team("a", "2")) is False
        assert server.team_counts() == {"1": 1, "2": 0}

    def test_failure_rate(self):
        server = InMemoryTeamControlRepository(
            [{"steamID": "a", "teamID": 1}], failure_rate=1.0, rng=random.Random(0)
        )
        assert asyncio.run(server.set_player_team("a", "2")) is False

    def test_invalid_failure_rate(self):
        with pytest.raises(ValueError):
            InMemoryTeamControlRepository(failure_rate=1.5)

    def test_disconnect(self, server):
        server.disconnect("a")
        server.disconnect("a")
        assert [p.player_id for p in server.current_roster()] == ["b"]

    def test_warnings_recorded(self, server):
        asyncio.run(server.warn_player("b", "hello"))
        assert server.warnings == [("b", "hello")]
