"""Scramble orchestration: plan a roster, hand the moves to the executor, wait.

Runs are either immediate (``execute_scramble``) or scheduled after a
countdown (``schedule_scramble``); a scheduled run can be cancelled until it
starts executing.
"""

import asyncio
from typing import Dict, Iterable, Optional, Union

from loguru import logger
from pydantic import ValidationError

from team_scrambler.adapters.scheduler import CancelToken
from team_scrambler.domain.common import DomainError, Result
from team_scrambler.domain.models.moves import ScrambleOutcome
from team_scrambler.domain.models.roster import Player, Squad

from .move_executor import MoveExecutor
from .scramble_plan_service import ScramblePlanService


class ScrambleCoordinator:
    """Glue between the planner and the executor with a one-at-a-time guard."""

    def __init__(self, planner: ScramblePlanService, executor: MoveExecutor):
        self.planner = planner
        self.executor = executor
        self.last_outcome: Optional[Result[ScrambleOutcome]] = None
        self._in_progress = False
        self._countdown: Optional[CancelToken] = None
        self._countdown_task: Optional[asyncio.Task] = None

    @property
    def is_pending(self) -> bool:
        return self._countdown is not None

    @property
    def is_in_progress(self) -> bool:
        return self._in_progress or self.executor.state.is_active

    async def execute_scramble(
        self,
        players: Iterable[Union[Player, Dict]],
        squads: Optional[Iterable[Union[Squad, Dict]]] = None,
        anchor_team: Optional[Union[int, str]] = None,
        simulate: bool = False,
    ) -> Result[ScrambleOutcome]:
        """Plan and apply one scramble.

        Args:
            players: Connected players
            squads: Squads on the server
            anchor_team: Team taking rounding ties (random when None)
            simulate: Plan and log the moves without touching the server

        Returns:
            Result with the ScrambleOutcome, or a DomainError when a scramble
            is already running or the snapshot is malformed
        """
        if self.is_in_progress:
            logger.warning("Scramble already in progress")
            return Result.failure(
                DomainError.business_rule_violation("A scramble is already in progress")
            )

        self._in_progress = True
        try:
            mode = "Simulating" if simulate else "Executing"
            logger.info(f"🎲 {mode} scramble")

            try:
                plan = self.planner.generate_plan(players, squads, anchor_team=anchor_team)
            except (ValidationError, ValueError, TypeError) as e:
                logger.error(f"❌ Invalid roster snapshot: {e}")
                return Result.failure(
                    DomainError.validation_error(
                        "Roster snapshot is malformed", details={"error": str(e)}
                    )
                )

            if plan.is_empty:
                logger.info("Scrambler returned no player moves")
                return Result.success(ScrambleOutcome(plan=plan, simulated=simulate))

            for move in plan.moves:
                self.executor.enqueue(move.player_id, move.target_team_id, simulate=simulate)

            if simulate:
                logger.info(f"🧪 [Dry Run] Would have queued {len(plan.moves)} player moves")
                return Result.success(ScrambleOutcome(plan=plan, simulated=True))

            settings = self.executor.settings
            drained = await self.executor.wait_for_drain(
                timeout_ms=settings.max_session_duration_ms + 2 * settings.retry_interval_ms
            )
            if not drained:
                logger.warning("⚠️ Stopped waiting for the move session to drain")

            return Result.success(
                ScrambleOutcome(
                    plan=plan,
                    simulated=False,
                    summary=self.executor.last_summary,
                    drained=drained,
                )
            )
        except Exception as e:
            logger.exception(f"Critical error during scramble execution: {e}")
            return Result.failure(DomainError.system_error(f"Scramble failed: {e}"))
        finally:
            self._in_progress = False

    def schedule_scramble(
        self,
        players: Iterable[Union[Player, Dict]],
        squads: Optional[Iterable[Union[Squad, Dict]]] = None,
        anchor_team: Optional[Union[int, str]] = None,
        delay_ms: Optional[float] = None,
        simulate: bool = False,
    ) -> bool:
        """Run a scramble after a countdown.

        Returns:
            False if a scramble is already pending or running
        """
        if self.is_pending or self.is_in_progress:
            logger.debug("Scramble scheduling blocked: already pending or in progress")
            return False

        delay = self.planner.settings.announcement_delay_ms if delay_ms is None else delay_ms
        players = list(players)
        squads = list(squads or [])

        def on_countdown() -> None:
            self._countdown = None
            logger.debug("Scramble countdown finished, executing scramble")
            self._countdown_task = asyncio.get_running_loop().create_task(
                self._run_scheduled(players, squads, anchor_team, simulate)
            )

        self._countdown = self.executor.scheduler.call_later(delay, on_countdown)
        logger.info(f"⏳ Scramble scheduled in {delay / 1000:.1f}s")
        return True

    async def _run_scheduled(self, players, squads, anchor_team, simulate) -> None:
        self.last_outcome = await self.execute_scramble(
            players, squads, anchor_team=anchor_team, simulate=simulate
        )

    def cancel_pending(self) -> bool:
        """Cancel a scheduled scramble that has not started executing.

        Returns:
            True if a countdown was cancelled
        """
        if self._countdown is None:
            return False
        if self.is_in_progress:
            logger.info("Cannot cancel scramble: it is already executing")
            return False
        self._countdown.cancel()
        self._countdown = None
        logger.info("🛑 Scramble countdown cancelled")
        return True
