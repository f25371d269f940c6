"""Move executor: applies planned moves through an unreliable control channel.

Moves are queued and retried on a fixed tick until each one reaches a
terminal outcome. A session groups every move enqueued while the executor is
busy; it ends when the queue drains or when the session timer fires.

All state is touched from one event loop, so no locking is needed. ``enqueue``
must be called from within a running loop.
"""

from typing import Callable, Dict, Optional

from loguru import logger

from team_scrambler.adapters.scheduler import AsyncioScheduler, CancelToken, Scheduler
from team_scrambler.config import ExecutorConfig, config
from team_scrambler.domain.models.moves import (
    ExecutorState,
    MoveOutcome,
    PendingMove,
    ScrambleSession,
    SessionStatus,
    SessionSummary,
)
from team_scrambler.domain.models.roster import coerce_team_id
from team_scrambler.domain.repositories.team_control_repository import (
    TeamControlRepository,
)


class MoveExecutor:
    """Retrying executor for team moves.

    Args:
        team_control: Port to the live server
        scheduler: Timer source (defaults to the asyncio event loop)
        executor_config: Optional settings override (defaults to global config)
        on_session_complete: Called with the SessionSummary when a session ends
    """

    def __init__(
        self,
        team_control: TeamControlRepository,
        scheduler: Optional[Scheduler] = None,
        executor_config: Optional[ExecutorConfig] = None,
        on_session_complete: Optional[Callable[[SessionSummary], None]] = None,
    ):
        self.team_control = team_control
        self.scheduler = scheduler or AsyncioScheduler()
        self.settings = executor_config or config.executor
        self.on_session_complete = on_session_complete

        self._pending: Dict[str, PendingMove] = {}
        self._session: Optional[ScrambleSession] = None
        self._tick_token: Optional[CancelToken] = None
        self._deadline_token: Optional[CancelToken] = None
        self.last_summary: Optional[SessionSummary] = None

    @property
    def state(self) -> ExecutorState:
        return ExecutorState(
            status=SessionStatus.ACTIVE if self._session else SessionStatus.IDLE,
            session=self._session.model_copy(deep=True) if self._session else None,
            pending_count=len(self._pending),
        )

    def enqueue(self, player_id: str, target_team_id, simulate: bool = False) -> None:
        """Queue a move, opening a session if the executor is idle.

        Re-queueing a player who is still pending only updates the target.
        In simulate mode the move is logged and nothing else happens.
        """
        target = coerce_team_id(target_team_id)
        if simulate:
            logger.info(f"🧪 [Dry Run] Would move {player_id} to Team {target}")
            return

        existing = self._pending.get(player_id)
        if existing is not None:
            existing.target_team_id = target
            logger.debug(f"Updated pending move for {player_id} -> Team {target}")
            return

        now = self.scheduler.now_ms()
        self._pending[player_id] = PendingMove(
            player_id=player_id, target_team_id=target, enqueued_at_ms=now
        )

        if self._session is None:
            self._start_session(now)
        self._session.total_moves += 1
        logger.debug(f"Queued move {player_id} -> Team {target}")

    def _start_session(self, now: float) -> None:
        self._session = ScrambleSession(started_at_ms=now)
        self._tick_token = self.scheduler.call_every(
            self.settings.retry_interval_ms, self._process_retries
        )
        self._deadline_token = self.scheduler.call_later(
            self.settings.max_session_duration_ms, self._on_session_deadline
        )
        logger.info(
            f"🚚 Move session started (retry every {self.settings.retry_interval_ms}ms, "
            f"max {self.settings.max_session_duration_ms}ms)"
        )

    def _finish_move(self, move: PendingMove, outcome: MoveOutcome) -> None:
        self._pending.pop(move.player_id, None)
        if self._session is not None:
            self._session.record(move.player_id, outcome)

    async def _process_retries(self) -> None:
        """One retry tick. Never raises."""
        if self._session is None:
            return
        try:
            live_ids = {p.player_id for p in self.team_control.current_roster()}
        except Exception as e:
            logger.warning(f"⚠️ Could not read live roster, skipping tick: {e}")
            return

        max_attempts = self.settings.max_attempts_per_move
        for move in list(self._pending.values()):
            if self._session is None:
                return
            if self._pending.get(move.player_id) is not move:
                continue

            waited = self.scheduler.now_ms() - move.enqueued_at_ms
            if waited > self.settings.max_session_duration_ms:
                logger.warning(f"⏱️ Move for {move.player_id} timed out after {waited:.0f}ms")
                self._finish_move(move, MoveOutcome.TIMED_OUT)
                continue

            if move.player_id not in live_ids:
                logger.debug(f"Player {move.player_id} left the server; dropping move")
                self._finish_move(move, MoveOutcome.DISAPPEARED)
                continue

            move.attempt_count += 1
            if move.attempt_count > max_attempts:
                self._finish_move(move, MoveOutcome.EXHAUSTED)
                continue

            try:
                accepted = await self.team_control.set_player_team(
                    move.player_id, move.target_team_id
                )
            except Exception as e:
                logger.warning(
                    f"Set-team call for {move.player_id} raised (attempt {move.attempt_count}): {e}"
                )
                accepted = False

            if self._session is None:
                return

            if accepted:
                self._finish_move(move, MoveOutcome.SUCCEEDED)
                logger.debug(f"Moved {move.player_id} to Team {move.target_team_id}")
                if self.settings.warn_on_move:
                    try:
                        await self.team_control.warn_player(
                            move.player_id, self.settings.move_warning_message
                        )
                    except Exception as e:
                        logger.warning(f"Could not warn {move.player_id}: {e}")
            elif move.attempt_count >= max_attempts:
                logger.warning(
                    f"❌ Giving up on {move.player_id} after {move.attempt_count} attempts"
                )
                self._finish_move(move, MoveOutcome.EXHAUSTED)
            else:
                logger.debug(
                    f"Move for {move.player_id} not accepted (attempt {move.attempt_count}/{max_attempts})"
                )

        if self._session is not None and not self._pending:
            self._complete_session(forced=False)

    def _on_session_deadline(self) -> None:
        if self._session is None:
            return
        logger.warning(
            f"⏱️ Session reached {self.settings.max_session_duration_ms}ms with "
            f"{len(self._pending)} move(s) still queued; forcing completion"
        )
        self._complete_session(forced=True)

    def _cancel_timers(self) -> None:
        for token in (self._tick_token, self._deadline_token):
            if token is not None:
                token.cancel()
        self._tick_token = None
        self._deadline_token = None

    def _complete_session(self, forced: bool) -> None:
        session = self._session
        if session is None:
            return
        self._cancel_timers()

        duration = max(0.0, self.scheduler.now_ms() - session.started_at_ms)
        total = session.total_moves
        success_rate = session.completed_moves / total if total else 1.0
        abandoned = len(self._pending) if forced else 0

        summary = SessionSummary(
            total_moves=total,
            completed_moves=session.completed_moves,
            failed_moves=session.failed_moves,
            abandoned_moves=abandoned,
            duration_ms=duration,
            success_rate=success_rate,
            forced=forced,
            outcomes=dict(session.outcomes),
        )

        logger.info(
            f"🏁 Move session complete: {summary.completed_moves}/{total} moved "
            f"({success_rate * 100:.1f}%), {summary.failed_moves} failed, "
            f"{abandoned} abandoned in {duration / 1000:.1f}s"
        )
        if summary.needs_manual_intervention:
            logger.warning(
                f"⚠️ {summary.failed_moves + abandoned} move(s) did not complete; "
                "manual intervention may be needed"
            )

        self._pending.clear()
        self._session = None
        self.last_summary = summary

        if self.on_session_complete is not None:
            try:
                self.on_session_complete(summary)
            except Exception as e:
                logger.exception(f"Session completion callback raised: {e}")

    async def wait_for_drain(
        self, timeout_ms: float = 10000, poll_interval_ms: Optional[float] = None
    ) -> bool:
        """Wait until no session is active or the timeout elapses.

        Returns:
            True if the executor drained in time
        """
        poll = poll_interval_ms or self.settings.drain_poll_interval_ms
        deadline = self.scheduler.now_ms() + timeout_ms
        while self._session is not None or self._pending:
            if self.scheduler.now_ms() >= deadline:
                logger.debug(f"Drain wait timed out with {len(self._pending)} move(s) pending")
                return False
            await self.scheduler.sleep(poll)
        return True

    def cancel_all(self) -> None:
        """Drop every pending move and the current session without a summary."""
        dropped = len(self._pending)
        self._cancel_timers()
        self._pending.clear()
        self._session = None
        if dropped:
            logger.info(f"🛑 Cancelled {dropped} pending move(s)")
