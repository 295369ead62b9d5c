"""Timer worker: deliver due escalation timers to the engine."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import structlog

from showingdesk.core.exceptions import SchedulerError, UpstreamUnavailableError
from showingdesk.core.protocols import IClock, ITimerScheduler
from showingdesk.engine.escalation import EscalationEngine
from showingdesk.models.events import EscalationOutcome, TimerToken

logger = structlog.get_logger(__name__)


class TimerWorker:
    """Polls the scheduler and invokes ``on_timer_fired`` for each due token.

    Tokens are already claimed when handled, so a token whose handling
    raises is put back with ``retry_delay_seconds`` and the rest of the batch
    is still delivered.
    """

    def __init__(
        self,
        engine: EscalationEngine,
        scheduler: ITimerScheduler,
        clock: IClock,
        poll_interval_seconds: float = 1.0,
        retry_delay_seconds: int = 30,
    ) -> None:
        self._engine = engine
        self._scheduler = scheduler
        self._clock = clock
        self._poll_interval = poll_interval_seconds
        self._retry_delay = retry_delay_seconds

    def run_once(self) -> list[tuple[TimerToken, EscalationOutcome | None]]:
        """Deliver every due token once. ``None`` marks a token put back for retry."""
        results: list[tuple[TimerToken, EscalationOutcome | None]] = []
        for token in self._scheduler.pop_due(self._clock.now()):
            try:
                outcome = self._engine.on_timer_fired(token.request_id, token)
            except Exception as exc:
                self._retry(token, exc)
                outcome = None
            results.append((token, outcome))
        return results

    def _retry(self, token: TimerToken, exc: Exception) -> None:
        retry_at = self._clock.now() + timedelta(seconds=self._retry_delay)
        log = logger.bind(request_id=token.request_id, mode=str(token.mode), index=token.index)
        if isinstance(exc, (UpstreamUnavailableError, SchedulerError)):
            log.warning("timer_retry_scheduled", retry_at=retry_at.isoformat(), error=str(exc))
        else:
            log.exception("timer_handler_failed", retry_at=retry_at.isoformat())
        try:
            self._scheduler.schedule(token, retry_at)
        except SchedulerError as sched_exc:
            log.error("timer_retry_lost", error=str(sched_exc))

    async def run(self, stop: asyncio.Event) -> None:
        logger.info("timer_worker_started", poll_interval=self._poll_interval)
        while not stop.is_set():
            try:
                await asyncio.to_thread(self.run_once)
            except Exception:
                logger.exception("timer_poll_failed")
            try:
                await asyncio.wait_for(stop.wait(), timeout=self._poll_interval)
            except asyncio.TimeoutError:
                pass
        logger.info("timer_worker_stopped")


def main() -> None:
    from showingdesk.core.logging import configure_logging
    from showingdesk.engine.factory import create_runtime

    runtime = create_runtime()
    configure_logging(runtime.settings.log_level, runtime.settings.log_json)
    worker = TimerWorker(
        runtime.engine,
        runtime.persistence.scheduler,
        runtime.clock,
        poll_interval_seconds=runtime.settings.escalation.timer_poll_interval_seconds,
        retry_delay_seconds=runtime.settings.escalation.retry_delay_seconds,
    )
    try:
        asyncio.run(worker.run(asyncio.Event()))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
