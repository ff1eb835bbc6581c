"""
Trigger service: the poll, diff, notify loop.

This module provides:
- Baseline poll on startup
- Interval ticks with APScheduler
- One sequential loop reacting to ticks and shutdown signals
- Error handling that keeps the loop alive across failed ticks
"""

import asyncio
import signal
import time
from typing import Dict, Optional

import httpx
import structlog
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from trigger.change_detector import ChangeDetector
from trigger.exceptions import BaselineError, DecodeError, TransportError
from trigger.models import LoopState, ObservedState, TickReport, TriggerSettings, utc_now
from trigger.notifier import WebhookNotifier
from trigger.source_client import SourceClient

logger = structlog.get_logger(__name__)

TICK_JOB_ID = "clock_tick"
SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class TriggerService:
    """Polls the source on a fixed interval and notifies about new identifiers."""

    def __init__(
        self,
        settings: TriggerSettings,
        source_client: Optional[SourceClient] = None,
        notifier: Optional[WebhookNotifier] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize trigger service.

        Args:
            settings: Immutable trigger settings
            source_client: Source client (built from settings if omitted)
            notifier: Webhook notifier (built from settings if omitted)
            http_client: Shared HTTP client; one is created and owned if omitted
        """
        self.settings = settings
        self.logger = logger.bind(component="trigger_service")

        self._owns_http_client = http_client is None
        if http_client is None:
            http_client = httpx.AsyncClient(
                timeout=settings.request_timeout,
                headers={"User-Agent": settings.user_agent},
                follow_redirects=True,
            )
        self.http_client = http_client

        self.source_client = source_client or SourceClient(settings.source_url, http_client)
        self.notifier = notifier or WebhookNotifier(
            settings.webhook_url,
            settings.source_url,
            http_client,
            item_noun=settings.item_noun,
        )
        self.change_detector = ChangeDetector()
        self.scheduler = AsyncIOScheduler(timezone="UTC")

        self.loop_state = LoopState.INITIALIZING
        self.observed_state: Optional[ObservedState] = None
        self.ticks_run = 0

        # A tick offered while one is already pending is dropped.
        self._ticks: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._stop_event = asyncio.Event()
        self._signal_loop: Optional[asyncio.AbstractEventLoop] = None

        self._setup_scheduler_listeners()

    def _setup_scheduler_listeners(self) -> None:
        """Setup scheduler event listeners."""
        def job_missed_listener(event):
            self.logger.warning("Tick missed", job_id=event.job_id)

        def job_error_listener(event):
            self.logger.error("Tick job failed", job_id=event.job_id, error=str(event.exception))

        self.scheduler.add_listener(job_missed_listener, EVENT_JOB_MISSED)
        self.scheduler.add_listener(job_error_listener, EVENT_JOB_ERROR)

    async def initialize(self) -> ObservedState:
        """
        Run the baseline poll.

        Raises:
            BaselineError: If the source cannot be fetched or decoded
        """
        self.loop_state = LoopState.INITIALIZING
        self.logger.info("Getting initial count of ids", url=self.settings.source_url)
        try:
            ids = await self.source_client.fetch()
        except (TransportError, DecodeError) as e:
            self.logger.error("Unable to get initial ids", url=e.url, error=e.reason)
            raise BaselineError(e.url, e.reason) from e

        self.observed_state = self.change_detector.baseline(ids)
        return self.observed_state

    async def run_cycle(self) -> TickReport:
        """Run one fetch, diff, notify cycle against the observed state."""
        if self.observed_state is None:
            raise RuntimeError("run_cycle called before initialize")

        self.ticks_run += 1
        report = TickReport(tick_id=self.ticks_run, previous_count=self.observed_state.count)
        start = time.monotonic()
        log = self.logger.bind(tick_id=report.tick_id)
        log.info("Running ticker iteration")

        try:
            ids = await self.source_client.fetch()
        except (TransportError, DecodeError) as e:
            log.error("Unable to get ids", url=e.url, error=e.reason)
            report.success = False
            report.error = str(e)
            report.new_count = self.observed_state.count
            report.duration_seconds = time.monotonic() - start
            return report

        self.observed_state, result = self.change_detector.detect(self.observed_state, ids)
        report.fetched_count = len(ids)
        report.new_count = result.new_count
        report.new_ids = list(result.newly_added)
        report.rebaselined = result.rebaselined

        if result.has_changes:
            try:
                await self.notifier.notify(result.newly_added)
                report.notified = True
            except TransportError as e:
                log.error("Unable to post request to url", url=e.url, error=e.reason)
                report.notify_error = str(e)

        report.duration_seconds = time.monotonic() - start
        return report

    async def run(self) -> None:
        """
        Baseline, then process ticks until a shutdown signal arrives.

        Raises:
            BaselineError: If the baseline poll fails
        """
        self._install_signal_handlers()
        try:
            await self.initialize()
            if self._stop_event.is_set():
                self.logger.info("Received interrupt during startup, shutting down")
                return

            self._schedule_ticks()
            self.loop_state = LoopState.RUNNING
            self.logger.info(
                "Trigger service started",
                interval_seconds=self.settings.interval_seconds,
                count=self.observed_state.count,
            )

            while await self._wait_for_tick():
                try:
                    await self.run_cycle()
                except Exception:
                    self.logger.exception("Tick crashed", tick_id=self.ticks_run)

            self.logger.info("Received interrupt, shutting down")
        finally:
            await self.stop()

    def request_stop(self) -> None:
        """Ask the loop to exit at the next tick boundary."""
        self._stop_event.set()

    async def stop(self) -> None:
        """Release the timer, signal handlers and owned HTTP client."""
        if self.loop_state == LoopState.TERMINATED:
            return
        self.loop_state = LoopState.SHUTTING_DOWN
        try:
            if self.scheduler.running:
                self.scheduler.shutdown(wait=False)
                # AsyncIOScheduler finishes shutting down on the next loop iteration.
                await asyncio.sleep(0)
            self._remove_signal_handlers()
            if self._owns_http_client:
                await self.http_client.aclose()
        finally:
            self.loop_state = LoopState.TERMINATED
            self.logger.info("Trigger service stopped", ticks_run=self.ticks_run)

    def offer_tick(self) -> bool:
        """Queue a tick unless one is already pending. Returns whether it was queued."""
        try:
            self._ticks.put_nowait(utc_now())
        except asyncio.QueueFull:
            self.logger.debug("Tick dropped, previous tick still pending")
            return False
        return True

    async def _tick_job(self) -> None:
        self.offer_tick()

    def _schedule_ticks(self) -> None:
        self.scheduler.add_job(
            func=self._tick_job,
            trigger=IntervalTrigger(seconds=self.settings.interval_seconds),
            id=TICK_JOB_ID,
            name="Clock Tick",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.scheduler.start()

    async def _wait_for_tick(self) -> bool:
        """Wait for the next tick or a stop request. Returns False on stop."""
        if self._stop_event.is_set():
            return False

        tick = asyncio.ensure_future(self._ticks.get())
        stop = asyncio.ensure_future(self._stop_event.wait())
        done, pending = await asyncio.wait({tick, stop}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        return stop not in done

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            try:
                loop.add_signal_handler(sig, self._handle_signal, sig)
            except NotImplementedError:
                signal.signal(sig, lambda signum, frame: loop.call_soon_threadsafe(self._handle_signal, signum))
        self._signal_loop = loop

    def _remove_signal_handlers(self) -> None:
        if self._signal_loop is None:
            return
        for sig in SHUTDOWN_SIGNALS:
            try:
                self._signal_loop.remove_signal_handler(sig)
            except NotImplementedError:
                signal.signal(sig, signal.SIG_DFL)
        self._signal_loop = None

    def _handle_signal(self, signum: int) -> None:
        self.logger.info("Received signal", signal=signal.Signals(signum).name)
        self.request_stop()

    def get_status(self) -> Dict:
        """Get current service status."""
        job = self.scheduler.get_job(TICK_JOB_ID) if self.scheduler.running else None
        next_run = getattr(job, "next_run_time", None) if job else None
        return {
            "state": self.loop_state.value,
            "observed_count": self.observed_state.count if self.observed_state else None,
            "ticks_run": self.ticks_run,
            "interval_seconds": self.settings.interval_seconds,
            "next_tick": next_run.isoformat() if next_run else None,
        }
