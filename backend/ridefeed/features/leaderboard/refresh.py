"""
Refresh scheduler.

Turns bursts of webhook triggers into single fetch -> normalize -> store
cycles for the live-graphics state.

Per scheduler:
- schedule_refresh() (re)starts a debounce timer
- when the timer fires while a cycle is running, the trigger is dropped
- a cycle that exceeds the timeout is cancelled and the state left as is
- any error inside a cycle is logged, never raised

RefreshCoordinator keeps one scheduler per competition id, so a refresh
of the A-final cannot swallow a trigger for the preliminary round.
"""

import asyncio
import logging
import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Optional

from ridefeed.features.sportfengur import LeaderboardFetcher
from .normalizer import normalize_leaderboard
from .state import CompetitionStateStore

logger = logging.getLogger(__name__)


class RefreshState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"  # debounce timer running
    RUNNING = "running"  # cycle in flight


@dataclass(frozen=True)
class RefreshContext:
    """Which leaderboard the next cycle fetches."""

    event_id: Optional[int]
    class_id: Optional[int]
    competition_id: Optional[int]
    force_refresh: bool = False


class RefreshScheduler:
    """
    Debounced, single-flight refresh of one state slot.

    Usage:
        scheduler = RefreshScheduler(fetcher, store)
        scheduler.set_competition_context(999, 789, 1, force_refresh=True)
        scheduler.schedule_refresh()
    """

    def __init__(
        self,
        fetcher: LeaderboardFetcher,
        store: CompetitionStateStore,
        debounce: float = 0.2,
        timeout: float = 30.0,
        name: str = "refresh",
    ):
        self.fetcher = fetcher
        self.store = store
        self.debounce = debounce
        self.timeout = timeout
        self.name = name

        self._context: Optional[RefreshContext] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None
        self._last_scheduled_at: Optional[float] = None

        self.completed = 0
        self.failed = 0
        self.skipped = 0
        self.last_error: Optional[str] = None

    # -------------------------------------------------------------------------
    # Triggering
    # -------------------------------------------------------------------------

    def set_competition_context(
        self,
        event_id,
        class_id,
        competition_id,
        force_refresh: bool = False
    ):
        """Set what the next cycle will fetch."""
        self._context = RefreshContext(event_id, class_id, competition_id, force_refresh)

    @property
    def context(self) -> Optional[RefreshContext]:
        return self._context

    def schedule_refresh(self):
        """(Re)start the debounce timer. Must be called from the event loop."""
        loop = asyncio.get_running_loop()
        self._last_scheduled_at = time.time()

        if self._timer:
            self._timer.cancel()
        self._timer = loop.call_later(self.debounce, self._on_timer)

    def _on_timer(self):
        self._timer = None

        if self.is_running:
            self.skipped += 1
            logger.info(f"[{self.name}] Refresh already in progress, trigger dropped")
            return

        # Capture now: later set_competition_context() calls belong to the next cycle
        context = self._context
        self._task = asyncio.get_running_loop().create_task(self._execute(context))

    # -------------------------------------------------------------------------
    # Cycle
    # -------------------------------------------------------------------------

    async def _execute(self, context: Optional[RefreshContext]):
        if context is None or not context.class_id or not context.competition_id:
            logger.info(f"[{self.name}] No competition context, nothing to refresh")
            return

        logger.info(
            f"[{self.name}] Refresh starting: event {context.event_id}, "
            f"class {context.class_id}, competition {context.competition_id}"
        )
        started = time.monotonic()

        try:
            await asyncio.wait_for(self._refresh(context), timeout=self.timeout)
        except asyncio.TimeoutError:
            self.failed += 1
            self.last_error = f"timeout after {self.timeout}s"
            logger.error(f"[{self.name}] Refresh timed out after {self.timeout}s, state unchanged")
        except asyncio.CancelledError:
            logger.info(f"[{self.name}] Refresh cancelled")
            raise
        except Exception as e:
            self.failed += 1
            self.last_error = str(e)
            logger.error(f"[{self.name}] Refresh failed, state unchanged: {e}")
        else:
            self.completed += 1
            self.last_error = None
            logger.info(
                f"[{self.name}] Refresh done in {time.monotonic() - started:.2f}s"
            )

    async def _refresh(self, context: RefreshContext):
        logger.debug(
            f"[{self.name}] Fetching class {context.class_id}/{context.competition_id} "
            f"(force={context.force_refresh})"
        )
        raw = await self.fetcher.fetch_leaderboard(
            context.event_id,
            context.class_id,
            context.competition_id,
            context.force_refresh,
        )
        leaderboard = normalize_leaderboard(raw)
        logger.debug(f"[{self.name}] Normalized {len(leaderboard)} riders")

        self.store.update(
            context.competition_id,
            leaderboard,
            context.event_id,
            context.class_id,
        )

    # -------------------------------------------------------------------------
    # Status / lifecycle
    # -------------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_pending(self) -> bool:
        return self._timer is not None

    @property
    def state(self) -> RefreshState:
        if self.is_running:
            return RefreshState.RUNNING
        if self.is_pending:
            return RefreshState.PENDING
        return RefreshState.IDLE

    async def join(self):
        """Wait until no timer is pending and no cycle is running."""
        while self.is_pending or self.is_running:
            if self.is_running:
                await asyncio.wait({self._task})
            else:
                await asyncio.sleep(self.debounce / 4 or 0.001)

    async def close(self):
        """Cancel the pending timer and any running cycle."""
        if self._timer:
            self._timer.cancel()
            self._timer = None
        if self.is_running:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

    def status(self) -> dict:
        return {
            "state": self.state.value,
            "context": asdict(self._context) if self._context else None,
            "lastScheduledAt": self._last_scheduled_at,
            "completed": self.completed,
            "failed": self.failed,
            "skipped": self.skipped,
            "lastError": self.last_error,
        }


class RefreshCoordinator:
    """
    One RefreshScheduler per competition id, created on first use.

    Usage:
        coordinator = RefreshCoordinator(fetcher, store)
        coordinator.trigger(RefreshContext(999, 789, 1, force_refresh=True))
    """

    def __init__(
        self,
        fetcher: LeaderboardFetcher,
        store: CompetitionStateStore,
        debounce: float = 0.2,
        timeout: float = 30.0,
    ):
        self.fetcher = fetcher
        self.store = store
        self.debounce = debounce
        self.timeout = timeout
        self._schedulers: dict[int, RefreshScheduler] = {}

    def scheduler_for(self, competition_id: int) -> RefreshScheduler:
        scheduler = self._schedulers.get(competition_id)
        if scheduler is None:
            scheduler = RefreshScheduler(
                self.fetcher,
                self.store,
                debounce=self.debounce,
                timeout=self.timeout,
                name=f"competition {competition_id}",
            )
            self._schedulers[competition_id] = scheduler
        return scheduler

    def trigger(self, context: RefreshContext) -> RefreshScheduler:
        """Set the context on the competition's scheduler and schedule it."""
        scheduler = self.scheduler_for(context.competition_id)
        scheduler.set_competition_context(
            context.event_id,
            context.class_id,
            context.competition_id,
            context.force_refresh,
        )
        scheduler.schedule_refresh()
        logger.info(
            f"Refresh scheduled: event {context.event_id}, class {context.class_id}, "
            f"competition {context.competition_id} (force={context.force_refresh})"
        )
        return scheduler

    async def join(self):
        for scheduler in list(self._schedulers.values()):
            await scheduler.join()

    async def close(self):
        for scheduler in list(self._schedulers.values()):
            await scheduler.close()

    async def reset(self):
        await self.close()
        self._schedulers.clear()

    def status(self) -> dict[str, dict]:
        return {str(cid): s.status() for cid, s in sorted(self._schedulers.items())}
