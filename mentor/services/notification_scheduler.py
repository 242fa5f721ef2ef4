"""
Notification Scheduler: periodically dispatches due notifications from a profile store.

Lifecycle:
- STOPPED (initial and terminal) -> start() -> RUNNING -> stop() -> STOPPED
- While RUNNING, a background asyncio task ticks every ``check_interval_seconds``,
  measured by the event loop's monotonic timer; due checks use the injected Clock
- Each tick takes a point-in-time snapshot of due notifications, dispatches them
  concurrently, then acknowledges every success with one ``mark_sent`` call
- Failed dispatches stay queued and are retried on the next tick
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from ..models.core import Notification
from ..utils.clock import Clock, SystemClock
from ..utils.config import SchedulerConfig, config
from ..utils.logging_config import get_logger
from .delivery import DeliveryChannel
from .profile_store import MentorProfileStore

logger = get_logger(__name__)


class SchedulerState(str, Enum):
    STOPPED = 'stopped'
    RUNNING = 'running'


@dataclass(frozen=True)
class TickResult:
    """Outcome of one scheduler tick."""
    started_at: datetime
    delivered: Tuple[str, ...] = ()
    failed: Tuple[str, ...] = ()
    acknowledged: bool = True

    @property
    def attempted(self) -> int:
        return len(self.delivered) + len(self.failed)


@dataclass
class SchedulerStats:
    ticks: int = 0
    delivered: int = 0
    failed: int = 0
    last_tick: Optional[TickResult] = field(default=None)


class NotificationScheduler:
    """Polls one profile store and hands due notifications to a delivery channel."""

    def __init__(self,
                 store: MentorProfileStore,
                 channel: DeliveryChannel,
                 clock: Optional[Clock] = None,
                 scheduler_config: Optional[SchedulerConfig] = None):
        """Initialize a stopped scheduler.

        Args:
            store: Profile store whose queue is polled
            channel: Where due notifications are dispatched
            clock: Time source for "now" (store clock if None)
            scheduler_config: Polling settings (config default if None)
        """
        scheduler_config = scheduler_config or config.scheduler
        if scheduler_config.check_interval_seconds <= 0:
            raise ValueError('Check interval must be positive')

        self.store = store
        self.channel = channel
        self.clock = clock or getattr(store, 'clock', None) or SystemClock()
        self.check_interval_seconds = scheduler_config.check_interval_seconds
        self.stats = SchedulerStats()

        self._state = SchedulerState.STOPPED
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._tick_lock = asyncio.Lock()

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is SchedulerState.RUNNING

    async def start(self) -> None:
        """Start the background check loop. Idempotent."""
        if self._state is SchedulerState.RUNNING:
            logger.debug('Notification scheduler already running')
            return

        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._scheduler_loop(self._stop_event))
        self._state = SchedulerState.RUNNING
        logger.info(f'Notification scheduler started for user {self.store.user_id} '
                    f'(every {self.check_interval_seconds}s)')

    async def stop(self) -> None:
        """Stop the background loop.

        Waits for an in-flight tick to finish; no tick starts after this returns.
        Idempotent.
        """
        if self._state is SchedulerState.STOPPED:
            logger.debug('Notification scheduler already stopped')
            return

        self._state = SchedulerState.STOPPED
        task, self._task = self._task, None
        if self._stop_event is not None:
            self._stop_event.set()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info(f'Notification scheduler stopped for user {self.store.user_id}')

    async def _scheduler_loop(self, stop_event: asyncio.Event) -> None:
        """Tick, then wait one interval or until stop is requested."""
        while not stop_event.is_set():
            try:
                await self.tick()
            except Exception as e:
                logger.error(f'Error in notification scheduler tick: {e}')

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.check_interval_seconds)
            except asyncio.TimeoutError:
                continue

    async def tick(self) -> TickResult:
        """Dispatch every notification due now and acknowledge the successful ones.

        Returns:
            TickResult listing delivered and failed notification ids
        """
        async with self._tick_lock:
            started_at = self.clock.now()
            pending = self.store.get_pending_notifications(started_at)
            if not pending:
                result = TickResult(started_at=started_at)
                self._record(result)
                return result

            logger.debug(f'Dispatching {len(pending)} due notifications for user {self.store.user_id}')
            outcomes = await asyncio.gather(*(self._dispatch(notification) for notification in pending))

            delivered = tuple(n.id for n, ok in zip(pending, outcomes) if ok)
            failed = tuple(n.id for n, ok in zip(pending, outcomes) if not ok)

            acknowledged = True
            if delivered:
                try:
                    self.store.mark_sent(delivered)
                except Exception as e:
                    # Unacknowledged notifications stay queued and are retried next tick
                    acknowledged = False
                    logger.error(f'Failed to mark {len(delivered)} notifications sent: {e}')

            if failed:
                logger.warning(f'{len(failed)} of {len(pending)} notifications failed to dispatch; '
                               'they will be retried on the next tick')

            result = TickResult(started_at=started_at, delivered=delivered, failed=failed, acknowledged=acknowledged)
            self._record(result)
            return result

    async def _dispatch(self, notification: Notification) -> bool:
        try:
            return bool(await self.channel.dispatch(notification))
        except Exception as e:
            channel_name = getattr(self.channel, 'name', 'channel')
            logger.warning(f'Dispatch of notification {notification.id} via {channel_name} failed: {e}')
            return False

    def _record(self, result: TickResult) -> None:
        self.stats.ticks += 1
        if result.acknowledged:
            self.stats.delivered += len(result.delivered)
        self.stats.failed += len(result.failed)
        self.stats.last_tick = result

    def get_status(self) -> dict:
        """Current scheduler status."""
        last = self.stats.last_tick
        return {
            'state': self._state.value,
            'user_id': self.store.user_id,
            'check_interval_seconds': self.check_interval_seconds,
            'ticks': self.stats.ticks,
            'delivered': self.stats.delivered,
            'failed': self.stats.failed,
            'pending': self.store.pending_count,
            'last_tick': last.started_at.isoformat() if last else None,
        }
