"""
Conversation feed: bounded buffer between the wearable transport and a profile store.

The transport publishes records as they arrive; a single consumer task feeds them
to ``on_conversation_record`` one at a time. When the transport outpaces the
consumer the overflow policy decides which record is lost.
"""

import asyncio
from typing import Callable, List, Optional

from ..models.core import ConversationRecord, Insight
from ..utils.config import FeedConfig, config
from ..utils.logging_config import get_logger
from .profile_store import ProfileInvariantError

logger = get_logger(__name__)

DROP_OLDEST = 'drop_oldest'
DROP_NEWEST = 'drop_newest'
OVERFLOW_POLICIES = (DROP_OLDEST, DROP_NEWEST)


class ConversationFeedError(Exception):
    """Custom exception for conversation feed errors."""
    pass


class ConversationFeed:
    """Single-consumer bounded feed of conversation records."""

    def __init__(self, consumer: Callable[[ConversationRecord], List[Insight]], feed_config: Optional[FeedConfig] = None):
        """
        Args:
            consumer: Called once per record, usually a store's on_conversation_record
            feed_config: Buffer size and overflow policy (config default if None)

        Raises:
            ConversationFeedError: If the buffer size or overflow policy is invalid
        """
        feed_config = feed_config or config.feed
        if feed_config.buffer_size <= 0:
            raise ConversationFeedError('Feed buffer size must be positive')
        if feed_config.overflow_policy not in OVERFLOW_POLICIES:
            raise ConversationFeedError(f'Unknown overflow policy: {feed_config.overflow_policy}')

        self.consumer = consumer
        self.buffer_size = feed_config.buffer_size
        self.overflow_policy = feed_config.overflow_policy
        self.dropped = 0
        self.processed = 0

        self._queue: asyncio.Queue = asyncio.Queue(maxsize=self.buffer_size)
        self._task: Optional[asyncio.Task] = None
        self._halted = False

    @property
    def is_running(self) -> bool:
        return self._task is not None

    @property
    def backlog(self) -> int:
        return self._queue.qsize()

    def publish(self, record: ConversationRecord) -> bool:
        """Offer a record to the feed.

        Returns:
            False when the record itself was dropped (drop_newest on a full
            buffer, or a halted feed); True otherwise, even if an older record
            had to make room
        """
        if self._halted:
            logger.warning(f'Feed halted, dropping conversation {getattr(record, "id", None)}')
            self.dropped += 1
            return False

        if self._queue.full():
            if self.overflow_policy == DROP_NEWEST:
                self.dropped += 1
                logger.warning(f'Feed buffer full ({self.buffer_size}), dropping newest conversation '
                               f'{getattr(record, "id", None)}')
                return False
            oldest = self._queue.get_nowait()
            self._queue.task_done()
            self.dropped += 1
            logger.warning(f'Feed buffer full ({self.buffer_size}), dropping oldest conversation '
                           f'{getattr(oldest, "id", None)}')

        self._queue.put_nowait(record)
        return True

    async def start(self) -> None:
        """Start the consumer task. Idempotent."""
        if self._task is not None:
            logger.debug('Conversation feed already started')
            return
        self._task = asyncio.create_task(self._consume())
        logger.info('Conversation feed started')

    async def stop(self, drain: bool = True) -> None:
        """Stop the consumer task.

        Args:
            drain: Process records already buffered before stopping
        """
        if self._task is None:
            return
        task, self._task = self._task, None
        if drain and not task.done():
            await self._queue.join()
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info(f'Conversation feed stopped ({self.processed} processed, {self.dropped} dropped)')

    async def _consume(self) -> None:
        while True:
            record = await self._queue.get()
            try:
                self.consumer(record)
                self.processed += 1
            except ProfileInvariantError as e:
                logger.error(f'Stopping conversation feed: {e}')
                self._halted = True
                self._discard_backlog()
                return
            except Exception as e:
                logger.error(f'Unexpected error processing conversation {getattr(record, "id", None)}: {e}')
            finally:
                self._queue.task_done()

    def _discard_backlog(self) -> None:
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            self.dropped += 1
