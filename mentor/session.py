"""
Per-user composition of the mentor core.

A MentorSession owns one profile store, the scheduler that drains its queue and
the feed that fills it. Sessions share nothing, so separate users can be
processed concurrently.
"""

from typing import Dict, Optional

from .models.core import ConversationRecord
from .services.conversation_feed import ConversationFeed
from .services.delivery import DeliveryChannel
from .services.delivery_policy import DeliveryTimePolicy
from .services.notification_factory import NotificationFactory
from .services.notification_scheduler import NotificationScheduler
from .services.profile_store import MentorProfileStore
from .utils.clock import Clock, SystemClock
from .utils.config import AppConfig, config
from .utils.logging_config import get_logger

logger = get_logger(__name__)


def create_profile_store(user_id: str, clock: Clock, app_config: AppConfig, mentor_style=None) -> MentorProfileStore:
    """Build a profile store whose factory, policy and settings all come from one config."""
    return MentorProfileStore(user_id=user_id,
                              mentor_style=mentor_style,
                              factory=NotificationFactory(clock=clock),
                              delivery_policy=DeliveryTimePolicy(app_config.delivery),
                              clock=clock,
                              profile_config=app_config.profile,
                              analyzer_config=app_config.analyzer)


class MentorSession:
    """Store, scheduler and feed wired together for one user."""

    def __init__(self,
                 user_id: str,
                 channel: DeliveryChannel,
                 mentor_style=None,
                 clock: Optional[Clock] = None,
                 app_config: Optional[AppConfig] = None):
        app_config = app_config or config
        self.clock = clock or SystemClock()
        self.store = create_profile_store(user_id, self.clock, app_config, mentor_style)
        self.scheduler = NotificationScheduler(store=self.store,
                                               channel=channel,
                                               clock=self.clock,
                                               scheduler_config=app_config.scheduler)
        self.feed = ConversationFeed(consumer=self.store.on_conversation_record, feed_config=app_config.feed)

    @property
    def user_id(self) -> str:
        return self.store.user_id

    def publish(self, record: ConversationRecord) -> bool:
        """Subscribe-style callback for the transport."""
        return self.feed.publish(record)

    async def start(self) -> None:
        await self.feed.start()
        await self.scheduler.start()

    async def stop(self) -> None:
        """Drain buffered conversations, then stop polling."""
        await self.feed.stop(drain=True)
        await self.scheduler.stop()


class SessionRegistry:
    """Creates and hands out stores keyed by user id for an application shell."""

    def __init__(self, clock: Optional[Clock] = None, app_config: Optional[AppConfig] = None):
        self.clock = clock or SystemClock()
        self.app_config = app_config or config
        self._stores: Dict[str, MentorProfileStore] = {}

    def get_store(self, user_id: str, mentor_style=None) -> MentorProfileStore:
        store = self._stores.get(user_id)
        if store is None:
            store = create_profile_store(user_id, self.clock, self.app_config, mentor_style)
            self._stores[user_id] = store
            logger.debug(f'Created profile store for user {user_id}')
        elif mentor_style is not None:
            store.set_mentor_style(mentor_style)
        return store

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._stores

    def __len__(self) -> int:
        return len(self._stores)
