"""
Mentor Profile Store: per-user profile state, conversation history and the notification queue.
"""

import itertools
import threading
from collections import Counter, OrderedDict, deque
from dataclasses import replace
from types import MappingProxyType
from typing import Dict, Iterable, List, Optional

from ..models.core import (ConversationRecord, HistoryEntry, Insight, InsightType, MentorStyle, Notification,
                           ProfileSnapshot)
from ..utils.clock import Clock, SystemClock
from ..utils.config import AnalyzerConfig, ProfileConfig, config
from ..utils.logging_config import get_logger
from . import text_analyzer
from .delivery_policy import DeliveryTimePolicy
from .notification_factory import NotificationFactory

logger = get_logger(__name__)

# How many insight ids are remembered to avoid notifying twice for the same insight
NOTIFIED_INSIGHT_MEMORY = 10000


class ProfileInvariantError(Exception):
    """Raised when the notification queue would break one of its invariants."""
    pass


class MentorProfileStore:
    """Single owner of one user's mentor profile and notification queue.

    All mutation happens under one re-entrant lock, so enqueue, dequeue and
    mark-sent are linearizable even when a scheduler tick runs alongside
    profile updates. Readers only ever receive immutable records or copies.

    Rolling sentiment is an exponential moving average,
    ``new = decay * score + (1 - decay) * old``; the first sample sets it
    directly.
    """

    def __init__(self,
                 user_id: str,
                 mentor_style=None,
                 factory: Optional[NotificationFactory] = None,
                 delivery_policy: Optional[DeliveryTimePolicy] = None,
                 clock: Optional[Clock] = None,
                 profile_config: Optional[ProfileConfig] = None,
                 analyzer_config: Optional[AnalyzerConfig] = None):
        """Initialize an empty profile.

        Args:
            user_id: Owner of the profile
            mentor_style: MentorStyle or its name (config default if None)
            factory: Builds notifications (one sharing this store's clock if None)
            delivery_policy: Computes trigger times (config default if None)
            clock: Time source (system clock if None)
            profile_config: Retention and sentiment settings (config default if None)
            analyzer_config: Text analyzer settings (config default if None)
        """
        if not user_id or not str(user_id).strip():
            raise ValueError('User ID is required')

        self.user_id = user_id
        self.profile_config = profile_config or config.profile
        self.analyzer_config = analyzer_config or config.analyzer
        self.clock = clock or SystemClock()
        self.factory = factory or NotificationFactory(clock=self.clock)
        self.delivery_policy = delivery_policy or DeliveryTimePolicy()
        self._mentor_style = MentorStyle.parse(mentor_style or self.profile_config.default_mentor_style)

        if not 0.0 < self.profile_config.sentiment_decay <= 1.0:
            raise ValueError('Sentiment decay must be in (0, 1]')

        self._lock = threading.RLock()
        history_limit = self.profile_config.history_limit
        self._history: deque = deque(maxlen=history_limit if history_limit > 0 else None)
        self._sent: deque = deque(maxlen=max(self.profile_config.notification_history_limit, 0))
        self._topic_counts: Counter = Counter()
        self._rolling_sentiment: Optional[float] = None
        self._sentiment_samples = 0

        self._queue: List[Notification] = []
        self._sequence_by_id: Dict[str, int] = {}
        self._sequence = itertools.count()
        self._notified_insights: OrderedDict = OrderedDict()
        self._halted_reason: Optional[str] = None

        logger.info(f'Initialized MentorProfileStore for user {user_id} ({self._mentor_style.value})')

    # ------------------------------------------------------------------
    # Ingress and profile updates
    # ------------------------------------------------------------------

    def on_conversation_record(self, record: ConversationRecord) -> List[Insight]:
        """Ingress for conversation records coming from the transport."""
        return self.update_profile(record)

    def update_profile(self, record: ConversationRecord) -> List[Insight]:
        """Fold one conversation into the profile and enqueue any notifications it warrants.

        Args:
            record: Conversation to process

        Returns:
            Insights derived from the record (empty for malformed records)

        Raises:
            ProfileInvariantError: If the profile has been halted by an invariant violation
        """
        if not isinstance(record, ConversationRecord):
            logger.warning(f'Ignoring malformed conversation record for user {self.user_id}: {type(record).__name__}')
            return []

        with self._lock:
            self._ensure_active()

            analysis = text_analyzer.analyze(record.text, self.analyzer_config.max_topics)
            insights = text_analyzer.derive_insights(record, analysis)

            self._topic_counts.update(analysis.topics)
            if isinstance(record.text, str) and record.text.strip():
                self._update_sentiment(analysis.sentiment.score)

            context = text_analyzer.extract_context(record, analysis.sentiment)
            self._history.append(
                HistoryEntry(timestamp=self.clock.now(), record=record, insights=tuple(insights), context=context))
            self.generate_notifications(insights)

        logger.debug(f'Updated profile {self.user_id} from conversation {record.id}: '
                     f'{len(analysis.action_items)} action items, topics={list(analysis.topics)}, '
                     f'sentiment={analysis.sentiment.label.value}')
        return insights

    def _update_sentiment(self, score: float) -> None:
        decay = self.profile_config.sentiment_decay
        if self._rolling_sentiment is None:
            self._rolling_sentiment = score
        else:
            self._rolling_sentiment = decay * score + (1 - decay) * self._rolling_sentiment
        self._sentiment_samples += 1

    # ------------------------------------------------------------------
    # Notification queue
    # ------------------------------------------------------------------

    def qualifies(self, insight: Insight) -> bool:
        """Whether an insight should produce a notification."""
        if insight.type is InsightType.ACTION_ITEM:
            return True
        if insight.type is InsightType.SENTIMENT:
            return getattr(insight.payload, 'score', 1.0) < self.profile_config.sentiment_alert_threshold
        if insight.type is InsightType.TOPIC:
            return False
        return True

    def generate_notifications(self, insights: Optional[Iterable[Insight]]) -> List[Notification]:
        """Build and enqueue notifications for the qualifying insights.

        An insight that already produced a notification is skipped.

        Args:
            insights: Candidate insights

        Returns:
            Notifications that were enqueued

        Raises:
            ProfileInvariantError: On a duplicate notification id or a trigger time
                before creation time; the profile is halted afterwards
        """
        created: List[Notification] = []
        with self._lock:
            self._ensure_active()

            try:
                for insight in insights or ():
                    if not isinstance(insight, Insight) or not self.qualifies(insight):
                        continue
                    if insight.id in self._notified_insights:
                        logger.debug(f'Insight {insight.id} already notified for user {self.user_id}')
                        continue

                    notification = self.factory.build(insight, self._mentor_style)
                    if notification is None:
                        continue

                    # Delays count from the notification's own creation time
                    trigger_time = self.delivery_policy.trigger_time(notification.priority, notification.created_at)
                    notification = replace(notification, trigger_time=trigger_time)
                    self._insert(notification)
                    self._remember_insight(insight.id)
                    created.append(notification)
            finally:
                if created:
                    self._queue.sort(key=self._sort_key)

        for notification in created:
            logger.debug(f'Queued {notification.priority.value} notification {notification.id} for user '
                         f'{self.user_id} due at {notification.trigger_time.isoformat()}')
        return created

    def _insert(self, notification: Notification) -> None:
        if notification.id in self._sequence_by_id:
            self._halt(f'duplicate notification id {notification.id}')
        if notification.trigger_time < notification.created_at:
            self._halt(f'notification {notification.id} triggers before it was created')
        self._sequence_by_id[notification.id] = next(self._sequence)
        self._queue.append(notification)

    def _remember_insight(self, insight_id: str) -> None:
        self._notified_insights[insight_id] = True
        while len(self._notified_insights) > NOTIFIED_INSIGHT_MEMORY:
            self._notified_insights.popitem(last=False)

    def _sort_key(self, notification: Notification):
        return notification.priority.rank, notification.trigger_time, self._sequence_by_id[notification.id]

    def get_pending_notifications(self, now=None) -> List[Notification]:
        """Queued notifications that are due, in delivery order.

        Delivery order is priority (high first), then trigger time, then the
        order in which the notifications were enqueued.

        Args:
            now: Reference time (store clock if None)

        Returns:
            Point-in-time list of due notifications
        """
        with self._lock:
            now = now or self.clock.now()
            return [notification for notification in self._queue if notification.trigger_time <= now]

    def mark_sent(self, ids: Iterable[str]) -> int:
        """Remove dispatched notifications from the queue.

        Unknown ids are ignored, so repeating a call changes nothing.

        Args:
            ids: Ids of successfully dispatched notifications

        Returns:
            Number of notifications removed
        """
        id_set = set(ids or ())
        if not id_set:
            return 0

        with self._lock:
            sent = [notification for notification in self._queue if notification.id in id_set]
            if not sent:
                return 0
            self._queue = [notification for notification in self._queue if notification.id not in id_set]
            for notification in sent:
                del self._sequence_by_id[notification.id]
                self._sent.append(notification)

        logger.debug(f'Marked {len(sent)} notifications sent for user {self.user_id}')
        return len(sent)

    def mark_read(self, notification_id: str) -> bool:
        """Flag a delivered notification as read. Returns False if it is not in the sent history."""
        with self._lock:
            for index, notification in enumerate(self._sent):
                if notification.id == notification_id:
                    if not notification.read:
                        self._sent[index] = replace(notification, read=True)
                    return True
        return False

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    @property
    def mentor_style(self) -> MentorStyle:
        return self._mentor_style

    def set_mentor_style(self, mentor_style) -> MentorStyle:
        """Change the tone used for notifications built from now on."""
        with self._lock:
            self._mentor_style = MentorStyle.parse(mentor_style)
            return self._mentor_style

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._queue)

    @property
    def halted(self) -> bool:
        return self._halted_reason is not None

    def get_profile_snapshot(self) -> ProfileSnapshot:
        with self._lock:
            return ProfileSnapshot(user_id=self.user_id,
                                   mentor_style=self._mentor_style,
                                   topic_counts=MappingProxyType(dict(self._topic_counts)),
                                   rolling_sentiment=self._rolling_sentiment,
                                   sentiment_samples=self._sentiment_samples,
                                   history_size=len(self._history),
                                   pending_notifications=len(self._queue),
                                   unread_notifications=sum(1 for n in self._sent if not n.read),
                                   halted=self.halted)

    def get_history(self, limit: Optional[int] = None) -> List[HistoryEntry]:
        """Most recent history entries, oldest first."""
        with self._lock:
            entries = list(self._history)
        if limit is not None:
            entries = entries[-limit:] if limit > 0 else []
        return entries

    def get_recent_insights(self, limit: int = 20) -> List[Insight]:
        """Insights from the most recent conversations, newest first."""
        insights: List[Insight] = []
        if limit <= 0:
            return insights
        with self._lock:
            for entry in reversed(self._history):
                for insight in entry.insights:
                    insights.append(insight)
                    if len(insights) >= limit:
                        return insights
        return insights

    def get_notification_history(self, limit: Optional[int] = None) -> List[Notification]:
        """Dispatched notifications, newest first."""
        with self._lock:
            delivered = list(reversed(self._sent))
        if limit is not None:
            delivered = delivered[:max(limit, 0)]
        return delivered

    # ------------------------------------------------------------------
    # Invariant handling
    # ------------------------------------------------------------------

    def _halt(self, reason: str) -> None:
        self._halted_reason = reason
        logger.error(f'Profile {self.user_id} halted: {reason}')
        raise ProfileInvariantError(f'Profile {self.user_id} invariant violated: {reason}')

    def _ensure_active(self) -> None:
        if self._halted_reason is not None:
            raise ProfileInvariantError(f'Profile {self.user_id} is halted: {self._halted_reason}')
