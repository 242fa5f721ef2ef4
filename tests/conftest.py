"""
Pytest configuration and shared fixtures for the mentor core test suite.
"""

from datetime import datetime, timezone
from typing import List

import pytest

from mentor.models.core import (ActionItemPayload, ConversationRecord, Insight, InsightType, Notification,
                                SentimentLabel, SentimentPayload)
from mentor.services.delivery import DeliveryChannel
from mentor.services.delivery_policy import DeliveryTimePolicy
from mentor.services.notification_factory import NotificationFactory
from mentor.services.profile_store import MentorProfileStore
from mentor.utils.clock import ManualClock
from mentor.utils.config import (AnalyzerConfig, AppConfig, DeliveryConfig, FeedConfig, MCPConfig, ProfileConfig,
                                 SchedulerConfig)

T0 = datetime(2025, 3, 14, 9, 0, 0, tzinfo=timezone.utc)


class RecordingChannel(DeliveryChannel):
    """Channel that remembers what it delivered and can be told to fail for some ids."""

    name = 'recording'

    def __init__(self):
        self.delivered: List[Notification] = []
        self.attempts: List[str] = []
        self.fail_ids = set()
        self.raise_ids = set()

    async def dispatch(self, notification: Notification) -> bool:
        self.attempts.append(notification.id)
        if notification.id in self.raise_ids:
            raise RuntimeError('push gateway unavailable')
        if notification.id in self.fail_ids:
            return False
        self.delivered.append(notification)
        return True


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(T0)


@pytest.fixture
def profile_config() -> ProfileConfig:
    return ProfileConfig(history_limit=50,
                         notification_history_limit=20,
                         sentiment_decay=0.3,
                         sentiment_alert_threshold=0.3,
                         default_mentor_style='default')


@pytest.fixture
def analyzer_config() -> AnalyzerConfig:
    return AnalyzerConfig(max_topics=3)


@pytest.fixture
def delivery_config() -> DeliveryConfig:
    return DeliveryConfig(high_delay_minutes=0, medium_delay_minutes=5, low_delay_minutes=30)


@pytest.fixture
def app_config(profile_config, analyzer_config, delivery_config) -> AppConfig:
    return AppConfig(environment='test',
                     log_level='DEBUG',
                     analyzer=analyzer_config,
                     profile=profile_config,
                     delivery=delivery_config,
                     scheduler=SchedulerConfig(check_interval_seconds=0.01),
                     feed=FeedConfig(buffer_size=10, overflow_policy='drop_oldest'),
                     mcp=MCPConfig(transport='stdio', host='127.0.0.1', port=8000))


@pytest.fixture
def store(clock, profile_config, analyzer_config, delivery_config) -> MentorProfileStore:
    return MentorProfileStore(user_id='user-1',
                              factory=NotificationFactory(clock=clock),
                              delivery_policy=DeliveryTimePolicy(delivery_config),
                              clock=clock,
                              profile_config=profile_config,
                              analyzer_config=analyzer_config)


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


def make_record(text: str, record_id: str = 'conv-1', participants=('Sarah', 'You')) -> ConversationRecord:
    return ConversationRecord(id=record_id, text=text, timestamp=T0, participants=participants)


def action_insight(content: str = 'finish the quarterly report', urgency: str = 'high',
                   insight_id: str = 'insight-action') -> Insight:
    return Insight(id=insight_id,
                   type=InsightType.ACTION_ITEM,
                   payload=ActionItemPayload(content=content, urgency=urgency),
                   created_at=T0)


def sentiment_insight(score: float, insight_id: str = 'insight-sentiment') -> Insight:
    label = SentimentLabel.VERY_NEGATIVE if score < 0.25 else SentimentLabel.NEGATIVE
    return Insight(id=insight_id,
                   type=InsightType.SENTIMENT,
                   payload=SentimentPayload(score=score, label=label),
                   created_at=T0)
