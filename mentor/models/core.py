"""
Core data models for the mentor core.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple, Type, Union


@dataclass(frozen=True)
class ConversationRecord:
    """One transcribed conversation snippet as delivered by the wearable transport."""
    id: str
    text: str
    timestamp: datetime
    participants: Tuple[str, ...] = ()

    def __post_init__(self):
        # Accept any sequence but store an immutable one
        object.__setattr__(self, 'participants', tuple(self.participants or ()))


class SentimentLabel(str, Enum):
    """Five ordered sentiment labels, most negative first."""
    VERY_NEGATIVE = 'very_negative'
    NEGATIVE = 'negative'
    NEUTRAL = 'neutral'
    POSITIVE = 'positive'
    VERY_POSITIVE = 'very_positive'


@dataclass(frozen=True)
class Sentiment:
    """Sentiment score in [0, 1] and its label."""
    score: float
    label: SentimentLabel


NEUTRAL_SENTIMENT = Sentiment(score=0.5, label=SentimentLabel.NEUTRAL)


@dataclass(frozen=True)
class AnalysisResult:
    """Everything the text analyzer derives from one piece of text."""
    sentiment: Sentiment = NEUTRAL_SENTIMENT
    topics: Tuple[str, ...] = ()
    action_items: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ConversationContext:
    """People and emotions surrounding a conversation."""
    people: Tuple[str, ...] = ()
    emotions: Tuple[str, ...] = ()


class InsightType(str, Enum):
    """Kinds of insight a conversation can yield."""
    ACTION_ITEM = 'action_item'
    SENTIMENT = 'sentiment'
    TOPIC = 'topic'
    MEETING_PREP = 'meeting_prep'
    FOCUS_TIME = 'focus_time'
    WELLBEING = 'wellbeing'
    LEARNING = 'learning'
    SOCIAL = 'social'


@dataclass(frozen=True)
class ActionItemPayload:
    content: str
    urgency: str = 'medium'


@dataclass(frozen=True)
class SentimentPayload:
    score: float
    label: SentimentLabel


@dataclass(frozen=True)
class TopicPayload:
    topics: Tuple[str, ...]


@dataclass(frozen=True)
class MeetingPrepPayload:
    participants: Tuple[str, ...]
    minutes_until: int
    context: str = ''


@dataclass(frozen=True)
class FocusTimePayload:
    focus_state: str
    duration_minutes: int
    suggestion: str = ''


@dataclass(frozen=True)
class WellbeingPayload:
    content: str


@dataclass(frozen=True)
class LearningPayload:
    topic: str
    suggestion: str


@dataclass(frozen=True)
class SocialPayload:
    content: str


InsightPayload = Union[ActionItemPayload, SentimentPayload, TopicPayload, MeetingPrepPayload, FocusTimePayload,
                       WellbeingPayload, LearningPayload, SocialPayload]

INSIGHT_PAYLOAD_TYPES: Dict[InsightType, Type] = {
    InsightType.ACTION_ITEM: ActionItemPayload,
    InsightType.SENTIMENT: SentimentPayload,
    InsightType.TOPIC: TopicPayload,
    InsightType.MEETING_PREP: MeetingPrepPayload,
    InsightType.FOCUS_TIME: FocusTimePayload,
    InsightType.WELLBEING: WellbeingPayload,
    InsightType.LEARNING: LearningPayload,
    InsightType.SOCIAL: SocialPayload,
}

_unmapped = set(InsightType) - set(INSIGHT_PAYLOAD_TYPES)
if _unmapped:
    raise RuntimeError(f'Insight types without a payload class: {sorted(t.value for t in _unmapped)}')


@dataclass(frozen=True)
class Insight:
    """A structured fact derived from one conversation record."""
    id: str
    type: InsightType
    payload: InsightPayload
    created_at: datetime
    source_record_id: Optional[str] = None

    def is_well_formed(self) -> bool:
        """True when the payload is the variant expected for the insight type."""
        expected = INSIGHT_PAYLOAD_TYPES.get(self.type)
        return expected is not None and isinstance(self.payload, expected)


class MentorStyle(str, Enum):
    """Named tone profile used to decorate notification text."""
    SUPPORTIVE_COACH = 'supportive_coach'
    DIRECT_ADVISOR = 'direct_advisor'
    ANALYTICAL_GUIDE = 'analytical_guide'
    FRIENDLY_COMPANION = 'friendly_companion'
    PRODUCTIVITY_EXPERT = 'productivity_expert'
    DEFAULT = 'default'

    @classmethod
    def parse(cls, value: Union[str, 'MentorStyle', None]) -> 'MentorStyle':
        """Accept enum values or display names ("Supportive Coach"); anything else is DEFAULT."""
        if isinstance(value, MentorStyle):
            return value
        if not value:
            return cls.DEFAULT
        normalized = str(value).strip().lower().replace(' ', '_').replace('-', '_')
        try:
            return cls(normalized)
        except ValueError:
            return cls.DEFAULT


class Priority(str, Enum):
    """Notification priority. Lower rank is more urgent."""
    HIGH = 'high'
    MEDIUM = 'medium'
    LOW = 'low'

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]

    @classmethod
    def parse(cls, value: Union[str, 'Priority', None], default: 'Priority' = None) -> 'Priority':
        if isinstance(value, Priority):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return default or cls.MEDIUM


_PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


@dataclass(frozen=True)
class Notification:
    """A notification waiting for, or past, delivery.

    The source insight is referenced by id only, for traceability.
    """
    id: str
    title: str
    message: str
    priority: Priority
    trigger_time: datetime
    created_at: datetime
    read: bool = False
    source_insight_id: Optional[str] = None


@dataclass(frozen=True)
class HistoryEntry:
    """One processed conversation and what was derived from it."""
    timestamp: datetime
    record: ConversationRecord
    insights: Tuple[Insight, ...] = ()
    context: ConversationContext = field(default_factory=ConversationContext)


@dataclass(frozen=True)
class ProfileSnapshot:
    """Read-only point-in-time view of a mentor profile."""
    user_id: str
    mentor_style: MentorStyle
    topic_counts: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))
    rolling_sentiment: Optional[float] = None
    sentiment_samples: int = 0
    history_size: int = 0
    pending_notifications: int = 0
    unread_notifications: int = 0
    halted: bool = False

    @property
    def top_topics(self) -> Tuple[str, ...]:
        return tuple(topic for topic, _ in sorted(self.topic_counts.items(), key=lambda item: -item[1]))
