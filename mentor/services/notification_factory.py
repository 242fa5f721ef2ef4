"""
Notification Factory: turns one insight and a mentor style into a notification record.
"""

import uuid
from typing import Callable, Dict, Optional, Tuple

from ..models.core import (ActionItemPayload, FocusTimePayload, Insight, InsightType, LearningPayload,
                           MeetingPrepPayload, MentorStyle, Notification, Priority, SentimentPayload, SocialPayload,
                           TopicPayload, WellbeingPayload)
from ..utils.clock import Clock, SystemClock
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

# (title, message, priority)
Content = Tuple[str, str, Priority]

ENCOURAGEMENT = "You're doing great!"
_SENTENCE_ENDINGS = ('.', '!', '?')


def _action_item(payload: ActionItemPayload) -> Content:
    priority = Priority.HIGH if str(payload.urgency).lower() == 'high' else Priority.MEDIUM
    return 'Action Item Reminder', f"Don't forget: {payload.content}", priority


def _meeting_prep(payload: MeetingPrepPayload) -> Content:
    people = ', '.join(payload.participants)
    message = f'You have a meeting with {people} in {payload.minutes_until} minutes. {payload.context or ""}'
    return 'Meeting Preparation', message.strip(), Priority.HIGH


def _focus_time(payload: FocusTimePayload) -> Content:
    message = f"You've been {payload.focus_state} for {payload.duration_minutes} minutes. {payload.suggestion or ''}"
    return 'Focus Time Analysis', message.strip(), Priority.MEDIUM


def _wellbeing(payload: WellbeingPayload) -> Content:
    return 'Wellbeing Check', payload.content, Priority.MEDIUM


def _learning(payload: LearningPayload) -> Content:
    message = f'Based on your conversations about {payload.topic}, you might be interested in {payload.suggestion}.'
    return 'Learning Opportunity', message, Priority.LOW


def _social(payload: SocialPayload) -> Content:
    return 'Social Insight', payload.content, Priority.LOW


def _sentiment(payload: SentimentPayload) -> Content:
    label = payload.label.value.replace('_', ' ')
    message = (f'Your recent conversation sounded {label}. '
               'Take a short break and note one thing that went well today.')
    return 'Mentor Insight', message, Priority.MEDIUM


def _topic(payload: TopicPayload) -> Content:
    return 'Mentor Insight', f"You've been talking a lot about {', '.join(payload.topics)}.", Priority.MEDIUM


CONTENT_BUILDERS: Dict[InsightType, Callable] = {
    InsightType.ACTION_ITEM: _action_item,
    InsightType.SENTIMENT: _sentiment,
    InsightType.TOPIC: _topic,
    InsightType.MEETING_PREP: _meeting_prep,
    InsightType.FOCUS_TIME: _focus_time,
    InsightType.WELLBEING: _wellbeing,
    InsightType.LEARNING: _learning,
    InsightType.SOCIAL: _social,
}

_missing = set(InsightType) - set(CONTENT_BUILDERS)
if _missing:
    raise RuntimeError(f'Insight types without notification content: {sorted(t.value for t in _missing)}')


def _encourage(message: str) -> str:
    if not message:
        return ENCOURAGEMENT
    if message.rstrip().endswith(_SENTENCE_ENDINGS):
        return f'{message.rstrip()} {ENCOURAGEMENT}'
    return f'{message.rstrip()}. {ENCOURAGEMENT}'


STYLE_DECORATORS: Dict[MentorStyle, Callable[[str], str]] = {
    MentorStyle.SUPPORTIVE_COACH: _encourage,
    MentorStyle.DIRECT_ADVISOR: lambda message: message,
    MentorStyle.ANALYTICAL_GUIDE: lambda message: f'Analysis: {message}',
    MentorStyle.FRIENDLY_COMPANION: lambda message: f'Hey there! {message}',
    MentorStyle.PRODUCTIVITY_EXPERT: lambda message: f'For optimal productivity: {message}',
    MentorStyle.DEFAULT: lambda message: message,
}


def apply_style(message: str, mentor_style) -> str:
    """Decorate a message in the tone of the given mentor style. Never removes content."""
    return STYLE_DECORATORS[MentorStyle.parse(mentor_style)](message)


class NotificationFactory:
    """Builds notifications from insights."""

    def __init__(self, clock: Optional[Clock] = None, id_factory: Optional[Callable[[], str]] = None):
        """
        Args:
            clock: Source of creation timestamps (system clock if None)
            id_factory: Source of notification ids (uuid4 strings if None)
        """
        self.clock = clock or SystemClock()
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))

    def build(self, insight: Optional[Insight], mentor_style=MentorStyle.DEFAULT) -> Optional[Notification]:
        """Build the notification for an insight.

        Args:
            insight: Insight to notify about
            mentor_style: Tone used to decorate the message

        Returns:
            Notification due at its creation time, or None when the insight is
            missing or its payload does not match its type
        """
        if insight is None or not isinstance(insight, Insight):
            return None
        if not insight.is_well_formed():
            logger.debug(f'Skipping insight {insight.id}: payload does not match type {insight.type}')
            return None

        title, message, priority = CONTENT_BUILDERS[insight.type](insight.payload)
        message = apply_style(message, mentor_style)

        created_at = self.clock.now()
        return Notification(id=self.id_factory(),
                            title=title,
                            message=message,
                            priority=priority,
                            trigger_time=created_at,
                            created_at=created_at,
                            read=False,
                            source_insight_id=insight.id)
