"""
Text Analyzer: deterministic keyword heuristics for sentiment, topics and action items.

Every function here is total. Missing or empty text produces empty collections and
a neutral sentiment instead of an error.
"""

import re
import uuid
from typing import Callable, Dict, List, Optional, Tuple

from ..models.core import (NEUTRAL_SENTIMENT, ActionItemPayload, AnalysisResult, ConversationContext, ConversationRecord,
                           Insight, InsightType, Sentiment, SentimentLabel, SentimentPayload, TopicPayload)
from ..utils.config import config
from ..utils.logging_config import get_logger
from ..utils.timestamp_utils import to_datetime

logger = get_logger(__name__)

POSITIVE_WORDS = frozenset([
    'good', 'great', 'excellent', 'amazing', 'wonderful', 'fantastic', 'happy', 'excited', 'pleased', 'love', 'enjoy',
    'positive', 'success', 'achievement', 'accomplished', 'proud', 'delighted', 'perfect'
])

NEGATIVE_WORDS = frozenset([
    'bad', 'terrible', 'awful', 'horrible', 'poor', 'disappointing', 'sad', 'angry', 'upset', 'hate', 'dislike',
    'negative', 'failure', 'problem', 'issue', 'trouble', 'difficult', 'frustrated', 'annoyed'
])

# Checked top to bottom; first threshold the score reaches wins
SENTIMENT_THRESHOLDS: Tuple[Tuple[float, SentimentLabel], ...] = (
    (0.75, SentimentLabel.VERY_POSITIVE),
    (0.6, SentimentLabel.POSITIVE),
    (0.4, SentimentLabel.NEUTRAL),
    (0.25, SentimentLabel.NEGATIVE),
)

# Declaration order breaks ties between equally frequent topics
TOPIC_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    'work': ('job', 'work', 'project', 'task', 'deadline', 'meeting', 'client', 'boss', 'colleague'),
    'health': ('health', 'exercise', 'workout', 'gym', 'run', 'sleep', 'diet', 'food', 'stress', 'tired'),
    'productivity': ('productive', 'efficiency', 'focus', 'distraction', 'procrastination', 'time management',
                     'priority'),
    'learning': ('learn', 'study', 'course', 'book', 'read', 'knowledge', 'skill', 'training'),
    'social': ('friend', 'family', 'relationship', 'social', 'party', 'meet', 'talk', 'conversation'),
    'finance': ('money', 'finance', 'budget', 'expense', 'cost', 'save', 'invest', 'purchase', 'buy'),
    'technology': ('tech', 'computer', 'software', 'app', 'device', 'phone', 'digital', 'online', 'internet'),
    'travel': ('travel', 'trip', 'vacation', 'visit', 'flight', 'hotel', 'destination', 'journey'),
    'creativity': ('creative', 'design', 'art', 'write', 'create', 'idea', 'inspiration', 'project'),
    'wellbeing': ('wellbeing', 'happiness', 'mood', 'emotion', 'feel', 'mental', 'meditation', 'mindfulness'),
}

ACTION_PHRASES: Tuple[str, ...] = ('need to', 'have to', 'should', 'will', 'going to', 'must', 'plan to', 'want to',
                                   'intend to')

URGENT_WORDS: Tuple[str, ...] = ('today', 'tonight', 'tomorrow', 'asap', 'urgent', 'urgently', 'immediately',
                                 'right away', 'deadline', 'now')

EMOTIONS_BY_LABEL: Dict[SentimentLabel, Tuple[str, ...]] = {
    SentimentLabel.VERY_POSITIVE: ('happy', 'excited', 'enthusiastic'),
    SentimentLabel.POSITIVE: ('content', 'pleased', 'satisfied'),
    SentimentLabel.NEUTRAL: ('calm', 'balanced'),
    SentimentLabel.NEGATIVE: ('frustrated', 'disappointed', 'concerned'),
    SentimentLabel.VERY_NEGATIVE: ('angry', 'upset', 'stressed'),
}

SELF_PARTICIPANT = 'you'
MIN_ACTION_ITEM_LENGTH = 10

_TOKEN_PATTERN = re.compile(r'\w+')
_SENTENCE_SPLIT = re.compile(r'[.!?]+')
_FILLER_PREFIX = re.compile(r'^(?:um|uh|so|like|well|i mean|you know|basically)\b[\s,]*', re.IGNORECASE)
_TOPIC_PATTERNS: Dict[str, Tuple[re.Pattern, ...]] = {
    topic: tuple(re.compile(rf'\b{re.escape(keyword)}\b') for keyword in keywords)
    for topic, keywords in TOPIC_KEYWORDS.items()
}
_URGENT_PATTERN = re.compile(r'\b(?:' + '|'.join(re.escape(word) for word in URGENT_WORDS) + r')\b', re.IGNORECASE)


def _as_text(text) -> str:
    return text if isinstance(text, str) else ''


def label_for_score(score: float) -> SentimentLabel:
    """Map a sentiment score onto its label."""
    for threshold, label in SENTIMENT_THRESHOLDS:
        if score >= threshold:
            return label
    return SentimentLabel.VERY_NEGATIVE


def analyze_sentiment(text: Optional[str]) -> Sentiment:
    """Score text by the share of positive versus negative keywords.

    Args:
        text: Conversation text

    Returns:
        Sentiment with a score clamped to [0, 1]
    """
    tokens = _TOKEN_PATTERN.findall(_as_text(text).lower())
    if not tokens:
        return NEUTRAL_SENTIMENT

    positive_count = sum(1 for token in tokens if token in POSITIVE_WORDS)
    negative_count = sum(1 for token in tokens if token in NEGATIVE_WORDS)
    if positive_count == 0 and negative_count == 0:
        return NEUTRAL_SENTIMENT

    total = len(tokens)
    score = 0.5 + 2.5 * (positive_count / total - negative_count / total)
    score = max(0.0, min(1.0, score))
    return Sentiment(score=score, label=label_for_score(score))


def identify_topics(text: Optional[str], max_topics: Optional[int] = None) -> List[str]:
    """Rank the fixed topic categories by keyword hits.

    Args:
        text: Conversation text
        max_topics: Maximum number of topics to return (config default if None)

    Returns:
        Topic names, most mentioned first
    """
    if max_topics is None:
        max_topics = config.analyzer.max_topics
    lower_text = _as_text(text).lower()
    if not lower_text or max_topics <= 0:
        return []

    scores = {}
    for topic, patterns in _TOPIC_PATTERNS.items():
        count = sum(len(pattern.findall(lower_text)) for pattern in patterns)
        if count > 0:
            scores[topic] = count

    # sorted() is stable, so equal counts keep declaration order
    ranked = sorted(scores, key=lambda topic: -scores[topic])
    return ranked[:max_topics]


def _strip_fillers(sentence: str) -> str:
    return _FILLER_PREFIX.sub('', sentence.strip()).strip()


def _strip_subject(item: str, phrase: str) -> str:
    # "I need to finish the report" -> "finish the report"
    subject_prefix = re.compile(rf'^(?:i|we|you|they)\s+(?:\w+\s+)?{re.escape(phrase)}\s+', re.IGNORECASE)
    return subject_prefix.sub('', item, count=1).strip() or item


def extract_action_items(text: Optional[str]) -> List[str]:
    """Pull sentences that read like commitments or tasks.

    The minimum length applies to the sentence once fillers are removed, before
    the leading subject and action phrase are trimmed off.

    Args:
        text: Conversation text

    Returns:
        Distinct action items in order of first appearance
    """
    text = _as_text(text)
    if not text:
        return []

    action_items: List[str] = []
    for sentence in _SENTENCE_SPLIT.split(text):
        if not sentence.strip():
            continue
        lowered = sentence.lower()
        for phrase in ACTION_PHRASES:
            if phrase not in lowered:
                continue
            sentence = _strip_fillers(sentence)
            if len(sentence) > MIN_ACTION_ITEM_LENGTH:
                item = _strip_subject(sentence, phrase)
                if item not in action_items:
                    action_items.append(item)
            break
    return action_items


def analyze(text: Optional[str], max_topics: Optional[int] = None) -> AnalysisResult:
    """Run sentiment, topic and action item extraction over one piece of text."""
    return AnalysisResult(sentiment=analyze_sentiment(text),
                          topics=tuple(identify_topics(text, max_topics)),
                          action_items=tuple(extract_action_items(text)))


def urgency_for(action_item: str) -> str:
    """'high' when the item mentions something time-critical, else 'medium'."""
    return 'high' if _URGENT_PATTERN.search(action_item or '') else 'medium'


def derive_insights(record: ConversationRecord,
                    analysis: Optional[AnalysisResult] = None,
                    id_factory: Callable[[], str] = lambda: str(uuid.uuid4())) -> List[Insight]:
    """Turn an analysis of a conversation record into insights.

    Args:
        record: Source conversation
        analysis: Precomputed analysis (computed from record.text if None)
        id_factory: Produces insight ids

    Returns:
        One action item insight per action item, one sentiment insight and,
        when any topics were found, one topic insight
    """
    if analysis is None:
        analysis = analyze(record.text)
    created_at = to_datetime(record.timestamp)

    insights = [
        Insight(id=id_factory(),
                type=InsightType.ACTION_ITEM,
                payload=ActionItemPayload(content=item, urgency=urgency_for(item)),
                created_at=created_at,
                source_record_id=record.id) for item in analysis.action_items
    ]
    insights.append(
        Insight(id=id_factory(),
                type=InsightType.SENTIMENT,
                payload=SentimentPayload(score=analysis.sentiment.score, label=analysis.sentiment.label),
                created_at=created_at,
                source_record_id=record.id))
    if analysis.topics:
        insights.append(
            Insight(id=id_factory(),
                    type=InsightType.TOPIC,
                    payload=TopicPayload(topics=tuple(analysis.topics)),
                    created_at=created_at,
                    source_record_id=record.id))

    logger.debug(f'Derived {len(insights)} insights from conversation {record.id}')
    return insights


def extract_context(record: Optional[ConversationRecord], sentiment: Optional[Sentiment] = None) -> ConversationContext:
    """People other than the wearer, and emotions suggested by the sentiment label."""
    if record is None:
        return ConversationContext()
    people = tuple(p for p in record.participants if p and p.strip().lower() != SELF_PARTICIPANT)
    emotions = EMOTIONS_BY_LABEL.get(sentiment.label, ()) if sentiment is not None else ()
    return ConversationContext(people=people, emotions=emotions)
