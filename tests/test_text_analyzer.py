"""Tests for the text analyzer heuristics."""

import pytest

from conftest import make_record
from mentor.models.core import (ActionItemPayload, ConversationRecord, InsightType, Sentiment, SentimentLabel,
                                TopicPayload)
from mentor.services import text_analyzer
from mentor.services.text_analyzer import (analyze, analyze_sentiment, derive_insights, extract_action_items,
                                           extract_context, identify_topics, label_for_score, urgency_for)

SCENARIO = 'I need to finish the report by tomorrow. It was a great meeting.'


class TestSentiment:
    """Test keyword-based sentiment scoring."""

    @pytest.mark.parametrize('text', [None, '', '   ', '...!?', 42])
    def test_empty_input_is_neutral(self, text):
        sentiment = analyze_sentiment(text)
        assert sentiment.score == 0.5
        assert sentiment.label is SentimentLabel.NEUTRAL

    def test_no_keywords_is_neutral(self):
        assert analyze_sentiment('We walked to the station and took the train').label is SentimentLabel.NEUTRAL

    def test_positive_text(self):
        # 1 positive hit in 5 tokens -> 0.5 + 2.5 * 0.2 = 1.0
        sentiment = analyze_sentiment('That was a great talk')
        assert sentiment.score == pytest.approx(1.0)
        assert sentiment.label is SentimentLabel.VERY_POSITIVE

    def test_negative_text_clamps_to_zero(self):
        sentiment = analyze_sentiment('awful terrible day')
        assert sentiment.score == 0.0
        assert sentiment.label is SentimentLabel.VERY_NEGATIVE

    def test_matching_is_case_insensitive_and_word_bounded(self):
        assert analyze_sentiment('GREAT').score == 1.0
        # "goodbye" is not "good"
        assert analyze_sentiment('goodbye everyone').label is SentimentLabel.NEUTRAL

    def test_mixed_hits_cancel_out(self):
        sentiment = analyze_sentiment('good and bad news today')
        assert sentiment.score == pytest.approx(0.5)

    @pytest.mark.parametrize('score,label', [
        (1.0, SentimentLabel.VERY_POSITIVE),
        (0.75, SentimentLabel.VERY_POSITIVE),
        (0.74, SentimentLabel.POSITIVE),
        (0.6, SentimentLabel.POSITIVE),
        (0.59, SentimentLabel.NEUTRAL),
        (0.4, SentimentLabel.NEUTRAL),
        (0.39, SentimentLabel.NEGATIVE),
        (0.25, SentimentLabel.NEGATIVE),
        (0.24, SentimentLabel.VERY_NEGATIVE),
        (0.0, SentimentLabel.VERY_NEGATIVE),
    ])
    def test_label_thresholds(self, score, label):
        assert label_for_score(score) is label

    @pytest.mark.parametrize('text', [
        'great great great', 'bad', 'I hate this problem but love the team', 'a b c d e f g h i j k l m n o p happy',
        'Frustrated!!! upset, annoyed; sad.'
    ])
    def test_score_always_in_range_and_consistent_with_label(self, text):
        sentiment = analyze_sentiment(text)
        assert 0.0 <= sentiment.score <= 1.0
        assert sentiment.label is label_for_score(sentiment.score)


class TestTopics:
    """Test topic identification."""

    def test_empty_text_has_no_topics(self):
        assert identify_topics(None) == []
        assert identify_topics('') == []

    def test_sorted_by_count(self):
        text = 'Budget talk: the budget and the money we save. Also one meeting.'
        assert identify_topics(text) == ['finance', 'work', 'social']

    def test_ties_follow_declaration_order(self):
        # one hit each for travel and work; work is declared first
        assert identify_topics('a trip after the meeting') == ['work', 'travel']

    def test_max_topics_limits_result(self):
        text = 'meeting gym book friend money phone trip art mood'
        assert len(identify_topics(text, max_topics=3)) == 3
        assert identify_topics(text, max_topics=0) == []
        assert len(identify_topics(text, max_topics=10)) == 9

    def test_word_boundaries(self):
        # "networking" must not count as "work"
        assert 'work' not in identify_topics('networking event')

    def test_multi_word_keyword(self):
        assert identify_topics('Time management is hard') == ['productivity']


class TestActionItems:
    """Test action item extraction."""

    def test_no_action_phrase_means_no_items(self):
        assert extract_action_items('It was a lovely morning. The coffee was hot!') == []

    def test_empty_input(self):
        assert extract_action_items(None) == []
        assert extract_action_items('') == []

    def test_scenario_strips_subject_and_phrase(self):
        items = extract_action_items(SCENARIO)
        assert len(items) == 1
        assert items[0].startswith('finish the report')

    def test_filler_words_removed(self):
        items = extract_action_items('Um, we should book the venue next week.')
        assert items == ['book the venue next week']

    def test_short_items_dropped(self):
        assert extract_action_items('I will go.') == []

    def test_length_measured_before_subject_is_trimmed(self):
        assert extract_action_items('I need to call Bob.') == ['call Bob']
        assert extract_action_items('Um, I must eat now.') == ['eat now']

    def test_duplicates_removed_in_first_seen_order(self):
        text = 'I need to call the dentist. We must review the budget. I need to call the dentist!'
        assert extract_action_items(text) == ['call the dentist', 'review the budget']

    def test_one_item_per_sentence(self):
        items = extract_action_items('We need to plan and we should also write the agenda for Monday')
        assert len(items) == 1

    def test_sentence_without_subject_is_kept_whole(self):
        items = extract_action_items('Remember the team must ship the release on Friday')
        assert items == ['Remember the team must ship the release on Friday']


class TestAnalyze:
    """Test the combined analysis."""

    def test_scenario(self):
        result = analyze(SCENARIO)
        assert any(item.startswith('finish the report') for item in result.action_items)
        assert result.sentiment.label in (SentimentLabel.POSITIVE, SentimentLabel.VERY_POSITIVE)
        assert 'work' in result.topics

    def test_never_raises_on_odd_input(self):
        for text in (None, '', '\n\n', '?!.', 'x' * 10000, 123, ['not', 'text']):
            result = analyze(text)
            assert 0.0 <= result.sentiment.score <= 1.0


class TestDeriveInsights:
    """Test insight derivation from a conversation record."""

    def test_scenario_insights(self):
        record = make_record(SCENARIO)
        insights = derive_insights(record)

        types = [insight.type for insight in insights]
        assert types == [InsightType.ACTION_ITEM, InsightType.SENTIMENT, InsightType.TOPIC]
        action = insights[0]
        assert isinstance(action.payload, ActionItemPayload)
        assert action.payload.urgency == 'high'
        assert action.source_record_id == 'conv-1'
        assert all(insight.is_well_formed() for insight in insights)
        assert isinstance(insights[2].payload, TopicPayload)

    def test_no_topic_insight_without_topics(self):
        insights = derive_insights(make_record('hello there'))
        assert [insight.type for insight in insights] == [InsightType.SENTIMENT]

    def test_insight_ids_are_unique(self):
        insights = derive_insights(make_record('I need to email the client today. I have to buy milk on the way.'))
        assert len({insight.id for insight in insights}) == len(insights)

    @pytest.mark.parametrize('item,urgency', [
        ('finish the report by tomorrow', 'high'),
        ('call the plumber ASAP', 'high'),
        ('read that book sometime', 'medium'),
        ('know the answer', 'medium'),
    ])
    def test_urgency(self, item, urgency):
        assert urgency_for(item) == urgency


class TestExtractContext:
    """Test conversation context extraction."""

    def test_people_exclude_wearer(self):
        record = make_record('hi', participants=('Sarah', 'You', 'Michael'))
        context = extract_context(record, Sentiment(0.8, SentimentLabel.VERY_POSITIVE))
        assert context.people == ('Sarah', 'Michael')
        assert context.emotions == ('happy', 'excited', 'enthusiastic')

    def test_missing_record(self):
        context = extract_context(None)
        assert context.people == ()
        assert context.emotions == ()

    def test_participants_are_stored_immutably(self):
        record = ConversationRecord(id='c', text='', timestamp=make_record('').timestamp, participants=['A', 'B'])
        assert record.participants == ('A', 'B')


def test_topic_table_has_ten_categories():
    assert len(text_analyzer.TOPIC_KEYWORDS) == 10
