"""Tests for the bounded conversation feed."""

import asyncio

import pytest

from conftest import make_record
from mentor.services.conversation_feed import ConversationFeed, ConversationFeedError
from mentor.services.profile_store import ProfileInvariantError
from mentor.utils.config import FeedConfig


class RecordingConsumer:

    def __init__(self, fail_on=None, halt_on=None):
        self.seen = []
        self.fail_on = fail_on
        self.halt_on = halt_on

    def __call__(self, record):
        if record.id == self.halt_on:
            raise ProfileInvariantError('duplicate notification id')
        if record.id == self.fail_on:
            raise RuntimeError('boom')
        self.seen.append(record.id)
        return []


def records(count):
    return [make_record(f'conversation {n}', record_id=f'c{n}') for n in range(count)]


class TestOverflow:
    """Test the overflow policies on a full buffer."""

    def test_drop_oldest(self):
        feed = ConversationFeed(RecordingConsumer(), FeedConfig(buffer_size=2, overflow_policy='drop_oldest'))
        results = [feed.publish(record) for record in records(3)]

        assert results == [True, True, True]
        assert feed.dropped == 1
        assert feed.backlog == 2

    def test_drop_newest(self):
        feed = ConversationFeed(RecordingConsumer(), FeedConfig(buffer_size=2, overflow_policy='drop_newest'))
        results = [feed.publish(record) for record in records(3)]

        assert results == [True, True, False]
        assert feed.dropped == 1

    @pytest.mark.asyncio
    async def test_drop_oldest_keeps_most_recent_records(self):
        consumer = RecordingConsumer()
        feed = ConversationFeed(consumer, FeedConfig(buffer_size=2, overflow_policy='drop_oldest'))
        for record in records(4):
            feed.publish(record)

        await feed.start()
        await feed.stop(drain=True)
        assert consumer.seen == ['c2', 'c3']

    def test_invalid_configuration(self):
        with pytest.raises(ConversationFeedError):
            ConversationFeed(RecordingConsumer(), FeedConfig(buffer_size=0, overflow_policy='drop_oldest'))
        with pytest.raises(ConversationFeedError):
            ConversationFeed(RecordingConsumer(), FeedConfig(buffer_size=5, overflow_policy='block'))


class TestConsumer:
    """Test the consumer task."""

    @pytest.mark.asyncio
    async def test_records_processed_in_order(self):
        consumer = RecordingConsumer()
        feed = ConversationFeed(consumer, FeedConfig(buffer_size=10, overflow_policy='drop_oldest'))
        await feed.start()
        await feed.start()
        for record in records(5):
            feed.publish(record)
        await feed.stop(drain=True)

        assert consumer.seen == ['c0', 'c1', 'c2', 'c3', 'c4']
        assert feed.processed == 5
        assert not feed.is_running

    @pytest.mark.asyncio
    async def test_consumer_error_does_not_stop_feed(self):
        consumer = RecordingConsumer(fail_on='c1')
        feed = ConversationFeed(consumer, FeedConfig(buffer_size=10, overflow_policy='drop_oldest'))
        for record in records(3):
            feed.publish(record)
        await feed.start()
        await feed.stop(drain=True)

        assert consumer.seen == ['c0', 'c2']

    @pytest.mark.asyncio
    async def test_invariant_violation_halts_feed(self):
        consumer = RecordingConsumer(halt_on='c1')
        feed = ConversationFeed(consumer, FeedConfig(buffer_size=10, overflow_policy='drop_oldest'))
        for record in records(4):
            feed.publish(record)
        await feed.start()
        await asyncio.sleep(0.01)

        assert consumer.seen == ['c0']
        assert feed.backlog == 0
        assert feed.publish(make_record('late', record_id='late')) is False
        await feed.stop()

    @pytest.mark.asyncio
    async def test_stop_is_safe_before_start_and_without_drain(self):
        consumer = RecordingConsumer()
        feed = ConversationFeed(consumer, FeedConfig(buffer_size=10, overflow_policy='drop_oldest'))
        await feed.stop()
        await feed.start()
        await feed.stop(drain=False)
        assert not feed.is_running
