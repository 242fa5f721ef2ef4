"""Tests for the clock, timestamp and configuration helpers."""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from conftest import T0
from mentor.utils import config as config_module
from mentor.utils.clock import ManualClock, SystemClock
from mentor.utils.logging_config import LOGGER_NAMESPACE, get_logger, setup_logging
from mentor.utils.timestamp_utils import to_datetime


class TestManualClock:

    def test_advance(self):
        clock = ManualClock(T0)
        assert clock.now() == T0
        assert clock.advance(timedelta(minutes=5)) == T0 + timedelta(minutes=5)
        assert clock.now() == T0 + timedelta(minutes=5)

    def test_cannot_move_backwards(self):
        with pytest.raises(ValueError):
            ManualClock(T0).advance(timedelta(seconds=-1))

    def test_set_normalizes_naive_datetimes(self):
        clock = ManualClock(T0)
        clock.set(datetime(2025, 6, 1, 12, 0))
        assert clock.now() == datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)

    def test_set_cannot_move_backwards(self):
        clock = ManualClock(T0)
        with pytest.raises(ValueError):
            clock.set(T0 - timedelta(seconds=1))
        assert clock.now() == T0


class TestSystemClock:

    def test_is_timezone_aware_and_close_to_wall_time(self):
        now = SystemClock().now()
        assert now.tzinfo is not None
        assert abs(now - datetime.now(timezone.utc)) < timedelta(seconds=5)

    def test_never_goes_backwards(self):
        clock = SystemClock()
        readings = [clock.now() for _ in range(1000)]
        assert readings == sorted(readings)


class TestToDatetime:

    def test_unix_seconds(self):
        assert to_datetime(T0.timestamp()) == T0

    def test_aware_datetime_unchanged(self):
        assert to_datetime(T0) is T0

    def test_none_is_now(self):
        assert abs(to_datetime(None) - datetime.now(timezone.utc)) < timedelta(seconds=5)


class TestLoadConfig:

    def test_defaults(self, monkeypatch):
        for name in ('MENTOR_MAX_TOPICS', 'MENTOR_DELAY_MEDIUM_MINUTES', 'MENTOR_CHECK_INTERVAL_SECONDS',
                     'MENTOR_FEED_OVERFLOW_POLICY', 'MENTOR_SENTIMENT_DECAY'):
            monkeypatch.delenv(name, raising=False)
        loaded = config_module.load_config()
        assert loaded.analyzer.max_topics == 3
        assert loaded.delivery.medium_delay_minutes == 5
        assert loaded.scheduler.check_interval_seconds == 60
        assert loaded.feed.overflow_policy == 'drop_oldest'
        assert loaded.profile.sentiment_decay == pytest.approx(0.3)

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv('MENTOR_MAX_TOPICS', '5')
        monkeypatch.setenv('MENTOR_DELAY_LOW_MINUTES', '45')
        monkeypatch.setenv('MENTOR_FEED_OVERFLOW_POLICY', 'drop_newest')
        loaded = config_module.load_config()
        assert loaded.analyzer.max_topics == 5
        assert loaded.delivery.low_delay_minutes == 45
        assert loaded.feed.overflow_policy == 'drop_newest'


class TestLogging:

    def test_package_loggers_keep_their_names(self):
        assert get_logger('mentor.services.profile_store').name == 'mentor.services.profile_store'

    def test_foreign_names_nested_under_namespace(self):
        assert get_logger('push_gateway').name == f'{LOGGER_NAMESPACE}.push_gateway'

    def test_level_follows_config(self, app_config):
        setup_logging(app_config)
        assert logging.getLogger(LOGGER_NAMESPACE).level == logging.DEBUG
        assert get_logger('mentor.session').getEffectiveLevel() == logging.DEBUG
