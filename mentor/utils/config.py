"""
Configuration management for the mentor core and its application shell.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass
class AnalyzerConfig:
    """Configuration for the text analyzer."""
    max_topics: int


@dataclass
class ProfileConfig:
    """Configuration for per-user mentor profiles."""
    history_limit: int
    notification_history_limit: int
    sentiment_decay: float
    sentiment_alert_threshold: float
    default_mentor_style: str


@dataclass
class DeliveryConfig:
    """Delay applied to each notification priority before it becomes due."""
    high_delay_minutes: float
    medium_delay_minutes: float
    low_delay_minutes: float


@dataclass
class SchedulerConfig:
    """Configuration for the notification scheduler."""
    check_interval_seconds: float


@dataclass
class FeedConfig:
    """Configuration for the conversation feed buffer."""
    buffer_size: int
    overflow_policy: str


@dataclass
class MCPConfig:
    """Configuration for MCP interface."""
    transport: str
    host: str
    port: int


@dataclass
class AppConfig:
    """Main application configuration."""
    environment: str
    log_level: str
    analyzer: AnalyzerConfig
    profile: ProfileConfig
    delivery: DeliveryConfig
    scheduler: SchedulerConfig
    feed: FeedConfig
    mcp: MCPConfig


def load_config() -> AppConfig:
    """Load configuration from environment variables with defaults."""
    environment = os.getenv('ENVIRONMENT', 'development')

    analyzer_config = AnalyzerConfig(max_topics=int(os.getenv('MENTOR_MAX_TOPICS', '3')))

    profile_config = ProfileConfig(history_limit=int(os.getenv('MENTOR_HISTORY_LIMIT', '500')),
                                   notification_history_limit=int(os.getenv('MENTOR_NOTIFICATION_HISTORY_LIMIT', '200')),
                                   sentiment_decay=float(os.getenv('MENTOR_SENTIMENT_DECAY', '0.3')),
                                   sentiment_alert_threshold=float(os.getenv('MENTOR_SENTIMENT_ALERT_THRESHOLD', '0.3')),
                                   default_mentor_style=os.getenv('MENTOR_DEFAULT_STYLE', 'default'))

    # Minutes after enqueue at which each priority becomes due
    delivery_config = DeliveryConfig(high_delay_minutes=float(os.getenv('MENTOR_DELAY_HIGH_MINUTES', '0')),
                                     medium_delay_minutes=float(os.getenv('MENTOR_DELAY_MEDIUM_MINUTES', '5')),
                                     low_delay_minutes=float(os.getenv('MENTOR_DELAY_LOW_MINUTES', '30')))

    scheduler_config = SchedulerConfig(check_interval_seconds=float(os.getenv('MENTOR_CHECK_INTERVAL_SECONDS', '60')))

    feed_config = FeedConfig(buffer_size=int(os.getenv('MENTOR_FEED_BUFFER_SIZE', '100')),
                             overflow_policy=os.getenv('MENTOR_FEED_OVERFLOW_POLICY', 'drop_oldest'))

    # MCP configuration
    mcp_config = MCPConfig(transport=os.getenv('MCP_TRANSPORT', 'sse'),
                           host=os.getenv('MCP_HOST', '127.0.0.1'),
                           port=int(os.getenv('MCP_PORT', '8000')))

    return AppConfig(environment=environment,
                     log_level=os.getenv('LOG_LEVEL', 'INFO'),
                     analyzer=analyzer_config,
                     profile=profile_config,
                     delivery=delivery_config,
                     scheduler=scheduler_config,
                     feed=feed_config,
                     mcp=mcp_config)


# Global configuration instance
config = load_config()
