"""
MCP Interface Layer using fastmcp: the application shell around the mentor core.
"""
import uuid
from typing import Any, Dict, List, Optional

from fastmcp import FastMCP

from mentor.models.core import ConversationRecord, Insight, Notification
from mentor.services.profile_store import ProfileInvariantError
from mentor.session import SessionRegistry
from mentor.utils.config import config
from mentor.utils.logging_config import get_logger
from mentor.utils.timestamp_utils import to_datetime

logger = get_logger(__name__)

# Initialize FastMCP application
mcp = FastMCP('Mentor')
registry = SessionRegistry()


def _insight_to_dict(insight: Insight) -> Dict[str, Any]:
    payload = {key: (value.value if hasattr(value, 'value') else value) for key, value in vars(insight.payload).items()}
    return {'id': insight.id, 'type': insight.type.value, 'payload': payload, 'created_at': insight.created_at.isoformat()}


def _notification_to_dict(notification: Notification) -> Dict[str, Any]:
    return {
        'id': notification.id,
        'title': notification.title,
        'message': notification.message,
        'priority': notification.priority.value,
        'trigger_time': notification.trigger_time.isoformat(),
        'read': notification.read,
    }


def _require_user(user_id: str) -> None:
    if not user_id or not user_id.strip():
        raise ValueError('User ID is required')


@mcp.tool()
def ingest_conversation(user_id: str,
                        text: str,
                        participants: Optional[List[str]] = None,
                        conversation_id: Optional[str] = None,
                        timestamp: Optional[float] = None,
                        mentor_style: Optional[str] = None) -> List[Dict[str, Any]]:
    """Process one transcribed conversation for a user.

    Args:
        user_id: User ID
        text: Transcribed conversation text
        participants: People in the conversation
        conversation_id: Transport-assigned id (generated if omitted)
        timestamp: Unix timestamp in seconds (now if omitted)
        mentor_style: Preferred mentor style for this user

    Returns:
        Insights derived from the conversation
    """
    try:
        _require_user(user_id)
        record = ConversationRecord(id=conversation_id or str(uuid.uuid4()),
                                    text=text or '',
                                    timestamp=to_datetime(timestamp),
                                    participants=tuple(participants or ()))
        insights = registry.get_store(user_id, mentor_style).on_conversation_record(record)
        logger.debug(f'MCP ingest derived {len(insights)} insights for user {user_id}')
        return [_insight_to_dict(insight) for insight in insights]

    except ProfileInvariantError as e:
        logger.error(f'Profile error in MCP ingest: {e}')
        raise Exception(f'Conversation ingest failed: {e}')
    except Exception as e:
        logger.error(f'Unexpected error in MCP ingest: {e}')
        raise Exception(f'Conversation ingest failed: {e}')


@mcp.tool()
def get_profile(user_id: str) -> Dict[str, Any]:
    """Current profile snapshot for a user.

    Args:
        user_id: User ID

    Returns:
        Mentor style, topic counts, rolling sentiment and queue sizes
    """
    _require_user(user_id)
    snapshot = registry.get_store(user_id).get_profile_snapshot()
    return {
        'user_id': snapshot.user_id,
        'mentor_style': snapshot.mentor_style.value,
        'topic_counts': dict(snapshot.topic_counts),
        'top_topics': list(snapshot.top_topics),
        'rolling_sentiment': snapshot.rolling_sentiment,
        'history_size': snapshot.history_size,
        'pending_notifications': snapshot.pending_notifications,
        'unread_notifications': snapshot.unread_notifications,
    }


@mcp.tool()
def get_pending_notifications(user_id: str) -> List[Dict[str, Any]]:
    """Notifications due now for a user, in delivery order.

    Args:
        user_id: User ID

    Returns:
        Due notifications, most urgent first
    """
    _require_user(user_id)
    return [_notification_to_dict(n) for n in registry.get_store(user_id).get_pending_notifications()]


@mcp.tool()
def get_recent_insights(user_id: str, limit: int = 20) -> List[Dict[str, Any]]:
    """Insights from a user's most recent conversations, newest first.

    Args:
        user_id: User ID
        limit: Maximum number of insights to return (default: 20)
    """
    _require_user(user_id)
    return [_insight_to_dict(insight) for insight in registry.get_store(user_id).get_recent_insights(limit)]


@mcp.tool()
def get_conversation_history(user_id: str, limit: int = 10) -> List[Dict[str, Any]]:
    """Recently processed conversations with the people and emotions around them, oldest first.

    Args:
        user_id: User ID
        limit: Maximum number of conversations to return (default: 10)
    """
    _require_user(user_id)
    return [{
        'conversation_id': entry.record.id,
        'processed_at': entry.timestamp.isoformat(),
        'people': list(entry.context.people),
        'emotions': list(entry.context.emotions),
        'insight_count': len(entry.insights),
    } for entry in registry.get_store(user_id).get_history(limit)]


if __name__ == '__main__':
    transport = config.mcp.transport
    host = config.mcp.host
    port = config.mcp.port
    mcp.run(transport=transport, host=host, port=port)
