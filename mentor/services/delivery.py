"""
Delivery channels: the boundary between the core and platform notification services.

The core only decides what is due and when. A channel renders a notification
into its platform's payload and hands it to a sender supplied by the host
application (a push gateway client, a local-notification bridge, ...). Senders
own their own retries and timeouts.
"""

import inspect
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Union

from ..models.core import Notification, Priority
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

Payload = Dict[str, Any]
Sender = Callable[[Payload], Union[bool, None, Awaitable[Union[bool, None]]]]


class DeliveryError(Exception):
    """Custom exception for delivery channel errors."""
    pass


class DeliveryChannel(ABC):
    """Anything that can attempt to deliver one notification."""

    name = 'channel'

    @abstractmethod
    async def dispatch(self, notification: Notification) -> bool:
        """Attempt delivery.

        Returns:
            True if the notification was handed off successfully

        Raises:
            DeliveryError: Implementations may raise instead of returning False
        """


class PlatformDeliveryChannel(DeliveryChannel):
    """Channel that renders a platform payload and passes it to a sender.

    The sender may be sync or async. A falsy result or an exception counts as a
    failed dispatch; ``None`` counts as success for fire-and-forget senders.
    """

    def __init__(self, sender: Sender):
        if sender is None:
            raise ValueError('A sender is required')
        self.sender = sender

    @abstractmethod
    def render(self, notification: Notification) -> Payload:
        """Platform payload for a notification."""

    async def dispatch(self, notification: Notification) -> bool:
        payload = self.render(notification)
        try:
            result = self.sender(payload)
            if inspect.isawaitable(result):
                result = await result
        except DeliveryError:
            raise
        except Exception as e:
            raise DeliveryError(f'{self.name} delivery of notification {notification.id} failed: {e}') from e

        delivered = result is None or bool(result)
        if delivered:
            logger.debug(f'{self.name} delivered notification {notification.id}')
        return delivered


class IOSDeliveryChannel(PlatformDeliveryChannel):
    """Renders APNs-style alert payloads."""

    name = 'ios'
    INTERRUPTION_LEVELS = {
        Priority.HIGH: 'time-sensitive',
        Priority.MEDIUM: 'active',
        Priority.LOW: 'passive',
    }

    def render(self, notification: Notification) -> Payload:
        return {
            'aps': {
                'alert': {
                    'title': notification.title,
                    'body': notification.message
                },
                'sound': 'default' if notification.priority is Priority.HIGH else None,
                'interruption-level': self.INTERRUPTION_LEVELS[notification.priority],
            },
            'notification_id': notification.id,
            'priority': notification.priority.value,
        }


class AndroidDeliveryChannel(PlatformDeliveryChannel):
    """Renders FCM-style notification messages."""

    name = 'android'
    CHANNEL_ID = 'mentor_insights'

    def render(self, notification: Notification) -> Payload:
        return {
            'notification': {
                'title': notification.title,
                'body': notification.message
            },
            'android': {
                'priority': 'high' if notification.priority is Priority.HIGH else 'normal',
                'notification': {
                    'channel_id': self.CHANNEL_ID
                },
            },
            'data': {
                'notification_id': notification.id,
                'priority': notification.priority.value,
            },
        }
