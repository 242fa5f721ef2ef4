"""
Delivery-time policy: when a notification of a given priority becomes due.
"""

from datetime import datetime, timedelta
from typing import Dict, Optional

from ..models.core import Priority
from ..utils.config import DeliveryConfig, config


class DeliveryTimePolicy:
    """Pure mapping from priority to a delay after enqueue.

    High priority is immediate by default, medium waits five minutes and low
    waits thirty.
    """

    def __init__(self, delivery_config: Optional[DeliveryConfig] = None):
        delivery_config = delivery_config or config.delivery
        self.delays: Dict[Priority, timedelta] = {
            Priority.HIGH: timedelta(minutes=delivery_config.high_delay_minutes),
            Priority.MEDIUM: timedelta(minutes=delivery_config.medium_delay_minutes),
            Priority.LOW: timedelta(minutes=delivery_config.low_delay_minutes),
        }
        for priority, delay in self.delays.items():
            if delay < timedelta(0):
                raise ValueError(f'Delivery delay for {priority.value} priority must not be negative')

    def delay_for(self, priority: Priority) -> timedelta:
        return self.delays[Priority.parse(priority)]

    def trigger_time(self, priority: Priority, now: datetime) -> datetime:
        """Time at or after which a notification enqueued at `now` may be dispatched."""
        return now + self.delay_for(priority)
