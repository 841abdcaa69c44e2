"""
Kitchen Notifier Abstract Base Class

Defines the interface for telling kitchen staff about a new order.
Supports both Mock (development) and Twilio WhatsApp (production) implementations.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from app.core.config import redact_phone
from app.schemas import KitchenNotificationRequest
from app.services.notifications.formatting import format_kitchen_message

logger = logging.getLogger(__name__)


@dataclass
class NotificationResult:
    """Result from sending a notification."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


class BaseKitchenNotifier(ABC):
    """Abstract base class for kitchen notifiers."""

    def __init__(self, kitchen_number: str, currency_symbol: str = "₹"):
        self.kitchen_number = kitchen_number
        self.currency_symbol = currency_symbol

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def send_whatsapp(
        self,
        to_phone: str,
        message: str,
    ) -> NotificationResult:
        """Send a WhatsApp message."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass

    async def notify_kitchen(self, notification: KitchenNotificationRequest) -> NotificationResult:
        """Format the order summary and send it to the kitchen number."""
        message = format_kitchen_message(notification, currency_symbol=self.currency_symbol)
        logger.info(
            f"Notifying kitchen about order {notification.order_id} "
            f"(customer {redact_phone(notification.phone_number)})"
        )
        return await self.send_whatsapp(self.kitchen_number, message)
