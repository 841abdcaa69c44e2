"""
Kitchen Notifier Factory

Returns Mock or Twilio WhatsApp notifier based on ENV_MODE.
"""

import logging
from functools import lru_cache

from app.core.config import get_settings
from app.services.notifications.base import (
    BaseKitchenNotifier,
    NotificationResult,
)
from app.services.notifications.formatting import format_kitchen_message
from app.services.notifications.mock import MockKitchenNotifier
from app.services.notifications.real import TwilioWhatsAppNotifier

logger = logging.getLogger(__name__)


@lru_cache()
def get_kitchen_notifier() -> BaseKitchenNotifier:
    """
    Get the configured kitchen notifier.

    Raises:
        NotificationConfigError: real services requested but Twilio is not configured
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Kitchen Notifier: Using MockKitchenNotifier (development mode)")
        return MockKitchenNotifier(
            kitchen_number=settings.chef_whatsapp_number or "+910000000000",
            currency_symbol=settings.currency_symbol,
            failure_rate=settings.mock_notification_failure_rate,
        )
    else:
        logger.info(f"Kitchen Notifier: Using TwilioWhatsAppNotifier ({settings.env_mode.value} mode)")
        return TwilioWhatsAppNotifier(settings)


def reset_kitchen_notifier() -> None:
    """Clear the cached notifier instance."""
    get_kitchen_notifier.cache_clear()


__all__ = [
    "get_kitchen_notifier",
    "reset_kitchen_notifier",
    "format_kitchen_message",
    "BaseKitchenNotifier",
    "NotificationResult",
    "MockKitchenNotifier",
    "TwilioWhatsAppNotifier",
]
