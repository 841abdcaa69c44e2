"""
Twilio WhatsApp Kitchen Notifier

Production implementation sending kitchen tickets through Twilio's WhatsApp
channel. The Twilio client authenticates with the account SID and auth token
(HTTP basic auth) and is blocking, so sends run in a worker thread.
"""

import asyncio
import logging

from twilio.base.exceptions import TwilioException
from twilio.rest import Client as TwilioClient

from app.core.config import Settings, get_settings, redact_phone
from app.core.errors import NotificationConfigError
from app.services.notifications.base import (
    BaseKitchenNotifier,
    NotificationResult,
)

logger = logging.getLogger(__name__)


def whatsapp_address(number: str) -> str:
    """Twilio addresses WhatsApp recipients as ``whatsapp:+<number>``."""
    if number.startswith("whatsapp:"):
        return number
    return f"whatsapp:{number}"


class TwilioWhatsAppNotifier(BaseKitchenNotifier):
    """Kitchen notifier using the Twilio Messages API over WhatsApp."""

    def __init__(self, settings: Settings = None, client: TwilioClient = None):
        settings = settings or get_settings()

        missing = settings.missing_notification_config()
        if missing:
            logger.error(f"Missing Twilio configuration: {missing}")
            raise NotificationConfigError()

        super().__init__(settings.chef_whatsapp_number, settings.currency_symbol)
        self.from_number = settings.twilio_whatsapp_from
        self.twilio_client = client or TwilioClient(
            settings.twilio_account_sid,
            settings.twilio_auth_token,
        )
        self.account_sid = settings.twilio_account_sid

        logger.info("TwilioWhatsAppNotifier initialized")

    @property
    def provider_name(self) -> str:
        return "twilio"

    async def send_whatsapp(
        self,
        to_phone: str,
        message: str,
    ) -> NotificationResult:
        """Send a WhatsApp message via Twilio."""
        try:
            result = await asyncio.to_thread(
                self.twilio_client.messages.create,
                body=message,
                from_=whatsapp_address(self.from_number),
                to=whatsapp_address(to_phone),
            )
        except (TwilioException, OSError) as e:
            # OSError covers connection errors and timeouts from the HTTP layer
            logger.error(f"Twilio error sending to {redact_phone(to_phone)}: {e}")
            return NotificationResult(
                success=False,
                error_message=str(e),
                provider="twilio"
            )

        logger.info(f"WhatsApp sent to {redact_phone(to_phone)}: {result.sid}")

        return NotificationResult(
            success=True,
            message_id=result.sid,
            provider="twilio"
        )

    async def health_check(self) -> bool:
        """Check the Twilio account is reachable with the configured credentials."""
        try:
            await asyncio.to_thread(
                lambda: self.twilio_client.api.v2010.accounts(self.account_sid).fetch()
            )
            return True
        except (TwilioException, OSError) as e:
            logger.error(f"Twilio health check failed: {e}")
            return False
