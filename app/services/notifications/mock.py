"""
Mock Kitchen Notifier

Simulates WhatsApp sending for development.
No actual messages are sent - just logged.
"""

import asyncio
import random
import uuid
import logging

from app.core.config import redact_phone
from app.services.notifications.base import (
    BaseKitchenNotifier,
    NotificationResult,
)

logger = logging.getLogger(__name__)


class MockKitchenNotifier(BaseKitchenNotifier):
    """Mock notifier for development; keeps every message it 'sends'."""

    def __init__(
        self,
        kitchen_number: str = "+910000000000",
        currency_symbol: str = "₹",
        failure_rate: float = 0.0,
        simulate_latency: bool = True,
    ):
        super().__init__(kitchen_number, currency_symbol)
        self.failure_rate = failure_rate
        self.simulate_latency = simulate_latency
        self.sent_messages: list[tuple[str, str]] = []
        logger.info(f"MockKitchenNotifier initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> None:
        """Simulate network latency."""
        if self.simulate_latency:
            await asyncio.sleep(random.uniform(0.05, 0.2))

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def send_whatsapp(
        self,
        to_phone: str,
        message: str,
    ) -> NotificationResult:
        """Simulate sending a WhatsApp message."""
        await self._simulate_latency()

        if self._should_fail():
            logger.warning(f"Mock WhatsApp failed (simulated) to {redact_phone(to_phone)}")
            return NotificationResult(
                success=False,
                error_message="Simulated WhatsApp failure",
                provider="mock"
            )

        message_id = f"SM_mock_{uuid.uuid4().hex[:24]}"
        self.sent_messages.append((to_phone, message))
        logger.info(f"Mock WhatsApp sent to {redact_phone(to_phone)} (ID: {message_id})")

        return NotificationResult(
            success=True,
            message_id=message_id,
            provider="mock"
        )

    async def health_check(self) -> bool:
        """Mock always returns healthy."""
        return True
