"""Kitchen relay: message formatting, the endpoint, and the Twilio notifier."""

import asyncio
import uuid
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from twilio.base.exceptions import TwilioException

from app.core.config import Settings
from app.core.errors import NotificationConfigError
from app.main import app
from app.schemas import KitchenNotificationRequest
from app.services.notifications import (
    BaseKitchenNotifier,
    MockKitchenNotifier,
    NotificationResult,
    TwilioWhatsAppNotifier,
    format_kitchen_message,
    get_kitchen_notifier,
)
from app.services.notifications.formatting import MAX_ITEM_LINES


def _notification_payload(**overrides) -> dict:
    payload = {
        "orderId": str(uuid.uuid4()),
        "orderNumber": "ORD-20261018-4F9A1C",
        "items": [
            {"name": "Butter Naan", "quantity": 2},
            {"name": "Dal Makhani", "quantity": 1, "specialInstructions": "less spicy"},
        ],
        "tableNumber": 7,
        "deliveryType": "dine_in",
        "total": 126,
        "phoneNumber": "+919876543210",
    }
    payload.update(overrides)
    return payload


def _notification(**overrides) -> KitchenNotificationRequest:
    return KitchenNotificationRequest.model_validate(_notification_payload(**overrides))


class FailingNotifier(BaseKitchenNotifier):
    @property
    def provider_name(self) -> str:
        return "failing"

    async def send_whatsapp(self, to_phone: str, message: str) -> NotificationResult:
        return NotificationResult(success=False, error_message="upstream 503", provider="failing")

    async def health_check(self) -> bool:
        return False


def _production_settings(**overrides) -> Settings:
    values = {
        "env_mode": "production",
        "twilio_account_sid": "AC" + "0" * 32,
        "twilio_auth_token": "token",
        "twilio_whatsapp_from": "+14155238886",
        "chef_whatsapp_number": "+919800000000",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


# =============================================================================
# FORMATTING
# =============================================================================

def test_message_lists_items_type_table_total_and_customer() -> None:
    message = format_kitchen_message(_notification())

    assert message.startswith("🔔 *NEW ORDER #ORD-20261018-4F9A1C*")
    assert "• 2x Butter Naan" in message
    assert "• 1x Dal Makhani (Note: less spicy)" in message
    assert "📍 *Type:* Dine In" in message
    assert "🪑 *Table:* 7" in message
    assert "💰 *Total:* ₹126.00" in message
    assert "📞 *Customer:* +919876543210" in message
    assert message.endswith("Please prepare this order!")


def test_takeaway_message_has_no_table_line() -> None:
    message = format_kitchen_message(_notification(deliveryType="takeaway", tableNumber=None))

    assert "Takeaway" in message
    assert "Table" not in message


def test_item_list_is_capped() -> None:
    items = [{"name": f"Dish {n}", "quantity": 1} for n in range(25)]

    message = format_kitchen_message(_notification(items=items))

    assert message.count("• 1x Dish") == MAX_ITEM_LINES
    assert "…and 5 more item(s)" in message


def test_untrusted_text_is_sanitized_and_truncated() -> None:
    items = [{
        "name": "<b>Naan</b>\x07",
        "quantity": 1,
        "specialInstructions": "line one\nline two " + "x" * 300,
    }]

    message = format_kitchen_message(_notification(items=items))

    assert "<" not in message
    assert "\x07" not in message
    item_line = next(line for line in message.splitlines() if line.startswith("• "))
    assert item_line.startswith("• 1x bNaan/b (Note: line one line two x")
    assert item_line.endswith("…)")


def test_invalid_customer_phone_is_rejected_by_schema() -> None:
    with pytest.raises(ValueError):
        _notification(phoneNumber="call me")


# =============================================================================
# ENDPOINT
# =============================================================================

def test_endpoint_notifies_kitchen_with_mock(client: TestClient) -> None:
    notifier = MockKitchenNotifier(kitchen_number="+919800000000", simulate_latency=False)
    app.dependency_overrides[get_kitchen_notifier] = lambda: notifier

    response = client.post("/api/notifications/kitchen", json=_notification_payload())

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Chef notified via WhatsApp"
    assert body["messageSid"].startswith("SM_mock_")
    assert len(notifier.sent_messages) == 1
    to_phone, text = notifier.sent_messages[0]
    assert to_phone == "+919800000000"
    assert "ORD-20261018-4F9A1C" in text


def test_endpoint_reports_upstream_failure_as_502(client: TestClient) -> None:
    app.dependency_overrides[get_kitchen_notifier] = lambda: FailingNotifier("+919800000000")

    response = client.post("/api/notifications/kitchen", json=_notification_payload())

    assert response.status_code == 502
    assert response.json() == {"error": "Failed to notify kitchen"}


def test_endpoint_reports_missing_configuration(client: TestClient) -> None:
    def unconfigured():
        return TwilioWhatsAppNotifier(_production_settings(twilio_auth_token=None))

    app.dependency_overrides[get_kitchen_notifier] = unconfigured

    response = client.post("/api/notifications/kitchen", json=_notification_payload())

    assert response.status_code == 500
    assert response.json() == {"error": "Missing notification configuration"}


@pytest.mark.parametrize(
    "overrides",
    [
        {"orderId": "not-a-uuid"},
        {"items": []},
        {"tableNumber": 1000},
        {"phoneNumber": "12345"},
        {"deliveryType": "drone"},
    ],
)
def test_endpoint_rejects_invalid_input(client: TestClient, overrides: dict) -> None:
    notifier = MockKitchenNotifier(simulate_latency=False)
    app.dependency_overrides[get_kitchen_notifier] = lambda: notifier

    response = client.post("/api/notifications/kitchen", json=_notification_payload(**overrides))

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid input data"
    assert notifier.sent_messages == []


# =============================================================================
# TWILIO NOTIFIER
# =============================================================================

class FakeMessages:
    def __init__(self, error: Exception = None):
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return SimpleNamespace(sid="SM123")


def test_twilio_notifier_requires_full_configuration() -> None:
    with pytest.raises(NotificationConfigError):
        TwilioWhatsAppNotifier(_production_settings(chef_whatsapp_number=None))


def test_twilio_notifier_sends_to_kitchen_whatsapp_address() -> None:
    messages = FakeMessages()
    notifier = TwilioWhatsAppNotifier(_production_settings(), client=SimpleNamespace(messages=messages))

    result = asyncio.run(notifier.notify_kitchen(_notification()))

    assert result.success is True
    assert result.message_id == "SM123"
    call = messages.calls[0]
    assert call["from_"] == "whatsapp:+14155238886"
    assert call["to"] == "whatsapp:+919800000000"
    assert "NEW ORDER" in call["body"]


def test_twilio_errors_become_failed_results() -> None:
    messages = FakeMessages(error=TwilioException("HTTP 503"))
    notifier = TwilioWhatsAppNotifier(_production_settings(), client=SimpleNamespace(messages=messages))

    result = asyncio.run(notifier.notify_kitchen(_notification()))

    assert result.success is False
    assert "503" in result.error_message


def test_endpoint_error_messages_do_not_expose_parser_text(client: TestClient) -> None:
    app.dependency_overrides[get_kitchen_notifier] = lambda: MockKitchenNotifier(simulate_latency=False)

    bad_id = client.post("/api/notifications/kitchen", json=_notification_payload(orderId="not-a-uuid"))
    bad_phone = client.post("/api/notifications/kitchen", json=_notification_payload(phoneNumber="12345"))
    quoted_total = client.post("/api/notifications/kitchen", json=_notification_payload(total="126"))

    assert bad_id.json()["details"] == ["Invalid order id"]
    assert bad_phone.json()["details"] == ["Invalid phone number format"]
    assert quoted_total.json()["details"] == ["Total must be a number"]
