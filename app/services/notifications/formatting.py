"""
Kitchen Message Formatting

Builds the WhatsApp text the kitchen receives for a new order. Every free-text
field goes through ``sanitize_for_message`` and the item list is capped, so the
message stays bounded whatever the caller sends.
"""

from app.schemas import DeliveryTypeEnum, KitchenNotificationRequest
from app.utils.text import sanitize_for_message

MAX_ITEM_LINES = 20
MAX_ITEM_NAME_LENGTH = 100
MAX_NOTE_LENGTH = 200
MAX_ORDER_NUMBER_LENGTH = 50
MAX_PHONE_LENGTH = 20

DELIVERY_TYPE_LABELS = {
    DeliveryTypeEnum.DINE_IN: "Dine In",
    DeliveryTypeEnum.TAKEAWAY: "Takeaway",
    DeliveryTypeEnum.DELIVERY: "Delivery",
}


def format_item_lines(notification: KitchenNotificationRequest) -> list[str]:
    lines = []
    for item in notification.items[:MAX_ITEM_LINES]:
        line = f"• {item.quantity}x {sanitize_for_message(item.name, MAX_ITEM_NAME_LENGTH)}"
        note = sanitize_for_message(item.special_instructions, MAX_NOTE_LENGTH)
        if note:
            line += f" (Note: {note})"
        lines.append(line)

    hidden = len(notification.items) - MAX_ITEM_LINES
    if hidden > 0:
        lines.append(f"…and {hidden} more item(s)")
    return lines


def format_kitchen_message(notification: KitchenNotificationRequest, currency_symbol: str = "₹") -> str:
    order_number = sanitize_for_message(notification.order_number, MAX_ORDER_NUMBER_LENGTH)
    delivery_label = DELIVERY_TYPE_LABELS[notification.delivery_type]

    parts = [
        f"🔔 *NEW ORDER #{order_number}*",
        "",
        "📋 *Items:*",
        *format_item_lines(notification),
        "",
        f"📍 *Type:* {delivery_label}",
    ]
    if notification.table_number:
        parts.append(f"🪑 *Table:* {notification.table_number}")
    parts.extend([
        f"💰 *Total:* {currency_symbol}{notification.total:.2f}",
        f"📞 *Customer:* {sanitize_for_message(notification.phone_number, MAX_PHONE_LENGTH)}",
        "",
        "Please prepare this order!",
    ])
    return "\n".join(parts)
