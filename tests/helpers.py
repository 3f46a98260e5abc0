import json
from typing import Optional

from easy_ops.core.security import Actor, UserRole, SecurityUtils

WEBHOOK_SECRET = "test-webhook-secret"
PAYMENT_URL = "https://ops.example.com/api/v1/square-webhook"
ORDER_URL = "https://ops.example.com/api/v1/webhooks/square"

MANAGER = Actor(user_id="user-manager", role=UserRole.MANAGER)
STAFF = Actor(user_id="user-staff", role=UserRole.STAFF)


def sign(body: str, prefix: str = "", secret: str = WEBHOOK_SECRET) -> str:
    return SecurityUtils.compute_webhook_signature(secret, f"{prefix}{body}")


def order_payload(order_id: str, line_items: list, event_type: str = "order.created") -> str:
    key = "order_created" if event_type == "order.created" else "order_updated"
    return json.dumps({
        "type": event_type,
        "data": {"object": {key: {"order": {"id": order_id, "line_items": line_items}}}},
    })


def payment_payload(order_id: Optional[str], status: str = "COMPLETED") -> str:
    return json.dumps({
        "type": "payment.updated",
        "data": {"object": {"payment": {"id": "PAY-1", "order_id": order_id, "status": status}}},
    })
