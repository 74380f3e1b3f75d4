import hashlib
import hmac
import json
from datetime import timedelta

from jose import jwt

from app.config import settings
from app.services.razorpay_gateway import RazorpayGateway
from app.utils.dates import utcnow

KEY_ID = "rzp_test_key"
KEY_SECRET = "rzp_test_key_secret"
WEBHOOK_SECRET = "rzp_test_webhook_secret"


def make_token(user_id: int, expires_in: timedelta = timedelta(minutes=60)) -> str:
    """Stands in for the identity service that issues bearer tokens."""
    return jwt.encode(
        {"user_id": user_id, "exp": utcnow() + expires_in},
        settings.secret_key,
        algorithm=settings.algorithm,
    )


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def payment_event(event: str, provider_order_id: str, payment_id: str = "pay_Test0001") -> bytes:
    return json.dumps({
        "entity": "event",
        "account_id": "acc_Test0001",
        "event": event,
        "contains": ["payment"],
        "payload": {
            "payment": {
                "entity": {
                    "id": payment_id,
                    "entity": "payment",
                    "amount": 49900,
                    "currency": "INR",
                    "status": "captured" if event == "payment.captured" else "failed",
                    "order_id": provider_order_id,
                    "method": "upi",
                }
            }
        },
        "created_at": 1718000000,
    }).encode()


def make_gateway() -> RazorpayGateway:
    """Real gateway (real signature checks) whose remote order call is stubbed."""
    gateway = RazorpayGateway(
        key_id=KEY_ID, key_secret=KEY_SECRET, webhook_secret=WEBHOOK_SECRET
    )
    gateway.created_orders = []

    def create(data=None, **kwargs):
        gateway.created_orders.append(data)
        return {
            "id": f"order_Test{len(gateway.created_orders):04d}",
            "entity": "order",
            "status": "created",
            **data,
        }

    gateway.client.order.create = create
    return gateway
