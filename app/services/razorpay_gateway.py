import logging
from typing import Any, Dict, Optional

import razorpay
import requests

from app.config import settings
from app.services.errors import ProviderError

logger = logging.getLogger(__name__)

PROVIDER_NAME = "razorpay"

_PROVIDER_FAILURES = (
    razorpay.errors.BadRequestError,
    razorpay.errors.ServerError,
    razorpay.errors.GatewayError,
    requests.RequestException,
)


class RazorpayGateway:
    """Thin wrapper over razorpay.Client used by checkout and confirmation."""

    name = PROVIDER_NAME

    def __init__(
        self,
        key_id: Optional[str] = None,
        key_secret: Optional[str] = None,
        webhook_secret: Optional[str] = None,
    ):
        self.key_id = key_id or settings.RAZORPAY_KEY_ID
        self.webhook_secret = webhook_secret or settings.RAZORPAY_WEBHOOK_SECRET
        self.client = razorpay.Client(
            auth=(self.key_id, key_secret or settings.RAZORPAY_KEY_SECRET)
        )

    def create_order(
        self,
        *,
        amount: int,
        currency: str,
        receipt: str,
        notes: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Create the remote order. Raises ProviderError on any provider failure."""
        try:
            return self.client.order.create({
                "amount": amount,
                "currency": currency,
                "receipt": receipt,
                "notes": notes or {},
            })
        except _PROVIDER_FAILURES as e:
            logger.exception(f"Razorpay order creation failed for receipt {receipt}")
            raise ProviderError() from e

    def verify_webhook_signature(self, raw_body: bytes, signature: Optional[str]) -> bool:
        """
        HMAC-SHA256 over the exact bytes received. The body must not be
        parsed and re-serialised before this check.
        """
        if not signature:
            return False
        try:
            body = raw_body.decode("utf-8")
        except UnicodeDecodeError:
            return False
        try:
            verified = self.client.utility.verify_webhook_signature(
                body, signature, self.webhook_secret
            )
        except (razorpay.errors.SignatureVerificationError, TypeError):
            return False
        return bool(verified)

    def verify_payment_signature(
        self, provider_order_id: str, provider_payment_id: str, signature: str
    ) -> bool:
        """Checks HMAC(key_secret, "order_id|payment_id") from the checkout widget."""
        try:
            verified = self.client.utility.verify_payment_signature({
                "razorpay_order_id": provider_order_id,
                "razorpay_payment_id": provider_payment_id,
                "razorpay_signature": signature,
            })
        except (razorpay.errors.SignatureVerificationError, TypeError):
            return False
        return bool(verified)


_gateway: Optional[RazorpayGateway] = None


def get_payment_gateway() -> RazorpayGateway:
    global _gateway
    if _gateway is None:
        _gateway = RazorpayGateway()
    return _gateway
