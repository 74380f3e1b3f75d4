from enum import Enum


class OrderStatus(str, Enum):
    created = "created"
    paid = "paid"
    failed = "failed"


class GrantStatus(str, Enum):
    active = "active"
    expired = "expired"
    revoked = "revoked"


# A capture may still land on a failed order when the customer retries
# payment against the same provider order.
ALLOWED_TRANSITIONS = {
    OrderStatus.created: [OrderStatus.paid, OrderStatus.failed],
    OrderStatus.failed: [OrderStatus.paid],
    OrderStatus.paid: [],
}


def statuses_leading_to(target: OrderStatus) -> list[str]:
    return [
        source.value
        for source, targets in ALLOWED_TRANSITIONS.items()
        if target in targets
    ]
