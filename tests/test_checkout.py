from datetime import timedelta

import razorpay

from app.constants.order_status import GrantStatus, OrderStatus
from app.models.access_grant import AccessGrant
from app.models.order_event import OrderEvent
from app.services import checkout_service
from app.services.access_grant_service import has_active_access
from app.utils.dates import add_months, utcnow
from sqlmodel import select
from tests.factories import make_token


def test_paid_batch_returns_order_handle(client, user, make_batch, auth_headers, gateway, orders, grants):
    batch = make_batch(price=499, expiry_months=6)

    res = client.post("/checkout/batch", json={"batchId": batch.id}, headers=auth_headers(user))

    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["free"] is False
    assert body["order"] == {
        "id": "order_Test0001",
        "amount": 49900,
        "currency": "INR",
        "keyId": "rzp_test_key",
        "batchTitle": batch.title,
        "userName": "Asha Rao",
        "userEmail": "asha@example.com",
    }

    [order] = orders()
    assert order.provider_order_id == "order_Test0001"
    assert order.amount == 49900
    assert order.status == OrderStatus.created.value
    assert order.user_id == user.id and order.batch_id == batch.id
    # no access until the provider confirms
    assert grants() == []


def test_paid_checkout_logs_created_event(client, session, user, make_batch, auth_headers, orders):
    batch = make_batch()
    client.post("/checkout/batch", json={"batchId": batch.id}, headers=auth_headers(user))

    [order] = orders()
    events = session.exec(select(OrderEvent).where(OrderEvent.order_id == order.id)).all()
    assert [e.event_type for e in events] == ["created"]


def test_client_supplied_price_is_ignored(client, user, make_batch, auth_headers, gateway, orders):
    batch = make_batch(price=499)

    res = client.post(
        "/checkout/batch",
        json={"batchId": batch.id, "price": 1, "amount": 100},
        headers=auth_headers(user),
    )

    assert res.status_code == 200
    assert gateway.created_orders[0]["amount"] == 49900
    assert gateway.created_orders[0]["currency"] == "INR"
    assert orders()[0].amount == 49900


def test_free_batch_grants_immediately(client, session, user, make_batch, auth_headers, gateway, orders, grants):
    batch = make_batch(price=0, expiry_months=3)

    res = client.post("/checkout/batch", json={"batchId": batch.id}, headers=auth_headers(user))

    assert res.status_code == 200
    assert res.json() == {"success": True, "free": True}
    assert gateway.created_orders == []
    assert orders() == []

    [grant] = grants()
    assert grant.order_id is None
    assert grant.status == GrantStatus.active.value
    assert grant.valid_till == add_months(grant.valid_from, 3)
    assert has_active_access(session, user.id, batch.id)


def test_free_batch_without_expiry_defaults_to_twelve_months(client, user, make_batch, auth_headers, grants):
    batch = make_batch(price=0, expiry_months=None)

    client.post("/checkout/batch", json={"batchId": batch.id}, headers=auth_headers(user))

    [grant] = grants()
    assert grant.valid_till == add_months(grant.valid_from, 12)


def test_already_owned_is_rejected(client, user, make_batch, auth_headers, gateway, orders, grants):
    batch = make_batch(price=0)
    headers = auth_headers(user)
    client.post("/checkout/batch", json={"batchId": batch.id}, headers=headers)

    res = client.post("/checkout/batch", json={"batchId": batch.id}, headers=headers)

    assert res.status_code == 409
    assert res.json() == {"success": False, "error": "You already have access to this batch"}
    assert len(grants()) == 1
    assert orders() == []


def test_already_owned_paid_batch_creates_no_order(client, session, user, make_batch, auth_headers, gateway, orders):
    batch = make_batch(price=499)
    now = utcnow()
    session.add(AccessGrant(
        user_id=user.id, batch_id=batch.id, order_id=None,
        valid_from=now, valid_till=now + timedelta(days=30),
    ))
    session.commit()

    res = client.post("/checkout/batch", json={"batchId": batch.id}, headers=auth_headers(user))

    assert res.status_code == 409
    assert gateway.created_orders == []
    assert orders() == []


def test_lapsed_grant_allows_repurchase(client, session, user, make_batch, auth_headers, grants):
    batch = make_batch(price=0, expiry_months=1)
    now = utcnow()
    old = AccessGrant(
        user_id=user.id, batch_id=batch.id, order_id=None,
        valid_from=now - timedelta(days=60), valid_till=now - timedelta(days=1),
    )
    session.add(old)
    session.commit()

    res = client.post("/checkout/batch", json={"batchId": batch.id}, headers=auth_headers(user))

    assert res.status_code == 200
    session.refresh(old)
    assert old.status == GrantStatus.expired.value
    assert len(grants(status=GrantStatus.active.value)) == 1


def test_unknown_batch(client, user, auth_headers):
    res = client.post("/checkout/batch", json={"batchId": 9999}, headers=auth_headers(user))

    assert res.status_code == 404
    assert res.json() == {"success": False, "error": "Batch not found"}


def test_requires_authentication(client, make_batch, gateway):
    batch = make_batch()

    res = client.post("/checkout/batch", json={"batchId": batch.id})

    assert res.status_code == 401
    assert res.json() == {"success": False, "error": "Please sign in to continue"}
    assert gateway.created_orders == []


def test_disabled_user_is_not_authenticated(client, make_user, make_batch, auth_headers):
    user = make_user(can_login=False)
    batch = make_batch()

    res = client.post("/checkout/batch", json={"batchId": batch.id}, headers=auth_headers(user))

    assert res.status_code == 401


def test_provider_failure_leaves_no_order(client, user, make_batch, auth_headers, gateway, orders):
    batch = make_batch(price=499)

    def fail(data=None, **kwargs):
        raise razorpay.errors.ServerError("upstream unavailable")

    gateway.client.order.create = fail

    res = client.post("/checkout/batch", json={"batchId": batch.id}, headers=auth_headers(user))

    assert res.status_code == 502
    assert res.json() == {"success": False, "error": "Something went wrong. Please try again."}
    assert orders() == []


def test_repeat_paid_checkout_creates_new_order(client, user, make_batch, auth_headers, orders):
    batch = make_batch(price=499)
    headers = auth_headers(user)

    first = client.post("/checkout/batch", json={"batchId": batch.id}, headers=headers)
    second = client.post("/checkout/batch", json={"batchId": batch.id}, headers=headers)

    assert first.json()["order"]["id"] != second.json()["order"]["id"]
    assert len(orders()) == 2


def test_missing_batch_id(client, user, auth_headers, gateway):
    res = client.post("/checkout/batch", json={}, headers=auth_headers(user))

    assert res.status_code == 400
    assert res.json() == {"success": False, "error": "Invalid batch id"}
    assert gateway.created_orders == []


def test_non_integer_batch_id(client, user, auth_headers, gateway, orders):
    res = client.post("/checkout/batch", json={"batchId": "x"}, headers=auth_headers(user))

    assert res.status_code == 400
    assert res.json() == {"success": False, "error": "Invalid batch id"}
    assert gateway.created_orders == []
    assert orders() == []


def test_sign_in_is_checked_before_batch_id(client):
    res = client.post("/checkout/batch", json={})

    assert res.status_code == 401
    assert res.json() == {"success": False, "error": "Please sign in to continue"}


def test_expired_token_is_not_authenticated(client, user, make_batch):
    batch = make_batch()
    token = make_token(user.id, expires_in=timedelta(minutes=-5))

    res = client.post(
        "/checkout/batch",
        json={"batchId": batch.id},
        headers={"Authorization": f"Bearer {token}"},
    )

    assert res.status_code == 401


def test_ledger_write_failure_returns_error_envelope(
    client, user, make_batch, auth_headers, gateway, orders, monkeypatch
):
    batch = make_batch(price=499)

    def broken_ledger(session, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(checkout_service, "create_order_record", broken_ledger)

    res = client.post("/checkout/batch", json={"batchId": batch.id}, headers=auth_headers(user))

    assert res.status_code == 500
    assert res.json() == {"success": False, "error": "Something went wrong. Please try again."}
    # the remote order was created but nothing is recorded locally
    assert len(gateway.created_orders) == 1
    assert orders() == []
