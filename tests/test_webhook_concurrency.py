import threading

from sqlalchemy import func
from sqlmodel import Session, create_engine, select

from app.constants.order_status import OrderStatus
from app.database import init_db
from app.models.access_grant import AccessGrant
from app.models.batch import Batch
from app.models.order import Order
from app.models.user import User
from app.services.order_ledger import create_order_record
from app.services.payment_webhook import WebhookOutcome, handle_provider_event
from tests.factories import make_gateway, payment_event, sign


def test_concurrent_deliveries_create_one_grant(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'webhooks.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    init_db(engine, create_tables=True)
    gateway = make_gateway()

    with Session(engine) as session:
        user = User(first_name="Asha", email="asha@example.com")
        batch = Batch(title="Batch 25-26", slug="batch-25-26", price=499, expiry_months=6)
        session.add(user)
        session.add(batch)
        session.commit()
        create_order_record(
            session, user_id=user.id, batch_id=batch.id, amount=49900,
            currency="INR", provider="razorpay", provider_order_id="order_Race",
        )

    body = payment_event("payment.captured", "order_Race")
    signature = sign(body)
    barrier = threading.Barrier(4)
    outcomes = []

    def deliver():
        with Session(engine) as session:
            barrier.wait()
            outcomes.append(handle_provider_event(session, body, signature, gateway))

    threads = [threading.Thread(target=deliver) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    with Session(engine) as session:
        grant_count = session.exec(select(func.count()).select_from(AccessGrant)).one()
        order = session.exec(select(Order)).one()

    assert grant_count == 1
    assert order.status == OrderStatus.paid.value
    assert outcomes.count(WebhookOutcome.success) == 1
    assert WebhookOutcome.error not in outcomes
    engine.dispose()
