import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENV", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "rzp_test_key_secret")
os.environ.setdefault("RAZORPAY_WEBHOOK_SECRET", "rzp_test_webhook_secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine, select

from app.database import get_session, init_db
from app.main import app
from app.models.access_grant import AccessGrant
from app.models.batch import Batch
from app.models.order import Order
from app.models.user import User
from app.services.razorpay_gateway import get_payment_gateway
from tests.factories import make_gateway, make_token, sign


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine, create_tables=True)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def gateway():
    return make_gateway()


@pytest.fixture
def client(session, gateway):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session):
    def _make_user(**kwargs):
        data = {"first_name": "Asha", "last_name": "Rao", "email": "asha@example.com"}
        data.update(kwargs)
        user = User(**data)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user
    return _make_user


@pytest.fixture
def make_batch(session):
    def _make_batch(**kwargs):
        data = {"title": "SSC CGL Batch 25-26", "slug": "ssc-cgl-25-26", "price": 499, "expiry_months": 6}
        data.update(kwargs)
        batch = Batch(**data)
        session.add(batch)
        session.commit()
        session.refresh(batch)
        return batch
    return _make_batch


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        token = make_token(user.id)
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers


@pytest.fixture
def post_event(client):
    def _post_event(body: bytes, signature=None):
        headers = {"content-type": "application/json"}
        if signature is not False:
            headers["x-razorpay-signature"] = signature or sign(body)
        return client.post("/payments/webhook", content=body, headers=headers)
    return _post_event


@pytest.fixture
def grants(session):
    def _grants(**filters):
        query = select(AccessGrant)
        for name, value in filters.items():
            query = query.where(getattr(AccessGrant, name) == value)
        return session.exec(query).all()
    return _grants


@pytest.fixture
def orders(session):
    def _orders():
        return session.exec(select(Order)).all()
    return _orders
