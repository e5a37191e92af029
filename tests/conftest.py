import hashlib
import hmac
import json
import os
import time

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_PRICE_ID"] = "price_basic"
os.environ["STRIPE_ALLOWED_PRICE_IDS"] = "price_pro"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"

import pytest
from fastapi.testclient import TestClient

from videovault.auth import create_access_token, hash_password
from videovault.db import SessionLocal, engine
from videovault.main import app
from videovault.models import Base, User, Video

WEBHOOK_SECRET = os.environ["STRIPE_WEBHOOK_SECRET"]


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user():
    counter = {"n": 0}

    def _make(email=None, role="user", status="inactive", customer_id=None, subscription_id=None, password="secret123"):
        counter["n"] += 1
        with SessionLocal() as db:
            user = User(
                email=email or f"user{counter['n']}@example.com",
                password_hash=hash_password(password),
                role=role,
                subscription_status=status,
                stripe_customer_id=customer_id,
                stripe_subscription_id=subscription_id,
            )
            db.add(user)
            db.commit()
            db.refresh(user)
            return user

    return _make


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user)}"}


def load_user(user_id):
    with SessionLocal() as db:
        return db.get(User, user_id)


def count_videos():
    with SessionLocal() as db:
        return db.query(Video).count()


def sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode() + payload
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def event_body(event_type: str, obj: dict, event_id: str = "evt_test") -> bytes:
    return json.dumps({"id": event_id, "type": event_type, "data": {"object": obj}}).encode()
