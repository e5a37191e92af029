import datetime as dt

import jwt

from videovault.config import JWT_SECRET
from conftest import auth_headers, load_user


def login(client, email, password):
    return client.post("/auth/login", data={"username": email, "password": password})


def test_register_creates_inactive_user_account(client):
    r = client.post("/auth/register", json={"email": "New@Example.com", "password": "pw12345"})
    assert r.status_code == 201
    user = load_user(r.json()["id"])
    assert user.email == "new@example.com"
    assert user.role == "user"
    assert user.subscription_status == "inactive"
    assert user.stripe_customer_id is None
    assert user.password_hash != "pw12345"


def test_register_duplicate_email(client, make_user):
    make_user(email="taken@example.com")
    r = client.post("/auth/register", json={"email": "TAKEN@example.com", "password": "pw"})
    assert r.status_code == 409


def test_register_rejects_bad_email(client):
    r = client.post("/auth/register", json={"email": "nope", "password": "pw"})
    assert r.status_code == 422


def test_login_and_me(client):
    client.post("/auth/register", json={"email": "me@example.com", "password": "hunter22"})
    r = login(client, "ME@example.com", "hunter22")
    assert r.status_code == 200
    token = r.json()["access_token"]
    assert r.json()["token_type"] == "bearer"

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    body = me.json()
    assert body["email"] == "me@example.com"
    assert body["role"] == "user"
    assert "password_hash" not in body


def test_token_carries_no_role_or_status(client):
    client.post("/auth/register", json={"email": "claims@example.com", "password": "pw"})
    token = login(client, "claims@example.com", "pw").json()["access_token"]
    claims = jwt.decode(token, JWT_SECRET, algorithms=["HS256"])
    assert "role" not in claims
    assert "subscription_status" not in claims


def test_login_wrong_password(client, make_user):
    make_user(email="pw@example.com", password="right")
    assert login(client, "pw@example.com", "wrong").status_code == 401


def test_login_unknown_user(client):
    assert login(client, "ghost@example.com", "x").status_code == 401


def test_expired_token_rejected(client, make_user):
    user = make_user()
    past = dt.datetime.now(dt.timezone.utc) - dt.timedelta(hours=1)
    token = jwt.encode({"sub": str(user.id), "exp": past}, JWT_SECRET, algorithm="HS256")
    assert client.get("/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_token_signed_with_other_secret_rejected(client, make_user):
    user = make_user()
    future = dt.datetime.now(dt.timezone.utc) + dt.timedelta(hours=1)
    token = jwt.encode({"sub": str(user.id), "exp": future}, "not-the-secret", algorithm="HS256")
    assert client.get("/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_token_for_deleted_user_rejected(client):
    future = dt.datetime.now(dt.timezone.utc) + dt.timedelta(hours=1)
    token = jwt.encode({"sub": "12345", "exp": future}, JWT_SECRET, algorithm="HS256")
    assert client.get("/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_me_requires_token(client):
    r = client.get("/auth/me")
    assert r.status_code == 401
    assert r.headers["www-authenticate"] == "Bearer"


def test_check_user(client, make_user):
    make_user(email="exists@example.com")
    assert client.post("/auth/check-user", json={"email": "exists@example.com"}).json() == {"exists": True}
    assert client.post("/auth/check-user", json={"email": "missing@example.com"}).json() == {"exists": False}
    assert client.post("/auth/check-user", json={}).status_code == 400


def test_me_reflects_current_role(client, make_user):
    from videovault.db import SessionLocal
    from videovault.seed import set_role

    user = make_user(email="promoted@example.com")
    h = auth_headers(user)
    assert client.get("/auth/me", headers=h).json()["role"] == "user"
    with SessionLocal() as db:
        set_role(db, "promoted@example.com", "admin")
    assert client.get("/auth/me", headers=h).json()["role"] == "admin"
