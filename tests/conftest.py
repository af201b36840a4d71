"""
Shared fixtures.

The database is a single in-memory SQLite connection; the schema is
rebuilt for every test. ``today`` is pinned so month figures are stable.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_JSON", "false")

from datetime import date

import pytest
from fastapi.testclient import TestClient

from expense_tracker.api import get_today
from expense_tracker.db import Base, SessionLocal, engine
from expense_tracker.main import app

TODAY = date(2024, 6, 15)


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def client(today):
    app.dependency_overrides[get_today] = lambda: today
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def register(client, email="alice@example.com", name="Alice", password="secret123"):
    """Register a user and return bearer headers for them."""
    resp = client.post(
        "/api/auth/register",
        json={"name": name, "email": email, "password": password},
    )
    assert resp.status_code == 201, resp.text
    return {"Authorization": f"Bearer {resp.json()['data']['token']}"}


def category_ids(client, kind="expense"):
    """Map category name -> id for one kind (seeding it if needed)."""
    resp = client.get("/api/categories", params={"kind": kind})
    assert resp.status_code == 200, resp.text
    return {c["name"]: c["id"] for c in resp.json()["data"]}


def add_record(client, headers, category, amount=10, kind="expense", on="2024-06-10",
               description="Lunch", payment_method="cash"):
    resp = client.post(
        "/api/expenses",
        json={
            "amount": amount,
            "description": description,
            "category": category,
            "paymentMethod": payment_method,
            "kind": kind,
            "date": on,
        },
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


@pytest.fixture
def auth_headers(client):
    return register(client)


@pytest.fixture
def expense_categories(client):
    return category_ids(client, "expense")


@pytest.fixture
def income_categories(client):
    return category_ids(client, "income")
