"""Tests for the category registry and its endpoints."""

import pytest
from sqlalchemy import func, select

from expense_tracker import categories
from expense_tracker.categories import DEFAULT_CATEGORIES
from expense_tracker.errors import DuplicateKey, NotFound, ValidationFailure
from expense_tracker.models import Category, User
from tests.conftest import register

EXPENSE_DEFAULTS = [
    "Food & Dining", "Transportation", "Shopping", "Entertainment", "Bills & Utilities",
    "Healthcare", "Education", "Travel", "Personal Care", "Other",
]
INCOME_DEFAULTS = ["Salary", "Freelance", "Investments", "Rental", "Other"]


class TestRegistry:
    """Tests for seeding and lookup in the service layer."""

    def test_default_tables(self):
        """The static default lists hold the documented names."""
        assert [row[0] for row in DEFAULT_CATEGORIES["expense"]] == EXPENSE_DEFAULTS
        assert [row[0] for row in DEFAULT_CATEGORIES["income"]] == INCOME_DEFAULTS

    def test_first_read_seeds_kind_sorted_by_name(self, db):
        """Reading an empty kind seeds its defaults and sorts them."""
        rows = categories.list_categories(db, "expense")
        names = [c.name for c in rows]
        assert names == sorted(EXPENSE_DEFAULTS)
        assert all(c.is_default and c.kind == "expense" for c in rows)

    def test_seeding_is_per_kind(self, db):
        """Seeding expense leaves income untouched until it is read."""
        categories.list_categories(db, "expense")
        count = db.execute(select(func.count(Category.id)).where(Category.kind == "income")).scalar_one()
        assert count == 0

        income = categories.list_categories(db, "income")
        assert sorted(c.name for c in income) == sorted(INCOME_DEFAULTS)

    def test_second_read_does_not_reseed(self, db):
        """Two reads in a row return the same set."""
        first = [(c.id, c.name) for c in categories.list_categories(db, "expense")]
        second = [(c.id, c.name) for c in categories.list_categories(db, "expense")]
        assert first == second
        assert db.execute(select(func.count(Category.id))).scalar_one() == len(EXPENSE_DEFAULTS)

    def test_existing_custom_category_prevents_seeding(self, db):
        """A kind with any category is never seeded."""
        categories.create_category(db, "Pets", "#123456", "Dog", "expense")
        rows = categories.list_categories(db, "expense")
        assert [c.name for c in rows] == ["Pets"]

    def test_no_kind_returns_both(self, db):
        """Without a kind both default lists are seeded and returned."""
        rows = categories.list_categories(db)
        assert len(rows) == len(EXPENSE_DEFAULTS) + len(INCOME_DEFAULTS)

    def test_unknown_kind_rejected(self, db):
        with pytest.raises(ValidationFailure):
            categories.list_categories(db, "transfer")

    def test_duplicate_name_same_kind(self, db):
        """Names are unique within a kind."""
        categories.create_category(db, "Pets", "#123456", "Dog", "expense")
        with pytest.raises(DuplicateKey):
            categories.create_category(db, "Pets", "#654321", "Cat", "expense")

    def test_same_name_other_kind_allowed(self, db):
        """'Other' exists for expense and income alike."""
        categories.list_categories(db)
        others = db.execute(select(Category).where(Category.name == "Other")).scalars().all()
        assert sorted(c.kind for c in others) == ["expense", "income"]

    def test_concurrent_seed_is_rolled_back(self, db):
        """A second seeding of the same kind hits the unique constraint and inserts nothing."""
        assert categories._seed_kind(db, "expense") == len(EXPENSE_DEFAULTS)
        assert categories._seed_kind(db, "expense") == 0
        count = db.execute(select(func.count(Category.id)).where(Category.kind == "expense")).scalar_one()
        assert count == len(EXPENSE_DEFAULTS)

    def test_get_missing_category(self, db):
        with pytest.raises(NotFound):
            categories.get_category(db, 12345)

    def test_seed_refuses_when_populated(self, db):
        categories.list_categories(db, "expense")
        with pytest.raises(ValidationFailure, match="already seeded"):
            categories.seed_categories(db, ["expense"])

    def test_seed_only_fills_empty_kinds(self, db):
        categories.list_categories(db, "expense")
        rows = categories.seed_categories(db)
        assert {c.kind for c in rows} == {"income"}


class TestCategoryEndpoints:
    """Tests for /api/categories."""

    def test_list_by_kind(self, client):
        """Listing is public and returns camelCase fields."""
        resp = client.get("/api/categories", params={"kind": "income"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert [c["name"] for c in body["data"]] == sorted(INCOME_DEFAULTS)
        assert set(body["data"][0]) == {"id", "name", "color", "icon", "kind", "isDefault"}

    def test_list_twice_is_identical(self, client):
        first = client.get("/api/categories", params={"kind": "expense"}).json()
        second = client.get("/api/categories", params={"kind": "expense"}).json()
        assert first == second

    def test_invalid_kind_query(self, client):
        resp = client.get("/api/categories", params={"kind": "nope"})
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "query.kind"

    def test_get_single(self, client):
        cat_id = client.get("/api/categories", params={"kind": "expense"}).json()["data"][0]["id"]
        resp = client.get(f"/api/categories/{cat_id}")
        assert resp.status_code == 200
        assert resp.json()["data"]["id"] == cat_id

    def test_get_missing(self, client):
        resp = client.get("/api/categories/999")
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "message": "Category not found"}

    def test_create_requires_auth(self, client):
        resp = client.post("/api/categories", json={"name": "Pets"})
        assert resp.status_code == 401

    def test_create_and_duplicate(self, client, auth_headers):
        """Creating twice with the same name and kind is a conflict."""
        payload = {"name": "Pets", "color": "#a1b2c3", "icon": "Dog", "kind": "expense"}
        resp = client.post("/api/categories", json=payload, headers=auth_headers)
        assert resp.status_code == 201
        assert resp.json()["data"]["color"] == "#A1B2C3"
        assert resp.json()["data"]["isDefault"] is False

        resp = client.post("/api/categories", json=payload, headers=auth_headers)
        assert resp.status_code == 409

    def test_create_rejects_bad_color(self, client, auth_headers):
        resp = client.post("/api/categories", json={"name": "Pets", "color": "red"}, headers=auth_headers)
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "body.color"

    def test_seed_requires_admin(self, client, auth_headers):
        resp = client.post("/api/categories/seed", headers=auth_headers)
        assert resp.status_code == 403

    def test_admin_seed(self, client, db):
        """An admin can seed explicitly, once."""
        headers = register(client, email="root@example.com", name="Root")
        user = db.execute(select(User).where(User.email == "root@example.com")).scalar_one()
        user.role = "admin"
        db.commit()
        db.close()

        resp = client.post("/api/categories/seed", headers=headers)
        assert resp.status_code == 201
        assert len(resp.json()["data"]) == len(EXPENSE_DEFAULTS) + len(INCOME_DEFAULTS)

        resp = client.post("/api/categories/seed", headers=headers)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Categories already seeded"
