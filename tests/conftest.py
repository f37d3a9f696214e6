"""
Pytest configuration and shared fixtures.

The environment is pinned before the application is imported: an
in-memory SQLite database, a fast bcrypt cost, throwaway upload and
export directories and an unreachable Redis.
"""

import os
import sys
import tempfile
import uuid
from pathlib import Path
from unittest.mock import MagicMock

import pytest

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

_scratch = Path(tempfile.mkdtemp(prefix="restaurant-tests-"))

os.environ["ENV_MODE"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["REDIS_URL"] = "redis://127.0.0.1:6399/0"
os.environ["UPLOAD_DIR"] = str(_scratch / "uploads")
os.environ["DATA_DIRECTORY"] = str(_scratch / "data")
os.environ["PAYSTACK_SECRET_KEY"] = ""
os.environ["PAYSTACK_WEBHOOK_SECRET"] = ""

from fastapi.testclient import TestClient  # noqa: E402

from app.core.security import create_access_token, hash_password  # noqa: E402
from app.database import Base, async_session_maker, engine  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Addon, Category, MenuItem, PriceVariant, Role, User  # noqa: E402
from app.services.payment import reset_payment_service  # noqa: E402

DEFAULT_PASSWORD = "secret123"


async def _reset_database() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


# =============================================================================
# APPLICATION
# =============================================================================

@pytest.fixture(scope="session")
def client():
    """One app instance for the run; every database call happens on its loop."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(autouse=True)
def clean_state(client):
    client.portal.call(_reset_database)
    reset_payment_service()
    yield
    reset_payment_service()


@pytest.fixture(autouse=True)
def export_task(monkeypatch):
    """Day-close exports never reach a broker during tests."""
    task = MagicMock()
    monkeypatch.setattr("app.api.routes.day_session.export_day_report", task)
    return task


@pytest.fixture
def run_db(client):
    """
    Run ``fn(db, *args)`` inside a fresh session on the app's event loop.

    Example:
        order = run_db(load_order, order_id)
    """

    def _run(fn, *args):
        async def wrapper():
            async with async_session_maker() as db:
                return await fn(db, *args)

        return client.portal.call(wrapper)

    return _run


# =============================================================================
# USERS
# =============================================================================

@pytest.fixture
def make_user(run_db):
    def _make(
        role: Role = Role.CUSTOMER,
        email=None,
        phone=None,
        password: str = DEFAULT_PASSWORD,
        is_active: bool = True,
        first_name: str = "Test",
        last_name: str = "User",
    ) -> User:
        if email is None and phone is None:
            email = f"{role.value.lower()}-{uuid.uuid4().hex[:8]}@example.com"

        async def create(db):
            user = User(
                email=email,
                phone=phone,
                password=hash_password(password),
                first_name=first_name,
                last_name=last_name,
                role=role,
                is_active=is_active,
            )
            db.add(user)
            await db.commit()
            await db.refresh(user)
            return user

        return run_db(create)

    return _make


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def auth():
    return auth_headers


@pytest.fixture
def admin(make_user):
    return make_user(Role.ADMIN, first_name="Ama", last_name="Admin")


@pytest.fixture
def cashier(make_user):
    return make_user(Role.CASHIER, first_name="Kofi", last_name="Cashier")


@pytest.fixture
def receptionist(make_user):
    return make_user(Role.RECEPTIONIST, first_name="Esi", last_name="Front")


@pytest.fixture
def kitchen(make_user):
    return make_user(Role.KITCHEN_STAFF, first_name="Yaw", last_name="Cook")


@pytest.fixture
def customer(make_user):
    return make_user(Role.CUSTOMER, first_name="Abena", last_name="Mensah")


# =============================================================================
# MENU
# =============================================================================

@pytest.fixture
def menu(run_db) -> dict:
    """
    Two dishes and one unavailable item in a single category.

    Jollof: base 25, Small 20 / Large 30, addons Chicken 10 / Plantain 5.
    Coke: base 5, no options.
    """

    async def create(db):
        category = Category(name="Mains", description="Main dishes", display_order=1)
        db.add(category)
        await db.flush()

        jollof = MenuItem(
            category_id=category.id,
            name="Jollof Rice",
            base_price=25.0,
            variants=[PriceVariant(name="Small", price=20.0), PriceVariant(name="Large", price=30.0)],
            addons=[Addon(name="Chicken", price=10.0), Addon(name="Plantain", price=5.0)],
        )
        coke = MenuItem(category_id=category.id, name="Coke", base_price=5.0)
        sold_out = MenuItem(category_id=category.id, name="Fufu", base_price=30.0, is_available=False)
        db.add_all([jollof, coke, sold_out])
        await db.commit()

        return {
            "category_id": category.id,
            "jollof": jollof.id,
            "small": next(v.id for v in jollof.variants if v.name == "Small"),
            "large": next(v.id for v in jollof.variants if v.name == "Large"),
            "chicken": next(a.id for a in jollof.addons if a.name == "Chicken"),
            "plantain": next(a.id for a in jollof.addons if a.name == "Plantain"),
            "coke": coke.id,
            "sold_out": sold_out.id,
        }

    return run_db(create)


@pytest.fixture
def place_order(client, menu, auth):
    """POST a simple order as ``user``; returns the created order JSON."""

    def _place(user, **overrides) -> dict:
        payload = {
            "order_type": "DINE_IN",
            "table_number": "T1",
            "items": [{"menu_item_id": menu["coke"], "quantity": 2}],
        }
        payload.update(overrides)
        response = client.post("/api/orders", json=payload, headers=auth(user))
        assert response.status_code == 201, response.text
        return response.json()["order"]

    return _place
