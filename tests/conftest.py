# tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - In-memory SQLite (StaticPool) shared by the test and the app
# - Tables created and dropped around every test
# - One session per test, handed to the app through get_db
# - Seeded users (one per role), products, a customer and today's
#   driver allocation
# - Bearer tokens come from the real JWT helpers
# ---------------------------------------------------------------------
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["NOTIFICATIONS_ENABLED"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"

from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from orderdesk.config.database import engine, SessionLocal, init_database
from orderdesk.core.security import create_access_token
from orderdesk.main import app
from orderdesk.config.database import get_db
from orderdesk.models.base import Base
from orderdesk.models.allocation import DriverAllocation
from orderdesk.models.customer import Customer
from orderdesk.models.product import Product
from orderdesk.models.user import User, UserRole
from orderdesk.api.v1.endpoints.orders import get_notifier
from orderdesk.schemas.order import OrderCreate, OrderLineIn
from orderdesk.services.order_service import OrderService
from orderdesk.utils.date_utils import business_today


# ---------- Database ----------
@pytest.fixture
def db_session():
    init_database(engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def today() -> date:
    return business_today()


# ---------- Seed data ----------
@pytest.fixture
def seed(db_session, today):
    users = {
        "admin": User(id="U001", name="Ada Admin", email="admin@example.com", role=UserRole.ADMIN),
        "manager": User(id="U002", name="Manny Manager", email="manager@example.com", role=UserRole.MANAGER),
        "sales": User(id="U003", name="Sam Sales", email="sam@example.com", role=UserRole.SALES,
                      assigned_supplier_names=["Acme Foods"]),
        "driver": User(id="U004", name="Dee Driver", email=None, role=UserRole.DRIVER),
    }
    products = {
        "P1": Product(id="P1", name="Rice 5kg", category="Grains", sku="RICE-5", supplier="Acme Foods",
                      price=Decimal("100.00"), stock=10, image_url="/img/rice.png"),
        "P2": Product(id="P2", name="Sugar 1kg", category="Baking", sku="SUG-1", supplier="Sweet Co",
                      price=Decimal("50.00"), stock=0),
        "P3": Product(id="P3", name="Tea 200g", category="Beverages", sku="TEA-200", supplier="Sweet Co",
                      price=Decimal("250.00"), stock=3),
    }
    customer = Customer(id="C001", name="Corner Grocers", email="shop@example.com", phone="0771234567",
                        location="Kandy", discounts={"P3": 5})
    allocation = DriverAllocation(
        driver_id="U004",
        date=today,
        allocated_items=[{"product_id": "P1", "quantity": 4}, {"product_id": "P3", "quantity": 2}],
        sales_total=0
    )

    db_session.add_all(list(users.values()) + list(products.values()) + [customer])
    db_session.commit()
    db_session.add(allocation)
    db_session.commit()

    return SimpleNamespace(users=users, products=products, customer=customer, allocation=allocation)


@pytest.fixture
def make_order(db_session, seed):
    """Create an order through the service as ``actor`` (admin by default)."""

    def factory(items: List[dict], actor: Optional[User] = None, **kwargs):
        payload = OrderCreate(
            customer_id=kwargs.pop("customer_id", seed.customer.id),
            items=[OrderLineIn(**item) for item in items],
            **kwargs
        )
        return OrderService(db_session).create_order(actor or seed.users["admin"], payload)

    return factory


# ---------- HTTP ----------
class RecordingNotifier:
    """Stands in for OrderNotifier; records instead of sending."""

    def __init__(self):
        self.messages = []
        self.delivered = []

    def new_order_message(self, acting_user, order, customer_name):
        message = {"to": acting_user.email, "order_id": order.id, "customer_name": customer_name}
        self.messages.append(message)
        return message

    async def deliver(self, message):
        self.delivered.append(message)
        return True


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(db_session, seed, notifier):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(seed):
    """``auth_headers("driver")`` gives a bearer header for that seeded user."""

    def headers(role: str):
        token = create_access_token({"sub": seed.users[role].id})
        return {"Authorization": f"Bearer {token}"}

    return headers
