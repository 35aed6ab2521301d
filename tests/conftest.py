import os

# Rate limiting inactif en tests (le lifespan ne branche pas fastapi-limiter)
os.environ.setdefault("DISABLE_RATE_LIMIT_INIT_FOR_TESTS", "1")

import pytest
from typing import Any, Dict, Generator, List
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from storefront import config
from storefront.app import app as fastapi_app
from storefront.inventory import repository as inventory_repository
from storefront.utils.security import require_admin

SITE_URL = "https://shop.example.com"

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

# Configuration déterministe (aucun .env requis)
@pytest.fixture(autouse=True)
def _test_settings(monkeypatch):
    monkeypatch.setattr(config, "SITE_URL", SITE_URL)
    monkeypatch.setattr(config, "STRIPE_SECRET_KEY", "sk_test_unit")
    monkeypatch.setattr(config, "STRIPE_WEBHOOK_SECRET", "whsec_unit")
    monkeypatch.setattr(config, "FB_PIXEL_ID", "")
    monkeypatch.setattr(config, "FB_CONVERSIONS_API_TOKEN", "")
    monkeypatch.setattr(config, "GA_MEASUREMENT_ID", "")
    monkeypatch.setattr(config, "GA_API_SECRET", "")
    monkeypatch.setattr(config, "ADMIN_EMAIL_ALLOWLIST", ["admin@example.com"])
    monkeypatch.setattr(config, "ORDER_NUMBER_PREFIX", "PMH")
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)

# Aucun accès réseau à Supabase: client mocké, inventaire en mémoire
@pytest.fixture(autouse=True)
def mock_db_dependency(monkeypatch):
    monkeypatch.setattr("storefront.orders.repository.get_service_supabase", lambda: MagicMock())
    monkeypatch.setattr("storefront.health.service.get_service_supabase", lambda: MagicMock())
    monkeypatch.setattr("storefront.analytics.repository.get_service_supabase", lambda: MagicMock())

    def _no_supabase():
        raise RuntimeError("Supabase non configuré (tests)")

    monkeypatch.setattr("storefront.inventory.repository.get_service_supabase", _no_supabase)
    inventory_repository.reset_memory_store()

@pytest.fixture
def admin_user() -> Dict[str, Any]:
    return {"id": "admin-user-id", "email": "admin@example.com", "role": "admin"}

@pytest.fixture
def authenticated_admin_client(app, client, admin_user):
    app.dependency_overrides[require_admin] = lambda: admin_user
    yield client
    app.dependency_overrides.pop(require_admin, None)

def make_item(**overrides) -> Dict[str, Any]:
    item = {
        "name": "Card Only",
        "description": "Eternal Love",
        "price": 2395,
        "quantity": 1,
        "designId": "design-1",
        "designName": "Eternal Love",
        "bundleId": "card-only",
        "bundleName": "Card Only",
        "bundleSku": "PMH-CARD",
    }
    item.update(overrides)
    return item

@pytest.fixture
def cart_item():
    return make_item

@pytest.fixture
def stripe_calls(monkeypatch) -> List[Dict[str, Any]]:
    """Remplace les appels Stripe sortants et enregistre leurs paramètres."""
    calls: List[Dict[str, Any]] = []

    def _fake_create_session(**params):
        calls.append({"kind": "session", **params})
        return {"id": "cs_test_123", "url": "https://checkout.stripe.com/c/pay/cs_test_123"}

    def _fake_create_payment_intent(**params):
        calls.append({"kind": "payment_intent", **params})
        return {"id": "pi_test_123", "client_secret": "pi_test_123_secret_abc"}

    monkeypatch.setattr("storefront.checkout.stripe_client.create_session", _fake_create_session)
    monkeypatch.setattr("storefront.checkout.stripe_client.create_payment_intent", _fake_create_payment_intent)
    return calls

class FakeOrdersRepository:
    """Remplaçant en mémoire de storefront.orders.repository."""

    def __init__(self):
        self.orders: List[Dict[str, Any]] = []
        self.customers: Dict[str, Dict[str, Any]] = {}
        self.rpc_calls: List[tuple] = []
        self.rpc_error: Any = None
        self.insert_errors: List[Exception] = []

    def find_existing_order(self, stripe_session_id=None, stripe_payment_intent=None):
        for order in self.orders:
            if stripe_session_id and order.get("stripe_session_id") == stripe_session_id:
                return order
            if stripe_payment_intent and order.get("stripe_payment_intent") == stripe_payment_intent:
                return order
        return None

    def get_last_order_number(self):
        return self.orders[-1]["order_number"] if self.orders else None

    def insert_order(self, payload):
        if self.insert_errors:
            raise self.insert_errors.pop(0)
        row = {"id": f"order-{len(self.orders) + 1}", **payload}
        self.orders.append(row)
        return row

    def list_orders(self, status=None, limit=50, offset=0):
        rows = [o for o in reversed(self.orders) if not status or o.get("status") == status]
        return rows[offset:offset + limit]

    def get_order(self, order_id):
        return next((o for o in self.orders if o["id"] == order_id), None)

    def update_order(self, order_id, updates):
        order = self.get_order(order_id)
        if order is None:
            return None
        order.update(updates)
        return order

    def fetch_order_totals(self):
        return [{"total": o.get("total"), "status": o.get("status")} for o in self.orders]

    def call_upsert_customer_stats(self, email, name, total_spent, accepts_marketing):
        self.rpc_calls.append((email, name, total_spent, accepts_marketing))
        if self.rpc_error is not None:
            raise self.rpc_error

    def get_customer(self, email):
        return self.customers.get(email)

    def update_customer(self, email, updates):
        self.customers[email].update(updates)

    def insert_customer(self, payload):
        self.customers[payload["email"]] = dict(payload)

@pytest.fixture
def orders_repo(monkeypatch) -> FakeOrdersRepository:
    fake = FakeOrdersRepository()
    for name in (
        "find_existing_order",
        "get_last_order_number",
        "insert_order",
        "list_orders",
        "get_order",
        "update_order",
        "fetch_order_totals",
        "call_upsert_customer_stats",
        "get_customer",
        "update_customer",
        "insert_customer",
    ):
        monkeypatch.setattr(f"storefront.orders.repository.{name}", getattr(fake, name))
    return fake
