import hashlib
import hmac
import json
import os
import time
from decimal import Decimal
from typing import Any, Dict, Generator, List, Optional

# Avant tout import de l'app: pas de Redis pendant les tests
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import pytest
from fastapi.testclient import TestClient

from storefront.app_setup.factory import create_app
from storefront.checkout.cart import compute_charge
from storefront.checkout.metadata import make_metadata
from storefront.checkout.models import CheckoutRequest
from storefront.config import EmailSettings, Settings, StripeSettings, get_settings
from storefront.errors import PersistenceConflictError, PersistenceError
from storefront.orders.models import Order, OrderItem
from storefront.orders.views import get_order_repository_factory
from storefront.webhooks.views import get_notifier

WEBHOOK_SECRET = "whsec_test_secret"


# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


class InMemoryOrderRepository:
    """Repository en mémoire qui respecte les contraintes UNIQUE de supabase/schema.sql."""

    def __init__(self):
        self.orders: Dict[str, Order] = {}
        self.items: Dict[str, List[OrderItem]] = {}
        self.create_calls = 0
        self.fail_items = False

    def get_by_session_id(self, session_id: str) -> Optional[Order]:
        return next((o for o in self.orders.values() if o.stripe_session_id == session_id), None)

    def find(self, identifier: str) -> Optional[Order]:
        by_number = next((o for o in self.orders.values() if o.order_number == identifier), None)
        return by_number or self.orders.get(identifier)

    def list_items(self, order_id: str) -> List[OrderItem]:
        return list(self.items.get(order_id, []))

    def create(self, order: Order, items) -> Order:
        self.create_calls += 1
        for existing in self.orders.values():
            if existing.order_number == order.order_number:
                raise PersistenceConflictError(f"duplicate order_number {order.order_number}")
            if order.stripe_session_id and existing.stripe_session_id == order.stripe_session_id:
                raise PersistenceConflictError(f"duplicate session {order.stripe_session_id}")
        if self.fail_items:
            raise PersistenceError("order_items insert failed")
        self.orders[order.id] = order
        self.items[order.id] = list(items)
        return order


class RecordingNotifier:
    def __init__(self, fail: bool = False):
        self.sent: List[Dict[str, Any]] = []
        self.fail = fail

    def send_order_confirmation(self, order, items, recipient=None, customer_name=None):
        if self.fail:
            from storefront.errors import UpstreamError
            raise UpstreamError("Resend indisponible")
        self.sent.append({"order": order, "items": list(items), "recipient": recipient, "customer_name": customer_name})
        return True


def stripe_signature(payload: str, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """En-tête Stripe-Signature réel (HMAC-SHA256 de "<t>.<payload>")."""
    ts = int(time.time()) if timestamp is None else timestamp
    mac = hmac.new(secret.encode("utf-8"), f"{ts}.{payload}".encode("utf-8"), hashlib.sha256).hexdigest()
    return f"t={ts},v1={mac}"


def checkout_request(items: Optional[List[Dict[str, Any]]] = None, **overrides) -> CheckoutRequest:
    body: Dict[str, Any] = {
        "customer": {"firstName": "Ada", "lastName": "Lovelace", "email": "ada@example.com", "phone": "718-555-0101"},
        "delivery": {
            "address": "12 Court St",
            "borough": "Brooklyn",
            "city": "New York",
            "zip": "11201",
            "date": "2026-11-02",
            "time": "10:00-12:00",
            "instructions": "Ring twice",
        },
        "items": items if items is not None else [{"id": "nyc-classic", "name": "NY Classic", "price": 30, "quantity": 2}],
        "paymentMethod": "stripe",
    }
    body.update(overrides)
    return CheckoutRequest.model_validate(body)


def completed_event(
    request: CheckoutRequest,
    order_number: str = "DRH-TEST0001",
    session_id: str = "cs_test_123",
    amount_total: Optional[int] = None,
    event_id: str = "evt_test_1",
) -> Dict[str, Any]:
    """Événement checkout.session.completed tel que Stripe le livrerait pour cette requête."""
    breakdown = compute_charge(request.items, Decimal("150"), Decimal("0.5"))
    return {
        "id": event_id,
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "customer_email": request.customer.email,
                "customer_details": {"email": request.customer.email, "name": request.customer.full_name, "phone": None},
                "amount_total": breakdown.amount_due_cents if amount_total is None else amount_total,
                "payment_intent": "pi_test_123",
                "metadata": make_metadata(request, order_number, breakdown),
            }
        },
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(
        stripe=StripeSettings(secret_key="sk_test_dummy", webhook_secret=WEBHOOK_SECRET),
        email=EmailSettings(resend_api_key=""),
        site_url="http://shop.test",
    )


@pytest.fixture
def repository() -> InMemoryOrderRepository:
    return InMemoryOrderRepository()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def failing_notifier() -> RecordingNotifier:
    return RecordingNotifier(fail=True)


@pytest.fixture
def app(settings, repository, notifier):
    application = create_app(settings)
    application.dependency_overrides[get_settings] = lambda: settings
    application.dependency_overrides[get_order_repository_factory] = lambda: (lambda: repository)
    application.dependency_overrides[get_notifier] = lambda: notifier
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


@pytest.fixture
def post_webhook(client):
    """Poste un événement signé sur /api/v1/webhooks/stripe."""
    def _post(event: Dict[str, Any], secret: str = WEBHOOK_SECRET, signature: Optional[str] = None):
        payload = json.dumps(event)
        headers = {"Content-Type": "application/json"}
        sig = signature if signature is not None else stripe_signature(payload, secret)
        if sig:
            headers["Stripe-Signature"] = sig
        return client.post("/api/v1/webhooks/stripe", content=payload, headers=headers)
    return _post


@pytest.fixture
def make_request():
    return checkout_request


@pytest.fixture
def make_event():
    return completed_event


@pytest.fixture
def sign():
    return stripe_signature
