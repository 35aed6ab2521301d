import hashlib
import hmac
import json
import time

import httpx
import pytest

WEBHOOK = "/api/webhooks/stripe"
HEADERS = {"stripe-signature": "t=1,v1=signed"}

ITEMS = [{"bundle_id": "card-only", "bundle_name": "Card Only", "design_id": "design-1",
          "design_name": "Eternal Love", "quantity": 2, "price": 2395}]

def _session_event(session_id="cs_test_abc"):
    return {
        "type": "checkout.session.completed",
        "data": {"object": {
            "id": session_id,
            "payment_intent": "pi_abc",
            "amount_total": 4790,
            "customer_details": {"email": "jane@example.com", "name": "Jane Doe"},
            "shipping_details": {"name": "Jane Doe", "address": {"line1": "1 Main St", "city": "Austin",
                                                                 "country": "US"}},
            "metadata": {"source": "pokemyheart-store", "checkout_type": "hosted",
                         "subtotal": "4790", "shipping": "0", "items": json.dumps(ITEMS)},
        }},
    }

@pytest.fixture
def signed_event(monkeypatch):
    """Contourne la vérification de signature et renvoie l'événement fourni."""
    holder = {}

    def _construct(payload, signature):
        return holder["event"]

    monkeypatch.setattr("storefront.checkout.stripe_client.construct_event", _construct)
    return holder

def test_missing_signature(client, orders_repo):
    r = client.post(WEBHOOK, content=b"{}")
    assert r.status_code == 400
    assert r.json() == {"error": "Missing stripe-signature header"}

def test_invalid_signature(client, orders_repo):
    r = client.post(WEBHOOK, content=b'{"id": "evt_1"}', headers=HEADERS)
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid signature"}
    assert orders_repo.orders == []

def test_webhook_secret_missing(client, orders_repo, monkeypatch):
    monkeypatch.setattr("storefront.config.STRIPE_WEBHOOK_SECRET", "")
    r = client.post(WEBHOOK, content=b"{}", headers=HEADERS)
    assert r.status_code == 500
    assert r.json() == {"error": "Webhook not configured"}

def test_checkout_completed_creates_order(client, orders_repo, signed_event):
    signed_event["event"] = _session_event()
    r = client.post(WEBHOOK, content=b"{}", headers=HEADERS)

    assert r.status_code == 200
    assert r.json() == {"received": True}
    assert len(orders_repo.orders) == 1
    order = orders_repo.orders[0]
    assert order["order_number"] == "PMH-001"
    assert order["total"] == 4790
    assert order["shipping_address"]["line1"] == "1 Main St"

def test_redelivered_event_is_idempotent(client, orders_repo, signed_event):
    signed_event["event"] = _session_event()
    assert client.post(WEBHOOK, content=b"{}", headers=HEADERS).status_code == 200
    assert client.post(WEBHOOK, content=b"{}", headers=HEADERS).status_code == 200
    assert len(orders_repo.orders) == 1

def test_second_session_gets_next_number(client, orders_repo, signed_event):
    signed_event["event"] = _session_event("cs_1")
    client.post(WEBHOOK, content=b"{}", headers=HEADERS)
    signed_event["event"] = _session_event("cs_2")
    client.post(WEBHOOK, content=b"{}", headers=HEADERS)
    assert [o["order_number"] for o in orders_repo.orders] == ["PMH-001", "PMH-002"]

def test_payment_intent_succeeded(client, orders_repo, signed_event):
    signed_event["event"] = {
        "type": "payment_intent.succeeded",
        "data": {"object": {
            "id": "pi_custom_1",
            "amount": 2890,
            "receipt_email": "sam@example.com",
            "metadata": {"source": "pokemyheart-store", "checkout_type": "custom",
                         "subtotal": "2395", "shipping": "495", "items": json.dumps(ITEMS[:1])},
        }},
    }
    r = client.post(WEBHOOK, content=b"{}", headers=HEADERS)
    assert r.status_code == 200
    assert orders_repo.orders[0]["stripe_payment_intent"] == "pi_custom_1"

def test_unhandled_event_type_acknowledged(client, orders_repo, signed_event):
    signed_event["event"] = {"type": "customer.created", "data": {"object": {"id": "cus_1"}}}
    r = client.post(WEBHOOK, content=b"{}", headers=HEADERS)
    assert r.status_code == 200
    assert orders_repo.orders == []

def test_handler_failure_returns_500(client, orders_repo, signed_event):
    event = _session_event()
    event["data"]["object"]["metadata"] = {}
    signed_event["event"] = event
    r = client.post(WEBHOOK, content=b"{}", headers=HEADERS)
    assert r.status_code == 500
    assert r.json() == {"error": "Webhook handler failure"}

def test_real_signature_verification(client, orders_repo):
    payload = json.dumps({"id": "evt_sig", "object": "event", "type": "customer.created",
                          "data": {"object": {"id": "cus_1", "object": "customer"}}}).encode()
    timestamp = int(time.time())
    signed = hmac.new(b"whsec_unit", f"{timestamp}.".encode() + payload, hashlib.sha256).hexdigest()

    r = client.post(WEBHOOK, content=payload, headers={"stripe-signature": f"t={timestamp},v1={signed}"})
    assert r.status_code == 200
    assert r.json() == {"received": True}

def test_checkout_completed_sends_ga4_purchase(client, orders_repo, signed_event, monkeypatch):
    monkeypatch.setattr("storefront.config.GA_MEASUREMENT_ID", "G-TEST123")
    monkeypatch.setattr("storefront.config.GA_API_SECRET", "secret-xyz")
    sent = []

    def _post(url, **kwargs):
        sent.append({"url": url, **kwargs})
        return httpx.Response(204)

    monkeypatch.setattr(httpx, "post", _post)
    event = _session_event()
    event["data"]["object"]["metadata"]["ga_client_id"] = "1234.5678"
    signed_event["event"] = event

    r = client.post(WEBHOOK, content=b"{}", headers=HEADERS)
    assert r.status_code == 200

    ga = [c for c in sent if c["url"] == "https://www.google-analytics.com/mp/collect"]
    assert len(ga) == 1
    payload = ga[0]["json"]
    assert payload["client_id"] == "1234.5678"
    assert payload["events"][0]["params"]["transaction_id"] == "PMH-001"
    assert payload["events"][0]["params"]["value"] == 47.9
