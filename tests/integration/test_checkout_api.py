import pytest
import stripe

def test_checkout_success(client, cart_item, stripe_calls):
    r = client.post("/api/checkout", json={"items": [cart_item(quantity=2)], "fbData": {"eventId": "evt_1"}})

    assert r.status_code == 200
    assert r.json() == {
        "id": "cs_test_123",
        "url": "https://checkout.stripe.com/c/pay/cs_test_123",
        "fbEventId": "evt_1",
    }
    params = stripe_calls[0]
    assert params["kind"] == "session"
    assert params["success_url"] == "https://shop.example.com/checkout/success?session_id={CHECKOUT_SESSION_ID}"
    assert params["metadata"]["subtotal"] == "4790"

def test_checkout_fb_event_id_null_when_absent(client, cart_item, stripe_calls):
    r = client.post("/api/checkout", json={"items": [cart_item()]})
    assert r.status_code == 200
    assert r.json()["fbEventId"] is None

@pytest.mark.parametrize("body,error", [
    ({"items": []}, "Invalid items: must be a non-empty array"),
    ({}, "Invalid items: must be a non-empty array"),
    ([1, 2], "Invalid request body"),
])
def test_checkout_rejects_bad_shapes(client, stripe_calls, body, error):
    r = client.post("/api/checkout", json=body)
    assert r.status_code == 400
    assert r.json() == {"error": error}
    assert stripe_calls == []

def test_checkout_rejects_tampered_price(client, cart_item, stripe_calls):
    r = client.post("/api/checkout", json={"items": [cart_item(), cart_item(price=100)]})
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid items[1].price: price mismatch"
    assert stripe_calls == []

def test_checkout_rejects_unknown_bundle(client, cart_item, stripe_calls):
    r = client.post("/api/checkout", json={"items": [cart_item(bundleId="mega-pack")]})
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid items[0].bundleId: unknown bundle"

def test_checkout_rejects_too_many_items(client, cart_item, stripe_calls):
    r = client.post("/api/checkout", json={"items": [cart_item() for _ in range(21)]})
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid items: too many items (max 20)"

def test_checkout_invalid_json(client, stripe_calls):
    r = client.post("/api/checkout", content=b"{not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid request body"}

def test_checkout_missing_site_url(client, cart_item, stripe_calls, monkeypatch):
    monkeypatch.setattr("storefront.config.SITE_URL", "")
    r = client.post("/api/checkout", json={"items": [cart_item()]})
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to create checkout session", "details": "SITE_URL not configured"}
    assert stripe_calls == []

def test_checkout_invalid_cart_is_400_even_without_site_url(client, cart_item, stripe_calls, monkeypatch):
    monkeypatch.setattr("storefront.config.SITE_URL", "")
    r = client.post("/api/checkout", json={"items": [cart_item(price=1)]})
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid items[0].price: price mismatch"}
    assert stripe_calls == []

def test_checkout_stripe_error_details(client, cart_item, monkeypatch):
    def _reject(**params):
        raise stripe.InvalidRequestError("Bad param", param="line_items")

    monkeypatch.setattr(stripe.checkout.Session, "create", _reject)
    r = client.post("/api/checkout", json={"items": [cart_item()]})
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to create checkout session", "details": "Bad param"}

def test_checkout_missing_stripe_key(client, cart_item, monkeypatch):
    monkeypatch.setattr("storefront.config.STRIPE_SECRET_KEY", "")
    r = client.post("/api/checkout", json={"items": [cart_item()]})
    assert r.status_code == 500
    assert r.json()["error"] == "Failed to create checkout session"

def test_checkout_unexpected_error(client, cart_item, monkeypatch):
    def _boom(**params):
        raise KeyError("surprise")

    monkeypatch.setattr("storefront.checkout.stripe_client.create_session", _boom)
    r = client.post("/api/checkout", json={"items": [cart_item()]})
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to create checkout session", "details": "Unknown error"}

def test_checkout_rate_limited_with_local_fallback(app, client, cart_item, stripe_calls, monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    app.state._rl_store = {}
    try:
        codes = [client.post("/api/checkout", json={"items": [cart_item()]}).status_code for _ in range(11)]
    finally:
        app.state._rl_store = {}
    assert codes[:10] == [200] * 10
    assert codes[10] == 429
    assert len(stripe_calls) == 10
