import pytest

def _body(**overrides):
    body = {
        "amount": 3795,
        "shipping": 0,
        "designId": "design-2",
        "designName": "Forever Yours",
        "bundleId": "love-pack",
        "bundleName": "Love Pack",
        "bundleSku": "PMH-LOVEPACK",
    }
    body.update(overrides)
    return body

def test_payment_intent_success(client, stripe_calls):
    r = client.post("/api/payment-intent", json=_body(shipping=495))
    assert r.status_code == 200
    assert r.json() == {
        "clientSecret": "pi_test_123_secret_abc",
        "paymentIntentId": "pi_test_123",
        "totalAmount": 4290,
    }
    assert stripe_calls[0]["kind"] == "payment_intent"
    assert stripe_calls[0]["metadata"]["source"] == "pokemyheart-store"

@pytest.mark.parametrize("overrides,error", [
    ({"amount": 100}, "Invalid amount: price mismatch"),
    ({"amount": "3795"}, "Invalid amount: must be a positive integer in cents"),
    ({"bundleId": "nope"}, "Invalid bundleId: unknown bundle"),
    ({"designName": ""}, "Invalid designName: must be a non-empty string"),
    ({"shipping": 123}, "Invalid shipping: unknown shipping rate"),
])
def test_payment_intent_validation(client, stripe_calls, overrides, error):
    r = client.post("/api/payment-intent", json=_body(**overrides))
    assert r.status_code == 400
    assert r.json() == {"error": error}
    assert stripe_calls == []

def test_payment_intent_provider_failure(client, monkeypatch):
    monkeypatch.setattr("storefront.config.STRIPE_SECRET_KEY", "sk_test_placeholder")
    r = client.post("/api/payment-intent", json=_body())
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to create payment intent"}

def test_express_checkout_success(client, stripe_calls):
    r = client.post("/api/express-checkout", json=_body(shipping=995))
    assert r.status_code == 200
    assert r.json() == {"clientSecret": "pi_test_123_secret_abc", "paymentIntentId": "pi_test_123"}
    # livraison ignorée et offerte
    assert stripe_calls[0]["amount"] == 3795

def test_express_checkout_price_mismatch(client, stripe_calls):
    r = client.post("/api/express-checkout", json=_body(amount=1))
    assert r.status_code == 400
    assert stripe_calls == []
