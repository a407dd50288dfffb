# tests/test_payment_api.py
import stripe

from meatshare.db.models import AvailableShare, SharePurchase
from meatshare.marketplace.services.purchase_checkout_service import (
    FARM_NOT_PAYABLE_MESSAGE,
)


# ------------------------------------------------------------
# Method / auth contract
# ------------------------------------------------------------
def test_wrong_method_is_405_with_error_body(client):
    """non-POST on a payment endpoint"""
    for path in ("/api/create-checkout", "/api/purchase-share", "/api/check-connect-status"):
        r = client.get(path)
        assert r.status_code == 405
        assert r.json() == {"error": "Method not allowed"}


def test_requires_bearer_token(client):
    r = client.post("/api/create-checkout", json={"priceType": "buyer", "userId": "u1"})
    assert r.status_code == 401


def test_tampered_token_is_rejected(client, auth):
    headers = auth("u1")
    headers["Authorization"] = headers["Authorization"][:-2] + "xx"
    r = client.post(
        "/api/create-checkout",
        json={"priceType": "buyer", "userId": "u1"},
        headers=headers,
    )
    assert r.status_code == 401


# ------------------------------------------------------------
# create-checkout
# ------------------------------------------------------------
def test_create_checkout_returns_session(client, auth, fake_stripe):
    r = client.post(
        "/api/create-checkout",
        json={"priceType": "buyer", "userId": "u1", "userEmail": "u1@example.com"},
        headers={**auth("u1"), "Origin": "http://localhost:5173"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["url"].startswith("https://checkout.stripe.com/")

    kwargs = fake_stripe.last("create_subscription_checkout_session")
    assert kwargs["price_id"] == "price_buyer_test"
    assert kwargs["customer_email"] == "u1@example.com"
    assert kwargs["success_url"] == "http://localhost:5173/dashboard?success=true"


def test_create_checkout_without_origin_uses_public_site(client, auth, fake_stripe):
    r = client.post(
        "/api/create-checkout",
        json={"priceType": "farmer", "userId": "u1"},
        headers=auth("u1"),
    )
    assert r.status_code == 200, r.text
    kwargs = fake_stripe.last("create_subscription_checkout_session")
    assert kwargs["success_url"] == "https://farmdirectmeat.com/dashboard?success=true"


def test_create_checkout_user_mismatch(client, auth, fake_stripe):
    r = client.post(
        "/api/create-checkout",
        json={"priceType": "buyer", "userId": "someone-else"},
        headers=auth("u1"),
    )
    assert r.status_code == 403
    assert "error" in r.json()
    assert fake_stripe.calls == []


def test_processor_error_passes_through_as_500(client, auth, fake_stripe):
    fake_stripe.fail_with = stripe.InvalidRequestError("No such price: 'price_buyer_test'", "price")
    r = client.post(
        "/api/create-checkout",
        json={"priceType": "buyer", "userId": "u1"},
        headers=auth("u1"),
    )
    assert r.status_code == 500
    assert r.json() == {"error": "No such price: 'price_buyer_test'"}


def test_unknown_price_tier_is_500(client, auth):
    r = client.post(
        "/api/create-checkout",
        json={"priceType": "platinum", "userId": "u1"},
        headers=auth("u1"),
    )
    assert r.status_code == 500
    assert r.json() == {"error": "Unknown price tier: platinum"}


# ------------------------------------------------------------
# purchase-share
# ------------------------------------------------------------
def _purchase_body(farm_id, share_id, **overrides):
    body = {
        "shareId": share_id,
        "farmId": farm_id,
        "farmName": "Hill Creek Ranch",
        "farmerStripeAccountId": "acct_ready",
        "buyerId": "buyer-1",
        "buyerEmail": "buyer@example.com",
        "animalType": "beef",
        "portion": "1/4",
        "price": 1.0,
    }
    body.update(overrides)
    return body


def test_purchase_share_charges_stored_price(client, auth, seed, fake_stripe):
    """$650 share -> 65000 cents, 650 fee to the platform"""
    farm_id = seed.farm()
    share_id = seed.share(farm_id, price=650.0, quantity=1)

    r = client.post(
        "/api/purchase-share",
        json=_purchase_body(farm_id, share_id),
        headers=auth("buyer-1", "buyer@example.com"),
    )
    assert r.status_code == 200, r.text
    assert r.json()["url"].startswith("https://checkout.stripe.com/")

    kwargs = fake_stripe.last("create_connect_payment_checkout_session")
    # the client-sent price (1.0) is ignored; the stored price is charged
    assert kwargs["unit_amount_cents"] == 65000
    assert kwargs["application_fee_cents"] == 650
    assert kwargs["destination_account_id"] == "acct_ready"
    assert kwargs["session_metadata"] == {
        "shareId": share_id,
        "farmId": farm_id,
        "buyerId": "buyer-1",
        "type": "share_purchase",
    }
    assert kwargs["idempotency_key"]

    # the purchase row is created by the webhook, not here
    assert seed.count(SharePurchase) == 0


def test_purchase_share_same_attempt_reuses_idempotency_key(client, auth, seed, fake_stripe):
    farm_id = seed.farm()
    share_id = seed.share(farm_id)
    body = _purchase_body(farm_id, share_id, attemptId="attempt-abc")

    client.post("/api/purchase-share", json=body, headers=auth("buyer-1"))
    client.post("/api/purchase-share", json=body, headers=auth("buyer-1"))

    keys = [
        kwargs["idempotency_key"]
        for name, kwargs in fake_stripe.calls
        if name == "create_connect_payment_checkout_session"
    ]
    assert len(keys) == 2
    assert keys[0] == keys[1]


def test_purchase_share_after_a_sale_gets_a_new_session(client, auth, seed, fake_stripe, db):
    farm_id = seed.farm()
    share_id = seed.share(farm_id, quantity=2)
    body = _purchase_body(farm_id, share_id)

    client.post("/api/purchase-share", json=body, headers=auth("buyer-1"))
    first = fake_stripe.last("create_connect_payment_checkout_session")["idempotency_key"]

    # the first checkout completed and took a unit
    db.get(AvailableShare, share_id).quantity_available = 1
    db.commit()

    client.post("/api/purchase-share", json=body, headers=auth("buyer-1"))
    second = fake_stripe.last("create_connect_payment_checkout_session")["idempotency_key"]
    assert second != first


def test_purchase_share_farm_without_payments(client, auth, seed, fake_stripe):
    farm_id = seed.farm(account_id=None, ready=False)
    share_id = seed.share(farm_id)

    r = client.post(
        "/api/purchase-share",
        json=_purchase_body(farm_id, share_id, farmerStripeAccountId=None),
        headers=auth("buyer-1"),
    )
    assert r.status_code == 409
    assert r.json() == {"error": FARM_NOT_PAYABLE_MESSAGE}
    assert fake_stripe.calls == []


def test_purchase_share_sold_out(client, auth, seed, fake_stripe):
    farm_id = seed.farm()
    share_id = seed.share(farm_id, quantity=0)

    r = client.post(
        "/api/purchase-share",
        json=_purchase_body(farm_id, share_id),
        headers=auth("buyer-1"),
    )
    assert r.status_code == 409
    assert fake_stripe.calls == []


def test_purchase_share_mismatched_account(client, auth, seed, fake_stripe):
    farm_id = seed.farm()
    share_id = seed.share(farm_id)

    r = client.post(
        "/api/purchase-share",
        json=_purchase_body(farm_id, share_id, farmerStripeAccountId="acct_attacker"),
        headers=auth("buyer-1"),
    )
    assert r.status_code == 409
    assert fake_stripe.calls == []


def test_purchase_share_on_behalf_of_someone_else(client, auth, seed):
    farm_id = seed.farm()
    share_id = seed.share(farm_id)

    r = client.post(
        "/api/purchase-share",
        json=_purchase_body(farm_id, share_id),
        headers=auth("buyer-2"),
    )
    assert r.status_code == 403


def test_purchase_share_unknown_share(client, auth, seed):
    farm_id = seed.farm()
    r = client.post(
        "/api/purchase-share",
        json=_purchase_body(farm_id, "00000000-0000-0000-0000-000000000000"),
        headers=auth("buyer-1"),
    )
    assert r.status_code == 404
