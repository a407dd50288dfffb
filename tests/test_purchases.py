# tests/test_purchases.py
from meatshare.db.models import AvailableShare, SharePurchase


def test_farmer_completes_confirmed_purchase(client, auth, seed):
    farm_id = seed.farm(owner_id="farmer-1")
    share_id = seed.share(farm_id, quantity=0)
    purchase_id = seed.purchase(farm_id=farm_id, share_id=share_id)

    r = client.post(f"/api/farmer/purchases/{purchase_id}/complete", headers=auth("farmer-1"))
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "completed"
    assert r.json()["farm_name"] == "Hill Creek Ranch"

    # completed is terminal
    r = client.post(
        f"/api/farmer/purchases/{purchase_id}/cancel", json={}, headers=auth("farmer-1")
    )
    assert r.status_code == 409


def test_pending_purchase_cannot_be_completed(client, auth, seed):
    farm_id = seed.farm(owner_id="farmer-1")
    share_id = seed.share(farm_id)
    purchase_id = seed.purchase(farm_id=farm_id, share_id=share_id, status="pending")

    r = client.post(f"/api/farmer/purchases/{purchase_id}/complete", headers=auth("farmer-1"))
    assert r.status_code == 409
    assert seed.get(SharePurchase, purchase_id).status == "pending"


def test_other_farmer_cannot_touch_purchase(client, auth, seed):
    farm_id = seed.farm(owner_id="farmer-1")
    share_id = seed.share(farm_id)
    purchase_id = seed.purchase(farm_id=farm_id, share_id=share_id)

    r = client.post(f"/api/farmer/purchases/{purchase_id}/complete", headers=auth("farmer-2"))
    assert r.status_code == 403
    assert seed.get(SharePurchase, purchase_id).status == "confirmed"


def test_unknown_purchase_is_404(client, auth):
    r = client.post("/api/farmer/purchases/nope/complete", headers=auth("farmer-1"))
    assert r.status_code == 404


def test_cancel_confirmed_refunds_and_restocks(client, auth, seed, fake_stripe):
    farm_id = seed.farm(owner_id="farmer-1")
    share_id = seed.share(farm_id, quantity=0)
    purchase_id = seed.purchase(farm_id=farm_id, share_id=share_id, payment_intent="pi_42")

    r = client.post(
        f"/api/farmer/purchases/{purchase_id}/cancel",
        json={"note": "processing date moved"},
        headers=auth("farmer-1"),
    )
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "cancelled"
    assert r.json()["notes"] == "processing date moved"
    assert seed.get(AvailableShare, share_id).quantity_available == 1
    assert fake_stripe.last("create_refund")["payment_intent_id"] == "pi_42"


def test_cancel_pending_does_not_refund(client, auth, seed, fake_stripe):
    farm_id = seed.farm(owner_id="farmer-1")
    share_id = seed.share(farm_id, quantity=1)
    purchase_id = seed.purchase(farm_id=farm_id, share_id=share_id, status="pending")

    r = client.post(
        f"/api/farmer/purchases/{purchase_id}/cancel", json={}, headers=auth("farmer-1")
    )
    assert r.status_code == 200
    assert seed.get(AvailableShare, share_id).quantity_available == 1
    assert "create_refund" not in fake_stripe.names()


def test_purchase_lists_are_scoped(client, auth, seed):
    farm_a = seed.farm(owner_id="farmer-a", account_id="acct_a")
    farm_b = seed.farm(owner_id="farmer-b", account_id="acct_b", name="Other Farm")
    share_a = seed.share(farm_a)
    share_b = seed.share(farm_b)
    seed.purchase(farm_id=farm_a, share_id=share_a, buyer_id="buyer-1", payment_intent="pi_a")
    seed.purchase(farm_id=farm_b, share_id=share_b, buyer_id="buyer-1", payment_intent="pi_b")
    seed.purchase(farm_id=farm_a, share_id=share_a, buyer_id="buyer-2", payment_intent="pi_c")

    mine = client.get("/api/buyer/purchases", headers=auth("buyer-1")).json()["purchases"]
    assert len(mine) == 2
    assert {p["buyer_id"] for p in mine} == {"buyer-1"}

    farm_view = client.get("/api/farmer/purchases", headers=auth("farmer-a")).json()["purchases"]
    assert len(farm_view) == 2
    assert {p["farm_id"] for p in farm_view} == {farm_a}


def test_buyer_purchases_carry_share_details(client, auth, seed):
    farm_id = seed.farm(owner_id="farmer-1")
    share_id = seed.share(farm_id, animal_type="pork", portion="1/2", price=480.0)
    seed.purchase(farm_id=farm_id, share_id=share_id, buyer_id="buyer-1")

    [row] = client.get("/api/buyer/purchases", headers=auth("buyer-1")).json()["purchases"]
    assert row["farm_name"] == "Hill Creek Ranch"
    assert row["animal_type"] == "pork"
    assert row["weight_estimate"] == "100-120 lbs"
    assert row["next_available_date"] is None


def test_purchase_survives_share_deletion(client, auth, seed):
    farm_id = seed.farm(owner_id="farmer-1")
    share_id = seed.share(farm_id)
    purchase_id = seed.purchase(farm_id=farm_id, share_id=share_id, buyer_id="buyer-1")

    r = client.delete(f"/api/farmer/shares/{share_id}", headers=auth("farmer-1"))
    assert r.status_code == 204

    purchase = seed.get(SharePurchase, purchase_id)
    assert purchase is not None
    assert purchase.share_id is None
    assert seed.get(AvailableShare, share_id) is None

    [row] = client.get("/api/buyer/purchases", headers=auth("buyer-1")).json()["purchases"]
    assert row["id"] == purchase_id
    assert row["share_id"] is None
    assert row["animal_type"] is None
    assert row["status"] == "confirmed"
