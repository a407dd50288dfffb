# tests/test_onboarding.py
from meatshare.db.models import Farm

SHARE_BODY = {"animal_type": "beef", "portion": "1/2", "price": 1200, "quantity_available": 2}


def _create_farm(client, auth, seed, user_id="farmer-1"):
    seed.role(user_id, "farmer")
    r = client.post("/api/farmer/farm", headers=auth(user_id, f"{user_id}@example.com"))
    assert r.status_code == 201, r.text
    return r.json()["id"]


def test_create_farm_requires_farmer_role(client, auth):
    r = client.post("/api/farmer/farm", headers=auth("not-a-farmer"))
    assert r.status_code == 403


def test_create_farm_defaults_and_second_farm_conflict(client, auth, seed):
    _create_farm(client, auth, seed)

    r = client.get("/api/farmer/farm", headers=auth("farmer-1"))
    assert r.status_code == 200
    body = r.json()
    assert body["name"] == "My Farm"
    assert body["payments_ready"] is False

    r = client.post("/api/farmer/farm", headers=auth("farmer-1"))
    assert r.status_code == 409


def test_update_farm_profile(client, auth, seed):
    _create_farm(client, auth, seed)
    r = client.patch(
        "/api/farmer/farm",
        json={"name": "Cedar Hollow", "zip_code": "97330", "is_grass_fed": True},
        headers=auth("farmer-1"),
    )
    assert r.status_code == 200, r.text
    assert r.json()["name"] == "Cedar Hollow"
    assert r.json()["is_grass_fed"] is True


def test_onboarding_flag_written_once_and_gate_opens(client, auth, seed, fake_stripe):
    """account created -> incomplete -> ready; flag written exactly once"""
    farm_id = _create_farm(client, auth, seed)
    headers = auth("farmer-1", "farmer-1@example.com")

    # no account yet: listing is refused
    r = client.post("/api/farmer/shares", json=SHARE_BODY, headers=headers)
    assert r.status_code == 409

    # setup creates the connected account and persists its id
    r = client.post("/api/farmer/payments/setup", headers=headers)
    assert r.status_code == 200, r.text
    setup = r.json()
    assert setup["account_created"] is True
    assert setup["state"] == "account-created"
    account_id = setup["account_id"]
    assert seed.get(Farm, farm_id).stripe_account_id == account_id

    # onboarding not finished
    r = client.get("/api/farmer/payments/status", headers=headers)
    assert r.status_code == 200
    status = r.json()
    assert status["state"] == "onboarding-incomplete"
    assert status["readiness"]["requires_action"] is True
    assert status["can_create_shares"] is False
    assert status["flag_written"] is False

    r = client.post("/api/farmer/shares", json=SHARE_BODY, headers=headers)
    assert r.status_code == 409

    # Stripe now reports charges enabled
    fake_stripe.account = {
        "charges_enabled": True,
        "payouts_enabled": True,
        "details_submitted": True,
    }
    r = client.get("/api/farmer/payments/status", headers=headers)
    status = r.json()
    assert status["state"] == "payments-ready"
    assert status["flag_written"] is True
    assert status["can_create_shares"] is True
    assert seed.get(Farm, farm_id).stripe_onboarding_complete is True

    # polling again does not write again
    r = client.get("/api/farmer/payments/status", headers=headers)
    assert r.json()["flag_written"] is False

    r = client.post("/api/farmer/shares", json=SHARE_BODY, headers=headers)
    assert r.status_code == 201, r.text
    assert r.json()["quantity_available"] == 2


def test_setup_again_reuses_existing_account(client, auth, seed, fake_stripe):
    _create_farm(client, auth, seed)
    headers = auth("farmer-1")

    first = client.post("/api/farmer/payments/setup", headers=headers).json()
    second = client.post("/api/farmer/payments/setup", headers=headers).json()

    assert second["account_created"] is False
    assert second["account_id"] == first["account_id"]
    assert fake_stripe.names().count("create_express_account") == 1


def test_create_connect_account_endpoint_persists_account(client, auth, seed, fake_stripe):
    farm_id = _create_farm(client, auth, seed)
    r = client.post(
        "/api/create-connect-account",
        json={"userId": "farmer-1", "email": "f@example.com", "farmName": "Hill Creek Ranch"},
        headers=auth("farmer-1"),
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert set(body) == {"accountId", "onboardingUrl"}
    assert seed.get(Farm, farm_id).stripe_account_id == body["accountId"]

    create_kwargs = fake_stripe.last("create_express_account")
    assert create_kwargs["business_name"] == "Hill Creek Ranch"
    assert create_kwargs["metadata"] == {"userId": "farmer-1", "farmName": "Hill Creek Ranch"}


def test_check_connect_status_endpoint(client, auth, seed, fake_stripe):
    farm_id = seed.farm(owner_id="farmer-1", account_id="acct_mine", ready=False)
    fake_stripe.account = {
        "charges_enabled": True,
        "payouts_enabled": False,
        "details_submitted": True,
    }

    r = client.post(
        "/api/check-connect-status",
        json={"stripeAccountId": "acct_mine"},
        headers=auth("farmer-1"),
    )
    assert r.status_code == 200, r.text
    assert r.json() == {
        "chargesEnabled": True,
        "payoutsEnabled": False,
        "detailsSubmitted": True,
        "requiresAction": False,
    }
    assert seed.get(Farm, farm_id).stripe_onboarding_complete is True


def test_check_connect_status_for_foreign_account(client, auth, seed, fake_stripe):
    seed.farm(owner_id="farmer-1", account_id="acct_mine")
    r = client.post(
        "/api/check-connect-status",
        json={"stripeAccountId": "acct_mine"},
        headers=auth("farmer-2"),
    )
    assert r.status_code == 403
    assert "error" in r.json()
    assert fake_stripe.calls == []


def test_refresh_connect_onboarding(client, auth, seed, fake_stripe):
    seed.farm(owner_id="farmer-1", account_id="acct_mine", ready=False)
    r = client.post(
        "/api/refresh-connect-onboarding",
        json={"stripeAccountId": "acct_mine"},
        headers={**auth("farmer-1"), "Origin": "https://preview.farmdirectmeat.com"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["onboardingUrl"].endswith("acct_mine")
    kwargs = fake_stripe.last("create_account_onboarding_link")
    assert kwargs["return_url"] == (
        "https://preview.farmdirectmeat.com/farmer-dashboard?onboarding=complete"
    )
