# tests/conftest.py
import hashlib
import hmac
import json
import os
import time
from types import SimpleNamespace

# settings are read at import time; pin them before the app is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTH_JWT_SECRET"] = "test-jwt-secret"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["STRIPE_BUYER_PRICE_ID"] = "price_buyer_test"
os.environ["STRIPE_FARMER_PRICE_ID"] = "price_farmer_test"
os.environ["PUBLIC_SITE_URL"] = "https://farmdirectmeat.com"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from meatshare.auth.session import create_access_token
from meatshare.config import get_settings
from meatshare.db import models
from meatshare.db.core import Base, get_db
from meatshare.integrations.payments.stripe import stripe_client
from meatshare.main import app

WEBHOOK_SECRET = os.environ["STRIPE_WEBHOOK_SECRET"]


# ------------------------------------------------------------
# Stripe double
# ------------------------------------------------------------
class FakeStripe:
    """
    Stands in for the stripe_client module. Every call is recorded as
    (name, kwargs); set ``fail_with`` to make the next calls raise.
    """

    def __init__(self):
        self.calls = []
        self.fail_with = None
        self.account = {
            "charges_enabled": False,
            "payouts_enabled": False,
            "details_submitted": False,
        }
        self._seq = 0

    def _record(self, name, kwargs):
        self.calls.append((name, kwargs))
        if self.fail_with is not None:
            raise self.fail_with

    def _next(self, prefix):
        self._seq += 1
        return f"{prefix}_{self._seq}"

    def names(self):
        return [name for name, _ in self.calls]

    def last(self, name):
        matches = [kwargs for n, kwargs in self.calls if n == name]
        assert matches, f"{name} was never called"
        return matches[-1]

    # --- stripe_client surface ---
    def create_subscription_checkout_session(self, **kwargs):
        self._record("create_subscription_checkout_session", kwargs)
        sid = self._next("cs_sub")
        return SimpleNamespace(id=sid, url=f"https://checkout.stripe.com/c/pay/{sid}")

    def create_connect_payment_checkout_session(self, **kwargs):
        self._record("create_connect_payment_checkout_session", kwargs)
        sid = self._next("cs_share")
        return SimpleNamespace(id=sid, url=f"https://checkout.stripe.com/c/pay/{sid}")

    def create_express_account(self, **kwargs):
        self._record("create_express_account", kwargs)
        return SimpleNamespace(id=self._next("acct_test"))

    def create_account_onboarding_link(self, **kwargs):
        self._record("create_account_onboarding_link", kwargs)
        return SimpleNamespace(url=f"https://connect.stripe.com/setup/e/{kwargs['account_id']}")

    def retrieve_account(self, account_id):
        self._record("retrieve_account", {"account_id": account_id})
        return SimpleNamespace(id=account_id, **self.account)

    def create_refund(self, **kwargs):
        self._record("create_refund", kwargs)
        return SimpleNamespace(id=self._next("re"), status="succeeded")


STRIPE_CLIENT_FUNCTIONS = (
    "create_subscription_checkout_session",
    "create_connect_payment_checkout_session",
    "create_express_account",
    "create_account_onboarding_link",
    "retrieve_account",
    "create_refund",
)


@pytest.fixture(autouse=True)
def fake_stripe(monkeypatch):
    """No test talks to Stripe; every SDK entry point is replaced."""
    get_settings.cache_clear()
    fake = FakeStripe()
    for name in STRIPE_CLIENT_FUNCTIONS:
        monkeypatch.setattr(stripe_client, name, getattr(fake, name))
    yield fake
    get_settings.cache_clear()


# ------------------------------------------------------------
# Database
# ------------------------------------------------------------
@pytest.fixture
def session_factory():
    """
    SQLite in-memory (StaticPool) shared by the app and the test body.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# ------------------------------------------------------------
# Auth
# ------------------------------------------------------------
def bearer(user_id, email=None):
    return {"Authorization": f"Bearer {create_access_token(user_id=user_id, email=email)}"}


@pytest.fixture
def auth():
    return bearer


# ------------------------------------------------------------
# Seed data
# ------------------------------------------------------------
class Seed:
    def __init__(self, factory):
        self._factory = factory

    def _add(self, obj):
        with self._factory() as session:
            session.add(obj)
            session.commit()
            return obj.id

    def farm(
        self,
        *,
        owner_id="farmer-1",
        account_id="acct_ready",
        ready=True,
        **fields,
    ):
        base = {
            "name": "Hill Creek Ranch",
            "location": "Bend, OR",
            "zip_code": "97701",
            "is_active": True,
        }
        base.update(fields)
        return self._add(
            models.Farm(
                owner_id=owner_id,
                stripe_account_id=account_id,
                stripe_onboarding_complete=ready,
                **base,
            )
        )

    def share(self, farm_id, *, price=650.0, quantity=1, portion="1/4", animal_type="beef"):
        return self._add(
            models.AvailableShare(
                farm_id=farm_id,
                animal_type=animal_type,
                portion=portion,
                price=price,
                weight_estimate="100-120 lbs",
                quantity_available=quantity,
            )
        )

    def purchase(self, *, farm_id, share_id, buyer_id="buyer-1", status="confirmed", payment_intent="pi_seed"):
        return self._add(
            models.SharePurchase(
                buyer_id=buyer_id,
                farm_id=farm_id,
                share_id=share_id,
                portion="1/4",
                price_paid=650.0,
                status=status,
                stripe_payment_intent_id=payment_intent,
            )
        )

    def role(self, user_id, role):
        return self._add(models.UserRole(user_id=user_id, role=role))

    def get(self, model, pk):
        with self._factory() as session:
            return session.get(model, pk)

    def count(self, model):
        with self._factory() as session:
            return session.query(model).count()


@pytest.fixture
def seed(session_factory):
    return Seed(session_factory)


# ------------------------------------------------------------
# Stripe webhook payloads
# ------------------------------------------------------------
def signed_event(event, secret=WEBHOOK_SECRET):
    """Body + headers signed the way Stripe signs webhook deliveries."""
    body = json.dumps(event).encode("utf-8")
    ts = int(time.time())
    sig = hmac.new(
        secret.encode("utf-8"),
        f"{ts}.".encode("utf-8") + body,
        hashlib.sha256,
    ).hexdigest()
    headers = {
        "Stripe-Signature": f"t={ts},v1={sig}",
        "Content-Type": "application/json",
    }
    return body, headers


@pytest.fixture
def post_event(client):
    def _post(event, secret=WEBHOOK_SECRET):
        body, headers = signed_event(event, secret)
        return client.post("/stripe/webhook", content=body, headers=headers)

    return _post
