from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from app.api import billing as billing_api
from app.config.billing_catalog import ALL_LOOKUP_KEYS
from app.main import app
from app.middleware.auth import require_user_is_member_of_organization
from app.models.user_account import UserAccount
from app.services import stripe_sync
from app.services.stripe_helpers import stripe_billing
from app.utils.database import get_db
from tests.factories import make_organization, make_price, make_product, make_subscription

BILLING_URL = "/api/v1/organizations/acme/billing"


@pytest.fixture
def organization():
    return make_organization(member_count=3, stripe_customer_id="cus_1")


@pytest.fixture
def client(organization):
    membership = organization.memberships[0]
    user = UserAccount(id=membership.member_id, email="owner@acme.test", name="Owner")

    async def fake_db():
        yield None

    app.dependency_overrides[require_user_is_member_of_organization] = lambda: (organization, membership, user)
    app.dependency_overrides[get_db] = fake_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def use_member_role(organization):
    member = organization.memberships[1]
    user = UserAccount(id=member.member_id, email="member@acme.test", name="Member")
    app.dependency_overrides[require_user_is_member_of_organization] = lambda: (organization, member, user)


def test_billing_page(client, monkeypatch):
    requested_keys = []

    async def fake_products(db, lookup_keys):
        requested_keys.append(lookup_keys)
        return [make_product(max_seats=25), make_product(max_seats=1), make_product(max_seats=10)]

    monkeypatch.setattr(stripe_sync, "retrieve_products_by_price_lookup_keys", fake_products)

    response = client.get(BILLING_URL)

    assert response.status_code == 200
    assert requested_keys == [ALL_LOOKUP_KEYS]
    body = response.json()
    assert body["billing"]["is_on_free_trial"] is True
    assert body["billing"]["current_tier"] == "high"
    assert body["billing"]["projected_total"] == 255
    assert body["create_subscription_modal_props"] == {
        "current_seats": 3,
        "plan_limits": {"low": 1, "mid": 10, "high": 25},
    }


def test_open_checkout_session(client, monkeypatch, organization):
    checkout_params = []

    async def fake_price(db, lookup_key):
        return make_price(lookup_key, product=make_product(max_seats=10), stripe_id="price_startup")

    async def fake_checkout(**params):
        checkout_params.append(params)
        return SimpleNamespace(url="https://checkout.stripe.test/c/1")

    monkeypatch.setattr(stripe_sync, "retrieve_price_by_lookup_key", fake_price)
    monkeypatch.setattr(stripe_billing, "create_checkout_session", fake_checkout)

    response = client.post(BILLING_URL, json={"intent": "openCheckoutSession", "lookup_key": "monthly_startup_plan"})

    assert response.status_code == 200
    assert response.json()["redirect_url"] == "https://checkout.stripe.test/c/1"
    assert checkout_params[0]["price_id"] == "price_startup"
    assert checkout_params[0]["seats_used"] == 3
    assert checkout_params[0]["organization_id"] == str(organization.id)
    assert checkout_params[0]["base_url"] == "http://testserver"


def test_checkout_rejects_plan_smaller_than_organization(client, monkeypatch):
    async def fake_price(db, lookup_key):
        return make_price(lookup_key, product=make_product(max_seats=1))

    monkeypatch.setattr(stripe_sync, "retrieve_price_by_lookup_key", fake_price)

    response = client.post(BILLING_URL, json={"intent": "openCheckoutSession", "lookup_key": "monthly_hobby_plan"})

    assert response.status_code == 409


def test_checkout_with_unknown_price(client, monkeypatch):
    async def no_price(db, lookup_key):
        return None

    monkeypatch.setattr(stripe_sync, "retrieve_price_by_lookup_key", no_price)

    response = client.post(BILLING_URL, json={"intent": "openCheckoutSession", "lookup_key": "monthly_unknown_plan"})

    assert response.status_code == 400


def test_checkout_when_already_subscribed(client, organization):
    organization.stripe_subscriptions.append(make_subscription())

    response = client.post(BILLING_URL, json={"intent": "openCheckoutSession", "lookup_key": "monthly_hobby_plan"})

    assert response.status_code == 409


def test_members_cannot_view_billing_page(client, organization):
    use_member_role(organization)

    response = client.get(BILLING_URL)

    assert response.status_code == 404


def test_members_cannot_manage_billing(client, organization):
    use_member_role(organization)

    response = client.post(BILLING_URL, json={"intent": "viewInvoices"})

    assert response.status_code == 403


def test_view_invoices(client, monkeypatch):
    async def fake_portal(**params):
        return SimpleNamespace(url="https://billing.stripe.test/p/1")

    monkeypatch.setattr(stripe_billing, "create_customer_portal_session", fake_portal)

    response = client.post(BILLING_URL, json={"intent": "viewInvoices"})

    assert response.json() == {"redirect_url": "https://billing.stripe.test/p/1", "toast": None}


def test_cancel_without_subscription(client):
    response = client.post(BILLING_URL, json={"intent": "cancelSubscription"})
    assert response.status_code == 400


def test_switch_subscription_passes_seat_count(client, monkeypatch, organization):
    organization.stripe_subscriptions.append(make_subscription())
    switch_params = []

    async def fake_price(db, lookup_key):
        return make_price(lookup_key, stripe_id="price_annual_business")

    async def fake_switch(**params):
        switch_params.append(params)
        return SimpleNamespace(url="https://billing.stripe.test/p/2")

    monkeypatch.setattr(stripe_sync, "retrieve_price_by_lookup_key", fake_price)
    monkeypatch.setattr(stripe_billing, "create_switch_plan_session", fake_switch)

    response = client.post(BILLING_URL, json={"intent": "switchSubscription", "lookup_key": "annual_business_plan"})

    assert response.status_code == 200
    assert switch_params[0]["quantity"] == 3
    assert switch_params[0]["subscription_item_id"] == "si_1"
    assert switch_params[0]["new_price_id"] == "price_annual_business"


def test_keep_current_subscription_without_schedule(client, organization):
    organization.stripe_subscriptions.append(make_subscription())

    response = client.post(BILLING_URL, json={"intent": "keepCurrentSubscription"})

    assert response.status_code == 200
    assert response.json()["toast"]["type"] == "success"


def test_update_billing_email(client, monkeypatch, organization):
    customer_updates = []
    organization_updates = []

    async def fake_update_customer(**params):
        customer_updates.append(params)

    async def fake_update_organization(db, organization_id, **values):
        organization_updates.append((organization_id, values))

    monkeypatch.setattr(stripe_billing, "update_customer", fake_update_customer)
    monkeypatch.setattr(billing_api, "update_organization_by_id", fake_update_organization)

    response = client.post(BILLING_URL, json={"intent": "updateBillingEmail", "billing_email": "finance@acme.io"})

    assert response.status_code == 200
    assert customer_updates[0]["customer_email"] == "finance@acme.io"
    assert organization_updates == [(organization.id, {"billing_email": "finance@acme.io"})]


def test_invalid_intent_is_rejected(client):
    response = client.post(BILLING_URL, json={"intent": "deleteEverything"})
    assert response.status_code == 422


def test_price_outside_catalog_is_reported(client, monkeypatch, organization):
    organization.stripe_subscriptions.append(make_subscription(make_price("legacy_plan")))

    async def fake_products(db, lookup_keys):
        return []

    monkeypatch.setattr(stripe_sync, "retrieve_products_by_price_lookup_keys", fake_products)

    response = client.get(BILLING_URL)

    assert response.status_code == 500
    assert response.json() == {"detail": "Billing catalog misconfigured"}
