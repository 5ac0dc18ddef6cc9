from __future__ import annotations

from types import SimpleNamespace

import pytest
import stripe
from fastapi import HTTPException

from app.services.stripe_helpers import StripeBillingService, billing_page_url


@pytest.fixture
def portal_calls(monkeypatch):
    calls = []

    def fake_create(**params):
        calls.append(params)
        return SimpleNamespace(url="https://billing.stripe.test/p/session")

    monkeypatch.setattr(stripe.billing_portal.Session, "create", fake_create)
    return calls


@pytest.fixture
def checkout_calls(monkeypatch):
    calls = []

    def fake_create(**params):
        calls.append(params)
        return SimpleNamespace(url="https://checkout.stripe.test/c/session")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    return calls


def test_billing_page_url():
    assert billing_page_url("http://localhost:3000", "acme") == (
        "http://localhost:3000/organizations/acme/settings/billing"
    )


@pytest.mark.asyncio
async def test_checkout_session_for_new_customer(checkout_calls):
    session = await StripeBillingService().create_checkout_session(
        base_url="https://app.test",
        customer_email="billing@acme.test",
        customer_id=None,
        organization_id="org-1",
        organization_slug="acme",
        price_id="price_startup",
        purchased_by_id="user-1",
        seats_used=4,
    )

    params = checkout_calls[0]
    assert session.url == "https://checkout.stripe.test/c/session"
    assert params["mode"] == "subscription"
    assert params["customer_email"] == "billing@acme.test"
    assert "customer" not in params
    assert params["line_items"] == [{"price": "price_startup", "quantity": 4}]
    assert params["metadata"]["organization_id"] == "org-1"
    assert params["subscription_data"]["metadata"]["purchased_by_id"] == "user-1"
    assert params["success_url"].endswith("/settings/billing/success?session_id={CHECKOUT_SESSION_ID}")
    assert params["cancel_url"] == "https://app.test/organizations/acme/settings/billing"


@pytest.mark.asyncio
async def test_checkout_session_reuses_existing_customer(checkout_calls):
    await StripeBillingService().create_checkout_session(
        base_url="https://app.test",
        customer_email="billing@acme.test",
        customer_id="cus_1",
        organization_id="org-1",
        organization_slug="acme",
        price_id="price_startup",
        purchased_by_id="user-1",
        seats_used=1,
    )

    params = checkout_calls[0]
    assert params["customer"] == "cus_1"
    assert "customer_email" not in params
    assert params["customer_update"]["address"] == "auto"


@pytest.mark.asyncio
async def test_switch_plan_session_keeps_seat_quantity(portal_calls):
    await StripeBillingService().create_switch_plan_session(
        base_url="https://app.test",
        customer_id="cus_1",
        organization_slug="acme",
        subscription_id="sub_1",
        subscription_item_id="si_1",
        new_price_id="price_annual_business",
        quantity=7,
    )

    flow = portal_calls[0]["flow_data"]
    assert flow["type"] == "subscription_update_confirm"
    assert flow["subscription_update_confirm"] == {
        "subscription": "sub_1",
        "items": [{"id": "si_1", "price": "price_annual_business", "quantity": 7}],
    }


@pytest.mark.asyncio
async def test_cancel_subscription_session(portal_calls):
    await StripeBillingService().create_cancel_subscription_session(
        base_url="https://app.test", customer_id="cus_1", organization_slug="acme", subscription_id="sub_1"
    )

    assert portal_calls[0]["flow_data"] == {
        "type": "subscription_cancel",
        "subscription_cancel": {"subscription": "sub_1"},
    }


@pytest.mark.asyncio
async def test_stripe_errors_become_http_errors(monkeypatch):
    def fail(**params):
        raise stripe.StripeError("No such customer: 'cus_missing'")

    monkeypatch.setattr(stripe.billing_portal.Session, "create", fail)

    with pytest.raises(HTTPException) as exc_info:
        await StripeBillingService().create_customer_portal_session(
            base_url="https://app.test", customer_id="cus_missing", organization_slug="acme"
        )

    assert exc_info.value.status_code == 400
    assert "No such customer" in exc_info.value.detail


@pytest.mark.asyncio
async def test_resume_clears_scheduled_cancellation(monkeypatch):
    modified = []
    monkeypatch.setattr(
        stripe.Subscription, "retrieve", lambda subscription_id: {"id": subscription_id, "cancel_at_period_end": True}
    )

    def fake_modify(subscription_id, **params):
        modified.append((subscription_id, params))
        return {"id": subscription_id, "cancel_at_period_end": False}

    monkeypatch.setattr(stripe.Subscription, "modify", fake_modify)

    subscription = await StripeBillingService().resume_subscription("sub_1")

    assert modified == [("sub_1", {"cancel_at_period_end": False})]
    assert subscription["cancel_at_period_end"] is False


@pytest.mark.asyncio
async def test_resume_active_subscription_is_a_no_op(monkeypatch):
    monkeypatch.setattr(
        stripe.Subscription, "retrieve", lambda subscription_id: {"id": subscription_id, "cancel_at_period_end": False}
    )

    def fail(*args, **kwargs):
        raise AssertionError("modify should not be called")

    monkeypatch.setattr(stripe.Subscription, "modify", fail)

    subscription = await StripeBillingService().resume_subscription("sub_1")

    assert subscription["id"] == "sub_1"


@pytest.mark.asyncio
async def test_adjust_seats_only_touches_future_phases(monkeypatch):
    schedule_updates = []
    monkeypatch.setattr(stripe.Subscription, "modify", lambda subscription_id, **params: {"id": subscription_id, **params})
    monkeypatch.setattr(
        stripe.SubscriptionSchedule,
        "retrieve",
        lambda schedule_id: {
            "id": schedule_id,
            "phases": [
                {"start_date": 100, "end_date": 300, "items": [{"price": "price_monthly", "quantity": 3}]},
                {"start_date": 300, "end_date": 600, "items": [{"price": "price_annual", "quantity": 3}]},
            ],
        },
    )

    def fake_modify_schedule(schedule_id, **params):
        schedule_updates.append(params)
        return {"id": schedule_id}

    monkeypatch.setattr(stripe.SubscriptionSchedule, "modify", fake_modify_schedule)

    result = await StripeBillingService().adjust_seats("sub_1", "si_1", 5, schedule_id="sub_sched_1", now=200)

    assert result["subscription"]["items"] == [{"id": "si_1", "quantity": 5}]
    phases = schedule_updates[0]["phases"]
    assert phases[0]["items"] == [{"price": "price_monthly", "quantity": 3}]
    assert phases[1]["items"] == [{"price": "price_annual", "quantity": 5}]


@pytest.mark.asyncio
async def test_adjust_seats_without_schedule(monkeypatch):
    monkeypatch.setattr(stripe.Subscription, "modify", lambda subscription_id, **params: {"id": subscription_id})

    result = await StripeBillingService().adjust_seats("sub_1", "si_1", 2)

    assert result == {"subscription": {"id": "sub_1"}}


@pytest.mark.asyncio
async def test_deactivate_customer_cancels_every_active_subscription(monkeypatch):
    listed = SimpleNamespace(auto_paging_iter=lambda: iter([{"id": "sub_1"}, {"id": "sub_2"}]))
    monkeypatch.setattr(stripe.Subscription, "list", lambda **params: listed)
    monkeypatch.setattr(stripe.Subscription, "cancel", lambda subscription_id: {"id": subscription_id, "status": "canceled"})

    cancelled = await StripeBillingService().deactivate_customer("cus_1")

    assert [subscription["id"] for subscription in cancelled] == ["sub_1", "sub_2"]
