"""In-memory ORM objects for billing tests (never flushed to a database)."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

from app.models.organization import Organization, OrganizationMembership, OrganizationMembershipRole
from app.models.stripe_product import StripePrice, StripeProduct
from app.models.stripe_subscription import StripeSubscription, StripeSubscriptionItem
from app.models.stripe_subscription_schedule import StripeSubscriptionSchedule, StripeSubscriptionSchedulePhase

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def make_product(max_seats=25, stripe_id=None, name="Business"):
    return StripeProduct(
        stripe_id=stripe_id or f"prod_{uuid.uuid4().hex[:8]}",
        name=name,
        max_seats=max_seats,
        active=True,
    )


def make_price(lookup_key="monthly_business_plan", unit_amount=8500, product=None, stripe_id=None):
    return StripePrice(
        stripe_id=stripe_id or f"price_{lookup_key}",
        lookup_key=lookup_key,
        currency="usd",
        unit_amount=unit_amount,
        interval="month" if lookup_key.startswith("monthly") else "year",
        active=True,
        product=product or make_product(),
    )


def make_item(price, current_period_end=None, stripe_id="si_1"):
    current_period_end = current_period_end or NOW + timedelta(days=20)
    return StripeSubscriptionItem(
        stripe_id=stripe_id,
        price=price,
        current_period_start=current_period_end - timedelta(days=30),
        current_period_end=current_period_end,
    )


def make_schedule(phases, stripe_id="sub_sched_1"):
    """phases: iterable of (start_date, end_date, price)"""
    return StripeSubscriptionSchedule(
        stripe_id=stripe_id,
        created=NOW - timedelta(days=1),
        phases=[
            StripeSubscriptionSchedulePhase(start_date=start, end_date=end, price=price, quantity=1)
            for start, end, price in phases
        ],
    )


def make_subscription(
    price=None,
    status="active",
    cancel_at_period_end=False,
    items=None,
    schedule=None,
    stripe_id="sub_1",
):
    subscription = StripeSubscription(
        stripe_id=stripe_id,
        created=NOW - timedelta(days=10),
        status=status,
        cancel_at_period_end=cancel_at_period_end,
        items=items if items is not None else [make_item(price or make_price())],
    )
    if schedule is not None:
        subscription.schedule = schedule
    return subscription


def make_organization(member_count=1, subscriptions=(), stripe_customer_id=None, trial_end=None):
    memberships = [
        OrganizationMembership(
            member_id=uuid.uuid4(),
            role=OrganizationMembershipRole.OWNER if i == 0 else OrganizationMembershipRole.MEMBER,
        )
        for i in range(member_count)
    ]
    return Organization(
        id=uuid.uuid4(),
        name="Acme",
        slug="acme",
        billing_email="billing@acme.test",
        stripe_customer_id=stripe_customer_id,
        trial_end=trial_end or NOW + timedelta(days=14),
        memberships=memberships,
        stripe_subscriptions=list(subscriptions),
    )
