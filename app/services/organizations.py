"""
Organization Service
Loads and updates organizations together with their members and billing data
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from sqlalchemy.orm import selectinload

from app.config.billing_catalog import TRIAL_PERIOD_DAYS
from app.models.organization import Organization, OrganizationMembership, OrganizationMembershipRole
from app.models.stripe_product import StripePrice
from app.models.stripe_subscription import StripeSubscription, StripeSubscriptionItem
from app.models.stripe_subscription_schedule import StripeSubscriptionSchedule, StripeSubscriptionSchedulePhase
from app.models.user_account import UserAccount
from app.services.stripe_helpers import stripe_billing

logger = logging.getLogger(__name__)


def _billing_options():
    """Eager loads everything the billing page reads"""
    subscriptions = selectinload(Organization.stripe_subscriptions)
    return (
        selectinload(Organization.memberships),
        subscriptions
        .selectinload(StripeSubscription.items)
        .selectinload(StripeSubscriptionItem.price)
        .selectinload(StripePrice.product),
        subscriptions
        .selectinload(StripeSubscription.schedule)
        .selectinload(StripeSubscriptionSchedule.phases)
        .selectinload(StripeSubscriptionSchedulePhase.price),
    )


async def retrieve_organization_with_billing_data_by_slug(
    db: AsyncSession,
    slug: str
) -> Optional[Organization]:
    result = await db.execute(
        select(Organization)
        .where(Organization.slug == slug)
        .options(*_billing_options())
    )
    return result.scalar_one_or_none()


async def save_organization_with_owner(
    db: AsyncSession,
    name: str,
    slug: str,
    owner: UserAccount,
    now: Optional[datetime] = None
) -> Organization:
    """Create an organization on a free trial with the given user as owner"""
    now = now or datetime.now(timezone.utc)

    organization = Organization(
        name=name,
        slug=slug,
        billing_email=owner.email,
        trial_end=now + timedelta(days=TRIAL_PERIOD_DAYS),
        memberships=[
            OrganizationMembership(member_id=owner.id, role=OrganizationMembershipRole.OWNER)
        ],
    )
    db.add(organization)
    await db.commit()

    logger.info(f"Created organization {organization.slug} owned by {owner.email}")
    return organization


async def update_organization_by_id(db: AsyncSession, organization_id: uuid.UUID, **values: Any) -> None:
    await db.execute(
        update(Organization)
        .where(Organization.id == organization_id)
        .values(**values)
    )
    await db.commit()


def get_membership_for_user(
    organization: Organization,
    user: UserAccount,
    now: Optional[datetime] = None
) -> Optional[OrganizationMembership]:
    """Active membership of the user in the (memberships-loaded) organization"""
    for membership in organization.memberships:
        if membership.member_id == user.id and membership.is_active(now):
            return membership
    return None


async def deactivate_membership(
    db: AsyncSession,
    organization: Organization,
    membership: OrganizationMembership,
    now: Optional[datetime] = None
) -> OrganizationMembership:
    """Deactivate a member and lower the seat quantity of the current subscription"""
    now = now or datetime.now(timezone.utc)

    membership.deactivated_at = now
    await db.commit()
    logger.info(f"Deactivated member {membership.member_id} of organization {organization.slug}")

    subscription = organization.stripe_subscriptions[0] if organization.stripe_subscriptions else None
    if subscription and subscription.status != "canceled":
        await stripe_billing.adjust_seats(
            subscription_id=subscription.stripe_id,
            subscription_item_id=subscription.items[0].stripe_id,
            new_quantity=organization.active_member_count(now),
            schedule_id=subscription.schedule.stripe_id if subscription.schedule else None,
            now=int(now.timestamp()),
        )

    return membership


async def delete_organization(db: AsyncSession, organization: Organization) -> None:
    """Cancel the organization's Stripe subscriptions, then delete it with its memberships and billing rows"""
    if organization.stripe_customer_id:
        await stripe_billing.deactivate_customer(organization.stripe_customer_id)

    await db.delete(organization)
    await db.commit()

    logger.info(f"Deleted organization {organization.slug}")
