"""
Billing API endpoints
Billing page state and subscription management intents for an organization
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime, timezone
import logging

from app.config.billing_catalog import (
    ALL_LOOKUP_KEYS,
    CANCEL_SUBSCRIPTION_INTENT,
    KEEP_CURRENT_SUBSCRIPTION_INTENT,
    OPEN_CHECKOUT_SESSION_INTENT,
    RESUME_SUBSCRIPTION_INTENT,
    SWITCH_SUBSCRIPTION_INTENT,
    UPDATE_BILLING_EMAIL_INTENT,
    VIEW_INVOICES_INTENT,
)
from app.middleware.auth import require_user_is_member_of_organization
from app.models.organization import OrganizationMembershipRole
from app.schemas.billing import (
    BillingActionRequest,
    BillingActionResponse,
    BillingPageResponse,
    Toast,
)
from app.services import stripe_sync
from app.services.billing_helpers import (
    extract_base_url,
    get_create_subscription_modal_props,
    map_stripe_subscription_data_to_billing_page_props,
)
from app.services.organizations import update_organization_by_id
from app.services.stripe_helpers import stripe_billing
from app.utils.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{organization_slug}/billing", response_model=BillingPageResponse)
async def get_billing_page(
    auth=Depends(require_user_is_member_of_organization),
    db: AsyncSession = Depends(get_db),
):
    """Billing state for the organization's settings page (owners and admins)"""
    organization, membership, _ = auth

    if membership.role == OrganizationMembershipRole.MEMBER:
        raise HTTPException(status_code=404, detail="Organization not found")

    products = await stripe_sync.retrieve_products_by_price_lookup_keys(db, ALL_LOOKUP_KEYS)

    return BillingPageResponse(
        billing=map_stripe_subscription_data_to_billing_page_props(
            organization, now=datetime.now(timezone.utc)
        ),
        create_subscription_modal_props=get_create_subscription_modal_props(organization, products),
    )


@router.post("/{organization_slug}/billing", response_model=BillingActionResponse)
async def billing_action(
    request: Request,
    payload: BillingActionRequest,
    auth=Depends(require_user_is_member_of_organization),
    db: AsyncSession = Depends(get_db),
):
    """Dispatch a billing intent (checkout, cancel, resume, switch plan, ...)"""
    organization, membership, user = auth
    body = payload.root

    if membership.role == OrganizationMembershipRole.MEMBER:
        raise HTTPException(status_code=403, detail="Only owners and admins can manage billing")

    base_url = extract_base_url(request.url)
    current_subscription = organization.stripe_subscriptions[0] if organization.stripe_subscriptions else None

    if body.intent == CANCEL_SUBSCRIPTION_INTENT:
        if not organization.stripe_customer_id or not current_subscription:
            raise HTTPException(status_code=400, detail="Organization has no active subscription")

        session = await stripe_billing.create_cancel_subscription_session(
            base_url=base_url,
            customer_id=organization.stripe_customer_id,
            organization_slug=organization.slug,
            subscription_id=current_subscription.stripe_id,
        )
        return BillingActionResponse(redirect_url=session.url)

    if body.intent == KEEP_CURRENT_SUBSCRIPTION_INTENT:
        if not current_subscription:
            raise HTTPException(status_code=400, detail="Organization has no Stripe subscriptions")

        if current_subscription.schedule:
            schedule = await stripe_billing.keep_current_subscription(current_subscription.schedule.stripe_id)
            await stripe_sync.delete_stripe_subscription_schedule(db, schedule["id"])

        return BillingActionResponse(toast=Toast(title="Your current plan will stay in place."))

    if body.intent == OPEN_CHECKOUT_SESSION_INTENT:
        if current_subscription:
            raise HTTPException(status_code=409, detail="Organization already has a subscription")

        price = await stripe_sync.retrieve_price_by_lookup_key(db, body.lookup_key)
        if not price:
            raise HTTPException(status_code=400, detail="Price not found")

        if organization.member_count > price.product.max_seats:
            raise HTTPException(status_code=409, detail="Too many members for this plan")

        session = await stripe_billing.create_checkout_session(
            base_url=base_url,
            customer_email=organization.billing_email,
            customer_id=organization.stripe_customer_id,
            organization_id=str(organization.id),
            organization_slug=organization.slug,
            price_id=price.stripe_id,
            purchased_by_id=str(user.id),
            seats_used=organization.member_count,
        )
        return BillingActionResponse(redirect_url=session.url)

    if body.intent == RESUME_SUBSCRIPTION_INTENT:
        if not current_subscription:
            raise HTTPException(status_code=400, detail="Organization has no Stripe subscriptions")

        subscription = await stripe_billing.resume_subscription(current_subscription.stripe_id)

        if subscription["cancel_at_period_end"] != current_subscription.cancel_at_period_end:
            await stripe_sync.update_stripe_subscription_cancel_at_period_end(db, subscription["id"], False)

        return BillingActionResponse(toast=Toast(title="Your subscription has been resumed."))

    if body.intent == SWITCH_SUBSCRIPTION_INTENT:
        if not organization.stripe_customer_id or not current_subscription:
            raise HTTPException(status_code=400, detail="Organization has no active subscription")

        price = await stripe_sync.retrieve_price_by_lookup_key(db, body.lookup_key)
        if not price:
            raise HTTPException(status_code=400, detail="Price not found")

        session = await stripe_billing.create_switch_plan_session(
            base_url=base_url,
            customer_id=organization.stripe_customer_id,
            organization_slug=organization.slug,
            subscription_id=current_subscription.stripe_id,
            subscription_item_id=current_subscription.items[0].stripe_id,
            new_price_id=price.stripe_id,
            quantity=organization.member_count,
        )
        return BillingActionResponse(redirect_url=session.url)

    if body.intent == UPDATE_BILLING_EMAIL_INTENT:
        if not organization.stripe_customer_id:
            raise HTTPException(status_code=400, detail="Organization has no Stripe customer")

        if body.billing_email != organization.billing_email:
            await stripe_billing.update_customer(
                customer_id=organization.stripe_customer_id,
                customer_email=body.billing_email,
                customer_name=organization.name,
            )
            await update_organization_by_id(db, organization.id, billing_email=body.billing_email)
            logger.info(f"Updated billing email for organization {organization.slug}")

        return BillingActionResponse(toast=Toast(title="Billing email updated."))

    if body.intent == VIEW_INVOICES_INTENT:
        if not organization.stripe_customer_id:
            raise HTTPException(status_code=400, detail="Organization has no Stripe customer")

        session = await stripe_billing.create_customer_portal_session(
            base_url=base_url,
            customer_id=organization.stripe_customer_id,
            organization_slug=organization.slug,
        )
        return BillingActionResponse(redirect_url=session.url)

    raise HTTPException(status_code=400, detail=f"Unknown intent: {body.intent}")
