"""
Stripe Billing Service
Checkout, customer portal deep links and subscription changes for organizations
"""

import os
import time
import stripe
import logging
from typing import Dict, Any, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)

# Configure Stripe
stripe.api_key = os.getenv("STRIPE_SECRET_KEY")


def billing_page_url(base_url: str, organization_slug: str) -> str:
    return f"{base_url}/organizations/{organization_slug}/settings/billing"


class StripeBillingService:
    """Manages Stripe billing operations for organizations"""

    async def create_checkout_session(
        self,
        base_url: str,
        customer_email: str,
        customer_id: Optional[str],
        organization_id: str,
        organization_slug: str,
        price_id: str,
        purchased_by_id: str,
        seats_used: int
    ) -> stripe.checkout.Session:
        """Create a per-seat subscription checkout session"""

        metadata = {
            "customer_email": customer_email,
            "organization_id": organization_id,
            "organization_slug": organization_slug,
            "purchased_by_id": purchased_by_id,
        }
        customer_params: Dict[str, Any] = (
            {
                "customer": customer_id,
                "customer_update": {"address": "auto", "name": "auto", "shipping": "auto"},
            }
            if customer_id
            else {"customer_email": customer_email}
        )

        try:
            return stripe.checkout.Session.create(
                automatic_tax={"enabled": True},
                billing_address_collection="auto",
                cancel_url=billing_page_url(base_url, organization_slug),
                line_items=[{"price": price_id, "quantity": seats_used}],
                metadata=metadata,
                mode="subscription",
                saved_payment_method_options={"payment_method_save": "enabled"},
                subscription_data={"metadata": metadata},
                success_url=f"{billing_page_url(base_url, organization_slug)}/success?session_id={{CHECKOUT_SESSION_ID}}",
                # Allow purchasing as a business
                tax_id_collection={"enabled": True},
                **customer_params,
            )

        except stripe.StripeError as e:
            logger.error(f"Failed to create checkout session: {e}")
            raise HTTPException(status_code=400, detail=f"Billing error: {str(e)}")

    async def create_customer_portal_session(
        self,
        base_url: str,
        customer_id: str,
        organization_slug: str
    ) -> stripe.billing_portal.Session:
        """Create Stripe customer portal session (invoices, payment methods)"""

        try:
            return stripe.billing_portal.Session.create(
                customer=customer_id,
                return_url=billing_page_url(base_url, organization_slug),
            )

        except stripe.StripeError as e:
            logger.error(f"Failed to create portal session: {e}")
            raise HTTPException(status_code=400, detail=f"Billing error: {str(e)}")

    async def create_switch_plan_session(
        self,
        base_url: str,
        customer_id: str,
        organization_slug: str,
        subscription_id: str,
        subscription_item_id: str,
        new_price_id: str,
        quantity: int
    ) -> stripe.billing_portal.Session:
        """
        Portal session deep-linking to the "confirm this update" page.

        quantity must be the current seat count, otherwise Stripe resets it to 1.
        """

        try:
            return stripe.billing_portal.Session.create(
                customer=customer_id,
                return_url=billing_page_url(base_url, organization_slug),
                flow_data={
                    "type": "subscription_update_confirm",
                    "subscription_update_confirm": {
                        "subscription": subscription_id,
                        "items": [{"id": subscription_item_id, "price": new_price_id, "quantity": quantity}],
                    },
                },
            )

        except stripe.StripeError as e:
            logger.error(f"Failed to create switch plan session: {e}")
            raise HTTPException(status_code=400, detail=f"Billing error: {str(e)}")

    async def create_cancel_subscription_session(
        self,
        base_url: str,
        customer_id: str,
        organization_slug: str,
        subscription_id: str
    ) -> stripe.billing_portal.Session:
        """Portal session deep-linking to the cancel subscription flow"""

        try:
            return stripe.billing_portal.Session.create(
                customer=customer_id,
                return_url=billing_page_url(base_url, organization_slug),
                flow_data={
                    "type": "subscription_cancel",
                    "subscription_cancel": {"subscription": subscription_id},
                },
            )

        except stripe.StripeError as e:
            logger.error(f"Failed to create cancel subscription session: {e}")
            raise HTTPException(status_code=400, detail=f"Billing error: {str(e)}")

    async def update_customer(
        self,
        customer_id: str,
        customer_name: Optional[str] = None,
        customer_email: Optional[str] = None,
        organization_id: Optional[str] = None
    ) -> stripe.Customer:
        """Update a customer's email, name and/or organization metadata"""

        params: Dict[str, Any] = {}
        if customer_email:
            params["email"] = customer_email
        if customer_name:
            params["name"] = customer_name
        if organization_id:
            params["metadata"] = {"organization_id": organization_id}

        try:
            return stripe.Customer.modify(customer_id, **params)

        except stripe.StripeError as e:
            logger.error(f"Failed to update Stripe customer {customer_id}: {e}")
            raise HTTPException(status_code=400, detail=f"Billing error: {str(e)}")

    async def resume_subscription(self, subscription_id: str) -> stripe.Subscription:
        """Clear cancel_at_period_end if set, otherwise return the subscription as is"""

        try:
            subscription = stripe.Subscription.retrieve(subscription_id)

            if subscription["cancel_at_period_end"]:
                return stripe.Subscription.modify(subscription_id, cancel_at_period_end=False)

            return subscription

        except stripe.StripeError as e:
            logger.error(f"Failed to resume subscription {subscription_id}: {e}")
            raise HTTPException(status_code=400, detail=f"Billing error: {str(e)}")

    async def keep_current_subscription(self, schedule_id: str) -> stripe.SubscriptionSchedule:
        """Release the schedule so the pending plan change never happens"""

        try:
            return stripe.SubscriptionSchedule.release(schedule_id)

        except stripe.StripeError as e:
            logger.error(f"Failed to release subscription schedule {schedule_id}: {e}")
            raise HTTPException(status_code=400, detail=f"Billing error: {str(e)}")

    async def adjust_seats(
        self,
        subscription_id: str,
        subscription_item_id: str,
        new_quantity: int,
        schedule_id: Optional[str] = None,
        now: Optional[int] = None
    ) -> Dict[str, Any]:
        """Set the seat quantity now and on every schedule phase that has not started yet"""

        try:
            updated_subscription = stripe.Subscription.modify(
                subscription_id,
                items=[{"id": subscription_item_id, "quantity": new_quantity}],
            )

            if not schedule_id:
                return {"subscription": updated_subscription}

            now = now if now is not None else int(time.time())
            schedule = stripe.SubscriptionSchedule.retrieve(schedule_id)

            phases = [
                {
                    "start_date": phase["start_date"],
                    "end_date": phase["end_date"],
                    "items": [
                        {
                            "price": item["price"],
                            "quantity": new_quantity if phase["start_date"] > now else item["quantity"],
                        }
                        for item in phase["items"]
                    ],
                }
                for phase in schedule["phases"]
            ]

            updated_schedule = stripe.SubscriptionSchedule.modify(schedule_id, phases=phases)

            return {"subscription": updated_subscription, "schedule": updated_schedule}

        except stripe.StripeError as e:
            logger.error(f"Failed to adjust seats on subscription {subscription_id}: {e}")
            raise HTTPException(status_code=400, detail=f"Billing error: {str(e)}")

    async def deactivate_customer(self, customer_id: str) -> list:
        """Cancel every active subscription of a customer"""

        try:
            subscriptions = stripe.Subscription.list(customer=customer_id, status="active")

            cancelled = []
            for subscription in subscriptions.auto_paging_iter():
                cancelled.append(stripe.Subscription.cancel(subscription["id"]))
                logger.info(f"Cancelled subscription {subscription['id']} for customer {customer_id}")

            return cancelled

        except stripe.StripeError as e:
            logger.error(f"Failed to deactivate customer {customer_id}: {e}")
            raise HTTPException(status_code=400, detail=f"Billing error: {str(e)}")


# Global service instance
stripe_billing = StripeBillingService()
