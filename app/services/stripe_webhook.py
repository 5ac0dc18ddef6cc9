"""
Stripe Webhook Handler
Processes Stripe events and keeps the local billing tables in sync
"""

import os
import json
import uuid
import stripe
import logging
from typing import Dict, Any
from datetime import datetime, timezone
from fastapi import HTTPException

from app.models.organization import Organization
from app.services import stripe_sync
from app.services.stripe_helpers import stripe_billing
from app.utils.database import get_async_session

logger = logging.getLogger(__name__)

# Configure Stripe
stripe.api_key = os.getenv("STRIPE_SECRET_KEY")

# Events Stripe sends that need no local change
IGNORED_EVENT_TYPES = frozenset({
    "billing_portal.configuration.updated",
    "billing_portal.session.created",
    "charge.dispute.created",
    "charge.dispute.funds_withdrawn",
    "charge.succeeded",
    "customer.created",
    "customer.updated",
    "invoice.marked_uncollectible",
    "invoice.created",
    "invoice.finalized",
    "invoice.paid",
    "invoice.payment_succeeded",
    "invoice.upcoming",
    "invoice.updated",
    "invoiceitem.created",
    "payment_intent.created",
    "payment_intent.succeeded",
    "payment_method.attached",
    "plan.created",
    "plan.deleted",
    "plan.updated",
    "setup_intent.created",
    "subscription_schedule.released",
    "test_helpers.test_clock.advancing",
    "test_helpers.test_clock.ready",
})


class StripeWebhookHandler:
    """Handles Stripe webhook events"""

    def __init__(self):
        self.webhook_secret = os.getenv("STRIPE_WEBHOOK_SECRET")
        if not self.webhook_secret:
            logger.warning("STRIPE_WEBHOOK_SECRET not configured")

        self.handlers = {
            "charge.dispute.closed": self.handle_charge_dispute_closed,
            "checkout.session.completed": self.handle_checkout_completed,
            "customer.deleted": self.handle_customer_deleted,
            "customer.subscription.created": self.handle_subscription_created,
            "customer.subscription.deleted": self.handle_subscription_updated,
            "customer.subscription.updated": self.handle_subscription_updated,
            "price.created": self.handle_price_created,
            "price.deleted": self.handle_price_deleted,
            "price.updated": self.handle_price_updated,
            "product.created": self.handle_product_created,
            "product.deleted": self.handle_product_deleted,
            "product.updated": self.handle_product_updated,
            "subscription_schedule.created": self.handle_schedule_created,
            "subscription_schedule.expiring": self.handle_schedule_updated,
            "subscription_schedule.updated": self.handle_schedule_updated,
        }

    def verify_webhook_signature(self, payload: bytes, sig_header: str) -> stripe.Event:
        """Verify webhook signature and construct event"""
        if not self.webhook_secret:
            raise HTTPException(status_code=500, detail="Webhook secret not configured")

        try:
            return stripe.Webhook.construct_event(
                payload, sig_header, self.webhook_secret
            )
        except ValueError as e:
            logger.error(f"Invalid payload: {e}")
            raise HTTPException(status_code=400, detail=f"Webhook Error: {str(e)}")
        except stripe.SignatureVerificationError as e:
            logger.error(f"Invalid signature: {e}")
            raise HTTPException(status_code=400, detail=f"Webhook Error: {str(e)}")

    async def handle_event(self, event: stripe.Event) -> Dict[str, Any]:
        """
        Route webhook events to appropriate handlers

        Handler failures are logged and acknowledged so Stripe does not keep
        retrying an event we can never process.
        """

        event_type = event["type"]
        handler = self.handlers.get(event_type)

        if handler is None:
            if event_type in IGNORED_EVENT_TYPES:
                return {"status": "ignored", "message": "OK"}

            logger.info(f"Unhandled Stripe event type: {event_type}")
            return {"status": "unhandled", "message": f"Unhandled event type: {event_type}"}

        logger.info(f"Processing Stripe event: {event_type}")

        try:
            await handler(event)
        except Exception as e:
            logger.error(f"Error handling Stripe event {event_type}: {e}")
            self._log_event(event)
            return {"status": "error", "message": "OK"}

        return {"status": "success", "message": "OK"}

    async def handle_charge_dispute_closed(self, event: stripe.Event) -> None:
        """Cancel the customer's subscription when a dispute is lost"""
        dispute = event["data"]["object"]

        # Only act when the cardholder won
        if dispute["status"] != "lost":
            return

        charge_id = dispute["charge"] if isinstance(dispute["charge"], str) else dispute["charge"]["id"]
        charge = stripe.Charge.retrieve(charge_id)

        customer = charge.get("customer")
        customer_id = customer if isinstance(customer, str) or customer is None else customer["id"]
        if not customer_id:
            logger.info(f"No customer associated with charge {charge['id']}")
            return

        subscriptions = stripe.Subscription.list(customer=customer_id, status="active", limit=1)
        if not subscriptions["data"]:
            logger.info(f"No active subscriptions for customer {customer_id}")
            return

        cancelled = stripe.Subscription.cancel(subscriptions["data"][0]["id"])
        logger.info(f"Automatically cancelled subscription {cancelled['id']} due to lost dispute")

    async def handle_checkout_completed(self, event: stripe.Event) -> None:
        """Link the Stripe customer to the organization and end its trial"""
        session = event["data"]["object"]
        metadata = session.get("metadata") or {}
        organization_id = metadata.get("organization_id")

        if not organization_id:
            logger.error("No organization ID found in checkout session metadata")
            self._log_event(event)
            return

        customer_id = session.get("customer") if isinstance(session.get("customer"), str) else None
        customer_details = session.get("customer_details") or {}

        async with get_async_session() as db:
            organization = await db.get(Organization, uuid.UUID(organization_id))
            if not organization:
                logger.warning(f"No organization found for checkout session {session['id']}")
                return

            if customer_details.get("email"):
                organization.billing_email = customer_details["email"]
            if customer_id:
                organization.stripe_customer_id = customer_id
            # End the trial now
            organization.trial_end = datetime.now(timezone.utc)

            await db.commit()
            logger.info(f"Checkout completed for organization {organization.slug}")

            if customer_id:
                await stripe_billing.update_customer(
                    customer_id=customer_id,
                    customer_name=organization.name,
                    organization_id=str(organization.id),
                )

    async def handle_customer_deleted(self, event: stripe.Event) -> None:
        customer = event["data"]["object"]
        organization_id = (customer.get("metadata") or {}).get("organization_id")

        if not organization_id:
            self._log_event(event)
            return

        async with get_async_session() as db:
            organization = await db.get(Organization, uuid.UUID(organization_id))
            if organization:
                organization.stripe_customer_id = None
                await db.commit()
                logger.info(f"Cleared Stripe customer for organization {organization.slug}")

    async def handle_subscription_created(self, event: stripe.Event) -> None:
        async with get_async_session() as db:
            await stripe_sync.create_stripe_subscription_from_api(db, event["data"]["object"])

    async def handle_subscription_updated(self, event: stripe.Event) -> None:
        """Handles updates and deletions; a deleted subscription arrives with status canceled"""
        async with get_async_session() as db:
            await stripe_sync.update_stripe_subscription_from_api(db, event["data"]["object"])

    async def handle_price_created(self, event: stripe.Event) -> None:
        async with get_async_session() as db:
            await stripe_sync.save_stripe_price_from_api(db, event["data"]["object"])

    async def handle_price_updated(self, event: stripe.Event) -> None:
        async with get_async_session() as db:
            await stripe_sync.update_stripe_price_from_api(db, event["data"]["object"])

    async def handle_price_deleted(self, event: stripe.Event) -> None:
        async with get_async_session() as db:
            await stripe_sync.delete_stripe_price(db, event["data"]["object"]["id"])

    async def handle_product_created(self, event: stripe.Event) -> None:
        async with get_async_session() as db:
            await stripe_sync.save_stripe_product_from_api(db, event["data"]["object"])

    async def handle_product_updated(self, event: stripe.Event) -> None:
        async with get_async_session() as db:
            await stripe_sync.update_stripe_product_from_api(db, event["data"]["object"])

    async def handle_product_deleted(self, event: stripe.Event) -> None:
        async with get_async_session() as db:
            await stripe_sync.delete_stripe_product(db, event["data"]["object"]["id"])

    async def handle_schedule_created(self, event: stripe.Event) -> None:
        async with get_async_session() as db:
            await stripe_sync.save_stripe_subscription_schedule_from_api(db, event["data"]["object"])

    async def handle_schedule_updated(self, event: stripe.Event) -> None:
        async with get_async_session() as db:
            await stripe_sync.update_stripe_subscription_schedule_from_api(db, event["data"]["object"])

    def _log_event(self, event: stripe.Event) -> None:
        """Dump the event in debug mode; in production look it up in the Stripe Dashboard"""
        if os.getenv("DEBUG", "false").lower() == "true":
            logger.info(f"Stripe event {event['type']}: {json.dumps(event, indent=2, default=str)}")
        else:
            logger.info(f"Stripe event {event['type']} ({event.get('id')}) not logged in production mode")


# Global handler instance
webhook_handler = StripeWebhookHandler()
