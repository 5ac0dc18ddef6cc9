"""
Stripe Webhook API Endpoint
Handles incoming webhook events from Stripe
"""

from fastapi import APIRouter, Request, HTTPException
from fastapi.responses import JSONResponse
import logging

from app.services.stripe_webhook import webhook_handler

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/stripe/webhooks")
async def stripe_webhook(request: Request) -> JSONResponse:
    """
    Handle Stripe webhook events

    Keeps the local products, prices, subscriptions and schedules in sync
    with Stripe and links checkout sessions to organizations.
    """
    sig_header = request.headers.get("stripe-signature")

    if not sig_header:
        logger.error("Missing Stripe signature header")
        raise HTTPException(status_code=400, detail="Missing stripe-signature header")

    payload = await request.body()

    # Verify webhook signature and construct event
    event = webhook_handler.verify_webhook_signature(payload, sig_header)

    # Process the event
    result = await webhook_handler.handle_event(event)

    logger.info(f"Webhook processed: {event['type']} - {result['status']}")

    return JSONResponse(status_code=200, content={"message": result["message"]})
