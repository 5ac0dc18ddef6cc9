"""
Stripe Sync Service
Mirrors Stripe products, prices, subscriptions and schedules into the local database
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, update
from sqlalchemy.orm import selectinload

from app.models.stripe_product import StripeProduct, StripePrice
from app.models.stripe_subscription import StripeSubscription, StripeSubscriptionItem
from app.models.stripe_subscription_schedule import StripeSubscriptionSchedule, StripeSubscriptionSchedulePhase
from app.services.billing_helpers import parse_max_seats

logger = logging.getLogger(__name__)


def _to_datetime(timestamp: Optional[int]) -> Optional[datetime]:
    """Convert a Stripe epoch-seconds timestamp to an aware UTC datetime"""
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def _expandable_id(value: Any) -> Optional[str]:
    """Stripe fields may hold an id or the expanded object"""
    if value is None or isinstance(value, str):
        return value
    return value["id"]


def _optional_uuid(value: Optional[str]) -> Optional[uuid.UUID]:
    return uuid.UUID(value) if value else None


# --- Products -----------------------------------------------------------------

async def save_stripe_product_from_api(db: AsyncSession, product: Dict[str, Any]) -> StripeProduct:
    metadata = product.get("metadata") or {}
    db_product = StripeProduct(
        stripe_id=product["id"],
        name=product["name"],
        max_seats=parse_max_seats(metadata.get("max_seats")),
        active=product["active"],
    )
    db.add(db_product)
    await db.commit()
    logger.info(f"Saved Stripe product {db_product.stripe_id} ({db_product.max_seats} seats)")
    return db_product


async def update_stripe_product_from_api(db: AsyncSession, product: Dict[str, Any]) -> Optional[StripeProduct]:
    db_product = await db.get(StripeProduct, product["id"])
    if not db_product:
        logger.warning(f"No local product found for Stripe product {product['id']}")
        return None

    metadata = product.get("metadata") or {}
    db_product.name = product["name"]
    db_product.max_seats = parse_max_seats(metadata.get("max_seats"))
    db_product.active = product["active"]

    await db.commit()
    return db_product


async def delete_stripe_product(db: AsyncSession, stripe_id: str) -> None:
    await db.execute(delete(StripeProduct).where(StripeProduct.stripe_id == stripe_id))
    await db.commit()


async def retrieve_products_by_price_lookup_keys(
    db: AsyncSession,
    lookup_keys: Sequence[str]
) -> List[StripeProduct]:
    """Products that have at least one price with one of the given lookup keys"""
    result = await db.execute(
        select(StripeProduct)
        .where(StripeProduct.prices.any(StripePrice.lookup_key.in_(lookup_keys)))
        .options(selectinload(StripeProduct.prices))
    )
    return list(result.scalars().all())


# --- Prices -------------------------------------------------------------------

def _price_fields(price: Dict[str, Any]) -> Dict[str, Any]:
    recurring = price.get("recurring") or {}
    return {
        "lookup_key": price.get("lookup_key") or "",
        "currency": price["currency"],
        "unit_amount": price.get("unit_amount") or 0,
        "interval": recurring.get("interval", "month"),
        "active": price["active"],
        "product_id": _expandable_id(price["product"]),
    }


async def save_stripe_price_from_api(db: AsyncSession, price: Dict[str, Any]) -> StripePrice:
    db_price = StripePrice(stripe_id=price["id"], **_price_fields(price))
    db.add(db_price)
    await db.commit()
    logger.info(f"Saved Stripe price {db_price.stripe_id} ({db_price.lookup_key})")
    return db_price


async def update_stripe_price_from_api(db: AsyncSession, price: Dict[str, Any]) -> Optional[StripePrice]:
    db_price = await db.get(StripePrice, price["id"])
    if not db_price:
        logger.warning(f"No local price found for Stripe price {price['id']}")
        return None

    for field, value in _price_fields(price).items():
        setattr(db_price, field, value)

    await db.commit()
    return db_price


async def delete_stripe_price(db: AsyncSession, stripe_id: str) -> None:
    await db.execute(delete(StripePrice).where(StripePrice.stripe_id == stripe_id))
    await db.commit()


async def retrieve_price_by_lookup_key(db: AsyncSession, lookup_key: str) -> Optional[StripePrice]:
    result = await db.execute(
        select(StripePrice)
        .where(StripePrice.lookup_key == lookup_key)
        .options(selectinload(StripePrice.product))
    )
    return result.scalar_one_or_none()


# --- Subscriptions --------------------------------------------------------------

def _subscription_items(subscription: Dict[str, Any]) -> List[StripeSubscriptionItem]:
    return [
        StripeSubscriptionItem(
            stripe_id=item["id"],
            price_id=item["price"]["id"],
            current_period_start=_to_datetime(item["current_period_start"]),
            current_period_end=_to_datetime(item["current_period_end"]),
        )
        for item in subscription["items"]["data"]
    ]


async def create_stripe_subscription_from_api(db: AsyncSession, subscription: Dict[str, Any]) -> StripeSubscription:
    """Create the local subscription from a Stripe subscription created via checkout"""
    metadata = subscription.get("metadata") or {}

    db_subscription = StripeSubscription(
        stripe_id=subscription["id"],
        organization_id=uuid.UUID(metadata["organization_id"]),
        purchased_by_id=_optional_uuid(metadata.get("purchased_by_id")),
        created=_to_datetime(subscription["created"]),
        cancel_at_period_end=subscription["cancel_at_period_end"],
        status=subscription["status"],
        items=_subscription_items(subscription),
    )
    db.add(db_subscription)
    await db.commit()

    logger.info(f"Created subscription {db_subscription.stripe_id} for organization {db_subscription.organization_id}")
    return db_subscription


async def update_stripe_subscription_from_api(
    db: AsyncSession,
    subscription: Dict[str, Any]
) -> Optional[StripeSubscription]:
    """Refresh status, cancel flag and items of a local subscription"""
    result = await db.execute(
        select(StripeSubscription)
        .where(StripeSubscription.stripe_id == subscription["id"])
        .options(selectinload(StripeSubscription.items))
    )
    db_subscription = result.scalar_one_or_none()

    if not db_subscription:
        logger.warning(f"No local subscription found for Stripe subscription {subscription['id']}")
        return None

    metadata = subscription.get("metadata") or {}
    if metadata.get("purchased_by_id"):
        db_subscription.purchased_by_id = _optional_uuid(metadata["purchased_by_id"])
    db_subscription.created = _to_datetime(subscription["created"])
    db_subscription.cancel_at_period_end = subscription["cancel_at_period_end"]
    db_subscription.status = subscription["status"]

    # Replace items wholesale, the old rows are orphaned and deleted
    db_subscription.items = _subscription_items(subscription)

    await db.commit()
    logger.info(f"Updated subscription {db_subscription.stripe_id}: status={db_subscription.status}")
    return db_subscription


async def update_stripe_subscription_cancel_at_period_end(
    db: AsyncSession,
    stripe_id: str,
    cancel_at_period_end: bool
) -> None:
    await db.execute(
        update(StripeSubscription)
        .where(StripeSubscription.stripe_id == stripe_id)
        .values(cancel_at_period_end=cancel_at_period_end)
    )
    await db.commit()


# --- Subscription schedules -----------------------------------------------------

def _schedule_phases(schedule: Dict[str, Any]) -> List[StripeSubscriptionSchedulePhase]:
    phases = []
    for phase in schedule["phases"]:
        items = phase.get("items") or []
        if not items or not isinstance(items[0].get("price"), str):
            raise ValueError("Each phase must have at least one item with a price ID")

        phases.append(
            StripeSubscriptionSchedulePhase(
                start_date=_to_datetime(phase["start_date"]),
                end_date=_to_datetime(phase["end_date"]),
                price_id=items[0]["price"],
                quantity=items[0].get("quantity") or 1,
            )
        )
    return phases


def _schedule_fields(schedule: Dict[str, Any]) -> Dict[str, Any]:
    current_phase = schedule.get("current_phase") or {}
    return {
        "created": _to_datetime(schedule["created"]),
        "current_phase_start": _to_datetime(current_phase.get("start_date")),
        "current_phase_end": _to_datetime(current_phase.get("end_date")),
    }


async def save_stripe_subscription_schedule_from_api(
    db: AsyncSession,
    schedule: Dict[str, Any]
) -> StripeSubscriptionSchedule:
    db_schedule = StripeSubscriptionSchedule(
        stripe_id=schedule["id"],
        subscription_id=_expandable_id(schedule["subscription"]),
        phases=_schedule_phases(schedule),
        **_schedule_fields(schedule),
    )
    db.add(db_schedule)
    await db.commit()

    logger.info(f"Saved subscription schedule {db_schedule.stripe_id} for subscription {db_schedule.subscription_id}")
    return db_schedule


async def update_stripe_subscription_schedule_from_api(
    db: AsyncSession,
    schedule: Dict[str, Any]
) -> Optional[StripeSubscriptionSchedule]:
    result = await db.execute(
        select(StripeSubscriptionSchedule)
        .where(StripeSubscriptionSchedule.stripe_id == schedule["id"])
        .options(selectinload(StripeSubscriptionSchedule.phases))
    )
    db_schedule = result.scalar_one_or_none()

    if not db_schedule:
        logger.warning(f"No local schedule found for Stripe schedule {schedule['id']}")
        return None

    for field, value in _schedule_fields(schedule).items():
        setattr(db_schedule, field, value)
    db_schedule.phases = _schedule_phases(schedule)

    await db.commit()
    return db_schedule


async def delete_stripe_subscription_schedule(db: AsyncSession, stripe_id: str) -> None:
    await db.execute(
        delete(StripeSubscriptionSchedule).where(StripeSubscriptionSchedule.stripe_id == stripe_id)
    )
    await db.commit()
