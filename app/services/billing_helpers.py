"""
Billing Helpers
Derives billing page state from an organization's locally mirrored Stripe data
"""

import os
import logging
from datetime import datetime
from typing import Any, Iterable, Optional

from app.config.billing_catalog import (
    PRICE_LOOKUP_KEYS_BY_TIER_AND_INTERVAL,
    ACTIVE_SUBSCRIPTION_STATUSES,
    CANCELLABLE_SUBSCRIPTION_STATUSES,
    DEFAULT_MAX_SEATS,
    FREE_TRIAL_INTERVAL,
    FREE_TRIAL_MAX_SEATS,
    FREE_TRIAL_MONTHLY_RATE_PER_USER,
    FREE_TRIAL_TIER,
)
from app.schemas.billing import (
    BillingPageProps,
    CancelOrModifySubscriptionModalProps,
    CreateSubscriptionModalProps,
    PendingChange,
    PlanLimits,
    TierAndInterval,
)

logger = logging.getLogger(__name__)


class InvalidLookupKeyError(Exception):
    """Raised when a price lookup key is not part of the billing catalog"""
    def __init__(self, lookup_key: str):
        self.lookup_key = lookup_key
        super().__init__(f"Invalid lookup key: {lookup_key}")


def get_tier_and_interval_for_lookup_key(lookup_key: str) -> TierAndInterval:
    """
    Given a price lookup key (e.g. 'monthly_hobby_plan'), return its tier and interval.

    Raises:
        InvalidLookupKeyError: if no catalog entry matches the lookup key
    """
    for tier, intervals in PRICE_LOOKUP_KEYS_BY_TIER_AND_INTERVAL.items():
        for interval, key in intervals.items():
            if key == lookup_key:
                return TierAndInterval(tier=tier, interval=interval)

    raise InvalidLookupKeyError(lookup_key)


def parse_max_seats(raw_max_seats: Any, default: int = DEFAULT_MAX_SEATS) -> int:
    """Read a seat capacity stored as an int or a numeric string, else fall back to default"""
    if isinstance(raw_max_seats, bool):
        return default
    if isinstance(raw_max_seats, int):
        return raw_max_seats
    if isinstance(raw_max_seats, str):
        try:
            return int(raw_max_seats.strip(), 10)
        except ValueError:
            return default
    return default


def map_stripe_subscription_data_to_billing_page_props(organization, now: datetime) -> BillingPageProps:
    """
    Compute the billing page state for an organization.

    The organization must have its memberships and its subscriptions (newest
    first, with items -> price -> product and schedule -> phases -> price)
    loaded. Only the most recent subscription is considered, and seats count
    the memberships still active at `now`.
    """
    member_count = organization.active_member_count(now)
    subscription = organization.stripe_subscriptions[0] if organization.stripe_subscriptions else None

    if subscription is None:
        return BillingPageProps(
            billing_email=organization.billing_email,
            cancel_at_period_end=False,
            cancel_or_modify_subscription_modal_props=CancelOrModifySubscriptionModalProps(
                can_cancel_subscription=False,
                current_tier=FREE_TRIAL_TIER,
                current_tier_interval=FREE_TRIAL_INTERVAL,
            ),
            current_interval=FREE_TRIAL_INTERVAL,
            current_monthly_rate_per_user=FREE_TRIAL_MONTHLY_RATE_PER_USER,
            current_period_end=organization.trial_end,
            current_seats=member_count,
            current_tier=FREE_TRIAL_TIER,
            is_enterprise_plan=False,
            is_on_free_trial=True,
            max_seats=FREE_TRIAL_MAX_SEATS,
            organization_slug=organization.slug,
            projected_total=FREE_TRIAL_MONTHLY_RATE_PER_USER * member_count,
            subscription_status="active",
        )

    items = subscription.items

    # End of the billing period is the latest end across all items
    current_period_end = max(item.current_period_end for item in items)

    # First item is authoritative for price, tier and seats
    price = items[0].price
    if any(item.price.stripe_id != price.stripe_id for item in items[1:]):
        logger.warning(
            f"Subscription {subscription.stripe_id} has items with differing prices; "
            f"using price {price.stripe_id} from the first item"
        )

    max_seats = parse_max_seats(price.product.max_seats)
    current_monthly_rate_per_user = price.unit_amount / 100
    current = get_tier_and_interval_for_lookup_key(price.lookup_key)

    if subscription.cancel_at_period_end and now > current_period_end:
        subscription_status = "paused"
    elif subscription.status in ACTIVE_SUBSCRIPTION_STATUSES:
        subscription_status = "active"
    else:
        subscription_status = "inactive"

    projected_total = current_monthly_rate_per_user * member_count

    cancel_or_modify_subscription_modal_props = CancelOrModifySubscriptionModalProps(
        can_cancel_subscription=(
            not subscription.cancel_at_period_end
            and subscription.status in CANCELLABLE_SUBSCRIPTION_STATUSES
        ),
        current_tier=current.tier,
        current_tier_interval=current.interval,
    )

    # Phases arrive ordered by start date
    pending_change: Optional[PendingChange] = None
    schedule = subscription.schedule
    if schedule is not None:
        next_phase = next((phase for phase in schedule.phases if phase.start_date > now), None)
        if next_phase is not None:
            pending = get_tier_and_interval_for_lookup_key(next_phase.price.lookup_key)
            pending_change = PendingChange(
                pending_change_date=next_phase.start_date,
                pending_interval=pending.interval,
                pending_tier=pending.tier,
            )

    return BillingPageProps(
        billing_email=organization.billing_email,
        cancel_at_period_end=subscription.cancel_at_period_end,
        cancel_or_modify_subscription_modal_props=cancel_or_modify_subscription_modal_props,
        current_interval=current.interval,
        current_monthly_rate_per_user=current_monthly_rate_per_user,
        current_period_end=current_period_end,
        current_seats=member_count,
        current_tier=current.tier,
        is_enterprise_plan=False,
        is_on_free_trial=False,
        max_seats=max_seats,
        organization_slug=organization.slug,
        pending_change=pending_change,
        projected_total=projected_total,
        subscription_status=subscription_status,
    )


def get_create_subscription_modal_props(organization, products: Iterable) -> CreateSubscriptionModalProps:
    """
    Seat limits for the plan picker.

    Tiers are assigned by ascending seat capacity: the smallest product is
    'low', the next 'mid', the largest 'high'. Missing tiers get 0 seats.
    """
    seat_limits = sorted(product.max_seats for product in products)
    low, mid, high = (seat_limits + [0, 0, 0])[:3]

    return CreateSubscriptionModalProps(
        current_seats=organization.member_count,
        plan_limits=PlanLimits(low=low, mid=mid, high=high),
    )


def extract_base_url(url) -> str:
    """Public base URL for Stripe return links (https in production)"""
    scheme = "https" if os.getenv("APP_ENV", "development") == "production" else "http"
    return f"{scheme}://{url.netloc}"
