"""
Billing Catalog Configuration
Defines the price lookup keys for each subscription tier and billing interval
"""

import enum
from types import MappingProxyType
from typing import Mapping


class Tier(str, enum.Enum):
    LOW = "low"
    MID = "mid"
    HIGH = "high"


class Interval(str, enum.Enum):
    MONTHLY = "monthly"
    ANNUAL = "annual"


# Must match the lookup keys configured on the Stripe prices verbatim
PRICE_LOOKUP_KEYS_BY_TIER_AND_INTERVAL: Mapping[Tier, Mapping[Interval, str]] = MappingProxyType({
    Tier.LOW: MappingProxyType({
        Interval.MONTHLY: "monthly_hobby_plan",
        Interval.ANNUAL: "annual_hobby_plan",
    }),
    Tier.MID: MappingProxyType({
        Interval.MONTHLY: "monthly_startup_plan",
        Interval.ANNUAL: "annual_startup_plan",
    }),
    Tier.HIGH: MappingProxyType({
        Interval.MONTHLY: "monthly_business_plan",
        Interval.ANNUAL: "annual_business_plan",
    }),
})

ALL_TIERS = (Tier.LOW, Tier.MID, Tier.HIGH)

MONTHLY_LOOKUP_KEYS = tuple(
    PRICE_LOOKUP_KEYS_BY_TIER_AND_INTERVAL[tier][Interval.MONTHLY] for tier in ALL_TIERS
)
ANNUAL_LOOKUP_KEYS = tuple(
    PRICE_LOOKUP_KEYS_BY_TIER_AND_INTERVAL[tier][Interval.ANNUAL] for tier in ALL_TIERS
)
ALL_LOOKUP_KEYS = MONTHLY_LOOKUP_KEYS + ANNUAL_LOOKUP_KEYS

# Billing form intents
CANCEL_SUBSCRIPTION_INTENT = "cancelSubscription"
KEEP_CURRENT_SUBSCRIPTION_INTENT = "keepCurrentSubscription"
OPEN_CHECKOUT_SESSION_INTENT = "openCheckoutSession"
RESUME_SUBSCRIPTION_INTENT = "resumeSubscription"
SWITCH_SUBSCRIPTION_INTENT = "switchSubscription"
UPDATE_BILLING_EMAIL_INTENT = "updateBillingEmail"
VIEW_INVOICES_INTENT = "viewInvoices"

# Placeholder shown before an organization has picked a plan
FREE_TRIAL_TIER = Tier.HIGH
FREE_TRIAL_INTERVAL = Interval.MONTHLY
FREE_TRIAL_MONTHLY_RATE_PER_USER = 85
FREE_TRIAL_MAX_SEATS = 25
TRIAL_PERIOD_DAYS = 14

# Products whose metadata.max_seats is missing or unreadable allow one seat
DEFAULT_MAX_SEATS = 1

# Provider statuses from which a subscription may still be cancelled
CANCELLABLE_SUBSCRIPTION_STATUSES = frozenset({"active", "trialing", "past_due", "paused"})

# Provider statuses rendered as an active plan
ACTIVE_SUBSCRIPTION_STATUSES = frozenset({"active", "trialing"})
