"""
Model package initialization
"""

from .user_account import UserAccount
from .organization import Organization, OrganizationMembership, OrganizationMembershipRole
from .stripe_product import StripeProduct, StripePrice
from .stripe_subscription import StripeSubscription, StripeSubscriptionItem, StripeSubscriptionStatus
from .stripe_subscription_schedule import StripeSubscriptionSchedule, StripeSubscriptionSchedulePhase

__all__ = [
    # Core models
    "UserAccount",
    "Organization",
    "OrganizationMembership",
    "StripeProduct",
    "StripePrice",
    "StripeSubscription",
    "StripeSubscriptionItem",
    "StripeSubscriptionSchedule",
    "StripeSubscriptionSchedulePhase",

    # Enums
    "OrganizationMembershipRole",
    "StripeSubscriptionStatus",
]
