from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, RootModel

from app.config.billing_catalog import (
    CANCEL_SUBSCRIPTION_INTENT,
    KEEP_CURRENT_SUBSCRIPTION_INTENT,
    OPEN_CHECKOUT_SESSION_INTENT,
    RESUME_SUBSCRIPTION_INTENT,
    SWITCH_SUBSCRIPTION_INTENT,
    UPDATE_BILLING_EMAIL_INTENT,
    VIEW_INVOICES_INTENT,
    Interval,
    Tier,
)

SubscriptionDisplayStatus = Literal["active", "inactive", "paused"]


class TierAndInterval(BaseModel):
    model_config = ConfigDict(frozen=True)

    tier: Tier
    interval: Interval


class CancelOrModifySubscriptionModalProps(BaseModel):
    model_config = ConfigDict(frozen=True)

    can_cancel_subscription: bool
    current_tier: Tier
    current_tier_interval: Interval


class PendingChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    pending_change_date: datetime
    pending_interval: Interval
    pending_tier: Tier


class BillingPageProps(BaseModel):
    """Everything the billing settings page needs to render."""

    model_config = ConfigDict(frozen=True)

    billing_email: str
    cancel_at_period_end: bool
    cancel_or_modify_subscription_modal_props: CancelOrModifySubscriptionModalProps
    current_interval: Interval
    current_monthly_rate_per_user: float
    current_period_end: datetime
    current_seats: int
    current_tier: Tier
    is_enterprise_plan: bool
    is_on_free_trial: bool
    max_seats: int
    organization_slug: str
    pending_change: Optional[PendingChange] = None
    projected_total: float
    subscription_status: SubscriptionDisplayStatus


class PlanLimits(BaseModel):
    model_config = ConfigDict(frozen=True)

    low: int
    mid: int
    high: int


class CreateSubscriptionModalProps(BaseModel):
    model_config = ConfigDict(frozen=True)

    current_seats: int
    plan_limits: PlanLimits


class BillingPageResponse(BaseModel):
    billing: BillingPageProps
    create_subscription_modal_props: CreateSubscriptionModalProps


# Billing action bodies, discriminated by intent

class CancelSubscriptionRequest(BaseModel):
    intent: Literal[CANCEL_SUBSCRIPTION_INTENT]


class KeepCurrentSubscriptionRequest(BaseModel):
    intent: Literal[KEEP_CURRENT_SUBSCRIPTION_INTENT]


class OpenCheckoutSessionRequest(BaseModel):
    intent: Literal[OPEN_CHECKOUT_SESSION_INTENT]
    lookup_key: str


class ResumeSubscriptionRequest(BaseModel):
    intent: Literal[RESUME_SUBSCRIPTION_INTENT]


class SwitchSubscriptionRequest(BaseModel):
    intent: Literal[SWITCH_SUBSCRIPTION_INTENT]
    lookup_key: str


class UpdateBillingEmailRequest(BaseModel):
    intent: Literal[UPDATE_BILLING_EMAIL_INTENT]
    billing_email: EmailStr


class ViewInvoicesRequest(BaseModel):
    intent: Literal[VIEW_INVOICES_INTENT]


class BillingActionRequest(RootModel[Annotated[
    Union[
        CancelSubscriptionRequest,
        KeepCurrentSubscriptionRequest,
        OpenCheckoutSessionRequest,
        ResumeSubscriptionRequest,
        SwitchSubscriptionRequest,
        UpdateBillingEmailRequest,
        ViewInvoicesRequest,
    ],
    Field(discriminator="intent"),
]]):
    pass


class Toast(BaseModel):
    title: str
    type: Literal["success", "error", "info"] = "success"


class BillingActionResponse(BaseModel):
    redirect_url: Optional[str] = None
    toast: Optional[Toast] = None
