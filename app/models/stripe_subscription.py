"""
Stripe subscription models - subscriptions and their line items
"""

from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.utils.database import Base
import enum


class StripeSubscriptionStatus(str, enum.Enum):
    ACTIVE = "active"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    PAST_DUE = "past_due"
    PAUSED = "paused"
    TRIALING = "trialing"
    UNPAID = "unpaid"


class StripeSubscription(Base):
    __tablename__ = "stripe_subscriptions"

    stripe_id = Column(String(100), primary_key=True)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    purchased_by_id = Column(UUID(as_uuid=True), ForeignKey("user_accounts.id", ondelete="SET NULL"), index=True)
    created = Column(DateTime(timezone=True), nullable=False, index=True)
    cancel_at_period_end = Column(Boolean, nullable=False, default=False)
    status = Column(String(30), nullable=False)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    organization = relationship("Organization", back_populates="stripe_subscriptions")
    purchased_by = relationship("UserAccount")
    items = relationship(
        "StripeSubscriptionItem",
        back_populates="subscription",
        cascade="all, delete-orphan",
    )
    schedule = relationship(
        "StripeSubscriptionSchedule",
        back_populates="subscription",
        uselist=False,
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<StripeSubscription(stripe_id='{self.stripe_id}', status='{self.status}')>"


class StripeSubscriptionItem(Base):
    __tablename__ = "stripe_subscription_items"

    stripe_id = Column(String(100), primary_key=True)
    stripe_subscription_id = Column(String(100), ForeignKey("stripe_subscriptions.stripe_id", ondelete="CASCADE"), nullable=False, index=True)
    price_id = Column(String(100), ForeignKey("stripe_prices.stripe_id"), nullable=False, index=True)
    current_period_start = Column(DateTime(timezone=True), nullable=False)
    current_period_end = Column(DateTime(timezone=True), nullable=False)

    # Relationships
    subscription = relationship("StripeSubscription", back_populates="items")
    price = relationship("StripePrice")

    def __repr__(self):
        return f"<StripeSubscriptionItem(stripe_id='{self.stripe_id}', price_id='{self.price_id}')>"
