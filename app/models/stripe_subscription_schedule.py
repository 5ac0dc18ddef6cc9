"""
Stripe subscription schedule models - queued plan changes and their phases
"""

from sqlalchemy import Column, String, DateTime, Integer, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.utils.database import Base
import uuid


class StripeSubscriptionSchedule(Base):
    __tablename__ = "stripe_subscription_schedules"

    stripe_id = Column(String(100), primary_key=True)
    subscription_id = Column(String(100), ForeignKey("stripe_subscriptions.stripe_id", ondelete="CASCADE"), unique=True, nullable=False)
    created = Column(DateTime(timezone=True), nullable=False)
    current_phase_start = Column(DateTime(timezone=True))
    current_phase_end = Column(DateTime(timezone=True))

    # Relationships
    subscription = relationship("StripeSubscription", back_populates="schedule")
    phases = relationship(
        "StripeSubscriptionSchedulePhase",
        back_populates="schedule",
        order_by="StripeSubscriptionSchedulePhase.start_date",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<StripeSubscriptionSchedule(stripe_id='{self.stripe_id}', subscription_id='{self.subscription_id}')>"


class StripeSubscriptionSchedulePhase(Base):
    __tablename__ = "stripe_subscription_schedule_phases"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    schedule_id = Column(String(100), ForeignKey("stripe_subscription_schedules.stripe_id", ondelete="CASCADE"), nullable=False, index=True)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    price_id = Column(String(100), ForeignKey("stripe_prices.stripe_id"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)

    # Relationships
    schedule = relationship("StripeSubscriptionSchedule", back_populates="phases")
    price = relationship("StripePrice")

    def __repr__(self):
        return f"<StripeSubscriptionSchedulePhase(schedule_id='{self.schedule_id}', start_date={self.start_date}, price_id='{self.price_id}')>"
