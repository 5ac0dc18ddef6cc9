"""
Stripe product and price models - local mirror of the Stripe catalog
"""

from sqlalchemy import Column, String, DateTime, Boolean, Integer, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.utils.database import Base


class StripeProduct(Base):
    __tablename__ = "stripe_products"

    stripe_id = Column(String(100), primary_key=True)
    name = Column(String(255), nullable=False)
    max_seats = Column(Integer, nullable=False, default=1)  # from product metadata.max_seats
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    prices = relationship("StripePrice", back_populates="product", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<StripeProduct(stripe_id='{self.stripe_id}', name='{self.name}', max_seats={self.max_seats})>"


class StripePrice(Base):
    __tablename__ = "stripe_prices"

    stripe_id = Column(String(100), primary_key=True)
    lookup_key = Column(String(100), unique=True, index=True, nullable=False)
    currency = Column(String(10), nullable=False)
    unit_amount = Column(Integer, nullable=False)  # minor units, e.g. cents
    interval = Column(String(10), nullable=False)  # month|year
    active = Column(Boolean, nullable=False, default=True)
    product_id = Column(String(100), ForeignKey("stripe_products.stripe_id", ondelete="CASCADE"), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    product = relationship("StripeProduct", back_populates="prices")

    def __repr__(self):
        return f"<StripePrice(stripe_id='{self.stripe_id}', lookup_key='{self.lookup_key}', unit_amount={self.unit_amount})>"
