"""
Organization model - represents each tenant (organizations table)
"""

from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID, CITEXT
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.utils.database import Base
from datetime import datetime, timezone
from typing import Optional
import uuid
import enum


class OrganizationMembershipRole(str, enum.Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(100), unique=True, index=True, nullable=False)
    billing_email = Column(CITEXT, nullable=False, default="")
    stripe_customer_id = Column(String(100), unique=True, index=True)
    trial_end = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    memberships = relationship(
        "OrganizationMembership",
        back_populates="organization",
        cascade="all, delete-orphan",
    )
    # Newest first: the billing page only looks at the head of this list
    stripe_subscriptions = relationship(
        "StripeSubscription",
        back_populates="organization",
        order_by="StripeSubscription.created.desc()",
        cascade="all, delete-orphan",
    )

    def active_member_count(self, now: Optional[datetime] = None) -> int:
        """Loaded memberships that are still active at `now`"""
        now = now or datetime.now(timezone.utc)
        return sum(1 for membership in self.memberships if membership.is_active(now))

    @property
    def member_count(self) -> int:
        return self.active_member_count()

    def __repr__(self):
        return f"<Organization(id={self.id}, name='{self.name}', slug='{self.slug}')>"


class OrganizationMembership(Base):
    __tablename__ = "organization_memberships"

    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id", ondelete="CASCADE"), primary_key=True)
    member_id = Column(UUID(as_uuid=True), ForeignKey("user_accounts.id", ondelete="CASCADE"), primary_key=True, index=True)
    role = Column(String(20), nullable=False, default=OrganizationMembershipRole.MEMBER)
    deactivated_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    organization = relationship("Organization", back_populates="memberships")
    member = relationship("UserAccount", back_populates="memberships")

    def is_active(self, now: Optional[datetime] = None) -> bool:
        """A deactivation only takes effect once its time has passed"""
        if self.deactivated_at is None:
            return True
        return self.deactivated_at > (now or datetime.now(timezone.utc))

    def __repr__(self):
        return f"<OrganizationMembership(organization_id={self.organization_id}, member_id={self.member_id}, role='{self.role}')>"
