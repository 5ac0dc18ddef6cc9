"""
Organizations API endpoints
Create, read and delete organizations, and deactivate their members
"""

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel, Field
from datetime import datetime, timezone
import logging
import uuid

from app.middleware.auth import get_current_user, require_user_is_member_of_organization
from app.models.organization import OrganizationMembershipRole
from app.models.user_account import UserAccount
from app.services.organizations import deactivate_membership, delete_organization, save_organization_with_owner
from app.utils.database import get_db
from app.utils.slug_generator import generate_unique_slug

logger = logging.getLogger(__name__)

router = APIRouter()


# Pydantic models
class OrganizationCreateRequest(BaseModel):
    name: str = Field(min_length=3, max_length=255)


class OrganizationResponse(BaseModel):
    id: str
    name: str
    slug: str
    billing_email: str
    trial_end: datetime
    member_count: int
    role: str


@router.post("", response_model=OrganizationResponse, status_code=201)
async def create_organization(
    request: OrganizationCreateRequest,
    user: UserAccount = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create an organization on a free trial with the current user as owner"""
    name = request.name.strip()
    slug = await generate_unique_slug(name, db)

    organization = await save_organization_with_owner(db, name=name, slug=slug, owner=user)
    membership = organization.memberships[0]

    return OrganizationResponse(
        id=str(organization.id),
        name=organization.name,
        slug=organization.slug,
        billing_email=organization.billing_email,
        trial_end=organization.trial_end,
        member_count=organization.member_count,
        role=OrganizationMembershipRole(membership.role).value,
    )


@router.get("/{organization_slug}", response_model=OrganizationResponse)
async def get_organization(auth=Depends(require_user_is_member_of_organization)):
    """Organization summary for one of its members"""
    organization, membership, _ = auth

    return OrganizationResponse(
        id=str(organization.id),
        name=organization.name,
        slug=organization.slug,
        billing_email=organization.billing_email,
        trial_end=organization.trial_end,
        member_count=organization.member_count,
        role=OrganizationMembershipRole(membership.role).value,
    )


@router.delete("/{organization_slug}", status_code=204)
async def remove_organization(
    auth=Depends(require_user_is_member_of_organization),
    db: AsyncSession = Depends(get_db),
):
    """Delete the organization and cancel its Stripe subscriptions (owners only)"""
    organization, membership, _ = auth

    if membership.role != OrganizationMembershipRole.OWNER:
        raise HTTPException(status_code=403, detail="Only owners can delete an organization")

    await delete_organization(db, organization)
    return Response(status_code=204)


@router.delete("/{organization_slug}/members/{member_id}", status_code=204)
async def deactivate_member(
    member_id: uuid.UUID,
    auth=Depends(require_user_is_member_of_organization),
    db: AsyncSession = Depends(get_db),
):
    """Deactivate a member and lower the subscription's seat count (owners and admins only)"""
    organization, membership, _ = auth

    if membership.role == OrganizationMembershipRole.MEMBER:
        raise HTTPException(status_code=403, detail="Only owners and admins can deactivate members")

    now = datetime.now(timezone.utc)
    target = next(
        (m for m in organization.memberships if m.member_id == member_id and m.is_active(now)),
        None,
    )
    if not target:
        raise HTTPException(status_code=404, detail="Member not found")

    if target.role == OrganizationMembershipRole.OWNER:
        raise HTTPException(status_code=403, detail="Owners cannot be deactivated")

    await deactivate_membership(db, organization, target, now=now)
    return Response(status_code=204)
