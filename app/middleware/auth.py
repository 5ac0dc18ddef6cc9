"""
Authentication dependencies for bearer tokens and organization access
"""
from fastapi import HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, Tuple
import logging
import uuid

from app.models.organization import Organization, OrganizationMembership
from app.models.user_account import UserAccount
from app.services.organizations import retrieve_organization_with_billing_data_by_slug, get_membership_for_user
from app.utils.database import get_db
from app.utils.security import verify_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


async def get_current_user(
    token: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> UserAccount:
    """Get the currently authenticated user account, raise 401 if not authenticated"""

    if not token:
        raise HTTPException(status_code=401, detail="Authentication required")

    payload = verify_token(token.credentials)
    if payload.get("type") != "access":
        raise HTTPException(status_code=401, detail="Invalid token type")

    try:
        user_id = uuid.UUID(payload.get("sub", ""))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid authentication")

    user = await db.get(UserAccount, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    return user


async def require_user_is_member_of_organization(
    organization_slug: str,
    user: UserAccount = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Tuple[Organization, OrganizationMembership, UserAccount]:
    """
    Load the organization (with billing data) for a member.

    Non-members get a 404 so the organization's existence is not revealed.
    """
    organization = await retrieve_organization_with_billing_data_by_slug(db, organization_slug)
    membership = get_membership_for_user(organization, user) if organization else None

    if not membership:
        logger.info(f"User {user.id} denied access to organization {organization_slug}")
        raise HTTPException(status_code=404, detail="Organization not found")

    return organization, membership, user
