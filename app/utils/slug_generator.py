"""
Slug Generation Utilities
Handles generating unique slugs for organizations to avoid conflicts
"""

import re
import unicodedata
import uuid
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.models.organization import Organization


def slugify(name: str) -> str:
    """Lowercase, ascii-only, hyphen separated slug from a display name"""
    normalized = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r'[^a-z0-9]+', '-', normalized.lower()).strip('-')
    # Shorter to leave room for suffix
    return slug[:60].rstrip('-')


async def generate_unique_slug(name: str, db: AsyncSession) -> str:
    """Generate a unique organization slug from its name, handling conflicts"""

    base_slug = slugify(name)

    if not base_slug:
        # Fallback if the name is all special characters
        base_slug = "organization"

    # Check if base slug is available
    result = await db.execute(select(Organization.id).where(Organization.slug == base_slug))
    if not result.scalar_one_or_none():
        return base_slug

    # If conflict, try with numeric suffixes
    for i in range(1, 100):
        candidate_slug = f"{base_slug}-{i}"
        result = await db.execute(select(Organization.id).where(Organization.slug == candidate_slug))
        if not result.scalar_one_or_none():
            return candidate_slug

    # Ultimate fallback: use part of UUID
    fallback_slug = f"{base_slug}-{str(uuid.uuid4())[:8]}"
    return fallback_slug
