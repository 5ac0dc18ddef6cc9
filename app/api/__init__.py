"""
API package initialization
"""

# Import all routers to make them available
from . import billing, organizations, stripe_webhook

__all__ = ["billing", "organizations", "stripe_webhook"]
